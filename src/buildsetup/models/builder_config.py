from __future__ import annotations

from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, Field, PositiveInt


class AutotoolsBuilderConfig(BaseModel):
    """Options for configure/make/make-install builds."""

    kind: Literal["autotools"] = "autotools"

    # Extra flags after --prefix=<install prefix>
    configure_args: List[str] = Field(default_factory=list)
    make_args: List[str] = Field(default_factory=list)

    # make -j<jobs>; unset means plain `make`
    jobs: Optional[PositiveInt] = None

    # Overrides the autogen.sh / autoreconf choice when no configure script exists.
    bootstrap_command: Optional[List[str]] = None

    install_with_sudo: bool = False


class MakeBuilderConfig(BaseModel):
    """Options for plain Makefile projects that honour PREFIX=."""

    kind: Literal["make"] = "make"

    make_args: List[str] = Field(default_factory=list)
    jobs: Optional[PositiveInt] = None
    prefix_variable: str = "PREFIX"
    install_target: str = "install"
    install_with_sudo: bool = False


BuilderConfig = Annotated[
    Union[AutotoolsBuilderConfig, MakeBuilderConfig],
    Field(discriminator="kind"),
]
