from __future__ import annotations

import re
from pathlib import Path
from typing import Any, Mapping


# Only allow simple identifiers so shell snippets such as ${1:-x} or $(nproc)
# inside config strings are left alone.
_IDENTIFIER = r"[A-Za-z_][A-Za-z0-9_]*"
_PATTERN = re.compile(rf"\{{\{{\s*({_IDENTIFIER})\s*\}}\}}|\$\{{({_IDENTIFIER})\}}")

# Token style used by the launcher and apache templates: @@SITE_ROOT@@
_FILE_TOKEN = re.compile(r"@@([A-Z][A-Z0-9_]*)@@")


def default_template_vars(*, config_dir: Path | None = None) -> dict[str, str]:
    return {
        "home": str(Path.home()),
        "config_dir": str(config_dir) if config_dir is not None else str(Path.cwd()),
    }


def resolve_template_string(value: str, variables: Mapping[str, Any]) -> str:
    if "{{" not in value and "${" not in value:
        return value

    def _repl(match: re.Match[str]) -> str:
        key = match.group(1) or match.group(2)
        if key in variables and variables[key] is not None:
            return str(variables[key])
        return match.group(0)

    return _PATTERN.sub(_repl, value)


def resolve_templates(obj: Any, variables: Mapping[str, Any]) -> Any:
    """Recursively resolve {{var}} and ${var} in any strings inside obj.

    - Only replaces variables that match a safe identifier pattern.
    - Leaves unknown placeholders untouched.
    """

    if obj is None:
        return None

    if isinstance(obj, str):
        return resolve_template_string(obj, variables)

    if isinstance(obj, list):
        return [resolve_templates(x, variables) for x in obj]

    if isinstance(obj, tuple):
        return tuple(resolve_templates(x, variables) for x in obj)

    if isinstance(obj, dict):
        return {
            resolve_templates(k, variables): resolve_templates(v, variables)
            for k, v in obj.items()
        }

    return obj


def render_file_template(text: str, tokens: Mapping[str, Any]) -> str:
    """Replace @@NAME@@ tokens; unknown tokens are kept verbatim."""

    def _repl(match: re.Match[str]) -> str:
        key = match.group(1)
        if key in tokens and tokens[key] is not None:
            return str(tokens[key])
        return match.group(0)

    return _FILE_TOKEN.sub(_repl, text)
