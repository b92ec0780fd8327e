"""
Example: driving SetupOrchestrator from Python instead of the CLI.

This shows the separation between:
- Design-time config: the machine definition (YAML file or dict)
- Runtime parameters: values supplied by whoever triggers the run
"""

from buildsetup.cli import load_config_file
from buildsetup.orchestrator import SetupOrchestrator

config_dict = load_config_file("examples/flatpak-build-machine.yaml")


# =============================================================================
# Example 1: Full machine setup
# =============================================================================
orchestrator = SetupOrchestrator(run_id="setup_20261017_030000")

result = orchestrator.run(config_dict, config_path="examples/flatpak-build-machine.yaml")
for line in result.summary():
    print(line)
print(f"Exit code: {result.exit_code}")


# =============================================================================
# Example 2: Nightly rebuild into a separate checkout directory
# =============================================================================
# {{flavour}} in the config is filled from runtime_vars; packages are already
# installed on the machine so the package manager is skipped.
nightly = dict(config_dict, tooldir="{{config_dir}}/tools-{{flavour}}", failure_policy="stop")
nightly.pop("schedule", None)

result_nightly = SetupOrchestrator().run(
    nightly,
    base_dir="examples",
    skip_packages=True,
    runtime_vars={"flavour": "nightly"},
)
print(f"\nNightly run {result_nightly.run_id}: exit code {result_nightly.exit_code}")
