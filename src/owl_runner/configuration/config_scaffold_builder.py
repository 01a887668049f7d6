"""Configuration scaffold generation helpers."""

from __future__ import annotations

from pathlib import Path

DEFAULT_CONFIG_FILENAME = "owl.config.yaml"

_CONFIG_SCAFFOLD_TEMPLATE = """# Test configuration template for owl-runner.
# Keep only the platform sections you run on and replace every <REQUIRED> placeholder.
# Replace <OPTIONAL> placeholders only when your setup needs them.

ios:
  device: "<REQUIRED>"
  # workspace and scheme are required unless build_command is set.
  workspace: "<REQUIRED>"
  scheme: "<REQUIRED>"
  configuration: "<OPTIONAL>"
  # A custom build command is used verbatim; point binary_path at the .app it produces.
  # build_command: "<OPTIONAL>"
  # binary_path: "<OPTIONAL>"
  quiet: false

# tvos:
#   device: "<OPTIONAL>"
#   workspace: "<OPTIONAL>"
#   scheme: "<OPTIONAL>"

android:
  package_name: "<REQUIRED>"
  # Debug or Release.
  build_type: "<OPTIONAL>"
  # build_command: "<OPTIONAL>"
  # binary_path: "<OPTIONAL>"
  quiet: false

bridge:
  port: 8123
  timeout_seconds: 30
  connect_timeout_seconds: 30

# Render a report workbook when a run fails.
report: false
debug: false
"""


def build_placeholder_configuration() -> str:
    """Build an owl configuration template with placeholders and inline guidance."""
    return _CONFIG_SCAFFOLD_TEMPLATE


def write_placeholder_configuration(output_path: Path | str) -> Path:
    """Write the placeholder configuration template to the requested output path.

    Args:
      output_path: Destination file path for the scaffold.

    Returns:
      The resolved destination path.

    Raises:
      FileExistsError: If the destination file already exists.
      OSError: If writing the scaffold fails.
    """
    destination = Path(output_path)
    if destination.exists():
        raise FileExistsError(f"Configuration file already exists: {destination.resolve()}")
    destination.write_text(build_placeholder_configuration(), encoding="utf-8")
    return destination.resolve()
