# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""YAML configuration file loader utilities.

Email templates can be maintained outside the environment in a YAML file:

    templates:
      expire: |
        {SUBJECT: Access to {COURSE} ended}

        Dear {STUDENTFIRST}, ...

Example:
    >>> from pathlib import Path
    >>> from src.core.config.yaml_loader import load_template_overrides
    >>> overrides = load_template_overrides(Path("config/templates.yaml"))
"""

from pathlib import Path
from typing import Any

import yaml


class YAMLLoadError(Exception):
    """Raised when YAML file cannot be loaded or parsed."""

    def __init__(self, path: Path, reason: str) -> None:
        """Initialize YAMLLoadError.

        Args:
            path: Path to the YAML file that failed to load.
            reason: Description of why the file failed to load.
        """
        self.path = path
        self.reason = reason
        super().__init__(f"Failed to load YAML file '{path}': {reason}")


def load_yaml(path: Path) -> dict[str, Any]:
    """Load a single YAML file and return its contents as a dictionary.

    Args:
        path: Path to the YAML file to load.

    Returns:
        Dictionary containing the parsed YAML contents.
        Empty dict if file is empty.

    Raises:
        YAMLLoadError: If the file doesn't exist, cannot be read,
            or contains invalid YAML.
    """
    if not path.exists():
        raise YAMLLoadError(path, "File does not exist")

    if not path.is_file():
        raise YAMLLoadError(path, "Path is not a file")

    try:
        content = path.read_text(encoding="utf-8")
    except OSError as e:
        raise YAMLLoadError(path, f"Cannot read file: {e}") from e

    try:
        parsed = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise YAMLLoadError(path, f"Invalid YAML syntax: {e}") from e

    # Handle empty files
    if parsed is None:
        return {}

    if not isinstance(parsed, dict):
        raise YAMLLoadError(
            path, f"YAML root must be a mapping, got {type(parsed).__name__}"
        )

    return parsed


def load_template_overrides(path: Path) -> dict[str, str]:
    """Load per-kind email template overrides from a YAML file.

    Args:
        path: Path to a YAML file with a top-level ``templates`` mapping
            of email kind to template text.

    Returns:
        Mapping of email kind value to template string. Empty if the
        file has no ``templates`` key.

    Raises:
        YAMLLoadError: If the file cannot be loaded or a template
            is not a string.
    """
    data = load_yaml(path)
    templates = data.get("templates") or {}

    if not isinstance(templates, dict):
        raise YAMLLoadError(path, "'templates' must be a mapping")

    result: dict[str, str] = {}
    for kind, template in templates.items():
        if template is None:
            template = ""
        if not isinstance(template, str):
            raise YAMLLoadError(
                path, f"Template '{kind}' must be a string, got {type(template).__name__}"
            )
        result[str(kind)] = template

    return result
