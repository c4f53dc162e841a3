"""Project-level configuration and scaffolding."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

CONFIG_FILENAME = "formula_preview.yaml"

REWRITE_MODES = ("token", "literal")

DEFAULT_CONFIG: dict[str, Any] = {
    "marker": "formula",
    "default_range": [0, 11, 1],  # start, exclusive end, step
    "max_samples": 1000,  # per axis
    "padding": 1,
    "placeholder": "-",
    "rewrite_mode": "token",
    "logging_fsync": False,
    "logging_tail_bytes": 2_097_152,  # 2 MB
}

DEFAULT_CONFIG_YAML = """\
# formula-preview configuration
preview:
  # Call-like word whose parenthesised argument is previewed: formula(a + b)
  marker: formula
  # Sample domain for variables without a range directive: [start, end, step]
  default_range: [0, 11, 1]
  # Upper bound on samples per axis; longer ranges are truncated with a notice
  max_samples: 1000
  padding: 1
  placeholder: "-"
  # token: replace whole variable tokens; literal: replace every substring
  rewrite_mode: token

logging_fsync: false
"""


def _flatten_preview_block(user_config: dict[str, Any]) -> dict[str, Any]:
    """Flatten a nested ``preview:`` block into flat config keys.

    Supports::

        preview:
          marker: formula
          max_samples: 500

    Flat keys given at the top level win over the nested block.
    """
    block = user_config.pop("preview", None)
    if not isinstance(block, dict):
        return user_config
    for key, value in block.items():
        user_config.setdefault(key, value)
    return user_config


def load_preview_config(project_dir: Path) -> dict[str, Any]:
    """Load configuration from ``formula_preview.yaml``, with defaults.

    Args:
        project_dir: Directory holding the config file.

    Returns:
        Merged configuration dict.

    Raises:
        ValueError: If the file is not a YAML mapping.
    """
    config = dict(DEFAULT_CONFIG)
    config_path = project_dir / CONFIG_FILENAME
    if config_path.exists():
        user_config = yaml.safe_load(config_path.read_text()) or {}
        if not isinstance(user_config, dict):
            raise ValueError(f"{config_path} must contain a mapping")
        config.update(_flatten_preview_block(user_config))
    return config


def validate_preview_config(config: dict[str, Any]) -> list[str]:
    """Return human-readable problems with *config* (empty when valid)."""
    problems: list[str] = []

    marker = config.get("marker")
    if not isinstance(marker, str) or not marker.isidentifier():
        problems.append(f"marker must be an identifier, got {marker!r}")

    default_range = config.get("default_range")
    if (
        not isinstance(default_range, (list, tuple))
        or len(default_range) not in (2, 3)
        or not all(isinstance(v, int) and not isinstance(v, bool) for v in default_range)
    ):
        problems.append(
            f"default_range must be [start, end] or [start, end, step] integers, got {default_range!r}"
        )
    elif len(default_range) == 3 and default_range[2] == 0:
        problems.append("default_range step must not be 0")

    max_samples = config.get("max_samples")
    if not isinstance(max_samples, int) or isinstance(max_samples, bool) or max_samples < 1:
        problems.append(f"max_samples must be a positive integer, got {max_samples!r}")

    padding = config.get("padding")
    if not isinstance(padding, int) or isinstance(padding, bool) or padding < 0:
        problems.append(f"padding must be a non-negative integer, got {padding!r}")

    placeholder = config.get("placeholder")
    if not isinstance(placeholder, str) or not placeholder:
        problems.append(f"placeholder must be a non-empty string, got {placeholder!r}")

    if config.get("rewrite_mode") not in REWRITE_MODES:
        problems.append(
            f"rewrite_mode must be one of {list(REWRITE_MODES)}, got {config.get('rewrite_mode')!r}"
        )

    return problems


def resolve_config(config: dict[str, Any] | None = None) -> dict[str, Any]:
    """Merge *config* over the defaults and validate the result.

    Raises:
        ValueError: If the merged configuration is invalid.
    """
    merged = dict(DEFAULT_CONFIG)
    if config:
        merged.update(_flatten_preview_block(dict(config)))
    problems = validate_preview_config(merged)
    if problems:
        raise ValueError("Invalid preview configuration: " + "; ".join(problems))
    return merged


def scaffold_config(project_dir: Path) -> Path:
    """Write a default ``formula_preview.yaml`` into *project_dir*.

    Returns:
        Path of the written file.

    Raises:
        FileExistsError: If the config file already exists.
    """
    project_dir.mkdir(parents=True, exist_ok=True)
    config_path = project_dir / CONFIG_FILENAME
    if config_path.exists():
        raise FileExistsError(f"Config already exists: {config_path}")
    config_path.write_text(DEFAULT_CONFIG_YAML)
    return config_path
