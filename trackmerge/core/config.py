"""
Configuration management for trackmerge.

Default merge options can be overridden from a YAML file. When no file is given,
`trackmerge.yaml` (or `trackmerge.yml`) in the current directory is used if it
exists. Format:

    strategy: chronological
    skip_duplicate_points: true
    include_elevation: true
    auto_smooth_transitions: false
    simplification_tolerance_meters: 10
    time_gap_threshold_minutes: 30
    interpolation_step_meters: 25
    max_interpolated_points: 100
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from trackmerge.core.errors import ConfigError
from trackmerge.model import MergeOptions, MergeStrategy


DEFAULT_CONFIG_FILES = (Path("trackmerge.yaml"), Path("trackmerge.yml"))

_BOOL_KEYS = ("skip_duplicate_points", "include_elevation", "auto_smooth_transitions")
_FLOAT_KEYS = (
    "simplification_tolerance_meters",
    "time_gap_threshold_minutes",
    "interpolation_step_meters",
)
_INT_KEYS = ("max_interpolated_points",)
CONFIG_KEYS = ("strategy",) + _BOOL_KEYS + _FLOAT_KEYS + _INT_KEYS


def _coerce(key: str, value: Any) -> Any:
    if key == "strategy":
        try:
            return MergeStrategy(str(value).strip().lower())
        except ValueError:
            valid = ", ".join(s.value for s in MergeStrategy)
            raise ConfigError(f"Invalid strategy '{value}' (expected one of: {valid})")
    if key in _BOOL_KEYS:
        if not isinstance(value, bool):
            raise ConfigError(f"`{key}` must be true or false, got {value!r}")
        return value
    if key in _FLOAT_KEYS or key in _INT_KEYS:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ConfigError(f"`{key}` must be a number, got {value!r}")
        return int(value) if key in _INT_KEYS else float(value)
    raise ConfigError(f"Unknown configuration key: `{key}`")


class MergeConfig:
    """Merge defaults with user overrides from YAML."""

    def __init__(self, config_file: Optional[Path] = None):
        self.config_file = config_file
        self.overrides: Dict[str, Any] = {}
        if config_file is not None:
            if not config_file.exists():
                raise ConfigError(f"Config file not found: {config_file}")
            self.load_user_config(config_file)

    def load_user_config(self, config_file: Path) -> None:
        """
        Load overrides from a YAML file.

        Raises:
            ConfigError: On invalid YAML, unknown keys or bad values
        """
        try:
            with open(config_file, "r", encoding="utf-8") as f:
                user_config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in config file: {e}")

        # Handle empty config file
        if user_config is None:
            user_config = {}
        if not isinstance(user_config, dict):
            raise ConfigError("Config file must contain a mapping at the top level")

        for key, value in user_config.items():
            self.overrides[str(key)] = _coerce(str(key), value)

        # Let MergeOptions range-check the combined values now rather than later.
        try:
            self.merge_options()
        except ValueError as e:
            raise ConfigError(str(e))

    def merge_options(self, **changes: Any) -> MergeOptions:
        """Build MergeOptions from defaults, file overrides, then `changes`."""
        values = dict(self.overrides)
        values.update({k: v for k, v in changes.items() if v is not None})
        return MergeOptions(**values)

    def get_config_summary(self) -> Dict[str, Any]:
        opts = self.merge_options()
        summary: Dict[str, Any] = {"config_file": str(self.config_file) if self.config_file else None}
        for key in CONFIG_KEYS:
            value = getattr(opts, key)
            summary[key] = value.value if isinstance(value, MergeStrategy) else value
        summary["overridden"] = sorted(self.overrides)
        return summary

    def export_template(self, output_path: Path) -> None:
        """Write the effective settings as a YAML template."""
        summary = self.get_config_summary()
        data = {k: summary[k] for k in CONFIG_KEYS}
        with open(output_path, "w", encoding="utf-8") as f:
            f.write("# trackmerge configuration\n")
            yaml.dump(data, f, default_flow_style=False, sort_keys=False, allow_unicode=True)


def load_config(config_file: Optional[Path] = None) -> MergeConfig:
    """
    Load merge configuration.

    Args:
        config_file: Optional path to a YAML file. If None, looks for
                     'trackmerge.yaml' / 'trackmerge.yml' in the current directory.

    Returns:
        MergeConfig instance
    """
    if config_file is None:
        for candidate in DEFAULT_CONFIG_FILES:
            if candidate.exists():
                config_file = candidate
                break
    return MergeConfig(config_file)
