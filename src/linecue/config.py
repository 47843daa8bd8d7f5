# Copyright © 2025 Ed Nutting
# SPDX-License-Identifier: MIT
# See LICENSE file for details

"""
Configuration management for linecue.
Handles loading and saving settings from a YAML config file.
"""

import logging
from pathlib import Path
from typing import Any, TypedDict

import yaml

logger = logging.getLogger(__name__)

CONFIG_FILENAME: str = ".linecue.yaml"


class ConfigError(ValueError):
    """Raised when a configuration value is out of range."""


class TrackingSettings(TypedDict):
    """Type definition for alignment configuration settings."""
    lookahead_window: int
    jump_window: int
    jump_completion_ratio: float
    advance_delay_ms: int
    match_threshold: float
    carry_over_after_jump: bool
    revision_policy: str  # "drop" or "resync"


class NavigationSettings(TypedDict):
    """Type definition for manual navigation settings."""
    wheel_threshold: float
    wheel_throttle_ms: int


class DisplaySettings(TypedDict):
    """Type definition for display configuration settings."""
    past_segments: int
    future_segments: int


class Config(TypedDict):
    """Type definition for the complete configuration."""
    # Default script to open when none is given on the command line
    script_path: str | None
    tracking: TrackingSettings
    navigation: NavigationSettings
    display: DisplaySettings


# Default configuration values
DEFAULT_CONFIG: Config = {
    "script_path": None,

    # Alignment thresholds
    "tracking": {
        # Extra tokens checked past the next expected one
        "lookahead_window": 4,
        # Opening tokens of the next segment that can trigger a jump
        "jump_window": 3,
        # Share of the current segment spoken before jumps are allowed
        "jump_completion_ratio": 0.6,
        "advance_delay_ms": 50,
        # 100 = exact (case-insensitive) word comparison
        "match_threshold": 100.0,
        "carry_over_after_jump": True,
        "revision_policy": "drop",
    },

    # Manual scrolling
    "navigation": {
        "wheel_threshold": 20.0,
        "wheel_throttle_ms": 150,
    },

    # Segments shown around the active one
    "display": {
        "past_segments": 1,
        "future_segments": 1,
    },
}


def get_config_path() -> Path:
    """Get the path to the config file in the current working directory."""
    return Path.cwd() / CONFIG_FILENAME


def _deep_merge(base, override):
    """
    Deep merge two dictionaries, with override taking precedence.
    Returns a new dictionary without modifying the originals.

    Args:
        base: Base dictionary to merge from.
        override: Dictionary with values that take precedence over base.

    Returns:
        New dictionary with merged values.
    """
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def validate_config(config: Config) -> Config:
    """
    Check that configuration values are usable.

    Args:
        config: Configuration dictionary to check.

    Returns:
        The same configuration, for chaining.

    Raises:
        ConfigError: If any value is out of range.
    """
    tracking: TrackingSettings = config["tracking"]
    for key in ("lookahead_window", "jump_window", "advance_delay_ms"):
        if not isinstance(tracking[key], int) or tracking[key] < 0:
            raise ConfigError(
                f"tracking.{key} must be a non-negative integer, got {tracking[key]!r}")

    ratio = tracking["jump_completion_ratio"]
    if not isinstance(ratio, (int, float)) or not 0.0 <= ratio <= 1.0:
        raise ConfigError(
            f"tracking.jump_completion_ratio must be between 0 and 1, got {ratio!r}")

    threshold = tracking["match_threshold"]
    if not isinstance(threshold, (int, float)) or not 0.0 < threshold <= 100.0:
        raise ConfigError(
            f"tracking.match_threshold must be in (0, 100], got {threshold!r}")

    if tracking["revision_policy"] not in ("drop", "resync"):
        raise ConfigError(
            f"tracking.revision_policy must be 'drop' or 'resync', "
            f"got {tracking['revision_policy']!r}")

    navigation: NavigationSettings = config["navigation"]
    if navigation["wheel_threshold"] < 0 or navigation["wheel_throttle_ms"] < 0:
        raise ConfigError("navigation settings must not be negative")

    display: DisplaySettings = config["display"]
    if display["past_segments"] < 0 or display["future_segments"] < 0:
        raise ConfigError("display segment counts must not be negative")

    return config


def load_config(config_path: Path | None = None) -> Config:
    """
    Load configuration from file, merged with defaults.

    Args:
        config_path: Optional path to config file. If None, uses default location.

    Returns:
        Configuration dictionary with all values (defaults + overrides from file).

    Raises:
        ConfigError: If the file contains out-of-range values.
    """
    if config_path is None:
        config_path = get_config_path()

    # Start with defaults
    config: dict[str, Any] = _deep_merge({}, DEFAULT_CONFIG)

    # Load from file if it exists
    if config_path.exists():
        try:
            with open(config_path, encoding='utf-8') as f:
                file_config: dict[str, Any] | None = yaml.safe_load(f)
                if file_config:
                    config = _deep_merge(config, file_config)
        except (OSError, yaml.YAMLError) as e:
            logger.warning("Could not load config from %s: %s", config_path, e)

    return validate_config(config)  # type: ignore[arg-type]


def save_config(config: Config, config_path: Path | None = None) -> bool:
    """
    Save configuration to file.

    Args:
        config: Configuration dictionary to save.
        config_path: Optional path to config file. If None, uses default location.

    Returns:
        True if save was successful, False otherwise.
    """
    if config_path is None:
        config_path = get_config_path()

    try:
        with open(config_path, 'w', encoding='utf-8') as f:
            yaml.dump(dict(config), f, default_flow_style=False, sort_keys=False,
                      allow_unicode=True)
        return True
    except (OSError, yaml.YAMLError) as e:
        logger.error("Error saving config to %s: %s", config_path, e)
        return False


def get_tracking_settings(config: Config) -> TrackingSettings:
    """Extract alignment settings from config."""
    return config.get("tracking", DEFAULT_CONFIG["tracking"]).copy()  # type: ignore[return-value]


def get_navigation_settings(config: Config) -> NavigationSettings:
    """Extract navigation settings from config."""
    return config.get("navigation", DEFAULT_CONFIG["navigation"]).copy()  # type: ignore[return-value]


def get_display_settings(config: Config) -> DisplaySettings:
    """Extract display settings from config."""
    return config.get("display", DEFAULT_CONFIG["display"]).copy()  # type: ignore[return-value]


def update_config_tracking(config: Config, tracking: dict[str, Any]) -> Config:
    """
    Update the tracking section of the config with new settings.
    Returns a new config dict.

    Args:
        config: Current configuration.
        tracking: Tracking settings to merge in (may be partial).

    Returns:
        New configuration with updated tracking settings.
    """
    new_config: dict[str, Any] = _deep_merge({}, config)
    new_config["tracking"] = _deep_merge(new_config.get("tracking", {}), tracking)
    return new_config  # type: ignore[return-value]
