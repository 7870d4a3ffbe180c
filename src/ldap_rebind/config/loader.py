# # Copyright (c) 2024 LDAP Rebind
# # SPDX-License-Identifier: MIT
# #
# # LDAP Rebind
# # Re-authenticates LDAP connections while chasing referrals

"""Configuration loader for LDAP Rebind."""

import json
import logging
import os
from pathlib import Path
from typing import Any

from .models import OPENLDAP_DEFAULTS, TIVOLI_DEFAULTS, Config

logger = logging.getLogger(__name__)

PRESETS = {
    "openldap": OPENLDAP_DEFAULTS,
    "tivoli": TIVOLI_DEFAULTS,
}


def load_config(config_path: str | None = None, preset: str | None = None) -> Config:
    """
    Load configuration from JSON file with optional presets.

    Args:
        config_path: Path to configuration file. If None, uses LDAP_REBIND_CONFIG
                    environment variable.
        preset: Optional preset configuration ('openldap', 'tivoli')

    Returns:
        Config: Loaded and validated configuration

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If config is invalid
        json.JSONDecodeError: If config file is not valid JSON
    """
    if config_path is None:
        config_path = os.getenv("LDAP_REBIND_CONFIG")
        if not config_path:
            raise ValueError(
                "No configuration file specified. Either provide config_path or "
                "set LDAP_REBIND_CONFIG environment variable."
            )

    config_file = Path(config_path)
    if not config_file.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    logger.info(f"Loading configuration from: {config_path}")

    try:
        with open(config_file, encoding="utf-8") as f:
            config_data = json.load(f)

        if preset:
            config_data = _apply_preset(config_data, preset)

        config = Config(**config_data)
        logger.info("Configuration loaded successfully")

        _log_config_summary(config)

        return config

    except json.JSONDecodeError as e:
        logger.error(f"Invalid JSON in configuration file: {e}")
        raise
    except Exception as e:
        logger.error(f"Error loading configuration: {e}")
        raise


def _apply_preset(config_data: dict[str, Any], preset: str) -> dict[str, Any]:
    """
    Apply preset configuration defaults.

    Args:
        config_data: Base configuration data
        preset: Preset name ('openldap', 'tivoli')

    Returns:
        Configuration data with preset defaults applied
    """
    preset_data = PRESETS.get(preset.lower())
    if preset_data is None:
        logger.warning(f"Unknown preset: {preset}. Ignoring.")
        return config_data

    logger.info(f"Applied {preset.lower()} preset configuration")

    # User config takes precedence over preset defaults
    return _deep_merge(preset_data, config_data)


def _deep_merge(default: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """
    Deep merge two dictionaries, with override taking precedence.

    Args:
        default: Default configuration values
        override: Override configuration values

    Returns:
        Merged configuration dictionary
    """
    result = default.copy()

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value

    return result


def _log_config_summary(config: Config) -> None:
    """Log configuration summary."""
    logger.debug(f"Callback style: {config.rebind.callback_style}")
    logger.debug(f"Audit rebinds: {config.rebind.audit}")
    logger.debug(f"Logging Level: {config.logging.level}")

    if config.logging.file:
        logger.debug(f"Log file: {config.logging.file}")


def validate_config(config: Config) -> None:
    """
    Perform additional validation on configuration.

    Args:
        config: Configuration to validate
    """
    if config.rebind.callback_style == "none":
        logger.warning(
            "Referral rebinding is disabled (callback_style='none'); "
            "every registration will fail with not implemented"
        )

    if config.logging.file and not Path(config.logging.file).parent.exists():
        logger.warning(f"Log file directory does not exist: {config.logging.file}")

    logger.info("Configuration validation completed")


def create_sample_config(output_path: str, preset: str = "openldap") -> None:
    """
    Create a sample configuration file.

    Args:
        output_path: Path where to create the sample config
        preset: Preset to use ('openldap' or 'tivoli')
    """
    preset_data = PRESETS.get(preset.lower(), OPENLDAP_DEFAULTS)

    sample_config = {
        "rebind": dict(preset_data["rebind"]),
        "logging": {
            "level": "INFO",
            "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        },
    }

    output_file = Path(output_path)
    output_file.parent.mkdir(parents=True, exist_ok=True)

    with open(output_file, "w", encoding="utf-8") as f:
        json.dump(sample_config, f, indent=2, ensure_ascii=False)

    logger.info(f"Sample {preset} configuration created at: {output_path}")
