"""Configuration loading and management."""

import os
import yaml
from dataclasses import asdict, fields
from pathlib import Path
from typing import Dict, Any, Optional, Tuple

from vocabtrans.core.exceptions import ConfigurationError
from vocabtrans.core.settings import TranslatorSettings

# Settings the engine changes at runtime (endpoint promotion, RPM reduction)
RUNTIME_KEYS = ("primary_endpoint", "backup_endpoints", "requests_per_minute")


def load_config(config_path: Optional[str] = None) -> TranslatorSettings:
    """
    Load settings from a YAML file.

    Args:
        config_path: Path to config file (defaults to vocabtrans.yaml or
            configs/default.yaml when present, built-in defaults otherwise)

    Returns:
        Settings with environment overrides applied
    """
    if config_path is None:
        possible_paths = [
            Path("vocabtrans.yaml"),
            Path("configs/default.yaml"),
        ]

        for path in possible_paths:
            if path.exists():
                config_path = str(path)
                break
        else:
            return settings_from_dict(override_with_env({}))

    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path, 'r', encoding='utf-8') as f:
        try:
            config = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {config_path}: {e}")

    if not isinstance(config, dict):
        raise ConfigurationError(f"Config file must contain a mapping: {config_path}")

    config = override_with_env(config)

    return settings_from_dict(config)


def save_config(settings: TranslatorSettings, config_path: str) -> None:
    """
    Save settings to a YAML file.

    Args:
        settings: Settings to write
        config_path: Output path
    """
    config_path = Path(config_path)
    config_path.parent.mkdir(parents=True, exist_ok=True)

    with open(config_path, 'w', encoding='utf-8') as f:
        yaml.safe_dump(settings_to_dict(settings), f, default_flow_style=False, sort_keys=False)


def update_config_file(
    settings: TranslatorSettings,
    config_path: str,
    keys: Tuple[str, ...] = RUNTIME_KEYS
) -> None:
    """
    Write selected settings back into an existing YAML file.

    Other keys in the file are left as they are, so command-line and
    environment overrides applied to ``settings`` are not persisted.

    Args:
        settings: Current settings
        config_path: YAML file to update
        keys: Setting names to copy into the file
    """
    config_path = Path(config_path)
    config = {}
    if config_path.exists():
        with open(config_path, 'r', encoding='utf-8') as f:
            try:
                config = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ConfigurationError(f"Invalid YAML in {config_path}: {e}")
        if not isinstance(config, dict):
            raise ConfigurationError(f"Config file {config_path} must contain a mapping")

    current = settings_to_dict(settings)
    for key in keys:
        config[key] = current[key]

    config_path.parent.mkdir(parents=True, exist_ok=True)
    with open(config_path, 'w', encoding='utf-8') as f:
        yaml.safe_dump(config, f, default_flow_style=False, sort_keys=False)


def override_with_env(config: Dict[str, Any]) -> Dict[str, Any]:
    """Override config with environment variables."""
    env_mappings = {
        "VOCABTRANS_MODEL": "model",
        "VOCABTRANS_PRIMARY_ENDPOINT": "primary_endpoint",
        "VOCABTRANS_BACKUP_ENDPOINTS": "backup_endpoints",
        "VOCABTRANS_RPM": "requests_per_minute",
    }

    for env_var, key in env_mappings.items():
        value = os.getenv(env_var)
        if not value:
            continue
        if key == "backup_endpoints":
            config[key] = [url.strip() for url in value.split(",") if url.strip()]
        elif key == "requests_per_minute":
            try:
                config[key] = int(value)
            except ValueError:
                raise ConfigurationError(
                    f"{env_var} must be an integer",
                    config_key=key,
                    invalid_value=value
                )
        else:
            config[key] = value

    return config


def settings_from_dict(config: Dict[str, Any]) -> TranslatorSettings:
    """Build settings from a flat mapping; unknown keys are ignored."""
    known = {f.name for f in fields(TranslatorSettings)}
    settings = TranslatorSettings(**{k: v for k, v in config.items() if k in known})

    if isinstance(settings.backup_endpoints, str):
        settings.backup_endpoints = [settings.backup_endpoints]
    settings.backup_endpoints = list(settings.backup_endpoints or [])
    settings.high_limit_models = list(settings.high_limit_models or [])

    return settings


def settings_to_dict(settings: TranslatorSettings) -> Dict[str, Any]:
    return asdict(settings)
