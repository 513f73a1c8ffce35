"""Configuration loading and validation."""

import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Optional, Union

import yaml
from pydantic import ValidationError

from sealstore.config.schema import StoreConfig
from sealstore.errors import ConfigurationError

DEFAULT_CONFIG_PATH = Path.home() / ".sealstore" / "sealstore.yaml"

ENV_PREFIX = "SEALSTORE_"

# Environment variable suffix -> (section, field); section None means top level
ENV_OVERRIDES: dict[str, tuple[Optional[str], str]] = {
    "MODE": (None, "mode"),
    "HSM_PIN": ("hsm", "pin"),
    "ALIBABA_ACCESS_KEY_ID": ("alibaba", "access_key_id"),
    "ALIBABA_ACCESS_KEY_SECRET": ("alibaba", "access_key_secret"),
    "VAULT_TOKEN": ("vault", "token"),
    "FILE_FERNET_KEY": ("file", "fernet_key"),
}


def apply_env_overrides(data: dict[str, Any], env: Mapping[str, str]) -> dict[str, Any]:
    """Merge ``SEALSTORE_*`` environment variables into raw config data.

    Args:
        data: Raw configuration mapping (modified copy is returned)
        env: Environment to read from

    Returns:
        New mapping with overrides applied

    Raises:
        ConfigurationError: If an overridden section is not a mapping
    """
    # An empty YAML section ("hsm:") loads as None and means "all defaults"
    merged = {
        k: (dict(v) if isinstance(v, dict) else v) for k, v in data.items() if v is not None
    }
    for suffix, (section, field) in ENV_OVERRIDES.items():
        value = env.get(ENV_PREFIX + suffix)
        if value is None:
            continue
        if section is None:
            merged[field] = value
            continue
        section_data = merged.get(section, {})
        if not isinstance(section_data, dict):
            raise ConfigurationError(
                f"Config section {section} must be a mapping to apply {ENV_PREFIX}{suffix}"
            )
        merged[section] = {**section_data, field: value}
    return merged


def load_config(
    path: Optional[Path] = None,
    env: Optional[Mapping[str, str]] = None,
) -> StoreConfig:
    """Load and validate sealstore configuration from a YAML file.

    Args:
        path: Path to config file. If None, tries default location.
              If file doesn't exist, only defaults and environment apply.
        env: Environment for overrides (default: os.environ)

    Returns:
        Validated, immutable configuration object

    Raises:
        ConfigurationError: If the file is invalid or holds an HSM PIN
    """
    if path is None:
        path = DEFAULT_CONFIG_PATH
    if env is None:
        env = os.environ

    config_data: dict[str, Any] = {}
    if path.exists():
        try:
            with open(path, "r") as f:
                config_data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {path}: {e}") from e
        except OSError as e:
            raise ConfigurationError(f"Failed to read config from {path}: {e}") from e

        if not isinstance(config_data, dict):
            raise ConfigurationError(f"Config file {path} must contain a mapping")

        hsm_section = config_data.get("hsm")
        if isinstance(hsm_section, dict) and "pin" in hsm_section:
            raise ConfigurationError(
                f"HSM PIN found in {path}; supply it through {ENV_PREFIX}HSM_PIN instead"
            )

    try:
        return StoreConfig(**apply_env_overrides(config_data, env))
    except ValidationError as e:
        raise ConfigurationError(f"Configuration validation failed: {e}") from e


def save_config(config: StoreConfig, path: Optional[Union[str, Path]] = None) -> None:
    """Save configuration to a YAML file.

    Credentials (HSM PIN, access key secret, Vault token, Fernet key) are
    left out; they belong in the environment.

    Args:
        config: Configuration object to save
        path: Destination path (string or Path object). If None, uses default location.
    """
    if path is None:
        path = DEFAULT_CONFIG_PATH
    elif isinstance(path, str):
        path = Path(path)

    path.parent.mkdir(parents=True, exist_ok=True)

    config_dict = config.model_dump(
        exclude={
            "hsm": {"pin"},
            "alibaba": {"access_key_secret"},
            "vault": {"token"},
            "file": {"fernet_key"},
        }
    )

    with open(path, "w") as f:
        yaml.safe_dump(config_dict, f, default_flow_style=False, sort_keys=False)
