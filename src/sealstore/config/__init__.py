"""Configuration models and loading."""

from sealstore.config.loader import DEFAULT_CONFIG_PATH, load_config, save_config
from sealstore.config.schema import MODES, HSMConfig, StoreConfig

__all__ = [
    "DEFAULT_CONFIG_PATH",
    "HSMConfig",
    "MODES",
    "StoreConfig",
    "load_config",
    "save_config",
]
