# Configuration: registry of keys, layered loader and logging setup

from .logging_setup import configure_logging
from .manager import ConfigManager, env_var_name, load_config
from .registry import REGISTRY, ConfigKey, get_config_key, get_default_values, validate_config_value

__all__ = [
    "REGISTRY",
    "ConfigKey",
    "ConfigManager",
    "configure_logging",
    "env_var_name",
    "get_config_key",
    "get_default_values",
    "load_config",
    "validate_config_value",
]
