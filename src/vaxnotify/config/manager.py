"""Configuration Manager.

Loads configuration once per invocation:
1. Code defaults from the registry
2. TOML file (config/default.toml)
3. Environment variables (VAXNOTIFY_* plus per-key aliases), with .env support

Precedence: code defaults < TOML file < environment variables
"""

import copy
import json
import os
from pathlib import Path
from typing import Any, Optional

try:
    import tomllib  # Python 3.11+
except ImportError:
    import tomli as tomllib  # type: ignore

from dotenv import load_dotenv
import structlog

from .registry import (
    REGISTRY,
    get_config_key,
    validate_config_value,
    get_default_values,
)

logger = structlog.get_logger(__name__)

ENV_PREFIX = "VAXNOTIFY_"

# Secret keys that should never be logged
SENSITIVE_KEYS = {
    "token",
    "api_key",
    "deploy_hook",
}


def _redact_sensitive_value(key: str, value: Any) -> Any:
    """Redact sensitive configuration values for logging.

    Args:
        key: Configuration key
        value: Configuration value

    Returns:
        Original value if not sensitive, otherwise "[REDACTED]"
    """
    key_lower = key.lower()
    for sensitive_key in SENSITIVE_KEYS:
        if sensitive_key in key_lower:
            return "[REDACTED]"
    return value


def env_var_name(key: str) -> str:
    """Environment variable overriding a key, e.g. snapshot.backend -> VAXNOTIFY_SNAPSHOT_BACKEND."""
    return ENV_PREFIX + key.replace(".", "_").upper()


class ConfigManager:
    """Loads and validates the configuration of one invocation.

    Attributes:
        config: Loaded configuration (empty until load() is called)
    """

    def __init__(self, config_file: Optional[Path] = None, env_file: Optional[Path] = None):
        """Initialize configuration manager.

        Args:
            config_file: Path to TOML config file (default: config/default.toml)
            env_file: Path to .env file (default: .env in working directory)
        """
        self.config: dict[str, Any] = {}

        if config_file is None:
            config_file = Path("config/default.toml")
        if env_file is None:
            env_file = Path(".env")

        self.config_file = config_file
        self.env_file = env_file

        logger.debug("config_manager_initialized",
                     config_file=str(config_file),
                     env_file=str(env_file))

    def load(self) -> dict[str, Any]:
        """Load configuration from defaults, TOML and environment variables.

        Returns:
            Dictionary of configuration key-value pairs

        Raises:
            ValueError: If configuration validation fails

        Note:
            If config file doesn't exist, defaults are used with a warning.
        """
        if self.env_file.exists():
            load_dotenv(self.env_file)
            logger.debug("env_file_loaded", env_file=str(self.env_file))

        # Step 1: Start with defaults
        config = copy.deepcopy(get_default_values())

        # Step 2: Load from TOML file
        if self.config_file.exists():
            with open(self.config_file, "rb") as f:
                toml_data = tomllib.load(f)

            flattened = self._flatten_toml(toml_data)
            unknown = sorted(set(flattened) - set(REGISTRY))
            if unknown:
                logger.warning("unknown_config_keys_ignored", keys=unknown)

            for key in REGISTRY:
                if key in flattened:
                    config[key] = flattened[key]

            logger.debug("toml_config_loaded", keys_count=len(flattened))
        else:
            logger.warning("config_file_not_found",
                           config_file=str(self.config_file),
                           using_defaults=True)

        # Step 3: Apply environment variable overrides
        for key, config_key_def in REGISTRY.items():
            for env_key in (env_var_name(key), *config_key_def.env_aliases):
                env_value = os.getenv(env_key)
                if env_value is None:
                    continue
                try:
                    config[key] = self._parse_env_value(env_value, config_key_def.value_type)
                except ValueError as e:
                    logger.error("env_parse_error", key=key, env_key=env_key, error=str(e))
                    raise ValueError(f"Failed to parse env var {env_key}: {e}")
                logger.debug("env_override_applied", key=key, env_key=env_key)
                break

        # Step 4: Validate
        for key, value in config.items():
            is_valid, error_msg = validate_config_value(key, value)
            if not is_valid:
                logger.error("config_validation_failed",
                             key=key,
                             value=_redact_sensitive_value(key, value),
                             error=error_msg)
                raise ValueError(f"Config validation failed for '{key}': {error_msg}")

        self.config = config
        logger.info("config_loaded", keys_count=len(config))
        return config

    def get(self, key: str) -> Any:
        """Get configuration value.

        Raises:
            KeyError: If key not found in registry
        """
        config_key_def = get_config_key(key)
        return self.config.get(key, config_key_def.default)

    def redacted(self) -> dict[str, Any]:
        """Loaded configuration with secrets replaced, safe to log."""
        return {key: _redact_sensitive_value(key, value) for key, value in self.config.items()}

    def _flatten_toml(self, data: dict) -> dict[str, Any]:
        """Flatten nested TOML structure to dotted keys.

        Example: {"snapshot": {"backend": "file"}} -> {"snapshot.backend": "file"}

        Tables that are themselves registered keys (dict-typed values such as
        campaign.list_ids) are kept whole.
        """
        result = {}

        def _flatten(d: dict, prefix: str = ""):
            for key, value in d.items():
                full_key = f"{prefix}.{key}" if prefix else key
                if isinstance(value, dict) and full_key not in REGISTRY:
                    _flatten(value, full_key)
                else:
                    result[full_key] = value

        _flatten(data)
        return result

    def _parse_env_value(self, value: str, target_type: type) -> Any:
        """Parse environment variable string to target type.

        Raises:
            ValueError: If parsing fails
        """
        if target_type == bool:
            return value.lower() in ("true", "1", "yes", "on")
        elif target_type == int:
            return int(value)
        elif target_type == float:
            return float(value)
        elif target_type == list:
            return [self._parse_list_item(item.strip()) for item in value.split(",") if item.strip()]
        elif target_type == dict:
            try:
                parsed = json.loads(value)
            except json.JSONDecodeError as e:
                raise ValueError(f"Expected a JSON object: {e}")
            if not isinstance(parsed, dict):
                raise ValueError("Expected a JSON object")
            return parsed
        elif target_type == str:
            return value
        else:
            raise ValueError(f"Unsupported type for env parsing: {target_type}")

    @staticmethod
    def _parse_list_item(item: str) -> Any:
        try:
            return int(item)
        except ValueError:
            return item


def load_config(config_file: Optional[Path] = None,
                env_file: Optional[Path] = None) -> ConfigManager:
    """Create a ConfigManager and load it.

    Args:
        config_file: Path to TOML config file
        env_file: Path to .env file

    Returns:
        Loaded ConfigManager instance
    """
    manager = ConfigManager(config_file, env_file)
    manager.load()
    return manager
