"""Configuration Registry - Defines all configuration keys.

This module provides the ConfigKey dataclass and REGISTRY dictionary that defines
all configuration options available in vax-notify.

Sink settings (issue numbers, list ids, suppression groups, hook URLs, chat ids)
live here and are injected into the sinks by the application wiring; the
pipeline core never reads configuration.
"""

from dataclasses import dataclass
from typing import Any, Callable, Optional


@dataclass
class ConfigKey:
    """Defines a single configuration key with validation.

    Attributes:
        value_type: Expected Python type (str, int, float, bool, list, dict)
        default: Default value if not specified in config files
        min_value: Minimum value for numeric types (optional)
        max_value: Maximum value for numeric types (optional)
        validator: Custom validation function (optional)
        env_aliases: Extra environment variable names accepted for this key
    """
    value_type: type
    default: Any
    min_value: Optional[Any] = None
    max_value: Optional[Any] = None
    validator: Optional[Callable[[Any], bool]] = None
    env_aliases: tuple[str, ...] = ()


# Configuration Registry
# =======================
# All configuration keys must be registered here.

REGISTRY: dict[str, ConfigKey] = {
    # ===== LOGGING =====
    "logging.level": ConfigKey(
        value_type=str,
        default="INFO",
        validator=lambda v: v in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"),
    ),

    # ===== SNAPSHOTS =====
    "snapshot.backend": ConfigKey(
        value_type=str,
        default="http",
        validator=lambda v: v in ("file", "http", "sqlite"),
    ),
    "snapshot.free_dates_path": ConfigKey(
        value_type=str,
        default="data/freeDates.json",
    ),
    "snapshot.eligible_groups_path": ConfigKey(
        value_type=str,
        default="data/eligibleGroups.json",
    ),
    "snapshot.free_dates_url": ConfigKey(
        value_type=str,
        default="https://vax-notify.s3.eu-central-1.amazonaws.com/data/freeDates.json",
        validator=lambda v: v.startswith(("http://", "https://")),
    ),
    "snapshot.eligible_groups_url": ConfigKey(
        value_type=str,
        default="https://vax-notify.s3.eu-central-1.amazonaws.com/data/eligibleGroups.json",
        validator=lambda v: v.startswith(("http://", "https://")),
    ),
    "snapshot.bootstrap": ConfigKey(
        value_type=bool,
        default=False,
    ),

    # ===== DATABASE (SQLite snapshots + run log) =====
    "database.path": ConfigKey(
        value_type=str,
        default="data/vaxnotify.db",
    ),
    "database.run_log_enabled": ConfigKey(
        value_type=bool,
        default=False,
    ),
    "database.busy_timeout_ms": ConfigKey(
        value_type=int,
        default=5000,
        min_value=0,
        max_value=600000,
    ),

    # ===== SIGNIFICANCE =====
    "significance.capacity_threshold": ConfigKey(
        value_type=int,
        default=2,
        min_value=0,
        max_value=1000,
    ),
    "significance.min_increase": ConfigKey(
        value_type=int,
        default=2,
        min_value=1,
        max_value=1000,
    ),

    # ===== COLLECTORS =====
    "collector.timeout_seconds": ConfigKey(
        value_type=int,
        default=30,
        min_value=1,
        max_value=300,
    ),
    "collector.headless": ConfigKey(
        value_type=bool,
        default=True,
    ),

    # ===== DISPATCH =====
    "dispatch.sink_timeout_seconds": ConfigKey(
        value_type=int,
        default=60,
        min_value=1,
        max_value=600,
    ),

    # ===== GITHUB ISSUES =====
    "github.repository": ConfigKey(
        value_type=str,
        default="eps1lon/vax-notify",
        validator=lambda v: v.count("/") == 1,
    ),
    "github.token": ConfigKey(
        value_type=str,
        default="",
        env_aliases=("GITHUB_TOKEN",),
    ),
    "github.eligible_groups_issue": ConfigKey(
        value_type=int,
        default=1,
        min_value=0,
    ),
    "github.free_dates_issue": ConfigKey(
        value_type=int,
        default=0,
        min_value=0,
    ),

    # ===== DEPLOY HOOKS =====
    "deploy_hook.eligible_groups_url": ConfigKey(
        value_type=str,
        default="",
        env_aliases=("ELIGIBLE_GROUPS_UPDATED_HOOK",),
    ),
    "deploy_hook.free_dates_url": ConfigKey(
        value_type=str,
        default="",
        env_aliases=("FREE_DATES_UPDATED_HOOK",),
    ),

    # ===== EMAIL CAMPAIGNS =====
    "campaign.api_key": ConfigKey(
        value_type=str,
        default="",
        env_aliases=("SENDGRID_API_KEY",),
    ),
    "campaign.sender_id": ConfigKey(
        value_type=int,
        default=0,
        min_value=0,
    ),
    "campaign.list_ids": ConfigKey(
        value_type=dict,
        default={},
        validator=lambda v: all(isinstance(list_id, str) for list_id in v.values()),
    ),
    "campaign.suppression_group_ids": ConfigKey(
        value_type=dict,
        default={},
        validator=lambda v: all(isinstance(group_id, int) for group_id in v.values()),
    ),

    # ===== TELEGRAM =====
    "telegram.bot_token": ConfigKey(
        value_type=str,
        default="",
        env_aliases=("TELEGRAM_BOT_TOKEN",),
    ),
    "telegram.chat_ids": ConfigKey(
        value_type=list,
        default=[],
    ),
}


def get_config_key(key: str) -> ConfigKey:
    """Get configuration key definition from registry.

    Args:
        key: Configuration key path (e.g., "snapshot.backend")

    Returns:
        ConfigKey definition

    Raises:
        KeyError: If key not found in registry
    """
    if key not in REGISTRY:
        raise KeyError(f"Configuration key '{key}' not found in registry")
    return REGISTRY[key]


def validate_config_value(key: str, value: Any) -> tuple[bool, Optional[str]]:
    """Validate a configuration value against its registered definition.

    Args:
        key: Configuration key path
        value: Value to validate

    Returns:
        Tuple of (is_valid, error_message)
        error_message is None if valid
    """
    try:
        config_key = get_config_key(key)
    except KeyError as e:
        return False, str(e)

    # bool is an int subclass; don't let True pass as a number
    if isinstance(value, bool) and config_key.value_type is not bool:
        return False, f"Expected type {config_key.value_type.__name__}, got bool"

    if not isinstance(value, config_key.value_type):
        return False, f"Expected type {config_key.value_type.__name__}, got {type(value).__name__}"

    if isinstance(value, (int, float)) and not isinstance(value, bool):
        if config_key.min_value is not None and value < config_key.min_value:
            return False, f"Value {value} below minimum {config_key.min_value}"
        if config_key.max_value is not None and value > config_key.max_value:
            return False, f"Value {value} above maximum {config_key.max_value}"

    if config_key.validator is not None:
        try:
            if not config_key.validator(value):
                return False, f"Custom validation failed for value: {value}"
        except Exception as e:
            return False, f"Validator error: {str(e)}"

    return True, None


def get_default_values() -> dict[str, Any]:
    """Get default values for all configuration keys.

    Returns:
        Dictionary of key -> default_value
    """
    return {key: config_key.default for key, config_key in REGISTRY.items()}
