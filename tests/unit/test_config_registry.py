"""Unit tests for configuration registry."""

import pytest

from vaxnotify.config.registry import (
    REGISTRY,
    ConfigKey,
    get_config_key,
    get_default_values,
    validate_config_value,
)


class TestRegistry:
    """Test configuration registry."""

    def test_every_default_is_valid(self):
        """Defaults must pass their own validation."""
        for key, value in get_default_values().items():
            is_valid, error = validate_config_value(key, value)
            assert is_valid, f"{key}: {error}"

    def test_significance_defaults(self):
        defaults = get_default_values()
        assert defaults["significance.capacity_threshold"] == 2
        assert defaults["significance.min_increase"] == 2

    def test_secret_keys_have_conventional_aliases(self):
        assert "GITHUB_TOKEN" in REGISTRY["github.token"].env_aliases
        assert "SENDGRID_API_KEY" in REGISTRY["campaign.api_key"].env_aliases
        assert "ELIGIBLE_GROUPS_UPDATED_HOOK" in REGISTRY["deploy_hook.eligible_groups_url"].env_aliases

    def test_get_unknown_key(self):
        with pytest.raises(KeyError, match="not found in registry"):
            get_config_key("nope.nope")

    def test_config_key_defaults(self):
        key = ConfigKey(value_type=int, default=3)
        assert key.min_value is None
        assert key.env_aliases == ()


class TestValidation:
    """Test validate_config_value."""

    def test_wrong_type(self):
        is_valid, error = validate_config_value("collector.timeout_seconds", "30")
        assert not is_valid
        assert "Expected type int" in error

    def test_bool_is_not_an_int(self):
        is_valid, _ = validate_config_value("significance.min_increase", True)
        assert not is_valid

    def test_below_minimum(self):
        is_valid, error = validate_config_value("significance.min_increase", 0)
        assert not is_valid
        assert "below minimum" in error

    def test_above_maximum(self):
        is_valid, error = validate_config_value("dispatch.sink_timeout_seconds", 601)
        assert not is_valid
        assert "above maximum" in error

    @pytest.mark.parametrize("backend", ["file", "http", "sqlite"])
    def test_backend_choices(self, backend):
        assert validate_config_value("snapshot.backend", backend) == (True, None)

    def test_unknown_backend(self):
        is_valid, error = validate_config_value("snapshot.backend", "s3")
        assert not is_valid
        assert "Custom validation failed" in error

    def test_campaign_list_ids_must_be_strings(self):
        assert validate_config_value("campaign.list_ids", {"Dresden": "abc"})[0]
        assert not validate_config_value("campaign.list_ids", {"Dresden": 1})[0]

    def test_unknown_key(self):
        is_valid, error = validate_config_value("unknown.key", 1)
        assert not is_valid
        assert "not found" in error
