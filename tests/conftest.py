"""Shared fixtures."""

import pytest

from vaxnotify.persistence.db import DatabaseManager
from vaxnotify.persistence.migrate import apply_migrations


@pytest.fixture
async def db_manager(tmp_path):
    """DatabaseManager over a freshly migrated database."""
    db_path = tmp_path / "test.db"
    apply_migrations(db_path)
    manager = DatabaseManager(db_path)
    yield manager
    await manager.close()


@pytest.fixture
def clean_env(monkeypatch):
    """Remove every environment variable the config manager would read."""
    from vaxnotify.config.manager import env_var_name
    from vaxnotify.config.registry import REGISTRY

    for key, config_key in REGISTRY.items():
        for name in (env_var_name(key), *config_key.env_aliases):
            monkeypatch.delenv(name, raising=False)
    return monkeypatch
