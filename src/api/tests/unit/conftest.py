"""Unit test fixtures with mocked dependencies."""

import pytest

from infrastructure.settings import (
    get_database_settings,
    get_migration_settings,
    get_oidc_settings,
    get_routing_settings,
    get_settings,
    get_store_settings,
)


@pytest.fixture(autouse=True)
def clear_settings_cache():
    """Drop cached settings so environment changes in a test stay local."""
    caches = (
        get_settings,
        get_database_settings,
        get_oidc_settings,
        get_routing_settings,
        get_migration_settings,
        get_store_settings,
    )
    for cache in caches:
        cache.cache_clear()
    yield
    for cache in caches:
        cache.cache_clear()

