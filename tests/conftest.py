import pytest
from recordmap.cache import TypeCache


@pytest.fixture(autouse=True)
def clear_caches():
    """Clear the process-wide type caches before and after each test to ensure test isolation."""
    for cache in TypeCache.instances():
        cache.clear()
    yield
    for cache in TypeCache.instances():
        cache.clear()


pytest_plugins = [
    'tests.fixtures.mocks',
    'tests.fixtures.sqlite',
]
