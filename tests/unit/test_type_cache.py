"""
Unit tests for the type descriptor cache.
"""
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field

import pytest
import recordmap
from recordmap.cache import TypeCache
from recordmap.descriptor import describe
from recordmap.exceptions import TypeMappingError
from recordmap.options import MapperOptions

from tests.fixtures.records import SampleQuery, Tweet, User


def test_cache_singleton():
    """Test that TypeCache.get_instance is a singleton"""
    assert TypeCache.get_instance() is TypeCache.get_instance()


def test_cache_singleton_per_tag_name():
    """Test that each tag name gets its own process-wide instance"""
    orm = TypeCache.get_instance('orm')
    assert orm is TypeCache.get_instance('orm')
    assert orm is not TypeCache.get_instance()
    assert orm.tag_name == 'orm'
    assert orm in TypeCache.instances()


def test_cache_starts_empty():
    cache = TypeCache()
    assert len(cache) == 0
    assert cache.lookup(User) is None


def test_register_is_idempotent():
    """Test that repeated registration returns the same descriptor"""
    cache = TypeCache()
    ti1 = cache.register(SampleQuery)
    ti2 = cache.register(SampleQuery)

    assert ti1 is ti2
    assert len(cache) == 1
    assert SampleQuery in cache
    assert cache.lookup(SampleQuery) is ti1


def test_lookup_does_not_build(mocker):
    spy = mocker.patch('recordmap.cache.describe', wraps=describe)
    cache = TypeCache()

    assert cache.lookup(User) is None
    assert spy.call_count == 0

    cache.register(User)
    cache.register(User)
    assert spy.call_count == 1


def test_concurrent_register_builds_once(mocker):
    """Test that concurrent first registrations collapse into a single build"""
    calls = []

    def slow_describe(record_type, tag_name='db'):
        calls.append(record_type)
        time.sleep(0.05)
        return describe(record_type, tag_name)

    mocker.patch('recordmap.cache.describe', side_effect=slow_describe)
    cache = TypeCache()
    barrier = threading.Barrier(8)

    def worker():
        barrier.wait()
        return cache.register(User)

    with ThreadPoolExecutor(max_workers=8) as pool:
        futures = [pool.submit(worker) for _ in range(8)]
        results = [f.result() for f in futures]

    assert calls == [User]
    assert all(ti is results[0] for ti in results)


def test_distinct_types_build_independently(mocker):
    """Test that a slow build of one type does not block another type"""
    release = threading.Event()
    started = threading.Event()

    def blocking_describe(record_type, tag_name='db'):
        if record_type is Tweet:
            started.set()
            assert release.wait(5)
        return describe(record_type, tag_name)

    mocker.patch('recordmap.cache.describe', side_effect=blocking_describe)
    cache = TypeCache()

    with ThreadPoolExecutor(max_workers=1) as pool:
        tweet_future = pool.submit(cache.register, Tweet)
        assert started.wait(5)
        assert cache.register(User).record_type is User
        release.set()
        assert tweet_future.result().record_type is Tweet


def test_failed_build_is_not_cached(mocker):
    """Test that a failed build is retried on next use"""
    mocker.patch('recordmap.cache.describe',
                 side_effect=[TypeMappingError('boom'), describe(User)])
    cache = TypeCache()

    with pytest.raises(TypeMappingError, match='boom'):
        cache.register(User)
    assert cache.lookup(User) is None

    ti = cache.register(User)
    assert ti.record_type is User
    assert cache.lookup(User) is ti


def test_invalid_type_raises_every_time():
    @dataclass
    class Broken:
        Id: int = field(default=0, metadata={'db': 'key'})
        Code: int = field(default=0, metadata={'db': 'key'})

    cache = TypeCache()
    for _ in range(2):
        with pytest.raises(TypeMappingError):
            cache.register(Broken)
    assert len(cache) == 0


def test_non_type_is_rejected():
    cache = TypeCache()
    with pytest.raises(TypeMappingError):
        cache.register(User())
    assert cache.lookup(User()) is None


def test_clear():
    cache = TypeCache()
    cache.register(User)
    cache.clear()
    assert len(cache) == 0


def test_register_type_uses_process_cache():
    """Test module-level registration populates the shared cache"""
    ti = recordmap.register_type(User)
    assert TypeCache.get_instance().lookup(User) is ti
    assert recordmap.register_type(User) is ti


def test_register_type_with_injected_cache():
    cache = TypeCache()
    ti = recordmap.register_type(User, cache=cache)
    assert cache.lookup(User) is ti
    assert TypeCache.get_instance().lookup(User) is None


@dataclass
class OrmUser:
    Id: int = field(default=0, metadata={'orm': 'id,primarykey'})
    Name: str = field(default='', metadata={'orm': 'name'})


def test_custom_tag_registration_is_reused(mocker, fake_connection):
    """Test that repeated module calls with a custom tag name build the descriptor once"""
    spy = mocker.spy(recordmap.cache, 'describe')
    options = MapperOptions(tag_name='orm')

    ti = recordmap.register_type(OrmUser, options=options)
    for _ in range(3):
        cn = fake_connection(columns=['id', 'name'], rows=[(1, 'Oliver')])
        rows = recordmap.query(cn, 'select id, name from users', None, OrmUser, options=options)
        assert rows == [OrmUser(Id=1, Name='Oliver')]

    assert spy.call_count == 1
    assert ti.field_infos['Id'].column_name == 'id'
    assert TypeCache.get_instance('orm').lookup(OrmUser) is ti
    assert TypeCache.get_instance().lookup(OrmUser) is None


def test_clear_during_build_keeps_single_build(mocker):
    """Test that clearing while a build is in flight does not start a second build"""
    calls = []
    release = threading.Event()
    started = threading.Event()

    def blocking_describe(record_type, tag_name='db'):
        calls.append(record_type)
        started.set()
        assert release.wait(5)
        return describe(record_type, tag_name)

    mocker.patch('recordmap.cache.describe', side_effect=blocking_describe)
    cache = TypeCache()

    with ThreadPoolExecutor(max_workers=2) as pool:
        first = pool.submit(cache.register, User)
        assert started.wait(5)
        cache.clear()
        second = pool.submit(cache.register, User)
        time.sleep(0.05)
        release.set()
        assert first.result() is second.result()

    assert calls == [User]


if __name__ == '__main__':
    __import__('pytest').main([__file__])
