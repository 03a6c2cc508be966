"""
Type Descriptor cache.

Descriptors are built lazily, once per record type, and shared by every
caller for the life of the cache. Uses a cachetools Cache without a size
bound so a published descriptor is never evicted and rebuilt.
"""
import logging
import math
import threading
from typing import Any

import cachetools

from recordmap.descriptor import TypeDescriptor, describe

logger = logging.getLogger(__name__)


class TypeCache:
    """Thread-safe registry of Type Descriptors keyed by record type.

    Builds for one type are serialized on a per-type lock, so concurrent
    first registrations of the same type collapse into a single build while
    distinct types build independently. Failed builds are not cached.
    """

    _instances: dict[str, 'TypeCache'] = {}
    _instance_lock = threading.Lock()

    def __init__(self, tag_name: str = 'db') -> None:
        self.tag_name = tag_name
        self._descriptors: cachetools.Cache = cachetools.Cache(maxsize=math.inf)
        self._build_locks: dict[type, threading.Lock] = {}
        self._lock = threading.RLock()

    @classmethod
    def get_instance(cls, tag_name: str = 'db') -> 'TypeCache':
        """Get the process-wide instance for ``tag_name``."""
        instance = cls._instances.get(tag_name)
        if instance is None:
            with cls._instance_lock:
                instance = cls._instances.get(tag_name)
                if instance is None:
                    instance = cls._instances[tag_name] = cls(tag_name)
        return instance

    @classmethod
    def instances(cls) -> list['TypeCache']:
        """Process-wide instances created so far, one per tag name."""
        with cls._instance_lock:
            return list(cls._instances.values())

    def __len__(self) -> int:
        with self._lock:
            return len(self._descriptors)

    def __contains__(self, record_type: Any) -> bool:
        return self.lookup(record_type) is not None

    def lookup(self, record_type: Any) -> TypeDescriptor | None:
        """Return the cached descriptor for ``record_type`` without building it."""
        if not isinstance(record_type, type):
            return None
        with self._lock:
            return self._descriptors.get(record_type)

    def _build_lock(self, record_type: Any) -> threading.Lock:
        with self._lock:
            return self._build_locks.setdefault(record_type, threading.Lock())

    def register(self, record_type: Any) -> TypeDescriptor:
        """Return the descriptor for ``record_type``, building it on first use.

        Raises
            TypeMappingError: If the type cannot be described; nothing is cached
        """
        ti = self.lookup(record_type)
        if ti is not None:
            return ti

        if not isinstance(record_type, type):
            return describe(record_type, self.tag_name)

        with self._build_lock(record_type):
            ti = self.lookup(record_type)
            if ti is not None:
                logger.debug(f'Descriptor for {ti.name} built concurrently, reusing it')
                return ti

            ti = describe(record_type, self.tag_name)
            with self._lock:
                self._descriptors[record_type] = ti
            logger.debug(f'Registered {ti.name} with {len(ti.columns)} column(s)')
            return ti

    def clear(self) -> None:
        """Drop every cached descriptor.

        Build locks are kept, so a build in flight stays the only build of
        its type.
        """
        with self._lock:
            self._descriptors.clear()
