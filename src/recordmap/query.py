"""
Query operations mapping rows onto record types.

This module binds named parameters from an input record, executes the
statement on a DB-API connection, and materializes the result rows.
"""
import logging
from typing import Any, TypeVar

from recordmap.cache import TypeCache
from recordmap.cursor import execute
from recordmap.descriptor import TypeDescriptor
from recordmap.options import MapperOptions
from recordmap.row import Materializer
from recordmap.sql import bind_params
from recordmap.utils import get_dialect_name

T = TypeVar('T')

logger = logging.getLogger(__name__)


class Mapper:
    """Query façade owning a Type Cache and options.

    Without an explicit cache the process-wide instance for the options'
    tag name is shared.
    """

    def __init__(self, cache: TypeCache | None = None,
                 options: MapperOptions | None = None) -> None:
        self.options = options or MapperOptions()
        if cache is None:
            cache = TypeCache.get_instance(self.options.tag_name)
        elif cache.tag_name != self.options.tag_name:
            raise ValueError(f'cache tag_name {cache.tag_name!r} does not match '
                             f'options tag_name {self.options.tag_name!r}')
        self.cache = cache

    def dialect(self, cn: Any) -> str:
        """Dialect from the options, else detected from the connection."""
        return self.options.dialect or get_dialect_name(cn)

    def register_type(self, record_type: type) -> TypeDescriptor:
        """Describe and cache ``record_type`` ahead of first use."""
        return self.cache.register(record_type)

    def first(self, cn: Any, sql: str, params: Any, out: T) -> T:
        """Populate ``out`` in place from the first row of the query.

        Args:
            cn: DB-API connection
            sql: Query with ``:Field`` placeholders bound from ``params``
            params: Record supplying parameter values, or None
            out: Record instance to populate; untouched when no row matches

        Returns
            ``out``

        Raises
            NoRowsError: If the query returns no rows
        """
        processed_sql, args = bind_params(sql, params, self.cache, self.dialect(cn))
        materializer = Materializer(self.cache.register(type(out)))

        with execute(cn, processed_sql, args) as cursor:
            return materializer.first(cursor, out)

    def query(self, cn: Any, sql: str, params: Any,
              record_type: type[T] | TypeDescriptor) -> list[T]:
        """Materialize every row of the query as a new ``record_type`` instance.

        Args:
            cn: DB-API connection
            sql: Query with ``:Field`` placeholders bound from ``params``
            params: Record supplying parameter values, or None
            record_type: Destination dataclass or its TypeDescriptor

        Returns
            List of records in cursor order, empty when no rows match
        """
        if isinstance(record_type, TypeDescriptor):
            ti = record_type
        else:
            ti = self.cache.register(record_type)

        processed_sql, args = bind_params(sql, params, self.cache, self.dialect(cn))
        materializer = Materializer(ti)

        with execute(cn, processed_sql, args) as cursor:
            return materializer.all(cursor)
