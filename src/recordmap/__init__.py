"""
Record mapping for DB-API connections.

All query operations can be called either as:
- Module functions: recordmap.query(cn, sql, params, User)
- Mapper methods: Mapper(cache).query(cn, sql, params, User)

The module functions are facades over a Mapper sharing the process-wide
type cache of their tag name.
"""
__version__ = '0.1.0'

from typing import Any, TypeVar

from recordmap.cache import TypeCache
from recordmap.descriptor import FieldDescriptor, TypeDescriptor, describe
from recordmap.exceptions import BindError, ConversionError, ExecutionError
from recordmap.exceptions import MappingError, MissingBindingError, NoRowsError
from recordmap.exceptions import TypeMappingError, UnknownParameterError
from recordmap.exceptions import UnsupportedTypeError
from recordmap.options import MapperOptions
from recordmap.query import Mapper

T = TypeVar('T')


def register_type(record_type: type, cache: TypeCache | None = None,
                  options: MapperOptions | None = None) -> TypeDescriptor:
    """Describe and cache a record type ahead of first use.
    """
    return Mapper(cache, options).register_type(record_type)


def first(cn: Any, sql: str, params: Any, out: T, cache: TypeCache | None = None,
          options: MapperOptions | None = None) -> T:
    """Populate ``out`` from the first row of a query.

    Raises NoRowsError if the query returns no rows.
    """
    return Mapper(cache, options).first(cn, sql, params, out)


def query(cn: Any, sql: str, params: Any, record_type: type[T] | TypeDescriptor,
          cache: TypeCache | None = None, options: MapperOptions | None = None) -> list[T]:
    """Return every row of a query as a new record instance.
    """
    return Mapper(cache, options).query(cn, sql, params, record_type)


__all__ = [
    'Mapper',
    'MapperOptions',
    'TypeCache',
    'TypeDescriptor',
    'FieldDescriptor',
    'describe',
    'register_type',
    'first',
    'query',
    'MappingError',
    'TypeMappingError',
    'UnsupportedTypeError',
    'BindError',
    'UnknownParameterError',
    'MissingBindingError',
    'ConversionError',
    'NoRowsError',
    'ExecutionError',
]
