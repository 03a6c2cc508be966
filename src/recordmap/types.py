"""
Consolidated type handling for record mapping.

This module provides:
- resolve_kind: Reduce a field annotation to a value kind plus nullability
- zero_value: The zero value a field holds when no column populates it
- convert_value: Convert an opaque column value to a field's kind
- TypeConverter: Convert Python values to database-compatible parameters
"""
import datetime
import logging
import math
import types
import typing
from decimal import Decimal, InvalidOperation
from typing import Any

import dateutil.parser
import numpy as np
import pandas as pd

from recordmap.exceptions import ConversionError

logger = logging.getLogger(__name__)

ZERO_VALUES: dict[type, Any] = {
    int: 0,
    float: 0.0,
    str: '',
    bool: False,
    bytes: b'',
    Decimal: Decimal(0),
}

TRUE_STRINGS: set[str] = {'1', 't', 'true', 'y', 'yes', 'on'}
FALSE_STRINGS: set[str] = {'0', 'f', 'false', 'n', 'no', 'off'}

NUMPY_FLOAT_TYPES = (np.floating,)
NUMPY_INT_TYPES = (np.integer, np.unsignedinteger)


# Kind resolution - annotations -> (kind, nullable)

def resolve_kind(annotation: Any) -> tuple[Any, bool]:
    """Reduce a field annotation to ``(kind, nullable)``.

    ``int | None`` and ``Optional[int]`` resolve to ``(int, True)``;
    ``Annotated[X, ...]`` resolves as ``X``; unions of several concrete
    types and unresolvable annotations degrade to ``Any``.

    >>> resolve_kind(int | None)
    (<class 'int'>, True)
    >>> resolve_kind(list[int])
    (<class 'list'>, False)
    """
    if annotation is None or annotation is type(None):
        return Any, True

    origin = typing.get_origin(annotation)

    if origin is typing.Annotated:
        return resolve_kind(typing.get_args(annotation)[0])

    if origin is typing.Union or origin is types.UnionType:
        args = [a for a in typing.get_args(annotation) if a is not type(None)]
        nullable = len(args) < len(typing.get_args(annotation))
        if len(args) == 1:
            kind, inner_nullable = resolve_kind(args[0])
            return kind, nullable or inner_nullable
        return Any, nullable

    if origin is not None:
        return origin, False

    if isinstance(annotation, type):
        return annotation, False

    return Any, False


def zero_value(kind: Any, nullable: bool) -> Any:
    """Return the value an unpopulated field of this kind holds."""
    if nullable:
        return None
    return ZERO_VALUES.get(kind)


# Value conversion - Database -> Python field kind

def _to_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float, Decimal)) and value in {0, 1}:
        return bool(value)
    if isinstance(value, (bytes, bytearray, memoryview)):
        value = bytes(value).decode('utf-8')
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in TRUE_STRINGS:
            return True
        if lowered in FALSE_STRINGS:
            return False
    raise ValueError(f'not a boolean value: {value!r}')


def _to_int(value: Any) -> int:
    if isinstance(value, int):
        return int(value)
    if isinstance(value, (float, Decimal)):
        if not math.isfinite(value) or value != int(value):
            raise ValueError(f'not an integral value: {value!r}')
        return int(value)
    if isinstance(value, (bytes, bytearray, memoryview)):
        value = bytes(value).decode('utf-8')
    if isinstance(value, str):
        return int(value.strip())
    raise TypeError(f'cannot convert {type(value).__name__} to int')


def _to_float(value: Any) -> float:
    if isinstance(value, bool):
        return float(value)
    if isinstance(value, (int, float, Decimal)):
        return float(value)
    if isinstance(value, (bytes, bytearray, memoryview)):
        value = bytes(value).decode('utf-8')
    if isinstance(value, str):
        return float(value.strip())
    raise TypeError(f'cannot convert {type(value).__name__} to float')


def _to_decimal(value: Any) -> Decimal:
    if isinstance(value, Decimal):
        return value
    if isinstance(value, (bytes, bytearray, memoryview)):
        value = bytes(value).decode('utf-8')
    if isinstance(value, (int, float, str)):
        try:
            return Decimal(str(value).strip())
        except InvalidOperation:
            raise ValueError(f'not a decimal value: {value!r}') from None
    raise TypeError(f'cannot convert {type(value).__name__} to Decimal')


def _to_str(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value).decode('utf-8')
    if isinstance(value, (datetime.date, datetime.time)):
        return value.isoformat()
    if isinstance(value, (int, float, Decimal)):
        return str(value)
    raise TypeError(f'cannot convert {type(value).__name__} to str')


def _to_bytes(value: Any) -> bytes:
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value)
    if isinstance(value, str):
        return value.encode('utf-8')
    raise TypeError(f'cannot convert {type(value).__name__} to bytes')


def _parse_datetime(value: Any) -> datetime.datetime:
    if isinstance(value, (bytes, bytearray, memoryview)):
        value = bytes(value).decode('utf-8')
    if not isinstance(value, str):
        raise TypeError(f'cannot parse {type(value).__name__} as a date/time')
    return dateutil.parser.parse(value)


def _to_datetime(value: Any) -> datetime.datetime:
    if isinstance(value, datetime.datetime):
        return value
    if isinstance(value, datetime.date):
        return datetime.datetime.combine(value, datetime.time())
    return _parse_datetime(value)


def _to_date(value: Any) -> datetime.date:
    if isinstance(value, datetime.datetime):
        return value.date()
    if isinstance(value, datetime.date):
        return value
    return _parse_datetime(value).date()


def _to_time(value: Any) -> datetime.time:
    if isinstance(value, datetime.time):
        return value
    if isinstance(value, datetime.datetime):
        return value.timetz()
    return _parse_datetime(value).timetz()


CONVERTERS: dict[type, typing.Callable[[Any], Any]] = {
    bool: _to_bool,
    int: _to_int,
    float: _to_float,
    Decimal: _to_decimal,
    str: _to_str,
    bytes: _to_bytes,
    datetime.datetime: _to_datetime,
    datetime.date: _to_date,
    datetime.time: _to_time,
}


def convert_value(value: Any, kind: Any, nullable: bool = False) -> Any:
    """Convert an opaque column value to a field's declared kind.

    NULL becomes ``None`` for nullable kinds and the kind's zero value
    otherwise. Kinds without a registered converter accept instances of
    themselves as-is and are otherwise constructed from the value, which
    covers enums and simple wrapper types.

    Raises
        ConversionError: If the value cannot be represented as ``kind``
    """
    if value is None:
        return zero_value(kind, nullable)

    if kind is Any or kind is object:
        return value

    converter = CONVERTERS.get(kind)
    try:
        if converter is not None:
            return converter(value)
        if isinstance(value, kind):
            return value
        return kind(value)
    except (ValueError, TypeError, OverflowError) as e:
        name = getattr(kind, '__name__', repr(kind))
        raise ConversionError(f'Cannot convert {value!r} to {name}: {e}') from e


# Type Converter - Handles Python -> Database value conversion

def _convert_numpy_value(val: Any) -> float | int | datetime.datetime | None:
    """Convert NumPy value to Python type."""
    if isinstance(val, np.floating) and np.isnan(val):
        return None

    if isinstance(val, np.datetime64):
        if np.isnat(val):
            return None
        return pd.Timestamp(val).to_pydatetime()

    return val.item()


class TypeConverter:
    """Conversion of bound parameter values for the driver.

    Handles NumPy and Pandas scalars that commonly end up on records
    populated from data frames.
    """

    @staticmethod
    def convert_value(value: Any) -> Any:
        """Convert a single value to a database-compatible format."""
        if value is None:
            return None

        if isinstance(value, float) and (math.isnan(value) or math.isinf(value)):
            return None

        if isinstance(value, (*NUMPY_FLOAT_TYPES, *NUMPY_INT_TYPES, np.bool_, np.datetime64)):
            return _convert_numpy_value(value)

        if value is pd.NaT or value is pd.NA:
            return None

        if isinstance(value, pd.Timestamp):
            return value.to_pydatetime()

        return value

    @staticmethod
    def convert_params(params: list | tuple) -> tuple:
        """Convert an ordered parameter list for database operations."""
        return tuple(TypeConverter.convert_value(v) for v in params)
