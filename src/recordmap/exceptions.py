"""
Mapping-specific exception classes.
"""
import sqlite3

import psycopg


class MappingError(Exception):
    """Base class for all recordmap errors.
    """


class TypeMappingError(MappingError):
    """A type cannot be described as a record (bad shape, duplicate columns, bad tag).
    """


class UnsupportedTypeError(TypeMappingError):
    """A bind source value whose type cannot be introspected.
    """


class BindError(MappingError):
    """Error resolving named placeholders against an input record.
    """


class UnknownParameterError(BindError):
    """A named placeholder has no matching field on the input record.
    """

    def __init__(self, name: str, record_type: type) -> None:
        self.name = name
        self.record_type = record_type
        super().__init__(f'No field {name!r} on {record_type.__name__} to bind :{name}')


class MissingBindingError(BindError):
    """Placeholders present but no input record supplied.
    """


class ConversionError(MappingError):
    """A column value cannot be converted to the destination field's kind.
    """


class NoRowsError(MappingError):
    """A fetch-first query returned zero rows.
    """


class ExecutionError(MappingError):
    """Failure surfaced from the SQL execution interface.

    The ``phase`` attribute names the step that failed (``'execute'`` or
    ``'fetch'``); the driver exception is chained as ``__cause__``.
    """

    def __init__(self, phase: str, message: str) -> None:
        self.phase = phase
        super().__init__(f'{phase} failed: {message}')


DriverError = (
    psycopg.Error,
    sqlite3.Error,
    )
