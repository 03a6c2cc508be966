"""
Cursor lifecycle against a DB-API 2.0 connection.
"""
import logging
import time
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from typing import Any

from recordmap.exceptions import DriverError, ExecutionError

logger = logging.getLogger(__name__)


def _close(cursor: Any) -> None:
    close = getattr(cursor, 'close', None)
    if close is not None:
        close()


@contextmanager
def execute(cn: Any, sql: str, args: tuple = ()) -> Iterator[Any]:
    """Context manager for cursor lifecycle.

    Opens a cursor, executes the statement and yields the cursor; the cursor
    is closed on every exit path, however many rows were consumed. Driver
    errors surface as ExecutionError with ``phase='execute'``.
    """
    try:
        cursor = cn.cursor()
    except DriverError as e:
        raise ExecutionError('execute', str(e)) from e

    try:
        start = time.time()
        logger.debug(f'SQL:\n{sql}\nargs: {args}')
        try:
            if args:
                cursor.execute(sql, args)
            else:
                cursor.execute(sql)
        except DriverError as e:
            raise ExecutionError('execute', str(e)) from e
        logger.debug(f'Query time: {time.time() - start:.4f}s')
        yield cursor
    finally:
        _close(cursor)


def column_names(cursor: Any) -> list[str]:
    """Ordered names of the columns returned by the last query."""
    return [desc[0] for desc in (cursor.description or [])]


def fetch_row(cursor: Any) -> tuple | None:
    """Fetch the next row as a tuple, or None when exhausted."""
    try:
        row = cursor.fetchone()
    except DriverError as e:
        raise ExecutionError('fetch', str(e)) from e
    if isinstance(row, Mapping):
        return tuple(row.values())
    return row


def iter_rows(cursor: Any) -> Iterator[tuple]:
    """Yield rows one at a time until the cursor is exhausted."""
    while True:
        row = fetch_row(cursor)
        if row is None:
            return
        yield row
