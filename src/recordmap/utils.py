"""Low-level connection utilities with no internal dependencies.

These utilities work with raw DBAPI connections and thin wrappers around
them, and import nothing from other recordmap modules.
"""
import logging
from typing import Any

logger = logging.getLogger(__name__)

PLACEHOLDERS: dict[str, str] = {
    'postgresql': '%s',
    'sqlite': '?',
}


def get_dialect_name(obj: Any) -> str:
    """Get dialect name for a database connection.

    Args:
        obj: Connection object or wrapper

    Returns
        str: Dialect name ('postgresql' or 'sqlite')

    Raises
        AttributeError: If dialect cannot be determined
    """
    if hasattr(obj, 'dialect'):
        dialect = obj.dialect
        if isinstance(dialect, str):
            return dialect.lower()
        return str(dialect.name).lower()

    if hasattr(obj, 'dbapi_connection'):
        return get_dialect_name(obj.dbapi_connection)

    type_name = f'{type(obj).__module__}.{type(obj).__name__}'
    if 'psycopg' in type_name:
        return 'postgresql'
    if 'sqlite3' in type_name:
        return 'sqlite'

    raise AttributeError(f'Cannot determine dialect for {type(obj)}')


def dialect_placeholder(dialect: str) -> str:
    """Return the positional placeholder for a dialect."""
    try:
        return PLACEHOLDERS[dialect]
    except KeyError:
        available = list(PLACEHOLDERS)
        raise ValueError(f'Unsupported dialect: {dialect}. Available: {available}') from None


def get_available_dialects() -> list[str]:
    """Return list of supported dialect names."""
    return list(PLACEHOLDERS)
