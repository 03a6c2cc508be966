"""
Named parameter binding.

Rewrites ``:Identifier`` placeholders into the dialect's positional marker
and collects the matching field values of an input record:

    SQL + record → Tokenize → Resolve fields → Build positional SQL + args

Quoting policy:
- text inside '...' or "..." literals and SQL comments is never scanned
- ``::`` (PostgreSQL cast) is passed through
- ``\\:`` escapes a colon, so ``\\:word`` reaches the database as ``:word``.
  This is for PostgreSQL syntax such as array slices (``tags[1\\:n]``);
  SQLite reads a bare ``:word`` as its own named parameter and rejects it
  next to ``?`` markers
"""
import dataclasses
import logging
import re
from dataclasses import dataclass
from enum import Enum, auto
from typing import TYPE_CHECKING, Any

from recordmap.exceptions import MissingBindingError, UnknownParameterError
from recordmap.exceptions import UnsupportedTypeError
from recordmap.types import TypeConverter
from recordmap.utils import dialect_placeholder

if TYPE_CHECKING:
    from recordmap.cache import TypeCache

logger = logging.getLogger(__name__)


class TokenType(Enum):
    """Token types identified during SQL parsing."""
    SQL_TEXT = auto()
    STRING_LITERAL = auto()
    COMMENT = auto()
    ESCAPED_COLON = auto()      # \:
    CAST = auto()               # ::
    NAMED_PH = auto()           # :Name


@dataclass(slots=True)
class Token:
    """Token from SQL parsing."""
    type: TokenType
    text: str
    name: str | None = None     # For :Name


_TOKENIZE = re.compile(r"""
    (?P<string>'(?:[^']|'')*'|"(?:[^"]|"")*")
    |(?P<comment>--[^\n]*|/\*.*?\*/)
    |(?P<escaped>\\:)
    |(?P<cast>::)
    |(?P<named>:(?P<pname>[A-Za-z][A-Za-z0-9_]*))
""", re.VERBOSE | re.DOTALL)

_GROUP_TYPES = {
    'string': TokenType.STRING_LITERAL,
    'comment': TokenType.COMMENT,
    'escaped': TokenType.ESCAPED_COLON,
    'cast': TokenType.CAST,
    'named': TokenType.NAMED_PH,
}


def tokenize_sql(sql: str) -> list[Token]:
    """Parse SQL into tokens in a single pass.

    Parameters
        sql: SQL query string

    Returns
        List of tokens preserving all SQL text
    """
    tokens = []
    last_end = 0

    for match in _TOKENIZE.finditer(sql):
        start, end = match.span()
        if start > last_end:
            tokens.append(Token(TokenType.SQL_TEXT, sql[last_end:start]))
        kind = _GROUP_TYPES[match.lastgroup if match.lastgroup != 'pname' else 'named']
        tokens.append(Token(kind, match.group(), match.group('pname')))
        last_end = end

    if last_end < len(sql):
        tokens.append(Token(TokenType.SQL_TEXT, sql[last_end:]))

    return tokens


def placeholder_names(sql: str) -> list[str]:
    """Return named placeholders in the order they appear, duplicates included.

    >>> placeholder_names("select * from t where a=:A and b=':B' and c=:A")
    ['A', 'A']
    """
    return [t.name for t in tokenize_sql(sql) if t.type is TokenType.NAMED_PH]


def has_placeholders(sql: str | None) -> bool:
    """Check if SQL has any named placeholders."""
    if not sql or ':' not in sql:
        return False
    return bool(placeholder_names(sql))


def _render(tokens: list[Token], marker: str, escape_percent: bool) -> str:
    parts = []
    for token in tokens:
        if token.type is TokenType.NAMED_PH:
            parts.append(marker)
            continue
        text = ':' if token.type is TokenType.ESCAPED_COLON else token.text
        parts.append(text.replace('%', '%%') if escape_percent else text)
    return ''.join(parts)


def bind_params(sql: str, source: Any, cache: 'TypeCache',
                dialect: str = 'sqlite') -> tuple[str, tuple]:
    """Rewrite named placeholders against the fields of ``source``.

    Placeholders resolve left to right by field name (not column name);
    every occurrence appends an argument, so a repeated name is read again.
    Transient fields may be bound like any other.

    Parameters
        sql: Query template with ``:Identifier`` placeholders
        source: Dataclass instance supplying values, or None for no parameters
        cache: Type cache used to describe ``type(source)``
        dialect: Dialect selecting the positional marker

    Returns
        Tuple of (processed_sql, args)

    Raises
        MissingBindingError: Placeholders present but ``source`` is None
        UnsupportedTypeError: ``source`` is not a record instance
        UnknownParameterError: A placeholder names no field of ``source``
    """
    tokens = tokenize_sql(sql)
    names = [t.name for t in tokens if t.type is TokenType.NAMED_PH]
    marker = dialect_placeholder(dialect)

    if source is None:
        if names:
            raise MissingBindingError(f'Query has placeholder(s) {names} but no input was supplied')
        return _render(tokens, marker, False), ()

    if isinstance(source, type) or not dataclasses.is_dataclass(source):
        raise UnsupportedTypeError(f'Cannot bind parameters from {type(source).__name__}: not a record instance')

    ti = cache.register(type(source))
    values = []
    for name in names:
        if name not in ti.field_infos:
            raise UnknownParameterError(name, ti.record_type)
        values.append(getattr(source, name))

    args = TypeConverter.convert_params(values)
    processed_sql = _render(tokens, marker, marker == '%s' and bool(args))
    logger.debug(f'Bound {len(args)} parameter(s) from {ti.name}')
    return processed_sql, args


if __name__ == '__main__':
    __import__('doctest').testmod(optionflags=4 | 8 | 32)
