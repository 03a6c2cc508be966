"""
Record type introspection.

A record type is a dataclass; query destinations must not be frozen.
Each field may carry a persistence tag in its metadata under the
configured tag name::

    @dataclass
    class Tweet:
        Id: int = field(default=0, metadata={'db': 'id,primarykey,serial'})
        UserId: int = field(default=0, metadata={'db': 'user_id'})
        Draft: str = field(default='', metadata={'db': '-'})

The first tag token is the column name and may be empty; the remaining
tokens are flags. A lone ``-`` marks the field transient.

Column naming is asymmetric: with no explicit name, a field carrying a key
flag (``primarykey``, ``autoincrement``, ``serial``) maps to its lower-cased
name, and any other field maps to its name verbatim.
"""
import dataclasses
import logging
import sys
import typing
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping

from recordmap.exceptions import TypeMappingError
from recordmap.types import resolve_kind, zero_value

logger = logging.getLogger(__name__)

IGNORE_TOKEN = '-'
FLAG_PRIMARY_KEY = 'primarykey'
FLAG_AUTO_INCREMENT = 'autoincrement'
FLAG_SERIAL = 'serial'
KNOWN_FLAGS = frozenset({FLAG_PRIMARY_KEY, FLAG_AUTO_INCREMENT, FLAG_SERIAL})


@dataclass(frozen=True, slots=True)
class FieldDescriptor:
    """Persistence behavior of one record field."""
    field_name: str
    column_name: str = ''
    is_primary_key: bool = False
    is_auto_increment: bool = False
    is_server_generated: bool = False
    is_transient: bool = False
    kind: Any = Any
    nullable: bool = False

    @property
    def zero(self) -> Any:
        """Value the field holds when no column populates it."""
        return zero_value(self.kind, self.nullable)


@dataclass(frozen=True, eq=False)
class TypeDescriptor:
    """Cached column metadata for one record type."""
    record_type: type
    field_names: tuple[str, ...]
    field_infos: Mapping[str, FieldDescriptor]
    columns: Mapping[str, FieldDescriptor] = field(repr=False)

    @property
    def name(self) -> str:
        return self.record_type.__name__

    @property
    def mutable(self) -> bool:
        """Whether instances can be populated in place."""
        return not self.record_type.__dataclass_params__.frozen

    @property
    def column_names(self) -> list[str]:
        """Column names of non-transient fields, in declaration order."""
        return list(self.columns)

    @property
    def primary_keys(self) -> list[FieldDescriptor]:
        return [fi for fi in self.columns.values() if fi.is_primary_key]

    @property
    def insert_fields(self) -> list[FieldDescriptor]:
        """Fields an INSERT must supply; storage-assigned fields are left out."""
        return [fi for fi in self.columns.values() if not fi.is_auto_increment]

    def field_for_column(self, column_name: str) -> FieldDescriptor | None:
        """Return the non-transient field mapped to ``column_name`` (case-sensitive)."""
        return self.columns.get(column_name)

    def new(self) -> Any:
        """Allocate a zero-valued instance of the record type."""
        obj = self.record_type.__new__(self.record_type)
        for f in dataclasses.fields(self.record_type):
            setattr(obj, f.name, _initial_value(f, self.field_infos[f.name]))
        return obj


def _initial_value(f: dataclasses.Field, fi: FieldDescriptor) -> Any:
    if f.default is not dataclasses.MISSING:
        return f.default
    if f.default_factory is not dataclasses.MISSING:
        return f.default_factory()
    return fi.zero


def parse_tag(field_name: str, tag: str | None) -> tuple[str, set[str], bool]:
    """Split a field tag into ``(column_name, flags, ignored)``.

    >>> parse_tag('Id', 'id,primarykey')
    ('id', {'primarykey'}, False)
    >>> parse_tag('Note', '-')
    ('', set(), True)
    """
    if not tag:
        return '', set(), False

    name, *tokens = [t.strip() for t in tag.split(',')]
    if name == IGNORE_TOKEN:
        return '', set(), True

    flags = {t.lower() for t in tokens if t}
    unknown = flags - KNOWN_FLAGS
    if unknown:
        raise TypeMappingError(f'Unrecognized tag option(s) {sorted(unknown)} on field {field_name!r}')
    return name, flags, False


def _describe_field(f: dataclasses.Field, hints: dict[str, Any], tag_name: str) -> FieldDescriptor:
    kind, nullable = resolve_kind(hints.get(f.name, f.type))
    column, flags, ignored = parse_tag(f.name, f.metadata.get(tag_name))

    if ignored or f.name.startswith('_'):
        return FieldDescriptor(f.name, is_transient=True, kind=kind, nullable=nullable)

    if not column:
        column = f.name.lower() if flags else f.name

    return FieldDescriptor(
        field_name=f.name,
        column_name=column,
        is_primary_key=FLAG_PRIMARY_KEY in flags,
        is_auto_increment=bool(flags & {FLAG_AUTO_INCREMENT, FLAG_SERIAL}),
        is_server_generated=FLAG_SERIAL in flags,
        kind=kind,
        nullable=nullable,
    )


def _type_hints(record_type: type) -> dict[str, Any]:
    """Resolve field annotations, one field at a time when the whole class fails.

    An annotation that cannot be resolved maps to ``Any`` for that field only.
    """
    try:
        return typing.get_type_hints(record_type)
    except (NameError, TypeError) as e:
        logger.debug(f'Resolving annotations of {record_type.__name__} per field: {e}')

    module = sys.modules.get(record_type.__module__)
    globalns = dict(vars(module)) if module else {}
    localns = dict(vars(record_type))

    hints = {}
    for f in dataclasses.fields(record_type):
        if not isinstance(f.type, str):
            hints[f.name] = f.type
            continue
        try:
            hints[f.name] = eval(f.type, globalns, localns)
        except (NameError, TypeError, AttributeError, SyntaxError) as e:
            logger.debug(f'Unresolved annotation {record_type.__name__}.{f.name}: {e}')
            hints[f.name] = Any
    return hints


def describe(record_type: Any, tag_name: str = 'db') -> TypeDescriptor:
    """Build the Type Descriptor of a record type.

    Args:
        record_type: A dataclass class
        tag_name: Field metadata key holding the persistence tag

    Returns
        TypeDescriptor for ``record_type``

    Raises
        TypeMappingError: If the type is not a dataclass, a tag has an
            unrecognized flag, or two fields map to the same column
    """
    if not isinstance(record_type, type) or not dataclasses.is_dataclass(record_type):
        raise TypeMappingError(f'{record_type!r} is not a record type (expected a dataclass class)')

    hints = _type_hints(record_type)

    infos: dict[str, FieldDescriptor] = {}
    columns: dict[str, FieldDescriptor] = {}
    for f in dataclasses.fields(record_type):
        fi = _describe_field(f, hints, tag_name)
        infos[f.name] = fi
        if fi.is_transient:
            continue
        if fi.column_name in columns:
            other = columns[fi.column_name].field_name
            raise TypeMappingError(
                f'{record_type.__name__}: fields {other!r} and {f.name!r} both map to column {fi.column_name!r}')
        columns[fi.column_name] = fi

    return TypeDescriptor(
        record_type=record_type,
        field_names=tuple(infos),
        field_infos=MappingProxyType(infos),
        columns=MappingProxyType(columns),
    )
