"""Materialization of result rows into record instances."""
import logging
from collections.abc import Iterable, Sequence
from typing import Any

from recordmap.cursor import column_names, fetch_row, iter_rows
from recordmap.descriptor import FieldDescriptor, TypeDescriptor
from recordmap.exceptions import ConversionError, NoRowsError, TypeMappingError
from recordmap.types import convert_value

logger = logging.getLogger(__name__)


class Materializer:
    """Populates instances of one record type from cursor rows.

    Returned columns are matched case-sensitively against the column names
    of the type's non-transient fields. Columns without a matching field are
    discarded and fields without a returned column keep their zero value,
    which is how projections yield partially populated records.
    """

    def __init__(self, ti: TypeDescriptor) -> None:
        if not ti.mutable:
            raise TypeMappingError(f'{ti.name} is frozen and cannot be populated from rows')
        self.ti = ti

    def plan(self, columns: Sequence[str]) -> list[tuple[int, str, FieldDescriptor]]:
        """Pair each matched column position with its destination field."""
        matched = []
        for index, column in enumerate(columns):
            fi = self.ti.field_for_column(column)
            if fi is None:
                logger.debug(f'Discarding column {column!r}: no field on {self.ti.name}')
                continue
            matched.append((index, column, fi))
        return matched

    def convert_row(self, plan: Iterable[tuple[int, str, FieldDescriptor]],
                    row: Sequence[Any]) -> dict[str, Any]:
        """Convert every matched value of a row, keyed by field name.

        Raises
            ConversionError: If any value cannot be converted to its field's kind
        """
        values = {}
        for index, column, fi in plan:
            try:
                values[fi.field_name] = convert_value(row[index], fi.kind, fi.nullable)
            except ConversionError as e:
                raise ConversionError(f'Column {column!r} -> {self.ti.name}.{fi.field_name}: {e}') from e
        return values

    def populate(self, obj: Any, values: dict[str, Any]) -> Any:
        for name, value in values.items():
            setattr(obj, name, value)
        return obj

    def first(self, cursor: Any, out: Any) -> Any:
        """Populate ``out`` in place from the first row; extra rows are not read.

        Raises
            NoRowsError: If the cursor yields no row; ``out`` is left unmodified
        """
        row = fetch_row(cursor)
        if row is None:
            raise NoRowsError(f'Query returned no rows for {self.ti.name}')
        values = self.convert_row(self.plan(column_names(cursor)), row)
        return self.populate(out, values)

    def all(self, cursor: Any) -> list[Any]:
        """Materialize every remaining row as a new instance, in cursor order."""
        plan = self.plan(column_names(cursor))
        results = [self.populate(self.ti.new(), self.convert_row(plan, row))
                   for row in iter_rows(cursor)]
        logger.debug(f'Materialized {len(results)} {self.ti.name} row(s)')
        return results
