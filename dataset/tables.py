"""
======================================
Typed in-memory tables for snapshots.
======================================

A Table is an ordered, read-only sequence of rows validated against a
TableSchema. Rows are exposed as read-only mappings keyed by field name.
Tables build their declared key indexes up front so joins can look rows
up by Impound_Number or Animal_Id without scanning.

The module also defines ABSENT, the explicit "no value" marker produced by
left joins, lags and undefined percentages. Blank source cells load as None;
ABSENT is reserved for values the pipeline could not produce.

Example:
    >>> from dataset.tables import FieldSpec, TableSchema, Table
    >>>
    >>> schema = TableSchema(
    ...     name='exitstatus',
    ...     fields=(
    ...         FieldSpec('Impound_Number', 'str'),
    ...         FieldSpec('Outcome_Date', 'date', nullable=True),
    ...     ),
    ...     indexes=('Impound_Number',)
    ... )
    >>> table = Table.from_records(schema, [{'Impound_Number': 'K1', 'Outcome_Date': '2024-10-02'}])
    >>> table.lookup('Impound_Number', 'K1')[0]['Outcome_Date']
    datetime.date(2024, 10, 2)
"""

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Sequence, Tuple

import pandas as pd

from core.exceptions import SchemaMismatch, TypeCoercionError
from core.logger import get_logger

logger = get_logger(__name__)

Row = Mapping[str, Any]

FIELD_TYPES = ('str', 'int', 'date')


class Absent(Enum):
    """Marker for a value that does not exist (unmatched join side, first lag)."""

    ABSENT = 'ABSENT'

    def __bool__(self):
        return False

    def __repr__(self):
        return 'ABSENT'

    def __str__(self):
        return 'ABSENT'


ABSENT = Absent.ABSENT


def is_absent(value: Any) -> bool:
    """Return True if value is the ABSENT marker."""
    return value is ABSENT


def is_missing(value: Any) -> bool:
    """Return True for ABSENT and for blank (None) source values."""
    return value is None or value is ABSENT


@dataclass(frozen=True)
class FieldSpec:
    """A named, typed field.

    Attributes:
        name: Field name as it appears in the source export
        type: One of 'str', 'int', 'date'
        nullable: Whether a blank value is allowed (loaded as None)
    """

    name: str
    type: str = 'str'
    nullable: bool = False

    def __post_init__(self):
        if self.type not in FIELD_TYPES:
            raise ValueError(f"Unsupported field type '{self.type}' for {self.name}")


@dataclass(frozen=True)
class TableSchema:
    """Declared shape of one snapshot table.

    Attributes:
        name: Table name
        fields: Ordered field specifications
        indexes: Field names to build lookup indexes for
        unique_keys: Field names expected to identify a single row
    """

    name: str
    fields: Tuple[FieldSpec, ...]
    indexes: Tuple[str, ...] = ()
    unique_keys: Tuple[str, ...] = ()

    @property
    def field_names(self) -> Tuple[str, ...]:
        return tuple(spec.name for spec in self.fields)


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ''
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def coerce_value(spec: FieldSpec, value: Any, table: str = None, row_index: int = None) -> Any:
    """
    Coerce a raw source value to the field's declared type.

    Args:
        spec: Field specification
        value: Raw value (string from CSV, native value from a database)
        table: Table name, for error context
        row_index: Row position, for error context

    Returns:
        str, int, date, or None for an allowed blank

    Raises:
        TypeCoercionError: If the value is blank for a required field or
            cannot be parsed as the declared type
    """
    if _is_blank(value):
        if spec.nullable:
            return None
        raise TypeCoercionError(spec.name, value, f"non-empty {spec.type}", table, row_index)

    if spec.type == 'str':
        return str(value).strip()

    if spec.type == 'int':
        if isinstance(value, bool):
            raise TypeCoercionError(spec.name, value, 'int', table, row_index)
        try:
            if isinstance(value, float):
                if not value.is_integer():
                    raise ValueError(value)
                return int(value)
            return int(str(value).strip())
        except (TypeError, ValueError):
            raise TypeCoercionError(spec.name, value, 'int', table, row_index)

    # date
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        parsed = pd.to_datetime(str(value).strip())
    except (TypeError, ValueError, OverflowError):
        raise TypeCoercionError(spec.name, value, 'date', table, row_index)
    if pd.isna(parsed):
        raise TypeCoercionError(spec.name, value, 'date', table, row_index)
    return parsed.date()


class Table:
    """
    Read-only ordered table of typed rows.

    Build instances with Table.from_records(); the constructor expects rows
    that are already validated.

    Attributes:
        schema: TableSchema the rows conform to
        rows: Tuple of read-only row mappings in source order
    """

    def __init__(self, schema: TableSchema, rows: Sequence[Row]):
        self.schema = schema
        self.rows: Tuple[Row, ...] = tuple(rows)
        self._indexes: Dict[Tuple[str, ...], Dict[Any, Tuple[Row, ...]]] = {}

        for key in schema.indexes:
            self.index(key)
        for key in schema.unique_keys:
            self._check_unique(key)

    @classmethod
    def from_records(cls, schema: TableSchema, records: Iterable[Mapping[str, Any]]) -> 'Table':
        """
        Validate and coerce raw records into a Table.

        Extra fields in a record are ignored; every declared field must be present.

        Args:
            schema: Declared table shape
            records: Raw records (dicts from CSV rows or database rows)

        Returns:
            New Table

        Raises:
            SchemaMismatch: If a declared field is missing from a record
            TypeCoercionError: If a value cannot be coerced
        """
        rows: List[Row] = []
        for row_index, record in enumerate(records):
            coerced = {}
            for spec in schema.fields:
                if spec.name not in record:
                    raise SchemaMismatch(spec.name, schema.name, row_index)
                coerced[spec.name] = coerce_value(spec, record[spec.name], schema.name, row_index)
            rows.append(MappingProxyType(coerced))

        logger.debug(f"Validated {len(rows):,} rows for table '{schema.name}'")
        return cls(schema, rows)

    @property
    def name(self) -> str:
        return self.schema.name

    @property
    def field_names(self) -> Tuple[str, ...]:
        return self.schema.field_names

    def __len__(self) -> int:
        return len(self.rows)

    def __iter__(self) -> Iterator[Row]:
        return iter(self.rows)

    def __repr__(self) -> str:
        return f"Table({self.name!r}, rows={len(self.rows)})"

    def index(self, key) -> Dict[Any, Tuple[Row, ...]]:
        """
        Return (building once) the index of rows by key field(s).

        Args:
            key: A field name or a tuple of field names

        Returns:
            Dict mapping key value (a tuple for composite keys) to matching rows

        Raises:
            SchemaMismatch: If a key field is not declared on the table
        """
        fields = (key,) if isinstance(key, str) else tuple(key)
        for name in fields:
            if name not in self.schema.field_names:
                raise SchemaMismatch(name, self.name)

        if fields not in self._indexes:
            buckets: Dict[Any, List[Row]] = {}
            for row in self.rows:
                value = row[fields[0]] if len(fields) == 1 else tuple(row[f] for f in fields)
                buckets.setdefault(value, []).append(row)
            self._indexes[fields] = {k: tuple(v) for k, v in buckets.items()}
        return self._indexes[fields]

    def lookup(self, key, value: Any) -> Tuple[Row, ...]:
        """Return the rows whose key field(s) equal value (empty tuple if none)."""
        return self.index(key).get(value, ())

    def _check_unique(self, key: str) -> None:
        duplicates = [k for k, rows in self.index(key).items() if len(rows) > 1]
        if duplicates:
            logger.warning(
                f"⚠️  Table '{self.name}' has {len(duplicates):,} duplicated {key} values "
                f"(e.g. {duplicates[0]!r}); joins will repeat those rows"
            )
