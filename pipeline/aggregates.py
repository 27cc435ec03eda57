"""
===============================
Aggregation functions for group_by.
===============================

Each aggregation is a small callable object applied to the rows of one
partition. Like SQL aggregates they skip blank (None) and ABSENT values,
except count() which counts rows.

Aggregations:
- count: number of rows in the partition (COUNT(*))
- count_distinct: number of distinct non-missing values of a field
- min_of / max_of: smallest / largest non-missing value, ABSENT if none
- sum_of: sum of non-missing values (0 for none)

Usage:
    from pipeline.aggregates import count, count_distinct, max_of

    group_by(rows, 'Animal_Type', {
        'Total_Animals': count_distinct('Animal_Id'),
        'Last_Outcome_Date': max_of('Outcome_Date'),
    })
"""

from typing import Any, Callable, List, Sequence, Union

from core.exceptions import SchemaMismatch
from dataset.tables import ABSENT, Row, is_missing

FieldRef = Union[str, Callable[[Row], Any]]


def get_field(row: Row, name: str) -> Any:
    """
    Read a field from a row.

    Raises:
        SchemaMismatch: If the row has no such field
    """
    try:
        return row[name]
    except KeyError:
        raise SchemaMismatch(name)


def col(name: str) -> Callable[[Row], Any]:
    """Return a key function reading one field (raising SchemaMismatch if absent)."""
    def accessor(row: Row) -> Any:
        return get_field(row, name)
    accessor.__name__ = name
    return accessor


def as_accessor(ref: FieldRef) -> Callable[[Row], Any]:
    """Turn a field name or callable into a row accessor."""
    return col(ref) if isinstance(ref, str) else ref


class Aggregation:
    """Base class: reduce the rows of one partition to a value."""

    label = 'aggregate'

    def __init__(self, field: FieldRef = None):
        self.field = field
        self._accessor = as_accessor(field) if field is not None else None

    def present_values(self, rows: Sequence[Row]) -> List[Any]:
        values = (self._accessor(row) for row in rows)
        return [value for value in values if not is_missing(value)]

    def __call__(self, rows: Sequence[Row]) -> Any:
        raise NotImplementedError

    def __repr__(self):
        target = self.field if isinstance(self.field, str) else getattr(self.field, '__name__', '*')
        return f"{self.label}({target if self.field is not None else '*'})"


class Count(Aggregation):
    label = 'count'

    def __call__(self, rows):
        if self._accessor is None:
            return len(rows)
        return len(self.present_values(rows))


class CountDistinct(Aggregation):
    label = 'count_distinct'

    def __call__(self, rows):
        return len(set(self.present_values(rows)))


class MinOf(Aggregation):
    label = 'min'

    def __call__(self, rows):
        values = self.present_values(rows)
        return min(values) if values else ABSENT


class MaxOf(Aggregation):
    label = 'max'

    def __call__(self, rows):
        values = self.present_values(rows)
        return max(values) if values else ABSENT


class SumOf(Aggregation):
    label = 'sum'

    def __call__(self, rows):
        return sum(self.present_values(rows))


def count(field: FieldRef = None) -> Count:
    """COUNT(*) when field is None, otherwise COUNT(field)."""
    return Count(field)


def count_distinct(field: FieldRef) -> CountDistinct:
    return CountDistinct(field)


def min_of(field: FieldRef) -> MinOf:
    return MinOf(field)


def max_of(field: FieldRef) -> MaxOf:
    return MaxOf(field)


def sum_of(field: FieldRef) -> SumOf:
    return SumOf(field)
