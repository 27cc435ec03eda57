"""
Test suite for pipeline.aggregates.

Tests cover:
- count / count_distinct / min_of / max_of / sum_of over partitions
- Skipping of None and ABSENT values
- Field accessors and SchemaMismatch
"""

from datetime import date

import pytest

from core.exceptions import SchemaMismatch
from dataset.tables import ABSENT
from pipeline.aggregates import col, count, count_distinct, get_field, max_of, min_of, sum_of

ROWS = [
    {'Animal_Id': 'A1', 'Outcome_Date': date(2024, 10, 2), 'N': 2},
    {'Animal_Id': 'A1', 'Outcome_Date': None, 'N': 3},
    {'Animal_Id': 'A2', 'Outcome_Date': ABSENT, 'N': None},
    {'Animal_Id': 'A3', 'Outcome_Date': date(2024, 9, 1), 'N': 5},
]


@pytest.mark.unit
def test_count_rows_and_present_values():
    assert count()(ROWS) == 4
    assert count('Outcome_Date')(ROWS) == 2


@pytest.mark.unit
def test_count_distinct():
    assert count_distinct('Animal_Id')(ROWS) == 3


@pytest.mark.unit
def test_min_and_max_skip_missing_values():
    assert min_of('Outcome_Date')(ROWS) == date(2024, 9, 1)
    assert max_of('Outcome_Date')(ROWS) == date(2024, 10, 2)


@pytest.mark.unit
def test_sum_skips_missing_values():
    assert sum_of('N')(ROWS) == 10


@pytest.mark.unit
def test_aggregate_accepts_accessor():
    assert count_distinct(lambda row: row['Animal_Id'][0])(ROWS) == 1


@pytest.mark.unit
def test_aggregate_repr():
    assert repr(count()) == 'count(*)'
    assert repr(max_of('Outcome_Date')) == 'max(Outcome_Date)'


@pytest.mark.edge_case
def test_min_max_over_only_missing_values_is_absent():
    rows = [{'Outcome_Date': None}, {'Outcome_Date': ABSENT}]

    assert max_of('Outcome_Date')(rows) is ABSENT
    assert min_of('Outcome_Date')(rows) is ABSENT
    assert sum_of('Outcome_Date')([]) == 0


@pytest.mark.edge_case
def test_missing_field_raises_schema_mismatch():
    with pytest.raises(SchemaMismatch, match="Kennel_Status"):
        get_field({'Kennel_Number': 'KN1'}, 'Kennel_Status')

    with pytest.raises(SchemaMismatch):
        count_distinct('Kennel_Status')([{'Kennel_Number': 'KN1'}])


@pytest.mark.edge_case
def test_col_reads_falsy_values():
    accessor = col('N')

    assert accessor({'N': 0}) == 0
    assert accessor({'N': None}) is None
    assert accessor.__name__ == 'N'
