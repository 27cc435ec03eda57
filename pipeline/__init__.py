"""
=========================================
Join/aggregate pipeline for shelter rows.
=========================================

Generic, pure relational operators composed per business question.

Modules:
    operators: joins, filters, grouping, window rank/lag, ordering, percentages
    aggregates: count, count_distinct, min_of, max_of, sum_of

Architecture:
    - Operators never mutate their inputs
    - Missing values (None or ABSENT) sort last and are skipped by aggregates
    - All orderings are explicit; nothing relies on storage order

Example:
    >>> from pipeline import inner_join, group_by, count_distinct
    >>>
    >>> joined = inner_join(dataset.admissions, dataset.details, on='Animal_Id')
    >>> per_type = group_by(joined, 'Animal_Type', {'Animals': count_distinct('Animal_Id')})
"""

__version__ = "0.1.0"
__all__ = [
    # operators
    'ASC', 'DESC', 'inner_join', 'left_join', 'filter_rows', 'with_columns',
    'select', 'limit', 'order_by', 'group_by', 'window_rank', 'window_lag',
    'percentage_of', 'percentage_share',
    # aggregates
    'col', 'count', 'count_distinct', 'min_of', 'max_of', 'sum_of'
]

from .aggregates import col, count, count_distinct, max_of, min_of, sum_of
from .operators import (
    ASC,
    DESC,
    filter_rows,
    group_by,
    inner_join,
    left_join,
    limit,
    order_by,
    percentage_of,
    percentage_share,
    select,
    window_lag,
    window_rank,
    with_columns,
)
