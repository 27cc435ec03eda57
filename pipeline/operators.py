"""
====================================
Relational operators over row lists.
====================================

Pure, composable operators used to express every business question as
filter → join → group → rank-or-lag → percentage. Inputs are never
mutated: each operator returns a new list of dict rows.

Operators:
- inner_join / left_join: hash join on shared key field(s), or a nested
  loop over an arbitrary predicate; left_join fills unmatched right-side
  fields with ABSENT
- filter_rows: keep rows matching a predicate
- with_columns: add computed fields
- select: project (and rename) output columns
- group_by: partition rows and apply aggregations
- window_rank: competition rank within partitions
- window_lag: previous row's value within partitions
- percentage_share: each row's share of its partition total
- order_by / limit: deterministic ordering and truncation
- percentage_of: half-up rounded percentage, ABSENT for a zero total

Ordering rules:
    Sorting is stable and None/ABSENT values always sort last, whatever
    the direction. Partitions are visited in order of first appearance.

Usage:
    from pipeline.operators import left_join, group_by, order_by, DESC
    from pipeline.aggregates import count_distinct

    joined = left_join(dataset.admissions, dataset.exits, on='Impound_Number')
    counts = group_by(joined, 'Intake_Type', {'Animals': count_distinct('Animal_Id')})
    result = order_by(counts, ('Animals', DESC), 'Intake_Type')
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from core.exceptions import DivisionUndefined
from core.logger import get_logger
from dataset.tables import ABSENT, Row, Table, is_missing
from pipeline.aggregates import Aggregation, FieldRef, as_accessor, get_field

logger = get_logger(__name__)

ASC = 'asc'
DESC = 'desc'

Rows = Iterable[Row]
JoinKey = Union[str, Sequence[str]]
SortSpec = Union[FieldRef, Tuple[FieldRef, str]]

_HUNDREDTH = Decimal('0.01')


# =============================================================================
# Joins
# =============================================================================

def _key_fields(on: JoinKey) -> Tuple[str, ...]:
    return (on,) if isinstance(on, str) else tuple(on)


def _key_value(row: Row, fields: Tuple[str, ...]) -> Any:
    if len(fields) == 1:
        return get_field(row, fields[0])
    return tuple(get_field(row, name) for name in fields)


def _has_missing_key(value: Any) -> bool:
    if isinstance(value, tuple):
        return any(is_missing(v) for v in value)
    return is_missing(value)


def _field_names(rows: Sequence[Row], table: Optional[Table]) -> List[str]:
    if table is not None:
        return list(table.field_names)
    names: List[str] = []
    for row in rows:
        for name in row:
            if name not in names:
                names.append(name)
    return names


def _merge(left_row: Row, right_row: Row) -> Dict[str, Any]:
    merged = dict(right_row)
    merged.update(left_row)
    return merged


def _join(
    left: Rows,
    right: Union[Table, Rows],
    predicate: Optional[Callable[[Row, Row], bool]],
    on: Optional[JoinKey],
    keep_unmatched: bool
) -> List[Dict[str, Any]]:
    if on is None and predicate is None:
        raise ValueError("A join needs either 'on' key field(s) or a predicate")

    left_rows = list(left)
    right_table = right if isinstance(right, Table) else None
    right_rows = list(right_table.rows if right_table is not None else right)
    absent_fill = {name: ABSENT for name in _field_names(right_rows, right_table)}

    if on is not None:
        fields = _key_fields(on)
        if right_table is not None:
            index = right_table.index(fields)
        else:
            index: Dict[Any, List[Row]] = {}
            for row in right_rows:
                index.setdefault(_key_value(row, fields), []).append(row)

        def matches_for(row: Row) -> Sequence[Row]:
            key = _key_value(row, fields)
            # NULL keys never match, as in SQL
            if _has_missing_key(key):
                return ()
            return index.get(key, ())
    else:
        def matches_for(row: Row) -> Sequence[Row]:
            return [candidate for candidate in right_rows if predicate(row, candidate)]

    output = []
    for row in left_rows:
        matches = matches_for(row)
        if matches:
            output.extend(_merge(row, match) for match in matches)
        elif keep_unmatched:
            output.append(_merge(row, absent_fill))

    logger.debug(
        f"{'left' if keep_unmatched else 'inner'} join: "
        f"{len(left_rows):,} x {len(right_rows):,} -> {len(output):,} rows"
    )
    return output


def inner_join(
    left: Rows,
    right: Union[Table, Rows],
    predicate: Optional[Callable[[Row, Row], bool]] = None,
    on: Optional[JoinKey] = None
) -> List[Dict[str, Any]]:
    """
    Relational inner join.

    Args:
        left: Left rows
        right: Right rows or a Table (its cached index is used with 'on')
        predicate: Match function (left_row, right_row) -> bool
        on: Shared key field name(s); takes precedence over predicate

    Returns:
        Merged rows; on a field-name collision the left value wins
    """
    return _join(left, right, predicate, on, keep_unmatched=False)


def left_join(
    left: Rows,
    right: Union[Table, Rows],
    predicate: Optional[Callable[[Row, Row], bool]] = None,
    on: Optional[JoinKey] = None
) -> List[Dict[str, Any]]:
    """
    Relational left outer join.

    Every left row is preserved. A left row without a match carries
    ABSENT in each right-side field.

    Args:
        left: Left rows
        right: Right rows or a Table (its cached index is used with 'on')
        predicate: Match function (left_row, right_row) -> bool
        on: Shared key field name(s); takes precedence over predicate

    Returns:
        Merged rows; on a field-name collision the left value wins
    """
    return _join(left, right, predicate, on, keep_unmatched=True)


# =============================================================================
# Row-wise operators
# =============================================================================

def filter_rows(rows: Rows, predicate: Callable[[Row], bool]) -> List[Dict[str, Any]]:
    """Keep rows for which predicate returns True."""
    return [dict(row) for row in rows if predicate(row)]


def with_columns(rows: Rows, columns: Mapping[str, Callable[[Row], Any]]) -> List[Dict[str, Any]]:
    """Return copies of rows with computed fields added (or replaced)."""
    output = []
    for row in rows:
        extended = dict(row)
        for name, compute in columns.items():
            extended[name] = compute(row)
        output.append(extended)
    return output


def select(rows: Rows, columns: Union[Sequence[str], Mapping[str, FieldRef]]) -> List[Dict[str, Any]]:
    """
    Project rows to the given output columns.

    Args:
        rows: Input rows
        columns: Field names to keep, or a mapping of output name to a field
            name / accessor (for renames and computed outputs)

    Raises:
        SchemaMismatch: If a referenced field is missing
    """
    if isinstance(columns, Mapping):
        accessors = [(name, as_accessor(ref)) for name, ref in columns.items()]
    else:
        accessors = [(name, as_accessor(name)) for name in columns]
    return [{name: accessor(row) for name, accessor in accessors} for row in rows]


def limit(rows: Rows, count: int) -> List[Dict[str, Any]]:
    """Keep the first count rows."""
    return [dict(row) for row in list(rows)[:count]]


# =============================================================================
# Ordering
# =============================================================================

def _parse_sort_spec(spec: SortSpec) -> Tuple[Callable[[Row], Any], bool]:
    if isinstance(spec, tuple):
        ref, direction = spec
        if direction not in (ASC, DESC):
            raise ValueError(f"Sort direction must be '{ASC}' or '{DESC}', got {direction!r}")
        return as_accessor(ref), direction == DESC
    return as_accessor(spec), False


def _stable_sort(rows: List[Row], accessor: Callable[[Row], Any], descending: bool) -> List[Row]:
    present = [row for row in rows if not is_missing(accessor(row))]
    missing = [row for row in rows if is_missing(accessor(row))]
    present.sort(key=accessor, reverse=descending)
    return present + missing


def order_by(rows: Rows, *keys: SortSpec) -> List[Dict[str, Any]]:
    """
    Sort rows by one or more keys.

    Each key is a field name / accessor (ascending) or a (key, ASC|DESC)
    tuple. Missing values sort last for every key.

    Example:
        >>> order_by(rows, ('Total_Current_Animals', DESC), 'Animal_Type')
    """
    ordered = [dict(row) for row in rows]
    for spec in reversed(keys):
        accessor, descending = _parse_sort_spec(spec)
        ordered = _stable_sort(ordered, accessor, descending)
    return ordered


# =============================================================================
# Grouping and windows
# =============================================================================

def _key_accessors(keys) -> List[Tuple[str, Callable[[Row], Any]]]:
    if keys is None:
        return []
    if isinstance(keys, str):
        return [(keys, as_accessor(keys))]
    if isinstance(keys, Mapping):
        return [(name, as_accessor(ref)) for name, ref in keys.items()]
    return [(name, as_accessor(name)) for name in keys]


def _partition(rows: Sequence[Row], accessors) -> Dict[Tuple[Any, ...], List[Row]]:
    partitions: Dict[Tuple[Any, ...], List[Row]] = {}
    for row in rows:
        key = tuple(accessor(row) for _, accessor in accessors)
        partitions.setdefault(key, []).append(row)
    return partitions


def group_by(
    rows: Rows,
    keys: Union[str, Sequence[str], Mapping[str, FieldRef]],
    aggregations: Mapping[str, Aggregation]
) -> List[Dict[str, Any]]:
    """
    Partition rows by key and aggregate each partition.

    Only keys that occur in the input produce output rows. Output follows
    the order in which keys first appear; apply order_by for a defined order.

    Args:
        rows: Input rows
        keys: Field name, field names, or mapping of output name to key function
        aggregations: Mapping of output name to Aggregation

    Returns:
        One row per partition with the key fields and aggregate values
    """
    accessors = _key_accessors(keys)
    materialized = list(rows)
    output = []
    for key, members in _partition(materialized, accessors).items():
        grouped = {name: value for (name, _), value in zip(accessors, key)}
        for name, aggregate in aggregations.items():
            grouped[name] = aggregate(members)
        output.append(grouped)

    logger.debug(f"group_by: {len(materialized):,} rows -> {len(output):,} groups")
    return output


def window_rank(
    rows: Rows,
    partition_by: Union[None, str, Sequence[str], Mapping[str, FieldRef]],
    order_key: FieldRef,
    descending: bool = True,
    rank_field: str = 'Rank'
) -> List[Dict[str, Any]]:
    """
    Assign RANK() within each partition.

    Ties share a rank and the next distinct value skips ahead, so the rank
    of a row is one plus the number of strictly better rows in its
    partition: [10, 10, 8] descending ranks as [1, 1, 3].

    Args:
        rows: Input rows
        partition_by: Partition key(s), or None for a single partition
        order_key: Field name or accessor to rank by
        descending: Rank the largest value first
        rank_field: Name of the added rank field

    Returns:
        Rows ordered by partition (first appearance) then rank
    """
    accessor = as_accessor(order_key)
    output = []
    for members in _partition(list(rows), _key_accessors(partition_by)).values():
        ordered = _stable_sort(list(members), accessor, descending)
        previous = None
        rank = 0
        for position, row in enumerate(ordered, start=1):
            value = accessor(row)
            if position == 1 or value != previous:
                rank = position
            previous = value
            ranked = dict(row)
            ranked[rank_field] = rank
            output.append(ranked)
    return output


def window_lag(
    rows: Rows,
    order_key: FieldRef,
    value_field: FieldRef,
    offset: int = 1,
    lag_field: str = 'Lag',
    partition_by: Union[None, str, Sequence[str], Mapping[str, FieldRef]] = None
) -> List[Dict[str, Any]]:
    """
    Attach LAG(value, offset) ordered by order_key within each partition.

    The first offset rows of a partition get ABSENT.

    Returns:
        Rows ordered by partition (first appearance) then ascending order key
    """
    if offset < 1:
        raise ValueError("offset must be a positive integer")

    order_accessor = as_accessor(order_key)
    value_accessor = as_accessor(value_field)
    output = []
    for members in _partition(list(rows), _key_accessors(partition_by)).values():
        ordered = _stable_sort(list(members), order_accessor, descending=False)
        for position, row in enumerate(ordered):
            lagged = dict(row)
            lagged[lag_field] = value_accessor(ordered[position - offset]) if position >= offset else ABSENT
            output.append(lagged)
    return output


# =============================================================================
# Percentages
# =============================================================================

def _to_decimal(value: Any) -> Decimal:
    return Decimal(str(value)) if isinstance(value, float) else Decimal(value)


def _divide(numerator: Decimal, denominator: Decimal) -> Decimal:
    if denominator == 0:
        raise DivisionUndefined(f"Cannot divide {numerator} by zero")
    return numerator / denominator


def percentage_of(value: Any, total: Any) -> Any:
    """
    Return value as a percentage of total, rounded half-up to 2 decimals.

    Returns:
        float percentage, or ABSENT when total is zero or either input is missing
    """
    if is_missing(value) or is_missing(total):
        return ABSENT
    try:
        share = _divide(_to_decimal(value) * 100, _to_decimal(total))
    except DivisionUndefined as e:
        logger.debug(f"Percentage undefined: {e}")
        return ABSENT
    return float(share.quantize(_HUNDREDTH, rounding=ROUND_HALF_UP))


def percentage_share(
    rows: Rows,
    value_field: FieldRef,
    output_field: str,
    partition_by: Union[None, str, Sequence[str], Mapping[str, FieldRef]] = None
) -> List[Dict[str, Any]]:
    """
    Add each row's percentage of its partition total (SUM(...) OVER (PARTITION BY ...)).

    Input order is preserved.
    """
    materialized = list(rows)
    value_accessor = as_accessor(value_field)
    key_accessors = _key_accessors(partition_by)

    totals: Dict[Tuple[Any, ...], Any] = {}
    for key, members in _partition(materialized, key_accessors).items():
        values = [value_accessor(row) for row in members]
        totals[key] = sum(v for v in values if not is_missing(v))

    output = []
    for row in materialized:
        key = tuple(accessor(row) for _, accessor in key_accessors)
        shared = dict(row)
        shared[output_field] = percentage_of(value_accessor(row), totals[key])
        output.append(shared)
    return output
