"""
=============================================
Classification helpers for report columns.
=============================================

Turns aggregated counts into labels:
- bucketize: which third of a [min, min + range] span a value falls in
- classify_by_range: bucketize every row against its partition's min/max
- trend_label: Increase / Decrease / No Change from a period delta

Boundaries are inclusive on the upper edge of the low and middle thirds:
    Low <= min + range/3 < Moderate <= min + 2*range/3 < High
When every value in a partition is identical (range 0) every value lands
in the lowest bucket.

A missing delta (the first period, which has nothing to compare with)
yields ABSENT rather than "No Change".
"""

from typing import Any, Dict, List, Sequence, Union

from dataset.tables import ABSENT, Row, is_missing
from pipeline.aggregates import FieldRef, as_accessor, max_of, min_of
from pipeline.operators import group_by

INTAKE_LABELS = ('Low Intake', 'Moderate Intake', 'High Intake')

INCREASE = 'Increase'
DECREASE = 'Decrease'
NO_CHANGE = 'No Change'


def bucketize(value, minimum, value_range, labels: Sequence[str]) -> Any:
    """
    Return the label of the third of [minimum, minimum + value_range] holding value.

    Args:
        value: Value to classify
        minimum: Lower bound of the span
        value_range: Width of the span (max - min)
        labels: Exactly three labels, lowest first

    Returns:
        One of labels, or ABSENT if value is missing

    Example:
        >>> bucketize(10, 0, 30, ['Low', 'Moderate', 'High'])
        'Low'
        >>> bucketize(11, 0, 30, ['Low', 'Moderate', 'High'])
        'Moderate'
    """
    if len(labels) != 3:
        raise ValueError(f"bucketize needs exactly 3 labels, got {len(labels)}")
    if is_missing(value):
        return ABSENT

    if value <= minimum + value_range / 3:
        return labels[0]
    if value <= minimum + 2 * value_range / 3:
        return labels[1]
    return labels[2]


def classify_by_range(
    rows: Sequence[Row],
    partition_by: Union[str, Sequence[str]],
    value_field: str,
    output_field: str,
    labels: Sequence[str] = INTAKE_LABELS
) -> List[Dict[str, Any]]:
    """
    Bucketize each row's value against the min/max of its partition.

    Input order is preserved.
    """
    materialized = list(rows)
    keys = (partition_by,) if isinstance(partition_by, str) else tuple(partition_by)
    ranges = {
        tuple(row[k] for k in keys): row
        for row in group_by(materialized, keys, {
            'Min_Count': min_of(value_field),
            'Max_Count': max_of(value_field),
        })
    }

    value_accessor = as_accessor(value_field)
    key_accessors = [as_accessor(k) for k in keys]
    output = []
    for row in materialized:
        span = ranges[tuple(accessor(row) for accessor in key_accessors)]
        classified = dict(row)
        if is_missing(span['Min_Count']):
            classified[output_field] = ABSENT
        else:
            classified[output_field] = bucketize(
                value_accessor(row),
                span['Min_Count'],
                span['Max_Count'] - span['Min_Count'],
                labels
            )
        output.append(classified)
    return output


def trend_label(delta) -> Any:
    """
    Label a period-over-period change.

    Returns:
        'Increase', 'Decrease', 'No Change', or ABSENT for a missing delta
    """
    if is_missing(delta):
        return ABSENT
    if delta > 0:
        return INCREASE
    if delta < 0:
        return DECREASE
    return NO_CHANGE


def label_trends(
    rows: Sequence[Row],
    delta_field: FieldRef,
    output_field: str = 'Trend',
    first_period_label: Any = ABSENT
) -> List[Dict[str, Any]]:
    """
    Add a trend label per row.

    Args:
        rows: Rows carrying a delta
        delta_field: Field name or accessor of the delta
        output_field: Name of the added label field
        first_period_label: Label used where the delta is missing; ABSENT by
            default, 'No Change' reproduces the legacy reports
    """
    accessor = as_accessor(delta_field)
    output = []
    for row in rows:
        labelled = dict(row)
        label = trend_label(accessor(row))
        labelled[output_field] = first_period_label if label is ABSENT else label
        output.append(labelled)
    return output
