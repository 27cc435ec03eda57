"""
=====================================
Shelter business questions.
=====================================

Each question is a pure function from a ShelterDataset (plus explicit
parameters) to a ResultTable with fixed columns and a defined order.
Nothing reads the clock: "today" is always passed in.

Questions:
1. current_population_by_type: animals currently in the shelter per type
2. monthly_intake_trends: monthly intake volume per type, classified Low/Moderate/High
3. top_surrender_breeds: breed with the most owner surrenders per type
4. top_staff_by_animals_handled: staff who handled the most animals in a month
5. dog_adoption_trend: monthly dog adoptions over a trailing window, with trend
6. critical_intake_outcomes: outcome mix for animals admitted in critical condition
7. available_kennels: kennels whose latest log entry says AVAILABLE
8. longest_staying_animals: animals in the shelter the longest, with medical condition

Example:
    >>> from reports.questions import current_population_by_type
    >>>
    >>> table = current_population_by_type(dataset)
    >>> table.to_dataframe()
"""

import calendar
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple

import pandas as pd

from core.config import AnalysisSettings
from dataset.snapshot import ShelterDataset, admission_order
from dataset.tables import ABSENT, Row, is_absent, is_missing
from pipeline.aggregates import count, count_distinct, max_of, min_of
from pipeline.operators import (
    DESC,
    filter_rows,
    group_by,
    inner_join,
    left_join,
    limit,
    order_by,
    percentage_share,
    select,
    window_lag,
    window_rank,
    with_columns,
)
from reports.classification import classify_by_range, label_trends


@dataclass(frozen=True)
class ResultTable:
    """
    Output of one business question.

    Attributes:
        key: Short question identifier (e.g. 'population')
        title: Human-readable question
        columns: Output column names, in order
        rows: Result rows, in the question's defined order
    """

    key: str
    title: str
    columns: Tuple[str, ...]
    rows: Tuple[Mapping[str, Any], ...]

    def __len__(self) -> int:
        return len(self.rows)

    def to_records(self) -> List[Dict[str, Any]]:
        """Rows as plain dicts (ABSENT values kept)."""
        return [{name: row[name] for name in self.columns} for row in self.rows]

    def to_dataframe(self) -> pd.DataFrame:
        """Rows as a DataFrame; ABSENT becomes None."""
        records = [
            {name: (None if is_absent(value) else value) for name, value in record.items()}
            for record in self.to_records()
        ]
        return pd.DataFrame(records, columns=list(self.columns), dtype=object)


# =============================================================================
# Shared helpers
# =============================================================================

def month_of(value: date) -> str:
    """YYYY-MM of a date."""
    return value.strftime('%Y-%m')


def last_day_of_month(value: date) -> date:
    """Last calendar day of the date's month."""
    return value.replace(day=calendar.monthrange(value.year, value.month)[1])


def trailing_window_start(reference_date: date, months: int) -> date:
    """reference_date minus a number of calendar months (clamped to month end)."""
    return (pd.Timestamp(reference_date) - pd.DateOffset(months=months)).date()


def same_text(value: Any, expected: str) -> bool:
    """Case-insensitive comparison that treats missing values as no match."""
    if is_missing(value):
        return False
    return str(value).strip().upper() == expected.strip().upper()


def has_no_outcome(row: Row) -> bool:
    """True when a joined admission has no exit row or a blank outcome date."""
    return is_missing(row['Outcome_Date'])


def _missing_as_absent(field: str) -> Callable[[Row], Any]:
    def accessor(row: Row) -> Any:
        value = row[field]
        return ABSENT if is_missing(value) else value
    return accessor


def _result(key: str, rows: Sequence[Row]) -> ResultTable:
    spec = QUESTIONS[key]
    return ResultTable(
        key=key,
        title=spec.title,
        columns=spec.columns,
        rows=tuple(select(rows, spec.columns))
    )


def current_residents(dataset: ShelterDataset) -> List[Dict[str, Any]]:
    """
    Animals whose most recent admission has no recorded exit.

    Returns:
        One row per resident animal: Animal_Id, Impound_Number, Intake_Date
    """
    ranked = window_rank(
        dataset.admissions,
        'Animal_Id',
        admission_order,
        descending=True,
        rank_field='Admission_Rank'
    )
    latest = filter_rows(ranked, lambda row: row['Admission_Rank'] == 1)
    with_exits = left_join(latest, dataset.exits, on='Impound_Number')
    outcomes = group_by(
        with_exits,
        ('Animal_Id', 'Impound_Number', 'Intake_Date'),
        {'Last_Outcome_Date': max_of('Outcome_Date')}
    )
    return filter_rows(outcomes, lambda row: is_missing(row['Last_Outcome_Date']))


# =============================================================================
# Questions
# =============================================================================

def current_population_by_type(dataset: ShelterDataset) -> ResultTable:
    """
    How many animals of each type are currently in the shelter, and what
    share of the current population does each type represent?
    """
    residents = inner_join(current_residents(dataset), dataset.details, on='Animal_Id')
    per_type = group_by(
        residents,
        'Animal_Type',
        {'Total_Current_Animals': count_distinct('Animal_Id')}
    )
    shares = percentage_share(per_type, 'Total_Current_Animals', 'Percentage_Of_Total')
    return _result(
        'population',
        order_by(shares, ('Total_Current_Animals', DESC), 'Animal_Type')
    )


def monthly_intake_trends(
    dataset: ShelterDataset,
    reference_month: Optional[str] = None
) -> ResultTable:
    """
    Monthly intake volume by animal type, classified High / Moderate / Low
    against that type's own monthly range.

    An admission counts towards its intake month when it has no outcome or
    its outcome falls after the last day of the reference month.

    Args:
        dataset: Snapshot
        reference_month: Optional fixed YYYY-MM reference; by default each
            admission is compared with the end of its own intake month
    """
    if reference_month:
        fixed_cutoff = last_day_of_month(datetime.strptime(reference_month, '%Y-%m').date())
        cutoff = lambda row: fixed_cutoff
    else:
        cutoff = lambda row: last_day_of_month(row['Intake_Date'])

    joined = left_join(
        inner_join(dataset.admissions, dataset.details, on='Animal_Id'),
        dataset.exits,
        on='Impound_Number'
    )
    counted = filter_rows(
        joined,
        lambda row: has_no_outcome(row) or row['Outcome_Date'] > cutoff(row)
    )
    monthly = group_by(
        counted,
        {'Animal_Type': 'Animal_Type', 'Intake_Month': lambda row: month_of(row['Intake_Date'])},
        {'Total_Animals': count_distinct('Animal_Id')}
    )
    classified = classify_by_range(monthly, 'Animal_Type', 'Total_Animals', 'Intake_Classification')
    return _result('intake_trends', order_by(classified, 'Animal_Type', 'Intake_Month'))


def top_surrender_breeds(
    dataset: ShelterDataset,
    intake_type: str = 'OWNER SURRENDER'
) -> ResultTable:
    """
    For each animal type, the breed with the most owner surrenders, its
    surrender count and its share of the type's surrenders. Tied breeds
    are all reported.
    """
    surrenders = filter_rows(
        inner_join(dataset.admissions, dataset.details, on='Animal_Id'),
        lambda row: same_text(row['Intake_Type'], intake_type)
    )
    per_breed = group_by(
        surrenders,
        ('Animal_Type', 'Animal_Breed'),
        {'Total_Surrenders': count()}
    )
    shares = percentage_share(
        per_breed, 'Total_Surrenders', 'Surrender_Percentage', partition_by='Animal_Type'
    )
    ranked = window_rank(shares, 'Animal_Type', 'Surrender_Percentage', rank_field='Surrender_Rank')
    top = filter_rows(ranked, lambda row: row['Surrender_Rank'] == 1)
    return _result('surrenders', order_by(top, 'Animal_Type', 'Animal_Breed'))


def top_staff_by_animals_handled(
    dataset: ShelterDataset,
    month: str,
    top_n: int = 5
) -> ResultTable:
    """
    Staff members who handled the most distinct animals admitted in a month.

    Args:
        dataset: Snapshot
        month: Intake month, YYYY-MM
        top_n: Rank cutoff; ties at the cutoff are all kept
    """
    handled = filter_rows(
        inner_join(dataset.stays, dataset.admissions, on='Impound_Number'),
        lambda row: month_of(row['Intake_Date']) == month
    )
    per_staff = group_by(
        handled,
        'Staff_Id',
        {'Total_Animals_Handled': count_distinct('Animal_Id')}
    )
    ranked = window_rank(per_staff, None, 'Total_Animals_Handled', rank_field='Staff_Rank')
    top = filter_rows(ranked, lambda row: row['Staff_Rank'] <= top_n)
    return _result('staff', order_by(top, 'Staff_Rank', 'Staff_Id'))


def dog_adoption_trend(
    dataset: ShelterDataset,
    reference_date: date,
    window_months: int = 12,
    animal_type: str = 'DOG',
    outcome_type: str = 'ADOPTION',
    first_period_label: Any = ABSENT
) -> ResultTable:
    """
    Monthly dog adoptions since reference_date minus window_months, with the
    previous month's count, the change and an Increase/Decrease/No Change trend.

    The earliest month has no previous month: its previous count, change
    and trend are ABSENT unless first_period_label says otherwise.
    """
    since = trailing_window_start(reference_date, window_months)
    adoptions = filter_rows(
        inner_join(
            inner_join(dataset.exits, dataset.admissions, on='Impound_Number'),
            dataset.details,
            on='Animal_Id'
        ),
        lambda row: (
            same_text(row['Animal_Type'], animal_type)
            and same_text(row['Outcome_Type'], outcome_type)
            and not has_no_outcome(row)
            and row['Outcome_Date'] >= since
        )
    )
    monthly = group_by(
        adoptions,
        {'Adoption_Month': lambda row: month_of(row['Outcome_Date'])},
        {'Total_Dog_Adoptions': count()}
    )
    lagged = window_lag(
        monthly, 'Adoption_Month', 'Total_Dog_Adoptions', lag_field='Previous_Month_Adoptions'
    )
    changes = with_columns(lagged, {
        'Month_to_Month_Change': lambda row: (
            ABSENT if is_missing(row['Previous_Month_Adoptions'])
            else row['Total_Dog_Adoptions'] - row['Previous_Month_Adoptions']
        )
    })
    trended = label_trends(changes, 'Month_to_Month_Change', 'Trend', first_period_label)
    return _result('adoptions', order_by(trended, 'Adoption_Month'))


def critical_intake_outcomes(
    dataset: ShelterDataset,
    condition: str = 'CRITICAL'
) -> ResultTable:
    """
    Outcome mix (count and percentage) for animals admitted in critical
    condition. Admissions without an outcome are reported as an ABSENT
    outcome type.
    """
    critical = filter_rows(
        dataset.medical,
        lambda row: same_text(row['Intake_Condition'], condition)
    )
    outcomes = left_join(
        inner_join(critical, dataset.details, on='Animal_Id'),
        dataset.exits,
        on='Impound_Number'
    )
    per_outcome = group_by(
        outcomes,
        {'Outcome_Type': _missing_as_absent('Outcome_Type')},
        {'Total_Outcomes': count()}
    )
    shares = percentage_share(per_outcome, 'Total_Outcomes', 'Outcome_Percentage')
    return _result(
        'critical_outcomes',
        order_by(shares, ('Outcome_Percentage', DESC), 'Outcome_Type')
    )


def available_kennels(
    dataset: ShelterDataset,
    status: str = 'AVAILABLE'
) -> ResultTable:
    """
    Number of kennels whose latest log entry (highest Log_Id) has the given
    status. Empty when no kennel currently has it.
    """
    ranked = window_rank(dataset.kennels, 'Kennel_Number', 'Log_Id', rank_field='Log_Rank')
    latest = filter_rows(ranked, lambda row: row['Log_Rank'] == 1)
    matching = filter_rows(latest, lambda row: same_text(row['Kennel_Status'], status))
    per_status = group_by(
        matching,
        {'Kennel_Status': lambda row: row['Kennel_Status'].strip().upper()},
        {'Total_Available_Kennels': count()}
    )
    return _result('kennels', order_by(per_status, ('Total_Available_Kennels', DESC)))


def longest_staying_animals(
    dataset: ShelterDataset,
    reference_date: date,
    top_n: int = 10
) -> ResultTable:
    """
    The animals with open admissions that have been in the shelter longest,
    measured from their earliest open intake to reference_date, with every
    intake condition on record for them.
    """
    open_admissions = filter_rows(
        left_join(dataset.admissions, dataset.exits, on='Impound_Number'),
        has_no_outcome
    )
    stays = group_by(open_admissions, 'Animal_Id', {'Intake_Date': min_of('Intake_Date')})
    durations = with_columns(stays, {
        'Days_Stayed': lambda row: (reference_date - row['Intake_Date']).days
    })
    top = limit(order_by(durations, ('Days_Stayed', DESC), 'Animal_Id'), top_n)
    detailed = left_join(
        inner_join(top, dataset.details, on='Animal_Id'),
        dataset.medical,
        on='Animal_Id'
    )
    described = with_columns(detailed, {
        'Current_Medical_Condition': lambda row: row['Intake_Condition']
    })
    return _result('longest_stays', order_by(described, ('Days_Stayed', DESC), 'Animal_Id'))


# =============================================================================
# Registry
# =============================================================================

@dataclass(frozen=True)
class QuestionSpec:
    """
    Registry entry for one question.

    Attributes:
        title: Human-readable question
        columns: Output columns
        function: Question implementation
        parameters: Maps AnalysisSettings to the function's keyword arguments
    """

    title: str
    columns: Tuple[str, ...]
    function: Callable[..., ResultTable]
    parameters: Callable[[AnalysisSettings], Dict[str, Any]] = lambda settings: {}


QUESTIONS: Dict[str, QuestionSpec] = {
    'population': QuestionSpec(
        title='Current shelter population by animal type',
        columns=('Animal_Type', 'Total_Current_Animals', 'Percentage_Of_Total'),
        function=current_population_by_type
    ),
    'intake_trends': QuestionSpec(
        title='Monthly intake trends by animal type',
        columns=('Animal_Type', 'Intake_Month', 'Total_Animals', 'Intake_Classification'),
        function=monthly_intake_trends,
        parameters=lambda settings: {'reference_month': settings.intake_reference_month}
    ),
    'surrenders': QuestionSpec(
        title='Breed with the most owner surrenders per animal type',
        columns=('Animal_Type', 'Animal_Breed', 'Total_Surrenders', 'Surrender_Percentage'),
        function=top_surrender_breeds
    ),
    'staff': QuestionSpec(
        title='Staff members who handled the most animals',
        columns=('Staff_Id', 'Total_Animals_Handled'),
        function=top_staff_by_animals_handled,
        parameters=lambda settings: {'month': settings.staff_month, 'top_n': settings.top_staff}
    ),
    'adoptions': QuestionSpec(
        title='Dog adoptions over the trailing window',
        columns=(
            'Adoption_Month', 'Total_Dog_Adoptions', 'Previous_Month_Adoptions',
            'Month_to_Month_Change', 'Trend'
        ),
        function=dog_adoption_trend,
        parameters=lambda settings: {
            'reference_date': settings.reference_date,
            'window_months': settings.adoption_window_months,
            'first_period_label': settings.first_period_trend or ABSENT,
        }
    ),
    'critical_outcomes': QuestionSpec(
        title='Outcomes of animals admitted in critical condition',
        columns=('Outcome_Type', 'Total_Outcomes', 'Outcome_Percentage'),
        function=critical_intake_outcomes
    ),
    'kennels': QuestionSpec(
        title='Kennels currently available',
        columns=('Kennel_Status', 'Total_Available_Kennels'),
        function=available_kennels
    ),
    'longest_stays': QuestionSpec(
        title='Animals staying in the shelter the longest',
        columns=(
            'Animal_Id', 'Animal_Type', 'Animal_Breed', 'Intake_Date',
            'Days_Stayed', 'Current_Medical_Condition'
        ),
        function=longest_staying_animals,
        parameters=lambda settings: {
            'reference_date': settings.reference_date,
            'top_n': settings.top_stays,
        }
    ),
}
