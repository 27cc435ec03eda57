"""
========================================================
Classification and reporting layer.
========================================================

Derives labelled buckets and percentage breakdowns from aggregated counts
and runs the eight shelter business questions.

Modules:
    classification: bucketize, classify_by_range, trend_label, label_trends
    questions: the eight question functions, ResultTable and the QUESTIONS registry
    analytics: ShelterAnalytics batch runner and CSV export

Example:
    >>> from reports import ShelterAnalytics
    >>>
    >>> results = ShelterAnalytics(dataset, config.analysis).run_all()
    >>> results['population'].table.to_dataframe()
"""

__version__ = "0.1.0"
__all__ = [
    'bucketize', 'trend_label',
    'ResultTable', 'QUESTIONS',
    'ShelterAnalytics', 'QuestionResult', 'export_results'
]

from reports.analytics import QuestionResult, ShelterAnalytics, export_results
from reports.classification import bucketize, trend_label
from reports.questions import QUESTIONS, ResultTable
