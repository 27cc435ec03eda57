"""
=================================================
Batch runner for the shelter business questions.
=================================================

ShelterAnalytics runs one or all questions against a loaded snapshot.
Questions are independent: a schema or type error in one question marks
that result FAILED and the remaining questions still run.

Architecture:
    ShelterDataset + AnalysisSettings → question functions → QuestionResult

Example:
    >>> from reports.analytics import ShelterAnalytics, export_results
    >>>
    >>> analytics = ShelterAnalytics(dataset, config.analysis, monitor_performance=True)
    >>> results = analytics.run_all()
    >>> export_results(results, 'reports_out')
"""

import time
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Union

from core.config import AnalysisSettings
from core.exceptions import SchemaMismatch, TypeCoercionError
from core.logger import get_logger
from dataset.snapshot import ShelterDataset
from logs.performance_monitor import PerformanceMonitor
from reports.questions import QUESTIONS, ResultTable

logger = get_logger(__name__)

STATUS_SUCCESS = 'SUCCESS'
STATUS_FAILED = 'FAILED'


@dataclass(frozen=True)
class QuestionResult:
    """
    Outcome of running one question.

    Attributes:
        key: Question identifier
        status: SUCCESS or FAILED
        table: Result table when successful
        error: Error message when failed
        duration_seconds: Wall-clock time spent
    """

    key: str
    status: str
    table: Optional[ResultTable] = None
    error: Optional[str] = None
    duration_seconds: float = 0.0

    @property
    def succeeded(self) -> bool:
        return self.status == STATUS_SUCCESS


class ShelterAnalytics:
    """
    Runs business questions against one immutable snapshot.

    Attributes:
        dataset: Snapshot to analyse
        settings: Question parameters
        perf_monitor: PerformanceMonitor when monitoring is enabled
    """

    def __init__(
        self,
        dataset: ShelterDataset,
        settings: AnalysisSettings,
        monitor_performance: bool = False
    ):
        self.dataset = dataset
        self.settings = settings
        self.perf_monitor = PerformanceMonitor() if monitor_performance else None

    def run_question(self, key: str) -> QuestionResult:
        """
        Run a single question.

        Args:
            key: Question identifier (see reports.questions.QUESTIONS)

        Returns:
            QuestionResult; schema and type errors are captured as FAILED

        Raises:
            KeyError: If key is not a known question
        """
        if key not in QUESTIONS:
            raise KeyError(f"Unknown question '{key}'. Choose from: {', '.join(QUESTIONS)}")

        spec = QUESTIONS[key]
        parameters = spec.parameters(self.settings)
        logger.info(f"📊 {spec.title}")
        start = time.perf_counter()

        try:
            if self.perf_monitor:
                with self.perf_monitor.monitor_process(key) as pm:
                    table = spec.function(self.dataset, **parameters)
                    pm.record_metric('rows_output', len(table), 'rows')
            else:
                table = spec.function(self.dataset, **parameters)
        except (SchemaMismatch, TypeCoercionError) as e:
            duration = time.perf_counter() - start
            logger.error(f"❌ Question '{key}' failed: {e}")
            return QuestionResult(key=key, status=STATUS_FAILED, error=str(e), duration_seconds=duration)

        duration = time.perf_counter() - start
        logger.info(f"✅ {key}: {len(table):,} rows")
        return QuestionResult(key=key, status=STATUS_SUCCESS, table=table, duration_seconds=duration)

    def run_all(self, keys: Optional[Iterable[str]] = None) -> Dict[str, QuestionResult]:
        """
        Run several questions (all by default) independently.

        Returns:
            Mapping of question key to QuestionResult, in run order
        """
        selected: List[str] = list(keys) if keys else list(QUESTIONS)
        results = {key: self.run_question(key) for key in selected}

        succeeded = sum(1 for result in results.values() if result.succeeded)
        logger.info("=" * 70)
        logger.info(f"REPORT RUN COMPLETE: {succeeded}/{len(results)} questions succeeded")
        logger.info("=" * 70)
        return results


def export_results(results: Dict[str, QuestionResult], output_dir: Union[str, Path]) -> List[Path]:
    """
    Write each successful result table to <output_dir>/<key>.csv.

    Returns:
        Paths written
    """
    output_path = Path(output_dir)
    output_path.mkdir(parents=True, exist_ok=True)

    written = []
    for key, result in results.items():
        if not result.succeeded:
            logger.warning(f"⚠️  Skipping export of failed question '{key}'")
            continue
        csv_path = output_path / f"{key}.csv"
        result.table.to_dataframe().to_csv(csv_path, index=False)
        written.append(csv_path)
        logger.info(f"💾 Wrote {csv_path}")
    return written
