"""
===============================================
Configuration management for shelter analytics.
===============================================

Loads all configuration from environment variables (.env file) and provides
a centralized Config singleton for application-wide access.

The configuration system ensures:
- Single source of truth for all settings
- Type conversion and validation
- An explicit "current date" so every report is reproducible

Example:
    >>> from core.config import config
    >>>
    >>> # Snapshot location
    >>> print(config.data.data_dir)
    >>>
    >>> # Question parameters
    >>> print(f"Staff month: {config.analysis.staff_month}")
"""

import os
from dataclasses import dataclass
from datetime import date, datetime
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Load environment variables from .env file
env_path = Path(__file__).parent.parent / '.env'
load_dotenv(dotenv_path=env_path)


def parse_month(value: str) -> str:
    """Validate a YYYY-MM month string and return it normalized.

    Raises:
        ValueError: If the value is not a valid year-month
    """
    return datetime.strptime(value.strip(), '%Y-%m').strftime('%Y-%m')


def parse_date(value: str) -> date:
    """Parse a YYYY-MM-DD date string.

    Raises:
        ValueError: If the value is not a valid ISO date
    """
    return datetime.strptime(value.strip(), '%Y-%m-%d').date()


@dataclass
class DataConfig:
    """Snapshot source settings.

    Attributes:
        data_dir: Directory holding the six CSV exports
        database_url: Optional SQLAlchemy URL to read the snapshot from
        db_schema: Schema (database) containing the six tables
    """

    data_dir: Path
    database_url: Optional[str] = None
    db_schema: Optional[str] = 'dallasanimalshelter'

    @property
    def use_database(self) -> bool:
        """True when the snapshot should be read from a database."""
        return bool(self.database_url)


@dataclass
class AnalysisSettings:
    """Parameters surfaced by the business questions.

    Attributes:
        reference_date: "Today" for stay durations and trailing windows
        staff_month: Year-month (YYYY-MM) for the staff workload ranking
        adoption_window_months: Length of the trailing adoption window
        top_staff: Rank cutoff for the staff ranking
        top_stays: Number of longest-staying animals to report
        intake_reference_month: Optional fixed month for the intake trend
            predicate; when None each admission uses its own intake month
        first_period_trend: Optional trend label for the first adoption month;
            when None that month has no trend (ABSENT)
    """

    reference_date: date
    staff_month: str = '2024-10'
    adoption_window_months: int = 12
    top_staff: int = 5
    top_stays: int = 10
    intake_reference_month: Optional[str] = None
    first_period_trend: Optional[str] = None

    def __post_init__(self):
        self.staff_month = parse_month(self.staff_month)
        if self.intake_reference_month:
            self.intake_reference_month = parse_month(self.intake_reference_month)
        if self.adoption_window_months < 1:
            raise ValueError("adoption_window_months must be at least 1")
        if self.top_staff < 1 or self.top_stays < 1:
            raise ValueError("top-N cutoffs must be at least 1")


@dataclass
class ProjectConfig:
    """Project-wide configuration settings.

    Attributes:
        project_root: Absolute path to project root directory
        logs_dir: Path to logs directory
        log_level: Default logging level
    """

    project_root: Path
    logs_dir: Path
    log_level: str = 'INFO'


class Config:
    """Centralized configuration manager.

    Provides access to all configuration settings loaded from environment
    variables (.env file).

    Attributes:
        data: DataConfig with snapshot source settings
        analysis: AnalysisSettings with question parameters
        project: ProjectConfig with project paths and log level

    Example:
        >>> config = Config()
        >>> print(config.analysis.reference_date)
    """

    def __init__(self):
        """Initialize configuration from environment variables.

        The reference date falls back to today's date, resolved once here so
        that nothing downstream reads the clock.
        """
        project_root = Path(__file__).parent.parent

        self.data = DataConfig(
            data_dir=Path(os.getenv('SHELTER_DATA_DIR', str(project_root / 'datasets'))),
            database_url=os.getenv('SHELTER_DATABASE_URL') or None,
            db_schema=os.getenv('SHELTER_DB_SCHEMA', 'dallasanimalshelter') or None
        )

        reference_date = os.getenv('SHELTER_REFERENCE_DATE')
        self.analysis = AnalysisSettings(
            reference_date=parse_date(reference_date) if reference_date else date.today(),
            staff_month=os.getenv('SHELTER_STAFF_MONTH', '2024-10'),
            adoption_window_months=int(os.getenv('SHELTER_ADOPTION_WINDOW_MONTHS', '12')),
            top_staff=int(os.getenv('SHELTER_TOP_STAFF', '5')),
            top_stays=int(os.getenv('SHELTER_TOP_STAYS', '10')),
            intake_reference_month=os.getenv('SHELTER_INTAKE_REFERENCE_MONTH') or None,
            first_period_trend=os.getenv('SHELTER_FIRST_PERIOD_TREND') or None
        )

        self.project = ProjectConfig(
            project_root=project_root,
            logs_dir=Path(os.getenv('LOG_DIR', str(project_root / 'logs'))),
            log_level=os.getenv('LOG_LEVEL', 'INFO')
        )

    @property
    def data_dir(self) -> Path:
        """Get the CSV snapshot directory."""
        return self.data.data_dir

    @property
    def reference_date(self) -> date:
        """Get the analysis reference date."""
        return self.analysis.reference_date


# Global configuration instance
config = Config()
