"""
==================================================
Core infrastructure package for shelter analytics.
==================================================

This package provides centralized configuration management, logging
infrastructure and the error taxonomy used throughout the project.

Modules:
    config: Configuration management from environment variables
    logger: Centralized logging configuration and utilities
    exceptions: Errors raised while loading and analysing snapshots

Example:
    >>> from core.config import config
    >>> from core.logger import get_logger
    >>>
    >>> logger = get_logger(__name__)
    >>> logger.info(f"Reference date: {config.reference_date}")
"""

__version__ = "0.1.0"
__all__ = [
    'get_logger', 'setup_logging', 'config', 'Config', 'AnalysisSettings',
    'ShelterAnalyticsError', 'SchemaMismatch', 'TypeCoercionError',
    'DivisionUndefined', 'SnapshotLoadError'
]

from core.config import AnalysisSettings, Config, config
from core.exceptions import (
    DivisionUndefined,
    SchemaMismatch,
    ShelterAnalyticsError,
    SnapshotLoadError,
    TypeCoercionError,
)
from core.logger import get_logger, setup_logging
