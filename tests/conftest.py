"""
Shared pytest configuration and fixtures for all tests.

Key fixtures:
- snapshot_factory: builds a ShelterDataset from compact row tuples
- sample_rows: raw rows of a small but complete shelter snapshot
- shelter_dataset: ShelterDataset built from sample_rows
"""

import sys
from pathlib import Path

import pytest

# Add project root to sys.path to enable importing project modules
# This allows tests to import from 'core', 'dataset', 'reports', etc. without installation
project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from dataset.snapshot import SHELTER_SCHEMAS, ShelterDataset  # noqa: E402

# Positional column order used by the row tuples below
TABLE_COLUMNS = {name: schema.field_names for name, schema in SHELTER_SCHEMAS.items()}

# Reference date the expected values in the report tests are computed against
REFERENCE_DATE = '2024-12-31'

SAMPLE_ROWS = {
    # A1: single open admission. A2: adopted. A3: exit row with blank outcome.
    # A4: readmitted after an adoption. C1/C2: cats. A5: adopted in the same month.
    'animaladmission': [
        ('A1', 'K1', '2024-10-01', 'OWNER SURRENDER'),
        ('A2', 'K2', '2024-10-05', 'OWNER SURRENDER'),
        ('A3', 'K3', '2024-09-15', 'STRAY'),
        ('A4', 'K4', '2024-08-01', 'STRAY'),
        ('A4', 'K5', '2024-11-01', 'STRAY'),
        ('C1', 'K6', '2024-10-12', 'OWNER SURRENDER'),
        ('C2', 'K7', '2024-10-20', 'Owner Surrender'),
        ('A5', 'K8', '2024-11-02', 'STRAY'),
    ],
    'animaldetails': [
        ('A1', 'DOG', 'Labrador'),
        ('A2', 'DOG', 'Labrador'),
        ('A3', 'DOG', 'Pit Bull'),
        ('A4', 'DOG', 'Pit Bull'),
        ('A5', 'DOG', 'Beagle'),
        ('C1', 'CAT', 'Siamese'),
        ('C2', 'CAT', 'Tabby'),
    ],
    'exitstatus': [
        ('K2', '2024-11-10', 'ADOPTION'),
        ('K3', '', ''),
        ('K4', '2024-08-20', 'ADOPTION'),
        ('K7', '2024-12-05', 'ADOPTION'),
        ('K8', '2024-11-25', 'adoption'),
    ],
    'medicalhistory': [
        ('A1', 'K1', 'Critical'),
        ('A2', 'K2', 'CRITICAL'),
        ('A3', 'K3', 'Critical'),
        ('A4', 'K4', 'CRITICAL'),
        ('A4', 'K5', 'Stable'),
        ('C1', 'K6', ''),
        ('C2', 'K7', 'critical'),
    ],
    'shelterstaydetails': [
        ('K1', 'S1'),
        ('K2', 'S1'),
        ('K3', 'S1'),
        ('K5', 'S2'),
        ('K6', 'S2'),
        ('K7', 'S3'),
    ],
    'kennelstatuslog': [
        ('KN1', '1', 'AVAILABLE'),
        ('KN2', '2', 'OCCUPIED'),
        ('KN3', '3', 'AVAILABLE'),
        ('KN1', '4', 'OCCUPIED'),
        ('KN2', '5', 'available'),
    ],
}


def rows_to_records(table_name, rows):
    """Turn positional row tuples into raw records keyed by column name."""
    columns = TABLE_COLUMNS[table_name]
    return [dict(zip(columns, row)) for row in rows]


def pytest_configure(config):
    """Register custom markers for test categorization."""
    config.addinivalue_line("markers", "unit: Unit tests - isolated function-level tests")
    config.addinivalue_line("markers", "integration: Integration tests - component interactions")
    config.addinivalue_line("markers", "smoke: Smoke tests - basic functionality checks")
    config.addinivalue_line("markers", "edge_case: Edge case tests - boundary conditions")
    config.addinivalue_line("markers", "e2e: End-to-end tests - complete workflow tests")


@pytest.fixture
def snapshot_factory():
    """
    Factory building a ShelterDataset from row tuples.

    Tables not passed are empty.

    Example:
        >>> dataset = snapshot_factory(
        ...     animaladmission=[('A1', 'K1', '2024-10-01', 'STRAY')],
        ...     animaldetails=[('A1', 'DOG', 'Labrador')],
        ... )
    """
    def factory(**tables):
        unknown = set(tables) - set(TABLE_COLUMNS)
        if unknown:
            raise ValueError(f"Unknown tables: {unknown}")
        return ShelterDataset.from_rows({
            name: rows_to_records(name, tables.get(name, ()))
            for name in TABLE_COLUMNS
        })

    return factory


@pytest.fixture
def sample_rows():
    """Raw row tuples of the sample snapshot, per table."""
    return {name: list(rows) for name, rows in SAMPLE_ROWS.items()}


@pytest.fixture
def shelter_dataset(snapshot_factory, sample_rows):
    """The sample snapshot as a ShelterDataset."""
    return snapshot_factory(**sample_rows)
