"""
==================================================
Comprehensive pytest suite for dataset/loader.py
==================================================

Tests for SnapshotLoader reading CSV exports and database tables.

Sections:
---------
1. Unit tests - Loader configuration
2. Integration tests - CSV directory and SQLite round trips
3. Edge case tests - Missing files, missing columns, missing tables

Available markers:
------------------
unit, integration, edge_case

How to Execute:
---------------
All tests:          pytest tests/tests_dataset/test_loader.py -v
"""

from datetime import date

import pandas as pd
import pytest
from sqlalchemy import create_engine

from core.exceptions import SchemaMismatch, SnapshotLoadError
from dataset.loader import SnapshotLoader
from dataset.snapshot import SHELTER_SCHEMAS


def write_csv_snapshot(directory, sample_rows, file_names=None):
    """Write every sample table to <directory>/<file>.csv."""
    file_names = file_names or {}
    for name, rows in sample_rows.items():
        df = pd.DataFrame(rows, columns=list(SHELTER_SCHEMAS[name].field_names))
        df.to_csv(directory / file_names.get(name, f"{name}.csv"), index=False)


def write_sql_snapshot(engine, sample_rows, skip=()):
    """Write every sample table to the database behind engine."""
    for name, rows in sample_rows.items():
        if name in skip:
            continue
        df = pd.DataFrame(rows, columns=list(SHELTER_SCHEMAS[name].field_names))
        df.to_sql(name, engine, index=False)


# =============================================================================
# SECTION 1: UNIT TESTS
# =============================================================================

@pytest.mark.unit
def test_loader_default_file_names():
    loader = SnapshotLoader()

    assert loader.file_names['animaladmission'] == 'animaladmission.csv'
    assert set(loader.file_names) == set(SHELTER_SCHEMAS)


@pytest.mark.unit
def test_loader_file_name_override():
    loader = SnapshotLoader(file_names={'animaladmission': 'admissions_2024.csv'})

    assert loader.file_names['animaladmission'] == 'admissions_2024.csv'
    assert loader.file_names['exitstatus'] == 'exitstatus.csv'


@pytest.mark.unit
def test_loader_rejects_unknown_table_override():
    with pytest.raises(ValueError, match="Unknown tables"):
        SnapshotLoader(file_names={'adoptions': 'adoptions.csv'})


# =============================================================================
# SECTION 2: INTEGRATION TESTS
# =============================================================================

@pytest.mark.integration
def test_load_csv_directory(tmp_path, sample_rows):
    write_csv_snapshot(tmp_path, sample_rows)

    dataset = SnapshotLoader().load_csv_directory(tmp_path)

    assert len(dataset.admissions) == 8
    assert dataset.exits.lookup('Impound_Number', 'K3')[0]['Outcome_Date'] is None
    assert dataset.exits.lookup('Impound_Number', 'K2')[0]['Outcome_Date'] == date(2024, 11, 10)
    assert dataset.kennels.rows[0]['Log_Id'] == 1
    assert dataset.is_currently_in_shelter('A4') is True


@pytest.mark.integration
def test_load_csv_directory_with_custom_file_names(tmp_path, sample_rows):
    write_csv_snapshot(tmp_path, sample_rows, {'exitstatus': 'outcomes.csv'})

    dataset = SnapshotLoader(file_names={'exitstatus': 'outcomes.csv'}).load_csv_directory(tmp_path)

    assert len(dataset.exits) == 5


@pytest.mark.integration
def test_load_database_from_engine(tmp_path, sample_rows):
    engine = create_engine(f"sqlite:///{tmp_path / 'shelter.db'}")
    write_sql_snapshot(engine, sample_rows)

    dataset = SnapshotLoader().load_database(engine)

    assert len(dataset.details) == 7
    assert dataset.medical.lookup('Animal_Id', 'C1')[0]['Intake_Condition'] is None
    assert dataset.is_currently_in_shelter('A2') is False
    engine.dispose()


@pytest.mark.integration
def test_load_database_from_url(tmp_path, sample_rows):
    db_path = tmp_path / 'shelter.db'
    engine = create_engine(f"sqlite:///{db_path}")
    write_sql_snapshot(engine, sample_rows)
    engine.dispose()

    dataset = SnapshotLoader().load_database(f"sqlite:///{db_path}")

    assert len(dataset.kennels) == 5


# =============================================================================
# SECTION 3: EDGE CASE TESTS
# =============================================================================

@pytest.mark.edge_case
def test_load_csv_directory_missing_directory(tmp_path):
    with pytest.raises(SnapshotLoadError, match="not found"):
        SnapshotLoader().load_csv_directory(tmp_path / 'missing')


@pytest.mark.edge_case
def test_load_csv_directory_missing_file(tmp_path, sample_rows):
    del sample_rows['kennelstatuslog']
    write_csv_snapshot(tmp_path, sample_rows)

    with pytest.raises(SnapshotLoadError, match="kennelstatuslog"):
        SnapshotLoader().load_csv_directory(tmp_path)


@pytest.mark.edge_case
def test_load_csv_directory_missing_column(tmp_path, sample_rows):
    write_csv_snapshot(tmp_path, sample_rows)
    pd.DataFrame({'Impound_Number': ['K1'], 'Outcome_Date': ['']}).to_csv(
        tmp_path / 'exitstatus.csv', index=False
    )

    with pytest.raises(SchemaMismatch) as exc_info:
        SnapshotLoader().load_csv_directory(tmp_path)

    assert exc_info.value.field == 'Outcome_Type'
    assert exc_info.value.table == 'exitstatus'


@pytest.mark.edge_case
def test_load_csv_directory_empty_file(tmp_path, sample_rows):
    write_csv_snapshot(tmp_path, sample_rows)
    (tmp_path / 'animaldetails.csv').write_text('')

    with pytest.raises(SnapshotLoadError, match="Failed to read"):
        SnapshotLoader().load_csv_directory(tmp_path)


@pytest.mark.edge_case
def test_load_database_missing_table(tmp_path, sample_rows):
    engine = create_engine(f"sqlite:///{tmp_path / 'shelter.db'}")
    write_sql_snapshot(engine, sample_rows, skip=('kennelstatuslog',))

    with pytest.raises(SnapshotLoadError, match="kennelstatuslog"):
        SnapshotLoader().load_database(engine)
    engine.dispose()
