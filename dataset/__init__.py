"""
========================================================
Relational dataset package for shelter snapshots.
========================================================

Typed, read-only, indexed tables for the six shelter tables, and the
loader that fills them from CSV exports or a database.

Modules:
    tables: FieldSpec, TableSchema, Table and the ABSENT marker
    snapshot: ShelterDataset and the six table schemas
    loader: SnapshotLoader for CSV directories and SQL databases

Example:
    >>> from dataset import SnapshotLoader
    >>>
    >>> dataset = SnapshotLoader().load_csv_directory('datasets')
    >>> len(dataset.admissions)
"""

__version__ = "0.1.0"
__all__ = [
    'ABSENT', 'Absent', 'is_absent', 'is_missing',
    'FieldSpec', 'TableSchema', 'Table',
    'ShelterDataset', 'SHELTER_SCHEMAS',
    'SnapshotLoader'
]

from dataset.loader import SnapshotLoader
from dataset.snapshot import SHELTER_SCHEMAS, ShelterDataset
from dataset.tables import ABSENT, Absent, FieldSpec, Table, TableSchema, is_absent, is_missing
