"""
=======================================
Shelter snapshot: the six source tables.
=======================================

ShelterDataset holds one immutable snapshot of the shelter's intake and
outcome records. It is built once, atomically, from raw records supplied
by a loader; every table is validated before any of them is published.

Tables (named after the source schema):
    animaladmission     Animal_Id, Impound_Number, Intake_Date, Intake_Type
    animaldetails       Animal_Id, Animal_Type, Animal_Breed
    exitstatus          Impound_Number, Outcome_Date, Outcome_Type
    medicalhistory      Animal_Id, Impound_Number, Intake_Condition
    shelterstaydetails  Impound_Number, Staff_Id
    kennelstatuslog     Kennel_Number, Log_Id, Kennel_Status

Example:
    >>> from dataset.snapshot import ShelterDataset
    >>>
    >>> dataset = ShelterDataset.from_rows({
    ...     'animaladmission': [...],
    ...     'animaldetails': [...],
    ...     ...
    ... })
    >>> dataset.is_currently_in_shelter('A1234')
    True
"""

import re
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple

from core.exceptions import SchemaMismatch
from core.logger import get_logger
from dataset.tables import FieldSpec, Row, Table, TableSchema

logger = get_logger(__name__)

_DIGITS = re.compile(r'([0-9]+)')


def impound_sort_key(impound_number: str) -> Tuple:
    """Natural ordering for impound numbers: K9 sorts before K10."""
    # re.split puts the captured digit runs at odd positions
    return tuple(
        (0, int(part), '') if position % 2 else (1, 0, part)
        for position, part in enumerate(_DIGITS.split(impound_number))
        if part
    )


def admission_order(row: Row) -> Tuple:
    """Sort key for an animal's admissions: intake date, then impound number."""
    return (row['Intake_Date'], impound_sort_key(row['Impound_Number']))


ANIMAL_ADMISSION = TableSchema(
    name='animaladmission',
    fields=(
        FieldSpec('Animal_Id'),
        FieldSpec('Impound_Number'),
        FieldSpec('Intake_Date', 'date'),
        FieldSpec('Intake_Type', nullable=True),
    ),
    indexes=('Animal_Id', 'Impound_Number'),
    unique_keys=('Impound_Number',)
)

ANIMAL_DETAILS = TableSchema(
    name='animaldetails',
    fields=(
        FieldSpec('Animal_Id'),
        FieldSpec('Animal_Type'),
        FieldSpec('Animal_Breed', nullable=True),
    ),
    indexes=('Animal_Id',),
    unique_keys=('Animal_Id',)
)

EXIT_STATUS = TableSchema(
    name='exitstatus',
    fields=(
        FieldSpec('Impound_Number'),
        FieldSpec('Outcome_Date', 'date', nullable=True),
        FieldSpec('Outcome_Type', nullable=True),
    ),
    indexes=('Impound_Number',),
    unique_keys=('Impound_Number',)
)

MEDICAL_HISTORY = TableSchema(
    name='medicalhistory',
    fields=(
        FieldSpec('Animal_Id'),
        FieldSpec('Impound_Number'),
        FieldSpec('Intake_Condition', nullable=True),
    ),
    indexes=('Animal_Id', 'Impound_Number')
)

SHELTER_STAY_DETAILS = TableSchema(
    name='shelterstaydetails',
    fields=(
        FieldSpec('Impound_Number'),
        FieldSpec('Staff_Id'),
    ),
    indexes=('Impound_Number',)
)

KENNEL_STATUS_LOG = TableSchema(
    name='kennelstatuslog',
    fields=(
        FieldSpec('Kennel_Number'),
        FieldSpec('Log_Id', 'int'),
        FieldSpec('Kennel_Status', nullable=True),
    ),
    indexes=('Kennel_Number',)
)

SHELTER_SCHEMAS: Dict[str, TableSchema] = {
    schema.name: schema
    for schema in (
        ANIMAL_ADMISSION,
        ANIMAL_DETAILS,
        EXIT_STATUS,
        MEDICAL_HISTORY,
        SHELTER_STAY_DETAILS,
        KENNEL_STATUS_LOG,
    )
}


class ShelterDataset:
    """
    Immutable snapshot of the six shelter tables.

    Attributes:
        admissions: animaladmission table
        details: animaldetails table
        exits: exitstatus table
        medical: medicalhistory table
        stays: shelterstaydetails table
        kennels: kennelstatuslog table
    """

    def __init__(self, tables: Mapping[str, Table]):
        missing = [name for name in SHELTER_SCHEMAS if name not in tables]
        if missing:
            raise SchemaMismatch(missing[0], table='snapshot')

        self._tables: Dict[str, Table] = dict(tables)
        self.admissions = self._tables['animaladmission']
        self.details = self._tables['animaldetails']
        self.exits = self._tables['exitstatus']
        self.medical = self._tables['medicalhistory']
        self.stays = self._tables['shelterstaydetails']
        self.kennels = self._tables['kennelstatuslog']

    @classmethod
    def from_rows(cls, records: Mapping[str, Iterable[Mapping[str, Any]]]) -> 'ShelterDataset':
        """
        Validate raw records for all six tables and build a dataset.

        Nothing is published unless every table validates.

        Args:
            records: Mapping of table name to an iterable of raw records

        Returns:
            New ShelterDataset

        Raises:
            SchemaMismatch: If a table is missing or a record lacks a field
            TypeCoercionError: If a value cannot be coerced to its type
        """
        tables = {}
        for name, schema in SHELTER_SCHEMAS.items():
            if name not in records:
                raise SchemaMismatch(name, table='snapshot')
            tables[name] = Table.from_records(schema, records[name])

        dataset = cls(tables)
        logger.info(f"✅ Snapshot loaded: {dataset.describe()}")
        return dataset

    def table(self, name: str) -> Table:
        """Return a table by its source name."""
        try:
            return self._tables[name]
        except KeyError:
            raise SchemaMismatch(name, table='snapshot')

    def describe(self) -> str:
        """One-line row count summary."""
        return ", ".join(f"{name}={len(table):,}" for name, table in self._tables.items())

    def latest_admission(self, animal_id: str) -> Optional[Row]:
        """Return the animal's most recent admission (latest intake, then impound number)."""
        admissions = self.admissions.lookup('Animal_Id', animal_id)
        if not admissions:
            return None
        return max(admissions, key=admission_order)

    def has_exited(self, impound_number: str) -> bool:
        """True if the admission has an exit row carrying an outcome date."""
        return any(
            row['Outcome_Date'] is not None
            for row in self.exits.lookup('Impound_Number', impound_number)
        )

    def is_currently_in_shelter(self, animal_id: str) -> bool:
        """True iff the animal's most recent admission has no recorded exit."""
        latest = self.latest_admission(animal_id)
        if latest is None:
            return False
        return not self.has_exited(latest['Impound_Number'])
