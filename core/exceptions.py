"""
==========================================
Error taxonomy for shelter analytics.
==========================================

Schema and type errors are fatal to the question that hits them and carry
enough context (table, field, row) to find the offending record. A zero
denominator is not fatal: percentage helpers convert DivisionUndefined into
the ABSENT marker.

Classes:
    ShelterAnalyticsError: Base class for every error raised by the project
    SchemaMismatch: An expected field is missing from a row
    TypeCoercionError: A date or number field cannot be parsed
    DivisionUndefined: A percentage was requested over a zero total
    SnapshotLoadError: A source file or table could not be read
"""

from typing import Any, Optional


class ShelterAnalyticsError(Exception):
    """Base exception for shelter analytics errors."""
    pass


class SchemaMismatch(ShelterAnalyticsError):
    """Raised when a referenced field is absent from a row.

    Attributes:
        table: Table (or pipeline stage) the row came from
        field: Name of the missing field
        row_index: Zero-based position of the row, when known
    """

    def __init__(self, field: str, table: Optional[str] = None, row_index: Optional[int] = None):
        self.field = field
        self.table = table
        self.row_index = row_index

        location = f" in table '{table}'" if table else ""
        if row_index is not None:
            location += f" at row {row_index}"
        super().__init__(f"Field '{field}' is missing{location}")


class TypeCoercionError(ShelterAnalyticsError):
    """Raised when a typed field cannot be parsed.

    Attributes:
        table: Table the row came from
        field: Name of the field that failed
        row_index: Zero-based position of the row
        value: Raw value that could not be coerced
    """

    def __init__(
        self,
        field: str,
        value: Any,
        expected: str,
        table: Optional[str] = None,
        row_index: Optional[int] = None
    ):
        self.field = field
        self.value = value
        self.expected = expected
        self.table = table
        self.row_index = row_index

        location = f" in table '{table}'" if table else ""
        if row_index is not None:
            location += f" at row {row_index}"
        super().__init__(
            f"Cannot coerce field '{field}'{location} to {expected}: {value!r}"
        )


class DivisionUndefined(ShelterAnalyticsError):
    """Raised internally when a percentage denominator is zero."""
    pass


class SnapshotLoadError(ShelterAnalyticsError):
    """Raised when a snapshot source file or table cannot be read."""
    pass
