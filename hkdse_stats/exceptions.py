"""
Exception hierarchy for the HKDSE statistics toolkit.

ERROR CLASSES:
- MissingInputFileError: required CSV file/directory is absent (fatal)
- CSVParseError: malformed CSV text, reported with its line number (fatal)
- ExpectationError: a source table lacks a row/column the extraction needs;
  aborts only the record being built
- RecordValidationError: a record constructor rejected its inputs
"""

from typing import Optional


class HKDSEStatsError(Exception):
    """Base class for all toolkit errors"""


class MissingInputFileError(HKDSEStatsError):
    """A required input file or directory does not exist"""

    def __init__(self, path, detail: Optional[str] = None):
        self.path = path
        message = f"Input not found: {path}"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)


class CSVParseError(HKDSEStatsError):
    """CSV text could not be split into fields"""

    def __init__(self, message: str, line_number: int, source: str = "<text>"):
        self.line_number = line_number
        self.source = source
        super().__init__(f"{source}, line {line_number}: {message}")


class ExpectationError(HKDSEStatsError):
    """A source table does not contain data an extraction relies on"""

    def __init__(self, table: str, expected: str):
        self.table = table
        self.expected = expected
        super().__init__(f"{table}: expected {expected}")


class MissingExpectedRowError(ExpectationError):
    """No row matched the extraction predicate"""


class MissingExpectedColumnError(ExpectationError):
    """A column (or column family) the extraction reads is absent"""


class RecordValidationError(HKDSEStatsError):
    """Derived values failed record validation"""

    def __init__(self, record_type: str, identifier: str, detail: str):
        self.record_type = record_type
        self.identifier = identifier
        super().__init__(f"{record_type} {identifier}: {detail}")


__all__ = [
    "HKDSEStatsError",
    "MissingInputFileError",
    "CSVParseError",
    "ExpectationError",
    "MissingExpectedRowError",
    "MissingExpectedColumnError",
    "RecordValidationError",
]
