"""
ROW INDEXER - Label-based lookups over parsed result tables
Locates rows by discriminator/description predicates and reads cross-tabulations

LOOKUP MODES:
✅ Row predicates: exact match, substring match, exclusion, combined with AND
✅ Row-label mode: one subject's grades are row labels, counts in a value column
✅ Column-suffix mode: the other subject's grades are header suffixes
   ("Attainment in English Language - 5**" -> "5**")

FAILURE POLICY:
Missing rows/columns raise MissingExpectedRowError / MissingExpectedColumnError.
Nothing is defaulted to 0 or NaN.
"""

import logging
import math
from typing import Dict, Iterable, List, Mapping, Optional

import pandas as pd

from hkdse_stats.core.models import CellValue, ParsedRow
from hkdse_stats.exceptions import MissingExpectedColumnError, MissingExpectedRowError

logger = logging.getLogger(__name__)

SUFFIX_SEPARATOR = " - "


class SourceTable:
    """A parsed result table with label-based row and column lookups"""

    def __init__(self, name: str, rows: List[ParsedRow]):
        """
        Args:
            name: Table identifier used in error messages (e.g. 'table3i')
            rows: Parsed rows in file order
        """
        self.name = name
        self.rows = rows
        self.columns: List[str] = list(rows[0].keys()) if rows else []
        self.frame = pd.DataFrame(
            [row.values for row in rows], columns=self.columns, dtype=object
        )

    def __len__(self) -> int:
        return len(self.rows)

    def has_column(self, column: str) -> bool:
        return column in self.columns

    def _require_column(self, column: str):
        if column not in self.columns:
            raise MissingExpectedColumnError(self.name, f"column '{column}'")

    def _labels(self, column: str) -> pd.Series:
        # grade labels like "5" are coerced to numbers, so compare on text
        return self.frame[column].map(as_label)

    def _mask(
        self,
        equals: Optional[Mapping[str, CellValue]] = None,
        contains: Optional[Mapping[str, str]] = None,
        not_equals: Optional[Mapping[str, CellValue]] = None,
    ) -> pd.Series:
        mask = pd.Series(True, index=self.frame.index)
        for column, expected in (equals or {}).items():
            self._require_column(column)
            mask &= self._labels(column) == as_label(expected)
        for column, fragment in (contains or {}).items():
            self._require_column(column)
            mask &= self.frame[column].astype(str).str.contains(fragment, regex=False)
        for column, excluded in (not_equals or {}).items():
            self._require_column(column)
            mask &= self._labels(column) != as_label(excluded)
        return mask

    def find_rows(
        self,
        equals: Optional[Mapping[str, CellValue]] = None,
        contains: Optional[Mapping[str, str]] = None,
        not_equals: Optional[Mapping[str, CellValue]] = None,
    ) -> List[ParsedRow]:
        """All rows satisfying every predicate, in file order"""
        if not self.rows:
            return []
        mask = self._mask(equals, contains, not_equals)
        return [self.rows[i] for i in self.frame.index[mask.to_numpy(dtype=bool)]]

    def find_row(
        self,
        equals: Optional[Mapping[str, CellValue]] = None,
        contains: Optional[Mapping[str, str]] = None,
        not_equals: Optional[Mapping[str, CellValue]] = None,
    ) -> ParsedRow:
        """First matching row; raises MissingExpectedRowError when none match"""
        matches = self.find_rows(equals, contains, not_equals)
        if not matches:
            raise MissingExpectedRowError(
                self.name, f"row matching {_describe(equals, contains, not_equals)}"
            )
        return matches[0]

    def value(self, row: ParsedRow, column: str) -> CellValue:
        """Cell value of a row; the column must exist"""
        self._require_column(column)
        return row[column]

    def number(self, row: ParsedRow, column: str) -> float:
        """Numeric cell value; blank or textual cells count as missing"""
        value = self.value(row, column)
        if isinstance(value, str):
            raise MissingExpectedColumnError(
                self.name, f"numeric value in column '{column}' (row {row.row_id}, got '{value}')"
            )
        return value

    def count(self, row: ParsedRow, column: str) -> int:
        """Numeric cell value as a candidate count; must be a finite whole number"""
        value = self.number(row, column)
        if not math.isfinite(value) or (isinstance(value, float) and not value.is_integer()):
            raise MissingExpectedColumnError(
                self.name, f"whole-number count in column '{column}' (row {row.row_id}, got {value})"
            )
        return int(value)

    def row_label_counts(
        self,
        label_column: str,
        value_column: str,
        labels: Optional[Iterable[str]] = None,
        equals: Optional[Mapping[str, CellValue]] = None,
        exclude_labels: Iterable[str] = ("Total",),
    ) -> Dict[str, int]:
        """
        Read counts where grade levels are row labels

        Args:
            label_column: Column holding the grade label (e.g. 'Attainment in Chinese Language')
            value_column: Column holding the count (usually 'Total')
            labels: Grade labels that must all be present; None reads every matching row
            equals: Extra row predicates (e.g. {'Type': 'Number'})
            exclude_labels: Row labels skipped when reading every row

        Returns:
            Mapping of grade label -> count
        """
        self._require_column(label_column)
        self._require_column(value_column)

        if labels is None:
            excluded = {as_label(label) for label in exclude_labels}
            rows = [
                row for row in self.find_rows(equals=equals)
                if as_label(row[label_column]) not in excluded
            ]
            if not rows:
                raise MissingExpectedRowError(
                    self.name, f"grade rows labelled in '{label_column}'"
                )
            return {as_label(row[label_column]): self.count(row, value_column) for row in rows}

        counts = {}
        for label in labels:
            criteria = dict(equals or {})
            criteria[label_column] = label
            row = self.find_row(equals=criteria)
            counts[label] = self.count(row, value_column)
        return counts

    def suffix_columns(self, prefix: str) -> Dict[str, str]:
        """Suffix after the last ' - ' -> header, for headers starting with prefix"""
        start = prefix + SUFFIX_SEPARATOR
        return {
            column.rsplit(SUFFIX_SEPARATOR, 1)[1]: column
            for column in self.columns
            if column.startswith(start)
        }

    def column_suffix_counts(
        self,
        prefix: str,
        row: ParsedRow,
        labels: Optional[Iterable[str]] = None,
    ) -> Dict[str, int]:
        """
        Read counts where grade levels are encoded as header suffixes

        Args:
            prefix: Shared header prefix (e.g. 'Attainment in English Language')
            row: Row to read from, normally the cross-tabulation Total row
            labels: Grade labels that must all be present; None reads every suffix

        Returns:
            Mapping of grade label -> count
        """
        columns = self.suffix_columns(prefix)
        if not columns:
            raise MissingExpectedColumnError(self.name, f"columns '{prefix}{SUFFIX_SEPARATOR}*'")

        wanted = list(labels) if labels is not None else list(columns)
        counts = {}
        for label in wanted:
            if label not in columns:
                raise MissingExpectedColumnError(
                    self.name, f"column '{prefix}{SUFFIX_SEPARATOR}{label}'"
                )
            counts[label] = self.count(row, columns[label])
        return counts


def as_label(value: CellValue) -> str:
    """Text form of a cell used for label matching (5 -> '5', 5.0 -> '5')"""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _describe(equals, contains, not_equals) -> str:
    parts = [f"{k} == {v!r}" for k, v in (equals or {}).items()]
    parts += [f"{k} contains {v!r}" for k, v in (contains or {}).items()]
    parts += [f"{k} != {v!r}" for k, v in (not_equals or {}).items()]
    return " and ".join(parts) or "any row"


__all__ = ["SourceTable", "SUFFIX_SEPARATOR", "as_label"]
