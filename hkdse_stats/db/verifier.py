"""
IMPORT VERIFIER - Cross-check loaded statistics against the source CSVs
Re-extracts the result tables and compares every stored value

CHECKS:
✅ candidates: one row for the year, every count and ratio
✅ subject_performance: one row per subject code, levels, totals and rates
✅ university_readiness: one row per grade point range, counts and flags
✅ Rows missing from the database, or stored but no longer extracted, are discrepancies

Floats are compared to within half a hundredth (values are stored rounded to 2dp).
"""

import logging
import math
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from sqlalchemy import Table, create_engine, select

from hkdse_stats.core.extraction import ExtractionResult
from hkdse_stats.db.schema import candidates, subject_performance, university_readiness

logger = logging.getLogger(__name__)

FLOAT_TOLERANCE = 0.005
ROW_COLUMN = "(row)"


@dataclass
class FieldCheck:
    """One stored value compared with its freshly extracted counterpart"""

    table: str
    record: str
    column: str
    expected: Any
    found: Any

    @property
    def matched(self) -> bool:
        if isinstance(self.expected, float) and isinstance(self.found, (int, float)):
            return math.isclose(self.expected, self.found, abs_tol=FLOAT_TOLERANCE)
        return self.expected == self.found


def _stored_rows(conn, table: Table, year: int, key_column: Optional[str]) -> Dict[Any, Dict[str, Any]]:
    rows = conn.execute(select(table).where(table.c.year == year)).mappings().all()
    return {(row[key_column] if key_column else year): dict(row) for row in rows}


def _compare_table(
    conn,
    table: Table,
    year: int,
    expected_rows: Dict[Any, Dict[str, Any]],
    key_column: Optional[str] = None,
) -> List[FieldCheck]:
    stored = _stored_rows(conn, table, year, key_column)
    skip = {"year", key_column}
    checks = []

    for key, expected in expected_rows.items():
        record = str(key)
        row = stored.get(key)
        if row is None:
            checks.append(FieldCheck(table.name, record, ROW_COLUMN, "present", "missing"))
            continue
        checks.extend(
            FieldCheck(table.name, record, column, value, row.get(column))
            for column, value in expected.items()
            if column not in skip
        )

    for key in stored.keys() - expected_rows.keys():
        checks.append(FieldCheck(table.name, str(key), ROW_COLUMN, "absent", "present"))

    return checks


def collect_checks(result: ExtractionResult, conn) -> List[FieldCheck]:
    """Compare the rows stored for result.year with the extracted records"""
    year = result.year
    candidate_rows = {year: result.candidate.to_row()} if result.candidate else {}

    checks = _compare_table(conn, candidates, year, candidate_rows)
    checks += _compare_table(
        conn,
        subject_performance,
        year,
        {record.subject_code: record.to_row() for record in result.subjects},
        "subject_code",
    )
    checks += _compare_table(
        conn,
        university_readiness,
        year,
        {tier.grade_point_range: tier.to_row() for tier in result.tiers},
        "grade_point_range",
    )
    return checks


def _log_checks(checks: List[FieldCheck]):
    by_record: Dict[tuple, List[FieldCheck]] = {}
    for check in checks:
        by_record.setdefault((check.table, check.record), []).append(check)

    for (table, record), record_checks in by_record.items():
        mismatches = [check for check in record_checks if not check.matched]
        if not mismatches:
            logger.info(f"✓ {table} {record}: {len(record_checks)} values match")
            continue
        for check in mismatches:
            logger.warning(
                f"⚠️ {table} {record} {check.column}: "
                f"expected {check.expected}, found {check.found}"
            )


def verify_database(result: ExtractionResult, database_url: str) -> List[FieldCheck]:
    """
    Cross-check a loaded database against an extraction of the same CSVs

    Args:
        result: Fresh extraction of the source tables
        database_url: SQLAlchemy URL of the loaded database

    Returns:
        Every value compared; a check with matched == False is a discrepancy
    """
    engine = create_engine(database_url)
    try:
        with engine.connect() as conn:
            checks = collect_checks(result, conn)
    finally:
        engine.dispose()

    _log_checks(checks)
    return checks


__all__ = ["FieldCheck", "collect_checks", "verify_database"]
