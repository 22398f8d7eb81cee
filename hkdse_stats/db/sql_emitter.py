"""
SQL EMITTER - Render extracted records as an import script
Multi-row INSERT statements with dialect-correct literals

RENDERING RULES:
✅ One INSERT per table, all records as value tuples, terminated by ';'
✅ Strings quoted and escaped by the target dialect (O'Brien -> 'O''Brien')
✅ Numbers unquoted, booleans as the dialect's literal, None as NULL
✅ Replace-by-year: each table section starts with DELETE ... WHERE year = N

Statements are built with SQLAlchemy Core and compiled with literal binds,
so quoting never depends on string templating.
"""

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import mysql, postgresql, sqlite
from sqlalchemy.engine import Dialect

from hkdse_stats.db.schema import (
    candidates,
    dashboard_insights,
    subject_performance,
    university_readiness,
)

logger = logging.getLogger(__name__)

DIALECTS = {
    "sqlite": sqlite.dialect,
    "postgresql": postgresql.dialect,
    "mysql": mysql.dialect,
}


def get_dialect(name: str) -> Dialect:
    """Dialect instance for a short name"""
    try:
        return DIALECTS[name]()
    except KeyError:
        raise ValueError(f"Unsupported SQL dialect: {name} (choose from {', '.join(DIALECTS)})")


def compile_statement(statement, dialect: str = "sqlite") -> str:
    """Compile a Core statement to literal SQL text terminated by ';'"""
    compiled = statement.compile(
        dialect=get_dialect(dialect), compile_kwargs={"literal_binds": True}
    )
    return f"{compiled};"


def render_insert(
    table: sa.Table, rows: Sequence[Mapping[str, Any]], dialect: str = "sqlite"
) -> Optional[str]:
    """
    Render one multi-row INSERT for a table

    Args:
        table: Target table; its column order is the statement's column order
        rows: Column -> value mappings, one per record
        dialect: Target SQL dialect name

    Returns:
        Statement text, or None when there are no rows
    """
    if not rows:
        return None

    columns = [column.name for column in table.columns]
    values: List[Dict[str, Any]] = []
    for index, row in enumerate(rows):
        missing = [name for name in columns if name not in row]
        if missing:
            raise ValueError(f"{table.name} row {index}: missing columns {missing}")
        values.append({name: row[name] for name in columns})

    return compile_statement(sa.insert(table).values(values), dialect)


def render_delete(table: sa.Table, year: int, dialect: str = "sqlite") -> str:
    """DELETE statement clearing one year from a table"""
    return compile_statement(sa.delete(table).where(table.c.year == year), dialect)


def render_import_file(
    result,
    dialect: str = "sqlite",
    generated_at: Optional[datetime] = None,
    source_description: str = "Official HKDSE results statistics tables",
) -> str:
    """
    Render the complete import script for an ExtractionResult

    Args:
        result: ExtractionResult from the extraction pipeline
        dialect: Target SQL dialect name
        generated_at: Timestamp for the header (defaults to now, UTC)
        source_description: Free text for the header's Source line

    Returns:
        Header comment block followed by DELETE/INSERT sections
    """
    generated_at = generated_at or datetime.now(timezone.utc)
    year = result.year

    header = [
        f"-- HKDSE {year} Complete Analytics Data Import",
        f"-- Generated on {generated_at.isoformat()}",
        f"-- Source: {source_description}",
    ]
    if result.sources:
        header.append(f"-- Files: {', '.join(result.sources)}")
    if result.errors:
        header.append(f"-- Skipped records: {len(result.errors)}")

    sections = [
        ("Candidates", candidates, [result.candidate.to_row()] if result.candidate else []),
        ("Subject Performance", subject_performance, [s.to_row() for s in result.subjects]),
        ("University Readiness", university_readiness, [t.to_row() for t in result.tiers]),
        ("Dashboard Insights", dashboard_insights, [i.to_row(year) for i in result.insights]),
    ]

    blocks = ["\n".join(header)]
    for title, table, rows in sections:
        statement = render_insert(table, rows, dialect)
        if statement is None:
            logger.info(f"  ⏭️ {title}: no records")
            continue
        blocks.append(
            f"-- {title} ({len(rows)} records)\n{render_delete(table, year, dialect)}\n{statement}"
        )
        logger.info(f"  ✅ {title}: {len(rows)} records")

    return "\n\n".join(blocks) + "\n"


def default_output_name(year: int) -> str:
    return f"complete_analytics_import_{year}.sql"


def write_import_file(path, text: str) -> Path:
    """Write the script, creating parent directories"""
    output_path = Path(path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(text, encoding="utf-8")
    logger.info(f"📄 SQL file: {output_path}")
    return output_path


__all__ = [
    "DIALECTS",
    "get_dialect",
    "compile_statement",
    "render_insert",
    "render_delete",
    "render_import_file",
    "default_output_name",
    "write_import_file",
]
