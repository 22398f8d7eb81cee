"""
Execute a generated import script against a SQLite database.
"""

import logging
import sqlite3
from pathlib import Path
from typing import Iterator

from sqlalchemy import create_engine

from hkdse_stats.db.schema import metadata
from hkdse_stats.exceptions import MissingInputFileError

logger = logging.getLogger(__name__)


def iter_statements(script: str) -> Iterator[str]:
    """Yield complete statements, skipping '--' comment lines"""
    buffer = []
    for line in script.split("\n"):
        if not buffer and (not line.strip() or line.lstrip().startswith("--")):
            continue
        buffer.append(line)
        candidate = "\n".join(buffer)
        if sqlite3.complete_statement(candidate):
            yield candidate.strip()
            buffer = []
    if buffer and "\n".join(buffer).strip():
        raise ValueError("Import script ends with an unterminated statement")


def load_sql_file(sql_path, database_url: str) -> int:
    """
    Create tables if needed and run every statement in one transaction

    Returns:
        Number of statements executed
    """
    path = Path(sql_path)
    if not path.is_file():
        raise MissingInputFileError(path, "SQL import file not found")

    engine = create_engine(database_url)
    metadata.create_all(engine)

    executed = 0
    try:
        with engine.begin() as conn:
            for statement in iter_statements(path.read_text(encoding="utf-8")):
                conn.exec_driver_sql(statement)
                executed += 1
    finally:
        engine.dispose()

    logger.info(f"✅ Executed {executed} statements from {path}")
    return executed
