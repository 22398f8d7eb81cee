#!/usr/bin/env python3
"""
HKDSE STATISTICS COMMAND LINE
Extract result tables into SQL, load them, and serve the dashboard.

Commands:
  extract  - CSV directory -> complete_analytics_import_<year>.sql
  load     - execute an import file into the SQLite database
  summary  - record counts per source CSV and INSERTs per generated SQL file
  verify   - cross-check a loaded database against the source CSVs
  serve    - run the dashboard API with uvicorn

Usage:
  hkdse-stats extract --csv-dir data/csv --year 2024
  hkdse-stats load --sql database/imports/complete_analytics_import_2024.sql
  hkdse-stats verify --csv-dir data/csv --database database/hkdse.db
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from tqdm import tqdm

from hkdse_stats import config
from hkdse_stats.core.csv_reader import read_csv_text
from hkdse_stats.core.extraction import load_sources, run_extraction
from hkdse_stats.db.loader import load_sql_file
from hkdse_stats.db.sql_emitter import (
    DIALECTS,
    default_output_name,
    render_import_file,
    write_import_file,
)
from hkdse_stats.db.verifier import verify_database
from hkdse_stats.exceptions import CSVParseError, MissingInputFileError

logger = logging.getLogger(__name__)


def cmd_extract(args) -> int:
    # argparse does not check defaults against choices; HKDSE_SQL_DIALECT may be anything
    if args.dialect not in DIALECTS:
        logger.error(f"❌ Unknown SQL dialect '{args.dialect}' (choose from {', '.join(sorted(DIALECTS))})")
        return 1

    sources = load_sources(args.csv_dir)
    result = run_extraction(
        sources,
        args.year,
        use_published_constants=args.published_constants,
    )
    print(result.generate_validation_report())

    output = Path(args.output) if args.output else Path(config.OUTPUT_DIR) / default_output_name(args.year)
    text = render_import_file(
        result,
        dialect=args.dialect,
        source_description=f"HKEAA {args.year} results statistics ({args.csv_dir})",
    )
    write_import_file(output, text)

    print(f"\n✅ SUCCESS! {result.record_count} records written to {output}")
    if result.errors:
        print(f"⚠️ {len(result.errors)} records skipped; see report above")
    return 0


def cmd_load(args) -> int:
    executed = load_sql_file(args.sql, f"sqlite:///{args.database}")
    print(f"✅ Loaded {executed} statements into {args.database}")
    return 0


def cmd_summary(args) -> int:
    csv_dir = Path(args.csv_dir)
    if not csv_dir.is_dir():
        raise MissingInputFileError(csv_dir, "CSV directory not found")

    print("📊 HKDSE Data Import Summary")
    print("=" * 40)

    print("\n📁 Source CSV Files:")
    total_records = 0
    files = sorted(csv_dir.glob("*.csv"))
    for path in tqdm(files, desc="Counting", unit="file", leave=False):
        rows = read_csv_text(path.read_text(encoding="utf-8-sig"), source=path.name)
        total_records += len(rows)
        tqdm.write(f"   {path.name}: {len(rows)} records")
    print(f"   Total: {total_records} records in {len(files)} files")

    print("\n💾 Generated SQL Files:")
    imports_dir = Path(args.imports_dir)
    sql_files = sorted(imports_dir.glob("*.sql")) if imports_dir.is_dir() else []
    if not sql_files:
        print(f"   ❌ No SQL files in {imports_dir}")
    for path in sql_files:
        content = path.read_text(encoding="utf-8")
        insert_count = content.count("INSERT INTO")
        size_kb = path.stat().st_size / 1024
        print(f"   ✅ {path.name}: {insert_count} INSERT statements, {size_kb:.1f}KB")
    return 0


def cmd_verify(args) -> int:
    database = Path(args.database)
    if not database.is_file():
        raise MissingInputFileError(database, "SQLite database not found")

    sources = load_sources(args.csv_dir)
    result = run_extraction(
        sources,
        args.year,
        use_published_constants=args.published_constants,
    )

    print(f"🔍 HKDSE {args.year} Data Verification Report")
    print("=" * 40)
    checks = verify_database(result, f"sqlite:///{database}")
    if not checks:
        print(f"❌ Nothing to verify for {args.year}")
        return 1

    mismatches = [check for check in checks if not check.matched]
    print(f"   {len(checks) - len(mismatches)}/{len(checks)} values match the source CSV files")
    if mismatches:
        print(f"⚠️ {len(mismatches)} discrepancies found")
        return 1

    print("✅ Verification complete! All imported values match")
    return 0


def cmd_serve(args) -> int:
    import uvicorn

    uvicorn.run("hkdse_stats.api.main:app", host=args.host, port=args.port)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="hkdse-stats",
        description="HKDSE examination statistics toolkit",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    extract = subparsers.add_parser("extract", help="Generate the SQL import file from CSVs")
    extract.add_argument("--csv-dir", default=config.CSV_DIR, help="Directory of result-table CSVs")
    extract.add_argument("--output", help="Output .sql path (default: OUTPUT_DIR/complete_analytics_import_<year>.sql)")
    extract.add_argument("--year", type=int, default=config.DEFAULT_YEAR, help="Examination year")
    extract.add_argument("--dialect", choices=sorted(DIALECTS), default=config.SQL_DIALECT, help="SQL dialect for literals")
    extract.add_argument(
        "--published-constants",
        action="store_true",
        help="Use published means, difficulty indices and totals instead of computed values",
    )
    extract.set_defaults(func=cmd_extract)

    load = subparsers.add_parser("load", help="Execute an import file into SQLite")
    load.add_argument("--sql", required=True, help="Path to the .sql import file")
    load.add_argument("--database", default=config.DATABASE_PATH, help="SQLite database path")
    load.set_defaults(func=cmd_load)

    summary = subparsers.add_parser("summary", help="Count source records and generated INSERTs")
    summary.add_argument("--csv-dir", default=config.CSV_DIR)
    summary.add_argument("--imports-dir", default=config.OUTPUT_DIR)
    summary.set_defaults(func=cmd_summary)

    verify = subparsers.add_parser("verify", help="Cross-check a loaded database against the CSVs")
    verify.add_argument("--csv-dir", default=config.CSV_DIR, help="Directory of result-table CSVs")
    verify.add_argument("--database", default=config.DATABASE_PATH, help="SQLite database path")
    verify.add_argument("--year", type=int, default=config.DEFAULT_YEAR, help="Examination year")
    verify.add_argument(
        "--published-constants",
        action="store_true",
        help="Compare against an import generated with --published-constants",
    )
    verify.set_defaults(func=cmd_verify)

    serve = subparsers.add_parser("serve", help="Run the dashboard API")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=config.PORT)
    serve.set_defaults(func=cmd_serve)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    logging.basicConfig(level=config.LOG_LEVEL, format=config.LOG_FORMAT)
    args = build_parser().parse_args(argv)

    try:
        return args.func(args)
    except (MissingInputFileError, CSVParseError) as e:
        logger.error(f"❌ {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
