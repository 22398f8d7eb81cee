"""
Unit Tests for the SQL Emitter and Loader

Tests for:
- Multi-row INSERT rendering and literal quoting
- Replace-by-year DELETE statements
- Dialect-specific boolean literals
- Complete import scripts executing against SQLite
"""

from datetime import datetime, timezone

import pytest
from sqlalchemy import create_engine, func, select
from sqlalchemy.exc import OperationalError

from hkdse_stats.core.calculators.metrics import build_grade_point_tier
from hkdse_stats.core.models import DashboardInsight
from hkdse_stats.db import loader
from hkdse_stats.db.loader import iter_statements, load_sql_file
from hkdse_stats.db.schema import (
    dashboard_insights,
    metadata,
    subject_performance,
    university_readiness,
)
from hkdse_stats.db.sql_emitter import (
    default_output_name,
    get_dialect,
    render_delete,
    render_import_file,
    render_insert,
    write_import_file,
)
from hkdse_stats.exceptions import MissingInputFileError


@pytest.fixture
def insight_rows():
    first = DashboardInsight(
        category="key_findings",
        key="english_challenge",
        title="English Language Challenge",
        value="2.68",
        unit="/7",
        description="Candidates' lowest mean among core subjects",
        significance_level="important",
    )
    second = DashboardInsight(
        category="demographics",
        key="gender_balance",
        title="Gender Balance",
        value="5.0",
        unit="% more female",
        significance_level="notable",
    )
    return [first.to_row(2024), second.to_row(2024)]


@pytest.fixture
def sqlite_engine():
    engine = create_engine("sqlite://")
    metadata.create_all(engine)
    yield engine
    engine.dispose()


class TestRenderInsert:
    """Tests for render_insert"""

    def test_single_statement_with_all_rows(self, insight_rows):
        statement = render_insert(dashboard_insights, insight_rows)

        assert statement.startswith("INSERT INTO dashboard_insights")
        assert statement.count("INSERT INTO") == 1
        assert statement.count("), (") == 1
        assert statement.endswith(";")

    def test_quotes_are_escaped(self, insight_rows):
        statement = render_insert(dashboard_insights, insight_rows)

        assert "'Candidates'' lowest mean among core subjects'" in statement

    def test_numbers_are_unquoted(self, insight_rows):
        statement = render_insert(dashboard_insights, insight_rows)

        assert "(2024, " in statement
        assert "'2024'" not in statement

    def test_empty_rows(self):
        assert render_insert(dashboard_insights, []) is None

    def test_missing_column(self, insight_rows):
        del insight_rows[0]["display_unit"]

        with pytest.raises(ValueError):
            render_insert(dashboard_insights, insight_rows)

    def test_none_renders_null(self, extraction_result):
        rows = [record.to_row() for record in extraction_result.subjects]
        statement = render_insert(subject_performance, rows)

        assert "NULL" in statement

    def test_postgresql_booleans(self):
        tier = build_grade_point_tier(2024, 33, 35, 20, 25, 20, 25, bases=(300, 350))
        statement = render_insert(university_readiness, [tier.to_row()], "postgresql")

        assert "true" in statement

    def test_rendered_rows_round_trip(self, sqlite_engine, insight_rows):
        """Test the rendered statement executes and stores the exact text"""
        with sqlite_engine.begin() as conn:
            conn.exec_driver_sql(render_insert(dashboard_insights, insight_rows))
            stored = conn.execute(
                select(dashboard_insights.c.description).where(
                    dashboard_insights.c.insight_key == "english_challenge"
                )
            ).scalar_one()

        assert stored == "Candidates' lowest mean among core subjects"

    def test_unknown_dialect(self):
        with pytest.raises(ValueError):
            get_dialect("oracle")


class TestRenderDelete:
    def test_delete_by_year(self):
        statement = render_delete(subject_performance, 2024)

        assert statement.startswith("DELETE FROM subject_performance")
        assert "2024" in statement
        assert statement.endswith(";")


class TestImportFile:
    """Tests for render_import_file / write_import_file / load_sql_file"""

    def test_header(self, extraction_result):
        generated_at = datetime(2024, 7, 17, 9, 30, tzinfo=timezone.utc)
        text = render_import_file(
            extraction_result, generated_at=generated_at, source_description="HKEAA tables"
        )
        lines = text.splitlines()

        assert lines[0] == "-- HKDSE 2024 Complete Analytics Data Import"
        assert lines[1] == "-- Generated on 2024-07-17T09:30:00+00:00"
        assert lines[2] == "-- Source: HKEAA tables"

    def test_sections(self, extraction_result):
        text = render_import_file(extraction_result)

        assert text.count("DELETE FROM") == 4
        assert text.count("INSERT INTO") == 4

    def test_load_is_replace_by_year(self, tmp_path, extraction_result):
        """Test loading the same script twice leaves one copy of each record"""
        path = write_import_file(
            tmp_path / "imports" / default_output_name(2024), render_import_file(extraction_result)
        )
        database_url = f"sqlite:///{tmp_path / 'stats.db'}"

        assert load_sql_file(path, database_url) == 8
        assert load_sql_file(path, database_url) == 8

        engine = create_engine(database_url)
        with engine.connect() as conn:
            subjects = conn.execute(select(func.count()).select_from(subject_performance)).scalar_one()
            tiers = conn.execute(select(func.count()).select_from(university_readiness)).scalar_one()
        engine.dispose()

        assert subjects == len(extraction_result.subjects)
        assert tiers == len(extraction_result.tiers)

    def test_load_missing_file(self, tmp_path):
        with pytest.raises(MissingInputFileError):
            load_sql_file(tmp_path / "absent.sql", f"sqlite:///{tmp_path / 'stats.db'}")

    def test_failed_statement_disposes_engine(self, tmp_path, monkeypatch):
        """Test the engine is released when a statement fails"""
        path = tmp_path / "broken.sql"
        path.write_text(
            "DELETE FROM candidates WHERE year = 2024;\nINSERT INTO missing_table (a) VALUES (1);\n",
            encoding="utf-8",
        )
        disposed = []

        def tracking_engine(url):
            engine = create_engine(url)
            real_dispose = engine.dispose

            def dispose():
                disposed.append(url)
                real_dispose()

            monkeypatch.setattr(engine, "dispose", dispose)
            return engine

        monkeypatch.setattr(loader, "create_engine", tracking_engine)

        with pytest.raises(OperationalError):
            load_sql_file(path, f"sqlite:///{tmp_path / 'stats.db'}")

        assert len(disposed) == 1


class TestIterStatements:
    def test_skips_comments_and_keeps_quoted_semicolons(self):
        script = (
            "-- header\n"
            "\n"
            "DELETE FROM t WHERE year = 2024;\n"
            "INSERT INTO t (a) VALUES ('x;\ny');\n"
        )

        statements = list(iter_statements(script))

        assert statements == [
            "DELETE FROM t WHERE year = 2024;",
            "INSERT INTO t (a) VALUES ('x;\ny');",
        ]

    def test_unicode_line_break_inside_literal(self):
        script = "INSERT INTO t (a) VALUES ('x\u2028y');\n"

        assert list(iter_statements(script)) == ["INSERT INTO t (a) VALUES ('x\u2028y');"]

    def test_unterminated_statement(self):
        with pytest.raises(ValueError):
            list(iter_statements("INSERT INTO t (a) VALUES (1)"))
