"""
Tests for the hkdse-stats command line
"""

import logging

import pytest
from sqlalchemy import create_engine, func, select, update

from hkdse_stats import config
from hkdse_stats.cli import main
from hkdse_stats.db.schema import subject_performance


class TestCli:
    """extract / load / summary commands"""

    def test_extract_then_load(self, tmp_path, csv_dir):
        output = tmp_path / "imports" / "complete_analytics_import_2024.sql"
        database = tmp_path / "stats.db"

        assert main(["extract", "--csv-dir", str(csv_dir), "--output", str(output)]) == 0
        assert output.exists()
        assert output.read_text(encoding="utf-8").startswith("-- HKDSE 2024")

        assert main(["load", "--sql", str(output), "--database", str(database)]) == 0

        engine = create_engine(f"sqlite:///{database}")
        with engine.connect() as conn:
            count = conn.execute(select(func.count()).select_from(subject_performance)).scalar_one()
        engine.dispose()
        assert count == 4

    def test_extract_missing_directory(self, tmp_path):
        """Test a missing CSV directory exits with status 1"""
        assert main(["extract", "--csv-dir", str(tmp_path / "absent")]) == 1

    def test_extract_parse_error(self, tmp_path, csv_dir):
        (csv_dir / "hkdse_2024_table3b.csv").write_text('Description\n"unterminated\n', encoding="utf-8")

        assert main(["extract", "--csv-dir", str(csv_dir), "--output", str(tmp_path / "x.sql")]) == 1

    def test_summary(self, tmp_path, csv_dir, capsys):
        imports_dir = tmp_path / "imports"
        output = imports_dir / "complete_analytics_import_2024.sql"
        main(["extract", "--csv-dir", str(csv_dir), "--output", str(output)])

        assert main(["summary", "--csv-dir", str(csv_dir), "--imports-dir", str(imports_dir)]) == 0

        captured = capsys.readouterr().out
        assert "complete_analytics_import_2024.sql: 4 INSERT statements" in captured

    def test_extract_rejects_unknown_dialect_setting(self, tmp_path, csv_dir, monkeypatch):
        """Test a bad HKDSE_SQL_DIALECT exits with status 1 before writing anything"""
        monkeypatch.setattr(config, "SQL_DIALECT", "oracle")
        output = tmp_path / "x.sql"

        assert main(["extract", "--csv-dir", str(csv_dir), "--output", str(output)]) == 1
        assert not output.exists()


class TestVerify:
    """verify command against a freshly loaded database"""

    @pytest.fixture
    def database(self, tmp_path, csv_dir):
        output = tmp_path / "complete_analytics_import_2024.sql"
        database = tmp_path / "stats.db"
        main(["extract", "--csv-dir", str(csv_dir), "--output", str(output)])
        main(["load", "--sql", str(output), "--database", str(database)])
        return database

    def test_matching_database(self, csv_dir, database, capsys):
        assert main(["verify", "--csv-dir", str(csv_dir), "--database", str(database)]) == 0

        assert "All imported values match" in capsys.readouterr().out

    def test_edited_count_fails(self, csv_dir, database, caplog):
        """Test an edited count is reported and fails the run"""
        engine = create_engine(f"sqlite:///{database}")
        with engine.begin() as conn:
            conn.execute(
                update(subject_performance)
                .where(subject_performance.c.subject_code == "CHIN")
                .values(level_5_star_star=999)
            )
        engine.dispose()

        with caplog.at_level(logging.WARNING):
            assert main(["verify", "--csv-dir", str(csv_dir), "--database", str(database)]) == 1

        assert "subject_performance CHIN level_5_star_star: expected 50, found 999" in caplog.text

    def test_missing_database(self, tmp_path, csv_dir):
        assert main(["verify", "--csv-dir", str(csv_dir), "--database", str(tmp_path / "absent.db")]) == 1
