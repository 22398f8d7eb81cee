"""
Unit Tests for CSV Reader and Field Coercer

Tests for:
- Row counts and header handling
- Quoted commas and quote stripping
- Short lines, blank lines and CRLF endings
- Unterminated quotes
- Per-cell coercion (number, percentage, string)
"""

import pytest

from hkdse_stats.core.csv_reader import coerce_field, parse_rows, read_csv_text, split_line
from hkdse_stats.exceptions import CSVParseError


class TestReadCsvText:
    """Tests for read_csv_text"""

    def test_row_count_excludes_header(self):
        """Test one row per data line"""
        rows = read_csv_text("Description,Total\nNo. of candidates,100\nOther,5\n")

        assert len(rows) == 2
        assert rows[0] == {"Description": "No. of candidates", "Total": "100"}

    def test_quoted_comma_is_data(self):
        """Test commas inside quotes stay in the cell and quotes are removed"""
        rows = read_csv_text('Description,Total\n"Level 2+ in Chinese, English and Maths","42,909"')

        assert rows[0]["Description"] == "Level 2+ in Chinese, English and Maths"
        assert rows[0]["Total"] == "42,909"

    def test_cells_are_trimmed(self):
        rows = read_csv_text(" a , b \n  1 ,  2  ")

        assert rows == [{"a": "1", "b": "2"}]

    def test_short_line_pads_missing_cells(self):
        """Test missing trailing cells become empty strings"""
        rows = read_csv_text("a,b,c\n1")

        assert rows == [{"a": "1", "b": "", "c": ""}]

    def test_blank_line_still_produces_row(self):
        """Test blank lines in the middle of a file are kept as rows"""
        rows = read_csv_text("a,b\n1,2\n\n3,4")

        assert len(rows) == 3
        assert rows[1] == {"a": "", "b": ""}

    def test_trailing_newline_adds_no_row(self):
        rows = read_csv_text("a,b\n1,2\n\n")

        assert len(rows) == 1

    def test_unicode_line_breaks_stay_in_cell(self):
        """Test only \\n ends a row; form feeds and U+2028 are cell data"""
        rows = read_csv_text("Description,Total\nLevel\u2028A,1\nB,2\n")

        assert len(rows) == 2
        assert rows[0] == {"Description": "Level\u2028A", "Total": "1"}
        assert read_csv_text("a,b\nx\x0cy,1\n") == [{"a": "x\x0cy", "b": "1"}]

    def test_crlf_line_endings(self):
        """Test Windows line endings leave no carriage returns in cells"""
        rows = read_csv_text("a,b\r\n1,2\r\n3,4\r\n")

        assert rows == [{"a": "1", "b": "2"}, {"a": "3", "b": "4"}]

    def test_empty_text(self):
        assert read_csv_text("") == []
        assert read_csv_text("a,b") == []

    def test_unterminated_quote_reports_line(self):
        """Test unterminated quotes raise with the 1-based line number"""
        with pytest.raises(CSVParseError) as exc_info:
            read_csv_text('a,b\n1,2\n"3,4', source="table3i.csv")

        assert exc_info.value.line_number == 3
        assert exc_info.value.source == "table3i.csv"
        assert "line 3" in str(exc_info.value)

    def test_doubled_quotes_toggle_twice(self):
        """Test doubled quotes inside a quoted field are simply dropped"""
        assert split_line('"a ""b"" c",2') == ["a b c", "2"]


class TestCoerceField:
    """Tests for coerce_field"""

    def test_thousands_separator_number(self):
        field = coerce_field("42,909")

        assert field.value == 42909
        assert field.kind == "number"
        assert isinstance(field.value, int)

    def test_decimal_number(self):
        field = coerce_field("3.02")

        assert field.value == pytest.approx(3.02)
        assert field.kind == "number"

    def test_percentage(self):
        """Test trailing % gives a percentage kind"""
        field = coerce_field("72.0%")

        assert field.value == pytest.approx(72.0)
        assert field.kind == "percentage"
        assert field.is_numeric

    def test_slash_stays_string(self):
        """Test ratios like 3/2 are never numbers"""
        field = coerce_field("3/2")

        assert field.value == "3/2"
        assert field.kind == "string"

    def test_empty_string(self):
        field = coerce_field("")

        assert field.value == ""
        assert field.kind == "string"

    def test_non_numeric_percentage_falls_through(self):
        field = coerce_field("n/a%")

        assert field.value == "n/a%"
        assert field.kind == "string"

    @pytest.mark.parametrize("raw", ["5**", "5*", "U", "Total", "No. of candidates"])
    def test_labels_stay_strings(self, raw):
        assert coerce_field(raw).kind == "string"

    def test_grade_label_five_is_numeric(self):
        """Test the bare label '5' coerces like any other number"""
        assert coerce_field("5").value == 5


class TestParseRows:
    """Tests for parse_rows"""

    def test_row_ids_and_kinds(self):
        rows = parse_rows('Type,Description,Total\nNumber,All,"1,200"\nPercentage,All,100.0%')

        assert [row.row_id for row in rows] == [1, 2]
        assert rows[0]["Total"] == 1200
        assert rows[0].kind_of("Total") == "number"
        assert rows[1]["Total"] == pytest.approx(100.0)
        assert rows[1].kind_of("Total") == "percentage"
        assert rows[0].kind_of("Description") == "string"

    def test_typing_is_per_cell(self):
        """Test one column may mix numbers and strings"""
        rows = parse_rows("Label,Value\na,1\nb,-\nc,2.5")

        assert [row["Value"] for row in rows] == [1, "-", 2.5]
