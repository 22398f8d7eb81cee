"""
CSV READER - Quote-aware splitting and per-cell type coercion
Turns the official HKDSE result-table exports into ParsedRow records

READER RULES:
✅ First line is the header; every later line is one data row
✅ Commas inside double quotes are data, not separators
✅ Cells are trimmed and stripped of quote characters
✅ Short lines pad missing cells with ""
✅ Unterminated quotes raise CSVParseError with the line number

COERCION RULES (per cell, never raises):
1. "72.0%"  -> 72.0 (percentage)
2. "42,909" -> 42909 (number); anything containing "/" stays a string
3. everything else stays a string
"""

import logging
import re
from typing import Dict, List

from hkdse_stats.core.models import CoercedField, ParsedRow
from hkdse_stats.exceptions import CSVParseError

logger = logging.getLogger(__name__)

# Full-string decimal number after thousands separators are removed
_NUMBER_PATTERN = re.compile(r"[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?")


def split_line(line: str, line_number: int = 1, source: str = "<text>") -> List[str]:
    """Split one CSV line on commas that are outside double quotes"""
    values = []
    current = []
    in_quotes = False

    for char in line:
        if char == '"':
            in_quotes = not in_quotes
        elif char == "," and not in_quotes:
            values.append(_clean_cell("".join(current)))
            current = []
        else:
            current.append(char)

    if in_quotes:
        raise CSVParseError("unterminated double quote", line_number, source)

    values.append(_clean_cell("".join(current)))
    return values


def _clean_cell(raw: str) -> str:
    return raw.replace('"', "").strip()


def read_csv_text(text: str, source: str = "<text>") -> List[Dict[str, str]]:
    """
    Split raw CSV text into header-keyed rows of raw strings

    Args:
        text: Complete file content, header line first
        source: Name used in parse error messages

    Returns:
        One dict per data line, in file order
    """
    content = text.strip()
    if not content:
        return []

    # Only \n ends a record; other Unicode line breaks are cell data
    lines = [line[:-1] if line.endswith("\r") else line for line in content.split("\n")]
    headers = split_line(lines[0], 1, source)

    rows = []
    for offset, line in enumerate(lines[1:], start=2):
        cells = split_line(line, offset, source)
        rows.append(
            {header: (cells[i] if i < len(cells) else "") for i, header in enumerate(headers)}
        )

    logger.debug(f"{source}: {len(rows)} rows x {len(headers)} columns")
    return rows


def coerce_field(raw: str) -> CoercedField:
    """Decide whether a raw cell is a percentage, a number or a string"""
    text = raw.strip()

    if text.endswith("%"):
        number = _parse_number(text[:-1].replace(",", "").strip())
        if number is not None:
            return CoercedField(float(number), "percentage")
        return CoercedField(raw, "string")

    if text and "/" not in text:
        number = _parse_number(text.replace(",", ""))
        if number is not None:
            return CoercedField(number, "number")

    return CoercedField(raw, "string")


def _parse_number(text: str):
    if not _NUMBER_PATTERN.fullmatch(text):
        return None
    if re.fullmatch(r"[+-]?\d+", text):
        return int(text)
    return float(text)


def parse_rows(text: str, source: str = "<text>") -> List[ParsedRow]:
    """Read and coerce CSV text into ParsedRow records"""
    parsed = []
    for row_id, raw_row in enumerate(read_csv_text(text, source), start=1):
        values = {}
        kinds = {}
        for header, raw in raw_row.items():
            coerced = coerce_field(raw)
            values[header] = coerced.value
            kinds[header] = coerced.kind
        parsed.append(ParsedRow(row_id=row_id, values=values, kinds=kinds))
    return parsed


__all__ = ["split_line", "read_csv_text", "coerce_field", "parse_rows"]
