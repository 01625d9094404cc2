# csv_parser.py
"""
CSV parsing into typed passenger records.

Every cell becomes a tagged ``Value`` (number, text, or absent) at parse time,
so downstream code never has to guess what a raw string means.
"""
import logging
import math
import re
from collections import Counter
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import List, Mapping, Optional, Union

import pandas as pd

logger = logging.getLogger(__name__)

_NUMBER_PATTERN = re.compile(r"^[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?$")
_INTEGER_PATTERN = re.compile(r"^[+-]?\d+$")


class CSVParseError(ValueError):
    """Raised when CSV input cannot be read or tokenized."""


class ValueKind(Enum):
    NUMBER = "number"
    TEXT = "text"
    ABSENT = "absent"


@dataclass(frozen=True)
class Value:
    """A single parsed cell."""

    kind: ValueKind
    raw: Union[int, float, str, None] = None

    @classmethod
    def number(cls, raw: Union[int, float]) -> "Value":
        return cls(ValueKind.NUMBER, raw)

    @classmethod
    def text(cls, raw: str) -> "Value":
        return cls(ValueKind.TEXT, raw)

    @property
    def is_absent(self) -> bool:
        return self.kind is ValueKind.ABSENT

    @property
    def is_number(self) -> bool:
        return self.kind is ValueKind.NUMBER

    @property
    def is_text(self) -> bool:
        return self.kind is ValueKind.TEXT


ABSENT = Value(ValueKind.ABSENT)

Record = Mapping[str, Value]


def parse_value(field: str) -> Value:
    """Types a single trimmed field: empty -> absent, finite decimal -> number, else text."""
    field = field.strip()
    if field == "":
        return ABSENT
    if _NUMBER_PATTERN.match(field):
        number = float(field)
        if math.isfinite(number):
            if _INTEGER_PATTERN.match(field):
                return Value.number(int(field))
            return Value.number(number)
    return Value.text(field)


def split_line(line: str, line_number: int = 0) -> List[str]:
    """
    Splits one CSV line on commas that sit outside double quotes.

    A doubled quote inside a quoted field yields one literal quote. Each field
    is trimmed.

    Raises:
        CSVParseError: If a quoted field is never closed.
    """
    fields = []
    current = []
    in_quotes = False
    i = 0
    while i < len(line):
        char = line[i]
        if char == '"':
            if in_quotes and i + 1 < len(line) and line[i + 1] == '"':
                current.append('"')
                i += 1
            else:
                in_quotes = not in_quotes
        elif char == ',' and not in_quotes:
            fields.append("".join(current).strip())
            current = []
        else:
            current.append(char)
        i += 1

    if in_quotes:
        raise CSVParseError(f"Unterminated quoted field on line {line_number}.")

    fields.append("".join(current).strip())
    return fields


def parse_csv(text: str) -> List[Record]:
    """
    Parses CSV text into a list of immutable records.

    The first non-empty line is the header. Short rows are padded with absent
    values and long rows are truncated; both are logged as warnings.

    Args:
        text (str): Raw CSV content.

    Returns:
        A list of records, one per non-empty data line.

    Raises:
        CSVParseError: On non-text input, duplicate column names, or unterminated quotes.
    """
    if not isinstance(text, str):
        raise CSVParseError(f"CSV input must be text, got {type(text).__name__}.")

    lines = [
        (number, line.rstrip("\r"))
        for number, line in enumerate(text.split("\n"), start=1)
        if line.strip() != ""
    ]
    if not lines:
        return []

    header_number, header_line = lines[0]
    headers = split_line(header_line, header_number)
    duplicates = [name for name, count in Counter(headers).items() if count > 1]
    if duplicates:
        raise CSVParseError(f"Duplicate column names in header: {', '.join(duplicates)}")

    records = []
    for line_number, line in lines[1:]:
        fields = split_line(line, line_number)
        if len(fields) < len(headers):
            logger.warning("Line %d has %d fields, expected %d; padding with missing values.",
                           line_number, len(fields), len(headers))
        elif len(fields) > len(headers):
            logger.warning("Line %d has %d fields, expected %d; dropping extra fields.",
                           line_number, len(fields), len(headers))

        row = {
            header: parse_value(fields[j]) if j < len(fields) else ABSENT
            for j, header in enumerate(headers)
        }
        records.append(MappingProxyType(row))

    logger.info("Parsed %d records with %d columns.", len(records), len(headers))
    return records


def parse_csv_bytes(data: bytes, encoding: str = "utf-8-sig") -> List[Record]:
    """Decodes uploaded bytes and parses them."""
    try:
        text = data.decode(encoding)
    except UnicodeDecodeError as e:
        raise CSVParseError(f"File is not valid {encoding} text: {e}") from e
    return parse_csv(text)


def read_csv_file(filepath: Union[str, Path]) -> List[Record]:
    """Loads records from a CSV file."""
    try:
        data = Path(filepath).read_bytes()
    except OSError as e:
        raise CSVParseError(f"Unable to read '{filepath}': {e}") from e
    return parse_csv_bytes(data)


def records_to_frame(records: List[Record], columns: Optional[List[str]] = None) -> pd.DataFrame:
    """Builds a DataFrame for display and inspection; absent values become NaN."""
    if columns is None:
        columns = list(records[0].keys()) if records else []
    rows = [{name: record[name].raw for name in columns if name in record} for record in records]
    return pd.DataFrame(rows, columns=columns)
