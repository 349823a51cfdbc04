"""Cell value extraction from worksheet row text.

A worksheet row is sparse: cells that hold no value are usually omitted, so
the n-th ``<c>`` element of a row is not necessarily column n. Each cell
carries an A1-style reference (``r="AB12"``) whose letters identify the
column. The functions here walk the cells of one row in document order and
pick out the requested columns, writing NaN for requested columns that have
no cell.
"""

import math
import re
from dataclasses import dataclass
from typing import IO, List, Optional, Sequence, Tuple, Union
from xml.etree import ElementTree
from xml.sax.saxutils import unescape

import numpy as np

from .errors import MalformedRowError

# Spreadsheet package members
SHARED_STRINGS_MEMBER: str = "xl/sharedStrings.xml"
FIRST_SHEET_MEMBER: str = "xl/worksheets/sheet1.xml"

# Column holding the date serial of each row
TIMESTAMP_COLUMN: str = "A"

_CELL_RE = re.compile(r"<c\b(?P<attrs>[^>]*?)(?:/>|>(?P<body>.*?)</c>)", re.DOTALL)
_REF_ATTR_RE = re.compile(r'(?:^|\s)r\s*=\s*"(?P<ref>[^"]*)"')
_TYPE_ATTR_RE = re.compile(r'(?:^|\s)t\s*=\s*"(?P<type>[^"]*)"')
_CELL_REF_RE = re.compile(r"(?P<column>[A-Z]+)(?P<row>[0-9]+)")
_VALUE_RE = re.compile(r"<v(?:\s[^>]*)?(?:/>|>(?P<text>.*?)</v>)", re.DOTALL)
_INLINE_TEXT_RE = re.compile(r"<t(?:\s[^>]*)?>(?P<text>.*?)</t>", re.DOTALL)
_DECIMAL_RE = re.compile(r"[+-]?(?:[0-9]+(?:\.[0-9]*)?|\.[0-9]+)(?:[eE][+-]?[0-9]+)?")


@dataclass(frozen=True)
class Found:
    """A tag was located in the header.

    Attributes:
        column: Field index for delimited text, column letters for spreadsheets
    """
    column: Union[int, str]

    @property
    def rank(self) -> int:
        if isinstance(self.column, int):
            return self.column
        return column_rank(self.column)


@dataclass(frozen=True)
class NotFound:
    """A tag is absent from the header. Its values are NaN for the whole file."""


NOT_FOUND = NotFound()

ColumnRef = Union[Found, NotFound]


def column_rank(letters: str) -> int:
    """Convert A1-style column letters into a 1-based column number.

    "A" -> 1, "Z" -> 26, "AA" -> 27, "AZ" -> 52

    Args:
        letters: Upper-case column letters without a row number

    Returns:
        The column number
    """
    if not letters:
        raise ValueError("Column reference is empty")
    rank = 0
    for letter in letters:
        if not "A" <= letter <= "Z":
            raise ValueError(f"Invalid column reference: {letters!r}")
        rank = rank * 26 + (ord(letter) - ord("A") + 1)
    return rank


def column_sort_key(ref: ColumnRef) -> Tuple[int, int]:
    """Sort key placing found columns in ascending order and NOT_FOUND last."""
    if isinstance(ref, Found):
        return (0, ref.rank)
    return (1, 0)


def _cell_column(match: "re.Match", row_text: str) -> str:
    """Return the column letters of a matched cell."""
    attrs = match.group("attrs") or ""
    ref_match = _REF_ATTR_RE.search(attrs)
    if ref_match is None:
        raise MalformedRowError(f"The cell does not contain Reference Attribute.\n{row_text}")
    cell_ref = _CELL_REF_RE.fullmatch(ref_match.group("ref"))
    if cell_ref is None:
        raise MalformedRowError(f"The cell contains invalid Reference Attribute.\n{row_text}")
    return cell_ref.group("column")


def _raw_value(match: "re.Match") -> Optional[str]:
    """Return the text of the cell's <v> element, or None if it has none."""
    body = match.group("body")
    if not body:
        return None
    value = _VALUE_RE.search(body)
    if value is None or value.group("text") is None:
        return None
    return value.group("text")


def parse_decimal(text: str) -> float:
    """Convert invariant decimal text such as "-1.5" or "2.5E-3" to a float.

    Thousands separators, surrounding whitespace and the special names
    accepted by float() ("nan", "inf") are rejected.

    Raises:
        ValueError: If the text is not a plain decimal number
    """
    if not _DECIMAL_RE.fullmatch(text):
        raise ValueError(f"Not a decimal number: {text!r}")
    return float(text)


def _to_float(text: Optional[str], row_text: str) -> float:
    if text is None or not text.strip():
        return math.nan
    try:
        return parse_decimal(text)
    except ValueError:
        raise MalformedRowError(f"Cell value {text!r} is not numeric.\n{row_text}") from None


def extract(
    row_text: str,
    wanted_columns: Sequence[ColumnRef],
    out: Optional[np.ndarray] = None,
    dtype=np.float32,
) -> np.ndarray:
    """Read the values of the wanted columns from one row.

    Args:
        row_text: Inner text of a <row> element
        wanted_columns: Columns to read, ascending by column rank, with any
            NOT_FOUND entries at the end
        out: Optional array to fill in place (length >= len(wanted_columns))
        dtype: Element type of a newly allocated result

    Returns:
        Array whose i-th element is the value of wanted_columns[i], NaN where
        the column is NOT_FOUND or has no cell in this row
    """
    count = len(wanted_columns)
    if out is None:
        out = np.empty(count, dtype=dtype)
    if count == 0:
        return out

    ranks = [ref.rank if isinstance(ref, Found) else None for ref in wanted_columns]
    position = 0
    sought = ranks[0]
    if sought is None:
        out[:count] = math.nan
        return out

    for match in _CELL_RE.finditer(row_text):
        rank = column_rank(_cell_column(match, row_text))

        # Later column showed up, so the sought column has no cell in this row
        while rank > sought:
            out[position] = math.nan
            position += 1
            if position == count:
                return out
            sought = ranks[position]
            if sought is None:
                out[position:count] = math.nan
                return out

        if rank == sought:
            value = _to_float(_raw_value(match), row_text)
            while position < count and ranks[position] == sought:
                out[position] = value
                position += 1
            if position == count:
                return out
            sought = ranks[position]
            if sought is None:
                out[position:count] = math.nan
                return out

    out[position:count] = math.nan
    return out


def read_single(row_text: str, column: str = TIMESTAMP_COLUMN) -> float:
    """Read one value from a row in full double precision.

    Args:
        row_text: Inner text of a <row> element
        column: Column letters to read

    Returns:
        The cell value, or NaN if the row has no such cell
    """
    return float(extract(row_text, [Found(column)], dtype=np.float64)[0])


def read_header(row_text: str, shared_strings: Sequence[str]) -> List[Tuple[str, str]]:
    """Read the header row, resolving shared-string cells to their text.

    Args:
        row_text: Inner text of the first <row> element
        shared_strings: The workbook's shared string table

    Returns:
        List of (column_letters, header_text) pairs in column order
    """
    header = []
    for match in _CELL_RE.finditer(row_text):
        column = _cell_column(match, row_text)
        attrs = match.group("attrs") or ""
        type_match = _TYPE_ATTR_RE.search(attrs)
        cell_type = type_match.group("type") if type_match else ""
        body = match.group("body") or ""

        if cell_type == "inlineStr":
            text = "".join(unescape(t.group("text")) for t in _INLINE_TEXT_RE.finditer(body))
        else:
            raw = _raw_value(match)
            if raw is None:
                continue
            if cell_type == "s":
                try:
                    text = shared_strings[int(raw)]
                except (ValueError, IndexError):
                    raise MalformedRowError(
                        f"Shared string index {raw!r} is out of range.\n{row_text}"
                    ) from None
            else:
                text = unescape(raw)
        header.append((column, text))
    return header


def load_shared_strings(stream: IO[bytes]) -> List[str]:
    """Load the shared string table of a workbook.

    Rich-text runs of an entry are concatenated; phonetic runs are ignored.

    Args:
        stream: Binary stream of xl/sharedStrings.xml

    Returns:
        List of strings indexed by shared-string index
    """
    strings = []
    for _, element in ElementTree.iterparse(stream, events=("end",)):
        if _local_name(element.tag) != "si":
            continue
        parts = []
        for child in element:
            name = _local_name(child.tag)
            if name == "t":
                parts.append(child.text or "")
            elif name == "r":
                parts.extend(t.text or "" for t in child if _local_name(t.tag) == "t")
        strings.append("".join(parts))
        element.clear()
    return strings


def _local_name(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]
