"""Per-format readers presenting data files as (timestamp, row) streams.

Every source reads the header of its file, maps requested tags to columns
and then yields the timestamp and raw content of each data row. Converting a
row's raw content into tag values is deferred to read_values() so rows that
are skipped by decimation are never parsed beyond their timestamp.
"""

import csv
import datetime
import math
import zipfile
from dataclasses import dataclass, field
from typing import Any, Iterator, List, Optional, Sequence, Tuple, Union

import numpy as np

from .cell_values import (
    FIRST_SHEET_MEMBER,
    NOT_FOUND,
    SHARED_STRINGS_MEMBER,
    TIMESTAMP_COLUMN,
    ColumnRef,
    Found,
    column_sort_key,
    extract,
    load_shared_strings,
    parse_decimal,
    read_header,
    read_single,
)
from .config import ExtractorConfig
from .datetime_parser import from_excel_serial, parse_date, parse_datetime, parse_time
from .errors import ExtractionError, MalformedRowError, UnsupportedFileTypeError
from .file_records import FileRecord
from .prefetch_buffer import PrefetchBuffer
from .row_tokenizer import RowTokenizer

# First header cell of files that keep date and time in separate columns
DATE_HEADERS = ("date", ";date")


@dataclass
class TagLayout:
    """Where the requested tags live in one file.

    Attributes:
        columns: Column of each tag, ascending, with NOT_FOUND entries last
        positions: Index in the request of the tag read from columns[i]
        missing: Requested tags absent from the header, in request order
    """
    columns: List[ColumnRef] = field(default_factory=list)
    positions: List[int] = field(default_factory=list)
    missing: List[str] = field(default_factory=list)


def resolve_tags(header: Sequence[Tuple[Union[int, str], str]], tags: Sequence[str]) -> TagLayout:
    """Map requested tags to header columns.

    Args:
        header: (column, name) pairs of the header row
        tags: Requested tag names, matched exactly

    Returns:
        TagLayout ordered by column
    """
    by_name = {}
    for column, name in header:
        by_name.setdefault(name, column)

    refs = []
    missing = []
    for position, tag in enumerate(tags):
        if tag in by_name:
            refs.append((Found(by_name[tag]), position))
        else:
            refs.append((NOT_FOUND, position))
            missing.append(tag)

    refs.sort(key=lambda item: column_sort_key(item[0]))
    return TagLayout(
        columns=[ref for ref, _ in refs],
        positions=[position for _, position in refs],
        missing=missing,
    )


class RowSource:
    """Base class of the per-format readers."""

    def __init__(self, record: FileRecord):
        self.record = record
        self.header: List[Tuple[Union[int, str], str]] = []

    def tag_names(self) -> List[str]:
        """Header names that can be requested as tags."""
        raise NotImplementedError

    def resolve(self, tags: Sequence[str]) -> TagLayout:
        return resolve_tags(self.header, tags)

    def rows(self) -> Iterator[Tuple[datetime.datetime, Any]]:
        raise NotImplementedError

    def read_values(self, raw: Any, layout: TagLayout, out: Optional[np.ndarray] = None) -> np.ndarray:
        raise NotImplementedError

    def close(self) -> None:
        pass

    def __enter__(self) -> "RowSource":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


class DelimitedTextSource(RowSource):
    """Reader for csv and txt files.

    The first column holds either a combined "date time" text, or the date
    when the header of that column is "date" (with the time in the second
    column).
    """

    def __init__(self, record: FileRecord, delimiter: str, buffer_size: int):
        super().__init__(record)
        self.delimiter = delimiter
        try:
            self._buffer = PrefetchBuffer(open(record.path, "rb"), buffer_size)
        except OSError as e:
            raise ExtractionError(f"Cannot open data file {record.path}: {e}") from e
        self._reader = csv.reader(iter(self._buffer.read_line, None), delimiter=delimiter)

        try:
            first = next(self._reader, None)
        except Exception:
            self.close()
            raise
        if not first:
            self.close()
            raise MalformedRowError(f"Data file {record.path} has no header")
        self.header = list(enumerate(first))
        self.separate_date = first[0].strip().lower() in DATE_HEADERS

    @property
    def timestamp_columns(self) -> int:
        return 2 if self.separate_date else 1

    def tag_names(self) -> List[str]:
        return [name for index, name in self.header[self.timestamp_columns:] if name]

    def _timestamp(self, fields: List[str]) -> datetime.datetime:
        if self.separate_date:
            if len(fields) < 2:
                raise MalformedRowError(f"Row has no time field: {self.delimiter.join(fields)}")
            return datetime.datetime.combine(parse_date(fields[0]), parse_time(fields[1]))
        return parse_datetime(fields[0])

    def rows(self) -> Iterator[Tuple[datetime.datetime, List[str]]]:
        for fields in self._reader:
            if not fields or not any(f.strip() for f in fields):
                continue
            yield self._timestamp(fields), fields

    def read_values(self, raw: List[str], layout: TagLayout, out: Optional[np.ndarray] = None) -> np.ndarray:
        if out is None:
            out = np.empty(len(layout.columns), dtype=np.float32)
        for i, ref in enumerate(layout.columns):
            if not isinstance(ref, Found) or ref.column >= len(raw):
                out[i] = math.nan
                continue
            text = raw[ref.column].strip()
            if not text:
                out[i] = math.nan
                continue
            try:
                out[i] = parse_decimal(text)
            except ValueError:
                raise MalformedRowError(
                    f"Value {text!r} of tag column {ref.column} is not numeric in {self.record.path}"
                ) from None
        return out

    def close(self) -> None:
        self._buffer.close()


class SpreadsheetSource(RowSource):
    """Reader for the first worksheet of an xlsx workbook.

    Column A holds the Excel date serial of each row.
    """

    def __init__(self, record: FileRecord, buffer_size: int):
        super().__init__(record)
        try:
            self._archive = zipfile.ZipFile(record.path)
        except (OSError, zipfile.BadZipFile) as e:
            raise ExtractionError(f"Cannot open workbook {record.path}: {e}") from e

        try:
            shared_strings: List[str] = []
            if SHARED_STRINGS_MEMBER in self._archive.namelist():
                with self._archive.open(SHARED_STRINGS_MEMBER) as stream:
                    shared_strings = load_shared_strings(stream)
            sheet = self._archive.open(FIRST_SHEET_MEMBER)
            self._tokenizer = RowTokenizer(PrefetchBuffer(sheet, buffer_size))
        except KeyError as e:
            self._archive.close()
            raise ExtractionError(f"Workbook {record.path} has no {FIRST_SHEET_MEMBER}") from e
        except Exception:
            self._archive.close()
            raise

        try:
            self.header = read_header(self._tokenizer.next_row(), shared_strings)
        except Exception:
            self.close()
            raise

    def tag_names(self) -> List[str]:
        return [name for column, name in self.header if column != TIMESTAMP_COLUMN and name]

    def rows(self) -> Iterator[Tuple[datetime.datetime, str]]:
        for row in self._tokenizer:
            if "<c" not in row:
                continue
            serial = read_single(row, TIMESTAMP_COLUMN)
            if math.isnan(serial):
                raise MalformedRowError(f"Row has no date serial in column {TIMESTAMP_COLUMN}.\n{row}")
            yield from_excel_serial(serial), row

    def read_values(self, raw: str, layout: TagLayout, out: Optional[np.ndarray] = None) -> np.ndarray:
        return extract(raw, layout.columns, out=out)

    def close(self) -> None:
        try:
            self._tokenizer.close()
        finally:
            self._archive.close()


def open_source(record: FileRecord, config: Optional[ExtractorConfig] = None) -> RowSource:
    """Open the reader matching a file's type.

    Raises:
        UnsupportedFileTypeError: If the extension is not csv, txt or xlsx
    """
    config = config or ExtractorConfig()
    if record.file_type == "csv":
        return DelimitedTextSource(record, config.csv_delimiter, config.buffer_size)
    if record.file_type == "txt":
        return DelimitedTextSource(record, config.txt_delimiter, config.buffer_size)
    if record.file_type == "xlsx":
        return SpreadsheetSource(record, config.buffer_size)
    raise UnsupportedFileTypeError(f"Unsupported File Type: {record.file_type}")
