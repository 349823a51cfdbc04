"""Pytest configuration and fixtures."""

import datetime
import sys
import zipfile
from pathlib import Path
from xml.sax.saxutils import escape

import pytest

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from tag_extractor.cell_values import FIRST_SHEET_MEMBER, SHARED_STRINGS_MEMBER  # noqa: E402
from tag_extractor.datetime_parser import EXCEL_EPOCH  # noqa: E402

BASE_TIME = datetime.datetime(2023, 1, 15, 0, 0, 0)

_SPREADSHEET_NS = "http://schemas.openxmlformats.org/spreadsheetml/2006/main"


def timeline(start, count, step=1):
    """Return count timestamps spaced step seconds apart."""
    return [start + datetime.timedelta(seconds=i * step) for i in range(count)]


def file_name(start, extension, prefix="plant"):
    return f"{prefix}_{start:%Y%m%d_%H%M%S}.{extension}"


def column_letters(index):
    """1 -> "A", 27 -> "AA"."""
    letters = ""
    while index:
        index, remainder = divmod(index - 1, 26)
        letters = chr(ord("A") + remainder) + letters
    return letters


def excel_serial(timestamp):
    return (timestamp - EXCEL_EPOCH).total_seconds() / 86400.0


@pytest.fixture
def write_text_log(tmp_path):
    """Factory writing a delimited log from raw header and row fields.

    Usage: write_text_log(start, header, rows, extension="csv")
    """
    def _write(start, header, rows, extension="csv", prefix="plant", delimiter=None):
        if delimiter is None:
            delimiter = "\t" if extension == "txt" else ","
        path = tmp_path / file_name(start, extension, prefix)
        lines = [delimiter.join(header)]
        lines.extend(delimiter.join(str(field) for field in row) for row in rows)
        path.write_text("\r\n".join(lines) + "\r\n", encoding="utf-8")
        return str(path)
    return _write


@pytest.fixture
def write_csv_log(write_text_log):
    """Factory writing a 1 Hz csv log with a combined "date time" column.

    Usage: write_csv_log(start, count, tags=("T1",), value=lambda tag, i: float(i))
    """
    def _write(start, count, tags=("T1",), value=None, step=1, prefix="plant", extension="csv"):
        if value is None:
            value = lambda tag, i: float(i)  # noqa: E731
        header = ["Time"] + list(tags)
        rows = [
            [ts.strftime("%Y-%m-%d %H:%M:%S")] + [value(tag, i) for tag in tags]
            for i, ts in enumerate(timeline(start, count, step))
        ]
        return write_text_log(start, header, rows, extension=extension, prefix=prefix)
    return _write


@pytest.fixture
def write_xlsx_log(tmp_path):
    """Factory writing a minimal workbook.

    Usage: write_xlsx_log(start, header, rows) where header names columns
    A, B, ... and each row is (timestamp, [value for column B, C, ...]).
    A value of None leaves the cell out of the row.
    """
    def _write(start, header, rows, prefix="plant"):
        path = tmp_path / file_name(start, "xlsx", prefix)

        shared = "".join(f"<si><t>{escape(name)}</t></si>" for name in header)
        shared_xml = (
            '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>\n'
            f'<sst xmlns="{_SPREADSHEET_NS}" count="{len(header)}" uniqueCount="{len(header)}">'
            f"{shared}</sst>"
        )

        sheet_rows = []
        header_cells = "".join(
            f'<c r="{column_letters(i + 1)}1" t="s"><v>{i}</v></c>' for i in range(len(header))
        )
        sheet_rows.append(f'<row r="1" spans="1:{len(header)}">{header_cells}</row>')
        for n, (timestamp, values) in enumerate(rows, start=2):
            cells = [f'<c r="A{n}" s="1"><v>{excel_serial(timestamp)!r}</v></c>']
            for i, value in enumerate(values, start=2):
                if value is not None:
                    cells.append(f'<c r="{column_letters(i)}{n}"><v>{value!r}</v></c>')
            sheet_rows.append(f'<row r="{n}" spans="1:{len(header)}">{"".join(cells)}</row>')
        sheet_xml = (
            '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>\n'
            f'<worksheet xmlns="{_SPREADSHEET_NS}"><dimension ref="A1:{column_letters(len(header))}'
            f'{len(rows) + 1}"/><sheetData>{"".join(sheet_rows)}</sheetData></worksheet>'
        )

        with zipfile.ZipFile(path, "w", compression=zipfile.ZIP_DEFLATED) as archive:
            archive.writestr(SHARED_STRINGS_MEMBER, shared_xml)
            archive.writestr(FIRST_SHEET_MEMBER, sheet_xml)
        return str(path)
    return _write


@pytest.fixture
def split_logs(write_csv_log):
    """Two 1 Hz csv files covering 00:00:00-00:00:10 and 00:00:10-00:00:20.

    T1 and T2 hold the seconds since 00:00:00 in the first file and 100 plus
    the seconds in the second, so the shared 00:00:10 row differs between them.
    """
    second_start = BASE_TIME + datetime.timedelta(seconds=10)
    first = write_csv_log(BASE_TIME, 11, tags=("T1", "T2"), value=lambda tag, i: float(i))
    second = write_csv_log(
        second_start, 11, tags=("T1", "T2"), value=lambda tag, i: float(110 + i)
    )
    return [first, second]
