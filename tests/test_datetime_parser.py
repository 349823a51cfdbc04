"""Tests for heuristic date and time parsing."""

import datetime

import pytest
from tag_extractor.datetime_parser import (
    EXCEL_EPOCH,
    MONTHS,
    from_excel_serial,
    parse_date,
    parse_datetime,
    parse_time,
)
from tag_extractor.errors import DateTimeFormatError

TODAY = datetime.date(2024, 6, 1)


class TestParseDate:
    """Test date layouts."""

    @pytest.mark.parametrize("text, expected", [
        ("20230115", datetime.date(2023, 1, 15)),   # YYYYMMDD
        ("01152023", datetime.date(2023, 1, 15)),   # MMDDYYYY
        ("15012023", datetime.date(2023, 1, 15)),   # DDMMYYYY
        ("1152023", datetime.date(2023, 1, 15)),    # MDDYYYY
        ("230115", datetime.date(2023, 1, 15)),     # YYMMDD
        ("011523", datetime.date(2023, 1, 15)),     # MMDDYY
        ("11523", datetime.date(2023, 1, 15)),      # MDDYY
    ])
    def test_digit_runs(self, text, expected):
        """Test single runs of digits."""
        assert parse_date(text) == expected

    def test_digit_runs_without_year(self):
        """Test that short digit runs use the current year."""
        assert parse_date("15", today=TODAY) == datetime.date(2024, 1, 5)
        assert parse_date("115", today=TODAY) == datetime.date(2024, 1, 15)
        assert parse_date("1231", today=TODAY) == datetime.date(2024, 12, 31)

    @pytest.mark.parametrize("text, expected", [
        ("2023-01-15", datetime.date(2023, 1, 15)),
        ("2023/1/5", datetime.date(2023, 1, 5)),
        ("01/15/2023", datetime.date(2023, 1, 15)),
        ("15/01/2023", datetime.date(2023, 1, 15)),
        ("12-25-23", datetime.date(2023, 12, 25)),
        ("23-01-15", datetime.date(2023, 1, 15)),
        ("1/5/23", datetime.date(2023, 1, 5)),
        ("1/5/2023", datetime.date(2023, 1, 5)),
    ])
    def test_numeric_fields(self, text, expected):
        """Test three numeric fields with corrective transpositions."""
        assert parse_date(text) == expected

    @pytest.mark.parametrize("text, expected", [
        ("5-Jan-2023", datetime.date(2023, 1, 5)),
        ("Jan 15th, 2023", datetime.date(2023, 1, 15)),
        ("January 1st 23", datetime.date(2023, 1, 1)),
        ("Sept 3 2023", datetime.date(2023, 9, 3)),
        ("2023 Mar 7", datetime.date(2023, 3, 7)),
        ("7 March 2023", datetime.date(2023, 3, 7)),
        ("23-dec-31", datetime.date(2023, 12, 31)),
        ("15Jan2023", datetime.date(2023, 1, 15)),
    ])
    def test_month_names(self, text, expected):
        """Test layouts with an English month name."""
        assert parse_date(text) == expected

    def test_month_and_day_only(self):
        """Test two fields resolve against the current year."""
        assert parse_date("Jan 15", today=TODAY) == datetime.date(2024, 1, 15)
        assert parse_date("15 january", today=TODAY) == datetime.date(2024, 1, 15)
        assert parse_date("3/7", today=TODAY) == datetime.date(2024, 3, 7)
        assert parse_date("13/5", today=TODAY) == datetime.date(2024, 5, 13)

    @pytest.mark.parametrize("text", [
        "",
        "hello",
        "2023-02-30",
        "1-2-3-4",
        "123456789",
        "Foo 12 2023",
        "Jan Feb",
        "2023-01-1\u00b2",
        "\u00b2",
        "Jan \u0661\u0665 2023",
    ])
    def test_invalid_dates(self, text):
        """Test that unrecognized or impossible dates raise."""
        with pytest.raises(DateTimeFormatError):
            parse_date(text)

    def test_error_is_value_error(self):
        """Test that format errors can be caught as ValueError."""
        with pytest.raises(ValueError):
            parse_date("not a date")

    def test_month_table_is_read_only(self):
        """Test that the month table cannot be modified."""
        assert MONTHS["SEPT"] == 9
        with pytest.raises(TypeError):
            MONTHS["FOO"] = 13


class TestParseTime:
    """Test time layouts."""

    @pytest.mark.parametrize("text, expected", [
        ("12:30:15", datetime.time(12, 30, 15)),
        ("12:30", datetime.time(12, 30)),
        ("083015", datetime.time(8, 30, 15)),
        ("83015", datetime.time(8, 30, 15)),
        ("0830", datetime.time(8, 30)),
        ("8", datetime.time(8)),
        ("11pm", datetime.time(23)),
        ("11 PM", datetime.time(23)),
        ("1:05:09 p", datetime.time(13, 5, 9)),
        ("12pm", datetime.time(12)),
        ("1200am", datetime.time(0)),
        ("12:15 AM", datetime.time(0, 15)),
        ("9am", datetime.time(9)),
        ("24:00:00", datetime.time(23, 59, 59)),
        ("0:00:00", datetime.time(0)),
    ])
    def test_layouts(self, text, expected):
        """Test separators, digit runs and am/pm markers."""
        assert parse_time(text) == expected

    def test_fractional_seconds(self):
        """Test that a fraction on the seconds becomes microseconds."""
        assert parse_time("12:00:00.500") == datetime.time(12, 0, 0, 500000)
        assert parse_time("12:00:00,25") == datetime.time(12, 0, 0, 250000)
        assert parse_time("01:02:03.123456789") == datetime.time(1, 2, 3, 123456)
        assert parse_time("1:00:00.5 PM") == datetime.time(13, 0, 0, 500000)

    @pytest.mark.parametrize("text", [
        "",
        "25:00",
        "12:60",
        "10:00:61",
        "1234567",
        "1:2:3:4",
        "abc",
        "12:3\u00b2",
        "\u0661\u0662:00",
    ])
    def test_invalid_times(self, text):
        """Test that unrecognized or out of range times raise."""
        with pytest.raises(DateTimeFormatError):
            parse_time(text)


class TestParseDateTime:
    """Test combined date and time parsing."""

    def test_date_and_time(self):
        """Test that the first space separates the date from the time."""
        assert parse_datetime("2023-01-15 12:30:00") == datetime.datetime(2023, 1, 15, 12, 30)
        assert parse_datetime("1/15/2023 1:00 PM") == datetime.datetime(2023, 1, 15, 13, 0)
        assert parse_datetime("  20230115 8  ") == datetime.datetime(2023, 1, 15, 8, 0)

    def test_date_only(self):
        """Test that a date alone means midnight."""
        assert parse_datetime("20230115") == datetime.datetime(2023, 1, 15)

    def test_invalid(self):
        """Test that errors from either part propagate."""
        with pytest.raises(DateTimeFormatError):
            parse_datetime("2023-01-15 99:00")


class TestExcelSerial:
    """Test OLE automation date conversion."""

    def test_known_dates(self):
        """Test whole and fractional serials."""
        assert from_excel_serial(0.0) == EXCEL_EPOCH
        assert from_excel_serial(44927.0) == datetime.datetime(2023, 1, 1)
        assert from_excel_serial(45000.5) == datetime.datetime(2023, 3, 15, 12, 0)

    def test_rounds_to_millisecond(self):
        """Test that serial noise is rounded to whole milliseconds."""
        serial = 44927.0 + 1.0004 / 86400.0
        assert from_excel_serial(serial) == datetime.datetime(2023, 1, 1, 0, 0, 1)
        serial = 44927.0 + 1.2346 / 86400.0
        assert from_excel_serial(serial) == datetime.datetime(2023, 1, 1, 0, 0, 1, 235000)

    def test_nan(self):
        """Test that NaN is rejected."""
        with pytest.raises(DateTimeFormatError):
            from_excel_serial(float("nan"))

    def test_out_of_range(self):
        """Test that an enormous serial is rejected."""
        with pytest.raises(DateTimeFormatError):
            from_excel_serial(1e12)
