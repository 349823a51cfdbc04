"""Errors and warnings raised or collected during tag extraction.

Fatal problems are raised as ``ExtractionError`` subclasses and abort the
whole extraction. Non-fatal problems are collected as ``ExtractionWarning``
instances and returned alongside a successful result.
"""

from dataclasses import dataclass


class ExtractionError(Exception):
    """Base class for errors that abort an extraction."""


class DateTimeFormatError(ExtractionError, ValueError):
    """A date or time string could not be interpreted."""


class ExtractionRangeError(ExtractionError):
    """The requested window cannot be served by the selected files."""


class UnsupportedFileTypeError(ExtractionError):
    """A data file has an extension other than csv, txt or xlsx."""


class MalformedRowError(ExtractionError, ValueError):
    """A row or cell could not be parsed into numeric values."""


@dataclass(frozen=True)
class ExtractionWarning:
    """Base class for non-fatal problems reported with a result."""

    @property
    def message(self) -> str:
        return str(self)


@dataclass(frozen=True)
class MissingTagWarning(ExtractionWarning):
    """A requested tag is not present in the header of a data file.

    Attributes:
        file: Path of the data file
        tag: Name of the missing tag
    """
    file: str
    tag: str

    def __str__(self) -> str:
        return f'Cannot find tag "{self.tag}" in data file "{self.file}".'


@dataclass(frozen=True)
class InvalidFilenameWarning(ExtractionWarning):
    """A data file name does not end with a start time and extension."""
    file: str

    def __str__(self) -> str:
        return (
            f'File name "{self.file}" is not valid. File name must end with start '
            f"time information in yyyyMMddHHmmss format and extension."
        )


@dataclass(frozen=True)
class RenamedTagWarning(ExtractionWarning):
    """A reserved tag name was replaced before extraction."""
    tag: str
    replacement: str

    def __str__(self) -> str:
        return f'"{self.tag}" is not an allowed tag. Using "{self.replacement}" instead.'


@dataclass(frozen=True)
class OutOfOrderRowsWarning(ExtractionWarning):
    """Rows older than a sample already read were dropped from a data file.

    Attributes:
        file: Path of the data file
        count: Number of dropped rows
    """
    file: str
    count: int

    def __str__(self) -> str:
        return (
            f'Skipped {self.count} rows of data file "{self.file}" with time stamps '
            f"earlier than data already extracted."
        )
