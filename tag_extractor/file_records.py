"""Catalog of data files ordered by the start time encoded in their names.

Data loggers roll over to a new file periodically and name each file after
the moment it was started, e.g. ``plant_20230115_000000.csv``. The catalog
derives the file type and start time from that suffix, orders the files and
keeps only those needed to cover a requested time window.
"""

import datetime
import os
import re
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

from .errors import ExtractionRangeError, InvalidFilenameWarning

# <8-digit date><optional separator><6-digit time>.<extension>
FILENAME_PATTERN = re.compile(r"([0-9]{8})[\W_]*([0-9]{6})\.(\w+)$")
FILENAME_TIME_FORMAT = "%Y%m%d%H%M%S"

SUPPORTED_FILE_TYPES = ("csv", "txt", "xlsx")


@dataclass(frozen=True)
class FileRecord:
    """A data file with the start time taken from its name.

    Attributes:
        path: Path of the data file
        file_type: Lower-case extension ("csv", "txt" or "xlsx" when supported)
        start_time: Time of the first sample in the file
    """
    path: str
    file_type: str
    start_time: datetime.datetime

    @classmethod
    def from_path(cls, path: str) -> Optional["FileRecord"]:
        """Build a record from a file name, or None if the name has no start time."""
        match = FILENAME_PATTERN.search(os.path.basename(str(path)))
        if match is None:
            return None
        try:
            start_time = datetime.datetime.strptime(
                match.group(1) + match.group(2), FILENAME_TIME_FORMAT
            )
        except ValueError:
            return None
        return cls(str(path), match.group(3).lower(), start_time)

    @property
    def is_supported(self) -> bool:
        return self.file_type in SUPPORTED_FILE_TYPES

    @property
    def name(self) -> str:
        return os.path.basename(self.path)


def build_catalog(paths: Iterable[str]) -> Tuple[List[FileRecord], List[InvalidFilenameWarning]]:
    """Create records for the given paths sorted by start time.

    Args:
        paths: Paths of candidate data files

    Returns:
        Tuple of (records sorted by start time, warnings for rejected names)
    """
    records = []
    warnings = []
    for path in paths:
        record = FileRecord.from_path(path)
        if record is None:
            warnings.append(InvalidFilenameWarning(str(path)))
        else:
            records.append(record)
    records.sort(key=lambda r: r.start_time)
    return records, warnings


def select_covering(
    records: List[FileRecord],
    start: datetime.datetime,
    end: datetime.datetime,
) -> List[FileRecord]:
    """Trim sorted records to the minimal run covering [start, end].

    A file is taken to hold samples from its own start time up to the start
    time of the next file. Files ending at or before ``start`` and files
    starting after ``end`` are dropped.

    Args:
        records: Records sorted by start time
        start: Window start
        end: Window end

    Returns:
        New list with the files needed for the window

    Raises:
        ExtractionRangeError: If there are no records or the window ends
            before the first file starts
    """
    if not records:
        raise ExtractionRangeError("No valid data file was provided")
    if end < records[0].start_time:
        raise ExtractionRangeError(
            "Requested Date and Time Not Available in Selected Data Files"
        )

    selected = list(records)
    i = 0
    while i < len(selected) - 1:
        following = selected[i + 1].start_time
        if following <= start:
            del selected[i]
        elif following > end:
            del selected[i + 1:]
            break
        else:
            i += 1
    return selected
