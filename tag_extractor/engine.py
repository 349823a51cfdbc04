"""Extraction engine merging tag samples across chronologically ordered files.

The engine walks the selected files in order, resolves the requested tags
against each file's header and streams rows through a decimation filter into
a ResultBuffer. The first file's first two distinct timestamps give the
sampling period used to size the arrays up front.
"""

import datetime
import itertools
import math
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterator, List, Optional, Sequence, Tuple, Union

import numpy as np

from .config import ExtractorConfig
from .datetime_parser import parse_datetime
from .errors import (
    ExtractionRangeError,
    ExtractionWarning,
    MissingTagWarning,
    OutOfOrderRowsWarning,
    RenamedTagWarning,
)
from .file_records import FileRecord, build_catalog, select_covering
from .result_buffer import ResultBuffer
from .sources import open_source

RESERVED_TAG = "Time"
RESERVED_TAG_REPLACEMENT = "_Time_"

DateTimeLike = Union[datetime.datetime, str]


@dataclass(frozen=True)
class TimeWindow:
    """Inclusive time range [start, end]."""
    start: datetime.datetime
    end: datetime.datetime

    def ordered(self) -> "TimeWindow":
        """Return the window with start and end swapped if reversed."""
        if self.start > self.end:
            return TimeWindow(self.end, self.start)
        return self


@dataclass
class ExtractionRequest:
    """Everything needed to run one extraction from raw file paths.

    Attributes:
        files: Paths of candidate data files, in any order
        tags: Tag names to extract, matched exactly
        start: Window start as a datetime or heuristic date/time text
        end: Window end as a datetime or heuristic date/time text
        interval: Keep every n-th sample. None uses the configured default.
    """
    files: List[str]
    tags: List[str]
    start: DateTimeLike
    end: DateTimeLike
    interval: Optional[int] = None


@dataclass
class ExtractionResult:
    """Extracted samples aligned to one timestamp list.

    Attributes:
        tags: Tag names in request order
        timestamps: Strictly increasing sample times
        values: One float32 array per tag, same length as timestamps
        point_count: Number of samples
        warnings: Non-fatal problems met during extraction
    """
    tags: List[str]
    timestamps: List[datetime.datetime]
    values: List[np.ndarray]
    point_count: int
    warnings: List[ExtractionWarning] = field(default_factory=list)

    def as_dict(self) -> Dict[str, np.ndarray]:
        """Map each tag to its value array."""
        return dict(zip(self.tags, self.values))

    @property
    def timestamp_array(self) -> np.ndarray:
        return np.array(self.timestamps, dtype="datetime64[us]")


def _to_datetime(value: DateTimeLike) -> datetime.datetime:
    if isinstance(value, datetime.datetime):
        return value
    return parse_datetime(value)


class ExtractionEngine:
    """Runs extractions with a shared configuration and log callback."""

    def __init__(
        self,
        config: Optional[ExtractorConfig] = None,
        log_callback: Optional[Callable[[str, str], None]] = None,
    ):
        """Initialize the engine.

        Args:
            config: Extraction settings. Defaults are used when None.
            log_callback: Optional callback for logging (message, level)
        """
        self.config = config or ExtractorConfig()
        self.log_callback = log_callback

    def _log(self, message: str, level: str = "INFO") -> None:
        """Log a message using the callback if available.

        Args:
            message: Message to log
            level: Log level (INFO, WARNING, ERROR)
        """
        if self.log_callback:
            try:
                self.log_callback(message, level)
            except Exception:
                pass  # Don't fail if logging callback has issues

    def _warn(self, warning: ExtractionWarning, warnings: List[ExtractionWarning]) -> None:
        warnings.append(warning)
        self._log(warning.message, "WARNING")

    def _normalize_tags(self, tags: Sequence[str], warnings: List[ExtractionWarning]) -> List[str]:
        normalized = []
        for tag in tags:
            if tag == RESERVED_TAG:
                self._warn(RenamedTagWarning(tag, RESERVED_TAG_REPLACEMENT), warnings)
                tag = RESERVED_TAG_REPLACEMENT
            normalized.append(tag)
        return normalized

    def _allocate(
        self,
        record: FileRecord,
        rows: Iterator[Tuple[datetime.datetime, object]],
        window: TimeWindow,
        interval: int,
        tag_count: int,
    ) -> Tuple[ResultBuffer, Iterator[Tuple[datetime.datetime, object]]]:
        """Size the result arrays from the sampling period of the first file.

        Rows consumed while probing are chained back in front of the
        remaining rows so none is lost.

        Returns:
            Tuple of (result buffer, rows to process)
        """
        peeked = []
        for row in rows:
            peeked.append(row)
            if row[0] != peeked[0][0]:
                break

        if len(peeked) < 2 or peeked[-1][0] == peeked[0][0]:
            raise ExtractionRangeError(
                f"Data file {record.path} needs at least two distinct time stamps"
            )

        first = peeked[0][0]
        delta = peeked[-1][0] - first
        if delta <= datetime.timedelta(0):
            raise ExtractionRangeError(f"Time stamps are not increasing in {record.path}")

        estimate = math.ceil((window.end - first) / delta / interval) + 1
        if estimate <= 0:
            raise ExtractionRangeError("Number of points is not positive.")

        capacity = min(estimate, self.config.max_initial_capacity)
        self._log(f"Allocating arrays for {capacity} points")
        buffer = ResultBuffer(tag_count, capacity, self.log_callback)
        return buffer, itertools.chain(peeked, rows)

    def extract(
        self,
        files: Sequence[FileRecord],
        tags: Sequence[str],
        window: TimeWindow,
        interval: Optional[int] = None,
    ) -> ExtractionResult:
        """Extract tag samples from files already sorted and trimmed to the window.

        Args:
            files: Records sorted by start time, e.g. from select_covering()
            tags: Tag names to extract
            window: Inclusive time range
            interval: Keep every n-th in-range sample, starting with the first

        Returns:
            The extraction result

        Raises:
            ValueError: If interval is less than 1
            ExtractionError: On any problem that prevents a complete result
        """
        return self._extract(files, tags, window, interval, [])

    def _extract(
        self,
        files: Sequence[FileRecord],
        tags: Sequence[str],
        window: TimeWindow,
        interval: Optional[int],
        warnings: List[ExtractionWarning],
    ) -> ExtractionResult:
        if interval is None:
            interval = self.config.default_interval
        if interval < 1:
            raise ValueError(f"Interval must be at least 1, got {interval}")
        if not files:
            raise ExtractionRangeError("Requested Date and Time Not Available in Selected Data Files")

        window = window.ordered()
        tags = self._normalize_tags(tags, warnings)
        started = time.perf_counter()

        buffer: Optional[ResultBuffer] = None
        counter = interval
        previous: Optional[datetime.datetime] = None
        past_end = False

        for record in files:
            self._log(f"Processing data file {record.path}")
            with open_source(record, self.config) as source:
                layout = source.resolve(tags)
                for tag in layout.missing:
                    self._warn(MissingTagWarning(record.path, tag), warnings)

                rows = source.rows()
                if buffer is None:
                    buffer, rows = self._allocate(record, rows, window, interval, len(tags))
                row_values = np.empty(len(tags), dtype=np.float32)
                stale = 0

                for timestamp, raw in rows:
                    if timestamp > window.end:
                        past_end = True
                        break
                    if timestamp < window.start:
                        continue

                    if timestamp == previous:
                        # Repeated time stamp: the latest row replaces a kept sample
                        if timestamp == buffer.last_timestamp:
                            buffer.overwrite_last(
                                timestamp, source.read_values(raw, layout, row_values), layout.positions
                            )
                        continue
                    if previous is not None and timestamp < previous:
                        # Overlaps samples already taken from an earlier file
                        stale += 1
                        continue
                    previous = timestamp

                    if counter == interval:
                        buffer.append(timestamp, source.read_values(raw, layout, row_values), layout.positions)
                        counter = 1
                    else:
                        counter += 1

                if stale:
                    self._warn(OutOfOrderRowsWarning(record.path, stale), warnings)

            if past_end:
                break

        buffer.trim()
        elapsed_ms = (time.perf_counter() - started) * 1000
        self._log(f"Data Extraction Completed in {elapsed_ms:.0f}ms")

        return ExtractionResult(
            tags=list(tags),
            timestamps=buffer.timestamps.tolist(),
            values=buffer.values,
            point_count=buffer.count,
            warnings=warnings,
        )

    def extract_request(self, request: ExtractionRequest) -> ExtractionResult:
        """Catalog the request's files, select those covering the window and extract.

        Args:
            request: The extraction request

        Returns:
            The extraction result, including warnings for rejected file names

        Raises:
            ExtractionRangeError: If no valid file remains or none covers the window
        """
        warnings: List[ExtractionWarning] = []
        records, invalid = build_catalog(request.files)
        for warning in invalid:
            self._warn(warning, warnings)
        if not records:
            raise ExtractionRangeError("Invalid data file list")

        window = TimeWindow(_to_datetime(request.start), _to_datetime(request.end)).ordered()
        selected = select_covering(records, window.start, window.end)
        return self._extract(selected, request.tags, window, request.interval, warnings)

    def list_tags(self, path: str) -> List[str]:
        """Return the tag names in a data file's header, excluding time stamp columns."""
        record = FileRecord.from_path(path)
        if record is None:
            extension = str(path).rsplit(".", 1)[-1].lower() if "." in str(path) else ""
            record = FileRecord(str(path), extension, datetime.datetime.min)
        with open_source(record, self.config) as source:
            return source.tag_names()
