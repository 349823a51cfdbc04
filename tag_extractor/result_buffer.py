"""Growable storage for extracted samples.

Arrays are allocated once from an up-front estimate, doubled whenever they
fill, and trimmed to the exact number of points at the end.
"""

import datetime
from typing import Callable, List, Optional

import numpy as np

TIMESTAMP_DTYPE = "datetime64[us]"
VALUE_DTYPE = np.float32


class ResultBuffer:
    """Timestamp array plus one float32 array per tag, all the same length.

    Attributes:
        count: Number of valid points
        capacity: Allocated length of every array
    """

    def __init__(
        self,
        tag_count: int,
        capacity: int,
        log_callback: Optional[Callable[[str, str], None]] = None,
    ):
        if capacity <= 0:
            raise ValueError(f"Capacity must be positive, got {capacity}")
        self.tag_count = tag_count
        self.capacity = capacity
        self.count = 0
        self.log_callback = log_callback
        self.timestamps = np.empty(capacity, dtype=TIMESTAMP_DTYPE)
        self.values: List[np.ndarray] = [
            np.full(capacity, np.nan, dtype=VALUE_DTYPE) for _ in range(tag_count)
        ]
        # Python copy of the newest timestamp for exact comparisons
        self._last: Optional[datetime.datetime] = None

    def _log(self, message: str, level: str = "INFO") -> None:
        if self.log_callback:
            try:
                self.log_callback(message, level)
            except Exception:
                pass

    @property
    def last_timestamp(self) -> Optional[datetime.datetime]:
        return self._last

    def _grow(self) -> None:
        new_capacity = self.capacity * 2
        self._log(f"Expanding arrays from {self.capacity} to {new_capacity} elements")
        timestamps = np.empty(new_capacity, dtype=TIMESTAMP_DTYPE)
        timestamps[:self.count] = self.timestamps[:self.count]
        self.timestamps = timestamps
        for i, old in enumerate(self.values):
            grown = np.full(new_capacity, np.nan, dtype=VALUE_DTYPE)
            grown[:self.count] = old[:self.count]
            self.values[i] = grown
        self.capacity = new_capacity

    def _write(self, slot: int, timestamp: datetime.datetime, row: np.ndarray, positions: List[int]) -> None:
        self.timestamps[slot] = np.datetime64(timestamp, "us")
        for value, position in zip(row, positions):
            self.values[position][slot] = value

    def append(self, timestamp: datetime.datetime, row: np.ndarray, positions: List[int]) -> None:
        """Store a new point, doubling the arrays first if they are full.

        Args:
            timestamp: Time of the sample
            row: Sample values in column order
            positions: Tag index receiving each element of ``row``
        """
        if self.count == self.capacity:
            self._grow()
        self._write(self.count, timestamp, row, positions)
        self.count += 1
        self._last = timestamp

    def overwrite_last(self, timestamp: datetime.datetime, row: np.ndarray, positions: List[int]) -> None:
        """Replace the newest point with a sample carrying the same timestamp."""
        if self.count == 0:
            raise IndexError("No point to overwrite")
        self._write(self.count - 1, timestamp, row, positions)
        self._last = timestamp

    def trim(self) -> None:
        """Shrink every array to the number of valid points."""
        if self.count == self.capacity:
            return
        self._log(f"Trimming arrays from {self.capacity} to {self.count} elements")
        self.timestamps = self.timestamps[:self.count].copy()
        self.values = [values[:self.count].copy() for values in self.values]
        self.capacity = self.count
