"""Tests for the growable result storage."""

import datetime
from unittest.mock import Mock

import numpy as np
import pytest
from tag_extractor.result_buffer import ResultBuffer

T0 = datetime.datetime(2023, 1, 15)


def at(seconds):
    return T0 + datetime.timedelta(seconds=seconds)


class TestResultBuffer:
    """Test append, overwrite, growth and trim."""

    def test_append_maps_positions(self):
        """Test that row elements land in the arrays named by positions."""
        buffer = ResultBuffer(3, 4)
        buffer.append(at(0), np.array([1.0, 2.0, 3.0], dtype=np.float32), [2, 0, 1])
        assert buffer.count == 1
        assert buffer.values[0][0] == 2.0
        assert buffer.values[1][0] == 3.0
        assert buffer.values[2][0] == 1.0
        assert buffer.last_timestamp == at(0)

    def test_grow_doubles_and_preserves(self):
        """Test doubling when the arrays are full."""
        log = Mock()
        buffer = ResultBuffer(1, 2, log_callback=log)
        for i in range(5):
            buffer.append(at(i), np.array([float(i)], dtype=np.float32), [0])
        assert buffer.capacity == 8
        assert buffer.count == 5
        np.testing.assert_array_equal(buffer.values[0][:5], [0, 1, 2, 3, 4])
        messages = [call.args[0] for call in log.call_args_list]
        assert "Expanding arrays from 2 to 4 elements" in messages
        assert "Expanding arrays from 4 to 8 elements" in messages

    def test_overwrite_last(self):
        """Test that the newest point is replaced in place."""
        buffer = ResultBuffer(2, 4)
        buffer.append(at(0), np.array([1.0, 2.0], dtype=np.float32), [0, 1])
        buffer.append(at(1), np.array([3.0, 4.0], dtype=np.float32), [0, 1])
        buffer.overwrite_last(at(1), np.array([5.0, np.nan], dtype=np.float32), [0, 1])
        assert buffer.count == 2
        assert buffer.values[0][1] == 5.0
        assert np.isnan(buffer.values[1][1])
        assert buffer.values[0][0] == 1.0

    def test_overwrite_empty(self):
        """Test that there is nothing to overwrite before the first append."""
        buffer = ResultBuffer(1, 1)
        with pytest.raises(IndexError):
            buffer.overwrite_last(at(0), np.array([1.0], dtype=np.float32), [0])

    def test_trim(self):
        """Test trimming to the exact point count."""
        log = Mock()
        buffer = ResultBuffer(2, 10, log_callback=log)
        buffer.append(at(0), np.array([1.0, 2.0], dtype=np.float32), [0, 1])
        buffer.append(at(1), np.array([3.0, 4.0], dtype=np.float32), [0, 1])
        buffer.trim()
        assert buffer.capacity == 2
        assert len(buffer.timestamps) == 2
        assert all(len(values) == 2 for values in buffer.values)
        assert buffer.timestamps.tolist() == [at(0), at(1)]
        log.assert_called_with("Trimming arrays from 10 to 2 elements", "INFO")

    def test_trim_full_buffer_is_noop(self):
        """Test that a full buffer is not copied."""
        buffer = ResultBuffer(1, 1)
        buffer.append(at(0), np.array([1.0], dtype=np.float32), [0])
        values = buffer.values[0]
        buffer.trim()
        assert buffer.values[0] is values

    def test_values_are_float32(self):
        """Test the element types of the arrays."""
        buffer = ResultBuffer(1, 1)
        assert buffer.values[0].dtype == np.float32
        assert buffer.timestamps.dtype == np.dtype("datetime64[us]")

    def test_microseconds_preserved(self):
        """Test that sub-second timestamps survive storage."""
        buffer = ResultBuffer(1, 1)
        ts = datetime.datetime(2023, 1, 15, 1, 2, 3, 456000)
        buffer.append(ts, np.array([1.0], dtype=np.float32), [0])
        assert buffer.timestamps.tolist() == [ts]

    def test_invalid_capacity(self):
        """Test that a non-positive capacity is rejected."""
        with pytest.raises(ValueError):
            ResultBuffer(1, 0)

    def test_log_callback_errors_ignored(self):
        """Test that a failing log callback does not break growth."""
        buffer = ResultBuffer(1, 1, log_callback=Mock(side_effect=RuntimeError("boom")))
        buffer.append(at(0), np.array([1.0], dtype=np.float32), [0])
        buffer.append(at(1), np.array([2.0], dtype=np.float32), [0])
        assert buffer.count == 2
