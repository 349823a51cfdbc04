"""Double-buffered character stream with background read-ahead.

The PrefetchBuffer decodes an underlying byte stream into two alternating
character buffers. While the consumer drains the active buffer, a single
background worker fills the standby buffer. When the active buffer runs dry
the consumer joins the pending fill, swaps the buffers and immediately
schedules the next fill.
"""

import io
from concurrent.futures import Future, ThreadPoolExecutor, wait
from typing import BinaryIO, Optional

# Default buffer size in characters (10M chars per buffer)
DEFAULT_BUFFER_SIZE: int = 10485760

# Returned by next_char() once the stream is exhausted
EOF: str = ""


class PrefetchBuffer:
    """Character source that reads ahead on a background thread.

    Only one consumer may call into the buffer, and at most one background
    fill is outstanding at any time. The standby buffer is never touched by
    the consumer until its fill has been joined at the swap point.

    Attributes:
        buffer_size: Maximum number of characters per buffer
    """

    def __init__(
        self,
        stream: BinaryIO,
        buffer_size: int = DEFAULT_BUFFER_SIZE,
        encoding: str = "utf-8-sig",
        errors: str = "replace",
    ):
        """Initialize the buffer and start the first background fill.

        Args:
            stream: Binary stream to read from. Closed when the buffer closes,
                or right away if initialization fails.
            buffer_size: Maximum number of characters per buffer
            encoding: Text encoding of the stream (BOM tolerated by default)
            errors: Decoding error handler. Undecodable bytes become U+FFFD
                by default.
        """
        if buffer_size <= 0:
            stream.close()
            raise ValueError(f"Buffer size must be positive, got {buffer_size}")
        self.buffer_size = buffer_size
        self._closed = False

        try:
            self._reader = io.TextIOWrapper(stream, encoding=encoding, errors=errors, newline="")
            # First fill is synchronous so the consumer can start immediately
            self._active: str = self._fill()
        except Exception:
            stream.close()
            raise
        self._index: int = 0

        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="prefetch")
        self._pending: Optional[Future] = self._executor.submit(self._fill)

    def _fill(self) -> str:
        """Read the next block of characters from the stream."""
        return self._reader.read(self.buffer_size)

    def _swap(self) -> bool:
        """Make the standby buffer active once its fill has completed.

        Returns:
            True if new characters are available, False at end of stream
        """
        if self._pending is None:
            return False

        standby = self._pending.result()
        if not standby:
            self._pending = None
            self._active = ""
            self._index = 0
            return False

        self._active = standby
        self._index = 0
        self._pending = self._executor.submit(self._fill)
        return True

    def next_char(self) -> str:
        """Return the next character, or EOF once the stream is exhausted."""
        if self._index >= len(self._active) and not self._swap():
            return EOF
        c = self._active[self._index]
        self._index += 1
        return c

    def read_line(self) -> Optional[str]:
        """Return the next line without its terminator, or None at end of stream.

        Both ``\\n`` and ``\\r\\n`` terminators are recognized. A final line
        without a terminator is still returned.
        """
        parts = []
        while True:
            if self._index >= len(self._active) and not self._swap():
                break
            end = self._active.find("\n", self._index)
            if end < 0:
                parts.append(self._active[self._index:])
                self._index = len(self._active)
                continue
            parts.append(self._active[self._index:end])
            self._index = end + 1
            return _strip_cr("".join(parts))

        if not parts:
            return None
        return _strip_cr("".join(parts))

    def __iter__(self):
        return iter(self.read_line, None)

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        """Wait for any outstanding fill, then release the stream and worker."""
        if self._closed:
            return
        self._closed = True
        if self._pending is not None:
            wait([self._pending])
            self._pending = None
        self._executor.shutdown(wait=True)
        self._active = ""
        self._index = 0
        self._reader.close()

    def __enter__(self) -> "PrefetchBuffer":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


def _strip_cr(line: str) -> str:
    return line[:-1] if line.endswith("\r") else line
