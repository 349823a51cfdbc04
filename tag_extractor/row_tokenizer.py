"""Streaming extractor for ``<row>`` elements of a worksheet.

A worksheet of a large spreadsheet can be several gigabytes of XML. Instead
of building a document tree, the RowScanner walks the text one character at
a time and hands back the inner text of each ``<row>`` element as soon as its
end tag is seen. The scanner is independent of any I/O source; RowTokenizer
drives it from a PrefetchBuffer.

The scanner is deliberately minimal: it is not namespace aware, it does not
track nesting depth outside of a row (rows never nest), and it assumes the
input is well formed. Malformed input may produce truncated row text, which
the numeric cell parsing later rejects.
"""

from enum import Enum
from typing import Iterator, List, Optional

from .prefetch_buffer import EOF, PrefetchBuffer

ROW_ELEMENT: str = "row"

_WHITESPACE = frozenset(" \t\r\n")


class ScanState(Enum):
    """Position of the scanner relative to the markup."""
    SEARCHING = "searching"            # Outside any row, waiting for '<'
    IN_START_TAG = "in_start_tag"      # Reading an element name after '<'
    IN_ATTRIBUTE = "in_attribute"      # Inside the attributes of a row start tag
    IN_WANTED_TEXT = "in_wanted_text"  # Recording the body of a row
    IN_MARKUP = "in_markup"            # Just saw '<' inside a row body
    IN_END_TAG = "in_end_tag"          # Reading an end tag name inside a row body


class RowScanner:
    """Finite-state machine that recognizes row elements character by character.

    Feed characters with feed(). When a row is complete its inner text is
    returned; otherwise feed() returns None.
    """

    def __init__(self, element: str = ROW_ELEMENT):
        self.element = element
        self.state = ScanState.SEARCHING
        self._name: List[str] = []
        self._text: List[str] = []
        self._markup_start = 0
        self._in_quotes = False

    def reset(self) -> None:
        self.state = ScanState.SEARCHING
        self._name.clear()
        self._text.clear()
        self._markup_start = 0
        self._in_quotes = False

    def _name_matches(self) -> bool:
        return "".join(self._name) == self.element

    def _emit(self, text: str) -> str:
        self.reset()
        return text

    def feed(self, c: str) -> Optional[str]:
        """Advance the state machine by one character.

        Args:
            c: The next character of the document

        Returns:
            Inner text of a completed row, or None if no row completed
        """
        state = self.state

        if state is ScanState.SEARCHING:
            if c == "<":
                self._name.clear()
                self.state = ScanState.IN_START_TAG

        elif state is ScanState.IN_START_TAG:
            if c in _WHITESPACE:
                self.state = ScanState.IN_ATTRIBUTE if self._name_matches() else ScanState.SEARCHING
                self._name.clear()
            elif c == ">":
                if self._name_matches():
                    self._text.clear()
                    self.state = ScanState.IN_WANTED_TEXT
                else:
                    self.state = ScanState.SEARCHING
                self._name.clear()
            elif c == "/":
                # "</name>" is an end tag of some other element, "<name/>" is empty
                if self._name_matches():
                    return self._emit("")
                self.state = ScanState.SEARCHING
                self._name.clear()
            else:
                self._name.append(c)

        elif state is ScanState.IN_ATTRIBUTE:
            if c == '"':
                self._in_quotes = not self._in_quotes
            elif self._in_quotes:
                pass
            elif c == "/":
                return self._emit("")
            elif c == ">":
                self._text.clear()
                self.state = ScanState.IN_WANTED_TEXT

        elif state is ScanState.IN_WANTED_TEXT:
            self._text.append(c)
            if c == "<":
                self._markup_start = len(self._text) - 1
                self.state = ScanState.IN_MARKUP

        elif state is ScanState.IN_MARKUP:
            self._text.append(c)
            if c == "/":
                self._name.clear()
                self.state = ScanState.IN_END_TAG
            else:
                self.state = ScanState.IN_WANTED_TEXT

        elif state is ScanState.IN_END_TAG:
            self._text.append(c)
            if c == ">" or c in _WHITESPACE:
                if self._name_matches():
                    return self._emit("".join(self._text[:self._markup_start]))
                self._name.clear()
                self.state = ScanState.IN_WANTED_TEXT
            else:
                self._name.append(c)

        return None

    def finish(self) -> str:
        """Flush at end of input.

        Returns:
            Whatever text of an unterminated row was recorded, or ""
        """
        text = "".join(self._text) if self.state in (
            ScanState.IN_WANTED_TEXT, ScanState.IN_MARKUP, ScanState.IN_END_TAG
        ) else ""
        self.reset()
        return text


class RowTokenizer:
    """Reads successive row bodies from a PrefetchBuffer.

    Attributes:
        exhausted: True once the underlying stream has ended
    """

    def __init__(self, buffer: PrefetchBuffer, element: str = ROW_ELEMENT):
        self._buffer = buffer
        self._scanner = RowScanner(element)
        self.exhausted = False

    def next_row(self) -> str:
        """Return the inner text of the next row, or "" at end of stream."""
        if self.exhausted:
            return ""
        next_char = self._buffer.next_char
        feed = self._scanner.feed
        while True:
            c = next_char()
            if c == EOF:
                self.exhausted = True
                return self._scanner.finish()
            row = feed(c)
            if row is not None:
                return row

    def __iter__(self) -> Iterator[str]:
        """Yield every row body, including empty rows, until the stream ends."""
        while True:
            row = self.next_row()
            if self.exhausted and not row:
                return
            yield row

    def close(self) -> None:
        self._buffer.close()

    def __enter__(self) -> "RowTokenizer":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


def iter_rows(text: str, element: str = ROW_ELEMENT) -> Iterator[str]:
    """Yield the inner text of every row element in an in-memory document."""
    scanner = RowScanner(element)
    for c in text:
        row = scanner.feed(c)
        if row is not None:
            yield row
    tail = scanner.finish()
    if tail:
        yield tail
