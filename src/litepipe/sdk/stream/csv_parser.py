"""
Incremental CSV parsing of sqlite3 shell output.

The shell writes one record per line, but a quoted field may carry embedded
newlines, so a line boundary is not necessarily a record boundary. The
functions here only ever consume complete records: when the buffer ends in
the middle of a record the partial text is left untouched for the next call.
"""

import logging
import re
from typing import NamedTuple

from .types import Row, Scalar

logger = logging.getLogger(__name__)

# The forms the shell prints: no "-0", and REALs as %!.15g (always a ".", never a
# trailing zero after the first decimal, two or three exponent digits)
_INTEGER_RE = re.compile(r"(?:0|-?[1-9][0-9]*)\Z")
_REAL_RE = re.compile(r"-?(?:0|[1-9][0-9]*)\.(?:0|[0-9]*[1-9])(?:e[-+][0-9]{2,3})?\Z")


class DrainResult(NamedTuple):
    """Outcome of a :func:`drain` call.

    Attributes:
        consumed: Number of characters of the buffer that were parsed
        rows: Complete rows, in order
        remainder: Unconsumed tail of the buffer, retained verbatim
    """

    consumed: int
    rows: list[Row]
    remainder: str


def convert_field(
    value: str, quoted: bool, null_sentinel: str | None, convert_numbers: bool = True
) -> Scalar:
    """Turn one raw CSV field into a scalar.

    Quoted fields are always text. An unquoted field equal to the sentinel is
    NULL; an unquoted field printed the way the shell prints an INTEGER or a
    REAL becomes a number unless ``convert_numbers`` is off. Text that looks
    exactly like such a number is indistinguishable from it in CSV output.
    """
    if quoted:
        return value
    if null_sentinel is not None and value == null_sentinel:
        return None
    if not convert_numbers:
        return value
    if _INTEGER_RE.match(value):
        return int(value)
    if _REAL_RE.match(value):
        return float(value)
    return value


def read_record(
    buffer: str, start: int = 0, delimiter: str = ","
) -> tuple[list[tuple[str, bool]], int] | None:
    """Read one complete record starting at ``start``.

    Returns:
        ``(fields, end)`` where each field is ``(text, quoted)`` and ``end`` is
        the index just past the record terminator, or None when the buffer
        does not yet hold a complete record.
    """
    fields: list[tuple[str, bool]] = []
    size = len(buffer)
    pos = start
    while True:
        quoted = pos < size and buffer[pos] == '"'
        if quoted:
            parts = []
            pos += 1
            while True:
                close = buffer.find('"', pos)
                # The char after a quote decides between "" and end of field
                if close < 0 or close + 1 >= size:
                    return None
                parts.append(buffer[pos:close])
                if buffer[close + 1] == '"':
                    parts.append('"')
                    pos = close + 2
                    continue
                pos = close + 1
                break
            # Stray text after the closing quote is kept, like the csv module does
            end = _field_end(buffer, pos, delimiter)
            if end < 0:
                return None
            parts.append(buffer[pos:end])
            value = "".join(parts)
        else:
            end = _field_end(buffer, pos, delimiter)
            if end < 0:
                return None
            value = buffer[pos:end]
        pos = end

        if buffer[pos] == delimiter:
            fields.append((value, quoted))
            pos += 1
            continue

        # Record terminator: "\n" or "\r\n"
        if value.endswith("\r") and (not quoted or buffer[pos - 1] == "\r"):
            value = value[:-1]
        fields.append((value, quoted))
        return fields, pos + 1


def _field_end(buffer: str, pos: int, delimiter: str) -> int:
    delim_at = buffer.find(delimiter, pos)
    newline_at = buffer.find("\n", pos)
    if newline_at < 0:
        return -1
    if 0 <= delim_at < newline_at:
        return delim_at
    return newline_at


def drain(
    buffer: str,
    null_sentinel: str | None = None,
    *,
    delimiter: str = ",",
    limit: int | None = None,
    stop_at: re.Pattern[str] | None = None,
    convert_numbers: bool = True,
) -> DrainResult:
    """Parse as many complete records from ``buffer`` as are available.

    Args:
        buffer: Raw shell output
        null_sentinel: Text standing in for SQL NULL in this result set
        delimiter: Field separator
        limit: Stop after this many rows
        stop_at: Stop before a record whose text matches this pattern at its start
            (used to leave error lines for the prompt synchronizer)
        convert_numbers: Turn numeric-looking unquoted fields into int or float

    Returns:
        DrainResult with the consumed length, parsed rows and retained remainder
    """
    rows: list[Row] = []
    pos = 0
    while limit is None or len(rows) < limit:
        if stop_at is not None and stop_at.match(buffer, pos):
            break
        record = read_record(buffer, pos, delimiter)
        if record is None:
            break
        fields, pos = record
        rows.append(
            tuple(convert_field(text, quoted, null_sentinel, convert_numbers) for text, quoted in fields)
        )
    return DrainResult(pos, rows, buffer[pos:])


class CsvStreamParser:
    """Stateful wrapper around :func:`drain` for push-style consumers.

    Chunks are appended with :meth:`feed`; complete rows come back and any
    partial record is retained until the next chunk completes it.
    """

    def __init__(
        self, null_sentinel: str | None = None, delimiter: str = ",", convert_numbers: bool = True
    ):
        self.null_sentinel = null_sentinel
        self.delimiter = delimiter
        self.convert_numbers = convert_numbers
        self._pending = ""

    @property
    def pending(self) -> str:
        """Text received but not yet part of a complete record."""
        return self._pending

    def feed(self, chunk: str) -> list[Row]:
        self._pending += chunk
        result = drain(
            self._pending, self.null_sentinel, delimiter=self.delimiter, convert_numbers=self.convert_numbers
        )
        self._pending = result.remainder
        return result.rows

    def flush(self) -> list[Row]:
        """Parse whatever is left once no more input will arrive.

        A final record without a trailing newline is completed; a record that
        is cut off inside quotes is dropped and logged.
        """
        if not self._pending:
            return []
        text = self._pending if self._pending.endswith("\n") else self._pending + "\n"
        self._pending = ""
        result = drain(text, self.null_sentinel, delimiter=self.delimiter, convert_numbers=self.convert_numbers)
        if result.remainder:
            logger.warning(f"Discarding incomplete CSV record at end of stream: {result.remainder!r}")
        return result.rows
