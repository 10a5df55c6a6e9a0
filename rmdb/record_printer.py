"""Tabular formatting of query results into a bounded reply buffer."""

from __future__ import annotations

from collections.abc import Sequence

RECORD_COUNT_LENGTH = 40
BUFFER_LENGTH = 8192


class OutputBuffer:
    """Reply text of bounded size.

    Writes that would leave less than ``RECORD_COUNT_LENGTH`` bytes of room
    are dropped and the buffer is marked as elided.
    """

    def __init__(self, capacity: int = BUFFER_LENGTH) -> None:
        self.capacity = capacity
        self.ellipsis = False
        self._parts: list[str] = []
        self._size = 0

    def __len__(self) -> int:
        return self._size

    def _fits(self, text: str) -> bool:
        return (
            not self.ellipsis
            and self._size + RECORD_COUNT_LENGTH + len(text.encode("utf-8")) < self.capacity
        )

    def _append(self, text: str) -> None:
        self._parts.append(text)
        self._size += len(text.encode("utf-8"))

    def write(self, text: str) -> bool:
        """Append text if it fits; otherwise mark the buffer elided. Returns whether it was written."""
        if self._fits(text):
            self._append(text)
            return True
        self.ellipsis = True
        return False

    def getvalue(self) -> str:
        """Return everything written so far."""
        return "".join(self._parts)


class RecordPrinter:
    """Draws a fixed-width ASCII table with a given number of columns."""

    COL_WIDTH = 16

    def __init__(self, num_cols: int) -> None:
        if num_cols <= 0:
            raise ValueError("a table needs at least one column")
        self.num_cols = num_cols

    def print_separator(self, out: OutputBuffer) -> None:
        """Write a line such as ``+------...+------...+``."""
        cell = "+" + "-" * (self.COL_WIDTH + 2)
        for _ in range(self.num_cols):
            out.write(cell)
        out.write("+\n")

    def print_record(self, values: Sequence[str], out: OutputBuffer) -> None:
        """Write one row; values longer than the column width are shortened."""
        if len(values) != self.num_cols:
            raise ValueError(f"expected {self.num_cols} values, got {len(values)}")
        for value in values:
            if len(value) > self.COL_WIDTH:
                value = value[: self.COL_WIDTH - 3] + "..."
            out.write(f"| {value:>{self.COL_WIDTH}} ")
        # The row terminator is dropped silently without eliding the output.
        if out._fits("|\n"):
            out._append("|\n")

    @staticmethod
    def print_record_count(num_rec: int, out: OutputBuffer) -> None:
        """Write the record-count footer, always, after any elision mark."""
        text = "... ...\n" if out.ellipsis else ""
        text += f"Total record(s): {num_rec}\n"
        out._append(text)