"""Running utility commands and printing select results."""

from __future__ import annotations

import contextlib
import os
import struct
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, replace
from typing import IO

from rmdb.analyzer import ColMeta, ColumnNotFoundError, TabCol
from rmdb.index_format import ColType
from rmdb.record_printer import OutputBuffer, RecordPrinter

OUTPUT_FILE = "output.txt"

HELP_INFO = (
    "Supported SQL syntax:\n"
    "  command ;\n"
    "command:\n"
    "  CREATE TABLE table_name (column_name type [, column_name type ...])\n"
    "  DROP TABLE table_name\n"
    "  CREATE INDEX table_name (column_name)\n"
    "  DROP INDEX table_name (column_name)\n"
    "  INSERT INTO table_name VALUES (value [, value ...])\n"
    "  DELETE FROM table_name [WHERE where_clause]\n"
    "  UPDATE table_name SET column_name = value [, column_name = value ...] [WHERE where_clause]\n"
    "  SELECT selector FROM table_name [WHERE where_clause]\n"
    "type:\n"
    "  {INT | FLOAT | CHAR(n)}\n"
    "where_clause:\n"
    "  condition [AND condition ...]\n"
    "condition:\n"
    "  column op {column | value}\n"
    "column:\n"
    "  [table_name.]column_name\n"
    "op:\n"
    "  {= | <> | < | > | <= | >=}\n"
    "selector:\n"
    "  {* | column [, column ...]}\n"
)

_INT = struct.Struct("<i")
_FLOAT = struct.Struct("<f")


@dataclass(frozen=True)
class ProjectionLayout:
    """Where projected columns come from and how they are laid out."""

    indexes: list[int]
    cols: list[ColMeta]
    tuple_len: int


def find_column(cols: Sequence[ColMeta], target: TabCol) -> int:
    """Position of the column ``target`` (table and name must both match)."""
    for position, col in enumerate(cols):
        if col.tab_name == target.tab_name and col.name == target.col_name:
            return position
    raise ColumnNotFoundError(f"{target.tab_name}.{target.col_name}")


def projection_layout(prev_cols: Sequence[ColMeta], sel_cols: Iterable[TabCol]) -> ProjectionLayout:
    """Pick ``sel_cols`` out of ``prev_cols`` and pack them one after another."""
    indexes: list[int] = []
    cols: list[ColMeta] = []
    offset = 0
    for sel_col in sel_cols:
        position = find_column(prev_cols, sel_col)
        indexes.append(position)
        col = replace(prev_cols[position], offset=offset)
        offset += col.len
        cols.append(col)
    return ProjectionLayout(indexes, cols, offset)


def format_column(col: ColMeta, record: bytes) -> str:
    """Text form of one column value stored in ``record``."""
    raw = bytes(record[col.offset : col.offset + col.len])
    kind = ColType(col.type)
    if kind is ColType.TYPE_INT:
        return str(_INT.unpack_from(raw)[0])
    if kind is ColType.TYPE_FLOAT:
        return f"{_FLOAT.unpack_from(raw)[0]:f}"
    text, _, _ = raw.partition(b"\0")
    return text.decode("utf-8", errors="replace")


def write_help(out: OutputBuffer) -> None:
    """Write the summary of supported statements."""
    out.write(HELP_INFO)


def _file_row(values: Sequence[str]) -> str:
    return "|" + "".join(f" {value} |" for value in values) + "\n"


def _open_output(path: str | os.PathLike | None) -> contextlib.AbstractContextManager[IO[str] | None]:
    if path is None:
        return contextlib.nullcontext(None)
    return open(path, "a", encoding="utf-8")


def select_from(
    cols: Sequence[ColMeta],
    records: Iterable[bytes],
    captions: Sequence[str],
    out: OutputBuffer,
    output_path: str | os.PathLike | None = OUTPUT_FILE,
) -> int:
    """Print a result table into ``out`` and append it to ``output_path``.

    Returns the number of records printed. No file is written when
    ``output_path`` is None.
    """
    printer = RecordPrinter(len(captions))
    printer.print_separator(out)
    printer.print_record(list(captions), out)
    printer.print_separator(out)

    num_rec = 0
    with _open_output(output_path) as outfile:
        if outfile is not None:
            outfile.write(_file_row(captions))
        for record in records:
            values = [format_column(col, record) for col in cols]
            printer.print_record(values, out)
            if outfile is not None:
                outfile.write(_file_row(values))
            num_rec += 1

    printer.print_separator(out)
    RecordPrinter.print_record_count(num_rec, out)
    return num_rec