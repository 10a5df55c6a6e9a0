import struct

import pytest

from rmdb.analyzer import ColMeta, ColumnNotFoundError, TabCol
from rmdb.execution import (
    HELP_INFO,
    find_column,
    format_column,
    projection_layout,
    select_from,
    write_help,
)
from rmdb.index_format import ColType
from rmdb.record_printer import OutputBuffer


@pytest.fixture
def prev_cols():
    return [
        ColMeta("t", "a", ColType.TYPE_INT, 4, 0),
        ColMeta("t", "b", ColType.TYPE_STRING, 8, 4),
        ColMeta("u", "c", ColType.TYPE_FLOAT, 4, 12),
    ]


def test_find_column_position(prev_cols):
    assert find_column(prev_cols, TabCol("u", "c")) == 2
    assert find_column(prev_cols, TabCol("t", "a")) == 0


def test_find_column_requires_table_match(prev_cols):
    with pytest.raises(ColumnNotFoundError) as info:
        find_column(prev_cols, TabCol("u", "a"))
    assert info.value.name == "u.a"


def test_projection_layout_packs_columns(prev_cols):
    layout = projection_layout(prev_cols, [TabCol("u", "c"), TabCol("t", "b")])
    assert layout.indexes == [2, 1]
    assert [c.name for c in layout.cols] == ["c", "b"]
    assert layout.cols[0].offset == 0
    assert layout.cols[1].offset == layout.cols[0].len
    assert layout.tuple_len == sum(c.len for c in layout.cols)


def test_projection_layout_missing_column(prev_cols):
    with pytest.raises(ColumnNotFoundError):
        projection_layout(prev_cols, [TabCol("t", "zzz")])


def test_format_column_int_and_float(prev_cols):
    record = struct.pack("<i", -42) + b"hi\0\0\0\0\0\0" + struct.pack("<f", 1.5)
    assert format_column(prev_cols[0], record) == "-42"
    assert format_column(prev_cols[2], record) == "1.500000"


def test_format_column_string_stops_at_nul(prev_cols):
    record = struct.pack("<i", 0) + b"hi\0xyz\0\0" + struct.pack("<f", 0.0)
    assert format_column(prev_cols[1], record) == "hi"


def test_format_column_full_width_string(prev_cols):
    record = struct.pack("<i", 0) + b"abcdefgh" + struct.pack("<f", 0.0)
    assert format_column(prev_cols[1], record) == "abcdefgh"


def test_write_help():
    out = OutputBuffer()
    write_help(out)
    assert out.getvalue() == HELP_INFO
    assert out.getvalue().startswith("Supported SQL syntax:\n")


def _records():
    cols = [
        ColMeta("t", "id", ColType.TYPE_INT, 4, 0),
        ColMeta("t", "name", ColType.TYPE_STRING, 4, 4),
    ]
    rows = [struct.pack("<i", 1) + b"ab\0\0", struct.pack("<i", 2) + b"cd\0\0"]
    return cols, rows


def test_select_from_writes_file(tmp_path):
    cols, rows = _records()
    path = tmp_path / "output.txt"
    out = OutputBuffer()
    count = select_from(cols, rows, ["id", "name"], out, path)
    assert count == 2
    assert path.read_text() == "| id | name |\n| 1 | ab |\n| 2 | cd |\n"


def test_select_from_appends(tmp_path):
    cols, rows = _records()
    path = tmp_path / "output.txt"
    select_from(cols, rows, ["id", "name"], OutputBuffer(), path)
    select_from(cols, rows, ["id", "name"], OutputBuffer(), path)
    assert path.read_text().count("| id | name |\n") == 2


def test_select_from_buffer_layout():
    cols, rows = _records()
    out = OutputBuffer()
    select_from(cols, iter(rows), ["id", "name"], out, None)
    lines = out.getvalue().splitlines()
    assert lines[-1] == "Total record(s): 2"
    separator = lines[0]
    assert lines[2] == separator
    assert lines[-2] == separator
    assert "id" in lines[1] and "name" in lines[1]
    assert "ab" in lines[3] and "cd" in lines[4]
    assert len(lines) == 7


def test_select_from_empty():
    cols, _ = _records()
    out = OutputBuffer()
    assert select_from(cols, [], ["id", "name"], out, None) == 0
    assert out.getvalue().endswith("Total record(s): 0\n")


def test_select_from_elides_when_full():
    cols, rows = _records()
    out = OutputBuffer(capacity=300)
    count = select_from(cols, rows * 10, ["id", "name"], out, None)
    assert count == 20
    assert out.ellipsis is True
    assert out.getvalue().endswith("... ...\nTotal record(s): 20\n")