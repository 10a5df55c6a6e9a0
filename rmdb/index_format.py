"""On-disk layout of B+ tree index files: headers, key comparison and naming."""

from __future__ import annotations

import enum
import struct
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

PAGE_SIZE = 4096

IX_NO_PAGE = -1
IX_FILE_HDR_PAGE = 0
IX_LEAF_HEADER_PAGE = 1
IX_INIT_ROOT_PAGE = 2
IX_INIT_NUM_PAGES = 3
IX_MAX_COL_LEN = 512

# A record id is two 32-bit integers: page number and slot number.
RID_SIZE = struct.calcsize("<ii")

_INT = struct.Struct("<i")
_FLOAT = struct.Struct("<f")


class ColType(enum.IntEnum):
    """Column data types that can be indexed."""

    TYPE_INT = 0
    TYPE_FLOAT = 1
    TYPE_STRING = 2


class InvalidColLengthError(ValueError):
    """The total length of the indexed columns is too large."""

    def __init__(self, col_len: int) -> None:
        super().__init__(f"Invalid column length: {col_len}")
        self.col_len = col_len


@dataclass(frozen=True, order=True)
class Iid:
    """Position of an entry inside the index: leaf page and slot."""

    page_no: int
    slot_no: int


@dataclass
class IndexPageHeader:
    """Header at the start of every B+ tree node page."""

    next_free_page_no: int = IX_NO_PAGE
    parent: int = IX_NO_PAGE
    num_key: int = 0
    is_leaf: bool = False
    prev_leaf: int = IX_NO_PAGE
    next_leaf: int = IX_NO_PAGE

    # Three ints, a bool padded to four bytes, then two ints.
    _STRUCT = struct.Struct("<iii?3xii")
    SIZE = _STRUCT.size

    def pack(self) -> bytes:
        """Encode the header into its fixed-size binary form."""
        return self._STRUCT.pack(
            self.next_free_page_no,
            self.parent,
            self.num_key,
            self.is_leaf,
            self.prev_leaf,
            self.next_leaf,
        )

    @classmethod
    def unpack(cls, data: bytes) -> IndexPageHeader:
        """Decode a header from the start of ``data``."""
        if len(data) < cls.SIZE:
            raise ValueError(f"page header needs {cls.SIZE} bytes, got {len(data)}")
        values = cls._STRUCT.unpack_from(data)
        return cls(*values)


def btree_order(col_tot_len: int, page_size: int = PAGE_SIZE) -> int:
    """Largest number of key/rid pairs a node may hold.

    One extra slot is reserved in each node so that a node can overflow
    by one entry before it is split.
    """
    if col_tot_len <= 0:
        raise ValueError("key length must be positive")
    order = (page_size - IndexPageHeader.SIZE) // (col_tot_len + RID_SIZE) - 1
    if order <= 2:
        raise ValueError(f"page size {page_size} too small for key length {col_tot_len}")
    return order


@dataclass
class IndexFileHeader:
    """Header stored in the first page of an index file."""

    first_free_page_no: int
    num_pages: int
    root_page: int
    col_types: list[ColType] = field(default_factory=list)
    col_lens: list[int] = field(default_factory=list)
    col_tot_len: int = 0
    btree_order: int = 0
    keys_size: int = 0
    first_leaf: int = IX_INIT_ROOT_PAGE
    last_leaf: int = IX_INIT_ROOT_PAGE

    @property
    def col_num(self) -> int:
        return len(self.col_types)

    @property
    def tot_len(self) -> int:
        """Length of the serialized header in bytes."""
        return _INT.size * (10 + 2 * self.col_num)

    @classmethod
    def create(
        cls,
        col_types: Sequence[ColType | int],
        col_lens: Sequence[int],
        page_size: int = PAGE_SIZE,
    ) -> IndexFileHeader:
        """Header for a freshly created index over columns of the given types and lengths."""
        if len(col_types) != len(col_lens):
            raise ValueError("col_types and col_lens differ in length")
        if not col_types:
            raise ValueError("an index needs at least one column")
        col_tot_len = sum(col_lens)
        if col_tot_len > IX_MAX_COL_LEN:
            raise InvalidColLengthError(col_tot_len)
        order = btree_order(col_tot_len, page_size)
        return cls(
            first_free_page_no=IX_NO_PAGE,
            num_pages=IX_INIT_NUM_PAGES,
            root_page=IX_INIT_ROOT_PAGE,
            col_types=[ColType(t) for t in col_types],
            col_lens=list(col_lens),
            col_tot_len=col_tot_len,
            btree_order=order,
            keys_size=(order + 1) * col_tot_len,
            first_leaf=IX_INIT_ROOT_PAGE,
            last_leaf=IX_INIT_ROOT_PAGE,
        )

    def serialize(self) -> bytes:
        """Encode the header; its length equals ``tot_len``."""
        if len(self.col_types) != len(self.col_lens):
            raise ValueError("col_types and col_lens differ in length")
        n = self.col_num
        fmt = f"<5i{n}i{n}i5i"
        return struct.pack(
            fmt,
            self.tot_len,
            self.first_free_page_no,
            self.num_pages,
            self.root_page,
            n,
            *(int(t) for t in self.col_types),
            *self.col_lens,
            self.col_tot_len,
            self.btree_order,
            self.keys_size,
            self.first_leaf,
            self.last_leaf,
        )

    @classmethod
    def deserialize(cls, data: bytes) -> IndexFileHeader:
        """Decode a header written by ``serialize``; trailing bytes are ignored."""
        try:
            tot_len, first_free, num_pages, root_page, col_num = struct.unpack_from("<5i", data)
            if col_num < 0:
                raise ValueError(f"negative column count {col_num}")
            offset = struct.calcsize("<5i")
            types = struct.unpack_from(f"<{col_num}i", data, offset)
            offset += _INT.size * col_num
            lens = struct.unpack_from(f"<{col_num}i", data, offset)
            offset += _INT.size * col_num
            col_tot_len, order, keys_size, first_leaf, last_leaf = struct.unpack_from(
                "<5i", data, offset
            )
            offset += struct.calcsize("<5i")
        except struct.error as exc:
            raise ValueError(f"truncated index file header: {exc}") from exc
        if offset != tot_len:
            raise ValueError(f"header length mismatch: stored {tot_len}, read {offset}")
        return cls(
            first_free_page_no=first_free,
            num_pages=num_pages,
            root_page=root_page,
            col_types=[ColType(t) for t in types],
            col_lens=list(lens),
            col_tot_len=col_tot_len,
            btree_order=order,
            keys_size=keys_size,
            first_leaf=first_leaf,
            last_leaf=last_leaf,
        )


def _sign(a, b) -> int:
    return (a > b) - (a < b)


def ix_compare(a: bytes, b: bytes, col_type: ColType | int, col_len: int) -> int:
    """Compare two encoded column values; returns -1, 0 or 1."""
    try:
        kind = ColType(col_type)
    except ValueError:
        raise ValueError("Unexpected data type") from None
    if kind is ColType.TYPE_INT:
        return _sign(_INT.unpack_from(a)[0], _INT.unpack_from(b)[0])
    if kind is ColType.TYPE_FLOAT:
        return _sign(_FLOAT.unpack_from(a)[0], _FLOAT.unpack_from(b)[0])
    return _sign(bytes(a[:col_len]), bytes(b[:col_len]))


def compare_keys(
    a: bytes,
    b: bytes,
    col_types: Sequence[ColType | int],
    col_lens: Sequence[int],
) -> int:
    """Compare two composite keys column by column; returns -1, 0 or 1."""
    offset = 0
    for col_type, col_len in zip(col_types, col_lens):
        res = ix_compare(a[offset:], b[offset:], col_type, col_len)
        if res != 0:
            return res
        offset += col_len
    return 0


def index_name(table: str, columns: Iterable) -> str:
    """File name of the index on ``columns`` of ``table``.

    Columns may be names or objects with a ``name`` attribute.
    """
    parts = [table]
    parts.extend(col if isinstance(col, str) else col.name for col in columns)
    return "_".join(parts) + ".idx"