"""Semantic analysis of queries against the table catalog."""

from __future__ import annotations

import enum
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field, replace

from rmdb.index_format import ColType

_TYPE_NAMES = {
    ColType.TYPE_INT: "INT",
    ColType.TYPE_FLOAT: "FLOAT",
    ColType.TYPE_STRING: "STRING",
}


def _type_name(col_type: ColType) -> str:
    return _TYPE_NAMES[ColType(col_type)]


class CompOp(enum.Enum):
    """Comparison operators allowed in a where clause."""

    EQ = "="
    NE = "<>"
    LT = "<"
    GT = ">"
    LE = "<="
    GE = ">="


class ColumnNotFoundError(LookupError):
    """A referenced column does not exist in any table in scope."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Column not found: {name}")
        self.name = name


class AmbiguousColumnError(ValueError):
    """An unqualified column name matches columns of several tables."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Ambiguous column: {name}")
        self.name = name


class IncompatibleTypeError(TypeError):
    """The two sides of a comparison have different types."""

    def __init__(self, lhs: str, rhs: str) -> None:
        super().__init__(f"Incompatible type error: lhs {lhs}, rhs {rhs}")
        self.lhs = lhs
        self.rhs = rhs


class TableNotFoundError(LookupError):
    """A referenced table does not exist."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Table not found: {name}")
        self.name = name


@dataclass(frozen=True)
class TabCol:
    """A column reference, optionally qualified by its table."""

    tab_name: str
    col_name: str


@dataclass(frozen=True)
class ColMeta:
    """Metadata of one column of a table."""

    tab_name: str
    name: str
    type: ColType
    len: int
    offset: int = 0


def _value_type(value: object) -> ColType:
    if isinstance(value, bool):
        raise TypeError("Unexpected value type: bool")
    if isinstance(value, int):
        return ColType.TYPE_INT
    if isinstance(value, float):
        return ColType.TYPE_FLOAT
    if isinstance(value, str):
        return ColType.TYPE_STRING
    raise TypeError(f"Unexpected value type: {type(value).__name__}")


@dataclass(frozen=True)
class Condition:
    """``lhs_col op rhs``, where the right side is a literal or a column."""

    lhs_col: TabCol
    op: CompOp
    rhs_val: int | float | str | None = None
    rhs_col: TabCol | None = None

    def __post_init__(self) -> None:
        if (self.rhs_val is None) == (self.rhs_col is None):
            raise ValueError("a condition compares with exactly one value or one column")
        if self.rhs_val is not None:
            _value_type(self.rhs_val)

    @property
    def is_rhs_val(self) -> bool:
        return self.rhs_col is None


@dataclass
class _Table:
    columns: list[ColMeta]
    indexes: list[tuple[str, ...]] = field(default_factory=list)


class Catalog:
    """Tables, their columns and their indexes."""

    def __init__(self) -> None:
        self._tables: dict[str, _Table] = {}

    def __contains__(self, table: str) -> bool:
        return table in self._tables

    def _table(self, name: str) -> _Table:
        try:
            return self._tables[name]
        except KeyError:
            raise TableNotFoundError(name) from None

    def add_table(self, name: str, columns: Iterable[tuple[str, ColType, int]]) -> list[ColMeta]:
        """Register a table from ``(name, type, length)`` triples; offsets are laid out in order."""
        if name in self._tables:
            raise ValueError(f"Table already exists: {name}")
        metas: list[ColMeta] = []
        offset = 0
        for col_name, col_type, col_len in columns:
            if any(m.name == col_name for m in metas):
                raise ValueError(f"Duplicate column: {col_name}")
            if col_len <= 0:
                raise ValueError(f"Invalid column length: {col_len}")
            metas.append(ColMeta(name, col_name, ColType(col_type), col_len, offset))
            offset += col_len
        if not metas:
            raise ValueError("a table needs at least one column")
        self._tables[name] = _Table(metas)
        return list(metas)

    def add_index(self, table: str, col_names: Sequence[str]) -> None:
        """Record an index over the given columns of ``table``."""
        entry = self._table(table)
        for col_name in col_names:
            self.column(table, col_name)
        key = tuple(col_names)
        if key in entry.indexes:
            raise ValueError(f"Index already exists on {table}({', '.join(key)})")
        entry.indexes.append(key)

    def columns(self, table: str) -> list[ColMeta]:
        """Columns of ``table`` in declaration order."""
        return list(self._table(table).columns)

    def column(self, table: str, name: str) -> ColMeta:
        """Metadata of one column of ``table``."""
        for col in self._table(table).columns:
            if col.name == name:
                return col
        raise ColumnNotFoundError(name)

    def is_index(self, table: str, col_names: Sequence[str]) -> bool:
        """True if an index exists on exactly these columns in this order."""
        return tuple(col_names) in self._table(table).indexes


@dataclass
class Query:
    """Result of analysis: resolved tables, projection and conditions."""

    tables: list[str] = field(default_factory=list)
    cols: list[TabCol] = field(default_factory=list)
    conds: list[Condition] = field(default_factory=list)
    set_clauses: list = field(default_factory=list)
    values: list = field(default_factory=list)
    parse: object = None


def check_column(all_cols: Iterable[ColMeta], target: TabCol) -> TabCol:
    """Fill in the table of an unqualified column reference.

    Qualified references are returned unchanged.
    """
    if target.tab_name:
        return target
    tab_name = ""
    for col in all_cols:
        if col.name == target.col_name:
            if tab_name:
                raise AmbiguousColumnError(target.col_name)
            tab_name = col.tab_name
    if not tab_name:
        raise ColumnNotFoundError(target.col_name)
    return replace(target, tab_name=tab_name)


class Analyzer:
    """Checks queries against a catalog and resolves column references."""

    def __init__(self, catalog: Catalog) -> None:
        self.catalog = catalog

    def all_columns(self, tables: Iterable[str]) -> list[ColMeta]:
        """Columns of all given tables, table by table."""
        return [col for table in tables for col in self.catalog.columns(table)]

    def check_conditions(self, tables: Iterable[str], conds: Iterable[Condition]) -> list[Condition]:
        """Resolve the columns of each condition and check both sides have the same type."""
        all_cols = self.all_columns(tables)
        checked: list[Condition] = []
        for cond in conds:
            lhs = check_column(all_cols, cond.lhs_col)
            rhs_col = None if cond.is_rhs_val else check_column(all_cols, cond.rhs_col)
            lhs_type = self.catalog.column(lhs.tab_name, lhs.col_name).type
            if rhs_col is None:
                rhs_type = _value_type(cond.rhs_val)
            else:
                rhs_type = self.catalog.column(rhs_col.tab_name, rhs_col.col_name).type
            if lhs_type != rhs_type:
                raise IncompatibleTypeError(_type_name(lhs_type), _type_name(rhs_type))
            checked.append(replace(cond, lhs_col=lhs, rhs_col=rhs_col))
        return checked

    def analyze_select(
        self,
        tables: Sequence[str],
        cols: Sequence[TabCol],
        conds: Sequence[Condition],
    ) -> Query:
        """Analyze ``SELECT cols FROM tables WHERE conds``; no columns means all columns."""
        tables = list(tables)
        all_cols = self.all_columns(tables)
        if cols:
            sel_cols = [check_column(all_cols, col) for col in cols]
        else:
            sel_cols = [TabCol(col.tab_name, col.name) for col in all_cols]
        return Query(
            tables=tables,
            cols=sel_cols,
            conds=self.check_conditions(tables, conds),
        )