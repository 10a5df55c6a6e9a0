"""Query execution plan nodes."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field, replace

from rmdb.analyzer import ColMeta, CompOp, Condition, TabCol


class PlanTag(enum.IntEnum):
    """Kind of a plan node."""

    INVALID = 1
    HELP = enum.auto()
    SHOW_TABLE = enum.auto()
    DESC_TABLE = enum.auto()
    CREATE_TABLE = enum.auto()
    DROP_TABLE = enum.auto()
    CREATE_INDEX = enum.auto()
    DROP_INDEX = enum.auto()
    SET_KNOB = enum.auto()
    INSERT = enum.auto()
    UPDATE = enum.auto()
    DELETE = enum.auto()
    SELECT = enum.auto()
    TRANSACTION_BEGIN = enum.auto()
    TRANSACTION_COMMIT = enum.auto()
    TRANSACTION_ABORT = enum.auto()
    TRANSACTION_ROLLBACK = enum.auto()
    SEQ_SCAN = enum.auto()
    INDEX_SCAN = enum.auto()
    NEST_LOOP = enum.auto()
    SORT_MERGE = enum.auto()
    SORT = enum.auto()
    PROJECTION = enum.auto()


class SetKnobType(enum.Enum):
    """Planner switches that a SET statement can change."""

    ENABLE_NEST_LOOP = "enable_nestloop"
    ENABLE_SORT_MERGE = "enable_sortmerge"


_SWAP_OP = {
    CompOp.EQ: CompOp.EQ,
    CompOp.NE: CompOp.NE,
    CompOp.LT: CompOp.GT,
    CompOp.GT: CompOp.LT,
    CompOp.LE: CompOp.GE,
    CompOp.GE: CompOp.LE,
}

_UTILITY_TAGS = frozenset(
    {
        PlanTag.HELP,
        PlanTag.SHOW_TABLE,
        PlanTag.DESC_TABLE,
        PlanTag.TRANSACTION_BEGIN,
        PlanTag.TRANSACTION_COMMIT,
        PlanTag.TRANSACTION_ABORT,
        PlanTag.TRANSACTION_ROLLBACK,
    }
)


def swap_condition(cond: Condition) -> Condition:
    """Exchange the two column sides of a condition, mirroring its operator."""
    if cond.is_rhs_val:
        raise ValueError("cannot swap a condition whose right side is a value")
    return replace(cond, lhs_col=cond.rhs_col, rhs_col=cond.lhs_col, op=_SWAP_OP[cond.op])


@dataclass
class Plan:
    """Base of all plan nodes."""

    tag: PlanTag


@dataclass
class ScanPlan(Plan):
    """Sequential or index scan of one table."""

    tab_name: str
    cols: list[ColMeta]
    conds: list[Condition] = field(default_factory=list)
    index_col_names: list[str] = field(default_factory=list)
    fed_conds: list[Condition] = field(init=False)

    def __post_init__(self) -> None:
        if self.tag not in (PlanTag.SEQ_SCAN, PlanTag.INDEX_SCAN):
            raise ValueError(f"not a scan tag: {self.tag!r}")
        if not self.cols:
            raise ValueError("a scanned table needs at least one column")
        self.cols = list(self.cols)
        self.conds = list(self.conds)
        self.index_col_names = list(self.index_col_names)
        self.fed_conds = list(self.conds)

    @property
    def tuple_len(self) -> int:
        """Length in bytes of one record produced by the scan."""
        last = self.cols[-1]
        return last.offset + last.len


@dataclass
class JoinPlan(Plan):
    """Inner join of two sub-plans."""

    left: Plan
    right: Plan
    conds: list[Condition] = field(default_factory=list)
    join_type: str = field(default="inner", init=False)

    def __post_init__(self) -> None:
        if self.tag not in (PlanTag.NEST_LOOP, PlanTag.SORT_MERGE):
            raise ValueError(f"not a join tag: {self.tag!r}")
        self.conds = list(self.conds)


@dataclass
class ProjectionPlan(Plan):
    """Selection of output columns from a sub-plan."""

    subplan: Plan
    sel_cols: list[TabCol] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.sel_cols = list(self.sel_cols)


@dataclass
class SortPlan(Plan):
    """Ordering of a sub-plan's records by one column."""

    subplan: Plan
    sel_col: TabCol
    is_desc: bool = False


@dataclass
class OtherPlan(Plan):
    """Help, show tables, describe table and transaction control."""

    tab_name: str = ""

    def __post_init__(self) -> None:
        if self.tag not in _UTILITY_TAGS:
            raise ValueError(f"not a utility tag: {self.tag!r}")


@dataclass
class SetKnobPlan(Plan):
    """Change of a planner switch."""

    tag: PlanTag = field(default=PlanTag.SET_KNOB, init=False)
    knob_type: SetKnobType
    bool_value: bool