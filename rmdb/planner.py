"""Construction of query plans: scans, join trees, sorting and projection."""

from __future__ import annotations

from collections.abc import Sequence

from rmdb.analyzer import (
    Catalog,
    ColumnNotFoundError,
    CompOp,
    Condition,
    Query,
    TabCol,
)
from rmdb.plan import (
    JoinPlan,
    Plan,
    PlanTag,
    ProjectionPlan,
    ScanPlan,
    SortPlan,
    swap_condition,
)


def pop_conds(conds: list[Condition], table: str) -> list[Condition]:
    """Remove from ``conds`` and return the conditions a scan of ``table`` can evaluate.

    These are comparisons of a column of ``table`` with a literal, and
    comparisons between two columns of one and the same table.
    """
    solved: list[Condition] = []
    remaining: list[Condition] = []
    for cond in conds:
        same_table = cond.rhs_col is not None and cond.lhs_col.tab_name == cond.rhs_col.tab_name
        if (cond.is_rhs_val and cond.lhs_col.tab_name == table) or same_table:
            solved.append(cond)
        else:
            remaining.append(cond)
    conds[:] = remaining
    return solved


def push_conds(cond: Condition, plan: Plan) -> int:
    """Push a join condition down to the lowest join that covers both its tables.

    For a scan, returns 1 if the scanned table is the condition's left side,
    2 if it is the right side and 0 otherwise. For a join, returns 3 once the
    condition has been attached to a join below or at this node; otherwise
    the sum of the results of its two children.
    """
    if isinstance(plan, ScanPlan):
        if plan.tab_name == cond.lhs_col.tab_name:
            return 1
        if cond.rhs_col is not None and plan.tab_name == cond.rhs_col.tab_name:
            return 2
        return 0
    if isinstance(plan, JoinPlan):
        left_res = push_conds(cond, plan.left)
        if left_res == 3:
            return 3
        right_res = push_conds(cond, plan.right)
        if right_res == 3:
            return 3
        if left_res == 0 or right_res == 0:
            return left_res + right_res
        if left_res == 2:
            cond = swap_condition(cond)
        plan.conds.append(cond)
        return 3
    return 0


class Planner:
    """Builds physical plans for analyzed queries."""

    def __init__(self, catalog: Catalog) -> None:
        self.catalog = catalog
        self.enable_nestedloop_join = True
        self.enable_sortmerge_join = False

    def set_enable_nestedloop_join(self, value: bool) -> None:
        self.enable_nestedloop_join = bool(value)

    def set_enable_sortmerge_join(self, value: bool) -> None:
        self.enable_sortmerge_join = bool(value)

    def index_columns(self, table: str, conds: Sequence[Condition]) -> list[str] | None:
        """Columns of an index usable for ``conds`` on ``table``, or None.

        An index is usable only when it covers exactly the columns compared
        for equality with a literal, in the order the conditions name them.
        """
        names = [
            cond.lhs_col.col_name
            for cond in conds
            if cond.is_rhs_val and cond.op is CompOp.EQ and cond.lhs_col.tab_name == table
        ]
        return names if self.catalog.is_index(table, names) else None

    def scan_plan(self, table: str, conds: Sequence[Condition]) -> ScanPlan:
        """Index scan if an index matches the conditions, otherwise a sequential scan."""
        index_cols = self.index_columns(table, conds)
        tag = PlanTag.SEQ_SCAN if index_cols is None else PlanTag.INDEX_SCAN
        return ScanPlan(tag, table, self.catalog.columns(table), list(conds), index_cols or [])

    def _join_tag(self) -> PlanTag:
        if self.enable_nestedloop_join:
            return PlanTag.NEST_LOOP
        if self.enable_sortmerge_join:
            return PlanTag.SORT_MERGE
        raise RuntimeError("No join executor selected!")

    def make_one_rel(self, query: Query) -> Plan:
        """Scan every table of the query and join the scans into one plan."""
        conds = list(query.conds)
        scans = [self.scan_plan(table, pop_conds(conds, table)) for table in query.tables]
        if len(scans) == 1:
            return scans[0]

        used: set[int] = set()
        joined: list[str] = []

        def pop_scan(table: str) -> Plan | None:
            for i, scan in enumerate(scans):
                if scan.tab_name == table:
                    used.add(i)
                    joined.append(scan.tab_name)
                    return scan
            return None

        if conds:
            first, *rest = conds
            left = pop_scan(first.lhs_col.tab_name)
            right = pop_scan(first.rhs_col.tab_name if first.rhs_col else "")
            root: Plan = JoinPlan(self._join_tag(), left, right, [first])

            for cond in rest:
                left_scan = None
                right_scan = None
                reverse = False
                if cond.lhs_col.tab_name not in joined:
                    left_scan = pop_scan(cond.lhs_col.tab_name)
                rhs_table = cond.rhs_col.tab_name if cond.rhs_col else ""
                if rhs_table not in joined:
                    right_scan = pop_scan(rhs_table)
                    reverse = True

                if left_scan is not None and right_scan is not None:
                    pair = JoinPlan(PlanTag.NEST_LOOP, left_scan, right_scan, [cond])
                    root = JoinPlan(PlanTag.NEST_LOOP, pair, root, [])
                elif left_scan is not None or right_scan is not None:
                    if reverse:
                        cond = swap_condition(cond)
                        left_scan = right_scan
                    root = JoinPlan(PlanTag.NEST_LOOP, left_scan, root, [cond])
                else:
                    push_conds(cond, root)
        else:
            root = scans[0]
            used.add(0)

        for i, scan in enumerate(scans):
            if i not in used:
                root = JoinPlan(PlanTag.NEST_LOOP, scan, root, [])
        return root

    def generate_sort_plan(
        self,
        query: Query,
        plan: Plan,
        order_col: str | None,
        descending: bool = False,
    ) -> Plan:
        """Wrap ``plan`` in a sort on ``order_col``; without a column the plan is returned as is."""
        if order_col is None:
            return plan
        sel_col = None
        for table in query.tables:
            for col in self.catalog.columns(table):
                if col.name == order_col:
                    sel_col = TabCol(col.tab_name, col.name)
        if sel_col is None:
            raise ColumnNotFoundError(order_col)
        return SortPlan(PlanTag.SORT, plan, sel_col, bool(descending))

    def generate_select_plan(self, query: Query) -> ProjectionPlan:
        """Plan a select: joined scans, an optional sort, then the projection.

        A sort is added when ``query.parse`` has an ``order_col`` attribute
        (and optionally ``descending``).
        """
        plan = self.make_one_rel(query)
        order_col = getattr(query.parse, "order_col", None)
        descending = getattr(query.parse, "descending", False)
        plan = self.generate_sort_plan(query, plan, order_col, descending)
        return ProjectionPlan(PlanTag.PROJECTION, plan, list(query.cols))