import pytest

from rmdb.analyzer import Catalog, CompOp, Condition, TabCol
from rmdb.index_format import ColType
from rmdb.plan import (
    JoinPlan,
    OtherPlan,
    PlanTag,
    ProjectionPlan,
    ScanPlan,
    SetKnobPlan,
    SetKnobType,
    SortPlan,
    swap_condition,
)


@pytest.fixture
def cols():
    cat = Catalog()
    cat.add_table("t", [("a", ColType.TYPE_INT, 4), ("b", ColType.TYPE_STRING, 8)])
    return cat.columns("t")


def test_plan_tag_numbering_starts_at_one():
    help_plan = OtherPlan(PlanTag.HELP)
    assert help_plan.tag is PlanTag.HELP
    assert help_plan.tag == 2
    knob_plan = SetKnobPlan(SetKnobType.ENABLE_SORT_MERGE, False)
    assert knob_plan.tag == 9


@pytest.mark.parametrize(
    "op, mirrored",
    [
        (CompOp.EQ, CompOp.EQ),
        (CompOp.NE, CompOp.NE),
        (CompOp.LT, CompOp.GT),
        (CompOp.GT, CompOp.LT),
        (CompOp.LE, CompOp.GE),
        (CompOp.GE, CompOp.LE),
    ],
)
def test_swap_condition(op, mirrored):
    cond = Condition(TabCol("x", "a"), op, rhs_col=TabCol("y", "b"))
    swapped = swap_condition(cond)
    assert swapped.op is mirrored
    assert swapped.lhs_col == TabCol("y", "b")
    assert swapped.rhs_col == TabCol("x", "a")
    assert swap_condition(swapped) == cond


def test_swap_value_condition_rejected():
    with pytest.raises(ValueError):
        swap_condition(Condition(TabCol("x", "a"), CompOp.EQ, rhs_val=1))


def test_scan_plan_tuple_len(cols):
    plan = ScanPlan(PlanTag.SEQ_SCAN, "t", cols)
    assert plan.tuple_len == cols[-1].offset + cols[-1].len


def test_scan_plan_fed_conds_copy(cols):
    conds = [Condition(TabCol("t", "a"), CompOp.EQ, rhs_val=1)]
    plan = ScanPlan(PlanTag.INDEX_SCAN, "t", cols, conds, ["a"])
    assert plan.fed_conds == conds
    plan.fed_conds.clear()
    assert plan.conds == conds


def test_scan_plan_rejects_bad_tag(cols):
    with pytest.raises(ValueError):
        ScanPlan(PlanTag.SORT, "t", cols)


def test_join_plan(cols):
    left = ScanPlan(PlanTag.SEQ_SCAN, "t", cols)
    right = ScanPlan(PlanTag.SEQ_SCAN, "t", cols)
    join = JoinPlan(PlanTag.NEST_LOOP, left, right)
    assert join.left is left and join.right is right
    assert join.conds == []
    with pytest.raises(ValueError):
        JoinPlan(PlanTag.SEQ_SCAN, left, right)


def test_projection_and_sort(cols):
    scan = ScanPlan(PlanTag.SEQ_SCAN, "t", cols)
    sort = SortPlan(PlanTag.SORT, scan, TabCol("t", "a"), True)
    proj = ProjectionPlan(PlanTag.PROJECTION, sort, [TabCol("t", "b")])
    assert proj.subplan.subplan is scan
    assert proj.subplan.is_desc is True
    assert proj.sel_cols == [TabCol("t", "b")]


def test_set_knob_plan_tag():
    plan = SetKnobPlan(SetKnobType.ENABLE_SORT_MERGE, True)
    assert plan.tag is PlanTag.SET_KNOB
    assert plan.bool_value is True


def test_other_plan():
    plan = OtherPlan(PlanTag.DESC_TABLE, "t")
    assert plan.tab_name == "t"
    assert OtherPlan(PlanTag.HELP).tab_name == ""
    with pytest.raises(ValueError):
        OtherPlan(PlanTag.INSERT)