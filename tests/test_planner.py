import pytest

from apps.purchase_orders.planner import (
    CLAIM,
    RELEASE,
    RESET,
    RESTATE,
    ItemWrite,
    find_selection_conflicts,
    order_total,
    plan_release,
    plan_repair,
    plan_save,
)
from apps.purchase_orders.schemas import ItemSnapshot, OrderSnapshot
from constants.statuses import ItemStatus, OrderStatus, item_status_for_order


def _item(item_id, owner=None, status=ItemStatus.PENDING, project_id="p", excluded=False, quantity="1", unit_cost="0"):
    return ItemSnapshot(
        id=item_id,
        project_id=project_id,
        status=status,
        purchase_order_id=owner,
        is_excluded=excluded,
        quantity=quantity,
        unit_cost=unit_cost,
    )


def _order(order_id, status):
    return OrderSnapshot(
        id=order_id, project_id="p", supplier_id="s", order_number=order_id, order_date="2026-01-01", status=status
    )


@pytest.mark.parametrize(
    "order_status,item_status",
    [
        (OrderStatus.DRAFT, ItemStatus.PENDING),
        (OrderStatus.SENT, ItemStatus.PENDING),
        (OrderStatus.CONFIRMED, ItemStatus.ORDERED),
        (OrderStatus.RECEIVED, ItemStatus.RECEIVED),
    ],
)
def test_item_status_follows_order_status(order_status, item_status):
    assert item_status_for_order(order_status) == item_status


def test_cancelled_orders_have_no_item_status():
    with pytest.raises(ValueError):
        item_status_for_order(OrderStatus.CANCELLED)


def test_plan_for_new_order_claims_everything():
    plan = plan_save(None, OrderStatus.CONFIRMED, [], ["b", "a"])
    assert plan.writes() == [
        ItemWrite(CLAIM, "a", ItemStatus.ORDERED),
        ItemWrite(CLAIM, "b", ItemStatus.ORDERED),
    ]


def test_plan_for_edit_orders_release_claim_restate():
    plan = plan_save(OrderStatus.SENT, OrderStatus.RECEIVED, ["a", "b"], ["b", "c"])
    assert [w.kind for w in plan.writes()] == [RELEASE, CLAIM, RESTATE]
    assert plan.to_release == ["a"]
    assert plan.to_claim == ["c"]
    assert plan.to_restate == ["b"]
    assert all(w.status == ItemStatus.RECEIVED for w in plan.writes() if w.kind != RELEASE)


def test_plan_for_cancel_ignores_selection():
    plan = plan_save(OrderStatus.CONFIRMED, OrderStatus.CANCELLED, ["a", "b"], ["c"])
    assert plan.writes() == [
        ItemWrite(RELEASE, "a", ItemStatus.PENDING),
        ItemWrite(RELEASE, "b", ItemStatus.PENDING),
    ]
    assert plan.to_claim == []


def test_plan_release_dedupes():
    assert [w.item_id for w in plan_release(["b", "a", "b"])] == ["a", "b"]


def test_selection_conflicts():
    items = {
        "free": _item("free"),
        "mine": _item("mine", owner="o1"),
        "from-cancelled": _item("from-cancelled", owner="dead"),
        "from-missing": _item("from-missing", owner="ghost"),
        "taken": _item("taken", owner="o2"),
        "excluded": _item("excluded", excluded=True),
        "foreign": _item("foreign", project_id="other"),
    }
    owners = {"dead": _order("dead", OrderStatus.CANCELLED), "o2": _order("o2", OrderStatus.DRAFT)}

    conflicts = find_selection_conflicts("p", "o1", list(items) + ["nowhere"], items, owners)

    assert conflicts.unknown == {"foreign", "nowhere"}
    assert conflicts.excluded == {"excluded"}
    assert conflicts.claimed == {"taken": "o2"}


def test_no_conflicts_is_falsy():
    items = {"a": _item("a")}
    assert not find_selection_conflicts("p", None, ["a"], items, {})


def test_plan_repair_covers_every_violation():
    orders = {
        "live": _order("live", OrderStatus.CONFIRMED),
        "dead": _order("dead", OrderStatus.CANCELLED),
    }
    items = [
        _item("ok", owner="live", status=ItemStatus.ORDERED),
        _item("stale", owner="live", status=ItemStatus.PENDING),
        _item("cancelled", owner="dead", status=ItemStatus.ORDERED),
        _item("orphan", owner="ghost", status=ItemStatus.RECEIVED),
        _item("loose", status=ItemStatus.ORDERED),
        _item("excluded", owner="live", status=ItemStatus.ORDERED, excluded=True),
        _item("idle"),
    ]

    actions = {a.item_id: a for a in plan_repair(items, orders)}

    assert set(actions) == {"stale", "cancelled", "orphan", "loose", "excluded"}
    assert actions["stale"].kind == RESTATE and actions["stale"].status == ItemStatus.ORDERED
    assert actions["cancelled"].kind == RELEASE and actions["cancelled"].expected_owner == "dead"
    assert actions["orphan"].kind == RELEASE
    assert actions["loose"].kind == RESET and actions["loose"].expected_owner is None
    assert actions["excluded"].kind == RELEASE


def test_order_total_sums_claimed_items():
    items = [_item("a", quantity="2", unit_cost="10.50"), _item("b", quantity="3", unit_cost="1")]
    assert str(order_total(items)) == "24.00"
    assert order_total([]) == 0
