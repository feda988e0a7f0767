"""
Pure decision logic for keeping project items consistent with the purchase
orders that claim them.

Nothing here performs I/O. Every function takes the state already read from
the stores and returns the item writes needed to restore the invariants:

* an item is owned by at most one order, and never by a cancelled one;
* an owned item mirrors its order's status (draft/sent -> pending,
  confirmed -> ordered, received -> received);
* an unowned item is pending;
* excluded items are never owned.

Writes are always emitted in release -> claim -> restate order so that under
concurrent saves an item is transiently released rather than double-claimed.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, Iterable, List, Mapping, Optional, Set

from apps.purchase_orders.schemas import ItemSnapshot, OrderSnapshot
from constants.statuses import ItemStatus, OrderStatus, is_active_order_status, item_status_for_order

RELEASE = "release"
CLAIM = "claim"
RESTATE = "restate"
RESET = "reset"


@dataclass(frozen=True)
class ItemWrite:
    kind: str
    item_id: str
    status: str


@dataclass
class SavePlan:
    previous_status: Optional[str]
    desired_status: str
    to_release: List[str] = field(default_factory=list)
    to_claim: List[str] = field(default_factory=list)
    to_restate: List[str] = field(default_factory=list)

    @property
    def cancelling(self) -> bool:
        return self.desired_status == OrderStatus.CANCELLED

    def writes(self) -> List[ItemWrite]:
        pending = ItemStatus.PENDING
        writes = [ItemWrite(RELEASE, item_id, pending) for item_id in self.to_release]
        if not self.cancelling:
            member_status = item_status_for_order(self.desired_status)
            writes.extend(ItemWrite(CLAIM, item_id, member_status) for item_id in self.to_claim)
            writes.extend(ItemWrite(RESTATE, item_id, member_status) for item_id in self.to_restate)
        return writes


@dataclass(frozen=True)
class RepairAction:
    kind: str
    item_id: str
    expected_owner: Optional[str]
    status: str
    reason: str


@dataclass
class SelectionConflicts:
    unknown: Set[str] = field(default_factory=set)
    excluded: Set[str] = field(default_factory=set)
    claimed: Dict[str, str] = field(default_factory=dict)  # item id -> active owner id

    def __bool__(self) -> bool:
        return bool(self.unknown or self.excluded or self.claimed)


def plan_save(
    previous_status: Optional[str],
    desired_status: str,
    previous_members: Iterable[str],
    desired_members: Iterable[str],
) -> SavePlan:
    """
    Decide the item writes for one save of an order.

    previous_status is None when the order is being created. Cancelling
    releases the whole previous membership and ignores desired_members.
    """
    previous = set(previous_members)
    desired = set(desired_members)
    plan = SavePlan(previous_status=previous_status, desired_status=desired_status)

    if desired_status == OrderStatus.CANCELLED:
        plan.to_release = sorted(previous)
        return plan

    plan.to_release = sorted(previous - desired)
    plan.to_claim = sorted(desired - previous)
    plan.to_restate = sorted(previous & desired)
    return plan


def plan_release(members: Iterable[str]) -> List[ItemWrite]:
    """
    Release every member of an order that is going away (deleted).
    """
    return [ItemWrite(RELEASE, item_id, ItemStatus.PENDING) for item_id in sorted(set(members))]


def find_selection_conflicts(
    project_id: str,
    order_id: Optional[str],
    desired_members: Iterable[str],
    items_by_id: Mapping[str, ItemSnapshot],
    owners_by_id: Mapping[str, OrderSnapshot],
) -> SelectionConflicts:
    """
    Check a selection against the current store state.

    An item may join order_id when it exists in the project, is not excluded,
    and is unowned, already owned by order_id, or owned by an order that is
    cancelled or no longer exists.
    """
    conflicts = SelectionConflicts()
    for item_id in desired_members:
        item = items_by_id.get(item_id)
        if item is None or item.project_id != project_id:
            conflicts.unknown.add(item_id)
            continue
        if item.is_excluded:
            conflicts.excluded.add(item_id)
            continue
        owner_id = item.purchase_order_id
        if owner_id is None or owner_id == order_id:
            continue
        owner = owners_by_id.get(owner_id)
        if owner is not None and is_active_order_status(owner.status):
            conflicts.claimed[item_id] = owner_id
    return conflicts


def plan_repair(items: Iterable[ItemSnapshot], orders_by_id: Mapping[str, OrderSnapshot]) -> List[RepairAction]:
    """
    Compute the writes that bring a project's items back in line with its orders.

    Idempotent: applying the result and planning again yields no actions.
    """
    actions: List[RepairAction] = []
    for item in sorted(items, key=lambda i: i.id):
        owner_id = item.purchase_order_id
        if owner_id is None:
            if item.status != ItemStatus.PENDING:
                actions.append(RepairAction(RESET, item.id, None, ItemStatus.PENDING, "unowned item not pending"))
            continue

        owner = orders_by_id.get(owner_id)
        if owner is None:
            reason = "owner order missing"
        elif not is_active_order_status(owner.status):
            reason = "owner order cancelled"
        elif item.is_excluded:
            reason = "excluded item owned"
        else:
            expected = item_status_for_order(owner.status)
            if item.status != expected:
                actions.append(RepairAction(RESTATE, item.id, owner_id, expected, "status out of sync"))
            continue
        actions.append(RepairAction(RELEASE, item.id, owner_id, ItemStatus.PENDING, reason))
    return actions


def order_total(items: Iterable[ItemSnapshot]) -> Decimal:
    return sum((item.quantity * item.unit_cost for item in items), Decimal("0"))
