import logging
import time
from datetime import date
from typing import Any, Dict, Iterable, List, Optional, Tuple

from apps.purchase_orders.exception import (
    CancelledOrderError,
    EmptySelectionError,
    ExcludedItemError,
    InvalidStatusError,
    ItemClaimedError,
    MissingOrderFieldsError,
    OrderNotFoundError,
    PartialReconciliationError,
    StoreFailure,
    UnknownItemError,
    UnknownSupplierError,
)
from apps.purchase_orders.planner import (
    CLAIM,
    RELEASE,
    ItemWrite,
    find_selection_conflicts,
    order_total,
    plan_release,
    plan_repair,
    plan_save,
)
from apps.purchase_orders.schemas import (
    DeleteResult,
    ItemSnapshot,
    OrderFields,
    OrderSnapshot,
    OrderSummary,
    RepairReport,
    SaveResult,
)
from apps.purchase_orders.stores import ItemStore, OrderStore
from constants.statuses import OrderStatus

logger = logging.getLogger(__name__)


def _changed(before: Optional[ItemSnapshot], after: ItemSnapshot) -> bool:
    if before is None:
        return True
    return before.status != after.status or before.purchase_order_id != after.purchase_order_id


class ReconciliationService:
    """
    Keeps project items in agreement with the purchase orders that claim them.

    The stores offer no transaction spanning orders and items, so every call is
    a fixed sequence of independently committed writes: the order row first,
    then item releases, claims and restatements. An interrupted sequence is
    finished by repair_project() or by retrying the same call, since
    membership is always re-read from the store rather than taken from the caller.
    """

    def __init__(self, item_store: ItemStore, order_store: OrderStore, order_number_prefix: str = "PO"):
        self.items = item_store
        self.orders = order_store
        self.order_number_prefix = order_number_prefix

    # ---- guards ---------------------------------------------------------

    async def _load_order(self, order_id: str, project_id: Optional[str]) -> OrderSnapshot:
        order = await self.orders.get(order_id)
        if order is None or (project_id is not None and order.project_id != project_id):
            raise OrderNotFoundError(order_id)
        return order

    async def _check_selection(self, project_id: str, order_id: Optional[str], desired: List[str]) -> Dict[str, ItemSnapshot]:
        items = {item.id: item for item in await self.items.get_many(desired)}
        owner_ids = {i.purchase_order_id for i in items.values() if i.purchase_order_id and i.purchase_order_id != order_id}
        owners = {o.id: o for o in await self.orders.get_many(owner_ids)}

        conflicts = find_selection_conflicts(project_id, order_id, desired, items, owners)
        if conflicts.unknown:
            raise UnknownItemError(conflicts.unknown)
        if conflicts.excluded:
            raise ExcludedItemError(conflicts.excluded)
        if conflicts.claimed:
            raise ItemClaimedError(conflicts.claimed)
        return items

    def _next_order_number(self) -> str:
        return f"{self.order_number_prefix}-{int(time.time() * 1000)}"

    # ---- item fan-out ---------------------------------------------------

    async def _apply(
        self,
        order_id: str,
        writes: List[ItemWrite],
        before: Dict[str, ItemSnapshot],
    ) -> Tuple[List[ItemSnapshot], List[str]]:
        """
        Apply item writes in order. Returns (changed items, skipped ids).

        Releases and restatements only touch an item still owned by order_id;
        an item that another active order claimed in the meantime is left alone.
        """
        changed: List[ItemSnapshot] = []
        applied: List[str] = []
        skipped: List[str] = []
        for index, write in enumerate(writes):
            try:
                if write.kind == RELEASE:
                    after = await self.items.release(write.item_id, expected_owner=order_id)
                elif write.kind == CLAIM:
                    after = await self.items.claim(write.item_id, order_id, write.status)
                else:
                    after = await self.items.set_status(write.item_id, write.status, expected_owner=order_id)
            except StoreFailure as exc:
                pending = [w.item_id for w in writes[index:]]
                logger.error(
                    "Order %s: item fan-out stopped at %s (%d applied, %d skipped, %d pending)",
                    order_id, write.item_id, len(applied), len(skipped), len(pending),
                )
                raise PartialReconciliationError(order_id, applied, pending, exc, skipped=skipped) from exc

            if after is None:
                logger.warning("Order %s: %s of item %s skipped, item no longer owned by this order", order_id, write.kind, write.item_id)
                skipped.append(write.item_id)
                continue
            applied.append(write.item_id)
            if _changed(before.get(write.item_id), after):
                changed.append(after)
        return changed, skipped

    # ---- operations -----------------------------------------------------

    async def save_order(
        self,
        project_id: str,
        desired_status: str,
        item_ids: Iterable[str],
        order_id: Optional[str] = None,
        fields: Optional[OrderFields] = None,
    ) -> SaveResult:
        """
        Create (order_id=None) or edit a purchase order and reconcile its items.

        Validation happens before any write. On edit, only the order values set
        on fields are written, and cancelling releases the full stored
        membership whatever item_ids says.
        """
        desired = list(dict.fromkeys(item_ids))
        if not desired:
            raise EmptySelectionError()
        if desired_status not in OrderStatus.all():
            raise InvalidStatusError(desired_status)

        current: Optional[OrderSnapshot] = None
        changes: Dict[str, Any] = {}
        if order_id is not None:
            current = await self._load_order(order_id, project_id)
            if current.status == OrderStatus.CANCELLED:
                raise CancelledOrderError(order_id)
            if fields is not None:
                changes = fields.changes()
            supplier_id = changes.get("supplier_id", current.supplier_id)
        else:
            if desired_status == OrderStatus.CANCELLED:
                raise InvalidStatusError(desired_status, "A purchase order cannot be created as cancelled.")
            if fields is None or fields.supplier_id is None:
                raise MissingOrderFieldsError()
            fields = fields.model_copy(update={"order_date": fields.order_date or date.today()})
            supplier_id = fields.supplier_id

        if current is None or supplier_id != current.supplier_id:
            if not await self.orders.supplier_exists(supplier_id):
                raise UnknownSupplierError(supplier_id)

        cancelling = desired_status == OrderStatus.CANCELLED
        selected: Dict[str, ItemSnapshot] = {}
        if not cancelling:
            selected = await self._check_selection(project_id, order_id, desired)

        previous: Dict[str, ItemSnapshot] = {}
        if current is not None:
            previous = {item.id: item for item in await self.items.list_by_order(current.id)}

        plan = plan_save(current.status if current else None, desired_status, previous.keys(), desired)

        # The order row goes first so an interrupted fan-out leaves the intended
        # status durable for the repair pass.
        if current is None:
            order = await self.orders.insert(
                project_id, fields.order_number or self._next_order_number(), desired_status, fields
            )
            logger.info("Created purchase order %s (%s) with %d items", order.id, desired_status, len(desired))
        else:
            order = await self.orders.update(current.id, desired_status, changes)
            if order is None:
                # cancelled or deleted by someone else since it was loaded
                if await self.orders.get(current.id) is None:
                    raise OrderNotFoundError(current.id)
                raise CancelledOrderError(current.id)
            logger.info("Saved purchase order %s: %s -> %s", order.id, current.status, desired_status)

        changed, skipped = await self._apply(order.id, plan.writes(), {**selected, **previous})
        skipped_set = set(skipped)
        return SaveResult(
            order=order,
            changed_items=changed,
            released=[i for i in plan.to_release if i not in skipped_set],
            claimed=[i for i in plan.to_claim if i not in skipped_set] if not cancelling else [],
            restated=[i for i in plan.to_restate if i not in skipped_set] if not cancelling else [],
        )

    async def delete_order(self, order_id: str, project_id: Optional[str] = None) -> DeleteResult:
        """
        Release the order's items, then remove the order row.

        A crash between the two leaves an order that owns nothing, which is harmless.
        """
        order = await self._load_order(order_id, project_id)
        members = {item.id: item for item in await self.items.list_by_order(order.id)}
        released, skipped = await self._apply(order.id, plan_release(members), members)
        await self.orders.delete(order.id)
        logger.info("Deleted purchase order %s, released %d items", order.id, len(released))
        return DeleteResult(order_id=order.id, released=released, skipped=skipped)

    async def repair_project(self, project_id: str) -> RepairReport:
        """
        Idempotent pass restoring item/order agreement for a whole project.

        Every write is conditional on the owner observed here, so an item a
        concurrent save has just claimed is not released from under it.
        """
        items = await self.items.list_by_project(project_id)
        owner_ids = {i.purchase_order_id for i in items if i.purchase_order_id}
        orders = {o.id: o for o in await self.orders.get_many(owner_ids)}
        actions = plan_repair(items, orders)

        report = RepairReport(project_id=project_id, examined=len(items))
        for action in actions:
            if action.kind == RELEASE:
                after = await self.items.release(action.item_id, expected_owner=action.expected_owner)
            else:
                after = await self.items.set_status(action.item_id, action.status, expected_owner=action.expected_owner)
            if after is None:
                report.skipped.append(action.item_id)
            else:
                logger.info("Repaired item %s (%s)", action.item_id, action.reason)
                report.repaired.append(after)

        if actions:
            logger.info(
                "Repair of project %s: %d repaired, %d skipped", project_id, len(report.repaired), len(report.skipped)
            )
        return report

    async def list_project_orders(self, project_id: str, repair: bool = False) -> List[OrderSummary]:
        """
        Orders of a project, newest first, with their derived members and totals.
        """
        if repair:
            await self.repair_project(project_id)
        orders = await self.orders.list_by_project(project_id)
        members: Dict[str, List[ItemSnapshot]] = {}
        for item in await self.items.list_by_project(project_id):
            if item.purchase_order_id:
                members.setdefault(item.purchase_order_id, []).append(item)
        return [
            OrderSummary(order=order, items=members.get(order.id, []), total=order_total(members.get(order.id, [])))
            for order in orders
        ]
