import logging
from typing import Any, Dict, Iterable, List, Optional, Protocol

from sqlalchemy import delete, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from apps.purchase_orders.exception import StoreFailure
from apps.purchase_orders.schemas import ItemSnapshot, OrderFields, OrderSnapshot
from constants.statuses import ItemStatus, OrderStatus
from models.project_item import ProjectItem
from models.purchase_order import PurchaseOrder
from models.supplier import Supplier

logger = logging.getLogger(__name__)


class ItemStore(Protocol):
    async def get_many(self, item_ids: Iterable[str]) -> List[ItemSnapshot]: ...

    async def list_by_order(self, order_id: str) -> List[ItemSnapshot]: ...

    async def list_by_project(self, project_id: str) -> List[ItemSnapshot]: ...

    async def claim(self, item_id: str, order_id: str, status: str) -> Optional[ItemSnapshot]: ...

    async def release(self, item_id: str, expected_owner: str) -> Optional[ItemSnapshot]:
        """
        Clear the owner and reset to pending, only if expected_owner still owns the item.
        """
        ...

    async def set_status(self, item_id: str, status: str, expected_owner: Optional[str]) -> Optional[ItemSnapshot]:
        """
        Set the status, only if the item's owner is still expected_owner (None = unowned).
        """
        ...


class OrderStore(Protocol):
    async def get(self, order_id: str) -> Optional[OrderSnapshot]: ...

    async def get_many(self, order_ids: Iterable[str]) -> List[OrderSnapshot]: ...

    async def list_by_project(self, project_id: str) -> List[OrderSnapshot]: ...

    async def supplier_exists(self, supplier_id: str) -> bool: ...

    async def insert(self, project_id: str, order_number: str, status: str, fields: OrderFields) -> OrderSnapshot: ...

    async def update(self, order_id: str, status: str, changes: Dict[str, Any]) -> Optional[OrderSnapshot]:
        """
        Write status plus the changed order values, unless the order is cancelled or gone (then None).
        """
        ...

    async def delete(self, order_id: str) -> bool: ...


class _SqlStore:
    """
    Shared plumbing: every write commits on its own, errors become StoreFailure.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _fail(self, action: str, exc: SQLAlchemyError) -> StoreFailure:
        logger.error("Store %s failed: %s", action, exc)
        await self.db.rollback()
        return StoreFailure(f"Could not {action}.", {"cause": str(exc)})


class SqlItemStore(_SqlStore):
    async def _select(self, *where) -> List[ItemSnapshot]:
        stmt = (
            select(ProjectItem)
            .where(*where)
            .order_by(ProjectItem.created_at, ProjectItem.id)
            .execution_options(populate_existing=True)
        )
        try:
            res = await self.db.execute(stmt)
        except SQLAlchemyError as exc:
            raise await self._fail("read project items", exc) from exc
        return [ItemSnapshot.model_validate(row) for row in res.scalars().all()]

    async def get_many(self, item_ids: Iterable[str]) -> List[ItemSnapshot]:
        ids = list(set(item_ids))
        if not ids:
            return []
        return await self._select(ProjectItem.id.in_(ids))

    async def list_by_order(self, order_id: str) -> List[ItemSnapshot]:
        return await self._select(ProjectItem.purchase_order_id == order_id)

    async def list_by_project(self, project_id: str) -> List[ItemSnapshot]:
        return await self._select(ProjectItem.project_id == project_id)

    async def _write(self, item_id: str, values: dict, *conditions) -> Optional[ItemSnapshot]:
        stmt = (
            update(ProjectItem)
            .where(ProjectItem.id == item_id, *conditions)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        try:
            res = await self.db.execute(stmt)
            await self.db.commit()
        except SQLAlchemyError as exc:
            raise await self._fail(f"update item {item_id}", exc) from exc
        if res.rowcount == 0:
            return None
        items = await self._select(ProjectItem.id == item_id)
        return items[0] if items else None

    async def claim(self, item_id: str, order_id: str, status: str) -> Optional[ItemSnapshot]:
        return await self._write(item_id, {"purchase_order_id": order_id, "status": status})

    async def release(self, item_id: str, expected_owner: str) -> Optional[ItemSnapshot]:
        return await self._write(
            item_id,
            {"purchase_order_id": None, "status": ItemStatus.PENDING},
            ProjectItem.purchase_order_id == expected_owner,
        )

    async def set_status(self, item_id: str, status: str, expected_owner: Optional[str]) -> Optional[ItemSnapshot]:
        if expected_owner is None:
            owner_clause = ProjectItem.purchase_order_id.is_(None)
        else:
            owner_clause = ProjectItem.purchase_order_id == expected_owner
        return await self._write(item_id, {"status": status}, owner_clause)


class SqlOrderStore(_SqlStore):
    async def _select(self, *where) -> List[OrderSnapshot]:
        stmt = (
            select(PurchaseOrder)
            .where(*where)
            .order_by(PurchaseOrder.created_at.desc(), PurchaseOrder.id)
            .execution_options(populate_existing=True)
        )
        try:
            res = await self.db.execute(stmt)
        except SQLAlchemyError as exc:
            raise await self._fail("read purchase orders", exc) from exc
        return [OrderSnapshot.model_validate(row) for row in res.scalars().unique().all()]

    async def get(self, order_id: str) -> Optional[OrderSnapshot]:
        orders = await self._select(PurchaseOrder.id == order_id)
        return orders[0] if orders else None

    async def get_many(self, order_ids: Iterable[str]) -> List[OrderSnapshot]:
        ids = list(set(order_ids))
        if not ids:
            return []
        return await self._select(PurchaseOrder.id.in_(ids))

    async def list_by_project(self, project_id: str) -> List[OrderSnapshot]:
        return await self._select(PurchaseOrder.project_id == project_id)

    async def supplier_exists(self, supplier_id: str) -> bool:
        try:
            res = await self.db.execute(select(Supplier.id).where(Supplier.id == supplier_id))
        except SQLAlchemyError as exc:
            raise await self._fail("read suppliers", exc) from exc
        return res.scalar_one_or_none() is not None

    async def insert(self, project_id: str, order_number: str, status: str, fields: OrderFields) -> OrderSnapshot:
        po = PurchaseOrder(
            project_id=project_id,
            supplier_id=fields.supplier_id,
            order_number=order_number,
            order_date=fields.order_date,
            status=status,
            notes=fields.notes,
            delivery_deadline=fields.delivery_deadline or None,
            delivery_date=fields.delivery_date,
        )
        try:
            self.db.add(po)
            await self.db.commit()
            await self.db.refresh(po)
        except SQLAlchemyError as exc:
            raise await self._fail("create purchase order", exc) from exc
        return OrderSnapshot.model_validate(po)

    async def update(self, order_id: str, status: str, changes: Dict[str, Any]) -> Optional[OrderSnapshot]:
        values = dict(changes, status=status)
        if "delivery_deadline" in values:
            values["delivery_deadline"] = values["delivery_deadline"] or None
        stmt = (
            update(PurchaseOrder)
            .where(PurchaseOrder.id == order_id, PurchaseOrder.status != OrderStatus.CANCELLED)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        try:
            res = await self.db.execute(stmt)
            await self.db.commit()
        except SQLAlchemyError as exc:
            raise await self._fail(f"update purchase order {order_id}", exc) from exc
        if res.rowcount == 0:
            return None
        return await self.get(order_id)

    async def delete(self, order_id: str) -> bool:
        try:
            res = await self.db.execute(delete(PurchaseOrder).where(PurchaseOrder.id == order_id))
            await self.db.commit()
        except SQLAlchemyError as exc:
            raise await self._fail(f"delete purchase order {order_id}", exc) from exc
        return res.rowcount > 0
