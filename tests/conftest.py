import os
import sys
from datetime import date
from decimal import Decimal
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional

# Settings are read once at import time by models.base; point them at SQLite first.
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["ENABLE_RATE_LIMITER"] = "false"
os.environ["REPAIR_ON_READ"] = "true"

project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from apps.purchase_orders.exception import StoreFailure
from apps.purchase_orders.schemas import ItemSnapshot, OrderFields, OrderSnapshot
from apps.purchase_orders.service import ReconciliationService
from constants.statuses import ItemStatus, OrderStatus, is_active_order_status, item_status_for_order
from models.base import Base
import models.project_item  # noqa: F401
import models.purchase_order  # noqa: F401
import models.supplier  # noqa: F401

PROJECT = "project-1"
SUPPLIER = "supplier-1"


class InMemoryItemStore:
    """
    Item store fake. `before_write(kind, item_id)` runs ahead of every write and
    may mutate `rows` to simulate a concurrent caller; `fail_at` makes the
    n-th write (0-based, counted in `log`) raise StoreFailure.
    """

    def __init__(self, log: List[tuple]):
        self.rows: Dict[str, ItemSnapshot] = {}
        self.log = log
        self.fail_at: Optional[int] = None
        self.before_write: Optional[Callable[[str, str], None]] = None

    def add(self, item_id, project_id=PROJECT, supplier_id=SUPPLIER, status=ItemStatus.PENDING, owner=None,
            excluded=False, quantity="1", unit_cost="10"):
        self.rows[item_id] = ItemSnapshot(
            id=item_id,
            project_id=project_id,
            name=f"Item {item_id}",
            quantity=Decimal(quantity),
            unit_cost=Decimal(unit_cost),
            status=status,
            purchase_order_id=owner,
            supplier_id=supplier_id,
            is_excluded=excluded,
        )
        return self.rows[item_id]

    async def get_many(self, item_ids: Iterable[str]) -> List[ItemSnapshot]:
        return [self.rows[i] for i in sorted(set(item_ids)) if i in self.rows]

    async def list_by_order(self, order_id: str) -> List[ItemSnapshot]:
        return [i for i in self.rows.values() if i.purchase_order_id == order_id]

    async def list_by_project(self, project_id: str) -> List[ItemSnapshot]:
        return [i for i in self.rows.values() if i.project_id == project_id]

    def _write(self, kind: str, item_id: str, expected_owner, values: dict, conditional: bool = True):
        if self.before_write is not None:
            self.before_write(kind, item_id)
        if self.fail_at is not None and len(self.log) >= self.fail_at:
            raise StoreFailure(f"Could not update item {item_id}.")
        self.log.append((kind, item_id))
        row = self.rows.get(item_id)
        if row is None or (conditional and row.purchase_order_id != expected_owner):
            return None
        self.rows[item_id] = row.model_copy(update=values)
        return self.rows[item_id]

    async def claim(self, item_id: str, order_id: str, status: str):
        return self._write("claim", item_id, None, {"purchase_order_id": order_id, "status": status}, conditional=False)

    async def release(self, item_id: str, expected_owner: str):
        return self._write("release", item_id, expected_owner, {"purchase_order_id": None, "status": ItemStatus.PENDING})

    async def set_status(self, item_id: str, status: str, expected_owner: Optional[str]):
        return self._write("set_status", item_id, expected_owner, {"status": status})


class InMemoryOrderStore:
    """
    Order store fake. `before_update(order_id)` runs ahead of every order
    update and may mutate `rows` to simulate a concurrent caller.
    """

    def __init__(self, log: List[tuple]):
        self.rows: Dict[str, OrderSnapshot] = {}
        self.suppliers = {SUPPLIER, "supplier-2"}
        self.log = log
        self.before_update: Optional[Callable[[str], None]] = None
        self._seq = 0

    def add(self, order_id, status, project_id=PROJECT, supplier_id=SUPPLIER):
        self.rows[order_id] = OrderSnapshot(
            id=order_id,
            project_id=project_id,
            supplier_id=supplier_id,
            order_number=f"PO-{order_id}",
            order_date=date(2026, 1, 15),
            status=status,
        )
        return self.rows[order_id]

    async def get(self, order_id: str) -> Optional[OrderSnapshot]:
        return self.rows.get(order_id)

    async def get_many(self, order_ids: Iterable[str]) -> List[OrderSnapshot]:
        return [self.rows[i] for i in set(order_ids) if i in self.rows]

    async def list_by_project(self, project_id: str) -> List[OrderSnapshot]:
        return [o for o in reversed(list(self.rows.values())) if o.project_id == project_id]

    async def supplier_exists(self, supplier_id: str) -> bool:
        return supplier_id in self.suppliers

    async def insert(self, project_id: str, order_number: str, status: str, fields: OrderFields) -> OrderSnapshot:
        self._seq += 1
        order_id = f"order-{self._seq}"
        self.log.append(("insert_order", order_id))
        self.rows[order_id] = OrderSnapshot(
            id=order_id,
            project_id=project_id,
            supplier_id=fields.supplier_id,
            order_number=order_number,
            order_date=fields.order_date,
            status=status,
            notes=fields.notes,
            delivery_deadline=fields.delivery_deadline,
            delivery_date=fields.delivery_date,
        )
        return self.rows[order_id]

    async def update(self, order_id: str, status: str, changes: Dict[str, Any]) -> Optional[OrderSnapshot]:
        if self.before_update is not None:
            self.before_update(order_id)
        self.log.append(("update_order", order_id))
        row = self.rows.get(order_id)
        if row is None or row.status == OrderStatus.CANCELLED:
            return None
        self.rows[order_id] = row.model_copy(update=dict(changes, status=status))
        return self.rows[order_id]

    async def delete(self, order_id: str) -> bool:
        self.log.append(("delete_order", order_id))
        return self.rows.pop(order_id, None) is not None


def assert_consistent(items: InMemoryItemStore, orders: InMemoryOrderStore) -> None:
    """
    Ownership and status invariants over the whole fake store.
    """
    for item in items.rows.values():
        if item.purchase_order_id is None:
            assert item.status == ItemStatus.PENDING, item
            continue
        owner = orders.rows.get(item.purchase_order_id)
        assert owner is not None, item
        assert is_active_order_status(owner.status), item
        assert not item.is_excluded, item
        assert item.status == item_status_for_order(owner.status), item


@pytest.fixture
def write_log() -> List[tuple]:
    return []


@pytest.fixture
def item_store(write_log) -> InMemoryItemStore:
    store = InMemoryItemStore(write_log)
    for item_id in ("A", "B", "C", "D"):
        store.add(item_id)
    return store


@pytest.fixture
def order_store(write_log) -> InMemoryOrderStore:
    return InMemoryOrderStore(write_log)


@pytest.fixture
def service(item_store, order_store) -> ReconciliationService:
    return ReconciliationService(item_store, order_store)


@pytest.fixture
def fields() -> OrderFields:
    return OrderFields(supplier_id=SUPPLIER, order_date=date(2026, 2, 1), delivery_deadline="2w")


@pytest_asyncio.fixture
async def db_session():
    engine = create_async_engine("sqlite+aiosqlite://", poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    maker = async_sessionmaker(bind=engine, autoflush=False, class_=AsyncSession, expire_on_commit=False)
    async with maker() as session:
        yield session
    await engine.dispose()
