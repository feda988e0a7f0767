from typing import List, Optional

from apps.purchase_orders.schemas import ItemSnapshot
from apps.purchase_orders.stores import ItemStore, OrderStore
from constants.statuses import is_active_order_status


class CatalogLookup:
    """
    Lists the project items a purchase order for a supplier may claim.
    The result is only a hint for the order form; save_order re-validates it.
    """

    def __init__(self, item_store: ItemStore, order_store: OrderStore):
        self.items = item_store
        self.orders = order_store

    async def eligible_items(self, project_id: str, supplier_id: str, order_id: Optional[str] = None) -> List[ItemSnapshot]:
        items = [
            item
            for item in await self.items.list_by_project(project_id)
            if not item.is_excluded and item.supplier_id == supplier_id
        ]
        owner_ids = {i.purchase_order_id for i in items if i.purchase_order_id and i.purchase_order_id != order_id}
        active_owners = {o.id for o in await self.orders.get_many(owner_ids) if is_active_order_status(o.status)}
        return [item for item in items if item.purchase_order_id not in active_owners]
