from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field as PydanticField, constr

_REQUIRED_ORDER_COLUMNS = ("supplier_id", "order_number", "order_date")


class ItemSnapshot(BaseModel):
    """
    State of a project item as read from the item store.
    """
    model_config = ConfigDict(from_attributes=True)

    id: str
    project_id: str
    name: str = ""
    quantity: Decimal = Decimal("0")
    unit_cost: Decimal = Decimal("0")
    status: str
    purchase_order_id: Optional[str] = None
    supplier_id: Optional[str] = None
    is_excluded: bool = False


class OrderFields(BaseModel):
    """
    Editable order values. None of them take part in reconciliation.

    Creating an order needs supplier_id; on edit only the fields set on the
    instance are written, so omitted values keep what is stored.
    """
    supplier_id: Optional[constr(strip_whitespace=True, min_length=1, max_length=36)] = None
    order_number: Optional[constr(strip_whitespace=True, min_length=1, max_length=100)] = None
    order_date: Optional[date] = None
    notes: Optional[str] = None
    delivery_deadline: Optional[constr(strip_whitespace=True, max_length=50)] = None
    delivery_date: Optional[date] = None

    def changes(self) -> Dict[str, Any]:
        # an explicit null only clears the nullable columns
        sent = self.model_dump(exclude_unset=True)
        return {k: v for k, v in sent.items() if v is not None or k not in _REQUIRED_ORDER_COLUMNS}


class OrderSnapshot(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    project_id: str
    supplier_id: str
    order_number: str
    order_date: date
    status: str
    notes: Optional[str] = None
    delivery_deadline: Optional[str] = None
    delivery_date: Optional[date] = None
    created_at: Optional[datetime] = None


class SaveResult(BaseModel):
    order: OrderSnapshot
    changed_items: List[ItemSnapshot] = []
    released: List[str] = []
    claimed: List[str] = []
    restated: List[str] = []


class DeleteResult(BaseModel):
    order_id: str
    released: List[ItemSnapshot] = []
    skipped: List[str] = []


class RepairReport(BaseModel):
    project_id: str
    examined: int = 0
    repaired: List[ItemSnapshot] = []
    skipped: List[str] = []


class OrderSummary(BaseModel):
    order: OrderSnapshot
    items: List[ItemSnapshot] = []
    total: Decimal = Decimal("0")


# ---- API payloads -------------------------------------------------------


class OrderSaveRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    status: str = PydanticField(alias="status")
    item_ids: List[str] = PydanticField(default_factory=list, alias="itemIds")
    supplier_id: Optional[str] = PydanticField(default=None, alias="supplierId")
    order_number: Optional[str] = PydanticField(default=None, alias="orderNumber")
    order_date: Optional[date] = PydanticField(default=None, alias="orderDate")
    notes: Optional[str] = PydanticField(default=None, alias="notes")
    delivery_deadline: Optional[str] = PydanticField(default=None, alias="deliveryDeadline")
    delivery_date: Optional[date] = PydanticField(default=None, alias="deliveryDate")

    def order_fields(self) -> Optional[OrderFields]:
        """
        OrderFields holding only the order values the request actually sent.
        """
        sent = {name: getattr(self, name) for name in OrderFields.model_fields if name in self.model_fields_set}
        if not sent:
            return None
        return OrderFields(**sent)


class ItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: str = PydanticField(alias="id")
    name: str = PydanticField(alias="name")
    quantity: Decimal = PydanticField(alias="quantity")
    unit_cost: Decimal = PydanticField(alias="unitCost")
    status: str = PydanticField(alias="status")
    purchase_order_id: Optional[str] = PydanticField(default=None, alias="purchaseOrderId")
    supplier_id: Optional[str] = PydanticField(default=None, alias="supplierId")


class OrderResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: str = PydanticField(alias="id")
    order_number: str = PydanticField(alias="orderNumber")
    supplier_id: str = PydanticField(alias="supplierId")
    status: str = PydanticField(alias="status")
    order_date: date = PydanticField(alias="orderDate")
    notes: Optional[str] = PydanticField(default=None, alias="notes")
    delivery_deadline: Optional[str] = PydanticField(default=None, alias="deliveryDeadline")
    delivery_date: Optional[date] = PydanticField(default=None, alias="deliveryDate")
    created_at: Optional[datetime] = PydanticField(default=None, alias="createdAt")


class OrderSummaryResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    order: OrderResponse
    items: List[ItemResponse] = []
    total: Decimal = PydanticField(default=Decimal("0"), alias="total")


class SaveResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    order: OrderResponse
    changed_items: List[ItemResponse] = PydanticField(default_factory=list, alias="changedItems")


class RepairResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    project_id: str = PydanticField(alias="projectId")
    examined: int = PydanticField(alias="examined")
    repaired: List[ItemResponse] = PydanticField(default_factory=list, alias="repaired")
    skipped: List[str] = PydanticField(default_factory=list, alias="skipped")
