from typing import Any, Dict, Iterable, List, Optional

from fastapi import HTTPException, status

from common.responses import error_response


class ReconciliationError(Exception):
    """
    Base class for everything the purchase-order reconciliation service raises.
    """

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ValidationRejection(ReconciliationError):
    """
    Caller error detected before any write. Safe to retry once the input is corrected.
    """


class EmptySelectionError(ValidationRejection):
    def __init__(self):
        super().__init__("A purchase order must contain at least one item.")


class CancelledOrderError(ValidationRejection):
    def __init__(self, order_id: str):
        super().__init__(
            "Cancelled purchase orders cannot be edited; create a new order instead.",
            {"orderId": order_id},
        )


class InvalidStatusError(ValidationRejection):
    def __init__(self, status_value: str, reason: str = "Unknown purchase order status."):
        super().__init__(reason, {"status": status_value})


class MissingOrderFieldsError(ValidationRejection):
    def __init__(self):
        super().__init__("Order fields are required when creating a purchase order.")


class UnknownSupplierError(ValidationRejection):
    def __init__(self, supplier_id: str):
        super().__init__("Supplier not found.", {"supplierId": supplier_id})


class _ItemRejection(ValidationRejection):
    def __init__(self, message: str, item_ids: Iterable[str], **extra: Any):
        self.item_ids: List[str] = sorted(item_ids)
        super().__init__(message, {"itemIds": self.item_ids, **extra})


class UnknownItemError(_ItemRejection):
    def __init__(self, item_ids: Iterable[str]):
        super().__init__("Some items do not exist in this project.", item_ids)


class ExcludedItemError(_ItemRejection):
    def __init__(self, item_ids: Iterable[str]):
        super().__init__("Excluded items cannot be added to a purchase order.", item_ids)


class ItemClaimedError(_ItemRejection):
    def __init__(self, owners: Dict[str, str]):
        # owners: item id -> id of the active order that already holds it
        self.owners = dict(owners)
        super().__init__(
            "Some items already belong to another active purchase order.",
            owners.keys(),
            owners=self.owners,
        )


class OrderNotFoundError(ReconciliationError):
    def __init__(self, order_id: str):
        super().__init__("Purchase order not found.", {"orderId": order_id})


class StoreFailure(ReconciliationError):
    """
    A read or write against the item/order store failed.
    """


class PartialReconciliationError(StoreFailure):
    """
    Item writes stopped midway. The order row already holds its new state;
    the repair pass or a retry of the same call converges the items.
    """

    def __init__(
        self,
        order_id: str,
        applied: Iterable[str],
        pending: Iterable[str],
        cause: Exception,
        skipped: Iterable[str] = (),
    ):
        self.order_id = order_id
        self.applied = list(applied)
        self.skipped = list(skipped)
        self.pending = list(pending)
        super().__init__(
            "Purchase order saved but some items could not be updated.",
            {
                "orderId": order_id,
                "applied": self.applied,
                "skipped": self.skipped,
                "pending": self.pending,
                "cause": str(cause),
            },
        )


def to_http_exception(exc: ReconciliationError) -> HTTPException:
    """
    Map a reconciliation error to the HTTP response the API returns for it.
    """
    if isinstance(exc, OrderNotFoundError):
        code = status.HTTP_404_NOT_FOUND
    elif isinstance(exc, (CancelledOrderError, ItemClaimedError)):
        code = status.HTTP_409_CONFLICT
    elif isinstance(exc, ValidationRejection):
        code = 422
    elif isinstance(exc, StoreFailure):
        code = status.HTTP_503_SERVICE_UNAVAILABLE
    else:
        code = status.HTTP_400_BAD_REQUEST
    return HTTPException(status_code=code, detail=error_response(exc.message, exc.details or None))
