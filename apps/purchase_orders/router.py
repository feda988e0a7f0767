from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from apps.purchase_orders.catalog import CatalogLookup
from apps.purchase_orders.exception import ReconciliationError, to_http_exception
from apps.purchase_orders.schemas import (
    ItemResponse,
    OrderResponse,
    OrderSaveRequest,
    OrderSummaryResponse,
    RepairResponse,
    SaveResponse,
    SaveResult,
)
from apps.purchase_orders.service import ReconciliationService
from apps.purchase_orders.stores import SqlItemStore, SqlOrderStore
from common.responses import error_response
from models.base import get_db
from settings.config import get_settings


router = APIRouter(prefix="/api/projects/{project_id}/purchase-orders", tags=["Purchase Orders"])


def get_service(db: AsyncSession = Depends(get_db)) -> ReconciliationService:
    settings = get_settings()
    return ReconciliationService(SqlItemStore(db), SqlOrderStore(db), order_number_prefix=settings.ORDER_NUMBER_PREFIX)


def get_catalog(db: AsyncSession = Depends(get_db)) -> CatalogLookup:
    return CatalogLookup(SqlItemStore(db), SqlOrderStore(db))


def _save_response(result: SaveResult) -> SaveResponse:
    return SaveResponse(
        order=OrderResponse.model_validate(result.order.model_dump()),
        changed_items=[ItemResponse.model_validate(i.model_dump()) for i in result.changed_items],
    )


def _order_fields(payload: OrderSaveRequest):
    try:
        return payload.order_fields()
    except ValidationError as exc:
        raise HTTPException(
            status_code=422,
            detail=error_response("Invalid order fields.", exc.errors(include_url=False, include_context=False, include_input=False)),
        )


@router.get("", response_model=List[OrderSummaryResponse])
async def list_orders(project_id: str, service: ReconciliationService = Depends(get_service)):
    try:
        summaries = await service.list_project_orders(project_id, repair=get_settings().REPAIR_ON_READ)
    except ReconciliationError as exc:
        raise to_http_exception(exc)
    return [
        OrderSummaryResponse(
            order=OrderResponse.model_validate(s.order.model_dump()),
            items=[ItemResponse.model_validate(i.model_dump()) for i in s.items],
            total=s.total,
        )
        for s in summaries
    ]


@router.get("/eligible-items", response_model=List[ItemResponse])
async def eligible_items(
    project_id: str,
    supplier_id: str = Query(..., alias="supplierId", min_length=1),
    order_id: Optional[str] = Query(default=None, alias="orderId"),
    catalog: CatalogLookup = Depends(get_catalog),
):
    try:
        items = await catalog.eligible_items(project_id, supplier_id, order_id)
    except ReconciliationError as exc:
        raise to_http_exception(exc)
    return [ItemResponse.model_validate(i.model_dump()) for i in items]


@router.post("", response_model=SaveResponse, status_code=status.HTTP_201_CREATED)
async def create_order(project_id: str, payload: OrderSaveRequest, service: ReconciliationService = Depends(get_service)):
    fields = _order_fields(payload)
    try:
        result = await service.save_order(project_id, payload.status, payload.item_ids, fields=fields)
    except ReconciliationError as exc:
        raise to_http_exception(exc)
    return _save_response(result)


@router.post("/repair", response_model=RepairResponse)
async def repair_orders(project_id: str, service: ReconciliationService = Depends(get_service)):
    try:
        report = await service.repair_project(project_id)
    except ReconciliationError as exc:
        raise to_http_exception(exc)
    return RepairResponse(
        project_id=report.project_id,
        examined=report.examined,
        repaired=[ItemResponse.model_validate(i.model_dump()) for i in report.repaired],
        skipped=report.skipped,
    )


@router.put("/{order_id}", response_model=SaveResponse)
async def update_order(
    project_id: str,
    order_id: str,
    payload: OrderSaveRequest,
    service: ReconciliationService = Depends(get_service),
):
    fields = _order_fields(payload)
    try:
        result = await service.save_order(project_id, payload.status, payload.item_ids, order_id=order_id, fields=fields)
    except ReconciliationError as exc:
        raise to_http_exception(exc)
    return _save_response(result)


@router.delete("/{order_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_order(project_id: str, order_id: str, service: ReconciliationService = Depends(get_service)):
    try:
        await service.delete_order(order_id, project_id=project_id)
    except ReconciliationError as exc:
        raise to_http_exception(exc)
    return None
