"""Work order read endpoints and the webhook ingestion endpoint."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from woms.auth.middleware import AuthContextDep, require_webhook_key
from woms.database import get_db
from woms.schemas.work_order import WebhookWorkOrderRequest, WorkOrderListResponse, WorkOrderResponse
from woms.services import work_orders

router = APIRouter()
webhook_router = APIRouter()


@router.get("/work-orders", response_model=WorkOrderListResponse)
async def list_work_orders(
    ctx: AuthContextDep,
    db: Annotated[AsyncSession, Depends(get_db)],
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1, le=100)] = 20,
):
    """List work orders; clients only see the ones authorized under their email."""
    rows, total = await work_orders.list_work_orders(db, ctx, page=page, limit=limit)
    return WorkOrderListResponse(
        items=[WorkOrderResponse.model_validate(w) for w in rows], total=total, page=page, limit=limit
    )


@router.get("/work-orders/{work_order_id}", response_model=WorkOrderResponse)
async def get_work_order(
    work_order_id: int,
    ctx: AuthContextDep,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    return await work_orders.get_work_order(db, ctx, work_order_id)


@webhook_router.post(
    "/work-orders",
    response_model=WorkOrderResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_webhook_key)],
)
async def ingest_work_order(
    body: WebhookWorkOrderRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Create a work order pushed by the upstream email-processing system."""
    data = body.model_dump(exclude={"tenant_code"}, exclude_none=True)
    work_order = await work_orders.ingest_work_order(db, body.tenant_code, data)
    await db.commit()
    return work_order
