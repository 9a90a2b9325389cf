"""Quote endpoints - thin wrappers over QuoteService."""

from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from woms.auth.middleware import AuthContextDep
from woms.database import get_db
from woms.models import QuoteStatus
from woms.schemas.quote import (
    ConvertQuoteRequest,
    CreateQuoteRequest,
    DeclineRequest,
    MessageRequest,
    ProvideQuoteRequest,
    QuoteListResponse,
    QuoteMessageResponse,
    QuoteResponse,
    UpdateQuoteRequest,
)
from woms.schemas.work_order import ConversionResponse, WorkOrderResponse
from woms.services.quotes import QuoteService
from woms.services.retry import retry_on_conflict

router = APIRouter()


def get_quote_service(db: Annotated[AsyncSession, Depends(get_db)]) -> QuoteService:
    return QuoteService(db)


ServiceDep = Annotated[QuoteService, Depends(get_quote_service)]


@router.get("/quotes", response_model=QuoteListResponse)
async def list_quotes(
    ctx: AuthContextDep,
    service: ServiceDep,
    status_filter: Annotated[QuoteStatus | None, Query(alias="status")] = None,
    is_urgent: bool | None = None,
    search: str | None = None,
    date_from: datetime | None = None,
    date_to: datetime | None = None,
    tenant_id: int | None = None,
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1, le=100)] = 20,
):
    """List quotes visible in the current tenant context."""
    rows, total = await service.list_quotes(
        ctx,
        page=page,
        limit=limit,
        status=status_filter,
        urgent=is_urgent,
        search=search,
        date_from=date_from,
        date_to=date_to,
        tenant_id=tenant_id,
    )
    return QuoteListResponse(
        items=[QuoteResponse.model_validate(q) for q in rows], total=total, page=page, limit=limit
    )


@router.get("/quotes/summary")
async def quote_summary(ctx: AuthContextDep, service: ServiceDep) -> dict[str, int]:
    """Per-status counts for the dashboard."""
    return await service.summary(ctx)


@router.post("/quotes", response_model=QuoteResponse, status_code=status.HTTP_201_CREATED)
async def create_quote(body: CreateQuoteRequest, ctx: AuthContextDep, service: ServiceDep):
    """Create a Draft quote in the effective tenant."""
    return await service.create_quote(ctx, body.model_dump())


@router.get("/quotes/{quote_id}", response_model=QuoteResponse)
async def get_quote(quote_id: int, ctx: AuthContextDep, service: ServiceDep):
    return await service.get_quote(ctx, quote_id)


@router.put("/quotes/{quote_id}", response_model=QuoteResponse)
async def update_quote(quote_id: int, body: UpdateQuoteRequest, ctx: AuthContextDep, service: ServiceDep):
    """Edit a Draft."""
    return await service.update_draft(ctx, quote_id, body.model_dump(exclude_unset=True))


@router.post("/quotes/{quote_id}/submit", response_model=QuoteResponse)
async def submit_quote(quote_id: int, ctx: AuthContextDep, service: ServiceDep):
    return await service.submit(ctx, quote_id)


@router.post("/quotes/{quote_id}/request-info", response_model=QuoteResponse)
async def request_info(quote_id: int, body: MessageRequest, ctx: AuthContextDep, service: ServiceDep):
    return await service.request_info(ctx, quote_id, body.message)


@router.post("/quotes/{quote_id}/provide-quote", response_model=QuoteResponse)
async def provide_quote(quote_id: int, body: ProvideQuoteRequest, ctx: AuthContextDep, service: ServiceDep):
    """Price a request, or renew an Expired quote."""
    return await service.provide_quote(ctx, quote_id, **body.model_dump())


@router.post("/quotes/{quote_id}/discuss", response_model=QuoteResponse)
async def discuss_quote(quote_id: int, body: MessageRequest, ctx: AuthContextDep, service: ServiceDep):
    return await service.discuss(ctx, quote_id, body.message)


@router.post("/quotes/{quote_id}/approve", response_model=QuoteResponse)
async def approve_quote(quote_id: int, ctx: AuthContextDep, service: ServiceDep):
    """Approve a Quoted quote; a lost race is retried once."""
    return await retry_on_conflict(lambda: service.approve(ctx, quote_id))


@router.post("/quotes/{quote_id}/decline", response_model=QuoteResponse)
async def decline_quote(quote_id: int, body: DeclineRequest, ctx: AuthContextDep, service: ServiceDep):
    return await service.decline(ctx, quote_id, body.reason)


@router.post("/quotes/{quote_id}/expire", response_model=QuoteResponse)
async def expire_quote(quote_id: int, ctx: AuthContextDep, service: ServiceDep):
    return await service.mark_expired(ctx, quote_id)


@router.post("/quotes/{quote_id}/convert", response_model=ConversionResponse)
async def convert_quote(quote_id: int, body: ConvertQuoteRequest, ctx: AuthContextDep, service: ServiceDep):
    """Convert an Approved quote into exactly one work order."""
    quote, work_order = await retry_on_conflict(
        lambda: service.convert_to_work_order(ctx, quote_id, **body.model_dump())
    )
    return ConversionResponse(
        quote_id=quote.id,
        quote_status=quote.status.value,
        work_order=WorkOrderResponse.model_validate(work_order),
    )


@router.get("/quotes/{quote_id}/messages", response_model=list[QuoteMessageResponse])
async def list_messages(quote_id: int, ctx: AuthContextDep, service: ServiceDep):
    return await service.list_messages(ctx, quote_id)


@router.post(
    "/quotes/{quote_id}/messages",
    response_model=QuoteMessageResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_message(quote_id: int, body: MessageRequest, ctx: AuthContextDep, service: ServiceDep):
    return await service.add_message(ctx, quote_id, body.message)
