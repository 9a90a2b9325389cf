"""Quote persistence - lookups, scoped listing and conditional status writes."""

import logging
from datetime import datetime
from typing import Any

from sqlalchemy import func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from woms.engine.numbering import format_quote_number
from woms.errors import Conflict
from woms.models import Quote, QuoteMessage, QuoteNumberSequence, QuoteStatus
from woms.storage.repositories import apply_scope

logger = logging.getLogger(__name__)

MAX_SEQUENCE_ATTEMPTS = 10


async def find_quote(db: AsyncSession, quote_id: int) -> Quote | None:
    """Get quote by id, unscoped. Callers gate the result through the Scope Enforcer."""
    result = await db.execute(
        select(Quote).where(Quote.id == quote_id).execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def allocate_quote_number(db: AsyncSession, year: int, prefix: str = "QTE") -> str:
    """
    Issue the next quote number for ``year``.

    Runs in its own session and commits immediately, so a later failure of the
    caller's transaction leaves a gap instead of reusing the number. The
    per-year counter is advanced with compare-and-set, never decremented.
    """
    async with AsyncSession(db.bind, expire_on_commit=False) as seq_db:
        for _ in range(MAX_SEQUENCE_ATTEMPTS):
            current = await seq_db.scalar(
                select(QuoteNumberSequence.last_value).where(QuoteNumberSequence.year == year)
            )
            if current is None:
                seq_db.add(QuoteNumberSequence(year=year, last_value=1))
                try:
                    await seq_db.commit()
                except IntegrityError:
                    await seq_db.rollback()
                    continue
                return format_quote_number(year, 1, prefix)

            result = await seq_db.execute(
                update(QuoteNumberSequence)
                .where(
                    QuoteNumberSequence.year == year,
                    QuoteNumberSequence.last_value == current,
                )
                .values(last_value=current + 1)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 1:
                await seq_db.commit()
                return format_quote_number(year, current + 1, prefix)
            await seq_db.rollback()
    raise Conflict(f"Could not allocate a quote number for {year}")


async def create_quote(db: AsyncSession, **fields) -> Quote:
    """Insert a quote; ``fields`` must already carry tenant_id and quote_number."""
    quote = Quote(**fields)
    db.add(quote)
    await db.flush()
    await db.refresh(quote)
    return quote


async def update_draft_fields(db: AsyncSession, quote_id: int, values: dict[str, Any]) -> bool:
    """Edit descriptive fields, only while the quote is still a Draft."""
    result = await db.execute(
        update(Quote)
        .where(Quote.id == quote_id, Quote.status == QuoteStatus.DRAFT)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


async def update_quote_status(
    db: AsyncSession,
    quote_id: int,
    expected_status: QuoteStatus,
    target_status: QuoteStatus,
    values: dict[str, Any] | None = None,
    require_unconverted: bool = False,
) -> None:
    """
    Conditional status write: applies only if the row still has
    ``expected_status``. Zero affected rows means another request won the
    race and raises Conflict.
    """
    stmt = update(Quote).where(Quote.id == quote_id, Quote.status == expected_status)
    if require_unconverted:
        stmt = stmt.where(Quote.converted_to_work_order_id.is_(None))
    result = await db.execute(
        stmt.values(status=target_status, **(values or {})).execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        logger.info(
            "Lost status race on quote %s (%s -> %s)",
            quote_id,
            expected_status.value,
            target_status.value,
        )
        raise Conflict(
            f"Quote {quote_id} is no longer '{expected_status.value}'",
            expected_status=expected_status.value,
        )


def _filtered(
    scope,
    status: QuoteStatus | None = None,
    urgent: bool | None = None,
    search: str | None = None,
    date_from: datetime | None = None,
    date_to: datetime | None = None,
    tenant_id: int | None = None,
):
    stmt = apply_scope(select(Quote), Quote, scope)
    if tenant_id is not None:
        stmt = stmt.where(Quote.tenant_id == tenant_id)
    if status is not None:
        stmt = stmt.where(Quote.status == status)
    if urgent is not None:
        stmt = stmt.where(Quote.is_urgent.is_(urgent))
    if search:
        pattern = f"%{search}%"
        stmt = stmt.where(
            or_(
                Quote.quote_number.ilike(pattern),
                Quote.property_name.ilike(pattern),
                Quote.description.ilike(pattern),
                Quote.title.ilike(pattern),
            )
        )
    if date_from is not None:
        stmt = stmt.where(Quote.created_at >= date_from)
    if date_to is not None:
        stmt = stmt.where(Quote.created_at <= date_to)
    return stmt


async def list_quotes(
    db: AsyncSession,
    scope,
    page: int = 1,
    limit: int = 20,
    **filters,
) -> tuple[list[Quote], int]:
    """Scoped, filtered, paginated quotes (newest first) plus the total count."""
    stmt = _filtered(scope, **filters)
    total = await db.scalar(select(func.count()).select_from(stmt.subquery()))
    result = await db.execute(
        stmt.order_by(Quote.created_at.desc(), Quote.id.desc()).limit(limit).offset((page - 1) * limit)
    )
    return list(result.scalars().all()), total or 0


async def count_quotes_by_status(db: AsyncSession, scope) -> dict[QuoteStatus, int]:
    """Per-status counts under ``scope``; statuses with no quotes report 0."""
    stmt = apply_scope(
        select(Quote.status, func.count(Quote.id)).group_by(Quote.status), Quote, scope
    )
    counts = {status: 0 for status in QuoteStatus}
    for status, count in (await db.execute(stmt)).all():
        counts[QuoteStatus(status)] = count
    return counts


async def count_urgent_open_quotes(db: AsyncSession, scope) -> int:
    stmt = apply_scope(
        select(func.count(Quote.id)).where(
            Quote.is_urgent.is_(True),
            Quote.status.not_in([QuoteStatus.DECLINED, QuoteStatus.CONVERTED]),
        ),
        Quote,
        scope,
    )
    return await db.scalar(stmt) or 0


async def list_quoted_with_validity(db: AsyncSession) -> list[Quote]:
    """Quoted quotes that carry a validity date (candidates for expiry notices)."""
    result = await db.execute(
        select(Quote).where(
            Quote.status == QuoteStatus.QUOTED,
            Quote.quote_valid_until.is_not(None),
        )
    )
    return list(result.scalars().all())


async def add_quote_message(
    db: AsyncSession, quote_id: int, user_id: int, message_type: str, message: str
) -> QuoteMessage:
    msg = QuoteMessage(quote_id=quote_id, user_id=user_id, message_type=message_type, message=message)
    db.add(msg)
    await db.flush()
    return msg


async def list_quote_messages(db: AsyncSession, quote_id: int) -> list[QuoteMessage]:
    result = await db.execute(
        select(QuoteMessage)
        .where(QuoteMessage.quote_id == quote_id)
        .order_by(QuoteMessage.created_at, QuoteMessage.id)
    )
    return list(result.scalars().all())
