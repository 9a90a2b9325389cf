"""Quote lifecycle operations.

Each mutating method is one transaction: load the quote, gate it through the
Scope Enforcer, validate the move against the lifecycle table, then write it
with a conditional UPDATE that only matches the status that was validated.
Notifications go out after commit.
"""

import functools
import logging
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from woms.auth.context import AuthorizationContext
from woms.auth.scope import Action, ensure_access, list_filter, require_role, stamp_tenant
from woms.config import settings
from woms.engine import lifecycle
from woms.engine.numbering import next_job_number
from woms.errors import AlreadyConverted, AlreadyExists, Conflict, InvalidTransition, ValidationFailed
from woms.models import Quote, QuoteMessage, QuoteStatus, WorkOrder
from woms.services.notifications import EventKind, LoggingNotifier, NotificationEvent, Notifier, dispatch
from woms.storage import quotes as quote_repo
from woms.storage.repositories import create_work_order, job_numbers_with_prefix

logger = logging.getLogger(__name__)

S = QuoteStatus

DRAFT_EDITABLE_FIELDS = frozenset(
    {
        "property_name",
        "property_address",
        "property_phone",
        "title",
        "work_type",
        "description",
        "scope_of_work",
        "contact_person",
        "contact_email",
        "contact_phone",
        "is_urgent",
        "required_by_date",
    }
)


def transactional(method):
    """Commit on success, roll back on any error, then flush queued notifications."""

    @functools.wraps(method)
    async def wrapper(self, *args, **kwargs):
        try:
            result = await method(self, *args, **kwargs)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            self._pending.clear()
            raise
        pending, self._pending = self._pending, []
        for event in pending:
            dispatch(self.notifier, event)
        return result

    return wrapper


class QuoteService:
    """Scoped quote operations for one request's session."""

    def __init__(
        self,
        db: AsyncSession,
        notifier: Notifier | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.db = db
        self.notifier = notifier or LoggingNotifier()
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._pending: list[NotificationEvent] = []

    def now(self) -> datetime:
        return self._clock()

    def _notify(self, quote: Quote, kind: EventKind) -> None:
        self._pending.append(NotificationEvent(tenant_id=quote.tenant_id, quote_id=quote.id, event_kind=kind))

    async def _load(self, ctx: AuthorizationContext, quote_id: int, action: Action = Action.READ) -> Quote:
        quote = await quote_repo.find_quote(self.db, quote_id)
        return ensure_access(ctx, quote, action=action)

    async def _transition(
        self,
        ctx: AuthorizationContext,
        quote: Quote,
        target: QuoteStatus,
        values: dict[str, Any] | None = None,
        message: str | None = None,
        message_type: str | None = None,
    ) -> Quote:
        """Validate against the table, then compare-and-set the status."""
        current = QuoteStatus(quote.status)
        lifecycle.check_transition(quote, target, self.now())
        await quote_repo.update_quote_status(self.db, quote.id, current, target, values)
        await quote_repo.add_quote_message(
            self.db,
            quote_id=quote.id,
            user_id=ctx.principal.id,
            message_type=message_type or target.name.lower(),
            message=message or f"Status changed from {current.value} to {target.value}",
        )
        await self.db.refresh(quote)
        logger.info(
            "Quote %s (tenant %s) %s -> %s by user %s",
            quote.id,
            quote.tenant_id,
            current.value,
            target.value,
            ctx.principal.id,
        )
        return quote

    # Reads

    async def get_quote(self, ctx: AuthorizationContext, quote_id: int) -> Quote:
        return await self._load(ctx, quote_id)

    async def list_quotes(
        self,
        ctx: AuthorizationContext,
        page: int = 1,
        limit: int = 20,
        **filters,
    ) -> tuple[list[Quote], int]:
        """List under the caller's filter predicate; extra filters only narrow further."""
        return await quote_repo.list_quotes(self.db, list_filter(ctx), page=page, limit=limit, **filters)

    async def summary(self, ctx: AuthorizationContext) -> dict[str, int]:
        """Dashboard counts per status, plus urgent open quotes and the total."""
        scope = list_filter(ctx)
        counts = await quote_repo.count_quotes_by_status(self.db, scope)
        summary = {status.name.lower(): count for status, count in counts.items()}
        summary["urgent"] = await quote_repo.count_urgent_open_quotes(self.db, scope)
        summary["total"] = sum(counts.values())
        return summary

    async def list_messages(self, ctx: AuthorizationContext, quote_id: int) -> list[QuoteMessage]:
        quote = await self._load(ctx, quote_id)
        return await quote_repo.list_quote_messages(self.db, quote.id)

    # Draft handling

    @transactional
    async def create_quote(self, ctx: AuthorizationContext, data: dict[str, Any]) -> Quote:
        """
        Create a Draft. The tenant is always the effective tenant; a tenant_id
        in ``data`` is overwritten. The quote number is issued up front.
        """
        require_role(ctx, Action.CREATE_QUOTE)
        fields = stamp_tenant(ctx, data)
        fields["quote_number"] = await quote_repo.allocate_quote_number(
            self.db, self.now().year, settings.quote_number_prefix
        )
        fields["status"] = lifecycle.INITIAL_STATUS
        fields["created_by"] = ctx.principal.id
        quote = await quote_repo.create_quote(self.db, **fields)
        logger.info("Quote %s created for tenant %s", quote.quote_number, quote.tenant_id)
        return quote

    @transactional
    async def update_draft(self, ctx: AuthorizationContext, quote_id: int, changes: dict[str, Any]) -> Quote:
        """Edit descriptive fields of a Draft. Unknown keys (tenant_id, status, ...) are ignored."""
        quote = await self._load(ctx, quote_id, Action.WRITE)
        if quote.status != S.DRAFT:
            raise InvalidTransition(
                f"Cannot update quote with status '{QuoteStatus(quote.status).value}'. "
                "Only draft quotes can be updated.",
                current_status=QuoteStatus(quote.status).value,
            )
        values = {k: v for k, v in changes.items() if k in DRAFT_EDITABLE_FIELDS}
        if values and not await quote_repo.update_draft_fields(self.db, quote.id, values):
            raise Conflict(f"Quote {quote.id} is no longer a draft")
        await self.db.refresh(quote)
        return quote

    # Lifecycle transitions

    @transactional
    async def submit(self, ctx: AuthorizationContext, quote_id: int) -> Quote:
        """Draft -> Submitted, or the client's answer to InformationRequested."""
        quote = await self._load(ctx, quote_id, Action.SUBMIT_QUOTE)
        quote = await self._transition(ctx, quote, S.SUBMITTED, {"submitted_at": self.now()})
        self._notify(quote, EventKind.SUBMITTED)
        return quote

    @transactional
    async def request_info(self, ctx: AuthorizationContext, quote_id: int, message: str) -> Quote:
        if not message or not message.strip():
            raise ValidationFailed("Message is required when requesting more information")
        quote = await self._load(ctx, quote_id, Action.REQUEST_INFO)
        quote = await self._transition(
            ctx, quote, S.INFORMATION_REQUESTED, message=message.strip(), message_type="info_requested"
        )
        self._notify(quote, EventKind.INFO_REQUESTED)
        return quote

    @transactional
    async def provide_quote(
        self,
        ctx: AuthorizationContext,
        quote_id: int,
        estimated_cost: Decimal,
        estimated_hours: Decimal,
        quote_notes: str | None = None,
        quote_valid_until: datetime | None = None,
        itemized_breakdown: dict | None = None,
    ) -> Quote:
        """Staff prices the job: Submitted/UnderDiscussion -> Quoted, or renews an Expired quote."""
        if estimated_cost is None or estimated_cost <= 0:
            raise ValidationFailed("Estimated cost must be greater than 0")
        if estimated_hours is None or estimated_hours <= 0:
            raise ValidationFailed("Estimated hours must be greater than 0")
        if quote_valid_until is not None and lifecycle.as_utc(quote_valid_until) <= self.now():
            raise ValidationFailed("Quote validity date must be in the future")

        quote = await self._load(ctx, quote_id, Action.PROVIDE_QUOTE)
        renewal = quote.status == S.EXPIRED
        quote = await self._transition(
            ctx,
            quote,
            S.QUOTED,
            {
                "estimated_cost": estimated_cost,
                "estimated_hours": estimated_hours,
                "quote_notes": quote_notes,
                "quote_valid_until": quote_valid_until,
                "itemized_breakdown": itemized_breakdown,
                "quoted_at": self.now(),
            },
            message=f"Quote provided: ${estimated_cost}, {estimated_hours} hours. {quote_notes or ''}".strip(),
            message_type="renewed" if renewal else "quote_provided",
        )
        self._notify(quote, EventKind.RENEWED if renewal else EventKind.QUOTED)
        return quote

    @transactional
    async def discuss(self, ctx: AuthorizationContext, quote_id: int, message: str) -> Quote:
        """Client questions a price: Quoted -> UnderDiscussion."""
        if not message or not message.strip():
            raise ValidationFailed("Message is required to start a discussion")
        quote = await self._load(ctx, quote_id, Action.DISCUSS_QUOTE)
        quote = await self._transition(
            ctx, quote, S.UNDER_DISCUSSION, message=message.strip(), message_type="under_discussion"
        )
        self._notify(quote, EventKind.UNDER_DISCUSSION)
        return quote

    @transactional
    async def approve(self, ctx: AuthorizationContext, quote_id: int) -> Quote:
        """Quoted -> Approved, refused with QuoteExpired once validity has lapsed."""
        quote = await self._load(ctx, quote_id, Action.APPROVE_QUOTE)
        quote = await self._transition(
            ctx,
            quote,
            S.APPROVED,
            {"approved_at": self.now()},
            message="Quote approved. Ready to convert to work order.",
            message_type="approved",
        )
        self._notify(quote, EventKind.APPROVED)
        return quote

    @transactional
    async def decline(self, ctx: AuthorizationContext, quote_id: int, reason: str | None = None) -> Quote:
        """
        Staff decline a Submitted request; client admins decline a Quoted price.
        Any other status falls through to the transition table.
        """
        quote = await self._load(ctx, quote_id)
        if quote.status == S.SUBMITTED:
            require_role(ctx, Action.STAFF_DECLINE_QUOTE)
        elif quote.status == S.QUOTED:
            require_role(ctx, Action.CLIENT_DECLINE_QUOTE)
        quote = await self._transition(
            ctx,
            quote,
            S.DECLINED,
            {"declined_at": self.now()},
            message=f"Quote declined. {reason or ''}".strip(),
            message_type="declined",
        )
        self._notify(quote, EventKind.DECLINED)
        return quote

    @transactional
    async def mark_expired(self, ctx: AuthorizationContext, quote_id: int) -> Quote:
        """Cosmetic Quoted -> Expired; approval already refuses lapsed quotes on its own."""
        quote = await self._load(ctx, quote_id, Action.EXPIRE_QUOTE)
        quote = await self._transition(ctx, quote, S.EXPIRED, message_type="expired")
        self._notify(quote, EventKind.EXPIRED)
        return quote

    @transactional
    async def convert_to_work_order(
        self,
        ctx: AuthorizationContext,
        quote_id: int,
        supplier_name: str | None = None,
        schedule_date: datetime | None = None,
        po_number: str | None = None,
    ) -> tuple[Quote, WorkOrder]:
        """
        Approved -> Converted together with the new work order, in one transaction.

        The work order takes the quote's tenant. The quote update only matches
        an Approved, unconverted row; if another request got there first the
        whole unit rolls back and the caller sees AlreadyConverted.
        """
        quote = await self._load(ctx, quote_id, Action.CONVERT_QUOTE)
        lifecycle.check_conversion(quote)
        lifecycle.check_transition(quote, S.CONVERTED, self.now())

        job_no = next_job_number(
            await job_numbers_with_prefix(self.db, quote.tenant_id, settings.work_order_prefix),
            settings.work_order_prefix,
        )
        try:
            work_order = await create_work_order(
                self.db,
                tenant_id=quote.tenant_id,
                job_no=job_no,
                status="pending",
                work_order_type="from_quote",
                date=schedule_date or self.now(),
                supplier_name=supplier_name or settings.default_supplier_name,
                property_name=quote.property_name,
                property_address=quote.property_address,
                property_phone=quote.property_phone,
                description=quote.description,
                po_number=po_number,
                authorized_by=quote.contact_person,
                authorized_email=quote.contact_email,
                is_urgent=quote.is_urgent,
                created_from_quote_id=quote.id,
                quote_number=quote.quote_number,
                created_by=ctx.principal.id,
            )
            await quote_repo.update_quote_status(
                self.db,
                quote.id,
                S.APPROVED,
                S.CONVERTED,
                {"converted_at": self.now(), "converted_to_work_order_id": work_order.id},
                require_unconverted=True,
            )
        except (Conflict, AlreadyExists, IntegrityError) as e:
            await self.db.rollback()
            latest = await quote_repo.find_quote(self.db, quote_id)
            if latest is not None and latest.converted_to_work_order_id is not None:
                raise AlreadyConverted(existing_work_order_id=latest.converted_to_work_order_id) from e
            raise Conflict(f"Quote {quote_id} changed while converting") from e

        cost = quote.estimated_cost if quote.estimated_cost is not None else Decimal("0")
        await quote_repo.add_quote_message(
            self.db,
            quote_id=quote.id,
            user_id=ctx.principal.id,
            message_type="converted",
            message=f"Quote converted to Work Order {job_no}. Estimated cost: ${cost:.2f}.",
        )
        await self.db.refresh(quote)
        logger.info("Quote %s converted to work order %s (%s)", quote.id, work_order.id, job_no)
        self._notify(quote, EventKind.CONVERTED)
        return quote, work_order

    # Messages

    @transactional
    async def add_message(self, ctx: AuthorizationContext, quote_id: int, message: str) -> QuoteMessage:
        if not message or not message.strip():
            raise ValidationFailed("Message content is required")
        quote = await self._load(ctx, quote_id)
        if quote.status in lifecycle.CLOSED_FOR_MESSAGES:
            raise InvalidTransition(
                f"Cannot add messages to a quote with status: {QuoteStatus(quote.status).value}",
                current_status=QuoteStatus(quote.status).value,
            )
        return await quote_repo.add_quote_message(
            self.db, quote_id=quote.id, user_id=ctx.principal.id, message_type="comment", message=message.strip()
        )

    # Expiry notices

    async def notify_expiring_quotes(self, window: timedelta | None = None) -> int:
        """
        Emit ``expiring`` for Quoted quotes whose validity ends within ``window``.
        Read-only: status stays Quoted.
        """
        window = window or timedelta(days=settings.quote_expiring_window_days)
        now = self.now()
        sent = 0
        for quote in await quote_repo.list_quoted_with_validity(self.db):
            if lifecycle.is_expiring_within(quote, now, window):
                dispatch(
                    self.notifier,
                    NotificationEvent(tenant_id=quote.tenant_id, quote_id=quote.id, event_kind=EventKind.EXPIRING),
                )
                sent += 1
        return sent


async def notify_expiring_quotes(
    db: AsyncSession,
    now: datetime | None = None,
    notifier: Notifier | None = None,
) -> int:
    """Scheduled entry point (scripts/notify_expiring.py): one ``expiring`` notice per quote about to lapse."""
    service = QuoteService(db, notifier=notifier, clock=(lambda: now) if now is not None else None)
    return await service.notify_expiring_quotes()
