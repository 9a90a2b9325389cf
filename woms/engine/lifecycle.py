"""Quote lifecycle rules - transition table, approval and conversion preconditions.

Pure functions over a quote-like object (anything with ``status``,
``quote_valid_until`` and ``converted_to_work_order_id``). Persistence and
compare-and-set live in ``woms.services.quotes``; this module only answers
"is this move legal right now".
"""

from datetime import datetime, timezone

from woms.errors import AlreadyConverted, InvalidTransition, QuoteExpired
from woms.models.quote import QuoteStatus

S = QuoteStatus

TRANSITIONS: dict[QuoteStatus, frozenset[QuoteStatus]] = {
    S.DRAFT: frozenset({S.SUBMITTED}),
    S.SUBMITTED: frozenset({S.INFORMATION_REQUESTED, S.QUOTED, S.DECLINED}),
    S.INFORMATION_REQUESTED: frozenset({S.SUBMITTED}),
    S.QUOTED: frozenset({S.APPROVED, S.DECLINED, S.UNDER_DISCUSSION, S.EXPIRED}),
    S.UNDER_DISCUSSION: frozenset({S.QUOTED}),
    S.EXPIRED: frozenset({S.QUOTED}),
    S.APPROVED: frozenset({S.CONVERTED}),
    S.DECLINED: frozenset(),
    S.CONVERTED: frozenset(),
}

INITIAL_STATUS = S.DRAFT
TERMINAL_STATUSES = frozenset(s for s, targets in TRANSITIONS.items() if not targets)

# No new comments once a quote is closed
CLOSED_FOR_MESSAGES = frozenset({S.DECLINED, S.CONVERTED, S.EXPIRED})


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes (e.g. read back from SQLite) as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def allowed_targets(status: QuoteStatus | str) -> frozenset[QuoteStatus]:
    """Statuses reachable in one step from ``status``."""
    return TRANSITIONS.get(QuoteStatus(status), frozenset())


def is_transition_allowed(current: QuoteStatus | str, target: QuoteStatus | str) -> bool:
    """Check the transition table only."""
    return QuoteStatus(target) in allowed_targets(current)


def is_expired(quote, now: datetime) -> bool:
    """Lazily computed expiry: past ``quote_valid_until``. No date means no expiry."""
    if quote.quote_valid_until is None:
        return False
    return as_utc(quote.quote_valid_until) < as_utc(now)


def is_expiring_within(quote, now: datetime, window) -> bool:
    """True when a still-valid quote stops being valid inside ``window`` (a timedelta)."""
    if quote.quote_valid_until is None or is_expired(quote, now):
        return False
    return as_utc(quote.quote_valid_until) <= as_utc(now) + window


def check_approval(quote, now: datetime) -> None:
    """
    Approval precondition: status is Quoted and validity has not lapsed.
    An expired quote fails with QuoteExpired since the remedy is a renewal.
    """
    if quote.status != S.QUOTED:
        raise InvalidTransition(
            f"Cannot approve quote with status '{QuoteStatus(quote.status).value}'. Quote must be Quoted.",
            current_status=QuoteStatus(quote.status).value,
        )
    if is_expired(quote, now):
        raise QuoteExpired(valid_until=as_utc(quote.quote_valid_until).isoformat())


def check_conversion(quote) -> None:
    """Conversion precondition: Approved and never converted before."""
    if quote.converted_to_work_order_id is not None or quote.status == S.CONVERTED:
        raise AlreadyConverted(existing_work_order_id=quote.converted_to_work_order_id)
    if quote.status != S.APPROVED:
        raise InvalidTransition(
            f"Cannot convert quote with status '{QuoteStatus(quote.status).value}'. "
            "Only approved quotes can be converted to work orders.",
            current_status=QuoteStatus(quote.status).value,
        )


def check_transition(quote, target: QuoteStatus | str, now: datetime | None = None) -> QuoteStatus:
    """
    Single gate for every status change.

    The table decides legality; moves into Approved and Converted then run
    their extra preconditions so no caller can bypass them.
    Returns the validated target status.
    """
    target = QuoteStatus(target)
    current = QuoteStatus(quote.status)
    if not is_transition_allowed(current, target):
        raise InvalidTransition(
            f"Invalid status transition from '{current.value}' to '{target.value}'",
            current_status=current.value,
            target_status=target.value,
        )
    if target == S.APPROVED:
        check_approval(quote, now or datetime.now(timezone.utc))
    elif target == S.CONVERTED:
        check_conversion(quote)
    return target
