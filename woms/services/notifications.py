"""Outbound lifecycle notifications.

Delivery (email, SMS, in-app) happens elsewhere; this module only hands a
``NotificationEvent`` to a ``Notifier``. A failing notifier is logged and
ignored so it can never undo a committed transition.
"""

import enum
import logging
from dataclasses import dataclass
from typing import Protocol

logger = logging.getLogger(__name__)


class EventKind(str, enum.Enum):
    SUBMITTED = "submitted"
    INFO_REQUESTED = "info_requested"
    QUOTED = "quoted"
    RENEWED = "renewed"
    UNDER_DISCUSSION = "under_discussion"
    APPROVED = "approved"
    DECLINED = "declined"
    CONVERTED = "converted"
    EXPIRING = "expiring"
    EXPIRED = "expired"


@dataclass(frozen=True)
class NotificationEvent:
    tenant_id: int
    quote_id: int
    event_kind: EventKind


class Notifier(Protocol):
    def send(self, event: NotificationEvent) -> None: ...


class LoggingNotifier:
    """Default notifier: writes the event to the log for downstream pickup."""

    def send(self, event: NotificationEvent) -> None:
        logger.info(
            f"Quote notification: {event.event_kind.value}",
            extra={
                "structured": {
                    "tenant_id": event.tenant_id,
                    "quote_id": event.quote_id,
                    "event_kind": event.event_kind.value,
                }
            },
        )


def dispatch(notifier: Notifier, event: NotificationEvent) -> None:
    """Send one event; failures are logged, never raised."""
    try:
        notifier.send(event)
    except Exception:
        logger.exception(
            "Notification %s for quote %s failed", event.event_kind.value, event.quote_id
        )
