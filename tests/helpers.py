"""Plain test helpers: fixed clock, recording notifier, context builders, payloads."""

import functools
from datetime import datetime, timedelta, timezone

from woms.auth.context import AuthorizationContext, Principal, home_context
from woms.auth.credentials import get_password_hash
from woms.models import User

NOW = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)
PASSWORD = "correct horse battery"


@functools.cache
def password_hash() -> str:
    return get_password_hash(PASSWORD)


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime = NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class RecordingNotifier:
    def __init__(self):
        self.events = []

    def send(self, event) -> None:
        self.events.append(event)

    @property
    def kinds(self) -> list[str]:
        return [e.event_kind.value for e in self.events]


def principal_for(user: User) -> Principal:
    return Principal(
        id=user.id,
        role=user.role,
        home_tenant_id=user.tenant_id,
        active=user.is_active,
        email=user.email,
    )


def ctx_for(user: User, switch_to: int | None = None) -> AuthorizationContext:
    """Authorization context for ``user``, optionally already switched to another tenant."""
    principal = principal_for(user)
    if switch_to is None:
        return home_context(principal)
    return AuthorizationContext(
        principal=principal,
        effective_tenant_id=switch_to,
        context_switched=True,
        original_tenant_id=principal.home_tenant_id,
        is_cross_tenant_role=principal.is_cross_tenant_role,
    )


def quote_data(**overrides) -> dict:
    data = {
        "property_name": "Harbour View Apartments",
        "property_address": "12 Wharf Road, Sydney",
        "title": "Replace roof gutters",
        "description": "Gutters on the north side are rusted through and leaking.",
        "contact_person": "Dana Client",
        "contact_email": "client@acme.example.com",
        "is_urgent": False,
    }
    data.update(overrides)
    return data
