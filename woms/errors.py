"""Typed outcomes of the authorization and quote lifecycle core.

Every error carries a stable ``code`` and a default HTTP status so the API
boundary can render it without knowing the individual cases. ``Forbidden``
and ``NotFound`` stay distinct here; whether a cross-tenant ``Forbidden`` is
revealed as 403 or remapped to 404 is decided in ``woms.main``.
"""

from typing import Any


class WomsError(Exception):
    """Base class for expected, caller-visible failures."""

    code = "error"
    http_status = 500
    retryable = False
    default_message = "Unexpected error"

    def __init__(self, message: str | None = None, **payload: Any) -> None:
        self.message = message or self.default_message
        self.payload = payload
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"error": self.code, "detail": self.message}
        body.update(self.payload)
        return body


class Unauthenticated(WomsError):
    code = "unauthenticated"
    http_status = 401
    default_message = "Missing, invalid or expired credential"


class AccountDisabled(WomsError):
    code = "account_disabled"
    http_status = 403
    default_message = "Your account is inactive. Please contact an administrator."


class InvalidContextFormat(WomsError):
    code = "invalid_context_format"
    http_status = 400
    default_message = "Tenant context must be a positive integer tenant id"


class InvalidContext(WomsError):
    code = "invalid_context"
    http_status = 400
    default_message = "Tenant context refers to a tenant that does not exist"


class ForbiddenContextSwitch(WomsError):
    code = "forbidden_context_switch"
    http_status = 403
    default_message = "Only staff and platform administrators may switch tenant context"


class Forbidden(WomsError):
    code = "forbidden"
    http_status = 403
    default_message = "You do not have permission to access this resource"


class OutOfScope(Forbidden):
    """Denied on a specific resource outside the caller's tenant or ownership.

    The API boundary may render this as 404 so the resource's existence is
    not confirmed across tenants.
    """


class NotFound(WomsError):
    code = "not_found"
    http_status = 404
    default_message = "Resource not found"


class ValidationFailed(WomsError):
    code = "validation_failed"
    http_status = 422
    default_message = "Request failed validation"


class InvalidTransition(WomsError):
    code = "invalid_transition"
    http_status = 409
    default_message = "Transition not allowed from the current status"


class QuoteExpired(WomsError):
    code = "quote_expired"
    http_status = 409
    default_message = "Quote has expired and cannot be approved. Please request a renewal."


class AlreadyConverted(WomsError):
    code = "already_converted"
    http_status = 409
    default_message = "Quote has already been converted to a work order"


class Conflict(WomsError):
    code = "conflict"
    http_status = 409
    retryable = True
    default_message = "The resource was modified concurrently"


class AlreadyExists(WomsError):
    code = "already_exists"
    http_status = 409
    default_message = "A resource with the same unique key already exists"
