"""Database models."""

from woms.models.tenant import Tenant, TenantStatus
from woms.models.user import CROSS_TENANT_ROLES, Role, User
from woms.models.quote import Quote, QuoteMessage, QuoteNumberSequence, QuoteStatus
from woms.models.work_order import WorkOrder

__all__ = [
    "Tenant",
    "TenantStatus",
    "User",
    "Role",
    "CROSS_TENANT_ROLES",
    "Quote",
    "QuoteMessage",
    "QuoteNumberSequence",
    "QuoteStatus",
    "WorkOrder",
]
