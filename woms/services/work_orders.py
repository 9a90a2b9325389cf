"""Scoped work-order reads and trusted webhook ingestion."""

import logging
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from woms.auth.context import AuthorizationContext
from woms.auth.scope import ensure_access, list_filter
from woms.errors import NotFound
from woms.models import TenantStatus, WorkOrder
from woms.storage import repositories as repo

logger = logging.getLogger(__name__)

# A client owns the work orders authorized under its email
OWNER_ATTR = "authorized_email"


async def get_work_order(db: AsyncSession, ctx: AuthorizationContext, work_order_id: int) -> WorkOrder:
    work_order = await repo.find_work_order(db, work_order_id)
    return ensure_access(ctx, work_order, owner_attr=OWNER_ATTR)


async def list_work_orders(
    db: AsyncSession, ctx: AuthorizationContext, page: int = 1, limit: int = 20
) -> tuple[list[WorkOrder], int]:
    return await repo.list_work_orders(db, list_filter(ctx, has_owner=True), page=page, limit=limit)


async def ingest_work_order(db: AsyncSession, tenant_code: str, data: dict[str, Any]) -> WorkOrder:
    """
    Create a work order pushed by the trusted upstream system. The tenant is
    resolved from its code; a duplicate job number in that tenant raises
    AlreadyExists.
    """
    tenant = await repo.find_tenant_by_code(db, tenant_code)
    if tenant is None or tenant.status == TenantStatus.ARCHIVED:
        raise NotFound(f"Tenant '{tenant_code}' not found")
    fields = {k: v for k, v in data.items() if k != "tenant_id"}
    fields["tenant_id"] = tenant.id
    fields.setdefault("work_order_type", "email")
    work_order = await repo.create_work_order(db, **fields)
    logger.info("Webhook work order %s ingested for tenant %s", work_order.job_no, tenant.code)
    return work_order
