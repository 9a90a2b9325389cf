"""Structured audit logging for tenant context switches."""

import logging
from datetime import datetime, timezone
from typing import Any

logger = logging.getLogger(__name__)


class AuditLogger:
    """Fire-and-forget audit sink. Never raises into the request."""

    def __init__(self, sink: logging.Logger | None = None) -> None:
        self._sink = sink or logger

    def log_context_switch(
        self,
        principal_id: int,
        original_tenant_id: int,
        target_tenant_id: int,
    ) -> None:
        """Record that a cross-tenant principal acted inside another tenant."""
        log_data: dict[str, Any] = {
            "event": "context_switch",
            "principal_id": principal_id,
            "original_tenant_id": original_tenant_id,
            "target_tenant_id": target_tenant_id,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        try:
            self._sink.info(
                f"Context switch: user {principal_id} tenant {original_tenant_id} -> {target_tenant_id}",
                extra={"structured": log_data},
            )
        except Exception:
            logger.exception("Audit sink failed for context switch of user %s", principal_id)


audit_logger = AuditLogger()
