# Overview: Append-only audit trail for privileged actions.

from __future__ import annotations

from ..extensions import db
from ..models import AuditLog


ACTION_SALE_VOID = "SALE_VOID"
ACTION_APPROVAL_APPROVED = "APPROVAL_APPROVED"
ACTION_APPROVAL_REJECTED = "APPROVAL_REJECTED"
ACTION_STOCK_ADJUSTMENT = "STOCK_ADJUSTMENT"


def append_audit_log(
    *,
    user_id: str | None,
    action: str,
    entity_type: str,
    entity_id: str,
    reason: str | None = None,
) -> AuditLog:
    """Written inside the caller's transaction; commits with it or not at all."""
    entry = AuditLog(
        user_id=user_id,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        reason=reason,
    )
    db.session.add(entry)
    db.session.flush()
    return entry
