"""
Approval Workflow: two-phase review for privileged inventory adjustments.

STATE MACHINE:
    PENDING -> APPROVED   (appends one ADJUSTMENT for requested_quantity)
    PENDING -> REJECTED   (appends nothing; notes required)
Reviewed requests are terminal; a second review is a ConflictError.
"""

from __future__ import annotations

from ..extensions import db
from ..errors import ConflictError, NotFoundError, ValidationError, require_fields
from ..models import ApprovalRequest, Product, Store
from ..models.inventory import (
    APPROVAL_APPROVED,
    APPROVAL_PENDING,
    APPROVAL_REJECTED,
    EVENT_ADJUSTMENT,
    REFERENCE_APPROVAL_REQUEST,
    REQUEST_TYPE_INVENTORY_ADJUSTMENT,
)
from ..time_utils import utcnow
from ..validation import coerce_id, coerce_int, optional_str
from .audit_service import ACTION_APPROVAL_APPROVED, ACTION_APPROVAL_REJECTED, append_audit_log
from .concurrency import lock_for_update, run_in_transaction
from .ledger_service import append_stock_event
from .scope_service import AccessScope


def create_request(data: dict, scope: AccessScope) -> ApprovalRequest:
    """Open a PENDING adjustment request for a store the caller can act on."""
    require_fields(data, ["store_id", "product_id", "requested_quantity", "reason"])

    store_id = coerce_id(data["store_id"], "store_id")
    scope.require_store(store_id)
    product_id = coerce_id(data["product_id"], "product_id")
    requested_quantity = coerce_int(data["requested_quantity"], "requested_quantity")
    if requested_quantity == 0:
        raise ValidationError("requested_quantity must be non-zero")
    reason = optional_str(data["reason"], "reason", max_len=2000)
    if not reason:
        raise ValidationError.missing(["reason"])
    request_type = optional_str(data.get("request_type"), "request_type", max_len=32) or REQUEST_TYPE_INVENTORY_ADJUSTMENT

    def _op() -> ApprovalRequest:
        if not db.session.get(Store, store_id):
            raise NotFoundError("Store not found")
        if not db.session.get(Product, product_id):
            raise NotFoundError("Product not found")

        request = ApprovalRequest(
            request_type=request_type,
            store_id=store_id,
            product_id=product_id,
            requested_quantity=requested_quantity,
            reason=reason,
            status=APPROVAL_PENDING,
            requested_by=scope.user_id,
            requested_at=utcnow(),
        )
        db.session.add(request)
        db.session.flush()
        return request

    return run_in_transaction(_op)


def _load_pending(request_id: str) -> ApprovalRequest:
    request = lock_for_update(db.session.query(ApprovalRequest).filter_by(id=request_id)).first()
    if not request:
        raise NotFoundError("Request not found")
    if request.status != APPROVAL_PENDING:
        raise ConflictError("Request already reviewed", details={"status": request.status})
    return request


def approve_request(request_id: str, notes: str | None, scope: AccessScope) -> ApprovalRequest:
    scope.require_owner("Reviewing approval requests")
    notes = optional_str(notes, "notes", max_len=2000)

    def _op() -> ApprovalRequest:
        request = _load_pending(request_id)

        now = utcnow()
        request.status = APPROVAL_APPROVED
        request.reviewed_by = scope.user_id
        request.reviewed_at = now
        request.review_notes = notes
        db.session.flush()

        append_stock_event(
            event_type=EVENT_ADJUSTMENT,
            product_id=request.product_id,
            store_id=request.store_id,
            quantity=request.requested_quantity,
            reference_type=REFERENCE_APPROVAL_REQUEST,
            reference_id=request.id,
            notes=request.reason,
            created_by=scope.user_id,
            created_at=now,
        )
        append_audit_log(
            user_id=scope.user_id,
            action=ACTION_APPROVAL_APPROVED,
            entity_type="APPROVAL_REQUEST",
            entity_id=request.id,
            reason=notes,
        )
        return request

    return run_in_transaction(_op)


def reject_request(request_id: str, notes: str | None, scope: AccessScope) -> ApprovalRequest:
    scope.require_owner("Reviewing approval requests")
    notes = optional_str(notes, "notes", max_len=2000)
    if not notes:
        raise ValidationError("Rejection notes required", details={"missing_fields": ["notes"]})

    def _op() -> ApprovalRequest:
        request = _load_pending(request_id)

        request.status = APPROVAL_REJECTED
        request.reviewed_by = scope.user_id
        request.reviewed_at = utcnow()
        request.review_notes = notes
        db.session.flush()

        append_audit_log(
            user_id=scope.user_id,
            action=ACTION_APPROVAL_REJECTED,
            entity_type="APPROVAL_REQUEST",
            entity_id=request.id,
            reason=notes,
        )
        return request

    return run_in_transaction(_op)


def list_requests(scope: AccessScope, status: str | None = None, store_id: str | None = None) -> list[ApprovalRequest]:
    q = scope.filter_by_store(db.session.query(ApprovalRequest), ApprovalRequest.store_id)
    if store_id and scope.is_unrestricted:
        q = q.filter(ApprovalRequest.store_id == store_id)
    if status:
        q = q.filter(ApprovalRequest.status == status.upper())
    return q.order_by(ApprovalRequest.requested_at.desc()).all()
