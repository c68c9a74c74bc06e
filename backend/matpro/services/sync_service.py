"""
Offline Sync Service: push merge and pull feed.

PUSH
- Records are merged in dependency stages: customers -> sales (+ line
  items) -> stock events -> payments. Later stages reference earlier ones by
  client-assigned id, so a payment can settle a sale pushed in the same batch.
- Each record is merged inside its own SAVEPOINT. A failing record is rolled
  back alone and reported with its id; siblings that succeeded still commit.
- Merges are idempotent on id. Customers upsert (name/phone refreshed);
  everything else is insert-or-ignore: the first writer of an id wins and a
  re-push is a successful no-op. A payment's delta on its sale is applied in
  the same savepoint as the payment insert, so exactly once.

PULL
- Streams: products and customers by updated_at; sales, stock events and
  payments by synced_at. Rows with since < ts <= until are returned, ordered
  by (ts, id) and capped per stream.
- `until` is fixed on the first page. When a stream is truncated the
  response carries has_more and a signed cursor holding each stream's last
  (ts, id); the client continues with it and adopts `timestamp` (== until)
  as its next `since` only once has_more is false.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable

from flask import current_app
from itsdangerous import BadSignature, URLSafeSerializer
from sqlalchemy import and_, or_
from sqlalchemy.exc import DataError, IntegrityError, OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db
from ..errors import AccessDeniedError, ConflictError, NotFoundError, ServiceError, ValidationError, require_fields
from ..models import Customer, Payment, Product, Sale, SaleLineItem, StockEvent, Store
from ..models.inventory import EVENT_ADJUSTMENT, EVENT_TYPES
from ..models.sales import (
    CUSTOMER_REQUIRED_SALE_TYPES,
    PAYMENT_METHOD_CASH,
    PAYMENT_METHODS,
    SALE_STATUS_ACTIVE,
    SALE_STATUS_VOID,
    SALE_STATUSES,
    SALE_TYPES,
)
from ..time_utils import EPOCH, coerce_datetime, parse_iso_datetime, to_utc_z, utcnow
from ..validation import coerce_choice, coerce_id, coerce_int, coerce_money, optional_str
from .concurrency import run_in_transaction, savepoint
from .ledger_service import append_stock_event
from .payment_service import apply_payment_to_sale
from .sales_service import compute_totals, parse_line_items
from .scope_service import AccessScope
from .sequence_service import next_payment_number, next_sale_number


MERGED = "merged"
DUPLICATE = "duplicate"


# =============================================================================
# PUSH
# =============================================================================

@dataclass
class EntityResult:
    success: int = 0
    failed: int = 0
    duplicates: int = 0
    errors: list = field(default_factory=list)

    def record_success(self, outcome: str) -> None:
        self.success += 1
        if outcome == DUPLICATE:
            self.duplicates += 1

    def record_failure(self, record_id, message: str, extra: dict | None = None) -> None:
        self.failed += 1
        error = {"id": record_id, "error": message}
        if extra:
            error.update(extra)
        self.errors.append(error)

    def to_dict(self) -> dict:
        return {
            "success": self.success,
            "failed": self.failed,
            "duplicates": self.duplicates,
            "errors": self.errors,
        }


def _client_time(record: dict, key: str = "created_at") -> datetime | None:
    try:
        return coerce_datetime(record.get(key))
    except ValueError:
        raise ValidationError(f"{key} must be an ISO-8601 timestamp")


def _record_id(record: dict) -> str:
    return coerce_id(record.get("id"), "id")


def _merge_customer(record: dict, scope: AccessScope) -> str:
    require_fields(record, ["id", "name"])
    customer_id = _record_id(record)
    name = optional_str(record["name"], "name", max_len=200)
    if not name:
        raise ValidationError.missing(["name"])
    phone = optional_str(record.get("phone"), "phone", max_len=32)

    now = utcnow()
    customer = db.session.get(Customer, customer_id)
    if customer:
        customer.name = name
        customer.phone = phone
        customer.updated_at = now
        db.session.flush()
        return MERGED

    db.session.add(Customer(
        id=customer_id,
        name=name,
        phone=phone,
        whatsapp=optional_str(record.get("whatsapp"), "whatsapp", max_len=32),
        address=optional_str(record.get("address"), "address"),
        notes=optional_str(record.get("notes"), "notes", max_len=2000),
        created_at=_client_time(record) or now,
        updated_at=now,
    ))
    db.session.flush()
    return MERGED


def _check_client_total(record: dict, key: str, expected) -> None:
    """Client-computed totals are accepted only if they agree with the lines."""
    if record.get(key) is None:
        return
    if coerce_money(record[key], key) != expected:
        raise ValidationError(
            f"{key} does not match line items",
            details={key: str(record[key]), "expected": str(expected)},
        )


def _merge_sale(record: dict, scope: AccessScope) -> str:
    require_fields(record, ["id", "store_id", "sale_type", "line_items"])
    sale_id = _record_id(record)
    store_id = coerce_id(record["store_id"], "store_id")
    scope.require_store(store_id)

    if db.session.get(Sale, sale_id):
        return DUPLICATE

    sale_type = coerce_choice(record["sale_type"], "sale_type", SALE_TYPES)
    customer_id = record.get("customer_id") or None
    if sale_type in CUSTOMER_REQUIRED_SALE_TYPES and not customer_id:
        raise ValidationError(
            "Customer required for partial/credit sales",
            details={"missing_fields": ["customer_id"]},
        )
    if customer_id is not None:
        customer_id = coerce_id(customer_id, "customer_id")
        if not db.session.get(Customer, customer_id):
            raise NotFoundError(f"Customer {customer_id} not found")
    if not db.session.get(Store, store_id):
        raise NotFoundError(f"Store {store_id} not found")

    items = parse_line_items(record["line_items"])
    totals = compute_totals(
        items,
        discount_amount=coerce_money(record.get("discount_amount", 0), "discount_amount"),
        amount_paid=coerce_money(record.get("amount_paid", 0), "amount_paid"),
    )
    for key in ("subtotal", "total_amount", "amount_due"):
        _check_client_total(record, key, totals[key])

    status = coerce_choice(record.get("status") or SALE_STATUS_ACTIVE, "status", SALE_STATUSES)
    if status == SALE_STATUS_VOID:
        scope.require_owner("Voiding a sale")

    now = utcnow()
    created_at = _client_time(record) or now

    sale_number = optional_str(record.get("sale_number"), "sale_number", max_len=32)
    if sale_number:
        if db.session.query(Sale.id).filter(Sale.sale_number == sale_number).first():
            raise ConflictError(f"sale_number {sale_number} already in use")
    else:
        sale_number = next_sale_number(created_at.date())

    sale = Sale(
        id=sale_id,
        sale_number=sale_number,
        store_id=store_id,
        customer_id=customer_id,
        sale_type=sale_type,
        status=status,
        created_by=scope.user_id,
        created_at=created_at,
        synced_at=now,
        **totals,
    )
    if status == SALE_STATUS_VOID:
        sale.void_reason = optional_str(record.get("void_reason"), "void_reason")
        sale.voided_at = _client_time(record, "voided_at") or now
        sale.voided_by = scope.user_id
    db.session.add(sale)
    db.session.flush()

    for index, item in enumerate(items):
        line_id = coerce_id(item["id"], f"line_items[{index}].id") if item["id"] is not None else None
        if line_id and db.session.get(SaleLineItem, line_id):
            raise ConflictError(f"Line item {line_id} already belongs to another sale")
        if not db.session.get(Product, item["product_id"]):
            raise NotFoundError(f"Product {item['product_id']} not found")
        line = SaleLineItem(
            sale_id=sale.id,
            product_id=item["product_id"],
            quantity=item["quantity"],
            unit_price=item["unit_price"],
            line_total=item["line_total"],
            created_at=created_at,
        )
        if line_id:
            line.id = line_id
        db.session.add(line)

    db.session.flush()
    return MERGED


def _merge_stock_event(record: dict, scope: AccessScope) -> str:
    require_fields(record, ["id", "event_type", "product_id", "store_id", "quantity"])
    event_id = _record_id(record)
    store_id = coerce_id(record["store_id"], "store_id")
    scope.require_store(store_id)

    event_type = coerce_choice(record["event_type"], "event_type", EVENT_TYPES)
    if event_type == EVENT_ADJUSTMENT and not scope.is_unrestricted:
        raise AccessDeniedError("Adjustments require owner approval. Submit approval request instead.")

    if db.session.get(StockEvent, event_id):
        return DUPLICATE

    append_stock_event(
        event_id=event_id,
        event_type=event_type,
        product_id=coerce_id(record["product_id"], "product_id"),
        store_id=store_id,
        quantity=coerce_int(record["quantity"], "quantity"),
        reference_type=optional_str(record.get("reference_type"), "reference_type", max_len=32),
        reference_id=optional_str(record.get("reference_id"), "reference_id", max_len=64),
        notes=optional_str(record.get("notes"), "notes", max_len=2000),
        created_by=scope.user_id,
        created_at=_client_time(record),
    )
    return MERGED


def _merge_payment(record: dict, scope: AccessScope) -> str:
    require_fields(record, ["id", "customer_id", "amount"])
    payment_id = _record_id(record)
    customer_id = coerce_id(record["customer_id"], "customer_id")
    amount = coerce_money(record["amount"], "amount")
    if amount <= 0:
        raise ValidationError("amount must be positive")
    sale_id = record.get("sale_id") or None

    sale = None
    if sale_id is not None:
        sale_id = coerce_id(sale_id, "sale_id")
        sale = db.session.get(Sale, sale_id)
        if not sale:
            raise NotFoundError(f"Sale {sale_id} not found")
        scope.require_store(sale.store_id)

    if db.session.get(Payment, payment_id):
        return DUPLICATE

    if not db.session.get(Customer, customer_id):
        raise NotFoundError(f"Customer {customer_id} not found")
    if sale is not None and sale.customer_id and sale.customer_id != customer_id:
        raise ValidationError("Payment customer does not match the sale's customer")

    now = utcnow()
    created_at = _client_time(record) or now

    payment_number = optional_str(record.get("payment_number"), "payment_number", max_len=32)
    if payment_number:
        if db.session.query(Payment.id).filter(Payment.payment_number == payment_number).first():
            raise ConflictError(f"payment_number {payment_number} already in use")
    else:
        payment_number = next_payment_number(created_at.date())

    db.session.add(Payment(
        id=payment_id,
        payment_number=payment_number,
        customer_id=customer_id,
        sale_id=sale_id,
        amount=amount,
        payment_method=coerce_choice(record.get("payment_method") or PAYMENT_METHOD_CASH, "payment_method", PAYMENT_METHODS),
        reference=optional_str(record.get("reference"), "reference", max_len=120),
        notes=optional_str(record.get("notes"), "notes", max_len=2000),
        created_by=scope.user_id,
        created_at=created_at,
        synced_at=now,
    ))
    db.session.flush()

    if sale is not None:
        apply_payment_to_sale(sale.id, amount)

    return MERGED


@dataclass(frozen=True)
class PushStage:
    name: str
    model: type
    merge: Callable[[dict, AccessScope], str]
    # Extra fields echoed back in error entries
    echo: tuple = ()


# Later stages reference earlier ones by id
PUSH_STAGES = (
    PushStage("customers", Customer, _merge_customer),
    PushStage("sales", Sale, _merge_sale, echo=("sale_number",)),
    PushStage("stock_events", StockEvent, _merge_stock_event),
    PushStage("payments", Payment, _merge_payment, echo=("payment_number",)),
)


def _merge_one(stage: PushStage, record, scope: AccessScope, result: EntityResult) -> None:
    record_id = record.get("id") if isinstance(record, dict) else None
    extra = {k: record.get(k) for k in stage.echo if isinstance(record, dict) and record.get(k)}
    try:
        if not isinstance(record, dict):
            raise ValidationError("Record must be an object")
        with savepoint():
            outcome = stage.merge(record, scope)
        result.record_success(outcome)
    except ServiceError as exc:
        current_app.logger.warning("Sync push: %s %s rejected: %s", stage.name, record_id, exc.message)
        result.record_failure(record_id, exc.message, extra)
    except (IntegrityError, DataError):
        # Lost a race with a concurrent push of the same id
        if record_id and db.session.get(stage.model, str(record_id)):
            result.record_success(DUPLICATE)
            return
        current_app.logger.warning("Sync push: %s %s violates a constraint", stage.name, record_id, exc_info=True)
        result.record_failure(record_id, "Record conflicts with existing data", extra)
    except (OperationalError, StaleDataError):
        # Retried by run_in_transaction for the whole batch
        raise
    except Exception:
        # The savepoint has already been rolled back; only this record is lost
        current_app.logger.exception("Sync push: %s %s could not be stored", stage.name, record_id)
        result.record_failure(record_id, "Record could not be stored", extra)


def push_batch(payload: dict, scope: AccessScope) -> dict:
    """
    Merge a batch of offline records. Returns per-entity results and the
    server timestamp.
    """
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object")

    total = 0
    for stage in PUSH_STAGES:
        records = payload.get(stage.name)
        if records is not None and not isinstance(records, list):
            raise ValidationError(f"{stage.name} must be a list")
        total += len(records or [])

    limit = current_app.config.get("SYNC_PUSH_MAX_RECORDS", 5000)
    if total > limit:
        raise ValidationError(f"Batch too large: {total} records (max {limit})")

    def _op() -> dict:
        results = {stage.name: EntityResult() for stage in PUSH_STAGES}
        for stage in PUSH_STAGES:
            for record in payload.get(stage.name) or []:
                _merge_one(stage, record, scope, results[stage.name])
        return results

    results = run_in_transaction(_op)

    summary = {name: r.to_dict() for name, r in results.items()}
    current_app.logger.info(
        "Sync push by %s: %s",
        scope.user_id,
        ", ".join(f"{name} {r['success']} ok/{r['failed']} failed" for name, r in summary.items()),
    )
    return {
        "message": "Sync completed",
        "results": summary,
        "timestamp": to_utc_z(utcnow()),
    }


# =============================================================================
# PULL
# =============================================================================

@dataclass(frozen=True)
class PullStream:
    name: str
    model: type
    ts_attr: str

    @property
    def ts_column(self):
        return getattr(self.model, self.ts_attr)


PULL_STREAMS = (
    PullStream("products", Product, "updated_at"),
    PullStream("sales", Sale, "synced_at"),
    PullStream("stock_events", StockEvent, "synced_at"),
    PullStream("customers", Customer, "updated_at"),
    PullStream("payments", Payment, "synced_at"),
)

CURSOR_SALT = "sync-pull-cursor"


def _serializer() -> URLSafeSerializer:
    return URLSafeSerializer(current_app.config["SECRET_KEY"], salt=CURSOR_SALT)


def encode_cursor(state: dict) -> str:
    return _serializer().dumps(state)


def decode_cursor(token: str) -> dict:
    try:
        state = _serializer().loads(token)
    except BadSignature:
        raise ValidationError("Invalid sync cursor")
    if not isinstance(state, dict) or "until" not in state or "since" not in state:
        raise ValidationError("Invalid sync cursor")
    return state


def _scoped(stream: PullStream, query, scope: AccessScope):
    if stream.model in (Sale, StockEvent):
        return scope.filter_by_store(query, stream.model.store_id)
    if stream.model is Payment and not scope.is_unrestricted:
        # Standalone payments are account-level, like customers
        return query.outerjoin(Sale, Payment.sale_id == Sale.id).filter(
            or_(Payment.sale_id.is_(None), Sale.store_id == scope.store_id)
        )
    return query


def _page(stream: PullStream, scope: AccessScope, since: datetime, until: datetime, position, page_size: int):
    ts = stream.ts_column
    q = db.session.query(stream.model).filter(ts > since, ts <= until)
    if position:
        last_ts, last_id = parse_iso_datetime(position[0]), position[1]
        q = q.filter(or_(ts > last_ts, and_(ts == last_ts, stream.model.id > last_id)))
    q = _scoped(stream, q, scope)
    rows = q.order_by(ts, stream.model.id).limit(page_size + 1).all()
    return rows[:page_size], len(rows) > page_size


def pull_changes(
    scope: AccessScope,
    since: str | None = None,
    cursor: str | None = None,
    page_size: int | None = None,
) -> dict:
    """Everything changed after `since` that the scope may see, one page per stream."""
    page_size = page_size or current_app.config.get("SYNC_PULL_PAGE_SIZE", 100)

    if cursor:
        state = decode_cursor(cursor)
        since_dt = parse_iso_datetime(state["since"])
        until_dt = parse_iso_datetime(state["until"])
        positions = dict(state.get("positions") or {})
        exhausted = set(state.get("exhausted") or [])
    else:
        try:
            since_dt = parse_iso_datetime(since) or EPOCH
        except ValueError:
            raise ValidationError("since must be an ISO-8601 timestamp")
        until_dt = utcnow()
        positions = {}
        exhausted = set()

    response = {}
    for stream in PULL_STREAMS:
        if stream.name in exhausted:
            response[stream.name] = []
            continue

        rows, more = _page(stream, scope, since_dt, until_dt, positions.get(stream.name), page_size)
        if rows:
            last = rows[-1]
            positions[stream.name] = [to_utc_z(getattr(last, stream.ts_attr)), last.id]
        if not more:
            exhausted.add(stream.name)

        if stream.model is Product:
            response[stream.name] = [p.to_dict(include_cost=scope.is_unrestricted) for p in rows]
        else:
            response[stream.name] = [row.to_dict() for row in rows]

    sale_ids = [s["id"] for s in response["sales"]]
    line_items = []
    if sale_ids:
        line_items = (
            db.session.query(SaleLineItem)
            .filter(SaleLineItem.sale_id.in_(sale_ids))
            .order_by(SaleLineItem.sale_id, SaleLineItem.created_at, SaleLineItem.id)
            .all()
        )

    has_more = len(exhausted) < len(PULL_STREAMS)
    next_cursor = None
    if has_more:
        next_cursor = encode_cursor({
            "since": to_utc_z(since_dt),
            "until": to_utc_z(until_dt),
            "positions": positions,
            "exhausted": sorted(exhausted),
        })

    return {
        "products": response["products"],
        "sales": response["sales"],
        "sale_line_items": [li.to_dict() for li in line_items],
        "stock_events": response["stock_events"],
        "customers": response["customers"],
        "payments": response["payments"],
        "timestamp": to_utc_z(until_dt),
        "has_more": has_more,
        "next_cursor": next_cursor,
    }
