"""
Purchase Order Store

Loads and locks the purchase order aggregate, owns order numbering and
monetary totals, and applies the order lifecycle steps that happen outside
receiving (placement, arrival, cancellation).

All mutations to one order go through ``order_transaction``, which
serializes them with a per-order lock plus ``SELECT ... FOR UPDATE`` and
commits or rolls back the whole unit of work. Different orders never share
a lock.
"""
import threading
from contextlib import contextmanager
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Iterator, Optional

from sqlalchemy import desc
from sqlalchemy.orm import Session

from factoryops.core.config import settings
from factoryops.core.status_config import (
    CANCELLABLE_STATUSES,
    PurchaseOrderStatus,
    validate_purchase_order_transition,
)
from factoryops.exceptions import (
    ConcurrencyError,
    DuplicateError,
    InvalidStateError,
    NotFoundError,
    PostingError,
    ValidationError,
)
from factoryops.logging_config import get_logger
from factoryops.models.goods_receipt import GoodsReceipt
from factoryops.models.purchase_order import PurchaseOrder, PurchaseOrderLine
from factoryops.schemas.purchasing import PurchaseOrderCreate
from factoryops.schemas.purchasing_event import PurchasingEventType
from factoryops.services.catalog_service import resolve_materials
from factoryops.services.event_service import record_purchasing_event

logger = get_logger(__name__)

CENT = Decimal("0.01")


# ============================================================================
# Loading and locking
# ============================================================================

class _OrderLockEntry:
    """An order's lock plus the number of threads holding or waiting on it"""
    __slots__ = ("lock", "users")

    def __init__(self):
        self.lock = threading.RLock()
        self.users = 0


_order_locks: Dict[int, _OrderLockEntry] = {}
_order_locks_guard = threading.Lock()


@contextmanager
def _order_lock(order_id: int, timeout: float = -1) -> Iterator[None]:
    """
    Hold the in-process lock of one order.

    The entry is created on first use and dropped again once no thread holds
    or waits on it, so the registry only grows with concurrent orders.

    Raises:
        ConcurrencyError: lock not acquired within ``timeout`` seconds
    """
    with _order_locks_guard:
        entry = _order_locks.get(order_id)
        if entry is None:
            entry = _OrderLockEntry()
            _order_locks[order_id] = entry
        entry.users += 1

    acquired = False
    try:
        acquired = entry.lock.acquire(timeout=timeout)
        if not acquired:
            logger.warning(
                "Timed out waiting for purchase order lock",
                extra={"order_id": order_id, "timeout_seconds": timeout},
            )
            raise ConcurrencyError(details={"order_id": order_id})
        yield
    finally:
        if acquired:
            entry.lock.release()
        with _order_locks_guard:
            entry.users -= 1
            if entry.users == 0:
                del _order_locks[order_id]


def get_order(db: Session, order_id: int) -> PurchaseOrder:
    """Load an order or raise NotFoundError."""
    order = db.query(PurchaseOrder).filter(PurchaseOrder.id == order_id).first()
    if not order:
        raise NotFoundError("Purchase order", order_id)
    return order


def _get_order_for_update(db: Session, order_id: int) -> PurchaseOrder:
    order = (
        db.query(PurchaseOrder)
        .filter(PurchaseOrder.id == order_id)
        .with_for_update()
        .populate_existing()
        .first()
    )
    if not order:
        raise NotFoundError("Purchase order", order_id)
    return order


@contextmanager
def order_transaction(
    db: Session,
    order_id: int,
    timeout: Optional[float] = None,
) -> Iterator[PurchaseOrder]:
    """
    Unit of work for one mutation of one purchase order.

    Usage:
        with order_transaction(db, po_id) as order:
            create_initial_receipt(db, order, lines=...)

    Commits when the block succeeds. Any error rolls the block back, except
    PostingError: receipts and inspections recorded before the failed stock
    credit are committed, then the error is re-raised so the caller can
    report it and retry the evaluation later.

    Raises:
        ConcurrencyError: another request holds this order's lock longer
            than ORDER_LOCK_TIMEOUT_SECONDS
        NotFoundError: the order does not exist
    """
    wait = settings.ORDER_LOCK_TIMEOUT_SECONDS if timeout is None else timeout
    with _order_lock(order_id, timeout=wait):
        try:
            order = _get_order_for_update(db, order_id)
            yield order
        except PostingError:
            db.commit()
            raise
        except Exception:
            db.rollback()
            raise
        else:
            db.commit()


# ============================================================================
# Numbering and totals
# ============================================================================

def generate_po_number(db: Session) -> str:
    """Generate next PO number (PO-2026-001, PO-2026-002, etc.)"""
    year = datetime.utcnow().year
    pattern = f"PO-{year}-%"
    last = db.query(PurchaseOrder).filter(
        PurchaseOrder.po_number.like(pattern)
    ).order_by(desc(PurchaseOrder.po_number)).first()

    if last:
        try:
            num = int(last.po_number.split("-")[2])
            return f"PO-{year}-{num + 1:03d}"
        except (IndexError, ValueError):
            pass
    return f"PO-{year}-001"


def generate_receipt_number(db: Session) -> str:
    """Generate next goods receipt number (GRN-2026-0001, ...)"""
    year = datetime.utcnow().year
    pattern = f"GRN-{year}-%"
    last = db.query(GoodsReceipt).filter(
        GoodsReceipt.receipt_number.like(pattern)
    ).order_by(desc(GoodsReceipt.receipt_number)).first()

    if last:
        try:
            num = int(last.receipt_number.split("-")[2])
            return f"GRN-{year}-{num + 1:04d}"
        except (IndexError, ValueError):
            pass
    return f"GRN-{year}-0001"


def calculate_totals(order: PurchaseOrder) -> None:
    """
    Recalculate monetary terms from the lines.

    subtotal = sum(qty * unit price); discount applies to the subtotal and
    tax applies after the discount. Amounts are rounded to cents.
    """
    subtotal = Decimal("0")
    for line in order.lines:
        line.line_total = (Decimal(line.quantity_ordered) * Decimal(line.unit_price)).quantize(CENT, ROUND_HALF_UP)
        subtotal += line.line_total

    discount = (subtotal * Decimal(order.discount_percent or 0) / 100).quantize(CENT, ROUND_HALF_UP)
    tax = ((subtotal - discount) * Decimal(order.tax_percent or 0) / 100).quantize(CENT, ROUND_HALF_UP)

    order.subtotal = subtotal
    order.discount_amount = discount
    order.tax_amount = tax
    order.total_amount = subtotal - discount + tax


# ============================================================================
# Status transitions
# ============================================================================

def apply_status_transition(
    db: Session,
    order: PurchaseOrder,
    new_status: PurchaseOrderStatus,
    *,
    description: Optional[str] = None,
    actor: Optional[str] = None,
) -> None:
    """
    Move the order to ``new_status`` after validating the transition, and
    record a status_change event. No-op if the status is unchanged.
    """
    old_status = order.status
    new_value = PurchaseOrderStatus(new_status).value
    if old_status == new_value:
        return

    validate_purchase_order_transition(old_status, new_value)
    order.status = new_value
    order.updated_at = datetime.utcnow()

    record_purchasing_event(
        db=db,
        purchase_order_id=order.id,
        event_type=PurchasingEventType.STATUS_CHANGE.value,
        title=f"Status changed: {old_status} -> {new_value}",
        description=description,
        old_value=old_status,
        new_value=new_value,
        actor=actor,
    )
    logger.info(
        f"PO {order.po_number} status: {old_status} -> {new_value}",
        extra={"po_number": order.po_number, "old_status": old_status, "new_status": new_value},
    )


# ============================================================================
# Lifecycle operations
# ============================================================================

def place_purchase_order(
    db: Session,
    data: PurchaseOrderCreate,
    created_by: Optional[str] = None,
) -> PurchaseOrder:
    """
    Create a purchase order in ``ordered`` status.

    Raises:
        DuplicateError: po_number already used
        ValidationError: no lines, a material listed twice, or an unknown material
    """
    if not data.lines:
        raise ValidationError("Purchase order must have at least one line", field="lines")

    material_ids = [line.material_id for line in data.lines]
    duplicates = sorted({m for m in material_ids if material_ids.count(m) > 1})
    if duplicates:
        raise ValidationError(
            "Each material may appear only once per purchase order",
            field="material_id",
            details={"material_ids": duplicates},
        )

    materials = resolve_materials(db, material_ids)

    if data.po_number:
        exists = db.query(PurchaseOrder.id).filter(PurchaseOrder.po_number == data.po_number).first()
        if exists:
            raise DuplicateError("Purchase order", field="po_number", value=data.po_number)
        po_number = data.po_number
    else:
        po_number = generate_po_number(db)

    order = PurchaseOrder(
        po_number=po_number,
        order_date=data.order_date or datetime.utcnow().date(),
        supplier_ref=data.supplier_ref,
        supplier_name=data.supplier_name,
        status=PurchaseOrderStatus.ORDERED.value,
        tax_percent=data.tax_percent,
        discount_percent=data.discount_percent,
        notes=data.notes,
        created_by=created_by,
    )
    for i, line_data in enumerate(data.lines, start=1):
        material = materials[line_data.material_id]
        order.lines.append(PurchaseOrderLine(
            line_number=i,
            material_id=material.id,
            material_name=material.name,
            quantity_ordered=line_data.quantity_ordered,
            unit=line_data.unit or material.unit,
            unit_price=line_data.unit_price,
        ))
    calculate_totals(order)

    db.add(order)
    db.flush()

    record_purchasing_event(
        db=db,
        purchase_order_id=order.id,
        event_type=PurchasingEventType.CREATED.value,
        title=f"Purchase order {po_number} placed",
        new_value=order.status,
        actor=created_by,
    )

    logger.info(
        f"Created PO {po_number}",
        extra={"po_number": po_number, "line_count": len(order.lines), "total_amount": str(order.total_amount)},
    )
    return order


def mark_arrived(
    db: Session,
    order: PurchaseOrder,
    arrived_at: Optional[datetime] = None,
    actor: Optional[str] = None,
) -> None:
    """Record that the goods physically arrived (ordered -> arrived)."""
    if order.status != PurchaseOrderStatus.ORDERED.value:
        raise InvalidStateError(
            f"Cannot mark purchase order {order.po_number} arrived from '{order.status}'",
            current_state=order.status,
            allowed_states=[PurchaseOrderStatus.ORDERED.value],
        )

    order.arrived_at = arrived_at or datetime.utcnow()
    apply_status_transition(db, order, PurchaseOrderStatus.ARRIVED, actor=actor)
    record_purchasing_event(
        db=db,
        purchase_order_id=order.id,
        event_type=PurchasingEventType.ARRIVED.value,
        title="Goods arrived",
        event_date=order.arrived_at.date(),
        actor=actor,
    )


def cancel_purchase_order(
    db: Session,
    order: PurchaseOrder,
    reason: Optional[str] = None,
    actor: Optional[str] = None,
) -> None:
    """
    Cancel an order before anything has been received.

    Raises:
        InvalidStateError: the order has receipts or is already terminal
    """
    if order.status not in CANCELLABLE_STATUSES or order.receipts:
        raise InvalidStateError(
            f"Cannot cancel purchase order {order.po_number} in '{order.status}' status",
            current_state=order.status,
            allowed_states=sorted(s.value for s in CANCELLABLE_STATUSES),
        )

    apply_status_transition(db, order, PurchaseOrderStatus.CANCELLED, description=reason, actor=actor)
    order.cancelled_at = datetime.utcnow()
    record_purchasing_event(
        db=db,
        purchase_order_id=order.id,
        event_type=PurchasingEventType.CANCELLED.value,
        title="Purchase order cancelled",
        description=reason,
        actor=actor,
    )
    logger.info(f"Cancelled PO {order.po_number}", extra={"po_number": order.po_number})
