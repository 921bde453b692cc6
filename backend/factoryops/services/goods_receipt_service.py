"""
Goods Receipt Service

Creates goods receipt notes against a purchase order:
- initial receipts: one or more materials from the order, as delivered
- replacement receipts: one material, delivered to make good units that
  failed inspection on an earlier receipt

Every check runs before anything is added to the session, so a rejected
receipt leaves the order untouched. The caller owns the transaction (see
purchase_order_store.order_transaction).
"""
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional, Sequence

from sqlalchemy.orm import Session

from factoryops.core.status_config import (
    RECEIVABLE_STATUSES,
    PurchaseOrderStatus,
    QCStatus,
    ReceiptKind,
)
from factoryops.exceptions import DuplicateError, InvalidStateError, ValidationError
from factoryops.logging_config import get_logger
from factoryops.models.goods_receipt import GoodsReceipt, GoodsReceiptLine
from factoryops.models.purchase_order import PurchaseOrder
from factoryops.schemas.purchasing import ReceiptLineCreate
from factoryops.schemas.purchasing_event import PurchasingEventType
from factoryops.services.catalog_service import resolve_materials
from factoryops.services.completion import EvaluationResult, evaluate_and_maybe_complete
from factoryops.services.event_service import record_purchasing_event
from factoryops.services.inventory_poster import InventoryPoster
from factoryops.services.pending_quantities import compute_pending_quantities
from factoryops.services.purchase_order_store import apply_status_transition, generate_receipt_number

logger = get_logger(__name__)


@dataclass
class ReceiptResult:
    """A newly created receipt plus the order's re-evaluated state"""
    receipt: GoodsReceipt
    evaluation: EvaluationResult
    warnings: List[str] = field(default_factory=list)


# ============================================================================
# Shared checks
# ============================================================================

def _ensure_receivable(order: PurchaseOrder) -> None:
    if order.status not in RECEIVABLE_STATUSES:
        raise InvalidStateError(
            f"Purchase order {order.po_number} cannot accept receipts in '{order.status}' status",
            current_state=order.status,
            allowed_states=sorted(s.value for s in RECEIVABLE_STATUSES),
        )


def _resolve_receipt_number(db: Session, receipt_number: Optional[str]) -> str:
    if not receipt_number:
        return generate_receipt_number(db)
    exists = db.query(GoodsReceipt.id).filter(GoodsReceipt.receipt_number == receipt_number).first()
    if exists:
        raise DuplicateError("Goods receipt", field="receipt_number", value=receipt_number)
    return receipt_number


def _advance_to_grn_verified(db: Session, order: PurchaseOrder, actor: Optional[str]) -> None:
    """The first receipt verifies arrival; receiving an ordered PO implies it arrived."""
    if order.status == PurchaseOrderStatus.ORDERED.value:
        order.arrived_at = order.arrived_at or datetime.utcnow()
        apply_status_transition(
            db, order, PurchaseOrderStatus.ARRIVED,
            description="Arrival implied by goods receipt", actor=actor,
        )
    if order.status == PurchaseOrderStatus.ARRIVED.value:
        apply_status_transition(db, order, PurchaseOrderStatus.GRN_VERIFIED, actor=actor)


# ============================================================================
# Initial receipts
# ============================================================================

def create_initial_receipt(
    db: Session,
    order: PurchaseOrder,
    lines: Sequence[ReceiptLineCreate],
    receipt_number: Optional[str] = None,
    receipt_date: Optional[date] = None,
    remarks: Optional[str] = None,
    created_by: Optional[str] = None,
    poster: Optional[InventoryPoster] = None,
) -> ReceiptResult:
    """
    Record a delivery against the order.

    Lines with a received quantity of 0 are accepted in the request but not
    stored; at least one line must carry a positive quantity. New lines start
    with defective 0, accepted = received, and QC pending.

    Raises:
        InvalidStateError: order is completed or cancelled
        ValidationError: empty receipt, negative quantity, material listed
            twice, or a material that is not on the order / not in the catalog
        DuplicateError: receipt_number already used
    """
    _ensure_receivable(order)

    if not lines:
        raise ValidationError("Goods receipt must have at least one line", field="lines")

    seen = set()
    for line in lines:
        if line.received_qty is None or line.received_qty < 0:
            raise ValidationError(
                "Received quantity cannot be negative",
                field="received_qty",
                value=line.received_qty,
                details={"material_id": line.material_id},
            )
        if line.material_id in seen:
            raise ValidationError(
                f"Material {line.material_id} appears more than once in the receipt",
                field="material_id",
                value=line.material_id,
            )
        seen.add(line.material_id)

    not_on_order = sorted(m for m in seen if order.line_for_material(m) is None)
    if not_on_order:
        raise ValidationError(
            f"Material(s) not on purchase order {order.po_number}: "
            f"{', '.join(str(m) for m in not_on_order)}",
            field="material_id",
            details={"material_ids": not_on_order},
        )
    resolve_materials(db, seen)

    delivered = [line for line in lines if line.received_qty > 0]
    if not delivered:
        raise ValidationError("Goods receipt has no received quantity", field="received_qty")

    number = _resolve_receipt_number(db, receipt_number)

    # All checks passed - mutate
    previous_status = order.status
    _advance_to_grn_verified(db, order, created_by)

    receipt = GoodsReceipt(
        receipt_number=number,
        receipt_date=receipt_date or date.today(),
        kind=ReceiptKind.INITIAL.value,
        remarks=remarks,
        created_by=created_by,
    )
    for line in delivered:
        ordered_line = order.line_for_material(line.material_id)
        receipt.lines.append(GoodsReceiptLine(
            material_id=line.material_id,
            material_name=ordered_line.material_name,
            ordered_qty=ordered_line.quantity_ordered,
            received_qty=line.received_qty,
            defective_qty=Decimal("0"),
            accepted_qty=line.received_qty,
            qc_status=QCStatus.PENDING.value,
        ))
    order.receipts.append(receipt)
    db.flush()

    total_received = sum((line.received_qty for line in delivered), Decimal("0"))
    record_purchasing_event(
        db=db,
        purchase_order_id=order.id,
        event_type=PurchasingEventType.RECEIPT.value,
        title=f"Goods receipt {number}",
        description=f"Received {total_received} units across {len(delivered)} material(s)",
        event_date=receipt.receipt_date,
        actor=created_by,
        metadata_key="receipt_number",
        metadata_value=number,
    )
    logger.info(
        f"Created goods receipt {number} on PO {order.po_number}",
        extra={
            "po_number": order.po_number,
            "receipt_number": number,
            "line_count": len(delivered),
            "total_received": str(total_received),
        },
    )

    evaluation = evaluate_and_maybe_complete(db, order, poster=poster, actor=created_by)
    # Report the status from before this receipt, not the interim grn_verified
    evaluation.previous_status = previous_status
    return ReceiptResult(receipt=receipt, evaluation=evaluation)


# ============================================================================
# Replacement receipts
# ============================================================================

def _find_replaced_receipt(
    order: PurchaseOrder,
    material_id: int,
    replacement_for_receipt_id: Optional[int],
) -> Optional[GoodsReceipt]:
    """
    The receipt whose defects this delivery makes good.

    An explicit id must belong to this order and contain the material.
    Without one, the latest receipt with defective units of the material is used.
    """
    if replacement_for_receipt_id is not None:
        for receipt in order.receipts:
            if receipt.id == replacement_for_receipt_id:
                if any(rl.material_id == material_id for rl in receipt.lines):
                    return receipt
                break
        raise ValidationError(
            f"Receipt {replacement_for_receipt_id} on purchase order {order.po_number} "
            f"has no line for material {material_id}",
            field="replacement_for_receipt_id",
            value=replacement_for_receipt_id,
        )

    for receipt in reversed(order.receipts):
        for receipt_line in receipt.lines:
            if (
                receipt_line.material_id == material_id
                and receipt_line.is_inspected
                and receipt_line.defective_qty > 0
            ):
                return receipt
    return None


def create_replacement_receipt(
    db: Session,
    order: PurchaseOrder,
    material_id: int,
    received_qty: Decimal,
    replacement_for_receipt_id: Optional[int] = None,
    receipt_number: Optional[str] = None,
    receipt_date: Optional[date] = None,
    remarks: Optional[str] = None,
    created_by: Optional[str] = None,
    poster: Optional[InventoryPoster] = None,
) -> ReceiptResult:
    """
    Record a replacement delivery for one material.

    The material must currently need replacement. A quantity above what is
    still open to replace is accepted but reported as a warning.

    Raises:
        InvalidStateError: order not receivable, or the material has no
            outstanding replacement need
        ValidationError: non-positive quantity, material not on the order,
            or a replacement_for receipt that does not match
        DuplicateError: receipt_number already used
    """
    _ensure_receivable(order)

    if received_qty is None or received_qty <= 0:
        raise ValidationError(
            "Replacement quantity must be greater than zero",
            field="received_qty",
            value=received_qty,
        )

    ordered_line = order.line_for_material(material_id)
    if ordered_line is None:
        raise ValidationError(
            f"Material {material_id} is not on purchase order {order.po_number}",
            field="material_id",
            value=material_id,
        )

    snapshot = compute_pending_quantities(order)[material_id]
    if not snapshot.needs_replacement:
        raise InvalidStateError(
            f"Material {material_id} has no outstanding replacement need",
            current_state=snapshot.replacement_status.value,
            details={"material_id": material_id},
        )

    replaced = _find_replaced_receipt(order, material_id, replacement_for_receipt_id)
    number = _resolve_receipt_number(db, receipt_number)

    warnings: List[str] = []
    open_qty = max(Decimal("0"), snapshot.qty_to_replace - snapshot.in_flight_replacement_qty)
    if received_qty > open_qty:
        warnings.append(
            f"Replacement quantity {received_qty} exceeds the {open_qty} unit(s) "
            f"still open to replace for material {material_id}"
        )
        logger.warning(
            "Replacement quantity exceeds open quantity",
            extra={
                "po_number": order.po_number,
                "material_id": material_id,
                "received_qty": str(received_qty),
                "open_qty": str(open_qty),
            },
        )

    # All checks passed - mutate
    receipt = GoodsReceipt(
        receipt_number=number,
        receipt_date=receipt_date or date.today(),
        kind=ReceiptKind.REPLACEMENT.value,
        replacement_for=replaced,
        remarks=remarks,
        created_by=created_by,
    )
    receipt.lines.append(GoodsReceiptLine(
        material_id=material_id,
        material_name=ordered_line.material_name,
        ordered_qty=ordered_line.quantity_ordered,
        received_qty=received_qty,
        defective_qty=Decimal("0"),
        accepted_qty=received_qty,
        qc_status=QCStatus.PENDING.value,
    ))
    order.receipts.append(receipt)
    db.flush()

    record_purchasing_event(
        db=db,
        purchase_order_id=order.id,
        event_type=PurchasingEventType.REPLACEMENT_RECEIPT.value,
        title=f"Replacement receipt {number}",
        description=(
            f"Received {received_qty} replacement unit(s) of material {material_id}"
            + (f" for {replaced.receipt_number}" if replaced else "")
        ),
        event_date=receipt.receipt_date,
        actor=created_by,
        metadata_key="receipt_number",
        metadata_value=number,
    )
    logger.info(
        f"Created replacement receipt {number} on PO {order.po_number}",
        extra={
            "po_number": order.po_number,
            "receipt_number": number,
            "material_id": material_id,
            "received_qty": str(received_qty),
            "replacement_for": replaced.receipt_number if replaced else None,
        },
    )

    evaluation = evaluate_and_maybe_complete(db, order, poster=poster, actor=created_by)
    return ReceiptResult(receipt=receipt, evaluation=evaluation, warnings=warnings)
