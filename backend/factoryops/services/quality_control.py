"""
Quality Control Service

Records the inspection outcome for one goods receipt line: how many of the
received units are defective, with accepted always equal to received minus
defective. Every recorded defect raises (or updates) a return-to-vendor
entry for that line, and every inspection re-evaluates the order.

Out-of-range defective quantities follow QC_OUT_OF_RANGE_POLICY:
``reject`` raises ValidationError, ``clamp`` pulls the value into
[0, received] and logs a warning.
"""
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional, Tuple

from sqlalchemy.orm import Session

from factoryops.core.config import settings
from factoryops.core.status_config import TERMINAL_STATUSES, QCStatus, ReturnStatus
from factoryops.exceptions import InvalidStateError, NotFoundError, ValidationError
from factoryops.logging_config import get_logger
from factoryops.models.goods_receipt import GoodsReceipt, GoodsReceiptLine
from factoryops.models.purchase_order import PurchaseOrder
from factoryops.models.purchase_return import PurchaseReturn
from factoryops.schemas.purchasing_event import PurchasingEventType
from factoryops.services.completion import EvaluationResult, evaluate_and_maybe_complete
from factoryops.services.event_service import record_purchasing_event
from factoryops.services.inventory_poster import InventoryPoster

logger = get_logger(__name__)

ZERO = Decimal("0")


@dataclass
class InspectionResult:
    """The inspected line plus the order's re-evaluated state"""
    receipt_line: GoodsReceiptLine
    evaluation: EvaluationResult
    clamped: bool = False


def _find_line(order: PurchaseOrder, receipt_id: int, line_id: int) -> Tuple[GoodsReceipt, GoodsReceiptLine]:
    receipt = next((r for r in order.receipts if r.id == receipt_id), None)
    if receipt is None:
        raise NotFoundError("Goods receipt", receipt_id)
    receipt_line = next((rl for rl in receipt.lines if rl.id == line_id), None)
    if receipt_line is None:
        raise NotFoundError("Goods receipt line", line_id)
    return receipt, receipt_line


def _normalize_defective(
    received: Decimal,
    defective: Decimal,
    policy: str,
) -> Tuple[Decimal, bool]:
    """Apply the out-of-range policy. Returns (value, clamped)."""
    if ZERO <= defective <= received:
        return defective, False

    if policy == "clamp":
        return min(max(defective, ZERO), received), True

    raise ValidationError(
        f"Defective quantity must be between 0 and {received}",
        field="defective_qty",
        value=defective,
    )


def _sync_purchase_return(
    db: Session,
    order: PurchaseOrder,
    receipt: GoodsReceipt,
    receipt_line: GoodsReceiptLine,
    remarks: Optional[str],
) -> None:
    """Keep the line's return-to-vendor entry in step with its defects."""
    existing = (
        db.query(PurchaseReturn)
        .filter(PurchaseReturn.receipt_line_id == receipt_line.id)
        .first()
    )

    if receipt_line.defective_qty > 0:
        if existing is None:
            db.add(PurchaseReturn(
                purchase_order_id=order.id,
                receipt_id=receipt.id,
                receipt_line_id=receipt_line.id,
                material_id=receipt_line.material_id,
                quantity_returned=receipt_line.defective_qty,
                remarks=remarks,
                status=ReturnStatus.PENDING.value,
            ))
        else:
            existing.quantity_returned = receipt_line.defective_qty
            existing.remarks = remarks
            existing.status = ReturnStatus.PENDING.value
    elif existing is not None:
        existing.status = ReturnStatus.CANCELLED.value


def record_inspection(
    db: Session,
    order: PurchaseOrder,
    receipt_id: int,
    line_id: int,
    defective_qty: Decimal,
    remarks: Optional[str] = None,
    accepted_qty: Optional[Decimal] = None,
    recorded_by: Optional[str] = None,
    policy: Optional[str] = None,
    poster: Optional[InventoryPoster] = None,
) -> InspectionResult:
    """
    Record the accepted/defective split for one receipt line.

    Re-recording an inspected line replaces its previous outcome; QC status
    stays completed. Lines of a completed order cannot be changed.

    Args:
        db: Database session (caller owns the transaction)
        order: Locked purchase order owning the receipt
        receipt_id: Goods receipt ID
        line_id: Receipt line ID
        defective_qty: Units rejected at inspection
        remarks: Inspector notes
        accepted_qty: Optional; must equal received - defective when given
        recorded_by: Inspector
        policy: Overrides QC_OUT_OF_RANGE_POLICY
        poster: Stock ledger collaborator for a completing evaluation

    Raises:
        InvalidStateError: order already completed or cancelled
        NotFoundError: receipt or line not on this order
        ValidationError: defective out of range (reject policy) or an
            inconsistent accepted_qty
        PostingError: the inspection completed the order but stock posting
            failed; the inspection itself stays recorded
    """
    if order.status in TERMINAL_STATUSES:
        raise InvalidStateError(
            f"Receipt lines of purchase order {order.po_number} are locked in '{order.status}' status",
            current_state=order.status,
        )

    receipt, receipt_line = _find_line(order, receipt_id, line_id)

    if defective_qty is None:
        raise ValidationError("Defective quantity is required", field="defective_qty")
    received = Decimal(receipt_line.received_qty)
    defective, clamped = _normalize_defective(
        received,
        Decimal(defective_qty),
        policy or settings.QC_OUT_OF_RANGE_POLICY,
    )
    accepted = received - defective

    if accepted_qty is not None and Decimal(accepted_qty) != accepted:
        raise ValidationError(
            f"Accepted quantity must equal received minus defective ({accepted})",
            field="accepted_qty",
            value=accepted_qty,
        )

    if clamped:
        logger.warning(
            "Defective quantity clamped into range",
            extra={
                "po_number": order.po_number,
                "receipt_number": receipt.receipt_number,
                "material_id": receipt_line.material_id,
                "requested": str(defective_qty),
                "recorded": str(defective),
            },
        )

    # All checks passed - mutate
    previous_defective = receipt_line.defective_qty if receipt_line.is_inspected else None
    receipt_line.defective_qty = defective
    receipt_line.accepted_qty = accepted
    receipt_line.qc_status = QCStatus.COMPLETED.value
    receipt_line.qc_remarks = remarks
    receipt_line.qc_recorded_at = datetime.utcnow()
    receipt_line.qc_recorded_by = recorded_by

    _sync_purchase_return(db, order, receipt, receipt_line, remarks)

    record_purchasing_event(
        db=db,
        purchase_order_id=order.id,
        event_type=PurchasingEventType.QC_RECORDED.value,
        title=f"QC recorded on {receipt.receipt_number}",
        description=f"Material {receipt_line.material_id}: accepted {accepted}, defective {defective}",
        old_value=None if previous_defective is None else str(previous_defective),
        new_value=str(defective),
        actor=recorded_by,
        metadata_key="material_id",
        metadata_value=receipt_line.material_id,
    )
    logger.info(
        f"QC recorded on {receipt.receipt_number}",
        extra={
            "po_number": order.po_number,
            "receipt_number": receipt.receipt_number,
            "material_id": receipt_line.material_id,
            "received_qty": str(received),
            "accepted_qty": str(accepted),
            "defective_qty": str(defective),
        },
    )

    db.flush()
    evaluation = evaluate_and_maybe_complete(db, order, poster=poster, actor=recorded_by)
    return InspectionResult(receipt_line=receipt_line, evaluation=evaluation, clamped=clamped)
