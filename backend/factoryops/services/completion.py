"""
Completion Evaluator

Derives a purchase order's status from its pending quantity snapshot and
performs the one-time inventory posting when the order completes.

Status rules, checked in order (only once at least one receipt exists):
1. completed - every material has pending_qty 0 and no receipt line is
   still awaiting QC; stock is posted first and completion is granted only
   if posting succeeds
2. returned_to_vendor - some material needs more replacement units than
   are already on their way (uninspected replacement receipts)
3. qc_in_progress - at least one receipt line has been inspected
4. grn_verified - receipts exist but nothing has been inspected yet
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Optional

from sqlalchemy.orm import Session

from factoryops.core.status_config import TERMINAL_STATUSES, PurchaseOrderStatus
from factoryops.exceptions import PostingError
from factoryops.logging_config import get_logger
from factoryops.models.purchase_order import PurchaseOrder
from factoryops.schemas.purchasing_event import PurchasingEventType
from factoryops.services.event_service import record_purchasing_event
from factoryops.services.inventory_poster import InventoryPoster, get_inventory_poster
from factoryops.services.pending_quantities import (
    PendingQuantitySnapshot,
    compute_pending_quantities,
    has_pending_inspection,
)
from factoryops.services.purchase_order_store import apply_status_transition

logger = get_logger(__name__)


@dataclass
class EvaluationResult:
    """Outcome of one completion evaluation"""
    previous_status: str
    status: str
    pending_quantities: Dict[int, PendingQuantitySnapshot] = field(default_factory=dict)
    inventory_posted: bool = False

    @property
    def changed(self) -> bool:
        return self.previous_status != self.status


def derive_status(
    order: PurchaseOrder,
    snapshots: Dict[int, PendingQuantitySnapshot],
) -> PurchaseOrderStatus:
    """Status the order should be in, given its current receipt history."""
    if not order.receipts:
        return PurchaseOrderStatus(order.status)

    if all(s.is_fulfilled for s in snapshots.values()) and not has_pending_inspection(order):
        return PurchaseOrderStatus.COMPLETED

    if any(s.qty_to_replace > s.in_flight_replacement_qty for s in snapshots.values()):
        return PurchaseOrderStatus.RETURNED_TO_VENDOR

    inspected = any(
        receipt_line.is_inspected
        for receipt in order.receipts
        for receipt_line in receipt.lines
    )
    if inspected:
        return PurchaseOrderStatus.QC_IN_PROGRESS
    return PurchaseOrderStatus.GRN_VERIFIED


def _post_inventory(
    db: Session,
    order: PurchaseOrder,
    snapshots: Dict[int, PendingQuantitySnapshot],
    poster: InventoryPoster,
) -> None:
    """Credit every material's accepted total, all or nothing."""
    try:
        with db.begin_nested():
            for snapshot in snapshots.values():
                if snapshot.total_accepted <= 0:
                    continue
                logger.info(
                    "Posting accepted quantity to stock",
                    extra={
                        "po_number": order.po_number,
                        "material_id": snapshot.material_id,
                        "quantity": str(snapshot.total_accepted),
                    },
                )
                poster.credit_material(
                    snapshot.material_id,
                    snapshot.total_accepted,
                    order_id=order.id,
                    order_number=order.po_number,
                )
            order.inventory_posted_at = datetime.utcnow()
    except PostingError as e:
        logger.error(
            f"Inventory posting failed for PO {order.po_number}: {e.message}",
            extra={"po_number": order.po_number, **e.details},
        )
        record_purchasing_event(
            db=db,
            purchase_order_id=order.id,
            event_type=PurchasingEventType.POSTING_FAILED.value,
            title="Inventory posting failed",
            description=e.message,
            metadata_key="material_id" if e.details.get("material_id") is not None else None,
            metadata_value=e.details.get("material_id"),
        )
        raise

    record_purchasing_event(
        db=db,
        purchase_order_id=order.id,
        event_type=PurchasingEventType.INVENTORY_POSTED.value,
        title="Accepted quantities posted to stock",
        description=", ".join(
            f"material {s.material_id}: {s.total_accepted}"
            for s in snapshots.values() if s.total_accepted > 0
        ),
    )


def evaluate_and_maybe_complete(
    db: Session,
    order: PurchaseOrder,
    poster: Optional[InventoryPoster] = None,
    actor: Optional[str] = None,
) -> EvaluationResult:
    """
    Recompute the order's status and complete it when fully reconciled.

    Calling this on a completed order is a no-op and never posts again.
    Posting is guarded by ``order.inventory_posted_at``, which is set in the
    same transaction as the completed transition.

    Args:
        db: Database session (caller owns the transaction)
        order: Locked purchase order
        poster: Stock ledger collaborator, defaults to the configured one
        actor: Who triggered the evaluation, for the activity log

    Raises:
        PostingError: the poster rejected a credit; the order keeps its
            pre-completion status and nothing was credited
    """
    previous = order.status
    snapshots = compute_pending_quantities(order)

    if previous in TERMINAL_STATUSES:
        return EvaluationResult(previous_status=previous, status=previous, pending_quantities=snapshots)

    target = derive_status(order, snapshots)
    posted = False

    if target == PurchaseOrderStatus.COMPLETED:
        if order.inventory_posted_at is None:
            _post_inventory(db, order, snapshots, poster or get_inventory_poster(db))
            posted = True
        order.completed_at = datetime.utcnow()

    apply_status_transition(db, order, target, actor=actor)
    db.flush()

    return EvaluationResult(
        previous_status=previous,
        status=order.status,
        pending_quantities=snapshots,
        inventory_posted=posted,
    )
