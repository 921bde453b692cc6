"""
Pending Quantity Calculator

Aggregates every goods receipt of a purchase order, per material, into the
outstanding and replacement-needed quantities. The calculation is a pure
function of the order's receipt history: it never writes, never caches, and
gives the same answer whatever order the receipts were created in.

Counting rules:
- received: every receipt line, inspected or not
- accepted / defective: only lines whose inspection is completed; a line
  still awaiting QC contributes to ``pending_inspection_qty`` instead
- pending = ordered - accepted, floored at 0
- qty to replace = defective - accepted on replacement receipts, floored at
  0; it is reported even when nothing is pending any more
"""
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, Optional

from factoryops.core.status_config import ReplacementStatus
from factoryops.models.purchase_order import PurchaseOrder

ZERO = Decimal("0")


def _qty(value) -> Decimal:
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


@dataclass(frozen=True)
class PendingQuantitySnapshot:
    """Reconciled quantities for one material of one purchase order"""
    material_id: int
    material_name: Optional[str]
    unit: Optional[str]
    total_ordered: Decimal
    total_received: Decimal
    total_accepted: Decimal
    total_defective: Decimal
    pending_inspection_qty: Decimal
    accepted_from_replacements: Decimal
    in_flight_replacement_qty: Decimal  # replacement deliveries not yet inspected
    qty_to_replace: Decimal
    pending_qty: Decimal
    replacement_status: ReplacementStatus

    @property
    def needs_replacement(self) -> bool:
        return self.replacement_status == ReplacementStatus.NEEDS_REPLACEMENT

    @property
    def is_fulfilled(self) -> bool:
        return self.pending_qty == ZERO

    def to_dict(self) -> Dict[str, Any]:
        return {
            "material_id": self.material_id,
            "material_name": self.material_name,
            "unit": self.unit,
            "total_ordered": self.total_ordered,
            "total_received": self.total_received,
            "total_accepted": self.total_accepted,
            "total_defective": self.total_defective,
            "pending_inspection_qty": self.pending_inspection_qty,
            "accepted_from_replacements": self.accepted_from_replacements,
            "in_flight_replacement_qty": self.in_flight_replacement_qty,
            "qty_to_replace": self.qty_to_replace,
            "pending_qty": self.pending_qty,
            "replacement_status": self.replacement_status.value,
        }


def compute_pending_quantities(order: PurchaseOrder) -> Dict[int, PendingQuantitySnapshot]:
    """
    Compute the pending quantity snapshot for every ordered material.

    Args:
        order: Purchase order with its lines and receipts loaded (lazy
            loading is fine; nothing is modified)

    Returns:
        Mapping of material_id -> PendingQuantitySnapshot, one entry per
        ordered line, in line order
    """
    totals: Dict[int, Dict[str, Decimal]] = {
        line.material_id: {
            "received": ZERO,
            "accepted": ZERO,
            "defective": ZERO,
            "pending_inspection": ZERO,
            "accepted_replacement": ZERO,
            "in_flight_replacement": ZERO,
        }
        for line in order.lines
    }

    for receipt in order.receipts:
        for receipt_line in receipt.lines:
            bucket = totals.get(receipt_line.material_id)
            if bucket is None:
                # Receipt lines are validated against the order; ignore strays
                continue

            received = _qty(receipt_line.received_qty)
            bucket["received"] += received

            if receipt_line.is_inspected:
                accepted = _qty(receipt_line.accepted_qty)
                bucket["accepted"] += accepted
                bucket["defective"] += _qty(receipt_line.defective_qty)
                if receipt.is_replacement:
                    bucket["accepted_replacement"] += accepted
            else:
                bucket["pending_inspection"] += received
                if receipt.is_replacement:
                    bucket["in_flight_replacement"] += received

    snapshots: Dict[int, PendingQuantitySnapshot] = {}
    for line in order.lines:
        bucket = totals[line.material_id]
        ordered = _qty(line.quantity_ordered)

        pending = max(ZERO, ordered - bucket["accepted"])
        qty_to_replace = max(ZERO, bucket["defective"] - bucket["accepted_replacement"])

        snapshots[line.material_id] = PendingQuantitySnapshot(
            material_id=line.material_id,
            material_name=line.material_name,
            unit=line.unit,
            total_ordered=ordered,
            total_received=bucket["received"],
            total_accepted=bucket["accepted"],
            total_defective=bucket["defective"],
            pending_inspection_qty=bucket["pending_inspection"],
            accepted_from_replacements=bucket["accepted_replacement"],
            in_flight_replacement_qty=bucket["in_flight_replacement"],
            qty_to_replace=qty_to_replace,
            pending_qty=pending,
            replacement_status=(
                ReplacementStatus.NEEDS_REPLACEMENT if qty_to_replace > ZERO
                else ReplacementStatus.OK
            ),
        )

    return snapshots


def has_pending_inspection(order: PurchaseOrder) -> bool:
    """True if any receipt line of the order is still awaiting QC."""
    return any(
        not receipt_line.is_inspected
        for receipt in order.receipts
        for receipt_line in receipt.lines
    )
