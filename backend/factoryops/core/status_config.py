"""Status Configuration and Transition Rules

This module defines valid status values and allowed transitions for
Purchase Orders, together with the receipt and inspection enums used by
the receiving engine. Order status transitions are validated here and
applied only by the completion evaluator and the order lifecycle service.
"""
from enum import Enum
from typing import Dict, List, Set

from factoryops.exceptions import InvalidStateError


# =============================================================================
# Purchase Order Status
# =============================================================================

class PurchaseOrderStatus(str, Enum):
    """Valid status values for Purchase Orders"""
    ORDERED = "ordered"
    ARRIVED = "arrived"
    GRN_VERIFIED = "grn_verified"
    QC_IN_PROGRESS = "qc_in_progress"
    RETURNED_TO_VENDOR = "returned_to_vendor"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


# Allowed transitions: current_status -> set of allowed next statuses
PURCHASE_ORDER_TRANSITIONS: Dict[str, Set[str]] = {
    PurchaseOrderStatus.ORDERED: {
        PurchaseOrderStatus.ARRIVED,
        PurchaseOrderStatus.CANCELLED,
    },
    PurchaseOrderStatus.ARRIVED: {
        PurchaseOrderStatus.GRN_VERIFIED,
        PurchaseOrderStatus.CANCELLED,
    },
    PurchaseOrderStatus.GRN_VERIFIED: {
        PurchaseOrderStatus.QC_IN_PROGRESS,
        PurchaseOrderStatus.RETURNED_TO_VENDOR,
        PurchaseOrderStatus.COMPLETED,
    },
    PurchaseOrderStatus.QC_IN_PROGRESS: {
        PurchaseOrderStatus.RETURNED_TO_VENDOR,
        PurchaseOrderStatus.COMPLETED,
    },
    PurchaseOrderStatus.RETURNED_TO_VENDOR: {
        PurchaseOrderStatus.QC_IN_PROGRESS,
        PurchaseOrderStatus.COMPLETED,
    },
    PurchaseOrderStatus.COMPLETED: set(),  # Terminal state - inventory posted
    PurchaseOrderStatus.CANCELLED: set(),  # Terminal state
}

TERMINAL_STATUSES: Set[str] = {
    PurchaseOrderStatus.COMPLETED,
    PurchaseOrderStatus.CANCELLED,
}

# Statuses in which a goods receipt may be recorded
RECEIVABLE_STATUSES: Set[str] = {
    PurchaseOrderStatus.ORDERED,
    PurchaseOrderStatus.ARRIVED,
    PurchaseOrderStatus.GRN_VERIFIED,
    PurchaseOrderStatus.QC_IN_PROGRESS,
    PurchaseOrderStatus.RETURNED_TO_VENDOR,
}

# Statuses from which an order may still be cancelled (nothing received yet)
CANCELLABLE_STATUSES: Set[str] = {
    PurchaseOrderStatus.ORDERED,
    PurchaseOrderStatus.ARRIVED,
}


def get_allowed_purchase_order_transitions(current_status: str) -> List[str]:
    """Get list of allowed next statuses for a purchase order"""
    return sorted(s.value for s in PURCHASE_ORDER_TRANSITIONS.get(current_status, set()))


def is_valid_purchase_order_transition(current_status: str, new_status: str) -> bool:
    """Check if a purchase order status transition is valid"""
    if current_status == new_status:
        return True  # No change is always valid
    allowed = PURCHASE_ORDER_TRANSITIONS.get(current_status, set())
    return new_status in allowed


# =============================================================================
# Receipts and Inspection
# =============================================================================

class ReceiptKind(str, Enum):
    """Goods receipt note kinds"""
    INITIAL = "initial"
    REPLACEMENT = "replacement"


class QCStatus(str, Enum):
    """Inspection status of a receipt line (forward only)"""
    PENDING = "pending"
    COMPLETED = "completed"


class ReplacementStatus(str, Enum):
    """Whether a material still has defective units awaiting replacement"""
    OK = "ok"
    NEEDS_REPLACEMENT = "needs_replacement"


class ReturnStatus(str, Enum):
    """Return-to-vendor entry status"""
    PENDING = "pending"
    CANCELLED = "cancelled"  # Re-inspection found no defects on the line


# =============================================================================
# Validation Helpers
# =============================================================================

class StatusTransitionError(InvalidStateError):
    """Raised when an invalid status transition is attempted"""
    def __init__(self, entity: str, current: str, requested: str, allowed: List[str]):
        self.entity = entity
        self.current = current
        self.requested = requested
        self.allowed = allowed
        super().__init__(
            f"Invalid {entity} status transition: '{current}' -> '{requested}'. "
            f"Allowed: {allowed if allowed else 'none (terminal state)'}",
            current_state=current,
            allowed_states=allowed,
        )


def validate_purchase_order_transition(current: str, new: str) -> None:
    """Validate and raise error if transition is invalid"""
    if not is_valid_purchase_order_transition(current, new):
        raise StatusTransitionError(
            "purchase order",
            current,
            new,
            get_allowed_purchase_order_transitions(current),
        )
