"""
Purchase Orders API Endpoints
"""
from fastapi import APIRouter, Depends, Query
from typing import Annotated, Dict, List, Optional
from sqlalchemy.orm import Session, selectinload
from sqlalchemy import desc

from factoryops.db.session import get_db
from factoryops.logging_config import get_logger
from factoryops.api.v1.deps import get_pagination_params
from factoryops.core.status_config import PurchaseOrderStatus
from factoryops.exceptions import ValidationError
from factoryops.models.purchase_order import PurchaseOrder
from factoryops.models.purchasing_event import PurchasingEvent
from factoryops.schemas.common import PaginationParams, ListResponse, PaginationMeta
from factoryops.schemas.purchasing import (
    ArriveRequest,
    CancelRequest,
    GoodsReceiptResponse,
    OrderMutationResponse,
    PendingQuantitiesResponse,
    PendingQuantityResponse,
    POLineResponse,
    PurchaseOrderCreate,
    PurchaseOrderListResponse,
    PurchaseOrderResponse,
    ReceiptLineResponse,
)
from factoryops.schemas.purchasing_event import PurchasingEventResponse, PurchasingEventListResponse
from factoryops.services.completion import evaluate_and_maybe_complete
from factoryops.services.pending_quantities import PendingQuantitySnapshot, compute_pending_quantities
from factoryops.services.purchase_order_store import (
    cancel_purchase_order,
    get_order,
    mark_arrived,
    order_transaction,
    place_purchase_order,
)

router = APIRouter()
logger = get_logger(__name__)


# ============================================================================
# Response builders (shared with the receiving endpoints)
# ============================================================================

def pending_response(snapshots: Dict[int, PendingQuantitySnapshot]) -> Dict[int, PendingQuantityResponse]:
    return {
        material_id: PendingQuantityResponse(**snapshot.to_dict())
        for material_id, snapshot in snapshots.items()
    }


def build_order_response(order: PurchaseOrder) -> PurchaseOrderResponse:
    """Full order view with the live pending snapshot"""
    return PurchaseOrderResponse(
        id=order.id,
        po_number=order.po_number,
        order_date=order.order_date,
        supplier_ref=order.supplier_ref,
        supplier_name=order.supplier_name,
        status=order.status,
        subtotal=order.subtotal,
        discount_percent=order.discount_percent,
        discount_amount=order.discount_amount,
        tax_percent=order.tax_percent,
        tax_amount=order.tax_amount,
        total_amount=order.total_amount,
        notes=order.notes,
        arrived_at=order.arrived_at,
        completed_at=order.completed_at,
        cancelled_at=order.cancelled_at,
        inventory_posted_at=order.inventory_posted_at,
        created_at=order.created_at,
        updated_at=order.updated_at,
        lines=[POLineResponse.model_validate(line) for line in order.lines],
        receipts=[GoodsReceiptResponse.model_validate(r) for r in order.receipts],
        pending_quantities=pending_response(compute_pending_quantities(order)),
    )


def build_mutation_response(
    order: PurchaseOrder,
    previous_status: str,
    inventory_posted: bool = False,
    warnings: Optional[List[str]] = None,
    receipt=None,
    receipt_line=None,
) -> OrderMutationResponse:
    """Order status and pending snapshot after a committed mutation"""
    return OrderMutationResponse(
        order_id=order.id,
        po_number=order.po_number,
        status=order.status,
        previous_status=previous_status,
        inventory_posted=inventory_posted,
        pending_quantities=pending_response(compute_pending_quantities(order)),
        warnings=warnings or [],
        receipt=GoodsReceiptResponse.model_validate(receipt) if receipt is not None else None,
        receipt_line=ReceiptLineResponse.model_validate(receipt_line) if receipt_line is not None else None,
    )


# ============================================================================
# Purchase Order CRUD
# ============================================================================

@router.get("/", response_model=ListResponse[PurchaseOrderListResponse])
def list_purchase_orders(
    pagination: Annotated[PaginationParams, Depends(get_pagination_params)],
    status: Optional[str] = Query(None, description="Filter by status (ordered, arrived, grn_verified, qc_in_progress, returned_to_vendor, completed, cancelled)"),
    search: Optional[str] = Query(None, description="Search by PO number"),
    db: Session = Depends(get_db),
):
    """
    List purchase orders with pagination

    - **status**: Filter by status
    - **search**: Search by PO number
    - **offset**: Number of records to skip (default: 0)
    - **limit**: Maximum records to return (max: 500)
    """
    query = db.query(PurchaseOrder).options(
        selectinload(PurchaseOrder.lines),
        selectinload(PurchaseOrder.receipts),
    )

    if status:
        try:
            status = PurchaseOrderStatus(status).value
        except ValueError:
            raise ValidationError(f"Unknown purchase order status '{status}'", field="status", value=status)
        query = query.filter(PurchaseOrder.status == status)

    if search:
        query = query.filter(PurchaseOrder.po_number.ilike(f"%{search}%"))

    # Get total count before pagination
    total = query.count()

    pos = query.order_by(desc(PurchaseOrder.created_at), desc(PurchaseOrder.id)).offset(pagination.offset).limit(pagination.limit).all()

    result = [
        PurchaseOrderListResponse(
            id=po.id,
            po_number=po.po_number,
            supplier_ref=po.supplier_ref,
            supplier_name=po.supplier_name,
            status=po.status,
            order_date=po.order_date,
            total_amount=po.total_amount,
            line_count=len(po.lines),
            receipt_count=len(po.receipts),
            created_at=po.created_at,
        )
        for po in pos
    ]

    return ListResponse(
        items=result,
        pagination=PaginationMeta(
            total=total,
            offset=pagination.offset,
            limit=pagination.limit,
            returned=len(result)
        )
    )


@router.get("/{po_id}", response_model=PurchaseOrderResponse)
def get_purchase_order(
    po_id: int,
    db: Session = Depends(get_db),
):
    """Get purchase order details with receipts and pending quantities"""
    return build_order_response(get_order(db, po_id))


@router.post("/", response_model=PurchaseOrderResponse, status_code=201)
def create_purchase_order(
    request: PurchaseOrderCreate,
    db: Session = Depends(get_db),
):
    """Place a new purchase order (status: ordered)"""
    try:
        po = place_purchase_order(db, request)
        db.commit()
    except Exception as e:
        db.rollback()
        logger.warning(f"Purchase order placement failed: {e}")
        raise

    db.refresh(po)
    return build_order_response(po)


# ============================================================================
# Lifecycle
# ============================================================================

@router.post("/{po_id}/arrive", response_model=PurchaseOrderResponse)
def arrive_purchase_order(
    po_id: int,
    request: Optional[ArriveRequest] = None,
    db: Session = Depends(get_db),
):
    """Mark goods physically arrived (ordered -> arrived)"""
    with order_transaction(db, po_id) as po:
        mark_arrived(db, po, arrived_at=request.arrived_at if request else None)

    return build_order_response(po)


@router.post("/{po_id}/cancel", response_model=PurchaseOrderResponse)
def cancel_order(
    po_id: int,
    request: Optional[CancelRequest] = None,
    db: Session = Depends(get_db),
):
    """Cancel a purchase order that has nothing received"""
    with order_transaction(db, po_id) as po:
        cancel_purchase_order(db, po, reason=request.reason if request else None)

    return build_order_response(po)


# ============================================================================
# Reconciliation
# ============================================================================

@router.get("/{po_id}/pending-quantities", response_model=PendingQuantitiesResponse)
def get_pending_quantities(
    po_id: int,
    db: Session = Depends(get_db),
):
    """
    Per-material reconciliation across every receipt of the order

    Read-only; recomputed on every call.
    """
    po = get_order(db, po_id)
    return PendingQuantitiesResponse(
        order_id=po.id,
        po_number=po.po_number,
        status=po.status,
        pending_quantities=pending_response(compute_pending_quantities(po)),
    )


@router.post("/{po_id}/evaluate", response_model=OrderMutationResponse)
def evaluate_purchase_order(
    po_id: int,
    db: Session = Depends(get_db),
):
    """
    Re-run completion evaluation

    Used to retry inventory posting after a PostingError. Idempotent on
    completed orders.
    """
    with order_transaction(db, po_id) as po:
        evaluation = evaluate_and_maybe_complete(db, po)

    logger.info(
        f"Re-evaluated PO {po.po_number}",
        extra={
            "po_number": po.po_number,
            "previous_status": evaluation.previous_status,
            "status": evaluation.status,
            "inventory_posted": evaluation.inventory_posted,
        },
    )

    return build_mutation_response(po, evaluation.previous_status, inventory_posted=evaluation.inventory_posted)


# ============================================================================
# Activity Timeline
# ============================================================================

@router.get("/{po_id}/events", response_model=PurchasingEventListResponse)
def list_po_events(
    po_id: int,
    limit: int = Query(default=50, ge=1, le=200, description="Max events to return"),
    offset: int = Query(default=0, ge=0, description="Offset for pagination"),
    db: Session = Depends(get_db),
):
    """
    List activity events for a purchase order

    Returns a timeline of all events (status changes, receipts, inspections,
    postings) ordered by most recent first.
    """
    get_order(db, po_id)

    query = db.query(PurchasingEvent).filter(
        PurchasingEvent.purchase_order_id == po_id
    ).order_by(desc(PurchasingEvent.created_at), desc(PurchasingEvent.id))

    total = query.count()
    events = query.offset(offset).limit(limit).all()

    return PurchasingEventListResponse(
        items=[PurchasingEventResponse.model_validate(event) for event in events],
        total=total,
    )
