"""
Receiving API Endpoints

Goods receipts, replacement receipts and quality control for a purchase
order. Each call runs as one locked unit of work on the order and returns
the order's updated status and pending quantities.
"""
from fastapi import APIRouter, Depends
from typing import List
from sqlalchemy.orm import Session

from factoryops.db.session import get_db
from factoryops.exceptions import NotFoundError
from factoryops.logging_config import get_logger
from factoryops.api.v1.endpoints.purchase_orders import build_mutation_response
from factoryops.schemas.purchasing import (
    GoodsReceiptCreate,
    GoodsReceiptResponse,
    OrderMutationResponse,
    QCUpdate,
    ReplacementReceiptCreate,
)
from factoryops.services.goods_receipt_service import create_initial_receipt, create_replacement_receipt
from factoryops.services.purchase_order_store import get_order, order_transaction
from factoryops.services.quality_control import record_inspection

router = APIRouter()
logger = get_logger(__name__)


@router.post("/{po_id}/receipts", response_model=OrderMutationResponse, status_code=201)
def create_receipt(
    po_id: int,
    request: GoodsReceiptCreate,
    db: Session = Depends(get_db),
):
    """
    Record an initial goods receipt

    All lines are validated before anything is stored; a receipt with one
    bad line is rejected as a whole.
    """
    with order_transaction(db, po_id) as po:
        result = create_initial_receipt(
            db,
            po,
            lines=request.lines,
            receipt_number=request.receipt_number,
            receipt_date=request.receipt_date,
            remarks=request.remarks,
        )

    return build_mutation_response(
        po,
        result.evaluation.previous_status,
        inventory_posted=result.evaluation.inventory_posted,
        receipt=result.receipt,
    )


@router.post("/{po_id}/replacement-receipts", response_model=OrderMutationResponse, status_code=201)
def create_replacement(
    po_id: int,
    request: ReplacementReceiptCreate,
    db: Session = Depends(get_db),
):
    """
    Record a replacement delivery for units rejected at inspection

    Returns warnings (and still records the receipt) when the quantity
    exceeds what is open to replace.
    """
    with order_transaction(db, po_id) as po:
        result = create_replacement_receipt(
            db,
            po,
            material_id=request.material_id,
            received_qty=request.received_qty,
            replacement_for_receipt_id=request.replacement_for_receipt_id,
            receipt_number=request.receipt_number,
            receipt_date=request.receipt_date,
            remarks=request.remarks,
        )

    return build_mutation_response(
        po,
        result.evaluation.previous_status,
        inventory_posted=result.evaluation.inventory_posted,
        warnings=result.warnings,
        receipt=result.receipt,
    )


@router.get("/{po_id}/receipts", response_model=List[GoodsReceiptResponse])
def list_receipts(
    po_id: int,
    db: Session = Depends(get_db),
):
    """List every goods receipt of the order, oldest first"""
    po = get_order(db, po_id)
    return [GoodsReceiptResponse.model_validate(r) for r in po.receipts]


@router.get("/{po_id}/receipts/{receipt_id}", response_model=GoodsReceiptResponse)
def get_receipt(
    po_id: int,
    receipt_id: int,
    db: Session = Depends(get_db),
):
    """Get one goods receipt with its lines"""
    po = get_order(db, po_id)
    receipt = next((r for r in po.receipts if r.id == receipt_id), None)
    if receipt is None:
        raise NotFoundError("Goods receipt", receipt_id)
    return GoodsReceiptResponse.model_validate(receipt)


@router.patch("/{po_id}/receipts/{receipt_id}/lines/{line_id}/qc", response_model=OrderMutationResponse)
def record_qc(
    po_id: int,
    receipt_id: int,
    line_id: int,
    request: QCUpdate,
    db: Session = Depends(get_db),
):
    """
    Record the inspection outcome for one receipt line

    May complete the order and post accepted quantities to stock. If posting
    fails the inspection is kept and a POSTING_ERROR (502) is returned.
    """
    with order_transaction(db, po_id) as po:
        result = record_inspection(
            db,
            po,
            receipt_id=receipt_id,
            line_id=line_id,
            defective_qty=request.defective_qty,
            accepted_qty=request.accepted_qty,
            remarks=request.remarks,
        )

    warnings = []
    if result.clamped:
        warnings.append(
            f"Defective quantity {request.defective_qty} was clamped to {result.receipt_line.defective_qty}"
        )
        logger.info(
            "Returned clamp warning to client",
            extra={"po_number": po.po_number, "line_id": line_id},
        )

    return build_mutation_response(
        po,
        result.evaluation.previous_status,
        inventory_posted=result.evaluation.inventory_posted,
        warnings=warnings,
        receipt_line=result.receipt_line,
    )
