"""
Purchasing Pydantic Schemas

Covers:
- Purchase Orders
- PO Lines
- Goods Receipts (initial and replacement)
- Quality control
- Pending quantities
"""
from pydantic import BaseModel, Field
from typing import Dict, Optional, List
from datetime import datetime, date
from decimal import Decimal


# ============================================================================
# Purchase Order Line Schemas
# ============================================================================

class POLineCreate(BaseModel):
    """Ordered item - one per material"""
    material_id: int = Field(..., description="Raw material ID")
    quantity_ordered: Decimal = Field(..., gt=0, description="Quantity to order")
    unit_price: Decimal = Field(Decimal("0"), ge=0, description="Price per unit")
    unit: Optional[str] = Field(None, max_length=20, description="Unit of measure, defaults to the material's unit")


class POLineResponse(BaseModel):
    """PO line details"""
    id: int
    line_number: int
    material_id: int
    material_name: Optional[str] = None
    quantity_ordered: Decimal
    unit: Optional[str] = None
    unit_price: Decimal
    line_total: Decimal

    class Config:
        from_attributes = True


# ============================================================================
# Purchase Order Schemas
# ============================================================================

class PurchaseOrderCreate(BaseModel):
    """Place a new purchase order"""
    po_number: Optional[str] = Field(None, max_length=50, description="Auto-generated if not provided")
    order_date: Optional[date] = None
    supplier_ref: Optional[str] = Field(None, max_length=100)
    supplier_name: Optional[str] = Field(None, max_length=200)
    tax_percent: Decimal = Field(Decimal("0"), ge=0, description="Tax percent applied after discount")
    discount_percent: Decimal = Field(Decimal("0"), ge=0, le=100)
    notes: Optional[str] = None
    lines: List[POLineCreate] = Field(..., min_length=1)


class PurchaseOrderListResponse(BaseModel):
    """PO list summary"""
    id: int
    po_number: str
    supplier_ref: Optional[str] = None
    supplier_name: Optional[str] = None
    status: str
    order_date: Optional[date] = None
    total_amount: Decimal
    line_count: int = 0
    receipt_count: int = 0
    created_at: datetime


class ArriveRequest(BaseModel):
    """Mark goods physically arrived"""
    arrived_at: Optional[datetime] = None


class CancelRequest(BaseModel):
    """Cancel an order that has nothing received yet"""
    reason: Optional[str] = Field(None, max_length=500)


# ============================================================================
# Goods Receipt Schemas
# ============================================================================

class ReceiptLineCreate(BaseModel):
    """Quantity physically delivered for one material"""
    material_id: int
    received_qty: Decimal = Field(..., ge=0, description="Units delivered in this receipt")


class GoodsReceiptCreate(BaseModel):
    """Initial goods receipt against an order"""
    receipt_number: Optional[str] = Field(None, max_length=50, description="Auto-generated if not provided")
    receipt_date: Optional[date] = None
    remarks: Optional[str] = None
    lines: List[ReceiptLineCreate] = Field(..., min_length=1)


class ReplacementReceiptCreate(BaseModel):
    """Replacement delivery for previously rejected units of one material"""
    receipt_number: Optional[str] = Field(None, max_length=50)
    receipt_date: Optional[date] = None
    material_id: int
    received_qty: Decimal = Field(..., gt=0)
    replacement_for_receipt_id: Optional[int] = Field(
        None, description="Receipt whose defects this delivery replaces; defaults to the latest one"
    )
    remarks: Optional[str] = None


class ReceiptLineResponse(BaseModel):
    """Receipt line with its inspection outcome"""
    id: int
    material_id: int
    material_name: Optional[str] = None
    ordered_qty: Decimal
    received_qty: Decimal
    defective_qty: Decimal
    accepted_qty: Decimal
    qc_status: str
    qc_remarks: Optional[str] = None
    qc_recorded_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class GoodsReceiptResponse(BaseModel):
    """Goods receipt note"""
    id: int
    receipt_number: str
    receipt_date: date
    kind: str
    replacement_for_receipt_id: Optional[int] = None
    remarks: Optional[str] = None
    created_at: datetime
    lines: List[ReceiptLineResponse] = []

    class Config:
        from_attributes = True


# ============================================================================
# Quality Control Schemas
# ============================================================================

class QCUpdate(BaseModel):
    """
    Inspection outcome for one receipt line.

    accepted_qty is optional; when given it must equal
    received_qty - defective_qty.
    """
    defective_qty: Decimal = Field(..., description="Units rejected at inspection")
    accepted_qty: Optional[Decimal] = None
    remarks: Optional[str] = None


# ============================================================================
# Pending Quantities / Results
# ============================================================================

class PendingQuantityResponse(BaseModel):
    """Reconciled quantities for one material"""
    material_id: int
    material_name: Optional[str] = None
    unit: Optional[str] = None
    total_ordered: Decimal
    total_received: Decimal
    total_accepted: Decimal
    total_defective: Decimal
    pending_inspection_qty: Decimal
    accepted_from_replacements: Decimal
    in_flight_replacement_qty: Decimal
    qty_to_replace: Decimal
    pending_qty: Decimal
    replacement_status: str


class PendingQuantitiesResponse(BaseModel):
    """Pending quantity map for an order"""
    order_id: int
    po_number: str
    status: str
    pending_quantities: Dict[int, PendingQuantityResponse]


class PurchaseOrderResponse(BaseModel):
    """Full PO details with receipts and the live pending snapshot"""
    id: int
    po_number: str
    order_date: Optional[date] = None
    supplier_ref: Optional[str] = None
    supplier_name: Optional[str] = None
    status: str
    subtotal: Decimal
    discount_percent: Decimal
    discount_amount: Decimal
    tax_percent: Decimal
    tax_amount: Decimal
    total_amount: Decimal
    notes: Optional[str] = None
    arrived_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    inventory_posted_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime
    lines: List[POLineResponse] = []
    receipts: List[GoodsReceiptResponse] = []
    pending_quantities: Dict[int, PendingQuantityResponse] = {}


class OrderMutationResponse(BaseModel):
    """Result of a receiving, inspection, or evaluation call"""
    order_id: int
    po_number: str
    status: str
    previous_status: str
    inventory_posted: bool = False
    pending_quantities: Dict[int, PendingQuantityResponse]
    warnings: List[str] = []
    receipt: Optional[GoodsReceiptResponse] = None
    receipt_line: Optional[ReceiptLineResponse] = None
