"""
Purchase Order models for purchasing module
"""
from sqlalchemy import (
    Column, Integer, String, DateTime, Text, Numeric, ForeignKey, Date,
    CheckConstraint, UniqueConstraint,
)
from sqlalchemy.orm import relationship
from datetime import datetime

from factoryops.db.base import Base
from factoryops.core.status_config import PurchaseOrderStatus


class PurchaseOrder(Base):
    """Purchase Order header model"""
    __tablename__ = "purchase_orders"

    id = Column(Integer, primary_key=True, index=True)

    # PO Number - human assigned or auto-generated (PO-2026-001)
    po_number = Column(String(50), unique=True, nullable=False, index=True)

    order_date = Column(Date, nullable=True)

    # Supplier reference (supplier master data lives outside this module)
    supplier_ref = Column(String(100), nullable=True)
    supplier_name = Column(String(200), nullable=True)

    # Status workflow: ordered -> arrived -> grn_verified -> qc_in_progress
    #   <-> returned_to_vendor -> completed. Also: cancelled (before receiving)
    status = Column(String(50), default=PurchaseOrderStatus.ORDERED.value, nullable=False, index=True)

    # Financials
    subtotal = Column(Numeric(18, 4), default=0, nullable=False)
    discount_percent = Column(Numeric(9, 4), default=0, nullable=False)
    discount_amount = Column(Numeric(18, 4), default=0, nullable=False)
    tax_percent = Column(Numeric(9, 4), default=0, nullable=False)
    tax_amount = Column(Numeric(18, 4), default=0, nullable=False)
    total_amount = Column(Numeric(18, 4), default=0, nullable=False)

    notes = Column(Text, nullable=True)

    # Lifecycle timestamps
    arrived_at = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)
    cancelled_at = Column(DateTime, nullable=True)
    # Set exactly once, in the same transaction as the completed transition
    inventory_posted_at = Column(DateTime, nullable=True)

    # Audit
    created_by = Column(String(100), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    # Relationships
    lines = relationship(
        "PurchaseOrderLine",
        back_populates="purchase_order",
        cascade="all, delete-orphan",
        order_by="PurchaseOrderLine.line_number",
    )
    receipts = relationship(
        "GoodsReceipt",
        back_populates="purchase_order",
        order_by="GoodsReceipt.id",
    )

    __table_args__ = (
        CheckConstraint("discount_percent >= 0 AND discount_percent <= 100", name="ck_po_discount_pct"),
        CheckConstraint("tax_percent >= 0", name="ck_po_tax_pct_nonneg"),
    )

    def line_for_material(self, material_id: int):
        """Return the ordered line for a material, or None."""
        for line in self.lines:
            if line.material_id == material_id:
                return line
        return None

    def __repr__(self):
        return f"<PurchaseOrder {self.po_number}: {self.status}>"


class PurchaseOrderLine(Base):
    """Ordered item - one per material on the order"""
    __tablename__ = "purchase_order_lines"

    id = Column(Integer, primary_key=True, index=True)

    purchase_order_id = Column(Integer, ForeignKey('purchase_orders.id', ondelete='CASCADE'), nullable=False)

    # Line number for ordering
    line_number = Column(Integer, nullable=False)

    material_id = Column(Integer, ForeignKey('raw_materials.id'), nullable=False)
    material_name = Column(String(255), nullable=True)  # Denormalized for display

    # Fixed once the order is placed; ceiling for all receipts
    quantity_ordered = Column(Numeric(18, 4), nullable=False)
    unit = Column(String(20), nullable=True)

    unit_price = Column(Numeric(18, 4), nullable=False, default=0)
    line_total = Column(Numeric(18, 4), nullable=False, default=0)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    purchase_order = relationship("PurchaseOrder", back_populates="lines")
    material = relationship("RawMaterial")

    __table_args__ = (
        UniqueConstraint("purchase_order_id", "material_id", name="uq_po_line_material"),
        CheckConstraint("quantity_ordered > 0", name="ck_po_line_qty_pos"),
        CheckConstraint("unit_price >= 0", name="ck_po_line_unit_price_nonneg"),
    )

    def __repr__(self):
        return f"<PurchaseOrderLine {self.line_number}: {self.material_id} x {self.quantity_ordered}>"
