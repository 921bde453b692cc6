"""
Goods Receipt Note models

A receipt is immutable once created; only the QC fields of its lines change,
and only through the quality control service.
"""
from sqlalchemy import Column, Integer, String, DateTime, Text, Numeric, ForeignKey, Date, CheckConstraint
from sqlalchemy.orm import relationship
from datetime import datetime

from factoryops.db.base import Base
from factoryops.core.status_config import ReceiptKind, QCStatus


class GoodsReceipt(Base):
    """Goods Receipt Note - one per physical delivery"""
    __tablename__ = "goods_receipts"

    id = Column(Integer, primary_key=True, index=True)

    purchase_order_id = Column(
        Integer,
        ForeignKey("purchase_orders.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    # GRN-2026-0001
    receipt_number = Column(String(50), unique=True, nullable=False, index=True)
    receipt_date = Column(Date, nullable=False)

    # initial | replacement
    kind = Column(String(20), default=ReceiptKind.INITIAL.value, nullable=False)

    # Set only for replacement receipts
    replacement_for_receipt_id = Column(Integer, ForeignKey("goods_receipts.id"), nullable=True)

    remarks = Column(Text, nullable=True)

    created_by = Column(String(100), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    purchase_order = relationship("PurchaseOrder", back_populates="receipts")
    lines = relationship(
        "GoodsReceiptLine",
        back_populates="receipt",
        cascade="all, delete-orphan",
        order_by="GoodsReceiptLine.id",
    )
    replacement_for = relationship("GoodsReceipt", remote_side=[id])

    __table_args__ = (
        CheckConstraint("kind IN ('initial', 'replacement')", name="ck_gr_kind"),
    )

    @property
    def is_replacement(self) -> bool:
        return self.kind == ReceiptKind.REPLACEMENT.value

    def __repr__(self):
        return f"<GoodsReceipt {self.receipt_number} ({self.kind})>"


class GoodsReceiptLine(Base):
    """One material within a goods receipt"""
    __tablename__ = "goods_receipt_lines"

    id = Column(Integer, primary_key=True, index=True)

    receipt_id = Column(Integer, ForeignKey("goods_receipts.id", ondelete="CASCADE"), nullable=False, index=True)

    material_id = Column(Integer, ForeignKey("raw_materials.id"), nullable=False, index=True)
    material_name = Column(String(255), nullable=True)

    # Copy of the ordered quantity at receipt time, for display
    ordered_qty = Column(Numeric(18, 4), nullable=False)
    received_qty = Column(Numeric(18, 4), nullable=False)
    defective_qty = Column(Numeric(18, 4), default=0, nullable=False)
    # Always received_qty - defective_qty
    accepted_qty = Column(Numeric(18, 4), nullable=False)

    qc_status = Column(String(20), default=QCStatus.PENDING.value, nullable=False)
    qc_remarks = Column(Text, nullable=True)
    qc_recorded_at = Column(DateTime, nullable=True)
    qc_recorded_by = Column(String(100), nullable=True)

    receipt = relationship("GoodsReceipt", back_populates="lines")
    material = relationship("RawMaterial")

    __table_args__ = (
        CheckConstraint("received_qty >= 0", name="ck_gr_line_received_nonneg"),
        CheckConstraint("defective_qty >= 0", name="ck_gr_line_defective_nonneg"),
        CheckConstraint("defective_qty <= received_qty", name="ck_gr_line_defective_le_received"),
        CheckConstraint("accepted_qty + defective_qty = received_qty", name="ck_gr_line_accept_split"),
        CheckConstraint("qc_status IN ('pending', 'completed')", name="ck_gr_line_qc_status"),
    )

    @property
    def is_inspected(self) -> bool:
        return self.qc_status == QCStatus.COMPLETED.value

    def __repr__(self):
        return f"<GoodsReceiptLine {self.material_id}: {self.received_qty} ({self.qc_status})>"
