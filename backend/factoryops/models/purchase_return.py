"""
Purchase Return model

One return-to-vendor entry per inspected receipt line that has defective units.
"""
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Text, Numeric
from sqlalchemy.orm import relationship
from datetime import datetime

from factoryops.db.base import Base
from factoryops.core.status_config import ReturnStatus


class PurchaseReturn(Base):
    """Defective units sent back to the supplier"""
    __tablename__ = "purchase_returns"

    id = Column(Integer, primary_key=True, index=True)

    purchase_order_id = Column(
        Integer,
        ForeignKey("purchase_orders.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    receipt_id = Column(Integer, ForeignKey("goods_receipts.id"), nullable=False, index=True)
    receipt_line_id = Column(Integer, ForeignKey("goods_receipt_lines.id"), nullable=False, unique=True)
    material_id = Column(Integer, ForeignKey("raw_materials.id"), nullable=False)

    quantity_returned = Column(Numeric(18, 4), nullable=False)
    remarks = Column(Text, nullable=True)

    # pending, cancelled
    status = Column(String(20), default=ReturnStatus.PENDING.value, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    receipt_line = relationship("GoodsReceiptLine")

    def __repr__(self):
        return f"<PurchaseReturn line={self.receipt_line_id}: {self.quantity_returned} ({self.status})>"
