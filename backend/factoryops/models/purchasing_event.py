"""
Purchasing Event Model

Tracks activity history for purchase orders - status changes, receipts,
inspections, stock postings. Provides the audit trail for the order.
"""
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Text, Date
from sqlalchemy.orm import relationship
from datetime import datetime

from factoryops.db.base import Base


class PurchasingEvent(Base):
    """Purchasing Event - Activity log entry for a purchase order"""
    __tablename__ = "purchasing_events"

    id = Column(Integer, primary_key=True, index=True)

    purchase_order_id = Column(
        Integer,
        ForeignKey("purchase_orders.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    # created, arrived, receipt, replacement_receipt, qc_recorded,
    # status_change, inventory_posted, posting_failed, cancelled
    event_type = Column(String(50), nullable=False, index=True)

    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)

    # For status changes
    old_value = Column(String(100), nullable=True)
    new_value = Column(String(100), nullable=True)

    # When the event actually occurred (user-entered), distinct from created_at
    event_date = Column(Date, nullable=True, index=True)

    # Examples: receipt_number=GRN-2026-0001, material_id=12
    metadata_key = Column(String(100), nullable=True)
    metadata_value = Column(String(255), nullable=True)

    actor = Column(String(100), nullable=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)

    purchase_order = relationship("PurchaseOrder", backref="events")

    def __repr__(self):
        return f"<PurchasingEvent {self.event_type} for PO-{self.purchase_order_id}>"
