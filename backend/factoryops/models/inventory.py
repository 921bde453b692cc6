"""
Raw material models

RawMaterial is the catalog row looked up when validating receipts and the
stock balance credited when an order completes.
"""
from sqlalchemy import Column, Integer, String, Numeric, DateTime, Date, ForeignKey, Text, Boolean
from sqlalchemy.orm import relationship
from datetime import datetime

from factoryops.db.base import Base


class RawMaterial(Base):
    """Raw material catalog entry with on-hand stock"""
    __tablename__ = "raw_materials"

    id = Column(Integer, primary_key=True, index=True)
    code = Column(String(50), unique=True, nullable=False, index=True)
    name = Column(String(255), nullable=False)
    unit = Column(String(20), default="EA", nullable=False)

    current_stock = Column(Numeric(18, 4), default=0, nullable=False)

    active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    transactions = relationship("InventoryTransaction", back_populates="material")

    def __repr__(self):
        return f"<RawMaterial {self.code}: {self.current_stock} {self.unit}>"


class InventoryTransaction(Base):
    """Stock ledger entry - one per material credit"""
    __tablename__ = "inventory_transactions"

    id = Column(Integer, primary_key=True, index=True)

    material_id = Column(Integer, ForeignKey('raw_materials.id'), nullable=False, index=True)

    # receipt, adjustment
    transaction_type = Column(String(50), nullable=False)

    # purchase_order
    reference_type = Column(String(50), nullable=True)
    reference_id = Column(Integer, nullable=True, index=True)

    quantity = Column(Numeric(18, 4), nullable=False)

    notes = Column(Text, nullable=True)

    # When the stock movement actually occurred, distinct from created_at
    transaction_date = Column(Date, nullable=True, index=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    created_by = Column(String(100), nullable=True)

    material = relationship("RawMaterial", back_populates="transactions")

    def __repr__(self):
        return f"<InventoryTransaction {self.transaction_type}: {self.quantity}>"
