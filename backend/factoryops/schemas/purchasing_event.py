"""
Purchasing Event Schemas

Pydantic models for the purchase order activity timeline
"""
from datetime import datetime, date
from enum import Enum
from typing import Optional
from pydantic import BaseModel


class PurchasingEventType(str, Enum):
    """Types of purchasing events"""
    CREATED = "created"
    ARRIVED = "arrived"
    RECEIPT = "receipt"
    REPLACEMENT_RECEIPT = "replacement_receipt"
    QC_RECORDED = "qc_recorded"
    STATUS_CHANGE = "status_change"
    INVENTORY_POSTED = "inventory_posted"
    POSTING_FAILED = "posting_failed"
    CANCELLED = "cancelled"


class PurchasingEventResponse(BaseModel):
    """Schema for purchasing event response"""
    id: int
    purchase_order_id: int
    actor: Optional[str] = None
    event_type: str
    title: str
    description: Optional[str] = None
    old_value: Optional[str] = None
    new_value: Optional[str] = None
    event_date: Optional[date] = None
    metadata_key: Optional[str] = None
    metadata_value: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class PurchasingEventListResponse(BaseModel):
    """Schema for list of purchasing events"""
    items: list[PurchasingEventResponse]
    total: int
