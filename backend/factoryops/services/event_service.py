"""
Event Service

Writes the purchase order activity timeline. Receiving, inspection,
status changes and stock postings all land here so the timeline endpoint
can replay what happened to an order.
"""
from datetime import date
from typing import Any, Optional
from sqlalchemy.orm import Session

from factoryops.models.purchasing_event import PurchasingEvent


def record_purchasing_event(
    db: Session,
    purchase_order_id: int,
    event_type: str,
    title: str,
    description: Optional[str] = None,
    old_value: Optional[str] = None,
    new_value: Optional[str] = None,
    event_date: Optional[date] = None,
    actor: Optional[str] = None,
    metadata_key: Optional[str] = None,
    metadata_value: Any = None,
) -> PurchasingEvent:
    """
    Add one timeline entry to the session.

    The entry joins the caller's unit of work: it is flushed and committed
    (or rolled back) together with the mutation it describes.

    Args:
        purchase_order_id: Order the entry belongs to
        event_type: A PurchasingEventType value
        title: One-line summary shown in the timeline
        old_value / new_value: Before and after, for status changes and
            re-recorded inspections
        event_date: Business date of the event, defaults to today
        actor: Free-text name of whoever triggered it
        metadata_key / metadata_value: One extra lookup pair, e.g.
            receipt_number or material_id; the value is stored as text
    """
    event = PurchasingEvent(
        purchase_order_id=purchase_order_id,
        actor=actor,
        event_type=event_type,
        title=title,
        description=description,
        old_value=old_value,
        new_value=new_value,
        event_date=event_date or date.today(),
        metadata_key=metadata_key,
        metadata_value=None if metadata_value is None else str(metadata_value),
    )
    db.add(event)
    return event
