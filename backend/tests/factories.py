"""
Test data factories for FactoryOps.

Provides functions to create test entities with sensible defaults, plus a
recording inventory poster for completion tests.

Usage:
    from tests.factories import create_test_material, create_test_purchase_order

    def test_something(db_session):
        material = create_test_material(db_session, name="Steel Rod")
        po = create_test_purchase_order(db_session, lines=[{"material": material, "quantity": 100}])
"""
from datetime import datetime, date
from decimal import Decimal
from typing import Optional, List, Dict, Any, Iterable
from sqlalchemy.orm import Session

from factoryops.exceptions import PostingError
from factoryops.services.inventory_poster import InventoryPoster


# =============================================================================
# SEQUENCE MANAGEMENT
# =============================================================================

_sequences: Dict[str, int] = {}


def reset_sequences():
    """Reset all sequences. Call between tests for predictable IDs."""
    global _sequences
    _sequences = {}


def _next(name: str) -> int:
    """Get next sequence number for a given entity type."""
    _sequences[name] = _sequences.get(name, 0) + 1
    return _sequences[name]


def _code(prefix: str, name: str) -> str:
    """Generate a code like PO-TEST-2026-0001."""
    seq = _next(name)
    return f"{prefix}-TEST-{datetime.now().year}-{seq:04d}"


# =============================================================================
# MATERIAL FACTORY
# =============================================================================

def create_test_material(
    db: Session,
    code: Optional[str] = None,
    name: Optional[str] = None,
    unit: str = "KG",
    current_stock: Decimal = Decimal("0"),
    **overrides
) -> "RawMaterial":
    """
    Create a test raw material.

    Args:
        db: Database session
        code: Material code (auto-generated if not provided)
        name: Display name
        unit: Unit of measure
        current_stock: Opening stock
        **overrides: Additional field overrides

    Returns:
        Created RawMaterial instance
    """
    from factoryops.models.inventory import RawMaterial

    seq = _next("material")
    material = RawMaterial(
        code=code or f"RM-{seq:04d}",
        name=name or f"Test Material {seq}",
        unit=unit,
        current_stock=current_stock,
        active=overrides.pop("active", True),
        **overrides
    )
    db.add(material)
    db.flush()
    return material


# =============================================================================
# PURCHASE ORDER FACTORY
# =============================================================================

def create_test_purchase_order(
    db: Session,
    lines: Optional[List[Dict[str, Any]]] = None,
    **overrides
) -> "PurchaseOrder":
    """
    Create a test purchase order directly (bypasses placement validation).

    Args:
        db: Database session
        lines: List of {"material": RawMaterial, "quantity": int, "unit_price": Decimal}
        **overrides: Additional field overrides (status, po_number, ...)

    Returns:
        Created PurchaseOrder instance with lines
    """
    from factoryops.models.purchase_order import PurchaseOrder, PurchaseOrderLine

    po = PurchaseOrder(
        po_number=overrides.pop("po_number", None) or _code("PO", "purchase_order"),
        status=overrides.pop("status", "ordered"),
        order_date=overrides.pop("order_date", date.today()),
        supplier_ref=overrides.pop("supplier_ref", "SUP-001"),
        supplier_name=overrides.pop("supplier_name", "Test Supplier"),
        **overrides
    )

    subtotal = Decimal("0")
    for i, line_data in enumerate(lines or [], 1):
        material = line_data["material"]
        qty = Decimal(str(line_data.get("quantity", 1)))
        price = Decimal(str(line_data.get("unit_price", "1.00")))
        po.lines.append(PurchaseOrderLine(
            line_number=i,
            material_id=material.id,
            material_name=material.name,
            quantity_ordered=qty,
            unit=material.unit,
            unit_price=price,
            line_total=qty * price,
        ))
        subtotal += qty * price

    po.subtotal = subtotal
    po.total_amount = subtotal
    db.add(po)
    db.flush()
    return po


# =============================================================================
# INVENTORY POSTER DOUBLE
# =============================================================================

class RecordingPoster(InventoryPoster):
    """
    Inventory poster that records credits instead of touching stock.

    Args:
        fail_for: material ids whose credit raises PostingError
    """

    def __init__(self, fail_for: Iterable[int] = ()):
        self.fail_for = set(fail_for)
        self.credits: List[Dict[str, Any]] = []
        self.calls = 0

    def credit_material(self, material_id, quantity, *, order_id, order_number):
        self.calls += 1
        if material_id in self.fail_for:
            raise PostingError(
                f"Ledger rejected material {material_id}",
                material_id=material_id,
                reason="rejected_by_test",
            )
        self.credits.append({
            "material_id": material_id,
            "quantity": quantity,
            "order_id": order_id,
            "order_number": order_number,
        })

    def total_for(self, material_id: int) -> Decimal:
        return sum(
            (c["quantity"] for c in self.credits if c["material_id"] == material_id),
            Decimal("0"),
        )
