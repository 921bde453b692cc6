"""
Inventory Poster

Credits accepted quantities into raw material stock when a purchase order
completes. The completion evaluator calls ``credit_material`` once per
material, inside a savepoint, and only for orders that have not been posted
yet; posters therefore do not track which orders they have already seen.

Two backends:
- ``LedgerInventoryPoster``: updates RawMaterial.current_stock and writes an
  InventoryTransaction in the same database session
- ``HttpInventoryPoster``: calls an external stock ledger service with a
  bounded timeout
"""
from abc import ABC, abstractmethod
from datetime import date
from decimal import Decimal
from typing import Optional

import requests
from sqlalchemy.orm import Session

from factoryops.core.config import settings
from factoryops.exceptions import PostingError
from factoryops.logging_config import get_logger
from factoryops.models.inventory import InventoryTransaction, RawMaterial

logger = get_logger(__name__)


class InventoryPoster(ABC):
    """Stock ledger collaborator"""

    @abstractmethod
    def credit_material(
        self,
        material_id: int,
        quantity: Decimal,
        *,
        order_id: int,
        order_number: str,
    ) -> None:
        """
        Credit ``quantity`` units of a material into stock.

        Raises:
            PostingError: if the ledger rejects the credit or cannot be reached
        """


class LedgerInventoryPoster(InventoryPoster):
    """Posts into the local raw material ledger"""

    def __init__(self, db: Session):
        self.db = db

    def credit_material(
        self,
        material_id: int,
        quantity: Decimal,
        *,
        order_id: int,
        order_number: str,
    ) -> None:
        if quantity is None or quantity <= 0:
            raise PostingError(
                f"Cannot credit non-positive quantity {quantity}",
                material_id=material_id,
                reason="non_positive_quantity",
            )

        material = (
            self.db.query(RawMaterial)
            .filter(RawMaterial.id == material_id)
            .with_for_update()
            .first()
        )
        if material is None:
            raise PostingError(
                f"Material {material_id} does not exist in the stock ledger",
                material_id=material_id,
                reason="unknown_material",
            )
        if not material.active:
            raise PostingError(
                f"Material {material.code} is inactive",
                material_id=material_id,
                reason="inactive_material",
            )

        material.current_stock = (material.current_stock or Decimal("0")) + quantity
        self.db.add(InventoryTransaction(
            material_id=material_id,
            transaction_type="receipt",
            reference_type="purchase_order",
            reference_id=order_id,
            quantity=quantity,
            transaction_date=date.today(),
            notes=f"Accepted quantity from {order_number}",
        ))

        logger.info(
            "Credited material stock",
            extra={
                "material_id": material_id,
                "quantity": str(quantity),
                "po_number": order_number,
                "new_stock": str(material.current_stock),
            },
        )


class HttpInventoryPoster(InventoryPoster):
    """Posts to an external stock ledger service over HTTP"""

    def __init__(
        self,
        base_url: str,
        timeout: float,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def credit_material(
        self,
        material_id: int,
        quantity: Decimal,
        *,
        order_id: int,
        order_number: str,
    ) -> None:
        url = f"{self.base_url}/materials/{material_id}/credits"
        payload = {
            "quantity": str(quantity),
            "reference_type": "purchase_order",
            "reference_id": order_id,
            "reference": order_number,
        }
        # Same key on every retry so a credit that landed before a later
        # material failed is not applied twice by the ledger
        headers = {"Idempotency-Key": f"{order_number}:{material_id}"}

        try:
            response = self.session.post(url, json=payload, headers=headers, timeout=self.timeout)
        except requests.exceptions.Timeout as e:
            logger.warning(
                "Stock ledger request timed out",
                extra={"material_id": material_id, "po_number": order_number},
            )
            raise PostingError(
                "Stock ledger request timed out",
                material_id=material_id,
                reason="timeout",
            ) from e
        except requests.exceptions.RequestException as e:
            logger.warning(
                f"Stock ledger request failed: {e}",
                extra={"material_id": material_id, "po_number": order_number},
            )
            raise PostingError(
                "Stock ledger request failed",
                material_id=material_id,
                reason=str(e),
            ) from e

        if response.status_code >= 400:
            raise PostingError(
                f"Stock ledger rejected credit (HTTP {response.status_code})",
                material_id=material_id,
                reason=response.text[:200] if response.text else f"HTTP {response.status_code}",
            )


def get_inventory_poster(db: Session) -> InventoryPoster:
    """Build the configured poster for this session."""
    if settings.INVENTORY_POSTER == "http":
        return HttpInventoryPoster(
            settings.INVENTORY_POSTER_URL,
            timeout=settings.INVENTORY_POSTING_TIMEOUT_SECONDS,
        )
    return LedgerInventoryPoster(db)
