"""
End-to-end receiving flows through the API.

Order placed -> delivered -> inspected -> defective units returned ->
replacement delivered and inspected -> completed with stock posted once.
"""
import pytest
from decimal import Decimal

from factoryops.models.goods_receipt import GoodsReceipt, GoodsReceiptLine
from factoryops.models.inventory import InventoryTransaction, RawMaterial
from factoryops.models.purchase_return import PurchaseReturn

BASE = "/api/v1/purchase-orders"


def _line_id(receipt, material_id):
    return next(line["id"] for line in receipt["lines"] if line["material_id"] == material_id)


def _qc(client, po_id, receipt, material_id, defective):
    url = f"{BASE}/{po_id}/receipts/{receipt['id']}/lines/{_line_id(receipt, material_id)}/qc"
    return client.patch(url, json={"defective_qty": str(defective)})


@pytest.mark.integration
class TestReplacementFlow:
    """Single-material order of 100 units, 20 defective on first delivery"""

    @pytest.fixture(autouse=True)
    def setup(self, client, db_session, sample_material):
        self.client = client
        self.db = db_session
        self.material = sample_material
        po = client.post(f"{BASE}/", json={
            "supplier_name": "Acme Metals",
            "lines": [{"material_id": sample_material.id, "quantity_ordered": "100", "unit_price": "4.00"}],
        }).json()
        self.po_id = po["id"]

    def _defective_delivery(self):
        receipt = self.client.post(f"{BASE}/{self.po_id}/receipts", json={
            "lines": [{"material_id": self.material.id, "received_qty": "100"}],
        }).json()["receipt"]
        return receipt, _qc(self.client, self.po_id, receipt, self.material.id, 20)

    def test_defects_send_order_back_to_vendor(self):
        _, response = self._defective_delivery()

        assert response.status_code == 200
        data = response.json()
        snap = data["pending_quantities"][str(self.material.id)]
        assert Decimal(snap["total_accepted"]) == Decimal("80")
        assert Decimal(snap["pending_qty"]) == Decimal("20")
        assert snap["replacement_status"] == "needs_replacement"
        assert data["status"] == "returned_to_vendor"

        ret = self.db.query(PurchaseReturn).one()
        assert ret.quantity_returned == Decimal("20")

    def test_replacement_completes_and_posts_accepted_total(self):
        self._defective_delivery()

        replacement = self.client.post(f"{BASE}/{self.po_id}/replacement-receipts", json={
            "material_id": self.material.id,
            "received_qty": "20",
        }).json()["receipt"]
        response = _qc(self.client, self.po_id, replacement, self.material.id, 0)

        data = response.json()
        snap = data["pending_quantities"][str(self.material.id)]
        assert Decimal(snap["total_accepted"]) == Decimal("100")
        assert Decimal(snap["total_received"]) == Decimal("120")
        assert Decimal(snap["pending_qty"]) == Decimal("0")
        assert data["status"] == "completed"
        assert data["inventory_posted"] is True

        self.db.expire_all()
        assert self.db.get(RawMaterial, self.material.id).current_stock == Decimal("100")
        txns = self.db.query(InventoryTransaction).all()
        assert len(txns) == 1
        assert txns[0].quantity == Decimal("100")

        # Re-evaluating a completed order never posts again
        again = self.client.post(f"{BASE}/{self.po_id}/evaluate")
        assert again.json()["status"] == "completed"
        assert again.json()["inventory_posted"] is False
        assert self.db.query(InventoryTransaction).count() == 1

    def test_replacement_for_clean_material_changes_nothing(self, db_session):
        receipt = self.client.post(f"{BASE}/{self.po_id}/receipts", json={
            "lines": [{"material_id": self.material.id, "received_qty": "60"}],
        }).json()["receipt"]
        _qc(self.client, self.po_id, receipt, self.material.id, 0)
        before = self.client.get(f"{BASE}/{self.po_id}/pending-quantities").json()

        response = self.client.post(f"{BASE}/{self.po_id}/replacement-receipts", json={
            "material_id": self.material.id,
            "received_qty": "10",
        })

        assert response.status_code == 400
        assert response.json()["error"] == "INVALID_STATE"
        assert self.client.get(f"{BASE}/{self.po_id}/pending-quantities").json() == before
        assert db_session.query(GoodsReceipt).count() == 1

    def test_receipt_with_unknown_material_is_rejected_whole(self):
        response = self.client.post(f"{BASE}/{self.po_id}/receipts", json={
            "lines": [
                {"material_id": self.material.id, "received_qty": "100"},
                {"material_id": 424242, "received_qty": "10"},
            ],
        })

        assert response.status_code == 400
        assert response.json()["error"] == "VALIDATION_ERROR"
        assert self.db.query(GoodsReceipt).count() == 0
        assert self.db.query(GoodsReceiptLine).count() == 0
        order = self.client.get(f"{BASE}/{self.po_id}").json()
        assert order["status"] == "ordered"
        assert order["receipts"] == []


@pytest.mark.integration
class TestPostingFailureRecovery:
    """Completion whose stock posting fails, then succeeds on retry"""

    def test_failed_posting_keeps_inspection_and_retries(self, client, db_session, sample_material):
        po_id = client.post(f"{BASE}/", json={
            "lines": [{"material_id": sample_material.id, "quantity_ordered": "10"}],
        }).json()["id"]
        receipt = client.post(f"{BASE}/{po_id}/receipts", json={
            "lines": [{"material_id": sample_material.id, "received_qty": "10"}],
        }).json()["receipt"]

        # Material retired in the stock ledger before QC finishes
        sample_material.active = False
        db_session.commit()

        response = _qc(client, po_id, receipt, sample_material.id, 0)

        assert response.status_code == 502
        assert response.json()["error"] == "POSTING_ERROR"
        order = client.get(f"{BASE}/{po_id}").json()
        assert order["status"] == "grn_verified"
        assert order["inventory_posted_at"] is None
        assert order["receipts"][0]["lines"][0]["qc_status"] == "completed"
        events = client.get(f"{BASE}/{po_id}/events").json()["items"]
        assert "posting_failed" in {e["event_type"] for e in events}

        db_session.expire_all()
        material = db_session.get(RawMaterial, sample_material.id)
        material.active = True
        db_session.commit()

        retry = client.post(f"{BASE}/{po_id}/evaluate")

        assert retry.status_code == 200
        assert retry.json()["status"] == "completed"
        assert retry.json()["inventory_posted"] is True
        db_session.expire_all()
        assert db_session.get(RawMaterial, sample_material.id).current_stock == Decimal("10")
