"""
Unit Tests for Inventory Posters

The HTTP poster is exercised against a fake requests session so no network
is involved.
"""
import pytest
import requests
from decimal import Decimal

from factoryops.exceptions import PostingError
from factoryops.models.inventory import InventoryTransaction
from factoryops.services.inventory_poster import HttpInventoryPoster, LedgerInventoryPoster
from tests.factories import create_test_material, reset_sequences


class FakeResponse:
    def __init__(self, status_code=201, text=""):
        self.status_code = status_code
        self.text = text


class FakeSession:
    """Stands in for requests.Session; records calls, returns or raises."""

    def __init__(self, response=None, error=None):
        self.response = response or FakeResponse()
        self.error = error
        self.calls = []

    def post(self, url, json=None, headers=None, timeout=None):
        self.calls.append({"url": url, "json": json, "headers": headers, "timeout": timeout})
        if self.error:
            raise self.error
        return self.response


class TestLedgerInventoryPoster:
    """Tests for LedgerInventoryPoster"""

    @pytest.fixture(autouse=True)
    def setup(self, db_session):
        reset_sequences()
        self.material = create_test_material(db_session, current_stock=Decimal("5"))
        self.poster = LedgerInventoryPoster(db_session)

    def test_credit_increases_stock_and_writes_transaction(self, db_session):
        self.poster.credit_material(self.material.id, Decimal("100"), order_id=7, order_number="PO-2026-007")
        db_session.flush()

        assert self.material.current_stock == Decimal("105")
        txn = db_session.query(InventoryTransaction).one()
        assert txn.material_id == self.material.id
        assert txn.quantity == Decimal("100")
        assert txn.transaction_type == "receipt"
        assert txn.reference_type == "purchase_order"
        assert txn.reference_id == 7

    def test_unknown_material_raises(self):
        with pytest.raises(PostingError) as exc_info:
            self.poster.credit_material(9999, Decimal("1"), order_id=1, order_number="PO-X")

        assert exc_info.value.details["reason"] == "unknown_material"

    def test_inactive_material_raises(self, db_session):
        self.material.active = False
        db_session.flush()

        with pytest.raises(PostingError) as exc_info:
            self.poster.credit_material(self.material.id, Decimal("1"), order_id=1, order_number="PO-X")

        assert exc_info.value.details["material_id"] == self.material.id

    @pytest.mark.parametrize("qty", [Decimal("0"), Decimal("-3")])
    def test_non_positive_quantity_raises(self, qty):
        with pytest.raises(PostingError):
            self.poster.credit_material(self.material.id, qty, order_id=1, order_number="PO-X")

        assert self.material.current_stock == Decimal("5")


class TestHttpInventoryPoster:
    """Tests for HttpInventoryPoster"""

    def _poster(self, session):
        return HttpInventoryPoster("http://ledger.local/api/", timeout=2.5, session=session)

    def test_posts_credit_with_idempotency_key(self):
        session = FakeSession()

        self._poster(session).credit_material(3, Decimal("12.5"), order_id=9, order_number="PO-2026-009")

        call = session.calls[0]
        assert call["url"] == "http://ledger.local/api/materials/3/credits"
        assert call["json"]["quantity"] == "12.5"
        assert call["json"]["reference_id"] == 9
        assert call["headers"] == {"Idempotency-Key": "PO-2026-009:3"}
        assert call["timeout"] == 2.5

    def test_timeout_raises_posting_error(self):
        session = FakeSession(error=requests.exceptions.Timeout("slow"))

        with pytest.raises(PostingError) as exc_info:
            self._poster(session).credit_material(3, Decimal("1"), order_id=9, order_number="PO-1")

        assert exc_info.value.details["reason"] == "timeout"

    def test_connection_error_raises_posting_error(self):
        session = FakeSession(error=requests.exceptions.ConnectionError("refused"))

        with pytest.raises(PostingError):
            self._poster(session).credit_material(3, Decimal("1"), order_id=9, order_number="PO-1")

    def test_rejection_raises_posting_error(self):
        session = FakeSession(response=FakeResponse(status_code=422, text="unknown material"))

        with pytest.raises(PostingError) as exc_info:
            self._poster(session).credit_material(3, Decimal("1"), order_id=9, order_number="PO-1")

        assert exc_info.value.details["reason"] == "unknown material"
        assert exc_info.value.status_code == 502
