"""
Unit Tests for the Goods Receipt Service

Covers initial and replacement receipts: validation before mutation,
status advancement, numbering, and replacement warnings.
"""
import pytest
from decimal import Decimal

from factoryops.core.status_config import PurchaseOrderStatus
from factoryops.exceptions import DuplicateError, InvalidStateError, ValidationError
from factoryops.models.goods_receipt import GoodsReceipt, GoodsReceiptLine
from factoryops.models.purchasing_event import PurchasingEvent
from factoryops.schemas.purchasing import ReceiptLineCreate
from factoryops.services.goods_receipt_service import create_initial_receipt, create_replacement_receipt
from factoryops.services.quality_control import record_inspection
from tests.factories import (
    create_test_material, create_test_purchase_order, reset_sequences, RecordingPoster,
)


def _lines(*pairs):
    return [ReceiptLineCreate(material_id=m.id, received_qty=Decimal(str(q))) for m, q in pairs]


class TestCreateInitialReceipt:
    """Tests for create_initial_receipt"""

    @pytest.fixture(autouse=True)
    def setup(self, db_session):
        reset_sequences()
        self.steel = create_test_material(db_session, name="Steel")
        self.copper = create_test_material(db_session, name="Copper")
        self.po = create_test_purchase_order(
            db_session,
            lines=[
                {"material": self.steel, "quantity": 100},
                {"material": self.copper, "quantity": 50},
            ],
        )

    def test_creates_pending_lines(self, db_session):
        result = create_initial_receipt(db_session, self.po, _lines((self.steel, 100), (self.copper, 50)))

        receipt = result.receipt
        assert receipt.kind == "initial"
        assert receipt.receipt_number.startswith("GRN-")
        assert len(receipt.lines) == 2
        for line in receipt.lines:
            assert line.defective_qty == Decimal("0")
            assert line.accepted_qty == line.received_qty
            assert line.qc_status == "pending"
        steel_line = next(line for line in receipt.lines if line.material_id == self.steel.id)
        assert steel_line.ordered_qty == Decimal("100")
        assert steel_line.material_name == "Steel"

    def test_receiving_ordered_po_records_arrival_then_grn_verified(self, db_session):
        result = create_initial_receipt(db_session, self.po, _lines((self.steel, 100)))

        assert self.po.status == PurchaseOrderStatus.GRN_VERIFIED.value
        assert self.po.arrived_at is not None
        assert result.evaluation.status == "grn_verified"
        assert result.evaluation.previous_status == "ordered"
        assert result.evaluation.changed

        transitions = [
            (e.old_value, e.new_value)
            for e in db_session.query(PurchasingEvent).filter_by(event_type="status_change").order_by(PurchasingEvent.id)
        ]
        assert transitions == [("ordered", "arrived"), ("arrived", "grn_verified")]

    def test_zero_quantity_lines_are_not_stored(self, db_session):
        result = create_initial_receipt(db_session, self.po, _lines((self.steel, 40), (self.copper, 0)))

        assert [line.material_id for line in result.receipt.lines] == [self.steel.id]

    def test_all_zero_quantities_rejected(self, db_session):
        with pytest.raises(ValidationError):
            create_initial_receipt(db_session, self.po, _lines((self.steel, 0), (self.copper, 0)))

        assert db_session.query(GoodsReceipt).count() == 0
        assert self.po.status == "ordered"

    def test_empty_receipt_rejected(self, db_session):
        with pytest.raises(ValidationError):
            create_initial_receipt(db_session, self.po, [])

    def test_unknown_material_rejects_whole_receipt(self, db_session):
        """One valid line and one unknown material: nothing is stored."""
        lines = _lines((self.steel, 100)) + [ReceiptLineCreate(material_id=9999, received_qty=Decimal("5"))]

        with pytest.raises(ValidationError) as exc_info:
            create_initial_receipt(db_session, self.po, lines)

        assert exc_info.value.details["material_ids"] == [9999]
        assert db_session.query(GoodsReceipt).count() == 0
        assert db_session.query(GoodsReceiptLine).count() == 0
        assert self.po.status == "ordered"
        assert self.po.receipts == []

    def test_material_not_on_order_rejected(self, db_session):
        other = create_test_material(db_session, name="Aluminium")

        with pytest.raises(ValidationError):
            create_initial_receipt(db_session, self.po, _lines((self.steel, 10), (other, 10)))

        assert db_session.query(GoodsReceipt).count() == 0

    def test_duplicate_material_in_receipt_rejected(self, db_session):
        with pytest.raises(ValidationError):
            create_initial_receipt(db_session, self.po, _lines((self.steel, 10), (self.steel, 10)))

    def test_negative_quantity_rejected(self, db_session):
        line = ReceiptLineCreate.model_construct(material_id=self.steel.id, received_qty=Decimal("-1"))

        with pytest.raises(ValidationError):
            create_initial_receipt(db_session, self.po, [line])

    def test_completed_order_rejected(self, db_session):
        self.po.status = "completed"
        db_session.flush()

        with pytest.raises(InvalidStateError):
            create_initial_receipt(db_session, self.po, _lines((self.steel, 10)))

    def test_cancelled_order_rejected(self, db_session):
        self.po.status = "cancelled"
        db_session.flush()

        with pytest.raises(InvalidStateError):
            create_initial_receipt(db_session, self.po, _lines((self.steel, 10)))

    def test_explicit_receipt_number_and_duplicate(self, db_session):
        create_initial_receipt(db_session, self.po, _lines((self.steel, 10)), receipt_number="GRN-MANUAL-1")

        with pytest.raises(DuplicateError):
            create_initial_receipt(db_session, self.po, _lines((self.steel, 10)), receipt_number="GRN-MANUAL-1")

    def test_generated_numbers_increment(self, db_session):
        first = create_initial_receipt(db_session, self.po, _lines((self.steel, 10))).receipt
        second = create_initial_receipt(db_session, self.po, _lines((self.steel, 10))).receipt

        assert first.receipt_number.endswith("-0001")
        assert second.receipt_number.endswith("-0002")

    def test_records_receipt_event(self, db_session):
        result = create_initial_receipt(db_session, self.po, _lines((self.steel, 10)))

        event = db_session.query(PurchasingEvent).filter_by(event_type="receipt").one()
        assert event.metadata_value == result.receipt.receipt_number


class TestCreateReplacementReceipt:
    """Tests for create_replacement_receipt"""

    @pytest.fixture(autouse=True)
    def setup(self, db_session):
        reset_sequences()
        self.steel = create_test_material(db_session, name="Steel")
        self.copper = create_test_material(db_session, name="Copper")
        self.po = create_test_purchase_order(
            db_session,
            lines=[
                {"material": self.steel, "quantity": 100},
                {"material": self.copper, "quantity": 50},
            ],
        )
        self.poster = RecordingPoster()
        result = create_initial_receipt(db_session, self.po, _lines((self.steel, 100), (self.copper, 50)))
        self.initial = result.receipt
        steel_line = next(rl for rl in self.initial.lines if rl.material_id == self.steel.id)
        copper_line = next(rl for rl in self.initial.lines if rl.material_id == self.copper.id)
        record_inspection(db_session, self.po, self.initial.id, steel_line.id, Decimal("20"), poster=self.poster)
        record_inspection(db_session, self.po, self.initial.id, copper_line.id, Decimal("0"), poster=self.poster)

    def test_creates_single_line_replacement(self, db_session):
        assert self.po.status == "returned_to_vendor"

        result = create_replacement_receipt(db_session, self.po, self.steel.id, Decimal("20"))

        receipt = result.receipt
        assert receipt.kind == "replacement"
        assert receipt.replacement_for_receipt_id == self.initial.id
        assert len(receipt.lines) == 1
        assert receipt.lines[0].qc_status == "pending"
        assert receipt.lines[0].defective_qty == Decimal("0")
        assert result.warnings == []
        # Replacement on its way: back to inspection
        assert self.po.status == "qc_in_progress"

    def test_material_without_defects_is_invalid_state(self, db_session):
        receipts_before = db_session.query(GoodsReceipt).count()

        with pytest.raises(InvalidStateError):
            create_replacement_receipt(db_session, self.po, self.copper.id, Decimal("5"))

        assert db_session.query(GoodsReceipt).count() == receipts_before
        assert self.po.status == "returned_to_vendor"

    def test_over_replacement_warns_but_records(self, db_session):
        result = create_replacement_receipt(db_session, self.po, self.steel.id, Decimal("30"))

        assert result.receipt.id is not None
        assert len(result.warnings) == 1
        assert "exceeds" in result.warnings[0]

    def test_second_replacement_while_first_in_flight_warns(self, db_session):
        create_replacement_receipt(db_session, self.po, self.steel.id, Decimal("20"))

        result = create_replacement_receipt(db_session, self.po, self.steel.id, Decimal("5"))

        assert result.warnings

    def test_non_positive_quantity_rejected(self, db_session):
        with pytest.raises(ValidationError):
            create_replacement_receipt(db_session, self.po, self.steel.id, Decimal("0"))

    def test_material_not_on_order_rejected(self, db_session):
        with pytest.raises(ValidationError):
            create_replacement_receipt(db_session, self.po, 9999, Decimal("5"))

    def test_replacement_for_must_match_order_and_material(self, db_session):
        with pytest.raises(ValidationError):
            create_replacement_receipt(
                db_session, self.po, self.steel.id, Decimal("20"), replacement_for_receipt_id=424242,
            )

    def test_explicit_replacement_for(self, db_session):
        result = create_replacement_receipt(
            db_session, self.po, self.steel.id, Decimal("20"), replacement_for_receipt_id=self.initial.id,
        )

        assert result.receipt.replacement_for is self.initial

    def test_completed_order_rejected(self, db_session):
        self.po.status = "completed"

        with pytest.raises(InvalidStateError):
            create_replacement_receipt(db_session, self.po, self.steel.id, Decimal("20"))
