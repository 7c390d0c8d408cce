"""
Integration Tests for the goods receipt workflow

Approval moves stock and posts Dr Inventory / Cr offset in one
transaction; any failure leaves neither behind.
"""
from datetime import date

import pytest

from pks_ledger.exceptions import (
    AccountMisconfiguredError,
    InvalidTransitionError,
    PeriodClosedError,
    ValidationError,
)
from pks_ledger.models.accounting import JournalEntry, SystemAccountKey
from pks_ledger.models.inventory import StockLedgerLine
from pks_ledger.services.goods_receipt_service import GoodsReceiptService, ReceiptLineInput
from pks_ledger.services.inventory_service import InventoryService
from tests.factories import JAN_15, create_test_ledger, create_test_period, d


def _receipt(db_session, ledger, qty=100, unit_cost=5000, **kwargs):
    return GoodsReceiptService(db_session).create(
        company_id=1,
        date=kwargs.pop("on_date", JAN_15),
        warehouse_id=ledger["warehouse"].id,
        lines=[ReceiptLineInput(ledger["item"].id, d(qty), d(unit_cost))],
        source_ref="PO-0042",
        actor_id=1,
        **kwargs
    )


class TestGoodsReceiptApproval:

    def test_purchase_receipt_moves_stock_and_posts_gl(self, db_session, ledger):
        receipt = _receipt(db_session, ledger)
        assert receipt.doc_number == "GR/2025/01/0001"
        assert receipt.status == "DRAFT"

        approved = GoodsReceiptService(db_session).approve(receipt.id, actor_id=2)

        balance = InventoryService(db_session).query(ledger["item"].id, ledger["warehouse"].id)
        assert balance.qty_on_hand == d(100)
        assert balance.avg_cost == d(5000)

        assert approved.status == "APPROVED"
        assert approved.gl_status == "POSTED"
        assert approved.approved_by == 2
        entry = db_session.query(JournalEntry).one()
        assert approved.journal_entry_id == entry.id
        assert entry.source_type == "GoodsReceipt"
        assert entry.source_id == receipt.id
        assert len(entry.lines) == 2
        assert entry.total_debit == entry.total_credit == d(500000)
        debit, credit = entry.lines
        assert debit.account_id == ledger["inventory"].id
        assert credit.account_id == ledger["ap_tbs"].id

    def test_other_receipt_credits_cash(self, db_session, ledger):
        receipt = _receipt(db_session, ledger, qty=2, unit_cost=75000, source_type="OTHER")
        GoodsReceiptService(db_session).approve(receipt.id)

        entry = db_session.query(JournalEntry).one()
        assert entry.lines[1].account_id == ledger["cash"].id

    def test_approving_twice_posts_once(self, db_session, ledger):
        receipt = _receipt(db_session, ledger)
        service = GoodsReceiptService(db_session)
        service.approve(receipt.id)

        with pytest.raises(InvalidTransitionError):
            service.approve(receipt.id)

        assert db_session.query(JournalEntry).count() == 1
        assert InventoryService(db_session).query(ledger["item"].id, ledger["warehouse"].id).qty_on_hand == d(100)

    def test_closed_period_blocks_approval(self, db_session, ledger):
        receipt = _receipt(db_session, ledger)
        create_test_period(db_session, year=2025, month=1, is_closed=True)

        with pytest.raises(PeriodClosedError):
            GoodsReceiptService(db_session).approve(receipt.id)

        assert GoodsReceiptService(db_session).get(receipt.id).status == "DRAFT"
        assert db_session.query(StockLedgerLine).count() == 0

    def test_missing_inventory_mapping_rolls_back_stock(self, db_session):
        ledger = create_test_ledger(db_session, skip_keys=(SystemAccountKey.INVENTORY_GENERAL,))
        receipt = _receipt(db_session, ledger)

        with pytest.raises(AccountMisconfiguredError) as exc:
            GoodsReceiptService(db_session).approve(receipt.id)

        assert exc.value.details["key"] == "INVENTORY_GENERAL"
        balance = InventoryService(db_session).query(ledger["item"].id, ledger["warehouse"].id)
        assert balance.qty_on_hand == 0
        refreshed = GoodsReceiptService(db_session).get(receipt.id)
        assert refreshed.status == "DRAFT"
        assert refreshed.gl_status == "PENDING"

    def test_zero_value_receipt_skips_gl(self, db_session, ledger):
        receipt = _receipt(db_session, ledger, qty=3, unit_cost=0)
        approved = GoodsReceiptService(db_session).approve(receipt.id)

        assert approved.status == "APPROVED"
        assert approved.gl_status == "PENDING"
        assert db_session.query(JournalEntry).count() == 0


class TestGoodsReceiptDrafts:

    def test_update_replaces_lines(self, db_session, ledger):
        receipt = _receipt(db_session, ledger)
        updated = GoodsReceiptService(db_session).update(
            receipt.id,
            lines=[
                ReceiptLineInput(ledger["item"].id, d(10), d(100)),
                ReceiptLineInput(ledger["tbs"].id, d(20), d(50)),
            ],
            note="Revisi",
        )
        assert updated.note == "Revisi"
        assert [line.qty for line in updated.lines] == [d(10), d(20)]
        assert updated.total_value == d(2000)

    def test_approved_receipt_cannot_be_edited_or_deleted(self, db_session, ledger):
        receipt = _receipt(db_session, ledger)
        service = GoodsReceiptService(db_session)
        service.approve(receipt.id)

        with pytest.raises(InvalidTransitionError):
            service.update(receipt.id, note="late edit")
        with pytest.raises(InvalidTransitionError):
            service.delete(receipt.id)

    def test_loan_return_cannot_be_created_directly(self, db_session, ledger):
        with pytest.raises(ValidationError):
            _receipt(db_session, ledger, source_type="LOAN_RETURN")

    def test_inactive_warehouse_rejected(self, db_session, ledger):
        ledger["warehouse"].is_active = False
        db_session.commit()
        with pytest.raises(ValidationError):
            _receipt(db_session, ledger)

    def test_list_filters(self, db_session, ledger):
        _receipt(db_session, ledger)
        _receipt(db_session, ledger, on_date=date(2025, 2, 3), source_type="OTHER")
        service = GoodsReceiptService(db_session)

        assert len(service.list(1)) == 2
        assert [r.source_type for r in service.list(1, source_type="OTHER")] == ["OTHER"]
        assert [r.date for r in service.list(1, start_date=date(2025, 2, 1))] == [date(2025, 2, 3)]
