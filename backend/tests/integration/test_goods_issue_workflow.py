"""
Integration Tests for goods issues and loans

Issues consume stock at the running average cost. Loans move value to
INVENTORY_ON_LOAN and come back through LOAN_RETURN receipts.
"""
from datetime import date

import pytest

from pks_ledger.exceptions import (
    AccountMisconfiguredError,
    InsufficientStockError,
    InvalidTransitionError,
    ValidationError,
)
from pks_ledger.models.accounting import JournalEntry, SystemAccountKey
from pks_ledger.models.inventory import StockLedgerLine
from pks_ledger.services.goods_issue_service import GoodsIssueService, IssueLineInput, LoanReturnLine
from pks_ledger.services.goods_receipt_service import GoodsReceiptService, ReceiptLineInput
from pks_ledger.services.inventory_service import InventoryService
from tests.factories import JAN_15, create_test_ledger, d


def _stock(db_session, ledger, qty, unit_cost, on_date=date(2025, 1, 2)):
    """Approved purchase receipt for the general item"""
    service = GoodsReceiptService(db_session)
    receipt = service.create(
        company_id=ledger["company_id"],
        date=on_date,
        warehouse_id=ledger["warehouse"].id,
        lines=[ReceiptLineInput(ledger["item"].id, d(qty), d(unit_cost))],
    )
    return service.approve(receipt.id)


def _issue(db_session, ledger, qty, purpose="ISSUE", **kwargs):
    return GoodsIssueService(db_session).create(
        company_id=ledger["company_id"],
        date=kwargs.pop("on_date", JAN_15),
        warehouse_id=ledger["warehouse"].id,
        lines=[IssueLineInput(ledger["item"].id, d(qty))],
        purpose=purpose,
        **kwargs
    )


def _on_hand(db_session, ledger):
    return InventoryService(db_session).query(ledger["item"].id, ledger["warehouse"].id)


class TestGoodsIssueApproval:

    def test_issue_consumes_at_average_cost(self, db_session, ledger):
        _stock(db_session, ledger, 100, 10, on_date=date(2025, 1, 2))
        _stock(db_session, ledger, 50, 16, on_date=date(2025, 1, 3))

        issue = _issue(db_session, ledger, 30, target_dept="Workshop", cost_center="CC-PRESS")
        assert issue.doc_number == "GI/2025/01/0001"
        approved = GoodsIssueService(db_session).approve(issue.id, actor_id=3)

        assert approved.status == "APPROVED"
        assert approved.gl_status == "POSTED"
        assert approved.lines[0].unit_cost == d(12)
        balance = _on_hand(db_session, ledger)
        assert balance.qty_on_hand == d(120)
        assert balance.avg_cost == d(12)

        entry = db_session.get(JournalEntry, approved.journal_entry_id)
        assert entry.total_debit == entry.total_credit == d(360)
        debit, credit = entry.lines
        assert debit.account_id == ledger["maintenance"].id
        assert debit.cost_center == "CC-PRESS"
        assert credit.account_id == ledger["inventory"].id

    @pytest.mark.parametrize(
        "purpose,role",
        [("PROD", "production"), ("SCRAP", "adjustment_loss")],
    )
    def test_purpose_selects_default_expense(self, db_session, ledger, purpose, role):
        _stock(db_session, ledger, 10, 100)
        issue = _issue(db_session, ledger, 4, purpose=purpose)
        approved = GoodsIssueService(db_session).approve(issue.id)

        entry = db_session.get(JournalEntry, approved.journal_entry_id)
        assert entry.lines[0].account_id == ledger[role].id

    def test_explicit_expense_account_wins(self, db_session, ledger):
        _stock(db_session, ledger, 10, 100)
        issue = _issue(db_session, ledger, 1, expense_account_id=ledger["production"].id)
        approved = GoodsIssueService(db_session).approve(issue.id)

        entry = db_session.get(JournalEntry, approved.journal_entry_id)
        assert entry.lines[0].account_id == ledger["production"].id

    def test_header_expense_account_rejected(self, db_session, ledger):
        with pytest.raises(ValidationError):
            _issue(db_session, ledger, 1, expense_account_id=ledger["headers"]["EXPENSE"].id)

    def test_insufficient_stock_has_no_side_effects(self, db_session, ledger):
        _stock(db_session, ledger, 5, 1000)
        ledger_lines_before = db_session.query(StockLedgerLine).count()
        entries_before = db_session.query(JournalEntry).count()

        issue = _issue(db_session, ledger, 8)
        with pytest.raises(InsufficientStockError) as exc:
            GoodsIssueService(db_session).approve(issue.id)

        assert exc.value.status_code == 422
        assert d(exc.value.details["available"]) == d(5)
        assert _on_hand(db_session, ledger).qty_on_hand == d(5)
        assert db_session.query(StockLedgerLine).count() == ledger_lines_before
        assert db_session.query(JournalEntry).count() == entries_before
        refreshed = GoodsIssueService(db_session).get(issue.id)
        assert refreshed.status == "DRAFT"
        assert refreshed.gl_status == "PENDING"

    def test_approved_issue_is_final(self, db_session, ledger):
        _stock(db_session, ledger, 5, 1000)
        issue = _issue(db_session, ledger, 1)
        service = GoodsIssueService(db_session)
        service.approve(issue.id)

        with pytest.raises(InvalidTransitionError):
            service.approve(issue.id)
        with pytest.raises(InvalidTransitionError):
            service.update(issue.id, note="edit")
        with pytest.raises(InvalidTransitionError):
            service.delete(issue.id)
        assert _on_hand(db_session, ledger).qty_on_hand == d(4)

    def test_draft_can_be_deleted(self, db_session, ledger):
        issue = _issue(db_session, ledger, 1)
        service = GoodsIssueService(db_session)
        service.delete(issue.id)
        assert service.list(ledger["company_id"]) == []

    def test_invalid_purpose(self, db_session, ledger):
        with pytest.raises(ValidationError) as exc:
            _issue(db_session, ledger, 1, purpose="GIFT")
        assert exc.value.details["field"] == "purpose"


class TestLoans:

    def _loan(self, db_session, ledger, qty=10):
        _stock(db_session, ledger, 20, 250)
        loan = _issue(
            db_session,
            ledger,
            qty,
            purpose="LOAN",
            loan_receiver="Bengkel Afdeling II",
            expected_return_at=date(2025, 1, 31),
        )
        return GoodsIssueService(db_session).approve(loan.id)

    def test_loan_requires_receiver(self, db_session, ledger):
        with pytest.raises(ValidationError) as exc:
            _issue(db_session, ledger, 1, purpose="LOAN")
        assert exc.value.details["field"] == "loan_receiver"

    def test_loan_moves_value_to_on_loan_account(self, db_session, ledger):
        loan = self._loan(db_session, ledger)

        assert loan.doc_number == "LOAN/2025/01/0001"
        assert loan.status == "APPROVED"
        assert _on_hand(db_session, ledger).qty_on_hand == d(10)
        entry = db_session.get(JournalEntry, loan.journal_entry_id)
        assert entry.lines[0].account_id == ledger["on_loan"].id
        assert entry.lines[1].account_id == ledger["inventory"].id
        assert entry.total_debit == d(2500)

    def test_partial_then_full_return(self, db_session, ledger):
        loan = self._loan(db_session, ledger)
        line_id = loan.lines[0].id
        service = GoodsIssueService(db_session)

        first = service.process_loan_return(
            loan.id, [LoanReturnLine(line_id, d(4))], return_date=date(2025, 1, 20), actor_id=5
        )
        assert first.doc_number == "RET-LOAN/2025/01/0001"
        assert first.source_type == "LOAN_RETURN"
        assert first.loan_issue_id == loan.id
        assert first.status == "APPROVED"
        assert first.lines[0].unit_cost == d(250)

        loan = service.get(loan.id)
        assert loan.status == "PARTIAL_RETURN"
        assert loan.is_loan_fully_returned is False
        assert loan.lines[0].qty_outstanding == d(6)
        assert _on_hand(db_session, ledger).qty_on_hand == d(14)

        service.process_loan_return(loan.id, [LoanReturnLine(line_id, d(6))], return_date=date(2025, 1, 25))
        loan = service.get(loan.id)
        assert loan.status == "RETURNED"
        assert loan.is_loan_fully_returned is True
        assert _on_hand(db_session, ledger).qty_on_hand == d(20)
        assert service.list_active_loans(ledger["company_id"]) == []

        return_entry = db_session.get(JournalEntry, first.journal_entry_id)
        assert return_entry.lines[0].account_id == ledger["inventory"].id
        assert return_entry.lines[1].account_id == ledger["on_loan"].id
        assert return_entry.total_credit == d(1000)

    def test_over_return_rejected(self, db_session, ledger):
        loan = self._loan(db_session, ledger)
        service = GoodsIssueService(db_session)

        with pytest.raises(ValidationError) as exc:
            service.process_loan_return(loan.id, [LoanReturnLine(loan.lines[0].id, d(15))], return_date=JAN_15)

        assert d(exc.value.details["outstanding"]) == d(10)
        refreshed = service.get(loan.id)
        assert refreshed.status == "APPROVED"
        assert refreshed.lines[0].qty_returned == 0
        assert _on_hand(db_session, ledger).qty_on_hand == d(10)

    def test_returned_loan_accepts_no_more_returns(self, db_session, ledger):
        loan = self._loan(db_session, ledger, qty=2)
        service = GoodsIssueService(db_session)
        service.process_loan_return(loan.id, [LoanReturnLine(loan.lines[0].id, d(2))], return_date=JAN_15)

        with pytest.raises(InvalidTransitionError):
            service.process_loan_return(loan.id, [LoanReturnLine(loan.lines[0].id, d(1))], return_date=JAN_15)

    def test_return_against_plain_issue_rejected(self, db_session, ledger):
        _stock(db_session, ledger, 5, 10)
        issue = _issue(db_session, ledger, 1)
        service = GoodsIssueService(db_session)
        service.approve(issue.id)

        with pytest.raises(ValidationError):
            service.process_loan_return(issue.id, [LoanReturnLine(issue.lines[0].id, d(1))])

    def test_loan_without_on_loan_mapping_is_rejected(self, db_session):
        ledger = create_test_ledger(db_session, skip_keys=(SystemAccountKey.INVENTORY_ON_LOAN,))
        _stock(db_session, ledger, 20, 250)
        entries_before = db_session.query(JournalEntry).count()
        loan = _issue(db_session, ledger, 5, purpose="LOAN", loan_receiver="Bengkel Afdeling II")

        with pytest.raises(AccountMisconfiguredError) as exc:
            GoodsIssueService(db_session).approve(loan.id)

        assert exc.value.details["key"] == "INVENTORY_ON_LOAN"
        assert _on_hand(db_session, ledger).qty_on_hand == d(20)
        assert db_session.query(JournalEntry).count() == entries_before
        refreshed = GoodsIssueService(db_session).get(loan.id)
        assert refreshed.status == "DRAFT"
        assert refreshed.gl_status == "PENDING"

    def test_active_loans_listed(self, db_session, ledger):
        loan = self._loan(db_session, ledger)
        active = GoodsIssueService(db_session).list_active_loans(ledger["company_id"])
        assert [i.id for i in active] == [loan.id]
