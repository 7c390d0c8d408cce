"""
Unit Tests for the journal engine

Every posted entry balances, references active posting accounts of its
own company, and lands in an open period.
"""
from datetime import date
from decimal import Decimal

import pytest

from pks_ledger.exceptions import (
    ConflictError,
    PeriodClosedError,
    UnbalancedEntryError,
    ValidationError,
)
from pks_ledger.models.accounting import JournalEntry, JournalLine
from pks_ledger.services.journal_service import SOURCE_REVERSAL, JournalLineInput, JournalService
from pks_ledger.services.ledger_service import LedgerService
from tests.factories import JAN_15, create_test_account, create_test_period


@pytest.fixture
def accounts(db_session):
    return {
        "cash": create_test_account(db_session, code="1-1101", name="Kas"),
        "capital": create_test_account(db_session, code="3-1001", name="Modal", account_class="EQUITY"),
        "header": create_test_account(db_session, code="1-0000", is_posting=False),
    }


def _capital_injection(cash, capital, amount="1000000"):
    return [
        JournalLineInput(cash.id, debit=Decimal(amount), description="Setoran"),
        JournalLineInput(capital.id, credit=Decimal(amount)),
    ]


class TestPostEntry:

    def test_posts_balanced_entry_with_number(self, db_session, accounts):
        entry = JournalService(db_session).post_entry(
            1, JAN_15, "Manual", None, "Setoran modal",
            _capital_injection(accounts["cash"], accounts["capital"]),
            actor_id=5,
        )

        assert entry.entry_number == "JE/2025/01/0001"
        assert entry.status == "POSTED"
        assert entry.posted_by == 5
        assert [line.line_order for line in entry.lines] == [0, 1]
        assert entry.total_debit == entry.total_credit == Decimal("1000000.00")
        assert entry.is_balanced

    def test_entry_numbers_are_sequential_per_month(self, db_session, accounts):
        service = JournalService(db_session)
        lines = _capital_injection(accounts["cash"], accounts["capital"], "10")
        numbers = [
            service.post_entry(1, day, "Manual", None, None, lines).entry_number
            for day in (date(2025, 1, 2), date(2025, 1, 3), date(2025, 2, 1))
        ]
        assert numbers == ["JE/2025/01/0001", "JE/2025/01/0002", "JE/2025/02/0001"]

    def test_unbalanced_entry_fails_loudly(self, db_session, accounts):
        with pytest.raises(UnbalancedEntryError) as exc:
            JournalService(db_session).post_entry(
                1, JAN_15, "Manual", None, None,
                [
                    JournalLineInput(accounts["cash"].id, debit=Decimal("100")),
                    JournalLineInput(accounts["capital"].id, credit=Decimal("99.99")),
                ],
            )
        assert exc.value.status_code == 500
        assert exc.value.details["total_debit"] == "100.00"
        assert db_session.query(JournalEntry).count() == 0

    def test_single_line_rejected(self, db_session, accounts):
        with pytest.raises(ValidationError):
            JournalService(db_session).post_entry(
                1, JAN_15, "Manual", None, None, [JournalLineInput(accounts["cash"].id, debit=1)]
            )

    def test_zero_and_negative_lines_rejected(self, db_session, accounts):
        service = JournalService(db_session)
        with pytest.raises(ValidationError):
            service.post_entry(1, JAN_15, "Manual", None, None, [
                JournalLineInput(accounts["cash"].id),
                JournalLineInput(accounts["capital"].id),
            ])
        with pytest.raises(ValidationError):
            service.post_entry(1, JAN_15, "Manual", None, None, [
                JournalLineInput(accounts["cash"].id, debit=Decimal("-5")),
                JournalLineInput(accounts["capital"].id, credit=Decimal("-5")),
            ])

    def test_header_account_rejected(self, db_session, accounts):
        with pytest.raises(ValidationError):
            JournalService(db_session).post_entry(
                1, JAN_15, "Manual", None, None,
                _capital_injection(accounts["header"], accounts["capital"]),
            )

    def test_inactive_account_rejected(self, db_session, accounts):
        accounts["cash"].status = "NONAKTIF"
        db_session.commit()
        with pytest.raises(ValidationError):
            JournalService(db_session).post_entry(
                1, JAN_15, "Manual", None, None,
                _capital_injection(accounts["cash"], accounts["capital"]),
            )

    def test_foreign_account_rejected(self, db_session, accounts):
        foreign = create_test_account(db_session, company_id=2, code="1-1101")
        with pytest.raises(ValidationError):
            JournalService(db_session).post_entry(
                1, JAN_15, "Manual", None, None,
                _capital_injection(foreign, accounts["capital"]),
            )

    def test_closed_period_rejects_without_side_effects(self, db_session, accounts):
        create_test_period(db_session, year=2025, month=1, is_closed=True)
        with pytest.raises(PeriodClosedError):
            JournalService(db_session).post_entry(
                1, JAN_15, "Manual", None, None,
                _capital_injection(accounts["cash"], accounts["capital"]),
            )
        assert db_session.query(JournalEntry).count() == 0
        assert db_session.query(JournalLine).count() == 0


class TestReverseEntry:

    def test_reversal_mirrors_lines_and_nets_to_zero(self, db_session, accounts):
        service = JournalService(db_session)
        original = service.post_entry(
            1, JAN_15, "Manual", None, None, _capital_injection(accounts["cash"], accounts["capital"])
        )

        reversal = service.reverse_entry(original.id, reversal_date=date(2025, 1, 20), actor_id=2)

        assert reversal.source_type == SOURCE_REVERSAL
        assert reversal.source_id == original.id
        assert reversal.reverses_entry_id == original.id
        assert [(l.debit, l.credit) for l in reversal.lines] == [
            (Decimal("0.00"), Decimal("1000000.00")),
            (Decimal("1000000.00"), Decimal("0.00")),
        ]
        ledger = LedgerService(db_session)
        assert ledger.balance_as_of(1, accounts["cash"].id, date(2025, 1, 31)) == Decimal("0.00")
        assert ledger.balance_as_of(1, accounts["capital"].id, date(2025, 1, 31)) == Decimal("0.00")

    def test_entry_reversed_only_once(self, db_session, accounts):
        service = JournalService(db_session)
        original = service.post_entry(
            1, JAN_15, "Manual", None, None, _capital_injection(accounts["cash"], accounts["capital"])
        )
        service.reverse_entry(original.id)
        with pytest.raises(ConflictError):
            service.reverse_entry(original.id)

    def test_reversal_into_closed_period_rejected(self, db_session, accounts):
        service = JournalService(db_session)
        original = service.post_entry(
            1, JAN_15, "Manual", None, None, _capital_injection(accounts["cash"], accounts["capital"])
        )
        create_test_period(db_session, year=2025, month=1, is_closed=True)
        with pytest.raises(PeriodClosedError):
            service.reverse_entry(original.id)
