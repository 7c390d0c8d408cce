"""
Unit Tests for document numbering
"""
from datetime import date

import pytest
from sqlalchemy import event

from pks_ledger.exceptions import ConcurrencyError
from pks_ledger.models.accounting import DocumentSequence
from pks_ledger.services.sequence_service import GOODS_RECEIPT, JOURNAL_ENTRY, SequenceService, period_prefix


class TestSequenceService:

    def test_period_prefix(self):
        assert period_prefix(GOODS_RECEIPT, date(2025, 3, 14)) == "GR/2025/03"

    def test_numbers_increment_per_prefix(self, db_session):
        service = SequenceService(db_session)
        march = date(2025, 3, 14)

        assert service.next_number(1, GOODS_RECEIPT, march) == "GR/2025/03/0001"
        assert service.next_number(1, GOODS_RECEIPT, march) == "GR/2025/03/0002"
        assert service.next_number(1, JOURNAL_ENTRY, march) == "JE/2025/03/0001"
        assert service.next_number(1, GOODS_RECEIPT, date(2025, 4, 1)) == "GR/2025/04/0001"

    def test_companies_have_separate_counters(self, db_session):
        service = SequenceService(db_session)
        on = date(2025, 3, 14)
        service.next_number(1, GOODS_RECEIPT, on)
        assert service.next_number(2, GOODS_RECEIPT, on) == "GR/2025/03/0001"

    def test_committed_numbers_are_not_reused(self, db_session):
        service = SequenceService(db_session)
        on = date(2025, 3, 14)
        first = service.next_number(1, GOODS_RECEIPT, on)
        db_session.rollback()
        # Rolled back numbers were never issued; committed ones are kept
        again = service.next_number(1, GOODS_RECEIPT, on)
        db_session.commit()
        after_commit = service.next_number(1, GOODS_RECEIPT, on)

        assert first == again == "GR/2025/03/0001"
        assert after_commit == "GR/2025/03/0002"
        assert db_session.query(DocumentSequence).one().last_value == 2

    def test_no_seri_is_daily(self, db_session):
        service = SequenceService(db_session)
        assert service.next_no_seri(1, date(2025, 3, 14)) == "20250314-001"
        assert service.next_no_seri(1, date(2025, 3, 14)) == "20250314-002"
        assert service.next_no_seri(1, date(2025, 3, 15)) == "20250315-001"


class TestConcurrentAllocation:

    def test_counter_row_created_by_another_transaction(self, db_session, other_session):
        prefix = period_prefix(GOODS_RECEIPT, date(2025, 3, 14))

        def competing_insert(session, flush_context, instances):
            if any(isinstance(obj, DocumentSequence) for obj in session.new):
                other_session.add(DocumentSequence(company_id=1, prefix=prefix, last_value=7))
                other_session.commit()

        event.listen(db_session, "before_flush", competing_insert, once=True)

        with pytest.raises(ConcurrencyError) as exc:
            SequenceService(db_session).next_value(1, prefix)
        db_session.rollback()

        assert exc.value.status_code == 409
        assert exc.value.details["prefix"] == prefix
        # The retry continues the counter the other transaction started
        assert SequenceService(db_session).next_number(1, GOODS_RECEIPT, date(2025, 3, 14)) == "GR/2025/03/0008"
