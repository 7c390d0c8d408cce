"""
Journal Engine - append-only double-entry ledger

Entries are created already POSTED. There is no update or delete; a mistake
is corrected by posting a reversing entry.

Usage:
    journal = JournalService(db)
    entry = journal.post_entry(
        company_id=1,
        entry_date=date(2025, 3, 14),
        source_type="GoodsReceipt",
        source_id=receipt.id,
        memo="GR/2025/03/0001",
        lines=[
            JournalLineInput(account_id=inventory_id, debit=Decimal("500000")),
            JournalLineInput(account_id=ap_id, credit=Decimal("500000")),
        ],
        actor_id=7,
    )
    db.commit()  # Caller commits
"""
from datetime import date, datetime
from decimal import Decimal
from typing import List, NamedTuple, Optional, Sequence

from sqlalchemy.orm import Session

from pks_ledger.core.decimals import ZERO, q_money
from pks_ledger.exceptions import (
    ConflictError,
    NotFoundError,
    UnbalancedEntryError,
    ValidationError,
)
from pks_ledger.logging_config import get_logger
from pks_ledger.models.accounting import Account, AccountStatus, JournalEntry, JournalLine
from pks_ledger.services.fiscal_period_service import FiscalPeriodService
from pks_ledger.services.sequence_service import JOURNAL_ENTRY, SequenceService

logger = get_logger(__name__)

SOURCE_MANUAL = "Manual"
SOURCE_REVERSAL = "Reversal"


class JournalLineInput(NamedTuple):
    """One debit or credit line to post"""
    account_id: int
    debit: Decimal = ZERO
    credit: Decimal = ZERO
    description: Optional[str] = None
    cost_center: Optional[str] = None
    dept: Optional[str] = None
    warehouse_id: Optional[int] = None
    item_id: Optional[int] = None


class JournalService:
    """
    Posts balanced journal entries.

    IMPORTANT: This service does NOT commit. Caller is responsible for commit.
    """

    def __init__(
        self,
        db: Session,
        periods: Optional[FiscalPeriodService] = None,
        sequences: Optional[SequenceService] = None,
    ):
        self.db = db
        self.periods = periods or FiscalPeriodService(db)
        self.sequences = sequences or SequenceService(db)

    # === POSTING ===

    def post_entry(
        self,
        company_id: int,
        entry_date: date,
        source_type: str,
        source_id: Optional[int],
        memo: Optional[str],
        lines: Sequence[JournalLineInput],
        actor_id: Optional[int] = None,
        *,
        reverses_entry_id: Optional[int] = None,
    ) -> JournalEntry:
        """
        Validate and record one balanced entry.

        Raises:
            ValidationError: Malformed lines, unknown/header/inactive/foreign accounts,
                or an entry totalling zero
            UnbalancedEntryError: Debits and credits differ
            PeriodClosedError: entry_date falls in a closed period
        """
        if not source_type:
            raise ValidationError("Journal source type is required", field="source_type")
        if len(lines) < 2:
            raise ValidationError(
                "Journal entry needs at least two lines",
                field="lines",
                value=len(lines),
            )

        normalized: List[JournalLineInput] = []
        for idx, line in enumerate(lines):
            debit = q_money(line.debit)
            credit = q_money(line.credit)
            if debit < 0 or credit < 0:
                raise ValidationError(
                    f"Line {idx + 1}: amounts must not be negative",
                    field=f"lines[{idx}]",
                )
            if debit == 0 and credit == 0:
                raise ValidationError(
                    f"Line {idx + 1}: debit or credit must be non-zero",
                    field=f"lines[{idx}]",
                )
            normalized.append(line._replace(debit=debit, credit=credit))

        self._validate_accounts(company_id, normalized)

        total_debit = sum((line.debit for line in normalized), ZERO)
        total_credit = sum((line.credit for line in normalized), ZERO)
        if total_debit != total_credit:
            logger.error(
                "Unbalanced journal entry rejected",
                extra={
                    "company_id": company_id,
                    "source_type": source_type,
                    "source_id": source_id,
                    "total_debit": total_debit,
                    "total_credit": total_credit,
                },
            )
            raise UnbalancedEntryError(
                total_debit=total_debit,
                total_credit=total_credit,
                source_type=source_type,
                source_id=source_id,
            )
        if total_debit == 0:
            raise ValidationError("Journal entry total must be non-zero", field="lines")

        self.periods.ensure_date_open(company_id, entry_date)

        now = datetime.utcnow()
        entry = JournalEntry(
            company_id=company_id,
            entry_number=self.sequences.next_number(company_id, JOURNAL_ENTRY, entry_date),
            entry_date=entry_date,
            memo=memo,
            source_type=source_type,
            source_id=source_id,
            status="POSTED",
            reverses_entry_id=reverses_entry_id,
            created_by=actor_id,
            posted_by=actor_id,
            posted_at=now,
        )
        for idx, line in enumerate(normalized):
            entry.lines.append(
                JournalLine(
                    account_id=line.account_id,
                    debit=line.debit,
                    credit=line.credit,
                    description=line.description,
                    cost_center=line.cost_center,
                    dept=line.dept,
                    warehouse_id=line.warehouse_id,
                    item_id=line.item_id,
                    line_order=idx,
                )
            )
        self.db.add(entry)
        self.db.flush()

        logger.info(
            "Journal entry posted",
            extra={
                "entry_id": entry.id,
                "entry_number": entry.entry_number,
                "company_id": company_id,
                "source_type": source_type,
                "source_id": source_id,
                "amount": total_debit,
            },
        )
        return entry

    def reverse_entry(
        self,
        entry_id: int,
        reversal_date: Optional[date] = None,
        actor_id: Optional[int] = None,
        memo: Optional[str] = None,
    ) -> JournalEntry:
        """Post the mirror image of an entry. Each entry can be reversed once."""
        original = self.get_entry(entry_id)
        already = (
            self.db.query(JournalEntry.id)
            .filter(JournalEntry.reverses_entry_id == original.id)
            .first()
        )
        if already:
            raise ConflictError(
                f"Journal entry {original.entry_number} is already reversed",
                details={"entry_id": original.id, "reversal_id": already[0]},
            )

        lines = [
            JournalLineInput(
                account_id=line.account_id,
                debit=line.credit,
                credit=line.debit,
                description=line.description,
                cost_center=line.cost_center,
                dept=line.dept,
                warehouse_id=line.warehouse_id,
                item_id=line.item_id,
            )
            for line in original.lines
        ]
        return self.post_entry(
            company_id=original.company_id,
            entry_date=reversal_date or original.entry_date,
            source_type=SOURCE_REVERSAL,
            source_id=original.id,
            memo=memo or f"Reversal of {original.entry_number}",
            lines=lines,
            actor_id=actor_id,
            reverses_entry_id=original.id,
        )

    # === QUERIES ===

    def get_entry(self, entry_id: int, company_id: Optional[int] = None) -> JournalEntry:
        query = self.db.query(JournalEntry).filter(JournalEntry.id == entry_id)
        if company_id is not None:
            query = query.filter(JournalEntry.company_id == company_id)
        entry = query.first()
        if not entry:
            raise NotFoundError("JournalEntry", entry_id)
        return entry

    def list_entries(
        self,
        company_id: int,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        source_type: Optional[str] = None,
        source_id: Optional[int] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> List[JournalEntry]:
        query = self.db.query(JournalEntry).filter(JournalEntry.company_id == company_id)
        if start_date:
            query = query.filter(JournalEntry.entry_date >= start_date)
        if end_date:
            query = query.filter(JournalEntry.entry_date <= end_date)
        if source_type:
            query = query.filter(JournalEntry.source_type == source_type)
        if source_id is not None:
            query = query.filter(JournalEntry.source_id == source_id)
        return (
            query.order_by(JournalEntry.entry_date, JournalEntry.id)
            .offset(skip)
            .limit(limit)
            .all()
        )

    # === INTERNAL HELPERS ===

    def _validate_accounts(self, company_id: int, lines: Sequence[JournalLineInput]) -> None:
        account_ids = {line.account_id for line in lines}
        accounts = {
            a.id: a for a in self.db.query(Account).filter(Account.id.in_(account_ids)).all()
        }
        for idx, line in enumerate(lines):
            account = accounts.get(line.account_id)
            if account is None:
                raise ValidationError(
                    f"Line {idx + 1}: account {line.account_id} does not exist",
                    field=f"lines[{idx}].account_id",
                    value=line.account_id,
                )
            if account.company_id != company_id:
                raise ValidationError(
                    f"Line {idx + 1}: account {account.code} belongs to another company",
                    field=f"lines[{idx}].account_id",
                    value=line.account_id,
                )
            if not account.is_posting:
                raise ValidationError(
                    f"Line {idx + 1}: account {account.code} is a header account",
                    field=f"lines[{idx}].account_id",
                    value=line.account_id,
                )
            if account.status != AccountStatus.AKTIF.value:
                raise ValidationError(
                    f"Line {idx + 1}: account {account.code} is inactive",
                    field=f"lines[{idx}].account_id",
                    value=line.account_id,
                )
