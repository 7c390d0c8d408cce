"""
Ledger queries (Buku Besar, Neraca Saldo)

An account's balance on a date is seeded from the latest fiscal period,
starting on or before that date, that has opening balances entered for the
company. Every journal line from that period's start through the date is
added on top. Accounts without a row in the seeding period start at zero.
With no opening balances at all, every line up to the date counts.
Balances are debit - credit, flipped for CREDIT-normal accounts.
"""
from datetime import date, timedelta
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session

from pks_ledger.core.decimals import ZERO, q_money, to_decimal
from pks_ledger.exceptions import ValidationError
from pks_ledger.logging_config import get_logger
from pks_ledger.models.accounting import (
    Account,
    FiscalPeriod,
    JournalEntry,
    JournalLine,
    NormalSide,
    OpeningBalance,
)
from pks_ledger.services.account_service import AccountService

logger = get_logger(__name__)


def signed(account: Account, debit, credit) -> Decimal:
    """Balance in the account's normal direction."""
    net = to_decimal(debit) - to_decimal(credit)
    return -net if account.normal_side == NormalSide.CREDIT.value else net


class LedgerService:
    def __init__(self, db: Session):
        self.db = db
        self.accounts = AccountService(db)

    def balance_as_of(self, company_id: int, account_id: int, as_of: date) -> Decimal:
        account = self.accounts.get_account(account_id, company_id)
        debit, credit = self._raw_totals(company_id, account.id, as_of)
        return q_money(signed(account, debit, credit))

    def account_ledger(
        self,
        company_id: int,
        account_id: int,
        start_date: date,
        end_date: date,
    ) -> Dict[str, Any]:
        """Opening balance at start_date, each line with running balance, and totals."""
        if start_date > end_date:
            raise ValidationError("Start date must not be after end date", field="start_date", value=start_date)
        account = self.accounts.get_account(account_id, company_id)

        seed_period = self._seed_period(company_id, start_date)
        seed_debit, seed_credit = self._opening(seed_period, account.id)
        window_start = seed_period.start_date if seed_period else None
        pre_debit, pre_credit = self._line_totals(company_id, account.id, window_start, start_date - timedelta(days=1))
        opening = signed(account, seed_debit + pre_debit, seed_credit + pre_credit)

        rows = (
            self.db.query(JournalLine, JournalEntry)
            .join(JournalEntry, JournalLine.entry_id == JournalEntry.id)
            .filter(
                JournalEntry.company_id == company_id,
                JournalLine.account_id == account.id,
                JournalEntry.entry_date >= start_date,
                JournalEntry.entry_date <= end_date,
            )
            .order_by(JournalEntry.entry_date, JournalEntry.id, JournalLine.line_order)
            .all()
        )

        running = opening
        total_debit = ZERO
        total_credit = ZERO
        lines = []
        for line, entry in rows:
            debit = to_decimal(line.debit)
            credit = to_decimal(line.credit)
            total_debit += debit
            total_credit += credit
            running += signed(account, debit, credit)
            lines.append({
                "entry_id": entry.id,
                "entry_number": entry.entry_number,
                "entry_date": entry.entry_date,
                "source_type": entry.source_type,
                "source_id": entry.source_id,
                "memo": entry.memo,
                "description": line.description,
                "debit": q_money(debit),
                "credit": q_money(credit),
                "balance": q_money(running),
            })

        return {
            "account_id": account.id,
            "code": account.code,
            "name": account.name,
            "normal_side": account.normal_side,
            "start_date": start_date,
            "end_date": end_date,
            "opening_balance": q_money(opening),
            "lines": lines,
            "total_debit": q_money(total_debit),
            "total_credit": q_money(total_credit),
            "ending_balance": q_money(running),
        }

    def trial_balance(self, company_id: int, as_of: date) -> Dict[str, Any]:
        """Net debit or credit of every posting account as of a date."""
        accounts = (
            self.db.query(Account)
            .filter(Account.company_id == company_id, Account.is_posting.is_(True))
            .order_by(Account.code)
            .all()
        )
        rows = []
        total_debit = ZERO
        total_credit = ZERO
        for account in accounts:
            debit, credit = self._raw_totals(company_id, account.id, as_of)
            net = q_money(debit - credit)
            if net == 0:
                continue
            row_debit = net if net > 0 else q_money(ZERO)
            row_credit = -net if net < 0 else q_money(ZERO)
            total_debit += row_debit
            total_credit += row_credit
            rows.append({
                "account_id": account.id,
                "code": account.code,
                "name": account.name,
                "account_class": account.account_class,
                "debit": row_debit,
                "credit": row_credit,
            })
        if total_debit != total_credit:
            logger.warning(
                "Trial balance does not balance",
                extra={
                    "company_id": company_id,
                    "as_of": as_of,
                    "total_debit": total_debit,
                    "total_credit": total_credit,
                },
            )
        return {
            "as_of": as_of,
            "rows": rows,
            "total_debit": q_money(total_debit),
            "total_credit": q_money(total_credit),
            "is_balanced": total_debit == total_credit,
        }

    # === INTERNAL HELPERS ===

    def _seed_period(self, company_id: int, on_date: date) -> Optional[FiscalPeriod]:
        """Latest period on or before the date that has opening balances entered."""
        has_openings = (
            self.db.query(OpeningBalance.id)
            .filter(
                OpeningBalance.company_id == company_id,
                OpeningBalance.period_id == FiscalPeriod.id,
            )
            .exists()
        )
        return (
            self.db.query(FiscalPeriod)
            .filter(
                FiscalPeriod.company_id == company_id,
                FiscalPeriod.start_date <= on_date,
                has_openings,
            )
            .order_by(FiscalPeriod.start_date.desc())
            .first()
        )

    def _opening(self, period: Optional[FiscalPeriod], account_id: int) -> Tuple[Decimal, Decimal]:
        if period is None:
            return ZERO, ZERO
        ob = (
            self.db.query(OpeningBalance)
            .filter(OpeningBalance.period_id == period.id, OpeningBalance.account_id == account_id)
            .first()
        )
        if ob is None:
            return ZERO, ZERO
        return to_decimal(ob.debit), to_decimal(ob.credit)

    def _line_totals(
        self,
        company_id: int,
        account_id: int,
        from_date: Optional[date],
        to_date: date,
    ) -> Tuple[Decimal, Decimal]:
        query = (
            self.db.query(
                func.coalesce(func.sum(JournalLine.debit), 0),
                func.coalesce(func.sum(JournalLine.credit), 0),
            )
            .join(JournalEntry, JournalLine.entry_id == JournalEntry.id)
            .filter(
                JournalEntry.company_id == company_id,
                JournalLine.account_id == account_id,
                JournalEntry.entry_date <= to_date,
            )
        )
        if from_date is not None:
            query = query.filter(JournalEntry.entry_date >= from_date)
        debit, credit = query.one()
        return q_money(debit), q_money(credit)

    def _raw_totals(self, company_id: int, account_id: int, as_of: date) -> Tuple[Decimal, Decimal]:
        """Opening plus journal lines through as_of, as raw debit and credit."""
        period = self._seed_period(company_id, as_of)
        seed_debit, seed_credit = self._opening(period, account_id)
        line_debit, line_credit = self._line_totals(
            company_id, account_id, period.start_date if period else None, as_of
        )
        return seed_debit + line_debit, seed_credit + line_credit
