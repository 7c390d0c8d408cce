"""
Opening Balance Ledger - starting debit/credit per posting account and period
"""
from decimal import Decimal
from typing import List, NamedTuple, Optional, Sequence

from sqlalchemy.orm import Session

from pks_ledger.core.decimals import ZERO, q_money
from pks_ledger.exceptions import PeriodClosedError, ValidationError
from pks_ledger.logging_config import get_logger
from pks_ledger.models.accounting import Account, OpeningBalance
from pks_ledger.services.fiscal_period_service import FiscalPeriodService

logger = get_logger(__name__)


class OpeningBalanceInput(NamedTuple):
    account_id: int
    debit: Decimal = ZERO
    credit: Decimal = ZERO


class OpeningBalanceRow(NamedTuple):
    """One posting account's opening figures, zero when nothing was entered"""
    account_id: int
    code: str
    name: str
    normal_side: str
    debit: Decimal
    credit: Decimal


class OpeningBalanceService:
    def __init__(self, db: Session, periods: Optional[FiscalPeriodService] = None):
        self.db = db
        self.periods = periods or FiscalPeriodService(db)

    def get_entries(self, company_id: int, period_id: int) -> List[OpeningBalanceRow]:
        """Every posting account of the company, ordered by code."""
        self.periods.get_period(period_id, company_id)
        stored = {
            ob.account_id: ob
            for ob in self.db.query(OpeningBalance).filter(
                OpeningBalance.company_id == company_id,
                OpeningBalance.period_id == period_id,
            )
        }
        accounts = (
            self.db.query(Account)
            .filter(Account.company_id == company_id, Account.is_posting.is_(True))
            .order_by(Account.code)
            .all()
        )
        rows = []
        for account in accounts:
            ob = stored.get(account.id)
            rows.append(
                OpeningBalanceRow(
                    account_id=account.id,
                    code=account.code,
                    name=account.name,
                    normal_side=account.normal_side,
                    debit=q_money(ob.debit) if ob else q_money(ZERO),
                    credit=q_money(ob.credit) if ob else q_money(ZERO),
                )
            )
        return rows

    def set_entries(
        self,
        company_id: int,
        period_id: int,
        entries: Sequence[OpeningBalanceInput],
        actor_id: Optional[int] = None,
    ) -> List[OpeningBalance]:
        """
        Replace the period's opening balances with entries.

        Accounts left out fall back to zero. Does NOT commit.

        Raises:
            PeriodClosedError: The period is closed
            ValidationError: Non-posting or foreign account, negative or duplicate entries
        """
        period = self.periods.get_period(period_id, company_id, for_update=True)
        if period.is_closed:
            logger.warning(
                "Opening balance edit rejected, period closed",
                extra={"company_id": company_id, "period_id": period_id},
            )
            raise PeriodClosedError(
                f"Fiscal period {period.year}-{period.month:02d} is closed",
                company_id=company_id,
                period_id=period_id,
            )

        account_ids = [e.account_id for e in entries]
        if len(set(account_ids)) != len(account_ids):
            raise ValidationError("Each account may appear only once", field="entries")
        accounts = {
            a.id: a for a in self.db.query(Account).filter(Account.id.in_(account_ids)).all()
        } if account_ids else {}

        rows = []
        total_debit = ZERO
        total_credit = ZERO
        for idx, entry in enumerate(entries):
            account = accounts.get(entry.account_id)
            if account is None or account.company_id != company_id:
                raise ValidationError(
                    f"Account {entry.account_id} does not belong to this company",
                    field=f"entries[{idx}].account_id",
                    value=entry.account_id,
                )
            if not account.is_posting:
                raise ValidationError(
                    f"Account {account.code} is a header account",
                    field=f"entries[{idx}].account_id",
                    value=entry.account_id,
                )
            debit = q_money(entry.debit)
            credit = q_money(entry.credit)
            if debit < 0 or credit < 0:
                raise ValidationError(
                    f"Opening balance for {account.code} must not be negative",
                    field=f"entries[{idx}]",
                )
            total_debit += debit
            total_credit += credit
            rows.append(
                OpeningBalance(
                    company_id=company_id,
                    period_id=period_id,
                    account_id=account.id,
                    debit=debit,
                    credit=credit,
                    updated_by=actor_id,
                )
            )

        existing = self.db.query(OpeningBalance).filter(
            OpeningBalance.company_id == company_id,
            OpeningBalance.period_id == period_id,
        )
        for ob in existing.all():
            self.db.delete(ob)
        self.db.flush()
        self.db.add_all(rows)
        self.db.flush()

        if total_debit != total_credit:
            logger.warning(
                "Opening balances do not balance",
                extra={
                    "company_id": company_id,
                    "period_id": period_id,
                    "total_debit": total_debit,
                    "total_credit": total_credit,
                },
            )
        logger.info(
            "Opening balances saved",
            extra={"company_id": company_id, "period_id": period_id, "count": len(rows), "actor_id": actor_id},
        )
        return rows
