"""
Fiscal Period Ledger

Monthly posting windows per company. Every posting-producing operation calls
ensure_date_open() before it mutates anything.
"""
import calendar
from datetime import date, datetime
from typing import List, Optional

from sqlalchemy.orm import Session

from pks_ledger.core.settings import get_settings
from pks_ledger.exceptions import (
    ConflictError,
    DuplicateError,
    NotFoundError,
    PeriodClosedError,
    ValidationError,
)
from pks_ledger.logging_config import get_logger
from pks_ledger.models.accounting import FiscalPeriod, OpeningBalance

logger = get_logger(__name__)


def month_bounds(year: int, month: int):
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last_day)


class FiscalPeriodService:
    def __init__(self, db: Session):
        self.db = db

    # === QUERIES ===

    def get_period(
        self,
        period_id: int,
        company_id: Optional[int] = None,
        for_update: bool = False,
    ) -> FiscalPeriod:
        query = self.db.query(FiscalPeriod).filter(FiscalPeriod.id == period_id)
        if company_id is not None:
            query = query.filter(FiscalPeriod.company_id == company_id)
        if for_update:
            query = query.with_for_update().populate_existing()
        period = query.first()
        if not period:
            raise NotFoundError("FiscalPeriod", period_id)
        return period

    def list_periods(self, company_id: int, year: Optional[int] = None) -> List[FiscalPeriod]:
        query = self.db.query(FiscalPeriod).filter(FiscalPeriod.company_id == company_id)
        if year is not None:
            query = query.filter(FiscalPeriod.year == year)
        return query.order_by(FiscalPeriod.start_date).all()

    def find_period_for_date(
        self,
        company_id: int,
        on_date: date,
        lock: bool = False,
    ) -> Optional[FiscalPeriod]:
        """
        Period covering on_date. With lock, the row is held FOR SHARE until
        the caller's transaction ends, so close() waits for in-flight postings.
        """
        query = self.db.query(FiscalPeriod).filter(
            FiscalPeriod.company_id == company_id,
            FiscalPeriod.start_date <= on_date,
            FiscalPeriod.end_date >= on_date,
        )
        if lock:
            query = query.with_for_update(read=True).populate_existing()
        return query.first()

    def is_date_open(self, company_id: int, on_date: date) -> bool:
        """
        True when postings dated on_date are allowed.

        A date no period covers is open unless REQUIRE_FISCAL_PERIOD is set.
        """
        period = self.find_period_for_date(company_id, on_date)
        if period is None:
            return not get_settings().REQUIRE_FISCAL_PERIOD
        return not period.is_closed

    def ensure_date_open(self, company_id: int, on_date: date) -> None:
        """
        Raises:
            PeriodClosedError: The date falls in a closed period, or in no
                period while REQUIRE_FISCAL_PERIOD is set
        """
        period = self.find_period_for_date(company_id, on_date, lock=True)
        if period is None:
            if get_settings().REQUIRE_FISCAL_PERIOD:
                logger.warning(
                    "Posting rejected, no fiscal period",
                    extra={"company_id": company_id, "date": on_date},
                )
                raise PeriodClosedError(
                    f"No fiscal period covers {on_date.isoformat()}",
                    company_id=company_id,
                    on_date=on_date,
                )
            return
        if period.is_closed:
            logger.warning(
                "Posting rejected, period closed",
                extra={"company_id": company_id, "date": on_date, "period_id": period.id},
            )
            raise PeriodClosedError(company_id=company_id, on_date=on_date, period_id=period.id)

    # === WRITES ===

    def create_period(
        self,
        company_id: int,
        year: int,
        month: int,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        actor_id: Optional[int] = None,
    ) -> FiscalPeriod:
        if not 1 <= month <= 12:
            raise ValidationError("Month must be between 1 and 12", field="month", value=month)
        if year < 1900 or year > 9999:
            raise ValidationError("Year out of range", field="year", value=year)

        default_start, default_end = month_bounds(year, month)
        start_date = start_date or default_start
        end_date = end_date or default_end
        if start_date > end_date:
            raise ValidationError(
                "Start date must not be after end date",
                field="start_date",
                value=start_date,
            )

        duplicate = (
            self.db.query(FiscalPeriod.id)
            .filter(
                FiscalPeriod.company_id == company_id,
                FiscalPeriod.year == year,
                FiscalPeriod.month == month,
            )
            .first()
        )
        if duplicate:
            raise DuplicateError("FiscalPeriod", field="year/month", value=f"{year}-{month:02d}")
        self._ensure_no_overlap(company_id, start_date, end_date)

        period = FiscalPeriod(
            company_id=company_id,
            year=year,
            month=month,
            start_date=start_date,
            end_date=end_date,
            is_closed=False,
            created_by=actor_id,
        )
        self.db.add(period)
        self.db.flush()

        logger.info(
            "Fiscal period created",
            extra={"period_id": period.id, "company_id": company_id, "year": year, "month": month},
        )
        return period

    def update_period(
        self,
        period_id: int,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        actor_id: Optional[int] = None,
    ) -> FiscalPeriod:
        period = self.get_period(period_id, for_update=True)
        if period.is_closed:
            raise PeriodClosedError(
                "Closed fiscal period cannot be edited",
                company_id=period.company_id,
                period_id=period.id,
            )
        new_start = start_date or period.start_date
        new_end = end_date or period.end_date
        if new_start > new_end:
            raise ValidationError(
                "Start date must not be after end date",
                field="start_date",
                value=new_start,
            )
        self._ensure_no_overlap(period.company_id, new_start, new_end, exclude_id=period.id)

        period.start_date = new_start
        period.end_date = new_end
        self.db.flush()
        logger.info(
            "Fiscal period updated",
            extra={"period_id": period.id, "start_date": new_start, "end_date": new_end, "actor_id": actor_id},
        )
        return period

    def close(self, period_id: int, actor_id: Optional[int] = None) -> FiscalPeriod:
        period = self.get_period(period_id, for_update=True)
        if period.is_closed:
            raise ConflictError(
                f"Fiscal period {period.year}-{period.month:02d} is already closed",
                details={"period_id": period.id},
            )
        period.is_closed = True
        period.closed_by = actor_id
        period.closed_at = datetime.utcnow()
        self.db.flush()

        logger.info(
            "Fiscal period closed",
            extra={"period_id": period.id, "company_id": period.company_id, "actor_id": actor_id},
        )
        return period

    def reopen(self, period_id: int, actor_id: Optional[int] = None) -> FiscalPeriod:
        """Privileged override; not part of the normal month-end flow."""
        period = self.get_period(period_id, for_update=True)
        if not period.is_closed:
            raise ConflictError(
                f"Fiscal period {period.year}-{period.month:02d} is not closed",
                details={"period_id": period.id},
            )
        period.is_closed = False
        period.closed_by = None
        period.closed_at = None
        self.db.flush()

        logger.warning(
            "Fiscal period reopened",
            extra={"period_id": period.id, "company_id": period.company_id, "actor_id": actor_id},
        )
        return period

    def delete_period(self, period_id: int, actor_id: Optional[int] = None) -> None:
        period = self.get_period(period_id, for_update=True)
        if period.is_closed:
            raise PeriodClosedError(
                "Closed fiscal period cannot be deleted",
                company_id=period.company_id,
                period_id=period.id,
            )
        for ob in self.db.query(OpeningBalance).filter(OpeningBalance.period_id == period.id).all():
            self.db.delete(ob)
        self.db.delete(period)
        self.db.flush()
        logger.info(
            "Fiscal period deleted",
            extra={"period_id": period_id, "company_id": period.company_id, "actor_id": actor_id},
        )

    # === INTERNAL HELPERS ===

    def _ensure_no_overlap(
        self,
        company_id: int,
        start_date: date,
        end_date: date,
        exclude_id: Optional[int] = None,
    ) -> None:
        query = self.db.query(FiscalPeriod).filter(
            FiscalPeriod.company_id == company_id,
            FiscalPeriod.start_date <= end_date,
            FiscalPeriod.end_date >= start_date,
        )
        if exclude_id is not None:
            query = query.filter(FiscalPeriod.id != exclude_id)
        clash = query.first()
        if clash:
            raise ConflictError(
                f"Period overlaps {clash.year}-{clash.month:02d}",
                details={
                    "period_id": clash.id,
                    "start_date": clash.start_date.isoformat(),
                    "end_date": clash.end_date.isoformat(),
                },
            )
