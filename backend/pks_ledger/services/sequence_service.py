"""
Document and journal entry numbering.

Numbers come from a dedicated counter row per (company, prefix), locked and
incremented inside the caller's transaction. A rolled-back transaction gives
its number back, a committed one never reuses it.
"""
from datetime import date

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from pks_ledger.exceptions import ConcurrencyError
from pks_ledger.logging_config import get_logger
from pks_ledger.models.accounting import DocumentSequence

logger = get_logger(__name__)


# Document type codes used in numbers
JOURNAL_ENTRY = "JE"
GOODS_RECEIPT = "GR"
GOODS_ISSUE = "GI"
LOAN = "LOAN"
LOAN_RETURN = "RET-LOAN"
WEIGHBRIDGE = "WB"
NO_SERI = "NOSERI"


def period_prefix(doc_type: str, on_date: date) -> str:
    """GR + 2025-03-14 -> GR/2025/03"""
    return f"{doc_type}/{on_date.year}/{on_date.month:02d}"


class SequenceService:
    """
    Allocates sequential numbers. Does NOT commit.
    """

    def __init__(self, db: Session):
        self.db = db

    def next_value(self, company_id: int, prefix: str) -> int:
        """
        Increment and return the counter for (company_id, prefix).

        Raises:
            ConcurrencyError: Another transaction created the counter row first
        """
        row = (
            self.db.query(DocumentSequence)
            .filter(
                DocumentSequence.company_id == company_id,
                DocumentSequence.prefix == prefix,
            )
            .with_for_update()
            .populate_existing()
            .first()
        )

        if row is None:
            row = DocumentSequence(company_id=company_id, prefix=prefix, last_value=0)
            self.db.add(row)
            try:
                self.db.flush()
            except IntegrityError as e:
                logger.warning(
                    "Sequence row created concurrently",
                    extra={"company_id": company_id, "prefix": prefix},
                )
                raise ConcurrencyError(
                    f"Number sequence {prefix} was created by another transaction, retry",
                    details={"company_id": company_id, "prefix": prefix},
                ) from e

        self.db.execute(
            update(DocumentSequence)
            .where(DocumentSequence.id == row.id)
            .values(last_value=DocumentSequence.last_value + 1)
        )
        value = self.db.execute(
            select(DocumentSequence.last_value).where(DocumentSequence.id == row.id)
        ).scalar_one()
        self.db.expire(row)
        return value

    def next_number(self, company_id: int, doc_type: str, on_date: date) -> str:
        """Next `{TYPE}/{YYYY}/{MM}/{NNNN}` number for the month of on_date."""
        prefix = period_prefix(doc_type, on_date)
        value = self.next_value(company_id, prefix)
        return f"{prefix}/{value:04d}"

    def next_no_seri(self, company_id: int, on_date: date) -> str:
        """Weighbridge serial `YYYYMMDD-NNN`, sequential per day."""
        day = on_date.strftime("%Y%m%d")
        value = self.next_value(company_id, f"{NO_SERI}/{day}")
        return f"{day}-{value:03d}"
