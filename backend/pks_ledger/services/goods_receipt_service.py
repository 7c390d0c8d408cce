"""
Goods Receipt workflow (Penerimaan Barang)

DRAFT -> APPROVED. Approval receives every line into stock at its unit cost
and posts one journal entry for the whole document:

    Dr INVENTORY_GENERAL            sum(qty * unit_cost)
        Cr offset account           sum(qty * unit_cost)

Offset by source type: PURCHASE -> AP_SUPPLIER_TBS, OTHER -> CASH_DEFAULT,
LOAN_RETURN -> INVENTORY_ON_LOAN (no GL when that key is not mapped, logged as a warning).
A receipt worth zero is approved without a journal entry.
"""
from datetime import date, datetime
from decimal import Decimal
from typing import List, NamedTuple, Optional, Sequence

from sqlalchemy.orm import Session

from pks_ledger.core.decimals import ZERO, q_cost, q_money, q_qty
from pks_ledger.core.status_config import (
    GLStatus,
    GOODS_RECEIPT_TRANSITIONS,
    GoodsReceiptAction,
    GoodsReceiptStatus,
    next_status,
)
from pks_ledger.db.session import atomic
from pks_ledger.exceptions import NotFoundError, ValidationError
from pks_ledger.logging_config import get_logger
from pks_ledger.models.accounting import SystemAccountKey
from pks_ledger.models.warehouse_document import GoodsReceipt, GoodsReceiptLine, ReceiptSourceType
from pks_ledger.services.fiscal_period_service import FiscalPeriodService
from pks_ledger.services.inventory_service import InventoryService
from pks_ledger.services.journal_service import JournalLineInput, JournalService
from pks_ledger.services.master_data import MasterDataService
from pks_ledger.services.sequence_service import GOODS_RECEIPT, LOAN_RETURN, SequenceService
from pks_ledger.services.system_account_service import SystemAccountService

logger = get_logger(__name__)

SOURCE_TYPE = "GoodsReceipt"

OFFSET_ACCOUNT_KEYS = {
    ReceiptSourceType.PURCHASE.value: SystemAccountKey.AP_SUPPLIER_TBS,
    ReceiptSourceType.OTHER.value: SystemAccountKey.CASH_DEFAULT,
    ReceiptSourceType.LOAN_RETURN.value: SystemAccountKey.INVENTORY_ON_LOAN,
}

_EDITABLE_FIELDS = ("date", "warehouse_id", "source_ref", "note")


class ReceiptLineInput(NamedTuple):
    """Item being received"""
    item_id: int
    qty: Decimal
    unit_cost: Decimal = ZERO
    goods_issue_line_id: Optional[int] = None
    note: Optional[str] = None


class GoodsReceiptService:
    def __init__(
        self,
        db: Session,
        system_accounts: Optional[SystemAccountService] = None,
        inventory: Optional[InventoryService] = None,
        journal: Optional[JournalService] = None,
        periods: Optional[FiscalPeriodService] = None,
        sequences: Optional[SequenceService] = None,
        master_data: Optional[MasterDataService] = None,
    ):
        self.db = db
        self.master_data = master_data or MasterDataService(db)
        self.system_accounts = system_accounts or SystemAccountService(db)
        self.periods = periods or FiscalPeriodService(db)
        self.sequences = sequences or SequenceService(db)
        self.inventory = inventory or InventoryService(db, self.master_data)
        self.journal = journal or JournalService(db, self.periods, self.sequences)

    # === QUERIES ===

    def get(self, receipt_id: int, company_id: Optional[int] = None) -> GoodsReceipt:
        query = self.db.query(GoodsReceipt).filter(GoodsReceipt.id == receipt_id)
        if company_id is not None:
            query = query.filter(GoodsReceipt.company_id == company_id)
        receipt = query.first()
        if not receipt:
            raise NotFoundError("GoodsReceipt", receipt_id)
        return receipt

    def list(
        self,
        company_id: int,
        status: Optional[str] = None,
        source_type: Optional[str] = None,
        warehouse_id: Optional[int] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        skip: int = 0,
        limit: int = 50,
    ) -> List[GoodsReceipt]:
        query = self.db.query(GoodsReceipt).filter(GoodsReceipt.company_id == company_id)
        if status:
            query = query.filter(GoodsReceipt.status == status)
        if source_type:
            query = query.filter(GoodsReceipt.source_type == source_type)
        if warehouse_id is not None:
            query = query.filter(GoodsReceipt.warehouse_id == warehouse_id)
        if start_date:
            query = query.filter(GoodsReceipt.date >= start_date)
        if end_date:
            query = query.filter(GoodsReceipt.date <= end_date)
        return query.order_by(GoodsReceipt.date.desc(), GoodsReceipt.id.desc()).offset(skip).limit(limit).all()

    # === WORKFLOW ===

    def create(
        self,
        company_id: int,
        date: date,
        warehouse_id: int,
        lines: Sequence[ReceiptLineInput],
        source_type: str = ReceiptSourceType.PURCHASE.value,
        source_ref: Optional[str] = None,
        note: Optional[str] = None,
        actor_id: Optional[int] = None,
    ) -> GoodsReceipt:
        """Create a DRAFT receipt. Loan returns go through GoodsIssueService.process_loan_return."""
        source_type = _source_type(source_type)
        if source_type == ReceiptSourceType.LOAN_RETURN.value:
            raise ValidationError(
                "Loan returns are created from the loan issue",
                field="source_type",
                value=source_type,
            )
        with atomic(self.db):
            receipt = self.build_receipt(
                company_id=company_id,
                on_date=date,
                warehouse_id=warehouse_id,
                lines=lines,
                source_type=source_type,
                source_ref=source_ref,
                note=note,
                actor_id=actor_id,
            )
        return receipt

    def update(
        self,
        receipt_id: int,
        lines: Optional[Sequence[ReceiptLineInput]] = None,
        actor_id: Optional[int] = None,
        **changes,
    ) -> GoodsReceipt:
        """Edit a DRAFT receipt. Passing lines replaces all of them."""
        unknown = set(changes) - set(_EDITABLE_FIELDS)
        if unknown:
            raise ValidationError(f"Unknown goods receipt fields: {', '.join(sorted(unknown))}")

        with atomic(self.db):
            receipt = self._get_for_update(receipt_id)
            next_status(
                GOODS_RECEIPT_TRANSITIONS,
                receipt.status,
                GoodsReceiptAction.EDIT,
                document="GoodsReceipt",
                document_id=receipt.id,
            )
            if "warehouse_id" in changes:
                self.master_data.require_active_warehouse(changes["warehouse_id"], receipt.company_id)
            for field, value in changes.items():
                setattr(receipt, field, value)
            if lines is not None:
                receipt.lines = self._build_lines(receipt.company_id, lines)
            self.db.flush()

        logger.info(
            "Goods receipt updated",
            extra={"receipt_id": receipt.id, "doc_number": receipt.doc_number, "actor_id": actor_id},
        )
        return receipt

    def delete(self, receipt_id: int, actor_id: Optional[int] = None) -> None:
        with atomic(self.db):
            receipt = self._get_for_update(receipt_id)
            next_status(
                GOODS_RECEIPT_TRANSITIONS,
                receipt.status,
                GoodsReceiptAction.DELETE,
                document="GoodsReceipt",
                document_id=receipt.id,
            )
            doc_number = receipt.doc_number
            self.db.delete(receipt)
            self.db.flush()

        logger.info(
            "Goods receipt deleted",
            extra={"receipt_id": receipt_id, "doc_number": doc_number, "actor_id": actor_id},
        )

    def approve(self, receipt_id: int, actor_id: Optional[int] = None) -> GoodsReceipt:
        """
        Receive stock and post GL in one transaction.

        Raises:
            InvalidTransitionError: Receipt is not DRAFT (already approved)
            PeriodClosedError: Receipt date is in a closed period
            AccountMisconfiguredError: A required system account is not mapped
        """
        with atomic(self.db):
            receipt = self._get_for_update(receipt_id)
            self.approve_receipt(receipt, actor_id=actor_id)
        return receipt

    # === BUILDING BLOCKS (no commit, used by the loan return flow) ===

    def build_receipt(
        self,
        *,
        company_id: int,
        on_date: date,
        warehouse_id: int,
        lines: Sequence[ReceiptLineInput],
        source_type: str,
        source_ref: Optional[str] = None,
        loan_issue_id: Optional[int] = None,
        note: Optional[str] = None,
        actor_id: Optional[int] = None,
    ) -> GoodsReceipt:
        if on_date is None:
            raise ValidationError("Receipt date is required", field="date")
        self.master_data.require_active_warehouse(warehouse_id, company_id)
        built_lines = self._build_lines(company_id, lines)

        doc_type = LOAN_RETURN if source_type == ReceiptSourceType.LOAN_RETURN.value else GOODS_RECEIPT
        receipt = GoodsReceipt(
            company_id=company_id,
            doc_number=self.sequences.next_number(company_id, doc_type, on_date),
            date=on_date,
            warehouse_id=warehouse_id,
            source_type=source_type,
            source_ref=source_ref,
            loan_issue_id=loan_issue_id,
            note=note,
            status=GoodsReceiptStatus.DRAFT.value,
            gl_status=GLStatus.PENDING.value,
            created_by=actor_id,
        )
        receipt.lines = built_lines
        self.db.add(receipt)
        self.db.flush()

        logger.info(
            "Goods receipt created",
            extra={
                "receipt_id": receipt.id,
                "doc_number": receipt.doc_number,
                "company_id": company_id,
                "source_type": source_type,
                "actor_id": actor_id,
            },
        )
        return receipt

    def approve_receipt(self, receipt: GoodsReceipt, actor_id: Optional[int] = None) -> GoodsReceipt:
        target = next_status(
            GOODS_RECEIPT_TRANSITIONS,
            receipt.status,
            GoodsReceiptAction.APPROVE,
            document="GoodsReceipt",
            document_id=receipt.id,
        )
        if receipt.gl_status == GLStatus.POSTED.value:
            raise ValidationError(
                f"Goods receipt {receipt.doc_number} is already posted to GL",
                field="gl_status",
                value=receipt.gl_status,
            )
        self.periods.ensure_date_open(receipt.company_id, receipt.date)

        total = ZERO
        for line in receipt.lines:
            self.inventory.receive(
                line.item_id,
                receipt.warehouse_id,
                line.qty,
                line.unit_cost,
                source_type=SOURCE_TYPE,
                reference_id=receipt.id,
                note=receipt.doc_number,
                actor_id=actor_id,
            )
            total += q_qty(line.qty) * q_cost(line.unit_cost)
        total = q_money(total)

        if total > 0:
            self._post_gl(receipt, total, actor_id)

        receipt.status = target
        receipt.approved_by = actor_id
        receipt.approved_at = datetime.utcnow()
        self.db.flush()

        logger.info(
            "Goods receipt approved",
            extra={
                "receipt_id": receipt.id,
                "doc_number": receipt.doc_number,
                "total_value": total,
                "gl_status": receipt.gl_status,
                "actor_id": actor_id,
            },
        )
        return receipt

    # === INTERNAL HELPERS ===

    def _post_gl(self, receipt: GoodsReceipt, total: Decimal, actor_id: Optional[int]) -> None:
        offset_key = OFFSET_ACCOUNT_KEYS[receipt.source_type]
        if receipt.source_type == ReceiptSourceType.LOAN_RETURN.value:
            credit_account_id = self.system_accounts.resolve_optional(receipt.company_id, offset_key)
            if credit_account_id is None:
                logger.warning(
                    "Loan return approved without GL, INVENTORY_ON_LOAN not mapped",
                    extra={"receipt_id": receipt.id, "doc_number": receipt.doc_number},
                )
                return
        else:
            credit_account_id = self.system_accounts.resolve(receipt.company_id, offset_key)
        debit_account_id = self.system_accounts.resolve(receipt.company_id, SystemAccountKey.INVENTORY_GENERAL)

        entry = self.journal.post_entry(
            company_id=receipt.company_id,
            entry_date=receipt.date,
            source_type=SOURCE_TYPE,
            source_id=receipt.id,
            memo=f"Goods receipt {receipt.doc_number}",
            lines=[
                JournalLineInput(
                    account_id=debit_account_id,
                    debit=total,
                    description=f"Inventory {receipt.doc_number}",
                    warehouse_id=receipt.warehouse_id,
                ),
                JournalLineInput(
                    account_id=credit_account_id,
                    credit=total,
                    description=receipt.source_ref or receipt.doc_number,
                ),
            ],
            actor_id=actor_id,
        )
        receipt.journal_entry_id = entry.id
        receipt.gl_status = GLStatus.POSTED.value

    def _build_lines(self, company_id: int, lines: Sequence[ReceiptLineInput]) -> List[GoodsReceiptLine]:
        if not lines:
            raise ValidationError("Goods receipt needs at least one line", field="lines")
        built = []
        for idx, line in enumerate(lines):
            qty = q_qty(line.qty)
            unit_cost = q_cost(line.unit_cost)
            if qty <= 0:
                raise ValidationError(f"Line {idx + 1}: quantity must be positive", field=f"lines[{idx}].qty", value=qty)
            if unit_cost < 0:
                raise ValidationError(
                    f"Line {idx + 1}: unit cost must not be negative",
                    field=f"lines[{idx}].unit_cost",
                    value=unit_cost,
                )
            self.master_data.require_item(line.item_id, company_id)
            built.append(
                GoodsReceiptLine(
                    item_id=line.item_id,
                    qty=qty,
                    unit_cost=unit_cost,
                    goods_issue_line_id=line.goods_issue_line_id,
                    note=line.note,
                )
            )
        return built

    def _get_for_update(self, receipt_id: int) -> GoodsReceipt:
        receipt = (
            self.db.query(GoodsReceipt)
            .filter(GoodsReceipt.id == receipt_id)
            .with_for_update()
            .populate_existing()
            .first()
        )
        if not receipt:
            raise NotFoundError("GoodsReceipt", receipt_id)
        return receipt


def _source_type(value) -> str:
    try:
        return ReceiptSourceType(value).value
    except ValueError:
        raise ValidationError(
            f"Invalid source type: {value}",
            field="source_type",
            value=value,
            details={"allowed": [m.value for m in ReceiptSourceType]},
        )
