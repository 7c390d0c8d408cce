"""
Goods Issue workflow (Pengeluaran Barang), including loans (Peminjaman)

Purposes ISSUE / PROD / SCRAP: DRAFT -> APPROVED. Approval issues each line
at the current average cost and posts

    Dr expense account              consumed value
        Cr INVENTORY_GENERAL        consumed value

where the expense account is the one on the document, or the purpose's
default system account.

Purpose LOAN: DRAFT -> APPROVED -> PARTIAL_RETURN -> RETURNED. Approval moves
the value to INVENTORY_ON_LOAN and fails when that key is not mapped. Every return is a
LOAN_RETURN goods receipt created and approved together with the update of
the loan lines.
"""
from collections import OrderedDict
from datetime import date, datetime
from decimal import Decimal
from typing import Dict, List, NamedTuple, Optional, Sequence

from sqlalchemy.orm import Session

from pks_ledger.core.decimals import ZERO, q_cost, q_money, q_qty
from pks_ledger.core.status_config import (
    GLStatus,
    GOODS_ISSUE_TRANSITIONS,
    LOAN_TRANSITIONS,
    GoodsIssueAction,
    GoodsIssueStatus,
    allowed_actions,
    next_status,
)
from pks_ledger.db.session import atomic
from pks_ledger.exceptions import InvalidTransitionError, NotFoundError, ValidationError
from pks_ledger.logging_config import get_logger
from pks_ledger.models.accounting import Account, AccountStatus, SystemAccountKey
from pks_ledger.models.warehouse_document import (
    GoodsIssue,
    GoodsIssueLine,
    GoodsReceipt,
    IssuePurpose,
    ReceiptSourceType,
)
from pks_ledger.services.fiscal_period_service import FiscalPeriodService
from pks_ledger.services.goods_receipt_service import GoodsReceiptService, ReceiptLineInput
from pks_ledger.services.inventory_service import InventoryService
from pks_ledger.services.journal_service import JournalLineInput, JournalService
from pks_ledger.services.master_data import MasterDataService
from pks_ledger.services.sequence_service import GOODS_ISSUE, LOAN, SequenceService
from pks_ledger.services.system_account_service import SystemAccountService

logger = get_logger(__name__)

SOURCE_TYPE = "GoodsIssue"

DEFAULT_DEBIT_KEYS = {
    IssuePurpose.ISSUE.value: SystemAccountKey.MAINTENANCE_EXPENSE_DEFAULT,
    IssuePurpose.PROD.value: SystemAccountKey.PRODUCTION_CONSUMPTION,
    IssuePurpose.SCRAP.value: SystemAccountKey.INVENTORY_ADJUSTMENT_LOSS,
}

_EDITABLE_FIELDS = (
    "date",
    "warehouse_id",
    "expense_account_id",
    "cost_center",
    "target_dept",
    "picker_name",
    "loan_receiver",
    "expected_return_at",
    "loan_notes",
    "note",
)


class IssueLineInput(NamedTuple):
    """Item being issued. Cost is taken from stock at approval."""
    item_id: int
    qty: Decimal
    note: Optional[str] = None


class LoanReturnLine(NamedTuple):
    """Quantity coming back against one loan line"""
    goods_issue_line_id: int
    qty: Decimal
    note: Optional[str] = None


def _transitions(issue: GoodsIssue):
    return LOAN_TRANSITIONS if issue.is_loan else GOODS_ISSUE_TRANSITIONS


class GoodsIssueService:
    def __init__(
        self,
        db: Session,
        system_accounts: Optional[SystemAccountService] = None,
        inventory: Optional[InventoryService] = None,
        journal: Optional[JournalService] = None,
        periods: Optional[FiscalPeriodService] = None,
        sequences: Optional[SequenceService] = None,
        master_data: Optional[MasterDataService] = None,
        receipts: Optional[GoodsReceiptService] = None,
    ):
        self.db = db
        self.master_data = master_data or MasterDataService(db)
        self.system_accounts = system_accounts or SystemAccountService(db)
        self.periods = periods or FiscalPeriodService(db)
        self.sequences = sequences or SequenceService(db)
        self.inventory = inventory or InventoryService(db, self.master_data)
        self.journal = journal or JournalService(db, self.periods, self.sequences)
        self.receipts = receipts or GoodsReceiptService(
            db,
            system_accounts=self.system_accounts,
            inventory=self.inventory,
            journal=self.journal,
            periods=self.periods,
            sequences=self.sequences,
            master_data=self.master_data,
        )

    # === QUERIES ===

    def get(self, issue_id: int, company_id: Optional[int] = None) -> GoodsIssue:
        query = self.db.query(GoodsIssue).filter(GoodsIssue.id == issue_id)
        if company_id is not None:
            query = query.filter(GoodsIssue.company_id == company_id)
        issue = query.first()
        if not issue:
            raise NotFoundError("GoodsIssue", issue_id)
        return issue

    def list(
        self,
        company_id: int,
        purpose: Optional[str] = None,
        status: Optional[str] = None,
        warehouse_id: Optional[int] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        skip: int = 0,
        limit: int = 50,
    ) -> List[GoodsIssue]:
        query = self.db.query(GoodsIssue).filter(GoodsIssue.company_id == company_id)
        if purpose:
            query = query.filter(GoodsIssue.purpose == purpose)
        if status:
            query = query.filter(GoodsIssue.status == status)
        if warehouse_id is not None:
            query = query.filter(GoodsIssue.warehouse_id == warehouse_id)
        if start_date:
            query = query.filter(GoodsIssue.date >= start_date)
        if end_date:
            query = query.filter(GoodsIssue.date <= end_date)
        return query.order_by(GoodsIssue.date.desc(), GoodsIssue.id.desc()).offset(skip).limit(limit).all()

    def list_active_loans(self, company_id: int, warehouse_id: Optional[int] = None) -> List[GoodsIssue]:
        """Approved loans with quantity still outstanding, earliest expected return first."""
        query = self.db.query(GoodsIssue).filter(
            GoodsIssue.company_id == company_id,
            GoodsIssue.purpose == IssuePurpose.LOAN.value,
            GoodsIssue.is_loan_fully_returned.is_(False),
            GoodsIssue.status.in_([GoodsIssueStatus.APPROVED.value, GoodsIssueStatus.PARTIAL_RETURN.value]),
        )
        if warehouse_id is not None:
            query = query.filter(GoodsIssue.warehouse_id == warehouse_id)
        return query.order_by(GoodsIssue.expected_return_at, GoodsIssue.id).all()

    # === WORKFLOW ===

    def create(
        self,
        company_id: int,
        date: date,
        warehouse_id: int,
        lines: Sequence[IssueLineInput],
        purpose: str = IssuePurpose.ISSUE.value,
        expense_account_id: Optional[int] = None,
        cost_center: Optional[str] = None,
        target_dept: Optional[str] = None,
        picker_name: Optional[str] = None,
        loan_receiver: Optional[str] = None,
        expected_return_at: Optional[date] = None,
        loan_notes: Optional[str] = None,
        note: Optional[str] = None,
        actor_id: Optional[int] = None,
    ) -> GoodsIssue:
        """Create a DRAFT issue (or loan when purpose=LOAN)."""
        purpose = _purpose(purpose)
        if date is None:
            raise ValidationError("Issue date is required", field="date")
        if purpose == IssuePurpose.LOAN.value and not (loan_receiver or "").strip():
            raise ValidationError("Loan receiver is required for loans", field="loan_receiver")
        if expected_return_at is not None and expected_return_at < date:
            raise ValidationError(
                "Expected return date must not be before the loan date",
                field="expected_return_at",
                value=expected_return_at,
            )

        with atomic(self.db):
            self.master_data.require_active_warehouse(warehouse_id, company_id)
            if expense_account_id is not None:
                self._validate_expense_account(company_id, expense_account_id)
            built_lines = self._build_lines(company_id, lines)

            doc_type = LOAN if purpose == IssuePurpose.LOAN.value else GOODS_ISSUE
            issue = GoodsIssue(
                company_id=company_id,
                doc_number=self.sequences.next_number(company_id, doc_type, date),
                date=date,
                warehouse_id=warehouse_id,
                purpose=purpose,
                expense_account_id=expense_account_id,
                cost_center=cost_center,
                target_dept=target_dept,
                picker_name=picker_name,
                loan_receiver=loan_receiver,
                expected_return_at=expected_return_at,
                loan_notes=loan_notes,
                is_loan_fully_returned=False,
                note=note,
                status=GoodsIssueStatus.DRAFT.value,
                gl_status=GLStatus.PENDING.value,
                created_by=actor_id,
            )
            issue.lines = built_lines
            self.db.add(issue)
            self.db.flush()

        logger.info(
            "Goods issue created",
            extra={
                "issue_id": issue.id,
                "doc_number": issue.doc_number,
                "company_id": company_id,
                "purpose": purpose,
                "actor_id": actor_id,
            },
        )
        return issue

    def update(
        self,
        issue_id: int,
        lines: Optional[Sequence[IssueLineInput]] = None,
        actor_id: Optional[int] = None,
        **changes,
    ) -> GoodsIssue:
        """Edit a DRAFT issue. Passing lines replaces all of them."""
        unknown = set(changes) - set(_EDITABLE_FIELDS)
        if unknown:
            raise ValidationError(f"Unknown goods issue fields: {', '.join(sorted(unknown))}")

        with atomic(self.db):
            issue = self._get_for_update(issue_id)
            next_status(
                _transitions(issue),
                issue.status,
                GoodsIssueAction.EDIT,
                document="GoodsIssue",
                document_id=issue.id,
            )
            if "warehouse_id" in changes:
                self.master_data.require_active_warehouse(changes["warehouse_id"], issue.company_id)
            if changes.get("expense_account_id") is not None:
                self._validate_expense_account(issue.company_id, changes["expense_account_id"])
            if issue.is_loan and "loan_receiver" in changes and not (changes["loan_receiver"] or "").strip():
                raise ValidationError("Loan receiver is required for loans", field="loan_receiver")
            for field, value in changes.items():
                setattr(issue, field, value)
            if lines is not None:
                issue.lines = self._build_lines(issue.company_id, lines)
            self.db.flush()

        logger.info(
            "Goods issue updated",
            extra={"issue_id": issue.id, "doc_number": issue.doc_number, "actor_id": actor_id},
        )
        return issue

    def delete(self, issue_id: int, actor_id: Optional[int] = None) -> None:
        with atomic(self.db):
            issue = self._get_for_update(issue_id)
            next_status(
                _transitions(issue),
                issue.status,
                GoodsIssueAction.DELETE,
                document="GoodsIssue",
                document_id=issue.id,
            )
            doc_number = issue.doc_number
            self.db.delete(issue)
            self.db.flush()

        logger.info(
            "Goods issue deleted",
            extra={"issue_id": issue_id, "doc_number": doc_number, "actor_id": actor_id},
        )

    def approve(self, issue_id: int, actor_id: Optional[int] = None) -> GoodsIssue:
        """
        Issue stock at current average cost and post GL in one transaction.

        Raises:
            InvalidTransitionError: Issue is not DRAFT
            PeriodClosedError: Issue date is in a closed period
            InsufficientStockError: A line exceeds the on-hand quantity
            AccountMisconfiguredError: A required system account is not mapped
        """
        with atomic(self.db):
            issue = self._get_for_update(issue_id)
            target = next_status(
                _transitions(issue),
                issue.status,
                GoodsIssueAction.APPROVE,
                document="GoodsIssue",
                document_id=issue.id,
            )
            self.periods.ensure_date_open(issue.company_id, issue.date)

            total = ZERO
            for line in issue.lines:
                unit_cost = self.inventory.issue(
                    line.item_id,
                    issue.warehouse_id,
                    line.qty,
                    source_type=SOURCE_TYPE,
                    reference_id=issue.id,
                    note=issue.doc_number,
                    actor_id=actor_id,
                )
                line.unit_cost = unit_cost
                line.qty_returned = ZERO
                total += q_qty(line.qty) * q_cost(unit_cost)
            total = q_money(total)

            if total > 0:
                self._post_gl(issue, total, actor_id)

            issue.status = target
            issue.approved_by = actor_id
            issue.approved_at = datetime.utcnow()
            self.db.flush()

        logger.info(
            "Goods issue approved",
            extra={
                "issue_id": issue.id,
                "doc_number": issue.doc_number,
                "purpose": issue.purpose,
                "total_value": total,
                "gl_status": issue.gl_status,
                "actor_id": actor_id,
            },
        )
        return issue

    def process_loan_return(
        self,
        issue_id: int,
        returns: Sequence[LoanReturnLine],
        return_date: Optional[date] = None,
        warehouse_id: Optional[int] = None,
        note: Optional[str] = None,
        actor_id: Optional[int] = None,
    ) -> GoodsReceipt:
        """
        Bring loaned items back into stock.

        Creates and approves a LOAN_RETURN goods receipt at the cost the loan
        consumed, raises qty_returned on each loan line and moves the loan to
        PARTIAL_RETURN or RETURNED, all in one transaction.

        Raises:
            ValidationError: Not a loan, unknown line, or a quantity above what is outstanding
            InvalidTransitionError: Loan is not APPROVED / PARTIAL_RETURN
        """
        if not returns:
            raise ValidationError("Loan return needs at least one line", field="returns")

        with atomic(self.db):
            issue = self._get_for_update(issue_id)
            if not issue.is_loan:
                raise ValidationError(
                    f"Goods issue {issue.doc_number} is not a loan",
                    field="purpose",
                    value=issue.purpose,
                )
            if GoodsIssueAction.PARTIAL_RETURN.value not in allowed_actions(LOAN_TRANSITIONS, issue.status):
                raise InvalidTransitionError(
                    "GoodsIssue",
                    document_id=issue.id,
                    current_state=issue.status,
                    action="return",
                    allowed_actions=allowed_actions(LOAN_TRANSITIONS, issue.status),
                )

            requested = self._aggregate_returns(issue, returns)

            receipt = self.receipts.build_receipt(
                company_id=issue.company_id,
                on_date=return_date or date.today(),
                warehouse_id=warehouse_id or issue.warehouse_id,
                lines=[
                    ReceiptLineInput(
                        item_id=line.item_id,
                        qty=qty,
                        unit_cost=line.unit_cost or ZERO,
                        goods_issue_line_id=line.id,
                        note=line_note,
                    )
                    for line, qty, line_note in requested.values()
                ],
                source_type=ReceiptSourceType.LOAN_RETURN.value,
                source_ref=issue.doc_number,
                loan_issue_id=issue.id,
                note=note,
                actor_id=actor_id,
            )
            self.receipts.approve_receipt(receipt, actor_id=actor_id)

            for line, qty, _ in requested.values():
                line.qty_returned = q_qty(line.qty_returned) + qty

            fully_returned = all(q_qty(line.qty_returned) >= q_qty(line.qty) for line in issue.lines)
            action = GoodsIssueAction.FULL_RETURN if fully_returned else GoodsIssueAction.PARTIAL_RETURN
            issue.status = next_status(
                LOAN_TRANSITIONS,
                issue.status,
                action,
                document="GoodsIssue",
                document_id=issue.id,
            )
            issue.is_loan_fully_returned = fully_returned
            self.db.flush()

        logger.info(
            "Loan return processed",
            extra={
                "issue_id": issue.id,
                "doc_number": issue.doc_number,
                "receipt_id": receipt.id,
                "receipt_doc_number": receipt.doc_number,
                "status": issue.status,
                "actor_id": actor_id,
            },
        )
        return receipt

    # === INTERNAL HELPERS ===

    def _post_gl(self, issue: GoodsIssue, total: Decimal, actor_id: Optional[int]) -> None:
        if issue.is_loan:
            debit_account_id = self.system_accounts.resolve(issue.company_id, SystemAccountKey.INVENTORY_ON_LOAN)
        elif issue.expense_account_id:
            debit_account_id = issue.expense_account_id
        else:
            debit_account_id = self.system_accounts.resolve(issue.company_id, DEFAULT_DEBIT_KEYS[issue.purpose])
        credit_account_id = self.system_accounts.resolve(issue.company_id, SystemAccountKey.INVENTORY_GENERAL)

        entry = self.journal.post_entry(
            company_id=issue.company_id,
            entry_date=issue.date,
            source_type=SOURCE_TYPE,
            source_id=issue.id,
            memo=f"Goods issue {issue.doc_number} ({issue.purpose})",
            lines=[
                JournalLineInput(
                    account_id=debit_account_id,
                    debit=total,
                    description=issue.loan_receiver or issue.target_dept or issue.doc_number,
                    cost_center=issue.cost_center,
                    dept=issue.target_dept,
                ),
                JournalLineInput(
                    account_id=credit_account_id,
                    credit=total,
                    description=f"Inventory {issue.doc_number}",
                    warehouse_id=issue.warehouse_id,
                ),
            ],
            actor_id=actor_id,
        )
        issue.journal_entry_id = entry.id
        issue.gl_status = GLStatus.POSTED.value

    def _aggregate_returns(self, issue: GoodsIssue, returns: Sequence[LoanReturnLine]) -> Dict[int, tuple]:
        """Sum requested quantities per loan line and reject anything above what is outstanding."""
        lines_by_id = {line.id: line for line in issue.lines}
        requested: "OrderedDict[int, tuple]" = OrderedDict()
        for idx, ret in enumerate(returns):
            line = lines_by_id.get(ret.goods_issue_line_id)
            if line is None:
                raise ValidationError(
                    f"Line {ret.goods_issue_line_id} does not belong to loan {issue.doc_number}",
                    field=f"returns[{idx}].goods_issue_line_id",
                    value=ret.goods_issue_line_id,
                )
            qty = q_qty(ret.qty)
            if qty <= 0:
                raise ValidationError(
                    "Return quantity must be positive",
                    field=f"returns[{idx}].qty",
                    value=qty,
                )
            _, previous, note = requested.get(line.id, (line, ZERO, ret.note))
            requested[line.id] = (line, previous + qty, note)

        for line, qty, _ in requested.values():
            outstanding = q_qty(line.qty) - q_qty(line.qty_returned)
            if qty > outstanding:
                logger.warning(
                    "Loan over-return rejected",
                    extra={
                        "issue_id": issue.id,
                        "line_id": line.id,
                        "requested": qty,
                        "outstanding": outstanding,
                    },
                )
                raise ValidationError(
                    f"Return of {qty} exceeds outstanding {outstanding} on loan {issue.doc_number}",
                    field="qty",
                    value=qty,
                    details={"goods_issue_line_id": line.id, "outstanding": str(outstanding)},
                )
        return requested

    def _validate_expense_account(self, company_id: int, account_id: int) -> Account:
        account = self.db.query(Account).filter(Account.id == account_id).first()
        if not account:
            raise NotFoundError("Account", account_id)
        if account.company_id != company_id or not account.is_posting or account.status != AccountStatus.AKTIF.value:
            raise ValidationError(
                f"Account {account.code} cannot take postings for this company",
                field="expense_account_id",
                value=account_id,
            )
        return account

    def _build_lines(self, company_id: int, lines: Sequence[IssueLineInput]) -> List[GoodsIssueLine]:
        if not lines:
            raise ValidationError("Goods issue needs at least one line", field="lines")
        built = []
        for idx, line in enumerate(lines):
            qty = q_qty(line.qty)
            if qty <= 0:
                raise ValidationError(f"Line {idx + 1}: quantity must be positive", field=f"lines[{idx}].qty", value=qty)
            self.master_data.require_item(line.item_id, company_id)
            built.append(
                GoodsIssueLine(
                    item_id=line.item_id,
                    qty=qty,
                    qty_returned=ZERO,
                    note=line.note,
                )
            )
        return built

    def _get_for_update(self, issue_id: int) -> GoodsIssue:
        issue = (
            self.db.query(GoodsIssue)
            .filter(GoodsIssue.id == issue_id)
            .with_for_update()
            .populate_existing()
            .first()
        )
        if not issue:
            raise NotFoundError("GoodsIssue", issue_id)
        return issue


def _purpose(value) -> str:
    try:
        return IssuePurpose(value).value
    except ValueError:
        raise ValidationError(
            f"Invalid purpose: {value}",
            field="purpose",
            value=value,
            details={"allowed": [m.value for m in IssuePurpose]},
        )
