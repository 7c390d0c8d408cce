"""
Warehouse document models: goods receipts and goods issues (including loans)
"""
from enum import Enum

from sqlalchemy import (
    Column, Integer, String, DateTime, Text, Numeric, ForeignKey, Date, Boolean,
    UniqueConstraint, CheckConstraint,
)
from sqlalchemy.orm import relationship
from datetime import datetime

from pks_ledger.db.base import Base


class ReceiptSourceType(str, Enum):
    PURCHASE = "PURCHASE"
    OTHER = "OTHER"
    LOAN_RETURN = "LOAN_RETURN"


class IssuePurpose(str, Enum):
    ISSUE = "ISSUE"
    LOAN = "LOAN"
    PROD = "PROD"
    SCRAP = "SCRAP"


class GoodsReceipt(Base):
    """Goods receipt header (Penerimaan Barang)"""
    __tablename__ = "goods_receipts"
    __table_args__ = (
        UniqueConstraint("company_id", "doc_number", name="uq_goods_receipts_company_doc_number"),
    )

    id = Column(Integer, primary_key=True, index=True)
    company_id = Column(Integer, nullable=False, index=True)

    # GR/2025/03/0001, RET-LOAN/2025/03/0001 for loan returns
    doc_number = Column(String(40), nullable=False)
    date = Column(Date, nullable=False)
    warehouse_id = Column(Integer, ForeignKey("warehouses.id"), nullable=False)

    source_type = Column(String(20), nullable=False, default=ReceiptSourceType.PURCHASE.value)
    source_ref = Column(String(100), nullable=True)  # PO number, supplier DO, etc.
    loan_issue_id = Column(Integer, ForeignKey("goods_issues.id"), nullable=True, index=True)
    note = Column(Text, nullable=True)

    # Status workflow: DRAFT -> APPROVED
    status = Column(String(20), default="DRAFT", nullable=False, index=True)
    gl_status = Column(String(20), default="PENDING", nullable=False)
    journal_entry_id = Column(Integer, ForeignKey("journal_entries.id"), nullable=True)

    # Audit
    created_by = Column(Integer, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
    approved_by = Column(Integer, nullable=True)
    approved_at = Column(DateTime, nullable=True)

    lines = relationship(
        "GoodsReceiptLine",
        back_populates="receipt",
        cascade="all, delete-orphan",
        order_by="GoodsReceiptLine.id",
    )
    loan_issue = relationship("GoodsIssue", foreign_keys=[loan_issue_id])

    @property
    def total_value(self):
        return sum((line.qty or 0) * (line.unit_cost or 0) for line in self.lines)

    def __repr__(self):
        return f"<GoodsReceipt {self.doc_number}: {self.status}>"


class GoodsReceiptLine(Base):
    """Goods receipt line"""
    __tablename__ = "goods_receipt_lines"

    id = Column(Integer, primary_key=True, index=True)
    receipt_id = Column(Integer, ForeignKey("goods_receipts.id", ondelete="CASCADE"), nullable=False, index=True)

    item_id = Column(Integer, ForeignKey("items.id"), nullable=False)
    qty = Column(Numeric(18, 4), nullable=False)
    unit_cost = Column(Numeric(18, 6), default=0, nullable=False)

    # Loan returns point at the issue line being returned
    goods_issue_line_id = Column(Integer, ForeignKey("goods_issue_lines.id"), nullable=True)
    note = Column(String(255), nullable=True)

    receipt = relationship("GoodsReceipt", back_populates="lines")

    def __repr__(self):
        return f"<GoodsReceiptLine item={self.item_id}: {self.qty} @ {self.unit_cost}>"


class GoodsIssue(Base):
    """Goods issue header (Pengeluaran Barang). purpose=LOAN tracks returns per line."""
    __tablename__ = "goods_issues"
    __table_args__ = (
        UniqueConstraint("company_id", "doc_number", name="uq_goods_issues_company_doc_number"),
    )

    id = Column(Integer, primary_key=True, index=True)
    company_id = Column(Integer, nullable=False, index=True)

    # GI/2025/03/0001, LOAN/2025/03/0001
    doc_number = Column(String(40), nullable=False)
    date = Column(Date, nullable=False)
    warehouse_id = Column(Integer, ForeignKey("warehouses.id"), nullable=False)

    purpose = Column(String(10), nullable=False, default=IssuePurpose.ISSUE.value, index=True)
    expense_account_id = Column(Integer, ForeignKey("accounts.id"), nullable=True)
    cost_center = Column(String(50), nullable=True)
    target_dept = Column(String(50), nullable=True)
    picker_name = Column(String(100), nullable=True)

    # Loan fields
    loan_receiver = Column(String(100), nullable=True)
    expected_return_at = Column(Date, nullable=True)
    loan_notes = Column(Text, nullable=True)
    is_loan_fully_returned = Column(Boolean, default=False, nullable=False)

    note = Column(Text, nullable=True)

    # Status workflow: DRAFT -> APPROVED [-> PARTIAL_RETURN -> RETURNED for loans]
    status = Column(String(20), default="DRAFT", nullable=False, index=True)
    gl_status = Column(String(20), default="PENDING", nullable=False)
    journal_entry_id = Column(Integer, ForeignKey("journal_entries.id"), nullable=True)

    # Audit
    created_by = Column(Integer, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
    approved_by = Column(Integer, nullable=True)
    approved_at = Column(DateTime, nullable=True)

    lines = relationship(
        "GoodsIssueLine",
        back_populates="issue",
        cascade="all, delete-orphan",
        order_by="GoodsIssueLine.id",
    )

    @property
    def is_loan(self) -> bool:
        return self.purpose == IssuePurpose.LOAN.value

    @property
    def total_value(self):
        return sum((line.qty or 0) * (line.unit_cost or 0) for line in self.lines)

    def __repr__(self):
        return f"<GoodsIssue {self.doc_number} ({self.purpose}): {self.status}>"


class GoodsIssueLine(Base):
    """Goods issue line. unit_cost is the average cost consumed at approval."""
    __tablename__ = "goods_issue_lines"
    __table_args__ = (
        CheckConstraint("qty_returned <= qty", name="chk_goods_issue_lines_returned_le_qty"),
    )

    id = Column(Integer, primary_key=True, index=True)
    issue_id = Column(Integer, ForeignKey("goods_issues.id", ondelete="CASCADE"), nullable=False, index=True)

    item_id = Column(Integer, ForeignKey("items.id"), nullable=False)
    qty = Column(Numeric(18, 4), nullable=False)
    unit_cost = Column(Numeric(18, 6), nullable=True)
    qty_returned = Column(Numeric(18, 4), default=0, nullable=False)
    note = Column(String(255), nullable=True)

    issue = relationship("GoodsIssue", back_populates="lines")

    @property
    def qty_outstanding(self):
        return (self.qty or 0) - (self.qty_returned or 0)

    def __repr__(self):
        return f"<GoodsIssueLine item={self.item_id}: {self.qty} (returned {self.qty_returned})>"
