"""
Accounting Models (General Ledger)

Double-entry bookkeeping for each company: chart of accounts, system account
map, fiscal periods, journal entries and opening balances. Journal entries
are created already posted and are never edited or deleted afterwards.
"""
from enum import Enum

from sqlalchemy import (
    Column, Integer, String, Numeric, DateTime, Date, ForeignKey, Text, Boolean,
    UniqueConstraint, Index, CheckConstraint,
)
from sqlalchemy import Enum as SAEnum
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from pks_ledger.db.base import Base


class AccountClass(str, Enum):
    ASSET = "ASSET"
    LIABILITY = "LIABILITY"
    EQUITY = "EQUITY"
    REVENUE = "REVENUE"
    COGS = "COGS"
    EXPENSE = "EXPENSE"
    OTHER_INCOME = "OTHER_INCOME"
    OTHER_EXPENSE = "OTHER_EXPENSE"


class NormalSide(str, Enum):
    DEBIT = "DEBIT"
    CREDIT = "CREDIT"


class AccountStatus(str, Enum):
    AKTIF = "AKTIF"
    NONAKTIF = "NONAKTIF"


class TaxCode(str, Enum):
    NON_TAX = "NON_TAX"
    PPN_MASUKAN = "PPN_MASUKAN"
    PPN_KELUARAN = "PPN_KELUARAN"
    PPH21 = "PPH21"
    PPH22 = "PPH22"
    PPH23 = "PPH23"


class SystemAccountKey(str, Enum):
    """Business roles that postings resolve to concrete accounts"""
    TBS_PURCHASE = "TBS_PURCHASE"
    INVENTORY_TBS = "INVENTORY_TBS"
    AP_SUPPLIER_TBS = "AP_SUPPLIER_TBS"
    UNLOADING_EXPENSE_SPTI = "UNLOADING_EXPENSE_SPTI"
    UNLOADING_EXPENSE_SPLO = "UNLOADING_EXPENSE_SPLO"
    SALES_CPO = "SALES_CPO"
    SALES_KERNEL = "SALES_KERNEL"
    INVENTORY_CPO = "INVENTORY_CPO"
    INVENTORY_KERNEL = "INVENTORY_KERNEL"
    INVENTORY_GENERAL = "INVENTORY_GENERAL"
    INVENTORY_ON_LOAN = "INVENTORY_ON_LOAN"
    INVENTORY_ADJUSTMENT_LOSS = "INVENTORY_ADJUSTMENT_LOSS"
    COGS_CPO = "COGS_CPO"
    COGS_KERNEL = "COGS_KERNEL"
    CASH_DEFAULT = "CASH_DEFAULT"
    BANK_DEFAULT = "BANK_DEFAULT"
    PPN_KELUARAN = "PPN_KELUARAN"
    PPN_MASUKAN = "PPN_MASUKAN"
    PPH22_DEFAULT = "PPH22_DEFAULT"
    PPH23_DEFAULT = "PPH23_DEFAULT"
    PRODUCTION_CONSUMPTION = "PRODUCTION_CONSUMPTION"
    MAINTENANCE_EXPENSE_DEFAULT = "MAINTENANCE_EXPENSE_DEFAULT"


class Account(Base):
    """Chart of accounts entry. Headers aggregate, posting accounts take journal lines."""
    __tablename__ = "accounts"
    __table_args__ = (
        UniqueConstraint("company_id", "code", name="uq_accounts_company_code"),
    )

    id = Column(Integer, primary_key=True, index=True)
    company_id = Column(Integer, nullable=False, index=True)

    # Account Identification
    code = Column(String(50), nullable=False)  # "1-1301", "2-1101"
    name = Column(String(150), nullable=False)

    # Classification
    account_class = Column(String(20), nullable=False, index=True)
    normal_side = Column(String(10), nullable=False)
    is_posting = Column(Boolean, nullable=False, default=True)
    is_cash_bank = Column(Boolean, nullable=False, default=False)
    tax_code = Column(String(20), nullable=False, default=TaxCode.NON_TAX.value)

    # Hierarchy: only header accounts may parent
    parent_id = Column(Integer, ForeignKey("accounts.id"), nullable=True, index=True)

    status = Column(String(10), nullable=False, default=AccountStatus.AKTIF.value, index=True)
    description = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=False), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=False), server_default=func.now(), onupdate=func.now(), nullable=False)

    parent = relationship("Account", remote_side=[id], backref="children")
    journal_lines = relationship("JournalLine", back_populates="account")

    @property
    def is_active(self) -> bool:
        return self.status == AccountStatus.AKTIF.value

    def __repr__(self):
        return f"<Account {self.code}: {self.name}>"


class SystemAccountMapping(Base):
    """Maps a business role to a concrete posting account, one per company and key"""
    __tablename__ = "system_account_mappings"
    __table_args__ = (
        UniqueConstraint("company_id", "key", name="uq_system_account_mappings_company_key"),
    )

    id = Column(Integer, primary_key=True, index=True)
    company_id = Column(Integer, nullable=False, index=True)
    key = Column(SAEnum(SystemAccountKey, native_enum=False, length=40), nullable=False)
    account_id = Column(Integer, ForeignKey("accounts.id"), nullable=False, index=True)

    updated_by = Column(Integer, nullable=True)
    updated_at = Column(DateTime(timezone=False), server_default=func.now(), onupdate=func.now(), nullable=False)

    account = relationship("Account")

    def __repr__(self):
        return f"<SystemAccountMapping {self.company_id}:{self.key} -> {self.account_id}>"


class FiscalPeriod(Base):
    """Monthly posting window; closed periods reject every posting dated inside them"""
    __tablename__ = "fiscal_periods"
    __table_args__ = (
        UniqueConstraint("company_id", "year", "month", name="uq_fiscal_periods_company_year_month"),
        CheckConstraint("month >= 1 AND month <= 12", name="chk_fiscal_periods_month_range"),
    )

    id = Column(Integer, primary_key=True, index=True)
    company_id = Column(Integer, nullable=False, index=True)

    year = Column(Integer, nullable=False)
    month = Column(Integer, nullable=False)  # 1-12

    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)

    is_closed = Column(Boolean, nullable=False, default=False, index=True)
    closed_by = Column(Integer, nullable=True)
    closed_at = Column(DateTime, nullable=True)

    created_by = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=False), server_default=func.now(), nullable=False)

    def contains(self, on_date) -> bool:
        return self.start_date <= on_date <= self.end_date

    def __repr__(self):
        state = "closed" if self.is_closed else "open"
        return f"<FiscalPeriod {self.year}-{self.month:02d} ({state})>"


class JournalEntry(Base):
    """Posted journal entry header. Append-only."""
    __tablename__ = "journal_entries"
    __table_args__ = (
        UniqueConstraint("company_id", "entry_number", name="uq_journal_entries_company_number"),
        Index("ix_journal_entries_source", "source_type", "source_id"),
    )

    id = Column(Integer, primary_key=True, index=True)
    company_id = Column(Integer, nullable=False, index=True)

    entry_number = Column(String(30), nullable=False)  # "JE/2025/03/0007"
    entry_date = Column(Date, nullable=False, index=True)
    memo = Column(String(255), nullable=True)

    # GoodsReceipt, GoodsIssue, WeighbridgeTicket, Manual, Reversal
    source_type = Column(String(50), nullable=False)
    source_id = Column(Integer, nullable=True)

    status = Column(String(20), nullable=False, default="POSTED")

    # Set on the reversing entry, pointing at the entry it cancels
    reverses_entry_id = Column(Integer, ForeignKey("journal_entries.id"), nullable=True, unique=True)

    created_by = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=False), server_default=func.now(), nullable=False)
    posted_by = Column(Integer, nullable=True)
    posted_at = Column(DateTime, nullable=True)

    lines = relationship(
        "JournalLine",
        back_populates="entry",
        cascade="all, delete-orphan",
        order_by="JournalLine.line_order",
    )

    @property
    def total_debit(self):
        return sum((line.debit or 0) for line in self.lines)

    @property
    def total_credit(self):
        return sum((line.credit or 0) for line in self.lines)

    @property
    def is_balanced(self) -> bool:
        return self.total_debit == self.total_credit

    def __repr__(self):
        return f"<JournalEntry {self.entry_number} - {self.status}>"


class JournalLine(Base):
    """Individual debit/credit line within a journal entry"""
    __tablename__ = "journal_lines"
    __table_args__ = (
        CheckConstraint("debit >= 0 AND credit >= 0", name="chk_journal_lines_non_negative"),
        CheckConstraint("NOT (debit > 0 AND credit > 0)", name="chk_journal_lines_one_side"),
    )

    id = Column(Integer, primary_key=True, index=True)
    entry_id = Column(
        Integer,
        ForeignKey("journal_entries.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    account_id = Column(Integer, ForeignKey("accounts.id"), nullable=False, index=True)

    debit = Column(Numeric(18, 2), nullable=False, default=0)
    credit = Column(Numeric(18, 2), nullable=False, default=0)

    description = Column(String(255), nullable=True)
    cost_center = Column(String(50), nullable=True)
    dept = Column(String(50), nullable=True)
    warehouse_id = Column(Integer, nullable=True)
    item_id = Column(Integer, nullable=True)
    line_order = Column(Integer, nullable=False, default=0)

    entry = relationship("JournalEntry", back_populates="lines")
    account = relationship("Account", back_populates="journal_lines")

    def __repr__(self):
        if (self.debit or 0) > 0:
            return f"<JournalLine DR {self.account_id} {self.debit}>"
        return f"<JournalLine CR {self.account_id} {self.credit}>"


class OpeningBalance(Base):
    """Starting debit/credit of a posting account for one fiscal period"""
    __tablename__ = "opening_balances"
    __table_args__ = (
        UniqueConstraint("period_id", "account_id", name="uq_opening_balances_period_account"),
    )

    id = Column(Integer, primary_key=True, index=True)
    company_id = Column(Integer, nullable=False, index=True)
    period_id = Column(Integer, ForeignKey("fiscal_periods.id"), nullable=False, index=True)
    account_id = Column(Integer, ForeignKey("accounts.id"), nullable=False, index=True)

    debit = Column(Numeric(18, 2), nullable=False, default=0)
    credit = Column(Numeric(18, 2), nullable=False, default=0)

    updated_by = Column(Integer, nullable=True)
    updated_at = Column(DateTime(timezone=False), server_default=func.now(), onupdate=func.now(), nullable=False)

    period = relationship("FiscalPeriod")
    account = relationship("Account")

    def __repr__(self):
        return f"<OpeningBalance period={self.period_id} account={self.account_id}>"


class DocumentSequence(Base):
    """Counter behind every document and journal entry number, one row per prefix"""
    __tablename__ = "document_sequences"
    __table_args__ = (
        UniqueConstraint("company_id", "prefix", name="uq_document_sequences_company_prefix"),
    )

    id = Column(Integer, primary_key=True, index=True)
    company_id = Column(Integer, nullable=False)
    prefix = Column(String(40), nullable=False)  # "JE/2025/03"
    last_value = Column(Integer, nullable=False, default=0)

    def __repr__(self):
        return f"<DocumentSequence {self.company_id}:{self.prefix}={self.last_value}>"
