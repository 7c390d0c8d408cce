"""
Accounting Pydantic Schemas

Request/response schemas for the chart of accounts, system account map,
fiscal periods, journal entries, opening balances and ledger queries.
"""
from pydantic import BaseModel, Field
from typing import Optional, List, Literal
from datetime import datetime, date
from decimal import Decimal

from pks_ledger.models.accounting import SystemAccountKey

AccountClassLiteral = Literal[
    "ASSET", "LIABILITY", "EQUITY", "REVENUE", "COGS", "EXPENSE", "OTHER_INCOME", "OTHER_EXPENSE"
]
NormalSideLiteral = Literal["DEBIT", "CREDIT"]
AccountStatusLiteral = Literal["AKTIF", "NONAKTIF"]
TaxCodeLiteral = Literal["NON_TAX", "PPN_MASUKAN", "PPN_KELUARAN", "PPH21", "PPH22", "PPH23"]


# ============================================================================
# Account Schemas (Chart of Accounts)
# ============================================================================

class AccountBase(BaseModel):
    """Base fields for an account"""
    code: str = Field(..., max_length=50, description="Account code (e.g., 1-1301)")
    name: str = Field(..., max_length=150, description="Account name")
    account_class: AccountClassLiteral
    normal_side: NormalSideLiteral
    is_posting: bool = Field(default=True, description="Leaf account that takes journal lines")
    is_cash_bank: bool = False
    tax_code: TaxCodeLiteral = "NON_TAX"
    parent_id: Optional[int] = Field(None, description="Header account above this one")
    status: AccountStatusLiteral = "AKTIF"
    description: Optional[str] = None


class AccountCreate(AccountBase):
    company_id: int


class AccountUpdate(BaseModel):
    """Update an existing account; only fields sent are changed"""
    code: Optional[str] = Field(None, max_length=50)
    name: Optional[str] = Field(None, max_length=150)
    account_class: Optional[AccountClassLiteral] = None
    normal_side: Optional[NormalSideLiteral] = None
    is_posting: Optional[bool] = None
    is_cash_bank: Optional[bool] = None
    tax_code: Optional[TaxCodeLiteral] = None
    parent_id: Optional[int] = None
    status: Optional[AccountStatusLiteral] = None
    description: Optional[str] = None


class AccountResponse(AccountBase):
    id: int
    company_id: int
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class AccountTreeNode(BaseModel):
    id: int
    code: str
    name: str
    account_class: str
    normal_side: str
    is_posting: bool
    status: str
    parent_id: Optional[int] = None
    children: List["AccountTreeNode"] = []


AccountTreeNode.model_rebuild()


# ============================================================================
# System Account Map
# ============================================================================

class SystemAccountMappingItem(BaseModel):
    key: SystemAccountKey
    account_id: int


class SystemAccountMappingsUpdate(BaseModel):
    company_id: int
    mappings: List[SystemAccountMappingItem] = Field(..., min_length=1)


class SystemAccountMappingResponse(BaseModel):
    id: int
    company_id: int
    key: SystemAccountKey
    account_id: int
    updated_by: Optional[int] = None
    updated_at: datetime

    model_config = {"from_attributes": True}


# ============================================================================
# Fiscal Period Schemas
# ============================================================================

class FiscalPeriodCreate(BaseModel):
    company_id: int
    year: int = Field(..., ge=1900, le=9999)
    month: int = Field(..., ge=1, le=12)
    start_date: Optional[date] = Field(None, description="Defaults to the first day of the month")
    end_date: Optional[date] = Field(None, description="Defaults to the last day of the month")


class FiscalPeriodUpdate(BaseModel):
    start_date: Optional[date] = None
    end_date: Optional[date] = None


class FiscalPeriodResponse(BaseModel):
    id: int
    company_id: int
    year: int
    month: int
    start_date: date
    end_date: date
    is_closed: bool
    closed_by: Optional[int] = None
    closed_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


# ============================================================================
# Journal Entry Schemas
# ============================================================================

class JournalLineCreate(BaseModel):
    account_id: int
    debit: Decimal = Field(default=Decimal("0"), ge=0)
    credit: Decimal = Field(default=Decimal("0"), ge=0)
    description: Optional[str] = Field(None, max_length=255)
    cost_center: Optional[str] = Field(None, max_length=50)
    dept: Optional[str] = Field(None, max_length=50)
    warehouse_id: Optional[int] = None
    item_id: Optional[int] = None


class JournalEntryCreate(BaseModel):
    """Manual journal entry (Jurnal Umum)"""
    company_id: int
    entry_date: date
    memo: Optional[str] = Field(None, max_length=255)
    lines: List[JournalLineCreate] = Field(..., min_length=2)


class JournalEntryReverse(BaseModel):
    reversal_date: Optional[date] = None
    memo: Optional[str] = Field(None, max_length=255)


class JournalLineResponse(BaseModel):
    id: int
    account_id: int
    debit: Decimal
    credit: Decimal
    description: Optional[str] = None
    cost_center: Optional[str] = None
    dept: Optional[str] = None
    warehouse_id: Optional[int] = None
    item_id: Optional[int] = None
    line_order: int

    model_config = {"from_attributes": True}


class JournalEntryResponse(BaseModel):
    id: int
    company_id: int
    entry_number: str
    entry_date: date
    memo: Optional[str] = None
    source_type: str
    source_id: Optional[int] = None
    status: str
    reverses_entry_id: Optional[int] = None
    posted_by: Optional[int] = None
    posted_at: Optional[datetime] = None
    lines: List[JournalLineResponse] = []
    total_debit: Decimal
    total_credit: Decimal

    model_config = {"from_attributes": True}


# ============================================================================
# Opening Balance Schemas
# ============================================================================

class OpeningBalanceEntry(BaseModel):
    account_id: int
    debit: Decimal = Field(default=Decimal("0"), ge=0)
    credit: Decimal = Field(default=Decimal("0"), ge=0)


class OpeningBalancesUpdate(BaseModel):
    company_id: int
    period_id: int
    entries: List[OpeningBalanceEntry]


class OpeningBalanceRowResponse(BaseModel):
    account_id: int
    code: str
    name: str
    normal_side: str
    debit: Decimal
    credit: Decimal


# ============================================================================
# Ledger Query Schemas
# ============================================================================

class LedgerLineResponse(BaseModel):
    entry_id: int
    entry_number: str
    entry_date: date
    source_type: str
    source_id: Optional[int] = None
    memo: Optional[str] = None
    description: Optional[str] = None
    debit: Decimal
    credit: Decimal
    balance: Decimal


class AccountLedgerResponse(BaseModel):
    account_id: int
    code: str
    name: str
    normal_side: str
    start_date: date
    end_date: date
    opening_balance: Decimal
    lines: List[LedgerLineResponse]
    total_debit: Decimal
    total_credit: Decimal
    ending_balance: Decimal


class AccountBalanceResponse(BaseModel):
    account_id: int
    as_of: date
    balance: Decimal


class TrialBalanceRow(BaseModel):
    account_id: int
    code: str
    name: str
    account_class: str
    debit: Decimal
    credit: Decimal


class TrialBalanceResponse(BaseModel):
    as_of: date
    rows: List[TrialBalanceRow]
    total_debit: Decimal
    total_credit: Decimal
    is_balanced: bool
