"""
Warehouse Transaction Pydantic Schemas

Goods receipts (Barang Masuk), goods issues (Barang Keluar) and loans
(Peminjaman Barang) with their returns.
"""
from pydantic import BaseModel, Field, model_validator
from typing import Optional, List, Literal
import datetime as dt
from decimal import Decimal


# ============================================================================
# Goods Receipt
# ============================================================================

class GoodsReceiptLineCreate(BaseModel):
    item_id: int
    qty: Decimal = Field(..., gt=0)
    unit_cost: Decimal = Field(default=Decimal("0"), ge=0)
    note: Optional[str] = Field(None, max_length=255)


class GoodsReceiptCreate(BaseModel):
    company_id: int
    date: dt.date
    warehouse_id: int
    source_type: Literal["PURCHASE", "OTHER"] = "PURCHASE"
    source_ref: Optional[str] = Field(None, max_length=100)
    note: Optional[str] = None
    lines: List[GoodsReceiptLineCreate] = Field(..., min_length=1)


class GoodsReceiptUpdate(BaseModel):
    date: Optional[dt.date] = None
    warehouse_id: Optional[int] = None
    source_ref: Optional[str] = Field(None, max_length=100)
    note: Optional[str] = None
    lines: Optional[List[GoodsReceiptLineCreate]] = None


class GoodsReceiptLineResponse(BaseModel):
    id: int
    item_id: int
    qty: Decimal
    unit_cost: Decimal
    goods_issue_line_id: Optional[int] = None
    note: Optional[str] = None

    model_config = {"from_attributes": True}


class GoodsReceiptResponse(BaseModel):
    id: int
    company_id: int
    doc_number: str
    date: dt.date
    warehouse_id: int
    source_type: str
    source_ref: Optional[str] = None
    loan_issue_id: Optional[int] = None
    note: Optional[str] = None
    status: str
    gl_status: str
    journal_entry_id: Optional[int] = None
    created_by: Optional[int] = None
    approved_by: Optional[int] = None
    approved_at: Optional[dt.datetime] = None
    total_value: Decimal
    lines: List[GoodsReceiptLineResponse] = []

    model_config = {"from_attributes": True}


# ============================================================================
# Goods Issue / Loan
# ============================================================================

class GoodsIssueLineCreate(BaseModel):
    item_id: int
    qty: Decimal = Field(..., gt=0)
    note: Optional[str] = Field(None, max_length=255)


class GoodsIssueCreate(BaseModel):
    company_id: int
    date: dt.date
    warehouse_id: int
    purpose: Literal["ISSUE", "LOAN", "PROD", "SCRAP"] = "ISSUE"
    expense_account_id: Optional[int] = None
    cost_center: Optional[str] = Field(None, max_length=50)
    target_dept: Optional[str] = Field(None, max_length=50)
    picker_name: Optional[str] = Field(None, max_length=100)
    loan_receiver: Optional[str] = Field(None, max_length=100)
    expected_return_at: Optional[dt.date] = None
    loan_notes: Optional[str] = None
    note: Optional[str] = None
    lines: List[GoodsIssueLineCreate] = Field(..., min_length=1)

    @model_validator(mode="after")
    def check_loan_fields(self):
        if self.purpose == "LOAN" and not (self.loan_receiver or "").strip():
            raise ValueError("loan_receiver is required when purpose is LOAN")
        return self


class GoodsIssueUpdate(BaseModel):
    date: Optional[dt.date] = None
    warehouse_id: Optional[int] = None
    expense_account_id: Optional[int] = None
    cost_center: Optional[str] = Field(None, max_length=50)
    target_dept: Optional[str] = Field(None, max_length=50)
    picker_name: Optional[str] = Field(None, max_length=100)
    loan_receiver: Optional[str] = Field(None, max_length=100)
    expected_return_at: Optional[dt.date] = None
    loan_notes: Optional[str] = None
    note: Optional[str] = None
    lines: Optional[List[GoodsIssueLineCreate]] = None


class GoodsIssueLineResponse(BaseModel):
    id: int
    item_id: int
    qty: Decimal
    unit_cost: Optional[Decimal] = None
    qty_returned: Decimal
    qty_outstanding: Decimal
    note: Optional[str] = None

    model_config = {"from_attributes": True}


class GoodsIssueResponse(BaseModel):
    id: int
    company_id: int
    doc_number: str
    date: dt.date
    warehouse_id: int
    purpose: str
    expense_account_id: Optional[int] = None
    cost_center: Optional[str] = None
    target_dept: Optional[str] = None
    picker_name: Optional[str] = None
    loan_receiver: Optional[str] = None
    expected_return_at: Optional[dt.date] = None
    loan_notes: Optional[str] = None
    is_loan_fully_returned: bool
    note: Optional[str] = None
    status: str
    gl_status: str
    journal_entry_id: Optional[int] = None
    created_by: Optional[int] = None
    approved_by: Optional[int] = None
    approved_at: Optional[dt.datetime] = None
    lines: List[GoodsIssueLineResponse] = []

    model_config = {"from_attributes": True}


class LoanReturnLineCreate(BaseModel):
    goods_issue_line_id: int
    qty: Decimal = Field(..., gt=0)
    note: Optional[str] = Field(None, max_length=255)


class LoanReturnCreate(BaseModel):
    return_date: Optional[dt.date] = Field(None, description="Defaults to today")
    warehouse_id: Optional[int] = Field(None, description="Defaults to the loan's warehouse")
    note: Optional[str] = None
    lines: List[LoanReturnLineCreate] = Field(..., min_length=1)
