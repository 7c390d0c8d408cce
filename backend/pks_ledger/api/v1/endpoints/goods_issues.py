"""
Goods Issue API Endpoints (Barang Keluar, Peminjaman Barang)

Loans are goods issues with purpose=LOAN; their returns come back in as
LOAN_RETURN goods receipts.
"""
from datetime import date
from typing import Annotated, List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from pks_ledger.api.v1.deps import (
    PaginationParams,
    get_actor_id,
    get_company_id,
    get_db,
    get_pagination_params,
)
from pks_ledger.schemas.warehouse_transaction import (
    GoodsIssueCreate,
    GoodsIssueResponse,
    GoodsIssueUpdate,
    GoodsReceiptResponse,
    LoanReturnCreate,
)
from pks_ledger.services.goods_issue_service import GoodsIssueService, IssueLineInput, LoanReturnLine

router = APIRouter()


@router.get("/", response_model=List[GoodsIssueResponse])
async def list_issues(
    company_id: int,
    pagination: Annotated[PaginationParams, Depends(get_pagination_params)],
    purpose: Optional[str] = None,
    status: Optional[str] = None,
    warehouse_id: Optional[int] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    db: Session = Depends(get_db),
):
    return GoodsIssueService(db).list(
        company_id,
        purpose=purpose,
        status=status,
        warehouse_id=warehouse_id,
        start_date=start_date,
        end_date=end_date,
        skip=pagination.skip,
        limit=pagination.limit,
    )


@router.get("/loans/active", response_model=List[GoodsIssueResponse])
async def list_active_loans(
    company_id: int,
    warehouse_id: Optional[int] = None,
    db: Session = Depends(get_db),
):
    """Approved loans with quantity still outstanding"""
    return GoodsIssueService(db).list_active_loans(company_id, warehouse_id=warehouse_id)


@router.get("/{issue_id}", response_model=GoodsIssueResponse)
async def get_issue(
    issue_id: int,
    company_id: Optional[int] = Depends(get_company_id),
    db: Session = Depends(get_db),
):
    return GoodsIssueService(db).get(issue_id, company_id)


@router.post("/", response_model=GoodsIssueResponse, status_code=201)
async def create_issue(
    request: GoodsIssueCreate,
    actor_id: Optional[int] = Depends(get_actor_id),
    db: Session = Depends(get_db),
):
    """Create a DRAFT issue, or a loan when purpose is LOAN"""
    data = request.model_dump(exclude={"lines"})
    issue = GoodsIssueService(db).create(
        lines=[IssueLineInput(**line.model_dump()) for line in request.lines],
        actor_id=actor_id,
        **data,
    )
    db.refresh(issue)
    return issue


@router.patch("/{issue_id}", response_model=GoodsIssueResponse)
async def update_issue(
    issue_id: int,
    request: GoodsIssueUpdate,
    actor_id: Optional[int] = Depends(get_actor_id),
    db: Session = Depends(get_db),
):
    changes = request.model_dump(exclude_unset=True, exclude={"lines"})
    lines = None
    if request.lines is not None:
        lines = [IssueLineInput(**line.model_dump()) for line in request.lines]
    issue = GoodsIssueService(db).update(issue_id, lines=lines, actor_id=actor_id, **changes)
    db.refresh(issue)
    return issue


@router.delete("/{issue_id}")
async def delete_issue(
    issue_id: int,
    actor_id: Optional[int] = Depends(get_actor_id),
    db: Session = Depends(get_db),
):
    GoodsIssueService(db).delete(issue_id, actor_id=actor_id)
    return {"message": f"Goods issue {issue_id} deleted"}


@router.post("/{issue_id}/approve", response_model=GoodsIssueResponse)
async def approve_issue(
    issue_id: int,
    actor_id: Optional[int] = Depends(get_actor_id),
    db: Session = Depends(get_db),
):
    """
    Approve a DRAFT issue

    Takes every line out of stock at the current average cost and posts
    Dr expense (or On Loan) / Cr Inventory. Fails without side effects
    when any line is short.
    """
    issue = GoodsIssueService(db).approve(issue_id, actor_id=actor_id)
    db.refresh(issue)
    return issue


@router.post("/{issue_id}/returns", response_model=GoodsReceiptResponse, status_code=201)
async def return_loan(
    issue_id: int,
    request: LoanReturnCreate,
    actor_id: Optional[int] = Depends(get_actor_id),
    db: Session = Depends(get_db),
):
    """Record items coming back against a loan; partial returns are allowed"""
    receipt = GoodsIssueService(db).process_loan_return(
        issue_id,
        [LoanReturnLine(**line.model_dump()) for line in request.lines],
        return_date=request.return_date,
        warehouse_id=request.warehouse_id,
        note=request.note,
        actor_id=actor_id,
    )
    db.refresh(receipt)
    return receipt
