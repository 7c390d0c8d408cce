"""
Goods Receipt API Endpoints (Barang Masuk)
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
    GoodsReceiptCreate,
    GoodsReceiptResponse,
    GoodsReceiptUpdate,
)
from pks_ledger.services.goods_receipt_service import GoodsReceiptService, ReceiptLineInput

router = APIRouter()


@router.get("/", response_model=List[GoodsReceiptResponse])
async def list_receipts(
    company_id: int,
    pagination: Annotated[PaginationParams, Depends(get_pagination_params)],
    status: Optional[str] = None,
    source_type: Optional[str] = None,
    warehouse_id: Optional[int] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    db: Session = Depends(get_db),
):
    return GoodsReceiptService(db).list(
        company_id,
        status=status,
        source_type=source_type,
        warehouse_id=warehouse_id,
        start_date=start_date,
        end_date=end_date,
        skip=pagination.skip,
        limit=pagination.limit,
    )


@router.get("/{receipt_id}", response_model=GoodsReceiptResponse)
async def get_receipt(
    receipt_id: int,
    company_id: Optional[int] = Depends(get_company_id),
    db: Session = Depends(get_db),
):
    return GoodsReceiptService(db).get(receipt_id, company_id)


@router.post("/", response_model=GoodsReceiptResponse, status_code=201)
async def create_receipt(
    request: GoodsReceiptCreate,
    actor_id: Optional[int] = Depends(get_actor_id),
    db: Session = Depends(get_db),
):
    """Create a DRAFT receipt; stock and ledger are untouched until approval"""
    receipt = GoodsReceiptService(db).create(
        company_id=request.company_id,
        date=request.date,
        warehouse_id=request.warehouse_id,
        lines=[ReceiptLineInput(**line.model_dump()) for line in request.lines],
        source_type=request.source_type,
        source_ref=request.source_ref,
        note=request.note,
        actor_id=actor_id,
    )
    db.refresh(receipt)
    return receipt


@router.patch("/{receipt_id}", response_model=GoodsReceiptResponse)
async def update_receipt(
    receipt_id: int,
    request: GoodsReceiptUpdate,
    actor_id: Optional[int] = Depends(get_actor_id),
    db: Session = Depends(get_db),
):
    """Edit a DRAFT receipt; sending lines replaces all of them"""
    changes = request.model_dump(exclude_unset=True, exclude={"lines"})
    lines = None
    if request.lines is not None:
        lines = [ReceiptLineInput(**line.model_dump()) for line in request.lines]
    receipt = GoodsReceiptService(db).update(receipt_id, lines=lines, actor_id=actor_id, **changes)
    db.refresh(receipt)
    return receipt


@router.delete("/{receipt_id}")
async def delete_receipt(
    receipt_id: int,
    actor_id: Optional[int] = Depends(get_actor_id),
    db: Session = Depends(get_db),
):
    GoodsReceiptService(db).delete(receipt_id, actor_id=actor_id)
    return {"message": f"Goods receipt {receipt_id} deleted"}


@router.post("/{receipt_id}/approve", response_model=GoodsReceiptResponse)
async def approve_receipt(
    receipt_id: int,
    actor_id: Optional[int] = Depends(get_actor_id),
    db: Session = Depends(get_db),
):
    """
    Approve a DRAFT receipt

    Adds every line to stock at its unit cost and posts
    Dr Inventory / Cr the offset account in one transaction.
    """
    receipt = GoodsReceiptService(db).approve(receipt_id, actor_id=actor_id)
    db.refresh(receipt)
    return receipt
