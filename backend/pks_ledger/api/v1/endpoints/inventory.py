"""
Inventory API Endpoints

Stock balances at weighted-average cost, the stock movement ledger, and
warehouse transfers.
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from pks_ledger.api.v1.deps import get_actor_id, get_db
from pks_ledger.db.session import atomic
from pks_ledger.schemas.inventory import (
    StockBalanceResponse,
    StockLedgerLineResponse,
    StockTransferRequest,
    StockTransferResponse,
)
from pks_ledger.services.inventory_service import InventoryService

router = APIRouter()


@router.get("/balances", response_model=List[StockBalanceResponse])
async def list_balances(
    item_id: Optional[int] = None,
    warehouse_id: Optional[int] = None,
    db: Session = Depends(get_db),
):
    return InventoryService(db).list_balances(item_id=item_id, warehouse_id=warehouse_id)


@router.get("/balances/{item_id}/{warehouse_id}", response_model=StockBalanceResponse)
async def get_balance(
    item_id: int,
    warehouse_id: int,
    bin_id: Optional[int] = None,
    db: Session = Depends(get_db),
):
    """Quantity and average cost; zero when the item was never received there"""
    return InventoryService(db).query(item_id, warehouse_id, bin_id)


@router.get("/ledger/{item_id}", response_model=List[StockLedgerLineResponse])
async def get_stock_ledger(
    item_id: int,
    warehouse_id: Optional[int] = None,
    limit: int = Query(200, ge=1, le=1000),
    db: Session = Depends(get_db),
):
    return InventoryService(db).list_ledger(item_id, warehouse_id=warehouse_id, limit=limit)


@router.post("/transfers", response_model=StockTransferResponse, status_code=201)
async def transfer_stock(
    request: StockTransferRequest,
    actor_id: Optional[int] = Depends(get_actor_id),
    db: Session = Depends(get_db),
):
    """Move stock between warehouses at the source's average cost"""
    with atomic(db):
        unit_cost, destination_avg = InventoryService(db).transfer(
            request.item_id,
            request.from_warehouse_id,
            request.to_warehouse_id,
            request.qty,
            note=request.note,
            actor_id=actor_id,
        )
    return StockTransferResponse(
        item_id=request.item_id,
        from_warehouse_id=request.from_warehouse_id,
        to_warehouse_id=request.to_warehouse_id,
        qty=request.qty,
        unit_cost=unit_cost,
        destination_avg_cost=destination_avg,
    )
