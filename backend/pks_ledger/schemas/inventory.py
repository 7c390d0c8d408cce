"""
Inventory Pydantic Schemas
"""
from pydantic import BaseModel, Field, model_validator
from typing import Optional
from datetime import datetime
from decimal import Decimal


class StockBalanceResponse(BaseModel):
    item_id: int
    warehouse_id: int
    bin_id: Optional[int] = None
    qty_on_hand: Decimal
    avg_cost: Decimal
    total_value: Decimal

    model_config = {"from_attributes": True}


class StockLedgerLineResponse(BaseModel):
    id: int
    item_id: int
    warehouse_id: int
    bin_id: Optional[int] = None
    reference_type: str
    source_type: Optional[str] = None
    reference_id: Optional[int] = None
    qty_delta: Decimal
    unit_cost: Decimal
    qty_after: Decimal
    note: Optional[str] = None
    created_at: datetime
    created_by: Optional[int] = None

    model_config = {"from_attributes": True}


class StockTransferRequest(BaseModel):
    item_id: int
    from_warehouse_id: int
    to_warehouse_id: int
    qty: Decimal = Field(..., gt=0)
    note: Optional[str] = None

    @model_validator(mode="after")
    def check_warehouses(self):
        if self.from_warehouse_id == self.to_warehouse_id:
            raise ValueError("from_warehouse_id and to_warehouse_id must differ")
        return self


class StockTransferResponse(BaseModel):
    item_id: int
    from_warehouse_id: int
    to_warehouse_id: int
    qty: Decimal
    unit_cost: Decimal
    destination_avg_cost: Decimal
