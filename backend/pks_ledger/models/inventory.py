"""
Inventory models
"""
from enum import Enum

from sqlalchemy import (
    Column, Integer, String, Numeric, DateTime, ForeignKey, Text, Boolean,
    UniqueConstraint, Index, CheckConstraint, text,
)
from sqlalchemy.orm import relationship
from datetime import datetime

from pks_ledger.db.base import Base


class StockReferenceType(str, Enum):
    IN = "IN"
    OUT = "OUT"


class Warehouse(Base):
    """Warehouse master data. Maintained outside the core, read-only here."""
    __tablename__ = "warehouses"

    id = Column(Integer, primary_key=True, index=True)
    company_id = Column(Integer, nullable=False, index=True)
    code = Column(String(50), nullable=False)
    name = Column(String(100), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    def __repr__(self):
        return f"<Warehouse {self.code}: {self.name}>"


class Item(Base):
    """Item master data. Maintained outside the core, read-only here."""
    __tablename__ = "items"

    id = Column(Integer, primary_key=True, index=True)
    company_id = Column(Integer, nullable=False, index=True)
    sku = Column(String(50), nullable=False)
    name = Column(String(150), nullable=False)
    unit = Column(String(20), nullable=False, default="KG")
    is_active = Column(Boolean, default=True, nullable=False)

    def __repr__(self):
        return f"<Item {self.sku}: {self.name}>"


class StockBalance(Base):
    """Running quantity and weighted-average cost per (item, warehouse, bin)"""
    __tablename__ = "stock_balances"
    __table_args__ = (
        UniqueConstraint("item_id", "warehouse_id", "bin_id", name="uq_stock_balances_item_warehouse_bin"),
        # NULL bin_id rows are not covered by the constraint above
        Index(
            "uq_stock_balances_item_warehouse_no_bin",
            "item_id",
            "warehouse_id",
            unique=True,
            postgresql_where=text("bin_id IS NULL"),
            sqlite_where=text("bin_id IS NULL"),
        ),
        CheckConstraint("qty_on_hand >= 0", name="chk_stock_balances_qty_non_negative"),
    )

    id = Column(Integer, primary_key=True, index=True)

    item_id = Column(Integer, ForeignKey("items.id"), nullable=False, index=True)
    warehouse_id = Column(Integer, ForeignKey("warehouses.id"), nullable=False, index=True)
    bin_id = Column(Integer, nullable=True)

    qty_on_hand = Column(Numeric(18, 4), default=0, nullable=False)
    avg_cost = Column(Numeric(18, 6), default=0, nullable=False)

    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    item = relationship("Item")
    warehouse = relationship("Warehouse")

    @property
    def total_value(self):
        return (self.qty_on_hand or 0) * (self.avg_cost or 0)

    def __repr__(self):
        return f"<StockBalance item={self.item_id} wh={self.warehouse_id}: {self.qty_on_hand} @ {self.avg_cost}>"


class StockLedgerLine(Base):
    """Append-only audit trail of every stock movement"""
    __tablename__ = "stock_ledger"
    __table_args__ = (
        Index("ix_stock_ledger_item_warehouse", "item_id", "warehouse_id"),
        Index("ix_stock_ledger_reference", "source_type", "reference_id"),
    )

    id = Column(Integer, primary_key=True, index=True)

    item_id = Column(Integer, ForeignKey("items.id"), nullable=False)
    warehouse_id = Column(Integer, ForeignKey("warehouses.id"), nullable=False)
    bin_id = Column(Integer, nullable=True)

    # IN or OUT
    reference_type = Column(String(3), nullable=False)
    # GoodsReceipt, GoodsIssue, WeighbridgeTicket, Transfer
    source_type = Column(String(50), nullable=True)
    reference_id = Column(Integer, nullable=True)

    qty_delta = Column(Numeric(18, 4), nullable=False)  # Signed
    unit_cost = Column(Numeric(18, 6), nullable=False, default=0)
    qty_after = Column(Numeric(18, 4), nullable=False)

    note = Column(Text, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    created_by = Column(Integer, nullable=True)

    def __repr__(self):
        return f"<StockLedgerLine {self.reference_type} item={self.item_id}: {self.qty_delta}>"
