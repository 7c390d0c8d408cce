"""
Inventory Valuation Engine - weighted-average costing per (item, warehouse, bin)

Handles every stock movement:
- receive: blend incoming cost into the running average
- issue: consume at the current average, never below zero
- transfer: issue at source + receive at destination at the same cost

Each movement appends one StockLedgerLine per affected balance.

Balance rows are locked FOR UPDATE and then changed with a guarded UPDATE
(issue: qty_on_hand >= qty, receive: qty_on_hand unchanged since read), so a
concurrent writer can neither drive stock negative nor blend cost from a
stale quantity.

When an issue brings qty_on_hand to exactly zero the last avg_cost is kept.
The next receipt then sets avg_cost to its own unit cost, since the blend
formula weighs the old cost by a zero quantity.
"""
from datetime import datetime
from decimal import Decimal
from typing import List, Optional, Tuple

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from pks_ledger.core.decimals import ZERO, q_cost, q_qty, to_decimal
from pks_ledger.exceptions import ConcurrencyError, InsufficientStockError, ValidationError
from pks_ledger.logging_config import get_logger
from pks_ledger.models.inventory import StockBalance, StockLedgerLine, StockReferenceType
from pks_ledger.services.master_data import MasterDataService

logger = get_logger(__name__)

SOURCE_TRANSFER = "Transfer"


def weighted_average(old_qty: Decimal, old_cost: Decimal, qty_in: Decimal, cost_in: Decimal) -> Decimal:
    """(old_qty*old_cost + qty_in*cost_in) / (old_qty + qty_in)"""
    new_qty = old_qty + qty_in
    if new_qty <= 0:
        return q_cost(cost_in)
    return q_cost((old_qty * old_cost + qty_in * cost_in) / new_qty)


class InventoryService:
    """
    Stock movements with weighted-average costing.

    IMPORTANT: This service does NOT commit. Caller is responsible for commit.
    """

    def __init__(self, db: Session, master_data: Optional[MasterDataService] = None):
        self.db = db
        self.master_data = master_data or MasterDataService(db)

    # === MOVEMENTS ===

    def receive(
        self,
        item_id: int,
        warehouse_id: int,
        qty,
        unit_cost,
        *,
        bin_id: Optional[int] = None,
        source_type: Optional[str] = None,
        reference_id: Optional[int] = None,
        note: Optional[str] = None,
        actor_id: Optional[int] = None,
    ) -> Decimal:
        """
        Add qty at unit_cost and return the new average cost.

        Raises:
            ValidationError: qty <= 0, negative cost, unknown item or inactive warehouse
            ConcurrencyError: The balance changed between read and write
        """
        qty = q_qty(qty)
        unit_cost = q_cost(unit_cost)
        if qty <= 0:
            raise ValidationError("Receive quantity must be positive", field="qty", value=qty)
        if unit_cost < 0:
            raise ValidationError("Unit cost must not be negative", field="unit_cost", value=unit_cost)
        self.master_data.require_item(item_id)
        self.master_data.require_active_warehouse(warehouse_id)

        balance = self._lock_balance(item_id, warehouse_id, bin_id)
        if balance is None:
            balance = self._create_balance(item_id, warehouse_id, bin_id)

        old_qty = to_decimal(balance.qty_on_hand)
        old_cost = to_decimal(balance.avg_cost)
        new_qty = old_qty + qty
        new_cost = weighted_average(old_qty, old_cost, qty, unit_cost)

        result = self.db.execute(
            update(StockBalance)
            .where(StockBalance.id == balance.id, StockBalance.qty_on_hand == old_qty)
            .values(qty_on_hand=new_qty, avg_cost=new_cost, updated_at=datetime.utcnow())
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            logger.warning(
                "Stock balance changed during receive",
                extra={"item_id": item_id, "warehouse_id": warehouse_id, "qty": qty},
            )
            raise ConcurrencyError(
                "Stock balance was modified by another transaction",
                details={"item_id": item_id, "warehouse_id": warehouse_id},
            )
        self.db.expire(balance)

        self._append_ledger(
            item_id=item_id,
            warehouse_id=warehouse_id,
            bin_id=bin_id,
            reference_type=StockReferenceType.IN,
            source_type=source_type,
            reference_id=reference_id,
            qty_delta=qty,
            unit_cost=unit_cost,
            qty_after=new_qty,
            note=note,
            actor_id=actor_id,
        )

        logger.info(
            "Stock received",
            extra={
                "item_id": item_id,
                "warehouse_id": warehouse_id,
                "qty": qty,
                "unit_cost": unit_cost,
                "qty_after": new_qty,
                "avg_cost": new_cost,
                "source_type": source_type,
                "reference_id": reference_id,
            },
        )
        return new_cost

    def issue(
        self,
        item_id: int,
        warehouse_id: int,
        qty,
        *,
        bin_id: Optional[int] = None,
        source_type: Optional[str] = None,
        reference_id: Optional[int] = None,
        note: Optional[str] = None,
        actor_id: Optional[int] = None,
    ) -> Decimal:
        """
        Remove qty at the current average cost and return that unit cost.

        Raises:
            ValidationError: qty <= 0
            InsufficientStockError: qty exceeds qty_on_hand
        """
        qty = q_qty(qty)
        if qty <= 0:
            raise ValidationError("Issue quantity must be positive", field="qty", value=qty)

        balance = self._lock_balance(item_id, warehouse_id, bin_id)
        available = to_decimal(balance.qty_on_hand) if balance else ZERO
        if balance is None or qty > available:
            self._reject_issue(item_id, warehouse_id, qty, available)

        unit_cost = to_decimal(balance.avg_cost)
        result = self.db.execute(
            update(StockBalance)
            .where(StockBalance.id == balance.id, StockBalance.qty_on_hand >= qty)
            .values(qty_on_hand=StockBalance.qty_on_hand - qty, updated_at=datetime.utcnow())
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            current = self._current_qty(balance.id)
            self._reject_issue(item_id, warehouse_id, qty, current)
        self.db.expire(balance)
        qty_after = self._current_qty(balance.id)

        self._append_ledger(
            item_id=item_id,
            warehouse_id=warehouse_id,
            bin_id=bin_id,
            reference_type=StockReferenceType.OUT,
            source_type=source_type,
            reference_id=reference_id,
            qty_delta=-qty,
            unit_cost=unit_cost,
            qty_after=qty_after,
            note=note,
            actor_id=actor_id,
        )

        logger.info(
            "Stock issued",
            extra={
                "item_id": item_id,
                "warehouse_id": warehouse_id,
                "qty": qty,
                "unit_cost": unit_cost,
                "qty_after": qty_after,
                "source_type": source_type,
                "reference_id": reference_id,
            },
        )
        return unit_cost

    def transfer(
        self,
        item_id: int,
        from_warehouse_id: int,
        to_warehouse_id: int,
        qty,
        *,
        reference_id: Optional[int] = None,
        note: Optional[str] = None,
        actor_id: Optional[int] = None,
    ) -> Tuple[Decimal, Decimal]:
        """
        Move stock between warehouses at the source's average cost.

        Returns:
            (unit cost moved, new average cost at the destination)
        """
        if from_warehouse_id == to_warehouse_id:
            raise ValidationError(
                "Source and destination warehouse must differ",
                field="to_warehouse_id",
                value=to_warehouse_id,
            )
        self.master_data.require_active_warehouse(to_warehouse_id)

        # Lock both rows in a fixed order so opposite transfers cannot deadlock
        for wh_id in sorted((from_warehouse_id, to_warehouse_id)):
            self._lock_balance(item_id, wh_id, None)

        unit_cost = self.issue(
            item_id,
            from_warehouse_id,
            qty,
            source_type=SOURCE_TRANSFER,
            reference_id=reference_id,
            note=note or f"Transfer to warehouse {to_warehouse_id}",
            actor_id=actor_id,
        )
        new_avg = self.receive(
            item_id,
            to_warehouse_id,
            qty,
            unit_cost,
            source_type=SOURCE_TRANSFER,
            reference_id=reference_id,
            note=note or f"Transfer from warehouse {from_warehouse_id}",
            actor_id=actor_id,
        )
        return unit_cost, new_avg

    # === QUERIES ===

    def query(self, item_id: int, warehouse_id: int, bin_id: Optional[int] = None) -> StockBalance:
        """Current balance; an unsaved zero balance when nothing was ever received."""
        balance = self._balance_query(item_id, warehouse_id, bin_id).first()
        if balance is None:
            return StockBalance(
                item_id=item_id,
                warehouse_id=warehouse_id,
                bin_id=bin_id,
                qty_on_hand=ZERO,
                avg_cost=ZERO,
            )
        return balance

    def list_balances(
        self,
        item_id: Optional[int] = None,
        warehouse_id: Optional[int] = None,
    ) -> List[StockBalance]:
        query = self.db.query(StockBalance)
        if item_id is not None:
            query = query.filter(StockBalance.item_id == item_id)
        if warehouse_id is not None:
            query = query.filter(StockBalance.warehouse_id == warehouse_id)
        return query.order_by(StockBalance.item_id, StockBalance.warehouse_id).all()

    def list_ledger(
        self,
        item_id: int,
        warehouse_id: Optional[int] = None,
        limit: int = 200,
    ) -> List[StockLedgerLine]:
        query = self.db.query(StockLedgerLine).filter(StockLedgerLine.item_id == item_id)
        if warehouse_id is not None:
            query = query.filter(StockLedgerLine.warehouse_id == warehouse_id)
        return query.order_by(StockLedgerLine.id).limit(limit).all()

    # === INTERNAL HELPERS ===

    def _balance_query(self, item_id: int, warehouse_id: int, bin_id: Optional[int]):
        query = self.db.query(StockBalance).filter(
            StockBalance.item_id == item_id,
            StockBalance.warehouse_id == warehouse_id,
        )
        if bin_id is None:
            return query.filter(StockBalance.bin_id.is_(None))
        return query.filter(StockBalance.bin_id == bin_id)

    def _lock_balance(self, item_id: int, warehouse_id: int, bin_id: Optional[int]) -> Optional[StockBalance]:
        return (
            self._balance_query(item_id, warehouse_id, bin_id)
            .with_for_update()
            .populate_existing()
            .first()
        )

    def _create_balance(self, item_id: int, warehouse_id: int, bin_id: Optional[int]) -> StockBalance:
        balance = StockBalance(
            item_id=item_id,
            warehouse_id=warehouse_id,
            bin_id=bin_id,
            qty_on_hand=ZERO,
            avg_cost=ZERO,
        )
        self.db.add(balance)
        try:
            self.db.flush()
        except IntegrityError as e:
            raise ConcurrencyError(
                "Stock balance was created by another transaction",
                details={"item_id": item_id, "warehouse_id": warehouse_id},
            ) from e
        return balance

    def _current_qty(self, balance_id: int) -> Decimal:
        return to_decimal(
            self.db.execute(
                select(StockBalance.qty_on_hand).where(StockBalance.id == balance_id)
            ).scalar_one()
        )

    def _reject_issue(self, item_id: int, warehouse_id: int, requested: Decimal, available: Decimal):
        logger.warning(
            "Issue rejected, insufficient stock",
            extra={
                "item_id": item_id,
                "warehouse_id": warehouse_id,
                "requested": requested,
                "available": available,
            },
        )
        raise InsufficientStockError(
            item_id,
            warehouse_id,
            requested=requested,
            available=available,
        )

    def _append_ledger(
        self,
        *,
        item_id: int,
        warehouse_id: int,
        bin_id: Optional[int],
        reference_type: StockReferenceType,
        source_type: Optional[str],
        reference_id: Optional[int],
        qty_delta: Decimal,
        unit_cost: Decimal,
        qty_after: Decimal,
        note: Optional[str],
        actor_id: Optional[int],
    ) -> StockLedgerLine:
        line = StockLedgerLine(
            item_id=item_id,
            warehouse_id=warehouse_id,
            bin_id=bin_id,
            reference_type=reference_type.value,
            source_type=source_type,
            reference_id=reference_id,
            qty_delta=qty_delta,
            unit_cost=unit_cost,
            qty_after=qty_after,
            note=note,
            created_by=actor_id,
        )
        self.db.add(line)
        self.db.flush()
        return line
