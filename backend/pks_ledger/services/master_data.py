"""
Read-only lookups of master data owned outside the core (items, warehouses).
"""
from sqlalchemy.orm import Session

from pks_ledger.exceptions import NotFoundError, ValidationError
from pks_ledger.models.inventory import Item, Warehouse


class MasterDataService:
    def __init__(self, db: Session):
        self.db = db

    def get_item(self, item_id: int) -> Item:
        item = self.db.query(Item).filter(Item.id == item_id).first()
        if not item:
            raise NotFoundError("Item", item_id)
        return item

    def get_warehouse(self, warehouse_id: int) -> Warehouse:
        warehouse = self.db.query(Warehouse).filter(Warehouse.id == warehouse_id).first()
        if not warehouse:
            raise NotFoundError("Warehouse", warehouse_id)
        return warehouse

    def require_active_warehouse(self, warehouse_id: int, company_id: int = None) -> Warehouse:
        """Warehouse must exist, be active and (when given) belong to the company."""
        warehouse = self.get_warehouse(warehouse_id)
        if not warehouse.is_active:
            raise ValidationError(
                f"Warehouse {warehouse.code} is inactive",
                field="warehouse_id",
                value=warehouse_id,
            )
        if company_id is not None and warehouse.company_id != company_id:
            raise ValidationError(
                f"Warehouse {warehouse.code} belongs to another company",
                field="warehouse_id",
                value=warehouse_id,
            )
        return warehouse

    def require_item(self, item_id: int, company_id: int = None) -> Item:
        item = self.get_item(item_id)
        if company_id is not None and item.company_id != company_id:
            raise ValidationError(
                f"Item {item.sku} belongs to another company",
                field="item_id",
                value=item_id,
            )
        return item
