"""
Test data factories for PKS Ledger.

Provides functions to create test entities with sensible defaults.
Every factory commits, so rolled-back service calls never take the
fixtures with them.

Usage:
    from tests.factories import create_test_account, create_test_item

    def test_something(db_session):
        account = create_test_account(db_session, code="1-1301")
        item = create_test_item(db_session, sku="TBS")
"""
from datetime import date
from decimal import Decimal
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from pks_ledger.models.accounting import (
    Account,
    FiscalPeriod,
    NormalSide,
    SystemAccountKey,
    SystemAccountMapping,
)
from pks_ledger.models.inventory import Item, Warehouse
from pks_ledger.services.fiscal_period_service import month_bounds


# =============================================================================
# SEQUENCE MANAGEMENT
# =============================================================================

_sequences: Dict[str, int] = {}


def reset_sequences():
    """Reset all sequences. Call between tests for predictable codes."""
    global _sequences
    _sequences = {}


def _next(name: str) -> int:
    _sequences[name] = _sequences.get(name, 0) + 1
    return _sequences[name]


_DEBIT_NORMAL = {"ASSET", "COGS", "EXPENSE", "OTHER_EXPENSE"}


# =============================================================================
# ACCOUNTING
# =============================================================================

def create_test_account(
    db: Session,
    company_id: int = 1,
    code: Optional[str] = None,
    name: Optional[str] = None,
    account_class: str = "ASSET",
    normal_side: Optional[str] = None,
    is_posting: bool = True,
    parent: Optional[Account] = None,
    **overrides
) -> Account:
    """
    Create an account. normal_side follows the class when omitted.
    """
    seq = _next("account")
    if normal_side is None:
        normal_side = NormalSide.DEBIT.value if account_class in _DEBIT_NORMAL else NormalSide.CREDIT.value
    account = Account(
        company_id=company_id,
        code=code or f"9-{seq:04d}",
        name=name or f"Test Account {seq}",
        account_class=account_class,
        normal_side=normal_side,
        is_posting=is_posting,
        parent_id=parent.id if parent else None,
        **overrides
    )
    db.add(account)
    db.commit()
    db.refresh(account)
    return account


def map_system_account(db: Session, company_id: int, key: SystemAccountKey, account: Account) -> SystemAccountMapping:
    mapping = SystemAccountMapping(company_id=company_id, key=key, account_id=account.id)
    db.add(mapping)
    db.commit()
    db.refresh(mapping)
    return mapping


def create_test_period(
    db: Session,
    company_id: int = 1,
    year: int = 2025,
    month: int = 1,
    is_closed: bool = False,
) -> FiscalPeriod:
    start, end = month_bounds(year, month)
    period = FiscalPeriod(
        company_id=company_id,
        year=year,
        month=month,
        start_date=start,
        end_date=end,
        is_closed=is_closed,
    )
    db.add(period)
    db.commit()
    db.refresh(period)
    return period


# =============================================================================
# MASTER DATA
# =============================================================================

def create_test_warehouse(
    db: Session,
    company_id: int = 1,
    code: Optional[str] = None,
    is_active: bool = True,
) -> Warehouse:
    seq = _next("warehouse")
    warehouse = Warehouse(
        company_id=company_id,
        code=code or f"WH-{seq:02d}",
        name=f"Gudang {seq}",
        is_active=is_active,
    )
    db.add(warehouse)
    db.commit()
    db.refresh(warehouse)
    return warehouse


def create_test_item(
    db: Session,
    company_id: int = 1,
    sku: Optional[str] = None,
    name: Optional[str] = None,
    unit: str = "KG",
) -> Item:
    seq = _next("item")
    item = Item(
        company_id=company_id,
        sku=sku or f"ITEM-{seq:03d}",
        name=name or f"Test Item {seq}",
        unit=unit,
        is_active=True,
    )
    db.add(item)
    db.commit()
    db.refresh(item)
    return item


# =============================================================================
# COMPOSITE SETUP
# =============================================================================

_STANDARD_ACCOUNTS = [
    # role, code, name, class, mapped keys
    ("cash", "1-1101", "Kas", "ASSET", [SystemAccountKey.CASH_DEFAULT]),
    ("inventory", "1-1301", "Persediaan Umum", "ASSET", [SystemAccountKey.INVENTORY_GENERAL]),
    ("inventory_tbs", "1-1302", "Persediaan TBS", "ASSET", [SystemAccountKey.INVENTORY_TBS]),
    ("on_loan", "1-1309", "Persediaan Dipinjam", "ASSET", [SystemAccountKey.INVENTORY_ON_LOAN]),
    ("ap_tbs", "2-1101", "Hutang Supplier TBS", "LIABILITY", [SystemAccountKey.AP_SUPPLIER_TBS]),
    ("capital", "3-1001", "Modal", "EQUITY", []),
    ("sales", "4-1001", "Penjualan CPO", "REVENUE", [SystemAccountKey.SALES_CPO]),
    ("maintenance", "6-1201", "Biaya Pemeliharaan", "EXPENSE", [SystemAccountKey.MAINTENANCE_EXPENSE_DEFAULT]),
    ("production", "5-1101", "Pemakaian Produksi", "COGS", [SystemAccountKey.PRODUCTION_CONSUMPTION]),
    ("adjustment_loss", "6-9101", "Selisih Persediaan", "EXPENSE", [SystemAccountKey.INVENTORY_ADJUSTMENT_LOSS]),
]


def create_test_ledger(
    db: Session,
    company_id: int = 1,
    skip_keys: tuple = (),
) -> Dict[str, Any]:
    """
    A company ready for postings: posting accounts under class headers,
    the system account map, one warehouse, a general item and a TBS item.

    Args:
        skip_keys: SystemAccountKeys to leave unmapped

    Returns:
        dict of role -> Account, plus "warehouse", "item", "tbs"
    """
    headers: Dict[str, Account] = {}
    result: Dict[str, Any] = {"company_id": company_id}
    for role, code, name, account_class, keys in _STANDARD_ACCOUNTS:
        if account_class not in headers:
            headers[account_class] = create_test_account(
                db,
                company_id=company_id,
                code=f"{code[0]}-0000",
                name=account_class.title(),
                account_class=account_class,
                is_posting=False,
            )
        account = create_test_account(
            db,
            company_id=company_id,
            code=code,
            name=name,
            account_class=account_class,
            parent=headers[account_class],
        )
        result[role] = account
        for key in keys:
            if key not in skip_keys:
                map_system_account(db, company_id, key, account)
    result["headers"] = headers
    result["warehouse"] = create_test_warehouse(db, company_id=company_id, code="GD-01")
    result["item"] = create_test_item(db, company_id=company_id, sku="SPR-001", name="Bearing 6205", unit="PCS")
    result["tbs"] = create_test_item(db, company_id=company_id, sku="TBS", name="Tandan Buah Segar")
    return result


def d(value) -> Decimal:
    """Decimal shorthand for assertions"""
    return Decimal(str(value))


JAN_15 = date(2025, 1, 15)
