"""
API v1 Router
"""
from fastapi import APIRouter

from pks_ledger.api.v1.endpoints import (
    accounts,
    fiscal_periods,
    goods_issues,
    goods_receipts,
    inventory,
    journal,
    ledger,
    opening_balances,
    system_accounts,
    weighbridge,
)

router = APIRouter()

router.include_router(accounts.router, prefix="/accounts", tags=["accounts"])
router.include_router(system_accounts.router, prefix="/system-accounts", tags=["accounts"])
router.include_router(fiscal_periods.router, prefix="/fiscal-periods", tags=["fiscal-periods"])
router.include_router(journal.router, prefix="/journal-entries", tags=["journal"])
router.include_router(opening_balances.router, prefix="/opening-balances", tags=["journal"])
router.include_router(ledger.router, prefix="/ledger", tags=["ledger"])
router.include_router(inventory.router, prefix="/inventory", tags=["inventory"])
router.include_router(goods_receipts.router, prefix="/goods-receipts", tags=["warehouse"])
router.include_router(goods_issues.router, prefix="/goods-issues", tags=["warehouse"])
router.include_router(weighbridge.router, prefix="/weighbridge-tickets", tags=["weighbridge"])
