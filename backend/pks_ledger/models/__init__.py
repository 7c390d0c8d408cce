"""Database models"""
from pks_ledger.models.accounting import (
    Account,
    AccountClass,
    AccountStatus,
    DocumentSequence,
    FiscalPeriod,
    JournalEntry,
    JournalLine,
    NormalSide,
    OpeningBalance,
    SystemAccountKey,
    SystemAccountMapping,
    TaxCode,
)
from pks_ledger.models.inventory import Item, Warehouse, StockBalance, StockLedgerLine, StockReferenceType
from pks_ledger.models.warehouse_document import (
    GoodsIssue,
    GoodsIssueLine,
    GoodsReceipt,
    GoodsReceiptLine,
    IssuePurpose,
    ReceiptSourceType,
)
from pks_ledger.models.weighbridge import WeighbridgeTicket

__all__ = [
    # Chart of accounts
    "Account",
    "AccountClass",
    "AccountStatus",
    "NormalSide",
    "TaxCode",
    "SystemAccountKey",
    "SystemAccountMapping",
    # General ledger
    "FiscalPeriod",
    "JournalEntry",
    "JournalLine",
    "OpeningBalance",
    "DocumentSequence",
    # Master data (read-only)
    "Item",
    "Warehouse",
    # Inventory
    "StockBalance",
    "StockLedgerLine",
    "StockReferenceType",
    # Warehouse documents
    "GoodsReceipt",
    "GoodsReceiptLine",
    "GoodsIssue",
    "GoodsIssueLine",
    "ReceiptSourceType",
    "IssuePurpose",
    # Weighbridge
    "WeighbridgeTicket",
]
