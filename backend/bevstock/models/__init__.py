from .inventory import (
    Product,
    StockEntry,
    PRODUCT_CATEGORIES,
    STOCK_ENTRY_TYPES,
    ENTRY_TYPE_INBOUND,
    ENTRY_TYPE_ADJUSTMENT,
)
from .sales import Sale, SaleItem, PAYMENT_TYPES
from .audit import AuditLog, Note

__all__ = [
    'Product', 'StockEntry',
    'Sale', 'SaleItem',
    'AuditLog', 'Note',
    'PRODUCT_CATEGORIES', 'STOCK_ENTRY_TYPES', 'ENTRY_TYPE_INBOUND', 'ENTRY_TYPE_ADJUSTMENT',
    'PAYMENT_TYPES',
]
