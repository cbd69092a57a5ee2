"""
ビジネスロジックサービス
"""

from .file_handler import FileHandler
from .db_service import (
    DatabaseService, DataStoreError, RecordNotFoundError, RecordInUseError, InvoiceSaveResult, ReportData
)
from .invoices import resolve_payment_transaction
from .inventory import annotate_low_stock
from .order_lookup import lookup_orders, CustomerSuggestion
from .validation import ValidationError

__all__ = [
    'FileHandler',
    'DatabaseService',
    'DataStoreError',
    'RecordNotFoundError',
    'RecordInUseError',
    'InvoiceSaveResult',
    'ReportData',
    'resolve_payment_transaction',
    'annotate_low_stock',
    'lookup_orders',
    'CustomerSuggestion',
    'ValidationError'
]
