from .sequences import Sequence
from .parties import Customer, Vendor
from .stock import StockItem
from .transactions import Transaction, TransactionLine, PurchaseLog
from .ledger import InventoryMovement, DebitLog, CreditLog
from .vat import VATReport, VATReportItem

__all__ = [
    'Sequence',
    'Customer', 'Vendor',
    'StockItem',
    'Transaction', 'TransactionLine', 'PurchaseLog',
    'InventoryMovement', 'DebitLog', 'CreditLog',
    'VATReport', 'VATReportItem',
]
