# API v1 Package
from inventory_ledger.api.v1 import inventory, crm, sales, payments, profit_cuts, purchases, ledger

__all__ = [
    'inventory',
    'crm',
    'sales',
    'payments',
    'profit_cuts',
    'purchases',
    'ledger',
]
