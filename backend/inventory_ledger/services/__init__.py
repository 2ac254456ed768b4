# Services Package
from inventory_ledger.services.inventory_service import ProductService, profit_margin
from inventory_ledger.services.crm_service import ClientService, client_balance
from inventory_ledger.services.sales_service import SalesService
from inventory_ledger.services.payment_service import PaymentService, allocate_cheapest_first
from inventory_ledger.services.profit_cut_service import ProfitCutService
from inventory_ledger.services.purchase_service import PurchaseService
from inventory_ledger.services.consistency_service import ConsistencyService, ConsistencyReport

__all__ = [
    'ProductService',
    'profit_margin',
    'ClientService',
    'client_balance',
    'SalesService',
    'PaymentService',
    'allocate_cheapest_first',
    'ProfitCutService',
    'PurchaseService',
    'ConsistencyService',
    'ConsistencyReport',
]
