from .tenancy import Store
from .catalog import Brand, Category, Product
from .parties import Person, Customer, Supplier
from .vouchers import VoucherSeries
from .sales import Sale, SaleDetail
from .inventory import InventoryMovement
from .registers import CashRegister
from .purchases import Purchase, PurchaseDetail

__all__ = [
    'Store',
    'Brand', 'Category', 'Product',
    'Person', 'Customer', 'Supplier',
    'VoucherSeries',
    'Sale', 'SaleDetail',
    'InventoryMovement',
    'CashRegister',
    'Purchase', 'PurchaseDetail',
]
