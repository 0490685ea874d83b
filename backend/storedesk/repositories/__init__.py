"""
Repository layer.

Each repository wraps one model and is bound to a SQLAlchemy session
(db.session when none is given). Simple status records (stores, brands,
customers...) use BaseRepository directly:

    BaseRepository(model=Customer)
"""

from .base import BaseRepository
from .voucher_series import VoucherSeriesRepository
from .products import ProductRepository
from .movements import InventoryMovementRepository
from .sales import SaleRepository
from .cash_registers import CashRegisterRepository
from .purchases import PurchaseRepository

__all__ = [
    "BaseRepository",
    "VoucherSeriesRepository",
    "ProductRepository",
    "InventoryMovementRepository",
    "SaleRepository",
    "CashRegisterRepository",
    "PurchaseRepository",
]
