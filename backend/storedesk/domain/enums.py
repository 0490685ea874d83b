# Overview: Enumerations shared by models, services and routes.

from __future__ import annotations

import enum

from ..errors import ValidationFailure


class EntityStatus(str, enum.Enum):
    """Soft-delete status for simple records (brands, stores, customers...)."""
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    SUSPENDED = "SUSPENDED"
    DELETED = "DELETED"


class SaleStatus(str, enum.Enum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    REFUNDED = "REFUNDED"


class VoucherType(str, enum.Enum):
    RECEIPT = "RECEIPT"
    INVOICE = "INVOICE"
    SALE_NOTE = "SALE_NOTE"
    PROFORMA = "PROFORMA"
    CREDIT_NOTE = "CREDIT_NOTE"
    DEBIT_NOTE = "DEBIT_NOTE"


class PaymentMethod(str, enum.Enum):
    CASH = "CASH"
    CARD = "CARD"
    YAPE = "YAPE"
    PLIN = "PLIN"
    TRANSFER = "TRANSFER"


class MovementType(str, enum.Enum):
    ENTRY = "ENTRY"
    EXIT = "EXIT"
    ADJUSTMENT = "ADJUSTMENT"
    RETURN = "RETURN"
    TRANSFER = "TRANSFER"
    LOSS = "LOSS"


class ReferenceType(str, enum.Enum):
    PURCHASE = "PURCHASE"
    SALE = "SALE"
    TRANSFER = "TRANSFER"
    RETURN = "RETURN"


class CashRegisterStatus(str, enum.Enum):
    OPEN = "OPEN"
    CLOSED = "CLOSED"
    LOCKED = "LOCKED"


class PurchaseStatus(str, enum.Enum):
    PENDING = "PENDING"
    REGISTERED = "REGISTERED"
    RECEIVED = "RECEIVED"
    CANCELLED = "CANCELLED"


class PurchaseDocumentType(str, enum.Enum):
    """Supplier paperwork behind a purchase."""
    INVOICE = "INVOICE"
    RECEIPT = "RECEIPT"
    NOTE = "NOTE"
    ORDER = "ORDER"


def parse_enum(enum_cls: type[enum.Enum], value, field: str):
    """Coerce a raw value (usually from JSON) into ``enum_cls``."""
    if isinstance(value, enum_cls):
        return value
    if isinstance(value, str):
        try:
            return enum_cls(value.strip().upper())
        except ValueError:
            pass
    allowed = ", ".join(member.value for member in enum_cls)
    raise ValidationFailure(
        f"{field} must be one of: {allowed}",
        details={"field": field, "value": value},
    )
