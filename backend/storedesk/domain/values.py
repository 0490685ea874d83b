# Overview: Immutable value objects for money, prices and stock quantities.

"""
Value objects

Storage is integer cents (``*_cents`` columns) and integer units of stock.
These classes are the only place where decimal input is accepted, rounded
and bounded:

- Money: rounds to the nearest cent (half-up), never negative.
- Price: rejects more than 2 decimal places instead of rounding.
- Stock: integers only; fractional stock is rejected.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from ..errors import ValidationFailure

CENT = Decimal("0.01")
MAX_MONEY = Decimal("999999999.99")
MAX_PRICE = Decimal("999999.99")
MAX_STOCK = 999_999
SUPPORTED_CURRENCIES = ("PEN", "USD", "EUR")


def to_decimal(value, field: str = "amount") -> Decimal:
    """Convert JSON-ish input to Decimal; floats go through repr so 0.1 stays 0.1."""
    if isinstance(value, bool):
        raise ValidationFailure(f"{field} must be a number", details={"field": field})
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, int):
        result = Decimal(value)
    elif isinstance(value, float):
        result = Decimal(repr(value))
    elif isinstance(value, str):
        try:
            result = Decimal(value.strip())
        except InvalidOperation:
            raise ValidationFailure(f"{field} must be a number", details={"field": field, "value": value})
    else:
        raise ValidationFailure(f"{field} must be a number", details={"field": field})

    if not result.is_finite():
        raise ValidationFailure(f"{field} must be a finite number", details={"field": field})
    return result


def decimal_places(value: Decimal) -> int:
    exponent = value.normalize().as_tuple().exponent
    return -exponent if exponent < 0 else 0


@dataclass(frozen=True)
class Money:
    amount: Decimal
    currency: str = "PEN"

    def __post_init__(self):
        amount = to_decimal(self.amount)
        if amount < 0:
            raise ValidationFailure("Amount cannot be negative", details={"amount": str(amount)})
        if amount > MAX_MONEY:
            raise ValidationFailure("Amount exceeds the maximum allowed", details={"amount": str(amount)})

        currency = (self.currency or "").strip().upper()
        if currency not in SUPPORTED_CURRENCIES:
            raise ValidationFailure(
                f"Unsupported currency '{self.currency}'",
                details={"currency": self.currency, "supported": list(SUPPORTED_CURRENCIES)},
            )

        object.__setattr__(self, "amount", amount.quantize(CENT, rounding=ROUND_HALF_UP))
        object.__setattr__(self, "currency", currency)

    @classmethod
    def from_cents(cls, cents: int, currency: str = "PEN") -> "Money":
        return cls(Decimal(int(cents)).scaleb(-2), currency)

    @property
    def cents(self) -> int:
        return int((self.amount * 100).to_integral_value())

    def _check_currency(self, other: "Money") -> None:
        if self.currency != other.currency:
            raise ValidationFailure(
                "Cannot combine amounts in different currencies",
                details={"left": self.currency, "right": other.currency},
            )

    def add(self, other: "Money") -> "Money":
        self._check_currency(other)
        return Money(self.amount + other.amount, self.currency)

    def subtract(self, other: "Money") -> "Money":
        self._check_currency(other)
        return Money(self.amount - other.amount, self.currency)

    def multiply(self, factor) -> "Money":
        factor = to_decimal(factor, "factor")
        if factor < 0:
            raise ValidationFailure("Multiplication factor cannot be negative")
        return Money(self.amount * factor, self.currency)

    def __lt__(self, other: "Money") -> bool:
        self._check_currency(other)
        return self.amount < other.amount

    def __gt__(self, other: "Money") -> bool:
        self._check_currency(other)
        return self.amount > other.amount

    def __str__(self) -> str:
        return f"{self.currency} {self.amount:.2f}"


@dataclass(frozen=True)
class Price:
    value: Decimal

    def __post_init__(self):
        value = to_decimal(self.value, "price")
        if value < 0:
            raise ValidationFailure("Price cannot be negative", details={"price": str(value)})
        if value > MAX_PRICE:
            raise ValidationFailure("Price cannot exceed 999,999.99", details={"price": str(value)})
        if decimal_places(value) > 2:
            raise ValidationFailure(
                "Price cannot have more than 2 decimal places",
                details={"price": str(value)},
            )
        object.__setattr__(self, "value", value.quantize(CENT))

    @property
    def cents(self) -> int:
        return int((self.value * 100).to_integral_value())

    def multiply(self, quantity: int) -> Money:
        return Money(self.value * quantity)

    def __str__(self) -> str:
        return f"{self.value:.2f}"


@dataclass(frozen=True)
class Stock:
    value: int

    def __post_init__(self):
        raw = self.value
        if isinstance(raw, bool):
            raise ValidationFailure("Stock must be an integer", details={"stock": raw})
        if isinstance(raw, float):
            if not raw.is_integer():
                raise ValidationFailure("Stock must be an integer", details={"stock": raw})
            raw = int(raw)
        elif isinstance(raw, Decimal):
            if raw != raw.to_integral_value():
                raise ValidationFailure("Stock must be an integer", details={"stock": str(raw)})
            raw = int(raw)
        elif not isinstance(raw, int):
            raise ValidationFailure("Stock must be an integer", details={"stock": raw})

        if raw < 0:
            raise ValidationFailure("Stock cannot be negative", details={"stock": raw})
        if raw > MAX_STOCK:
            raise ValidationFailure("Stock cannot exceed 999,999 units", details={"stock": raw})
        object.__setattr__(self, "value", raw)

    def add(self, other: "Stock") -> "Stock":
        return Stock(self.value + other.value)

    def subtract(self, other: "Stock") -> "Stock":
        if other.value > self.value:
            raise ValidationFailure(
                "Cannot remove more stock than available",
                details={"available": self.value, "requested": other.value},
            )
        return Stock(self.value - other.value)

    def is_zero(self) -> bool:
        return self.value == 0

    def __lt__(self, other: "Stock") -> bool:
        return self.value < other.value

    def __str__(self) -> str:
        return str(self.value)


def positive_quantity(value, field: str = "quantity") -> int:
    """Quantities on lines and movements: integer and > 0."""
    quantity = Stock(value).value
    if quantity <= 0:
        raise ValidationFailure(f"{field} must be greater than zero", details={"field": field, "value": quantity})
    return quantity
