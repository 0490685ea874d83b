# Overview: Pytest coverage for the Money, Price and Stock value objects.

from decimal import Decimal

import pytest

from storedesk.domain.values import Money, Price, Stock, positive_quantity
from storedesk.errors import ValidationFailure


class TestMoney:
    def test_rounds_half_up_to_cents(self):
        assert Money("10.005").amount == Decimal("10.01")
        assert Money(0.1).cents == 10
        assert Money(2.675).cents == 268

    def test_rejects_negative_amount(self):
        with pytest.raises(ValidationFailure):
            Money(-1)

    def test_rejects_amount_over_maximum(self):
        Money("999999999.99")
        with pytest.raises(ValidationFailure):
            Money("1000000000")

    def test_rejects_unsupported_currency(self):
        with pytest.raises(ValidationFailure):
            Money(1, "GBP")

    def test_currency_is_normalized(self):
        assert Money(1, "usd").currency == "USD"

    def test_arithmetic(self):
        a = Money("10.50")
        b = Money("0.25")
        assert a.add(b) == Money("10.75")
        assert a.subtract(b) == Money("10.25")
        assert a.multiply(2) == Money("21.00")

    def test_subtract_below_zero_fails(self):
        with pytest.raises(ValidationFailure):
            Money(1).subtract(Money(2))

    def test_mixed_currencies_fail(self):
        with pytest.raises(ValidationFailure):
            Money(1, "PEN").add(Money(1, "USD"))

    def test_from_cents_and_str(self):
        assert str(Money.from_cents(1234)) == "PEN 12.34"
        assert Money.from_cents(0).cents == 0

    def test_rejects_bool_and_garbage(self):
        with pytest.raises(ValidationFailure):
            Money(True)
        with pytest.raises(ValidationFailure):
            Money("abc")


class TestPrice:
    def test_accepts_two_decimals(self):
        assert Price("12.34").cents == 1234

    def test_rejects_three_decimals(self):
        with pytest.raises(ValidationFailure):
            Price("1.001")

    def test_bounds(self):
        Price("999999.99")
        with pytest.raises(ValidationFailure):
            Price("1000000")
        with pytest.raises(ValidationFailure):
            Price(-0.01)

    def test_multiply_returns_money(self):
        assert Price("2.50").multiply(3) == Money("7.50")


class TestStock:
    def test_integers_only(self):
        assert Stock(5).value == 5
        assert Stock(5.0).value == 5
        with pytest.raises(ValidationFailure):
            Stock(1.5)
        with pytest.raises(ValidationFailure):
            Stock("3")

    def test_bounds(self):
        Stock(999_999)
        with pytest.raises(ValidationFailure):
            Stock(1_000_000)
        with pytest.raises(ValidationFailure):
            Stock(-1)

    def test_add_and_subtract(self):
        assert Stock(3).add(Stock(4)).value == 7
        assert Stock(3).subtract(Stock(3)).is_zero()
        with pytest.raises(ValidationFailure):
            Stock(3).subtract(Stock(4))

    def test_positive_quantity(self):
        assert positive_quantity(2) == 2
        with pytest.raises(ValidationFailure):
            positive_quantity(0)
