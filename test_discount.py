"""
test_discount.py — Tests for per-item discounts.
Run: pytest test_discount.py -v
"""
import pytest
from decimal import Decimal

from checkout.exceptions import CurrencyMismatch, InvalidDiscount
from checkout.pricing.discount import Discount
from checkout.pricing.money import Money


def gbp(amount):
    return Money(amount, 'GBP')


# ── 1. Fixed ──────────────────────────────────────────────────────

def test_fixed_discount():
    d = Discount(150, 'fixed', 'Loyalty')
    assert d.calculate(gbp(1000)) == gbp(150)
    assert d.apply_to(gbp(1000)) == gbp(850)
    assert d.symbol == '-'


def test_fixed_discount_as_money():
    d = Discount(gbp(200))
    assert d.calculate(gbp(1000)) == gbp(200)


def test_fixed_discount_capped_at_price():
    d = Discount(5000)
    assert d.calculate(gbp(1200)) == gbp(1200)
    assert d.apply_to(gbp(1200)).is_zero()


def test_fixed_discount_other_currency_fails():
    with pytest.raises(CurrencyMismatch):
        Discount(Money(100, 'EUR')).calculate(gbp(1000))


@pytest.mark.parametrize('value', [-1, 10.5, '100', None, True, Money(-5, 'GBP')])
def test_invalid_fixed_values(value):
    with pytest.raises(InvalidDiscount):
        Discount(value, 'fixed')


# ── 2. Percentage ─────────────────────────────────────────────────

def test_percentage_discount():
    d = Discount(25, 'percentage')
    assert d.calculate(gbp(1000)) == gbp(250)
    assert d.apply_to(gbp(1000)) == gbp(750)
    assert d.symbol == '%'


def test_percentage_discount_rounds_half_up():
    # 333 × 12.5% = 41.625 → 42
    assert Discount(Decimal('12.5'), 'percentage').calculate(gbp(333)) == gbp(42)


@pytest.mark.parametrize('value', [0, 100])
def test_percentage_bounds_are_inclusive(value):
    d = Discount(value, 'percentage')
    assert not d.calculate(gbp(999)).is_greater_than(gbp(999))


@pytest.mark.parametrize('value', [-0.01, 100.01, 150, 'abc', None, gbp(10)])
def test_invalid_percentage_values(value):
    with pytest.raises(InvalidDiscount):
        Discount(value, 'percentage')


def test_unknown_kind():
    with pytest.raises(InvalidDiscount):
        Discount(10, 'bogof')


@pytest.mark.parametrize('discount', [
    Discount(0), Discount(1), Discount(999), Discount(10_000),
    Discount(0, 'percentage'), Discount(33, 'percentage'), Discount(100, 'percentage'),
])
def test_discount_never_exceeds_price(discount):
    for amount in (0, 1, 99, 1000):
        price = gbp(amount)
        taken = discount.calculate(price)
        assert not taken.is_greater_than(price)
        assert not discount.apply_to(price).is_negative()


# ── 3. Serialisation ──────────────────────────────────────────────

def test_dict_round_trip():
    for d in (Discount(150, 'fixed', 'Staff'), Discount(gbp(75)), Discount('12.5', 'percentage')):
        copy = Discount.from_dict(d.to_dict())
        assert copy.kind == d.kind
        assert copy.label == d.label
        assert copy.calculate(gbp(1000)) == d.calculate(gbp(1000))
