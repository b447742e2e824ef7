"""
checkout/pricing/discount.py
----------------------------
A per-item price reduction: either a fixed amount or a percentage of the
unit price. Fixed discounts are capped at the price they are applied to,
so a discounted price is never negative.
"""
from __future__ import annotations
from decimal import Decimal, InvalidOperation

from checkout.exceptions import InvalidDiscount
from checkout.pricing.money import Money


FIXED      = 'fixed'
PERCENTAGE = 'percentage'
DISCOUNT_KINDS = (FIXED, PERCENTAGE)


class Discount:
    """One item-level discount (value, kind, label)."""

    def __init__(self, value, kind: str = FIXED, label: str = ''):
        if kind not in DISCOUNT_KINDS:
            raise InvalidDiscount(f'Unknown discount kind {kind!r}.')

        if kind == PERCENTAGE:
            value = self._percentage(value)
        else:
            value = self._fixed(value)

        self.value = value
        self.kind  = kind
        self.label = label or ''

    @staticmethod
    def _percentage(value) -> Decimal:
        if isinstance(value, (bool, Money)):
            raise InvalidDiscount('A percentage discount needs a number between 0 and 100.')
        try:
            percent = Decimal(str(value))
        except InvalidOperation:
            raise InvalidDiscount(f'Invalid percentage {value!r}.') from None
        if not percent.is_finite() or not (0 <= percent <= 100):
            raise InvalidDiscount('A percentage discount must be between 0 and 100.')
        return percent

    @staticmethod
    def _fixed(value):
        if isinstance(value, Money):
            if value.is_negative():
                raise InvalidDiscount('A fixed discount cannot be negative.')
            return value
        if isinstance(value, bool) or not isinstance(value, int):
            raise InvalidDiscount('A fixed discount must be a whole number of minor units or Money.')
        if value < 0:
            raise InvalidDiscount('A fixed discount cannot be negative.')
        return value

    @property
    def is_percentage(self) -> bool:
        return self.kind == PERCENTAGE

    @property
    def symbol(self) -> str:
        return '%' if self.is_percentage else '-'

    # ── Pricing ───────────────────────────────────────────────────

    def calculate(self, price: Money) -> Money:
        """The amount taken off `price` (never more than `price` itself)."""
        if self.is_percentage:
            return price.percentage(self.value)

        amount = self.value if isinstance(self.value, Money) else Money(self.value, price.currency)
        if amount.is_greater_than(price):
            return price
        return amount

    def apply_to(self, price: Money) -> Money:
        return price.subtract(self.calculate(price))

    # ── Serialisation ─────────────────────────────────────────────

    def to_dict(self) -> dict:
        if self.is_percentage:
            return {'value': str(self.value), 'kind': self.kind, 'label': self.label}
        if isinstance(self.value, Money):
            return {'value': self.value.amount, 'currency': self.value.currency,
                    'kind': self.kind, 'label': self.label}
        return {'value': self.value, 'kind': self.kind, 'label': self.label}

    @classmethod
    def from_dict(cls, data: dict) -> 'Discount':
        value = data['value']
        if data.get('currency'):
            value = Money(int(value), data['currency'])
        return cls(value, data.get('kind', FIXED), data.get('label', ''))

    def __repr__(self):
        return f'<Discount {self.value}{self.symbol} {self.label!r}>'
