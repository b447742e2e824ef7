"""
checkout/pricing/adjustments.py
-------------------------------
Cart-level adjustments (cart-wide discounts, delivery and other charges)
and the ordered collection that holds them.

An adjustment is computed against whatever total it is handed. The cart
folds them in `order` so percentages compound on the running total; the
per-type totals instead price every adjustment against the same base.
"""
from __future__ import annotations
from decimal import Decimal
from typing import Iterable, Iterator, List, Optional

from checkout.exceptions import InvalidAdjustment
from checkout.pricing.money import Money
from checkout.pricing.validators import validate_adjustment


# Application order when an adjustment doesn't set one explicitly
DEFAULT_ORDER = {
    'discount': 1,
    'other':    2,
    'delivery': 3,
}


class Adjustment:
    """A named, typed modifier applied to an aggregate total."""

    def __init__(self, name: str, kind: str, percentage=None, value=None,
                 order: Optional[int] = None):
        errors = validate_adjustment({
            'name': name, 'type': kind,
            'percentage': percentage, 'value': value, 'order': order,
        })
        if errors:
            raise InvalidAdjustment('Invalid adjustment', errors)

        self.name       = name
        self.kind       = kind
        self.percentage = Decimal(str(percentage)) if percentage is not None else None
        self.value      = value
        self.explicit_order = order

    @classmethod
    def from_dict(cls, attributes: dict) -> 'Adjustment':
        value = attributes.get('value')
        if value is not None and attributes.get('currency'):
            value = Money(value, attributes['currency'])
        return cls(
            name=attributes.get('name'),
            kind=attributes.get('type'),
            percentage=attributes.get('percentage'),
            value=value,
            order=attributes.get('order'),
        )

    # ── Helpers ───────────────────────────────────────────────────

    @property
    def is_discount(self) -> bool:
        return self.kind == 'discount'

    @property
    def is_percentage(self) -> bool:
        return self.percentage is not None

    @property
    def order(self) -> int:
        if self.explicit_order is not None:
            return self.explicit_order
        return DEFAULT_ORDER.get(self.kind, 2)

    # ── Pricing ───────────────────────────────────────────────────

    def calculate(self, base: Money) -> Money:
        """
        Signed amount this adjustment contributes to `base`.

        Charges are returned as-is. Discounts come back negated, or as
        zero when they would take more than the whole of `base`.
        """
        if self.is_percentage:
            amount = base.percentage(self.percentage)
        elif isinstance(self.value, Money):
            amount = self.value
        else:
            amount = Money(self.value, base.currency)

        if not self.is_discount:
            base.ensure_same_currency(amount)
            return amount

        if amount.is_greater_than(base):
            return Money.zero(base.currency)
        return amount.negate()

    def apply(self, base: Money) -> Money:
        return base.add(self.calculate(base))

    # ── Serialisation ─────────────────────────────────────────────

    def to_dict(self) -> dict:
        data = {
            'name':       self.name,
            'type':       self.kind,
            'percentage': str(self.percentage) if self.percentage is not None else None,
            'value':      None,
            'currency':   None,
            'order':      self.explicit_order,
        }
        if isinstance(self.value, Money):
            data['value']    = self.value.amount
            data['currency'] = self.value.currency
        elif self.value is not None:
            data['value'] = self.value
        return data

    def __repr__(self):
        magnitude = f'{self.percentage}%' if self.is_percentage else f'{self.value}'
        return f'<Adjustment {self.name!r} {self.kind} {magnitude} order={self.order}>'


class AdjustmentCollection:
    """Ordered adjustments. Names are not unique; removal drops every match."""

    def __init__(self, adjustments: Iterable[Adjustment] = ()):
        self._adjustments: List[Adjustment] = list(adjustments)

    def add(self, adjustment: Adjustment) -> Adjustment:
        self._adjustments.append(adjustment)
        return adjustment

    def ordered(self) -> List[Adjustment]:
        """Application order: by `order`, insertion order within a tie."""
        return sorted(self._adjustments, key=lambda a: a.order)

    def of_type(self, kind: str) -> List[Adjustment]:
        return [a for a in self._adjustments if a.kind == kind]

    def count_by_type(self, kind: str) -> int:
        return len(self.of_type(kind))

    def total_by_type(self, kind: str, base: Money) -> Money:
        """Sum of each matching adjustment priced against the same `base`."""
        total = Money.zero(base.currency)
        for adjustment in self.ordered():
            if adjustment.kind == kind:
                total = total.add(adjustment.calculate(base))
        return total

    def remove_by_name(self, name: str) -> List[Adjustment]:
        removed = [a for a in self._adjustments if a.name == name]
        self._adjustments = [a for a in self._adjustments if a.name != name]
        return removed

    def remove_by_type(self, kind: str) -> List[Adjustment]:
        removed = self.of_type(kind)
        self._adjustments = [a for a in self._adjustments if a.kind != kind]
        return removed

    def clear(self) -> None:
        self._adjustments = []

    def __iter__(self) -> Iterator[Adjustment]:
        return iter(self._adjustments)

    def __len__(self) -> int:
        return len(self._adjustments)

    def to_list(self) -> list:
        return [a.to_dict() for a in self._adjustments]

    @classmethod
    def from_list(cls, data: Iterable[dict]) -> 'AdjustmentCollection':
        return cls(Adjustment.from_dict(entry) for entry in data)
