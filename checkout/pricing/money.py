"""
checkout/pricing/money.py
-------------------------
Immutable money value held as an integer number of minor units.

Amounts never touch float: scalar multiplication goes through Decimal and
is rounded back to a whole minor unit with ROUND_HALF_UP (ties away from
zero), so  m * -x  is always  -(m * x).
"""
from __future__ import annotations
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP, localcontext
from fractions import Fraction

from checkout.exceptions import CurrencyMismatch


ONE = Decimal('1')

# Currencies whose minor unit is not 1/100 of the major unit
MINOR_UNIT_EXPONENTS = {
    'JPY': 0,
    'KRW': 0,
    'VND': 0,
    'BHD': 3,
    'KWD': 3,
    'OMR': 3,
}


def _as_decimal(factor) -> Decimal:
    """Convert a scalar factor to Decimal without going through binary float."""
    if isinstance(factor, bool):
        raise TypeError('Money cannot be multiplied by a bool.')
    if isinstance(factor, Decimal):
        return factor
    if isinstance(factor, int):
        return Decimal(factor)
    if isinstance(factor, Fraction):
        return Decimal(factor.numerator) / Decimal(factor.denominator)
    if isinstance(factor, (float, str)):
        return Decimal(str(factor))
    raise TypeError(f'Cannot multiply Money by {type(factor).__name__}.')


def round_half_up(value: Decimal) -> int:
    """Round a Decimal to the nearest integer, ties away from zero."""
    return int(value.quantize(ONE, rounding=ROUND_HALF_UP))


@dataclass(frozen=True)
class Money:
    """Exact amount in minor units (e.g. pence) tagged with its currency."""
    amount:   int
    currency: str

    def __post_init__(self):
        if isinstance(self.amount, bool) or not isinstance(self.amount, int):
            raise TypeError(
                f'Money amount must be an integer number of minor units, got {self.amount!r}'
            )
        if not isinstance(self.currency, str) or len(self.currency) != 3 or not self.currency.isalpha():
            raise ValueError(f'Currency must be a 3-letter ISO code, got: {self.currency!r}')
        object.__setattr__(self, 'currency', self.currency.upper())

    @classmethod
    def zero(cls, currency: str) -> 'Money':
        return cls(0, currency)

    # ── Arithmetic ────────────────────────────────────────────────

    def ensure_same_currency(self, other: 'Money') -> None:
        if not isinstance(other, Money):
            raise TypeError(f'Expected Money, got {type(other).__name__}')
        if self.currency != other.currency:
            raise CurrencyMismatch(
                f'Cannot combine {self.currency} with {other.currency}.'
            )

    def add(self, other: 'Money') -> 'Money':
        self.ensure_same_currency(other)
        return Money(self.amount + other.amount, self.currency)

    def subtract(self, other: 'Money') -> 'Money':
        self.ensure_same_currency(other)
        return Money(self.amount - other.amount, self.currency)

    def multiply(self, factor) -> 'Money':
        """Multiply by a scalar, rounding half-up to the nearest minor unit."""
        with localcontext() as ctx:
            ctx.prec = 50
            product = Decimal(self.amount) * _as_decimal(factor)
            return Money(round_half_up(product), self.currency)

    def percentage(self, percent) -> 'Money':
        """`percent` per cent of this amount, e.g. Money(1000).percentage(20) → 200."""
        with localcontext() as ctx:
            ctx.prec = 50
            return self.multiply(_as_decimal(percent) / Decimal(100))

    def negate(self) -> 'Money':
        return Money(-self.amount, self.currency)

    # ── Comparison ────────────────────────────────────────────────

    def is_greater_than(self, other: 'Money') -> bool:
        self.ensure_same_currency(other)
        return self.amount > other.amount

    def is_less_than(self, other: 'Money') -> bool:
        self.ensure_same_currency(other)
        return self.amount < other.amount

    def equals(self, other: 'Money') -> bool:
        self.ensure_same_currency(other)
        return self.amount == other.amount

    def is_zero(self) -> bool:
        return self.amount == 0

    def is_negative(self) -> bool:
        return self.amount < 0

    # ── Operators ─────────────────────────────────────────────────

    def __add__(self, other):
        return self.add(other)

    def __sub__(self, other):
        return self.subtract(other)

    def __mul__(self, factor):
        return self.multiply(factor)

    __rmul__ = __mul__

    def __neg__(self):
        return self.negate()

    def __gt__(self, other):
        return self.is_greater_than(other)

    def __lt__(self, other):
        return self.is_less_than(other)

    def __ge__(self, other):
        return not self.is_less_than(other)

    def __le__(self, other):
        return not self.is_greater_than(other)

    # ── Presentation / serialisation ──────────────────────────────

    @property
    def exponent(self) -> int:
        return MINOR_UNIT_EXPONENTS.get(self.currency, 2)

    def to_decimal(self) -> Decimal:
        """Amount in major units, e.g. Money(1050, 'GBP') → Decimal('10.50')."""
        return Decimal(self.amount).scaleb(-self.exponent)

    def format(self) -> str:
        return f'{self.currency} {self.to_decimal():.{self.exponent}f}'

    def to_dict(self) -> dict:
        return {'amount': self.amount, 'currency': self.currency}

    @classmethod
    def from_dict(cls, data: dict) -> 'Money':
        return cls(int(data['amount']), data['currency'])

    def __str__(self):
        return self.format()
