"""
checkout/cart/items.py
----------------------
One cart line (Item) and the Buyable protocol products implement so the
cart can pull their identifier, description and price.

An item's row id is a content hash of (product id, options). Options are
sorted by key before hashing, so {'a': 1, 'b': 2} and {'b': 2, 'a': 1}
land on the same row and adding the same product twice merges quantities.
"""
from __future__ import annotations
import hashlib
import json
from decimal import Decimal, InvalidOperation
from typing import Optional, Protocol, runtime_checkable

from checkout.exceptions import InvalidItem, InvalidQuantity
from checkout.pricing.discount import Discount, FIXED
from checkout.pricing.money import Money


@runtime_checkable
class Buyable(Protocol):
    """Anything that can be put in a cart by reference (e.g. a catalog Product)."""

    def get_buyable_identifier(self, options=None): ...

    def get_buyable_description(self, options=None): ...

    def get_buyable_price(self, options=None): ...


def generate_row_id(product_id, options: Optional[dict] = None) -> str:
    """Deterministic row id for (product id, options), independent of option order."""
    serialised = json.dumps(options or {}, sort_keys=True, separators=(',', ':'), default=str)
    return hashlib.md5(f'{product_id}{serialised}'.encode('utf-8')).hexdigest()


def validate_quantity(qty) -> int:
    """Return `qty` if it is a whole number, else raise InvalidQuantity."""
    if isinstance(qty, bool) or not isinstance(qty, int):
        raise InvalidQuantity(f'Please supply a valid quantity, got {qty!r}.')
    return qty


def _as_money(price, currency: Optional[str]) -> Money:
    if isinstance(price, Money):
        return price
    if isinstance(price, bool) or not isinstance(price, int):
        raise InvalidItem('Please supply a valid price (minor units or Money).')
    if not currency:
        raise InvalidItem('A price given in minor units needs a currency.')
    return Money(price, currency)


class Item:
    """A purchasable line in the cart."""

    def __init__(self, id, name, price, options: Optional[dict] = None,
                 meta: Optional[dict] = None, currency: Optional[str] = None):
        if id is None or id == '':
            raise InvalidItem('Please supply a valid identifier.')
        if not name:
            raise InvalidItem('Please supply a valid name.')

        self.id       = id
        self.name     = name
        self.price    = _as_money(price, currency)
        self.options  = dict(options or {})
        self.meta     = dict(meta or {})
        self.qty      = 1
        self.tax_rate = Decimal('0')
        self.discount: Optional[Discount] = None
        self.model_type = None
        self.model_id   = None
        self.row_id   = generate_row_id(self.id, self.options)

    # ── Unit prices ───────────────────────────────────────────────

    def tax(self) -> Money:
        """Tax on one unit."""
        return self.price.percentage(self.tax_rate)

    def price_with_tax(self) -> Money:
        return self.price.add(self.tax())

    def discounted_price(self) -> Money:
        return self.discount.apply_to(self.price) if self.discount else self.price

    def discount_amount(self) -> Money:
        """Discount taken off one unit (zero when there is none)."""
        return self.discount.calculate(self.price) if self.discount else Money.zero(self.currency)

    # ── Line totals ───────────────────────────────────────────────

    def subtotal(self) -> Money:
        """price × qty, before tax."""
        return self.price.multiply(self.qty)

    def tax_total(self) -> Money:
        return self.tax().multiply(self.qty)

    def total(self) -> Money:
        """price incl. tax × qty."""
        return self.price_with_tax().multiply(self.qty)

    def discount_total(self) -> Money:
        return self.discount_amount().multiply(self.qty)

    def has_discount(self) -> bool:
        return self.discount is not None

    # ── Mutation ──────────────────────────────────────────────────

    def set_quantity(self, qty) -> 'Item':
        validate_quantity(qty)
        if qty <= 0:
            raise InvalidQuantity('Please supply a positive quantity.')
        self.qty = qty
        return self

    def set_tax_rate(self, tax_rate) -> 'Item':
        try:
            self.tax_rate = Decimal(str(tax_rate))
        except InvalidOperation:
            raise InvalidItem(f'Invalid tax rate {tax_rate!r}.') from None
        return self

    def set_discount(self, value, kind: str = FIXED, label: str = '') -> 'Item':
        self.discount = Discount(value, kind, label)
        return self

    def clear_discount(self) -> 'Item':
        self.discount = None
        return self

    def set_meta(self, meta: dict) -> 'Item':
        self.meta = dict(meta or {})
        return self

    def option(self, key, default=None):
        return self.options.get(key, default)

    def meta_value(self, key, default=None):
        return self.meta.get(key, default)

    def update_from_buyable(self, product: Buyable) -> 'Item':
        """Refresh id, name and price from the product, priced for this item's options."""
        price = _as_money(product.get_buyable_price(self.options), self.currency)
        self.id    = product.get_buyable_identifier(self.options)
        self.name  = product.get_buyable_description(self.options)
        self.price = price
        return self

    def update_from_dict(self, attributes: dict) -> 'Item':
        """
        Partial update; the row id is recomputed from the new id / options.

        Every field is checked before any is assigned, so a rejected patch
        leaves the item exactly as it was.
        """
        id      = attributes.get('id', self.id)
        name    = attributes.get('name', self.name)
        qty     = validate_quantity(attributes['qty']) if 'qty' in attributes else self.qty
        price   = _as_money(attributes['price'], self.currency) if 'price' in attributes else self.price
        options = dict(attributes['options'] or {}) if 'options' in attributes else self.options
        meta    = dict(attributes['meta'] or {}) if 'meta' in attributes else self.meta

        if id is None or id == '':
            raise InvalidItem('Please supply a valid identifier.')
        if not name:
            raise InvalidItem('Please supply a valid name.')

        self.id, self.name, self.qty, self.price = id, name, qty, price
        self.options, self.meta = options, meta
        self.row_id = generate_row_id(self.id, self.options)
        return self

    # ── Associated model ──────────────────────────────────────────

    def associate(self, model) -> 'Item':
        """
        Remember which model this line refers to. Only (type, id) is kept;
        loading the model back is up to the caller.
        """
        if isinstance(model, str):
            self.model_type = model
            self.model_id   = self.id
        else:
            self.model_type = type(model).__name__
            self.model_id   = getattr(model, 'id', None) or self.id
        return self

    def has_model(self, model) -> bool:
        return (self.model_type == type(model).__name__
                and self.model_id == getattr(model, 'id', None))

    @property
    def currency(self) -> str:
        return self.price.currency

    def has_currency(self, currency: str) -> bool:
        return self.currency == currency.upper()

    # ── Construction / serialisation ──────────────────────────────

    @classmethod
    def from_buyable(cls, product: Buyable, options: Optional[dict] = None,
                     currency: Optional[str] = None) -> 'Item':
        options = dict(options or {})
        return cls(
            product.get_buyable_identifier(options),
            product.get_buyable_description(options),
            product.get_buyable_price(options),
            options,
            currency=currency,
        )

    @classmethod
    def from_dict(cls, attributes: dict, currency: Optional[str] = None) -> 'Item':
        """Build an item from an attribute dict (add() attributes or a stored snapshot)."""
        try:
            item = cls(
                attributes['id'],
                attributes['name'],
                attributes['price'],
                attributes.get('options'),
                attributes.get('meta'),
                currency=attributes.get('currency') or currency,
            )
        except KeyError as exc:
            raise InvalidItem(f'Missing item attribute {exc.args[0]!r}.') from None

        if 'qty' in attributes:
            item.set_quantity(attributes['qty'])
        if attributes.get('tax_rate') is not None:
            item.set_tax_rate(attributes['tax_rate'])
        if attributes.get('discount'):
            item.discount = Discount.from_dict(attributes['discount'])
        item.model_type = attributes.get('model_type')
        item.model_id   = attributes.get('model_id')
        # A line refreshed from its product keeps the row id it was added under
        if attributes.get('row_id'):
            item.row_id = attributes['row_id']
        return item

    def to_dict(self) -> dict:
        return {
            'row_id':     self.row_id,
            'id':         self.id,
            'name':       self.name,
            'qty':        self.qty,
            'price':      self.price.amount,
            'currency':   self.currency,
            'options':    dict(self.options),
            'meta':       dict(self.meta),
            'tax_rate':   str(self.tax_rate),
            'tax':        self.tax().amount,
            'subtotal':   self.subtotal().amount,
            'discount':   self.discount.to_dict() if self.discount else None,
            'model_type': self.model_type,
            'model_id':   self.model_id,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    def __repr__(self):
        return f'<Item {self.row_id[:8]} {self.name!r} x{self.qty} @ {self.price}>'
