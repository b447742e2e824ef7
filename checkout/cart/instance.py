"""
checkout/cart/instance.py
-------------------------
The Cart aggregate: one named checkout session's items and adjustments,
plus the totals derived from them.

Collaborators are handed in, not looked up:

    storage   load/save/delete the {items, adjustments, currency} snapshot
    notifier  told about every mutation (fire-and-forget)
    archive   optional DatabaseStorage used by store()/restore()
    models    name → class map that associate() accepts by name

State is loaded lazily on first use and saved after every mutation.
A Cart is not thread-safe; the caller owns one instance per request.
"""
from __future__ import annotations
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from decimal import Decimal
from typing import Callable, List, Optional

from checkout.exceptions import (
    CartAlreadyStored, CurrencyMismatch, InvalidAdjustment,
    NotLoaded, StorageNotConfigured, UnknownModelReference,
)
from checkout.cart import events
from checkout.cart.collection import ItemCollection
from checkout.cart.events import NullNotifier
from checkout.cart.items import Buyable, Item, validate_quantity
from checkout.pricing.adjustments import Adjustment, AdjustmentCollection
from checkout.pricing.money import Money


log = logging.getLogger(__name__)


@dataclass
class CartConfig:
    """Per-instance settings the cart is constructed with."""
    currency: str     = 'GBP'
    tax_rate: Decimal = Decimal('0')

    @classmethod
    def from_mapping(cls, settings: Mapping) -> 'CartConfig':
        return cls(
            currency=str(settings.get('currency', 'GBP')).upper(),
            tax_rate=Decimal(str(settings.get('tax', 0))),
        )


class Cart:

    def __init__(self, name: str, config: Optional[CartConfig] = None,
                 storage=None, notifier=None, archive=None, models=None):
        self.name     = name
        self.config   = config or CartConfig()
        self.storage  = storage
        self.notifier = notifier or NullNotifier()
        self.archive  = archive
        self.models   = dict(models or {})

        self._items       = ItemCollection()
        self._adjustments = AdjustmentCollection()
        self._currency    = self.config.currency
        self.loaded       = False

    # ── Loading / saving ──────────────────────────────────────────

    def load(self) -> 'Cart':
        state = self.storage.load(self.name) if self.storage is not None else None
        state = state or {}

        self._items       = ItemCollection.from_list(state.get('items', []))
        self._adjustments = AdjustmentCollection.from_list(state.get('adjustments', []))
        if state.get('currency'):
            self._currency = state['currency']
        self.loaded = True
        return self

    def reload(self) -> 'Cart':
        self.loaded = False
        return self.load()

    def _ensure_loaded(self) -> None:
        if not self.loaded:
            self.load()

    def save(self) -> 'Cart':
        if not self.loaded:
            raise NotLoaded(f'Cart {self.name!r} saved before loading.')
        if self.storage is not None:
            self.storage.save(self.name, self.to_dict())
        return self

    def destroy(self) -> None:
        """Forget the stored state and start again empty."""
        if self.storage is not None:
            self.storage.delete(self.name)
        self._items       = ItemCollection()
        self._adjustments = AdjustmentCollection()
        self._currency    = self.config.currency
        self.loaded = True
        self._notify(events.CART_DESTROYED)

    def to_dict(self) -> dict:
        return {
            'items':       self._items.to_list(),
            'adjustments': self._adjustments.to_list(),
            'currency':    self._currency,
        }

    def _notify(self, event: str, **payload) -> None:
        self.notifier.notify(event, {'instance': self.name, **payload})

    # ── Items ─────────────────────────────────────────────────────

    def add(self, id, name=None, qty=1, price=None, options=None, meta=None):
        """
        Add an item and return it (or a list, when given a list).

        `id` can be:
          - a Buyable product:  add(product, qty=2, options={'size': 'L'})
          - an attribute dict: add({'id': 7, 'name': 'Mug', 'price': 450, 'qty': 2})
          - a list of either:   add([product_a, product_b])
          - a raw identifier:   add(7, 'Mug', 2, 450, {'colour': 'red'})

        Adding a line whose row id is already in the cart increases that
        line's quantity instead of creating a second line.
        """
        self._ensure_loaded()

        if self._is_multi(id):
            return [self.add(entry) for entry in id]

        item = self._create_item(id, name, qty, price, options, meta)
        item = self._items.add(item)
        log.debug('cart %s: added %r', self.name, item)

        self._notify(events.ITEM_ADDED, item=item)
        self.save()
        return item

    def update(self, row_id, value) -> Item:
        """
        Update one line. `value` is one of:

          - a Buyable:   refresh id / name / price from the product
          - a callable:  item -> item transform
          - a mapping:   partial patch of id / qty / name / price / options / meta
          - an int:      the new quantity

        A quantity of zero or less removes the line; only 'item-removed'
        is emitted in that case.
        """
        self._ensure_loaded()
        row_id = self.get(row_id).row_id

        if isinstance(value, Buyable):
            mutate = lambda item: item.update_from_buyable(value)
        elif callable(value):
            mutate = value
        elif isinstance(value, Mapping):
            mutate = lambda item: item.update_from_dict(value)
        else:
            qty = validate_quantity(value)

            def mutate(item):
                item.qty = qty
                return item

        item = self._items.update(row_id, mutate)

        if item.qty <= 0:
            log.debug('cart %s: quantity of %s fell to %s, removed', self.name, row_id, item.qty)
            self._notify(events.ITEM_REMOVED, item=item)
        else:
            self._notify(events.ITEM_UPDATED, item=item)

        self.save()
        return item

    def remove(self, row_id) -> Item:
        self._ensure_loaded()
        item = self._items.remove(self.get(row_id).row_id)

        self._notify(events.ITEM_REMOVED, item=item)
        self.save()
        return item

    def get(self, row_id) -> Item:
        """Look up a line by row id (an Item is accepted too)."""
        self._ensure_loaded()
        if isinstance(row_id, Item):
            row_id = row_id.row_id
        return self._items.get(row_id)

    def content(self) -> ItemCollection:
        self._ensure_loaded()
        return self._items

    items = content

    def count(self) -> int:
        """Number of units in the cart (not the number of lines)."""
        return self.content().quantity()

    def search(self, predicate: Callable[[Item], bool]) -> List[Item]:
        return self.content().filter(predicate)

    def associate(self, row_id, model) -> Item:
        """
        Point a line at a model, either an instance or a registered model name.
        """
        if isinstance(model, str) and model not in self.models:
            raise UnknownModelReference(f'The supplied model {model} does not exist.')

        item = self.get(row_id)
        item.associate(model)
        self.save()
        return item

    # ── Totals ────────────────────────────────────────────────────

    def _sum(self, line: Callable[[Item], Money]) -> Money:
        total = Money.zero(self._currency)
        for item in self.content():
            total = total.add(line(item))
        return total

    def subtotal(self) -> Money:
        """Sum of line subtotals (before tax)."""
        return self._sum(Item.subtotal)

    def tax(self) -> Money:
        return self._sum(Item.tax_total)

    def total(self) -> Money:
        """Sum of line totals (tax included), before any adjustment."""
        return self._sum(Item.total)

    def discount(self) -> Money:
        """Sum of per-item discounts (informational; not taken off total())."""
        return self._sum(Item.discount_total)

    def grand_total(self) -> Money:
        """
        total() with every adjustment applied in order. Each adjustment
        sees the running total left by the ones before it.
        """
        total = self.total()
        for adjustment in self.adjustments():
            total = adjustment.apply(total)
        return total

    # ── Adjustments ───────────────────────────────────────────────

    def adjustments(self) -> List[Adjustment]:
        """Adjustments in application order."""
        self._ensure_loaded()
        return self._adjustments.ordered()

    def adjustments_count(self, kind: str) -> int:
        self._ensure_loaded()
        return self._adjustments.count_by_type(kind)

    def adjustments_total(self, kind: str) -> Money:
        """Every adjustment of `kind` priced against the pre-adjustment total."""
        return self._adjustments.total_by_type(kind, self.total())

    def add_adjustment(self, adjustment) -> Adjustment:
        self._ensure_loaded()
        if isinstance(adjustment, Mapping):
            adjustment = Adjustment.from_dict(adjustment)
        if not isinstance(adjustment, Adjustment):
            raise InvalidAdjustment('Expected an Adjustment or its attributes.',
                                    {'adjustment': 'Unsupported adjustment value.'})

        self._adjustments.add(adjustment)
        log.debug('cart %s: adjustment %r', self.name, adjustment)

        self._notify(events.ADJUSTMENT_ADDED, adjustment=adjustment)
        self.save()
        return adjustment

    def remove_adjustment_with_name(self, name: str) -> List[Adjustment]:
        self._ensure_loaded()
        removed = self._adjustments.remove_by_name(name)

        self._notify(events.ADJUSTMENT_REMOVED, adjustments=removed)
        self.save()
        return removed

    def remove_adjustments_with_type(self, kind: str) -> List[Adjustment]:
        self._ensure_loaded()
        removed = self._adjustments.remove_by_type(kind)

        self._notify(events.ADJUSTMENT_REMOVED, adjustments=removed)
        self.save()
        return removed

    def clear_adjustments(self) -> None:
        self._ensure_loaded()
        self._adjustments.clear()

        self._notify(events.ADJUSTMENTS_CLEARED)
        self.save()

    # ── Currency ──────────────────────────────────────────────────

    def set_currency(self, currency: str) -> 'Cart':
        """Change the cart currency. Existing lines keep their own prices."""
        self._ensure_loaded()
        self._currency = Money.zero(currency).currency
        self.save()
        return self

    def get_currency(self) -> str:
        self._ensure_loaded()
        return self._currency

    # ── Store / restore by identifier ─────────────────────────────

    def store(self, identifier) -> None:
        """Park a copy of this cart in the archive under `identifier`."""
        self._ensure_loaded()
        archive = self._require_archive()
        if archive.exists(identifier):
            raise CartAlreadyStored(f'A cart with identifier {identifier} was already stored.')

        archive.save(identifier, self.to_dict())
        self._notify(events.CART_STORED, identifier=identifier)

    def restore(self, identifier) -> None:
        """
        Pull the cart stored under `identifier` back into this one and
        drop the stored copy. Unknown identifiers are ignored.

        Every stored line must be priced in this cart's currency; otherwise
        CurrencyMismatch is raised and neither the cart nor the archive
        is touched.
        """
        self._ensure_loaded()
        archive = self._require_archive()
        state = archive.load(identifier)
        if state is None:
            return

        restored = ItemCollection.from_list(state.get('items', []))
        for item in restored:
            if not item.has_currency(self._currency):
                raise CurrencyMismatch(
                    f'Cannot restore {item.currency} cart {identifier} into this cart instance ({self._currency}).'
                )

        for item in restored:
            self._items.put(item)

        self.save()
        archive.delete(identifier)
        self._notify(events.CART_RESTORED, identifier=identifier)

    def _require_archive(self):
        if self.archive is None:
            raise StorageNotConfigured(f'Cart {self.name!r} has no database storage configured.')
        return self.archive

    # ── Helpers ───────────────────────────────────────────────────

    def _create_item(self, id, name, qty, price, options, meta) -> Item:
        if isinstance(id, Buyable):
            item = Item.from_buyable(id, options, currency=self._currency)
            item.set_quantity(qty)
            item.associate(id)
            if meta:
                item.set_meta(meta)
        elif isinstance(id, Mapping):
            item = Item.from_dict({**id, 'row_id': None}, currency=self._currency)
            item.set_quantity(id.get('qty', 1))
        else:
            item = Item(id, name, price, options, meta, currency=self._currency)
            item.set_quantity(qty)

        item.set_tax_rate(self.config.tax_rate)

        if not item.has_currency(self._currency):
            raise CurrencyMismatch(
                f'You cannot add {item.currency} currency to this cart instance ({self._currency}).'
            )
        return item

    @staticmethod
    def _is_multi(value) -> bool:
        if not isinstance(value, (list, tuple)) or not value:
            return False
        first = value[0]
        return isinstance(first, Mapping) or isinstance(first, Buyable)

    def __repr__(self):
        return f'<Cart {self.name!r} loaded={self.loaded}>'
