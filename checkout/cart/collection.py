"""
checkout/cart/collection.py
---------------------------
Insertion-ordered row_id → Item mapping.

Two lines with the same row id are never stored: adding (or re-keying an
item onto) an existing row sums the quantities into that row, which keeps
its original position. A line whose quantity drops to zero or below is
removed rather than stored.
"""
from typing import Callable, Dict, Iterable, Iterator, List

from checkout.exceptions import ItemNotFound
from checkout.cart.items import Item


class ItemCollection:

    def __init__(self, items: Iterable[Item] = ()):
        self._items: Dict[str, Item] = {}
        for item in items:
            self.add(item)

    # ── Read ──────────────────────────────────────────────────────

    def has(self, row_id: str) -> bool:
        return row_id in self._items

    __contains__ = has

    def get(self, row_id: str) -> Item:
        try:
            return self._items[row_id]
        except KeyError:
            raise ItemNotFound(f'The cart does not contain rowId {row_id}.') from None

    def values(self) -> List[Item]:
        return list(self._items.values())

    def filter(self, predicate: Callable[[Item], bool]) -> List[Item]:
        return [item for item in self._items.values() if predicate(item)]

    def quantity(self) -> int:
        """Total number of units across every line."""
        return sum(item.qty for item in self._items.values())

    def __iter__(self) -> Iterator[Item]:
        return iter(list(self._items.values()))

    def __len__(self) -> int:
        return len(self._items)

    # ── Write ─────────────────────────────────────────────────────

    def add(self, item: Item) -> Item:
        """Insert `item`, or add its quantity to the row already holding its row id."""
        existing = self._items.get(item.row_id)
        if existing is not None:
            existing.qty += item.qty
            return existing

        self._items[item.row_id] = item
        return item

    def put(self, item: Item) -> Item:
        """Store `item` under its row id, replacing whatever was there."""
        self._items[item.row_id] = item
        return item

    def update(self, row_id: str, mutate: Callable[[Item], Item]) -> Item:
        """
        Apply `mutate` to the row and re-file it.

        If the mutation changed the row id the item moves to its new key,
        merging into any row already there. A resulting quantity of zero
        or less drops the row. The mutated item is returned either way.
        """
        item = mutate(self.get(row_id)) or self.get(row_id)

        if item.row_id != row_id:
            del self._items[row_id]
            existing = self._items.get(item.row_id)
            if existing is not None:
                existing.qty += item.qty
                item = existing

        if item.qty <= 0:
            self._items.pop(item.row_id, None)
            return item

        self._items[item.row_id] = item
        return item

    def remove(self, row_id: str) -> Item:
        item = self.get(row_id)
        del self._items[row_id]
        return item

    # ── Serialisation ─────────────────────────────────────────────

    def to_list(self) -> list:
        return [item.to_dict() for item in self._items.values()]

    @classmethod
    def from_list(cls, data: Iterable[dict]) -> 'ItemCollection':
        collection = cls()
        for attributes in data:
            collection.put(Item.from_dict(attributes))
        return collection
