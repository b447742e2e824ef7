"""
checkout/cart/storage.py
------------------------
Where cart state lives between requests.

Every backend speaks the same three calls:

    load(name)          -> {'items': [...], 'adjustments': [...], 'currency': 'GBP'} | None
    save(name, state)
    delete(name)

The snapshot is plain JSON-safe data (money as integer minor units,
rates as strings) so it survives the session cookie and a TEXT column.
"""
import copy
import json
from typing import Optional, Protocol

from flask import session

from checkout import db
from checkout.cart.models import StoredCart


class Storage(Protocol):
    def load(self, name: str) -> Optional[dict]: ...

    def save(self, name: str, state: dict) -> None: ...

    def delete(self, name: str) -> None: ...


class MemoryStorage:
    """
    Process-local storage, for scripts, tests and single-process dev servers.

    Several MemoryStorage objects may share one `carts` dict; each keys its
    carts by `owner`, so two visitors never read or write the same entry.
    """

    def __init__(self, carts: Optional[dict] = None, owner: Optional[str] = None):
        self.carts = carts if carts is not None else {}
        self.owner = owner

    def key(self, name: str) -> str:
        return f'{self.owner}:{name}' if self.owner else name

    def load(self, name):
        state = self.carts.get(self.key(name))
        return copy.deepcopy(state) if state is not None else None

    def save(self, name, state):
        self.carts[self.key(name)] = copy.deepcopy(state)

    def delete(self, name):
        self.carts.pop(self.key(name), None)


class SessionStorage:
    """Keeps the cart in the Flask session under 'cart-<name>'."""

    @staticmethod
    def key(name: str) -> str:
        return f'cart-{name}'

    def load(self, name):
        return session.get(self.key(name))

    def save(self, name, state):
        session[self.key(name)] = state
        session.modified = True

    def delete(self, name):
        session.pop(self.key(name), None)
        session.modified = True


class DatabaseStorage:
    """
    Keeps snapshots in the stored_carts table, one row per identifier.

    Writes are flushed and committed here: a cart save is its own unit
    of work, not part of a caller's transaction.
    """

    def __init__(self, instance: str = 'default'):
        self.instance = instance

    def _row(self, identifier) -> Optional[StoredCart]:
        return StoredCart.query.filter_by(identifier=str(identifier)).first()

    def exists(self, identifier) -> bool:
        return self._row(identifier) is not None

    def load(self, identifier):
        row = self._row(identifier)
        if row is None:
            return None
        return json.loads(row.content)

    def save(self, identifier, state):
        row = self._row(identifier)
        if row is None:
            row = StoredCart(identifier=str(identifier), instance=self.instance)
            db.session.add(row)
        row.content = json.dumps(state)
        db.session.commit()

    def delete(self, identifier):
        row = self._row(identifier)
        if row is not None:
            db.session.delete(row)
            db.session.commit()
