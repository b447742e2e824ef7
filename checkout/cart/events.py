"""
checkout/cart/events.py
-----------------------
Cart notifications, published as blinker signals the same way Flask
publishes its own request signals.

Subscribe to one kind of event for every cart:

    from checkout.cart.events import item_added

    @item_added.connect
    def on_added(sender, item, **extra):
        ...

`sender` is the cart instance name, so `item_added.connect(fn, sender='wishlist')`
listens to a single instance.
"""
from typing import Protocol

from blinker import Namespace


ITEM_ADDED          = 'item-added'
ITEM_UPDATED        = 'item-updated'
ITEM_REMOVED        = 'item-removed'
ADJUSTMENT_ADDED    = 'adjustment-added'
ADJUSTMENT_REMOVED  = 'adjustment-removed'
ADJUSTMENTS_CLEARED = 'adjustments-cleared'
CART_STORED         = 'cart-stored'
CART_RESTORED       = 'cart-restored'
CART_DESTROYED      = 'cart-destroyed'

cart_signals = Namespace()

item_added          = cart_signals.signal(ITEM_ADDED)
item_updated        = cart_signals.signal(ITEM_UPDATED)
item_removed        = cart_signals.signal(ITEM_REMOVED)
adjustment_added    = cart_signals.signal(ADJUSTMENT_ADDED)
adjustment_removed  = cart_signals.signal(ADJUSTMENT_REMOVED)
adjustments_cleared = cart_signals.signal(ADJUSTMENTS_CLEARED)
cart_stored         = cart_signals.signal(CART_STORED)
cart_restored       = cart_signals.signal(CART_RESTORED)
cart_destroyed      = cart_signals.signal(CART_DESTROYED)


class Notifier(Protocol):
    def notify(self, event: str, payload: dict) -> None: ...


class SignalNotifier:
    """Fire-and-forget: receivers' return values are ignored."""

    def notify(self, event: str, payload: dict) -> None:
        payload = dict(payload)
        sender = payload.pop('instance', None)
        cart_signals.signal(event).send(sender, instance=sender, **payload)


class NullNotifier:
    def notify(self, event: str, payload: dict) -> None:
        return None
