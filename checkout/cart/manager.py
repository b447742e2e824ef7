"""
checkout/cart/manager.py
------------------------
Flask extension that hands out configured Cart instances.

Instances are built from app.config['CART_INSTANCES'] on first use and
cached on `flask.g`, so each request works with its own Cart objects and
nothing is shared between concurrent requests. Memory-backed carts are
keyed by an owner id kept in the visitor's session, so each visitor gets
their own entry in the process-wide dict.
"""
import uuid

from flask import current_app, g, session
from werkzeug.local import LocalProxy

from checkout import db
from checkout.exceptions import InstanceNotConfigured
from checkout.cart.events import SignalNotifier
from checkout.cart.instance import Cart, CartConfig
from checkout.cart.storage import DatabaseStorage, MemoryStorage, SessionStorage


class CartManager:

    def __init__(self, app=None):
        self.memory = {}
        if app is not None:
            self.init_app(app)

    def init_app(self, app):
        app.config.setdefault('CART_DEFAULT_INSTANCE', 'default')
        app.config.setdefault('CART_INSTANCES', {'default': {'tax': 0, 'currency': 'GBP'}})
        app.extensions['cart'] = self

    # ── Instances ─────────────────────────────────────────────────

    @property
    def default_instance(self) -> str:
        return current_app.config['CART_DEFAULT_INSTANCE']

    @default_instance.setter
    def default_instance(self, name: str) -> None:
        current_app.config['CART_DEFAULT_INSTANCE'] = name

    def instance(self, name=None) -> Cart:
        name = name or self.default_instance
        instances = g.setdefault('_cart_instances', {})
        if name not in instances:
            instances[name] = self._make_instance(name)
        return instances[name]

    def instances(self) -> dict:
        return dict(g.get('_cart_instances', {}))

    def configuration(self, name: str) -> dict:
        settings = current_app.config['CART_INSTANCES'].get(name)
        if settings is None:
            raise InstanceNotConfigured(f'Instance [{name}] not configured.')
        return settings

    @staticmethod
    def owner_id() -> str:
        """Per-visitor id, created in the session on first use."""
        if 'cart-owner' not in session:
            session['cart-owner'] = uuid.uuid4().hex
        return session['cart-owner']

    def _make_instance(self, name: str) -> Cart:
        settings = self.configuration(name)

        if settings.get('storage', 'session') == 'memory':
            storage = MemoryStorage(self.memory, owner=self.owner_id())
        else:
            storage = SessionStorage()

        archive = DatabaseStorage(instance=name) if settings.get('database') else None

        return Cart(
            name,
            CartConfig.from_mapping(settings),
            storage=storage,
            notifier=SignalNotifier(),
            archive=archive,
            models=self.model_registry(),
        )

    # ── Associated models ─────────────────────────────────────────

    @staticmethod
    def model_registry() -> dict:
        """Every mapped model class, by class name."""
        return {mapper.class_.__name__: mapper.class_ for mapper in db.Model.registry.mappers}

    def model_for(self, item):
        """Load the model an item was associated with, or None."""
        if not item.model_type or item.model_id is None:
            return None
        model = self.model_registry().get(item.model_type)
        if model is None:
            return None
        return db.session.get(model, item.model_id)


cart_manager = CartManager()

current_cart = LocalProxy(lambda: cart_manager.instance())
