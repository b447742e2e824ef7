"""
checkout/cart/__init__.py
-------------------------
Cart blueprint (JSON API).
URL prefix: /cart
"""
from flask import Blueprint

cart = Blueprint('cart', __name__)

from checkout.cart import routes  # noqa: E402, F401
from checkout.cart import models  # noqa: E402, F401  — registers StoredCart with SQLAlchemy
