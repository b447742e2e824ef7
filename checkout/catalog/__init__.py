"""
checkout/catalog/__init__.py
----------------------------
Products the cart can add by reference. Product implements the Buyable
protocol (see checkout/cart/items.py).
"""
