"""
checkout/pricing/__init__.py
----------------------------
Money, item discounts and cart adjustments. No Flask or database access
happens in this package; it is pure arithmetic over minor units.
"""
