"""
checkout/exceptions.py
----------------------
Errors raised by the pricing core and the cart.

Everything derives from CartError so the HTTP layer (and embedding code)
can catch the whole family in one place. Nothing here is retried: each
error is raised at the point the rule is broken.
"""


class CartError(Exception):
    """Base class for every cart / pricing failure."""


class InvalidQuantity(CartError):
    pass


class InvalidItem(CartError):
    pass


class InvalidDiscount(CartError):
    pass


class InvalidAdjustment(CartError):
    """
    Raised when adjustment attributes fail validation.

    `errors` is a dict of {field_name: error_message}, the same shape the
    form validators return.
    """

    def __init__(self, message='Invalid adjustment', errors=None):
        super().__init__(message)
        self.errors = dict(errors or {})


class CurrencyMismatch(CartError):
    pass


class ItemNotFound(CartError):
    pass


class NotLoaded(CartError):
    pass


class UnknownModelReference(CartError):
    pass


class CartAlreadyStored(CartError):
    pass


class StorageNotConfigured(CartError):
    pass


class InstanceNotConfigured(CartError):
    pass
