"""
checkout/pricing/validators.py
------------------------------
Pure-Python validation for adjustment attributes.
Returns a dict of field -> error_message.
An empty dict means all fields are valid.
"""
from decimal import Decimal, InvalidOperation

from checkout.pricing.money import Money


ADJUSTMENT_TYPES = ('discount', 'other')


def validate_adjustment(attributes: dict) -> dict:
    """
    Validate the raw attributes of an Adjustment.

    Args:
        attributes: dict with keys name, type, and exactly one of
                    percentage / value; order is optional.

    Returns:
        dict of {field_name: error_message} — empty if all valid.
    """
    errors = {}

    # ── name ─────────────────────────────────────────────────────
    name = attributes.get('name')
    if name is None or not str(name).strip():
        errors['name'] = 'The name field is required.'

    # ── type ─────────────────────────────────────────────────────
    kind = attributes.get('type')
    if not kind:
        errors['type'] = 'The type field is required.'
    elif kind not in ADJUSTMENT_TYPES:
        errors['type'] = f'The type must be one of: {", ".join(ADJUSTMENT_TYPES)}.'

    # ── percentage / value (exactly one) ─────────────────────────
    percentage = attributes.get('percentage')
    value      = attributes.get('value')

    if percentage is None and value is None:
        errors['percentage'] = 'The percentage field is required when value is not present.'
        errors['value']      = 'The value field is required when percentage is not present.'
    elif percentage is not None and value is not None:
        errors['value'] = 'Only one of percentage or value may be given.'
    elif percentage is not None:
        if isinstance(percentage, (bool, Money)):
            errors['percentage'] = 'The percentage must be a number.'
        else:
            try:
                pct = Decimal(str(percentage))
                if not pct.is_finite():
                    errors['percentage'] = 'The percentage must be a number.'
                elif not (0 <= pct <= 100):
                    errors['percentage'] = 'The percentage must be between 0 and 100.'
            except InvalidOperation:
                errors['percentage'] = 'The percentage must be a number.'
    else:
        if isinstance(value, Money):
            if value.is_negative():
                errors['value'] = 'The value cannot be negative.'
        elif isinstance(value, bool) or not isinstance(value, int) or value < 0:
            errors['value'] = 'The value must be an integer value or Money object.'

    # ── order (optional) ─────────────────────────────────────────
    order = attributes.get('order')
    if order is not None and (isinstance(order, bool) or not isinstance(order, int)):
        errors['order'] = 'The order must be a whole number.'

    return errors
