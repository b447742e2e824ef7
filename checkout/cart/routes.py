from flask import current_app, jsonify, request

from checkout.cart import cart
from checkout.cart.manager import cart_manager
from checkout.catalog.models import Product
from checkout.exceptions import (
    CartAlreadyStored, CartError, InvalidAdjustment, InvalidQuantity, ItemNotFound,
)


# ── Helpers ───────────────────────────────────────────────────────

def _cart():
    return cart_manager.instance(request.args.get('instance'))


def _money(money):
    return {
        'amount':    money.amount,
        'currency':  money.currency,
        'formatted': money.format(),
    }


def _summary(instance):
    """Everything the checkout page needs in one payload."""
    total = instance.total()
    return {
        'instance':    instance.name,
        'currency':    instance.get_currency(),
        'count':       instance.count(),
        'items': [
            {
                **item.to_dict(),
                'total':            _money(item.total()),
                'discounted_price': _money(item.discounted_price()),
            }
            for item in instance.content()
        ],
        'adjustments': [
            {**adjustment.to_dict(), 'order': adjustment.order}
            for adjustment in instance.adjustments()
        ],
        'totals': {
            'subtotal':    _money(instance.subtotal()),
            'tax':         _money(instance.tax()),
            'total':       _money(total),
            'grand_total': _money(instance.grand_total()),
        },
    }


def _quantity(payload, default=1):
    qty = payload.get('qty', default)
    if isinstance(qty, str) and qty.lstrip('-').isdigit():
        qty = int(qty)
    return qty


# ── Errors ────────────────────────────────────────────────────────

@cart.errorhandler(CartError)
def cart_error(exc):
    """Domain errors become JSON; nothing here is a server fault."""
    status = 400
    body = {'error': type(exc).__name__, 'message': str(exc)}

    if isinstance(exc, ItemNotFound):
        status = 404
    elif isinstance(exc, InvalidAdjustment):
        status = 422
        body['errors'] = exc.errors
    elif isinstance(exc, CartAlreadyStored):
        status = 409

    current_app.logger.warning(f"Cart request rejected ({body['error']}): {exc}")
    return jsonify(body), status


# ── Read ──────────────────────────────────────────────────────────

@cart.route('/', methods=['GET'])
def index():
    return jsonify(_summary(_cart()))


# ── Items ─────────────────────────────────────────────────────────

@cart.route('/items', methods=['POST'])
def add_item():
    """
    Add a line, either by catalog product:
        {"product_id": 3, "qty": 2, "options": {"size": "L"}}
    or from raw attributes:
        {"id": "gift-wrap", "name": "Gift wrap", "price": 250, "qty": 1}
    """
    payload  = request.get_json(silent=True) or {}
    instance = _cart()
    qty      = _quantity(payload)

    if 'product_id' in payload:
        product = Product.query.filter_by(id=payload['product_id'], is_active=True).first()
        if product is None:
            return jsonify({
                'error':   'ProductNotFound',
                'message': f'No product found for id {payload["product_id"]!r}.',
            }), 404
        item = instance.add(product, qty=qty,
                            options=payload.get('options'), meta=payload.get('meta'))
    else:
        item = instance.add(payload.get('id'), payload.get('name'), qty,
                            payload.get('price'), payload.get('options'), payload.get('meta'))

    current_app.logger.info(f"Cart {instance.name}: added {item.name!r} x{qty} (row {item.row_id})")
    return jsonify({'item': item.to_dict(), 'cart': _summary(instance)}), 201


@cart.route('/items/<row_id>', methods=['PATCH'])
def update_item(row_id):
    """Body is {"qty": n} or a partial patch of id/name/price/options/meta."""
    payload  = request.get_json(silent=True)
    instance = _cart()

    if not isinstance(payload, dict) or not payload:
        raise InvalidQuantity('Send a quantity or the attributes to change.')

    if set(payload) == {'qty'}:
        item = instance.update(row_id, _quantity(payload))
    else:
        if 'qty' in payload:
            payload = {**payload, 'qty': _quantity(payload)}
        item = instance.update(row_id, payload)

    return jsonify({
        'item':    item.to_dict(),
        'removed': item.qty <= 0,
        'cart':    _summary(instance),
    })


@cart.route('/items/<row_id>', methods=['DELETE'])
def remove_item(row_id):
    instance = _cart()
    instance.remove(row_id)
    return jsonify({'cart': _summary(instance)})


# ── Adjustments ───────────────────────────────────────────────────

@cart.route('/adjustments', methods=['POST'])
def add_adjustment():
    """e.g. {"name": "Spring sale", "type": "discount", "percentage": 10}"""
    payload  = request.get_json(silent=True) or {}
    instance = _cart()
    adjustment = instance.add_adjustment(payload)
    return jsonify({
        'adjustment': adjustment.to_dict(),
        'cart':       _summary(instance),
    }), 201


@cart.route('/adjustments/<name>', methods=['DELETE'])
def remove_adjustment(name):
    instance = _cart()
    removed  = instance.remove_adjustment_with_name(name)
    return jsonify({'removed': len(removed), 'cart': _summary(instance)})


@cart.route('/adjustments', methods=['DELETE'])
def remove_adjustments():
    """?type=discount drops one kind; no type clears them all."""
    instance = _cart()
    kind = request.args.get('type')
    if kind:
        removed = len(instance.remove_adjustments_with_type(kind))
    else:
        removed = len(instance.adjustments())
        instance.clear_adjustments()
    return jsonify({'removed': removed, 'cart': _summary(instance)})


# ── Store / restore ───────────────────────────────────────────────

@cart.route('/store/<identifier>', methods=['POST'])
def store(identifier):
    instance = _cart()
    instance.store(identifier)
    current_app.logger.info(f"Cart {instance.name} stored as {identifier!r}")
    return jsonify({'stored': identifier}), 201


@cart.route('/restore/<identifier>', methods=['POST'])
def restore(identifier):
    instance = _cart()
    instance.restore(identifier)
    return jsonify({'cart': _summary(instance)})
