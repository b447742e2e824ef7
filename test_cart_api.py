"""
test_cart_api.py — Tests for the /cart JSON API, the CartManager and
the database-backed store/restore.
Run: pytest test_cart_api.py -v
"""
import pytest

from checkout import create_app, db
from checkout.cart.events import item_added, item_removed
from checkout.cart.manager import cart_manager, current_cart
from checkout.cart.models import StoredCart
from checkout.catalog.models import Product
from checkout.exceptions import InstanceNotConfigured


@pytest.fixture
def app():
    app = create_app(config_name='testing')
    with app.app_context():
        db.create_all()

        db.session.add(Product(sku='MUG-001', name='Enamel Mug', price=850, currency='GBP'))
        db.session.add(Product(sku='OLD-001', name='Retired', price=100, currency='GBP', is_active=False))
        db.session.commit()

    yield app

    with app.app_context():
        db.drop_all()


@pytest.fixture
def client(app):
    with app.test_client() as client:
        yield client


def product_id(app, sku):
    with app.app_context():
        return Product.query.filter_by(sku=sku).first().id


def add_apples(client, qty=2, **extra):
    return client.post('/cart/items', json={'id': 'A', 'name': 'Apple', 'price': 1000, 'qty': qty, **extra})


# ── 1. Reading ────────────────────────────────────────────────────

def test_empty_cart(client):
    resp = client.get('/cart/')
    assert resp.status_code == 200
    data = resp.get_json()
    assert data['instance'] == 'default'
    assert data['count'] == 0
    assert data['items'] == []
    assert data['totals']['grand_total'] == {'amount': 0, 'currency': 'GBP', 'formatted': 'GBP 0.00'}


def test_unknown_instance(client, app):
    resp = client.get('/cart/?instance=nope')
    assert resp.status_code == 400
    assert resp.get_json()['error'] == 'InstanceNotConfigured'

    with app.test_request_context():
        with pytest.raises(InstanceNotConfigured):
            cart_manager.configuration('nope')


# ── 2. Adding items ───────────────────────────────────────────────

def test_add_catalog_product(client, app):
    pid = product_id(app, 'MUG-001')
    resp = client.post('/cart/items', json={'product_id': pid, 'qty': 2, 'options': {'size': 'L'}})
    assert resp.status_code == 201

    data = resp.get_json()
    assert data['item']['name'] == 'Enamel Mug (L)'
    assert data['item']['model_type'] == 'Product'
    assert data['item']['model_id'] == pid

    totals = data['cart']['totals']
    assert totals['subtotal']['amount'] == 1700
    assert totals['tax']['amount'] == 340
    assert totals['total']['amount'] == 2040


def test_add_missing_or_inactive_product(client, app):
    assert client.post('/cart/items', json={'product_id': 999}).status_code == 404
    resp = client.post('/cart/items', json={'product_id': product_id(app, 'OLD-001')})
    assert resp.status_code == 404
    assert resp.get_json()['error'] == 'ProductNotFound'


def test_adding_same_line_twice_merges(client):
    add_apples(client, qty=1, options={'a': 1, 'b': 2})
    data = add_apples(client, qty=2, options={'b': 2, 'a': 1}).get_json()
    assert len(data['cart']['items']) == 1
    assert data['cart']['count'] == 3


def test_cart_survives_between_requests(client):
    add_apples(client)
    data = client.get('/cart/').get_json()
    assert data['count'] == 2
    assert data['items'][0]['name'] == 'Apple'


@pytest.mark.parametrize('payload', [
    {'id': 'A', 'name': 'Apple', 'price': 1000, 'qty': 0},
    {'id': 'A', 'name': 'Apple', 'price': 1000, 'qty': 'lots'},
    {'id': 'A', 'name': 'Apple', 'price': 10.5},
    {'name': 'No id', 'price': 100},
])
def test_add_rejects_bad_input(client, payload):
    resp = client.post('/cart/items', json=payload)
    assert resp.status_code == 400
    assert client.get('/cart/').get_json()['count'] == 0


# ── 3. Updating / removing items ──────────────────────────────────

def test_update_quantity(client):
    row_id = add_apples(client).get_json()['item']['row_id']
    data = client.patch(f'/cart/items/{row_id}', json={'qty': 5}).get_json()
    assert data['removed'] is False
    assert data['item']['qty'] == 5
    assert data['cart']['totals']['total']['amount'] == 6000


def test_update_to_zero_removes(client):
    row_id = add_apples(client).get_json()['item']['row_id']
    data = client.patch(f'/cart/items/{row_id}', json={'qty': 0}).get_json()
    assert data['removed'] is True
    assert data['cart']['items'] == []


def test_update_options_moves_row(client):
    row_id = add_apples(client, options={'colour': 'red'}).get_json()['item']['row_id']
    data = client.patch(f'/cart/items/{row_id}', json={'options': {'colour': 'green'}}).get_json()
    assert data['item']['row_id'] != row_id
    assert data['cart']['items'][0]['options'] == {'colour': 'green'}


def test_update_errors(client):
    row_id = add_apples(client).get_json()['item']['row_id']
    assert client.patch(f'/cart/items/{row_id}', json={}).status_code == 400
    resp = client.patch('/cart/items/does-not-exist', json={'qty': 1})
    assert resp.status_code == 404
    assert resp.get_json()['error'] == 'ItemNotFound'


def test_remove_item(client):
    row_id = add_apples(client).get_json()['item']['row_id']
    assert client.delete(f'/cart/items/{row_id}').status_code == 200
    assert client.get('/cart/').get_json()['items'] == []
    assert client.delete(f'/cart/items/{row_id}').status_code == 404


# ── 4. Adjustments ────────────────────────────────────────────────

def test_worked_example_over_http(client):
    add_apples(client)   # 2 × 1000 at 20% tax → 2400

    resp = client.post('/cart/adjustments', json={'name': 'Sale', 'type': 'discount', 'percentage': 10})
    assert resp.status_code == 201
    assert resp.get_json()['cart']['totals']['grand_total']['amount'] == 2160

    resp = client.post('/cart/adjustments', json={'name': 'Delivery', 'type': 'other', 'value': 500})
    data = resp.get_json()['cart']
    assert data['totals']['grand_total']['amount'] == 2660
    assert [a['order'] for a in data['adjustments']] == [1, 2]


def test_invalid_adjustment_is_422_with_field_errors(client):
    resp = client.post('/cart/adjustments', json={'name': 'Half', 'type': 'discount', 'percentage': 150})
    assert resp.status_code == 422
    body = resp.get_json()
    assert body['error'] == 'InvalidAdjustment'
    assert 'percentage' in body['errors']


def test_remove_adjustments(client):
    for payload in (
        {'name': 'Sale', 'type': 'discount', 'percentage': 10},
        {'name': 'Staff', 'type': 'discount', 'percentage': 5},
        {'name': 'Delivery', 'type': 'other', 'value': 500},
        {'name': 'Wrap', 'type': 'other', 'value': 100},
    ):
        client.post('/cart/adjustments', json=payload)

    assert client.delete('/cart/adjustments/Sale').get_json()['removed'] == 1
    assert client.delete('/cart/adjustments?type=discount').get_json()['removed'] == 1

    data = client.delete('/cart/adjustments').get_json()
    assert data['removed'] == 2
    assert data['cart']['adjustments'] == []


# ── 5. Instances ──────────────────────────────────────────────────

def test_instances_are_independent(client):
    client.post('/cart/items?instance=wishlist', json={'id': 'W', 'name': 'Watch', 'price': 1000})
    wishlist = client.get('/cart/?instance=wishlist').get_json()
    assert wishlist['count'] == 1
    assert wishlist['totals']['tax']['amount'] == 0     # wishlist is configured tax-free
    assert client.get('/cart/').get_json()['count'] == 0


def test_memory_carts_are_kept_per_visitor(app):
    app.config['CART_INSTANCES'] = {
        **app.config['CART_INSTANCES'],
        'scratch': {'tax': 0, 'currency': 'GBP', 'storage': 'memory'},
    }

    alice, bob = app.test_client(), app.test_client()
    alice.post('/cart/items?instance=scratch', json={'id': 'A', 'name': 'Apple', 'price': 100, 'qty': 2})
    bob.post('/cart/items?instance=scratch', json={'id': 'B', 'name': 'Bread', 'price': 900})

    mine   = alice.get('/cart/?instance=scratch').get_json()
    theirs = bob.get('/cart/?instance=scratch').get_json()

    assert [i['id'] for i in mine['items']] == ['A']
    assert mine['count'] == 2
    assert [i['id'] for i in theirs['items']] == ['B']
    assert theirs['count'] == 1


def test_current_cart_proxy(app):
    with app.test_request_context():
        current_cart.add('A', 'Apple', 1, 1000)
        assert current_cart.name == 'default'
        assert cart_manager.instance() is cart_manager.instance('default')
        assert set(cart_manager.instances()) == {'default'}


def test_model_for_loads_the_product(app):
    with app.test_request_context():
        product = Product.query.filter_by(sku='MUG-001').first()
        item = current_cart.add(product)
        assert cart_manager.model_for(item) == product
        assert cart_manager.model_for(current_cart.add('A', 'Apple', 1, 100)) is None


# ── 6. Store / restore ────────────────────────────────────────────

def test_store_and_restore_across_sessions(app, client):
    add_apples(client)
    assert client.post('/cart/store/user-1').status_code == 201

    resp = client.post('/cart/store/user-1')
    assert resp.status_code == 409
    assert resp.get_json()['error'] == 'CartAlreadyStored'

    with app.app_context():
        row = StoredCart.query.filter_by(identifier='user-1').first()
        assert row is not None
        assert row.instance == 'default'

    with app.test_client() as other:
        data = other.post('/cart/restore/user-1').get_json()
        assert data['cart']['count'] == 2
        assert data['cart']['totals']['total']['amount'] == 2400

    with app.app_context():
        assert StoredCart.query.count() == 0


def test_restore_unknown_identifier(client):
    resp = client.post('/cart/restore/nobody')
    assert resp.status_code == 200
    assert resp.get_json()['cart']['count'] == 0


def test_store_needs_database_flag(client):
    resp = client.post('/cart/store/user-1?instance=wishlist')
    assert resp.status_code == 400
    assert resp.get_json()['error'] == 'StorageNotConfigured'


# ── 7. Signals ────────────────────────────────────────────────────

def test_mutations_send_signals(client):
    received = []

    def on_added(sender, **extra):
        received.append(('added', sender, extra['item'].name))

    def on_removed(sender, **extra):
        received.append(('removed', sender, extra['item'].name))

    with item_added.connected_to(on_added), item_removed.connected_to(on_removed):
        row_id = add_apples(client).get_json()['item']['row_id']
        client.patch(f'/cart/items/{row_id}', json={'qty': 0})

    assert received == [('added', 'default', 'Apple'), ('removed', 'default', 'Apple')]


# ── 8. CLI ────────────────────────────────────────────────────────

def test_seed_demo_skips_existing_products(app):
    runner = app.test_cli_runner()
    result = runner.invoke(args=['seed-demo'])
    assert '3 demo product(s) created' in result.output

    result = runner.invoke(args=['show-stored-carts'])
    assert 'No stored carts.' in result.output
