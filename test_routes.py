"""
test_routes.py — Tests for the promotions JSON endpoints and CLI.
Run: pytest test_routes.py -v
"""
import json
import pytest

from restopos import create_app


# ── Fixtures ──────────────────────────────────────────────────────

@pytest.fixture(scope='function')
def app():
    return create_app('testing')


@pytest.fixture(scope='function')
def client(app):
    return app.test_client()


MONDAY_NOON = '2025-06-02T12:00:00'

PROMOS = [
    {'id': 'cat10', 'name': 'Burgers 10%', 'type': 'percentage', 'value': 10,
     'applicability': 'category', 'targetId': 'burgers', 'isActive': True,
     'conditions': {'daysOfWeek': [1]}},
    {'id': 'all500', 'name': '500 off', 'type': 'fixed', 'value': 500,
     'applicability': 'all', 'isActive': True, 'conditions': {}},
    {'id': 'weekend', 'name': 'Weekend 20%', 'type': 'percentage', 'value': 20,
     'applicability': 'all', 'isActive': True, 'conditions': {'daysOfWeek': [0, 6]}},
    {'id': 'card', 'name': 'Card 5%', 'type': 'percentage', 'value': 5,
     'applicability': 'all', 'isActive': True, 'conditions': {'paymentMethods': ['card']}},
]

CART = [
    {'id': 'burger', 'sku': 'BURG', 'categoryId': 'burgers', 'productName': 'Burger',
     'variantName': 'Single', 'quantity': 2, 'price': '10000'},
    {'id': 'soda', 'sku': 'SODA', 'categoryId': 'drinks', 'productName': 'Soda',
     'variantName': '350ml', 'quantity': 1, 'price': '2000'},
]


# ── 1. Health ─────────────────────────────────────────────────────

def test_health(client):
    resp = client.get('/health')
    assert resp.status_code == 200
    assert resp.get_json()['timezone'] == 'America/Santiago'


# ── 2. Active promotions ──────────────────────────────────────────

def test_active_promotions(client):
    resp = client.post('/promotions/active', json={'promotions': PROMOS, 'now': MONDAY_NOON})
    assert resp.status_code == 200
    ids = [p['id'] for p in resp.get_json()['promotions']]
    assert ids == ['cat10', 'all500', 'card']


# ── 3. Calculate ──────────────────────────────────────────────────

def test_calculate_cart(client):
    resp = client.post('/promotions/calculate', json={
        'items': CART, 'promotions': PROMOS[:3], 'now': MONDAY_NOON})
    assert resp.status_code == 200
    data = resp.get_json()
    assert data['subtotal'] == '22000.00'
    assert data['totalDiscount'] == '3500.00'
    assert data['newSubtotal'] == '18500.00'
    burger, soda = data['updatedItems']
    assert burger['price'] == '8500.00'
    assert burger['originalPrice'] == '10000.00'
    assert [a['promotionId'] for a in burger['appliedPromotions']] == ['cat10', 'all500']
    assert soda['price'] == '1500.00'


def test_calculate_with_payment_method(client):
    body = {'items': CART, 'promotions': [PROMOS[3]], 'now': MONDAY_NOON}
    cash = client.post('/promotions/calculate', json={**body, 'paymentMethod': 'cash'}).get_json()
    card = client.post('/promotions/calculate', json={**body, 'paymentMethod': 'card'}).get_json()
    assert cash['totalDiscount'] == '0.00'
    assert card['totalDiscount'] == '1100.00'


def test_calculate_empty_cart(client):
    resp = client.post('/promotions/calculate', json={'items': [], 'promotions': PROMOS})
    assert resp.status_code == 200
    assert resp.get_json()['totalDiscount'] == '0.00'


def test_calculate_rejects_bad_item(client):
    bad = [dict(CART[0], quantity=-1)]
    resp = client.post('/promotions/calculate', json={'items': bad, 'promotions': PROMOS})
    assert resp.status_code == 400
    assert 'items[0].quantity' in resp.get_json()['errors']


def test_calculate_rejects_bad_promotion(client):
    bad = [dict(PROMOS[0], type='bogof')]
    resp = client.post('/promotions/calculate', json={'items': CART, 'promotions': bad})
    assert resp.status_code == 400
    assert 'promotions[0].type' in resp.get_json()['errors']


def test_calculate_rejects_bad_now(client):
    resp = client.post('/promotions/calculate', json={'items': CART, 'promotions': [], 'now': 'soon'})
    assert resp.status_code == 400
    assert 'now' in resp.get_json()['errors']


def test_non_json_body_is_rejected(client):
    resp = client.post('/promotions/calculate', data='not json', content_type='text/plain')
    assert resp.status_code == 400
    assert resp.get_json()['error'] == 'Bad request'


# ── 4. Preview ────────────────────────────────────────────────────

def test_preview_item(client):
    bulk = {'id': 'bulk', 'name': '3x2', 'type': 'fixed', 'value': 1000,
            'applicability': 'all', 'isActive': True, 'conditions': {'minimumQuantity': 3}}
    resp = client.post('/promotions/preview', json={
        'productId': 'burger', 'categoryId': 'burgers', 'price': 5000,
        'promotions': PROMOS[:3] + [bulk], 'now': MONDAY_NOON})
    assert resp.status_code == 200
    applied = resp.get_json()['appliedPromotions']
    assert [(a['promotionId'], a['discountAmount']) for a in applied] == [
        ('cat10', '500.00'), ('all500', '500.00')]


def test_preview_requires_product_and_price(client):
    resp = client.post('/promotions/preview', json={'price': 'abc', 'promotions': []})
    assert resp.status_code == 400
    assert set(resp.get_json()['errors']) == {'productId', 'price'}


# ── 5. Errors ─────────────────────────────────────────────────────

def test_unknown_route_is_json_404(client):
    resp = client.get('/nope')
    assert resp.status_code == 404
    assert resp.get_json() == {'error': 'Not found'}


def test_wrong_method_is_json_405(client):
    resp = client.get('/promotions/calculate')
    assert resp.status_code == 405


# ── 6. CLI ────────────────────────────────────────────────────────

def test_cli_active_promotions(app, tmp_path):
    snapshot = tmp_path / 'promotions.json'
    snapshot.write_text(json.dumps(PROMOS))
    runner = app.test_cli_runner()
    result = runner.invoke(args=['active-promotions', str(snapshot), '--at', MONDAY_NOON])
    assert result.exit_code == 0
    assert 'Burgers 10%' in result.output
    assert 'Weekend 20%' not in result.output
    assert 'One Category' in result.output
    assert 'Fixed Amount Off' in result.output


def test_cli_rejects_invalid_snapshot(app, tmp_path):
    snapshot = tmp_path / 'promotions.json'
    snapshot.write_text(json.dumps([{'name': ''}]))
    result = app.test_cli_runner().invoke(args=['active-promotions', str(snapshot)])
    assert result.exit_code != 0
    assert 'Invalid promotion' in result.output
