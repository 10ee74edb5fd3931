"""
restopos/api/routes.py
----------------------
JSON endpoints for evaluating promotions against carts and catalog items.

Nothing is stored: each request carries the promotions snapshot the
caller already fetched, plus the cart or the product to price.
"""
from datetime import datetime

from flask import current_app, jsonify, request, abort

from restopos.api import promotions
from restopos.promotions.engine import PromotionCalculator
from restopos.promotions.models import parse_when
from restopos.promotions.validators import parse_promotions, PromotionValidationError
from restopos.billing.validators import parse_cart, CartValidationError
from restopos.utils.money import D


# ── Helpers ───────────────────────────────────────────────────────

def _payload() -> dict:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        abort(400, description='Request body must be a JSON object.')
    return data


def _calculator(data: dict) -> PromotionCalculator:
    """Build a calculator from the request's promotions snapshot and optional `now`."""
    tz = current_app.config.get('PROMO_TZINFO')
    promos = parse_promotions(data.get('promotions', []))

    raw_now = data.get('now')
    try:
        now = parse_when(raw_now) if raw_now else None
    except ValueError:
        raise PromotionValidationError({'now': 'now must be an ISO date or datetime.'})
    if now is not None and not isinstance(now, datetime):
        now = datetime.combine(now, datetime.min.time())

    return PromotionCalculator(promos, now=now, tz=tz)


def _rejected(e):
    current_app.logger.warning(f'Promotion request rejected: {e.errors}')
    return jsonify({'error': 'Validation failed', 'errors': e.errors}), 400


# ── Active promotions ─────────────────────────────────────────────

@promotions.route('/active', methods=['POST'])
def active():
    """Promotions from the snapshot that are switched on right now (or at `now`)."""
    try:
        calc = _calculator(_payload())
    except PromotionValidationError as e:
        return _rejected(e)

    return jsonify({
        'now':        calc.now.isoformat(),
        'promotions': [p.to_dict() for p in calc.active_promotions],
    })


# ── Cart calculation ──────────────────────────────────────────────

@promotions.route('/calculate', methods=['POST'])
def calculate():
    """
    Body: {"items": [...], "promotions": [...], "now"?: ISO, "paymentMethod"?: str}
    Returns the updated items, the promotions that fired and the totals.
    """
    data = _payload()
    try:
        calc  = _calculator(data)
        items = parse_cart(data.get('items', []))
    except (PromotionValidationError, CartValidationError) as e:
        return _rejected(e)

    result = calc.calculate(items, payment_method=data.get('paymentMethod') or None)
    current_app.logger.info(
        f'Cart of {len(items)} item(s): {len(result.applied_promotions)} promotion(s), '
        f'discount {result.total_discount}'
    )
    return jsonify(result.to_dict())


# ── Catalog preview ───────────────────────────────────────────────

@promotions.route('/preview', methods=['POST'])
def preview():
    """
    Body: {"productId": str, "categoryId"?: str, "price": number, "promotions": [...]}
    Per-unit discounts a single catalog item would get. Estimate only.
    """
    data = _payload()
    errors = {}
    if not str(data.get('productId') or '').strip():
        errors['productId'] = 'Product id is required.'
    try:
        price = D(data.get('price'))
        if data.get('price') in (None, '') or not price.is_finite() or price < 0:
            errors['price'] = 'Price must be zero or greater.'
    except ArithmeticError:
        errors['price'] = 'Price must be a valid number.'
    if errors:
        return _rejected(CartValidationError(errors))

    try:
        calc = _calculator(data)
    except PromotionValidationError as e:
        return _rejected(e)

    applied = calc.preview_item(data['productId'], data.get('categoryId'), price)
    return jsonify({'appliedPromotions': [a.to_dict() for a in applied]})
