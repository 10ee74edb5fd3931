"""
restopos/billing/validators.py
------------------------------
Pure-Python validation for cart line items coming from the POS.
Returns a dict of field -> error_message.
An empty dict means all fields are valid.
"""
from decimal import Decimal, InvalidOperation

from restopos.billing.cart import LineItem


class CartValidationError(ValueError):
    """Raised by the parse_* helpers; `errors` holds the field messages."""

    def __init__(self, errors: dict):
        super().__init__('Invalid cart: ' + '; '.join(f'{k}: {v}' for k, v in errors.items()))
        self.errors = errors


def _decimal_or_error(raw, label: str):
    try:
        value = Decimal(str(raw).strip())
    except (InvalidOperation, ValueError):
        return None, f'{label} must be a valid number.'
    if not value.is_finite():
        return None, f'{label} must be a valid number.'
    if value < 0:
        return None, f'{label} cannot be negative.'
    return value, None


def validate_line_item(data: dict) -> dict:
    """
    Validate one raw cart item (camelCase or snake_case keys).

    Returns:
        dict of {field_name: error_message} — empty if all valid.
    """
    errors = {}
    if not isinstance(data, dict):
        return {'item': 'Cart item must be an object.'}

    # ── identifiers ───────────────────────────────────────────────
    if not str(data.get('sku') or '').strip():
        errors['sku'] = 'SKU is required.'
    if not str(data.get('id') or '').strip():
        errors['id'] = 'Product id is required.'

    # ── quantity ──────────────────────────────────────────────────
    qty = data.get('quantity')
    if isinstance(qty, bool) or qty is None:
        errors['quantity'] = 'Quantity is required.'
    else:
        try:
            if int(str(qty).strip()) <= 0:
                errors['quantity'] = 'Quantity must be greater than zero.'
        except ValueError:
            errors['quantity'] = 'Quantity must be a whole number.'

    # ── prices ────────────────────────────────────────────────────
    price_raw = data.get('price')
    original_raw = data.get('originalPrice', data.get('original_price'))
    price = original = None

    if price_raw in (None, '') and original_raw in (None, ''):
        errors['price'] = 'Price is required.'
    if price_raw not in (None, ''):
        price, err = _decimal_or_error(price_raw, 'Price')
        if err:
            errors['price'] = err
    if original_raw not in (None, ''):
        original, err = _decimal_or_error(original_raw, 'Original price')
        if err:
            errors['originalPrice'] = err

    if price is not None and original is not None and price > original:
        errors['price'] = 'Price cannot exceed the original price.'

    return errors


def parse_line_item(data: dict) -> LineItem:
    """Validate and convert one raw item. Raises CartValidationError."""
    errors = validate_line_item(data)
    if errors:
        raise CartValidationError(errors)
    return LineItem.from_dict(data)


def parse_cart(rows) -> list:
    """
    Validate and convert a whole cart. Errors are keyed `items[<n>].<field>`.
    SKUs must be unique within a cart.
    """
    if not isinstance(rows, list):
        raise CartValidationError({'items': 'Cart items must be a list.'})

    errors = {}
    seen = set()
    for n, row in enumerate(rows):
        for name, msg in validate_line_item(row).items():
            errors[f'items[{n}].{name}'] = msg
        sku = str(row.get('sku') or '').strip() if isinstance(row, dict) else ''
        if sku and sku in seen:
            errors[f'items[{n}].sku'] = f'Duplicate SKU {sku!r}.'
        seen.add(sku)

    if errors:
        raise CartValidationError(errors)
    return [LineItem.from_dict(row) for row in rows]
