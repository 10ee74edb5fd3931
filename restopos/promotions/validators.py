"""
restopos/promotions/validators.py
---------------------------------
Pure-Python validation for promotion definitions handed to the engine.
Returns a dict of field -> error_message.
An empty dict means all fields are valid.

Only contract violations are rejected here. A non-`all` promotion with
no target is accepted: the engine treats it as inert.
"""
import json
from datetime import date, datetime
from decimal import Decimal, InvalidOperation

from restopos.promotions.models import (
    APPLICABILITY_CHOICES, PROMO_TYPE_CHOICES, Promotion, parse_when,
)


class PromotionValidationError(ValueError):
    """Raised by the parse_* helpers; `errors` holds the field messages."""

    def __init__(self, errors: dict):
        super().__init__('Invalid promotion: ' + '; '.join(f'{k}: {v}' for k, v in errors.items()))
        self.errors = errors


def _pick(data: dict, camel: str, snake: str):
    value = data.get(camel)
    return value if value not in (None, '') else data.get(snake)


def _as_datetime(value):
    if isinstance(value, datetime):
        return value.replace(tzinfo=None)
    return datetime.combine(value, datetime.min.time())


def validate_promotion(data: dict) -> dict:
    """
    Validate one raw promotion.

    Returns:
        dict of {field_name: error_message} — empty if all valid.
    """
    if not isinstance(data, dict):
        return {'promotion': 'Promotion must be an object.'}
    errors = {}

    # ── name ──────────────────────────────────────────────────────
    if not str(data.get('name') or '').strip():
        errors['name'] = 'Promotion name is required.'

    # ── type / value ──────────────────────────────────────────────
    promo_type = data.get('type')
    if promo_type not in PROMO_TYPE_CHOICES:
        errors['type'] = f'Type must be one of: {", ".join(PROMO_TYPE_CHOICES)}.'

    value_raw = data.get('value')
    if value_raw in (None, '') or isinstance(value_raw, bool):
        errors['value'] = 'Value is required.'
    else:
        try:
            value = Decimal(str(value_raw).strip())
            if not value.is_finite() or value < 0:
                errors['value'] = 'Value must be zero or greater.'
            elif promo_type == 'percentage' and value > 100:
                errors['value'] = 'Percentage must be between 0 and 100.'
        except InvalidOperation:
            errors['value'] = 'Value must be a valid number.'

    # ── applicability ─────────────────────────────────────────────
    if data.get('applicability', 'all') not in APPLICABILITY_CHOICES:
        errors['applicability'] = f'Applicability must be one of: {", ".join(APPLICABILITY_CHOICES)}.'

    # ── conditions ────────────────────────────────────────────────
    conditions = data.get('conditions') or {}
    if isinstance(conditions, str):
        try:
            conditions = json.loads(conditions)
        except ValueError:
            pass
    if not isinstance(conditions, dict):
        errors['conditions'] = 'Conditions must be an object.'
        return errors

    days = _pick(conditions, 'daysOfWeek', 'days_of_week') or []
    try:
        if any(isinstance(d, bool) or not 0 <= int(d) <= 6 for d in days):
            errors['daysOfWeek'] = 'Days of week must be between 0 (Sunday) and 6 (Saturday).'
    except (TypeError, ValueError):
        errors['daysOfWeek'] = 'Days of week must be whole numbers.'

    bounds = {}
    for camel, snake, label in (('startDate', 'start_date', 'Start date'),
                                ('endDate',   'end_date',   'End date')):
        try:
            bounds[camel] = parse_when(_pick(conditions, camel, snake))
        except (TypeError, ValueError):
            errors[camel] = f'{label} must be an ISO date or datetime.'
    start, end = bounds.get('startDate'), bounds.get('endDate')
    if isinstance(start, date) and isinstance(end, date) and _as_datetime(start) > _as_datetime(end):
        errors['endDate'] = 'End date must not be before start date.'

    methods = _pick(conditions, 'paymentMethods', 'payment_methods') or []
    if not isinstance(methods, list):
        errors['paymentMethods'] = 'Payment methods must be a list.'

    min_purchase = _pick(conditions, 'minimumPurchase', 'minimum_purchase')
    if min_purchase not in (None, ''):
        try:
            if Decimal(str(min_purchase)) < 0:
                errors['minimumPurchase'] = 'Minimum purchase cannot be negative.'
        except InvalidOperation:
            errors['minimumPurchase'] = 'Minimum purchase must be a valid number.'

    min_qty = _pick(conditions, 'minimumQuantity', 'minimum_quantity')
    if min_qty in (None, ''):
        min_qty = data.get('minimum_quantity')
    if min_qty not in (None, ''):
        try:
            if int(str(min_qty)) < 0:
                errors['minimumQuantity'] = 'Minimum quantity cannot be negative.'
        except ValueError:
            errors['minimumQuantity'] = 'Minimum quantity must be a whole number.'

    return errors


def parse_promotion(data: dict) -> Promotion:
    """Validate and convert one raw promotion. Raises PromotionValidationError."""
    errors = validate_promotion(data)
    if errors:
        raise PromotionValidationError(errors)
    return Promotion.from_dict(data)


def parse_promotions(rows) -> list:
    """Validate and convert a promotion snapshot. Errors are keyed `promotions[<n>].<field>`."""
    if not isinstance(rows, list):
        raise PromotionValidationError({'promotions': 'Promotions must be a list.'})

    errors = {}
    for n, row in enumerate(rows):
        for name, msg in validate_promotion(row).items():
            errors[f'promotions[{n}].{name}'] = msg
    if errors:
        raise PromotionValidationError(errors)
    return [Promotion.from_dict(row) for row in rows]
