"""
test_promotion_validators.py — Promotion payload parsing and validation.
Run: pytest test_promotion_validators.py -v
"""
import pytest
from decimal import Decimal
from datetime import date, datetime, timezone

from restopos.promotions.models import Promotion, parse_when
from restopos.promotions.validators import (
    validate_promotion, parse_promotion, parse_promotions, PromotionValidationError,
)


def raw_promo(**kwargs):
    data = {
        'id': 'p1', 'name': 'Lunes de hamburguesas', 'type': 'percentage',
        'value': 15, 'applicability': 'category', 'targetId': 'burgers',
        'isActive': True,
        'conditions': {'daysOfWeek': [1], 'startDate': '2025-06-01',
                       'endDate': '2025-06-30', 'minimumPurchase': 5000},
    }
    data.update(kwargs)
    return data


# ── 1. Parsing both payload shapes ────────────────────────────────

def test_admin_payload_shape():
    promo = parse_promotion(raw_promo())
    assert promo.value == Decimal('15')
    assert promo.target_id == 'burgers'
    assert promo.conditions.days_of_week == [1]
    assert promo.conditions.start_date == date(2025, 6, 1)
    assert promo.conditions.minimum_purchase == Decimal('5000')
    assert promo.conditions.minimum_quantity is None


def test_database_row_shape_with_top_level_minimum_quantity():
    promo = Promotion.from_dict({
        'id': 7, 'name': '3x2 empanadas', 'type': 'fixed', 'value': '1500',
        'applicability': 'product', 'target_id': 'empanada',
        'is_active': False, 'minimum_quantity': 3, 'conditions': {},
    })
    assert promo.id == '7'
    assert promo.is_active is False
    assert promo.minimum_quantity == 3
    assert promo.is_bulk


def test_null_conditions_fall_back_to_row_columns():
    # to_dict() writes None for unset conditions; the row column still counts
    promo = Promotion.from_dict({
        'id': 8, 'name': '3x2 empanadas', 'type': 'fixed', 'value': '1000',
        'applicability': 'all', 'minimum_quantity': 3,
        'conditions': {'minimumQuantity': None, 'minimumPurchase': None,
                       'minimum_purchase': 5000, 'startDate': None,
                       'start_date': '2025-06-01', 'endDate': ''},
    })
    assert promo.minimum_quantity == 3
    assert promo.is_bulk
    assert promo.conditions.minimum_purchase == Decimal('5000')
    assert promo.conditions.start_date == date(2025, 6, 1)
    assert promo.conditions.end_date is None


@pytest.mark.parametrize('conditions', ['[1]', '"text"', 'not json', [1, 2]])
def test_non_object_conditions_read_as_empty(conditions):
    promo = Promotion.from_dict({'id': 9, 'name': 'x', 'type': 'fixed', 'value': 1,
                                 'minimum_quantity': 2, 'conditions': conditions})
    assert promo.conditions.days_of_week == []
    assert promo.minimum_quantity == 2


def test_conditions_stored_as_json_string():
    promo = parse_promotion(raw_promo(conditions='{"daysOfWeek": [5, 6], "minimumQuantity": 3}'))
    assert promo.conditions.days_of_week == [5, 6]
    assert promo.minimum_quantity == 3


def test_to_dict_round_trips_key_fields():
    data = parse_promotion(raw_promo()).to_dict()
    assert data['targetId'] == 'burgers'
    assert data['conditions']['startDate'] == '2025-06-01'
    assert data['conditions']['minimumPurchase'] == '5000.00'


def test_parse_when_formats():
    assert parse_when('2025-06-01') == date(2025, 6, 1)
    assert parse_when('2025-06-01T10:30:00Z') == datetime(2025, 6, 1, 10, 30, tzinfo=timezone.utc)
    assert parse_when('') is None
    assert parse_when(None) is None


# ── 2. Validation ─────────────────────────────────────────────────

def test_valid_promotion_has_no_errors():
    assert validate_promotion(raw_promo()) == {}


def test_missing_target_is_allowed():
    # Inert at evaluation time, not a contract violation
    assert validate_promotion(raw_promo(targetId=None)) == {}


@pytest.mark.parametrize('overrides, error_key', [
    ({'name': ''}, 'name'),
    ({'type': 'bogof'}, 'type'),
    ({'value': None}, 'value'),
    ({'value': 'ten'}, 'value'),
    ({'value': -1}, 'value'),
    ({'value': 150}, 'value'),
    ({'applicability': 'brand'}, 'applicability'),
    ({'conditions': {'daysOfWeek': [7]}}, 'daysOfWeek'),
    ({'conditions': {'startDate': 'tomorrow'}}, 'startDate'),
    ({'conditions': {'startDate': '2025-07-01', 'endDate': '2025-06-01'}}, 'endDate'),
    ({'conditions': {'minimumPurchase': -10}}, 'minimumPurchase'),
    ({'conditions': {'minimumQuantity': 'two'}}, 'minimumQuantity'),
    ({'conditions': {'paymentMethods': 'cash'}}, 'paymentMethods'),
    ({'conditions': 'none'}, 'conditions'),
])
def test_invalid_promotion_fields(overrides, error_key):
    assert error_key in validate_promotion(raw_promo(**overrides))


def test_fixed_value_above_hundred_is_fine():
    assert validate_promotion(raw_promo(type='fixed', value=2500)) == {}


def test_parse_promotions_collects_indexed_errors():
    with pytest.raises(PromotionValidationError) as exc:
        parse_promotions([raw_promo(), raw_promo(name='')])
    assert list(exc.value.errors) == ['promotions[1].name']


def test_parse_promotions_requires_list():
    with pytest.raises(PromotionValidationError):
        parse_promotions('nope')
