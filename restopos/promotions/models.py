"""
restopos/promotions/models.py
-----------------------------
Promotion, PromotionConditions and AppliedPromotion records.

Promotions are read-only input to the engine. They arrive already fetched
from the promotion source, either in the admin payload shape:

    {"id": "p1", "name": "Lunes 10%", "type": "percentage", "value": 10,
     "applicability": "category", "targetId": "burgers", "isActive": true,
     "conditions": {"daysOfWeek": [1], "minimumPurchase": 5000}}

or in the database row shape (snake_case, with ``minimum_quantity`` kept
as a top-level column instead of inside ``conditions``, which may itself
be a JSON string). ``from_dict``
accepts both.
"""
from __future__ import annotations
import json
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import List

from restopos.utils.money import D, to_string_money


PROMO_TYPES = [
    ('percentage', '% Off'),
    ('fixed',      'Fixed Amount Off'),
]
PROMO_TYPE_CHOICES = [p[0] for p in PROMO_TYPES]

APPLICABILITY = [
    ('all',      'All Products'),
    ('category', 'One Category'),
    ('product',  'One Product'),
]
APPLICABILITY_CHOICES = [a[0] for a in APPLICABILITY]

# Minimum quantity from which a fixed promotion becomes a per-group rule
BULK_GROUP_THRESHOLD = 3


# ── Date helpers ──────────────────────────────────────────────────

def parse_when(value):
    """
    Turn an ISO string into a date (``YYYY-MM-DD``) or a datetime.
    date / datetime / None pass through unchanged.
    """
    if value is None or value == '' or isinstance(value, (date, datetime)):
        return value or None
    s = str(value).strip()
    if len(s) == 10:
        return date.fromisoformat(s)
    if s.endswith('Z'):
        s = s[:-1] + '+00:00'
    return datetime.fromisoformat(s)


def _comparable(bound: datetime, now: datetime) -> datetime:
    """Bring a datetime bound into the same naive/aware frame as ``now``."""
    if bound.tzinfo and not now.tzinfo:
        return bound.astimezone().replace(tzinfo=None)
    if now.tzinfo and not bound.tzinfo:
        return bound.replace(tzinfo=now.tzinfo)
    return bound


def day_of_week(now: datetime) -> int:
    """0 = Sunday … 6 = Saturday."""
    return now.isoweekday() % 7


def _iso(value):
    return value.isoformat() if value is not None else None


def _first(*values):
    """First value that is set; None and '' count as unset."""
    for v in values:
        if v not in (None, ''):
            return v
    return None


# ── Records ───────────────────────────────────────────────────────

@dataclass
class PromotionConditions:
    """Activation conditions. Every field is optional."""
    days_of_week:     List[int] = field(default_factory=list)
    start_date:       date | datetime | None = None
    end_date:         date | datetime | None = None
    payment_methods:  List[str] = field(default_factory=list)
    minimum_purchase: Decimal | None = None
    minimum_quantity: int | None = None

    @classmethod
    def from_dict(cls, data, minimum_quantity=None) -> 'PromotionConditions':
        if isinstance(data, str):   # stored as a JSON column
            try:
                data = json.loads(data or '{}')
            except ValueError:
                data = {}
        if not isinstance(data, dict):
            data = {}
        min_purchase = _first(data.get('minimumPurchase'), data.get('minimum_purchase'))
        min_qty = _first(data.get('minimumQuantity'), data.get('minimum_quantity'), minimum_quantity)
        return cls(
            days_of_week     = [int(d) for d in (data.get('daysOfWeek') or data.get('days_of_week') or [])],
            start_date       = parse_when(_first(data.get('startDate'), data.get('start_date'))),
            end_date         = parse_when(_first(data.get('endDate'), data.get('end_date'))),
            payment_methods  = list(data.get('paymentMethods') or data.get('payment_methods') or []),
            minimum_purchase = D(min_purchase) if min_purchase not in (None, '') else None,
            minimum_quantity = int(min_qty) if min_qty not in (None, '') else None,
        )

    def to_dict(self) -> dict:
        return {
            'daysOfWeek':      list(self.days_of_week),
            'startDate':       _iso(self.start_date),
            'endDate':         _iso(self.end_date),
            'paymentMethods':  list(self.payment_methods),
            'minimumPurchase': to_string_money(self.minimum_purchase) if self.minimum_purchase is not None else None,
            'minimumQuantity': self.minimum_quantity,
        }

    # ── Checks ────────────────────────────────────────────────────

    def within_dates(self, now: datetime) -> bool:
        """Inclusive start/end window. A plain date covers the whole day."""
        start, end = self.start_date, self.end_date
        if start is not None:
            if isinstance(start, datetime):
                if now < _comparable(start, now):
                    return False
            elif now.date() < start:
                return False
        if end is not None:
            if isinstance(end, datetime):
                if now > _comparable(end, now):
                    return False
            elif now.date() > end:
                return False
        return True

    def matches_day(self, now: datetime) -> bool:
        if not self.days_of_week:
            return True
        return day_of_week(now) in self.days_of_week

    def accepts_payment(self, payment_method: str | None) -> bool:
        """Unknown payment method (open cart) is not held against the promotion."""
        if payment_method is None or not self.payment_methods:
            return True
        return payment_method in self.payment_methods

    @property
    def needs_cart_context(self) -> bool:
        """True when the promotion cannot be judged on a single unit."""
        if self.minimum_purchase is not None and self.minimum_purchase > 0:
            return True
        return self.minimum_quantity is not None and self.minimum_quantity > 1


@dataclass
class Promotion:
    """A discount rule with scope, value and activation conditions."""
    id:            str
    name:          str
    type:          str
    value:         Decimal
    applicability: str = 'all'
    target_id:     str | None = None
    description:   str | None = None
    conditions:    PromotionConditions = field(default_factory=PromotionConditions)
    is_active:     bool = True

    @classmethod
    def from_dict(cls, data: dict) -> 'Promotion':
        target = data.get('targetId', data.get('target_id'))
        return cls(
            id            = str(data.get('id', '')),
            name          = data.get('name', ''),
            type          = data.get('type', ''),
            value         = D(data.get('value', 0)),
            applicability = data.get('applicability', 'all'),
            target_id     = str(target) if target not in (None, '') else None,
            description   = data.get('description'),
            conditions    = PromotionConditions.from_dict(
                data.get('conditions'), minimum_quantity=data.get('minimum_quantity')),
            is_active     = bool(data.get('isActive', data.get('is_active', True))),
        )

    def to_dict(self) -> dict:
        return {
            'id':            self.id,
            'name':          self.name,
            'description':   self.description,
            'type':          self.type,
            'value':         str(self.value),
            'applicability': self.applicability,
            'targetId':      self.target_id,
            'conditions':    self.conditions.to_dict(),
            'isActive':      self.is_active,
        }

    def is_active_at(self, now: datetime) -> bool:
        """True if the promotion is switched on, inside its dates and on an allowed day."""
        if not self.is_active:
            return False
        return self.conditions.within_dates(now) and self.conditions.matches_day(now)

    @property
    def minimum_quantity(self) -> int | None:
        return self.conditions.minimum_quantity

    @property
    def is_bulk(self) -> bool:
        """Fixed promotions with a minimum quantity of 3+ discount per full group."""
        mq = self.conditions.minimum_quantity
        return self.type == 'fixed' and mq is not None and mq >= BULK_GROUP_THRESHOLD

    def __repr__(self):
        return f'<Promotion {self.name!r} {self.type} {self.applicability}>'


@dataclass(frozen=True)
class AppliedPromotion:
    """
    One promotion applied either to a line item (discount_amount is per
    unit) or to the whole cart (discount_amount is the aggregate).
    """
    promotion_id:    str
    promotion_name:  str
    type:            str
    value:           Decimal
    discount_amount: Decimal

    @classmethod
    def for_promotion(cls, promotion: Promotion, amount: Decimal) -> 'AppliedPromotion':
        return cls(
            promotion_id=promotion.id,
            promotion_name=promotion.name,
            type=promotion.type,
            value=promotion.value,
            discount_amount=amount,
        )

    @classmethod
    def from_dict(cls, data: dict) -> 'AppliedPromotion':
        return cls(
            promotion_id=str(data.get('promotionId', '')),
            promotion_name=data.get('promotionName', ''),
            type=data.get('type', ''),
            value=D(data.get('value', 0)),
            discount_amount=D(data.get('discountAmount', 0)),
        )

    def to_dict(self) -> dict:
        return {
            'promotionId':    self.promotion_id,
            'promotionName':  self.promotion_name,
            'type':           self.type,
            'value':          str(self.value),
            'discountAmount': to_string_money(self.discount_amount),
        }
