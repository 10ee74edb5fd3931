"""
restopos/promotions/engine.py
-----------------------------
Pure-Python promotion evaluation engine.

Every consumer (cart pricing, catalog preview, the HTTP tester) goes
through this module. Pipeline for one cart:

    select_active   → promotions switched on at `now`
    is_eligible     → which line items each promotion targets
    compute_discount→ one aggregate discount per promotion
    allocate        → spread it per unit over the eligible items
    aggregate       → cart-level total discount and new subtotal

Promotions are applied in input order and are not mutually exclusive.
Every promotion is computed against the items' original prices; an item
touched by several promotions ends at original price minus the sum of
its per-unit discounts, floored at zero.

No I/O happens here. `now` is always injected by the caller.
"""
from __future__ import annotations
import logging
from dataclasses import dataclass, field, replace
from datetime import datetime, tzinfo
from decimal import Decimal
from typing import Iterable, List, Tuple

from restopos.billing.cart import LineItem, cart_subtotal
from restopos.promotions.models import AppliedPromotion, Promotion
from restopos.utils.money import D, ZERO, round_money, to_string_money

logger = logging.getLogger(__name__)


@dataclass
class CalculationResult:
    """Result of evaluating all promotions against the cart."""
    updated_items:      List[LineItem] = field(default_factory=list)
    applied_promotions: List[AppliedPromotion] = field(default_factory=list)
    subtotal:           Decimal = ZERO
    total_discount:     Decimal = ZERO
    new_subtotal:       Decimal = ZERO

    def to_dict(self) -> dict:
        return {
            'updatedItems':      [i.to_dict() for i in self.updated_items],
            'appliedPromotions': [a.to_dict() for a in self.applied_promotions],
            'subtotal':          to_string_money(self.subtotal),
            'totalDiscount':     to_string_money(self.total_discount),
            'newSubtotal':       to_string_money(self.new_subtotal),
        }


# ── Clock ─────────────────────────────────────────────────────────

def localize(now: datetime, tz: tzinfo | None = None) -> datetime:
    """
    Express `now` as business wall-clock time.
    With no zone configured the deployment's local time is used; a naive
    `now` is taken to already be local wall-clock time.
    """
    if tz is None:
        return now.astimezone() if now.tzinfo else now
    if now.tzinfo is None:
        return now.replace(tzinfo=tz)
    return now.astimezone(tz)


# ── 1. Promotion filter ───────────────────────────────────────────

def select_active(promotions: Iterable[Promotion], now: datetime,
                  tz: tzinfo | None = None) -> List[Promotion]:
    """Promotions that are on, inside their date window and allowed today."""
    local_now = localize(now, tz)
    return [p for p in promotions if p.is_active_at(local_now)]


# ── 2. Eligibility matcher ────────────────────────────────────────

def is_eligible(item: LineItem, promotion: Promotion) -> bool:
    if promotion.applicability == 'all':
        return True
    if promotion.target_id is None:
        return False   # inert
    if promotion.applicability == 'category':
        return item.category_id is not None and promotion.target_id == item.category_id
    if promotion.applicability == 'product':
        return promotion.target_id == item.id
    return False       # unknown scope fails closed


def eligible_items(items: Iterable[LineItem], promotion: Promotion) -> List[LineItem]:
    return [i for i in items if is_eligible(i, promotion)]


def total_quantity(items: Iterable[LineItem]) -> int:
    return sum(i.quantity for i in items)


# ── 3. Discount calculator ────────────────────────────────────────

def passes_minimum_purchase(promotion: Promotion, subtotal: Decimal) -> bool:
    minimum = promotion.conditions.minimum_purchase
    return minimum is None or subtotal >= minimum


def passes_minimum_quantity(promotion: Promotion, quantity: int) -> bool:
    minimum = promotion.conditions.minimum_quantity
    if minimum is None or minimum <= 1:
        return True
    return quantity >= minimum


def compute_discount(promotion: Promotion, items: List[LineItem]) -> Decimal:
    """
    Aggregate discount of one promotion over its eligible items.

    percentage → value % of the eligible subtotal at original prices
    fixed, minimum quantity ≥ 3 → value per full group of minimum_quantity units
    fixed, otherwise → value per unit

    Gates (minimum purchase / minimum quantity) are the caller's job.
    Returns 0 for an unknown type.
    """
    qty = total_quantity(items)
    if qty <= 0:
        return ZERO

    if promotion.type == 'percentage':
        items_subtotal = sum((i.original_price * i.quantity for i in items), start=ZERO)
        discount = items_subtotal * promotion.value / Decimal('100')

    elif promotion.type == 'fixed':
        if promotion.is_bulk:
            groups   = qty // promotion.minimum_quantity
            discount = promotion.value * groups
        else:
            discount = promotion.value * qty

    else:
        return ZERO

    return max(round_money(discount), ZERO)


# ── 4. Discount allocator ─────────────────────────────────────────

def _reprice(item: LineItem) -> None:
    item.price = max(ZERO, round_money(item.original_price - item.unit_discount))


def allocate(promotion: Promotion, discount: Decimal,
             items: List[LineItem], working_items: List[LineItem]) -> List[LineItem]:
    """
    Spread `discount` evenly per unit over `items` and return a new
    working list where each of them carries one more per-unit record.
    Items are matched by sku.
    """
    qty = total_quantity(items)
    if qty <= 0 or discount <= 0:
        return list(working_items)

    per_unit = round_money(D(discount) / qty)
    skus     = {i.sku for i in items}
    record   = AppliedPromotion.for_promotion(promotion, per_unit)

    updated = []
    for item in working_items:
        if item.sku in skus:
            item = replace(item, applied_promotions=[*item.applied_promotions, record])
            _reprice(item)
        updated.append(item)
    return updated


# ── 5. Aggregator ─────────────────────────────────────────────────

def aggregate(subtotal: Decimal,
              discounts: Iterable[Tuple[Promotion, Decimal]]) -> Tuple[Decimal, Decimal]:
    """Return (total_discount, new_subtotal). new_subtotal never goes below zero."""
    total_discount = round_money(sum((d for _, d in discounts), start=ZERO))
    new_subtotal   = max(ZERO, round_money(subtotal - total_discount))
    return total_discount, new_subtotal


# ── Main public function ──────────────────────────────────────────

def calculate_promotions(items: Iterable[LineItem], promotions: Iterable[Promotion],
                         now: datetime, tz: tzinfo | None = None,
                         payment_method: str | None = None) -> CalculationResult:
    """
    Evaluate `promotions` against the cart `items` at instant `now`.

    Input items are never mutated; any promotions already recorded on
    them are discarded and recomputed. `payment_method`, when known,
    is checked against each promotion's payment_methods condition.
    """
    working  = [i.fresh() for i in items]
    subtotal = cart_subtotal(working)

    if not working:
        return CalculationResult(subtotal=subtotal, new_subtotal=subtotal)

    fired: List[Tuple[Promotion, Decimal]] = []
    applied: List[AppliedPromotion] = []

    for promo in select_active(promotions, now, tz):
        if not promo.conditions.accepts_payment(payment_method):
            logger.debug('Promotion %r skipped: payment method %r', promo.name, payment_method)
            continue
        if not passes_minimum_purchase(promo, subtotal):
            logger.debug('Promotion %r skipped: subtotal %s below minimum', promo.name, subtotal)
            continue

        matched = eligible_items(working, promo)
        if not matched:
            continue
        if not passes_minimum_quantity(promo, total_quantity(matched)):
            logger.debug('Promotion %r skipped: quantity below minimum', promo.name)
            continue

        discount = compute_discount(promo, matched)
        if discount <= 0:
            continue   # no discount applicable

        working = allocate(promo, discount, matched, working)
        fired.append((promo, discount))
        applied.append(AppliedPromotion.for_promotion(promo, discount))
        logger.debug('Promotion %r applied: %s off', promo.name, discount)

    total_discount, new_subtotal = aggregate(subtotal, fired)

    return CalculationResult(
        updated_items=working,
        applied_promotions=applied,
        subtotal=subtotal,
        total_discount=total_discount,
        new_subtotal=new_subtotal,
    )


# ── Single-item preview ───────────────────────────────────────────

def preview_item_discounts(promotions: Iterable[Promotion], product_id, category_id,
                           price, now: datetime,
                           tz: tzinfo | None = None) -> List[AppliedPromotion]:
    """
    Per-unit discounts a catalog product would get on its own.

    Promotions gated on minimum purchase or on more than one unit are
    left out since a single unit cannot be judged against them. This is
    an estimate; the cart calculation is authoritative.
    """
    price = D(price)
    probe = LineItem(
        id=str(product_id),
        sku=f'preview:{product_id}',
        quantity=1,
        original_price=price,
        category_id=str(category_id) if category_id not in (None, '') else None,
    )

    results = []
    for promo in select_active(promotions, now, tz):
        if promo.conditions.needs_cart_context:
            continue
        if not is_eligible(probe, promo):
            continue

        if promo.type == 'percentage':
            discount = round_money(price * promo.value / Decimal('100'))
        elif promo.type == 'fixed':
            discount = round_money(promo.value)
        else:
            continue

        if discount > 0:
            results.append(AppliedPromotion.for_promotion(promo, discount))
    return results


# ── Facade ────────────────────────────────────────────────────────

class PromotionCalculator:
    """
    A promotions snapshot bound to one instant.

    Build one per request from the promotions already fetched, then use
    it for the cart and for any number of catalog previews.
    """

    def __init__(self, promotions: Iterable[Promotion], now: datetime | None = None,
                 tz: tzinfo | None = None):
        self.tz         = tz
        self.now        = now if now is not None else datetime.now(tz)
        self.promotions = list(promotions)
        self.active_promotions = select_active(self.promotions, self.now, tz)

    def calculate(self, items: Iterable[LineItem],
                  payment_method: str | None = None) -> CalculationResult:
        return calculate_promotions(items, self.active_promotions, self.now,
                                    self.tz, payment_method=payment_method)

    def preview_item(self, product_id, category_id, price) -> List[AppliedPromotion]:
        return preview_item_discounts(self.active_promotions, product_id, category_id,
                                      price, self.now, self.tz)
