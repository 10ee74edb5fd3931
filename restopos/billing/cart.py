"""
restopos/billing/cart.py
------------------------
Line items and stateless helpers for the in-memory cart.

A cart is a plain list of LineItem, keyed by sku. On the wire (POS front
end, order persistence) each item looks like:

    {
        "id":           "prod-12",      ← product id
        "variantId":    "var-3",
        "categoryId":   "burgers",
        "sku":          "BURG-DBL",
        "productName":  "Burger",
        "variantName":  "Double",
        "quantity":     2,
        "originalPrice": "10000",       ← fixed when the item enters the cart
        "price":        "9000",         ← current unit price after promotions
        "appliedPromotions": [...]
    }

Money values travel as strings and become Decimal here, so nothing is
ever computed in float.
"""
from __future__ import annotations
import copy
from dataclasses import dataclass, field
from decimal import Decimal
from typing import List

from restopos.promotions.models import AppliedPromotion
from restopos.utils.money import D, ZERO, round_money, to_string_money


@dataclass
class LineItem:
    """One product/variant entry in a cart."""
    id:                 str
    sku:                str
    quantity:           int
    original_price:     Decimal
    price:              Decimal | None = None
    product_name:       str = ''
    variant_name:       str = ''
    variant_id:         str | None = None
    category_id:        str | None = None
    applied_promotions: List[AppliedPromotion] = field(default_factory=list)
    selected_options:   dict = field(default_factory=dict)

    def __post_init__(self):
        if self.price is None:
            self.price = self.original_price

    @classmethod
    def from_dict(cls, data: dict) -> 'LineItem':
        price = data.get('price')
        original = data.get('originalPrice', data.get('original_price'))
        if original in (None, ''):
            original = price
        category = data.get('categoryId', data.get('category_id'))
        variant = data.get('variantId', data.get('variant_id'))
        return cls(
            id                 = str(data.get('id', '')),
            sku                = str(data.get('sku', '')),
            quantity           = int(data.get('quantity', 0)),
            original_price     = D(original),
            price              = D(price) if price not in (None, '') else None,
            product_name       = data.get('productName', data.get('product_name', '')) or '',
            variant_name       = data.get('variantName', data.get('variant_name', '')) or '',
            variant_id         = str(variant) if variant not in (None, '') else None,
            category_id        = str(category) if category not in (None, '') else None,
            applied_promotions = [AppliedPromotion.from_dict(a)
                                  for a in data.get('appliedPromotions') or []],
            selected_options   = dict(data.get('selectedOptions') or {}),
        )

    def to_dict(self) -> dict:
        return {
            'id':                self.id,
            'variantId':         self.variant_id,
            'categoryId':        self.category_id,
            'sku':               self.sku,
            'productName':       self.product_name,
            'variantName':       self.variant_name,
            'quantity':          self.quantity,
            'originalPrice':     to_string_money(self.original_price),
            'price':             to_string_money(self.price),
            'appliedPromotions': [a.to_dict() for a in self.applied_promotions],
            'selectedOptions':   dict(self.selected_options),
        }

    # ── Derived values ────────────────────────────────────────────

    @property
    def line_original_total(self) -> Decimal:
        return round_money(self.original_price * self.quantity)

    @property
    def line_total(self) -> Decimal:
        return round_money(self.price * self.quantity)

    @property
    def unit_discount(self) -> Decimal:
        """Sum of the per-unit discounts of every promotion that touched the item."""
        return sum((a.discount_amount for a in self.applied_promotions), start=ZERO)

    def fresh(self) -> 'LineItem':
        """Copy with promotions cleared and price reset to the original price."""
        item = copy.deepcopy(self)
        item.price = item.original_price
        item.applied_promotions = []
        return item


# ── Write ─────────────────────────────────────────────────────────

def add_to_cart(items: List[LineItem], *, product_id, sku, price,
                product_name='', variant_name='', variant_id=None,
                category_id=None, quantity: int = 1,
                selected_options: dict | None = None) -> List[LineItem]:
    """
    Return a new cart with `quantity` units of the sku added.
    If the sku is already present its quantity is incremented; the
    original price of the existing entry is kept.
    """
    cart = [copy.deepcopy(i) for i in items]
    for item in cart:
        if item.sku == str(sku):
            item.quantity += quantity
            return cart

    cart.append(LineItem(
        id=str(product_id),
        sku=str(sku),
        quantity=quantity,
        original_price=D(price),
        product_name=product_name,
        variant_name=variant_name,
        variant_id=str(variant_id) if variant_id is not None else None,
        category_id=str(category_id) if category_id is not None else None,
        selected_options=dict(selected_options or {}),
    ))
    return cart


def remove_from_cart(items: List[LineItem], sku) -> List[LineItem]:
    """Return a new cart without the given sku."""
    return [copy.deepcopy(i) for i in items if i.sku != str(sku)]


# ── Totals ────────────────────────────────────────────────────────

def cart_subtotal(items: List[LineItem]) -> Decimal:
    """Sum of original_price × qty for all items, before discounts."""
    total = ZERO
    for item in items:
        total += item.line_original_total
    return total


def cart_totals(items: List[LineItem]) -> dict:
    """
    Returns:
        {
            'subtotal':         Decimal,   ← sum of original price × qty
            'discount':         Decimal,   ← subtotal − discounted_total
            'discounted_total': Decimal,   ← sum of current price × qty
        }
    """
    subtotal   = cart_subtotal(items)
    discounted = sum((i.line_total for i in items), start=ZERO)
    return {
        'subtotal':         subtotal,
        'discount':         subtotal - discounted,
        'discounted_total': discounted,
    }
