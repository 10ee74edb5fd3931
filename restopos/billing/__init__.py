"""
restopos/billing
----------------
Cart line items, cart helpers and cart payload validation.
"""
