"""
restopos/promotions
-------------------
Promotion records, payload validation and the discount engine.
Nothing in this package depends on Flask.
"""
