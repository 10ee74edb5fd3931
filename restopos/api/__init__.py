"""
restopos/api/__init__.py
------------------------
Promotions blueprint: JSON endpoints over the promotion engine.
URL prefix: /promotions
"""
from flask import Blueprint

promotions = Blueprint('promotions', __name__)

from restopos.api import routes  # noqa: E402, F401
