"""
restopos/main/routes.py
───────────────────────
Liveness endpoint for load balancers and monitoring.
"""
from datetime import datetime

from flask import current_app, jsonify

from restopos.main import main


@main.route("/health")
def health():
    """Health check. Reports the business time zone promotions are evaluated in."""
    tz = current_app.config.get('PROMO_TZINFO')
    return jsonify({
        'status':    'ok',
        'timezone':  str(tz) if tz else 'local',
        'timestamp': datetime.now(tz).isoformat(),
    }), 200
