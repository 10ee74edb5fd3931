import click
from zoneinfo import ZoneInfo
from flask import Flask, jsonify
from config import config


def create_app(config_name='default'):
    """Application factory — creates and configures the Flask app."""
    app = Flask(__name__)
    app.config.from_object(config[config_name])
    app.json.sort_keys = False   # keep the key order the POS front end expects

    # ── Logging ───────────────────────────────────────────────────
    from restopos.utils.logging import setup_logging
    setup_logging(app)

    # ── Business time zone (fails fast on an unknown name) ────────
    tz_name = app.config.get('PROMO_TIMEZONE')
    app.config['PROMO_TZINFO'] = ZoneInfo(tz_name) if tz_name else None

    # ── Blueprints ────────────────────────────────────────────────
    from restopos.main import main as main_blueprint
    app.register_blueprint(main_blueprint)

    from restopos.api import promotions as promotions_blueprint
    app.register_blueprint(promotions_blueprint, url_prefix='/promotions')

    # ── Error Handlers ────────────────────────────────────────────
    @app.errorhandler(400)
    def bad_request(e):
        return jsonify({'error': 'Bad request', 'detail': e.description}), 400

    @app.errorhandler(404)
    def not_found(e):
        return jsonify({'error': 'Not found'}), 404

    @app.errorhandler(405)
    def method_not_allowed(e):
        return jsonify({'error': 'Method not allowed'}), 405

    @app.errorhandler(500)
    def internal_error(e):
        app.logger.error(f'Unhandled error: {e}')
        return jsonify({'error': 'Server error'}), 500

    # ── CLI Commands ──────────────────────────────────────────────
    register_commands(app)

    return app


def register_commands(app):
    """Register custom Flask CLI commands."""

    @app.cli.command('active-promotions')
    @click.argument('snapshot', type=click.File('r'))
    @click.option('--at', 'at', default=None,
                  help='ISO datetime to evaluate at (default: now).')
    def active_promotions(snapshot, at):
        """List promotions from a JSON snapshot file that are active at a given time."""
        import json
        from datetime import datetime
        from restopos.promotions.engine import select_active
        from restopos.promotions.models import APPLICABILITY, PROMO_TYPES, parse_when
        from restopos.promotions.validators import parse_promotions

        tz = app.config['PROMO_TZINFO']
        try:
            promos = parse_promotions(json.load(snapshot))
            now = parse_when(at) if at else datetime.now(tz)
        except ValueError as e:   # bad JSON, invalid promotion or --at
            raise click.ClickException(str(e))

        if not isinstance(now, datetime):
            now = datetime.combine(now, datetime.min.time())

        active = select_active(promos, now, tz)
        if not active:
            click.echo(f'No active promotions at {now.isoformat()}.')
            return
        types, scopes = dict(PROMO_TYPES), dict(APPLICABILITY)
        click.echo(f'{"Id":<12} {"Type":<18} {"Value":<10} {"Scope":<14} {"Name"}')
        click.echo('─' * 72)
        for p in active:
            click.echo(f'{p.id:<12} {types.get(p.type, p.type):<18} {str(p.value):<10} '
                       f'{scopes.get(p.applicability, p.applicability):<14} {p.name}')
