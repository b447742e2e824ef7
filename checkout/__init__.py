import click
from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from config import config

db = SQLAlchemy()


def create_app(config_name='default'):
    """Application factory — creates and configures the Flask app."""
    app = Flask(__name__)
    app.config.from_object(config[config_name])

    # ── Logging ───────────────────────────────────────────────────
    from checkout.utils.logging import setup_logging
    setup_logging(app)

    # ── Extensions ────────────────────────────────────────────────
    db.init_app(app)

    from checkout.cart.manager import cart_manager
    cart_manager.init_app(app)

    # ── Models ────────────────────────────────────────────────────
    from checkout.catalog import models  # noqa: F401  — registers Product with SQLAlchemy

    # ── Blueprints ────────────────────────────────────────────────
    from checkout.cart import cart as cart_blueprint
    app.register_blueprint(cart_blueprint, url_prefix='/cart')

    # ── CLI Commands ──────────────────────────────────────────────
    register_commands(app)

    # ── ProxyFix (HTTPS termination upstream) ─────────────────────
    # The cart rides in a Secure session cookie in production
    from werkzeug.middleware.proxy_fix import ProxyFix
    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_prefix=1)

    return app


def register_commands(app):
    """Register custom Flask CLI commands."""

    @app.cli.command('init-db')
    def init_db():
        """Create all database tables."""
        db.create_all()
        click.echo('✅  Database tables created.')

    @app.cli.command('seed-demo')
    def seed_demo():
        """Populate the catalog with a few demo products."""
        from checkout.catalog.models import Product

        db.create_all()
        currency = app.config['CART_DEFAULT_CURRENCY']
        demo = [
            ('MUG-001',   'Enamel Mug',      850),
            ('TEE-001',   'Cotton T-Shirt',  1800),
            ('CAP-001',   'Canvas Cap',      1200),
            ('BAG-001',   'Tote Bag',        950),
        ]
        created = 0
        for sku, name, price in demo:
            if Product.query.filter_by(sku=sku).first():
                continue
            db.session.add(Product(sku=sku, name=name, price=price, currency=currency))
            created += 1
        db.session.commit()
        click.echo(f'✅  {created} demo product(s) created.')

    @app.cli.command('show-stored-carts')
    def show_stored_carts():
        """List carts parked in the database (diagnostic)."""
        import json
        from checkout.cart.models import StoredCart

        rows = StoredCart.query.order_by(StoredCart.created_at.desc()).all()
        if not rows:
            click.echo('No stored carts.')
            return
        click.echo(f'{"Identifier":<24} {"Instance":<12} {"Lines":<6} {"Stored at"}')
        click.echo('─' * 64)
        for row in rows:
            lines = len(json.loads(row.content).get('items', []))
            click.echo(f'{row.identifier:<24} {row.instance:<12} {lines:<6} {row.created_at:%Y-%m-%d %H:%M}')
