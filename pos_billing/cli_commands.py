"""
Flask CLI commands.

Commands:
- flask init-db: Create database tables
- flask restock: Add stock for a product in a store
"""

import click
from pos_billing.database import create_tables, get_session
from pos_billing.exceptions import BillingError
from pos_billing.services.inventory_service import restock


def init_cli_commands(app):
    """Register CLI commands with Flask app."""

    @app.cli.command('init-db')
    def init_db_command():
        """Create all tables."""
        create_tables()
        click.echo(click.style('Database tables created.', fg='green'))

    @app.cli.command('restock')
    @click.option('--store', 'store_id', type=int, required=True, help='Store id')
    @click.option('--product', 'product_id', type=int, required=True, help='Product id')
    @click.option('--quantity', type=int, required=True, help='Units to add')
    def restock_command(store_id, product_id, quantity):
        """Increment inventory for a product in a store."""
        try:
            record = restock(get_session(), store_id, product_id, quantity)
        except BillingError as e:
            click.echo(click.style(f'Restock failed: {e.message}', fg='red'))
            return
        click.echo(f'Product {product_id} in store {store_id}: {record.quantity} units')
