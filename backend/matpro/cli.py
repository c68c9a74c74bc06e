# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/matpro/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init-db
#   Create any missing tables (use `flask db upgrade` for managed schemas).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Catalog bootstrap:
# - python -m flask stores create --name "Main Yard" --code MAIN
# - python -m flask products create --sku ROOF-28G --name "Roofing sheet 28g" --retail-price 45.00
#
# Users:
# - python -m flask users create --phone 0700000000 --name "Owner" --pin 1234 --role OWNER
# - python -m flask users create --phone 0711111111 --name "Manager" --pin 4321 --role STORE_MANAGER --store-id <id>
#
# Ledger:
# - python -m flask ledger verify
#   Report sales with broken totals and negative on-hand quantities.

import click
from flask.cli import with_appcontext

from .errors import ServiceError
from .extensions import db
from .models import Product, Store
from .models.auth import ROLE_STORE_MANAGER, VALID_ROLES
from .services.auth_service import create_user
from .services.ledger_service import verify_ledger
from .validation import coerce_money


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create any missing tables."""
    db.create_all()
    click.echo("PASS Tables created.")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """
    DANGER: Drop all tables and recreate schema.

    This will DELETE ALL DATA!
    """
    if not yes:
        click.confirm("WARN This will DELETE ALL DATA. Are you sure?", abort=True)

    click.echo("DELETE  Dropping all tables...")
    db.drop_all()

    click.echo("BUILD  Creating all tables...")
    db.create_all()

    click.echo("PASS Database reset complete.")


@click.group('stores')
def stores_group():
    """Store management commands."""


@stores_group.command('create')
@click.option('--name', prompt=True, help='Store name')
@click.option('--code', default=None, help='Short store code')
@click.option('--address', default=None, help='Street address')
@with_appcontext
def create_store_cli(name, code, address):
    if db.session.query(Store).filter_by(name=name).first():
        click.echo(f"FAIL Store '{name}' already exists")
        return
    store = Store(name=name, code=code, address=address)
    db.session.add(store)
    db.session.commit()
    click.echo(f"PASS Created store: {store.name} (ID: {store.id})")


@click.group('products')
def products_group():
    """Catalog bootstrap commands."""


@products_group.command('create')
@click.option('--sku', prompt=True, help='Stock keeping unit')
@click.option('--name', prompt=True, help='Product name')
@click.option('--retail-price', prompt=True, help='Retail price')
@click.option('--cost-price', default=None, help='Cost price (owner-only in API output)')
@click.option('--category', default=None)
@click.option('--unit', default=None, help='Unit of measure, e.g. sheet, bag, metre')
@with_appcontext
def create_product_cli(sku, name, retail_price, cost_price, category, unit):
    try:
        if db.session.query(Product).filter_by(sku=sku).first():
            click.echo(f"FAIL Product with SKU '{sku}' already exists")
            return
        product = Product(
            sku=sku,
            name=name,
            category=category,
            unit=unit,
            retail_price=coerce_money(retail_price, "retail_price"),
            cost_price=coerce_money(cost_price, "cost_price") if cost_price is not None else None,
        )
        db.session.add(product)
        db.session.commit()
        click.echo(f"PASS Created product: {product.sku} (ID: {product.id})")
    except ServiceError as e:
        click.echo(f"FAIL {e.message}")


@click.group('users')
def users_group():
    """User bootstrap commands."""


@users_group.command('create')
@click.option('--phone', prompt=True, help='Login phone number')
@click.option('--name', 'full_name', prompt=True, help='Full name')
@click.option('--pin', prompt=True, hide_input=True, confirmation_prompt=True, help='4-8 digit PIN')
@click.option('--role', type=click.Choice(VALID_ROLES), default=ROLE_STORE_MANAGER, show_default=True)
@click.option('--store-id', default=None, help='Required for STORE_MANAGER')
@with_appcontext
def create_user_cli(phone, full_name, pin, role, store_id):
    try:
        user = create_user(phone=phone, full_name=full_name, pin=pin, role=role, store_id=store_id)
        db.session.commit()
        click.echo(f"PASS Created user: {user.full_name} ({user.phone}) with role '{user.role}'")
        click.echo("SECURITY PIN securely hashed with bcrypt")
    except ServiceError as e:
        db.session.rollback()
        click.echo(f"FAIL Failed to create user: {e.message}")


@click.group('ledger')
def ledger_group():
    """Ledger consistency commands."""


@ledger_group.command('verify')
@with_appcontext
def verify_ledger_cli():
    """Exit status 1 if any sale breaks its totals. Negative stock only warns."""
    report = verify_ledger()

    for sale in report["sales"]:
        click.echo(f"FAIL Sale {sale['sale_number']} ({sale['id']}): {'; '.join(sale['problems'])}")
    for snap in report["negative_on_hand"]:
        click.echo(
            f"WARN Negative on-hand {snap['on_hand_qty']} for product {snap['product_id']} "
            f"in store {snap['store_id']}"
        )

    if report["sales"]:
        raise SystemExit(1)
    click.echo("PASS Ledger consistent.")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(stores_group)
    app.cli.add_command(products_group)
    app.cli.add_command(users_group)
    app.cli.add_command(ledger_group)
