# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/stockmanager/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init-db
#   Create all tables that do not exist yet (use `flask db upgrade` for migrations).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
# - python -m flask system seed-demo
#   Idempotent demo data: one PRO seller, admin/owner/operations users, a small catalog.
#
# Stock ledger:
# - python -m flask stock reconcile [--seller-id 1]
#   Verify current_stock == SUM(quantity_delta) for every product. Exit code 1 on mismatch.
# - python -m flask stock alerts --seller-id 1
#   Raise LOW_STOCK / OUT_OF_STOCK notifications for the seller's products.

import click
from flask.cli import with_appcontext

from .errors import NotFoundError
from .extensions import db
from .models import User
from .services import catalog_service, ledger_service, notification_service, tenant_service
from .services.auth_service import create_user


DEMO_PASSWORD = "Password123!"


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create missing tables."""
    db.create_all()
    click.echo("PASS Database tables created.")


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

    click.echo("PASS Database reset complete. Run 'python -m flask system seed-demo' for demo data.")


@system_group.command('seed-demo')
@with_appcontext
def seed_demo():
    """
    Seed a demo seller with users and a starter catalog.

    Users (password "Password123!"):
    - admin@stockmanager.local  (ADMIN, no seller)
    - owner@demo.local          (OWNER)
    - counter@demo.local        (OPERATIONS)

    SECURITY: Change passwords immediately outside local development!
    """
    click.echo("START Seeding demo data...")

    if db.session.query(User).filter_by(email="owner@demo.local").first():
        click.echo("WARN  Demo seller already exists, skipping.")
        return

    seller = tenant_service.create_seller(
        business_name="Demo Shop",
        owner_name="Demo Owner",
        email="owner@demo.local",
        tier="PRO",
    )
    click.echo(f"PASS Created seller: {seller.business_name} (ID: {seller.id})")

    users = [
        ("Platform Admin", "admin@stockmanager.local", "ADMIN", None),
        ("Demo Owner", "owner@demo.local", "OWNER", seller.id),
        ("Counter Staff", "counter@demo.local", "OPERATIONS", seller.id),
    ]
    owner = None
    for name, email, role, seller_id in users:
        if db.session.query(User).filter_by(email=email).first():
            click.echo(f"WARN  User '{email}' already exists, skipping...")
            continue
        user = create_user(name=name, email=email, password=DEMO_PASSWORD, role=role, seller_id=seller_id)
        if role == "OWNER":
            owner = user
        click.echo(f"PASS Created user: {email} with role '{role}'")

    grocery = catalog_service.create_category(seller.id, "Grocery")
    stationery = catalog_service.create_category(seller.id, "Stationery")
    piece = catalog_service.create_unit(seller.id, "Piece", "pc")
    kilo = catalog_service.create_unit(seller.id, "Kilogram", "kg")

    # (name, category, unit, purchase cents, selling cents, opening stock, min level)
    catalog = [
        ("Rice 5kg", grocery, kilo, 40000, 52000, 25, 5),
        ("Sugar 1kg", grocery, kilo, 4500, 5500, 3, 10),
        ("Notebook A5", stationery, piece, 3000, 4500, 60, 10),
        ("Ball Pen", stationery, piece, 500, 1000, 0, 20),
    ]
    for name, category, unit, purchase, selling, opening, min_level in catalog:
        catalog_service.create_product(
            seller_id=seller.id,
            actor_id=owner.id if owner else None,
            name=name,
            category_id=category.id,
            unit_id=unit.id,
            purchase_price_cents=purchase,
            selling_price_cents=selling,
            opening_stock=opening,
            min_stock_level=min_level,
        )
    click.echo(f"PASS Created {len(catalog)} products with opening stock")

    click.echo("\n" + "="*60)
    click.echo("DONE Demo data seeded")
    click.echo("="*60)
    click.echo("\nDemo Credentials (CHANGE OUTSIDE DEVELOPMENT!):")
    click.echo(f"   admin -> admin@stockmanager.local / {DEMO_PASSWORD}")
    click.echo(f"   owner -> owner@demo.local          / {DEMO_PASSWORD}")
    click.echo(f"   staff -> counter@demo.local        / {DEMO_PASSWORD}")
    click.echo("")


@click.group('stock')
def stock_group():
    """Stock ledger inspection and alerts."""


@stock_group.command('reconcile')
@click.option('--seller-id', type=int, help='Limit to one seller')
@with_appcontext
def reconcile(seller_id):
    """Compare cached current_stock with the ledger sum for every product."""
    mismatches = ledger_service.reconcile_stock(seller_id=seller_id)

    if not mismatches:
        click.echo("PASS Ledger reconciles: every product's stock equals its transaction sum.")
        return

    click.echo(f"FAIL {len(mismatches)} product(s) out of balance:")
    click.echo(f"{'Product':<8} {'Seller':<8} {'Name':<30} {'Stock':>8} {'Ledger':>8}")
    click.echo("-" * 66)
    for m in mismatches:
        click.echo(
            f"{m['product_id']:<8} {m['seller_id']:<8} {m['product_name'][:30]:<30} "
            f"{m['current_stock']:>8} {m['ledger_balance']:>8}"
        )
    raise SystemExit(1)


@stock_group.command('alerts')
@click.option('--seller-id', type=int, required=True, help='Seller ID')
@with_appcontext
def alerts(seller_id):
    """Create low / out-of-stock notifications (deduplicated)."""
    try:
        tenant_service.get_seller(seller_id)
    except NotFoundError as e:
        raise click.ClickException(e.message)

    notifications = notification_service.check_and_create_stock_alerts(seller_id)
    if not notifications:
        click.echo("PASS All stock levels healthy.")
        return
    for n in notifications:
        click.echo(f"{n.type:<14} {n.title}")
    click.echo(f"DONE {len(notifications)} alert(s)")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(stock_group)
