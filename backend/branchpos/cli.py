# Overview: Flask CLI command groups for database bootstrap, demo data and worker inspection.

# backend/branchpos/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to "branchpos:create_app".
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask db upgrade
#   Apply the Alembic migrations in backend/migrations.
# - python -m flask system init-db
#   Create any missing tables (idempotent).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
# - python -m flask system seed-demo
#   Create a demo branch with an admin, a manager, a worker, stock, a bundle and a discount.
#
# Worker inspection/bootstrap:
# - python -m flask workers list [--branch-id 1]
#   List workers with their roles and clock status.
# - python -m flask workers create-admin --name "Owner" --email owner@example.com
#   Create an admin worker.

import click
from flask.cli import with_appcontext

from .extensions import db, feed
from .models import Branch, Worker
from .services import (
    branch_service,
    bundle_service,
    discount_service,
    inventory_service,
    worker_service,
)


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables that do not exist yet."""
    db.create_all()
    click.echo("PASS Database tables created")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Confirm destroying all data')
@with_appcontext
def reset_db(yes):
    """DEV/TEST only: drop and recreate every table."""
    if not yes:
        click.echo("FAIL Refusing to reset without --yes")
        return
    feed.close_all()
    db.drop_all()
    db.create_all()
    click.echo("PASS Database reset")


@system_group.command('seed-demo')
@click.option('--branch', 'branch_name', default='Main Branch', help='Demo branch name')
@with_appcontext
def seed_demo(branch_name):
    """
    Create a small demo data set.

    Creates:
    - One branch
    - Workers: admin@branchpos.local (admin), manager@branchpos.local
      (manager), worker@branchpos.local (worker)
    - Two categories, four items, a fixed and a custom bundle
    - Discount code WELCOME10 (10% off)
    """
    if db.session.query(Branch).filter_by(name=branch_name).first():
        click.echo(f"WARN  Branch '{branch_name}' already exists, skipping seed")
        return

    click.echo("START Seeding demo data...")
    branch = branch_service.create_branch(name=branch_name, location="Downtown")
    click.echo(f"PASS Created branch: {branch.name} (ID: {branch.id})")

    admin = worker_service.create_worker(name="Admin", email="admin@branchpos.local", is_admin=True)
    manager = worker_service.create_worker(name="Manager", email="manager@branchpos.local", employee_code="M-001")
    cashier = worker_service.create_worker(name="Cashier", email="worker@branchpos.local", employee_code="W-001")
    worker_service.assign_role(worker_id=manager.id, branch_id=branch.id, role="manager", assigned_by_id=admin.id)
    worker_service.assign_role(worker_id=cashier.id, branch_id=branch.id, role="worker", assigned_by_id=manager.id)
    click.echo("PASS Created workers: admin, manager, worker")

    food = inventory_service.create_category(branch_id=branch.id, name="Food")
    drinks = inventory_service.create_category(branch_id=branch.id, name="Drinks")
    burger = inventory_service.create_item(branch_id=branch.id, payload={
        "name": "Burger", "category_id": food.id, "price_cents": 850, "cost_cents": 300, "stock": 40,
    })
    fries = inventory_service.create_item(branch_id=branch.id, payload={
        "name": "Fries", "category_id": food.id, "price_cents": 350, "cost_cents": 80, "stock": 60,
    })
    cola = inventory_service.create_item(branch_id=branch.id, payload={
        "name": "Cola", "category_id": drinks.id, "price_cents": 250, "cost_cents": 60, "stock": 80,
    })
    inventory_service.create_item(branch_id=branch.id, payload={
        "name": "Lemonade", "category_id": drinks.id, "price_cents": 300, "cost_cents": 70, "stock": 30,
    })
    click.echo("PASS Created 2 categories and 4 items")

    bundle_service.create_bundle(branch_id=branch.id, payload={
        "name": "Burger Meal",
        "price_cents": 1200,
        "components": [
            {"inventory_item_id": burger.id, "quantity": 1},
            {"inventory_item_id": fries.id, "quantity": 1},
            {"inventory_item_id": cola.id, "quantity": 1},
        ],
    })
    bundle_service.create_bundle(branch_id=branch.id, payload={
        "name": "Pick Any Three", "price_cents": 900, "is_custom": True, "max_pieces": 3,
    })
    click.echo("PASS Created bundles: Burger Meal, Pick Any Three")

    discount_service.create_discount(branch_id=branch.id, created_by_id=admin.id, payload={
        "code": "WELCOME10", "discount_type": "percentage", "value": 10,
    })
    click.echo("PASS Created discount: WELCOME10")

    click.echo("\n" + "=" * 60)
    click.echo("DONE Demo data seeded")
    click.echo("=" * 60)
    click.echo(f"\nBranch: {branch.name} (ID: {branch.id})")
    click.echo(f"Send X-Worker-Id: {admin.id} (admin), {manager.id} (manager), {cashier.id} (worker)")


@click.group('workers')
def workers_group():
    """Worker inspection and bootstrap commands."""


@workers_group.command('list')
@click.option('--branch-id', type=int, help='Only workers assigned to this branch')
@with_appcontext
def list_workers(branch_id):
    """List workers with roles and clock status."""
    workers = db.session.query(Worker).order_by(Worker.name.asc()).all()
    if branch_id is not None:
        workers = [w for w in workers if worker_service.role_in_branch(w, branch_id)]

    if not workers:
        click.echo("No workers found.")
        return

    click.echo("\n" + "=" * 80)
    click.echo(f"{'ID':<5} {'Name':<24} {'Email':<30} {'Roles':<14} {'Status'}")
    click.echo("=" * 80)
    for w in workers:
        if w.is_admin:
            roles = "admin"
        else:
            roles = ",".join(sorted({a.role for a in w.role_assignments if a.is_active})) or "-"
        status = w.current_status or "-"
        if not w.is_active:
            status = "inactive"
        click.echo(f"{w.id:<5} {w.name:<24} {w.email:<30} {roles:<14} {status}")
    click.echo("=" * 80 + "\n")


@workers_group.command('create-admin')
@click.option('--name', prompt=True, help='Display name')
@click.option('--email', prompt=True, help='Email address')
@with_appcontext
def create_admin(name, email):
    """Create an admin worker."""
    try:
        worker = worker_service.create_worker(name=name, email=email, is_admin=True)
    except ValueError as e:
        click.echo(f"FAIL Failed to create admin: {str(e)}")
        return
    click.echo(f"PASS Created admin: {worker.name} ({worker.email}) ID {worker.id}")


def register_commands(app):
    app.cli.add_command(system_group)
    app.cli.add_command(workers_group)
