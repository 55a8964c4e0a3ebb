# Overview: Flask CLI command groups for bootstrap, tenant administration, and reporting.

# backend/commerce/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to "commerce:create_app".
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap:
# - python -m flask system init-db
#   Create all tables (development; use "flask db upgrade" for real deployments).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
# - python -m flask system grant-platform-admin --email ops@example.com --role SUPER_ADMIN
#   Give a user access to the platform API.
#
# Tenant management:
# - python -m flask tenants list
#   List all tenants with plan, status and product count.
# - python -m flask tenants create --slug acme --name "Acme" --owner-email owner@acme.test --owner-name "Ann"
#   Onboard a tenant with its owner membership.
# - python -m flask tenants purge --slug acme --yes
#   Permanently delete a tenant and everything it owns (relational rows and documents).
#
# Inventory:
# - python -m flask inventory low-stock --slug acme
#   Print the low-stock report for one tenant.

import click
from flask import current_app
from flask.cli import with_appcontext
from sqlalchemy import delete, func, select, update

from .errors import CommerceError
from .extensions import db, mongo
from .models import (
    Cart,
    CartItem,
    Category,
    Membership,
    Order,
    OrderItem,
    PlatformAdmin,
    Product,
    StockMovement,
    Tenant,
    User,
    product_categories,
)
from .models.tenancy import PLANS, PLATFORM_ROLES
from .services import inventory_service, tenant_service
from .services.tenant_user_service import COLLECTION as TENANT_USERS
from .tenancy import tenant_transaction, unscoped


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables that do not exist yet."""
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

    click.echo("PASS Database reset complete.")


@system_group.command('grant-platform-admin')
@click.option('--email', required=True, help='Existing or new user email')
@click.option('--name', default=None, help='Name used when the user is created')
@click.option('--role', type=click.Choice(PLATFORM_ROLES), default='SUPER_ADMIN', show_default=True)
@with_appcontext
def grant_platform_admin(email, name, role):
    """Create or update the PlatformAdmin row for a user."""
    email = email.lower()
    user = db.session.execute(select(User).where(User.email == email)).scalar()
    if user is None:
        user = User(email=email, name=name or email.split("@", 1)[0], role="admin")
        db.session.add(user)
        db.session.flush()

    admin = db.session.execute(select(PlatformAdmin).where(PlatformAdmin.user_id == user.id)).scalar()
    if admin is None:
        db.session.add(PlatformAdmin(user_id=user.id, role=role))
    else:
        admin.role = role
    db.session.commit()
    click.echo(f"PASS {email} (user {user.id}) is now {role}")


@click.group('tenants')
def tenants_group():
    """Tenant (merchant) management commands."""


@tenants_group.command('list')
@with_appcontext
def list_tenants():
    """List all tenants."""
    tenants = db.session.execute(select(Tenant).order_by(Tenant.id)).scalars().all()

    if not tenants:
        click.echo("No tenants found.")
        return

    with unscoped() as session:
        product_counts = dict(
            session.execute(
                select(Product.tenant_id, func.count(Product.id))
                .where(Product.status != "archived")
                .group_by(Product.tenant_id)
            ).all()
        )

    click.echo("\n" + "="*80)
    click.echo(f"{'ID':<5} {'Slug':<20} {'Name':<25} {'Plan':<11} {'Status':<10} {'Products'}")
    click.echo("="*80)

    for tenant in tenants:
        click.echo(
            f"{tenant.id:<5} {tenant.slug:<20} {tenant.name[:24]:<25} {tenant.plan:<11} "
            f"{tenant.status:<10} {product_counts.get(tenant.id, 0)}"
        )

    click.echo("="*80 + "\n")


@tenants_group.command('create')
@click.option('--slug', required=True, help='URL slug (lowercase, unique)')
@click.option('--name', required=True, help='Store name')
@click.option('--owner-email', required=True, help='Owner email')
@click.option('--owner-name', required=True, help='Owner name')
@click.option('--plan', type=click.Choice(PLANS), default='free', show_default=True)
@with_appcontext
def create_tenant_cli(slug, name, owner_email, owner_name, plan):
    """Onboard a new tenant (same checks as the platform API)."""
    from .validation.schemas import tenant_onboarding_schema, validate

    try:
        data = validate(tenant_onboarding_schema, {
            "slug": slug,
            "name": name,
            "plan": plan,
            "ownerEmail": owner_email,
            "ownerName": owner_name,
        })
        tenant = tenant_service.onboard_tenant(data)
    except CommerceError as e:
        click.echo(f"FAIL {e.message} ({e.code})")
        if e.details:
            click.echo(f"     {e.details}")
        raise SystemExit(1)

    click.echo(f"PASS Created tenant: {tenant.name} (ID: {tenant.id}, slug: {tenant.slug})")


def purge_tenant(tenant: Tenant) -> dict:
    """Delete every row and document owned by ``tenant``, then the tenant itself."""
    counts = {}
    with tenant_transaction(tenant.id) as session:
        product_ids = select(Product.id).where(Product.tenant_id == tenant.id)
        session.execute(delete(product_categories).where(product_categories.c.product_id.in_(product_ids)))
        session.execute(update(Category).where(Category.tenant_id == tenant.id).values(parent_id=None))
        for model in (CartItem, Cart, OrderItem, Order, StockMovement, Product, Category, Membership):
            result = session.execute(delete(model).where(model.tenant_id == tenant.id))
            counts[model.__tablename__] = result.rowcount

    counts[TENANT_USERS] = mongo.collection(TENANT_USERS).delete_many({"tenantId": tenant.id}).deleted_count
    tenant_service.get_resolver().invalidate(tenant)
    db.session.delete(tenant)
    db.session.commit()
    current_app.logger.warning("Tenant purged: id=%s slug=%s counts=%s", tenant.id, tenant.slug, counts)
    return counts


@tenants_group.command('purge')
@click.option('--slug', required=True, help='Tenant slug')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def purge_tenant_cli(slug, yes):
    """DANGER: permanently delete a tenant and all of its data."""
    tenant = db.session.execute(select(Tenant).where(Tenant.slug == slug.lower())).scalar()
    if tenant is None:
        click.echo(f"FAIL Tenant '{slug}' not found")
        raise SystemExit(1)

    if not yes:
        click.confirm(f"WARN This will DELETE tenant '{tenant.slug}' and ALL of its data. Are you sure?", abort=True)

    counts = purge_tenant(tenant)
    for name, count in counts.items():
        click.echo(f"DELETE  {name}: {count}")
    click.echo(f"PASS Tenant '{slug}' purged.")


@click.group('inventory')
def inventory_group():
    """Inventory reporting commands."""


@inventory_group.command('low-stock')
@click.option('--slug', required=True, help='Tenant slug')
@with_appcontext
def low_stock_cli(slug):
    """Print tracked products at or below their low-stock threshold."""
    tenant = db.session.execute(select(Tenant).where(Tenant.slug == slug.lower())).scalar()
    if tenant is None:
        click.echo(f"FAIL Tenant '{slug}' not found")
        raise SystemExit(1)

    alerts = inventory_service.low_stock_report(tenant.id)
    if not alerts:
        click.echo("No low-stock products.")
        return

    click.echo(f"{'Severity':<10} {'Product':<30} {'SKU':<15} {'Stock':>6} {'Threshold':>10}")
    for alert in alerts:
        click.echo(
            f"{alert['severity']:<10} {alert['productName'][:29]:<30} {alert['sku'] or '-':<15} "
            f"{alert['currentStock']:>6} {alert['threshold']:>10}"
        )


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(tenants_group)
    app.cli.add_command(inventory_group)
