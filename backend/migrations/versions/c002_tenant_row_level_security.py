"""PostgreSQL row-level security on tenant-owned tables

MULTI-TENANT: second line of defence under the ORM criteria. Each
tenant_transaction() runs
    SELECT set_config('app.current_tenant_id', :tenant, true)
and these policies hide (and refuse to write) rows of any other tenant.

A session with no tenant set sees nothing on these tables unless the role
bypasses RLS (migrations, the CLI purge running as the table owner).

No-op on other dialects.

Revision ID: c002_tenant_rls
Revises: c001_initial
Create Date: 2026-02-01
"""
from alembic import op


# revision identifiers, used by Alembic.
revision = 'c002_tenant_rls'
down_revision = 'c001_initial'
branch_labels = None
depends_on = None

TENANT_TABLES = (
    'memberships',
    'categories',
    'products',
    'stock_movements',
    'orders',
    'order_items',
    'carts',
    'cart_items',
)

POLICY = 'tenant_isolation'


def _is_postgres() -> bool:
    return op.get_bind().dialect.name == 'postgresql'


def upgrade():
    if not _is_postgres():
        return

    for table in TENANT_TABLES:
        op.execute(f'ALTER TABLE {table} ENABLE ROW LEVEL SECURITY')
        op.execute(
            f"""
            CREATE POLICY {POLICY} ON {table}
            USING (tenant_id = NULLIF(current_setting('app.current_tenant_id', true), '')::integer)
            WITH CHECK (tenant_id = NULLIF(current_setting('app.current_tenant_id', true), '')::integer)
            """
        )


def downgrade():
    if not _is_postgres():
        return

    for table in TENANT_TABLES:
        op.execute(f'DROP POLICY IF EXISTS {POLICY} ON {table}')
        op.execute(f'ALTER TABLE {table} DISABLE ROW LEVEL SECURITY')
