"""initial branchpos schema

Revision ID: b7c1d2e3f4a5
Revises:
Create Date: 2026-03-01 00:00:00.000000

Creates the complete schema:
- branches: root scoping unit
- workers / role_assignments: staff, per-branch roles, clock status
- categories / inventory_items: branch stock (stock >= 0)
- bundles / bundle_components: fixed and custom bundles
- discounts: per-branch codes
- work_sessions: clock-in/clock-out intervals
- orders / order_lines: write-once sales
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'b7c1d2e3f4a5'
down_revision = None
branch_labels = None
depends_on = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
    ]


def upgrade():
    # ============================================================================
    # branches
    # ============================================================================
    op.create_table(
        'branches',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=120), nullable=False),
        sa.Column('location', sa.String(length=255), nullable=True),
        sa.Column('contact_number', sa.String(length=32), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name', name='uq_branches_name'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_branches_is_active', 'branches', ['is_active'])

    # ============================================================================
    # workers: admins carry no clock status
    # ============================================================================
    op.create_table(
        'workers',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('employee_code', sa.String(length=32), nullable=True),
        sa.Column('phone', sa.String(length=32), nullable=True),
        sa.Column('is_admin', sa.Boolean(), nullable=False),
        sa.Column('admin_assigned_by_id', sa.Integer(), nullable=True),
        sa.Column('admin_assigned_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('current_status', sa.String(length=16), nullable=True),
        sa.Column('current_branch_id', sa.Integer(), nullable=True),
        sa.Column('last_time_in', sa.DateTime(timezone=True), nullable=True),
        sa.Column('last_time_out', sa.DateTime(timezone=True), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('version_id', sa.Integer(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(['admin_assigned_by_id'], ['workers.id'], ),
        sa.ForeignKeyConstraint(['current_branch_id'], ['branches.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('employee_code'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_workers_email', 'workers', ['email'], unique=True)
    op.create_index('ix_workers_is_admin', 'workers', ['is_admin'])

    op.create_table(
        'role_assignments',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('worker_id', sa.Integer(), nullable=False),
        sa.Column('branch_id', sa.Integer(), nullable=False),
        sa.Column('role', sa.String(length=16), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('assigned_by_id', sa.Integer(), nullable=True),
        sa.Column('assigned_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.ForeignKeyConstraint(['worker_id'], ['workers.id'], ),
        sa.ForeignKeyConstraint(['branch_id'], ['branches.id'], ),
        sa.ForeignKeyConstraint(['assigned_by_id'], ['workers.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('worker_id', 'branch_id', name='uq_role_assignments_worker_branch'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_role_assignments_worker_id', 'role_assignments', ['worker_id'])
    op.create_index('ix_role_assignments_branch_id', 'role_assignments', ['branch_id'])

    # ============================================================================
    # categories / inventory_items
    # ============================================================================
    op.create_table(
        'categories',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('branch_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=120), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.ForeignKeyConstraint(['branch_id'], ['branches.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('branch_id', 'name', name='uq_categories_branch_name'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_categories_branch_id', 'categories', ['branch_id'])

    op.create_table(
        'inventory_items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('branch_id', sa.Integer(), nullable=False),
        sa.Column('category_id', sa.Integer(), nullable=True),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('price_cents', sa.Integer(), nullable=False),
        sa.Column('cost_cents', sa.Integer(), nullable=True),
        sa.Column('stock', sa.Integer(), nullable=False),
        sa.Column('barcode', sa.String(length=64), nullable=True),
        sa.Column('image_url', sa.String(length=512), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('version_id', sa.Integer(), nullable=False),
        *_timestamps(),
        sa.CheckConstraint('stock >= 0', name='ck_inventory_items_stock_nonnegative'),
        sa.ForeignKeyConstraint(['branch_id'], ['branches.id'], ),
        sa.ForeignKeyConstraint(['category_id'], ['categories.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_inventory_items_branch_id', 'inventory_items', ['branch_id'])
    op.create_index('ix_inventory_items_category_id', 'inventory_items', ['category_id'])
    op.create_index('ix_inventory_items_barcode', 'inventory_items', ['barcode'])
    op.create_index('ix_inventory_items_branch_name', 'inventory_items', ['branch_id', 'name'])

    # ============================================================================
    # bundles: custom bundles have max_pieces and no component rows
    # ============================================================================
    op.create_table(
        'bundles',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('branch_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('price_cents', sa.Integer(), nullable=False),
        sa.Column('image_url', sa.String(length=512), nullable=True),
        sa.Column('is_custom', sa.Boolean(), nullable=False),
        sa.Column('max_pieces', sa.Integer(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(['branch_id'], ['branches.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_bundles_branch_id', 'bundles', ['branch_id'])

    op.create_table(
        'bundle_components',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('bundle_id', sa.Integer(), nullable=False),
        sa.Column('inventory_item_id', sa.Integer(), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.CheckConstraint('quantity > 0', name='ck_bundle_components_quantity_positive'),
        sa.ForeignKeyConstraint(['bundle_id'], ['bundles.id'], ),
        sa.ForeignKeyConstraint(['inventory_item_id'], ['inventory_items.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('bundle_id', 'inventory_item_id', name='uq_bundle_components_bundle_item'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_bundle_components_bundle_id', 'bundle_components', ['bundle_id'])
    op.create_index('ix_bundle_components_inventory_item_id', 'bundle_components', ['inventory_item_id'])

    # ============================================================================
    # discounts
    # ============================================================================
    op.create_table(
        'discounts',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('branch_id', sa.Integer(), nullable=False),
        sa.Column('code', sa.String(length=64), nullable=False),
        sa.Column('discount_type', sa.String(length=16), nullable=False),
        sa.Column('value', sa.Integer(), nullable=False),
        sa.Column('applies_to_category_id', sa.Integer(), nullable=True),
        sa.Column('min_subtotal_cents', sa.Integer(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('created_by_id', sa.Integer(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['branch_id'], ['branches.id'], ),
        sa.ForeignKeyConstraint(['applies_to_category_id'], ['categories.id'], ),
        sa.ForeignKeyConstraint(['created_by_id'], ['workers.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('branch_id', 'code', name='uq_discounts_branch_code'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_discounts_branch_id', 'discounts', ['branch_id'])
    op.create_index('ix_discounts_is_active', 'discounts', ['is_active'])

    # ============================================================================
    # work_sessions: at most one open session per worker
    # ============================================================================
    op.create_table(
        'work_sessions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('worker_id', sa.Integer(), nullable=False),
        sa.Column('branch_id', sa.Integer(), nullable=False),
        sa.Column('time_in_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('time_out_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('duration_minutes', sa.Integer(), nullable=True),
        sa.Column('clocked_in_by_id', sa.Integer(), nullable=True),
        sa.Column('clocked_out_by_id', sa.Integer(), nullable=True),
        sa.Column('session_type', sa.String(length=16), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('version_id', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.ForeignKeyConstraint(['worker_id'], ['workers.id'], ),
        sa.ForeignKeyConstraint(['branch_id'], ['branches.id'], ),
        sa.ForeignKeyConstraint(['clocked_in_by_id'], ['workers.id'], ),
        sa.ForeignKeyConstraint(['clocked_out_by_id'], ['workers.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_work_sessions_worker_id', 'work_sessions', ['worker_id'])
    op.create_index('ix_work_sessions_branch_id', 'work_sessions', ['branch_id'])
    op.create_index('ix_work_sessions_worker_time_in', 'work_sessions', ['worker_id', 'time_in_at'])
    op.create_index('ix_work_sessions_branch_time_in', 'work_sessions', ['branch_id', 'time_in_at'])

    # ============================================================================
    # orders / order_lines: write-once
    # ============================================================================
    op.create_table(
        'orders',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('branch_id', sa.Integer(), nullable=False),
        sa.Column('worker_id', sa.Integer(), nullable=False),
        sa.Column('order_number', sa.String(length=32), nullable=False),
        sa.Column('order_type', sa.String(length=16), nullable=False),
        sa.Column('subtotal_cents', sa.Integer(), nullable=False),
        sa.Column('discount_id', sa.Integer(), nullable=True),
        sa.Column('discount_amount_cents', sa.Integer(), nullable=False),
        sa.Column('total_cents', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['branch_id'], ['branches.id'], ),
        sa.ForeignKeyConstraint(['worker_id'], ['workers.id'], ),
        sa.ForeignKeyConstraint(['discount_id'], ['discounts.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('order_number', name='uq_orders_order_number'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_orders_branch_id', 'orders', ['branch_id'])
    op.create_index('ix_orders_worker_id', 'orders', ['worker_id'])
    op.create_index('ix_orders_branch_created', 'orders', ['branch_id', 'created_at'])

    op.create_table(
        'order_lines',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('order_id', sa.Integer(), nullable=False),
        sa.Column('item_id', sa.Integer(), nullable=True),
        sa.Column('bundle_id', sa.Integer(), nullable=True),
        sa.Column('is_bundle', sa.Boolean(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('price_cents', sa.Integer(), nullable=False),
        sa.Column('cost_cents', sa.Integer(), nullable=True),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('bundle_components', sa.JSON(), nullable=True),
        sa.ForeignKeyConstraint(['order_id'], ['orders.id'], ),
        sa.ForeignKeyConstraint(['item_id'], ['inventory_items.id'], ),
        sa.ForeignKeyConstraint(['bundle_id'], ['bundles.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_order_lines_order_id', 'order_lines', ['order_id'])


def downgrade():
    """Drop all tables (destructive operation)."""
    op.drop_table('order_lines')
    op.drop_table('orders')
    op.drop_table('work_sessions')
    op.drop_table('discounts')
    op.drop_table('bundle_components')
    op.drop_table('bundles')
    op.drop_table('inventory_items')
    op.drop_table('categories')
    op.drop_table('role_assignments')
    op.drop_table('workers')
    op.drop_table('branches')
