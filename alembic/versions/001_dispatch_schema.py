"""Initial dispatch schema - drivers and orders

Revision ID: 001_dispatch_schema
Revises:
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '001_dispatch_schema'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

order_status = sa.Enum('PENDING', 'ASSIGNED', 'DELIVERED', name='orderstatus')


def upgrade() -> None:
    # Create drivers table
    op.create_table(
        'drivers',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('owner_id', sa.String(255), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('phone', sa.String(20), nullable=True),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('is_available', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('current_order_id', sa.Integer(), nullable=True),
        sa.Column('latitude', sa.Float(), nullable=True),
        sa.Column('longitude', sa.Float(), nullable=True),
        sa.Column('location_reported_at', sa.DateTime(), nullable=True),
        sa.Column('location_received_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index('ix_drivers_owner_id', 'drivers', ['owner_id'])
    op.create_index('ix_drivers_is_available', 'drivers', ['is_available'])
    op.create_index('ix_drivers_current_order_id', 'drivers', ['current_order_id'])

    # Create orders table
    op.create_table(
        'orders',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('owner_id', sa.String(255), nullable=False),
        sa.Column('customer_name', sa.String(255), nullable=False),
        sa.Column('customer_phone', sa.String(20), nullable=True),
        sa.Column('address', sa.Text(), nullable=False),
        sa.Column('pickup_latitude', sa.Float(), nullable=False),
        sa.Column('pickup_longitude', sa.Float(), nullable=False),
        sa.Column('drop_latitude', sa.Float(), nullable=True),
        sa.Column('drop_longitude', sa.Float(), nullable=True),
        sa.Column('status', order_status, nullable=False, server_default='PENDING'),
        sa.Column('assigned_driver_id', sa.Integer(), sa.ForeignKey('drivers.id'), nullable=True),
        sa.Column('delivered_by_driver_id', sa.Integer(), nullable=True),
        sa.Column('price', sa.Float(), nullable=True),
        sa.Column('items', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('assigned_at', sa.DateTime(), nullable=True),
        sa.Column('delivered_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_orders_owner_id', 'orders', ['owner_id'])
    op.create_index('ix_orders_status', 'orders', ['status'])
    op.create_index('ix_orders_assigned_driver_id', 'orders', ['assigned_driver_id'])


def downgrade() -> None:
    op.drop_index('ix_orders_assigned_driver_id', table_name='orders')
    op.drop_index('ix_orders_status', table_name='orders')
    op.drop_index('ix_orders_owner_id', table_name='orders')
    op.drop_table('orders')
    order_status.drop(op.get_bind(), checkfirst=True)

    op.drop_index('ix_drivers_current_order_id', table_name='drivers')
    op.drop_index('ix_drivers_is_available', table_name='drivers')
    op.drop_index('ix_drivers_owner_id', table_name='drivers')
    op.drop_table('drivers')
