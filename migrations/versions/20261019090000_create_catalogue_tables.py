"""Create device_models, devices and outbox_messages tables

Revision ID: 20261019090000
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision = '20261019090000'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        'device_models',
        sa.Column('id', sa.String(length=64), primary_key=True, nullable=False),
        sa.Column('brand', sa.String(length=200), nullable=False),
        sa.Column('model', sa.String(length=200), nullable=False),
        sa.Column('category', sa.String(length=20), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('specifications', postgresql.JSONB(), nullable=False, server_default=sa.text("'{}'::jsonb")),
        sa.Column('image_url', sa.String(length=500), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint(
            "category in ('Laptop','Tablet','Camera','MobilePhone','Keyboard','Mouse','Charger','Other')",
            name='ck_device_models_category',
        ),
    )
    op.create_index('ix_device_models_category', 'device_models', ['category'])

    op.create_table(
        'devices',
        sa.Column('id', sa.String(length=64), primary_key=True, nullable=False),
        sa.Column('device_model_id', sa.String(length=64), nullable=False),
        sa.Column('serial_number', sa.String(length=200), nullable=False),
        sa.Column('asset_id', sa.String(length=200), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('condition', sa.String(length=200), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('purchase_date', sa.Date(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint(
            "status in ('Available','Unavailable','Maintenance','Retired','Lost')",
            name='ck_devices_status',
        ),
    )
    op.create_index('ix_devices_device_model_id', 'devices', ['device_model_id'])
    op.create_index('ix_devices_status', 'devices', ['status'])

    op.create_table(
        'outbox_messages',
        sa.Column('id', sa.String(length=36), primary_key=True, nullable=False),
        sa.Column('topic', sa.String(length=100), nullable=False),
        sa.Column('event_type', sa.String(length=200), nullable=False),
        sa.Column('subject', sa.String(length=200), nullable=False),
        sa.Column('data', postgresql.JSONB(), nullable=True),
        sa.Column('data_version', sa.String(length=20), nullable=False, server_default=sa.text("'1.0'")),
        sa.Column('event_time', sa.DateTime(timezone=True), nullable=False),
        sa.Column('processed', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('processed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('error', sa.Text(), nullable=True),
        sa.Column('retry_count', sa.Integer(), nullable=False, server_default=sa.text('0')),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('version', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint('retry_count >= 0', name='ck_outbox_messages_retry_count'),
    )
    op.create_index('ix_outbox_messages_event_type', 'outbox_messages', ['event_type'])
    op.create_index('ix_outbox_messages_expires_at', 'outbox_messages', ['expires_at'])
    op.create_index('ix_outbox_messages_processed_event_time', 'outbox_messages', ['processed', 'event_time'])


def downgrade() -> None:
    op.drop_index('ix_outbox_messages_processed_event_time', table_name='outbox_messages')
    op.drop_index('ix_outbox_messages_expires_at', table_name='outbox_messages')
    op.drop_index('ix_outbox_messages_event_type', table_name='outbox_messages')
    op.drop_table('outbox_messages')

    op.drop_index('ix_devices_status', table_name='devices')
    op.drop_index('ix_devices_device_model_id', table_name='devices')
    op.drop_table('devices')

    op.drop_index('ix_device_models_category', table_name='device_models')
    op.drop_table('device_models')
