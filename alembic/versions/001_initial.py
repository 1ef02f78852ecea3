"""Initial migration

Revision ID: 001
Revises:
Create Date: 2024-01-01 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Create tenants table
    op.create_table(
        'tenants',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('timezone', sa.String(50), default='America/Mexico_City'),
        sa.Column('is_active', sa.Boolean(), default=True),
        sa.Column('llm_provider', sa.String(50), default='anthropic'),
        sa.Column('llm_model', sa.String(100), default='claude-3-5-sonnet-20241022'),
        sa.Column('created_at', sa.DateTime(), default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), default=sa.func.now(), onupdate=sa.func.now()),
    )

    # Create restaurant_settings table
    op.create_table(
        'restaurant_settings',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('tenant_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('tenants.id'), unique=True, nullable=False),
        sa.Column('address', sa.Text()),
        sa.Column('phone', sa.String(20)),
        sa.Column('opens_at', sa.String(5)),
        sa.Column('closes_at', sa.String(5)),
        sa.Column('delivery_fee_cents', sa.Integer(), default=0),
        sa.Column('minimum_order_cents', sa.Integer(), default=0),
        sa.Column('delivery_time_min', sa.Integer(), default=25),
        sa.Column('delivery_time_max', sa.Integer(), default=35),
        sa.Column('max_conversation_seconds', sa.Integer(), default=1800),
        sa.Column('welcome_message', sa.Text()),
        sa.Column('error_message', sa.Text()),
        sa.Column('created_at', sa.DateTime(), default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), default=sa.func.now(), onupdate=sa.func.now()),
    )

    # Create menu_items table
    op.create_table(
        'menu_items',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('tenant_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('tenants.id'), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('description', sa.Text()),
        sa.Column('price_cents', sa.Integer(), nullable=False),
        sa.Column('category', sa.String(100)),
        sa.Column('is_active', sa.Boolean(), default=True),
        sa.Column('is_available', sa.Boolean(), default=True),
        sa.Column('sort_order', sa.Integer(), default=0),
        sa.Column('created_at', sa.DateTime(), default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), default=sa.func.now(), onupdate=sa.func.now()),
    )

    # Create business_rules table
    op.create_table(
        'business_rules',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('tenant_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('tenants.id'), nullable=False),
        sa.Column('rule_name', sa.String(255), nullable=False),
        sa.Column('rule_type', sa.String(50)),
        sa.Column('rule_config', sa.JSON(), default=dict),
        sa.Column('ai_message_template', sa.Text()),
        sa.Column('is_active', sa.Boolean(), default=True),
        sa.Column('created_at', sa.DateTime(), default=sa.func.now()),
    )

    # Create conversations table
    op.create_table(
        'conversations',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('restaurant_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('tenants.id'), nullable=False),
        sa.Column('customer_phone', sa.String(20), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='active'),
        sa.Column('current_step', sa.String(20), nullable=False, server_default='greeting'),
        sa.Column('order_draft_json', sa.JSON(), nullable=False),
        sa.Column('message_history_json', sa.JSON(), nullable=False),
        sa.Column('summary', sa.Text()),
        sa.Column('last_interaction_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('created_at', sa.DateTime(), default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), default=sa.func.now(), onupdate=sa.func.now()),
    )

    # Create orders table
    op.create_table(
        'orders',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('tenant_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('tenants.id'), nullable=False),
        sa.Column('conversation_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('conversations.id'), unique=True),
        sa.Column('customer_phone', sa.String(20), nullable=False),
        sa.Column('delivery_street', sa.String(255), nullable=False),
        sa.Column('delivery_number', sa.String(20), nullable=False),
        sa.Column('delivery_neighborhood', sa.String(255), nullable=False),
        sa.Column('delivery_references', sa.Text()),
        sa.Column('delivery_postal_code', sa.String(10)),
        sa.Column('items_json', sa.JSON(), nullable=False),
        sa.Column('subtotal_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('delivery_fee_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('total_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('status', sa.String(50), default='confirmed'),
        sa.Column('estimated_delivery_minutes', sa.Integer()),
        sa.Column('special_instructions', sa.Text()),
        sa.Column('created_at', sa.DateTime(), default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), default=sa.func.now(), onupdate=sa.func.now()),
    )

    # Create indexes
    op.create_index('ix_menu_items_tenant_catalog', 'menu_items', ['tenant_id', 'category', 'sort_order'])
    op.create_index('ix_business_rules_tenant_id', 'business_rules', ['tenant_id'])
    op.create_index(
        'uq_conversations_active_pair',
        'conversations',
        ['restaurant_id', 'customer_phone'],
        unique=True,
        postgresql_where=sa.text("status = 'active'"),
    )
    op.create_index(
        'ix_conversations_status_last_interaction',
        'conversations',
        ['status', 'last_interaction_at'],
    )
    op.create_index('ix_orders_tenant_id', 'orders', ['tenant_id'])
    op.create_index('ix_orders_status', 'orders', ['status'])


def downgrade() -> None:
    op.drop_table('orders')
    op.drop_table('conversations')
    op.drop_table('business_rules')
    op.drop_table('menu_items')
    op.drop_table('restaurant_settings')
    op.drop_table('tenants')
