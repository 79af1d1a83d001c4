"""Initial schema: profiles, website types, audits, subscribers and billing.

Revision ID: 001
Revises:
Create Date: 2026-10-19

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
    # Profiles are keyed by the Supabase auth subject
    op.create_table(
        'user_profiles',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('full_name', sa.String(length=255), nullable=True),
        sa.Column('avatar_url', sa.String(length=2048), nullable=True),
        sa.Column('company_name', sa.String(length=255), nullable=True),
        sa.Column('tier', sa.String(length=20), nullable=False, server_default='free'),
        sa.Column('subscription_status', sa.String(length=50), nullable=True),
        sa.Column('stripe_customer_id', sa.String(length=255), nullable=True),
        sa.Column('stripe_subscription_id', sa.String(length=255), nullable=True),
        sa.Column('audits_used_this_month', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('audits_limit', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('purchased_audits', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('current_period_end', sa.DateTime(timezone=True), nullable=True),
        sa.Column('last_audit_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('stripe_customer_id')
    )
    op.create_index('ix_user_profiles_email', 'user_profiles', ['email'], unique=False)
    op.create_index('ix_user_profiles_stripe_customer_id', 'user_profiles', ['stripe_customer_id'], unique=False)
    op.create_index('ix_user_profiles_tier', 'user_profiles', ['tier'], unique=False)

    # Create website_types table
    op.create_table(
        'website_types',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('slug', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('icon', sa.String(length=100), nullable=True),
        sa.Column('category_weights', postgresql.JSON(astext_type=sa.Text()), nullable=False, server_default='{}'),
        sa.Column('focus_areas', postgresql.JSON(astext_type=sa.Text()), nullable=False, server_default='[]'),
        sa.Column('best_practices', postgresql.JSON(astext_type=sa.Text()), nullable=False, server_default='[]'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='true'),
        sa.Column('is_default', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_website_types_slug', 'website_types', ['slug'], unique=True)

    # Create audits table
    op.create_table(
        'audits',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('url', sa.String(length=2048), nullable=False),
        sa.Column('overall_score', sa.Integer(), nullable=True),
        sa.Column('category_scores', postgresql.JSON(astext_type=sa.Text()), nullable=True),
        sa.Column('summary', sa.Text(), nullable=True),
        sa.Column('brief', postgresql.JSON(astext_type=sa.Text()), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='pending'),
        sa.Column('error_message', sa.Text(), nullable=True),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('input_tokens', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('output_tokens', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('total_tokens', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('estimated_cost', sa.Numeric(precision=10, scale=4), nullable=False, server_default='0'),
        sa.Column('source_ip', sa.String(length=64), nullable=True),
        sa.Column('user_agent', sa.String(length=256), nullable=True),
        sa.Column('is_admin', sa.Boolean(), nullable=True, server_default='false'),
        sa.Column('website_type_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['user_profiles.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['website_type_id'], ['website_types.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_audits_user_id', 'audits', ['user_id'], unique=False)
    op.create_index('ix_audits_status', 'audits', ['status'], unique=False)
    op.create_index('ix_audits_created_at', 'audits', ['created_at'], unique=False)
    op.create_index('ix_audits_website_type_id', 'audits', ['website_type_id'], unique=False)

    # Create email_subscribers table
    op.create_table(
        'email_subscribers',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('source', sa.String(length=50), nullable=False, server_default='audit'),
        sa.Column('audit_url', sa.String(length=2048), nullable=True),
        sa.Column('verified', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('unsubscribed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_email_subscribers_email', 'email_subscribers', ['email'], unique=True)

    # Create subscription_events table
    op.create_table(
        'subscription_events',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('stripe_event_id', sa.String(length=255), nullable=True),
        sa.Column('event_type', sa.String(length=100), nullable=False),
        sa.Column('metadata', postgresql.JSON(astext_type=sa.Text()), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_subscription_events_event_type', 'subscription_events', ['event_type'], unique=False)

    # Create invoices table
    op.create_table(
        'invoices',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('stripe_invoice_id', sa.String(length=255), nullable=False),
        sa.Column('amount', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('currency', sa.String(length=10), nullable=False, server_default='usd'),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('invoice_url', sa.String(length=2048), nullable=True),
        sa.Column('invoice_pdf', sa.String(length=2048), nullable=True),
        sa.Column('period_start', sa.DateTime(timezone=True), nullable=True),
        sa.Column('period_end', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['user_profiles.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('stripe_invoice_id')
    )
    op.create_index('ix_invoices_user_id', 'invoices', ['user_id'], unique=False)


def downgrade() -> None:
    op.drop_index('ix_invoices_user_id', table_name='invoices')
    op.drop_table('invoices')
    op.drop_index('ix_subscription_events_event_type', table_name='subscription_events')
    op.drop_table('subscription_events')
    op.drop_index('ix_email_subscribers_email', table_name='email_subscribers')
    op.drop_table('email_subscribers')
    op.drop_index('ix_audits_website_type_id', table_name='audits')
    op.drop_index('ix_audits_created_at', table_name='audits')
    op.drop_index('ix_audits_status', table_name='audits')
    op.drop_index('ix_audits_user_id', table_name='audits')
    op.drop_table('audits')
    op.drop_index('ix_website_types_slug', table_name='website_types')
    op.drop_table('website_types')
    op.drop_index('ix_user_profiles_tier', table_name='user_profiles')
    op.drop_index('ix_user_profiles_stripe_customer_id', table_name='user_profiles')
    op.drop_index('ix_user_profiles_email', table_name='user_profiles')
    op.drop_table('user_profiles')
