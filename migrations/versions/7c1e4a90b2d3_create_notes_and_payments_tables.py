"""Create notes, attachments, payment and webhook dead-letter tables

Revision ID: 7c1e4a90b2d3
Revises:
Create Date: 2025-10-10 09:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '7c1e4a90b2d3'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table('notes',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('user_id', sa.String(length=128), nullable=False),
        sa.Column('user_email', sa.String(length=255), nullable=True),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_notes_user_id', 'notes', ['user_id'])

    op.create_table('file_attachments',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('note_id', sa.Integer(), nullable=True),
        sa.Column('user_id', sa.String(length=128), nullable=False),
        sa.Column('file_name', sa.String(length=255), nullable=False),
        sa.Column('file_size', sa.Integer(), nullable=False),
        sa.Column('file_type', sa.String(length=100), nullable=False),
        sa.Column('storage_path', sa.String(length=500), nullable=False),
        sa.Column('storage_bucket', sa.String(length=100), nullable=False),
        sa.Column('public_url', sa.String(length=1000), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=True),
        sa.ForeignKeyConstraint(['note_id'], ['notes.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_file_attachments_note_id', 'file_attachments', ['note_id'])
    op.create_index('ix_file_attachments_user_id', 'file_attachments', ['user_id'])

    op.create_table('payment_sessions',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('session_id', sa.String(length=255), nullable=False),
        sa.Column('user_id', sa.String(length=128), nullable=False),
        sa.Column('user_email', sa.String(length=255), nullable=True),
        sa.Column('product_id', sa.String(length=255), nullable=True),
        sa.Column('status', sa.String(length=50), nullable=False),
        sa.Column('checkout_url', sa.String(length=1000), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('session_id')
    )
    op.create_index('ix_payment_sessions_user_id', 'payment_sessions', ['user_id'])

    op.create_table('subscriptions',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('user_id', sa.String(length=128), nullable=False),
        sa.Column('user_email', sa.String(length=255), nullable=True),
        sa.Column('status', sa.String(length=50), nullable=False),
        sa.Column('subscription_type', sa.String(length=50), nullable=True),
        sa.Column('product_id', sa.String(length=255), nullable=True),
        sa.Column('session_id', sa.String(length=255), nullable=True),
        sa.Column('payment_id', sa.String(length=255), nullable=True),
        sa.Column('provider_subscription_id', sa.String(length=255), nullable=True),
        sa.Column('amount', sa.Numeric(precision=12, scale=2), nullable=True),
        sa.Column('currency', sa.String(length=10), nullable=True),
        sa.Column('start_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('provider_subscription_id')
    )
    op.create_index('ix_subscriptions_user_id', 'subscriptions', ['user_id'])
    op.create_index('ix_subscriptions_session_id', 'subscriptions', ['session_id'])
    op.create_index('ix_subscriptions_payment_id', 'subscriptions', ['payment_id'])
    # Read path: latest active row per user
    op.create_index('ix_subscriptions_user_active_created', 'subscriptions',
                    ['user_id', 'is_active', 'created_at'])

    op.create_table('webhook_dead_letters',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('webhook_id', sa.String(length=255), nullable=True),
        sa.Column('event_type', sa.String(length=255), nullable=True),
        sa.Column('payload', sa.JSON(), nullable=False),
        sa.Column('reason', sa.String(length=50), nullable=False),
        sa.Column('error', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=True),
        sa.Column('resolved_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_webhook_dead_letters_webhook_id', 'webhook_dead_letters', ['webhook_id'])


def downgrade():
    op.drop_index('ix_webhook_dead_letters_webhook_id', table_name='webhook_dead_letters')
    op.drop_table('webhook_dead_letters')
    op.drop_index('ix_subscriptions_user_active_created', table_name='subscriptions')
    op.drop_index('ix_subscriptions_payment_id', table_name='subscriptions')
    op.drop_index('ix_subscriptions_session_id', table_name='subscriptions')
    op.drop_index('ix_subscriptions_user_id', table_name='subscriptions')
    op.drop_table('subscriptions')
    op.drop_index('ix_payment_sessions_user_id', table_name='payment_sessions')
    op.drop_table('payment_sessions')
    op.drop_index('ix_file_attachments_user_id', table_name='file_attachments')
    op.drop_index('ix_file_attachments_note_id', table_name='file_attachments')
    op.drop_table('file_attachments')
    op.drop_index('ix_notes_user_id', table_name='notes')
    op.drop_table('notes')
