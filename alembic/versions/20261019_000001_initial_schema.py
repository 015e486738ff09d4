"""Initial tracking schema (users, websites, connections, event_logs)

Revision ID: 20261019_000001
Revises:
Create Date: 2026-10-19 09:00:00.000000

WHAT:
    - Enums connection_type and processing_status
    - users: identity-provider mirror keyed by clerk_id
    - websites: stores owned by a user
    - connections: per-site source/destination platforms, JSON config
    - event_logs: every ingested commerce event with its processing status

WHY:
    Ownership cascades top-down (users > websites > connections/event_logs) so
    deleting a user or website leaves no orphans. The unique index
    unique_event_id_per_site is the deduplication guarantee: one accepted
    event per (website_id, event_id).
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision = '20261019_000001'
down_revision = None
branch_labels = None
depends_on = None


connection_type = postgresql.ENUM('source', 'destination', name='connection_type', create_type=False)
processing_status = postgresql.ENUM(
    'pending', 'processing', 'failed', 'duplicate', name='processing_status', create_type=False
)


def upgrade() -> None:
    # =========================================================================
    # STEP 1: Enums
    # =========================================================================
    bind = op.get_bind()
    connection_type.create(bind, checkfirst=True)
    processing_status.create(bind, checkfirst=True)

    # =========================================================================
    # STEP 2: users
    # =========================================================================
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('clerk_id', sa.String(), nullable=False),
        sa.Column('email', sa.String(), nullable=False),
        sa.Column('name', sa.String(), nullable=True),
        sa.Column('registered_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.Column('is_onboarded', sa.Boolean(), server_default=sa.false(), nullable=True),
    )
    op.create_index('ix_users_clerk_id', 'users', ['clerk_id'], unique=True)

    # =========================================================================
    # STEP 3: websites
    # =========================================================================
    op.create_table(
        'websites',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('url', sa.String(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.Column('currency', sa.String(), server_default='USD', nullable=False),
        sa.Column('timezone', sa.String(), server_default='UTC', nullable=False),
    )
    op.create_index('ix_websites_user_id', 'websites', ['user_id'])

    # =========================================================================
    # STEP 4: connections
    # =========================================================================
    # config is opaque to the database; shape is validated per platform in the app
    op.create_table(
        'connections',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('website_id', sa.Integer(), sa.ForeignKey('websites.id', ondelete='CASCADE'), nullable=True),
        sa.Column('platform', sa.String(), nullable=False),
        sa.Column('type', connection_type, nullable=False),
        sa.Column(
            'config',
            sa.JSON().with_variant(postgresql.JSONB(), 'postgresql'),
            server_default=sa.text("'{}'"),
            nullable=False,
        ),
        sa.Column('encrypted_access_token', sa.String(), nullable=True),
        sa.Column('is_active', sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('ix_connections_website_id', 'connections', ['website_id'])

    # =========================================================================
    # STEP 5: event_logs
    # =========================================================================
    op.create_table(
        'event_logs',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('website_id', sa.Integer(), sa.ForeignKey('websites.id', ondelete='CASCADE'), nullable=True),
        sa.Column('event_id', sa.String(), nullable=False),
        sa.Column('event_name', sa.String(), nullable=False),
        sa.Column('event_source_url', sa.String(), nullable=True),
        sa.Column('user_ip_address', sa.String(), nullable=True),
        sa.Column('user_agent', sa.String(), nullable=True),
        sa.Column('fbp', sa.String(), nullable=True),
        sa.Column('fbc', sa.String(), nullable=True),
        sa.Column('hashed_email', sa.String(), nullable=True),
        sa.Column('hashed_phone', sa.String(), nullable=True),
        sa.Column('value', sa.String(), nullable=True),
        sa.Column('currency', sa.String(), nullable=True),
        sa.Column('status', processing_status, server_default='pending', nullable=False),
        sa.Column('platform_response', sa.JSON().with_variant(postgresql.JSONB(), 'postgresql'), nullable=True),
        sa.Column('original_payload', sa.JSON().with_variant(postgresql.JSONB(), 'postgresql'), nullable=True),
        sa.Column('match_quality_score', sa.String(), nullable=True),
        sa.Column('received_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.Column('event_time', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_event_logs_website_id', 'event_logs', ['website_id'])
    op.create_index('ix_event_logs_event_id', 'event_logs', ['event_id'])
    op.create_index('ix_event_logs_event_name', 'event_logs', ['event_name'])
    op.create_index('unique_event_id_per_site', 'event_logs', ['website_id', 'event_id'], unique=True)


def downgrade() -> None:
    op.drop_index('unique_event_id_per_site', table_name='event_logs')
    op.drop_index('ix_event_logs_event_name', table_name='event_logs')
    op.drop_index('ix_event_logs_event_id', table_name='event_logs')
    op.drop_index('ix_event_logs_website_id', table_name='event_logs')
    op.drop_table('event_logs')

    op.drop_index('ix_connections_website_id', table_name='connections')
    op.drop_table('connections')

    op.drop_index('ix_websites_user_id', table_name='websites')
    op.drop_table('websites')

    op.drop_index('ix_users_clerk_id', table_name='users')
    op.drop_table('users')

    bind = op.get_bind()
    processing_status.drop(bind, checkfirst=True)
    connection_type.drop(bind, checkfirst=True)
