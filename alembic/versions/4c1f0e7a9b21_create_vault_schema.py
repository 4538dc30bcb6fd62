"""create_vault_schema

Revision ID: 4c1f0e7a9b21
Revises:
Create Date: 2026-10-18 09:12:44.118203

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '4c1f0e7a9b21'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
    ]


def _audit_columns():
    return [
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('action', sa.String(length=50), nullable=False),
        sa.Column('field_name', sa.String(length=100), nullable=True),
        sa.Column('old_value', sa.Text(), nullable=True),
        sa.Column('new_value', sa.Text(), nullable=True),
        sa.Column('ip_address', sa.String(length=64), nullable=True),
        sa.Column('user_agent', sa.String(length=500), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
    ]


def upgrade() -> None:
    """Upgrade schema."""
    # Identity
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=True),
        sa.Column('role', sa.String(length=20), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email'),
    )
    op.create_table(
        'email_accounts',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('email_address', sa.String(length=255), nullable=False),
        sa.Column('status', sa.String(length=50), nullable=False),
        sa.Column('primary_use', sa.String(length=100), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email_address'),
    )
    op.create_table(
        'ecosystems',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name'),
    )
    op.create_table(
        'user_ecosystems',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('ecosystem_id', sa.Integer(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['ecosystem_id'], ['ecosystems.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_user_ecosystem', 'user_ecosystems', ['user_id', 'ecosystem_id'], unique=True)

    # Platform credentials
    op.create_table(
        'social_media_platforms',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('ecosystem_id', sa.Integer(), nullable=False),
        sa.Column('platform_name', sa.String(length=255), nullable=False),
        sa.Column('platform_type', sa.String(length=100), nullable=False),
        sa.Column('username', sa.Text(), nullable=True),
        sa.Column('password', sa.Text(), nullable=True),
        sa.Column('totp_secret', sa.Text(), nullable=True),
        sa.Column('profile_url', sa.String(length=500), nullable=True),
        sa.Column('profile_id', sa.String(length=255), nullable=True),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('phone', sa.String(length=50), nullable=True),
        sa.Column('recovery_email', sa.String(length=255), nullable=True),
        sa.Column('recovery_phone', sa.String(length=50), nullable=True),
        sa.Column('account_status', sa.String(length=50), nullable=False),
        sa.Column('login_method', sa.String(length=50), nullable=True),
        sa.Column('two_fa_enabled', sa.Boolean(), nullable=False),
        sa.Column('totp_enabled', sa.Boolean(), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_by', sa.Integer(), nullable=True),
        sa.Column('updated_by', sa.Integer(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['ecosystem_id'], ['ecosystems.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['created_by'], ['users.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['updated_by'], ['users.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(
        op.f('ix_social_media_platforms_ecosystem_id'), 'social_media_platforms', ['ecosystem_id']
    )
    op.create_table(
        'platform_access',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('platform_id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('access_level', sa.String(length=100), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('granted_by', sa.Integer(), nullable=True),
        sa.Column('granted_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['platform_id'], ['social_media_platforms.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['granted_by'], ['users.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(
        'ix_platform_access_tag', 'platform_access', ['platform_id', 'user_id', 'access_level'], unique=True
    )

    # Vault
    op.create_table(
        'secure_login_folders',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('owner_id', sa.Integer(), nullable=False),
        sa.Column('parent_id', sa.Integer(), nullable=True),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('color', sa.String(length=20), nullable=False),
        sa.Column('icon', sa.String(length=50), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(['owner_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['parent_id'], ['secure_login_folders.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_secure_login_folders_owner_id'), 'secure_login_folders', ['owner_id'])
    op.create_table(
        'secure_logins',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('owner_id', sa.Integer(), nullable=False),
        sa.Column('item_name', sa.String(length=255), nullable=False),
        sa.Column('username', sa.Text(), nullable=True),
        sa.Column('password', sa.Text(), nullable=True),
        sa.Column('totp_secret', sa.Text(), nullable=True),
        sa.Column('website_url', sa.String(length=500), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('login_type', sa.String(length=50), nullable=False),
        sa.Column('google_account_id', sa.Integer(), nullable=True),
        sa.Column('folder_id', sa.Integer(), nullable=True),
        sa.Column('updated_by', sa.Integer(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['owner_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['google_account_id'], ['email_accounts.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['folder_id'], ['secure_login_folders.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['updated_by'], ['users.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_secure_logins_owner_id'), 'secure_logins', ['owner_id'])
    op.create_index('ix_secure_login_owner_updated', 'secure_logins', ['owner_id', 'updated_at'])

    op.create_table(
        'secure_login_groups',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('owner_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['owner_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(
        'ix_secure_login_group_owner_name', 'secure_login_groups', ['owner_id', 'name'], unique=True
    )
    op.create_table(
        'secure_login_group_members',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('group_id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('role', sa.String(length=20), nullable=False),
        sa.Column('added_by', sa.Integer(), nullable=True),
        sa.Column('added_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['group_id'], ['secure_login_groups.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['added_by'], ['users.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(
        'ix_secure_login_group_member', 'secure_login_group_members', ['group_id', 'user_id'], unique=True
    )
    op.create_index('ix_secure_login_group_member_user', 'secure_login_group_members', ['user_id'])

    op.create_table(
        'secure_login_user_access',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('secure_login_id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('access_level', sa.String(length=10), nullable=False),
        sa.Column('granted_by', sa.Integer(), nullable=True),
        sa.Column('granted_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['secure_login_id'], ['secure_logins.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['granted_by'], ['users.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(
        'ix_secure_login_user_grant', 'secure_login_user_access', ['secure_login_id', 'user_id'], unique=True
    )
    op.create_index('ix_secure_login_user_grant_user', 'secure_login_user_access', ['user_id'])
    op.create_table(
        'secure_login_group_access',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('secure_login_id', sa.Integer(), nullable=False),
        sa.Column('group_id', sa.Integer(), nullable=False),
        sa.Column('access_level', sa.String(length=10), nullable=False),
        sa.Column('granted_by', sa.Integer(), nullable=True),
        sa.Column('granted_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['secure_login_id'], ['secure_logins.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['group_id'], ['secure_login_groups.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['granted_by'], ['users.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(
        'ix_secure_login_group_grant', 'secure_login_group_access', ['secure_login_id', 'group_id'], unique=True
    )
    op.create_index('ix_secure_login_group_grant_group', 'secure_login_group_access', ['group_id'])

    # Audit (no foreign keys: entries outlive their records)
    op.create_table(
        'secure_login_history',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('secure_login_id', sa.Integer(), nullable=False),
        *_audit_columns(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_secure_login_history_user_id'), 'secure_login_history', ['user_id'])
    op.create_index(
        'ix_secure_login_history_item', 'secure_login_history', ['secure_login_id', 'created_at']
    )
    op.create_table(
        'platform_audit_logs',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('platform_id', sa.Integer(), nullable=False),
        sa.Column('user_role', sa.String(length=20), nullable=True),
        *_audit_columns(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_platform_audit_logs_user_id'), 'platform_audit_logs', ['user_id'])
    op.create_index('ix_platform_audit_platform', 'platform_audit_logs', ['platform_id', 'created_at'])


def downgrade() -> None:
    """Downgrade schema."""
    for table in (
        'platform_audit_logs',
        'secure_login_history',
        'secure_login_group_access',
        'secure_login_user_access',
        'secure_login_group_members',
        'secure_login_groups',
        'secure_logins',
        'secure_login_folders',
        'platform_access',
        'social_media_platforms',
        'user_ecosystems',
        'ecosystems',
        'email_accounts',
        'users',
    ):
        op.drop_table(table)
