"""initial ledger schema

Revision ID: 0001_initial_ledger_schema
Revises:
Create Date: 2026-10-19

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = '0001_initial_ledger_schema'
down_revision = None
branch_labels = None
depends_on = None

ENUMS = {
    'subscriptionstatus': ('active', 'trial', 'inactive'),
    'ownertype': ('user', 'vault'),
    'vaultrole': ('owner', 'member'),
    'accounttype': ('checking', 'savings', 'investment', 'credit_card', 'other'),
    'goalvisibility': ('private', 'shared'),
    'transactiontype': ('income', 'expense', 'transfer'),
    'paymentmethod': ('pix', 'credit_card', 'debit_card', 'transfer', 'boleto', 'cash'),
    'goalmovement': ('deposit', 'withdrawal'),
    'invitationtype': ('vault', 'goal'),
    'invitationstatus': ('pending', 'accepted', 'declined'),
    'notificationtype': ('vault_invite', 'goal_invite', 'vault_member_added', 'goal_completed', 'report_ready'),
}


def enum(name):
    # Types are created once up front; several tables share them
    return postgresql.ENUM(*ENUMS[name], name=name, create_type=False)


def uuid_pk():
    return sa.Column('id', sa.Uuid(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()'))


def upgrade():
    bind = op.get_bind()
    for name, values in ENUMS.items():
        postgresql.ENUM(*values, name=name).create(bind, checkfirst=True)

    op.create_table(
        'users',
        uuid_pk(),
        sa.Column('name', sa.String(120), nullable=False),
        sa.Column('email', sa.String, nullable=False),
        sa.Column('hashed_password', sa.String, nullable=False),
        sa.Column('is_active', sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column('avatar_url', sa.String, nullable=True),
        sa.Column('subscription_status', enum('subscriptionstatus'), nullable=False, server_default='trial'),
        sa.Column('trial_expires_at', sa.DateTime, nullable=True),
        sa.Column('created_at', sa.DateTime, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime, server_default=sa.func.now()),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    op.create_table(
        'vaults',
        uuid_pk(),
        sa.Column('name', sa.String(120), nullable=False),
        sa.Column('image_url', sa.String, nullable=True),
        sa.Column('is_private', sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column('owner_id', sa.Uuid(as_uuid=True), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('created_at', sa.DateTime, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime, server_default=sa.func.now()),
    )

    op.create_table(
        'vault_members',
        uuid_pk(),
        sa.Column('vault_id', sa.Uuid(as_uuid=True), sa.ForeignKey('vaults.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('user_id', sa.Uuid(as_uuid=True), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('role', enum('vaultrole'), nullable=False, server_default='member'),
        sa.Column('joined_at', sa.DateTime, server_default=sa.func.now()),
        sa.UniqueConstraint('vault_id', 'user_id', name='uq_vault_member'),
    )

    op.create_table(
        'accounts',
        uuid_pk(),
        sa.Column('name', sa.String(120), nullable=False),
        sa.Column('bank', sa.String(120), nullable=False),
        sa.Column('type', enum('accounttype'), nullable=False),
        sa.Column('balance', sa.Numeric(14, 2), nullable=False, server_default='0'),
        sa.Column('credit_limit', sa.Numeric(14, 2), nullable=True),
        sa.Column('logo_url', sa.String, nullable=True),
        sa.Column('visible_in', sa.JSON, nullable=False, server_default='[]'),
        sa.Column('owner_id', sa.Uuid(as_uuid=True), nullable=False),
        sa.Column('owner_type', enum('ownertype'), nullable=False),
        sa.Column('created_at', sa.DateTime, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime, server_default=sa.func.now()),
    )
    op.create_index('ix_accounts_owner', 'accounts', ['owner_id', 'owner_type'])

    op.create_table(
        'goals',
        uuid_pk(),
        sa.Column('name', sa.String(120), nullable=False),
        sa.Column('emoji', sa.String(16), nullable=False),
        sa.Column('target_amount', sa.Numeric(14, 2), nullable=False),
        sa.Column('current_amount', sa.Numeric(14, 2), nullable=False, server_default='0'),
        sa.Column('visibility', enum('goalvisibility'), nullable=False, server_default='shared'),
        sa.Column('is_featured', sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column('owner_id', sa.Uuid(as_uuid=True), nullable=False),
        sa.Column('owner_type', enum('ownertype'), nullable=False),
        sa.Column('created_at', sa.DateTime, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime, server_default=sa.func.now()),
    )
    op.create_index('ix_goals_owner', 'goals', ['owner_id', 'owner_type'])

    op.create_table(
        'goal_participants',
        uuid_pk(),
        sa.Column('goal_id', sa.Uuid(as_uuid=True), sa.ForeignKey('goals.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('user_id', sa.Uuid(as_uuid=True), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('role', enum('vaultrole'), nullable=False, server_default='member'),
        sa.Column('joined_at', sa.DateTime, server_default=sa.func.now()),
        sa.UniqueConstraint('goal_id', 'user_id', name='uq_goal_participant'),
    )

    op.create_table(
        'goal_visibility_changes',
        uuid_pk(),
        sa.Column('goal_id', sa.Uuid(as_uuid=True), sa.ForeignKey('goals.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('actor_id', sa.Uuid(as_uuid=True), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('from_visibility', enum('goalvisibility'), nullable=False),
        sa.Column('to_visibility', enum('goalvisibility'), nullable=False),
        sa.Column('participant_ids', sa.JSON, nullable=False, server_default='[]'),
        sa.Column('created_at', sa.DateTime, server_default=sa.func.now()),
    )

    op.create_table(
        'transactions',
        uuid_pk(),
        sa.Column('description', sa.String(255), nullable=False),
        sa.Column('amount', sa.Numeric(14, 2), nullable=False),
        sa.Column('type', enum('transactiontype'), nullable=False),
        sa.Column('category', sa.String(100), nullable=False),
        sa.Column('payment_method', enum('paymentmethod'), nullable=True),
        sa.Column('date', sa.DateTime, nullable=False),
        sa.Column('source_account_id', sa.Uuid(as_uuid=True), sa.ForeignKey('accounts.id'), nullable=True),
        sa.Column('destination_account_id', sa.Uuid(as_uuid=True), sa.ForeignKey('accounts.id'), nullable=True),
        sa.Column('goal_id', sa.Uuid(as_uuid=True), sa.ForeignKey('goals.id', ondelete='SET NULL'), nullable=True, index=True),
        sa.Column('goal_movement', enum('goalmovement'), nullable=True),
        sa.Column('actor_id', sa.Uuid(as_uuid=True), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('is_recurring', sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column('total_installments', sa.Integer, nullable=True),
        sa.Column('paid_installments', sa.JSON, nullable=False, server_default='[]'),
        sa.Column('owner_id', sa.Uuid(as_uuid=True), nullable=False),
        sa.Column('owner_type', enum('ownertype'), nullable=False),
        sa.Column('created_at', sa.DateTime, nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime, nullable=False, server_default=sa.func.now()),
    )
    op.create_index('ix_transactions_owner_date', 'transactions', ['owner_id', 'owner_type', 'date'])

    op.create_table(
        'invitations',
        uuid_pk(),
        sa.Column('type', enum('invitationtype'), nullable=False),
        sa.Column('target_id', sa.Uuid(as_uuid=True), nullable=False, index=True),
        sa.Column('sender_id', sa.Uuid(as_uuid=True), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('receiver_id', sa.Uuid(as_uuid=True), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=True, index=True),
        sa.Column('receiver_email', sa.String, nullable=False, index=True),
        sa.Column('status', enum('invitationstatus'), nullable=False, server_default='pending'),
        sa.Column('created_at', sa.DateTime, server_default=sa.func.now()),
        sa.Column('responded_at', sa.DateTime, nullable=True),
    )

    op.create_table(
        'reports',
        uuid_pk(),
        sa.Column('owner_id', sa.Uuid(as_uuid=True), nullable=False),
        sa.Column('owner_type', enum('ownertype'), nullable=False),
        sa.Column('month_year', sa.String(7), nullable=False),
        sa.Column('analysis_html', sa.Text, nullable=False),
        sa.Column('created_at', sa.DateTime, nullable=False, server_default=sa.func.now()),
        sa.Column('invalidated_at', sa.DateTime, nullable=True),
    )
    op.create_index('ix_reports_key', 'reports', ['owner_id', 'owner_type', 'month_year', 'created_at'])

    op.create_table(
        'notifications',
        uuid_pk(),
        sa.Column('user_id', sa.Uuid(as_uuid=True), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('type', enum('notificationtype'), nullable=False),
        sa.Column('title', sa.String, nullable=False),
        sa.Column('message', sa.String, nullable=False),
        sa.Column('link', sa.String, nullable=True),
        sa.Column('is_read', sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime, server_default=sa.func.now()),
    )


def downgrade():
    for table in (
        'notifications',
        'reports',
        'invitations',
        'transactions',
        'goal_visibility_changes',
        'goal_participants',
        'goals',
        'accounts',
        'vault_members',
        'vaults',
        'users',
    ):
        op.drop_table(table)

    bind = op.get_bind()
    for name in ENUMS:
        postgresql.ENUM(name=name).drop(bind, checkfirst=True)
