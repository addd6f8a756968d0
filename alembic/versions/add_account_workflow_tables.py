"""Add account workflow tables and seed plans

Revision ID: accounts_001
Revises:
Create Date: 2026-10-19 12:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'accounts_001'
down_revision = None
branch_labels = None
depends_on = None

# SQLAlchemy Enum columns store member names
subscription_status = sa.Enum('ACTIVE', 'PAST_DUE', 'EXPIRED', 'PAYMENT_PENDING', name='subscriptionstatus')
account_role = sa.Enum('STANDALONE', 'OWNER', 'MEMBER', name='accountrole')
severity = sa.Enum('SUCCESS', 'WARNING', 'INFO', 'ERROR', name='severity')
inquiry_status = sa.Enum('PENDING', 'APPROVED', 'REJECTED', name='inquirystatus')


def upgrade():
    op.create_table('users',
        sa.Column('email', sa.String(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('is_admin', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('plan', sa.String(), nullable=False, server_default='free'),
        sa.Column('pending_plan', sa.String(), nullable=True),
        sa.Column('subscription_start_date', sa.DateTime(), nullable=True),
        sa.Column('subscription_end_date', sa.DateTime(), nullable=True),
        sa.Column('subscription_status', subscription_status, nullable=False, server_default='ACTIVE'),
        sa.Column('account_role', account_role, nullable=False, server_default='STANDALONE'),
        sa.Column('member_of', sa.String(), nullable=True),
        sa.Column('team_members', sa.JSON(), nullable=False),
        sa.Column('team_pending_members', sa.JSON(), nullable=False),
        sa.Column('crm_notes', sa.Text(), nullable=True),
        sa.Column('last_login', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True, server_default=sa.text('now()')),
        sa.Column('updated_at', sa.DateTime(), nullable=True, server_default=sa.text('now()')),
        sa.PrimaryKeyConstraint('email')
    )
    op.create_index(op.f('ix_users_email'), 'users', ['email'], unique=False)
    op.create_index(op.f('ix_users_plan'), 'users', ['plan'], unique=False)
    op.create_index(op.f('ix_users_account_role'), 'users', ['account_role'], unique=False)
    op.create_index(op.f('ix_users_member_of'), 'users', ['member_of'], unique=False)

    op.create_table('notifications',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('user_email', sa.String(), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('severity', severity, nullable=False, server_default='INFO'),
        sa.Column('read', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['user_email'], ['users.email'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_notifications_id'), 'notifications', ['id'], unique=False)
    op.create_index(op.f('ix_notifications_user_email'), 'notifications', ['user_email'], unique=False)

    op.create_table('plan_change_inquiries',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('user_email', sa.String(), nullable=False),
        sa.Column('user_name', sa.String(), nullable=False),
        sa.Column('requested_plan', sa.String(), nullable=False),
        sa.Column('status', inquiry_status, nullable=False, server_default='PENDING'),
        sa.Column('company_name', sa.String(), nullable=True),
        sa.Column('team_size', sa.String(), nullable=True),
        sa.Column('use_case', sa.Text(), nullable=True),
        sa.Column('phone', sa.String(), nullable=True),
        sa.Column('payment_proof_image', sa.Text(), nullable=True),
        sa.Column('submitted_at', sa.DateTime(), nullable=True),
        sa.Column('resolved_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_plan_change_inquiries_id'), 'plan_change_inquiries', ['id'], unique=False)
    op.create_index(op.f('ix_plan_change_inquiries_user_email'), 'plan_change_inquiries', ['user_email'], unique=False)
    op.create_index(op.f('ix_plan_change_inquiries_status'), 'plan_change_inquiries', ['status'], unique=False)
    op.create_index(op.f('ix_plan_change_inquiries_submitted_at'), 'plan_change_inquiries', ['submitted_at'], unique=False)

    op.create_table('team_member_inquiries',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('owner_email', sa.String(), nullable=False),
        sa.Column('owner_name', sa.String(), nullable=False),
        sa.Column('member_email', sa.String(), nullable=False),
        sa.Column('status', inquiry_status, nullable=False, server_default='PENDING'),
        sa.Column('payment_proof_image', sa.Text(), nullable=False),
        sa.Column('submitted_at', sa.DateTime(), nullable=True),
        sa.Column('resolved_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_team_member_inquiries_id'), 'team_member_inquiries', ['id'], unique=False)
    op.create_index(op.f('ix_team_member_inquiries_owner_email'), 'team_member_inquiries', ['owner_email'], unique=False)
    op.create_index(op.f('ix_team_member_inquiries_member_email'), 'team_member_inquiries', ['member_email'], unique=False)
    op.create_index(op.f('ix_team_member_inquiries_status'), 'team_member_inquiries', ['status'], unique=False)
    op.create_index(op.f('ix_team_member_inquiries_submitted_at'), 'team_member_inquiries', ['submitted_at'], unique=False)

    op.create_table('projects',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('user_email', sa.String(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_projects_id'), 'projects', ['id'], unique=False)
    op.create_index(op.f('ix_projects_user_email'), 'projects', ['user_email'], unique=False)

    op.create_table('subscription_history',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('user_email', sa.String(), nullable=False),
        sa.Column('action', sa.String(), nullable=False),
        sa.Column('from_plan', sa.String(), nullable=True),
        sa.Column('to_plan', sa.String(), nullable=True),
        sa.Column('details', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_subscription_history_id'), 'subscription_history', ['id'], unique=False)
    op.create_index(op.f('ix_subscription_history_user_email'), 'subscription_history', ['user_email'], unique=False)
    op.create_index(op.f('ix_subscription_history_action'), 'subscription_history', ['action'], unique=False)
    op.create_index(op.f('ix_subscription_history_created_at'), 'subscription_history', ['created_at'], unique=False)

    op.create_table('plans',
        sa.Column('tier', sa.String(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('price_monthly', sa.Numeric(10, 2), nullable=True),
        sa.Column('billing_days', sa.Integer(), nullable=True),
        sa.Column('requires_approval', sa.Boolean(), nullable=False, server_default='true'),
        sa.Column('features', sa.JSON(), nullable=False),
        sa.Column('active', sa.Boolean(), nullable=False, server_default='true'),
        sa.Column('created_at', sa.DateTime(), nullable=True, server_default=sa.text('now()')),
        sa.Column('updated_at', sa.DateTime(), nullable=True, server_default=sa.text('now()')),
        sa.PrimaryKeyConstraint('tier')
    )

    op.execute("""
        INSERT INTO plans (tier, name, price_monthly, billing_days, requires_approval, features, active)
        VALUES
            ('free', 'Free', 0.00, NULL, false,
             '["Up to 3 inspection projects", "AI defect detection on uploaded images", "Basic PDF reports"]', true),
            ('pro', 'Pro', 49.90, 30, true,
             '["Unlimited inspection projects", "Blueprint pinning and annotations", "Custom-branded reports", "Team members (one seat per approved request)"]', true),
            ('custom', 'Custom', NULL, 365, true,
             '["Everything in Pro", "Dedicated detection models", "Annual billing and invoicing", "Priority support"]', true)
    """)


def downgrade():
    op.drop_table('plans')
    op.drop_index(op.f('ix_subscription_history_created_at'), table_name='subscription_history')
    op.drop_index(op.f('ix_subscription_history_action'), table_name='subscription_history')
    op.drop_index(op.f('ix_subscription_history_user_email'), table_name='subscription_history')
    op.drop_index(op.f('ix_subscription_history_id'), table_name='subscription_history')
    op.drop_table('subscription_history')
    op.drop_index(op.f('ix_projects_user_email'), table_name='projects')
    op.drop_index(op.f('ix_projects_id'), table_name='projects')
    op.drop_table('projects')
    op.drop_table('team_member_inquiries')
    op.drop_table('plan_change_inquiries')
    op.drop_table('notifications')
    op.drop_table('users')
    inquiry_status.drop(op.get_bind(), checkfirst=True)
    severity.drop(op.get_bind(), checkfirst=True)
    account_role.drop(op.get_bind(), checkfirst=True)
    subscription_status.drop(op.get_bind(), checkfirst=True)
