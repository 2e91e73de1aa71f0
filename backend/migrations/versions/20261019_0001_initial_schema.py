"""Initial carecycle schema

Revision ID: a0c1e2d3f4b5
Revises:
Create Date: 2026-10-19 00:01:00.000000

This migration creates:
1. organization, organization_policy, department, app_user - tenants and users
2. schedule, schedule_execution, notification - recurring care scheduling
3. invitation - single-use signup tokens
4. event_log - append-only audit ledger
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = 'a0c1e2d3f4b5'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # Create organization table
    op.create_table(
        'organization',
        sa.Column('organization_id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('status', sa.String(50), nullable=False, server_default='active'),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )

    # Create organization_policy table
    op.create_table(
        'organization_policy',
        sa.Column('organization_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('organization.organization_id'), primary_key=True),
        sa.Column('auto_hold_overdue_days', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.CheckConstraint('auto_hold_overdue_days IS NULL OR auto_hold_overdue_days >= 0', name='ck_policy_auto_hold_days'),
    )

    # Create department table
    op.create_table(
        'department',
        sa.Column('department_id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('organization_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('organization.organization_id'), nullable=False),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.UniqueConstraint('organization_id', 'name', name='uq_department_org_name'),
    )

    # Create app_user table
    op.create_table(
        'app_user',
        sa.Column('user_id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('organization_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('organization.organization_id'), nullable=True),
        sa.Column('department_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('department.department_id'), nullable=True),
        sa.Column('email', sa.String(255), nullable=False, unique=True),
        sa.Column('name', sa.String(255), nullable=True),
        sa.Column('role', sa.String(50), nullable=False, server_default='nurse'),
        sa.Column('approval_status', sa.String(50), nullable=False, server_default='pending'),
        sa.Column('password_hash', sa.String(255), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('last_login_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_app_user_organization_id', 'app_user', ['organization_id'])

    # Create schedule table
    op.create_table(
        'schedule',
        sa.Column('schedule_id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('organization_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('organization.organization_id'), nullable=False),
        sa.Column('patient_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('item_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('interval_weeks', sa.Integer(), nullable=False),
        sa.Column('start_date', sa.Date(), nullable=False),
        sa.Column('end_date', sa.Date(), nullable=True),
        sa.Column('last_executed_date', sa.Date(), nullable=True),
        sa.Column('next_due_date', sa.Date(), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='active'),
        sa.Column('paused_at', sa.DateTime(), nullable=True),
        sa.Column('review_required', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('assigned_nurse_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('app_user.user_id'), nullable=True),
        sa.Column('priority', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('requires_notification', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('notification_days_before', sa.Integer(), nullable=False, server_default='7'),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.Column('created_by', postgresql.UUID(as_uuid=True), nullable=True),
        sa.CheckConstraint('interval_weeks > 0', name='ck_schedule_interval_positive'),
        sa.CheckConstraint('notification_days_before >= 0', name='ck_schedule_notify_days'),
        sa.CheckConstraint("status IN ('active', 'paused', 'completed', 'cancelled')", name='ck_schedule_status'),
    )
    op.create_index('ix_schedule_organization_id', 'schedule', ['organization_id'])
    op.create_index('ix_schedule_status_next_due', 'schedule', ['status', 'next_due_date'])

    # Create schedule_execution table
    op.create_table(
        'schedule_execution',
        sa.Column('execution_id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('schedule_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('schedule.schedule_id'), nullable=False),
        sa.Column('organization_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('organization.organization_id'), nullable=False),
        sa.Column('planned_date', sa.Date(), nullable=False),
        sa.Column('executed_date', sa.Date(), nullable=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='planned'),
        sa.Column('skipped_reason', sa.String(255), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('executed_by', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.UniqueConstraint('schedule_id', 'planned_date', name='uq_execution_schedule_date'),
    )
    op.create_index('ix_schedule_execution_org_status', 'schedule_execution', ['organization_id', 'status'])

    # Create notification table
    op.create_table(
        'notification',
        sa.Column('notification_id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('organization_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('organization.organization_id'), nullable=False),
        sa.Column('schedule_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('schedule.schedule_id'), nullable=True),
        sa.Column('recipient_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('channel', sa.String(20), nullable=False, server_default='dashboard'),
        sa.Column('notify_date', sa.Date(), nullable=False),
        sa.Column('state', sa.String(20), nullable=False, server_default='pending'),
        sa.Column('title', sa.String(255), nullable=True),
        sa.Column('message', sa.Text(), nullable=True),
        sa.Column('error_message', sa.String(255), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.UniqueConstraint('schedule_id', 'notify_date', name='uq_notification_schedule_date'),
    )
    op.create_index('ix_notification_notify_date_state', 'notification', ['notify_date', 'state'])

    # Create invitation table
    op.create_table(
        'invitation',
        sa.Column('invitation_id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('organization_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('organization.organization_id'), nullable=False),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('role', sa.String(50), nullable=False),
        sa.Column('care_type', sa.String(100), nullable=True),
        sa.Column('token', sa.String(64), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='pending'),
        sa.Column('expires_at', sa.DateTime(), nullable=False),
        sa.Column('invited_by', postgresql.UUID(as_uuid=True), sa.ForeignKey('app_user.user_id'), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.CheckConstraint("status IN ('pending', 'accepted', 'cancelled')", name='ck_invitation_status'),
    )
    op.create_index('ix_invitation_token', 'invitation', ['token'], unique=True)
    op.create_index('ix_invitation_org_email_status', 'invitation', ['organization_id', 'email', 'status'])

    # Create event_log table
    op.create_table(
        'event_log',
        sa.Column('event_id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('organization_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('organization.organization_id'), nullable=False),
        sa.Column('event_type', sa.String(100), nullable=False),
        sa.Column('schedule_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('actor_user_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('from_status', sa.String(20), nullable=True),
        sa.Column('to_status', sa.String(20), nullable=True),
        sa.Column('reason', sa.Text(), nullable=True),
        sa.Column('payload_json', postgresql.JSONB(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('correlation_id', sa.String(100), nullable=True),
    )
    op.create_index('ix_event_log_schedule_id', 'event_log', ['schedule_id'])


def downgrade() -> None:
    op.drop_index('ix_event_log_schedule_id', 'event_log')
    op.drop_table('event_log')

    op.drop_index('ix_invitation_org_email_status', 'invitation')
    op.drop_index('ix_invitation_token', 'invitation')
    op.drop_table('invitation')

    op.drop_index('ix_notification_notify_date_state', 'notification')
    op.drop_table('notification')

    op.drop_index('ix_schedule_execution_org_status', 'schedule_execution')
    op.drop_table('schedule_execution')

    op.drop_index('ix_schedule_status_next_due', 'schedule')
    op.drop_index('ix_schedule_organization_id', 'schedule')
    op.drop_table('schedule')

    op.drop_index('ix_app_user_organization_id', 'app_user')
    op.drop_table('app_user')

    op.drop_table('department')
    op.drop_table('organization_policy')
    op.drop_table('organization')
