"""Initial schema - users, applications, payments, notifications, messaging

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-19

Creates every table of the BPM service. Column types are portable
(JSONB on PostgreSQL, JSON elsewhere) so the same revision runs on SQLite.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '0001_initial_schema'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

JSON = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")
TIMESTAMP = sa.DateTime(timezone=True)


def _id() -> sa.Column:
    return sa.Column('id', sa.Uuid(), primary_key=True)


def _user_fk(name: str, nullable: bool = True, ondelete: str = 'SET NULL') -> sa.Column:
    return sa.Column(
        name, sa.Uuid(), sa.ForeignKey('users.id', ondelete=ondelete), nullable=nullable
    )


def upgrade() -> None:
    """Create all tables."""

    # ==========================================================================
    # Users
    # ==========================================================================
    op.create_table(
        'users',
        _id(),
        sa.Column('email', sa.String(255), nullable=False, unique=True),
        sa.Column('full_name', sa.String(255), nullable=False),
        sa.Column('phone', sa.String(50)),
        sa.Column('nationality', sa.String(100)),
        sa.Column('role', sa.String(20), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('token_version', sa.Integer(), nullable=False),
        sa.Column('created_at', TIMESTAMP, nullable=False),
        sa.Column('updated_at', TIMESTAMP, nullable=False),
    )
    op.create_index('ix_users_role', 'users', ['role'])

    # ==========================================================================
    # Applications
    # ==========================================================================
    op.create_table(
        'applications',
        _id(),
        _user_fk('client_id', nullable=False, ondelete='CASCADE'),
        sa.Column('service_type', sa.String(50), nullable=False),
        sa.Column('status', sa.String(30), nullable=False),
        sa.Column('external_companies_count', sa.Integer(), nullable=False),
        sa.Column('external_companies_details', JSON, nullable=False),
        sa.Column('project_estimated_value', sa.Numeric(14, 2)),
        sa.Column('family_members', JSON, nullable=False),
        sa.Column('need_virtual_office', sa.Boolean(), nullable=False),
        sa.Column('company_arranges_external_companies', sa.Boolean(), nullable=False),
        _user_fk('approved_by_id'),
        sa.Column('approved_at', TIMESTAMP),
        sa.Column('created_at', TIMESTAMP, nullable=False),
        sa.Column('updated_at', TIMESTAMP, nullable=False),
    )
    op.create_index('ix_applications_client', 'applications', ['client_id', 'created_at'])
    op.create_index('ix_applications_status', 'applications', ['status'])

    op.create_table(
        'application_assignments',
        _id(),
        sa.Column(
            'application_id', sa.Uuid(),
            sa.ForeignKey('applications.id', ondelete='CASCADE'), nullable=False,
        ),
        _user_fk('employee_id', nullable=False, ondelete='CASCADE'),
        sa.Column('task', sa.String(255)),
        sa.Column('assigned_at', TIMESTAMP, nullable=False),
        sa.UniqueConstraint('application_id', 'employee_id', name='uq_assignment_employee'),
    )
    op.create_index('ix_assignments_employee', 'application_assignments', ['employee_id'])

    op.create_table(
        'application_documents',
        _id(),
        sa.Column(
            'application_id', sa.Uuid(),
            sa.ForeignKey('applications.id', ondelete='CASCADE'), nullable=False,
        ),
        sa.Column('type', sa.String(50), nullable=False),
        sa.Column('file_url', sa.String(1000), nullable=False),
        _user_fk('uploaded_by_id'),
        sa.Column('created_at', TIMESTAMP, nullable=False),
    )
    op.create_index(
        'ix_application_documents_application_id', 'application_documents', ['application_id']
    )

    op.create_table(
        'application_timeline',
        _id(),
        sa.Column(
            'application_id', sa.Uuid(),
            sa.ForeignKey('applications.id', ondelete='CASCADE'), nullable=False,
        ),
        sa.Column('status', sa.String(30), nullable=False),
        sa.Column('note', sa.Text()),
        sa.Column('progress', sa.Integer(), nullable=False),
        _user_fk('updated_by_id'),
        sa.Column('created_at', TIMESTAMP, nullable=False),
    )
    op.create_index(
        'ix_timeline_application', 'application_timeline', ['application_id', 'created_at']
    )

    # ==========================================================================
    # Payments
    # ==========================================================================
    op.create_table(
        'payments',
        _id(),
        sa.Column(
            'application_id', sa.Uuid(),
            sa.ForeignKey('applications.id', ondelete='CASCADE'), nullable=False,
        ),
        _user_fk('client_id', nullable=False, ondelete='CASCADE'),
        sa.Column('total_amount', sa.Numeric(12, 2), nullable=False),
        sa.Column('currency', sa.String(3), nullable=False),
        sa.Column('payment_plan', sa.String(20), nullable=False),
        sa.Column('status', sa.String(20), nullable=False),
        sa.Column('receipt_url', sa.String(1000)),
        sa.Column('submitted_at', TIMESTAMP),
        sa.Column('method', sa.String(20)),
        sa.Column('transaction_ref', sa.String(255)),
        _user_fk('paid_by_id'),
        sa.Column('due_date', TIMESTAMP),
        sa.Column('verified_by_admin', sa.Boolean(), nullable=False),
        sa.Column('verified_at', TIMESTAMP),
        _user_fk('verified_by_id'),
        sa.Column('admin_notes', sa.Text()),
        sa.Column('created_at', TIMESTAMP, nullable=False),
        sa.Column('updated_at', TIMESTAMP, nullable=False),
        sa.UniqueConstraint('application_id', name='uq_payments_application'),
    )
    op.create_index('ix_payments_client', 'payments', ['client_id'])
    op.create_index('ix_payments_status', 'payments', ['status'])

    op.create_table(
        'payment_installments',
        _id(),
        sa.Column(
            'payment_id', sa.Uuid(),
            sa.ForeignKey('payments.id', ondelete='CASCADE'), nullable=False,
        ),
        sa.Column('sequence', sa.Integer(), nullable=False),
        sa.Column('amount', sa.Numeric(12, 2), nullable=False),
        sa.Column('status', sa.String(20), nullable=False),
        sa.Column('receipt_url', sa.String(1000)),
        sa.Column('uploaded_at', TIMESTAMP),
        sa.Column('verified_by_admin', sa.Boolean(), nullable=False),
        sa.Column('verified_at', TIMESTAMP),
        _user_fk('verified_by_id'),
        sa.Column('admin_notes', sa.Text()),
        sa.Column('created_at', TIMESTAMP, nullable=False),
        sa.UniqueConstraint('payment_id', 'sequence', name='uq_installment_sequence'),
    )

    # ==========================================================================
    # Notifications
    # ==========================================================================
    op.create_table(
        'notifications',
        _id(),
        _user_fk('user_id', nullable=False, ondelete='CASCADE'),
        sa.Column('type', sa.String(20), nullable=False),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('read', sa.Boolean(), nullable=False),
        sa.Column('priority', sa.String(10), nullable=False),
        sa.Column('data', JSON, nullable=False),
        sa.Column('created_at', TIMESTAMP, nullable=False),
        sa.Column('updated_at', TIMESTAMP, nullable=False),
    )
    op.create_index('idx_notif_user_unread', 'notifications', ['user_id', 'read', 'created_at'])

    # ==========================================================================
    # Messaging, tasks and tickets
    # ==========================================================================
    op.create_table(
        'messages',
        _id(),
        sa.Column(
            'application_id', sa.Uuid(),
            sa.ForeignKey('applications.id', ondelete='CASCADE'), nullable=False,
        ),
        _user_fk('sender_id', nullable=False, ondelete='CASCADE'),
        _user_fk('recipient_id', nullable=False, ondelete='CASCADE'),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('type', sa.String(10), nullable=False),
        sa.Column('is_read', sa.Boolean(), nullable=False),
        sa.Column('read_at', TIMESTAMP),
        sa.Column('created_at', TIMESTAMP, nullable=False),
    )
    op.create_index('ix_messages_application', 'messages', ['application_id', 'created_at'])
    op.create_index('ix_messages_recipient_unread', 'messages', ['recipient_id', 'is_read'])

    op.create_table(
        'tasks',
        _id(),
        sa.Column(
            'application_id', sa.Uuid(),
            sa.ForeignKey('applications.id', ondelete='CASCADE'), nullable=True,
        ),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('description', sa.Text()),
        sa.Column('status', sa.String(20), nullable=False),
        sa.Column('priority', sa.String(10), nullable=False),
        _user_fk('assigned_to_id'),
        _user_fk('created_by_id'),
        sa.Column('due_date', TIMESTAMP),
        sa.Column('created_at', TIMESTAMP, nullable=False),
    )
    op.create_index('ix_tasks_application_id', 'tasks', ['application_id'])

    op.create_table(
        'tickets',
        _id(),
        _user_fk('user_id', nullable=False, ondelete='CASCADE'),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('status', sa.String(20), nullable=False),
        sa.Column('priority', sa.String(10), nullable=False),
        sa.Column('created_at', TIMESTAMP, nullable=False),
    )
    op.create_index('ix_tickets_user_id', 'tickets', ['user_id'])

    op.create_table(
        'ticket_replies',
        _id(),
        sa.Column(
            'ticket_id', sa.Uuid(),
            sa.ForeignKey('tickets.id', ondelete='CASCADE'), nullable=False,
        ),
        _user_fk('user_id', nullable=False, ondelete='CASCADE'),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('created_at', TIMESTAMP, nullable=False),
    )
    op.create_index('ix_ticket_replies_ticket_id', 'ticket_replies', ['ticket_id'])


def downgrade() -> None:
    """Drop all tables."""
    for table in (
        'ticket_replies',
        'tickets',
        'tasks',
        'messages',
        'notifications',
        'payment_installments',
        'payments',
        'application_timeline',
        'application_documents',
        'application_assignments',
        'applications',
        'users',
    ):
        op.drop_table(table)
