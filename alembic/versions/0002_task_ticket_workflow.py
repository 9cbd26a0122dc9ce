"""Task completion and ticket assignment fields

Revision ID: 0002_task_ticket_workflow
Revises: 0001_initial_schema
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '0002_task_ticket_workflow'
down_revision: Union[str, None] = '0001_initial_schema'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # ==========================================================================
    # tasks.completed_at
    # ==========================================================================
    with op.batch_alter_table('tasks') as batch:
        batch.add_column(sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True))
    op.create_index('ix_tasks_assigned_to_status', 'tasks', ['assigned_to_id', 'status'])

    # ==========================================================================
    # tickets.category and tickets.assigned_to_id
    # ==========================================================================
    with op.batch_alter_table('tickets') as batch:
        batch.add_column(
            sa.Column('category', sa.String(20), server_default='general', nullable=False)
        )
        batch.add_column(sa.Column('assigned_to_id', sa.Uuid(), nullable=True))
        batch.create_foreign_key(
            'fk_tickets_assigned_to_id_users',
            'users',
            ['assigned_to_id'],
            ['id'],
            ondelete='SET NULL',
        )
    op.create_index('ix_tickets_assigned_to_id', 'tickets', ['assigned_to_id'])


def downgrade() -> None:
    op.drop_index('ix_tickets_assigned_to_id', table_name='tickets')
    with op.batch_alter_table('tickets') as batch:
        batch.drop_constraint('fk_tickets_assigned_to_id_users', type_='foreignkey')
        batch.drop_column('assigned_to_id')
        batch.drop_column('category')

    op.drop_index('ix_tasks_assigned_to_status', table_name='tasks')
    with op.batch_alter_table('tasks') as batch:
        batch.drop_column('completed_at')
