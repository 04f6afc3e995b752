"""create_users_and_timer_sessions

Revision ID: 3f2c9a1d7e44
Revises: 
Create Date: 2025-01-12 09:30:00.000000

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '3f2c9a1d7e44'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'users',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('hashed_password', sa.String(length=255), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    op.create_table(
        'timer_sessions',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.Uuid(), nullable=False),
        sa.Column('start_time', sa.DateTime(), nullable=False),
        sa.Column('end_time', sa.DateTime(), nullable=True),
        sa.Column('duration', sa.Integer(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint('duration IS NULL OR duration >= 0', name='ck_timer_sessions_duration_non_negative'),
        sa.CheckConstraint('(end_time IS NULL) = (duration IS NULL)', name='ck_timer_sessions_duration_iff_ended')
    )
    op.create_index('ix_timer_sessions_user_start', 'timer_sessions', ['user_id', 'start_time'])

    # At most one open session per user
    op.create_index(
        'uq_timer_sessions_one_active_per_user',
        'timer_sessions',
        ['user_id'],
        unique=True,
        postgresql_where=sa.text('end_time IS NULL'),
        sqlite_where=sa.text('end_time IS NULL')
    )


def downgrade():
    op.drop_index('uq_timer_sessions_one_active_per_user', table_name='timer_sessions')
    op.drop_index('ix_timer_sessions_user_start', table_name='timer_sessions')
    op.drop_table('timer_sessions')
    op.drop_index('ix_users_email', table_name='users')
    op.drop_table('users')
