"""create session, participant and group_result tables

Revision ID: 5c2a9e1f7b30
Revises:
Create Date: 2026-10-19 10:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '5c2a9e1f7b30'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'session',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=128), nullable=False),
        sa.Column('join_code', sa.String(length=16), nullable=False),
        sa.Column('admin_secret_digest', sa.String(length=64), nullable=False),
        sa.Column('participant_count', sa.Integer(), nullable=False),
        sa.Column('threshold', sa.Integer(), nullable=False),
        sa.Column('penalty_recent', sa.Boolean(), nullable=False),
        sa.Column('penalty_sick', sa.Boolean(), nullable=False),
        sa.Column('penalty_important', sa.Boolean(), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    with op.batch_alter_table('session') as batch_op:
        batch_op.create_index('ix_session_join_code', ['join_code'], unique=False)
        batch_op.create_index('ix_session_admin_secret_digest', ['admin_secret_digest'], unique=True)
        batch_op.create_index('ix_session_status', ['status'], unique=False)

    op.create_table(
        'participant',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('session_id', sa.Integer(), nullable=False),
        sa.Column('hash_code', sa.String(length=16), nullable=False),
        sa.Column('joined', sa.Boolean(), nullable=False),
        sa.Column('submitted', sa.Boolean(), nullable=False),
        sa.Column('rating_rarity', sa.Integer(), nullable=True),
        sa.Column('rating_social', sa.Integer(), nullable=True),
        sa.Column('rating_distance', sa.Integer(), nullable=True),
        sa.Column('rating_context', sa.Integer(), nullable=True),
        sa.Column('score', sa.Integer(), nullable=True),
        sa.Column('joined_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('submitted_at', sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint('NOT submitted OR joined', name='ck_participant_submitted_requires_joined'),
        sa.ForeignKeyConstraint(['session_id'], ['session.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    with op.batch_alter_table('participant') as batch_op:
        batch_op.create_index('ix_participant_session_id', ['session_id'], unique=False)

    op.create_table(
        'group_result',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('session_id', sa.Integer(), nullable=False),
        sa.Column('average_score', sa.Integer(), nullable=False),
        sa.Column('passes', sa.Boolean(), nullable=False),
        sa.Column('penalty_points', sa.Integer(), nullable=False),
        sa.Column('submission_count', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['session_id'], ['session.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('session_id'),
    )


def downgrade():
    op.drop_table('group_result')
    with op.batch_alter_table('participant') as batch_op:
        batch_op.drop_index('ix_participant_session_id')
    op.drop_table('participant')
    with op.batch_alter_table('session') as batch_op:
        batch_op.drop_index('ix_session_status')
        batch_op.drop_index('ix_session_admin_secret_digest')
        batch_op.drop_index('ix_session_join_code')
    op.drop_table('session')
