"""create quiz_session and room_code tables

Revision ID: 5c2a9e1d7b30
Revises:
Create Date: 2026-10-19 00:00:00
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '5c2a9e1d7b30'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    existing_tables = set(sa.inspect(bind).get_table_names())

    if 'quiz_session' not in existing_tables:
        op.create_table(
            'quiz_session',
            sa.Column('session_id', sa.String(length=64), primary_key=True),
            sa.Column('room_code', sa.String(length=4), nullable=True),
            sa.Column('status', sa.String(length=16), nullable=False),
            sa.Column('payload', sa.Text(), nullable=False),
            sa.Column('created_at', sa.Float(), nullable=False),
            sa.Column('expires_at', sa.Float(), nullable=False),
        )
        op.create_index('ix_quiz_session_room_code', 'quiz_session', ['room_code'])
        op.create_index('ix_quiz_session_expires_at', 'quiz_session', ['expires_at'])

    if 'room_code' not in existing_tables:
        op.create_table(
            'room_code',
            sa.Column('code', sa.String(length=4), primary_key=True),
            sa.Column('session_id', sa.String(length=64), nullable=False),
            sa.Column('expires_at', sa.Float(), nullable=False),
        )
        op.create_index('ix_room_code_expires_at', 'room_code', ['expires_at'])


def downgrade():
    op.drop_index('ix_room_code_expires_at', table_name='room_code')
    op.drop_table('room_code')
    op.drop_index('ix_quiz_session_expires_at', table_name='quiz_session')
    op.drop_index('ix_quiz_session_room_code', table_name='quiz_session')
    op.drop_table('quiz_session')
