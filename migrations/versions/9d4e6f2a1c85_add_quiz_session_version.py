"""add version to quiz_session

Revision ID: 9d4e6f2a1c85
Revises: 5c2a9e1d7b30
Create Date: 2026-10-20 00:00:00
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '9d4e6f2a1c85'
down_revision = '5c2a9e1d7b30'
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    insp = sa.inspect(bind)
    cols = {c['name'] for c in insp.get_columns('quiz_session')}
    with op.batch_alter_table('quiz_session') as batch_op:
        if 'version' not in cols:
            batch_op.add_column(sa.Column('version', sa.Integer(), nullable=False, server_default='1'))


def downgrade():
    with op.batch_alter_table('quiz_session') as batch_op:
        batch_op.drop_column('version')
