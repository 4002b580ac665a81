"""create session_snapshot table

Revision ID: 4c7a9e21b0d3
Revises:
Create Date: 2026-10-19 00:00:00
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '4c7a9e21b0d3'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    insp = sa.inspect(bind)
    if 'session_snapshot' in insp.get_table_names():
        return
    op.create_table(
        'session_snapshot',
        sa.Column('code', sa.String(length=16), primary_key=True),
        sa.Column('payload', sa.Text(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
    )


def downgrade():
    op.drop_table('session_snapshot')
