"""Create ttfb_samples table

Revision ID: 001
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""

import sqlalchemy as sa
from alembic import op

# revision identifiers
revision = '001'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
  op.create_table(
    'ttfb_samples',
    sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
    sa.Column('recorded_at', sa.DateTime(), nullable=False),
    sa.Column('ttfb_ms', sa.Integer(), nullable=False),
    sa.Column('category', sa.String(length=20), nullable=False),
    sa.Column('url', sa.Text(), nullable=False),
    sa.Column('query_params', sa.Text(), nullable=True),
    sa.Column('cookies', sa.Text(), nullable=True),
    sa.Column('user_role', sa.String(length=100), nullable=False, server_default=''),
    sa.Column('country', sa.String(length=10), nullable=False, server_default=''),
    sa.Column('device_type', sa.String(length=20), nullable=False, server_default=''),
    sa.Column('browser', sa.String(length=100), nullable=False, server_default=''),
    sa.Column('referrer', sa.Text(), nullable=True),
    sa.PrimaryKeyConstraint('id'),
  )

  op.create_index('ix_ttfb_samples_recorded_at', 'ttfb_samples', ['recorded_at'])
  op.create_index('ix_ttfb_samples_category', 'ttfb_samples', ['category'])
  op.create_index('ix_ttfb_samples_ttfb_ms', 'ttfb_samples', ['ttfb_ms'])


def downgrade():
  op.drop_index('ix_ttfb_samples_ttfb_ms', table_name='ttfb_samples')
  op.drop_index('ix_ttfb_samples_category', table_name='ttfb_samples')
  op.drop_index('ix_ttfb_samples_recorded_at', table_name='ttfb_samples')
  op.drop_table('ttfb_samples')
