"""Create blob_store table for HVAC report persistence

Revision ID: 001_create_blob_store
Revises:
Create Date: 2026-10-19

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '001_create_blob_store'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    """Key-value table holding the report collection and the files index"""
    op.create_table('blob_store',
        sa.Column('key', sa.String(255), primary_key=True,
                 comment="Blob name: hvac-reports, hvac-report-files"),
        sa.Column('value', sa.Text, nullable=False,
                 comment="JSON document"),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )


def downgrade():
    op.drop_table('blob_store')
