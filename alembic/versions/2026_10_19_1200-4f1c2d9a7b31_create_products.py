"""create products table

Revision ID: 4f1c2d9a7b31
Revises: 
Create Date: 2026-10-19 12:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = '4f1c2d9a7b31'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("CREATE SCHEMA IF NOT EXISTS catalog")
    op.execute("CREATE EXTENSION IF NOT EXISTS pg_trgm")

    op.create_table(
        'products',
        sa.Column('id', sa.UUID(), nullable=False, server_default=sa.text('gen_random_uuid()')),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), server_default='', nullable=False),
        sa.Column('price', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('stock', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.CheckConstraint('price >= 0', name='ck_products_price_non_negative'),
        sa.CheckConstraint('stock >= 0', name='ck_products_stock_non_negative'),
        sa.PrimaryKeyConstraint('id'),
        schema='catalog'
    )

    op.create_index('idx_products_created_at', 'products', ['created_at', 'id'], schema='catalog')

    # Trigram indexes back the ILIKE substring search used when Elasticsearch is down
    op.execute("""
    CREATE INDEX IF NOT EXISTS idx_products_title_trgm
    ON catalog.products USING gin (title gin_trgm_ops);
    """)
    op.execute("""
    CREATE INDEX IF NOT EXISTS idx_products_description_trgm
    ON catalog.products USING gin (description gin_trgm_ops);
    """)


def downgrade() -> None:
    op.execute("DROP INDEX IF EXISTS catalog.idx_products_description_trgm;")
    op.execute("DROP INDEX IF EXISTS catalog.idx_products_title_trgm;")
    op.drop_index('idx_products_created_at', table_name='products', schema='catalog')
    op.drop_table('products', schema='catalog')
