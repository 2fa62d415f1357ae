"""Initial catalog schema

Revision ID: 5c2e91d0a7b4
Revises:
Create Date: 2026-10-12 09:00:41.218904+00:00

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from pgvector.sqlalchemy import Vector
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '5c2e91d0a7b4'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

# Matches text-embedding-3-small; changing the model needs a new revision
EMBEDDING_DIM = 1536


def upgrade() -> None:
    # Create products table
    op.create_table('products',
    sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
    sa.Column('webflow_product_id', sa.String(length=64), nullable=False),
    sa.Column('slug', sa.String(length=255), nullable=True),
    sa.Column('name', sa.String(length=500), nullable=True),
    sa.Column('brand', sa.String(length=255), nullable=True),
    sa.Column('product_reference', sa.String(length=255), nullable=True),
    sa.Column('price', sa.Numeric(precision=12, scale=2), nullable=True),
    sa.Column('currency', sa.String(length=8), nullable=True),
    sa.Column('description', sa.Text(), nullable=True),
    sa.Column('description_complete', sa.Text(), nullable=True),
    sa.Column('bullet_points', sa.Text(), nullable=True),
    sa.Column('meta_description', sa.Text(), nullable=True),
    sa.Column('altword', sa.Text(), nullable=True),
    sa.Column('benefice_court', sa.Text(), nullable=True),
    sa.Column('fiche_technique_url', sa.Text(), nullable=True),
    sa.Column('url', sa.Text(), nullable=True),
    sa.Column('payload', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
    sa.Column('created_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
    sa.Column('updated_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
    sa.PrimaryKeyConstraint('id'),
    schema='catalog'
    )
    op.create_index(op.f('ix_catalog_products_webflow_product_id'), 'products', ['webflow_product_id'], unique=True, schema='catalog')
    op.create_index(op.f('ix_catalog_products_slug'), 'products', ['slug'], unique=False, schema='catalog')

    # Create product_variants table
    op.create_table('product_variants',
    sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
    sa.Column('webflow_sku_id', sa.String(length=64), nullable=False),
    sa.Column('product_id', sa.Integer(), nullable=False),
    sa.Column('webflow_product_id', sa.String(length=64), nullable=False),
    sa.Column('sku', sa.String(length=255), nullable=True),
    sa.Column('name', sa.String(length=500), nullable=True),
    sa.Column('slug', sa.String(length=255), nullable=True),
    sa.Column('price', sa.Numeric(precision=12, scale=2), nullable=True),
    sa.Column('compare_at_price', sa.Numeric(precision=12, scale=2), nullable=True),
    sa.Column('currency', sa.String(length=8), nullable=True),
    sa.Column('option_values', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
    sa.Column('is_default', sa.Boolean(), nullable=True),
    sa.Column('image_url', sa.Text(), nullable=True),
    sa.Column('payload', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
    sa.Column('updated_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
    sa.ForeignKeyConstraint(['product_id'], ['catalog.products.id'], ondelete='CASCADE'),
    sa.PrimaryKeyConstraint('id'),
    schema='catalog'
    )
    op.create_index(op.f('ix_catalog_product_variants_webflow_sku_id'), 'product_variants', ['webflow_sku_id'], unique=True, schema='catalog')
    op.create_index('ix_product_variants_product_id', 'product_variants', ['product_id'], unique=False, schema='catalog')
    op.create_index('ix_product_variants_sku', 'product_variants', ['sku'], unique=False, schema='catalog')

    # Create option_map table
    op.create_table('option_map',
    sa.Column('field_slug', sa.String(length=255), nullable=False),
    sa.Column('option_id', sa.String(length=64), nullable=False),
    sa.Column('option_name', sa.String(length=500), nullable=False),
    sa.Column('updated_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
    sa.PrimaryKeyConstraint('field_slug', 'option_id'),
    schema='catalog'
    )

    # Create product_chunks table
    op.create_table('product_chunks',
    sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
    sa.Column('product_id', sa.Integer(), nullable=False),
    sa.Column('chunk', sa.Text(), nullable=False),
    sa.Column('chunk_hash', sa.String(length=40), nullable=False),
    sa.Column('meta', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
    sa.Column('embedding', Vector(EMBEDDING_DIM), nullable=False),
    sa.Column('created_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
    sa.ForeignKeyConstraint(['product_id'], ['catalog.products.id'], ondelete='CASCADE'),
    sa.PrimaryKeyConstraint('id'),
    sa.UniqueConstraint('product_id', 'chunk_hash', name='uq_product_chunks_hash'),
    schema='catalog'
    )
    op.execute(
        "CREATE INDEX ix_product_chunks_embedding ON catalog.product_chunks "
        "USING hnsw (embedding vector_cosine_ops)"
    )

    # Create chat_messages table
    op.create_table('chat_messages',
    sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
    sa.Column('session_id', sa.String(length=255), nullable=False),
    sa.Column('role', sa.String(length=20), nullable=False),
    sa.Column('content', sa.Text(), nullable=False),
    sa.Column('created_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
    sa.PrimaryKeyConstraint('id'),
    schema='catalog'
    )
    op.create_index(op.f('ix_catalog_chat_messages_session_id'), 'chat_messages', ['session_id'], unique=False, schema='catalog')


def downgrade() -> None:
    op.drop_index(op.f('ix_catalog_chat_messages_session_id'), table_name='chat_messages', schema='catalog')
    op.drop_table('chat_messages', schema='catalog')
    op.execute("DROP INDEX IF EXISTS catalog.ix_product_chunks_embedding")
    op.drop_table('product_chunks', schema='catalog')
    op.drop_table('option_map', schema='catalog')
    op.drop_index('ix_product_variants_sku', table_name='product_variants', schema='catalog')
    op.drop_index('ix_product_variants_product_id', table_name='product_variants', schema='catalog')
    op.drop_index(op.f('ix_catalog_product_variants_webflow_sku_id'), table_name='product_variants', schema='catalog')
    op.drop_table('product_variants', schema='catalog')
    op.drop_index(op.f('ix_catalog_products_slug'), table_name='products', schema='catalog')
    op.drop_index(op.f('ix_catalog_products_webflow_product_id'), table_name='products', schema='catalog')
    op.drop_table('products', schema='catalog')
