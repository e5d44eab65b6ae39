"""Initial migration

Revision ID: 001_initial
Revises: 
Create Date: 2026-10-19 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '001_initial'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # Retailers table
    op.create_table(
        'retailers',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=64), nullable=False),
        sa.Column('website', sa.Text(), nullable=True),
        sa.Column('affiliate_base_url', sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name')
    )

    # Bat models table
    op.create_table(
        'bat_models',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('brand', sa.String(length=64), nullable=False),
        sa.Column('series', sa.String(length=128), nullable=False),
        sa.Column('year', sa.Integer(), nullable=False),
        sa.Column('certification', sa.String(length=32), nullable=False),
        sa.Column('material', sa.String(length=32), nullable=True),
        sa.Column('construction', sa.String(length=32), nullable=True),
        sa.Column('barrel_size', sa.String(length=16), nullable=True),
        sa.Column('amazon_asin', sa.String(length=16), nullable=True),
        sa.Column('justbats_product_url', sa.Text(), nullable=True),
        sa.Column('url_status', sa.String(length=16), nullable=False, server_default='active'),
        sa.Column('url_last_verified', sa.DateTime(), nullable=True),
        sa.Column('model_number', sa.String(length=32), nullable=True),
        sa.Column('swing_weight', sa.String(length=32), nullable=True),
        sa.Column('image_url', sa.Text(), nullable=True),
        sa.Column('rating', sa.Float(), nullable=True),
        sa.Column('review_count', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )

    # Bat variants table
    op.create_table(
        'bat_variants',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('bat_model_id', sa.Integer(), nullable=False),
        sa.Column('length', sa.String(length=16), nullable=False),
        sa.Column('weight', sa.String(length=16), nullable=True),
        sa.Column('drop', sa.String(length=8), nullable=True),
        sa.Column('asin', sa.String(length=16), nullable=True),
        sa.Column('amazon_product_url', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['bat_model_id'], ['bat_models.id'], ),
        sa.UniqueConstraint('bat_model_id', 'length', 'drop', name='uq_variant_model_length_drop')
    )
    op.create_index('ix_bat_variants_asin', 'bat_variants', ['asin'])

    # Prices table
    op.create_table(
        'prices',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('bat_variant_id', sa.Integer(), nullable=False),
        sa.Column('retailer_id', sa.Integer(), nullable=False),
        sa.Column('price', sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column('previous_price', sa.Numeric(precision=10, scale=2), nullable=True),
        sa.Column('in_stock', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('product_url', sa.Text(), nullable=True),
        sa.Column('last_updated', sa.DateTime(), nullable=False),
        sa.Column('price_change_date', sa.DateTime(), nullable=True),
        sa.Column('price_change_percentage', sa.Numeric(precision=8, scale=2), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['bat_variant_id'], ['bat_variants.id'], ),
        sa.ForeignKeyConstraint(['retailer_id'], ['retailers.id'], ),
        sa.UniqueConstraint('bat_variant_id', 'retailer_id', name='uq_price_variant_retailer')
    )


def downgrade() -> None:
    op.drop_table('prices')
    op.drop_index('ix_bat_variants_asin', table_name='bat_variants')
    op.drop_table('bat_variants')
    op.drop_table('bat_models')
    op.drop_table('retailers')
