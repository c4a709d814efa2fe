"""add_promotions

Revision ID: 8b3d4e6f0a12
Revises: 5f1c2a9e7b31
Create Date: 2026-10-17 14:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql
from sqlalchemy.dialects.postgresql import UUID


# revision identifiers, used by Alembic.
revision: str = '8b3d4e6f0a12'
down_revision: Union[str, Sequence[str], None] = '5f1c2a9e7b31'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


PROMOTION_TYPES = ('banner', 'card')


def upgrade() -> None:
    """Upgrade schema - Create promotions table."""
    postgresql.ENUM(*PROMOTION_TYPES, name='promotion_type_enum').create(
        op.get_bind(), checkfirst=True
    )

    op.create_table(
        'promotions',
        sa.Column('id', UUID(as_uuid=True), nullable=False),
        sa.Column('title', sa.String(length=200), nullable=False),
        sa.Column('subtitle', sa.String(length=200), nullable=True),
        sa.Column('description', sa.String(length=500), nullable=True),
        sa.Column(
            'type',
            postgresql.ENUM(*PROMOTION_TYPES, name='promotion_type_enum', create_type=False),
            nullable=False,
        ),
        sa.Column('image_url', sa.String(length=512), nullable=True),
        sa.Column('image_alt', sa.String(length=255), nullable=True),
        sa.Column('icon', sa.String(length=50), nullable=True),
        sa.Column('eco_icon', sa.String(length=50), nullable=True),
        sa.Column('badge', sa.String(length=50), nullable=True),
        sa.Column('cta_text', sa.String(length=100), nullable=True),
        sa.Column('cta_link', sa.String(length=512), nullable=True),
        sa.Column('bg_color', sa.String(length=100), nullable=True),
        sa.Column('text_color', sa.String(length=100), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=True),
        sa.Column('is_featured', sa.Boolean(), nullable=True),
        sa.Column('sort_order', sa.Integer(), nullable=True),
        sa.Column('display_order', sa.Integer(), nullable=True),
        sa.Column('start_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('end_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_promotions_type_active', 'promotions', ['type', 'is_active'], unique=False)
    op.create_index('ix_promotions_featured_active', 'promotions', ['is_featured', 'is_active'], unique=False)
    op.create_index('ix_promotions_display_order', 'promotions', ['display_order'], unique=False)


def downgrade() -> None:
    """Downgrade schema - Drop promotions table."""
    op.drop_index('ix_promotions_display_order', table_name='promotions')
    op.drop_index('ix_promotions_featured_active', table_name='promotions')
    op.drop_index('ix_promotions_type_active', table_name='promotions')
    op.drop_table('promotions')
    postgresql.ENUM(name='promotion_type_enum').drop(op.get_bind(), checkfirst=True)
