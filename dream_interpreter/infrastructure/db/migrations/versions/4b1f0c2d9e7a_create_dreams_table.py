"""create_dreams_table

Revision ID: 4b1f0c2d9e7a
Revises:
Create Date: 2026-10-19 10:12:41.208311

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '4b1f0c2d9e7a'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table('dreams',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('user_id', sa.String(length=64), nullable=False),
        sa.Column('dream_text', sa.Text(), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='pending'),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.Column('questions', sa.JSON(), nullable=True),
        sa.Column('answers', sa.JSON(), nullable=True),
        sa.Column('interpretation', sa.Text(), nullable=True),
        sa.Column('thread_id', sa.String(length=64), nullable=True),
        sa.Column('degraded', sa.Boolean(), nullable=False, server_default='false'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_dreams_user_id'), 'dreams', ['user_id'], unique=False)
    op.create_index(op.f('ix_dreams_status'), 'dreams', ['status'], unique=False)
    op.create_index(op.f('ix_dreams_created_at'), 'dreams', ['created_at'], unique=False)
    op.create_index('ix_dreams_user_created', 'dreams', ['user_id', sa.text('created_at DESC')], unique=False)


def downgrade() -> None:
    op.drop_index('ix_dreams_user_created', table_name='dreams')
    op.drop_index(op.f('ix_dreams_created_at'), table_name='dreams')
    op.drop_index(op.f('ix_dreams_status'), table_name='dreams')
    op.drop_index(op.f('ix_dreams_user_id'), table_name='dreams')
    op.drop_table('dreams')
