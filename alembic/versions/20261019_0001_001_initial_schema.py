"""Initial schema - users, profiles, images, ai_generations, purchases

Revision ID: 001_initial
Revises:
Create Date: 2026-10-19
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '001_initial'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Auth identities
    op.create_table(
        'users',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('hashed_password', sa.String(255), nullable=False),
        sa.Column('role', sa.String(20), nullable=False, server_default='user'),
        sa.Column('is_active', sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime, server_default=sa.func.now()),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)
    op.create_index('ix_users_role', 'users', ['role'])

    # Application profiles (credits, plan, storage usage)
    op.create_table(
        'profiles',
        sa.Column('id', sa.String(36), sa.ForeignKey('users.id'), primary_key=True),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('full_name', sa.String(255), nullable=True),
        sa.Column('avatar_url', sa.String(1024), nullable=True),
        sa.Column('avatar_path', sa.String(512), nullable=True),
        sa.Column('credits', sa.Integer, nullable=False, server_default='0'),
        sa.Column('plan', sa.String(20), nullable=False, server_default='free'),
        sa.Column('storage_used', sa.BigInteger, nullable=False, server_default='0'),
        sa.Column('ai_generation_count', sa.Integer, nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime, server_default=sa.func.now()),
        sa.CheckConstraint('credits >= 0', name='ck_profiles_credits_non_negative'),
        sa.CheckConstraint('storage_used >= 0', name='ck_profiles_storage_non_negative'),
    )

    op.create_table(
        'images',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('user_id', sa.String(36), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('original_url', sa.String(1024), nullable=False),
        sa.Column('edited_url', sa.String(1024), nullable=True),
        sa.Column('storage_path', sa.String(512), nullable=False),
        sa.Column('file_name', sa.String(255), nullable=False),
        sa.Column('file_size', sa.BigInteger, nullable=False, server_default='0'),
        sa.Column('metadata', sa.JSON, nullable=True),
        sa.Column('created_at', sa.DateTime, server_default=sa.func.now()),
    )
    op.create_index('ix_images_user_id', 'images', ['user_id'])
    op.create_index('ix_images_user_created', 'images', ['user_id', 'created_at'])

    op.create_table(
        'ai_generations',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('user_id', sa.String(36), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('image_id', sa.String(36), sa.ForeignKey('images.id', ondelete='CASCADE'), nullable=True),
        sa.Column('model_name', sa.String(100), nullable=False),
        sa.Column('prompt', sa.Text, nullable=False),
        sa.Column('negative_prompt', sa.Text, nullable=True),
        sa.Column('parameters', sa.JSON, nullable=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='pending'),
        sa.Column('inference_time', sa.Float, nullable=True),
        sa.Column('created_at', sa.DateTime, server_default=sa.func.now()),
        sa.Column('completed_at', sa.DateTime, nullable=True),
    )
    op.create_index('ix_ai_generations_user_id', 'ai_generations', ['user_id'])
    op.create_index('ix_ai_generations_image_id', 'ai_generations', ['image_id'])
    # Rate limiter counts rows per user inside a time window
    op.create_index('ix_ai_generations_user_created', 'ai_generations', ['user_id', 'created_at'])

    op.create_table(
        'purchases',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('user_id', sa.String(36), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('pack_id', sa.String(50), nullable=False),
        sa.Column('amount', sa.Integer, nullable=False),
        sa.Column('credits', sa.Integer, nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='pending'),
        sa.Column('stripe_session_id', sa.String(255), nullable=True, unique=True),
        sa.Column('created_at', sa.DateTime, server_default=sa.func.now()),
        sa.Column('completed_at', sa.DateTime, nullable=True),
    )
    op.create_index('ix_purchases_user_id', 'purchases', ['user_id'])


def downgrade() -> None:
    op.drop_table('purchases')
    op.drop_table('ai_generations')
    op.drop_table('images')
    op.drop_table('profiles')
    op.drop_table('users')
