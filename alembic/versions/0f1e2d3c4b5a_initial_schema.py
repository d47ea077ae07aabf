"""initial_schema

Revision ID: 0f1e2d3c4b5a
Revises:
Create Date: 2026-10-17 09:00:00.000000

"""
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op


# revision identifiers, used by Alembic.
revision: str = '0f1e2d3c4b5a'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create users, user_sessions, sessions, session_statistics, qa_data and revoked_tokens."""
    op.create_table(
        'users',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('email', sa.Text(), nullable=False),
        sa.Column('name', sa.Text(), server_default='', nullable=False),
        sa.Column('display_name', sa.Text(), server_default='', nullable=False),
        sa.Column('password', sa.Text(), nullable=True),
        sa.Column('tenant_id', sa.Text(), nullable=True),
        sa.Column('roles', sa.Text(), server_default='["user"]', nullable=False),
        sa.Column('is_active', sa.Integer(), server_default='1', nullable=False),
        sa.Column('last_login_at', sa.Text(), nullable=True),
        sa.Column('created_at', sa.Text(), nullable=False),
        sa.Column('updated_at', sa.Text(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('idx_users_email', 'users', ['email'], unique=True)
    op.create_index('idx_users_tenant_id', 'users', ['tenant_id'], unique=False)

    op.create_table(
        'user_sessions',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('user_id', sa.String(), nullable=False),
        sa.Column('refresh_token', sa.Text(), nullable=False),
        sa.Column('expires_at', sa.Text(), nullable=False),
        sa.Column('created_at', sa.Text(), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('idx_user_sessions_user_id', 'user_sessions', ['user_id'], unique=False)
    op.create_index('idx_user_sessions_refresh_token', 'user_sessions', ['refresh_token'], unique=False)

    op.create_table(
        'sessions',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('user_id', sa.String(), nullable=False),
        sa.Column('name', sa.Text(), server_default='', nullable=False),
        sa.Column('type', sa.Text(), nullable=False),
        sa.Column('timestamp', sa.Text(), nullable=False),
        sa.Column('model', sa.Text(), server_default='', nullable=False),
        sa.Column('question_provider', sa.Text(), nullable=True),
        sa.Column('question_model', sa.Text(), nullable=True),
        sa.Column('answer_provider', sa.Text(), nullable=True),
        sa.Column('answer_model', sa.Text(), nullable=True),
        sa.Column('blog_content', sa.Text(), nullable=True),
        sa.Column('blog_url', sa.Text(), nullable=True),
        sa.Column('source_urls', sa.Text(), server_default='[]', nullable=False),
        sa.Column('crawl_mode', sa.Text(), nullable=True),
        sa.Column('crawled_pages', sa.Text(), server_default='[]', nullable=False),
        sa.Column('total_input_tokens', sa.Integer(), server_default='0', nullable=False),
        sa.Column('total_output_tokens', sa.Integer(), server_default='0', nullable=False),
        sa.Column('created_at', sa.Text(), nullable=False),
        sa.Column('updated_at', sa.Text(), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('idx_sessions_user_id', 'sessions', ['user_id'], unique=False)
    op.create_index('idx_sessions_type', 'sessions', ['type'], unique=False)
    op.create_index('idx_sessions_timestamp', 'sessions', ['timestamp'], unique=False)

    op.create_table(
        'session_statistics',
        sa.Column('session_id', sa.String(), nullable=False),
        sa.Column('total_questions', sa.Integer(), server_default='0', nullable=False),
        sa.Column('avg_accuracy', sa.Text(), server_default='', nullable=False),
        sa.Column('total_cost', sa.Text(), server_default='0', nullable=False),
        sa.ForeignKeyConstraint(['session_id'], ['sessions.id']),
        sa.PrimaryKeyConstraint('session_id'),
    )

    op.create_table(
        'qa_data',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('session_id', sa.String(), nullable=False),
        sa.Column('question', sa.Text(), nullable=False),
        sa.Column('answer', sa.Text(), server_default='', nullable=False),
        sa.Column('accuracy', sa.Text(), nullable=True),
        sa.Column('sentiment', sa.Text(), server_default='', nullable=False),
        sa.Column('input_tokens', sa.Integer(), server_default='0', nullable=False),
        sa.Column('output_tokens', sa.Integer(), server_default='0', nullable=False),
        sa.Column('total_tokens', sa.Integer(), server_default='0', nullable=False),
        sa.Column('cost', sa.Float(), server_default='0', nullable=False),
        sa.Column('question_order', sa.Integer(), server_default='0', nullable=False),
        sa.Column('embedding', sa.Text(), nullable=True),
        sa.Column('question_embedding', sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(['session_id'], ['sessions.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('idx_qa_data_session_id', 'qa_data', ['session_id'], unique=False)

    op.create_table(
        'revoked_tokens',
        sa.Column('token_hash', sa.Text(), nullable=False),
        sa.Column('expires_at', sa.Text(), nullable=False),
        sa.Column('revoked_at', sa.Text(), nullable=False),
        sa.PrimaryKeyConstraint('token_hash'),
    )
    op.create_index('idx_revoked_tokens_expires_at', 'revoked_tokens', ['expires_at'], unique=False)


def downgrade() -> None:
    op.drop_index('idx_revoked_tokens_expires_at', table_name='revoked_tokens')
    op.drop_table('revoked_tokens')
    op.drop_index('idx_qa_data_session_id', table_name='qa_data')
    op.drop_table('qa_data')
    op.drop_table('session_statistics')
    op.drop_index('idx_sessions_timestamp', table_name='sessions')
    op.drop_index('idx_sessions_type', table_name='sessions')
    op.drop_index('idx_sessions_user_id', table_name='sessions')
    op.drop_table('sessions')
    op.drop_index('idx_user_sessions_refresh_token', table_name='user_sessions')
    op.drop_index('idx_user_sessions_user_id', table_name='user_sessions')
    op.drop_table('user_sessions')
    op.drop_index('idx_users_tenant_id', table_name='users')
    op.drop_index('idx_users_email', table_name='users')
    op.drop_table('users')
