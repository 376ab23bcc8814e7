"""initial runly schema

Revision ID: 0001
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '0001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('username', sa.String(length=100), nullable=False),
        sa.Column('password_hash', sa.Text(), nullable=False),
        sa.Column('avatar_url', sa.Text(), nullable=True),
        sa.Column('age', sa.Integer(), nullable=False),
        sa.Column('gender', sa.String(length=20), nullable=False),
        sa.Column('fitness_level', sa.String(length=20), nullable=False),
        sa.Column('pace_min_per_km', sa.Float(), nullable=False),
        sa.Column('role', sa.String(length=20), nullable=False, server_default='runner'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint('email', name='uq_users_email'),
        sa.UniqueConstraint('username', name='uq_users_username'),
        sa.CheckConstraint('age BETWEEN 10 AND 120', name='ck_users_age_range'),
        sa.CheckConstraint('pace_min_per_km > 0', name='ck_users_pace_positive'),
        sa.CheckConstraint("role IN ('admin', 'coach', 'runner')", name='ck_users_role_enum'),
        sa.CheckConstraint("gender IN ('muski', 'zenski', 'drugo')", name='ck_users_gender_enum'),
        sa.CheckConstraint(
            "fitness_level IN ('pocetni', 'srednji', 'napredni')",
            name='ck_users_fitness_level_enum',
        ),
    )

    op.create_table(
        'sessions',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('token', sa.String(length=64), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
        sa.UniqueConstraint('token', name='uq_sessions_token'),
    )
    op.create_index('ix_sessions_user_id', 'sessions', ['user_id'])
    op.create_index('ix_sessions_expires_at', 'sessions', ['expires_at'])

    op.create_table(
        'locations',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('city', sa.String(length=100), nullable=False),
        sa.Column('municipality', sa.String(length=100), nullable=False),
        sa.Column('lat', sa.Float(), nullable=True),
        sa.Column('lng', sa.Float(), nullable=True),
        sa.UniqueConstraint('city', 'municipality', name='uq_locations_city_municipality'),
    )

    op.create_table(
        'runs',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('title', sa.String(length=120), nullable=False),
        sa.Column('route', sa.Text(), nullable=False),
        sa.Column('starts_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('distance_km', sa.Float(), nullable=False),
        sa.Column('pace_min_per_km', sa.Float(), nullable=False),
        sa.Column('location_id', sa.Integer(), nullable=False),
        sa.Column('host_user_id', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(['location_id'], ['locations.id'], ),
        sa.ForeignKeyConstraint(['host_user_id'], ['users.id'], ),
        sa.CheckConstraint('distance_km > 0', name='ck_runs_distance_positive'),
        sa.CheckConstraint('pace_min_per_km > 0', name='ck_runs_pace_positive'),
    )
    op.create_index('ix_runs_starts_at', 'runs', ['starts_at'])
    op.create_index('ix_runs_host_user_id', 'runs', ['host_user_id'])

    op.create_table(
        'run_users',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('run_id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(['run_id'], ['runs.id'], ),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
        sa.UniqueConstraint('run_id', 'user_id', name='uq_run_users_run_user'),
    )
    op.create_index('ix_run_users_user_id', 'run_users', ['user_id'])

    op.create_table(
        'messages',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('sent_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('run_id', sa.Integer(), nullable=False),
        sa.Column('from_user_id', sa.Integer(), nullable=False),
        sa.Column('to_user_id', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['run_id'], ['runs.id'], ),
        sa.ForeignKeyConstraint(['from_user_id'], ['users.id'], ),
        sa.ForeignKeyConstraint(['to_user_id'], ['users.id'], ),
    )
    op.create_index('ix_messages_run_id_sent_at', 'messages', ['run_id', 'sent_at'])

    op.create_table(
        'ratings',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('run_id', sa.Integer(), nullable=False),
        sa.Column('from_user_id', sa.Integer(), nullable=False),
        sa.Column('to_user_id', sa.Integer(), nullable=False),
        sa.Column('score', sa.Integer(), nullable=False),
        sa.Column('comment', sa.Text(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(['run_id'], ['runs.id'], ),
        sa.ForeignKeyConstraint(['from_user_id'], ['users.id'], ),
        sa.ForeignKeyConstraint(['to_user_id'], ['users.id'], ),
        sa.UniqueConstraint('run_id', 'from_user_id', name='uq_ratings_run_from_user'),
        sa.CheckConstraint('score BETWEEN 1 AND 5', name='ck_ratings_score_range'),
    )
    op.create_index('ix_ratings_to_user_id', 'ratings', ['to_user_id'])


def downgrade() -> None:
    op.drop_index('ix_ratings_to_user_id', table_name='ratings')
    op.drop_table('ratings')
    op.drop_index('ix_messages_run_id_sent_at', table_name='messages')
    op.drop_table('messages')
    op.drop_index('ix_run_users_user_id', table_name='run_users')
    op.drop_table('run_users')
    op.drop_index('ix_runs_host_user_id', table_name='runs')
    op.drop_index('ix_runs_starts_at', table_name='runs')
    op.drop_table('runs')
    op.drop_table('locations')
    op.drop_index('ix_sessions_expires_at', table_name='sessions')
    op.drop_index('ix_sessions_user_id', table_name='sessions')
    op.drop_table('sessions')
    op.drop_table('users')
