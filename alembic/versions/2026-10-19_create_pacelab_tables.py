"""Create athletes, activities, laps, best efforts and hr zones tables

Revision ID: 7f3a9c21d4e8
Revises: 
Create Date: 2026-10-19 09:12:41.518203

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '7f3a9c21d4e8'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        'athletes',
        sa.Column('id', sa.BigInteger(), nullable=False),
        sa.Column('firstname', sa.String(), nullable=True),
        sa.Column('lastname', sa.String(), nullable=True),
        sa.Column('access_token', sa.String(), nullable=False),
        sa.Column('refresh_token', sa.String(), nullable=False),
        sa.Column('token_expires_at', sa.Integer(), nullable=False),
        sa.Column('authorized', sa.Boolean(), nullable=True, default=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )

    op.create_table(
        'activities',
        sa.Column('id', sa.BigInteger(), nullable=False),
        sa.Column('athlete_id', sa.BigInteger(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('type', sa.String(), nullable=False),
        sa.Column('sport_type', sa.String(), nullable=True),
        sa.Column('workout_type', sa.Integer(), nullable=True),
        sa.Column('distance', sa.Float(), nullable=False),
        sa.Column('moving_time', sa.Integer(), nullable=False),
        sa.Column('elapsed_time', sa.Integer(), nullable=False),
        sa.Column('total_elevation_gain', sa.Float(), nullable=False),
        sa.Column('average_speed', sa.Float(), nullable=True),
        sa.Column('max_speed', sa.Float(), nullable=True),
        sa.Column('average_heartrate', sa.Float(), nullable=True),
        sa.Column('max_heartrate', sa.Float(), nullable=True),
        sa.Column('average_cadence', sa.Float(), nullable=True),
        sa.Column('suffer_score', sa.Float(), nullable=True),
        sa.Column('start_date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('start_date_local', sa.DateTime(timezone=True), nullable=False),
        sa.Column('timezone', sa.String(), nullable=True),
        sa.Column('trainer', sa.Boolean(), nullable=False),
        sa.Column('manual', sa.Boolean(), nullable=False),
        sa.Column('detail_fetched', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('run_type', sa.String(), nullable=True),
        sa.Column('run_type_detail', sa.String(), nullable=True),
        sa.Column('raw_data', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_activities_athlete_id'), 'activities', ['athlete_id'], unique=False)
    op.create_index(op.f('ix_activities_type'), 'activities', ['type'], unique=False)
    op.create_index(op.f('ix_activities_start_date'), 'activities', ['start_date'], unique=False)
    op.create_index(op.f('ix_activities_start_date_local'), 'activities', ['start_date_local'], unique=False)
    op.create_index(op.f('ix_activities_detail_fetched'), 'activities', ['detail_fetched'], unique=False)
    op.create_index(op.f('ix_activities_run_type'), 'activities', ['run_type'], unique=False)

    op.create_table(
        'activity_laps',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('activity_id', sa.BigInteger(), nullable=False),
        sa.Column('lap_index', sa.Integer(), nullable=False),
        sa.Column('distance', sa.Float(), nullable=False),
        sa.Column('elapsed_time', sa.Integer(), nullable=False),
        sa.Column('moving_time', sa.Integer(), nullable=False),
        sa.Column('average_speed', sa.Float(), nullable=True),
        sa.Column('max_speed', sa.Float(), nullable=True),
        sa.Column('average_heartrate', sa.Float(), nullable=True),
        sa.Column('max_heartrate', sa.Float(), nullable=True),
        sa.Column('start_index', sa.Integer(), nullable=True),
        sa.Column('end_index', sa.Integer(), nullable=True),
        sa.ForeignKeyConstraint(['activity_id'], ['activities.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('activity_id', 'lap_index')
    )
    op.create_index(op.f('ix_activity_laps_activity_id'), 'activity_laps', ['activity_id'], unique=False)

    op.create_table(
        'best_efforts',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('activity_id', sa.BigInteger(), nullable=False),
        sa.Column('distance_name', sa.String(), nullable=False),
        sa.Column('source', sa.String(), nullable=False),
        sa.Column('distance_meters', sa.Float(), nullable=False),
        sa.Column('elapsed_time', sa.Integer(), nullable=False),
        sa.Column('moving_time', sa.Integer(), nullable=True),
        sa.Column('pace_per_km', sa.Float(), nullable=False),
        sa.Column('start_index', sa.Integer(), nullable=True),
        sa.Column('end_index', sa.Integer(), nullable=True),
        sa.Column('strava_effort_id', sa.BigInteger(), nullable=True),
        sa.Column('pr_rank', sa.Integer(), nullable=True),
        sa.Column('recorded_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['activity_id'], ['activities.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('activity_id', 'distance_name', 'source')
    )
    op.create_index(op.f('ix_best_efforts_activity_id'), 'best_efforts', ['activity_id'], unique=False)
    op.create_index(op.f('ix_best_efforts_distance_name'), 'best_efforts', ['distance_name'], unique=False)

    op.create_table(
        'hr_zones',
        sa.Column('athlete_id', sa.BigInteger(), nullable=False),
        sa.Column('lt1', sa.Integer(), nullable=False),
        sa.Column('lt2', sa.Integer(), nullable=False),
        sa.Column('max_hr', sa.Integer(), nullable=False),
        sa.Column('source', sa.String(), nullable=False),
        sa.Column('confirmed', sa.Boolean(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('athlete_id')
    )


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_table('hr_zones')
    op.drop_index(op.f('ix_best_efforts_distance_name'), table_name='best_efforts')
    op.drop_index(op.f('ix_best_efforts_activity_id'), table_name='best_efforts')
    op.drop_table('best_efforts')
    op.drop_index(op.f('ix_activity_laps_activity_id'), table_name='activity_laps')
    op.drop_table('activity_laps')
    op.drop_index(op.f('ix_activities_run_type'), table_name='activities')
    op.drop_index(op.f('ix_activities_detail_fetched'), table_name='activities')
    op.drop_index(op.f('ix_activities_start_date_local'), table_name='activities')
    op.drop_index(op.f('ix_activities_start_date'), table_name='activities')
    op.drop_index(op.f('ix_activities_type'), table_name='activities')
    op.drop_index(op.f('ix_activities_athlete_id'), table_name='activities')
    op.drop_table('activities')
    op.drop_table('athletes')
