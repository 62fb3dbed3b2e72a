"""Activity database models."""

from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import JSONB

from pacelab.core.database import Base


class Activity(Base):
    """Strava activity stored in database.

    Provider fields are overwritten on every sync. ``detail_fetched``,
    ``run_type`` and ``run_type_detail`` are owned locally and only change
    through detail backfill and classification.
    """

    __tablename__ = "activities"

    # Primary key - Strava's activity ID
    id = Column(BigInteger, primary_key=True)
    athlete_id = Column(BigInteger, nullable=False, index=True)

    name = Column(String, nullable=False, default="")
    type = Column(String, nullable=False, index=True)  # Run, Ride, Swim, etc.
    sport_type = Column(String, nullable=True)
    workout_type = Column(Integer, nullable=True)  # 1 = race

    # Metrics
    distance = Column(Float, nullable=False)  # meters
    moving_time = Column(Integer, nullable=False)  # seconds
    elapsed_time = Column(Integer, nullable=False)  # seconds
    total_elevation_gain = Column(Float, nullable=False, default=0.0)  # meters
    average_speed = Column(Float, nullable=True)  # m/s
    max_speed = Column(Float, nullable=True)  # m/s
    average_heartrate = Column(Float, nullable=True)
    max_heartrate = Column(Float, nullable=True)
    average_cadence = Column(Float, nullable=True)
    suffer_score = Column(Float, nullable=True)

    # Dates
    start_date = Column(DateTime(timezone=True), nullable=False, index=True)  # UTC
    start_date_local = Column(DateTime(timezone=True), nullable=False, index=True)
    timezone = Column(String, nullable=True)

    # Flags
    trainer = Column(Boolean, nullable=False, default=False)  # indoor / treadmill
    manual = Column(Boolean, nullable=False, default=False)
    detail_fetched = Column(Boolean, nullable=False, default=False, index=True)

    # Classification (set by the classifier only)
    run_type = Column(String, nullable=True, index=True)
    run_type_detail = Column(String, nullable=True)

    # Full Strava API response
    raw_data = Column(JSON().with_variant(JSONB(), "postgresql"), nullable=True)

    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    def __repr__(self):
        return (
            f"<Activity(id={self.id}, name='{self.name}', type='{self.type}', "
            f"distance={self.distance}, run_type={self.run_type})>"
        )


class Lap(Base):
    """Lap of an activity, zero-based ``lap_index`` in recorded order."""

    __tablename__ = "activity_laps"
    __table_args__ = (UniqueConstraint("activity_id", "lap_index"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    activity_id = Column(
        BigInteger, ForeignKey("activities.id"), nullable=False, index=True
    )
    lap_index = Column(Integer, nullable=False)

    distance = Column(Float, nullable=False)
    elapsed_time = Column(Integer, nullable=False)
    moving_time = Column(Integer, nullable=False)
    average_speed = Column(Float, nullable=True)
    max_speed = Column(Float, nullable=True)
    average_heartrate = Column(Float, nullable=True)
    max_heartrate = Column(Float, nullable=True)
    start_index = Column(Integer, nullable=True)
    end_index = Column(Integer, nullable=True)

    def __repr__(self):
        return f"<Lap(activity_id={self.activity_id}, index={self.lap_index}, distance={self.distance})>"
