"""Best effort database models."""

from datetime import datetime, timezone

from sqlalchemy import (
    BigInteger,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
)

from pacelab.core.database import Base

SOURCE_STRAVA = "strava"
SOURCE_COMPUTED = "computed"


class BestEffort(Base):
    """Fastest known time for one (activity, distance, source).

    ``source`` is ``"strava"`` for provider-native efforts and
    ``"computed"`` for efforts found by segment search on the raw stream.
    """

    __tablename__ = "best_efforts"
    __table_args__ = (UniqueConstraint("activity_id", "distance_name", "source"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    activity_id = Column(
        BigInteger, ForeignKey("activities.id"), nullable=False, index=True
    )
    distance_name = Column(String, nullable=False, index=True)  # 1K, 5K, HALF, ...
    source = Column(String, nullable=False)

    distance_meters = Column(Float, nullable=False)
    elapsed_time = Column(Integer, nullable=False)  # seconds
    moving_time = Column(Integer, nullable=True)
    pace_per_km = Column(Float, nullable=False)  # seconds
    start_index = Column(Integer, nullable=True)
    end_index = Column(Integer, nullable=True)

    # Strava-native only
    strava_effort_id = Column(BigInteger, nullable=True)
    pr_rank = Column(Integer, nullable=True)

    recorded_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    def __repr__(self):
        return (
            f"<BestEffort(activity_id={self.activity_id}, {self.distance_name}, "
            f"{self.elapsed_time}s, source={self.source})>"
        )
