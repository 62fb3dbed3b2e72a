from datetime import datetime, timezone

from sqlalchemy import BigInteger, Boolean, Column, DateTime, Integer, String

from pacelab.core.database import Base


class HrZones(Base):
    """Current heart-rate thresholds of an athlete (one row each)."""

    __tablename__ = "hr_zones"

    athlete_id = Column(BigInteger, primary_key=True)

    lt1 = Column(Integer, nullable=False)  # aerobic threshold, bpm
    lt2 = Column(Integer, nullable=False)  # anaerobic threshold, bpm
    max_hr = Column(Integer, nullable=False)
    source = Column(String, nullable=False)  # lactate_test, estimated, manual
    confirmed = Column(Boolean, nullable=False, default=False)

    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    def __repr__(self):
        return (
            f"<HrZones(athlete_id={self.athlete_id}, lt1={self.lt1}, lt2={self.lt2}, "
            f"max_hr={self.max_hr}, confirmed={self.confirmed})>"
        )
