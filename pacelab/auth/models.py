import time
from datetime import datetime, timezone

from sqlalchemy import BigInteger, Boolean, Column, DateTime, Integer, String

from pacelab.core.database import Base

TOKEN_EXPIRY_BUFFER_SECONDS = 300


class Athlete(Base):
    __tablename__ = "athletes"

    # Strava athlete ID
    id = Column(BigInteger, primary_key=True)

    firstname = Column(String, nullable=True)
    lastname = Column(String, nullable=True)

    access_token = Column(String, nullable=False)
    refresh_token = Column(String, nullable=False)
    token_expires_at = Column(Integer, nullable=False)

    authorized = Column(Boolean, default=True)

    created_at = Column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    updated_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    def is_token_expired(self) -> bool:
        """True once the token is within the refresh buffer of its expiry."""
        return time.time() >= self.token_expires_at - TOKEN_EXPIRY_BUFFER_SECONDS

    def __repr__(self):
        return f"<Athlete(id={self.id}, authorized={self.authorized})>"
