from sqlalchemy import Column, DateTime, Integer, String
from sqlalchemy.orm import declarative_mixin

from .clock import ensure_utc, utcnow


@declarative_mixin
class TrackingUpdateMixin:
    """Columns of one immutable tracking log entry.

    Rows are only ever inserted; the log is read back ordered by ``id``.
    """

    id = Column(Integer, primary_key=True, index=True)
    status = Column(String, nullable=False)
    message = Column(String, nullable=False)
    location = Column(String, nullable=True)
    timestamp = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    def to_record(self) -> dict:
        return {
            "status": self.status,
            "message": self.message,
            "location": self.location,
            "timestamp": ensure_utc(self.timestamp).isoformat(),
            "completed": True,
        }
