"""Post-lesson record ("carte"), one per booking, append-only."""

import uuid

from sqlalchemy import Column, ForeignKey, Text, Uuid
from sqlalchemy.orm import relationship

from lessonbook.db.session import Base
from lessonbook.db.types import UTCDateTime, utcnow


class Report(Base):
    __tablename__ = "reports"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    booking_id = Column(Uuid, ForeignKey("bookings.id", ondelete="RESTRICT"), nullable=False, unique=True)
    content = Column(Text, nullable=False)
    homework = Column(Text, nullable=True)
    feedback = Column(Text, nullable=True)
    log_url = Column(Text, nullable=True)
    created_at = Column(UTCDateTime, default=utcnow, nullable=False)

    booking = relationship("Booking", back_populates="report")
