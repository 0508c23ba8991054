"""Instructor-owned bookable time interval."""

import uuid

from sqlalchemy import Boolean, Column, ForeignKey, Index, String, Uuid
from sqlalchemy.orm import relationship

from lessonbook.core.enums import Location
from lessonbook.db.session import Base
from lessonbook.db.types import UTCDateTime, utcnow


class Shift(Base):
    __tablename__ = "shifts"
    __table_args__ = (Index("ix_shifts_instructor_interval", "instructor_id", "start", "end"),)

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    instructor_id = Column(Uuid, ForeignKey("users.id", ondelete="RESTRICT"), nullable=False)
    start = Column(UTCDateTime, nullable=False, index=True)
    end = Column(UTCDateTime, nullable=False)
    # INDIVIDUAL | GROUP | BEGINNER | TRIAL | SPECIAL
    type = Column(String(20), nullable=False)
    location = Column(String(20), nullable=False, default=Location.ONLINE.value)
    class_name = Column(String(255), nullable=True)
    is_published = Column(Boolean, nullable=False, default=True)
    created_at = Column(UTCDateTime, default=utcnow, nullable=False)

    instructor = relationship("User", back_populates="instructor_shifts", foreign_keys=[instructor_id])
    bookings = relationship("Booking", back_populates="shift")
