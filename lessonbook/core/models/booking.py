"""A student's claim on a shift."""

import uuid

from sqlalchemy import Column, ForeignKey, String, Uuid
from sqlalchemy.orm import relationship

from lessonbook.core.enums import BookingStatus, MeetingType
from lessonbook.db.session import Base
from lessonbook.db.types import UTCDateTime, utcnow


class Booking(Base):
    __tablename__ = "bookings"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    shift_id = Column(Uuid, ForeignKey("shifts.id", ondelete="RESTRICT"), nullable=False, index=True)
    student_id = Column(Uuid, ForeignKey("users.id", ondelete="RESTRICT"), nullable=False, index=True)
    # CONFIRMED | CANCELLED
    status = Column(String(20), nullable=False, default=BookingStatus.CONFIRMED.value)
    # ONLINE | IN_PERSON
    meeting_type = Column(String(20), nullable=False, default=MeetingType.ONLINE.value)
    # Equals shift_id only for a CONFIRMED booking on an INDIVIDUAL shift, NULL otherwise.
    # The unique constraint is what keeps an INDIVIDUAL shift single-occupancy under concurrent writes.
    exclusive_shift_id = Column(Uuid, nullable=True, unique=True)
    created_at = Column(UTCDateTime, default=utcnow, nullable=False)

    shift = relationship("Shift", back_populates="bookings")
    student = relationship("User", back_populates="student_bookings", foreign_keys=[student_id])
    report = relationship("Report", back_populates="booking", uselist=False)
