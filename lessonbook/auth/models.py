import uuid

from sqlalchemy import Boolean, Column, Integer, String, Text, Uuid
from sqlalchemy.orm import relationship

from lessonbook.db.session import Base
from lessonbook.db.types import UTCDateTime, utcnow


class User(Base):
    """Student, instructor or admin account.

    Archiving is a logical delete: archived_at/archive_year are set and
    is_active cleared. Only users with is_active and no archived_at may log
    in or be booked.
    """

    __tablename__ = "users"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    full_name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False, unique=True, index=True)
    password_hash = Column(Text, nullable=False)
    # STUDENT | INSTRUCTOR | ADMIN
    role = Column(String(20), nullable=False, index=True)
    bio = Column(Text, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    archived_at = Column(UTCDateTime, nullable=True)
    archive_year = Column(Integer, nullable=True, index=True)
    created_at = Column(UTCDateTime, default=utcnow, nullable=False)

    instructor_shifts = relationship("Shift", back_populates="instructor", foreign_keys="Shift.instructor_id")
    student_bookings = relationship("Booking", back_populates="student", foreign_keys="Booking.student_id")
    admission_results = relationship(
        "AdmissionResult",
        back_populates="student",
        cascade="all, delete-orphan",
        order_by="AdmissionResult.rank",
    )

    @property
    def is_bookable(self) -> bool:
        return bool(self.is_active) and self.archived_at is None
