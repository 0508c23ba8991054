"""Student-proposed lesson time awaiting the addressed instructor's decision."""

import uuid

from sqlalchemy import Column, ForeignKey, String, Uuid
from sqlalchemy.orm import relationship

from lessonbook.core.enums import RequestStatus
from lessonbook.db.session import Base
from lessonbook.db.types import UTCDateTime, utcnow


class ScheduleRequest(Base):
    __tablename__ = "schedule_requests"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    student_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    instructor_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    start = Column(UTCDateTime, nullable=False)
    end = Column(UTCDateTime, nullable=False)
    # PENDING -> APPROVED | REJECTED; both terminal
    status = Column(String(20), nullable=False, default=RequestStatus.PENDING.value)
    # Set on approval
    shift_id = Column(Uuid, ForeignKey("shifts.id", ondelete="SET NULL"), nullable=True)
    decided_at = Column(UTCDateTime, nullable=True)
    created_at = Column(UTCDateTime, default=utcnow, nullable=False)

    student = relationship("User", foreign_keys=[student_id])
    instructor = relationship("User", foreign_keys=[instructor_id])
