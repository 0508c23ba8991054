import uuid

from sqlalchemy import Column, ForeignKey, Integer, String, Uuid
from sqlalchemy.orm import relationship

from lessonbook.core.enums import AdmissionStatus
from lessonbook.db.session import Base
from lessonbook.db.types import UTCDateTime, utcnow


class AdmissionResult(Base):
    """Target school and outcome for a student. The list is replaced wholesale on edit."""

    __tablename__ = "admission_results"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    student_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    school_name = Column(String(255), nullable=False)
    department = Column(String(255), nullable=True)
    rank = Column(Integer, nullable=False)  # preference order, 1 = first choice; not unique
    status = Column(String(20), nullable=False, default=AdmissionStatus.PENDING.value)
    created_at = Column(UTCDateTime, default=utcnow, nullable=False)

    student = relationship("User", back_populates="admission_results")
