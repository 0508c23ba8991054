import uuid

from sqlalchemy import Column, ForeignKey, UniqueConstraint, Uuid
from sqlalchemy.orm import relationship

from lessonbook.db.session import Base
from lessonbook.db.types import UTCDateTime, utcnow


class ArchiveAccess(Base):
    """Grant letting one instructor read one archived student's reports and admission results."""

    __tablename__ = "archive_access"
    __table_args__ = (
        UniqueConstraint("instructor_id", "student_id", name="uq_archive_access_instructor_student"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    instructor_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    student_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(UTCDateTime, default=utcnow, nullable=False)

    instructor = relationship("User", foreign_keys=[instructor_id])
    student = relationship("User", foreign_keys=[student_id])
