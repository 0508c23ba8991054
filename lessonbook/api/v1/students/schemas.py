from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from lessonbook.api.v1.admission_results.schemas import AdmissionResultResponse
from lessonbook.api.v1.bookings.schemas import BookingDetail


class StudentSummary(BaseModel):
    id: UUID
    full_name: str
    email: str
    is_active: bool
    archived_at: Optional[datetime] = None
    archive_year: Optional[int] = None

    class Config:
        from_attributes = True


class StudentRecordsResponse(BaseModel):
    student: StudentSummary
    bookings: List[BookingDetail] = Field(default_factory=list)
    admission_results: List[AdmissionResultResponse] = Field(default_factory=list)
