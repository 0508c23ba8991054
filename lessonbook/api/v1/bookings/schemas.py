from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from lessonbook.core.enums import MeetingType


class BookingCreate(BaseModel):
    shift_id: UUID
    student_id: Optional[UUID] = Field(None, description="Target student for forced bookings; students book for themselves")
    meeting_type: MeetingType = MeetingType.ONLINE


class BookingResponse(BaseModel):
    id: UUID
    shift_id: UUID
    student_id: UUID
    status: str
    meeting_type: str
    created_at: datetime

    class Config:
        from_attributes = True


class BookingReportSummary(BaseModel):
    id: UUID
    content: str
    homework: Optional[str] = None
    feedback: Optional[str] = None
    log_url: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class BookingDetail(BaseModel):
    """Booking joined with its shift, both parties and the report when filed."""

    id: UUID
    status: str
    meeting_type: str
    created_at: datetime
    shift_id: UUID
    start: datetime
    end: datetime
    type: str
    location: str
    class_name: Optional[str] = None
    instructor_id: UUID
    instructor_name: Optional[str] = None
    student_id: UUID
    student_name: Optional[str] = None
    report: Optional[BookingReportSummary] = None


class BookingCancelResponse(BaseModel):
    success: bool = True
    booking_id: UUID
