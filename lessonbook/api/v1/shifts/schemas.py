from datetime import date, datetime, time
from typing import List, Optional, Union
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from lessonbook.core.enums import Location, ShiftType
from lessonbook.core.time_provider import parse_local_date, parse_local_time


class ShiftCreate(BaseModel):
    """Shift in local wall-clock terms. end_time defaults to the type's standard length."""

    instructor_id: Optional[UUID] = Field(None, description="Required for admins; instructors create their own")
    lesson_date: Union[str, date] = Field(..., description="Local date, YYYY-MM-DD")
    start_time: Union[str, time] = Field(..., description="24-hour format, e.g. 10:00")
    end_time: Optional[Union[str, time]] = Field(None, description="24-hour format, e.g. 11:00")
    type: ShiftType = ShiftType.INDIVIDUAL
    location: Location = Location.ONLINE
    class_name: Optional[str] = Field(None, max_length=255)

    @field_validator("lesson_date", mode="before")
    @classmethod
    def parse_date(cls, v: Union[str, date]) -> date:
        return parse_local_date(v)

    @field_validator("start_time", mode="before")
    @classmethod
    def parse_start(cls, v: Union[str, time]) -> time:
        return parse_local_time(v)

    @field_validator("end_time", mode="before")
    @classmethod
    def parse_end(cls, v: Optional[Union[str, time]]) -> Optional[time]:
        if v is None or v == "":
            return None
        return parse_local_time(v)


class ShiftBookingSummary(BaseModel):
    id: UUID
    student_id: UUID
    student_name: Optional[str] = None
    status: str
    meeting_type: str
    has_report: bool = False


class ShiftResponse(BaseModel):
    id: UUID
    instructor_id: UUID
    instructor_name: Optional[str] = None
    start: datetime
    end: datetime
    type: str
    location: str
    class_name: Optional[str] = None
    is_published: bool
    created_at: datetime
    bookings: List[ShiftBookingSummary] = Field(default_factory=list)

    class Config:
        from_attributes = True


class ShiftDeleteResponse(BaseModel):
    success: bool = True
    deleted_bookings: int
