from datetime import date, datetime, time
from typing import Optional, Union
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from lessonbook.core.time_provider import parse_local_date, parse_local_time


# ----- Create -----
class ScheduleRequestCreate(BaseModel):
    """Proposed lesson start in local wall-clock terms; the lesson lasts one hour."""

    instructor_id: UUID
    lesson_date: Union[str, date] = Field(..., description="Local date, YYYY-MM-DD")
    start_time: Union[str, time] = Field(..., description="24-hour format, e.g. 18:00")

    @field_validator("lesson_date", mode="before")
    @classmethod
    def parse_date(cls, v: Union[str, date]) -> date:
        return parse_local_date(v)

    @field_validator("start_time", mode="before")
    @classmethod
    def parse_start(cls, v: Union[str, time]) -> time:
        return parse_local_time(v)


# ----- Response -----
class ScheduleRequestResponse(BaseModel):
    id: UUID
    student_id: UUID
    student_name: Optional[str] = None
    instructor_id: UUID
    instructor_name: Optional[str] = None
    start: datetime
    end: datetime
    status: str
    shift_id: Optional[UUID] = None
    decided_at: Optional[datetime] = None
    created_at: datetime

    class Config:
        from_attributes = True


class ScheduleRequestApproval(BaseModel):
    request: ScheduleRequestResponse
    shift_id: UUID
    booking_id: UUID
