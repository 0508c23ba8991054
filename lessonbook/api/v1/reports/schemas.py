from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field


class ReportCreate(BaseModel):
    content: str = Field(..., min_length=1)
    homework: Optional[str] = None
    feedback: Optional[str] = None
    log_url: Optional[str] = Field(None, max_length=2000)


class ReportResponse(BaseModel):
    id: UUID
    booking_id: UUID
    content: str
    homework: Optional[str] = None
    feedback: Optional[str] = None
    log_url: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class ReportDeadlineResponse(BaseModel):
    booking_id: UUID
    opens_at: datetime
    closes_at: datetime
    extension_hours: int
    is_open: bool
    has_report: bool
