from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from lessonbook.core.enums import AdmissionStatus


class AdmissionResultItem(BaseModel):
    school_name: str = Field(..., min_length=1, max_length=255)
    department: Optional[str] = Field(None, max_length=255)
    rank: int = Field(..., ge=1, description="Preference order, 1 = first choice")
    status: AdmissionStatus = AdmissionStatus.PENDING


class AdmissionResultsReplace(BaseModel):
    """The complete new list; an empty list clears the student's results."""

    results: List[AdmissionResultItem] = Field(default_factory=list)


class AdmissionResultResponse(BaseModel):
    id: UUID
    student_id: UUID
    school_name: str
    department: Optional[str] = None
    rank: int
    status: str
    created_at: datetime

    class Config:
        from_attributes = True
