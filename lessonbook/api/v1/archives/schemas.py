from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from lessonbook.api.v1.admission_results.schemas import AdmissionResultResponse


class UserArchiveResponse(BaseModel):
    id: UUID
    full_name: str
    role: str
    is_active: bool
    archived_at: Optional[datetime] = None
    archive_year: Optional[int] = None

    class Config:
        from_attributes = True


class ArchiveAccessGrant(BaseModel):
    instructor_id: UUID
    student_id: UUID


class ArchiveAccessResponse(BaseModel):
    id: UUID
    instructor_id: UUID
    instructor_name: Optional[str] = None
    student_id: UUID
    created_at: datetime


class ArchiveAccessRevokeResponse(BaseModel):
    success: bool = True
    revoked: bool


class ArchivedUserResponse(BaseModel):
    id: UUID
    full_name: str
    email: str
    role: str
    archived_at: datetime
    archive_year: Optional[int] = None
    admission_results: List[AdmissionResultResponse] = Field(default_factory=list)
