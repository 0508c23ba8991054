from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel


class InstructorStats(BaseModel):
    """Completed = CONFIRMED booking that is reported or has already started."""

    month_published: int = 0
    month_completed: int = 0
    year_completed: int = 0
    total_completed: int = 0


class UserListItem(BaseModel):
    id: UUID
    full_name: str
    email: str
    role: str
    bio: Optional[str] = None
    is_active: bool
    created_at: datetime
    stats: Optional[InstructorStats] = None


class InstructorSummary(BaseModel):
    id: UUID
    full_name: str
    bio: Optional[str] = None

    class Config:
        from_attributes = True
