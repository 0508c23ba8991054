from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class SettingUpsert(BaseModel):
    value: str = Field(..., max_length=1000)
    description: Optional[str] = Field(None, max_length=2000)


class SettingResponse(BaseModel):
    key: str
    value: Optional[str] = None
    description: Optional[str] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
