from sqlalchemy import Column, String, Text

from lessonbook.db.session import Base
from lessonbook.db.types import UTCDateTime, utcnow


REPORT_DEADLINE_EXTENSION_KEY = "REPORT_DEADLINE_EXTENSION_HOURS"


class GlobalSetting(Base):
    __tablename__ = "global_settings"

    key = Column(String(100), primary_key=True)
    value = Column(Text, nullable=False)
    description = Column(Text, nullable=True)
    updated_at = Column(UTCDateTime, default=utcnow, onupdate=utcnow, nullable=False)
