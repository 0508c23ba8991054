from lessonbook.core.models.shift import Shift
from lessonbook.core.models.booking import Booking
from lessonbook.core.models.schedule_request import ScheduleRequest
from lessonbook.core.models.report import Report
from lessonbook.core.models.admission_result import AdmissionResult
from lessonbook.core.models.archive_access import ArchiveAccess
from lessonbook.core.models.global_setting import GlobalSetting

__all__ = [
    "AdmissionResult",
    "ArchiveAccess",
    "Booking",
    "GlobalSetting",
    "Report",
    "ScheduleRequest",
    "Shift",
]
