from enum import Enum


class UserRole(str, Enum):
    STUDENT = "STUDENT"
    INSTRUCTOR = "INSTRUCTOR"
    ADMIN = "ADMIN"


class ShiftType(str, Enum):
    INDIVIDUAL = "INDIVIDUAL"
    GROUP = "GROUP"
    BEGINNER = "BEGINNER"
    TRIAL = "TRIAL"
    SPECIAL = "SPECIAL"


class Location(str, Enum):
    ONLINE = "ONLINE"
    KICHIJOJI = "KICHIJOJI"
    TACHIKAWA = "TACHIKAWA"


class BookingStatus(str, Enum):
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"


class MeetingType(str, Enum):
    ONLINE = "ONLINE"
    IN_PERSON = "IN_PERSON"


class RequestStatus(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class AdmissionStatus(str, Enum):
    PENDING = "PENDING"
    PASSED_FIRST = "PASSED_FIRST"
    PASSED_FINAL = "PASSED_FINAL"
    REJECTED = "REJECTED"
    WITHDRAWN = "WITHDRAWN"


# Search bucket covering both pass stages
PASSED_STATUSES = (AdmissionStatus.PASSED_FIRST.value, AdmissionStatus.PASSED_FINAL.value)
