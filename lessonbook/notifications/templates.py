"""Mail bodies for scheduling events. Times are rendered in the school's timezone."""

from datetime import datetime
from typing import List, Optional

from lessonbook.core.enums import Location
from lessonbook.core.time_provider import format_local
from lessonbook.notifications.notifier import OutboundEmail

LOCATION_LABELS = {
    Location.ONLINE.value: "Online",
    Location.KICHIJOJI.value: "Kichijoji classroom",
    Location.TACHIKAWA.value: "Tachikawa classroom",
}


def _when(start: datetime, end: datetime) -> str:
    return f"{format_local(start)} - {format_local(end, '%H:%M')}"


def booking_confirmed(
    *,
    student_name: str,
    student_email: str,
    instructor_name: str,
    instructor_email: str,
    start: datetime,
    end: datetime,
    location: str,
    added_by: Optional[str] = None,
) -> List[OutboundEmail]:
    """added_by is the role that forced the booking (INSTRUCTOR/ADMIN); None for self-booking."""
    note = f"\nThis booking was added by the {added_by.lower()}." if added_by else ""
    place = LOCATION_LABELS.get(location, location)
    return [
        OutboundEmail(
            to=student_email,
            subject="[Booking confirmed] Your lesson is booked",
            body=(
                f"Dear {student_name},\n\nYour lesson has been booked.\n\n"
                f"When: {_when(start, end)}\nInstructor: {instructor_name}\nWhere: {place}\n{note}\n"
                "See you in class."
            ),
        ),
        OutboundEmail(
            to=instructor_email,
            subject="[Booking confirmed] New lesson booking",
            body=(
                f"Dear {instructor_name},\n\nA lesson has been booked.\n\n"
                f"When: {_when(start, end)}\nStudent: {student_name}\n{note}"
            ),
        ),
    ]


def booking_cancelled(
    *,
    student_name: str,
    student_email: str,
    instructor_name: str,
    instructor_email: str,
    start: datetime,
    end: datetime,
) -> List[OutboundEmail]:
    return [
        OutboundEmail(
            to=student_email,
            subject="[Booking cancelled] Your lesson was cancelled",
            body=f"Dear {student_name},\n\nYour lesson on {_when(start, end)} with {instructor_name} was cancelled.",
        ),
        OutboundEmail(
            to=instructor_email,
            subject="[Booking cancelled] A lesson was cancelled",
            body=f"Dear {instructor_name},\n\n{student_name} cancelled the lesson on {_when(start, end)}.",
        ),
    ]


def request_received(
    *, instructor_name: str, instructor_email: str, student_name: str, start: datetime
) -> List[OutboundEmail]:
    return [
        OutboundEmail(
            to=instructor_email,
            subject="New schedule request",
            body=(
                f"Dear {instructor_name},\n\n{student_name} requested a lesson at "
                f"{format_local(start, '%m/%d %H:%M')}. Approve or reject it from your dashboard."
            ),
        )
    ]


def request_approved(
    *,
    student_name: str,
    student_email: str,
    instructor_name: str,
    instructor_email: str,
    start: datetime,
) -> List[OutboundEmail]:
    when = format_local(start, "%m/%d %H:%M")
    return [
        OutboundEmail(
            to=student_email,
            subject="Your schedule request was approved",
            body=f"Your request for {when} was approved by {instructor_name}. The lesson is booked.",
        ),
        OutboundEmail(
            to=instructor_email,
            subject="[Copy] Schedule request approved",
            body=f"You approved the request from {student_name} ({when}); the booking is confirmed.",
        ),
    ]


def request_rejected(*, student_email: str) -> List[OutboundEmail]:
    return [
        OutboundEmail(
            to=student_email,
            subject="Your schedule request was not approved",
            body="The requested time could not be accepted. Please try another time.",
        )
    ]
