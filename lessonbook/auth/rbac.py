from typing import Dict, FrozenSet, Optional
from uuid import UUID

from fastapi import Depends, HTTPException, status

from lessonbook.auth.dependencies import get_current_user
from lessonbook.auth.schemas import CurrentUser
from lessonbook.core.enums import UserRole
from lessonbook.core.exceptions import UnauthorizedError

STUDENT = UserRole.STUDENT.value
INSTRUCTOR = UserRole.INSTRUCTOR.value
ADMIN = UserRole.ADMIN.value

# operation -> roles allowed to attempt it. Ownership rules are checked by the
# service once the target row is loaded (see ensure_owner).
CAPABILITIES: Dict[str, FrozenSet[str]] = {
    "shift.create": frozenset({INSTRUCTOR, ADMIN}),
    "shift.delete": frozenset({INSTRUCTOR, ADMIN}),
    "shift.list_own": frozenset({INSTRUCTOR}),
    "shift.browse": frozenset({STUDENT, INSTRUCTOR, ADMIN}),
    "schedule.master": frozenset({INSTRUCTOR, ADMIN}),
    "booking.create": frozenset({STUDENT, INSTRUCTOR, ADMIN}),
    "booking.cancel": frozenset({STUDENT}),
    "booking.list_own": frozenset({STUDENT}),
    "booking.history": frozenset({INSTRUCTOR}),
    "request.create": frozenset({STUDENT}),
    "request.list_own": frozenset({STUDENT}),
    "request.decide": frozenset({INSTRUCTOR}),
    "request.list_pending": frozenset({INSTRUCTOR}),
    "report.submit": frozenset({INSTRUCTOR}),
    "records.read": frozenset({STUDENT, INSTRUCTOR, ADMIN}),
    "admission.read": frozenset({INSTRUCTOR, ADMIN}),
    "admission.replace": frozenset({INSTRUCTOR, ADMIN}),
    "user.list": frozenset({ADMIN}),
    "user.list_instructors": frozenset({STUDENT, INSTRUCTOR, ADMIN}),
    "user.archive": frozenset({ADMIN}),
    "archive.search": frozenset({ADMIN}),
    "archive.manage_access": frozenset({ADMIN}),
    "archive.licensed": frozenset({INSTRUCTOR}),
    "settings.read": frozenset({STUDENT, INSTRUCTOR, ADMIN}),
    "settings.update": frozenset({ADMIN}),
}


def ensure_capability(actor: CurrentUser, operation: str) -> None:
    """Raise UnauthorizedError unless the actor's role may perform the operation."""
    allowed = CAPABILITIES.get(operation)
    if allowed is None:
        raise KeyError(f"Unknown operation {operation!r}")
    if actor.role not in allowed:
        raise UnauthorizedError("You are not allowed to perform this action")


def ensure_owner(actor: CurrentUser, owner_id: Optional[UUID], message: str = "Not your resource") -> None:
    if owner_id != actor.id:
        raise UnauthorizedError(message)


def check_capability(operation: str):
    """
    Dependency factory to enforce a capability at the router level.

    Example:
        Depends(check_capability("shift.create"))
    """

    async def _checker(current_user: CurrentUser = Depends(get_current_user)) -> None:
        try:
            ensure_capability(current_user, operation)
        except UnauthorizedError as e:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=e.message)

    return _checker
