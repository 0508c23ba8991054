from fastapi import status


class ServiceError(Exception):
    """Base exception for service layer errors."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, status_code: int = None) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class AuthenticationError(ServiceError):
    status_code = status.HTTP_401_UNAUTHORIZED


class UnauthorizedError(ServiceError):
    """Actor lacks the role or ownership required for the operation."""

    status_code = status.HTTP_403_FORBIDDEN


class NotFoundError(ServiceError):
    status_code = status.HTTP_404_NOT_FOUND


class OverlapError(ServiceError):
    """A new shift collides with another shift of the same instructor."""

    status_code = status.HTTP_409_CONFLICT


class StudentOverlapError(ServiceError):
    """The student already holds a confirmed booking in the interval."""

    status_code = status.HTTP_409_CONFLICT


class SlotTakenError(ServiceError):
    """An INDIVIDUAL shift already has a confirmed booking."""

    status_code = status.HTTP_409_CONFLICT


class DeadlinePassedError(ServiceError):
    """Booking attempted inside the pre-lesson cutoff."""

    status_code = status.HTTP_400_BAD_REQUEST


class TooLateError(ServiceError):
    """Shift deletion attempted inside the pre-lesson cutoff."""

    status_code = status.HTTP_400_BAD_REQUEST


class TooEarlyError(ServiceError):
    """Report submitted before the lesson started."""

    status_code = status.HTTP_400_BAD_REQUEST


class DeadlineExpiredError(ServiceError):
    """Report submitted after the submission window closed."""

    status_code = status.HTTP_400_BAD_REQUEST


class ReportExistsError(ServiceError):
    status_code = status.HTTP_409_CONFLICT


class InvalidStateError(ServiceError):
    status_code = status.HTTP_409_CONFLICT


class SelfArchiveError(ServiceError):
    status_code = status.HTTP_400_BAD_REQUEST


class StorageError(ServiceError):
    """Underlying store operation failed."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
