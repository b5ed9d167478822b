from fastapi import status


class AppError(Exception):
    """Base class for failures that map onto an error envelope."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Unexpected error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid request"


class Unauthenticated(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "User not authenticated"


class AccessDenied(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Access denied"


class NotFound(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class UserNotFound(NotFound):
    default_message = "No user found with that email"


class Conflict(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Conflicting state"


class TeamFull(Conflict):
    default_message = "Team is full"


class AlreadyMember(Conflict):
    default_message = "User is already a member of this team"


class DuplicateInvitation(Conflict):
    default_message = "An invitation has already been sent to this user"


class SessionAlreadyActive(Conflict):
    default_message = "You already have an active work session for this todo"


class AlreadyEnded(Conflict):
    default_message = "Work session already ended"


class StoreError(AppError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Storage backend error"
