"""
Typed failures raised by the services and rendered by the API layer
"""
from fastapi import status


class AppError(Exception):
    """Base class. Each subclass knows the HTTP status it maps to."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Something went wrong"

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class Unauthorized(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Unauthorized"


class NotFound(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class InviteNotFound(NotFound):
    default_message = "Invalid invite code"


class InvalidInput(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid input"


class Forbidden(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Forbidden"


# Conflicts use 400, not 409: clients only read the message.
class Conflict(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Conflict"


class AlreadyPaired(Conflict):
    default_message = "Already in a couple"


class CoupleFull(Conflict):
    default_message = "This couple is already full"


class NotPaired(Conflict):
    default_message = "You are not in a couple"


class Unavailable(AppError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_message = "Database unavailable"
