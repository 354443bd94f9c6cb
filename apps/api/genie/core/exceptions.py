"""Domain errors raised by services and rendered as response envelopes."""


class AppError(Exception):
    """Base class for expected, user-facing failures."""

    status_code: int = 500

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class BadRequestError(AppError):
    """Request would violate an invariant (e.g. removing the last owner)."""

    status_code = 400


class UnauthorizedError(AppError):
    """Missing or invalid credentials."""

    status_code = 401


class ForbiddenError(AppError):
    """Actor lacks the role, or the entity is in the wrong state."""

    status_code = 403


class NotFoundError(AppError):
    status_code = 404


class ConflictError(AppError):
    status_code = 409
