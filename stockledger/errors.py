"""Error types shared across the service."""


class AppError(Exception):
    """Base class for the service's own errors."""

    default_message = "application error"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(self.default_message if message is None else message)


class ConnectionFailedError(AppError):
    default_message = "connection failed"


class InvalidDataError(AppError):
    default_message = "invalid data"


class DuplicateError(AppError):
    default_message = "duplicate entry"


class NotFoundError(AppError):
    default_message = "no rows in result set"