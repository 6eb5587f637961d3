# storefront/client/errors.py
from typing import Optional


class ApiError(Exception):
    """A failed storefront call; ``status`` is None when no response arrived."""

    def __init__(self, message: str, status: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        self.status = status

    @property
    def transient(self) -> bool:
        return self.status is None or self.status >= 500


class NetworkError(ApiError):
    pass


class AuthenticationRequired(ApiError):
    def __init__(self, message: str = "Please log in to continue", status: Optional[int] = 401) -> None:
        super().__init__(message, status)


class Forbidden(ApiError):
    pass


class NotFound(ApiError):
    pass


class Conflict(ApiError):
    pass


class ValidationFailed(ApiError):
    """Rejected locally before any request was sent."""

    @property
    def transient(self) -> bool:
        return False


_BY_STATUS = {
    400: ValidationFailed,
    401: AuthenticationRequired,
    403: Forbidden,
    404: NotFound,
    409: Conflict,
}


def error_for_status(status: int, message: str) -> ApiError:
    return _BY_STATUS.get(status, ApiError)(message, status)
