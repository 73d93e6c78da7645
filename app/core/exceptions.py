"""
Domain exceptions raised by services and rendered by a single handler in app.main.
"""
from typing import Any, Optional


class AppException(Exception):
    """Base class for every expected, user-facing failure."""
    status_code = 500

    def __init__(self, detail: Any = "Internal server error", status_code: Optional[int] = None):
        super().__init__(detail)
        self.detail = detail
        if status_code is not None:
            self.status_code = status_code


class ValidationException(AppException):
    status_code = 400


class NotFoundException(AppException):
    status_code = 404


class ConflictException(AppException):
    status_code = 409


class ProviderNotConfiguredException(AppException):
    status_code = 501


class UpstreamServiceException(AppException):
    status_code = 502


class UpstreamTimeoutException(AppException):
    status_code = 504
