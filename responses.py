"""
Uniform response envelope.

Every service call returns an ``ApiSuccess`` or raises an ``ApiError``.
Both render to the JSON shape the HTTP layer sends back unchanged.
"""

from typing import Any, Dict, Optional


class ApiSuccess:
    def __init__(self, message: str, status_code: int = 200, data: Any = None, success_code: str = "OK"):
        self.message = message
        self.status_code = status_code
        self.data = data
        self.success_code = success_code
        self.is_success = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "message": self.message,
            "statusCode": self.status_code,
            "data": self.data,
            "successCode": self.success_code,
            "isSuccess": self.is_success,
        }

    def __repr__(self) -> str:
        return f"ApiSuccess({self.success_code!r}, status_code={self.status_code})"


class ApiError(Exception):
    """A classified, operational error.

    ``details`` carries the underlying cause for server-side failures and
    is ``None`` for plain client errors.
    """

    def __init__(self, message: str, status_code: int = 500, error_code: str = "INTERNAL_SERVER_ERROR", details: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        self.details = details
        self.is_operational = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "message": self.message,
            "statusCode": self.status_code,
            "errorCode": self.error_code,
            "details": self.details,
            "isOperational": self.is_operational,
        }

    def __repr__(self) -> str:
        return f"ApiError({self.error_code!r}, status_code={self.status_code})"
