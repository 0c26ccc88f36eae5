"""
Error taxonomy shared by the analytics core and the HTTP layer.

    AnalyticsError
    ├── InvalidInput        400  malformed id, unknown event type, bad rating
    ├── NotFound            404  movie does not exist
    ├── Unauthorized        401  rating without a resolved user
    ├── StorageUnavailable  503  database locked / unreachable
    └── InternalError       500  any other storage failure

Client faults are raised before any write happens.
"""
from __future__ import annotations

from typing import Any, Dict, Optional


class AnalyticsError(Exception):
    default_code = "analytics_error"
    status_code = 500

    def __init__(self, message: str, *, code: Optional[str] = None, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        if cause is not None:
            self.__cause__ = cause

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.message, "code": self.code}

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={self.code!r}, message={self.message!r})"


class InvalidInput(AnalyticsError):
    default_code = "invalid_input"
    status_code = 400


class NotFound(AnalyticsError):
    default_code = "not_found"
    status_code = 404


class Unauthorized(AnalyticsError):
    default_code = "unauthorized"
    status_code = 401


class StorageUnavailable(AnalyticsError):
    default_code = "db_unavailable"
    status_code = 503


class InternalError(AnalyticsError):
    default_code = "internal_error"
    status_code = 500
