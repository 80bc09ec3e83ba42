"""
Domain errors raised by the scheduling engine and its store adapter.

Handlers in reserve_api.main translate them into HTTP responses.
"""

from typing import List, Optional


class SchedulingError(Exception):
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"detail": self.message}


class ValidationError(SchedulingError):
    """Malformed or overlapping interval. Never reaches the store."""

    status_code = 422

    def __init__(self, message: str, conflict_ids: Optional[List[int]] = None):
        super().__init__(message)
        self.conflict_ids = conflict_ids or []

    def to_dict(self) -> dict:
        body = super().to_dict()
        if self.conflict_ids:
            body["conflict_ids"] = self.conflict_ids
        return body


class AuthorizationError(SchedulingError):
    status_code = 403


class NotFoundError(SchedulingError):
    status_code = 404


class StoreError(SchedulingError):
    """A remote store call was rejected."""

    status_code = 502

    def __init__(self, message: str, operation: str = "", compensated: bool = False):
        super().__init__(message)
        self.operation = operation
        self.compensated = compensated

    def to_dict(self) -> dict:
        body = super().to_dict()
        if self.operation:
            body["operation"] = self.operation
        body["compensated"] = self.compensated
        return body
