"""
Custom Exception Classes for the EcoSnap API.

This module defines the exception hierarchy used across the EcoSnap backend.
Every error the service raises on purpose derives from `EcoSnapAPIException`,
which carries a human readable message, a machine readable error code and an
optional details dictionary that is safe to return to clients.

Key Components:
- `EcoSnapAPIException`: The root of the hierarchy.
- Specific Exception Classes: `ValidationError` (malformed or missing input),
  `NotFoundError` and its per-entity subclasses (a referenced id does not
  exist), `AuthenticationError` (an identity is required or was rejected),
  `PermissionDeniedError` (the identity lacks the admin role),
  `ConflictError` / `InvalidTransitionError` (the request clashes with current
  state) and `StorageError` (an unexpected persistence failure).
- `to_http_exception`: Maps an `EcoSnapAPIException` onto FastAPI's
  `HTTPException` so the HTTP layer never has to know about individual
  exception classes.

Architectural Design:
- Hierarchy of Exceptions: Callers can catch a single subclass or the base
  class, depending on how much they care about the failure mode.
- Centralized Error Mapping: Status codes are derived from error codes in one
  place, which keeps the error-handling middleware trivial.
"""

from typing import Optional, Dict, Any
from fastapi import HTTPException


class EcoSnapAPIException(Exception):
    """Base exception class for the EcoSnap API"""

    def __init__(
        self,
        message: str,
        error_code: str = "ECOSNAP_API_ERROR",
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)

    @property
    def status_code(self) -> int:
        return status_code_for(self.error_code)


class ValidationError(EcoSnapAPIException):
    """Raised when input validation fails"""

    def __init__(self, field: str, value: Any, reason: str):
        super().__init__(
            f"Validation failed for field '{field}': {reason}",
            "VALIDATION_ERROR",
            {"field": field, "value": str(value), "reason": reason},
        )


class NotFoundError(EcoSnapAPIException):
    """Raised when a referenced entity does not exist"""

    entity = "resource"

    def __init__(self, identifier: Any, entity: Optional[str] = None):
        entity = entity or self.entity
        super().__init__(
            f"{entity.capitalize()} not found: {identifier}",
            f"{entity.upper()}_NOT_FOUND",
            {"entity": entity, "identifier": str(identifier)},
        )


class UserNotFoundError(NotFoundError):
    entity = "user"


class VideoNotFoundError(NotFoundError):
    entity = "video"


class ChallengeNotFoundError(NotFoundError):
    entity = "challenge"


class AuthenticationError(EcoSnapAPIException):
    """Raised when an action requires an authenticated identity"""

    def __init__(self, reason: str = "Authentication required"):
        super().__init__(
            f"Authentication failed: {reason}",
            "AUTHENTICATION_ERROR",
            {"reason": reason},
        )


class PermissionDeniedError(EcoSnapAPIException):
    """Raised when the caller is authenticated but not allowed to act"""

    def __init__(self, action: str):
        super().__init__(
            f"Permission denied for action '{action}'",
            "PERMISSION_DENIED",
            {"action": action},
        )


class ConflictError(EcoSnapAPIException):
    """Raised when a request conflicts with existing data"""

    def __init__(self, resource: str, reason: str):
        super().__init__(
            f"Conflict on {resource}: {reason}",
            "CONFLICT",
            {"resource": resource, "reason": reason},
        )


class InvalidTransitionError(EcoSnapAPIException):
    """Raised when a video review targets a video that is no longer pending"""

    def __init__(self, video_id: int, current: str, target: str):
        super().__init__(
            f"Video {video_id} cannot move from '{current}' to '{target}'",
            "INVALID_TRANSITION",
            {"video_id": video_id, "current": current, "target": target},
        )


class StorageError(EcoSnapAPIException):
    """Raised when storage operations fail"""

    def __init__(self, operation: str, reason: str):
        super().__init__(
            f"Storage operation '{operation}' failed: {reason}",
            "STORAGE_ERROR",
            {"operation": operation, "reason": reason},
        )


STATUS_CODE_MAP = {
    "VALIDATION_ERROR": 400,
    "AUTHENTICATION_ERROR": 401,
    "PERMISSION_DENIED": 403,
    "CONFLICT": 409,
    "INVALID_TRANSITION": 409,
    "STORAGE_ERROR": 500,
}


def status_code_for(error_code: str) -> int:
    """Resolve the HTTP status for an error code"""
    if error_code.endswith("_NOT_FOUND"):
        return 404
    return STATUS_CODE_MAP.get(error_code, 500)


def to_http_exception(exc: EcoSnapAPIException) -> HTTPException:
    """Convert EcoSnapAPIException to FastAPI HTTPException"""
    return HTTPException(
        status_code=status_code_for(exc.error_code),
        detail={
            "error_code": exc.error_code,
            "message": exc.message,
            "details": exc.details,
        },
    )
