"""
Custom exceptions for the SRE security layer.

Every error raised by the ACL core and the secure connectors derives from
SecurityError so callers can tell malformed data, denied access and invalid
input apart.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .access.request import AccessRequest


class SecurityError(Exception):
    """Base exception for all security errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class InvalidAccessInputError(SecurityError):
    """Raised when a role, level, id or algorithm is not acceptable.

    Raised at construction time of candidates, requests and ACL entries,
    never deferred to check time.
    """

    def __init__(self, field: str, reason: str, value: Any = None):
        details: dict[str, Any] = {"field": field, "reason": reason}
        if value is not None:
            details["value"] = str(value)
        super().__init__(f"Invalid {field}: {reason}", details)
        self.field = field
        self.reason = reason
        self.value = value


class MalformedACLError(SecurityError):
    """Raised when a serialized ACL cannot be parsed."""

    def __init__(self, reason: str, serialized: str | None = None):
        details = {"reason": reason}
        if serialized is not None:
            details["serialized"] = serialized
        super().__init__(f"Malformed ACL: {reason}", details)
        self.reason = reason
        self.serialized = serialized


class AccessDeniedError(SecurityError):
    """Raised when a well-formed request evaluates to deny.

    The message names the candidate and the resource only. It never says
    whether the resource exists.
    """

    def __init__(self, request: AccessRequest):
        candidate = request.candidate
        levels = [level.value for level in request.levels]
        details = {
            "request_id": request.id,
            "candidate": str(candidate),
            "resource_id": request.resource_id,
            "levels": levels,
        }
        super().__init__(
            f"Access denied for {candidate} on {request.resource_id}",
            details,
        )
        self.request = request
        self.candidate = candidate
        self.resource_id = request.resource_id
        self.levels = levels
        self.request_id = request.id


class StorageIOError(SecurityError):
    """Raised when a connector's persistence operation fails."""

    def __init__(self, operation: str, path: str | None = None, cause: Exception | None = None):
        details = {"operation": operation}
        if path:
            details["path"] = path
        if cause:
            details["cause"] = str(cause)
        message = f"Storage I/O error during {operation}"
        if path:
            message += f": {path}"
        super().__init__(message, details)
        self.operation = operation
        self.path = path
        self.cause = cause


class ConfigurationError(SecurityError):
    """Raised when a configuration value is invalid."""

    def __init__(self, key: str, reason: str):
        super().__init__(f"Invalid configuration for {key}: {reason}", {"key": key, "reason": reason})
        self.key = key
        self.reason = reason
