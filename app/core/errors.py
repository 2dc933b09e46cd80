"""
Domain error taxonomy.

Every failure that leaves an action surfaces as one of these classes. Each
carries a stable machine-readable ``code`` and the HTTP status used by the
error envelope.
"""
from typing import Any, Dict, Optional


class DomainError(Exception):
    """Base class for errors that map onto the response envelope."""

    code = "INTERNAL_ERROR"
    status_code = 500

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        status_code: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        if status_code is not None:
            self.status_code = status_code
        self.details = details


class UnauthorizedError(DomainError):
    """Caller identity missing or invalid."""

    code = "UNAUTHORIZED"
    status_code = 401


class ForbiddenError(DomainError):
    """Authenticated but not allowed."""

    code = "FORBIDDEN"
    status_code = 403


class MissingContextError(DomainError):
    """Required tenancy information absent from the action context."""

    code = "MISSING_CONTEXT"
    status_code = 400


class NotFoundError(DomainError):
    code = "NOT_FOUND"
    status_code = 404

    def __init__(self, entity: str, entity_id: Optional[str] = None):
        super().__init__(f"{entity.capitalize()} not found")
        self.entity = entity
        self.entity_id = entity_id


class ConflictError(DomainError):
    code = "CONFLICT"
    status_code = 409


class GoneError(DomainError):
    code = "GONE"
    status_code = 410


class PayloadValidationError(DomainError):
    code = "VALIDATION_ERROR"
    status_code = 400


class BadGatewayError(DomainError):
    """Authorization service unreachable or returned an error."""

    code = "BAD_GATEWAY"
    status_code = 502


class GatewayTimeoutError(DomainError):
    """Authorization call exceeded its timeout budget."""

    code = "GATEWAY_TIMEOUT"
    status_code = 504


class InternalError(DomainError):
    code = "INTERNAL_ERROR"
    status_code = 500


class UnknownActionError(DomainError):
    code = "UNKNOWN_ACTION"
    status_code = 400

    def __init__(self, action_key: str):
        super().__init__(f"Unknown action: {action_key}")
        self.action_key = action_key


class ConfigError(DomainError):
    code = "CONFIG_ERROR"
    status_code = 500


# Errors that signal the authorization service is temporarily unavailable.
TRANSIENT_GATEWAY_ERRORS = (GatewayTimeoutError, BadGatewayError)
