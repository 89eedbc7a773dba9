"""Custom exceptions for the Retainer service.

This module defines all custom exceptions used throughout the application.
Each carries an error code and the HTTP status it maps to.
"""

from typing import Any


class RetainerException(Exception):
    """Base exception class for the Retainer service."""

    def __init__(
        self,
        message: str,
        error_code: str,
        status_code: int = 500,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)


# Validation and Authentication Exceptions
class ValidationError(RetainerException):
    """Raised when input validation fails (invalid argument)."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(
            message=f"Validation error: {message}",
            error_code="VALIDATION_ERROR",
            status_code=400,
            details=details,
        )


class AuthenticationError(RetainerException):
    """Raised when authentication fails."""

    def __init__(self, message: str = "Unauthenticated", details: dict[str, Any] | None = None):
        super().__init__(
            message=message,
            error_code="AUTHENTICATION_ERROR",
            status_code=401,
            details=details,
        )


class AuthorizationError(RetainerException):
    """Raised when the caller does not own the requested resource."""

    def __init__(self, message: str = "Unauthorized", details: dict[str, Any] | None = None):
        super().__init__(
            message=message,
            error_code="AUTHORIZATION_ERROR",
            status_code=403,
            details=details,
        )


# Generic Exceptions
class NotFoundError(RetainerException):
    """Generic exception for when a resource is not found."""

    def __init__(self, message: str, error_code: str = "NOT_FOUND", details: dict[str, Any] | None = None):
        super().__init__(
            message=message,
            error_code=error_code,
            status_code=404,
            details=details,
        )


class InternalError(RetainerException):
    """Generic exception for internal failures."""

    def __init__(self, message: str, error_code: str = "INTERNAL_ERROR", details: dict[str, Any] | None = None):
        super().__init__(
            message=message,
            error_code=error_code,
            status_code=500,
            details=details,
        )


# Plugin Exceptions
class PluginReleaseNotFoundError(NotFoundError):
    """Raised when a plugin release does not exist."""

    def __init__(self, plugin_id: str, version: str | None = None, details: dict[str, Any] | None = None):
        label = f"{plugin_id}@{version}" if version else plugin_id
        super().__init__(
            message=f"Plugin '{label}' not found",
            error_code="PLUGIN_NOT_FOUND",
            details=details or {"plugin_id": plugin_id, "version": version},
        )


class PluginNotEnabledError(NotFoundError):
    """Raised when an org has no configuration for a plugin."""

    def __init__(self, org_id: str, plugin_id: str, details: dict[str, Any] | None = None):
        super().__init__(
            message=f"Plugin '{plugin_id}' is not enabled",
            error_code="PLUGIN_NOT_ENABLED",
            details=details or {"org_id": org_id, "plugin_id": plugin_id},
        )


# Retention Script Exceptions
class RetentionScriptNotFoundError(NotFoundError):
    """Raised when a retention script is not found."""

    def __init__(self, script_id: str, details: dict[str, Any] | None = None):
        super().__init__(
            message=f"Retention script '{script_id}' not found",
            error_code="RETENTION_SCRIPT_NOT_FOUND",
            details=details or {"script_id": script_id},
        )


class PresetScriptImmutableError(RetainerException):
    """Raised when a caller tries to delete or redefine a preset script."""

    def __init__(self, script_id: str, reason: str, details: dict[str, Any] | None = None):
        super().__init__(
            message=f"Preset script '{script_id}' cannot be modified: {reason}",
            error_code="PRESET_SCRIPT_IMMUTABLE",
            status_code=400,
            details=details or {"script_id": script_id, "reason": reason},
        )


# Encryption Exceptions
class EncryptionError(InternalError):
    """Raised when encryption or decryption of a stored field fails."""

    def __init__(self, reason: str, details: dict[str, Any] | None = None):
        super().__init__(
            message=f"Encryption error: {reason}",
            error_code="ENCRYPTION_ERROR",
            details=details or {"reason": reason},
        )


# Scheduling Service Exceptions
class ScriptServiceError(InternalError):
    """Raised when a call to the remote cron script service fails."""

    def __init__(
        self,
        operation: str,
        reason: str,
        status_code: int | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.operation = operation
        self.remote_status_code = status_code
        super().__init__(
            message=f"Script service {operation} failed: {reason}",
            error_code="SCRIPT_SERVICE_ERROR",
            details=details or {"operation": operation, "reason": reason, "remote_status_code": status_code},
        )


class ScriptServiceNotFoundError(ScriptServiceError):
    """Raised when the remote cron script service has no such script."""

    def __init__(self, operation: str, script_id: str):
        self.script_id = script_id
        super().__init__(operation, f"script '{script_id}' not found", status_code=404)


# Database Exceptions
class DatabaseConnectionError(RetainerException):
    """Raised when there's a database connection error (network, auth, etc.)."""

    def __init__(self, reason: str, details: dict[str, Any] | None = None):
        super().__init__(
            message=f"Database connection error: {reason}",
            error_code="DATABASE_CONNECTION_ERROR",
            status_code=503,
            details=details or {"reason": reason},
        )


class DatabaseQueryError(InternalError):
    """Raised when a database query fails."""

    def __init__(self, reason: str, details: dict[str, Any] | None = None):
        super().__init__(
            message=f"Database query error: {reason}",
            error_code="DATABASE_QUERY_ERROR",
            details=details or {"reason": reason},
        )


class DatabaseSessionError(InternalError):
    """Raised when there's an error with database session management."""

    def __init__(self, reason: str, details: dict[str, Any] | None = None):
        super().__init__(
            message=f"Database session error: {reason}",
            error_code="DATABASE_SESSION_ERROR",
            details=details or {"reason": reason},
        )
