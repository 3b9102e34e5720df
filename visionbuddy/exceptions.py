"""
Vision Buddy Custom Exceptions

Domain-specific exception hierarchy for the Vision Buddy navigation
assistant. Most failures in the interaction core degrade to a fallback
instead of propagating; these types exist for the places where a caller
has to tell failures apart (a lost pin versus a degraded read).

Exception Hierarchy:
    VisionBuddyError (base)
    ├── ConfigurationError
    ├── ServiceConnectionError
    ├── RegistryError
    │   ├── RegistryConnectionError
    │   ├── RegistryQueryError
    │   └── RegistrySaveError
    ├── FrameCaptureError
    └── SpeechError
"""

from typing import Any, Optional


class VisionBuddyError(Exception):
    """Base exception for all Vision Buddy errors.

    Attributes:
        message: Human-readable error description
        details: Optional dict with additional error context
    """

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        if self.details:
            detail_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({detail_str})"
        return self.message


# =============================================================================
# Configuration Errors
# =============================================================================

class ConfigurationError(VisionBuddyError):
    """Error in configuration file or settings.

    Raised when configuration validation fails, the file is missing, or the
    YAML cannot be parsed.
    """

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        config_file: Optional[str] = None,
    ) -> None:
        details = {}
        if config_key:
            details["config_key"] = config_key
        if config_file:
            details["config_file"] = config_file
        super().__init__(message, details)
        self.config_key = config_key
        self.config_file = config_file


# =============================================================================
# Connection Errors
# =============================================================================

class ServiceConnectionError(VisionBuddyError):
    """Failed to reach a remote service (vision, voice, registry)."""

    def __init__(
        self,
        message: str,
        service_name: Optional[str] = None,
        url: Optional[str] = None,
        status: Optional[int] = None,
    ) -> None:
        details: dict[str, Any] = {}
        if service_name:
            details["service"] = service_name
        if url:
            details["url"] = url
        if status is not None:
            details["status"] = status
        super().__init__(message, details)
        self.service_name = service_name
        self.url = url
        self.status = status


# =============================================================================
# Registry Errors
# =============================================================================

class RegistryError(VisionBuddyError):
    """Base class for spatial registry errors."""
    pass


class RegistryConnectionError(RegistryError):
    """Registry credentials are missing or the registry is unreachable."""
    pass


class RegistryQueryError(RegistryError):
    """A registry read (search or golden path fetch) failed."""

    def __init__(
        self,
        message: str,
        statement: Optional[str] = None,
        status: Optional[int] = None,
        hint: Optional[str] = None,
        detail: Optional[str] = None,
    ) -> None:
        details: dict[str, Any] = {}
        if statement:
            details["statement"] = statement
        if status is not None:
            details["status"] = status
        super().__init__(message, details)
        self.statement = statement
        self.status = status
        self.hint = hint
        self.detail = detail


class RegistrySaveError(RegistryError):
    """Writing a new node to the registry failed.

    Distinguished from read failures because it means a user's pin was
    lost. The message carries any hint that explains how to fix the
    registry configuration or credentials.
    """

    def __init__(
        self,
        message: str,
        hint: Optional[str] = None,
        detail: Optional[str] = None,
        status: Optional[int] = None,
    ) -> None:
        full_message = message
        if hint:
            full_message += f"\nHint: {hint}"
        if detail:
            full_message += f"\nDetail: {detail}"
        details: dict[str, Any] = {}
        if status is not None:
            details["status"] = status
        super().__init__(full_message, details)
        self.hint = hint
        self.detail = detail
        self.status = status


# =============================================================================
# Capture and Speech Errors
# =============================================================================

class FrameCaptureError(VisionBuddyError):
    """The camera frame could not be captured."""
    pass


class SpeechError(VisionBuddyError):
    """Speech capture or output could not be started."""

    def __init__(self, message: str, backend: Optional[str] = None) -> None:
        details = {"backend": backend} if backend else {}
        super().__init__(message, details)
        self.backend = backend


# Allow importing without prefix for common cases
Error = VisionBuddyError
