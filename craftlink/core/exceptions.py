"""
Infrastructure exceptions for CraftLink.

Purpose
-------
Define the structured exception hierarchy shared by every manager: Discord
connection failures, manager setup failures, and command dispatch errors.
Configuration errors live in `craftlink.core.config.errors` and derive from
the same base class.

Design Notes
------------
- All CraftLink exceptions inherit from `CraftLinkError`.
- Each exception carries:
  - `message`: human-readable description
  - `details`: additional structured context (dict)
  - `severity`: `ErrorSeverity` value for logging decisions
  - `is_retryable`: whether the operation can be retried
  - `error_code`: short, stable identifier for programmatic use
- The Supervisor decides fatal vs degraded from the exception type:
  `ConfigError` is fatal, `BotConnectionError` and `ManagerError` degrade,
  anything that is not a `CraftLinkError` is unexpected and fatal.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional


class ErrorSeverity(Enum):
    """Error severity levels for logging."""

    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class CraftLinkError(Exception):
    """
    Base exception for all CraftLink errors.

    Args:
        message: Human-readable error message
        details: Additional structured data about the error
        severity: Error severity level for logging handlers
        is_retryable: Whether the operation can be retried
        error_code: Optional code for programmatic handling

    Example:
        >>> raise CraftLinkError(
        ...     "Voice channel missing",
        ...     {"channel_id": 1234},
        ... )
    """

    DEFAULT_SEVERITY: ErrorSeverity = ErrorSeverity.ERROR
    DEFAULT_RETRYABLE: bool = False

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        severity: Optional[ErrorSeverity] = None,
        is_retryable: Optional[bool] = None,
        error_code: Optional[str] = None,
    ) -> None:
        self.message: str = message
        self.details: Dict[str, Any] = details or {}
        self.severity: ErrorSeverity = severity or self.DEFAULT_SEVERITY
        self.is_retryable: bool = (
            is_retryable if is_retryable is not None else self.DEFAULT_RETRYABLE
        )
        self.error_code: str = error_code or self.__class__.__name__
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details,
            "severity": self.severity.value,
            "is_retryable": self.is_retryable,
        }

    def __str__(self) -> str:
        details_str = f" | Details: {self.details}" if self.details else ""
        return f"[{self.error_code}] {self.message}{details_str}"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"details={self.details!r}, "
            f"severity={self.severity.value!r}, "
            f"is_retryable={self.is_retryable!r}"
            ")"
        )


class BotConnectionError(CraftLinkError):
    """
    Raised when the Discord connection cannot be established or re-established.

    Non-fatal: the plugin keeps running with bot features unavailable.

    Args:
        reason: What went wrong (missing token, login rejected, timeout...)
        original_error: The underlying exception, if any
    """

    DEFAULT_SEVERITY = ErrorSeverity.WARNING
    DEFAULT_RETRYABLE = True

    def __init__(
        self, reason: str, original_error: Optional[Exception] = None
    ) -> None:
        self.reason = reason
        self.original_error = original_error
        message = f"Discord connection failed: {reason}"
        if original_error is not None:
            message = f"{message} ({original_error})"
        super().__init__(
            message,
            details={
                "reason": reason,
                "error_type": (
                    type(original_error).__name__ if original_error else None
                ),
            },
            error_code="CONNECTION_ERROR",
        )


class ManagerError(CraftLinkError):
    """
    Raised when a manager cannot set up or tear down its subsystem.

    Args:
        manager: Name of the manager that failed
        message: Description of the failure
    """

    DEFAULT_SEVERITY = ErrorSeverity.WARNING
    DEFAULT_RETRYABLE = False

    def __init__(self, manager: str, message: str, **details: Any) -> None:
        self.manager = manager
        super().__init__(
            f"{manager}: {message}",
            details={"manager": manager, **details},
            error_code="MANAGER_ERROR",
        )


class CommandError(CraftLinkError):
    """Base error raised while dispatching a chat command."""

    DEFAULT_SEVERITY = ErrorSeverity.INFO


class CommandNotFoundError(CommandError):
    """Raised when no command matches the invoked name."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(
            f"Unknown command: {name}",
            details={"command": name},
            error_code="COMMAND_NOT_FOUND",
        )


class CommandPermissionError(CommandError):
    """Raised when the invoker lacks permission for an admin command."""

    def __init__(self, name: str, user_id: int) -> None:
        self.name = name
        self.user_id = user_id
        super().__init__(
            f"Permission denied for command: {name}",
            details={"command": name, "user_id": user_id},
            error_code="COMMAND_PERMISSION_DENIED",
        )


__all__ = [
    "ErrorSeverity",
    "CraftLinkError",
    "BotConnectionError",
    "ManagerError",
    "CommandError",
    "CommandNotFoundError",
    "CommandPermissionError",
]
