"""
Configuration error hierarchy for CraftLink.

Purpose
-------
Provides domain-specific exceptions for configuration loading and reloading
with clear error classification.

Architecture Notes
------------------
All exceptions inherit from ConfigError, which itself derives from
CraftLinkError so the Supervisor can log them with `to_dict()`.
A ConfigError raised during startup is the one fatal initialization failure.

Exception Hierarchy
-------------------
ConfigError (base)
├── ConfigLoadError (file unreadable or not valid YAML)
└── ConfigValidationError (schema/type/bounds failures)
"""

from __future__ import annotations

from typing import Any, Optional

from craftlink.core.exceptions import CraftLinkError, ErrorSeverity


class ConfigError(CraftLinkError):
    """
    Base exception for all configuration-related errors.

    Example
    -------
    >>> try:
    ...     await config_manager.reload()
    ... except ConfigError as e:
    ...     logger.error(f"Config reload failed: {e}")
    """

    DEFAULT_SEVERITY = ErrorSeverity.CRITICAL


class ConfigLoadError(ConfigError):
    """
    Raised when the configuration file cannot be read or parsed.

    This exception is raised when:
    - The YAML file exists but cannot be opened
    - The YAML is malformed
    - The YAML root is not a mapping
    """

    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        super().__init__(
            f"Cannot load configuration from {path}: {reason}",
            details={"path": path, "reason": reason},
            error_code="CONFIG_LOAD_ERROR",
        )


class ConfigValidationError(ConfigError):
    """
    Raised when a configuration value fails validation.

    This exception is raised when:
    - A value has the wrong type
    - A value is outside its allowed bounds or choices
    - Required fields are missing
    """

    def __init__(self, key: str, reason: str, value: Optional[Any] = None) -> None:
        self.key = key
        self.value = value
        super().__init__(
            f"Invalid configuration for {key}: {reason}",
            details={"key": key, "reason": reason, "value": repr(value)},
            error_code="CONFIG_VALIDATION_ERROR",
        )


__all__ = [
    "ConfigError",
    "ConfigLoadError",
    "ConfigValidationError",
]
