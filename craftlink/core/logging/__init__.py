"""
CraftLink Logging Infrastructure

Exports the structured logging subsystem, log context helpers,
and configuration interface.

This module provides:
- Production-grade JSON logging
- ContextVar-based contextual logging (`LogContext`)
- Setup and teardown helpers for the global logging system
"""

from craftlink.core.logging.logger import (
    LogContext,
    LoggerConfig,
    get_logger,
    setup_logging,
    shutdown_logging,
)

__all__ = [
    "setup_logging",
    "shutdown_logging",
    "get_logger",
    "LogContext",
    "LoggerConfig",
]
