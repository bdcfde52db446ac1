"""
CraftLink Infrastructure Constants

Purpose
-------
Provide plugin identity and infrastructure-level constants: timeouts,
intervals, and Discord platform limits that govern runtime behavior.

Design Notes
------------
- Values are annotated with typing.Final to signal immutability
- Grouped by functional area for easy scanning and maintenance
- No side effects at import time
"""

from __future__ import annotations

from typing import Final

# ============================================================================
# PLUGIN IDENTITY
# ============================================================================

PLUGIN_NAME: Final[str] = "CraftLink"
VERSION: Final[str] = "1.0.0"
AUTHOR: Final[str] = "CraftLink Contributors"

# ============================================================================
# DISCORD
# ============================================================================

# Discord allows two channel renames per ten minutes per channel
MIN_CHANNEL_RENAME_INTERVAL_SECONDS: Final[int] = 300
MIN_TOPIC_UPDATE_INTERVAL_SECONDS: Final[int] = 60

DEFAULT_CONNECT_TIMEOUT_SECONDS: Final[float] = 30.0
DEFAULT_COMMAND_PREFIX: Final[str] = "!"

CHANNEL_NAME_MAX_LENGTH: Final[int] = 100
CHANNEL_TOPIC_MAX_LENGTH: Final[int] = 1024
MESSAGE_MAX_LENGTH: Final[int] = 2000

# ============================================================================
# MINECRAFT HOST
# ============================================================================

DEFAULT_LOG_FILE: Final[str] = "logs/latest.log"
DEFAULT_POLL_INTERVAL_SECONDS: Final[float] = 1.0
DEFAULT_MAX_PLAYERS: Final[int] = 20
UNKNOWN_VERSION: Final[str] = "unknown"
