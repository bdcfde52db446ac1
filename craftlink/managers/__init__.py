"""
Long-lived managers, one per subsystem.

Each exposes `initialize()` and (except ConfigManager) `shutdown()`; the
Supervisor owns construction order and failure policy.
"""

from craftlink.managers.bot import BotManager, BridgeClient
from craftlink.managers.commands import Command, CommandInvocation, CommandManager
from craftlink.managers.config import ConfigManager
from craftlink.managers.voice_channel import VoiceChannelManager

__all__ = [
    "BotManager",
    "BridgeClient",
    "Command",
    "CommandInvocation",
    "CommandManager",
    "ConfigManager",
    "VoiceChannelManager",
]
