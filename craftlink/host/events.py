"""
Minecraft server events observed by the host adapter.

Events are immutable value objects; the host dispatches them to every
registered listener in the order the server produced them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import time


@dataclass(frozen=True)
class HostEvent:
    """Base class for all server events."""

    timestamp: float = field(default_factory=time.time, compare=False, kw_only=True)

    @property
    def kind(self) -> str:
        return type(self).__name__


@dataclass(frozen=True)
class ServerStarting(HostEvent):
    version: str


@dataclass(frozen=True)
class ServerStarted(HostEvent):
    startup_seconds: float | None = None


@dataclass(frozen=True)
class ServerStopping(HostEvent):
    pass


@dataclass(frozen=True)
class PlayerJoin(HostEvent):
    player: str


@dataclass(frozen=True)
class PlayerLeave(HostEvent):
    player: str


@dataclass(frozen=True)
class PlayerChat(HostEvent):
    player: str
    message: str


@dataclass(frozen=True)
class PlayerDeath(HostEvent):
    """`message` is the full vanilla death message, player name included."""

    player: str
    message: str


@dataclass(frozen=True)
class PlayerAdvancement(HostEvent):
    player: str
    advancement: str


__all__ = [
    "HostEvent",
    "ServerStarting",
    "ServerStarted",
    "ServerStopping",
    "PlayerJoin",
    "PlayerLeave",
    "PlayerChat",
    "PlayerDeath",
    "PlayerAdvancement",
]
