"""
Host runtime contract.

The Supervisor never talks to a Minecraft server directly. It consumes the
services below, which a concrete adapter (`LogTailHost`, or a test double)
provides: disable-self, listener registration, a console sink, the process
start timestamp, the server version, and live server status.

Status is only meaningful once the adapter has called `mark_ready()`;
consumers that publish it wait on `wait_ready()` first.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from typing import List, Protocol, runtime_checkable

from craftlink.core.logging.logger import get_logger
from craftlink.host.events import HostEvent

logger = get_logger(__name__)


@runtime_checkable
class HostListener(Protocol):
    async def on_event(self, event: HostEvent) -> None: ...


class ServerHost(ABC):
    """
    Base class for host adapters.

    Listener bookkeeping, event fan-out and the disable signal are shared;
    subclasses supply status and the console sink.
    """

    def __init__(self) -> None:
        self._listeners: List[HostListener] = []
        self._disabled = asyncio.Event()
        self._ready = asyncio.Event()
        self.disable_requests = 0
        self.events_dispatched = 0
        self.listener_errors = 0

    # --------------------------------------------------------------- #
    # Status
    # --------------------------------------------------------------- #
    @property
    @abstractmethod
    def version(self) -> str:
        """Server version string, or "unknown" before it is detected."""

    @property
    @abstractmethod
    def start_time_ms(self) -> int:
        """Process start timestamp in epoch milliseconds."""

    @property
    @abstractmethod
    def is_running(self) -> bool: ...

    @property
    @abstractmethod
    def online_players(self) -> List[str]: ...

    @property
    @abstractmethod
    def max_players(self) -> int: ...

    @property
    @abstractmethod
    def motd(self) -> str: ...

    @abstractmethod
    def send_console(self, line: str) -> None:
        """Write one line to the server operator's console."""

    # --------------------------------------------------------------- #
    # Listeners
    # --------------------------------------------------------------- #
    def register_listener(self, listener: HostListener) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)
            logger.debug(
                "Listener registered",
                extra={"listener": type(listener).__name__},
            )

    def unregister_listener(self, listener: HostListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)
            logger.debug(
                "Listener unregistered",
                extra={"listener": type(listener).__name__},
            )

    @property
    def listeners(self) -> List[HostListener]:
        return list(self._listeners)

    async def dispatch(self, event: HostEvent) -> None:
        """Deliver an event to every listener; one failing listener does not stop the rest."""
        self.events_dispatched += 1
        for listener in list(self._listeners):
            try:
                await listener.on_event(event)
            except Exception as exc:
                self.listener_errors += 1
                logger.error(
                    f"Listener failed on {event.kind}: {exc}",
                    exc_info=True,
                    extra={"listener": type(listener).__name__, "event": event.kind},
                )

    # --------------------------------------------------------------- #
    # Readiness
    # --------------------------------------------------------------- #
    def mark_ready(self) -> None:
        """Status properties now reflect the live server."""
        self._ready.set()

    @property
    def is_ready(self) -> bool:
        return self._ready.is_set()

    async def wait_ready(self) -> None:
        await self._ready.wait()

    # --------------------------------------------------------------- #
    # Disable signal
    # --------------------------------------------------------------- #
    def disable_plugin(self) -> None:
        """Ask the host to unload the plugin; the entry point waits on this."""
        self.disable_requests += 1
        logger.warning("Plugin disable requested")
        self._disabled.set()

    @property
    def is_disabled(self) -> bool:
        return self._disabled.is_set()

    async def wait_disabled(self) -> None:
        await self._disabled.wait()
