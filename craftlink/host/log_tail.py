"""
Log-tailing host adapter for vanilla, Paper and Spigot servers.

Follows the server's `logs/latest.log` from outside the JVM, turns recognised
lines into `HostEvent`s, and keeps a live view of the server: version,
running state, online players, and the `max-players`/`motd` values from
`server.properties`.

Notes
-----
- On start the existing log content is replayed silently to rebuild state
  for a server that is already running; only new lines are dispatched.
- Truncation and rotation (new inode or shrinking file) restart the read
  from offset zero.
- File reads run in a worker thread so a slow disk never stalls the loop.
"""

from __future__ import annotations

import asyncio
import os
import re
import sys
import time
from pathlib import Path
from typing import Callable, Dict, List, Optional, TextIO, Tuple

from craftlink.core.constants import (
    DEFAULT_LOG_FILE,
    DEFAULT_MAX_PLAYERS,
    DEFAULT_POLL_INTERVAL_SECONDS,
    UNKNOWN_VERSION,
)
from craftlink.core.logging.logger import get_logger
from craftlink.host.base import ServerHost
from craftlink.host.events import (
    HostEvent,
    PlayerAdvancement,
    PlayerChat,
    PlayerDeath,
    PlayerJoin,
    PlayerLeave,
    ServerStarted,
    ServerStarting,
    ServerStopping,
)

logger = get_logger(__name__)


# ============================================================================
# LINE PARSING
# ============================================================================

# "[12:34:56] [Server thread/INFO]: msg" (vanilla) or "[12:34:56 INFO]: msg" (Paper)
_LINE_PREFIX = re.compile(r"^\[[^\]]+\](?:\s*\[[^\]]+\])?:\s?(?P<body>.*)$")

_STARTING = re.compile(r"^Starting minecraft server version (?P<version>\S+)")
_DONE = re.compile(r'^Done \((?P<seconds>[\d.]+)s\)! For help, type "help"')
_STOPPING = re.compile(r"^Stopping (?:the )?server")
_JOIN = re.compile(r"^(?P<player>\w{1,16}) joined the game")
_LEAVE = re.compile(r"^(?P<player>\w{1,16}) left the game")
_CHAT = re.compile(r"^(?:\[Not Secure\] )?<(?P<player>\w{1,16})> (?P<message>.*)$")
_ADVANCEMENT = re.compile(
    r"^(?P<player>\w{1,16}) has (?:made the advancement|completed the challenge|reached the goal) "
    r"\[(?P<advancement>[^\]]+)\]"
)
_PLAYER_FIRST = re.compile(r"^(?P<player>\w{1,16}) (?P<rest>.+)$")

DEATH_PHRASES: Tuple[str, ...] = (
    "was slain by",
    "was shot by",
    "was killed",
    "was blown up by",
    "blew up",
    "drowned",
    "fell ",
    "hit the ground too hard",
    "burned to death",
    "went up in flames",
    "walked into fire",
    "tried to swim in lava",
    "was struck by lightning",
    "froze to death",
    "starved to death",
    "suffocated in a wall",
    "was squished",
    "was squashed by",
    "was pricked to death",
    "was impaled",
    "was fireballed by",
    "was stung to death",
    "was poked to death",
    "was skewered",
    "was obliterated",
    "withered away",
    "experienced kinetic energy",
    "discovered the floor was lava",
    "didn't want to live",
    "left the confines of this world",
    "died",
)


def parse_log_line(line: str, known_players: Optional[set] = None) -> Optional[HostEvent]:
    """
    Convert one log line into an event, or None when it is not relevant.

    Death messages have no fixed shape; they are only recognised for players
    in `known_players` so that arbitrary plugin output is not misread.
    """
    match = _LINE_PREFIX.match(line.rstrip("\r\n"))
    if not match:
        return None
    body = match.group("body")

    if m := _CHAT.match(body):
        return PlayerChat(player=m.group("player"), message=m.group("message"))
    if m := _JOIN.match(body):
        return PlayerJoin(player=m.group("player"))
    if m := _LEAVE.match(body):
        return PlayerLeave(player=m.group("player"))
    if m := _ADVANCEMENT.match(body):
        return PlayerAdvancement(player=m.group("player"), advancement=m.group("advancement"))
    if m := _STARTING.match(body):
        return ServerStarting(version=m.group("version"))
    if m := _DONE.match(body):
        return ServerStarted(startup_seconds=float(m.group("seconds")))
    if _STOPPING.match(body):
        return ServerStopping()

    if known_players and (m := _PLAYER_FIRST.match(body)):
        if m.group("player") in known_players and m.group("rest").startswith(DEATH_PHRASES):
            return PlayerDeath(player=m.group("player"), message=body)

    return None


def read_server_properties(path: Path) -> Dict[str, str]:
    """Parse a Java `.properties` file (key=value, `#`/`!` comments)."""
    properties: Dict[str, str] = {}
    with path.open("r", encoding="utf-8", errors="replace") as handle:
        for raw in handle:
            line = raw.strip()
            if not line or line.startswith(("#", "!")) or "=" not in line:
                continue
            key, value = line.split("=", 1)
            properties[key.strip()] = value.strip()
    return properties


# ============================================================================
# CONSOLE COLOURS
# ============================================================================

_SECTION_CODE = re.compile(r"§([0-9a-fk-or])", re.IGNORECASE)

_ANSI_CODES = {
    "0": "30", "1": "34", "2": "32", "3": "36",
    "4": "31", "5": "35", "6": "33", "7": "37",
    "8": "90", "9": "94", "a": "92", "b": "96",
    "c": "91", "d": "95", "e": "93", "f": "97",
    "k": "5", "l": "1", "m": "9", "n": "4", "o": "3", "r": "0",
}


def translate_color_codes(text: str, ansi: bool) -> str:
    """Turn `§` formatting codes into ANSI escapes, or strip them."""
    if not ansi:
        return _SECTION_CODE.sub("", text)
    translated = _SECTION_CODE.sub(
        lambda m: f"\033[{_ANSI_CODES[m.group(1).lower()]}m", text
    )
    return f"{translated}\033[0m" if translated != text else text


# ============================================================================
# HOST
# ============================================================================


class LogTailHost(ServerHost):
    """
    Host adapter backed by the server's log file.

    Usage
    -----
    >>> host = LogTailHost(Path("/srv/minecraft"))
    >>> host.configure(log_file="logs/latest.log", poll_interval_seconds=1.0)
    >>> await host.start()
    >>> await host.wait_disabled()
    >>> await host.stop()
    """

    def __init__(
        self,
        server_dir: Path,
        log_file: str = DEFAULT_LOG_FILE,
        poll_interval_seconds: float = DEFAULT_POLL_INTERVAL_SECONDS,
        max_players: int = DEFAULT_MAX_PLAYERS,
        stream: Optional[TextIO] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        super().__init__()
        self._server_dir = Path(server_dir)
        self._log_path = self._server_dir / log_file
        self._poll_interval = poll_interval_seconds
        self._max_players_fallback = max_players
        self._stream = stream
        self._start_time_ms = int(clock() * 1000)

        self._version = UNKNOWN_VERSION
        self._running = False
        self._players: List[str] = []
        self._properties: Dict[str, str] = {}

        self._position = 0
        self._inode: Optional[int] = None
        self._partial = b""
        self._task: Optional[asyncio.Task] = None

        self.lines_read = 0

    def configure(
        self,
        log_file: Optional[str] = None,
        poll_interval_seconds: Optional[float] = None,
        max_players: Optional[int] = None,
        **_: object,
    ) -> None:
        """Apply `minecraft.*` settings. Takes effect on the next `start()`."""
        if log_file is not None:
            self._log_path = self._server_dir / log_file
        if poll_interval_seconds is not None:
            self._poll_interval = poll_interval_seconds
        if max_players is not None:
            self._max_players_fallback = max_players

    # --------------------------------------------------------------- #
    # Status
    # --------------------------------------------------------------- #
    @property
    def version(self) -> str:
        return self._version

    @property
    def start_time_ms(self) -> int:
        return self._start_time_ms

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def online_players(self) -> List[str]:
        return list(self._players)

    @property
    def max_players(self) -> int:
        raw = self._properties.get("max-players")
        if raw is not None and raw.isdigit():
            return int(raw)
        return self._max_players_fallback

    @property
    def motd(self) -> str:
        return translate_color_codes(self._properties.get("motd", ""), ansi=False)

    @property
    def log_path(self) -> Path:
        return self._log_path

    def send_console(self, line: str) -> None:
        stream = self._stream or sys.stdout
        ansi = hasattr(stream, "isatty") and stream.isatty()
        stream.write(translate_color_codes(line, ansi) + "\n")
        stream.flush()

    # --------------------------------------------------------------- #
    # Lifecycle
    # --------------------------------------------------------------- #
    async def start(self) -> None:
        """Load properties, rebuild state from existing log content, start tailing."""
        self.load_properties()

        for line in await asyncio.to_thread(self._read_new_lines):
            event = parse_log_line(line, set(self._players))
            if event is not None:
                self._apply(event)

        self.mark_ready()
        logger.info(
            "Log tailer started",
            extra={
                "log_path": str(self._log_path),
                "version": self._version,
                "running": self._running,
                "players_online": len(self._players),
            },
        )
        self._task = asyncio.create_task(self._tail_loop(), name="craftlink-log-tail")

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.info("Log tailer stopped", extra={"lines_read": self.lines_read})

    def load_properties(self) -> None:
        path = self._server_dir / "server.properties"
        if not path.exists():
            logger.debug("server.properties not found", extra={"path": str(path)})
            self._properties = {}
            return
        try:
            self._properties = read_server_properties(path)
        except OSError as exc:
            logger.warning(f"Cannot read server.properties: {exc}", extra={"path": str(path)})

    # --------------------------------------------------------------- #
    # Tailing
    # --------------------------------------------------------------- #
    async def _tail_loop(self) -> None:
        while True:
            try:
                await self.poll()
            except OSError as exc:
                logger.warning(
                    f"Failed to read server log: {exc}",
                    extra={"log_path": str(self._log_path)},
                )
            await asyncio.sleep(self._poll_interval)

    async def poll(self) -> int:
        """Read and dispatch any new complete lines. Returns the number of events."""
        lines = await asyncio.to_thread(self._read_new_lines)
        dispatched = 0
        for line in lines:
            event = parse_log_line(line, set(self._players))
            if event is None:
                continue
            self._apply(event)
            await self.dispatch(event)
            dispatched += 1
        return dispatched

    def _read_new_lines(self) -> List[str]:
        try:
            stat = os.stat(self._log_path)
        except FileNotFoundError:
            return []

        if self._inode is not None and stat.st_ino != self._inode:
            logger.info("Server log rotated", extra={"log_path": str(self._log_path)})
            self._position = 0
            self._partial = b""
        elif stat.st_size < self._position:
            logger.info("Server log truncated", extra={"log_path": str(self._log_path)})
            self._position = 0
            self._partial = b""
        self._inode = stat.st_ino

        if stat.st_size == self._position:
            return []

        with open(self._log_path, "rb") as handle:
            handle.seek(self._position)
            chunk = handle.read()
            self._position = handle.tell()

        data = self._partial + chunk
        *complete, self._partial = data.split(b"\n")
        self.lines_read += len(complete)
        return [raw.decode("utf-8", errors="replace") for raw in complete]

    def _apply(self, event: HostEvent) -> None:
        if isinstance(event, ServerStarting):
            self._version = event.version
            self._running = False
            self._players.clear()
            self.load_properties()
        elif isinstance(event, ServerStarted):
            self._running = True
        elif isinstance(event, ServerStopping):
            self._running = False
            self._players.clear()
        elif isinstance(event, PlayerJoin):
            if event.player not in self._players:
                self._players.append(event.player)
        elif isinstance(event, PlayerLeave):
            if event.player in self._players:
                self._players.remove(event.player)
