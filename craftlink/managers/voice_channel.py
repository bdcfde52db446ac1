"""
Live server status in a Discord channel's name or topic.

A background task renders `status.online_format` / `status.offline_format`
from the host's status every `status.update_interval_seconds` and pushes the
result to Discord. Identical text is never pushed twice in a row, so an idle
server costs no API calls; channel renames are heavily rate limited by
Discord, which is why `name` mode enforces a five minute floor.
"""

from __future__ import annotations

import asyncio
from typing import Any, Dict, Optional

from craftlink.core.constants import CHANNEL_NAME_MAX_LENGTH, CHANNEL_TOPIC_MAX_LENGTH
from craftlink.core.exceptions import ManagerError
from craftlink.core.logging.logger import get_logger
from craftlink.host.base import ServerHost
from craftlink.managers.bot import BotManager
from craftlink.managers.config import STATUS_MODES, ConfigManager
from craftlink.utils.formatting import render_template, truncate_text

logger = get_logger(__name__)

MANAGER_NAME = "VoiceChannelManager"


class VoiceChannelManager:
    """
    Periodic status updater.

    Usage
    -----
    >>> voice = VoiceChannelManager(config_manager, bot_manager, host)
    >>> await voice.initialize()    # raises ManagerError on bad settings
    >>> voice.is_enabled()
    True
    >>> await voice.shutdown()
    """

    def __init__(
        self,
        config_manager: ConfigManager,
        bot_manager: BotManager,
        host: ServerHost,
    ) -> None:
        self._config = config_manager
        self._bot = bot_manager
        self._host = host

        self._task: Optional[asyncio.Task] = None
        self._channel_id: Optional[int] = None
        self._mode = "name"
        self._interval = 0.0
        self._last_text: Optional[str] = None

        self.updates_pushed = 0
        self.updates_skipped = 0
        self.errors = 0

    # --------------------------------------------------------------- #
    # Lifecycle
    # --------------------------------------------------------------- #
    async def initialize(self) -> None:
        status = self._config.section("status")
        if not status.get("enabled", False):
            logger.info("Status channel updates disabled")
            return

        channel_id = status.get("channel_id")
        mode = status.get("mode")
        interval = status.get("update_interval_seconds")

        if not isinstance(channel_id, int):
            raise ManagerError(MANAGER_NAME, "status.channel_id is not set", channel_id=channel_id)
        if mode not in STATUS_MODES:
            raise ManagerError(MANAGER_NAME, f"unknown status mode '{mode}'", mode=mode)
        if not isinstance(interval, (int, float)) or interval < STATUS_MODES[mode]:
            raise ManagerError(
                MANAGER_NAME,
                f"update interval must be at least {STATUS_MODES[mode]}s in '{mode}' mode",
                interval=interval,
            )

        self._channel_id = channel_id
        self._mode = mode
        self._interval = float(interval)
        self._last_text = None

        self._task = asyncio.create_task(self._run(), name="craftlink-status-updater")
        logger.info(
            "Status channel updater started",
            extra={"channel_id": channel_id, "mode": mode, "interval_seconds": interval},
        )

    def is_enabled(self) -> bool:
        return self._task is not None and not self._task.done()

    async def shutdown(self) -> None:
        """Cancel the updater and wait for it to exit."""
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.info(
            "Status channel updater stopped",
            extra={"updates_pushed": self.updates_pushed, "errors": self.errors},
        )

    # --------------------------------------------------------------- #
    # Rendering
    # --------------------------------------------------------------- #
    def _fields(self) -> Dict[str, Any]:
        players = self._host.online_players
        return {
            "online": len(players),
            "max": self._host.max_players,
            "players": ", ".join(players),
            "motd": self._host.motd,
            "version": self._host.version,
        }

    def render(self) -> str:
        """Status text for the current server state, clipped to the Discord limit."""
        key = "status.online_format" if self._host.is_running else "status.offline_format"
        text = render_template(self._config.get(key, ""), **self._fields())
        limit = CHANNEL_NAME_MAX_LENGTH if self._mode == "name" else CHANNEL_TOPIC_MAX_LENGTH
        return truncate_text(text, limit)

    async def refresh(self) -> bool:
        """
        Push the current status once.

        Returns True only when Discord was updated; unchanged text, a
        disconnected bot, or a disabled updater return False.
        """
        if self._channel_id is None:
            return False

        text = self.render()
        if text == self._last_text:
            self.updates_skipped += 1
            return False

        if not self._bot.is_connected():
            return False

        if self._mode == "name":
            pushed = await self._bot.update_channel(self._channel_id, name=text)
        else:
            pushed = await self._bot.update_channel(self._channel_id, topic=text)

        if pushed:
            self._last_text = text
            self.updates_pushed += 1
            logger.debug("Status channel updated", extra={"text": text, "mode": self._mode})
        return pushed

    async def _run(self) -> None:
        # Status is unknown until the host has replayed its log
        await self._host.wait_ready()
        while True:
            try:
                await self.refresh()
            except Exception as exc:
                self.errors += 1
                logger.warning(
                    f"Status channel update failed: {exc}",
                    extra={"channel_id": self._channel_id},
                )
            await asyncio.sleep(self._interval)

    @property
    def last_text(self) -> Optional[str]:
        return self._last_text
