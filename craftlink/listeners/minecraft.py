"""
Minecraft → Discord event relay.

Receives host events, checks the `relay.*` toggles, renders the matching
`relay.formats.*` template and posts it to the chat channel. While the bot is
offline events are counted and dropped; nothing is queued for later.
"""

from __future__ import annotations

from typing import Any, Dict, Optional, Tuple

from discord.utils import escape_markdown

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
    ServerStopping,
)
from craftlink.managers.bot import BotManager
from craftlink.managers.config import ConfigManager
from craftlink.utils.formatting import render_template

logger = get_logger(__name__)


class MinecraftEventListener:
    """Relays server events to Discord through the BotManager."""

    def __init__(
        self,
        config_manager: ConfigManager,
        bot_manager: BotManager,
        host: ServerHost,
    ) -> None:
        self._config = config_manager
        self._bot = bot_manager
        self._host = host

        self.relayed = 0
        self.dropped = 0
        self.failed = 0

    def _describe(self, event: HostEvent) -> Optional[Tuple[str, Dict[str, Any]]]:
        """Relay key and template fields for an event, or None if it is never relayed."""
        if isinstance(event, ServerStarted):
            return "server_start", {"version": self._host.version}
        if isinstance(event, ServerStopping):
            return "server_stop", {}
        if isinstance(event, PlayerJoin):
            return "join", {"player": escape_markdown(event.player)}
        if isinstance(event, PlayerLeave):
            return "leave", {"player": escape_markdown(event.player)}
        if isinstance(event, PlayerChat):
            return "chat", {
                "player": escape_markdown(event.player),
                "message": escape_markdown(event.message),
            }
        if isinstance(event, PlayerDeath):
            return "death", {
                "player": escape_markdown(event.player),
                "message": escape_markdown(event.message),
            }
        if isinstance(event, PlayerAdvancement):
            return "advancement", {
                "player": escape_markdown(event.player),
                "advancement": escape_markdown(event.advancement),
            }
        return None

    def format_event(self, event: HostEvent) -> Optional[str]:
        """Rendered relay text, or None when the event is not relayed."""
        if not self._config.get("relay.enabled", True):
            return None

        described = self._describe(event)
        if described is None:
            return None

        key, fields = described
        if not self._config.get(f"relay.{key}", True):
            return None

        template = self._config.get(f"relay.formats.{key}")
        if not template:
            return None

        fields.setdefault("online", len(self._host.online_players))
        fields.setdefault("max", self._host.max_players)
        return render_template(template, **fields)

    async def on_event(self, event: HostEvent) -> None:
        text = self.format_event(event)
        if text is None:
            return

        if not self._bot.is_connected():
            self.dropped += 1
            logger.debug("Bot offline; dropping relay message", extra={"event": event.kind})
            return

        if await self._bot.send_chat(text):
            self.relayed += 1
        else:
            self.failed += 1
