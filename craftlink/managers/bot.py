"""
Discord connection manager for CraftLink.

Owns the single discord.py client the bridge uses: login, readiness wait,
presence, outbound chat relay, channel edits for the status updater, and
fan-out of inbound messages to registered handlers (the CommandManager).

A connection failure is never fatal for the plugin. `initialize()` and
`reconnect()` raise `BotConnectionError`, which the Supervisor downgrades to
a warning; every outbound call checks `is_connected()` first and degrades to
a no-op when the bot is offline.
"""

from __future__ import annotations

import asyncio
import time
from typing import Awaitable, Callable, List, Optional

import discord

from craftlink.core.config.config import Config
from craftlink.core.constants import MESSAGE_MAX_LENGTH
from craftlink.core.exceptions import BotConnectionError
from craftlink.core.logging.logger import get_logger
from craftlink.managers.config import ConfigManager
from craftlink.utils.formatting import truncate_text

logger = get_logger(__name__)

MessageHandler = Callable[[discord.Message], Awaitable[None]]
ClientFactory = Callable[["BotManager"], discord.Client]


class BridgeClient(discord.Client):
    """
    discord.py client used by the bridge.

    Only forwards gateway events to its BotManager; all state lives on the
    manager so the client can be thrown away and rebuilt on reconnect.
    """

    def __init__(self, manager: "BotManager"):
        intents = discord.Intents.default()
        intents.message_content = True
        intents.guilds = True

        super().__init__(intents=intents)
        self.manager = manager

    # --------------------------------------------------------------- #
    # Events
    # --------------------------------------------------------------- #
    async def on_ready(self):
        """Bot is connected and ready to receive events."""
        logger.info(
            f"✅ {self.user} is ONLINE",
            extra={"guilds": len(self.guilds), "bot_id": self.user.id if self.user else None},
        )
        await self.manager._on_ready()

    async def on_resumed(self):
        logger.info("Discord session resumed")

    async def on_disconnect(self):
        logger.warning("Discord gateway disconnected")

    async def on_message(self, message: discord.Message):
        if message.author.bot:
            return
        await self.manager._dispatch_message(message)


class BotManager:
    """
    Discord connection lifecycle and outbound messaging.

    Usage
    -----
    >>> bot = BotManager(config_manager)
    >>> await bot.initialize()          # raises BotConnectionError
    >>> await bot.send_chat("hello")
    True
    >>> await bot.shutdown()
    """

    def __init__(
        self,
        config_manager: ConfigManager,
        token: Optional[str] = None,
        client_factory: Optional[ClientFactory] = None,
    ) -> None:
        self._config = config_manager
        self._token = token
        self._client_factory: ClientFactory = client_factory or BridgeClient
        self._client: Optional[discord.Client] = None
        self._task: Optional[asyncio.Task] = None
        self._ready = asyncio.Event()
        self._handlers: List[MessageHandler] = []

        self.connect_count = 0
        self.messages_sent = 0
        self.send_failures = 0

    # --------------------------------------------------------------- #
    # Lifecycle
    # --------------------------------------------------------------- #
    async def initialize(self) -> None:
        """
        Log in and wait until the gateway reports ready.

        Raises
        ------
        BotConnectionError
            Missing token, rejected login, client exit before ready, or
            no ready event within `discord.connect_timeout_seconds`.
        """
        token = self._token or Config.DISCORD_TOKEN
        if not token:
            raise BotConnectionError("DISCORD_TOKEN is not set")

        timeout = float(self._config.get("discord.connect_timeout_seconds"))
        start_time = time.perf_counter()

        self._ready = asyncio.Event()
        self._client = self._client_factory(self)
        self._task = asyncio.create_task(
            self._client.start(token), name="craftlink-discord-client"
        )
        ready_waiter = asyncio.create_task(self._ready.wait())

        done, _ = await asyncio.wait(
            {ready_waiter, self._task},
            timeout=timeout,
            return_when=asyncio.FIRST_COMPLETED,
        )

        if ready_waiter in done:
            self.connect_count += 1
            logger.info(
                "Discord connection established",
                extra={"time_ms": round((time.perf_counter() - start_time) * 1000, 2)},
            )
            return

        ready_waiter.cancel()
        error = self._connection_failure(timeout)
        await self._close_client()
        raise error

    def _connection_failure(self, timeout: float) -> BotConnectionError:
        task = self._task
        if task is None or not task.done():
            return BotConnectionError(f"no ready event within {timeout:.0f}s")
        if task.cancelled():
            return BotConnectionError("client task cancelled before ready")

        exc = task.exception()
        if isinstance(exc, discord.LoginFailure):
            return BotConnectionError("login rejected (check DISCORD_TOKEN)", exc)
        if exc is not None:
            return BotConnectionError("client stopped before ready", exc)
        return BotConnectionError("client exited before ready")

    def is_connected(self) -> bool:
        client = self._client
        return client is not None and client.is_ready() and not client.is_closed()

    async def reconnect(self) -> None:
        """Drop the current client (if any) and connect again."""
        logger.info("Reconnecting to Discord")
        await self._close_client()
        await self.initialize()

    async def shutdown(self) -> None:
        """Close the client and wait for its task to finish."""
        await self._close_client()
        logger.info(
            "Bot manager shut down",
            extra={
                "messages_sent": self.messages_sent,
                "send_failures": self.send_failures,
            },
        )

    async def _close_client(self) -> None:
        client, task = self._client, self._task
        self._client = None
        self._task = None
        self._ready.clear()

        if client is not None and not client.is_closed():
            await client.close()

        if task is not None:
            results = await asyncio.gather(task, return_exceptions=True)
            if isinstance(results[0], BaseException):
                logger.debug(
                    "Discord client task ended with error",
                    extra={"error_type": type(results[0]).__name__},
                )

    async def _on_ready(self) -> None:
        activity = self._config.get("discord.activity")
        if activity:
            await self.set_activity(activity)
        self._ready.set()

    # --------------------------------------------------------------- #
    # Inbound messages
    # --------------------------------------------------------------- #
    def add_message_handler(self, handler: MessageHandler) -> None:
        if handler not in self._handlers:
            self._handlers.append(handler)

    def remove_message_handler(self, handler: MessageHandler) -> None:
        if handler in self._handlers:
            self._handlers.remove(handler)

    async def _dispatch_message(self, message: discord.Message) -> None:
        for handler in list(self._handlers):
            try:
                await handler(message)
            except Exception as exc:
                logger.error(
                    f"Message handler failed: {exc}",
                    exc_info=True,
                    extra={"handler": getattr(handler, "__qualname__", repr(handler))},
                )

    # --------------------------------------------------------------- #
    # Outbound
    # --------------------------------------------------------------- #
    async def _resolve_channel(self, channel_id: int):
        channel = self._client.get_channel(channel_id)
        if channel is None:
            channel = await self._client.fetch_channel(channel_id)
        return channel

    async def send_chat(self, text: str) -> bool:
        """
        Post a message to the configured chat channel.

        Returns False (without raising) when the bot is offline, no chat
        channel is configured, or Discord rejects the request.
        """
        channel_id = self._config.get("discord.chat_channel_id")
        if channel_id is None or not self.is_connected():
            return False

        text = truncate_text(text, MESSAGE_MAX_LENGTH)

        try:
            channel = await self._resolve_channel(channel_id)
            await channel.send(text, allowed_mentions=discord.AllowedMentions.none())
        except discord.HTTPException as exc:
            self.send_failures += 1
            logger.warning(
                f"Failed to relay message to Discord: {exc}",
                extra={"channel_id": channel_id},
            )
            return False

        self.messages_sent += 1
        return True

    async def update_channel(
        self,
        channel_id: int,
        name: Optional[str] = None,
        topic: Optional[str] = None,
    ) -> bool:
        """Rename a channel and/or set its topic. Returns False when offline."""
        if not self.is_connected():
            return False

        changes = {}
        if name is not None:
            changes["name"] = name
        if topic is not None:
            changes["topic"] = topic
        if not changes:
            return True

        channel = await self._resolve_channel(channel_id)
        await channel.edit(**changes, reason="CraftLink server status")
        return True

    async def set_activity(self, text: str) -> None:
        if self._client is None:
            return
        await self._client.change_presence(activity=discord.Game(name=text))
