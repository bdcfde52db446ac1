"""
Chat command dispatch for CraftLink.

Purpose
-------
Let Discord users query the Minecraft server and let operators control the
bridge with prefix commands (`!status`, `!players`, `!reload`, ...).

Responsibilities
----------------
- Own the dispatch table: name → Command (aliases resolve to the same entry)
- Parse `prefix name args...` with shell-style quoting
- Enforce admin-only commands by Discord user id or role id
- Run handlers under a LogContext and count executions/failures
- Turn command errors into friendly replies; nothing escapes to discord.py

Design Notes
------------
Registration with the BotManager does not need a live connection, so
commands start working as soon as the bot (re)connects.
"""

from __future__ import annotations

import platform
import shlex
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Awaitable, Callable, Dict, FrozenSet, List, Optional, Tuple

import discord

from craftlink.core.constants import MESSAGE_MAX_LENGTH, PLUGIN_NAME, VERSION
from craftlink.core.exceptions import (
    CommandError,
    CommandNotFoundError,
    CommandPermissionError,
    ManagerError,
)
from craftlink.core.logging.logger import LogContext, get_logger
from craftlink.host.base import ServerHost
from craftlink.managers.bot import BotManager
from craftlink.managers.config import ConfigManager
from craftlink.utils.formatting import format_duration, truncate_text

if TYPE_CHECKING:
    from craftlink.supervisor.supervisor import Supervisor

logger = get_logger(__name__)

MANAGER_NAME = "CommandManager"


@dataclass(frozen=True)
class CommandInvocation:
    """One parsed command call."""

    name: str
    args: Tuple[str, ...] = ()
    user_id: int = 0
    role_ids: FrozenSet[int] = frozenset()
    guild_id: Optional[int] = None
    channel_id: Optional[int] = None


CommandHandler = Callable[[CommandInvocation], Awaitable[str]]


@dataclass
class Command:
    name: str
    description: str
    handler: CommandHandler
    admin_only: bool = False
    aliases: Tuple[str, ...] = ()
    executed: int = field(default=0, compare=False)
    failed: int = field(default=0, compare=False)


def parse_command(content: str, prefix: str) -> Optional[Tuple[str, Tuple[str, ...]]]:
    """
    Split a chat message into (command name, args).

    Returns None when the message is not a command. Unbalanced quotes fall
    back to plain whitespace splitting.

    >>> parse_command('!say "hello world" now', "!")
    ('say', ('hello world', 'now'))
    """
    if not prefix or not content.startswith(prefix):
        return None

    body = content[len(prefix):].strip()
    if not body:
        return None

    try:
        parts = shlex.split(body)
    except ValueError:
        parts = body.split()
    if not parts:
        return None

    return parts[0].lower(), tuple(parts[1:])


class CommandManager:
    """
    Prefix command dispatcher.

    Usage
    -----
    >>> commands = CommandManager(config_manager, bot_manager, host, supervisor)
    >>> await commands.initialize()
    >>> await commands.dispatch(CommandInvocation(name="players"))
    'No players online.'
    """

    def __init__(
        self,
        config_manager: ConfigManager,
        bot_manager: BotManager,
        host: ServerHost,
        supervisor: Optional["Supervisor"] = None,
    ) -> None:
        self._config = config_manager
        self._bot = bot_manager
        self._host = host
        self._supervisor = supervisor

        self._commands: Dict[str, Command] = {}
        self._aliases: Dict[str, str] = {}
        self._initialized = False

        self.unknown_commands = 0
        self.permission_denied = 0

    # --------------------------------------------------------------- #
    # Lifecycle
    # --------------------------------------------------------------- #
    async def initialize(self) -> None:
        enabled = self._config.get("commands.enabled", [])
        builtins = {command.name: command for command in self._builtin_commands()}

        for name in enabled:
            command = builtins.get(str(name).lower())
            if command is None:
                logger.warning("Unknown command in commands.enabled", extra={"command_name": name})
                continue
            self.register(command)

        self._bot.add_message_handler(self.handle_message)
        self._initialized = True

        logger.info(
            "Command manager initialized",
            extra={"commands": sorted(self._commands), "prefix": self.prefix},
        )

    async def shutdown(self) -> None:
        self._bot.remove_message_handler(self.handle_message)
        logger.info("Command manager shut down", extra={"metrics": self.get_metrics()})
        self._commands.clear()
        self._aliases.clear()
        self._initialized = False

    @property
    def prefix(self) -> str:
        return self._config.get("discord.command_prefix", "!")

    # --------------------------------------------------------------- #
    # Dispatch table
    # --------------------------------------------------------------- #
    def register(self, command: Command) -> None:
        """Add a command; names and aliases must be unique across the table."""
        for key in (command.name, *command.aliases):
            if key in self._commands or key in self._aliases:
                raise ManagerError(MANAGER_NAME, f"duplicate command name '{key}'")

        self._commands[command.name] = command
        for alias in command.aliases:
            self._aliases[alias] = command.name

    def resolve(self, name: str) -> Optional[Command]:
        name = name.lower()
        return self._commands.get(self._aliases.get(name, name))

    @property
    def commands(self) -> List[Command]:
        return list(self._commands.values())

    def is_admin(self, user_id: int, role_ids: FrozenSet[int] = frozenset()) -> bool:
        admin_users = set(self._config.get("commands.admin_user_ids", []))
        admin_roles = set(self._config.get("commands.admin_role_ids", []))
        return user_id in admin_users or bool(admin_roles & set(role_ids))

    async def execute(self, invocation: CommandInvocation) -> str:
        """
        Run a command and return its reply.

        Raises
        ------
        CommandNotFoundError
            No command or alias matches.
        CommandPermissionError
            Admin-only command invoked by a non-admin.
        """
        command = self.resolve(invocation.name)
        if command is None:
            self.unknown_commands += 1
            raise CommandNotFoundError(invocation.name)

        if command.admin_only and not self.is_admin(invocation.user_id, invocation.role_ids):
            self.permission_denied += 1
            raise CommandPermissionError(command.name, invocation.user_id)

        async with LogContext(
            user_id=invocation.user_id,
            guild_id=invocation.guild_id,
            command=command.name,
            component="commands",
        ):
            start_time = time.perf_counter()
            try:
                reply = await command.handler(invocation)
            except Exception:
                command.failed += 1
                raise

            command.executed += 1
            logger.info(
                "Command executed",
                extra={
                    "command_args": list(invocation.args),
                    "time_ms": round((time.perf_counter() - start_time) * 1000, 2),
                },
            )
            return reply

    async def dispatch(self, invocation: CommandInvocation) -> str:
        """Like `execute`, but every failure becomes a user-facing reply."""
        try:
            return await self.execute(invocation)
        except CommandNotFoundError:
            return f"Unknown command `{invocation.name}`. Try `{self.prefix}help`."
        except CommandPermissionError:
            return "You lack permission to use this command."
        except CommandError as exc:
            return exc.message
        except Exception as exc:
            logger.error(
                f"Unhandled error in command {invocation.name}: {exc}",
                exc_info=True,
                extra={"error_type": type(exc).__name__},
            )
            return "Something went wrong while processing your command. The issue has been logged."

    async def handle_message(self, message: discord.Message) -> None:
        """BotManager message handler: parse, dispatch, reply in the same channel."""
        parsed = parse_command(message.content, self.prefix)
        if parsed is None:
            return

        name, args = parsed
        invocation = CommandInvocation(
            name=name,
            args=args,
            user_id=message.author.id,
            role_ids=frozenset(role.id for role in getattr(message.author, "roles", [])),
            guild_id=message.guild.id if message.guild else None,
            channel_id=message.channel.id,
        )
        reply = await self.dispatch(invocation)

        try:
            await message.channel.send(
                truncate_text(reply, MESSAGE_MAX_LENGTH),
                allowed_mentions=discord.AllowedMentions.none(),
            )
        except discord.HTTPException as exc:
            logger.warning(f"Failed to send command reply: {exc}", extra={"command_name": name})

    def get_metrics(self) -> Dict[str, Dict[str, int]]:
        return {
            command.name: {"executed": command.executed, "failed": command.failed}
            for command in self._commands.values()
        }

    # --------------------------------------------------------------- #
    # Built-in commands
    # --------------------------------------------------------------- #
    def _builtin_commands(self) -> List[Command]:
        return [
            Command("help", "List available commands", self._cmd_help),
            Command("status", "Server and bridge status", self._cmd_status),
            Command("players", "Who is online", self._cmd_players, aliases=("list",)),
            Command("uptime", "How long the bridge has been running", self._cmd_uptime),
            Command("version", "Bridge and server versions", self._cmd_version),
            Command("reload", "Reload configuration", self._cmd_reload, admin_only=True),
        ]

    async def _cmd_help(self, invocation: CommandInvocation) -> str:
        is_admin = self.is_admin(invocation.user_id, invocation.role_ids)
        lines = [f"**{PLUGIN_NAME} commands**"]
        for command in self._commands.values():
            if command.admin_only and not is_admin:
                continue
            aliases = f" (also: {', '.join(command.aliases)})" if command.aliases else ""
            lines.append(f"`{self.prefix}{command.name}`{aliases} - {command.description}")
        return "\n".join(lines)

    async def _cmd_status(self, invocation: CommandInvocation) -> str:
        host = self._host
        if host.is_running:
            lines = [
                f"🟢 **Online** - {len(host.online_players)}/{host.max_players} players",
                f"Version: {host.version}",
            ]
            if host.motd:
                lines.append(f"MOTD: {host.motd}")
        else:
            lines = ["🔴 **Offline**"]

        if self._supervisor is not None:
            snapshot = self._supervisor.get_health_snapshot()
            lines.append(
                f"Bot: {'connected' if snapshot.bot_connected else 'disconnected'} · "
                f"Status channel: {'active' if snapshot.voice_active else 'inactive'}"
            )
        return "\n".join(lines)

    async def _cmd_players(self, invocation: CommandInvocation) -> str:
        players = self._host.online_players
        if not players:
            return "No players online."
        names = ", ".join(discord.utils.escape_markdown(name) for name in sorted(players))
        return f"Online ({len(players)}/{self._host.max_players}): {names}"

    async def _cmd_uptime(self, invocation: CommandInvocation) -> str:
        if self._supervisor is None:
            return "Uptime unavailable."
        snapshot = self._supervisor.get_health_snapshot()
        return f"Up for {format_duration(snapshot.uptime_ms)}."

    async def _cmd_version(self, invocation: CommandInvocation) -> str:
        return (
            f"{PLUGIN_NAME} {VERSION} · Minecraft {self._host.version} · "
            f"Python {platform.python_version()}"
        )

    async def _cmd_reload(self, invocation: CommandInvocation) -> str:
        if self._supervisor is None:
            return "Reload unavailable."
        if await self._supervisor.reload():
            return "✅ Configuration reloaded."
        return "⚠️ Reload finished with errors; check the server log."
