"""
Plugin lifecycle supervisor for CraftLink.

Purpose
-------
Compose the bridge: construct managers in a fixed order, apply the failure
policy for each, shut them down in reverse order, reload on demand, and
report health.

Responsibilities
----------------
- Own the ComponentHandle table and the SupervisorState machine
- Decide fatal vs degraded for every manager failure
- Serialize start/stop/reload behind one asyncio.Lock
- Produce HealthSnapshot views for commands and operators

Non-Responsibilities
--------------------
- Timeouts and retries (each manager bounds its own I/O)
- Discord and Minecraft specifics (managers and host adapter)

Startup Order
-------------
1. Logging (a failure here propagates and aborts the process)
2. Banner on the host console (a console failure is logged, never fatal)
3. ConfigManager   → ConfigError is fatal (plugin disabled)
4. BotManager      → BotConnectionError degrades (bot features unavailable)
5. VoiceChannelManager → ManagerError degrades
6. CommandManager      → ManagerError degrades
7. Minecraft event listener registered with the host
Any exception that is not a CraftLinkError is fatal.

Shutdown Order
--------------
Listener, VoiceChannelManager, CommandManager, BotManager. Best effort:
every initialized manager is attempted even if an earlier one fails.

Reload Protocol
---------------
Config reload (failure reported, not fatal) → restart VoiceChannelManager
(failure aborts the reload) → reconnect BotManager only if disconnected
(failure logged, does not fail the reload). The Supervisor stays ENABLED.
"""

from __future__ import annotations

import asyncio
import platform
import time
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Callable, Dict, Optional, Tuple, Type

from craftlink.core.config.errors import ConfigError
from craftlink.core.constants import PLUGIN_NAME, VERSION
from craftlink.core.exceptions import BotConnectionError, CraftLinkError, ManagerError
from craftlink.core.logging.logger import get_logger, setup_logging as default_setup_logging
from craftlink.host.base import ServerHost
from craftlink.listeners.minecraft import MinecraftEventListener
from craftlink.managers.bot import BotManager
from craftlink.managers.commands import CommandManager
from craftlink.managers.config import ConfigManager
from craftlink.managers.voice_channel import VoiceChannelManager
from craftlink.supervisor.banner import print_banner

logger = get_logger(__name__)

CONFIG = "ConfigManager"
BOT = "BotManager"
VOICE = "VoiceChannelManager"
COMMANDS = "CommandManager"

SHUTDOWN_ORDER = (VOICE, COMMANDS, BOT)


# ============================================================================
# DATA MODEL
# ============================================================================


class ErrorKind(Enum):
    CONFIG = "config"
    CONNECTION = "connection"
    MANAGER = "manager"
    UNEXPECTED = "unexpected"

    @classmethod
    def from_exception(cls, exc: BaseException) -> "ErrorKind":
        if isinstance(exc, ConfigError):
            return cls.CONFIG
        if isinstance(exc, BotConnectionError):
            return cls.CONNECTION
        if isinstance(exc, CraftLinkError):
            return cls.MANAGER
        return cls.UNEXPECTED


class SupervisorState(Enum):
    UNLOADED = "unloaded"
    LOADING = "loading"
    ENABLED = "enabled"
    DISABLING = "disabling"
    DISABLED = "disabled"


@dataclass
class ComponentHandle:
    """
    One managed component.

    `component` is set as soon as construction succeeds; `initialized` only
    after `initialize()` returned without raising.
    """

    name: str
    component: Optional[Any] = None
    initialized: bool = False
    last_error: Optional[ErrorKind] = None


@dataclass(frozen=True)
class HealthSnapshot:
    """Point-in-time health view. Derived on demand, never stored."""

    version: str
    enabled: bool
    bot_connected: bool
    voice_active: bool
    uptime_ms: int
    host_runtime_version: str
    python_version: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class ManagerFactories:
    """
    Constructors for every managed component.

    Defaults build the real managers; tests replace them with fakes.
    """

    config: Callable[[], ConfigManager] = ConfigManager
    bot: Callable[[ConfigManager], BotManager] = BotManager
    voice: Callable[[ConfigManager, BotManager, ServerHost], VoiceChannelManager] = (
        VoiceChannelManager
    )
    commands: Callable[..., CommandManager] = CommandManager
    listener: Callable[[ConfigManager, BotManager, ServerHost], MinecraftEventListener] = (
        MinecraftEventListener
    )


# ============================================================================
# SUPERVISOR
# ============================================================================


class Supervisor:
    """
    Lifecycle coordinator for the bridge.

    Usage
    -----
    >>> supervisor = Supervisor(host)
    >>> if await supervisor.start():
    ...     snapshot = supervisor.get_health_snapshot()
    >>> await supervisor.reload()
    True
    >>> await supervisor.stop()
    """

    def __init__(
        self,
        host: ServerHost,
        factories: Optional[ManagerFactories] = None,
        clock: Callable[[], float] = time.time,
        setup_logging: Callable[[], None] = default_setup_logging,
        version: str = VERSION,
    ) -> None:
        self._host = host
        self._factories = factories or ManagerFactories()
        self._clock = clock
        self._setup_logging = setup_logging
        self._version = version

        self._state = SupervisorState.UNLOADED
        self._lock = asyncio.Lock()
        self._handles: Dict[str, ComponentHandle] = {
            name: ComponentHandle(name) for name in (CONFIG, BOT, VOICE, COMMANDS)
        }
        self._listener: Optional[MinecraftEventListener] = None

    # --------------------------------------------------------------- #
    # Start
    # --------------------------------------------------------------- #
    async def start(self) -> bool:
        """
        Bring the bridge up. Returns False when the plugin had to be disabled.

        Only a failure to set up logging escapes this call.
        """
        async with self._lock:
            if self._state is not SupervisorState.UNLOADED:
                logger.warning(
                    "start() ignored; supervisor already started",
                    extra={"state": self._state.value},
                )
                return False

            self._state = SupervisorState.LOADING
            self._setup_logging()
            try:
                print_banner(self._host)
            except Exception as exc:
                logger.warning(
                    f"Could not write startup banner to the console: {exc}",
                    extra={"error_type": type(exc).__name__},
                )

            start_time = time.perf_counter()
            try:
                await self._start_components()
            except ConfigError as exc:
                logger.critical(
                    f"Configuration failed to load; disabling {PLUGIN_NAME}: {exc.message}",
                    extra={"error": exc.to_dict()},
                )
                self._disable()
                return False
            except Exception as exc:
                logger.critical(
                    f"Failed to enable {PLUGIN_NAME}: {exc}",
                    exc_info=True,
                    extra={"error_type": type(exc).__name__},
                )
                self._disable()
                return False

            self._state = SupervisorState.ENABLED
            self._log_startup_summary((time.perf_counter() - start_time) * 1000)
            return True

    async def _start_components(self) -> None:
        factories = self._factories

        config_manager = self._construct(CONFIG, factories.config)
        await self._initialize(CONFIG)

        bot_manager = self._construct(BOT, factories.bot, config_manager)
        await self._initialize(BOT, soft_errors=(BotConnectionError,))

        self._construct(VOICE, factories.voice, config_manager, bot_manager, self._host)
        await self._initialize(VOICE, soft_errors=(ManagerError,))

        self._construct(
            COMMANDS, factories.commands, config_manager, bot_manager, self._host, self
        )
        await self._initialize(COMMANDS, soft_errors=(ManagerError,))

        self._listener = factories.listener(config_manager, bot_manager, self._host)
        self._host.register_listener(self._listener)

    def _construct(self, name: str, factory: Callable[..., Any], *args: Any) -> Any:
        handle = self._handles[name]
        handle.component = factory(*args)
        return handle.component

    async def _initialize(
        self,
        name: str,
        soft_errors: Tuple[Type[Exception], ...] = (),
    ) -> None:
        handle = self._handles[name]
        try:
            await handle.component.initialize()
        except soft_errors as exc:
            handle.last_error = ErrorKind.from_exception(exc)
            logger.warning(
                f"{name} unavailable; continuing in degraded mode: {exc.message}",
                extra={"manager": name, "error": exc.to_dict()},
            )
            return
        except Exception as exc:
            handle.last_error = ErrorKind.from_exception(exc)
            raise

        handle.initialized = True
        handle.last_error = None
        logger.info(f"✓ {name} initialized")

    def _disable(self) -> None:
        self._state = SupervisorState.DISABLED
        self._host.disable_plugin()

    def _log_startup_summary(self, elapsed_ms: float) -> None:
        snapshot = self.get_health_snapshot()
        bot_status = "connected" if snapshot.bot_connected else "unavailable"
        voice_status = "active" if snapshot.voice_active else "inactive"

        logger.info("=" * 60)
        logger.info(f"✅ {PLUGIN_NAME} v{self._version} enabled in {elapsed_ms:.0f}ms")
        logger.info(f"   Discord bot:    {bot_status}")
        logger.info(f"   Status channel: {voice_status}")
        logger.info("=" * 60)
        logger.info("Health snapshot", extra={"health": snapshot.to_dict()})

    # --------------------------------------------------------------- #
    # Stop
    # --------------------------------------------------------------- #
    async def stop(self) -> None:
        """Best-effort shutdown in reverse order. Never raises."""
        async with self._lock:
            if self._state is SupervisorState.UNLOADED:
                logger.warning("stop() called before start(); nothing to do")
                return

            self._state = SupervisorState.DISABLING
            logger.info(f"🛑 Disabling {PLUGIN_NAME}")

            if self._listener is not None:
                try:
                    self._host.unregister_listener(self._listener)
                except Exception as exc:
                    logger.error(
                        f"Failed to unregister the event listener: {exc}",
                        exc_info=True,
                    )
                finally:
                    self._listener = None

            for name in SHUTDOWN_ORDER:
                handle = self._handles[name]
                if not handle.initialized:
                    continue
                try:
                    await handle.component.shutdown()
                    logger.info(f"✓ {name} shut down")
                except Exception as exc:
                    handle.last_error = ErrorKind.from_exception(exc)
                    logger.error(
                        f"Error while shutting down {name}: {exc}",
                        exc_info=True,
                        extra={"manager": name},
                    )
                finally:
                    handle.initialized = False

            self._state = SupervisorState.DISABLED
            logger.info(f"👋 {PLUGIN_NAME} disabled")

    # --------------------------------------------------------------- #
    # Reload
    # --------------------------------------------------------------- #
    async def reload(self) -> bool:
        """
        Re-read configuration and restart the status updater.

        Returns True only if the config reload and the voice restart both
        succeeded. Never raises.
        """
        async with self._lock:
            if self._state is not SupervisorState.ENABLED:
                logger.warning(
                    "reload() ignored; plugin is not enabled",
                    extra={"state": self._state.value},
                )
                return False

            try:
                return await self._reload_components()
            except Exception as exc:
                logger.error(f"Unexpected error during reload: {exc}", exc_info=True)
                return False

    async def _reload_components(self) -> bool:
        success = True

        config_handle = self._handles[CONFIG]
        try:
            await config_handle.component.reload()
        except ConfigError as exc:
            success = False
            config_handle.last_error = ErrorKind.CONFIG
            logger.error(
                f"Configuration reload failed: {exc.message}",
                extra={"error": exc.to_dict()},
            )

        voice_handle = self._handles[VOICE]
        try:
            if voice_handle.initialized:
                voice_handle.initialized = False
                await voice_handle.component.shutdown()
            await voice_handle.component.initialize()
        except Exception as exc:
            voice_handle.last_error = ErrorKind.from_exception(exc)
            logger.error(
                f"{VOICE} restart failed; reload aborted: {exc}",
                exc_info=not isinstance(exc, CraftLinkError),
                extra={"manager": VOICE},
            )
            return False
        voice_handle.initialized = True
        voice_handle.last_error = None

        bot_handle = self._handles[BOT]
        bot_manager = bot_handle.component
        if not bot_manager.is_connected():
            try:
                await bot_manager.reconnect()
            except BotConnectionError as exc:
                bot_handle.initialized = False
                bot_handle.last_error = ErrorKind.CONNECTION
                logger.warning(
                    f"Discord reconnect failed: {exc.message}",
                    extra={"error": exc.to_dict()},
                )
            else:
                bot_handle.initialized = True
                bot_handle.last_error = None
                logger.info("Discord bot reconnected during reload")

        if success:
            logger.info(f"🔄 {PLUGIN_NAME} reloaded")
        return success

    # --------------------------------------------------------------- #
    # Queries
    # --------------------------------------------------------------- #
    def is_fully_initialized(self) -> bool:
        return self._state is SupervisorState.ENABLED and all(
            handle.initialized for handle in self._handles.values()
        )

    def get_health_snapshot(self) -> HealthSnapshot:
        bot_handle = self._handles[BOT]
        voice_handle = self._handles[VOICE]

        bot_connected = bot_handle.initialized and bot_handle.component.is_connected()
        voice_active = voice_handle.initialized and voice_handle.component.is_enabled()

        return HealthSnapshot(
            version=self._version,
            enabled=self._state is SupervisorState.ENABLED,
            bot_connected=bool(bot_connected),
            voice_active=bool(voice_active),
            uptime_ms=max(int(self._clock() * 1000) - self._host.start_time_ms, 0),
            host_runtime_version=self._host.version,
            python_version=platform.python_version(),
        )

    @property
    def state(self) -> SupervisorState:
        return self._state

    @property
    def handles(self) -> Dict[str, ComponentHandle]:
        return dict(self._handles)

    @property
    def config_manager(self) -> Optional[ConfigManager]:
        return self._handles[CONFIG].component

    @property
    def bot_manager(self) -> Optional[BotManager]:
        return self._handles[BOT].component

    @property
    def voice_channel_manager(self) -> Optional[VoiceChannelManager]:
        return self._handles[VOICE].component

    @property
    def command_manager(self) -> Optional[CommandManager]:
        return self._handles[COMMANDS].component

    @property
    def listener(self) -> Optional[MinecraftEventListener]:
        return self._listener
