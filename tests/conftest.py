"""
Pytest Configuration and Fixtures for CraftLink Tests
=====================================================

Purpose
-------
Centralized test fixtures for the CraftLink test suite: an in-memory host,
scriptable fake managers for Supervisor tests, a fixed clock, and a
YAML-backed ConfigManager on a temporary file.

Architecture Notes
------------------
- Unit tests use fakes and mocks (fast, isolated); nothing talks to Discord
- Fake managers record every lifecycle call into one shared list so tests
  can assert ordering across components
- The Supervisor under test gets a no-op `setup_logging` so the real queue
  listener and log files are never created
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest

from craftlink.host.base import ServerHost
from craftlink.host.events import HostEvent
from craftlink.managers.config import ConfigManager
from craftlink.supervisor.supervisor import ManagerFactories, Supervisor

HOST_START_MS = 1_000_000
FIXED_NOW = 1_060.0  # 60 seconds after HOST_START_MS


# ============================================================================
# PYTEST CONFIGURATION
# ============================================================================


def pytest_configure(config):
    """Configure pytest environment."""
    os.environ["ENVIRONMENT"] = "testing"
    os.environ.setdefault("LOG_LEVEL", "DEBUG")


# ============================================================================
# HOST
# ============================================================================


class FakeHost(ServerHost):
    """In-memory host: fixed status, ready at construction, console captured in a list."""

    def __init__(self) -> None:
        super().__init__()
        self.console: List[str] = []
        self.players: List[str] = []
        self.running = True
        self.server_version = "1.20.4"
        self.max_slots = 20
        self.message_of_the_day = "A Minecraft Server"
        self.mark_ready()

    @property
    def version(self) -> str:
        return self.server_version

    @property
    def start_time_ms(self) -> int:
        return HOST_START_MS

    @property
    def is_running(self) -> bool:
        return self.running

    @property
    def online_players(self) -> List[str]:
        return list(self.players)

    @property
    def max_players(self) -> int:
        return self.max_slots

    @property
    def motd(self) -> str:
        return self.message_of_the_day

    def send_console(self, line: str) -> None:
        self.console.append(line)


# ============================================================================
# FAKE MANAGERS (Supervisor tests)
# ============================================================================


class FakeComponent:
    name = "Component"

    def __init__(self, calls: List[str], init_error: Optional[BaseException] = None):
        self.calls = calls
        self.init_error = init_error
        self.shutdown_error: Optional[BaseException] = None
        self.running = False

    async def initialize(self) -> None:
        self.calls.append(f"{self.name}.initialize")
        if self.init_error is not None:
            raise self.init_error
        self.running = True

    async def shutdown(self) -> None:
        self.calls.append(f"{self.name}.shutdown")
        self.running = False
        if self.shutdown_error is not None:
            raise self.shutdown_error


class FakeConfigManager(FakeComponent):
    name = "ConfigManager"

    def __init__(self, calls, init_error=None, reload_error=None):
        super().__init__(calls, init_error)
        self.reload_error = reload_error

    async def reload(self) -> None:
        self.calls.append(f"{self.name}.reload")
        if self.reload_error is not None:
            raise self.reload_error

    def get(self, key: str, default: Any = None) -> Any:
        return default

    def section(self, key: str) -> Dict[str, Any]:
        return {}


class FakeBotManager(FakeComponent):
    name = "BotManager"

    def __init__(self, calls, init_error=None, reconnect_error=None):
        super().__init__(calls, init_error)
        self.reconnect_error = reconnect_error

    def is_connected(self) -> bool:
        return self.running

    async def reconnect(self) -> None:
        self.calls.append(f"{self.name}.reconnect")
        if self.reconnect_error is not None:
            raise self.reconnect_error
        self.running = True


class FakeVoiceChannelManager(FakeComponent):
    name = "VoiceChannelManager"

    def is_enabled(self) -> bool:
        return self.running


class FakeCommandManager(FakeComponent):
    name = "CommandManager"


class FakeListener:
    def __init__(self) -> None:
        self.events: List[HostEvent] = []

    async def on_event(self, event: HostEvent) -> None:
        self.events.append(event)


class FakeManagers:
    """
    Scriptable manager factories.

    Set the `*_error` attributes before `Supervisor.start()` to make the
    matching manager fail; inspect `created` and `calls` afterwards.
    """

    def __init__(self) -> None:
        self.calls: List[str] = []
        self.created: Dict[str, FakeComponent] = {}
        self.listener: Optional[FakeListener] = None

        self.config_error: Optional[BaseException] = None
        self.config_reload_error: Optional[BaseException] = None
        self.bot_error: Optional[BaseException] = None
        self.bot_reconnect_error: Optional[BaseException] = None
        self.voice_error: Optional[BaseException] = None
        self.commands_error: Optional[BaseException] = None

    def _config(self):
        manager = FakeConfigManager(self.calls, self.config_error, self.config_reload_error)
        self.created[manager.name] = manager
        return manager

    def _bot(self, config):
        manager = FakeBotManager(self.calls, self.bot_error, self.bot_reconnect_error)
        self.created[manager.name] = manager
        return manager

    def _voice(self, config, bot, host):
        manager = FakeVoiceChannelManager(self.calls, self.voice_error)
        self.created[manager.name] = manager
        return manager

    def _commands(self, config, bot, host, supervisor):
        manager = FakeCommandManager(self.calls, self.commands_error)
        self.created[manager.name] = manager
        return manager

    def _listener(self, config, bot, host):
        self.listener = FakeListener()
        return self.listener

    def factories(self) -> ManagerFactories:
        return ManagerFactories(
            config=self._config,
            bot=self._bot,
            voice=self._voice,
            commands=self._commands,
            listener=self._listener,
        )


# ============================================================================
# FIXTURES
# ============================================================================


@pytest.fixture
def fake_host() -> FakeHost:
    return FakeHost()


@pytest.fixture
def fake_managers() -> FakeManagers:
    return FakeManagers()


@pytest.fixture
def fixed_clock():
    """Clock frozen 60 seconds after the host start timestamp."""
    return lambda: FIXED_NOW


@pytest.fixture
def supervisor(fake_host, fake_managers, fixed_clock) -> Supervisor:
    """Supervisor wired to fake managers, with logging setup disabled."""
    return Supervisor(
        fake_host,
        factories=fake_managers.factories(),
        clock=fixed_clock,
        setup_logging=lambda: None,
    )


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    """Path to a YAML config file inside a temporary directory (not yet written)."""
    return tmp_path / "craftlink.yaml"


@pytest.fixture
def write_config(config_file: Path):
    """Write YAML text to `config_file`."""

    def _write(text: str) -> Path:
        config_file.write_text(text, encoding="utf-8")
        return config_file

    return _write


@pytest.fixture
async def config_manager(config_file: Path) -> ConfigManager:
    """Initialized ConfigManager with no YAML file (built-in defaults only)."""
    manager = ConfigManager(config_file)
    await manager.initialize()
    return manager


@pytest.fixture
def mock_bot_manager(mocker):
    """
    Mock BotManager with async outbound methods.

    Connected by default; override `is_connected.return_value` per test.
    """
    bot = mocker.MagicMock()
    bot.is_connected = mocker.MagicMock(return_value=True)
    bot.send_chat = mocker.AsyncMock(return_value=True)
    bot.update_channel = mocker.AsyncMock(return_value=True)
    bot.add_message_handler = mocker.MagicMock()
    bot.remove_message_handler = mocker.MagicMock()
    return bot
