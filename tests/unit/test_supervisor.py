"""
Unit tests for Supervisor.

Tests startup ordering and failure policy, best-effort shutdown, the reload
protocol, and health reporting.
"""

import pytest

from craftlink.core.config.errors import ConfigLoadError, ConfigValidationError
from craftlink.core.constants import VERSION
from craftlink.core.exceptions import BotConnectionError, ManagerError
from craftlink.supervisor import banner_lines
from craftlink.supervisor.supervisor import (
    BOT,
    COMMANDS,
    CONFIG,
    VOICE,
    ErrorKind,
    Supervisor,
    SupervisorState,
)


@pytest.mark.asyncio
class TestStartup:
    """Construction order and fatal vs degraded failures."""

    async def test_all_managers_succeed(self, supervisor, fake_host, fake_managers):
        """Full start: enabled, fully initialized, banner printed once."""
        assert await supervisor.start() is True

        assert supervisor.state is SupervisorState.ENABLED
        assert supervisor.is_fully_initialized() is True
        assert supervisor.get_health_snapshot().enabled is True
        assert fake_host.console == banner_lines()
        assert fake_host.disable_requests == 0

    async def test_initialization_order(self, supervisor, fake_managers):
        """Managers initialize config → bot → voice → commands."""
        await supervisor.start()

        assert fake_managers.calls == [
            "ConfigManager.initialize",
            "BotManager.initialize",
            "VoiceChannelManager.initialize",
            "CommandManager.initialize",
        ]

    async def test_config_failure_is_fatal(self, supervisor, fake_host, fake_managers):
        """ConfigError halts startup before any other manager is constructed."""
        fake_managers.config_error = ConfigValidationError("status.mode", "bad mode", "x")

        assert await supervisor.start() is False

        assert list(fake_managers.created) == [CONFIG]
        assert "VoiceChannelManager.initialize" not in fake_managers.calls
        assert fake_host.disable_requests == 1
        assert supervisor.state is SupervisorState.DISABLED
        assert supervisor.handles[CONFIG].last_error is ErrorKind.CONFIG
        assert fake_managers.listener is None

    async def test_config_load_error_is_fatal(self, supervisor, fake_host, fake_managers):
        fake_managers.config_error = ConfigLoadError("/tmp/x.yaml", "invalid YAML")

        assert await supervisor.start() is False
        assert fake_host.disable_requests == 1

    async def test_bot_failure_degrades(self, supervisor, fake_managers):
        """BotConnectionError: start succeeds, voice and commands still initialized."""
        fake_managers.bot_error = BotConnectionError("DISCORD_TOKEN is not set")

        assert await supervisor.start() is True

        handles = supervisor.handles
        assert handles[BOT].component is not None
        assert handles[BOT].initialized is False
        assert handles[BOT].last_error is ErrorKind.CONNECTION
        assert handles[VOICE].initialized is True
        assert handles[COMMANDS].initialized is True
        assert supervisor.get_health_snapshot().bot_connected is False
        assert supervisor.is_fully_initialized() is False

    async def test_voice_and_command_manager_errors_degrade(self, supervisor, fake_managers):
        fake_managers.voice_error = ManagerError("VoiceChannelManager", "no channel")
        fake_managers.commands_error = ManagerError("CommandManager", "duplicate")

        assert await supervisor.start() is True

        assert supervisor.handles[VOICE].last_error is ErrorKind.MANAGER
        assert supervisor.handles[COMMANDS].initialized is False
        assert supervisor.get_health_snapshot().voice_active is False

    async def test_unexpected_error_is_fatal(self, supervisor, fake_host, fake_managers):
        """A non-CraftLink exception disables the plugin."""
        fake_managers.voice_error = RuntimeError("boom")

        assert await supervisor.start() is False

        assert supervisor.state is SupervisorState.DISABLED
        assert fake_host.disable_requests == 1
        assert supervisor.handles[VOICE].last_error is ErrorKind.UNEXPECTED
        assert COMMANDS not in fake_managers.created

    async def test_logging_failure_propagates(self, fake_host, fake_managers, fixed_clock):
        def broken_logging():
            raise OSError("logs dir is read-only")

        supervisor = Supervisor(
            fake_host,
            factories=fake_managers.factories(),
            clock=fixed_clock,
            setup_logging=broken_logging,
        )

        with pytest.raises(OSError):
            await supervisor.start()
        assert fake_managers.created == {}

    async def test_start_twice_is_rejected(self, supervisor, fake_host, fake_managers):
        assert await supervisor.start() is True
        assert await supervisor.start() is False

        assert fake_managers.calls.count("ConfigManager.initialize") == 1
        assert fake_host.console == banner_lines()

    async def test_listener_registered(self, supervisor, fake_host, fake_managers):
        await supervisor.start()

        assert fake_host.listeners == [fake_managers.listener]
        assert supervisor.listener is fake_managers.listener

    async def test_accessors_expose_managers(self, supervisor, fake_managers):
        await supervisor.start()

        assert supervisor.config_manager is fake_managers.created[CONFIG]
        assert supervisor.bot_manager is fake_managers.created[BOT]
        assert supervisor.voice_channel_manager is fake_managers.created[VOICE]
        assert supervisor.command_manager is fake_managers.created[COMMANDS]

    async def test_console_failure_does_not_block_start(self, supervisor, fake_host, mocker):
        """A broken console sink loses the banner, not the plugin."""
        mocker.patch.object(fake_host, "send_console", side_effect=OSError("console closed"))

        assert await supervisor.start() is True

        assert supervisor.state is SupervisorState.ENABLED
        assert fake_host.disable_requests == 0


@pytest.mark.asyncio
class TestShutdown:
    """Reverse-order, best-effort shutdown."""

    async def test_shutdown_order(self, supervisor, fake_host, fake_managers):
        await supervisor.start()
        fake_managers.calls.clear()

        await supervisor.stop()

        assert fake_managers.calls == [
            "VoiceChannelManager.shutdown",
            "CommandManager.shutdown",
            "BotManager.shutdown",
        ]
        assert supervisor.state is SupervisorState.DISABLED
        assert fake_host.listeners == []

    async def test_only_initialized_managers_are_shut_down(self, supervisor, fake_managers):
        """With only ConfigManager initialized, no shutdown() is called."""
        fake_managers.bot_error = BotConnectionError("offline")
        fake_managers.voice_error = ManagerError("VoiceChannelManager", "no channel")
        fake_managers.commands_error = ManagerError("CommandManager", "broken")
        await supervisor.start()
        fake_managers.calls.clear()

        await supervisor.stop()

        assert fake_managers.calls == []
        assert supervisor.state is SupervisorState.DISABLED

    async def test_shutdown_error_does_not_block_others(self, supervisor, fake_managers):
        await supervisor.start()
        fake_managers.created[VOICE].shutdown_error = RuntimeError("task stuck")
        fake_managers.calls.clear()

        await supervisor.stop()

        assert "CommandManager.shutdown" in fake_managers.calls
        assert "BotManager.shutdown" in fake_managers.calls
        assert supervisor.handles[VOICE].initialized is False
        assert supervisor.handles[VOICE].last_error is ErrorKind.UNEXPECTED
        assert supervisor.state is SupervisorState.DISABLED

    async def test_stop_before_start_is_noop(self, supervisor, fake_managers):
        await supervisor.stop()

        assert supervisor.state is SupervisorState.UNLOADED
        assert fake_managers.calls == []

    async def test_stop_after_failed_start_cleans_up(self, supervisor, fake_managers):
        """Managers initialized before a fatal error are still shut down."""
        fake_managers.commands_error = RuntimeError("boom")
        assert await supervisor.start() is False
        fake_managers.calls.clear()

        await supervisor.stop()

        assert fake_managers.calls == ["VoiceChannelManager.shutdown", "BotManager.shutdown"]

    async def test_unregister_failure_does_not_block_shutdown(
        self, supervisor, fake_host, fake_managers, mocker
    ):
        await supervisor.start()
        mocker.patch.object(
            fake_host, "unregister_listener", side_effect=RuntimeError("host gone")
        )
        fake_managers.calls.clear()

        await supervisor.stop()

        assert fake_managers.calls == [
            "VoiceChannelManager.shutdown",
            "CommandManager.shutdown",
            "BotManager.shutdown",
        ]
        assert supervisor.listener is None
        assert supervisor.state is SupervisorState.DISABLED


@pytest.mark.asyncio
class TestFullyInitialized:
    async def test_false_before_start(self, supervisor):
        assert supervisor.is_fully_initialized() is False

    async def test_false_while_loading(self, supervisor, fake_managers):
        """Not fully initialized until the last manager succeeds."""
        seen = []
        original = fake_managers._commands

        def commands_factory(config, bot, host, sup):
            manager = original(config, bot, host, sup)
            real_initialize = manager.initialize

            async def initialize():
                seen.append(supervisor.is_fully_initialized())
                await real_initialize()

            manager.initialize = initialize
            return manager

        supervisor._factories.commands = commands_factory
        await supervisor.start()

        assert seen == [False]
        assert supervisor.is_fully_initialized() is True

    async def test_false_once_stop_begins(self, supervisor, fake_managers):
        await supervisor.start()
        seen = []
        voice = fake_managers.created[VOICE]
        real_shutdown = voice.shutdown

        async def shutdown():
            seen.append(supervisor.is_fully_initialized())
            await real_shutdown()

        voice.shutdown = shutdown
        await supervisor.stop()

        assert seen == [False]
        assert supervisor.is_fully_initialized() is False


@pytest.mark.asyncio
class TestReload:
    """Config reload, voice restart, conditional bot reconnect."""

    async def test_reload_twice_is_idempotent(self, supervisor):
        await supervisor.start()

        assert await supervisor.reload() is True
        first = supervisor.get_health_snapshot()
        assert await supervisor.reload() is True
        second = supervisor.get_health_snapshot()

        assert first == second
        assert supervisor.state is SupervisorState.ENABLED

    async def test_reload_restarts_voice(self, supervisor, fake_managers):
        await supervisor.start()
        fake_managers.calls.clear()

        await supervisor.reload()

        assert fake_managers.calls == [
            "ConfigManager.reload",
            "VoiceChannelManager.shutdown",
            "VoiceChannelManager.initialize",
        ]

    async def test_reload_reconnects_disconnected_bot(self, supervisor, fake_managers):
        fake_managers.bot_error = BotConnectionError("offline")
        await supervisor.start()

        assert await supervisor.reload() is True

        assert "BotManager.reconnect" in fake_managers.calls
        assert supervisor.handles[BOT].initialized is True
        assert supervisor.handles[BOT].last_error is None
        assert supervisor.get_health_snapshot().bot_connected is True
        assert supervisor.is_fully_initialized() is True

    async def test_reload_does_not_reconnect_connected_bot(self, supervisor, fake_managers):
        await supervisor.start()

        await supervisor.reload()

        assert "BotManager.reconnect" not in fake_managers.calls

    async def test_reconnect_failure_does_not_fail_reload(self, supervisor, fake_managers):
        fake_managers.bot_error = BotConnectionError("offline")
        fake_managers.bot_reconnect_error = BotConnectionError("still offline")
        await supervisor.start()

        assert await supervisor.reload() is True
        assert supervisor.handles[BOT].initialized is False
        assert supervisor.handles[BOT].last_error is ErrorKind.CONNECTION

    async def test_config_reload_failure_reports_false(self, supervisor, fake_managers):
        """Config errors fail the reload but the voice restart still runs."""
        fake_managers.config_reload_error = ConfigValidationError("status.mode", "bad")
        await supervisor.start()
        fake_managers.calls.clear()

        assert await supervisor.reload() is False

        assert "VoiceChannelManager.initialize" in fake_managers.calls
        assert supervisor.state is SupervisorState.ENABLED

    async def test_voice_restart_failure_aborts(self, supervisor, fake_managers):
        fake_managers.bot_error = BotConnectionError("offline")
        await supervisor.start()
        fake_managers.created[VOICE].init_error = ManagerError("VoiceChannelManager", "gone")

        assert await supervisor.reload() is False

        assert "BotManager.reconnect" not in fake_managers.calls
        assert supervisor.handles[VOICE].initialized is False
        assert supervisor.state is SupervisorState.ENABLED

    async def test_unexpected_error_returns_false(self, supervisor, fake_managers):
        fake_managers.config_reload_error = RuntimeError("disk on fire")
        await supervisor.start()

        assert await supervisor.reload() is False
        assert supervisor.state is SupervisorState.ENABLED

    async def test_reload_requires_enabled(self, supervisor, fake_managers):
        assert await supervisor.reload() is False

        await supervisor.start()
        await supervisor.stop()
        assert await supervisor.reload() is False
        assert "ConfigManager.reload" not in fake_managers.calls


@pytest.mark.asyncio
class TestHealthSnapshot:
    async def test_snapshot_before_start(self, supervisor):
        """Handles never initialized: no null dereference, everything false."""
        snapshot = supervisor.get_health_snapshot()

        assert snapshot.enabled is False
        assert snapshot.bot_connected is False
        assert snapshot.voice_active is False

    async def test_snapshot_fields(self, supervisor):
        await supervisor.start()

        snapshot = supervisor.get_health_snapshot()

        assert snapshot.version == VERSION
        assert snapshot.bot_connected is True
        assert snapshot.voice_active is True
        assert snapshot.uptime_ms == 60_000
        assert snapshot.host_runtime_version == "1.20.4"

    async def test_to_dict(self, supervisor):
        await supervisor.start()

        stats = supervisor.get_health_snapshot().to_dict()

        assert set(stats) == {
            "version",
            "enabled",
            "bot_connected",
            "voice_active",
            "uptime_ms",
            "host_runtime_version",
            "python_version",
        }
