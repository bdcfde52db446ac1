"""
Unit tests for VoiceChannelManager.

Tests settings validation, template rendering, skip-if-unchanged pushes,
name vs topic mode, and the updater loop's error handling.
"""

import asyncio

import pytest

from craftlink.core.exceptions import ManagerError
from craftlink.managers.config import ConfigManager
from craftlink.managers.voice_channel import VoiceChannelManager

CHANNEL_ID = 987654321


async def load_config(config_file, write_config, text: str) -> ConfigManager:
    write_config(text)
    manager = ConfigManager(config_file)
    await manager.initialize()
    return manager


@pytest.fixture
async def status_config(config_file, write_config) -> ConfigManager:
    return await load_config(
        config_file,
        write_config,
        f"""
status:
  enabled: true
  mode: name
  channel_id: {CHANNEL_ID}
  update_interval_seconds: 300
  online_format: "Online {{online}}/{{max}}"
  offline_format: "Offline"
""",
    )


@pytest.fixture
async def voice(status_config, mock_bot_manager, fake_host) -> VoiceChannelManager:
    """Initialized manager whose background task was cancelled before its first tick."""
    manager = VoiceChannelManager(status_config, mock_bot_manager, fake_host)
    await manager.initialize()
    await manager.shutdown()
    return manager


@pytest.mark.asyncio
class TestInitialize:
    async def test_disabled_by_default(self, config_manager, mock_bot_manager, fake_host):
        manager = VoiceChannelManager(config_manager, mock_bot_manager, fake_host)

        await manager.initialize()

        assert manager.is_enabled() is False
        assert await manager.refresh() is False
        mock_bot_manager.update_channel.assert_not_awaited()

    async def test_enabled_starts_task(self, status_config, mock_bot_manager, fake_host):
        manager = VoiceChannelManager(status_config, mock_bot_manager, fake_host)

        await manager.initialize()
        try:
            assert manager.is_enabled() is True
            await asyncio.sleep(0)
            mock_bot_manager.update_channel.assert_awaited_once_with(CHANNEL_ID, name="Online 0/20")
        finally:
            await manager.shutdown()

        assert manager.is_enabled() is False

    @pytest.mark.parametrize(
        "status",
        [
            {"enabled": True, "channel_id": None, "mode": "name", "update_interval_seconds": 300},
            {"enabled": True, "channel_id": 1, "mode": "banner", "update_interval_seconds": 300},
            {"enabled": True, "channel_id": 1, "mode": "name", "update_interval_seconds": 30},
        ],
    )
    async def test_invalid_settings_raise(self, mocker, mock_bot_manager, fake_host, status):
        config = mocker.MagicMock()
        config.section.return_value = status
        manager = VoiceChannelManager(config, mock_bot_manager, fake_host)

        with pytest.raises(ManagerError):
            await manager.initialize()
        assert manager.is_enabled() is False

    async def test_shutdown_without_initialize(self, config_manager, mock_bot_manager, fake_host):
        manager = VoiceChannelManager(config_manager, mock_bot_manager, fake_host)
        await manager.shutdown()


@pytest.mark.asyncio
class TestRefresh:
    async def test_pushes_rendered_name(self, voice, mock_bot_manager, fake_host):
        fake_host.players = ["Steve", "Alex"]

        assert await voice.refresh() is True

        mock_bot_manager.update_channel.assert_awaited_once_with(CHANNEL_ID, name="Online 2/20")
        assert voice.last_text == "Online 2/20"

    async def test_unchanged_text_is_skipped(self, voice, mock_bot_manager):
        await voice.refresh()
        assert await voice.refresh() is False

        assert mock_bot_manager.update_channel.await_count == 1
        assert voice.updates_skipped == 1

    async def test_offline_format(self, voice, mock_bot_manager, fake_host):
        fake_host.running = False

        await voice.refresh()

        mock_bot_manager.update_channel.assert_awaited_once_with(CHANNEL_ID, name="Offline")

    async def test_disconnected_bot_defers_update(self, voice, mock_bot_manager):
        mock_bot_manager.is_connected.return_value = False
        assert await voice.refresh() is False
        mock_bot_manager.update_channel.assert_not_awaited()

        mock_bot_manager.is_connected.return_value = True
        assert await voice.refresh() is True

    async def test_failed_push_is_retried(self, voice, mock_bot_manager):
        mock_bot_manager.update_channel.return_value = False
        assert await voice.refresh() is False
        assert voice.last_text is None

        mock_bot_manager.update_channel.return_value = True
        assert await voice.refresh() is True

    async def test_topic_mode(self, config_file, write_config, mock_bot_manager, fake_host):
        config = await load_config(
            config_file,
            write_config,
            f"status:\n  enabled: true\n  mode: topic\n  channel_id: {CHANNEL_ID}\n"
            "  update_interval_seconds: 60\n  online_format: '{motd} - {players}'\n",
        )
        fake_host.players = ["Steve"]
        manager = VoiceChannelManager(config, mock_bot_manager, fake_host)
        await manager.initialize()
        await manager.shutdown()

        await manager.refresh()

        mock_bot_manager.update_channel.assert_awaited_once_with(
            CHANNEL_ID, topic="A Minecraft Server - Steve"
        )

    async def test_name_is_clipped(self, config_file, write_config, mock_bot_manager, fake_host):
        config = await load_config(
            config_file,
            write_config,
            f"status:\n  enabled: true\n  channel_id: {CHANNEL_ID}\n  online_format: '{'x' * 150}'\n",
        )
        manager = VoiceChannelManager(config, mock_bot_manager, fake_host)
        await manager.initialize()
        await manager.shutdown()

        assert len(manager.render()) == 100


@pytest.mark.asyncio
class TestUpdaterLoop:
    async def test_tick_errors_do_not_stop_loop(self, voice, mock_bot_manager, mocker):
        mock_bot_manager.update_channel.side_effect = [RuntimeError("rate limited"), True]
        mocker.patch(
            "craftlink.managers.voice_channel.asyncio.sleep",
            mocker.AsyncMock(side_effect=[None, asyncio.CancelledError()]),
        )

        with pytest.raises(asyncio.CancelledError):
            await voice._run()

        assert voice.errors == 1
        assert voice.updates_pushed == 1

    async def test_first_tick_waits_for_host_ready(
        self, status_config, mock_bot_manager, fake_host
    ):
        fake_host._ready.clear()
        fake_host.players = ["Steve"]
        manager = VoiceChannelManager(status_config, mock_bot_manager, fake_host)

        await manager.initialize()
        try:
            await asyncio.sleep(0)
            mock_bot_manager.update_channel.assert_not_awaited()

            fake_host.mark_ready()
            for _ in range(3):
                await asyncio.sleep(0)

            mock_bot_manager.update_channel.assert_awaited_once_with(CHANNEL_ID, name="Online 1/20")
        finally:
            await manager.shutdown()
