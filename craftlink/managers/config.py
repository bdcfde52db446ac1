"""
ConfigManager: YAML-backed bridge configuration for CraftLink.

Purpose
-------
- Provide hierarchical, dot-notation access to the bridge tunables: relay
  toggles and templates, the status channel, command permissions, and
  Minecraft host settings.
- Back configuration with built-in defaults deep-merged with one YAML file.
- Support hot reload without leaving the process in a half-loaded state.

Responsibilities
----------------
- Load and merge defaults with the YAML file at `Config.CONFIG_FILE`.
- Validate the merged tree (schema types, then semantic bounds/choices).
- Serve reads from the in-memory tree.
- On reload, swap in the new tree only if it fully validates.

Key Design Decisions
--------------------
- Built-in defaults are the single source of fallbacks; the YAML file only
  overrides. A missing file is allowed (defaults + warning).
- A file that exists but cannot be parsed or validated is a ConfigError. At
  startup that error is fatal to the Supervisor; on reload the previous
  configuration stays active.
"""

from __future__ import annotations

import copy
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, MutableMapping, Optional

import yaml

from craftlink.core.config.config import Config
from craftlink.core.config.errors import ConfigError, ConfigLoadError, ConfigValidationError
from craftlink.core.config.validator import CRAFTLINK_SCHEMA
from craftlink.core.constants import (
    DEFAULT_COMMAND_PREFIX,
    DEFAULT_CONNECT_TIMEOUT_SECONDS,
    DEFAULT_LOG_FILE,
    DEFAULT_MAX_PLAYERS,
    DEFAULT_POLL_INTERVAL_SECONDS,
    MIN_CHANNEL_RENAME_INTERVAL_SECONDS,
    MIN_TOPIC_UPDATE_INTERVAL_SECONDS,
)
from craftlink.core.logging.logger import get_logger

logger = get_logger(__name__)


STATUS_MODES = {
    "name": MIN_CHANNEL_RENAME_INTERVAL_SECONDS,
    "topic": MIN_TOPIC_UPDATE_INTERVAL_SECONDS,
}

DEFAULT_CONFIG: Dict[str, Any] = {
    "discord": {
        "chat_channel_id": None,
        "command_prefix": DEFAULT_COMMAND_PREFIX,
        "connect_timeout_seconds": DEFAULT_CONNECT_TIMEOUT_SECONDS,
        "activity": "Minecraft",
    },
    "relay": {
        "enabled": True,
        "server_start": True,
        "server_stop": True,
        "join": True,
        "leave": True,
        "chat": True,
        "death": True,
        "advancement": True,
        "formats": {
            "server_start": ":white_check_mark: **Server started** (version {version})",
            "server_stop": ":octagonal_sign: **Server is stopping**",
            "join": ":arrow_right: **{player}** joined the game",
            "leave": ":arrow_left: **{player}** left the game",
            "chat": "**<{player}>** {message}",
            "death": ":skull: {message}",
            "advancement": ":trophy: **{player}** has made the advancement **{advancement}**",
        },
    },
    "status": {
        "enabled": False,
        "mode": "name",
        "channel_id": None,
        "update_interval_seconds": MIN_CHANNEL_RENAME_INTERVAL_SECONDS,
        "online_format": "🟢 Online: {online}/{max}",
        "offline_format": "🔴 Server offline",
    },
    "commands": {
        "enabled": ["help", "status", "players", "uptime", "version", "reload"],
        "admin_role_ids": [],
        "admin_user_ids": [],
    },
    "minecraft": {
        "log_file": DEFAULT_LOG_FILE,
        "poll_interval_seconds": DEFAULT_POLL_INTERVAL_SECONDS,
        "max_players": DEFAULT_MAX_PLAYERS,
    },
}


class ConfigManager:
    """
    Bridge configuration with YAML overrides and safe hot reload.

    Usage
    -----
    >>> manager = ConfigManager(Path("config/craftlink.yaml"))
    >>> await manager.initialize()
    >>> manager.get("status.mode")
    'name'
    """

    def __init__(self, path: Optional[Path] = None) -> None:
        self._path = Path(path) if path is not None else Path(Config.CONFIG_FILE)
        self._config: Dict[str, Any] = {}
        self._initialized = False
        self._loaded_from_file = False
        self.reload_count = 0
        self.last_loaded_at: Optional[datetime] = None

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    async def initialize(self) -> None:
        """
        Load and validate configuration.

        Raises
        ------
        ConfigError
            If the file exists but cannot be parsed or fails validation.
        """
        start_time = time.perf_counter()
        self._config, self._loaded_from_file = self._load()
        self._initialized = True
        self.last_loaded_at = datetime.now(timezone.utc)

        logger.info(
            "Configuration initialized",
            extra={
                "path": str(self._path),
                "from_file": self._loaded_from_file,
                "time_ms": round((time.perf_counter() - start_time) * 1000, 2),
            },
        )

    async def reload(self) -> None:
        """
        Re-read YAML and environment configuration.

        The new tree replaces the current one only if it loads and validates;
        otherwise the ConfigError propagates and both the previous tree and the
        previous environment values stay active.
        """
        try:
            config, from_file = self._load()
        except ConfigError as exc:
            logger.error(
                "Configuration reload rejected; keeping previous configuration",
                extra={"error": exc.to_dict()},
            )
            raise

        Config.reload_safe_configs()
        self._config = config
        self._loaded_from_file = from_file
        self._initialized = True
        self.reload_count += 1
        self.last_loaded_at = datetime.now(timezone.utc)

        logger.info(
            "Configuration reloaded",
            extra={"path": str(self._path), "reload_count": self.reload_count},
        )

    # =========================================================================
    # LOADING
    # =========================================================================

    @staticmethod
    def _deep_merge_dict(
        target: MutableMapping[str, Any],
        source: MutableMapping[str, Any],
    ) -> None:
        """Recursively merge `source` into `target` (in-place)."""
        for key, value in source.items():
            if isinstance(value, dict) and isinstance(target.get(key), dict):
                ConfigManager._deep_merge_dict(target[key], value)
            else:
                target[key] = value

    def _read_yaml(self) -> Optional[Dict[str, Any]]:
        if not self._path.exists():
            logger.warning(
                "Config file not found; using built-in defaults only",
                extra={"path": str(self._path)},
            )
            return None

        try:
            with self._path.open("r", encoding="utf-8") as handle:
                data = yaml.safe_load(handle)
        except yaml.YAMLError as exc:
            raise ConfigLoadError(str(self._path), f"invalid YAML: {exc}") from exc
        except OSError as exc:
            raise ConfigLoadError(str(self._path), str(exc)) from exc

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigLoadError(
                str(self._path),
                f"root must be a mapping; got {type(data).__name__}",
            )
        return data

    def _load(self) -> "tuple[Dict[str, Any], bool]":
        merged = copy.deepcopy(DEFAULT_CONFIG)
        overrides = self._read_yaml()
        if overrides:
            self._deep_merge_dict(merged, overrides)

        CRAFTLINK_SCHEMA.validate(merged)
        self._validate_semantics(merged)
        return merged, overrides is not None

    @staticmethod
    def _validate_semantics(config: Dict[str, Any]) -> None:
        discord_cfg = config["discord"]
        if not discord_cfg["command_prefix"]:
            raise ConfigValidationError(
                "discord.command_prefix", "must not be empty", discord_cfg["command_prefix"]
            )
        if discord_cfg["connect_timeout_seconds"] <= 0:
            raise ConfigValidationError(
                "discord.connect_timeout_seconds",
                "must be positive",
                discord_cfg["connect_timeout_seconds"],
            )

        status = config["status"]
        mode = status["mode"]
        if mode not in STATUS_MODES:
            raise ConfigValidationError(
                "status.mode", f"must be one of {sorted(STATUS_MODES)}", mode
            )
        min_interval = STATUS_MODES[mode]
        if status["update_interval_seconds"] < min_interval:
            raise ConfigValidationError(
                "status.update_interval_seconds",
                f"must be at least {min_interval} seconds in '{mode}' mode",
                status["update_interval_seconds"],
            )
        if status["enabled"] and status["channel_id"] is None:
            raise ConfigValidationError(
                "status.channel_id", "is required when status updates are enabled"
            )

        for key in ("admin_role_ids", "admin_user_ids"):
            ids = config["commands"][key]
            if not all(isinstance(item, int) and not isinstance(item, bool) for item in ids):
                raise ConfigValidationError(f"commands.{key}", "must contain integer ids", ids)

        minecraft = config["minecraft"]
        if minecraft["poll_interval_seconds"] <= 0:
            raise ConfigValidationError(
                "minecraft.poll_interval_seconds",
                "must be positive",
                minecraft["poll_interval_seconds"],
            )
        if minecraft["max_players"] < 0:
            raise ConfigValidationError(
                "minecraft.max_players", "must not be negative", minecraft["max_players"]
            )

    # =========================================================================
    # READ API
    # =========================================================================

    def get(self, key: str, default: Any = None) -> Any:
        """
        Retrieve a configuration value by dot-notation path.

        Examples
        --------
        >>> manager.get("relay.formats.join")
        ':arrow_right: **{player}** joined the game'
        >>> manager.get("does.not.exist", 42)
        42
        """
        value: Any = self._config if self._initialized else DEFAULT_CONFIG
        for part in key.split("."):
            if not isinstance(value, dict) or part not in value:
                return default
            value = value[part]
        return value

    def section(self, key: str) -> Dict[str, Any]:
        """Return a copy of a configuration subtree (empty dict if missing)."""
        value = self.get(key, {})
        return copy.deepcopy(value) if isinstance(value, dict) else {}

    @property
    def path(self) -> Path:
        return self._path

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    @property
    def loaded_from_file(self) -> bool:
        return self._loaded_from_file
