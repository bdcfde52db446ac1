"""
Static configuration management for CraftLink.

Purpose
-------
Provides centralized static configuration loaded from environment variables
with sensible defaults, type validation, and bounds checking. This module
handles settings that are fixed at process start: secrets, file locations,
and logging behavior.

Responsibilities
----------------
- Load configuration from environment variables with .env support
- Provide type-safe access to all static configuration values
- Validate critical settings on startup
- Track which values came from the environment versus defaults

Non-Responsibilities
--------------------
- Bridge tunables (relay templates, status channel, commands); those live in
  the YAML file handled by ConfigManager
- Secrets management (use environment variables)

Architecture Notes
------------------
- Singleton pattern via class methods (no instantiation)
- Auto-loads on module import via Config.load()
- Supports safe reload for non-critical configs

Environment Variables
---------------------
Required:
- DISCORD_TOKEN: Bot authentication token (missing token degrades the bot,
  it does not stop the plugin)

Optional (with defaults):
- CRAFTLINK_CONFIG: YAML config path (default: config/craftlink.yaml)
- MINECRAFT_SERVER_DIR: Minecraft server directory (default: .)
- ENVIRONMENT: Environment type (default: development)
- DEBUG: Debug mode flag (default: False)
- LOG_LEVEL: Logging level (default: INFO)
- LOG_JSON: Force JSON console logs (default: production only)
- LOG_COLORS: Colored console logs in development (default: True)
- LOGS_DIR: Directory for the rotating JSON log file (default: ./logs)
"""

import logging
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


class _ConfigLoadMetrics:
    """
    Internal metrics tracker for configuration loading.

    Tracks which configuration values came from environment variables
    versus defaults, and any validation errors encountered.
    """

    def __init__(self):
        self.env_vars_loaded: Dict[str, bool] = {}
        self.validation_errors: Dict[str, str] = {}
        self.defaults_used: Dict[str, Any] = {}
        self.last_reload: Optional[str] = None

    def record_env_load(self, key: str, from_env: bool, value: Any, default: Any):
        self.env_vars_loaded[key] = from_env
        if not from_env:
            self.defaults_used[key] = default

    def record_validation_error(self, key: str, error: str):
        self.validation_errors[key] = error

    def get_summary(self) -> Dict[str, Any]:
        return {
            "total_configs": len(self.env_vars_loaded),
            "from_environment": sum(1 for v in self.env_vars_loaded.values() if v),
            "from_defaults": sum(1 for v in self.env_vars_loaded.values() if not v),
            "validation_errors": len(self.validation_errors),
            "defaults_used": list(self.defaults_used.keys()),
            "last_reload": self.last_reload,
        }


class Config:
    """
    Centralized static configuration for CraftLink.

    Usage
    -----
    >>> token = Config.DISCORD_TOKEN
    >>> if Config.is_production():
    ...     logger.info("Running in production mode")
    >>> summary = Config.get_config_summary()
    """

    _metrics: Optional[_ConfigLoadMetrics] = None
    _enable_metrics: bool = True
    _validated: bool = False

    # =========================================================================
    # Discord
    # =========================================================================

    DISCORD_TOKEN: str = ""

    # =========================================================================
    # Files
    # =========================================================================

    PROJECT_ROOT = Path(__file__).resolve().parents[3]
    CONFIG_FILE: Path = PROJECT_ROOT / "config" / "craftlink.yaml"
    MINECRAFT_SERVER_DIR: Path = Path(".")
    LOGS_DIR: Path = PROJECT_ROOT / "logs"

    # =========================================================================
    # Environment
    # =========================================================================

    ENVIRONMENT: str = "development"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    LOG_JSON: Optional[bool] = None
    LOG_COLORS: bool = True

    # =========================================================================
    # Helper Methods
    # =========================================================================

    @classmethod
    def _init_metrics(cls):
        if cls._enable_metrics and cls._metrics is None:
            cls._metrics = _ConfigLoadMetrics()

    @classmethod
    def _record_error(cls, key: str, error: str) -> None:
        logging.warning(error)
        if cls._metrics:
            cls._metrics.record_validation_error(key, error)

    @classmethod
    def _parse_bool(cls, raw_value: str) -> Optional[bool]:
        normalized = raw_value.lower().strip()
        if normalized in {"true", "yes", "1", "on"}:
            return True
        if normalized in {"false", "no", "0", "off"}:
            return False
        return None

    @classmethod
    def _safe_bool(cls, key: str, default: bool) -> bool:
        """
        Safely parse boolean from environment.

        Recognizes: true/false, yes/no, 1/0, on/off (case-insensitive).
        """
        cls._init_metrics()

        raw_value = os.getenv(key)

        if raw_value is None:
            if cls._metrics:
                cls._metrics.record_env_load(key, False, default, default)
            return default

        value = cls._parse_bool(raw_value)
        if value is None:
            cls._record_error(
                key, f"{key}='{raw_value}' is not a valid boolean, using default {default}"
            )
            return default

        if cls._metrics:
            cls._metrics.record_env_load(key, True, value, default)
        return value

    @classmethod
    def _safe_optional_bool(cls, key: str) -> Optional[bool]:
        cls._init_metrics()

        raw_value = os.getenv(key)
        if raw_value is None:
            if cls._metrics:
                cls._metrics.record_env_load(key, False, None, None)
            return None

        value = cls._parse_bool(raw_value)
        if value is None:
            cls._record_error(key, f"{key}='{raw_value}' is not a valid boolean, ignoring")
            return None

        if cls._metrics:
            cls._metrics.record_env_load(key, True, value, None)
        return value

    @classmethod
    def _safe_str(
        cls,
        key: str,
        default: str,
        required: bool = False,
    ) -> str:
        """Safely get string from environment."""
        cls._init_metrics()

        value = os.getenv(key, default)
        from_env = key in os.environ

        if cls._metrics:
            cls._metrics.record_env_load(key, from_env, value, default)

        if required and not value:
            error = f"Required environment variable {key} is not set"
            logging.error(error)
            if cls._metrics:
                cls._metrics.record_validation_error(key, error)

        return value

    @classmethod
    def _safe_path(cls, key: str, default: Path) -> Path:
        return Path(cls._safe_str(key, str(default))).expanduser()

    # =========================================================================
    # Configuration Loading
    # =========================================================================

    @classmethod
    def load(cls) -> None:
        """
        Load all configuration from environment variables with validation.

        Called automatically on module import; call again to pick up changes.
        """
        cls._init_metrics()

        cls.DISCORD_TOKEN = cls._safe_str("DISCORD_TOKEN", "", required=True)

        cls.CONFIG_FILE = cls._safe_path(
            "CRAFTLINK_CONFIG", cls.PROJECT_ROOT / "config" / "craftlink.yaml"
        )
        cls.MINECRAFT_SERVER_DIR = cls._safe_path("MINECRAFT_SERVER_DIR", Path("."))
        cls.LOGS_DIR = cls._safe_path("LOGS_DIR", cls.PROJECT_ROOT / "logs")

        cls.ENVIRONMENT = cls._safe_str("ENVIRONMENT", "development")
        cls.DEBUG = cls._safe_bool("DEBUG", False)
        cls.LOG_LEVEL = cls._safe_str("LOG_LEVEL", "INFO")
        cls.LOG_JSON = cls._safe_optional_bool("LOG_JSON")
        cls.LOG_COLORS = cls._safe_bool("LOG_COLORS", True)

        if cls._metrics:
            cls._metrics.last_reload = datetime.now(timezone.utc).isoformat()

    @classmethod
    def validate(cls) -> None:
        """
        Validate critical configuration values on startup.

        Problems are logged, never raised: a missing token only disables the
        Discord side of the bridge.
        """
        if cls._validated:
            return

        logger = logging.getLogger(__name__)

        if not cls.DISCORD_TOKEN:
            logger.warning("DISCORD_TOKEN is not set; Discord features will be unavailable")

        valid_log_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if cls.LOG_LEVEL.upper() not in valid_log_levels:
            logger.warning(f"Invalid LOG_LEVEL '{cls.LOG_LEVEL}', using INFO")
            cls.LOG_LEVEL = "INFO"

        if cls.is_production() and cls.DEBUG:
            logger.warning("DEBUG mode enabled in production!")

        cls._validated = True

        if cls._metrics:
            logger.info("Configuration loaded", extra=cls._metrics.get_summary())
            if cls._metrics.validation_errors:
                logger.warning(
                    "Configuration warnings",
                    extra={"validation_errors": cls._metrics.validation_errors},
                )

    # =========================================================================
    # Environment Checks
    # =========================================================================

    @classmethod
    def is_production(cls) -> bool:
        return cls.ENVIRONMENT.lower() == "production"

    # =========================================================================
    # Summary
    # =========================================================================

    @classmethod
    def get_config_summary(cls) -> Dict[str, Any]:
        """Get non-sensitive configuration summary for debugging."""
        return {
            "environment": cls.ENVIRONMENT,
            "debug": cls.DEBUG,
            "log_level": cls.LOG_LEVEL,
            "config_file": str(cls.CONFIG_FILE),
            "minecraft_server_dir": str(cls.MINECRAFT_SERVER_DIR),
            "discord_token_set": bool(cls.DISCORD_TOKEN),
        }

    @classmethod
    def reload_safe_configs(cls) -> None:
        """
        Reload non-critical configuration values at runtime.

        Reloads the token (so a reconnect can pick up a fixed token), log
        level and debug flag. File locations require a restart.
        """
        load_dotenv(override=True)
        logger = logging.getLogger(__name__)
        logger.info("Reloading safe configuration values...")

        cls.DISCORD_TOKEN = cls._safe_str("DISCORD_TOKEN", cls.DISCORD_TOKEN)
        cls.LOG_LEVEL = cls._safe_str("LOG_LEVEL", cls.LOG_LEVEL)
        cls.DEBUG = cls._safe_bool("DEBUG", cls.DEBUG)

        logger.info("Safe configuration values reloaded successfully")


# Load on import
Config.load()
