"""
Configuration subsystem for CraftLink.

Static vs Dynamic Configuration
--------------------------------
**Static (Config):**
- Loaded from environment variables (.env supported) at import
- Includes: Discord token, config file location, Minecraft server directory,
  logging flags
- Changes require a restart, except `Config.reload_safe_configs()`

**Dynamic (ConfigManager, in `craftlink.managers.config`):**
- Loaded from built-in defaults merged with the YAML config file
- Validated against `CRAFTLINK_SCHEMA` plus semantic checks
- Reloadable at runtime through `Supervisor.reload()`
"""

from craftlink.core.config.config import Config
from craftlink.core.config.errors import (
    ConfigError,
    ConfigLoadError,
    ConfigValidationError,
)
from craftlink.core.config.validator import CRAFTLINK_SCHEMA, ConfigSchema

__all__ = [
    "Config",
    "ConfigError",
    "ConfigLoadError",
    "ConfigValidationError",
    "ConfigSchema",
    "CRAFTLINK_SCHEMA",
]
