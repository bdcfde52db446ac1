"""CraftLink: Minecraft server to Discord bridge."""

from craftlink.core.constants import VERSION

__version__ = VERSION
