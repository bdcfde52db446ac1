"""Startup banner written to the server console."""

from __future__ import annotations

from typing import List

from craftlink.core.constants import AUTHOR, PLUGIN_NAME, VERSION
from craftlink.host.base import ServerHost

FEATURES = (
    "Minecraft to Discord chat and event relay",
    "Live server status in a Discord channel",
    "Discord chat commands",
)

_RULE = "§a" + "=" * 44


def banner_lines() -> List[str]:
    return [
        _RULE,
        f"§b  {PLUGIN_NAME} §fv{VERSION}",
        f"§7  by {AUTHOR}",
        "§e  Features:",
        *(f"§f   - {feature}" for feature in FEATURES),
        _RULE,
    ]


def print_banner(host: ServerHost) -> None:
    for line in banner_lines():
        host.send_console(line)
