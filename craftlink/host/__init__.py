"""Host adapters: the bridge between the Supervisor and a Minecraft server."""

from craftlink.host.base import HostListener, ServerHost
from craftlink.host.log_tail import LogTailHost, parse_log_line

__all__ = ["HostListener", "ServerHost", "LogTailHost", "parse_log_line"]
