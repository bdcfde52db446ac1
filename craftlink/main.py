"""
CraftLink - Application Entry Point
===================================

Bootstrap
---------
- Logging and static config validation
- Host adapter (log tailer) for the Minecraft server directory
- Supervisor start (managers, listener)
- Signal handling: SIGTERM/SIGINT disable, SIGHUP reload
- Graceful shutdown once the host asks to disable the plugin
"""

import asyncio
import signal
import sys
from typing import Optional, Set

from craftlink.core.config.config import Config
from craftlink.core.logging.logger import get_logger, setup_logging, shutdown_logging
from craftlink.host.log_tail import LogTailHost
from craftlink.supervisor.supervisor import Supervisor

logger = get_logger(__name__)

_background_tasks: Set[asyncio.Task] = set()


# ============================================================================
# Signals
# ============================================================================

def _install_signal_handlers(
    loop: asyncio.AbstractEventLoop,
    supervisor: Supervisor,
    host: LogTailHost,
) -> None:
    """Stop on SIGTERM/SIGINT, reload on SIGHUP."""

    def _reload() -> None:
        task = loop.create_task(supervisor.reload())
        _background_tasks.add(task)
        task.add_done_callback(_background_tasks.discard)

    handlers = (
        (signal.SIGTERM, host.disable_plugin),
        (signal.SIGINT, host.disable_plugin),
        (getattr(signal, "SIGHUP", None), _reload),
    )
    for signum, callback in handlers:
        if signum is None:
            continue
        try:
            loop.add_signal_handler(signum, callback)
            logger.debug(f"{signum.name} handler installed")
        except NotImplementedError:
            logger.debug(f"{signum.name} not supported on this platform (likely Windows)")


# ============================================================================
# Application Entrypoint
# ============================================================================

async def main(
    host: Optional[LogTailHost] = None,
    supervisor: Optional[Supervisor] = None,
) -> int:
    """
    CraftLink entry point.

    `host` and `supervisor` default to the real log tailer and managers.

    Lifecycle:
        1. Set up logging, validate static configuration
        2. Start the Supervisor (managers + event listener)
        3. Replay and tail the server log until disabled (signal or fatal
           startup error); the status updater waits for the replay
        4. Stop the Supervisor, the tailer and logging
    """
    setup_logging()
    Config.validate()
    logger.info("Static configuration loaded", extra={"config": Config.get_config_summary()})

    if host is None:
        host = LogTailHost(Config.MINECRAFT_SERVER_DIR)
    if supervisor is None:
        supervisor = Supervisor(host)
    started = False

    try:
        started = await supervisor.start()

        if started:
            host.configure(**supervisor.config_manager.section("minecraft"))
            await host.start()
            _install_signal_handlers(asyncio.get_running_loop(), supervisor, host)

        await host.wait_disabled()

    except asyncio.CancelledError:
        logger.warning("Asyncio task cancellation received; shutting down gracefully.")
        raise

    finally:
        await supervisor.stop()
        await host.stop()
        logger.info("========== SHUTDOWN COMPLETE ==========")
        shutdown_logging()

    return 0 if started else 1


def run() -> None:
    """Console script entry point."""
    try:
        exit_code = asyncio.run(main())
    except KeyboardInterrupt:
        exit_code = 0
    sys.exit(exit_code)


if __name__ == "__main__":
    run()
