"""Main entry point for multibot.

Initializes logging in two phases (defaults then settings-driven),
builds every configured bot, starts them, and waits until SIGTERM /
SIGINT (or normal exit) triggers an orderly, idempotent shutdown.

Key functions:
    build_bots: Instantiate the configured bots, skipping broken ones.
    main: Async entry point.
    run: Synchronous wrapper used by the ``multibot`` console script.
"""

import asyncio
import signal
from typing import List, Optional

import structlog

from . import __version__
from .logging_config import setup_logging, shutdown_logging


def build_bots(settings, logger=None) -> list:
    """Instantiate every enabled bot.

    A bot whose construction fails (e.g. duplicate command names) is
    logged and skipped; the others still start.
    """
    from .bots import BOTS
    from .exceptions import MultibotError

    logger = logger or structlog.get_logger("multibot")
    wanted: Optional[List[str]] = settings.enabled_bots
    names = wanted if wanted is not None else list(BOTS)

    bots = []
    for name in names:
        bot_cls = BOTS.get(name)
        if bot_cls is None:
            logger.error("unknown_bot", bot=name, known=sorted(BOTS))
            continue
        try:
            bots.append(bot_cls(settings))
        except MultibotError as e:
            logger.critical("bot_construction_failed", bot=name, error=str(e))
    return bots


async def _start_bot(bot, logger) -> None:
    try:
        await bot.start()
    except asyncio.CancelledError:
        raise
    except Exception as e:
        logger.error(
            "bot_start_failed",
            bot=bot.name,
            error=str(e),
            error_type=type(e).__name__,
        )


async def _start_bots(bots, logger) -> None:
    await asyncio.gather(*(_start_bot(bot, logger) for bot in bots))
    logger.info("multibot_started", bots=[bot.name for bot in bots])


async def main(base_dir=None):
    """Main async entry point."""
    # Phase 1: defaults, cache_logger_on_first_use=False
    setup_logging()
    logger = structlog.get_logger("multibot")

    logger.info("multibot_starting", version=__version__)

    from .config import Settings

    settings = Settings(base_dir)
    settings.validate()

    # Phase 2: reconfigure with real settings
    setup_logging(settings)

    bots = build_bots(settings, logger)
    if not bots:
        logger.critical("no_bots_to_start")
        return

    loop = asyncio.get_running_loop()
    shutdown_event = asyncio.Event()

    def handle_shutdown(sig):
        if shutdown_event.is_set():
            logger.info("shutdown_already_in_progress", signal=sig.name)
            return
        logger.info("shutdown_signal_received", signal=sig.name)
        shutdown_event.set()

    installed = []
    for sig in (signal.SIGTERM, signal.SIGINT):
        try:
            loop.add_signal_handler(sig, handle_shutdown, sig)
            installed.append(sig)
        except NotImplementedError:
            # Windows: add_signal_handler not supported.
            if sig == signal.SIGINT:
                signal.signal(
                    signal.SIGINT,
                    lambda s, f: loop.call_soon_threadsafe(handle_shutdown, signal.SIGINT),
                )

    # A shutdown signal cancels startup if it is still running
    startup = asyncio.create_task(_start_bots(bots, logger), name="multibot-startup")
    try:
        await shutdown_event.wait()

        if not startup.done():
            logger.warning("startup_interrupted")
            startup.cancel()
        try:
            await startup
        except asyncio.CancelledError:
            pass

    except Exception as e:
        logger.critical("fatal_error", error=str(e), exc_info=True)
        raise
    finally:
        if not startup.done():
            startup.cancel()
            await asyncio.gather(startup, return_exceptions=True)
        logger.info("shutdown_starting")
        await asyncio.gather(
            *(bot.shutdown() for bot in bots), return_exceptions=True
        )
        for sig in installed:
            loop.remove_signal_handler(sig)
        logger.info("multibot_stopped")


def run():
    """Synchronous entry point for the ``multibot`` console script."""
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass
    finally:
        shutdown_logging()


if __name__ == "__main__":
    run()
