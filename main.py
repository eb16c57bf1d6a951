"""
main.py — Single entry point.

Runs the size chart web server on one asyncio event loop:
  asyncio event loop
    └── aiohttp web server  (/ajax lookup, product fragment, health)
"""
import asyncio
import logging
import signal
import sys

import config
from media_library import MediaLibrary
from nonces import NonceManager
from settings_store import ProductSettingsStore
from size_chart import ChartLookupService

# Log file lives in the same data/ directory as the database so that a single
# Docker volume mount (./data:/app/data) captures both.
config.DATA_DIR.mkdir(parents=True, exist_ok=True)

logging.basicConfig(
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    level=logging.INFO,
    handlers=[
        logging.StreamHandler(sys.stdout),
        logging.FileHandler(str(config.DATA_DIR / "size_chart.log"), encoding="utf-8"),
    ],
)
logging.getLogger("aiohttp.access").setLevel(logging.WARNING)

logger = logging.getLogger(__name__)


def build_service() -> ChartLookupService:
    return ChartLookupService(
        settings=ProductSettingsStore(),
        media=MediaLibrary(),
        nonces=NonceManager(),
    )


async def run() -> None:
    import database as _db
    try:
        await _db.init_db()
    except Exception as exc:
        logger.critical("FATAL: database init failed: %s", exc, exc_info=True)
        raise

    from chart_server import start_server
    runner = await start_server(build_service())

    stop_event = asyncio.Event()

    def _stop(*_):
        logger.info("Shutdown signal received.")
        stop_event.set()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, _stop)
        except (NotImplementedError, RuntimeError):
            # Windows doesn't support add_signal_handler for all signals
            pass

    logger.info("Size chart server is running. Press Ctrl+C to stop.")
    await stop_event.wait()

    logger.info("Shutting down…")
    await runner.cleanup()
    logger.info("Goodbye.")


def main() -> None:
    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
