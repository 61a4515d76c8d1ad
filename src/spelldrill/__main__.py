"""Main entry point for the spelling drill bot."""
import asyncio
import logging

from spelldrill.app import SpellDrillBot
from spelldrill.config import ensure_directories
from spelldrill.logging_config import setup_logging

__version__ = "0.1.0"

logger = logging.getLogger(__name__)


def main() -> None:
    """Run the bot until interrupted."""
    ensure_directories()
    setup_logging(f"Starting SpellDrill v{__version__} ...")

    try:
        asyncio.run(SpellDrillBot().run_forever())
    except KeyboardInterrupt:
        logger.info("Received keyboard interrupt, shutting down...")


if __name__ == "__main__":
    main()
