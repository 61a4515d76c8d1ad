"""Main application entry point."""
import asyncio
import logging
import signal
from typing import Optional

from telegram.ext import Application

from spelldrill.bot import CHANNEL_KEY, SESSION_KEY, TelegramAudioChannel, register_handlers
from spelldrill.config import settings
from spelldrill.models.base import SessionLocal, init_db
from spelldrill.monitoring import start_monitoring
from spelldrill.services.announcer import Announcer
from spelldrill.services.drill_service import DrillSession
from spelldrill.services.storage_service import SnapshotStore
from spelldrill.services.word_service import load_words


class SpellDrillBot:
    """Main application class."""

    def __init__(self):
        """Initialize the application."""
        self.application: Optional[Application] = None
        self.session: Optional[DrillSession] = None
        self.running = False
        self.db = None
        self.logger = logging.getLogger(__name__)

    async def start(self) -> None:
        """Start the application."""
        if self.running:
            return

        try:
            settings.validate()

            # Initialize database
            init_db()
            self.db = SessionLocal()
            self.logger.info("Database initialized")

            if settings.monitoring.port:
                start_monitoring(settings.monitoring.port)
                self.logger.info(f"Metrics exported on port {settings.monitoring.port}")

            # Create application
            self.application = Application.builder().token(settings.bot.token).build()
            self.logger.info("Application created")

            # Create the drill session with its audio channel
            channel = TelegramAudioChannel(self.application.bot, settings.bot.chat_id)
            self.session = DrillSession(
                store=SnapshotStore(self.db),
                announcer=Announcer(channel),
                words=load_words(),
                storage_key=settings.session.storage_key,
            )
            self.application.bot_data[SESSION_KEY] = self.session
            self.application.bot_data[CHANNEL_KEY] = channel

            register_handlers(self.application, settings.bot.chat_id)
            self.logger.info("Handlers added")

            # Start application
            await self.application.initialize()
            await self.session.init()
            await self.application.start()
            await self.application.updater.start_polling()
            self.logger.info("Application started")

            self.running = True

        except Exception as e:
            self.logger.error("Failed to start application: %s", str(e))
            await self._shutdown()
            raise

    async def stop(self) -> None:
        """Stop the application."""
        if not self.running:
            return
        await self._shutdown()

    async def _shutdown(self) -> None:
        try:
            # Final snapshot write
            if self.session:
                await self.session.teardown()
                self.session = None
                self.logger.info("Drill session saved")

            # Stop application
            if self.application:
                if self.application.updater and self.application.updater.running:
                    await self.application.updater.stop()
                if self.application.running:
                    await self.application.stop()
                await self.application.shutdown()
                self.application = None
                self.logger.info("Application stopped")

            # Close database session
            if self.db:
                self.db.close()
                self.db = None
                self.logger.info("Database session closed")

        finally:
            self.running = False

    async def run_forever(self) -> None:
        """Start, wait for SIGINT/SIGTERM, then stop."""
        loop = asyncio.get_running_loop()
        stop_event = asyncio.Event()

        for sig in (signal.SIGTERM, signal.SIGINT):
            try:
                loop.add_signal_handler(sig, stop_event.set)
            except NotImplementedError:
                # Signal handlers are unavailable on some platforms
                pass

        await self.start()
        try:
            await stop_event.wait()
            self.logger.info("Received exit signal, shutting down...")
        finally:
            await self.stop()
