"""Tests for the main application."""
from typing import Generator
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from spelldrill.app import SpellDrillBot
from spelldrill.bot import CHANNEL_KEY, SESSION_KEY
from spelldrill.services.drill_service import DrillSession


@pytest.fixture
def mock_app() -> MagicMock:
    """Create mock application with async methods."""
    mock_app = AsyncMock()
    mock_app.initialize = AsyncMock()
    mock_app.start = AsyncMock()
    mock_app.updater = AsyncMock()
    mock_app.updater.start_polling = AsyncMock()
    mock_app.stop = AsyncMock()
    mock_app.shutdown = AsyncMock()
    mock_app.add_handler = MagicMock()
    mock_app.bot = MagicMock()
    mock_app.bot_data = {}
    return mock_app


@pytest.fixture
def bot(mock_app: MagicMock) -> Generator[SpellDrillBot, None, None]:
    """Create a bot instance with a mocked Telegram application."""
    mock_builder = MagicMock()
    mock_builder.token.return_value.build.return_value = mock_app

    with patch("telegram.ext.Application.builder", return_value=mock_builder):
        yield SpellDrillBot()


@pytest.mark.asyncio
async def test_start(bot: SpellDrillBot, mock_app: MagicMock) -> None:
    """Test starting the bot."""
    await bot.start()

    assert bot.running
    assert bot.application is mock_app
    assert isinstance(mock_app.bot_data[SESSION_KEY], DrillSession)
    assert mock_app.bot_data[CHANNEL_KEY].bot is mock_app.bot
    assert mock_app.add_handler.call_count == 6
    assert bot.session.engine.initialized
    mock_app.initialize.assert_awaited_once()
    mock_app.updater.start_polling.assert_awaited_once()

    await bot.stop()


@pytest.mark.asyncio
async def test_stop(bot: SpellDrillBot, mock_app: MagicMock) -> None:
    """Test stopping the bot."""
    await bot.start()
    await bot.stop()

    assert not bot.running
    assert bot.application is None
    assert bot.session is None
    assert bot.db is None
    mock_app.updater.stop.assert_awaited_once()
    mock_app.shutdown.assert_awaited_once()


@pytest.mark.asyncio
async def test_stop_without_start(bot: SpellDrillBot, mock_app: MagicMock) -> None:
    await bot.stop()
    mock_app.shutdown.assert_not_called()


@pytest.mark.asyncio
async def test_start_failure_cleans_up(bot: SpellDrillBot, mock_app: MagicMock) -> None:
    mock_app.initialize.side_effect = RuntimeError("network down")

    with pytest.raises(RuntimeError):
        await bot.start()

    assert not bot.running
    assert bot.application is None
    assert bot.db is None
