"""Test configuration."""
import asyncio
import os
import random
from pathlib import Path
from typing import Dict, Generator, List

import pytest
from dotenv import load_dotenv
from faker import Faker
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

# Set test environment before any imports
os.environ["ENV"] = "test"

# Load test environment variables
test_env_path = Path(__file__).parent.parent.parent.parent / ".env.test"
load_dotenv(test_env_path)

# Import after environment setup
from spelldrill.config import SpeechSettings, ensure_directories
from spelldrill.models.base import Base
from spelldrill.models.models import SnapshotRecord  # noqa: F401
from spelldrill.services.announcer import Announcer
from spelldrill.services.speech_service import AudioChannel, SpeechError, SpeechProvider
from spelldrill.services.storage_service import SnapshotStore


class FakeChannel(AudioChannel):
    """Records what was played instead of producing sound."""

    def __init__(self, available: bool = True):
        self._available = available
        self.played: List[str] = []
        self.stop_count = 0

    @property
    def available(self) -> bool:
        return self._available

    async def play(self, audio: bytes) -> None:
        self.played.append(audio.decode())

    async def stop(self) -> None:
        self.stop_count += 1


class FakeProvider(SpeechProvider):
    """Provider returning the text itself as audio."""

    def __init__(self, name: str = "fake", fail: bool = False, configured: bool = True):
        self.name = name
        self.fail = fail
        self.configured = configured
        self.requests: List[str] = []
        self.closed = False
        # Texts whose synthesis waits until the event is set
        self.blockers: Dict[str, asyncio.Event] = {}
        self.started: Dict[str, asyncio.Event] = {}

    def is_configured(self) -> bool:
        return self.configured

    def block(self, text: str) -> asyncio.Event:
        self.started[text] = asyncio.Event()
        self.blockers[text] = asyncio.Event()
        return self.blockers[text]

    async def synthesize(self, text: str) -> bytes:
        self.requests.append(text)
        if text in self.blockers:
            self.started[text].set()
            await self.blockers[text].wait()
        if self.fail:
            raise SpeechError(f"{self.name} is down")
        return text.encode()

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture(autouse=True)
def setup_test_environment():
    """Set up test environment before each test."""
    # Ensure test directories exist
    ensure_directories()

    yield


@pytest.fixture
def fake() -> Faker:
    return Faker()


@pytest.fixture
def words(fake: Faker) -> List[str]:
    """Eight distinct lowercase words."""
    return [fake.unique.word() for _ in range(8)]


@pytest.fixture
def rng() -> random.Random:
    return random.Random(1234)


@pytest.fixture
def quiet_speech() -> SpeechSettings:
    """Speech settings without pauses."""
    return SpeechSettings(intro_pause=0, directive_pause=0, copy_pause=0)


@pytest.fixture
def channel() -> FakeChannel:
    return FakeChannel()


@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def announcer(channel: FakeChannel, provider: FakeProvider, quiet_speech: SpeechSettings) -> Announcer:
    return Announcer(channel, [provider], quiet_speech, rng=random.Random(0))


@pytest.fixture
def db() -> Generator[Session, None, None]:
    """Fresh in-memory database session for each test."""
    engine = create_engine("sqlite://")
    Base.metadata.create_all(bind=engine)
    db = sessionmaker(bind=engine)()
    try:
        yield db
    finally:
        db.close()
        engine.dispose()


@pytest.fixture
def store(db: Session) -> SnapshotStore:
    return SnapshotStore(db)


@pytest.fixture
def provider_factory():
    """Build providers with custom names and failure modes."""
    return FakeProvider


@pytest.fixture
def channel_factory():
    return FakeChannel
