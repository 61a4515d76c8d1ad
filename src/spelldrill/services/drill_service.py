"""The process-wide drill session: engine, persistence and speech wired together."""
import asyncio
import logging
import random
from typing import List, Optional

from spelldrill.models.announcement_models import SessionEvent, TransitionResult
from spelldrill.models.session_models import SessionStatus
from spelldrill.monitoring import (
    incorrect_attempts,
    sessions_completed,
    sessions_started,
    words_mastered,
    words_revealed,
)
from spelldrill.services.announcer import Announcer
from spelldrill.services.session_service import SessionEngine
from spelldrill.services.storage_service import SnapshotStore

logger = logging.getLogger(__name__)


class DrillSession:
    """Service for running one spelling drill session.

    Commands are serialized with a lock so that two answers can never be
    checked against the same word concurrently. After every committed
    transition the snapshot is written and the announcements are handed to the
    announcer, which runs them in the background.
    """

    def __init__(
        self,
        store: SnapshotStore,
        announcer: Announcer,
        words: List[str],
        storage_key: str,
        rng: Optional[random.Random] = None,
    ):
        self.store = store
        self.announcer = announcer
        self.words = list(words)
        self.storage_key = storage_key
        self.engine = SessionEngine(rng)
        self._lock = asyncio.Lock()

    @property
    def status(self) -> SessionStatus:
        return self.engine.status()

    @property
    def pending(self) -> bool:
        """True while a command is being applied."""
        return self._lock.locked()

    async def init(self) -> TransitionResult:
        """Restore the saved session or start a fresh one."""
        async with self._lock:
            saved = self.store.get(self.storage_key)
            result = self.engine.initialize(self.words, saved)
            source = "restored" if self.engine.restored else "fresh"
            sessions_started.labels(source=source).inc()
            logger.info(f"Drill session initialized ({source}), phase: {self.engine.phase.value}")
            return await self._commit(result)

    async def update_draft(self, text: str) -> TransitionResult:
        async with self._lock:
            return await self._commit(self.engine.update_draft(text), announce=False)

    async def submit(self, text: Optional[str] = None) -> TransitionResult:
        """Check an answer; without text the stored draft is checked."""
        async with self._lock:
            return await self._commit(self.engine.submit_answer(text))

    async def advance(self) -> TransitionResult:
        async with self._lock:
            return await self._commit(self.engine.advance_after_reveal())

    async def reset(self) -> TransitionResult:
        async with self._lock:
            self.store.delete(self.storage_key)
            result = self.engine.reset()
            sessions_started.labels(source="reset").inc()
            return await self._commit(result)

    async def replay(self) -> TransitionResult:
        async with self._lock:
            return await self._commit(self.engine.replay())

    async def teardown(self) -> None:
        """Stop speech and write the final snapshot."""
        async with self._lock:
            await self.announcer.close()
            if self.engine.initialized:
                self._save()
            logger.info("Drill session torn down")

    def _save(self) -> None:
        self.store.set(self.storage_key, self.engine.snapshot().to_json())

    async def _commit(self, result: TransitionResult, announce: bool = True) -> TransitionResult:
        if result.changed:
            self._save()
        self._record(result)
        if announce and result.directives:
            await self.announcer.announce(result.directives)
        return result

    def _record(self, result: TransitionResult) -> None:
        if result.has(SessionEvent.CORRECT):
            words_mastered.inc()
        if result.has(SessionEvent.TRY_AGAIN) or result.has(SessionEvent.REVEAL):
            incorrect_attempts.inc()
        if result.has(SessionEvent.REVEAL):
            words_revealed.inc()
        # Only a correct answer completes a session; init may report COMPLETE too
        if result.has(SessionEvent.COMPLETE) and result.has(SessionEvent.CORRECT):
            sessions_completed.inc()
            logger.info(f"All {self.engine.status().total} words mastered")
