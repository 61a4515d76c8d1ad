"""Session engine: word ordering, retry/reveal policy and mastery tracking."""
import logging
import random
import re
from typing import Any, Dict, List, Optional, Sequence, TypeVar, Union

from spelldrill.models.announcement_models import (
    Directive,
    DirectiveType,
    SessionEvent,
    TransitionResult,
)
from spelldrill.models.session_models import (
    AttemptState,
    Phase,
    SessionSnapshot,
    SessionStatus,
    SnapshotError,
    WordItem,
)


logger = logging.getLogger(__name__)

T = TypeVar("T")

SnapshotSource = Union[SessionSnapshot, Dict[str, Any], str]

_WHITESPACE = re.compile(r"\s+")


def shuffle(items: Sequence[T], rng: Optional[random.Random] = None) -> List[T]:
    """Return a uniformly random permutation of items (Fisher-Yates)."""
    rng = rng or random
    result = list(items)
    for i in range(len(result) - 1, 0, -1):
        j = rng.randint(0, i)
        result[i], result[j] = result[j], result[i]
    return result


def normalize(text: str) -> str:
    """Trim, lowercase and collapse whitespace runs to single spaces."""
    return _WHITESPACE.sub(" ", text.strip().lower())


class SessionEngine:
    """State machine of a spelling drill session.

    Owns the word set, the queue of words still to master, the mastered ids and
    the attempt state of the word at the front of the queue. Transitions never
    perform I/O; each returns a ``TransitionResult`` describing the emitted
    events and the announcements the caller should make.
    """

    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()
        self.word_texts: List[str] = []
        self.words: List[WordItem] = []
        self.queue: List[int] = []
        self.mastered: List[int] = []
        self.attempt = AttemptState()
        self.phase = Phase.PRACTICING
        self.initialized = False
        self.restored = False
        self._by_id: Dict[int, WordItem] = {}

    @property
    def current_word(self) -> Optional[WordItem]:
        """The word at the front of the queue, if any."""
        if not self.queue:
            return None
        return self._by_id[self.queue[0]]

    @property
    def total_mistakes(self) -> int:
        return sum(w.incorrect_attempts for w in self.words)

    def initialize(self, words: Sequence[str], snapshot: Optional[SnapshotSource] = None) -> TransitionResult:
        """Start a session, restoring the snapshot when one is given and valid.

        A snapshot that cannot be restored is logged and replaced by a fresh
        session over ``words``; restoration problems never reach the caller.
        """
        self.word_texts = [text.strip() for text in words if text.strip()]

        if snapshot is not None:
            try:
                self._adopt(self._coerce_snapshot(snapshot))
                logger.info(
                    f"Session restored: {len(self.mastered)}/{len(self.words)} mastered, "
                    f"{len(self.queue)} queued"
                )
                return self._initial_result()
            except SnapshotError as e:
                logger.info(f"Could not restore session, starting fresh: {e}")

        self._start_fresh()
        return self._initial_result()

    @staticmethod
    def _coerce_snapshot(snapshot: SnapshotSource) -> SessionSnapshot:
        if isinstance(snapshot, SessionSnapshot):
            snapshot.validate()
            return snapshot
        if isinstance(snapshot, str):
            return SessionSnapshot.from_json(snapshot)
        return SessionSnapshot.from_dict(snapshot)

    def _adopt(self, snapshot: SessionSnapshot) -> None:
        self._set_words([
            WordItem(id=w.id, text=w.text, incorrect_attempts=w.incorrect_attempts)
            for w in snapshot.words
        ])
        self.queue = list(snapshot.queue_ids)
        self.mastered = list(snapshot.mastered_ids)
        self.attempt = AttemptState(
            tries_left=snapshot.tries_left,
            revealed=snapshot.revealed,
            draft_answer=snapshot.draft_answer,
        )
        self.phase = snapshot.phase
        self.initialized = True
        self.restored = True

    def _start_fresh(self) -> None:
        if not self.word_texts:
            raise ValueError("Cannot start a drill session without words")

        self._set_words([
            WordItem(id=i + 1, text=text) for i, text in enumerate(self.word_texts)
        ])
        self.queue = shuffle([w.id for w in self.words], self.rng)
        self.mastered = []
        self.attempt = AttemptState()
        self.phase = Phase.PRACTICING
        self.initialized = True
        self.restored = False
        logger.info(f"Fresh session started with {len(self.words)} words")

    def _set_words(self, words: List[WordItem]) -> None:
        self.words = words
        self._by_id = {w.id: w for w in words}

    def _initial_result(self) -> TransitionResult:
        result = TransitionResult(changed=True)
        current = self.current_word
        if current is None:
            self.phase = Phase.COMPLETE
            result.events.append(SessionEvent.COMPLETE)
            return result

        result.events.append(SessionEvent.WORD_CHANGED)
        # A restored word in revealed mode waits for the explicit advance
        if not self.attempt.revealed:
            result.directives.append(Directive(DirectiveType.ANNOUNCE_WORD_WITH_INTRO, current.text))
        return result

    def update_draft(self, text: str) -> TransitionResult:
        """Store the learner's draft answer."""
        if self.phase != Phase.PRACTICING or text == self.attempt.draft_answer:
            return TransitionResult()
        self.attempt.draft_answer = text
        return TransitionResult(changed=True)

    def submit_answer(self, raw_text: Optional[str] = None) -> TransitionResult:
        """Check an answer against the current word.

        Uses the stored draft when ``raw_text`` is None. Blank answers, answers
        after completion and answers while the word is revealed change nothing.
        """
        text = self.attempt.draft_answer if raw_text is None else raw_text
        current = self.current_word
        if self.phase != Phase.PRACTICING or current is None or not text.strip():
            return TransitionResult()
        if self.attempt.revealed:
            logger.debug(f"Ignoring answer for revealed word {current.id}")
            return TransitionResult()

        if normalize(text) == normalize(current.text):
            return self._master(current)
        return self._miss(current)

    def _master(self, current: WordItem) -> TransitionResult:
        logger.debug(f"Word {current.id} mastered")
        self.mastered.append(current.id)
        self.queue.pop(0)
        self.attempt = AttemptState()

        result = TransitionResult(
            changed=True,
            events=[SessionEvent.CORRECT, SessionEvent.CELEBRATE],
            directives=[Directive(DirectiveType.ENCOURAGE_CORRECT)],
        )
        self._present_next(result)
        return result

    def _miss(self, current: WordItem) -> TransitionResult:
        current.incorrect_attempts += 1
        result = TransitionResult(changed=True)

        if self.attempt.tries_left > 1:
            self.attempt.tries_left -= 1
            logger.debug(f"Wrong answer for word {current.id}, {self.attempt.tries_left} tries left")
            result.events.append(SessionEvent.TRY_AGAIN)
            result.directives.extend([
                Directive(DirectiveType.ENCOURAGE_RETRY),
                Directive(DirectiveType.ANNOUNCE_WORD, current.text),
            ])
        else:
            logger.debug(f"Wrong answer for word {current.id}, revealing it")
            self.attempt.tries_left = 0
            self.attempt.revealed = True
            result.events.append(SessionEvent.REVEAL)
            result.directives.append(Directive(DirectiveType.ENCOURAGE_COPY, current.text))
        return result

    def advance_after_reveal(self) -> TransitionResult:
        """Move a revealed word to the end of the queue and present the next one."""
        if not self.attempt.revealed or not self.queue:
            logger.debug("Advance requested while no word is revealed, ignoring")
            return TransitionResult()

        self.queue.append(self.queue.pop(0))
        self.attempt = AttemptState()

        result = TransitionResult(changed=True)
        self._present_next(result)
        return result

    def _present_next(self, result: TransitionResult) -> None:
        current = self.current_word
        if current is None:
            self.phase = Phase.COMPLETE
            result.events.append(SessionEvent.COMPLETE)
            logger.info(f"Session complete with {self.total_mistakes} total mistakes")
            return
        result.events.append(SessionEvent.WORD_CHANGED)
        result.directives.append(Directive(DirectiveType.ANNOUNCE_WORD_WITH_INTRO, current.text))

    def reset(self) -> TransitionResult:
        """Discard all progress and start over with a new shuffle."""
        logger.info("Resetting session")
        self._start_fresh()
        return self._initial_result()

    def replay(self) -> TransitionResult:
        """Announce the current word again without changing state."""
        current = self.current_word
        if self.phase != Phase.PRACTICING or current is None:
            return TransitionResult()
        return TransitionResult(directives=[Directive(DirectiveType.ANNOUNCE_WORD, current.text)])

    def snapshot(self) -> SessionSnapshot:
        """Capture the full reconstructible state."""
        return SessionSnapshot(
            words=[
                WordItem(id=w.id, text=w.text, incorrect_attempts=w.incorrect_attempts)
                for w in self.words
            ],
            queue_ids=list(self.queue),
            mastered_ids=list(self.mastered),
            tries_left=self.attempt.tries_left,
            revealed=self.attempt.revealed,
            draft_answer=self.attempt.draft_answer,
            phase=self.phase,
        )

    def status(self) -> SessionStatus:
        current = self.current_word
        return SessionStatus(
            current_word=current,
            mastered_count=len(self.mastered),
            remaining=len(self.queue),
            total=len(self.words),
            total_mistakes=self.total_mistakes,
            current_word_mistakes=current.incorrect_attempts if current else 0,
            tries_left=self.attempt.tries_left,
            revealed=self.attempt.revealed,
            phase=self.phase,
            draft_answer=self.attempt.draft_answer,
        )
