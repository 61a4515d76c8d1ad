"""Models for drill session state and its persisted snapshot."""
import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from spelldrill.config import MAX_TRIES


logger = logging.getLogger(__name__)

SNAPSHOT_VERSION = 1


class SnapshotError(ValueError):
    """Raised when a persisted snapshot is missing, corrupt or inconsistent."""


class Phase(Enum):
    """Session phases."""
    PRACTICING = "practice"
    COMPLETE = "complete"  # queue emptied, terminal until reset


@dataclass
class WordItem:
    """A word of the drill set."""
    id: int
    text: str
    incorrect_attempts: int = 0


@dataclass
class AttemptState:
    """Progress on the word at the front of the queue."""
    tries_left: int = MAX_TRIES
    revealed: bool = False
    draft_answer: str = ""


@dataclass
class SessionStatus:
    """Read-only view of the session for the user interface."""
    current_word: Optional[WordItem]
    mastered_count: int
    remaining: int
    total: int
    total_mistakes: int
    current_word_mistakes: int
    tries_left: int
    revealed: bool
    phase: Phase
    draft_answer: str

    @property
    def progress(self) -> float:
        """Share of mastered words, 0..1."""
        return self.mastered_count / self.total if self.total else 0.0


def _pick(data: Dict[str, Any], *keys: str, default: Any = None) -> Any:
    """Return the first present key; older snapshots used camelCase names."""
    for key in keys:
        if data.get(key) is not None:
            return data[key]
    return default


def _as_int(value: Any, name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise SnapshotError(f"{name} must be an integer, got {value!r}")
    return value


def _as_id_list(value: Any, name: str) -> List[int]:
    if not isinstance(value, list):
        raise SnapshotError(f"{name} must be a list, got {type(value).__name__}")
    return [_as_int(item, name) for item in value]


@dataclass
class SessionSnapshot:
    """Serializable representation of the full session state."""
    words: List[WordItem]
    queue_ids: List[int] = field(default_factory=list)
    mastered_ids: List[int] = field(default_factory=list)
    tries_left: int = MAX_TRIES
    revealed: bool = False
    draft_answer: str = ""
    phase: Phase = Phase.PRACTICING
    version: int = SNAPSHOT_VERSION

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-compatible dictionary."""
        return {
            "version": self.version,
            "words": [
                {"id": w.id, "text": w.text, "incorrect_attempts": w.incorrect_attempts}
                for w in self.words
            ],
            "queue_ids": list(self.queue_ids),
            "mastered_ids": list(self.mastered_ids),
            "tries_left": self.tries_left,
            "revealed": self.revealed,
            "draft_answer": self.draft_answer,
            "phase": self.phase.value,
        }

    def to_json(self) -> str:
        """Serialize to a JSON string."""
        return json.dumps(self.to_dict(), ensure_ascii=False)

    @classmethod
    def from_dict(cls, data: Any) -> "SessionSnapshot":
        """Create a snapshot from stored data.

        Snapshots written by the first trainer release are accepted too: their
        word entries carry no ids (ids follow list position) and their keys are
        camelCase (``queue``, ``masteredIds``, ``triesLeft``, ``reveal``,
        ``answer``).

        Raises:
            SnapshotError: if the data is missing fields, has wrong types or
                describes a state the engine can never reach.
        """
        if not isinstance(data, dict):
            raise SnapshotError("snapshot must be a mapping")

        raw_words = data.get("words")
        if not isinstance(raw_words, list) or not raw_words:
            raise SnapshotError("snapshot has no words")

        words = []
        for index, raw in enumerate(raw_words):
            if not isinstance(raw, dict) or not isinstance(raw.get("text"), str):
                raise SnapshotError(f"invalid word entry at position {index}")
            words.append(WordItem(
                id=_as_int(raw.get("id", index + 1), "word id"),
                text=raw["text"],
                incorrect_attempts=_as_int(
                    _pick(raw, "incorrect_attempts", "incorrectAttempts", default=0),
                    "incorrect_attempts",
                ),
            ))

        draft_answer = _pick(data, "draft_answer", "answer", default="")
        if not isinstance(draft_answer, str):
            raise SnapshotError("draft_answer must be a string")

        revealed = _pick(data, "revealed", "reveal", default=False)
        if not isinstance(revealed, bool):
            raise SnapshotError("revealed must be a boolean")

        queue_ids = _as_id_list(_pick(data, "queue_ids", "queue", default=[]), "queue_ids")

        # Old snapshots have no phase; it follows from the queue
        raw_phase = _pick(data, "phase")
        if raw_phase is None:
            phase = Phase.PRACTICING if queue_ids else Phase.COMPLETE
        else:
            try:
                phase = Phase(raw_phase)
            except ValueError as e:
                raise SnapshotError(str(e)) from e

        snapshot = cls(
            words=words,
            queue_ids=queue_ids,
            mastered_ids=_as_id_list(_pick(data, "mastered_ids", "masteredIds", default=[]), "mastered_ids"),
            tries_left=_as_int(_pick(data, "tries_left", "triesLeft", default=MAX_TRIES), "tries_left"),
            revealed=revealed,
            draft_answer=draft_answer,
            phase=phase,
            version=_as_int(data.get("version", SNAPSHOT_VERSION), "version"),
        )
        snapshot.validate()
        return snapshot

    @classmethod
    def from_json(cls, raw: Optional[str]) -> "SessionSnapshot":
        """Deserialize a JSON string produced by ``to_json``."""
        if not raw:
            raise SnapshotError("no saved snapshot")
        try:
            data = json.loads(raw)
        except (TypeError, ValueError) as e:
            raise SnapshotError(f"snapshot is not valid JSON: {e}") from e
        return cls.from_dict(data)

    def validate(self) -> None:
        """Check the invariants every reachable session state satisfies."""
        if not self.words:
            raise SnapshotError("snapshot has no words")

        word_ids = [w.id for w in self.words]
        known = set(word_ids)
        if len(known) != len(word_ids):
            raise SnapshotError("duplicate word ids")
        if any(not w.text.strip() for w in self.words):
            raise SnapshotError("blank word text")
        if any(w.incorrect_attempts < 0 for w in self.words):
            raise SnapshotError("negative mistake counter")

        queued = set(self.queue_ids)
        mastered = set(self.mastered_ids)
        if len(queued) != len(self.queue_ids) or len(mastered) != len(self.mastered_ids):
            raise SnapshotError("duplicate ids in queue or mastered set")
        if not queued <= known or not mastered <= known:
            raise SnapshotError("queue or mastered set references unknown word ids")
        if queued & mastered:
            raise SnapshotError("word ids both queued and mastered")
        if queued | mastered != known:
            raise SnapshotError("words missing from both queue and mastered set")

        if not 0 <= self.tries_left <= MAX_TRIES:
            raise SnapshotError(f"tries_left out of range: {self.tries_left}")
        if self.revealed != (self.tries_left == 0):
            raise SnapshotError("revealed flag does not match tries_left")

        expected_phase = Phase.COMPLETE if not self.queue_ids else Phase.PRACTICING
        if self.phase != expected_phase:
            raise SnapshotError(f"phase {self.phase.value} does not match queue length {len(self.queue_ids)}")
