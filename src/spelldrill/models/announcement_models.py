"""Models for announcement directives and session events."""
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional


class DirectiveType(Enum):
    """What the announcer should say."""
    ANNOUNCE_WORD_WITH_INTRO = "announce_word_with_intro"  # first presentation of a word
    ANNOUNCE_WORD = "announce_word"  # bare word, used on retry and replay
    ENCOURAGE_CORRECT = "encourage_correct"
    ENCOURAGE_RETRY = "encourage_retry"
    ENCOURAGE_COPY = "encourage_copy"  # word revealed, copy it


class SessionEvent(Enum):
    """Events emitted by session transitions."""
    WORD_CHANGED = "word_changed"
    CORRECT = "correct"
    CELEBRATE = "celebrate"
    TRY_AGAIN = "try_again"
    REVEAL = "reveal"
    COMPLETE = "complete"


@dataclass(frozen=True)
class Directive:
    """A single unit of announcement work."""
    type: DirectiveType
    word: Optional[str] = None


@dataclass
class TransitionResult:
    """Outcome of a session transition."""
    changed: bool = False
    events: List[SessionEvent] = field(default_factory=list)
    directives: List[Directive] = field(default_factory=list)

    def has(self, event: SessionEvent) -> bool:
        return event in self.events
