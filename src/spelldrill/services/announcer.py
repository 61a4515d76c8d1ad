"""Announcer: sequences speech for session directives."""
import asyncio
import logging
import random
import time
from dataclasses import dataclass
from typing import Iterable, List, Optional, Union

from spelldrill.config import SpeechSettings, settings
from spelldrill.models.announcement_models import Directive, DirectiveType
from spelldrill.monitoring import announcement_duration, speech_requests
from spelldrill.services.speech_service import AudioChannel, SpeechError, SpeechProvider, build_providers

logger = logging.getLogger(__name__)

INTRO_PHRASE = "The next word is:"
CORRECT_LINES = ["Great job!", "Well done!", "Excellent!", "Nice work!", "Awesome spelling!"]
RETRY_LINES = [
    "That's okay. Let's try again.",
    "Almost there. Give it another try.",
    "Good effort! Listen carefully and try once more.",
    "You can do it. Try again.",
]
COPY_LINE = "Let's copy the word, {word}."
COPY_FOLLOW_UP = "You can try this word again later."

# A step is either a phrase to speak or a pause in seconds
Step = Union[str, float]


@dataclass
class VoiceStatus:
    """Result of the network voice capability check."""
    enabled: bool
    provider: str
    notice: str = ""


class Announcer:
    """Turns directives into speech on a single audio channel.

    Each call to ``announce`` starts a new turn: the unfinished announcements of
    the previous turn are cancelled and the channel is stopped before the new
    directives run, strictly in order, in a background task.
    """

    def __init__(
        self,
        channel: AudioChannel,
        providers: Optional[List[SpeechProvider]] = None,
        speech_settings: Optional[SpeechSettings] = None,
        rng: Optional[random.Random] = None,
    ):
        self.channel = channel
        self.settings = speech_settings or settings.speech
        self.providers = providers if providers is not None else build_providers(self.settings)
        self.rng = rng or random.Random()
        self._task: Optional[asyncio.Task] = None

    @property
    def busy(self) -> bool:
        return self._task is not None and not self._task.done()

    def check_voice(self) -> VoiceStatus:
        """Report whether the preferred (network) voice is configured."""
        if not self.providers:
            return VoiceStatus(enabled=False, provider="none", notice="No voice is available.")

        primary = self.providers[0]
        if primary.is_configured():
            return VoiceStatus(enabled=True, provider=primary.name)

        fallback = next((p for p in self.providers[1:] if p.is_configured()), None)
        provider = fallback.name if fallback else "none"
        logger.info(f"Voice check: {primary.name} not configured, using {provider}")
        return VoiceStatus(
            enabled=False,
            provider=provider,
            notice=f"Enhanced voice ({primary.name}) is not configured. Using the {provider} voice instead.",
        )

    async def speak(self, text: str) -> bool:
        """Speak text with the first provider that succeeds.

        Returns False when every provider failed; failures are logged, never raised.
        """
        if not self.channel.available:
            logger.debug(f"No audio channel, skipping speech: {text!r}")
            return False

        for provider in self.providers:
            try:
                await provider.speak(text, self.channel)
            except SpeechError as e:
                logger.warning(f"Speech provider {provider.name} failed, trying next: {e}")
                speech_requests.labels(provider=provider.name, outcome="failure").inc()
                continue
            speech_requests.labels(provider=provider.name, outcome="success").inc()
            return True

        logger.warning(f"All speech providers failed for: {text!r}")
        return False

    def expand(self, directive: Directive) -> List[Step]:
        """Phrases and pauses that make up a directive."""
        if directive.type == DirectiveType.ANNOUNCE_WORD_WITH_INTRO:
            return [INTRO_PHRASE, self.settings.intro_pause, directive.word]
        if directive.type == DirectiveType.ANNOUNCE_WORD:
            return [directive.word]
        if directive.type == DirectiveType.ENCOURAGE_CORRECT:
            return [self.rng.choice(CORRECT_LINES)]
        if directive.type == DirectiveType.ENCOURAGE_RETRY:
            return [self.rng.choice(RETRY_LINES)]
        if directive.type == DirectiveType.ENCOURAGE_COPY:
            return [COPY_LINE.format(word=directive.word), self.settings.copy_pause, COPY_FOLLOW_UP]
        raise ValueError(f"Unknown directive: {directive.type}")

    def plan(self, directives: Iterable[Directive]) -> List[Step]:
        """Flatten directives into steps, pausing between consecutive directives."""
        steps: List[Step] = []
        for directive in directives:
            if steps:
                steps.append(self.settings.directive_pause)
            steps.extend(self.expand(directive))
        return steps

    async def cancel(self) -> None:
        """Cancel the running turn and stop playback."""
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()
            await asyncio.wait([task])
            logger.debug("Cancelled previous announcement")
        await self.channel.stop()

    async def announce(self, directives: Iterable[Directive]) -> Optional[asyncio.Task]:
        """Start a new turn for the directives, replacing the previous one."""
        steps = self.plan(directives)
        await self.cancel()
        if not steps:
            return None
        self._task = asyncio.create_task(self._run(steps))
        return self._task

    async def _run(self, steps: List[Step]) -> None:
        started = time.monotonic()
        for step in steps:
            if isinstance(step, str):
                await self.speak(step)
            elif step > 0:
                await asyncio.sleep(step)
        announcement_duration.observe(time.monotonic() - started)

    async def wait(self) -> None:
        """Wait for the current turn to finish."""
        task = self._task
        if task is not None:
            await asyncio.wait([task])

    async def close(self) -> None:
        """Cancel speech and release providers."""
        await self.cancel()
        for provider in self.providers:
            await provider.aclose()
