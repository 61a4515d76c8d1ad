"""Speech providers and the audio channel they play on."""
import asyncio
import io
import logging
from abc import ABC, abstractmethod
from typing import Optional

import httpx
from gtts import gTTS, gTTSError
from gtts.lang import tts_langs

from spelldrill.config import SpeechSettings, settings

logger = logging.getLogger(__name__)


class SpeechError(Exception):
    """A provider could not produce or play speech."""


class ProviderUnavailable(SpeechError):
    """The provider is not configured or has no voice for the language."""


class AudioChannel(ABC):
    """The single audio output. At most one clip plays at a time."""

    @property
    def available(self) -> bool:
        """Whether there is anywhere to play audio right now."""
        return True

    @abstractmethod
    async def play(self, audio: bytes) -> None:
        """Play an MP3 clip, returning once playback has finished.

        Raises:
            SpeechError: if the clip could not be played.
        """
        raise NotImplementedError("Subclasses must implement this method")

    @abstractmethod
    async def stop(self) -> None:
        """Stop whatever is playing."""
        raise NotImplementedError("Subclasses must implement this method")


class SpeechProvider(ABC):
    """A text-to-speech backend. Providers are ranked into a fallback chain."""
    name: str = "base"

    def is_configured(self) -> bool:
        return True

    @abstractmethod
    async def synthesize(self, text: str) -> bytes:
        """Produce MP3 audio for the text.

        Raises:
            SpeechError: if no audio could be produced.
        """
        raise NotImplementedError("Subclasses must implement this method")

    async def speak(self, text: str, channel: AudioChannel) -> None:
        """Synthesize the text and play it to completion."""
        audio = await self.synthesize(text)
        await channel.play(audio)

    async def aclose(self) -> None:
        """Release provider resources."""


class ElevenLabsProvider(SpeechProvider):
    """High quality network voice."""
    name = "elevenlabs"

    def __init__(self, speech_settings: Optional[SpeechSettings] = None, client: Optional[httpx.AsyncClient] = None):
        self.settings = speech_settings or settings.speech
        self._client = client
        self._owns_client = client is None

    def is_configured(self) -> bool:
        return bool(self.settings.elevenlabs_api_key)

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.settings.request_timeout)
        return self._client

    def _build_request_body(self, text: str) -> dict:
        return {
            "text": text,
            "model_id": self.settings.model_id,
            "voice_settings": {
                "stability": self.settings.stability,
                "similarity_boost": self.settings.similarity_boost,
                "style": self.settings.style,
                "use_speaker_boost": self.settings.use_speaker_boost,
            },
        }

    async def synthesize(self, text: str, voice_id: Optional[str] = None) -> bytes:
        if not self.is_configured():
            raise ProviderUnavailable("ElevenLabs API key not configured")
        if not text or not text.strip():
            raise SpeechError("Missing or invalid text")

        vid = voice_id or self.settings.voice_id
        url = f"{self.settings.elevenlabs_api_url.rstrip('/')}/v1/text-to-speech/{vid}"
        logger.debug(f"Requesting ElevenLabs speech for: {text!r}, voice: {vid}")
        try:
            response = await self.client.post(
                url,
                headers={
                    "xi-api-key": self.settings.elevenlabs_api_key,
                    "content-type": "application/json",
                    "accept": "audio/mpeg",
                },
                json=self._build_request_body(text),
            )
        except httpx.HTTPError as e:
            raise SpeechError(f"ElevenLabs request failed: {e}") from e

        if not response.is_success:
            raise SpeechError(f"ElevenLabs API error: {response.status_code} {response.text}")
        if not response.content:
            raise SpeechError("ElevenLabs returned no audio")

        logger.debug(f"Received audio data, size: {len(response.content)} bytes")
        return response.content

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None


class GTTSProvider(SpeechProvider):
    """Fallback voice that needs no credentials."""
    name = "gtts"

    def __init__(self, speech_settings: Optional[SpeechSettings] = None):
        self.settings = speech_settings or settings.speech

    def is_configured(self) -> bool:
        return self.settings.fallback_lang in tts_langs()

    def _synthesize_sync(self, text: str) -> bytes:
        buffer = io.BytesIO()
        tts = gTTS(text=text, lang=self.settings.fallback_lang, tld=self.settings.fallback_tld)
        tts.write_to_fp(buffer)
        return buffer.getvalue()

    async def synthesize(self, text: str) -> bytes:
        if not self.is_configured():
            raise ProviderUnavailable(f"No gTTS voice for language {self.settings.fallback_lang!r}")
        try:
            audio = await asyncio.to_thread(self._synthesize_sync, text)
        except (gTTSError, AssertionError, ValueError) as e:
            raise SpeechError(f"gTTS failed: {e}") from e
        if not audio:
            raise SpeechError("gTTS returned no audio")
        return audio


def build_providers(speech_settings: Optional[SpeechSettings] = None) -> list[SpeechProvider]:
    """Ranked provider chain: network voice first, fallback voice second."""
    speech_settings = speech_settings or settings.speech
    return [ElevenLabsProvider(speech_settings), GTTSProvider(speech_settings)]
