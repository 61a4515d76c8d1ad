"""Tests for speech providers."""
import json
from typing import List
from unittest.mock import patch

import httpx
import pytest
from gtts import gTTSError

from spelldrill.config import SpeechSettings
from spelldrill.services.speech_service import (
    ElevenLabsProvider,
    GTTSProvider,
    ProviderUnavailable,
    SpeechError,
    build_providers,
)


@pytest.fixture
def speech_settings() -> SpeechSettings:
    return SpeechSettings(
        elevenlabs_api_key="secret-key",
        elevenlabs_api_url="https://tts.example.com/",
        voice_id="voice-1",
        model_id="model-1",
    )


def make_client(requests: List[httpx.Request], status: int = 200, content: bytes = b"ID3audio") -> httpx.AsyncClient:
    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(status, content=content)

    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_elevenlabs_request(speech_settings: SpeechSettings) -> None:
    requests: List[httpx.Request] = []
    provider = ElevenLabsProvider(speech_settings, client=make_client(requests))

    audio = await provider.synthesize("because")

    assert audio == b"ID3audio"
    request = requests[0]
    assert request.method == "POST"
    assert str(request.url) == "https://tts.example.com/v1/text-to-speech/voice-1"
    assert request.headers["xi-api-key"] == "secret-key"
    assert request.headers["accept"] == "audio/mpeg"
    body = json.loads(request.content)
    assert body["text"] == "because"
    assert body["model_id"] == "model-1"
    assert body["voice_settings"] == {
        "stability": 0.35,
        "similarity_boost": 0.9,
        "style": 0.4,
        "use_speaker_boost": True,
    }


@pytest.mark.asyncio
async def test_elevenlabs_voice_override(speech_settings: SpeechSettings) -> None:
    requests: List[httpx.Request] = []
    provider = ElevenLabsProvider(speech_settings, client=make_client(requests))

    await provider.synthesize("friend", voice_id="other")

    assert requests[0].url.path == "/v1/text-to-speech/other"


@pytest.mark.asyncio
async def test_elevenlabs_error_status(speech_settings: SpeechSettings) -> None:
    requests: List[httpx.Request] = []
    provider = ElevenLabsProvider(speech_settings, client=make_client(requests, 401, b"invalid key"))

    with pytest.raises(SpeechError, match="401 invalid key"):
        await provider.synthesize("because")


@pytest.mark.asyncio
async def test_elevenlabs_empty_audio(speech_settings: SpeechSettings) -> None:
    provider = ElevenLabsProvider(speech_settings, client=make_client([], content=b""))

    with pytest.raises(SpeechError):
        await provider.synthesize("because")


@pytest.mark.asyncio
async def test_elevenlabs_network_error(speech_settings: SpeechSettings) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    provider = ElevenLabsProvider(speech_settings, client=client)

    with pytest.raises(SpeechError, match="request failed"):
        await provider.synthesize("because")


@pytest.mark.asyncio
async def test_elevenlabs_without_key(speech_settings: SpeechSettings) -> None:
    speech_settings.elevenlabs_api_key = ""
    requests: List[httpx.Request] = []
    provider = ElevenLabsProvider(speech_settings, client=make_client(requests))

    assert not provider.is_configured()
    with pytest.raises(ProviderUnavailable):
        await provider.synthesize("because")
    assert requests == []


@pytest.mark.asyncio
async def test_elevenlabs_blank_text(speech_settings: SpeechSettings) -> None:
    provider = ElevenLabsProvider(speech_settings, client=make_client([]))

    with pytest.raises(SpeechError):
        await provider.synthesize("  ")


@pytest.mark.asyncio
async def test_elevenlabs_keeps_injected_client_open(speech_settings: SpeechSettings) -> None:
    client = make_client([])
    provider = ElevenLabsProvider(speech_settings, client=client)

    await provider.aclose()

    assert not client.is_closed
    await client.aclose()


@pytest.mark.asyncio
async def test_elevenlabs_closes_own_client(speech_settings: SpeechSettings) -> None:
    provider = ElevenLabsProvider(speech_settings)
    client = provider.client

    await provider.aclose()

    assert client.is_closed


@pytest.mark.asyncio
async def test_gtts_synthesize() -> None:
    provider = GTTSProvider(SpeechSettings(fallback_lang="en", fallback_tld="co.uk"))

    with patch("spelldrill.services.speech_service.gTTS") as mock_gtts:
        mock_gtts.return_value.write_to_fp.side_effect = lambda fp: fp.write(b"mp3data")
        audio = await provider.synthesize("friend")

    assert audio == b"mp3data"
    mock_gtts.assert_called_once_with(text="friend", lang="en", tld="co.uk")


@pytest.mark.asyncio
async def test_gtts_failure() -> None:
    provider = GTTSProvider(SpeechSettings(fallback_lang="en"))

    with patch("spelldrill.services.speech_service.gTTS") as mock_gtts:
        mock_gtts.return_value.write_to_fp.side_effect = gTTSError("429 Too Many Requests")
        with pytest.raises(SpeechError, match="gTTS failed"):
            await provider.synthesize("friend")


@pytest.mark.asyncio
async def test_gtts_unsupported_language() -> None:
    provider = GTTSProvider(SpeechSettings(fallback_lang="not-a-language"))

    assert not provider.is_configured()
    with pytest.raises(ProviderUnavailable):
        await provider.synthesize("friend")


@pytest.mark.asyncio
async def test_speak_plays_synthesized_audio(channel, speech_settings: SpeechSettings) -> None:
    provider = ElevenLabsProvider(speech_settings, client=make_client([], content=b"because"))

    await provider.speak("because", channel)

    assert channel.played == ["because"]


def test_build_providers_order(speech_settings: SpeechSettings) -> None:
    providers = build_providers(speech_settings)

    assert [p.name for p in providers] == ["elevenlabs", "gtts"]
    assert all(p.settings is speech_settings for p in providers)


def test_gtts_needs_no_key() -> None:
    provider = GTTSProvider(SpeechSettings(elevenlabs_api_key="", fallback_lang="en"))
    assert provider.is_configured()
