"""
Unit tests for the OpenAI/ElevenLabs content provider.

Chat completions are mocked with aioresponses, ElevenLabs with an httpx
MockTransport.
"""

import asyncio
import json

import aiohttp
import httpx
import numpy as np
import pytest
from aioresponses import aioresponses

from djbooth.core.errors import ConfigurationError, GenerationError, SynthesisError
from djbooth.services.content_provider import OpenAIContentProvider, parse_playlist
from djbooth.services.track_metadata import build_track
from djbooth.models.session_models import TrackSpec

OPENAI_URL = "https://api.openai.com/v1/chat/completions"

PLAYLIST_JSON = {
    "introScript": "Lights low, windows down. This one's for the night owls.",
    "tracks": [
        {
            "title": "Nightcall",
            "artist": "Kavinsky",
            "album": "OutRun",
            "moodTag": "Neon",
            "reason": "The definitive midnight cruise",
        },
        {"title": "Midnight City", "artist": "M83"},
    ],
}


def chat_response(content):
    return {"choices": [{"message": {"role": "assistant", "content": content}}]}


def pcm_bytes(values):
    return np.array(values, dtype="<i2").tobytes()


@pytest.fixture
def test_config():
    return {
        "openai_api_key": "test-openai-key",
        "elevenlabs_api_key": "test-eleven-key",
        "voice_id": "voice-123",
    }


@pytest.fixture
def mock_responses():
    """Create a mock for aiohttp responses using aioresponses."""
    with aioresponses() as m:
        yield m


@pytest.fixture
def tts_requests():
    return []


@pytest.fixture
def tts_reply():
    """Mutable (status, body) the fake ElevenLabs endpoint answers with."""
    return {"status": 200, "content": pcm_bytes([0, 16384, -16384, 32767])}


@pytest.fixture
async def provider(test_config, tts_requests, tts_reply):
    def handler(request: httpx.Request) -> httpx.Response:
        tts_requests.append(request)
        return httpx.Response(tts_reply["status"], content=tts_reply["content"])

    client = httpx.AsyncClient(
        base_url="https://api.elevenlabs.io/v1",
        transport=httpx.MockTransport(handler),
    )
    provider = OpenAIContentProvider(test_config, http_client=client)
    await provider.start()
    yield provider
    await provider.close()
    await client.aclose()


def make_track(title, artist, index=0):
    return build_track(TrackSpec(title=title, artist=artist), f"track-test-{index}")


class TestConfiguration:
    def test_missing_keys_raise(self):
        with pytest.raises(ConfigurationError) as exc_info:
            OpenAIContentProvider({})
        assert "OPENAI_API_KEY" in str(exc_info.value)
        assert "ELEVENLABS_API_KEY" in str(exc_info.value)

    def test_missing_single_key_named(self):
        with pytest.raises(ConfigurationError) as exc_info:
            OpenAIContentProvider({"openai_api_key": "sk-test"})
        assert "OPENAI_API_KEY" not in str(exc_info.value)
        assert "ELEVENLABS_API_KEY" in str(exc_info.value)

    def test_defaults(self, test_config):
        provider = OpenAIContentProvider(test_config)
        assert provider.config.openai_model == "gpt-4.1-mini"
        assert provider.config.sample_rate == 24000
        assert provider.config.voice_id == "voice-123"


class TestParsePlaylist:
    def test_parses_tracks_and_intro(self):
        draft = parse_playlist(json.dumps(PLAYLIST_JSON))

        assert draft.intro_script.startswith("Lights low")
        assert [t.title for t in draft.tracks] == ["Nightcall", "Midnight City"]
        first = draft.tracks[0]
        assert first.album == "OutRun"
        assert first.mood_tag == "Neon"
        assert first.reason == "The definitive midnight cruise"

    def test_missing_fields_get_defaults(self):
        draft = parse_playlist(json.dumps({"tracks": [{}]}))

        track = draft.tracks[0]
        assert track.title == "Unknown Title"
        assert track.artist == "Unknown Artist"
        assert track.album is None
        assert track.mood_tag == "Vibe"
        assert draft.intro_script == "Welcome to your personalized session."

    def test_strips_markdown_fences(self):
        raw = "```json\n" + json.dumps(PLAYLIST_JSON) + "\n```"
        draft = parse_playlist(raw)
        assert len(draft.tracks) == 2

    @pytest.mark.parametrize("raw", ["not json at all", "[1, 2, 3]", "{\"tracks\": "])
    def test_invalid_json_raises(self, raw):
        with pytest.raises(GenerationError, match="not valid JSON"):
            parse_playlist(raw)

    @pytest.mark.parametrize("raw", ["", "{}", "{\"tracks\": []}", "{\"tracks\": [\"x\"]}"])
    def test_no_tracks_raises(self, raw):
        with pytest.raises(GenerationError, match="did not contain any tracks"):
            parse_playlist(raw)


class TestGeneratePlaylist:
    @pytest.mark.asyncio
    async def test_requests_json_mode_and_parses(self, provider, mock_responses):
        mock_responses.post(OPENAI_URL, payload=chat_response(json.dumps(PLAYLIST_JSON)))

        draft = await provider.generate_playlist("late night drive")

        assert len(draft.tracks) == 2
        (call,) = next(iter(mock_responses.requests.values()))
        body = call.kwargs["json"]
        assert body["model"] == "gpt-4.1-mini"
        assert body["response_format"] == {"type": "json_object"}
        assert "late night drive" in body["messages"][0]["content"]
        assert call.kwargs["headers"]["Authorization"] == "Bearer test-openai-key"

    @pytest.mark.asyncio
    async def test_http_error_raises_generation_error(self, provider, mock_responses):
        mock_responses.post(OPENAI_URL, status=500, body="upstream exploded")

        with pytest.raises(GenerationError, match="500"):
            await provider.generate_playlist("late night drive")

    @pytest.mark.asyncio
    async def test_connection_error_raises_generation_error(self, provider, mock_responses):
        mock_responses.post(OPENAI_URL, exception=aiohttp.ClientConnectionError("refused"))

        with pytest.raises(GenerationError):
            await provider.generate_playlist("late night drive")

    @pytest.mark.asyncio
    async def test_timeout_raises_generation_error(self, provider, mock_responses):
        mock_responses.post(OPENAI_URL, exception=asyncio.TimeoutError())

        with pytest.raises(GenerationError, match="timed out"):
            await provider.generate_playlist("late night drive")

    @pytest.mark.asyncio
    async def test_unparsable_content_raises(self, provider, mock_responses):
        mock_responses.post(OPENAI_URL, payload=chat_response("Sure! Here are some songs..."))

        with pytest.raises(GenerationError):
            await provider.generate_playlist("late night drive")

    @pytest.mark.asyncio
    async def test_missing_choices_raises(self, provider, mock_responses):
        mock_responses.post(OPENAI_URL, payload={"error": "nope"})

        with pytest.raises(GenerationError, match="no message content"):
            await provider.generate_playlist("late night drive")


class TestInterludeScript:
    @pytest.mark.asyncio
    async def test_returns_stripped_script(self, provider, mock_responses):
        mock_responses.post(OPENAI_URL, payload=chat_response("  Kavinsky into M83, pure neon.  "))
        prev, nxt = make_track("Nightcall", "Kavinsky", 0), make_track("Midnight City", "M83", 1)

        script = await provider.generate_interlude_script(prev, nxt, "late night drive")

        assert script == "Kavinsky into M83, pure neon."
        (call,) = next(iter(mock_responses.requests.values()))
        prompt = call.kwargs["json"]["messages"][0]["content"]
        assert '"Nightcall" by Kavinsky' in prompt
        assert '"Midnight City" by M83' in prompt
        assert "response_format" not in call.kwargs["json"]

    @pytest.mark.asyncio
    async def test_backend_failure_uses_fallback(self, provider, mock_responses):
        mock_responses.post(OPENAI_URL, status=503)
        prev, nxt = make_track("Nightcall", "Kavinsky", 0), make_track("Midnight City", "M83", 1)

        script = await provider.generate_interlude_script(prev, nxt, "late night drive")

        assert script == "Next up is Midnight City."

    @pytest.mark.asyncio
    async def test_empty_script_uses_fallback(self, provider, mock_responses):
        mock_responses.post(OPENAI_URL, payload=chat_response("   "))
        prev, nxt = make_track("A", "B", 0), make_track("C", "D", 1)

        assert await provider.generate_interlude_script(prev, nxt, "x") == "Next up is C."


class TestSpeechAudio:
    @pytest.mark.asyncio
    async def test_decodes_pcm_payload(self, provider, tts_requests):
        buffer = await provider.generate_speech_audio("Hello night owls")

        assert buffer.sample_rate == 24000
        assert buffer.samples.dtype == np.float32
        np.testing.assert_allclose(buffer.samples[:3], [0.0, 0.5, -0.5])
        assert buffer.duration_seconds == pytest.approx(4 / 24000)

        (request,) = tts_requests
        assert request.url.path == "/v1/text-to-speech/voice-123"
        assert request.url.params["output_format"] == "pcm_24000"
        body = json.loads(request.content)
        assert body["text"] == "Hello night owls"
        assert body["model_id"] == "eleven_turbo_v2"
        assert body["voice_settings"]["stability"] == 0.60
        assert body["voice_settings"]["speed"] == 1.0

    @pytest.mark.asyncio
    async def test_speed_is_clamped(self, test_config, tts_requests, tts_reply):
        def handler(request):
            tts_requests.append(request)
            return httpx.Response(200, content=tts_reply["content"])

        async with httpx.AsyncClient(
            base_url="https://api.elevenlabs.io/v1", transport=httpx.MockTransport(handler)
        ) as client:
            provider = OpenAIContentProvider({**test_config, "speed": 3.0}, http_client=client)
            await provider.generate_speech_audio("fast")

        assert json.loads(tts_requests[0].content)["voice_settings"]["speed"] == 1.2

    @pytest.mark.asyncio
    async def test_empty_audio_raises(self, provider, tts_reply):
        tts_reply["content"] = b""

        with pytest.raises(SynthesisError, match="No audio data"):
            await provider.generate_speech_audio("Hello")

    @pytest.mark.asyncio
    async def test_http_error_raises(self, provider, tts_reply):
        tts_reply["status"] = 401
        tts_reply["content"] = b'{"detail": "invalid api key"}'

        with pytest.raises(SynthesisError, match="401"):
            await provider.generate_speech_audio("Hello")

    @pytest.mark.asyncio
    async def test_synthesis_error_is_a_generation_error(self, provider, tts_reply):
        tts_reply["content"] = b""

        with pytest.raises(GenerationError):
            await provider.generate_speech_audio("Hello")

    @pytest.mark.asyncio
    async def test_connection_error_raises(self, test_config):
        def handler(request):
            raise httpx.ConnectError("unreachable", request=request)

        async with httpx.AsyncClient(
            base_url="https://api.elevenlabs.io/v1", transport=httpx.MockTransport(handler)
        ) as client:
            provider = OpenAIContentProvider(test_config, http_client=client)
            with pytest.raises(SynthesisError, match="connecting"):
                await provider.generate_speech_audio("Hello")
