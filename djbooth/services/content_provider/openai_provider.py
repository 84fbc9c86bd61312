"""
OpenAI + ElevenLabs Content Provider

Playlists and interlude scripts come from the OpenAI chat completions API
(called over aiohttp). Speech comes from the ElevenLabs text-to-speech REST API
(called over httpx) as raw 16-bit PCM, which is decoded into a SpeechBuffer.
"""

import asyncio
import json
import logging
import re
from typing import Any, Dict, List, Optional

import aiohttp
import httpx
from pydantic import BaseModel, Field

from ...core.errors import ConfigurationError, GenerationError, SynthesisError
from ...models.session_models import PlaylistDraft, Track, TrackSpec
from ...utils.audio_utils import SpeechBuffer, decode_pcm16
from .base_provider import ContentProvider, fallback_interlude

logger = logging.getLogger("djbooth.content_provider")

_CODE_FENCE = re.compile(r"```(?:json)?\n?")

PLAYLIST_PROMPT = """You are a world-class radio DJ for a high-end music streaming service.
The listener wants a session with this vibe: "{mood}".

1. Create a playlist of {size} distinct songs that fit this vibe perfectly.
2. Write a short, punchy, 2-sentence intro script for yourself to start the session.
   Keep it cool, welcome the listener and mention the vibe. Do not use a "DJ:" prefix.

Respond with JSON only, in this format:
{{
  "introScript": "string",
  "tracks": [
    {{
      "title": "string",
      "artist": "string",
      "album": "string",
      "moodTag": "string (e.g. 'Gritty', 'Chill')",
      "reason": "string (short reason for selection)"
    }}
  ]
}}"""

INTERLUDE_PROMPT = """You are a DJ.
Current vibe: {mood}.
Just finished: {prev}.
Next up: {next}.

Write a very short (1-2 sentences), smooth transition script.
Mention a fun fact about the artist or why these songs fit together.
Make it sound conversational and cool. No "DJ:" prefix."""


class ContentProviderConfig(BaseModel):
    """Configuration for the OpenAI/ElevenLabs content provider."""
    openai_api_key: str = Field(default="", description="OpenAI API key")
    openai_model: str = Field(default="gpt-4.1-mini", description="Chat model")
    openai_api_url: str = Field(default="https://api.openai.com/v1/chat/completions")
    temperature: float = Field(default=0.8, description="Sampling temperature")
    playlist_size: int = Field(default=5, description="Tracks per generated playlist")

    elevenlabs_api_key: str = Field(default="", description="ElevenLabs API key")
    elevenlabs_base_url: str = Field(default="https://api.elevenlabs.io/v1")
    voice_id: str = Field(default="P9l1opNa5pWou2X5MwfB", description="ElevenLabs voice")
    model_id: str = Field(default="eleven_turbo_v2", description="ElevenLabs model")
    stability: float = Field(default=0.60, description="Voice stability (0.0-1.0)")
    similarity_boost: float = Field(default=0.85, description="Voice similarity boost (0.0-1.0)")
    speed: float = Field(default=1.0, description="Speech speed multiplier (0.7-1.2)")
    sample_rate: int = Field(default=24000, description="PCM sample rate requested from ElevenLabs")

    timeout_seconds: float = Field(default=30.0, description="Per-request timeout")


class OpenAIContentProvider(ContentProvider):
    """Content provider backed by OpenAI (text) and ElevenLabs (speech)."""

    def __init__(
        self,
        config: Optional[Dict[str, Any]] = None,
        session: Optional[aiohttp.ClientSession] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Args:
            config: Values for ContentProviderConfig
            session: Optional aiohttp session for the chat API (tests inject one)
            http_client: Optional httpx client for ElevenLabs (tests inject one)

        Raises:
            ConfigurationError: If either API key is missing
        """
        self._config = ContentProviderConfig(**(config or {}))

        missing = []
        if not self._config.openai_api_key:
            missing.append("OPENAI_API_KEY")
        if not self._config.elevenlabs_api_key:
            missing.append("ELEVENLABS_API_KEY")
        if missing:
            raise ConfigurationError(f"Missing credentials: {', '.join(missing)}")

        self._session = session
        self._owns_session = session is None
        self._client = http_client
        self._owns_client = http_client is None

    @property
    def config(self) -> ContentProviderConfig:
        return self._config

    async def start(self) -> None:
        if self._session is None:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self._config.timeout_seconds)
            )
        if self._client is None:
            # httpx logs every request at INFO
            logging.getLogger("httpx").setLevel(logging.WARNING)
            logging.getLogger("httpcore").setLevel(logging.WARNING)
            self._client = httpx.AsyncClient(
                base_url=self._config.elevenlabs_base_url,
                headers={"xi-api-key": self._config.elevenlabs_api_key},
                timeout=self._config.timeout_seconds,
            )

    async def close(self) -> None:
        if self._session is not None and self._owns_session:
            await self._session.close()
        if self._client is not None and self._owns_client:
            await self._client.aclose()
        self._session = None
        self._client = None

    # ------------------------------------------------------------------
    # Text generation
    # ------------------------------------------------------------------

    async def _chat_completion(self, messages: List[Dict[str, str]], json_mode: bool = False) -> str:
        """Run one non-streaming chat completion and return the message content."""
        if self._session is None:
            await self.start()

        request_data: Dict[str, Any] = {
            "model": self._config.openai_model,
            "messages": messages,
            "temperature": self._config.temperature,
        }
        if json_mode:
            request_data["response_format"] = {"type": "json_object"}

        headers = {
            "Authorization": f"Bearer {self._config.openai_api_key}",
            "Content-Type": "application/json",
        }

        try:
            async with self._session.post(
                self._config.openai_api_url, json=request_data, headers=headers
            ) as response:
                if response.status != 200:
                    error_text = await response.text()
                    raise GenerationError(
                        f"OpenAI API error {response.status}: {error_text[:200]}"
                    )
                data = await response.json()
        except aiohttp.ClientError as e:
            raise GenerationError(f"Error connecting to OpenAI API: {e}") from e
        except asyncio.TimeoutError as e:
            raise GenerationError("OpenAI API request timed out") from e

        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise GenerationError("OpenAI response had no message content") from e
        return content or ""

    async def generate_playlist(self, mood: str) -> PlaylistDraft:
        prompt = PLAYLIST_PROMPT.format(mood=mood, size=self._config.playlist_size)
        logger.info(f"Requesting playlist for mood: {mood!r}")
        raw = await self._chat_completion([{"role": "user", "content": prompt}], json_mode=True)
        draft = parse_playlist(raw)
        logger.info(f"Playlist generated with {len(draft.tracks)} tracks")
        return draft

    async def generate_interlude_script(self, prev_track: Track, next_track: Track, mood: str) -> str:
        prompt = INTERLUDE_PROMPT.format(
            mood=mood, prev=prev_track.summary(), next=next_track.summary()
        )
        try:
            script = await self._chat_completion([{"role": "user", "content": prompt}])
        except GenerationError as e:
            logger.warning(f"Interlude generation failed, using fallback: {e}")
            return fallback_interlude(next_track)

        script = script.strip()
        return script or fallback_interlude(next_track)

    # ------------------------------------------------------------------
    # Speech synthesis
    # ------------------------------------------------------------------

    async def generate_speech_audio(self, text: str) -> SpeechBuffer:
        if self._client is None:
            await self.start()

        speed = min(max(self._config.speed, 0.7), 1.2)
        payload = {
            "text": text,
            "model_id": self._config.model_id,
            "voice_settings": {
                "stability": self._config.stability,
                "similarity_boost": self._config.similarity_boost,
                "use_speaker_boost": True,
                "speed": speed,
            },
        }

        logger.info(f"Sending TTS request to ElevenLabs for text length: {len(text)}")
        try:
            response = await self._client.post(
                f"/text-to-speech/{self._config.voice_id}",
                params={"output_format": f"pcm_{self._config.sample_rate}"},
                json=payload,
            )
        except httpx.RequestError as e:
            raise SynthesisError(f"Error connecting to ElevenLabs API: {e}") from e

        if response.status_code != 200:
            raise SynthesisError(
                f"ElevenLabs API error {response.status_code}: {response.text[:200]}"
            )
        if not response.content:
            raise SynthesisError("No audio data returned from ElevenLabs")

        try:
            buffer = decode_pcm16(response.content, sample_rate=self._config.sample_rate)
        except ValueError as e:
            raise SynthesisError(f"Could not decode speech audio: {e}") from e

        logger.debug(f"Synthesized {buffer.duration_seconds:.1f}s of speech")
        return buffer


def parse_playlist(raw: str) -> PlaylistDraft:
    """
    Parse the model's playlist JSON into a PlaylistDraft.

    Markdown code fences are stripped first. Missing fields fall back to
    placeholder values.

    Raises:
        GenerationError: If the text is not a JSON object or lists no tracks
    """
    cleaned = _CODE_FENCE.sub("", raw or "").strip() or "{}"
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as e:
        logger.error(f"Failed to parse JSON: {cleaned[:200]}")
        raise GenerationError("AI response was not valid JSON.") from e

    if not isinstance(data, dict):
        raise GenerationError("AI response was not valid JSON.")

    tracks = []
    for item in data.get("tracks") or []:
        if not isinstance(item, dict):
            continue
        tracks.append(
            TrackSpec(
                title=item.get("title") or "Unknown Title",
                artist=item.get("artist") or "Unknown Artist",
                album=item.get("album") or None,
                mood_tag=item.get("moodTag") or item.get("mood_tag") or "Vibe",
                reason=item.get("reason") or None,
            )
        )

    if not tracks:
        raise GenerationError("AI response did not contain any tracks.")

    intro = data.get("introScript") or data.get("intro_script")
    if intro:
        return PlaylistDraft(tracks=tracks, intro_script=intro)
    return PlaylistDraft(tracks=tracks)
