"""Fake content and metadata providers."""
import asyncio
from typing import Dict, List, Optional

import numpy as np

from djbooth.models.session_models import PlaylistDraft, Track, TrackMetadata, TrackSpec
from djbooth.services.content_provider import ContentProvider
from djbooth.services.track_metadata import TrackMetadataProvider
from djbooth.utils.audio_utils import SpeechBuffer

from .base_mock import BaseMockService


def make_specs(count: int) -> List[TrackSpec]:
    return [
        TrackSpec(
            title=f"Song {i}",
            artist=f"Artist {i}",
            mood_tag="Chill" if i % 2 else "Gritty",
            reason=f"Reason {i}",
        )
        for i in range(count)
    ]


def make_buffer(seconds: float = 1.0, sample_rate: int = 24000) -> SpeechBuffer:
    return SpeechBuffer(
        samples=np.zeros(int(seconds * sample_rate), dtype=np.float32),
        sample_rate=sample_rate,
    )


class FakeContentProvider(ContentProvider, BaseMockService):
    """
    Content provider with canned results.

    Set a *_error attribute to make that call raise. Set a *_gate event to
    hold that call in flight until the test sets it.
    """

    def __init__(
        self,
        specs: Optional[List[TrackSpec]] = None,
        intro: str = "Welcome to the session.",
        interlude: str = "Here comes a good one.",
    ) -> None:
        BaseMockService.__init__(self)
        self.specs = specs if specs is not None else make_specs(3)
        self.intro = intro
        self.interlude = interlude

        self.playlist_error: Optional[Exception] = None
        self.interlude_error: Optional[Exception] = None
        self.speech_error: Optional[Exception] = None

        self.playlist_gate: Optional[asyncio.Event] = None
        self.interlude_gate: Optional[asyncio.Event] = None

    async def generate_playlist(self, mood: str) -> PlaylistDraft:
        self.record_call("generate_playlist", mood)
        if self.playlist_gate is not None:
            await self.playlist_gate.wait()
        if self.playlist_error is not None:
            raise self.playlist_error
        return PlaylistDraft(tracks=list(self.specs), intro_script=self.intro)

    async def generate_interlude_script(self, prev_track: Track, next_track: Track, mood: str) -> str:
        self.record_call("generate_interlude_script", prev_track, next_track, mood)
        if self.interlude_gate is not None:
            await self.interlude_gate.wait()
        if self.interlude_error is not None:
            raise self.interlude_error
        return self.interlude

    async def generate_speech_audio(self, text: str) -> SpeechBuffer:
        self.record_call("generate_speech_audio", text)
        if self.speech_error is not None:
            raise self.speech_error
        return make_buffer()

    async def start(self) -> None:
        self.record_call("start")

    async def close(self) -> None:
        self.record_call("close")


class FakeMetadataProvider(TrackMetadataProvider, BaseMockService):
    """Returns metadata from a query -> TrackMetadata map; None for misses."""

    def __init__(self, results: Optional[Dict[str, Optional[TrackMetadata]]] = None) -> None:
        TrackMetadataProvider.__init__(self, "fake")
        BaseMockService.__init__(self)
        self.results = results or {}

    async def resolve(self, query: str) -> Optional[TrackMetadata]:
        self.record_call("resolve", query)
        return self.results.get(query)
