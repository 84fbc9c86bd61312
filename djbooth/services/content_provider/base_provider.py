"""
Abstract Base Provider for DJ Content

This module defines the interface the session orchestrator uses to obtain
playlists, transition scripts and synthesized speech. Implementations are pure
request/response: no state relevant to the orchestrator is kept across calls.
"""

from abc import ABC, abstractmethod

from ...models.session_models import PlaylistDraft, Track
from ...utils.audio_utils import SpeechBuffer


class ContentProvider(ABC):
    """
    Abstract base class for DJ content providers.

    Providers handle:
    - Playlist and intro script generation from a mood prompt
    - Short interlude scripts between two tracks
    - Text-to-speech synthesis into a decoded SpeechBuffer

    Providers do NOT handle:
    - Track metadata enrichment (see track_metadata)
    - Any audio playback
    """

    @abstractmethod
    async def generate_playlist(self, mood: str) -> PlaylistDraft:
        """
        Generate a playlist and intro script for a mood.

        Raises:
            GenerationError: If the backend call fails or returns unparsable output
        """

    @abstractmethod
    async def generate_interlude_script(
        self, prev_track: Track, next_track: Track, mood: str
    ) -> str:
        """
        Generate a short transition script.

        Backend failures return a deterministic fallback string instead of
        raising; callers must still handle a raised error.
        """

    @abstractmethod
    async def generate_speech_audio(self, text: str) -> SpeechBuffer:
        """
        Synthesize speech for a script.

        Raises:
            SynthesisError: If no audio payload is returned
        """

    async def start(self) -> None:
        """Acquire network resources. Optional."""

    async def close(self) -> None:
        """Release network resources. Optional."""


def fallback_interlude(next_track: Track) -> str:
    """Script used when interlude generation fails."""
    return f"Next up is {next_track.title}."
