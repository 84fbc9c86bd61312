"""
Shared models for DJ session data.

This module contains the Pydantic models that describe tracks, generated
playlists and the listening session, ensuring a consistent representation
between the providers, the orchestrator and the presentation layer.
"""

from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field


class PlaybackPhase(str, Enum):
    """Single live value of the playback state machine."""
    IDLE = "IDLE"
    LOADING_SESSION = "LOADING_SESSION"
    PLAYING_COMMENTARY = "PLAYING_COMMENTARY"
    PLAYING_TRACK = "PLAYING_TRACK"
    PAUSED = "PAUSED"


class TrackSpec(BaseModel):
    """A track as proposed by the content provider, before enrichment."""
    title: str = Field(default="Unknown Title", description="Song title")
    artist: str = Field(default="Unknown Artist", description="Performing artist")
    album: Optional[str] = Field(default=None, description="Album name if the model gave one")
    mood_tag: str = Field(default="Vibe", description="Short mood label, e.g. 'Gritty' or 'Chill'")
    reason: Optional[str] = Field(default=None, description="Why the AI picked this track")

    @property
    def query(self) -> str:
        """Metadata lookup query ("title artist")."""
        return f"{self.title} {self.artist}"


class PlaylistDraft(BaseModel):
    """Result of a playlist generation request."""
    tracks: List[TrackSpec] = Field(default_factory=list)
    intro_script: str = Field(default="Welcome to your personalized session.")


class TrackMetadata(BaseModel):
    """Enriched metadata returned by a track metadata provider."""
    title: str
    artist: str
    album: str
    cover_url: str = ""
    preview_url: Optional[str] = Field(default=None, description="Playable audio locator, if any")
    duration_estimate: float = Field(default=30.0, description="Estimated playable duration in seconds")


class Track(BaseModel):
    """An enriched, playable track. Immutable once constructed."""
    model_config = ConfigDict(frozen=True)

    track_id: str = Field(description="Opaque unique identifier")
    title: str
    artist: str
    album: str = "Unknown Album"
    duration: float = Field(description="Duration estimate in seconds")
    cover_url: str = ""
    mood_tag: str = "Vibe"
    reason: Optional[str] = None
    preview_url: Optional[str] = Field(
        default=None, description="Playable audio locator; None means the fallback audio is used"
    )

    def __str__(self) -> str:
        return f"{self.artist} - {self.title}"

    def summary(self) -> str:
        """Short human-readable description used in prompts."""
        return f'"{self.title}" by {self.artist}'


class DJSession(BaseModel):
    """
    One listening session, created per start_session call.

    The track list is fixed at creation. The cursor only moves forward and the
    history only ever contains ids from the original track list.
    """
    mood: str
    tracks: List[Track] = Field(default_factory=list)
    current_track_index: int = -1
    history: List[str] = Field(default_factory=list, description="IDs of played tracks, in play order")

    def record_play(self, track: Track) -> None:
        """Advance the cursor to the given track and append it to the history."""
        for index, candidate in enumerate(self.tracks):
            if candidate.track_id == track.track_id:
                break
        else:
            raise ValueError(f"Track {track.track_id} is not part of this session")

        if index <= self.current_track_index:
            raise ValueError(
                f"Cursor cannot move backwards ({self.current_track_index} -> {index})"
            )
        self.current_track_index = index
        self.history.append(track.track_id)
