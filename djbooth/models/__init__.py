"""
Models package for DJ Booth.

This package contains shared Pydantic data models used across different services.
"""

from .session_models import (
    PlaybackPhase,
    TrackSpec,
    PlaylistDraft,
    TrackMetadata,
    Track,
    DJSession,
)

__all__ = [
    "PlaybackPhase",
    "TrackSpec",
    "PlaylistDraft",
    "TrackMetadata",
    "Track",
    "DJSession",
]
