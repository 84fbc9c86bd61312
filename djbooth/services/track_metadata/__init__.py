"""
Track metadata lookup and enrichment.
"""

from .base_provider import TrackMetadataProvider
from .enrichment import PLACEHOLDER_ALBUM, build_track, enrich_tracks
from .spotify_provider import SpotifyMetadataConfig, SpotifyMetadataProvider

__all__ = [
    "TrackMetadataProvider",
    "SpotifyMetadataConfig",
    "SpotifyMetadataProvider",
    "PLACEHOLDER_ALBUM",
    "build_track",
    "enrich_tracks",
]
