"""
Spotify Track Metadata Provider

Looks tracks up in the Spotify catalog using the client-credentials flow (no
user authorization needed) and prefers results that carry a 30-second preview
URL, since that is the only audio the Web API exposes.
"""

import asyncio
from typing import Any, Dict, Optional

import spotipy
from pydantic import BaseModel, Field
from spotipy.exceptions import SpotifyException
from spotipy.oauth2 import SpotifyClientCredentials

from ...core.errors import ConfigurationError, MetadataLookupError
from ...models.session_models import TrackMetadata
from .base_provider import TrackMetadataProvider


class SpotifyMetadataConfig(BaseModel):
    """Configuration for the Spotify metadata provider."""
    client_id: str = Field(description="Spotify application client ID")
    client_secret: str = Field(description="Spotify application client secret")
    search_limit: int = Field(default=10, description="Search results to consider per query")
    preview_duration_seconds: float = Field(
        default=30.0, description="Duration estimate for preview clips"
    )
    timeout_seconds: int = Field(default=10, description="HTTP timeout for Spotify requests")


class SpotifyMetadataProvider(TrackMetadataProvider):
    """Spotify Web API metadata lookup."""

    def __init__(self, config: Dict[str, Any], client: Optional[spotipy.Spotify] = None):
        """
        Args:
            config: Values for SpotifyMetadataConfig
            client: Optional pre-built spotipy client (tests inject a mock)

        Raises:
            ConfigurationError: If the client id or secret is missing
        """
        super().__init__("spotify")
        self.config = SpotifyMetadataConfig(**config)

        if not self.config.client_id or not self.config.client_secret:
            raise ConfigurationError("Spotify client ID and secret are required")

        self._spotify_client = client

    def _get_client(self) -> spotipy.Spotify:
        if self._spotify_client is None:
            auth_manager = SpotifyClientCredentials(
                client_id=self.config.client_id,
                client_secret=self.config.client_secret,
            )
            self._spotify_client = spotipy.Spotify(
                auth_manager=auth_manager,
                requests_timeout=self.config.timeout_seconds,
            )
        return self._spotify_client

    def _search_spotify(self, query: str) -> Dict[str, Any]:
        """Blocking search call; run it in an executor."""
        try:
            return self._get_client().search(q=query, type="track", limit=self.config.search_limit)
        except SpotifyException as e:
            raise MetadataLookupError(f"Spotify API error {e.http_status}: {e.msg}") from e

    async def resolve(self, query: str) -> Optional[TrackMetadata]:
        loop = asyncio.get_running_loop()
        try:
            results = await loop.run_in_executor(None, self._search_spotify, query)
            items = (results or {}).get("tracks", {}).get("items") or []
            if not items:
                raise MetadataLookupError(f"No Spotify results for {query!r}")
            return self._spotify_track_to_metadata(self._pick_item(items))
        except Exception as e:
            self.logger.warning(f"Spotify search failed for {query!r}: {e}")
            return None

    @staticmethod
    def _pick_item(items):
        """First result with a preview URL, else the first result (visuals only)."""
        for item in items:
            if item.get("preview_url"):
                return item
        return items[0]

    def _spotify_track_to_metadata(self, spotify_track: Dict[str, Any]) -> TrackMetadata:
        album_info = spotify_track.get("album") or {}
        images = album_info.get("images") or []
        artists = spotify_track.get("artists") or []

        return TrackMetadata(
            title=spotify_track.get("name") or "Unknown Title",
            artist=", ".join(a["name"] for a in artists) or "Unknown Artist",
            album=album_info.get("name") or "Unknown Album",
            cover_url=images[0].get("url", "") if images else "",
            preview_url=spotify_track.get("preview_url"),
            duration_estimate=self.config.preview_duration_seconds,
        )

    async def cleanup(self) -> None:
        self._spotify_client = None
