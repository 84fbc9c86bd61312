"""
Abstract Base Provider for Track Metadata

A metadata provider turns a "title artist" query into enriched metadata
(cover art, playable preview locator, duration estimate). Returning None means
"use placeholder metadata"; providers never raise to the caller.
"""

import logging
from abc import ABC, abstractmethod
from typing import Optional

from ...models.session_models import TrackMetadata


class TrackMetadataProvider(ABC):
    """Abstract base class for track metadata providers."""

    def __init__(self, provider_name: str):
        self.provider_name = provider_name
        self.logger = logging.getLogger(f"djbooth.track_metadata.{provider_name}")

    @abstractmethod
    async def resolve(self, query: str) -> Optional[TrackMetadata]:
        """
        Resolve a query to track metadata.

        Args:
            query: Search query, "title artist"

        Returns:
            TrackMetadata, or None when the lookup misses or fails
        """

    async def cleanup(self) -> None:
        """Release provider resources. Optional."""
