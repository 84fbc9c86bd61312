"""
Turn generated TrackSpecs into immutable, playable Tracks.

Lookups run concurrently. A per-track miss never fails the playlist: the track
keeps its generated title and artist and gets placeholder art, no preview
locator and a simulated 3-4 minute duration.
"""

import asyncio
import logging
import random
import time
from typing import List, Optional

from ...models.session_models import Track, TrackMetadata, TrackSpec
from .base_provider import TrackMetadataProvider

logger = logging.getLogger("djbooth.track_metadata")

PLACEHOLDER_ALBUM = "Unknown Album"


def placeholder_cover(seed: int) -> str:
    return f"https://picsum.photos/seed/{seed}/400/400"


def build_track(
    spec: TrackSpec,
    track_id: str,
    metadata: Optional[TrackMetadata] = None,
    rng: Optional[random.Random] = None,
) -> Track:
    """Combine a generated spec with (optional) looked-up metadata."""
    if metadata is not None:
        return Track(
            track_id=track_id,
            title=metadata.title,
            artist=metadata.artist,
            album=metadata.album,
            duration=metadata.duration_estimate,
            cover_url=metadata.cover_url,
            mood_tag=spec.mood_tag,
            reason=spec.reason,
            preview_url=metadata.preview_url,
        )

    rng = rng or random
    return Track(
        track_id=track_id,
        title=spec.title,
        artist=spec.artist,
        album=spec.album or PLACEHOLDER_ALBUM,
        duration=float(180 + rng.randrange(60)),
        cover_url=placeholder_cover(rng.randrange(10000)),
        mood_tag=spec.mood_tag,
        reason=spec.reason,
        preview_url=None,
    )


async def enrich_tracks(
    specs: List[TrackSpec],
    provider: Optional[TrackMetadataProvider] = None,
    concurrency: Optional[int] = None,
    rng: Optional[random.Random] = None,
) -> List[Track]:
    """
    Resolve metadata for every spec and build the session's Tracks, in order.

    Args:
        specs: Generated track specs
        provider: Metadata provider; None means placeholders for every track
        concurrency: Max lookups in flight (None = unbounded)
        rng: Random source for placeholder values
    """
    stamp = int(time.time() * 1000)
    semaphore = asyncio.Semaphore(concurrency) if concurrency else None

    async def _lookup(spec: TrackSpec) -> Optional[TrackMetadata]:
        if provider is None:
            return None
        try:
            if semaphore is None:
                return await provider.resolve(spec.query)
            async with semaphore:
                return await provider.resolve(spec.query)
        except Exception as e:
            logger.warning(f"Metadata lookup raised for {spec.query!r}: {e}")
            return None

    results = await asyncio.gather(*(_lookup(spec) for spec in specs))

    tracks = [
        build_track(spec, f"track-{stamp}-{index}", metadata, rng)
        for index, (spec, metadata) in enumerate(zip(specs, results))
    ]
    misses = sum(1 for metadata in results if metadata is None)
    if misses:
        logger.info(f"Enriched {len(tracks)} tracks ({misses} with placeholder metadata)")
    else:
        logger.info(f"Enriched {len(tracks)} tracks")
    return tracks
