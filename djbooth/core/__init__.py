"""Core components for DJ Booth."""

from .event_topics import EventTopics
from .errors import (
    DJBoothError,
    ConfigurationError,
    GenerationError,
    SynthesisError,
    MetadataLookupError,
    PlaybackError,
)

__all__ = [
    "EventTopics",
    "DJBoothError",
    "ConfigurationError",
    "GenerationError",
    "SynthesisError",
    "MetadataLookupError",
    "PlaybackError",
]
