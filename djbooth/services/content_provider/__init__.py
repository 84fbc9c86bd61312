"""
Content providers: playlists, transition scripts and synthesized speech.
"""

from .base_provider import ContentProvider, fallback_interlude
from .openai_provider import ContentProviderConfig, OpenAIContentProvider, parse_playlist

__all__ = [
    "ContentProvider",
    "ContentProviderConfig",
    "OpenAIContentProvider",
    "fallback_interlude",
    "parse_playlist",
]
