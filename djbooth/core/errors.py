"""
Error taxonomy for DJ Booth.

Bootstrap failures (ConfigurationError, GenerationError raised while starting a
session) are surfaced to the listener. Steady-state failures (interlude
generation, metadata lookup, playback start) are absorbed where they occur.
"""


class DJBoothError(Exception):
    """Base class for all DJ Booth errors."""


class ConfigurationError(DJBoothError, ValueError):
    """Missing or invalid credentials/configuration. Fatal, never retried."""


class GenerationError(DJBoothError):
    """A playlist, script or speech request failed or returned malformed output."""


class SynthesisError(GenerationError):
    """Speech synthesis returned no audio payload."""


class MetadataLookupError(DJBoothError, LookupError):
    """Track metadata resolution failed. Recovered with placeholder metadata."""


class PlaybackError(DJBoothError):
    """An audio channel failed to start. Treated as completion by the channel."""
