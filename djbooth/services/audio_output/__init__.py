"""
Audio output subsystem: one voice channel and one music channel.
"""

from .audio_session import AudioSession, AudioOutputConfig, AudioContextState
from .playback_handles import PlaybackHandle, VoiceHandle, MusicHandle

__all__ = [
    "AudioSession",
    "AudioOutputConfig",
    "AudioContextState",
    "PlaybackHandle",
    "VoiceHandle",
    "MusicHandle",
]
