"""
Utility functions for DJ Booth.
"""

from .audio_utils import SpeechBuffer, decode_pcm16

__all__ = ["SpeechBuffer", "decode_pcm16"]
