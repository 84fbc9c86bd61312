"""
Audio utility functions for DJ Booth.

Provides the decoded speech buffer type and the PCM decoding used to turn a
raw synthesis payload into something the voice channel can play.
"""

import base64
import logging
from dataclasses import dataclass
from typing import Union

import numpy as np

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SpeechBuffer:
    """Fully decoded, in-memory speech audio."""
    samples: np.ndarray  # float32, shape (frames,) or (frames, channels)
    sample_rate: int

    @property
    def channels(self) -> int:
        return 1 if self.samples.ndim == 1 else self.samples.shape[1]

    @property
    def duration_seconds(self) -> float:
        if self.sample_rate <= 0:
            return 0.0
        return len(self.samples) / float(self.sample_rate)


def decode_pcm16(
    payload: Union[bytes, str],
    sample_rate: int = 24000,
    channels: int = 1,
) -> SpeechBuffer:
    """
    Decode signed 16-bit little-endian PCM into a float32 SpeechBuffer.

    Args:
        payload: Raw PCM bytes, or the same bytes base64 encoded
        sample_rate: Sample rate of the payload in Hz
        channels: Number of interleaved channels

    Returns:
        SpeechBuffer with samples normalised to [-1.0, 1.0)

    Raises:
        ValueError: If the payload is empty or not a whole number of frames
    """
    if isinstance(payload, str):
        payload = base64.b64decode(payload)

    if not payload:
        raise ValueError("Cannot decode an empty audio payload")

    frame_size = 2 * channels
    if len(payload) % frame_size:
        # Drop a trailing partial frame rather than failing the whole clip
        logger.debug(f"Trimming {len(payload) % frame_size} trailing bytes from PCM payload")
        payload = payload[: len(payload) - (len(payload) % frame_size)]
        if not payload:
            raise ValueError("Audio payload shorter than one frame")

    samples = np.frombuffer(payload, dtype="<i2").astype(np.float32) / 32768.0
    if channels > 1:
        samples = samples.reshape(-1, channels)

    return SpeechBuffer(samples=samples, sample_rate=sample_rate)
