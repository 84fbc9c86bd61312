"""
Audio Session for DJ Booth

Owns the process-wide audio output resources (the VLC instance and the
sounddevice output) and hands out channel handles. The orchestrator is the
only component that holds an AudioSession.
"""

import asyncio
import logging
from enum import Enum
from typing import List, Optional, Union

from pydantic import BaseModel, Field

from ...core.errors import PlaybackError
from ...utils.audio_utils import SpeechBuffer
from .playback_handles import MusicHandle, VoiceHandle

logger = logging.getLogger(__name__)


class AudioOutputConfig(BaseModel):
    """Configuration for the audio output subsystem."""
    vlc_args: List[str] = Field(
        default=["--intf", "dummy", "--quiet", "--no-video"],
        description="Arguments for the VLC instance",
    )
    voice_device: Optional[Union[int, str]] = Field(
        default=None, description="sounddevice output device for speech (None = default)"
    )


class AudioContextState(str, Enum):
    SUSPENDED = "suspended"
    RUNNING = "running"
    CLOSED = "closed"


class AudioSession:
    """
    Context-level owner of the voice and music channels.

    resume() must be called synchronously from the user command that first
    needs audio; it creates the VLC instance so that no audio backend is
    initialised from inside a background callback.
    """

    def __init__(self, config: Optional[dict] = None):
        self._config = AudioOutputConfig(**(config or {}))
        self._vlc_instance: Optional["vlc.Instance"] = None
        self._state = AudioContextState.SUSPENDED

    @property
    def state(self) -> AudioContextState:
        return self._state

    def resume(self) -> None:
        """Put the output subsystem into the running state (synchronous)."""
        if self._state == AudioContextState.CLOSED:
            raise PlaybackError("Audio session is closed")
        if self._vlc_instance is None:
            self._vlc_instance = self._create_vlc_instance()
        if self._state != AudioContextState.RUNNING:
            logger.debug("Audio session resumed")
        self._state = AudioContextState.RUNNING

    def suspend(self) -> None:
        """Mark the output subsystem as suspended."""
        if self._state == AudioContextState.RUNNING:
            self._state = AudioContextState.SUSPENDED
            logger.debug("Audio session suspended")

    def _create_vlc_instance(self) -> Optional["vlc.Instance"]:
        """Create the VLC instance, falling back to VLC defaults."""
        import vlc

        for args in (self._config.vlc_args, None):
            try:
                instance = vlc.Instance(args) if args else vlc.Instance()
            except Exception as e:
                logger.warning(f"VLC instance creation failed with args {args}: {e}")
                continue
            if instance:
                logger.info("VLC instance created")
                return instance
        logger.error("All VLC instance creation attempts failed. Music playback will be disabled.")
        return None

    def _ensure_running(self) -> None:
        if self._state != AudioContextState.RUNNING:
            logger.warning(f"Audio requested while {self._state.value}; resuming")
            self.resume()

    def play_buffer(self, buffer: SpeechBuffer) -> VoiceHandle:
        """Start a voice-channel playback and return its handle."""
        self._ensure_running()
        handle = VoiceHandle(buffer, asyncio.get_running_loop(), device=self._config.voice_device)
        handle.start()
        return handle

    def play_locator(self, locator: str, volume: int) -> MusicHandle:
        """Start a music-channel playback and return its handle."""
        self._ensure_running()
        handle = MusicHandle(self._vlc_instance, locator, volume, asyncio.get_running_loop())
        handle.start()
        return handle

    def close(self) -> None:
        """Release the audio backend. Handles must be stopped by their owner first."""
        if self._state == AudioContextState.CLOSED:
            return
        self._state = AudioContextState.CLOSED
        if self._vlc_instance is not None:
            try:
                self._vlc_instance.release()
            except Exception as e:
                logger.debug(f"Error releasing VLC instance: {e}")
            self._vlc_instance = None
        logger.info("Audio session closed")
