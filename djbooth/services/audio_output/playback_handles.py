"""
Playback handles for the two audio channels.

A handle represents one live playback on a channel. It is created by the
AudioSession, owned by the orchestrator, and fires its completion callbacks at
most once, always on the event loop thread, and never after stop().

VoiceHandle plays a decoded SpeechBuffer through sounddevice.
MusicHandle plays a located resource (URL or path) through python-vlc.
"""

import asyncio
import itertools
import logging
from abc import ABC, abstractmethod
from typing import Callable, List, Optional, Union

from ...core.errors import PlaybackError
from ...utils.audio_utils import SpeechBuffer

logger = logging.getLogger(__name__)

_handle_ids = itertools.count(1)


class PlaybackHandle(ABC):
    """Common lifecycle and completion plumbing for channel handles."""

    channel = "audio"

    def __init__(self, loop: asyncio.AbstractEventLoop):
        self.handle_id = next(_handle_ids)
        self._loop = loop
        self._callbacks: List[Callable[[], None]] = []
        self._completed = False
        self._stopped = False

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} #{self.handle_id} active={self.is_active}>"

    @property
    def is_active(self) -> bool:
        """True until the handle completes or is stopped."""
        return not (self._completed or self._stopped)

    @property
    def is_stopped(self) -> bool:
        return self._stopped

    def on_complete(self, callback: Callable[[], None]) -> None:
        """Register a callback for natural completion."""
        self._callbacks.append(callback)

    def start(self) -> None:
        """Begin playback. A failure to start is logged and treated as completion."""
        try:
            self._begin()
        except Exception as e:
            error = e if isinstance(e, PlaybackError) else PlaybackError(str(e))
            logger.error(f"{self.channel} channel failed to start (#{self.handle_id}): {error}")
            self._loop.call_soon(self._fire_complete)

    def stop(self) -> None:
        """Stop playback and release resources. Idempotent; suppresses completion."""
        if self._stopped:
            return
        self._stopped = True
        self._callbacks.clear()
        try:
            self._release()
        except Exception as e:
            logger.debug(f"Error releasing {self.channel} handle #{self.handle_id}: {e}")

    def _fire_complete(self) -> None:
        """Deliver completion on the loop thread, at most once."""
        if self._stopped or self._completed:
            return
        self._completed = True
        callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            callback()

    def _fire_complete_threadsafe(self) -> None:
        """Marshal completion from a foreign (audio library) thread onto the loop."""
        if self._loop.is_closed():
            return
        self._loop.call_soon_threadsafe(self._fire_complete)

    @abstractmethod
    def _begin(self) -> None:
        """Channel-specific start logic."""

    @abstractmethod
    def _release(self) -> None:
        """Channel-specific stop/release logic."""


class VoiceHandle(PlaybackHandle):
    """Plays a fully decoded speech buffer on the output device."""

    channel = "voice"

    def __init__(
        self,
        buffer: SpeechBuffer,
        loop: asyncio.AbstractEventLoop,
        device: Optional[Union[int, str]] = None,
    ):
        super().__init__(loop)
        self._buffer = buffer
        self._device = device
        self._wait_future: Optional[asyncio.Future] = None

    def _begin(self) -> None:
        import sounddevice as sd

        if len(self._buffer.samples) == 0:
            raise PlaybackError("Speech buffer is empty")

        sd.play(self._buffer.samples, self._buffer.sample_rate, device=self._device)
        # sd.wait blocks until the stream finishes, so run it off the loop
        self._wait_future = self._loop.run_in_executor(None, sd.wait)
        self._wait_future.add_done_callback(self._on_wait_done)
        logger.debug(
            f"Voice #{self.handle_id} playing {self._buffer.duration_seconds:.1f}s "
            f"at {self._buffer.sample_rate} Hz"
        )

    def _on_wait_done(self, future: asyncio.Future) -> None:
        if future.cancelled():
            return
        error = future.exception()
        if error is not None:
            logger.error(f"Voice playback #{self.handle_id} failed: {error}")
        self._fire_complete()

    def _release(self) -> None:
        import sounddevice as sd

        sd.stop()


class MusicHandle(PlaybackHandle):
    """Plays a streamed or local music resource with pause/resume support."""

    channel = "music"

    def __init__(
        self,
        instance: Optional["vlc.Instance"],
        locator: str,
        volume: int,
        loop: asyncio.AbstractEventLoop,
    ):
        super().__init__(loop)
        self._instance = instance
        self.locator = locator
        self._volume = volume
        self._player: Optional["vlc.MediaPlayer"] = None
        self._paused = False

    @property
    def is_paused(self) -> bool:
        return self._paused

    def _begin(self) -> None:
        import vlc

        if self._instance is None:
            raise PlaybackError("VLC instance not available")

        self._player = self._instance.media_player_new()
        media = self._instance.media_new(self.locator)
        self._player.set_media(media)
        self._player.audio_set_volume(self._volume)

        events = self._player.event_manager()
        events.event_attach(vlc.EventType.MediaPlayerEndReached, self._on_vlc_end)
        events.event_attach(vlc.EventType.MediaPlayerEncounteredError, self._on_vlc_error)

        if self._player.play() == -1:
            raise PlaybackError(f"VLC refused to play {self.locator}")
        logger.debug(f"Music #{self.handle_id} playing {self.locator} at volume {self._volume}")

    # VLC invokes these on its own thread
    def _on_vlc_end(self, event) -> None:
        self._fire_complete_threadsafe()

    def _on_vlc_error(self, event) -> None:
        logger.error(f"VLC reported an error for music #{self.handle_id} ({self.locator})")
        self._fire_complete_threadsafe()

    def pause(self) -> None:
        if self._player and self.is_active and not self._paused:
            self._player.set_pause(1)
            self._paused = True

    def resume(self) -> None:
        if self._player and self.is_active and self._paused:
            self._player.set_pause(0)
            self._paused = False

    def _release(self) -> None:
        player, self._player = self._player, None
        if player is None:
            return
        import vlc

        events = player.event_manager()
        events.event_detach(vlc.EventType.MediaPlayerEndReached)
        events.event_detach(vlc.EventType.MediaPlayerEncounteredError)
        player.stop()
        player.release()
