"""
Session Orchestrator Service for DJ Booth

Drives the commentary/track alternation for a listening session and owns
every piece of playback state: the session, the queue, the live voice and
music handles, the ceiling timer and any in-flight interlude generation.
"""

"""
SERVICE: SessionOrchestratorService
PURPOSE: Playback state machine sequencing AI commentary and music tracks
EVENTS_IN: DJ_COMMAND
EVENTS_OUT: DJ_STATE_CHANGED, DJ_NOTICE, DJ_SESSION_STARTED, DJ_SESSION_ENDED, DJ_COMMENTARY_STARTED, DJ_TRACK_STARTED, DJ_TRACK_ENDED
KEY_METHODS: start_session, play_commentary, play_next_track, handle_track_end, skip, toggle_play, teardown
DEPENDENCIES: ContentProvider, TrackMetadataProvider (optional), AudioSession
"""

import asyncio
import functools
from collections import deque
from typing import Any, Deque, Dict, List, Optional, Tuple

from pydantic import BaseModel, Field, ValidationError
from pyee.asyncio import AsyncIOEventEmitter

from ..base_service import BaseService
from ..core.errors import PlaybackError
from ..core.event_topics import EventTopics
from ..event_payloads import (
    DJCommandPayload,
    DJCommentaryPayload,
    DJNoticePayload,
    DJStatePayload,
    DJTrackPayload,
)
from ..models.session_models import DJSession, PlaybackPhase, Track
from ..utils.audio_utils import SpeechBuffer
from .audio_output import AudioSession, MusicHandle, VoiceHandle
from .content_provider import ContentProvider
from .interjection_strategy import InterjectionStrategy, RandomInterjectionStrategy
from .track_metadata import TrackMetadataProvider, enrich_tracks

SESSION_ENDED_MESSAGE = "That's the end of the set. Start a new vibe to keep listening."


class SessionOrchestratorConfig(BaseModel):
    """Configuration for the session orchestrator."""
    commentary_probability: float = Field(
        default=0.6, ge=0.0, le=1.0, description="Chance of commentary between tracks"
    )
    track_ceiling_seconds: float = Field(
        default=30.0, gt=0, description="Force-end a track that has not finished after this long"
    )
    music_volume: int = Field(default=50, ge=0, le=100, description="Music channel volume (0-100)")
    fallback_audio_locator: str = Field(
        default="https://www.soundhelix.com/examples/mp3/SoundHelix-Song-1.mp3",
        description="Played when a track has no preview locator",
    )
    enrichment_concurrency: Optional[int] = Field(
        default=None, description="Max metadata lookups in flight (None = unbounded)"
    )


class SessionOrchestratorService(BaseService):
    """
    The playback state machine.

    IDLE -> LOADING_SESSION -> PLAYING_COMMENTARY -> PLAYING_TRACK ->
    {PLAYING_COMMENTARY | PLAYING_TRACK | IDLE}, with PLAYING_TRACK <-> PAUSED
    on user toggle. Interlude generation shows as LOADING_SESSION.

    Every transition entry point calls teardown() first. teardown() bumps the
    track token, so completion callbacks and ceiling timers captured under an
    older token are discarded when they arrive.
    """

    def __init__(
        self,
        event_bus: AsyncIOEventEmitter,
        content_provider: ContentProvider,
        config: Optional[Dict[str, Any]] = None,
        metadata_provider: Optional[TrackMetadataProvider] = None,
        audio_session: Optional[AudioSession] = None,
        interjection_strategy: Optional[InterjectionStrategy] = None,
        name: str = "session_orchestrator",
    ):
        super().__init__(service_name=name, event_bus=event_bus)

        config_dict = config or {}
        self._config = SessionOrchestratorConfig(**config_dict)

        self._content = content_provider
        self._metadata = metadata_provider
        self._audio = audio_session or AudioSession()
        self._strategy = interjection_strategy or RandomInterjectionStrategy()

        # Observable state
        self._phase = PlaybackPhase.IDLE
        self._session: Optional[DJSession] = None
        self._queue: Deque[Track] = deque()
        self._current_track: Optional[Track] = None
        self._commentary_text: Optional[str] = None
        self._is_loading = False

        # Owned playback resources
        self._voice_handle: Optional[VoiceHandle] = None
        self._music_handle: Optional[MusicHandle] = None
        self._ceiling_task: Optional[asyncio.Task] = None
        self._ceiling_deadline: Optional[float] = None
        self._ceiling_remaining: Optional[float] = None
        self._transition_task: Optional[asyncio.Task] = None

        self._track_token = 0
        self._end_dispatched = False
        self._session_generation = 0

    # ------------------------------------------------------------------
    # Observable state
    # ------------------------------------------------------------------

    @property
    def config(self) -> SessionOrchestratorConfig:
        return self._config

    @property
    def phase(self) -> PlaybackPhase:
        return self._phase

    @property
    def current_track(self) -> Optional[Track]:
        return self._current_track

    @property
    def queue(self) -> Tuple[Track, ...]:
        """Snapshot of the not-yet-played tracks."""
        return tuple(self._queue)

    @property
    def commentary_text(self) -> Optional[str]:
        return self._commentary_text

    @property
    def is_loading(self) -> bool:
        return self._is_loading

    @property
    def session(self) -> Optional[DJSession]:
        return self._session

    @property
    def voice_handle(self) -> Optional[VoiceHandle]:
        return self._voice_handle

    @property
    def music_handle(self) -> Optional[MusicHandle]:
        return self._music_handle

    @property
    def ceiling_pending(self) -> bool:
        return self._ceiling_task is not None and not self._ceiling_task.done()

    def snapshot(self) -> DJStatePayload:
        return DJStatePayload(
            phase=self._phase,
            current_track=self._current_track,
            queue=list(self._queue),
            commentary_text=self._commentary_text,
            is_loading=self._is_loading,
            mood=self._session.mood if self._session else None,
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def _start(self) -> None:
        await self._content.start()
        await self.subscribe(EventTopics.DJ_COMMAND, self._handle_dj_command)
        self.logger.info(
            f"Orchestrator ready (commentary p={self._config.commentary_probability}, "
            f"ceiling={self._config.track_ceiling_seconds}s, volume={self._config.music_volume})"
        )

    async def _stop(self) -> None:
        self.stop_playback()
        self._audio.close()
        await self._content.close()
        if self._metadata is not None:
            await self._metadata.cleanup()

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    async def _handle_dj_command(self, payload: Any) -> None:
        try:
            command = payload if isinstance(payload, DJCommandPayload) else DJCommandPayload(**payload)
        except (ValidationError, TypeError) as e:
            self.logger.warning(f"Ignoring malformed DJ command {payload!r}: {e}")
            self._notify(f"Invalid command: {e}", is_error=True, kind="error")
            return

        self.logger.debug(f"DJ command: {command.action}")
        if command.action == "start":
            await self.start_session(command.prompt or "")
        elif command.action == "skip":
            self.skip()
        elif command.action == "toggle":
            self.toggle_play()
        elif command.action == "pause":
            self.pause()
        elif command.action == "resume":
            self.resume()
        elif command.action == "stop":
            self.stop_playback()

    async def start_session(self, prompt: str) -> None:
        """
        Generate a playlist for the prompt and start playing its intro.

        The audio session is resumed before the first await so that the
        output is unlocked from the originating user command. On any failure
        the phase returns to IDLE and an error notice is published. The
        loading flag is always cleared on exit.
        """
        prompt = (prompt or "").strip()
        if not prompt:
            self._notify("Tell me a mood or vibe to start a session.", is_error=True, kind="error")
            return
        if self._is_loading:
            self.logger.warning("Session already loading; ignoring start request")
            return

        try:
            self._audio.resume()
        except PlaybackError as e:
            self.logger.error(f"Audio output unavailable: {e}")
            self._notify(f"Audio output unavailable: {e}", is_error=True, kind="error")
            return

        self.teardown()
        self._session_generation += 1
        generation = self._session_generation
        self._current_track = None
        self._commentary_text = None
        self._is_loading = True
        self._set_phase(PlaybackPhase.LOADING_SESSION)

        try:
            draft = await self._content.generate_playlist(prompt)
            tracks = await enrich_tracks(
                draft.tracks,
                self._metadata,
                concurrency=self._config.enrichment_concurrency,
            )
            if generation != self._session_generation:
                self.logger.debug("Discarding playlist from a superseded session start")
                return

            self._session = DJSession(mood=prompt, tracks=tracks)
            self._queue = deque(tracks)
            self.logger.info(f"Session started for {prompt!r} with {len(tracks)} tracks")
            self.emit_nowait(
                EventTopics.DJ_SESSION_STARTED,
                {"mood": prompt, "track_count": len(tracks)},
            )
            self._publish_state()

            buffer = await self._content.generate_speech_audio(draft.intro_script)
            if generation != self._session_generation:
                self.logger.debug("Discarding intro audio from a superseded session start")
                return

            self._is_loading = False
            self.play_commentary(buffer, draft.intro_script)

        except Exception as e:
            if generation != self._session_generation:
                self.logger.debug(f"Superseded session start failed: {e}")
                return
            self.logger.error(f"Failed to start session: {e}")
            self.teardown()
            self._session = None
            self._queue = deque()
            self._current_track = None
            self._commentary_text = None
            self._set_phase(PlaybackPhase.IDLE)
            self._notify(f"Couldn't start the session: {e}", is_error=True, kind="error")

        finally:
            if generation == self._session_generation and self._is_loading:
                self._is_loading = False
                self._publish_state()

    def play_commentary(self, buffer: SpeechBuffer, text: str) -> None:
        """Play a speech clip on the voice channel, then advance to the next track."""
        self.teardown()
        token = self._track_token

        self._commentary_text = text
        self._set_phase(PlaybackPhase.PLAYING_COMMENTARY)

        try:
            handle = self._audio.play_buffer(buffer)
        except PlaybackError as e:
            self.logger.error(f"Voice channel failed: {e}")
            asyncio.get_running_loop().call_soon(self._on_commentary_complete, token)
        else:
            self._voice_handle = handle
            handle.on_complete(functools.partial(self._on_commentary_complete, token))

        self.emit_nowait(
            EventTopics.DJ_COMMENTARY_STARTED,
            DJCommentaryPayload(text=text, duration_seconds=buffer.duration_seconds),
        )

    def _on_commentary_complete(self, token: int) -> None:
        if token != self._track_token:
            self.logger.debug("Ignoring completion from a superseded voice handle")
            return
        self._voice_handle = None
        if not self._queue:
            self._end_session()
            return
        self.play_next_track()

    def play_next_track(self) -> None:
        """Pop the front of the queue and start it on the music channel."""
        if not self._queue:
            self.logger.debug("play_next_track called with an empty queue")
            return

        self.teardown()
        token = self._track_token

        track = self._queue.popleft()
        if self._session is not None:
            self._session.record_play(track)
        self._commentary_text = None
        self._current_track = track
        self._set_phase(PlaybackPhase.PLAYING_TRACK)

        locator = track.preview_url or self._config.fallback_audio_locator
        if not track.preview_url:
            self.logger.info(f"No preview for {track}; using fallback audio")

        try:
            handle = self._audio.play_locator(locator, self._config.music_volume)
        except PlaybackError as e:
            self.logger.error(f"Music channel failed for {track}: {e}")
            asyncio.get_running_loop().call_soon(self._dispatch_track_end, token, track)
        else:
            self._music_handle = handle
            handle.on_complete(functools.partial(self._dispatch_track_end, token, track))
            self._arm_ceiling(token, track, self._config.track_ceiling_seconds)

        self.emit_nowait(
            EventTopics.DJ_TRACK_STARTED,
            DJTrackPayload(track=track, audio_locator=locator, remaining=len(self._queue)),
        )

    async def handle_track_end(self, finished_track: Track, remaining_queue: List[Track]) -> None:
        """
        Decide what follows a finished track.

        With tracks remaining, the interjection strategy picks between an
        interlude (script + speech, then commentary) and advancing directly.
        Interlude failures fall back to advancing. With no tracks remaining
        the session ends.
        """
        if not remaining_queue:
            self._end_session()
            return

        next_track = remaining_queue[0]
        if not self._strategy.should_interject(self._config.commentary_probability):
            self.play_next_track()
            return

        token = self._track_token
        mood = self._session.mood if self._session else ""
        self._set_phase(PlaybackPhase.LOADING_SESSION)

        try:
            script = await self._content.generate_interlude_script(finished_track, next_track, mood)
            buffer = await self._content.generate_speech_audio(script)
        except Exception as e:
            if token != self._track_token:
                return
            self.logger.warning(f"Interlude failed, skipping commentary: {e}")
            self.play_next_track()
            return

        if token != self._track_token:
            self.logger.debug("Discarding interlude for a superseded track")
            return
        self.play_commentary(buffer, script)

    def skip(self) -> None:
        """Stop everything and advance immediately. Never plays commentary."""
        if self._session is None or self._is_loading or self._phase == PlaybackPhase.IDLE:
            self.logger.debug(f"Skip ignored in phase {self._phase.value}")
            return

        self.logger.info("Skip requested")
        if self._phase == PlaybackPhase.PAUSED:
            self._audio.resume()
        self.teardown()
        if not self._queue:
            self._end_session()
            return
        self.play_next_track()

    def toggle_play(self) -> None:
        """Pause or resume the current track. No-op outside PLAYING_TRACK/PAUSED."""
        if self._phase == PlaybackPhase.PLAYING_TRACK:
            self.pause()
        elif self._phase == PlaybackPhase.PAUSED:
            self.resume()
        else:
            self.logger.debug(f"Toggle ignored in phase {self._phase.value}")

    def pause(self) -> None:
        if self._phase != PlaybackPhase.PLAYING_TRACK or self._end_dispatched:
            return

        self._ceiling_remaining = self._cancel_ceiling()
        if self._music_handle is not None:
            self._music_handle.pause()
        self._audio.suspend()
        self._set_phase(PlaybackPhase.PAUSED)

    def resume(self) -> None:
        if self._phase != PlaybackPhase.PAUSED:
            return

        self._audio.resume()
        if self._music_handle is not None:
            self._music_handle.resume()
        self._set_phase(PlaybackPhase.PLAYING_TRACK)

        remaining = self._ceiling_remaining
        self._ceiling_remaining = None
        if remaining is None:
            remaining = self._config.track_ceiling_seconds
        if self._music_handle is not None and self._current_track is not None:
            self._arm_ceiling(self._track_token, self._current_track, remaining)

    def stop_playback(self) -> None:
        """Stop all audio, drop the remaining queue and return to IDLE."""
        self._session_generation += 1
        self.teardown()
        self._queue.clear()
        self._current_track = None
        self._commentary_text = None
        self._is_loading = False
        self._set_phase(PlaybackPhase.IDLE)
        self.logger.info("Playback stopped")

    def teardown(self) -> None:
        """
        Release every live playback resource.

        Stops both handles, cancels the ceiling timer and any in-flight
        interlude generation, and invalidates the current track token.
        """
        self._track_token += 1
        self._end_dispatched = False
        self._ceiling_remaining = None
        self._cancel_ceiling()

        task, self._transition_task = self._transition_task, None
        if task is not None and not task.done() and task is not _current_task():
            task.cancel()

        voice, self._voice_handle = self._voice_handle, None
        if voice is not None:
            voice.stop()

        music, self._music_handle = self._music_handle, None
        if music is not None:
            music.stop()

    # ------------------------------------------------------------------
    # Track end plumbing
    # ------------------------------------------------------------------

    def _dispatch_track_end(self, token: int, track: Track) -> None:
        """Single gate for natural completion and the ceiling timer."""
        if token != self._track_token or self._end_dispatched:
            self.logger.debug(f"Ignoring stale track end for {track}")
            return
        self._end_dispatched = True
        self._cancel_ceiling()

        self.emit_nowait(
            EventTopics.DJ_TRACK_ENDED,
            DJTrackPayload(track=track, remaining=len(self._queue)),
        )
        self._transition_task = asyncio.create_task(
            self.handle_track_end(track, list(self._queue)),
            name=f"track_end_{track.track_id}",
        )
        self._transition_task.add_done_callback(self._on_transition_done)

    def _on_transition_done(self, task: asyncio.Task) -> None:
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            self.logger.error(f"Track transition failed: {error}", exc_info=error)

    def _arm_ceiling(self, token: int, track: Track, delay: float) -> None:
        self._cancel_ceiling()
        self._ceiling_deadline = asyncio.get_running_loop().time() + delay
        self._ceiling_task = asyncio.create_task(
            self._ceiling_timer(token, track, delay),
            name=f"ceiling_{track.track_id}",
        )

    async def _ceiling_timer(self, token: int, track: Track, delay: float) -> None:
        try:
            await asyncio.sleep(delay)
        except asyncio.CancelledError:
            return

        if token != self._track_token:
            self.logger.debug(f"Ignoring stale ceiling timer for {track}")
            return

        self._ceiling_task = None
        self._ceiling_deadline = None
        self.logger.info(f"Track ceiling reached for {track}; ending it")
        if self._music_handle is not None:
            self._music_handle.pause()
        self._dispatch_track_end(token, track)

    def _cancel_ceiling(self) -> Optional[float]:
        """Cancel the ceiling timer, returning the seconds it had left."""
        task, self._ceiling_task = self._ceiling_task, None
        deadline, self._ceiling_deadline = self._ceiling_deadline, None
        if task is None or task.done():
            return None
        task.cancel()
        if deadline is None:
            return None
        return max(0.0, deadline - asyncio.get_running_loop().time())

    def _end_session(self) -> None:
        self.teardown()
        self._current_track = None
        self._commentary_text = None
        self._set_phase(PlaybackPhase.IDLE)
        self.logger.info("Queue exhausted; session ended")
        self._notify(SESSION_ENDED_MESSAGE, kind="session_ended")
        session = self._session
        self.emit_nowait(
            EventTopics.DJ_SESSION_ENDED,
            {
                "mood": session.mood if session else None,
                "played": list(session.history) if session else [],
            },
        )

    # ------------------------------------------------------------------
    # Publishing
    # ------------------------------------------------------------------

    def _set_phase(self, phase: PlaybackPhase) -> None:
        if phase != self._phase:
            self.logger.info(f"phase {self._phase.value} -> {phase.value}")
        self._phase = phase
        self._publish_state()

    def _publish_state(self) -> None:
        self.emit_nowait(EventTopics.DJ_STATE_CHANGED, self.snapshot())

    def _notify(self, message: str, is_error: bool = False, kind: str = "info") -> None:
        self.emit_nowait(
            EventTopics.DJ_NOTICE,
            DJNoticePayload(message=message, is_error=is_error, kind=kind),
        )


def _current_task() -> Optional[asyncio.Task]:
    try:
        return asyncio.current_task()
    except RuntimeError:
        return None
