"""
CLI Service for DJ Booth

Text presentation layer: reads commands from stdin, turns them into DJ_COMMAND
events for the orchestrator and renders the orchestrator's state and notices.
"""

"""
SERVICE: CLIService
PURPOSE: Command-line presentation layer for the DJ session
EVENTS_IN: DJ_STATE_CHANGED, DJ_NOTICE, CLI_RESPONSE
EVENTS_OUT: DJ_COMMAND, SYSTEM_SHUTDOWN_REQUESTED, DEBUG_SET_GLOBAL_LEVEL
KEY_METHODS: _process_command, _handle_state_changed, _handle_notice, render_state
DEPENDENCIES: stdin/stdout
"""

import asyncio
import logging
import os
import sys
from typing import Any, Callable, Dict, List, Optional

from pyee.asyncio import AsyncIOEventEmitter

from ..base_service import BaseService
from ..core.event_topics import EventTopics
from ..event_payloads import DJCommandPayload, DJNoticePayload, DJStatePayload
from ..models.session_models import PlaybackPhase

PROMPT = "DJ> "

HELP_TEXT = """Commands:
  start <mood>   Start a new session, e.g. 'start late night drive'
  skip (s)       Skip to the next track
  toggle (p)     Pause or resume the current track
  status         Show what's playing
  stop           Stop playback
  debug level <LEVEL>  Set the log level (DEBUG, INFO, WARNING, ERROR)
  help (h)       Show this help
  quit (q)       Exit"""


class CLIService(BaseService):
    """
    Service that provides the command-line interface.

    Features:
    - Async stdin reading (Unix streams, executor on Windows)
    - Command shortcuts
    - State rendering from DJ_STATE_CHANGED
    """

    SHORTCUTS = {
        's': 'skip',
        'p': 'toggle',
        'h': 'help',
        'st': 'status',
        'q': 'quit',
    }

    def __init__(
        self,
        event_bus: AsyncIOEventEmitter,
        config: Optional[Dict[str, Any]] = None,
        logger: Optional[logging.Logger] = None,
        io_functions: Optional[Dict[str, Callable]] = None,
    ):
        """Initialize the CLI service.

        Args:
            event_bus: Event bus instance
            config: Optional configuration dictionary
            logger: Optional logger instance
            io_functions: Optional dict with async 'output' and 'error' functions
        """
        super().__init__("cli", event_bus, logger)

        self._config = config or {}
        self._max_history = int(self._config.get('CLI_MAX_HISTORY', 100))
        self._interactive = bool(self._config.get('interactive', True))

        self._command_history: List[str] = []
        self._running = False
        self._input_task: Optional[asyncio.Task] = None
        self._stdin_reader: Optional[asyncio.StreamReader] = None

        self._io = io_functions or {
            'output': self._async_write_output,
            'error': self._async_write_error,
        }

        self._last_state: Optional[DJStatePayload] = None
        self._last_rendered_key = None

    @property
    def last_state(self) -> Optional[DJStatePayload]:
        return self._last_state

    @property
    def command_history(self) -> List[str]:
        return list(self._command_history)

    async def _start(self) -> None:
        await self.subscribe(EventTopics.DJ_STATE_CHANGED, self._handle_state_changed)
        await self.subscribe(EventTopics.DJ_NOTICE, self._handle_notice)
        await self.subscribe(EventTopics.CLI_RESPONSE, self._handle_response)

        self._running = True
        await self._io['output']("\nDJ Booth")
        await self._io['output']("Type 'start <mood>' to begin, 'help' for commands\n")

        if self._interactive:
            await self._setup_stdin_reader()
            self._input_task = asyncio.create_task(self._process_input())

    async def _setup_stdin_reader(self) -> None:
        """Set up the stdin reader using asyncio streams."""
        if sys.platform == 'win32':
            # asyncio can't wrap the Windows console; lines are read in an executor
            self._stdin_reader = None
            return

        loop = asyncio.get_running_loop()
        reader = asyncio.StreamReader()
        protocol = asyncio.StreamReaderProtocol(reader)
        os.set_blocking(sys.stdin.fileno(), False)
        await loop.connect_read_pipe(lambda: protocol, sys.stdin)
        self._stdin_reader = reader

    async def _stop(self) -> None:
        self._running = False
        if self._input_task and not self._input_task.done():
            self._input_task.cancel()
            try:
                await self._input_task
            except asyncio.CancelledError:
                self.logger.debug("Input processing task cancelled")

    async def _read_line(self) -> str:
        if self._stdin_reader is None:
            loop = asyncio.get_running_loop()
            line = await loop.run_in_executor(None, sys.stdin.readline)
            if not line:
                raise EOFError
            return line
        line = await self._stdin_reader.readline()
        if not line:
            raise EOFError
        return line.decode()

    async def _process_input(self) -> None:
        """Process input from stdin asynchronously."""
        self._print_prompt()
        try:
            while self._running:
                try:
                    user_input = (await self._read_line()).strip()
                except (EOFError, KeyboardInterrupt):
                    self.logger.info("Input closed; requesting shutdown")
                    await self._process_command("quit")
                    break

                if user_input:
                    await self._process_command(user_input)
                if user_input.lower() in ('quit', 'exit', 'q'):
                    break
                self._print_prompt()
        except asyncio.CancelledError:
            self.logger.debug("Input processing task cancelled")
            raise

    def _print_prompt(self) -> None:
        if self._interactive:
            print(PROMPT, end="", flush=True)

    async def _process_command(self, user_input: str) -> None:
        """Parse one input line and dispatch it."""
        self._add_to_history(user_input)

        parts = user_input.strip().split(maxsplit=1)
        if not parts:
            return

        command = parts[0].lower()
        args = parts[1].strip() if len(parts) > 1 else ""
        command = self.SHORTCUTS.get(command, command)

        if command in ('quit', 'exit'):
            await self.emit(EventTopics.SYSTEM_SHUTDOWN_REQUESTED, {"source": "cli"})
            return
        if command == 'help':
            await self._io['output'](HELP_TEXT)
            return
        if command == 'status':
            await self._io['output'](self.render_state(self._last_state))
            return
        if command == 'start':
            if not args:
                await self._io['error']("Usage: start <mood>, e.g. 'start late night drive'")
                return
            await self.emit(EventTopics.DJ_COMMAND, DJCommandPayload(action="start", prompt=args))
            return
        if command in ('skip', 'toggle', 'pause', 'resume', 'stop'):
            await self.emit(EventTopics.DJ_COMMAND, DJCommandPayload(action=command))
            return
        if command == 'debug':
            words = args.split()
            if len(words) == 2 and words[0].lower() == 'level':
                await self.emit(EventTopics.DEBUG_SET_GLOBAL_LEVEL, {"level": words[1].upper()})
            else:
                await self._io['error']("Usage: debug level <DEBUG|INFO|WARNING|ERROR>")
            return

        await self._io['error'](f"Unknown command: {command}. Type 'help' for commands.")

    async def _handle_state_changed(self, payload: Any) -> None:
        state = payload if isinstance(payload, DJStatePayload) else DJStatePayload(**payload)
        self._last_state = state

        key = (
            state.phase,
            state.current_track.track_id if state.current_track else None,
            state.commentary_text,
            state.is_loading,
        )
        if key == self._last_rendered_key:
            return
        self._last_rendered_key = key
        await self._io['output'](self.render_state(state))

    async def _handle_notice(self, payload: Any) -> None:
        notice = payload if isinstance(payload, DJNoticePayload) else DJNoticePayload(**payload)
        if notice.is_error:
            await self._io['error'](f"Error: {notice.message}")
        else:
            await self._io['output'](notice.message)

    async def _handle_response(self, payload: Dict[str, Any]) -> None:
        message = payload.get("message", "")
        if payload.get("is_error", False):
            await self._io['error'](message)
        else:
            await self._io['output'](message)

    @staticmethod
    def render_state(state: Optional[DJStatePayload], queue_preview: int = 3) -> str:
        """Render a state snapshot as text."""
        if state is None:
            return "[IDLE] No session. Type 'start <mood>' to begin."

        lines = []
        if state.is_loading:
            lines.append(f"[{state.phase.value}] Curating a session for \"{state.mood or '...'}\"...")
        elif state.phase == PlaybackPhase.IDLE:
            lines.append(f"[{state.phase.value}] Nothing playing.")
        elif state.phase == PlaybackPhase.LOADING_SESSION:
            lines.append(f"[{state.phase.value}] The DJ is lining up the next track...")
        elif state.current_track is not None:
            track = state.current_track
            lines.append(f"[{state.phase.value}] Now playing: {track} ({track.album})")
            if track.reason:
                lines.append(f"  Why: {track.reason}")
        else:
            lines.append(f"[{state.phase.value}]")

        if state.commentary_text:
            lines.append(f"  DJ: \"{state.commentary_text}\"")

        if state.queue and not state.is_loading:
            lines.append("  Up next:")
            for index, track in enumerate(state.queue[:queue_preview], start=1):
                lines.append(f"    {index}. {track} [{track.mood_tag}]")
            if len(state.queue) > queue_preview:
                lines.append(f"    ... and {len(state.queue) - queue_preview} more")

        return "\n".join(lines)

    def _add_to_history(self, command: str) -> None:
        if command.strip():
            self._command_history.append(command)
            if len(self._command_history) > self._max_history:
                self._command_history.pop(0)

    async def _async_write_output(self, message: str) -> None:
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, lambda: print(message, flush=True))

    async def _async_write_error(self, message: str) -> None:
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, lambda: print(message, file=sys.stderr, flush=True))
