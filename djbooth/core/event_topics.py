"""Event topics for DJ Booth."""

from enum import Enum


class EventTopics(str, Enum):
    """Event topics used throughout the system."""

    # System events
    SERVICE_STATUS_UPDATE = "service.status.update"
    SERVICE_STATUS_REQUEST = "service.status.request"  # Request for all services to emit their current status
    SERVICE_STARTING = "service.starting"
    SERVICE_READY = "service.ready"  # Service has fully started and is ready to handle requests
    SYSTEM_STARTUP = "system.startup"
    SYSTEM_SHUTDOWN_REQUESTED = "system.shutdown.requested"
    DEBUG_SET_GLOBAL_LEVEL = "debug.set.global.level"

    # Presentation -> orchestrator
    DJ_COMMAND = "dj.command"

    # Orchestrator -> presentation
    DJ_STATE_CHANGED = "dj.state.changed"  # Full observable snapshot
    DJ_NOTICE = "dj.notice"  # User-visible errors and session notices
    DJ_SESSION_STARTED = "dj.session.started"
    DJ_SESSION_ENDED = "dj.session.ended"
    DJ_COMMENTARY_STARTED = "dj.commentary.started"
    DJ_TRACK_STARTED = "dj.track.started"
    DJ_TRACK_ENDED = "dj.track.ended"

    # CLI
    CLI_RESPONSE = "cli.response"

    def __str__(self) -> str:
        return self.value
