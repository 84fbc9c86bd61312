"""
Event Payloads for DJ Booth

This module defines the Pydantic models for all event payloads used in the DJ Booth system.
Each payload inherits from BaseEventPayload to ensure consistent metadata across all events.
"""

import time
import uuid
from enum import Enum
from typing import List, Literal, Optional
from pydantic import BaseModel, Field

from .models.session_models import PlaybackPhase, Track


class BaseEventPayload(BaseModel):
    """Base class for all event payloads in the system."""
    timestamp: float = Field(
        default_factory=time.time,
        description="Unix timestamp of event creation"
    )
    event_id: str = Field(
        default_factory=lambda: str(uuid.uuid4()),
        description="Unique ID for this specific event instance"
    )
    schema_version: str = Field(
        default="1.0",
        description="Version of the event payload schema"
    )


class ServiceStatus(str, Enum):
    """Enumeration of possible service statuses."""
    INITIALIZING = "INITIALIZING"
    STARTING = "STARTING"
    RUNNING = "RUNNING"
    DEGRADED = "DEGRADED"
    ERROR = "ERROR"
    STOPPING = "STOPPING"
    STOPPED = "STOPPED"


class LogLevel(str, Enum):
    """Enumeration of log levels for service status messages."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class ServiceStatusPayload(BaseEventPayload):
    """Payload for service status update events."""
    service_name: str = Field(..., description="Name of the service")
    status: ServiceStatus = Field(..., description="Current status of the service")
    uptime: str = Field(default="0:00:00", description="Service uptime as H:MM:SS")
    message: Optional[str] = Field(None, description="Optional status message")
    severity: Optional[LogLevel] = Field(None, description="Optional severity level")


class DJCommandPayload(BaseEventPayload):
    """Payload for commands issued by the presentation layer."""
    action: Literal["start", "skip", "toggle", "pause", "resume", "stop"] = Field(
        ..., description="Command to execute"
    )
    prompt: Optional[str] = Field(
        None, description="Mood prompt, required for the start action"
    )


class DJStatePayload(BaseEventPayload):
    """Read-only snapshot of the orchestrator's observable state."""
    phase: PlaybackPhase
    current_track: Optional[Track] = None
    queue: List[Track] = Field(default_factory=list)
    commentary_text: Optional[str] = None
    is_loading: bool = False
    mood: Optional[str] = None


class DJNoticePayload(BaseEventPayload):
    """User-visible notice (bootstrap failure, end of session)."""
    message: str
    is_error: bool = False
    kind: Literal["error", "session_ended", "info"] = "info"


class DJTrackPayload(BaseEventPayload):
    """Payload for track start/end transition events."""
    track: Track
    audio_locator: Optional[str] = None
    remaining: int = Field(0, description="Tracks left in the queue")


class DJCommentaryPayload(BaseEventPayload):
    """Payload emitted when a commentary clip starts playing."""
    text: str
    duration_seconds: Optional[float] = None


class CliResponsePayload(BaseEventPayload):
    """Payload for CLI response events."""
    message: str
    is_error: bool = False
    service: Optional[str] = None
