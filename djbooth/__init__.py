"""
DJ Booth Core Package

An AI DJ session player: a mood prompt becomes a short playlist with spoken
commentary, played back as alternating speech and music.
"""

from .base_service import BaseService
from .core.event_topics import EventTopics
from .event_payloads import (
    BaseEventPayload,
    DJCommandPayload,
    DJStatePayload,
    ServiceStatus,
    LogLevel
)

__version__ = "0.1.0"

VERSION_INFO = tuple(map(int, __version__.split(".")))
