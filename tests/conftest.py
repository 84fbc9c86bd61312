"""
Common test fixtures and utilities for DJ Booth tests.

This module provides fixtures that can be used across all test files,
including fakes for the providers and the audio subsystem.
"""

import asyncio
import logging
from unittest.mock import Mock

import pytest
from pyee.asyncio import AsyncIOEventEmitter

from djbooth.core.event_topics import EventTopics
from djbooth.services.interjection_strategy import ScriptedInterjectionStrategy
from djbooth.services.session_orchestrator_service import SessionOrchestratorService

from .mocks.audio_mock import FakeAudioSession
from .mocks.provider_mocks import FakeContentProvider, make_specs


def pytest_configure(config):
    # async tests and fixtures run without explicit markers
    config.option.asyncio_mode = "auto"
    config.option.asyncio_loop_scope = "function"


async def settle(turns: int = 10) -> None:
    """Let scheduled callbacks and tasks run."""
    for _ in range(turns):
        await asyncio.sleep(0)


@pytest.fixture
def event_bus():
    """Create a new event bus for each test."""
    return AsyncIOEventEmitter()


@pytest.fixture
def mock_logger():
    return Mock(spec=logging.Logger)


@pytest.fixture
def fake_audio():
    return FakeAudioSession()


@pytest.fixture
def fake_content():
    return FakeContentProvider(specs=make_specs(3), intro="Buckle up for a late night drive.")


@pytest.fixture
def strategy():
    """Never interjects unless a test scripts otherwise."""
    return ScriptedInterjectionStrategy([], default=False)


@pytest.fixture
def orchestrator_config():
    return {"track_ceiling_seconds": 30.0}


@pytest.fixture
def orchestrator(event_bus, fake_content, fake_audio, strategy, orchestrator_config):
    return SessionOrchestratorService(
        event_bus,
        fake_content,
        config=orchestrator_config,
        audio_session=fake_audio,
        interjection_strategy=strategy,
    )


@pytest.fixture
def captured(event_bus):
    """Collect DJ events by topic."""
    events = {
        EventTopics.DJ_STATE_CHANGED: [],
        EventTopics.DJ_NOTICE: [],
        EventTopics.DJ_TRACK_STARTED: [],
        EventTopics.DJ_TRACK_ENDED: [],
        EventTopics.DJ_COMMENTARY_STARTED: [],
        EventTopics.DJ_SESSION_STARTED: [],
        EventTopics.DJ_SESSION_ENDED: [],
    }
    for topic, bucket in events.items():
        event_bus.on(topic, bucket.append)
    return events
