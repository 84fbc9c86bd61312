"""
Services package for DJ Booth

Each long-lived service inherits from BaseService and implements the
lifecycle methods. Providers and the audio subsystem are plain collaborators
owned by the orchestrator.
"""

from .cli_service import CLIService
from .interjection_strategy import (
    InterjectionStrategy,
    RandomInterjectionStrategy,
    ScriptedInterjectionStrategy,
)
from .session_orchestrator_service import (
    SessionOrchestratorConfig,
    SessionOrchestratorService,
)

__all__ = [
    "CLIService",
    "InterjectionStrategy",
    "RandomInterjectionStrategy",
    "ScriptedInterjectionStrategy",
    "SessionOrchestratorConfig",
    "SessionOrchestratorService",
]
