"""
Commentary decision strategies.

The orchestrator asks a strategy whether to put DJ commentary between two
tracks. Tests substitute a scripted strategy for deterministic runs.
"""

import random
from abc import ABC, abstractmethod
from typing import Iterable, Optional


class InterjectionStrategy(ABC):
    @abstractmethod
    def should_interject(self, probability: float) -> bool:
        """Return True to play commentary before the next track."""


class RandomInterjectionStrategy(InterjectionStrategy):
    """Weighted coin flip, optionally seeded."""

    def __init__(self, seed: Optional[int] = None):
        self._rng = random.Random(seed)

    def should_interject(self, probability: float) -> bool:
        return self._rng.random() < probability


class ScriptedInterjectionStrategy(InterjectionStrategy):
    """Replays a fixed sequence of decisions, then repeats the default."""

    def __init__(self, decisions: Iterable[bool], default: bool = False):
        self._decisions = list(decisions)
        self._default = default
        self.calls = 0

    def should_interject(self, probability: float) -> bool:
        self.calls += 1
        if self._decisions:
            return self._decisions.pop(0)
        return self._default
