"""Tests for the commentary decision strategies."""

from djbooth.services.interjection_strategy import (
    RandomInterjectionStrategy,
    ScriptedInterjectionStrategy,
)


def test_random_strategy_extremes():
    strategy = RandomInterjectionStrategy(seed=1)
    assert not any(strategy.should_interject(0.0) for _ in range(50))
    assert all(strategy.should_interject(1.0) for _ in range(50))


def test_random_strategy_is_reproducible_with_seed():
    a = RandomInterjectionStrategy(seed=42)
    b = RandomInterjectionStrategy(seed=42)
    assert [a.should_interject(0.6) for _ in range(20)] == [b.should_interject(0.6) for _ in range(20)]


def test_random_strategy_roughly_matches_probability():
    strategy = RandomInterjectionStrategy(seed=7)
    hits = sum(strategy.should_interject(0.6) for _ in range(2000))
    assert 1000 < hits < 1400


def test_scripted_strategy_replays_then_defaults():
    strategy = ScriptedInterjectionStrategy([True, False], default=True)

    assert strategy.should_interject(0.0) is True
    assert strategy.should_interject(1.0) is False
    assert strategy.should_interject(0.0) is True
    assert strategy.calls == 3
