"""
Unit tests for the emission gate.
"""

from datetime import timedelta

import pytest

from thesis_engine.events.cooldown_manager import TransitionRateLimiter
from thesis_engine.signal_generation.components.emission_gate import EmissionGate
from thesis_engine.signal_generation.core import MarketThesis, Playbook, PrimarySignal
from tests.conftest import BASE_TIME


@pytest.fixture
def gate(rate_limiter):
    return EmissionGate(rate_limiter)


class TestClassification:
    """Test playbook and primary signal cut points."""

    @pytest.mark.parametrize("conviction,playbook,signal", [
        (9, Playbook.STRONG_BULLISH, PrimarySignal.BULLISH),
        (7, Playbook.STRONG_BULLISH, PrimarySignal.BULLISH),
        (6, Playbook.MODERATE_BULLISH, PrimarySignal.BULLISH),
        (3, Playbook.MODERATE_BULLISH, PrimarySignal.BULLISH),
        (2, Playbook.NEUTRAL, PrimarySignal.NEUTRAL),
        (0, Playbook.NEUTRAL, PrimarySignal.NEUTRAL),
        (-2, Playbook.NEUTRAL, PrimarySignal.NEUTRAL),
        (-3, Playbook.MODERATE_BEARISH, PrimarySignal.BEARISH),
        (-6, Playbook.MODERATE_BEARISH, PrimarySignal.BEARISH),
        (-7, Playbook.STRONG_BEARISH, PrimarySignal.BEARISH),
    ])
    def test_cut_points(self, gate, conviction, playbook, signal):
        assert gate.classify_playbook(conviction, False) is playbook
        assert gate.classify_signal(conviction, False) is signal

    def test_choppy_overrides_score(self, gate, make_snapshot):
        decision = gate.finalize(make_snapshot(previous_primary_signal="Neutral"), 9, True)

        assert decision.playbook is Playbook.CHOPPY
        assert decision.primary_signal is PrimarySignal.NEUTRAL
        assert decision.thesis_override is MarketThesis.CHOPPY

    def test_no_override_when_not_choppy(self, gate, make_snapshot):
        decision = gate.finalize(make_snapshot(), 0, False)
        assert decision.thesis_override is None

    def test_configurable_thresholds(self, rate_limiter):
        gate = EmissionGate(rate_limiter, {"moderate_threshold": 2, "strong_threshold": 5})

        assert gate.classify_playbook(5, False) is Playbook.STRONG_BULLISH
        assert gate.classify_signal(2, False) is PrimarySignal.BULLISH


class TestEmission:
    """Test the emission decision."""

    def test_unchanged_signal_not_emitted(self, gate, make_snapshot):
        decision = gate.finalize(make_snapshot(previous_primary_signal="Bullish"), 5, False, BASE_TIME)

        assert not decision.should_emit
        assert decision.suppressed_reason == "unchanged"

    def test_initializing_never_emits(self, gate, make_snapshot):
        decision = gate.finalize(make_snapshot(), 9, False, BASE_TIME)

        assert decision.primary_signal is PrimarySignal.BULLISH
        assert not decision.should_emit
        assert decision.suppressed_reason == "initializing"

    def test_initializing_does_not_consume_rate_limit(self, gate, rate_limiter, make_snapshot):
        gate.finalize(make_snapshot(), 9, False, BASE_TIME)
        assert rate_limiter.last_transition("13") is None

    def test_transition_emits(self, gate, make_snapshot):
        decision = gate.finalize(make_snapshot(previous_primary_signal="Neutral"), 4, False, BASE_TIME)

        assert decision.should_emit
        assert decision.suppressed_reason is None

    def test_second_transition_within_window_suppressed(self, gate, make_snapshot):
        gate.finalize(make_snapshot(previous_primary_signal="Neutral"), 4, False, BASE_TIME)
        decision = gate.finalize(
            make_snapshot(previous_primary_signal="Bullish"), -4, False, BASE_TIME + timedelta(seconds=30)
        )

        assert not decision.should_emit
        assert decision.suppressed_reason == "rate_limited"

    def test_transition_after_window_emits(self, gate, make_snapshot):
        gate.finalize(make_snapshot(previous_primary_signal="Neutral"), 4, False, BASE_TIME)
        decision = gate.finalize(
            make_snapshot(previous_primary_signal="Bullish"), -4, False, BASE_TIME + timedelta(seconds=61)
        )

        assert decision.should_emit

    def test_rate_limit_is_per_instrument(self, gate, make_snapshot):
        gate.finalize(make_snapshot(previous_primary_signal="Neutral"), 4, False, BASE_TIME)
        decision = gate.finalize(
            make_snapshot(security_id="25", previous_primary_signal="Neutral"), 4, False, BASE_TIME
        )

        assert decision.should_emit

    def test_suppressed_transition_does_not_refresh_window(self, make_snapshot):
        limiter = TransitionRateLimiter()
        gate = EmissionGate(limiter)

        gate.finalize(make_snapshot(previous_primary_signal="Neutral"), 4, False, BASE_TIME)
        gate.finalize(make_snapshot(previous_primary_signal="Bullish"), -4, False, BASE_TIME + timedelta(seconds=50))
        decision = gate.finalize(
            make_snapshot(previous_primary_signal="Bearish"), 4, False, BASE_TIME + timedelta(seconds=60)
        )

        assert decision.should_emit
        assert limiter.last_transition("13") == BASE_TIME + timedelta(seconds=60)
