"""
Pytest configuration and shared fixtures for the Market Thesis Engine test suite.

This module provides common fixtures and configuration for all test categories,
ensuring consistent snapshots, catalogs and collaborators across the suite.
"""

from datetime import datetime, timezone
from typing import Any, List, Tuple

import pytest

from thesis_engine.communication.state_manager import AnalysisStateManager
from thesis_engine.events.cooldown_manager import TransitionRateLimiter
from thesis_engine.events.sinks import NotificationSink, SignalSink
from thesis_engine.signal_generation.components.driver_catalog import DriverCatalog
from thesis_engine.signal_generation.core import (
    ClassificationResult,
    DominantPlayer,
    MarketPhase,
    MarketThesis,
    Playbook,
    PrimarySignal,
    SignalSnapshot,
)
from thesis_engine.signal_generation.thesis_synthesizer import ThesisSynthesizer


# Wednesday 2024-01-03 11:30 IST, inside the normal trading phase
BASE_TIME = datetime(2024, 1, 3, 6, 0, tzinfo=timezone.utc)


# ==============================
# Pytest Configuration
# ==============================

def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "unit: Unit tests for individual components"
    )
    config.addinivalue_line(
        "markers", "integration: Integration tests for component interactions"
    )
    config.addinivalue_line(
        "markers", "slow: Tests that take longer to run"
    )


# ==============================
# Snapshot Fixtures
# ==============================

@pytest.fixture
def make_snapshot():
    """Factory building an INDEX snapshot with neutral readings plus overrides."""
    def _make(**overrides: Any) -> SignalSnapshot:
        data = {
            "security_id": "13",
            "symbol": "NIFTY 50",
            "instrument_group": "INDEX",
            "timestamp": BASE_TIME,
        }
        data.update(overrides)
        return SignalSnapshot(**data)
    return _make


@pytest.fixture
def bullish_trend_snapshot(make_snapshot):
    """Trending up market dominated by buyers with bullish confluence."""
    return make_snapshot(
        price_vs_vwap="Above VWAP",
        ema_signal_5min="Bullish Cross",
        oi_signal="Long Buildup",
        institutional_intent="Bullish",
        market_structure="Trending Up",
        previous_primary_signal="Neutral",
    )


# ==============================
# Catalog Fixtures
# ==============================

@pytest.fixture
def default_catalog() -> DriverCatalog:
    """Catalog built from the shipped strategy playbooks."""
    return DriverCatalog.from_settings()


@pytest.fixture
def simple_catalog() -> DriverCatalog:
    """Small catalog with one +3 and one +4 bullish driver and one bearish driver."""
    return DriverCatalog.from_dict({
        "trending_bullish": [
            {"name": "Price above VWAP", "weight": 3},
            {"name": "OI confirms new longs", "weight": 4},
        ],
        "trending_bearish": [
            {"name": "Price below VWAP", "weight": -3},
        ],
    })


# ==============================
# Collaborator Fixtures
# ==============================

@pytest.fixture
def state_manager() -> AnalysisStateManager:
    """State manager pinned to the normal trading phase."""
    return AnalysisStateManager(market_phase=MarketPhase.NORMAL)


@pytest.fixture
def rate_limiter() -> TransitionRateLimiter:
    return TransitionRateLimiter()


@pytest.fixture
def synthesizer(simple_catalog, state_manager, rate_limiter) -> ThesisSynthesizer:
    return ThesisSynthesizer(
        simple_catalog,
        state_manager=state_manager,
        rate_limiter=rate_limiter,
    )


class RecordingSignalSink(SignalSink):
    """Signal sink that keeps every persisted result in memory."""

    def __init__(self, fail: bool = False):
        self.results: List[Any] = []
        self.fail = fail

    def log_signal(self, result) -> None:
        if self.fail:
            raise IOError("disk full")
        self.results.append(result)


class RecordingNotifier(NotificationSink):
    """Notification sink that records calls and returns a fixed outcome."""

    def __init__(self, succeed: bool = True, fail: bool = False):
        self.calls: List[Tuple[Any, Any]] = []
        self.succeed = succeed
        self.fail = fail

    async def send_signal(self, result, previous_signal) -> bool:
        if self.fail:
            raise RuntimeError("notification backend unavailable")
        self.calls.append((result, previous_signal))
        return self.succeed


@pytest.fixture
def recording_sink() -> RecordingSignalSink:
    return RecordingSignalSink()


@pytest.fixture
def recording_notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def make_result():
    """Factory building an emitted Bullish transition result plus overrides."""
    def _make(**overrides: Any) -> ClassificationResult:
        data = {
            "security_id": "13",
            "symbol": "NIFTY 50",
            "timestamp": BASE_TIME,
            "dominant_player": DominantPlayer.BUYERS,
            "thesis": MarketThesis.BULLISH_TREND,
            "bullish_drivers": ("Price above VWAP (+3)", "OI confirms new longs (+4)"),
            "bearish_drivers": (),
            "bullish_score": 7,
            "bearish_score": 0,
            "raw_score": 7,
            "conviction_score": 9,
            "is_choppy": False,
            "playbook": Playbook.STRONG_BULLISH,
            "primary_signal": PrimarySignal.BULLISH,
            "previous_primary_signal": PrimarySignal.BEARISH,
            "narrative": "Thesis: Bullish_Trend. Dominant Player: Buyers.",
        }
        data.update(overrides)
        return ClassificationResult(**data)
    return _make
