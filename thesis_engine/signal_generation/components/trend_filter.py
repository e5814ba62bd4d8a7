"""
Session Dampener and Trend Filter components.

Post-scoring adjustments applied to the raw confluence score:

1. During the opening phase the score is scaled down (noisy open).
2. Counter-trend scores are vetoed to zero, and with-trend scores that sit at
   support (uptrend) or resistance (downtrend) receive a bonus.
"""

from typing import Dict, Optional

from ..core import (
    CustomLevelSignal,
    DayRangeSignal,
    MarketPhase,
    MarketStructure,
    SignalSnapshot,
    VwapBandSignal,
)


def dampen_for_session(score: int, phase: MarketPhase, factor: float = 0.5) -> int:
    """
    Scale ``score`` during the opening phase.

    Rounds half to even (Python ``round``): 7 -> 4, 5 -> 2, -5 -> -2, -7 -> -4.
    Every other phase passes the score through unchanged.
    """
    if phase is MarketPhase.OPENING:
        return int(round(score * factor))
    return score


def is_at_support(snapshot: SignalSnapshot) -> bool:
    return (
        snapshot.custom_level_signal is CustomLevelSignal.AT_KEY_SUPPORT
        or snapshot.day_range_signal is DayRangeSignal.NEAR_LOW
        or snapshot.vwap_band_signal is VwapBandSignal.AT_LOWER_BAND
    )


def is_at_resistance(snapshot: SignalSnapshot) -> bool:
    return (
        snapshot.custom_level_signal is CustomLevelSignal.AT_KEY_RESISTANCE
        or snapshot.day_range_signal is DayRangeSignal.NEAR_HIGH
        or snapshot.vwap_band_signal is VwapBandSignal.AT_UPPER_BAND
    )


def apply_trend_filter(score: int, snapshot: SignalSnapshot, bonus: int = 2) -> int:
    """
    Veto counter-trend scores and reward with-trend entries at key levels.

    Args:
        score: Score after session dampening
        snapshot: Snapshot providing structure and level readings
        bonus: Magnitude added at support/resistance

    Returns:
        int: Filtered score; zero never receives a bonus
    """
    structure = snapshot.market_structure

    if structure is MarketStructure.TRENDING_UP:
        if score < 0:
            return 0
        if score > 0 and is_at_support(snapshot):
            return score + bonus
        return score

    if structure is MarketStructure.TRENDING_DOWN:
        if score > 0:
            return 0
        if score < 0 and is_at_resistance(snapshot):
            return score - bonus
        return score

    return score


class TrendFilter:
    """Composes session dampening and the trend filter."""

    def __init__(self, config: Optional[Dict] = None):
        config = config or {}
        self.dampening_factor = config.get("dampening_factor", 0.5)
        self.trend_bonus = config.get("trend_bonus", 2)

    def adjust(self, raw_score: int, phase: MarketPhase, snapshot: SignalSnapshot) -> int:
        """Raw confluence score -> final conviction score."""
        dampened = dampen_for_session(raw_score, phase, self.dampening_factor)
        return apply_trend_filter(dampened, snapshot, self.trend_bonus)
