"""
Emission Gate component for the thesis synthesis framework.

Maps the final conviction score to a playbook and a primary signal, then
decides whether the resulting transition should be persisted and notified.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Optional

from ..core import MarketThesis, Playbook, PrimarySignal, SignalSnapshot
from ...events.cooldown_manager import TransitionRateLimiter
from ...utils.logging import get_logger

logger = get_logger(__name__)

SUPPRESSED_UNCHANGED = "unchanged"
SUPPRESSED_INITIALIZING = "initializing"
SUPPRESSED_RATE_LIMITED = "rate_limited"


@dataclass(frozen=True)
class GateDecision:
    """Outcome of the emission gate for one tick."""
    playbook: Playbook
    primary_signal: PrimarySignal
    thesis_override: Optional[MarketThesis]
    should_emit: bool
    suppressed_reason: Optional[str] = None


class EmissionGate:
    """
    Final classification and emission decision.

    Emission requires a changed primary signal, an initialised previous
    signal, and a free slot in the per-instrument rate limiter. The limiter
    is only consulted for genuine transitions.
    """

    def __init__(
        self,
        rate_limiter: Optional[TransitionRateLimiter] = None,
        config: Optional[Dict] = None,
    ):
        """
        Initialize the emission gate.

        Args:
            rate_limiter: Shared transition rate limiter
            config: Optional overrides, ``moderate_threshold`` and ``strong_threshold``
        """
        config = config or {}
        self.rate_limiter = rate_limiter or TransitionRateLimiter()
        self.moderate_threshold = config.get("moderate_threshold", 3)
        self.strong_threshold = config.get("strong_threshold", 7)

    def classify_playbook(self, conviction: int, is_choppy: bool) -> Playbook:
        if is_choppy:
            return Playbook.CHOPPY
        if conviction >= self.strong_threshold:
            return Playbook.STRONG_BULLISH
        if conviction >= self.moderate_threshold:
            return Playbook.MODERATE_BULLISH
        if conviction <= -self.strong_threshold:
            return Playbook.STRONG_BEARISH
        if conviction <= -self.moderate_threshold:
            return Playbook.MODERATE_BEARISH
        return Playbook.NEUTRAL

    def classify_signal(self, conviction: int, is_choppy: bool) -> PrimarySignal:
        if is_choppy:
            return PrimarySignal.NEUTRAL
        if conviction >= self.moderate_threshold:
            return PrimarySignal.BULLISH
        if conviction <= -self.moderate_threshold:
            return PrimarySignal.BEARISH
        return PrimarySignal.NEUTRAL

    def finalize(
        self,
        snapshot: SignalSnapshot,
        conviction: int,
        is_choppy: bool,
        now: Optional[datetime] = None,
    ) -> GateDecision:
        """
        Classify the conviction score and decide on emission.

        Args:
            snapshot: Snapshot carrying the previous primary signal
            conviction: Final conviction score
            is_choppy: Choppy flag from the scorer
            now: Decision time for the rate limiter

        Returns:
            GateDecision: Playbook, primary signal and emission decision
        """
        playbook = self.classify_playbook(conviction, is_choppy)
        signal = self.classify_signal(conviction, is_choppy)
        thesis_override = MarketThesis.CHOPPY if is_choppy else None
        previous = snapshot.previous_primary_signal

        if signal is previous:
            return GateDecision(playbook, signal, thesis_override, False, SUPPRESSED_UNCHANGED)

        if previous is PrimarySignal.INITIALIZING:
            return GateDecision(playbook, signal, thesis_override, False, SUPPRESSED_INITIALIZING)

        if not self.rate_limiter.check_and_record(snapshot.security_id, now):
            logger.info(
                "transition_rate_limited",
                security_id=snapshot.security_id,
                previous=previous.value,
                new=signal.value,
            )
            return GateDecision(playbook, signal, thesis_override, False, SUPPRESSED_RATE_LIMITED)

        return GateDecision(playbook, signal, thesis_override, True)
