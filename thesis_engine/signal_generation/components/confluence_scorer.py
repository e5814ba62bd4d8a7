"""
Confluence Scorer component for the thesis synthesis framework.

Selects the drivers applicable to the current thesis and regime, evaluates
every enabled one independently, and accumulates separate bullish and bearish
sub-scores. Strong conviction on both sides, or balanced gamma exposure,
marks the state as choppy.
"""

import threading
from typing import Dict, List, Optional, Set

from ..core import ConfluenceScore, GammaSignal, MarketThesis, SignalSnapshot
from .driver_catalog import DriverCatalog, select_playbooks
from .signal_predicates import DEFAULT_PREDICATES, PredicateRegistry
from ...utils.logging import get_logger

logger = get_logger(__name__)


class ConfluenceScorer:
    """
    Weighted confluence scoring over the driver catalog.

    Drivers whose name has no registered predicate are quarantined: they are
    skipped and reported once rather than on every tick.
    """

    def __init__(
        self,
        catalog: DriverCatalog,
        registry: Optional[PredicateRegistry] = None,
        config: Optional[Dict] = None,
    ):
        """
        Initialize the confluence scorer.

        Args:
            catalog: Live driver catalog (read at every evaluation)
            registry: Predicate registry, defaults to the built-in table
            config: Optional overrides, ``choppy_threshold``
        """
        config = config or {}
        self.catalog = catalog
        self.registry = registry or DEFAULT_PREDICATES
        self.choppy_threshold = config.get("choppy_threshold", 5)
        self.quarantined: Set[str] = set()
        self._lock = threading.Lock()

    def _quarantine(self, name: str) -> None:
        with self._lock:
            if name in self.quarantined:
                return
            self.quarantined.add(name)
        logger.warning("driver_quarantined", driver=name, reason="no predicate registered")

    def quarantined_drivers(self) -> List[str]:
        with self._lock:
            return sorted(self.quarantined)

    def score(self, snapshot: SignalSnapshot, thesis: MarketThesis) -> ConfluenceScore:
        """
        Score a snapshot under the given thesis.

        Args:
            snapshot: Current indicator snapshot
            thesis: Thesis from the state machine

        Returns:
            ConfluenceScore: Driver labels, sub-scores and the choppy flag
        """
        playbooks = select_playbooks(thesis, snapshot.market_regime)
        drivers = self.catalog.select(playbooks)

        bull_drivers: List[str] = []
        bear_drivers: List[str] = []
        bull_score = 0
        bear_score = 0

        for driver in drivers:
            if not driver.enabled:
                continue
            if driver.name not in self.registry:
                self._quarantine(driver.name)
                continue
            if not self.registry.is_active(snapshot, driver.name, thesis):
                continue

            if driver.is_bullish:
                bull_score += driver.weight
                bull_drivers.append(driver.label)
            else:
                bear_score += driver.weight
                bear_drivers.append(driver.label)

        is_choppy = self.is_choppy(bull_score, bear_score, snapshot)

        logger.debug(
            "confluence_scored",
            security_id=snapshot.security_id,
            thesis=thesis.value,
            playbooks=[p.value for p in playbooks],
            bullish=bull_score,
            bearish=bear_score,
            choppy=is_choppy,
        )

        return ConfluenceScore(
            bullish_drivers=tuple(bull_drivers),
            bearish_drivers=tuple(bear_drivers),
            bullish_score=bull_score,
            bearish_score=bear_score,
            is_choppy=is_choppy,
        )

    def is_choppy(self, bull_score: int, bear_score: int, snapshot: SignalSnapshot) -> bool:
        """Irreconcilable two-sided conviction, or balanced OTM gamma."""
        if bull_score >= self.choppy_threshold and abs(bear_score) >= self.choppy_threshold:
            return True
        return snapshot.gamma_signal is GammaSignal.BALANCED_OTM_GAMMA
