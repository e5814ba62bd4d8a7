"""
Main Thesis Synthesizer class for the thesis synthesis framework.

This class orchestrates all components to turn an indicator snapshot into a
classified market thesis:

    snapshot -> thesis state machine -> confluence scorer -> session dampening
             -> trend filter -> emission gate -> (emit) dispatcher

Classification is a pure function of the snapshot, the catalog and the
market phase; the only shared mutable state is the transition rate limiter.
"""

import threading
import time
from datetime import datetime
from typing import Any, Dict, Optional

from .core import ClassificationResult, SignalSnapshot, SynthesisOutcome, as_utc
from .components import (
    DEFAULT_PREDICATES,
    ConfluenceScorer,
    DriverCatalog,
    EmissionGate,
    PredicateRegistry,
    TrendFilter,
    derive_thesis,
)
from ..communication.state_manager import AnalysisStateManager
from ..config.settings import Settings, settings as default_settings
from ..events.cooldown_manager import RateLimitConfig, TransitionRateLimiter
from ..events.event_bus import EmissionDispatcher
from ..utils.logging import get_logger, log_context

logger = get_logger(__name__)


class ThesisSynthesizer:
    """
    Orchestrates the thesis synthesis pipeline for INDEX instruments.

    The catalog is read on every call, so driver changes made through the
    catalog's mutation methods take effect on the next tick.
    """

    def __init__(
        self,
        catalog: DriverCatalog,
        registry: Optional[PredicateRegistry] = None,
        state_manager: Optional[AnalysisStateManager] = None,
        rate_limiter: Optional[TransitionRateLimiter] = None,
        dispatcher: Optional[EmissionDispatcher] = None,
        settings: Optional[Settings] = None,
    ):
        """
        Initialize the thesis synthesizer.

        Args:
            catalog: Live driver catalog
            registry: Predicate registry, defaults to the built-in table
            state_manager: Market phase source
            rate_limiter: Shared transition rate limiter
            dispatcher: Emission dispatcher; emissions are only counted when None
            settings: Application settings, defaults to the global instance
        """
        self.settings = settings or default_settings
        self.catalog = catalog
        self.registry = registry or DEFAULT_PREDICATES
        self.state_manager = state_manager or AnalysisStateManager(self.settings.session)
        self.rate_limiter = rate_limiter or TransitionRateLimiter(
            RateLimitConfig(window_seconds=self.settings.emission.RATE_LIMIT_SECONDS)
        )
        self.dispatcher = dispatcher
        self.processed_groups = set(self.settings.scoring.PROCESSED_INSTRUMENT_GROUPS)

        # Initialize components
        self.confluence_scorer = ConfluenceScorer(
            catalog,
            self.registry,
            {"choppy_threshold": self.settings.scoring.CHOPPY_THRESHOLD},
        )
        self.trend_filter = TrendFilter({
            "dampening_factor": self.settings.scoring.OPENING_DAMPENING_FACTOR,
            "trend_bonus": self.settings.scoring.TREND_BONUS,
        })
        self.emission_gate = EmissionGate(
            self.rate_limiter,
            {
                "moderate_threshold": self.settings.emission.MODERATE_THRESHOLD,
                "strong_threshold": self.settings.emission.STRONG_THRESHOLD,
            },
        )

        self.validate_catalog()

        # Performance tracking
        self._metrics_lock = threading.Lock()
        self.performance_metrics = self._empty_metrics()

    @staticmethod
    def _empty_metrics() -> Dict[str, Any]:
        return {
            "ticks_processed": 0,
            "ticks_skipped": 0,
            "emissions": 0,
            "suppressed_unchanged": 0,
            "suppressed_initializing": 0,
            "suppressed_rate_limited": 0,
            "avg_synthesis_time": 0.0,
        }

    def validate_catalog(self) -> list:
        """
        Check every catalog driver name against the predicate registry.

        Returns:
            list: Driver names with no predicate (inactive until one exists)
        """
        unresolved = self.registry.unresolved(self.catalog.driver_names())
        if unresolved:
            logger.warning("catalog_unmapped_drivers", drivers=unresolved)
        return unresolved

    def synthesize(
        self,
        snapshot: SignalSnapshot,
        now: Optional[datetime] = None,
    ) -> Optional[SynthesisOutcome]:
        """
        Classify one snapshot and emit the transition if warranted.

        Args:
            snapshot: Current indicator snapshot
            now: Decision time, defaults to the snapshot timestamp

        Returns:
            Optional[SynthesisOutcome]: None for instruments outside the
            processed groups, otherwise the classification and emission decision
        """
        if snapshot.instrument_group not in self.processed_groups:
            with self._metrics_lock:
                self.performance_metrics["ticks_skipped"] += 1
            return None

        with log_context(security_id=snapshot.security_id, symbol=snapshot.symbol):
            return self._classify(snapshot, as_utc(now or snapshot.timestamp))

    def _classify(self, snapshot: SignalSnapshot, now: datetime) -> SynthesisOutcome:
        start_time = time.time()

        # 1. Derive thesis
        thesis, dominant_player = derive_thesis(snapshot)

        # 2. Score confluence
        confluence = self.confluence_scorer.score(snapshot, thesis)

        # 3. Dampen for session and apply trend filter
        phase = self.state_manager.phase_at(now)
        conviction = self.trend_filter.adjust(confluence.score, phase, snapshot)

        # 4. Playbook, primary signal and emission decision
        decision = self.emission_gate.finalize(snapshot, conviction, confluence.is_choppy, now)
        final_thesis = decision.thesis_override or thesis

        result = ClassificationResult(
            security_id=snapshot.security_id,
            symbol=snapshot.symbol,
            timestamp=snapshot.timestamp,
            dominant_player=dominant_player,
            thesis=final_thesis,
            bullish_drivers=confluence.bullish_drivers,
            bearish_drivers=confluence.bearish_drivers,
            bullish_score=confluence.bullish_score,
            bearish_score=confluence.bearish_score,
            raw_score=confluence.score,
            conviction_score=conviction,
            is_choppy=confluence.is_choppy,
            playbook=decision.playbook,
            primary_signal=decision.primary_signal,
            previous_primary_signal=snapshot.previous_primary_signal,
            narrative=self.generate_narrative(snapshot, final_thesis, dominant_player),
        )

        # 5. Emit
        if decision.should_emit:
            logger.info(
                "thesis_transition",
                previous=result.previous_primary_signal.value,
                new=result.primary_signal.value,
                playbook=result.playbook.value,
                conviction=result.conviction_score,
            )
            if self.dispatcher is not None:
                self.dispatcher.submit(result, snapshot.previous_primary_signal)

        self._update_performance_metrics(time.time() - start_time, decision.should_emit, decision.suppressed_reason)

        return SynthesisOutcome(
            result=result,
            should_emit=decision.should_emit,
            suppressed_reason=decision.suppressed_reason,
        )

    @staticmethod
    def generate_narrative(snapshot: SignalSnapshot, thesis, dominant_player) -> str:
        return (
            f"Thesis: {thesis.value}. Dominant Player: {dominant_player.value}. "
            f"Open: {snapshot.open_type_signal}. vs VWAP: {snapshot.price_vs_vwap.value}."
        )

    def _update_performance_metrics(self, synthesis_time: float, emitted: bool, suppressed_reason: Optional[str]):
        """Update performance metrics."""
        with self._metrics_lock:
            metrics = self.performance_metrics
            metrics["ticks_processed"] += 1

            if emitted:
                metrics["emissions"] += 1
            elif suppressed_reason:
                key = f"suppressed_{suppressed_reason}"
                metrics[key] = metrics.get(key, 0) + 1

            # Update average synthesis time
            total = metrics["ticks_processed"]
            metrics["avg_synthesis_time"] = (metrics["avg_synthesis_time"] * (total - 1) + synthesis_time) / total

    def get_statistics(self) -> Dict[str, Any]:
        """Get current synthesis statistics."""
        with self._metrics_lock:
            stats = self.performance_metrics.copy()
        stats.update({
            "catalog_version": self.catalog.version,
            "quarantined_drivers": self.confluence_scorer.quarantined_drivers(),
            "rate_limiter": self.rate_limiter.get_statistics(),
        })
        if self.dispatcher is not None:
            stats["dispatcher"] = self.dispatcher.get_statistics()
        return stats

    def reset_metrics(self):
        """Reset performance metrics."""
        with self._metrics_lock:
            self.performance_metrics = self._empty_metrics()
