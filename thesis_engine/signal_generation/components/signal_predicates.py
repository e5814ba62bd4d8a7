"""
Signal Predicate Evaluator for the thesis synthesis framework.

Driver names in the strategy catalog are free-form configuration. This module
owns the explicit table that maps each supported name to a boolean condition
over a ``SignalSnapshot``. The table is built once at import time; names
without an entry never contribute (fail-closed) and can be validated eagerly
with ``PredicateRegistry.unresolved``.

Supported drivers
-----------------
Confluence Momentum (Bullish)
    Price above VWAP, bullish 5m EMA cross and bullish institutional intent.
Confluence Momentum (Bearish)
    Price below VWAP, bearish 5m EMA cross and bearish institutional intent.
Option Breakout Setup
    Volatility state is an IV squeeze setup.
True Acceptance Above Y-VAH / True Acceptance Below Y-VAL
Look Above and Fail at Y-VAH / Look Below and Fail at Y-VAL
Initiative Buying Above Y-VAH / Initiative Selling Below Y-VAL
    Market profile signal equals the driver name.
Price above VWAP / Price below VWAP
    Price position against VWAP.
5m VWAP EMA confirms bullish trend / 5m VWAP EMA confirms bearish trend
    5m VWAP-EMA cross state.
OI confirms new longs / OI confirms new shorts
    Long buildup / short buildup in open interest.
High OTM Call Gamma / High OTM Put Gamma
    Gamma exposure bucket.
Bullish Pattern with Volume Confirmation / Bearish Pattern with Volume Confirmation
    5m candle label contains "Bullish"/"Bearish" and a volume burst is flagged.
Institutional Intent is Bullish / Institutional Intent is Bearish
    Institutional intent label.
IB breakout is extending / IB breakdown is extending
    Initial balance extension up/down.
Bullish Skew Divergence / Bearish Skew Divergence
    IV skew divergence fires while the thesis is not a strong trend.
"""

from typing import Callable, Dict, Iterable, List, Optional

from ..core import (
    CrossSignal,
    GammaSignal,
    InitialBalanceSignal,
    InstitutionalIntent,
    IvSkewSignal,
    MarketProfileSignal,
    MarketThesis,
    OiSignal,
    PriceVsVwap,
    SignalSnapshot,
    VolatilityState,
    VolumeSignal,
)
from ...utils.logging import get_logger

logger = get_logger(__name__)

Predicate = Callable[[SignalSnapshot, MarketThesis], bool]


class PredicateRegistry:
    """
    Explicit registry of driver name -> predicate.

    ``is_active`` is a total function: unknown names and predicates that
    raise on malformed input both evaluate to False.
    """

    def __init__(self, predicates: Optional[Dict[str, Predicate]] = None):
        self._predicates: Dict[str, Predicate] = dict(predicates or {})

    def register(self, name: str) -> Callable[[Predicate], Predicate]:
        """Decorator registering a predicate under ``name``."""
        def decorator(func: Predicate) -> Predicate:
            if name in self._predicates:
                raise ValueError(f"Predicate already registered for driver '{name}'")
            self._predicates[name] = func
            return func
        return decorator

    def __contains__(self, name: object) -> bool:
        return name in self._predicates

    def __len__(self) -> int:
        return len(self._predicates)

    def names(self) -> List[str]:
        return sorted(self._predicates)

    def get(self, name: str) -> Optional[Predicate]:
        return self._predicates.get(name)

    def unresolved(self, names: Iterable[str]) -> List[str]:
        """Names with no registered predicate, in first-seen order."""
        missing: List[str] = []
        for name in names:
            if name not in self._predicates and name not in missing:
                missing.append(name)
        return missing

    def is_active(
        self,
        snapshot: SignalSnapshot,
        driver_name: str,
        thesis: Optional[MarketThesis] = None,
    ) -> bool:
        """
        Evaluate whether the named driver's condition holds for ``snapshot``.

        Args:
            snapshot: Current indicator snapshot
            driver_name: Driver name from the catalog
            thesis: Thesis derived for this tick; defaults to ``Balancing``

        Returns:
            bool: True only for a registered predicate that holds
        """
        predicate = self._predicates.get(driver_name)
        if predicate is None:
            return False

        try:
            return bool(predicate(snapshot, thesis or MarketThesis.BALANCING))
        except Exception as e:
            logger.warning("predicate_failed", driver=driver_name, error=str(e))
            return False

    def copy(self) -> "PredicateRegistry":
        return PredicateRegistry(self._predicates)


DEFAULT_PREDICATES = PredicateRegistry()
register = DEFAULT_PREDICATES.register


def _market_profile_is(label: MarketProfileSignal) -> Predicate:
    def predicate(s: SignalSnapshot, thesis: MarketThesis) -> bool:
        return s.market_profile_signal is label
    return predicate


# Confluence signals

@register("Confluence Momentum (Bullish)")
def _confluence_momentum_bullish(s: SignalSnapshot, thesis: MarketThesis) -> bool:
    return (
        s.price_vs_vwap is PriceVsVwap.ABOVE_VWAP
        and s.ema_signal_5min is CrossSignal.BULLISH_CROSS
        and s.institutional_intent is InstitutionalIntent.BULLISH
    )


@register("Confluence Momentum (Bearish)")
def _confluence_momentum_bearish(s: SignalSnapshot, thesis: MarketThesis) -> bool:
    return (
        s.price_vs_vwap is PriceVsVwap.BELOW_VWAP
        and s.ema_signal_5min is CrossSignal.BEARISH_CROSS
        and s.institutional_intent is InstitutionalIntent.BEARISH
    )


# Volatility signals

@register("Option Breakout Setup")
def _option_breakout_setup(s: SignalSnapshot, thesis: MarketThesis) -> bool:
    return s.volatility_state is VolatilityState.IV_SQUEEZE_SETUP


@register("Bullish Skew Divergence")
def _bullish_skew_divergence(s: SignalSnapshot, thesis: MarketThesis) -> bool:
    return s.iv_skew_signal is IvSkewSignal.BULLISH_SKEW_DIVERGENCE and not thesis.is_strong_trend


@register("Bearish Skew Divergence")
def _bearish_skew_divergence(s: SignalSnapshot, thesis: MarketThesis) -> bool:
    return s.iv_skew_signal is IvSkewSignal.BEARISH_SKEW_DIVERGENCE and not thesis.is_strong_trend


# Market profile signals
for _label in (
    MarketProfileSignal.TRUE_ACCEPTANCE_ABOVE_YVAH,
    MarketProfileSignal.TRUE_ACCEPTANCE_BELOW_YVAL,
    MarketProfileSignal.LOOK_ABOVE_AND_FAIL_AT_YVAH,
    MarketProfileSignal.LOOK_BELOW_AND_FAIL_AT_YVAL,
    MarketProfileSignal.INITIATIVE_BUYING_ABOVE_YVAH,
    MarketProfileSignal.INITIATIVE_SELLING_BELOW_YVAL,
):
    register(_label.value)(_market_profile_is(_label))
del _label


# Standard trend signals

@register("Price above VWAP")
def _price_above_vwap(s: SignalSnapshot, thesis: MarketThesis) -> bool:
    return s.price_vs_vwap is PriceVsVwap.ABOVE_VWAP


@register("Price below VWAP")
def _price_below_vwap(s: SignalSnapshot, thesis: MarketThesis) -> bool:
    return s.price_vs_vwap is PriceVsVwap.BELOW_VWAP


@register("5m VWAP EMA confirms bullish trend")
def _vwap_ema_bullish(s: SignalSnapshot, thesis: MarketThesis) -> bool:
    return s.vwap_ema_signal_5min is CrossSignal.BULLISH_CROSS


@register("5m VWAP EMA confirms bearish trend")
def _vwap_ema_bearish(s: SignalSnapshot, thesis: MarketThesis) -> bool:
    return s.vwap_ema_signal_5min is CrossSignal.BEARISH_CROSS


@register("OI confirms new longs")
def _oi_new_longs(s: SignalSnapshot, thesis: MarketThesis) -> bool:
    return s.oi_signal is OiSignal.LONG_BUILDUP


@register("OI confirms new shorts")
def _oi_new_shorts(s: SignalSnapshot, thesis: MarketThesis) -> bool:
    return s.oi_signal is OiSignal.SHORT_BUILDUP


@register("High OTM Call Gamma")
def _high_call_gamma(s: SignalSnapshot, thesis: MarketThesis) -> bool:
    return s.gamma_signal is GammaSignal.HIGH_OTM_CALL_GAMMA


@register("High OTM Put Gamma")
def _high_put_gamma(s: SignalSnapshot, thesis: MarketThesis) -> bool:
    return s.gamma_signal is GammaSignal.HIGH_OTM_PUT_GAMMA


@register("Bullish Pattern with Volume Confirmation")
def _bullish_pattern_volume(s: SignalSnapshot, thesis: MarketThesis) -> bool:
    return "Bullish" in (s.candle_signal_5min or "") and s.volume_signal is VolumeSignal.VOLUME_BURST


@register("Bearish Pattern with Volume Confirmation")
def _bearish_pattern_volume(s: SignalSnapshot, thesis: MarketThesis) -> bool:
    return "Bearish" in (s.candle_signal_5min or "") and s.volume_signal is VolumeSignal.VOLUME_BURST


@register("Institutional Intent is Bullish")
def _intent_bullish(s: SignalSnapshot, thesis: MarketThesis) -> bool:
    return s.institutional_intent is InstitutionalIntent.BULLISH


@register("Institutional Intent is Bearish")
def _intent_bearish(s: SignalSnapshot, thesis: MarketThesis) -> bool:
    return s.institutional_intent is InstitutionalIntent.BEARISH


@register("IB breakout is extending")
def _ib_breakout(s: SignalSnapshot, thesis: MarketThesis) -> bool:
    return s.initial_balance_signal is InitialBalanceSignal.IB_EXTENSION_UP


@register("IB breakdown is extending")
def _ib_breakdown(s: SignalSnapshot, thesis: MarketThesis) -> bool:
    return s.initial_balance_signal is InitialBalanceSignal.IB_EXTENSION_DOWN


def is_signal_active(
    snapshot: SignalSnapshot,
    driver_name: str,
    thesis: Optional[MarketThesis] = None,
) -> bool:
    """Evaluate ``driver_name`` against the default predicate table."""
    return DEFAULT_PREDICATES.is_active(snapshot, driver_name, thesis)
