"""
Core data structures for the thesis synthesis framework.

Every indicator reading supplied by the upstream pipeline is modelled as a
closed enumeration whose values are the exact labels the pipeline emits.
Parsing is lenient: absent or unrecognised labels resolve to the neutral
member of the enumeration so that a malformed snapshot degrades to a neutral
classification instead of aborting the tick stream.
"""

from dataclasses import dataclass, field, fields, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Tuple


class LabelEnum(str, Enum):
    """String enumeration with lenient, label-based parsing."""

    def __str__(self) -> str:
        return self.value

    @classmethod
    def default(cls) -> "LabelEnum":
        """Member used for absent or unrecognised labels."""
        return cls["NEUTRAL"]

    @classmethod
    def parse(cls, value: Any) -> "LabelEnum":
        """
        Resolve an upstream label to a member.

        Matching is exact on the label first, then case-insensitive on the
        label or member name. Anything else yields ``default()``.
        """
        if isinstance(value, cls):
            return value
        if value is None:
            return cls.default()

        text = str(value).strip()
        for member in cls:
            if member.value == text:
                return member

        lowered = text.lower()
        for member in cls:
            if member.value.lower() == lowered or member.name.lower() == lowered:
                return member

        return cls.default()


# ==============================
# Indicator readings
# ==============================

class PriceVsVwap(LabelEnum):
    ABOVE_VWAP = "Above VWAP"
    BELOW_VWAP = "Below VWAP"
    AT_VWAP = "At VWAP"
    NEUTRAL = "Neutral"


class CrossSignal(LabelEnum):
    """Moving-average cross state (5m EMA and 5m VWAP-EMA)."""
    BULLISH_CROSS = "Bullish Cross"
    BEARISH_CROSS = "Bearish Cross"
    NEUTRAL = "Neutral"


class OiSignal(LabelEnum):
    LONG_BUILDUP = "Long Buildup"
    SHORT_BUILDUP = "Short Buildup"
    LONG_UNWINDING = "Long Unwinding"
    SHORT_COVERING = "Short Covering"
    NEUTRAL = "Neutral"


class GammaSignal(LabelEnum):
    HIGH_OTM_CALL_GAMMA = "High OTM Call Gamma"
    HIGH_OTM_PUT_GAMMA = "High OTM Put Gamma"
    BALANCED_OTM_GAMMA = "Balanced OTM Gamma"
    NEUTRAL = "Neutral"


class VolatilityState(LabelEnum):
    IV_SQUEEZE_SETUP = "IV Squeeze Setup"
    IV_EXPANSION = "IV Expansion"
    NORMAL = "Normal"

    @classmethod
    def default(cls) -> "VolatilityState":
        return cls.NORMAL


class MarketProfileSignal(LabelEnum):
    TRUE_ACCEPTANCE_ABOVE_YVAH = "True Acceptance Above Y-VAH"
    TRUE_ACCEPTANCE_BELOW_YVAL = "True Acceptance Below Y-VAL"
    LOOK_ABOVE_AND_FAIL_AT_YVAH = "Look Above and Fail at Y-VAH"
    LOOK_BELOW_AND_FAIL_AT_YVAL = "Look Below and Fail at Y-VAL"
    INITIATIVE_BUYING_ABOVE_YVAH = "Initiative Buying Above Y-VAH"
    INITIATIVE_SELLING_BELOW_YVAL = "Initiative Selling Below Y-VAL"
    INSIDE_VALUE = "Inside Value"
    NEUTRAL = "Neutral"


class VolumeSignal(LabelEnum):
    VOLUME_BURST = "Volume Burst"
    NEUTRAL = "Neutral"


class InstitutionalIntent(LabelEnum):
    BULLISH = "Bullish"
    BEARISH = "Bearish"
    NEUTRAL = "Neutral"


class InitialBalanceSignal(LabelEnum):
    IB_EXTENSION_UP = "IB Extension Up"
    IB_EXTENSION_DOWN = "IB Extension Down"
    INSIDE_IB = "Inside IB"
    NEUTRAL = "Neutral"


class IvSkewSignal(LabelEnum):
    BULLISH_SKEW_DIVERGENCE = "Bullish Skew Divergence"
    BEARISH_SKEW_DIVERGENCE = "Bearish Skew Divergence"
    NEUTRAL = "Neutral"


class CustomLevelSignal(LabelEnum):
    AT_KEY_SUPPORT = "At Key Support"
    AT_KEY_RESISTANCE = "At Key Resistance"
    NEUTRAL = "Neutral"


class DayRangeSignal(LabelEnum):
    NEAR_LOW = "Near Low"
    NEAR_HIGH = "Near High"
    MID_RANGE = "Mid Range"
    NEUTRAL = "Neutral"


class VwapBandSignal(LabelEnum):
    AT_LOWER_BAND = "At Lower Band"
    AT_UPPER_BAND = "At Upper Band"
    INSIDE_BANDS = "Inside Bands"
    NEUTRAL = "Neutral"


class MarketStructure(LabelEnum):
    TRENDING_UP = "Trending Up"
    TRENDING_DOWN = "Trending Down"
    BALANCING = "Balancing"

    @classmethod
    def default(cls) -> "MarketStructure":
        return cls.BALANCING


class MarketRegime(LabelEnum):
    HIGH_VOLATILITY = "High Volatility"
    NORMAL = "Normal"
    LOW_VOLATILITY = "Low Volatility"

    @classmethod
    def default(cls) -> "MarketRegime":
        return cls.NORMAL


class MarketPhase(LabelEnum):
    PRE_OPEN = "Pre-Open"
    OPENING = "Opening"
    NORMAL = "Normal"
    CLOSING = "Closing"
    CLOSED = "Closed"

    @classmethod
    def default(cls) -> "MarketPhase":
        return cls.NORMAL


# ==============================
# Derived outputs
# ==============================

class MarketThesis(LabelEnum):
    BULLISH_TREND = "Bullish_Trend"
    BULLISH_ROTATION = "Bullish_Rotation"
    BEARISH_TREND = "Bearish_Trend"
    BEARISH_ROTATION = "Bearish_Rotation"
    BALANCING = "Balancing"
    CHOPPY = "Choppy"

    @classmethod
    def default(cls) -> "MarketThesis":
        return cls.BALANCING

    @property
    def is_directional(self) -> bool:
        """True for the four trend/rotation theses."""
        return self in _DIRECTIONAL_THESES

    @property
    def is_strong_trend(self) -> bool:
        return self in (MarketThesis.BULLISH_TREND, MarketThesis.BEARISH_TREND)


_DIRECTIONAL_THESES = frozenset({
    MarketThesis.BULLISH_TREND,
    MarketThesis.BULLISH_ROTATION,
    MarketThesis.BEARISH_TREND,
    MarketThesis.BEARISH_ROTATION,
})


class DominantPlayer(LabelEnum):
    BUYERS = "Buyers"
    SELLERS = "Sellers"
    BALANCE = "Balance"

    @classmethod
    def default(cls) -> "DominantPlayer":
        return cls.BALANCE


class PrimarySignal(LabelEnum):
    """
    Directional recommendation.

    ``INITIALIZING`` is a sentinel: it is only ever seen as the previous
    signal of an instrument that has not been classified yet and is never
    produced by the emission gate.
    """
    BULLISH = "Bullish"
    BEARISH = "Bearish"
    NEUTRAL = "Neutral"
    INITIALIZING = "Initializing"

    @classmethod
    def default(cls) -> "PrimarySignal":
        # An unreadable previous signal is treated as "not yet classified".
        return cls.INITIALIZING


class Playbook(LabelEnum):
    STRONG_BULLISH = "Strong Bullish Conviction"
    MODERATE_BULLISH = "Moderate Bullish Conviction"
    STRONG_BEARISH = "Strong Bearish Conviction"
    MODERATE_BEARISH = "Moderate Bearish Conviction"
    NEUTRAL = "Neutral / Observe"
    CHOPPY = "Choppy / Conflicting Signals"


# ==============================
# Snapshot and results
# ==============================

def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Attach UTC to a naive datetime; aware datetimes pass through."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


@dataclass(frozen=True)
class SignalSnapshot:
    """
    Derived indicator state of one instrument at one point in time.

    Attributes:
        security_id: Unique instrument identifier (rate limiting is keyed on it).
        symbol: Human-readable trading symbol.
        instrument_group: Only ``INDEX`` instruments are classified; a missing
            group is left empty and the tick is skipped.
        price_vs_vwap: Price position relative to session VWAP.
        ema_signal_5min: 5-minute fast EMA cross state.
        vwap_ema_signal_5min: 5-minute VWAP/EMA cross state.
        oi_signal: Open-interest buildup direction.
        gamma_signal: Open-interest weighted gamma exposure bucket.
        volatility_state: Implied volatility state bucket.
        market_profile_signal: Acceptance state against yesterday's value area.
        candle_signal_5min: Free-form 5-minute candle pattern label.
        volume_signal: Volume burst flag.
        institutional_intent: Institutional intent label.
        initial_balance_signal: Initial balance extension state.
        iv_skew_signal: IV skew divergence signal.
        custom_level_signal: Proximity to operator-defined key levels.
        day_range_signal: Position within the day's range.
        vwap_band_signal: Position within the VWAP bands.
        open_type_signal: Free-form opening type label (narrative only).
        market_structure: Prevailing market structure.
        market_regime: Prevailing volatility regime.
        previous_primary_signal: Primary signal committed on the previous tick.
        timestamp: Time the snapshot was produced.
    """
    security_id: str
    symbol: str = ""
    instrument_group: str = ""
    price_vs_vwap: PriceVsVwap = PriceVsVwap.NEUTRAL
    ema_signal_5min: CrossSignal = CrossSignal.NEUTRAL
    vwap_ema_signal_5min: CrossSignal = CrossSignal.NEUTRAL
    oi_signal: OiSignal = OiSignal.NEUTRAL
    gamma_signal: GammaSignal = GammaSignal.NEUTRAL
    volatility_state: VolatilityState = VolatilityState.NORMAL
    market_profile_signal: MarketProfileSignal = MarketProfileSignal.NEUTRAL
    candle_signal_5min: str = ""
    volume_signal: VolumeSignal = VolumeSignal.NEUTRAL
    institutional_intent: InstitutionalIntent = InstitutionalIntent.NEUTRAL
    initial_balance_signal: InitialBalanceSignal = InitialBalanceSignal.NEUTRAL
    iv_skew_signal: IvSkewSignal = IvSkewSignal.NEUTRAL
    custom_level_signal: CustomLevelSignal = CustomLevelSignal.NEUTRAL
    day_range_signal: DayRangeSignal = DayRangeSignal.NEUTRAL
    vwap_band_signal: VwapBandSignal = VwapBandSignal.NEUTRAL
    open_type_signal: str = ""
    market_structure: MarketStructure = MarketStructure.BALANCING
    market_regime: MarketRegime = MarketRegime.NORMAL
    previous_primary_signal: PrimarySignal = PrimarySignal.INITIALIZING
    timestamp: datetime = field(default_factory=_utcnow)

    def __post_init__(self):
        # Raw labels passed directly are coerced the same way from_dict does
        for name, enum_type in _ENUM_FIELDS.items():
            value = getattr(self, name)
            if not isinstance(value, enum_type):
                object.__setattr__(self, name, enum_type.parse(value))
        if self.instrument_group is None:
            object.__setattr__(self, "instrument_group", "")
        object.__setattr__(self, "timestamp", _parse_timestamp(self.timestamp))

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "SignalSnapshot":
        """
        Build a snapshot from upstream label strings.

        Unknown keys are ignored; enum-typed fields are parsed leniently.
        """
        kwargs: Dict[str, Any] = {}
        for f in fields(cls):
            if f.name not in data:
                continue
            value = data[f.name]
            enum_type = _ENUM_FIELDS.get(f.name)
            if enum_type is not None:
                value = enum_type.parse(value)
            elif f.name == "timestamp":
                value = _parse_timestamp(value)
            elif value is None:
                continue
            else:
                value = str(value)
            kwargs[f.name] = value

        if "security_id" not in kwargs:
            kwargs["security_id"] = str(data.get("symbol", ""))
        return cls(**kwargs)

    def to_dict(self) -> Dict[str, Any]:
        """Serialise back to upstream labels."""
        out: Dict[str, Any] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, Enum):
                value = value.value
            elif isinstance(value, datetime):
                value = value.isoformat()
            out[f.name] = value
        return out

    def with_result(self, result: "ClassificationResult") -> "SignalSnapshot":
        """Copy carrying ``result`` as the previous primary signal, for the next tick."""
        return replace(self, previous_primary_signal=result.primary_signal)


def _parse_timestamp(value: Any) -> datetime:
    if isinstance(value, datetime):
        return as_utc(value)
    if value in (None, ""):
        return _utcnow()
    try:
        parsed = datetime.fromisoformat(str(value))
    except ValueError:
        return _utcnow()
    return as_utc(parsed)


_ENUM_FIELDS: Dict[str, type] = {
    "price_vs_vwap": PriceVsVwap,
    "ema_signal_5min": CrossSignal,
    "vwap_ema_signal_5min": CrossSignal,
    "oi_signal": OiSignal,
    "gamma_signal": GammaSignal,
    "volatility_state": VolatilityState,
    "market_profile_signal": MarketProfileSignal,
    "volume_signal": VolumeSignal,
    "institutional_intent": InstitutionalIntent,
    "initial_balance_signal": InitialBalanceSignal,
    "iv_skew_signal": IvSkewSignal,
    "custom_level_signal": CustomLevelSignal,
    "day_range_signal": DayRangeSignal,
    "vwap_band_signal": VwapBandSignal,
    "market_structure": MarketStructure,
    "market_regime": MarketRegime,
    "previous_primary_signal": PrimarySignal,
}


@dataclass(frozen=True)
class ConfluenceScore:
    """Output of the confluence scorer."""
    bullish_drivers: Tuple[str, ...] = ()
    bearish_drivers: Tuple[str, ...] = ()
    bullish_score: int = 0
    bearish_score: int = 0
    is_choppy: bool = False

    @property
    def score(self) -> int:
        return self.bullish_score + self.bearish_score


@dataclass(frozen=True)
class ClassificationResult:
    """
    Classification of one snapshot, paired to it by ``security_id``.

    ``thesis`` is the final thesis, i.e. ``Choppy`` when choppy conditions
    overrode the state-machine thesis.
    """
    security_id: str
    symbol: str
    timestamp: datetime
    dominant_player: DominantPlayer
    thesis: MarketThesis
    bullish_drivers: Tuple[str, ...]
    bearish_drivers: Tuple[str, ...]
    bullish_score: int
    bearish_score: int
    raw_score: int
    conviction_score: int
    is_choppy: bool
    playbook: Playbook
    primary_signal: PrimarySignal
    previous_primary_signal: PrimarySignal
    narrative: str

    @property
    def is_transition(self) -> bool:
        """Primary signal changed from an initialised previous value."""
        return (
            self.previous_primary_signal is not PrimarySignal.INITIALIZING
            and self.primary_signal is not self.previous_primary_signal
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "security_id": self.security_id,
            "symbol": self.symbol,
            "timestamp": self.timestamp.isoformat(),
            "dominant_player": self.dominant_player.value,
            "thesis": self.thesis.value,
            "bullish_drivers": list(self.bullish_drivers),
            "bearish_drivers": list(self.bearish_drivers),
            "bullish_score": self.bullish_score,
            "bearish_score": self.bearish_score,
            "raw_score": self.raw_score,
            "conviction_score": self.conviction_score,
            "is_choppy": self.is_choppy,
            "playbook": self.playbook.value,
            "primary_signal": self.primary_signal.value,
            "previous_primary_signal": self.previous_primary_signal.value,
            "narrative": self.narrative,
        }


@dataclass(frozen=True)
class SynthesisOutcome:
    """
    Result of one synthesis call.

    Attributes:
        result: The classification committed for this tick.
        should_emit: Whether persistence and notification were requested.
        suppressed_reason: Why emission did not happen (``unchanged``,
            ``initializing`` or ``rate_limited``), None when emitting.
    """
    result: ClassificationResult
    should_emit: bool
    suppressed_reason: Optional[str] = None
