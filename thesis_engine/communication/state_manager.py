"""
Manages the shared analysis state of the Market Thesis Engine.

This module provides an AnalysisStateManager that serves as the single
source of the current market phase (used for opening-session dampening) and
as a small in-memory store for per-instrument state such as the last primary
signal produced. The phase is either set explicitly or derived from the
exchange session clock.
"""
import datetime
import threading
from datetime import time, timedelta
from typing import Any, Dict, Optional

import pytz

from ..config.settings import SessionSettings, settings
from ..signal_generation.core import MarketPhase, PrimarySignal


def _parse_clock(value: str) -> time:
    hours, minutes = value.split(":")
    return time(int(hours), int(minutes))


def _shift(value: time, minutes: int) -> time:
    anchor = datetime.datetime.combine(datetime.date(2000, 1, 1), value)
    return (anchor + timedelta(minutes=minutes)).time()


def market_phase_at(
    timestamp: datetime.datetime,
    session: Optional[SessionSettings] = None,
) -> MarketPhase:
    """
    Classify a timestamp into a market phase.

    Naive timestamps are taken as UTC. Weekends are always ``Closed``.

    Args:
        timestamp: Moment to classify
        session: Session clock, defaults to the configured one

    Returns:
        MarketPhase: Phase of the exchange session at ``timestamp``
    """
    session = session or settings.session
    tz = pytz.timezone(session.TIMEZONE)

    if timestamp.tzinfo is None:
        timestamp = pytz.UTC.localize(timestamp)
    local = timestamp.astimezone(tz)

    if local.weekday() >= 5:
        return MarketPhase.CLOSED

    market_open = _parse_clock(session.MARKET_OPEN)
    market_close = _parse_clock(session.MARKET_CLOSE)
    pre_open = _shift(market_open, -session.PRE_OPEN_MINUTES)
    opening_end = _shift(market_open, session.OPENING_PHASE_MINUTES)
    closing_start = _shift(market_close, -session.CLOSING_PHASE_MINUTES)

    now = local.time()
    if now < pre_open or now >= market_close:
        return MarketPhase.CLOSED
    if now < market_open:
        return MarketPhase.PRE_OPEN
    if now < opening_end:
        return MarketPhase.OPENING
    if now < closing_start:
        return MarketPhase.NORMAL
    return MarketPhase.CLOSING


class AnalysisStateManager:
    """
    Thread-safe in-memory analysis state.

    ``current_market_phase`` returns the explicitly set phase when one was
    set, otherwise the phase derived from the session clock at call time.
    """

    def __init__(
        self,
        session: Optional[SessionSettings] = None,
        market_phase: Optional[Any] = None,
    ):
        """
        Initializes the state manager.

        Args:
            session: Session clock used to derive the phase
            market_phase: Optional fixed phase (``MarketPhase`` or its label)
        """
        self.session = session or settings.session
        self._lock = threading.Lock()
        self._state: Dict[str, Any] = {}
        self._market_phase: Optional[MarketPhase] = None
        if market_phase is not None:
            self.set_market_phase(market_phase)

    def get(self, key: str) -> Optional[Any]:
        """
        Retrieves a value from the state by key.

        Returns:
            The value associated with the key, or None if the key is not found.
        """
        with self._lock:
            return self._state.get(key)

    def set(self, key: str, value: Any):
        """Sets a value in the state."""
        with self._lock:
            self._state[key] = value

    @property
    def current_market_phase(self) -> MarketPhase:
        with self._lock:
            phase = self._market_phase
        if phase is not None:
            return phase
        return market_phase_at(datetime.datetime.now(pytz.UTC), self.session)

    def phase_at(self, timestamp: datetime.datetime) -> MarketPhase:
        """Phase at ``timestamp``, honouring an explicitly set phase."""
        with self._lock:
            phase = self._market_phase
        if phase is not None:
            return phase
        return market_phase_at(timestamp, self.session)

    def set_market_phase(self, phase: Any):
        """Pin the market phase; labels are parsed leniently."""
        with self._lock:
            self._market_phase = MarketPhase.parse(phase)

    def clear_market_phase(self):
        """Return to deriving the phase from the session clock."""
        with self._lock:
            self._market_phase = None

    def get_last_primary_signal(self, security_id: str) -> PrimarySignal:
        """
        Retrieves the last primary signal recorded for an instrument.

        Returns:
            ``Initializing`` when nothing was recorded yet.
        """
        return self.get(f"primary_signal_{security_id}") or PrimarySignal.INITIALIZING

    def set_last_primary_signal(self, security_id: str, signal: PrimarySignal):
        self.set(f"primary_signal_{security_id}", signal)
