"""
Transition rate limiting for emitted primary-signal changes.

A transition for an instrument is emitted at most once per window. The
check and the record happen under one lock so that two concurrent ticks for
the same instrument cannot both pass.
"""
import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Optional

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _aware(value: datetime) -> datetime:
    # Naive times are UTC, matching snapshot timestamps
    return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)


@dataclass
class RateLimitConfig:
    """Configuration for transition rate limiting."""
    enabled: bool = True
    window_seconds: float = 60.0


class TransitionRateLimiter:
    """
    Per-instrument minimum gap between emitted transitions.

    Only transitions that are allowed through refresh the recorded time;
    a suppressed transition leaves the previous timestamp untouched.
    Entries never expire.
    """

    def __init__(
        self,
        config: Optional[RateLimitConfig] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """
        Initialize the rate limiter.

        Args:
            config: Rate limit configuration
            clock: Time source used when callers do not pass ``now``
        """
        self.config = config or RateLimitConfig()
        self._clock = clock or _utcnow
        self._lock = threading.Lock()
        self._last_transition: Dict[str, datetime] = {}

        self.stats = {
            'transitions_checked': 0,
            'transitions_allowed': 0,
            'transitions_blocked': 0,
        }

    @property
    def window(self) -> timedelta:
        return timedelta(seconds=self.config.window_seconds)

    def check_and_record(self, security_id: str, now: Optional[datetime] = None) -> bool:
        """
        Atomically decide whether a transition may be emitted.

        Args:
            security_id: Instrument identifier
            now: Time of the transition, defaults to the clock

        Returns:
            True if allowed (and recorded), False if inside the window
        """
        now = _aware(now or self._clock())

        with self._lock:
            self.stats['transitions_checked'] += 1

            if not self.config.enabled:
                self._last_transition[security_id] = now
                self.stats['transitions_allowed'] += 1
                return True

            last = self._last_transition.get(security_id)
            if last is not None and now - last < self.window:
                self.stats['transitions_blocked'] += 1
                logger.debug(
                    f"Transition for {security_id} rate limited, "
                    f"{(now - last).total_seconds():.1f}s since last emission"
                )
                return False

            self._last_transition[security_id] = now
            self.stats['transitions_allowed'] += 1
            return True

    def last_transition(self, security_id: str) -> Optional[datetime]:
        with self._lock:
            return self._last_transition.get(security_id)

    def remaining_seconds(self, security_id: str, now: Optional[datetime] = None) -> float:
        """Seconds until the next transition for ``security_id`` is allowed."""
        now = _aware(now or self._clock())
        with self._lock:
            last = self._last_transition.get(security_id)
        if last is None:
            return 0.0
        remaining = (last + self.window) - now
        return max(0.0, remaining.total_seconds())

    def reset(self, security_id: Optional[str] = None) -> None:
        """Forget one instrument, or every instrument when omitted."""
        with self._lock:
            if security_id is None:
                self._last_transition.clear()
            else:
                self._last_transition.pop(security_id, None)

    def get_statistics(self) -> Dict[str, Any]:
        with self._lock:
            return {
                **self.stats,
                'tracked_instruments': len(self._last_transition),
                'window_seconds': self.config.window_seconds,
            }
