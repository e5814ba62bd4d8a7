"""
Emission delivery for thesis transitions.

This package rate limits primary-signal transitions per instrument and
delivers the emitted ones to persistence and notification sinks through a
bounded, non-blocking dispatcher.
"""

from .cooldown_manager import RateLimitConfig, TransitionRateLimiter
from .event_bus import Emission, EmissionDispatcher, QueuePolicy
from .sinks import (
    JsonlSignalLogger,
    LoggingNotifier,
    NotificationSink,
    SignalSink,
    TelegramNotifier,
    build_notifier,
)

__all__ = [
    "RateLimitConfig",
    "TransitionRateLimiter",
    "Emission",
    "EmissionDispatcher",
    "QueuePolicy",
    "JsonlSignalLogger",
    "LoggingNotifier",
    "NotificationSink",
    "SignalSink",
    "TelegramNotifier",
    "build_notifier",
]
