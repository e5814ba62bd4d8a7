"""
Centralized configuration management for the Market Thesis Engine.

Configuration follows a 2-tier layout:

Tier 1: Code Defaults (this module)
- Default values for every threshold used by the classification path
- Version controlled, visible in PRs

Tier 2: Environment Variables (.env)
- Secrets (Telegram bot token) and local overrides
- Every setting can be overridden with its prefixed name, e.g.
  EMISSION_RATE_LIMIT_SECONDS=120 or SESSION_OPENING_PHASE_MINUTES=15

This module uses pydantic-settings to manage configuration from environment
variables and .env files.
"""
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class SessionSettings(BaseSettings):
    """
    Exchange session clock used to derive the market phase.

    Defaults describe the NSE cash/F&O session, where the INDEX instruments
    this engine classifies are traded.
    """
    model_config = SettingsConfigDict(env_prefix='SESSION_')

    TIMEZONE: str = "Asia/Kolkata"
    MARKET_OPEN: str = "09:15"
    MARKET_CLOSE: str = "15:30"
    PRE_OPEN_MINUTES: int = 15
    OPENING_PHASE_MINUTES: int = 30
    CLOSING_PHASE_MINUTES: int = 30


class ScoringSettings(BaseSettings):
    """
    Configuration for confluence scoring and the post-scoring adjustments.
    """
    model_config = SettingsConfigDict(env_prefix='SCORING_')

    CHOPPY_THRESHOLD: int = 5  # Both sides at or above this magnitude => choppy
    OPENING_DAMPENING_FACTOR: float = 0.5  # Conviction multiplier during the opening phase
    TREND_BONUS: int = 2  # Added when a with-trend score sits at support/resistance
    PROCESSED_INSTRUMENT_GROUPS: List[str] = ["INDEX"]


class EmissionSettings(BaseSettings):
    """
    Configuration for the emission gate and the notification dispatcher.
    """
    model_config = SettingsConfigDict(env_prefix='EMISSION_')

    MODERATE_THRESHOLD: int = 3
    STRONG_THRESHOLD: int = 7
    RATE_LIMIT_SECONDS: float = 60.0  # Minimum gap between emitted transitions per instrument

    QUEUE_SIZE: int = 256
    QUEUE_POLICY: str = "drop_oldest"  # drop_oldest or drop_newest
    WORKER_COUNT: int = 1

    SIGNAL_LOG_PATH: str = "logs/signals.jsonl"


class NotificationSettings(BaseSettings):
    """
    Configuration for outbound transition notifications.
    """
    model_config = SettingsConfigDict(env_prefix='NOTIFY_')

    TELEGRAM_ENABLED: bool = False
    TELEGRAM_BOT_TOKEN: Optional[str] = None
    TELEGRAM_CHAT_ID: Optional[str] = None
    TELEGRAM_BASE_URL: str = "https://api.telegram.org"
    TIMEOUT_SECONDS: float = 10.0


class LoggingSettings(BaseSettings):
    """
    Configuration for application logging.
    """
    model_config = SettingsConfigDict(env_prefix='LOG_')

    LEVEL: str = "INFO"


class Settings(BaseSettings):
    """
    Main settings object that aggregates all other settings.
    """
    model_config = SettingsConfigDict(env_file='.env', env_file_encoding='utf-8', extra='ignore')

    session: SessionSettings = SessionSettings()
    scoring: ScoringSettings = ScoringSettings()
    emission: EmissionSettings = EmissionSettings()
    notification: NotificationSettings = NotificationSettings()
    logging: LoggingSettings = LoggingSettings()


settings = Settings()
