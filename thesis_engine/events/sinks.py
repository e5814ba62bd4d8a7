"""
Persistence and notification sinks for emitted thesis transitions.

The dispatcher only depends on the two abstract interfaces defined here;
the concrete implementations are the defaults wired by the CLI.
"""
import json
import logging
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import TYPE_CHECKING, Any, Optional, Union

import aiohttp

from ..config.settings import settings

if TYPE_CHECKING:
    from ..signal_generation.core import ClassificationResult

logger = logging.getLogger(__name__)


def _label(value: Any) -> str:
    return getattr(value, "value", str(value))


def format_transition_message(result: "ClassificationResult", previous_signal: Any) -> str:
    """
    Human readable transition message.

    ``NIFTY 50: Bearish -> Bullish | Strong Bullish Conviction | Conviction 9``
    followed by one line per contributing driver.
    """
    name = result.symbol or result.security_id
    lines = [
        f"{name}: {_label(previous_signal)} -> {_label(result.primary_signal)} | "
        f"{_label(result.playbook)} | Conviction {result.conviction_score}"
    ]
    drivers = list(result.bullish_drivers) + list(result.bearish_drivers)
    if drivers:
        lines.append("Drivers:")
        lines.extend(f"- {driver}" for driver in drivers)
    return "\n".join(lines)


class SignalSink(ABC):
    """Persists emitted classification results."""

    @abstractmethod
    def log_signal(self, result: "ClassificationResult") -> None:
        """Persist one emitted result. Called from a worker thread."""


class NotificationSink(ABC):
    """Notifies humans or downstream systems of a transition."""

    @abstractmethod
    async def send_signal(self, result: "ClassificationResult", previous_signal: Any) -> bool:
        """
        Deliver a transition notification.

        Returns:
            True if delivered, False otherwise
        """


class JsonlSignalLogger(SignalSink):
    """Appends each emitted result as one JSON line."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self._lock = threading.Lock()
        self.signals_logged = 0

    def log_signal(self, result: "ClassificationResult") -> None:
        line = json.dumps(result.to_dict(), default=str)
        with self._lock:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open("a", encoding="utf-8") as f:
                f.write(line + "\n")
            self.signals_logged += 1


class LoggingNotifier(NotificationSink):
    """Writes transitions to the application log."""

    async def send_signal(self, result: "ClassificationResult", previous_signal: Any) -> bool:
        logger.info(f"TRANSITION: {format_transition_message(result, previous_signal)}")
        return True


class TelegramNotifier(NotificationSink):
    """
    Sends transition messages through the Telegram Bot API.

    A fresh ``aiohttp.ClientSession`` is opened per message; transitions are
    rate limited upstream so the volume stays low.
    """

    def __init__(
        self,
        bot_token: str,
        chat_id: str,
        base_url: str = "https://api.telegram.org",
        timeout_seconds: float = 10.0,
    ):
        self.bot_token = bot_token
        self.chat_id = chat_id
        self.base_url = base_url.rstrip("/")
        self.timeout = aiohttp.ClientTimeout(total=timeout_seconds)
        logger.info(f"TelegramNotifier initialized for chat_id: {chat_id}")

    @property
    def send_url(self) -> str:
        return f"{self.base_url}/bot{self.bot_token}/sendMessage"

    async def send_signal(self, result: "ClassificationResult", previous_signal: Any) -> bool:
        payload = {
            "chat_id": self.chat_id,
            "text": format_transition_message(result, previous_signal),
        }

        try:
            async with aiohttp.ClientSession(timeout=self.timeout) as session:
                async with session.post(self.send_url, json=payload) as response:
                    if response.status == 200:
                        logger.debug(f"Telegram message sent for {result.security_id}")
                        return True
                    body = await response.text()
                    logger.error(f"Telegram sendMessage failed: {response.status} - {body}")
                    return False
        except aiohttp.ClientError as e:
            logger.error(f"Telegram sendMessage error for {result.security_id}: {e}")
            return False


def build_notifier(notification_settings: Optional[Any] = None) -> NotificationSink:
    """Telegram when enabled and configured, the logging notifier otherwise."""
    notification_settings = notification_settings or settings.notification

    if (
        notification_settings.TELEGRAM_ENABLED
        and notification_settings.TELEGRAM_BOT_TOKEN
        and notification_settings.TELEGRAM_CHAT_ID
    ):
        return TelegramNotifier(
            bot_token=notification_settings.TELEGRAM_BOT_TOKEN,
            chat_id=notification_settings.TELEGRAM_CHAT_ID,
            base_url=notification_settings.TELEGRAM_BASE_URL,
            timeout_seconds=notification_settings.TIMEOUT_SECONDS,
        )

    if notification_settings.TELEGRAM_ENABLED:
        logger.warning("Telegram notifications enabled but token or chat id missing, using log notifier")
    return LoggingNotifier()
