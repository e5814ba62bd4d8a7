"""
Bounded emission dispatcher for thesis transitions.

Classification runs on the tick path and must never wait on I/O. Emitted
results are handed to ``EmissionDispatcher.submit`` which enqueues them
without blocking; worker tasks then call the persistence sink (in a thread)
followed by the notification sink. When the queue is full the configured
policy decides which emission is dropped.
"""
import asyncio
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from ..config.settings import settings
from ..exceptions import DispatchError
from .sinks import NotificationSink, SignalSink

if TYPE_CHECKING:
    from ..signal_generation.core import ClassificationResult

logger = logging.getLogger(__name__)


class QueuePolicy(Enum):
    """What to drop when the emission queue is full."""
    DROP_OLDEST = "drop_oldest"
    DROP_NEWEST = "drop_newest"


@dataclass
class Emission:
    """One emitted transition awaiting delivery."""
    result: "ClassificationResult"
    previous_signal: Any
    enqueued_at: datetime = field(default_factory=datetime.now)


@dataclass
class DispatcherStats:
    """Emission dispatcher statistics."""
    total_submitted: int = 0
    total_processed: int = 0
    dropped_oldest: int = 0
    dropped_newest: int = 0
    persistence_failures: int = 0
    notifications_sent: int = 0
    notification_failures: int = 0
    avg_processing_time_ms: float = 0.0
    last_emission_time: Optional[datetime] = None

    @property
    def dropped(self) -> int:
        return self.dropped_oldest + self.dropped_newest


class EmissionDispatcher:
    """
    Queue plus worker tasks delivering emissions to the sinks.

    ``submit`` is safe to call from the event loop thread or from any other
    thread once the dispatcher has been started; calls from other threads
    are marshalled onto the loop.
    """

    def __init__(
        self,
        signal_sink: Optional[SignalSink] = None,
        notifier: Optional[NotificationSink] = None,
        max_queue_size: int = 256,
        worker_count: int = 1,
        policy: Any = QueuePolicy.DROP_OLDEST,
    ):
        """
        Initialize the dispatcher.

        Args:
            signal_sink: Persistence sink, skipped when None
            notifier: Notification sink, skipped when None
            max_queue_size: Maximum number of pending emissions
            worker_count: Number of worker tasks
            policy: ``QueuePolicy`` or its string value

        Raises:
            DispatchError: On an invalid policy, queue size or worker count
        """
        try:
            self.policy = QueuePolicy(policy)
        except ValueError:
            raise DispatchError(f"Unknown queue policy '{policy}'") from None
        if max_queue_size < 1:
            raise DispatchError("max_queue_size must be at least 1")
        if worker_count < 1:
            raise DispatchError("worker_count must be at least 1")

        self.signal_sink = signal_sink
        self.notifier = notifier
        self.max_queue_size = max_queue_size
        self.worker_count = worker_count

        self.queue: asyncio.Queue = asyncio.Queue(maxsize=max_queue_size)
        self.workers: List[asyncio.Task] = []
        self.is_running = False
        self._loop: Optional[asyncio.AbstractEventLoop] = None

        self.stats = DispatcherStats()
        self.processing_times: List[float] = []

        logger.info(
            f"Emission dispatcher initialized with {worker_count} workers, "
            f"queue size {max_queue_size}, policy {self.policy.value}"
        )

    @classmethod
    def from_settings(
        cls,
        signal_sink: Optional[SignalSink] = None,
        notifier: Optional[NotificationSink] = None,
        emission_settings: Optional[Any] = None,
    ) -> "EmissionDispatcher":
        """Build a dispatcher from ``EmissionSettings``."""
        emission_settings = emission_settings or settings.emission
        return cls(
            signal_sink=signal_sink,
            notifier=notifier,
            max_queue_size=emission_settings.QUEUE_SIZE,
            worker_count=emission_settings.WORKER_COUNT,
            policy=emission_settings.QUEUE_POLICY,
        )

    def submit(self, result: "ClassificationResult", previous_signal: Any) -> bool:
        """
        Enqueue an emission without blocking.

        Returns:
            False if the emission was dropped under ``drop_newest``
        """
        emission = Emission(result=result, previous_signal=previous_signal)

        loop = self._loop
        if loop is not None and self.is_running and not self._on_loop_thread(loop):
            loop.call_soon_threadsafe(self._enqueue, emission)
            return True

        return self._enqueue(emission)

    @staticmethod
    def _on_loop_thread(loop: asyncio.AbstractEventLoop) -> bool:
        try:
            return asyncio.get_running_loop() is loop
        except RuntimeError:
            return False

    def _enqueue(self, emission: Emission) -> bool:
        self.stats.total_submitted += 1
        self.stats.last_emission_time = emission.enqueued_at

        if self.queue.full():
            if self.policy is QueuePolicy.DROP_NEWEST:
                self.stats.dropped_newest += 1
                logger.warning(f"Emission queue full, dropping new emission for {emission.result.security_id}")
                return False

            dropped = self.queue.get_nowait()
            self.queue.task_done()
            self.stats.dropped_oldest += 1
            logger.warning(f"Emission queue full, dropping oldest emission for {dropped.result.security_id}")

        self.queue.put_nowait(emission)
        return True

    async def _worker_loop(self, worker_id: int):
        logger.info(f"Emission worker {worker_id} started")

        while self.is_running:
            try:
                emission = await asyncio.wait_for(self.queue.get(), timeout=1.0)
            except asyncio.TimeoutError:
                continue

            try:
                await self._deliver(emission, worker_id)
            finally:
                self.queue.task_done()

        logger.info(f"Emission worker {worker_id} stopped")

    async def _deliver(self, emission: Emission, worker_id: int):
        """
        Deliver one emission: persistence first, then notification.

        A failing sink is logged and counted; it never stops the worker or
        prevents the other sink from running.
        """
        start_time = time.perf_counter()
        result = emission.result

        logger.debug(f"Worker {worker_id} delivering emission for {result.security_id}")

        if self.signal_sink is not None:
            try:
                await asyncio.to_thread(self.signal_sink.log_signal, result)
            except Exception as e:
                self.stats.persistence_failures += 1
                logger.error(f"Error persisting signal for {result.security_id}: {e}")

        if self.notifier is not None:
            try:
                if await self.notifier.send_signal(result, emission.previous_signal):
                    self.stats.notifications_sent += 1
                else:
                    self.stats.notification_failures += 1
            except Exception as e:
                self.stats.notification_failures += 1
                logger.error(f"Error sending notification for {result.security_id}: {e}")

        self.stats.total_processed += 1

        processing_time = (time.perf_counter() - start_time) * 1000
        self.processing_times.append(processing_time)

        # Keep only last 1000 processing times
        if len(self.processing_times) > 1000:
            self.processing_times = self.processing_times[-1000:]

        self.stats.avg_processing_time_ms = sum(self.processing_times) / len(self.processing_times)

    async def start(self):
        """Start the worker tasks on the running loop."""
        if self.is_running:
            logger.warning("Emission dispatcher is already running")
            return

        self._loop = asyncio.get_running_loop()
        self.is_running = True

        for i in range(self.worker_count):
            worker = asyncio.create_task(self._worker_loop(i + 1))
            self.workers.append(worker)

        logger.info(f"Emission dispatcher started with {self.worker_count} workers")

    async def stop(self):
        """Cancel the workers. Emissions still queued are abandoned."""
        if not self.is_running:
            return

        self.is_running = False

        for worker in self.workers:
            worker.cancel()

        if self.workers:
            await asyncio.gather(*self.workers, return_exceptions=True)

        self.workers.clear()

        pending = self.queue.qsize()
        if pending:
            logger.warning(f"Emission dispatcher stopped with {pending} undelivered emissions")
        else:
            logger.info("Emission dispatcher stopped")

    async def flush(self, timeout_seconds: float = 30.0) -> bool:
        """
        Wait until every queued emission has been processed.

        Returns:
            True if the queue drained, False if the timeout elapsed
        """
        try:
            await asyncio.wait_for(self.queue.join(), timeout=timeout_seconds)
        except asyncio.TimeoutError:
            logger.warning(f"Emission flush timeout: {self.queue.qsize()} emissions remaining")
            return False
        return True

    def get_statistics(self) -> Dict[str, Any]:
        """Get dispatcher statistics."""
        return {
            'is_running': self.is_running,
            'policy': self.policy.value,
            'queue_size': self.queue.qsize(),
            'total_submitted': self.stats.total_submitted,
            'total_processed': self.stats.total_processed,
            'dropped': self.stats.dropped,
            'dropped_oldest': self.stats.dropped_oldest,
            'dropped_newest': self.stats.dropped_newest,
            'persistence_failures': self.stats.persistence_failures,
            'notifications_sent': self.stats.notifications_sent,
            'notification_failures': self.stats.notification_failures,
            'avg_processing_time_ms': self.stats.avg_processing_time_ms,
            'last_emission_time': self.stats.last_emission_time.isoformat() if self.stats.last_emission_time else None,
        }
