"""
Tests for the bounded emission dispatcher.
"""
import asyncio

import pytest

from thesis_engine.config.settings import EmissionSettings
from thesis_engine.events.event_bus import EmissionDispatcher, QueuePolicy
from thesis_engine.exceptions import DispatchError
from thesis_engine.signal_generation.core import PrimarySignal
from tests.conftest import RecordingNotifier, RecordingSignalSink


class TestDispatcherConstruction:
    """Test dispatcher configuration."""

    def test_string_policy_accepted(self):
        dispatcher = EmissionDispatcher(policy="drop_newest")
        assert dispatcher.policy is QueuePolicy.DROP_NEWEST

    def test_unknown_policy_rejected(self):
        with pytest.raises(DispatchError, match="Unknown queue policy"):
            EmissionDispatcher(policy="drop_random")

    @pytest.mark.parametrize("kwargs", [
        {"max_queue_size": 0},
        {"worker_count": 0},
    ])
    def test_invalid_sizes_rejected(self, kwargs):
        with pytest.raises(DispatchError):
            EmissionDispatcher(**kwargs)

    def test_from_settings(self, recording_sink, recording_notifier):
        dispatcher = EmissionDispatcher.from_settings(
            recording_sink,
            recording_notifier,
            EmissionSettings(QUEUE_SIZE=4, QUEUE_POLICY="drop_newest", WORKER_COUNT=2),
        )

        assert dispatcher.max_queue_size == 4
        assert dispatcher.worker_count == 2
        assert dispatcher.policy is QueuePolicy.DROP_NEWEST
        assert dispatcher.signal_sink is recording_sink


class TestDispatcherDelivery:
    """Test delivery to the sinks."""

    @pytest.mark.asyncio
    async def test_persists_then_notifies(self, make_result, recording_sink, recording_notifier):
        dispatcher = EmissionDispatcher(recording_sink, recording_notifier)
        await dispatcher.start()

        result = make_result()
        assert dispatcher.submit(result, PrimarySignal.BEARISH)
        assert await dispatcher.flush(timeout_seconds=5)
        await dispatcher.stop()

        assert recording_sink.results == [result]
        assert recording_notifier.calls == [(result, PrimarySignal.BEARISH)]

        stats = dispatcher.get_statistics()
        assert stats['total_submitted'] == 1
        assert stats['total_processed'] == 1
        assert stats['notifications_sent'] == 1
        assert stats['dropped'] == 0
        assert not stats['is_running']

    @pytest.mark.asyncio
    async def test_persistence_failure_does_not_block_notification(self, make_result, recording_notifier):
        dispatcher = EmissionDispatcher(RecordingSignalSink(fail=True), recording_notifier)
        await dispatcher.start()

        dispatcher.submit(make_result(), PrimarySignal.BEARISH)
        await dispatcher.flush(timeout_seconds=5)
        await dispatcher.stop()

        assert len(recording_notifier.calls) == 1
        assert dispatcher.stats.persistence_failures == 1
        assert dispatcher.stats.total_processed == 1

    @pytest.mark.asyncio
    async def test_notification_failures_counted(self, make_result, recording_sink):
        dispatcher = EmissionDispatcher(recording_sink, RecordingNotifier(fail=True))
        await dispatcher.start()

        dispatcher.submit(make_result(), PrimarySignal.BEARISH)
        dispatcher.submit(make_result(security_id="25"), PrimarySignal.BEARISH)
        await dispatcher.flush(timeout_seconds=5)
        await dispatcher.stop()

        assert len(recording_sink.results) == 2
        assert dispatcher.stats.notification_failures == 2
        assert dispatcher.stats.total_processed == 2

    @pytest.mark.asyncio
    async def test_undelivered_notification_counted(self, make_result):
        dispatcher = EmissionDispatcher(notifier=RecordingNotifier(succeed=False))
        await dispatcher.start()

        dispatcher.submit(make_result(), PrimarySignal.BEARISH)
        await dispatcher.flush(timeout_seconds=5)
        await dispatcher.stop()

        assert dispatcher.stats.notification_failures == 1
        assert dispatcher.stats.notifications_sent == 0

    @pytest.mark.asyncio
    async def test_submit_from_other_thread(self, make_result, recording_sink):
        dispatcher = EmissionDispatcher(recording_sink)
        await dispatcher.start()

        await asyncio.to_thread(dispatcher.submit, make_result(), PrimarySignal.BEARISH)
        await asyncio.sleep(0)
        await dispatcher.flush(timeout_seconds=5)
        await dispatcher.stop()

        assert len(recording_sink.results) == 1

    @pytest.mark.asyncio
    async def test_multiple_workers_deliver_everything(self, make_result, recording_sink):
        dispatcher = EmissionDispatcher(recording_sink, worker_count=3)
        await dispatcher.start()

        for i in range(10):
            dispatcher.submit(make_result(security_id=str(i)), PrimarySignal.BEARISH)
        await dispatcher.flush(timeout_seconds=5)
        await dispatcher.stop()

        assert sorted(r.security_id for r in recording_sink.results) == sorted(str(i) for i in range(10))


class TestQueuePolicy:
    """Test overflow handling."""

    @pytest.mark.asyncio
    async def test_drop_oldest(self, make_result, recording_sink):
        dispatcher = EmissionDispatcher(recording_sink, max_queue_size=2, policy=QueuePolicy.DROP_OLDEST)

        for security_id in ("1", "2", "3"):
            assert dispatcher.submit(make_result(security_id=security_id), PrimarySignal.BEARISH)

        await dispatcher.start()
        await dispatcher.flush(timeout_seconds=5)
        await dispatcher.stop()

        assert [r.security_id for r in recording_sink.results] == ["2", "3"]
        assert dispatcher.stats.dropped_oldest == 1
        assert dispatcher.get_statistics()['dropped'] == 1

    @pytest.mark.asyncio
    async def test_drop_newest(self, make_result, recording_sink):
        dispatcher = EmissionDispatcher(recording_sink, max_queue_size=2, policy=QueuePolicy.DROP_NEWEST)

        assert dispatcher.submit(make_result(security_id="1"), PrimarySignal.BEARISH)
        assert dispatcher.submit(make_result(security_id="2"), PrimarySignal.BEARISH)
        assert not dispatcher.submit(make_result(security_id="3"), PrimarySignal.BEARISH)

        await dispatcher.start()
        await dispatcher.flush(timeout_seconds=5)
        await dispatcher.stop()

        assert [r.security_id for r in recording_sink.results] == ["1", "2"]
        assert dispatcher.stats.dropped_newest == 1
        assert dispatcher.stats.total_submitted == 3

    @pytest.mark.asyncio
    async def test_flush_times_out_without_workers(self, make_result):
        dispatcher = EmissionDispatcher()
        dispatcher.submit(make_result(), PrimarySignal.BEARISH)

        assert not await dispatcher.flush(timeout_seconds=0.05)
