"""
Core replay logic for CLI.
"""
import json
from dataclasses import replace
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union

from ..communication.state_manager import AnalysisStateManager
from ..config.settings import Settings, settings as default_settings
from ..events.event_bus import EmissionDispatcher
from ..events.sinks import JsonlSignalLogger, build_notifier
from ..signal_generation.components import DriverCatalog
from ..signal_generation.core import SignalSnapshot
from ..signal_generation.thesis_synthesizer import ThesisSynthesizer
from ..utils.logging import get_logger

logger = get_logger(__name__)


def load_snapshots(path: Union[str, Path]) -> List[SignalSnapshot]:
    """
    Read one snapshot per JSON line; blank lines and ``#`` comments are skipped.

    Raises:
        ValueError: If a line is not a JSON object
    """
    snapshots: List[SignalSnapshot] = []
    with Path(path).open(encoding="utf-8") as f:
        for line_no, line in enumerate(f, start=1):
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            try:
                data = json.loads(line)
            except json.JSONDecodeError as e:
                raise ValueError(f"{path}:{line_no}: invalid JSON ({e.msg})") from e
            if not isinstance(data, dict):
                raise ValueError(f"{path}:{line_no}: expected a JSON object")
            snapshots.append(SignalSnapshot.from_dict(data))
    return snapshots


def load_catalog(path: Optional[Union[str, Path]] = None) -> DriverCatalog:
    """Catalog from a ``{playbook: [drivers]}`` JSON file, or the strategy defaults."""
    if path is None:
        return DriverCatalog.from_settings()
    with Path(path).open(encoding="utf-8") as f:
        return DriverCatalog.from_dict(json.load(f))


class SnapshotReplayer:
    """Handles snapshot replay orchestration for CLI."""

    def __init__(
        self,
        catalog: DriverCatalog,
        market_phase: Optional[str] = None,
        signal_log_path: Optional[Union[str, Path]] = None,
        notify: bool = True,
        settings: Optional[Settings] = None,
    ):
        """
        Initialize the replayer.

        Args:
            catalog: Driver catalog to classify with
            market_phase: Fixed market phase; derived from timestamps when None
            signal_log_path: JSONL file for emitted results, no persistence when None
            notify: Send notifications for emitted transitions
            settings: Application settings
        """
        self.settings = settings or default_settings
        self.state_manager = AnalysisStateManager(self.settings.session, market_phase)

        signal_sink = JsonlSignalLogger(signal_log_path) if signal_log_path else None
        notifier = build_notifier(self.settings.notification) if notify else None
        self.dispatcher = EmissionDispatcher.from_settings(
            signal_sink=signal_sink,
            notifier=notifier,
            emission_settings=self.settings.emission,
        )

        self.synthesizer = ThesisSynthesizer(
            catalog,
            state_manager=self.state_manager,
            dispatcher=self.dispatcher,
            settings=self.settings,
        )

    def classify(self, snapshot: SignalSnapshot) -> Optional[Dict[str, Any]]:
        """
        Classify one snapshot, chaining the previous primary signal per instrument.

        Returns:
            The result dict, or None for skipped instruments
        """
        previous = self.state_manager.get_last_primary_signal(snapshot.security_id)
        chained = replace(snapshot, previous_primary_signal=previous)

        outcome = self.synthesizer.synthesize(chained)
        if outcome is None:
            return None

        self.state_manager.set_last_primary_signal(snapshot.security_id, outcome.result.primary_signal)

        data = outcome.result.to_dict()
        data["emitted"] = outcome.should_emit
        data["suppressed_reason"] = outcome.suppressed_reason
        return data

    async def replay(self, snapshots: Iterable[SignalSnapshot]) -> List[Dict[str, Any]]:
        """Replay snapshots in order and wait for every emission to be delivered."""
        results: List[Dict[str, Any]] = []

        await self.dispatcher.start()
        try:
            for snapshot in snapshots:
                data = self.classify(snapshot)
                if data is not None:
                    results.append(data)
            await self.dispatcher.flush()
        finally:
            await self.dispatcher.stop()

        logger.info("replay_completed", results=len(results), **{
            k: v for k, v in self.synthesizer.get_statistics().items()
            if k in ("ticks_processed", "ticks_skipped", "emissions")
        })
        return results

    def get_statistics(self) -> Dict[str, Any]:
        return self.synthesizer.get_statistics()
