"""
Driver Catalog component for the thesis synthesis framework.

The catalog holds the operator-configured drivers grouped into six regime
playbooks. It can be mutated at any time by a settings layer; the scorer
reads it at evaluation time, so a change takes effect on the next tick.
"""

import threading
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional

from pydantic import BaseModel, ConfigDict, field_validator

from ..core import MarketRegime, MarketThesis
from ...exceptions import CatalogError


class PlaybookName(str, Enum):
    """Regime playbooks drivers are grouped into."""
    TRENDING_BULLISH = "trending_bullish"
    TRENDING_BEARISH = "trending_bearish"
    RANGE_BOUND_BULLISH = "range_bound_bullish"
    RANGE_BOUND_BEARISH = "range_bound_bearish"
    VOLATILE_BULLISH = "volatile_bullish"
    VOLATILE_BEARISH = "volatile_bearish"


class Driver(BaseModel):
    """
    A named, weighted, enable-able rule.

    The sign of ``weight`` decides whether the driver is bullish or bearish;
    zero weights are rejected.
    """
    model_config = ConfigDict(frozen=True)

    name: str
    weight: int
    enabled: bool = True

    @field_validator("name")
    @classmethod
    def _name_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Driver name must not be blank")
        return value

    @field_validator("weight")
    @classmethod
    def _weight_not_zero(cls, value: int) -> int:
        if value == 0:
            raise ValueError("Driver weight must be non-zero")
        return value

    @property
    def is_bullish(self) -> bool:
        return self.weight > 0

    @property
    def label(self) -> str:
        """Audit label, e.g. ``Price above VWAP (+2)`` or ``OI confirms new shorts (-3)``."""
        if self.is_bullish:
            return f"{self.name} (+{self.weight})"
        return f"{self.name} ({self.weight})"


def select_playbooks(thesis: MarketThesis, regime: MarketRegime) -> List[PlaybookName]:
    """
    Choose the playbooks applicable to a thesis and regime.

    Directional and rotational theses use the trending playbooks, a balancing
    thesis uses the range-bound playbooks and anything else selects nothing.
    A high-volatility regime adds the volatile playbooks on top.
    """
    selected: List[PlaybookName] = []

    if thesis.is_directional:
        selected += [PlaybookName.TRENDING_BULLISH, PlaybookName.TRENDING_BEARISH]
    elif thesis is MarketThesis.BALANCING:
        selected += [PlaybookName.RANGE_BOUND_BULLISH, PlaybookName.RANGE_BOUND_BEARISH]

    if regime is MarketRegime.HIGH_VOLATILITY:
        selected += [PlaybookName.VOLATILE_BULLISH, PlaybookName.VOLATILE_BEARISH]

    return selected


class DriverCatalog:
    """
    Thread-safe, runtime-mutable collection of regime playbooks.

    Drivers are immutable models; every mutation replaces a driver inside the
    lock, and readers receive list copies, so an evaluation always sees one
    consistent catalog state.
    """

    def __init__(self, playbooks: Optional[Mapping[Any, Iterable[Any]]] = None):
        self._lock = threading.RLock()
        self._playbooks: Dict[PlaybookName, List[Driver]] = {name: [] for name in PlaybookName}
        self._version = 0

        for playbook, drivers in (playbooks or {}).items():
            self.replace_playbook(playbook, drivers)

    @classmethod
    def from_dict(cls, data: Mapping[str, Iterable[Mapping[str, Any]]]) -> "DriverCatalog":
        """Build a catalog from ``{playbook: [{name, weight, enabled}, ...]}``."""
        return cls(data)

    @classmethod
    def from_settings(cls, strategy: Any = None) -> "DriverCatalog":
        """Build a catalog from ``StrategySettings`` (defaults when omitted)."""
        if strategy is None:
            from ...config.strategy import strategy_config
            strategy = strategy_config
        return cls(strategy.playbooks())

    @property
    def version(self) -> int:
        """Incremented on every mutation."""
        return self._version

    def _resolve_playbook(self, playbook: Any) -> PlaybookName:
        try:
            return PlaybookName(playbook)
        except ValueError:
            raise CatalogError(f"Unknown playbook '{playbook}'") from None

    @staticmethod
    def _coerce(driver: Any) -> Driver:
        if isinstance(driver, Driver):
            return driver
        try:
            return Driver.model_validate(driver)
        except ValueError as e:
            raise CatalogError(f"Invalid driver {driver!r}: {e}") from e

    def _index(self, drivers: List[Driver], name: str) -> int:
        for i, driver in enumerate(drivers):
            if driver.name == name:
                return i
        return -1

    def replace_playbook(self, playbook: Any, drivers: Iterable[Any]) -> None:
        """Replace every driver of a playbook."""
        key = self._resolve_playbook(playbook)
        new_drivers: List[Driver] = []
        for raw in drivers:
            driver = self._coerce(raw)
            if self._index(new_drivers, driver.name) >= 0:
                raise CatalogError(f"Duplicate driver '{driver.name}' in playbook '{key.value}'")
            new_drivers.append(driver)

        with self._lock:
            self._playbooks[key] = new_drivers
            self._version += 1

    def add_driver(self, playbook: Any, driver: Any) -> Driver:
        key = self._resolve_playbook(playbook)
        driver = self._coerce(driver)
        with self._lock:
            drivers = self._playbooks[key]
            if self._index(drivers, driver.name) >= 0:
                raise CatalogError(f"Duplicate driver '{driver.name}' in playbook '{key.value}'")
            self._playbooks[key] = drivers + [driver]
            self._version += 1
        return driver

    def remove_driver(self, playbook: Any, name: str) -> bool:
        key = self._resolve_playbook(playbook)
        with self._lock:
            drivers = self._playbooks[key]
            index = self._index(drivers, name)
            if index < 0:
                return False
            self._playbooks[key] = drivers[:index] + drivers[index + 1:]
            self._version += 1
        return True

    def _update(self, playbook: Any, name: str, **changes: Any) -> Driver:
        key = self._resolve_playbook(playbook)
        with self._lock:
            drivers = list(self._playbooks[key])
            index = self._index(drivers, name)
            if index < 0:
                raise CatalogError(f"No driver '{name}' in playbook '{key.value}'")
            updated = self._coerce({**drivers[index].model_dump(), **changes})
            drivers[index] = updated
            self._playbooks[key] = drivers
            self._version += 1
        return updated

    def set_enabled(self, playbook: Any, name: str, enabled: bool) -> Driver:
        return self._update(playbook, name, enabled=enabled)

    def set_weight(self, playbook: Any, name: str, weight: int) -> Driver:
        return self._update(playbook, name, weight=weight)

    def drivers(self, playbook: Any) -> List[Driver]:
        key = self._resolve_playbook(playbook)
        with self._lock:
            return list(self._playbooks[key])

    def select(self, playbooks: Iterable[PlaybookName]) -> List[Driver]:
        """Drivers of the given playbooks, concatenated in order."""
        with self._lock:
            selected: List[Driver] = []
            for playbook in playbooks:
                selected.extend(self._playbooks[playbook])
            return selected

    def all_drivers(self) -> List[Driver]:
        return self.select(list(PlaybookName))

    def driver_names(self) -> List[str]:
        names: List[str] = []
        for driver in self.all_drivers():
            if driver.name not in names:
                names.append(driver.name)
        return names

    def to_dict(self) -> Dict[str, List[Dict[str, Any]]]:
        with self._lock:
            return {
                playbook.value: [driver.model_dump() for driver in drivers]
                for playbook, drivers in self._playbooks.items()
            }
