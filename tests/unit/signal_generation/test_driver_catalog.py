"""
Unit tests for the driver catalog.
"""

import threading

import pytest
from pydantic import ValidationError

from thesis_engine.exceptions import CatalogError
from thesis_engine.signal_generation.components.driver_catalog import (
    Driver,
    DriverCatalog,
    PlaybookName,
    select_playbooks,
)
from thesis_engine.signal_generation.core import MarketRegime, MarketThesis


class TestDriver:
    """Test the Driver model."""

    def test_labels(self):
        assert Driver(name="Price above VWAP", weight=2).label == "Price above VWAP (+2)"
        assert Driver(name="OI confirms new shorts", weight=-3).label == "OI confirms new shorts (-3)"

    def test_direction_from_sign(self):
        assert Driver(name="a", weight=1).is_bullish
        assert not Driver(name="a", weight=-1).is_bullish

    def test_zero_weight_rejected(self):
        with pytest.raises(ValidationError):
            Driver(name="Flat", weight=0)

    def test_blank_name_rejected(self):
        with pytest.raises(ValidationError):
            Driver(name="   ", weight=1)

    def test_frozen(self):
        driver = Driver(name="a", weight=1)
        with pytest.raises(ValidationError):
            driver.weight = 5


class TestSelectPlaybooks:
    """Test playbook selection by thesis and regime."""

    @pytest.mark.parametrize("thesis", [
        MarketThesis.BULLISH_TREND,
        MarketThesis.BULLISH_ROTATION,
        MarketThesis.BEARISH_TREND,
        MarketThesis.BEARISH_ROTATION,
    ])
    def test_directional_thesis_uses_trending(self, thesis):
        assert select_playbooks(thesis, MarketRegime.NORMAL) == [
            PlaybookName.TRENDING_BULLISH,
            PlaybookName.TRENDING_BEARISH,
        ]

    def test_balancing_uses_range_bound(self):
        assert select_playbooks(MarketThesis.BALANCING, MarketRegime.LOW_VOLATILITY) == [
            PlaybookName.RANGE_BOUND_BULLISH,
            PlaybookName.RANGE_BOUND_BEARISH,
        ]

    def test_choppy_selects_nothing(self):
        assert select_playbooks(MarketThesis.CHOPPY, MarketRegime.NORMAL) == []

    def test_high_volatility_adds_volatile(self):
        assert select_playbooks(MarketThesis.CHOPPY, MarketRegime.HIGH_VOLATILITY) == [
            PlaybookName.VOLATILE_BULLISH,
            PlaybookName.VOLATILE_BEARISH,
        ]
        assert len(select_playbooks(MarketThesis.BULLISH_TREND, MarketRegime.HIGH_VOLATILITY)) == 4


class TestDriverCatalog:
    """Test catalog construction and runtime mutation."""

    def test_from_settings_loads_all_playbooks(self, default_catalog):
        for playbook in PlaybookName:
            assert default_catalog.drivers(playbook)
        assert "Confluence Momentum (Bullish)" in default_catalog.driver_names()

    def test_from_dict_accepts_string_keys(self):
        catalog = DriverCatalog.from_dict({"volatile_bearish": [{"name": "x", "weight": -1}]})
        assert catalog.drivers(PlaybookName.VOLATILE_BEARISH) == [Driver(name="x", weight=-1)]
        assert catalog.drivers("trending_bullish") == []

    def test_unknown_playbook(self):
        with pytest.raises(CatalogError, match="Unknown playbook"):
            DriverCatalog.from_dict({"sideways": []})

    def test_duplicate_driver_in_playbook(self, simple_catalog):
        with pytest.raises(CatalogError, match="Duplicate driver"):
            simple_catalog.add_driver("trending_bullish", {"name": "Price above VWAP", "weight": 1})

    def test_same_name_allowed_in_different_playbooks(self, simple_catalog):
        simple_catalog.add_driver("volatile_bullish", {"name": "Price above VWAP", "weight": 1})
        assert len(simple_catalog.drivers("volatile_bullish")) == 1

    def test_invalid_driver_raises_catalog_error(self, simple_catalog):
        with pytest.raises(CatalogError, match="Invalid driver"):
            simple_catalog.add_driver("trending_bullish", {"name": "Flat", "weight": 0})

    def test_set_enabled_and_weight(self, simple_catalog):
        version = simple_catalog.version

        disabled = simple_catalog.set_enabled("trending_bullish", "Price above VWAP", False)
        reweighted = simple_catalog.set_weight("trending_bullish", "OI confirms new longs", 6)

        assert disabled.enabled is False
        assert reweighted.weight == 6
        assert simple_catalog.version == version + 2
        assert [d.enabled for d in simple_catalog.drivers("trending_bullish")] == [False, True]

    def test_set_weight_zero_rejected(self, simple_catalog):
        with pytest.raises(CatalogError):
            simple_catalog.set_weight("trending_bullish", "Price above VWAP", 0)
        assert simple_catalog.drivers("trending_bullish")[0].weight == 3

    def test_update_missing_driver(self, simple_catalog):
        with pytest.raises(CatalogError, match="No driver"):
            simple_catalog.set_enabled("trending_bullish", "Nope", True)

    def test_remove_driver(self, simple_catalog):
        assert simple_catalog.remove_driver("trending_bearish", "Price below VWAP")
        assert not simple_catalog.remove_driver("trending_bearish", "Price below VWAP")
        assert simple_catalog.drivers("trending_bearish") == []

    def test_replace_playbook(self, simple_catalog):
        simple_catalog.replace_playbook("trending_bullish", [Driver(name="Price above VWAP", weight=1)])
        assert simple_catalog.drivers("trending_bullish") == [Driver(name="Price above VWAP", weight=1)]

        with pytest.raises(CatalogError, match="Duplicate driver"):
            simple_catalog.replace_playbook("trending_bullish", [
                {"name": "a", "weight": 1},
                {"name": "a", "weight": 2},
            ])
        assert len(simple_catalog.drivers("trending_bullish")) == 1

    def test_readers_get_copies(self, simple_catalog):
        drivers = simple_catalog.drivers("trending_bullish")
        drivers.clear()
        assert len(simple_catalog.drivers("trending_bullish")) == 2

    def test_select_concatenates_in_order(self, simple_catalog):
        names = [d.name for d in simple_catalog.select([PlaybookName.TRENDING_BEARISH, PlaybookName.TRENDING_BULLISH])]
        assert names == ["Price below VWAP", "Price above VWAP", "OI confirms new longs"]

    def test_to_dict(self, simple_catalog):
        data = simple_catalog.to_dict()
        assert data["trending_bullish"][0] == {"name": "Price above VWAP", "weight": 3, "enabled": True}
        assert DriverCatalog.from_dict(data).to_dict() == data

    def test_concurrent_mutation(self, simple_catalog):
        version = simple_catalog.version

        def toggle():
            for i in range(200):
                simple_catalog.set_enabled("trending_bullish", "Price above VWAP", i % 2 == 0)

        threads = [threading.Thread(target=toggle) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert simple_catalog.version == version + 800
        assert len(simple_catalog.drivers("trending_bullish")) == 2
