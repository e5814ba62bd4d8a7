"""
Default strategy configuration for the thesis synthesis framework.

Each playbook is a list of drivers (name, signed weight, enabled flag).
Any playbook can be overridden from the environment with a JSON list, e.g.

    STRATEGY_TRENDING_BULLISH='[{"name": "Price above VWAP", "weight": 2}]'
"""

from typing import Any, Dict, List

from pydantic_settings import BaseSettings, SettingsConfigDict

from thesis_engine.signal_generation.components.driver_catalog import Driver, PlaybookName


def _drivers(*pairs: Any) -> List[Driver]:
    return [Driver(name=name, weight=weight) for name, weight in pairs]


class StrategySettings(BaseSettings):
    """Regime playbooks shipped as code defaults."""
    model_config = SettingsConfigDict(env_prefix='STRATEGY_', env_file='.env', env_file_encoding='utf-8', extra='ignore')

    trending_bullish: List[Driver] = _drivers(
        ("Confluence Momentum (Bullish)", 3),
        ("True Acceptance Above Y-VAH", 3),
        ("Initiative Buying Above Y-VAH", 3),
        ("Price above VWAP", 1),
        ("5m VWAP EMA confirms bullish trend", 2),
        ("OI confirms new longs", 2),
        ("Bullish Pattern with Volume Confirmation", 2),
        ("Institutional Intent is Bullish", 2),
        ("IB breakout is extending", 2),
    )

    trending_bearish: List[Driver] = _drivers(
        ("Confluence Momentum (Bearish)", -3),
        ("True Acceptance Below Y-VAL", -3),
        ("Initiative Selling Below Y-VAL", -3),
        ("Price below VWAP", -1),
        ("5m VWAP EMA confirms bearish trend", -2),
        ("OI confirms new shorts", -2),
        ("Bearish Pattern with Volume Confirmation", -2),
        ("Institutional Intent is Bearish", -2),
        ("IB breakdown is extending", -2),
    )

    range_bound_bullish: List[Driver] = _drivers(
        ("Look Below and Fail at Y-VAL", 3),
        ("High OTM Put Gamma", 2),
        ("Bullish Pattern with Volume Confirmation", 2),
        ("Bullish Skew Divergence", 2),
        ("Institutional Intent is Bullish", 1),
    )

    range_bound_bearish: List[Driver] = _drivers(
        ("Look Above and Fail at Y-VAH", -3),
        ("High OTM Call Gamma", -2),
        ("Bearish Pattern with Volume Confirmation", -2),
        ("Bearish Skew Divergence", -2),
        ("Institutional Intent is Bearish", -1),
    )

    volatile_bullish: List[Driver] = _drivers(
        ("Option Breakout Setup", 1),
        ("Confluence Momentum (Bullish)", 2),
        ("IB breakout is extending", 2),
    )

    volatile_bearish: List[Driver] = _drivers(
        ("Confluence Momentum (Bearish)", -2),
        ("IB breakdown is extending", -2),
    )

    def playbooks(self) -> Dict[PlaybookName, List[Driver]]:
        """Playbooks keyed by ``PlaybookName``."""
        return {name: list(getattr(self, name.value)) for name in PlaybookName}


# Global configuration instance
strategy_config = StrategySettings()
