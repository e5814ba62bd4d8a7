"""
Components for the thesis synthesis framework.

This module contains the individual stages that turn an indicator snapshot
into a classified, emission-gated market thesis.
"""

from .driver_catalog import Driver, DriverCatalog, PlaybookName, select_playbooks
from .signal_predicates import DEFAULT_PREDICATES, PredicateRegistry, is_signal_active
from .thesis_state_machine import derive_thesis, determine_dominant_player
from .confluence_scorer import ConfluenceScorer
from .trend_filter import TrendFilter, apply_trend_filter, dampen_for_session
from .emission_gate import EmissionGate, GateDecision

__all__ = [
    "Driver",
    "DriverCatalog",
    "PlaybookName",
    "select_playbooks",
    "DEFAULT_PREDICATES",
    "PredicateRegistry",
    "is_signal_active",
    "derive_thesis",
    "determine_dominant_player",
    "ConfluenceScorer",
    "TrendFilter",
    "apply_trend_filter",
    "dampen_for_session",
    "EmissionGate",
    "GateDecision",
]
