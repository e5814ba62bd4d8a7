"""
Thesis Synthesis Framework.

This module provides the rule-based classification path of the engine. An
indicator snapshot is turned into a directional market thesis, a weighted
confluence score, a conviction playbook and a primary signal, together with
a narrative explaining the result.

The framework is designed to be:
- Deterministic: the same snapshot, catalog and phase give the same result
- Transparent: every contributing driver is reported with its weight
- Non-blocking: persistence and notification are dispatched off the tick path
"""

from .core import (
    ClassificationResult,
    ConfluenceScore,
    DominantPlayer,
    MarketPhase,
    MarketThesis,
    Playbook,
    PrimarySignal,
    SignalSnapshot,
    SynthesisOutcome,
)

from .thesis_synthesizer import ThesisSynthesizer

from .components import (
    ConfluenceScorer,
    DriverCatalog,
    EmissionGate,
    PredicateRegistry,
    TrendFilter,
)

__all__ = [
    # Core classes
    "ClassificationResult",
    "ConfluenceScore",
    "DominantPlayer",
    "MarketPhase",
    "MarketThesis",
    "Playbook",
    "PrimarySignal",
    "SignalSnapshot",
    "SynthesisOutcome",
    # Main synthesizer
    "ThesisSynthesizer",
    # Component classes
    "ConfluenceScorer",
    "DriverCatalog",
    "EmissionGate",
    "PredicateRegistry",
    "TrendFilter",
]
