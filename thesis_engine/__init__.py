"""
Market Thesis Engine.

Real-time classification of INDEX instruments into a market thesis,
conviction playbook and primary signal.
"""

from .signal_generation import SignalSnapshot, ThesisSynthesizer
from .signal_generation.components import DriverCatalog

__all__ = ["DriverCatalog", "SignalSnapshot", "ThesisSynthesizer"]

__version__ = "1.0.0"
