"""
Shared analysis state for the Market Thesis Engine.
"""

from .state_manager import AnalysisStateManager, market_phase_at

__all__ = ["AnalysisStateManager", "market_phase_at"]
