"""
Exception hierarchy for the Market Thesis Engine.

Classification itself never raises for malformed snapshots; these errors
surface configuration and wiring mistakes.
"""


class ThesisEngineError(Exception):
    """Base class for all engine errors."""


class CatalogError(ThesisEngineError):
    """Invalid driver catalog operation (unknown playbook, duplicate driver, zero weight)."""


class DispatchError(ThesisEngineError):
    """Emission dispatcher misconfiguration."""
