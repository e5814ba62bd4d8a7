"""
Command-line interface modules for the Market Thesis Engine.
"""

from .formatter import OutputFormatter
from .replayer import SnapshotReplayer, load_catalog, load_snapshots

__all__ = ["OutputFormatter", "SnapshotReplayer", "load_catalog", "load_snapshots"]
