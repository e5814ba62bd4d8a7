"""
Market Thesis Engine Test Suite

This package contains all tests for the Market Thesis Engine, organized by category:
- unit: Unit tests for individual components
- integration: Integration tests for the full synthesis pipeline and the replay CLI
"""

__version__ = "1.0.0"
