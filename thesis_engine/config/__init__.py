"""
Configuration for the Market Thesis Engine.
"""
