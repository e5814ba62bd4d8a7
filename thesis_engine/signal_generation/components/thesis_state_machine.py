"""
Thesis State Machine component for the thesis synthesis framework.

Derives the intraday market thesis from the prevailing market structure and
the side that currently dominates the tape.
"""

from typing import Tuple

from ..core import (
    CrossSignal,
    DominantPlayer,
    MarketStructure,
    MarketThesis,
    OiSignal,
    PriceVsVwap,
    SignalSnapshot,
)


def determine_dominant_player(snapshot: SignalSnapshot) -> DominantPlayer:
    """
    Count buyer and seller evidence across three independent readings.

    Price vs VWAP, the 5m EMA cross and OI buildup each add one point to
    the side they favour. Ties resolve to ``Balance``.
    """
    buyer_evidence = 0
    seller_evidence = 0

    if snapshot.price_vs_vwap is PriceVsVwap.ABOVE_VWAP:
        buyer_evidence += 1
    elif snapshot.price_vs_vwap is PriceVsVwap.BELOW_VWAP:
        seller_evidence += 1

    if snapshot.ema_signal_5min is CrossSignal.BULLISH_CROSS:
        buyer_evidence += 1
    elif snapshot.ema_signal_5min is CrossSignal.BEARISH_CROSS:
        seller_evidence += 1

    if snapshot.oi_signal is OiSignal.LONG_BUILDUP:
        buyer_evidence += 1
    elif snapshot.oi_signal is OiSignal.SHORT_BUILDUP:
        seller_evidence += 1

    if buyer_evidence > seller_evidence:
        return DominantPlayer.BUYERS
    if seller_evidence > buyer_evidence:
        return DominantPlayer.SELLERS
    return DominantPlayer.BALANCE


def thesis_for(structure: MarketStructure, player: DominantPlayer) -> MarketThesis:
    """
    Map (market structure, dominant player) to a thesis.

    A dominant side against a trending structure reads as a rotation.
    Never returns ``Choppy``; that label is applied after scoring.
    """
    if structure is MarketStructure.TRENDING_UP:
        if player is DominantPlayer.SELLERS:
            return MarketThesis.BULLISH_ROTATION
        return MarketThesis.BULLISH_TREND

    if structure is MarketStructure.TRENDING_DOWN:
        if player is DominantPlayer.BUYERS:
            return MarketThesis.BEARISH_ROTATION
        return MarketThesis.BEARISH_TREND

    return MarketThesis.BALANCING


def derive_thesis(snapshot: SignalSnapshot) -> Tuple[MarketThesis, DominantPlayer]:
    """Derive ``(thesis, dominant player)`` for a snapshot."""
    player = determine_dominant_player(snapshot)
    return thesis_for(snapshot.market_structure, player), player
