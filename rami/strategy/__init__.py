"""Greedy computer player for Tunisian Rami."""

from .heuristics import DEFAULT_STRATEGY, StrategyConfig, choose_discard, choose_draw
from .planner import plan_table_play, take_turn

__all__ = [
    "DEFAULT_STRATEGY",
    "StrategyConfig",
    "choose_discard",
    "choose_draw",
    "plan_table_play",
    "take_turn",
]
