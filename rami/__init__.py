"""Top-level package for the Tunisian Rami game engine."""

from . import actions, cards, game, melds, rules, state

__all__ = [
    "actions",
    "cards",
    "game",
    "melds",
    "rules",
    "state",
]
