"""Draw and discard heuristics for computer players."""

from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Sequence

from .. import rules
from ..actions import DiscardAction, DrawAction, DrawSource
from ..cards import Card
from ..rules import IllegalAction
from ..state import RoundState

__all__ = ["StrategyConfig", "DEFAULT_STRATEGY", "fits_hand", "is_dead_card", "choose_draw", "choose_discard"]


@dataclass(frozen=True, slots=True)
class StrategyConfig:
    """Tunable knobs for the greedy computer player."""

    discard_draw_probability: float = 0.3

    def __post_init__(self) -> None:
        if not 0.0 <= self.discard_draw_probability <= 1.0:
            raise ValueError("discard_draw_probability must be within [0, 1]")


DEFAULT_STRATEGY = StrategyConfig()


def _number(card: Card) -> int:
    return card.rank.number if card.rank is not None else 0


def fits_hand(hand: Sequence[Card], card: Card) -> bool:
    """Return ``True`` if ``card`` pairs up with the hand towards a set or run."""

    if card.is_joker:
        return True
    same_rank = sum(1 for held in hand if held.rank == card.rank and held.id != card.id)
    if same_rank >= 2:
        return True
    number = _number(card)
    neighbours = {_number(held) for held in hand if held.suit == card.suit and held.id != card.id}
    return number - 1 in neighbours or number + 1 in neighbours


def is_dead_card(hand: Sequence[Card], card: Card) -> bool:
    """A natural card with no same-rank partner and no close same-suit card."""

    if card.is_joker:
        return False
    number = _number(card)
    for held in hand:
        if held.id == card.id or held.is_joker:
            continue
        if held.rank == card.rank:
            return False
        if held.suit == card.suit and abs(_number(held) - number) <= 2:
            return False
    return True


def choose_draw(
    state: RoundState,
    player_index: int,
    rng: random.Random,
    config: StrategyConfig = DEFAULT_STRATEGY,
) -> DrawAction:
    """Pick the draw source for ``player_index``.

    The discard top is taken only when it could actually be used on the table
    afterwards, so a computer never draws itself into a stuck turn.
    """

    if not rules.can_draw_from_discard(state, player_index):
        if state.current_player_index != player_index:
            raise IllegalAction("it is not this player's turn")
        return DrawAction(source=DrawSource.DECK)

    top = state.discard_pile[-1]
    if not rules.card_playable(state, player_index, top):
        return DrawAction(source=DrawSource.DECK)
    if fits_hand(state.players[player_index].hand, top):
        return DrawAction(source=DrawSource.DISCARD)
    if rng.random() < config.discard_draw_probability:
        return DrawAction(source=DrawSource.DISCARD)
    return DrawAction(source=DrawSource.DECK)


def choose_discard(state: RoundState, player_index: int) -> DiscardAction:
    """Pick the card to throw away.

    Dead cards go first, highest value first; then the highest natural card.
    A joker is only discarded when nothing else is left.
    """

    hand = state.players[player_index].hand
    forced = state.forced_card
    candidates = [card for card in hand if forced is None or card.id != forced.id]
    if not candidates:
        raise IllegalAction("there is no card to discard")

    def value(card: Card) -> tuple[int, int]:
        return (card.points, _number(card))

    dead = [card for card in candidates if is_dead_card(hand, card)]
    if dead:
        return DiscardAction(card_id=max(dead, key=value).id)
    naturals = [card for card in candidates if not card.is_joker]
    if naturals:
        return DiscardAction(card_id=max(naturals, key=value).id)
    return DiscardAction(card_id=candidates[0].id)
