"""Player intents and legal action generation for Tunisian Rami."""

from __future__ import annotations

import random
from dataclasses import dataclass
from enum import Enum
from typing import Sequence, Union

from . import rules
from .state import AwaitingDiscard, AwaitingMeldOrDiscard, RoundState

__all__ = [
    "DrawSource",
    "DrawAction",
    "MeldAction",
    "ExtendAction",
    "DiscardAction",
    "ForfeitAction",
    "Action",
    "legal_draw_actions",
    "legal_extend_actions",
    "legal_discard_actions",
    "apply_action",
    "is_valid_action",
]


class DrawSource(str, Enum):
    DECK = "deck"
    DISCARD = "discard"


@dataclass(frozen=True, slots=True)
class DrawAction:
    """Action describing where a player draws from."""

    source: DrawSource


@dataclass(frozen=True, slots=True)
class MeldAction:
    """Lay one or more new melds, each given as a tuple of hand card ids."""

    groups: tuple[tuple[str, ...], ...]

    @classmethod
    def single(cls, card_ids: Sequence[str]) -> "MeldAction":
        return cls(groups=(tuple(card_ids),))


@dataclass(frozen=True, slots=True)
class ExtendAction:
    meld_id: str
    card_id: str


@dataclass(frozen=True, slots=True)
class DiscardAction:
    card_id: str


@dataclass(frozen=True, slots=True)
class ForfeitAction:
    """Give up a stuck turn and return the forced card to the discard pile."""


Action = Union[DrawAction, MeldAction, ExtendAction, DiscardAction, ForfeitAction]


def legal_draw_actions(state: RoundState, player_index: int) -> list[DrawAction]:
    """Return draw actions available to ``player_index``."""

    if not _can_draw(state, player_index):
        return []
    actions = [DrawAction(source=DrawSource.DECK)]
    if rules.can_draw_from_discard(state, player_index):
        actions.append(DrawAction(source=DrawSource.DISCARD))
    return actions


def _can_draw(state: RoundState, player_index: int) -> bool:
    return (
        not state.is_over
        and state.current_player_index == player_index
        and not isinstance(state.phase, (AwaitingMeldOrDiscard, AwaitingDiscard))
    )


def _in_drawn_phase(state: RoundState, player_index: int) -> bool:
    return state.current_player_index == player_index and isinstance(
        state.phase, (AwaitingMeldOrDiscard, AwaitingDiscard)
    )


def legal_extend_actions(state: RoundState, player_index: int) -> list[ExtendAction]:
    """Return every single-card extension the player may make right now."""

    if not _in_drawn_phase(state, player_index):
        return []
    hand = state.players[player_index].hand
    actions: list[ExtendAction] = []
    for meld in state.melds:
        for card in hand:
            if rules.can_extend(state, player_index, meld, card):
                actions.append(ExtendAction(meld_id=meld.meld_id, card_id=card.id))
    return actions


def legal_discard_actions(state: RoundState, player_index: int) -> list[DiscardAction]:
    """Return the discards allowed; none while a forced card is pending."""

    if not _in_drawn_phase(state, player_index) or state.forced_card is not None:
        return []
    return [DiscardAction(card_id=card.id) for card in state.players[player_index].hand]


def apply_action(
    state: RoundState,
    player_index: int,
    action: Action,
    *,
    rng: random.Random | None = None,
) -> None:
    """Apply ``action`` using the rules engine."""

    if isinstance(action, DrawAction):
        if action.source is DrawSource.DISCARD:
            rules.draw_from_discard(state, player_index)
        else:
            rules.draw_from_deck(state, player_index, rng)
    elif isinstance(action, MeldAction):
        rules.propose_melds(state, player_index, action.groups)
    elif isinstance(action, ExtendAction):
        rules.extend_meld(state, player_index, action.meld_id, action.card_id)
    elif isinstance(action, DiscardAction):
        rules.discard_card(state, player_index, action.card_id)
    elif isinstance(action, ForfeitAction):
        rules.forfeit_turn(state, player_index)
    else:  # pragma: no cover
        raise TypeError(f"Unknown action {action!r}")


def is_valid_action(state: RoundState, player_index: int, action: Action) -> bool:
    """Return True if applying ``action`` succeeds without rule violations."""

    clone = state.clone_shallow()
    try:
        apply_action(clone, player_index, action, rng=random.Random(0))
    except rules.RuleViolation:
        return False
    return True
