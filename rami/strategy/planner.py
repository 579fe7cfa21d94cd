"""Greedy table-play planning for computer players."""

from __future__ import annotations

import logging
import random
from itertools import combinations
from typing import Sequence, Union

from .. import rules
from ..actions import Action, ExtendAction, ForfeitAction, MeldAction, apply_action
from ..cards import Card
from ..melds import classify, find_candidates, opening_combination
from ..state import AwaitingDraw, RoundState
from .heuristics import DEFAULT_STRATEGY, StrategyConfig, choose_discard, choose_draw

logger = logging.getLogger(__name__)

__all__ = ["PlayAction", "plan_table_play", "take_turn"]

PlayAction = Union[MeldAction, ExtendAction]


def _meld_action(groups: Sequence[Sequence[Card]]) -> MeldAction:
    return MeldAction(groups=tuple(tuple(card.id for card in group) for group in groups))


def _first_extension(
    state: RoundState,
    player_index: int,
    cards: Sequence[Card],
) -> ExtendAction | None:
    ordered = sorted(cards, key=lambda card: card.is_joker)
    for meld in state.melds:
        for card in ordered:
            if rules.can_extend(state, player_index, meld, card):
                return ExtendAction(meld_id=meld.meld_id, card_id=card.id)
    return None


def _group_with(hand: Sequence[Card], card: Card) -> list[Card] | None:
    for _, group in find_candidates(hand):
        if any(member.id == card.id for member in group):
            return group
    others = [held for held in hand if held.id != card.id]
    for first, second in combinations(others, 2):
        if classify([card, first, second]) is not None:
            return [card, first, second]
    return None


def _plan_forced(state: RoundState, player_index: int, forced: Card) -> PlayAction | None:
    player = state.players[player_index]
    if player.has_laid_initial:
        extension = _first_extension(state, player_index, [forced])
        if extension is not None:
            return extension
        group = _group_with(player.hand, forced)
        return None if group is None else _meld_action([group])

    extension = _first_extension(state, player_index, [forced])
    if extension is not None:
        return extension
    combo = opening_combination(
        player.hand, state.config.first_meld_points, required=forced, max_groups=None
    )
    return None if combo is None else _meld_action(combo)


def plan_table_play(state: RoundState, player_index: int) -> PlayAction | None:
    """Return the next table play for ``player_index``, or ``None`` to stop.

    A pending discard-pile card is dealt with first. Before opening only a
    combination worth the first-meld threshold is proposed; afterwards the
    first set, then the first run, then the first legal extension.
    """

    forced = state.forced_card
    if forced is not None:
        return _plan_forced(state, player_index, forced)

    player = state.players[player_index]
    if not player.has_laid_initial:
        combo = opening_combination(player.hand, state.config.first_meld_points)
        return None if combo is None else _meld_action(combo)

    candidates = find_candidates(player.hand)
    if candidates:
        return _meld_action([candidates[0][1]])
    return _first_extension(state, player_index, player.hand)


def take_turn(
    state: RoundState,
    player_index: int,
    rng: random.Random,
    config: StrategyConfig = DEFAULT_STRATEGY,
) -> list[Action]:
    """Plan a whole turn on a clone of ``state`` and return the intents.

    At most one table play is made, unless a discard-pile card still has to
    be placed. ``state`` itself is never modified. A reshuffle during the
    draw can make the planned intents differ from what the live game would
    allow, so schedulers driving a live game should plan one step at a time.
    """

    trial = state.clone_shallow()
    actions: list[Action] = []

    if isinstance(trial.phase, AwaitingDraw):
        draw = choose_draw(trial, player_index, rng, config)
        apply_action(trial, player_index, draw, rng=rng)
        actions.append(draw)
        if trial.is_over:
            return actions

    plays = 0
    while plays == 0 or trial.forced_card is not None:
        play = plan_table_play(trial, player_index)
        if play is None:
            break
        apply_action(trial, player_index, play)
        actions.append(play)
        plays += 1
        if trial.is_over:
            return actions

    if rules.is_stuck(trial, player_index):
        logger.debug("%s is stuck with the discard-pile card", trial.players[player_index].name)
        actions.append(ForfeitAction())
        return actions

    actions.append(choose_discard(trial, player_index))
    return actions
