"""Turn rules, transitions and scoring for Tunisian Rami."""

from __future__ import annotations

import logging
import random
from collections import Counter
from dataclasses import dataclass
from enum import Enum
from itertools import combinations
from typing import ClassVar, Final, Sequence

from .cards import Card, iter_full_deck, shuffle
from .melds import (
    MeldKind,
    arrange_run,
    can_extend_meld,
    classify,
    hand_points,
    is_valid,
    meld_points,
    opening_combination,
)
from .state import (
    AwaitingDiscard,
    AwaitingDraw,
    AwaitingMeldOrDiscard,
    DrawnPhase,
    EndReason,
    MeldOnTable,
    RoundOutcome,
    RoundOver,
    RoundState,
)

logger = logging.getLogger(__name__)

__all__ = [
    "RejectionKind",
    "RuleViolation",
    "IllegalAction",
    "InvalidMeld",
    "InsufficientMeldValue",
    "ForcedCardUnused",
    "UnknownCardOrMeld",
    "EmptyResource",
    "InvariantViolation",
    "PlayerRoundScore",
    "describe",
    "draw_from_deck",
    "draw_from_discard",
    "propose_meld",
    "propose_melds",
    "extend_meld",
    "discard_card",
    "forfeit_turn",
    "end_round_without_winner",
    "can_draw_from_discard",
    "can_extend",
    "card_playable",
    "is_stuck",
    "round_scores",
    "check_conservation",
]


class RejectionKind(str, Enum):
    """Kinds of rejected intent, shared by every front end."""

    ILLEGAL_ACTION = "illegal_action"
    INVALID_MELD = "invalid_meld"
    INSUFFICIENT_MELD_VALUE = "insufficient_meld_value"
    FORCED_CARD_UNUSED = "forced_card_unused"
    UNKNOWN_CARD_OR_MELD = "unknown_card_or_meld"
    EMPTY_RESOURCE = "empty_resource"


_DEFAULT_MESSAGES: Final[dict[RejectionKind, str]] = {
    RejectionKind.ILLEGAL_ACTION: "That action is not allowed right now.",
    RejectionKind.INVALID_MELD: "Those cards do not form a valid set or run.",
    RejectionKind.INSUFFICIENT_MELD_VALUE: "Your first meld must be worth at least 51 points.",
    RejectionKind.FORCED_CARD_UNUSED: "You must use the card taken from the discard pile in a meld first.",
    RejectionKind.UNKNOWN_CARD_OR_MELD: "That card or meld is not where it should be.",
    RejectionKind.EMPTY_RESOURCE: "There is nothing left to draw there.",
}


def describe(kind: RejectionKind) -> str:
    """Return a default, user-facing message for ``kind``."""

    return _DEFAULT_MESSAGES[kind]


class RuleViolation(RuntimeError):
    """Base class for rejected intents. State is left untouched."""

    kind: ClassVar[RejectionKind] = RejectionKind.ILLEGAL_ACTION

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or describe(self.kind))


class IllegalAction(RuleViolation):
    """Raised for actions in the wrong phase or by the wrong player."""

    kind = RejectionKind.ILLEGAL_ACTION


class InvalidMeld(RuleViolation):
    kind = RejectionKind.INVALID_MELD


class InsufficientMeldValue(RuleViolation):
    kind = RejectionKind.INSUFFICIENT_MELD_VALUE


class ForcedCardUnused(RuleViolation):
    kind = RejectionKind.FORCED_CARD_UNUSED


class UnknownCardOrMeld(RuleViolation):
    kind = RejectionKind.UNKNOWN_CARD_OR_MELD


class EmptyResource(RuleViolation):
    kind = RejectionKind.EMPTY_RESOURCE


class InvariantViolation(AssertionError):
    """Raised when the state is corrupt; a caller bypassed the rules."""


@dataclass(frozen=True, slots=True)
class PlayerRoundScore:
    """Per-player scoring captured at the end of a round."""

    player_index: int
    hand_points: int
    penalty: int
    won_round: bool
    clean_win: bool = False


def _require_turn(state: RoundState, player_index: int) -> None:
    if isinstance(state.phase, RoundOver):
        raise IllegalAction("the round is already over")
    if player_index < 0 or player_index >= len(state.players):
        raise IllegalAction("invalid player index")
    if state.current_player_index != player_index:
        raise IllegalAction("it is not this player's turn")


def _require_draw_phase(state: RoundState, player_index: int) -> None:
    _require_turn(state, player_index)
    if not isinstance(state.phase, AwaitingDraw):
        raise IllegalAction("the player has already drawn this turn")


def _require_drawn_phase(state: RoundState, player_index: int) -> DrawnPhase:
    _require_turn(state, player_index)
    phase = state.phase
    if not isinstance(phase, (AwaitingMeldOrDiscard, AwaitingDiscard)):
        raise IllegalAction("the player must draw first")
    return phase


def _started_unopened(state: RoundState, player_index: int) -> bool:
    player = state.players[player_index]
    if player.has_laid_initial:
        return False
    return not any(meld.owner == player_index for meld in state.melds)


def _finish_round(state: RoundState, outcome: RoundOutcome) -> None:
    state.phase = RoundOver(outcome)
    if outcome.winner_index is None:
        logger.info("Round %d ended without a winner (%s)", state.round_number, outcome.reason.value)
    else:
        logger.info(
            "Round %d won by %s%s",
            state.round_number,
            state.players[outcome.winner_index].name,
            " with a clean win" if outcome.clean_win else "",
        )


def _advance_turn(state: RoundState) -> None:
    state.current_player_index = (state.current_player_index + 1) % len(state.players)
    state.turn_index += 1
    state.phase = AwaitingDraw()


def end_round_without_winner(state: RoundState, reason: EndReason = EndReason.EXHAUSTED) -> None:
    """Close the round with no winner; everybody scores their own hand."""

    if isinstance(state.phase, RoundOver):
        raise IllegalAction("the round is already over")
    _finish_round(state, RoundOutcome(reason=reason))
    state.version += 1


def _replenish_draw_pile(state: RoundState, rng: random.Random | None) -> bool:
    if len(state.discard_pile) <= 1:
        return False
    top_card = state.discard_pile.pop()
    state.draw_pile = shuffle(state.discard_pile, rng)
    state.discard_pile = [top_card]
    logger.debug("Reshuffled %d discarded cards into the deck", len(state.draw_pile))
    return True


def draw_from_deck(state: RoundState, player_index: int, rng: random.Random | None = None) -> Card | None:
    """Draw the top card of the deck for ``player_index``.

    An empty deck is refilled from the discard pile (minus its top card). If
    that is impossible the round ends without a winner and ``None`` is
    returned.
    """

    _require_draw_phase(state, player_index)
    if not state.draw_pile and not _replenish_draw_pile(state, rng):
        _finish_round(state, RoundOutcome(reason=EndReason.EXHAUSTED))
        state.version += 1
        return None

    card = state.draw_pile.pop()
    state.players[player_index].hand.append(card)
    state.phase = AwaitingMeldOrDiscard(
        drawn_card=card,
        from_discard=False,
        started_unopened=_started_unopened(state, player_index),
    )
    state.version += 1
    return card


def can_draw_from_discard(state: RoundState, player_index: int) -> bool:
    try:
        _require_draw_phase(state, player_index)
    except IllegalAction:
        return False
    return bool(state.discard_pile)


def draw_from_discard(state: RoundState, player_index: int) -> Card:
    """Take the top discard; it must then be used on the table this turn."""

    _require_draw_phase(state, player_index)
    if not state.discard_pile:
        raise EmptyResource("the discard pile is empty, draw from the deck instead")

    card = state.discard_pile.pop()
    state.players[player_index].hand.append(card)
    state.phase = AwaitingMeldOrDiscard(
        drawn_card=card,
        from_discard=True,
        started_unopened=_started_unopened(state, player_index),
        forced_card=card,
    )
    state.version += 1
    return card


def _after_table_play(state: RoundState, player_index: int, phase: DrawnPhase, used: set[str]) -> None:
    forced = phase.forced_card if isinstance(phase, AwaitingMeldOrDiscard) else None
    if forced is not None and forced.id in used:
        forced = None
    plays = phase.table_plays + 1

    if not state.players[player_index].hand:
        _finish_round(
            state,
            RoundOutcome(
                reason=EndReason.HAND_EMPTY,
                winner_index=player_index,
                clean_win=phase.started_unopened,
            ),
        )
    elif forced is not None:
        state.phase = AwaitingMeldOrDiscard(
            drawn_card=phase.drawn_card,
            from_discard=phase.from_discard,
            started_unopened=phase.started_unopened,
            forced_card=forced,
            table_plays=plays,
        )
    else:
        state.phase = AwaitingDiscard(
            drawn_card=phase.drawn_card,
            from_discard=phase.from_discard,
            started_unopened=phase.started_unopened,
            table_plays=plays,
        )
    state.version += 1


def propose_melds(
    state: RoundState,
    player_index: int,
    groups: Sequence[Sequence[str]],
) -> list[MeldOnTable]:
    """Lay one or more new melds from the player's hand.

    Before a player has opened, the combined value of ``groups`` must reach
    the first-meld threshold.
    """

    phase = _require_drawn_phase(state, player_index)
    player = state.players[player_index]
    if not groups:
        raise InvalidMeld("no cards were proposed")

    all_ids = [card_id for group in groups for card_id in group]
    if len(set(all_ids)) != len(all_ids):
        raise InvalidMeld("a card cannot appear twice in the proposal")

    resolved: list[tuple[MeldKind, list[Card]]] = []
    for group in groups:
        cards: list[Card] = []
        for card_id in group:
            card = player.find_card(card_id)
            if card is None:
                raise UnknownCardOrMeld(f"card {card_id} is not in the player's hand")
            cards.append(card)
        if len(cards) < 3:
            raise InvalidMeld("a meld needs at least 3 cards")
        kind = classify(cards)
        if kind is None:
            raise InvalidMeld(f"{' '.join(card.label() for card in cards)} is not a valid set or run")
        resolved.append((kind, arrange_run(cards) if kind is MeldKind.RUN else cards))

    total = sum(meld_points(cards, kind) for kind, cards in resolved)
    threshold = state.config.first_meld_points
    if not player.has_laid_initial and total < threshold:
        raise InsufficientMeldValue(
            f"first meld must be at least {threshold} points, this one is worth {total}"
        )

    used = set(all_ids)
    player.hand = [card for card in player.hand if card.id not in used]
    laid: list[MeldOnTable] = []
    for kind, cards in resolved:
        meld = MeldOnTable(meld_id=f"M{state.next_meld_serial}", kind=kind, cards=cards, owner=player_index)
        state.next_meld_serial += 1
        state.melds.append(meld)
        laid.append(meld)
    player.has_laid_initial = True
    logger.debug("%s laid %d meld(s) worth %d", player.name, len(laid), total)

    _after_table_play(state, player_index, phase, used)
    return laid


def propose_meld(state: RoundState, player_index: int, card_ids: Sequence[str]) -> MeldOnTable:
    """Lay a single new meld from the player's hand."""

    return propose_melds(state, player_index, [card_ids])[0]


def can_extend(state: RoundState, player_index: int, meld: MeldOnTable, card: Card) -> bool:
    """Return ``True`` when ownership and meld shape allow adding ``card``."""

    player = state.players[player_index]
    if not player.has_laid_initial and meld.owner != player_index:
        return False
    return can_extend_meld(meld.kind, meld.cards, card)


def extend_meld(state: RoundState, player_index: int, meld_id: str, card_id: str) -> MeldOnTable:
    """Add one card from the hand to a meld on the table."""

    phase = _require_drawn_phase(state, player_index)
    player = state.players[player_index]
    meld = state.find_meld(meld_id)
    if meld is None:
        raise UnknownCardOrMeld(f"meld {meld_id} is not on the table")
    card = player.find_card(card_id)
    if card is None:
        raise UnknownCardOrMeld(f"card {card_id} is not in the player's hand")
    if not player.has_laid_initial and meld.owner != player_index:
        raise IllegalAction("lay your own first meld before adding to other players' melds")
    if not can_extend_meld(meld.kind, meld.cards, card):
        raise InvalidMeld(f"{card.label()} does not fit meld {meld_id}")

    cards = [*meld.cards, card]
    if meld.kind is MeldKind.RUN:
        cards = arrange_run(cards)
    if not is_valid(meld.kind, cards):
        raise InvariantViolation(f"extending {meld_id} produced an illegal meld")

    player.hand = [held for held in player.hand if held.id != card_id]
    meld.cards = cards
    logger.debug("%s added %s to %s", player.name, card.label(), meld_id)

    _after_table_play(state, player_index, phase, {card_id})
    return meld


def discard_card(state: RoundState, player_index: int, card_id: str) -> None:
    """Discard ``card_id`` and end the turn (or the round, on an empty hand)."""

    phase = _require_drawn_phase(state, player_index)
    if isinstance(phase, AwaitingMeldOrDiscard) and phase.forced_card is not None:
        if phase.forced_card.id == card_id:
            raise ForcedCardUnused("the card taken from the discard pile cannot be discarded back")
        raise ForcedCardUnused(
            f"use {phase.forced_card.label()} from the discard pile in a meld before discarding"
        )
    player = state.players[player_index]
    card = player.find_card(card_id)
    if card is None:
        raise UnknownCardOrMeld(f"card {card_id} is not in the player's hand")

    player.hand = [held for held in player.hand if held.id != card_id]
    state.discard_pile.append(card)
    if not player.hand:
        _finish_round(
            state,
            RoundOutcome(
                reason=EndReason.HAND_EMPTY,
                winner_index=player_index,
                clean_win=phase.started_unopened,
            ),
        )
    else:
        _advance_turn(state)
    state.version += 1


def _forms_meld_with(cards: Sequence[Card], card: Card) -> bool:
    others = [held for held in cards if held.id != card.id]
    for first, second in combinations(others, 2):
        if classify([card, first, second]) is not None:
            return True
    return False


def card_playable(state: RoundState, player_index: int, card: Card) -> bool:
    """Return ``True`` when ``card`` could be used on the table right now.

    The card is assumed to be in (or about to join) the player's hand. For a
    player who has not opened, only an opening worth the threshold counts,
    built from any number of disjoint melds.
    """

    player = state.players[player_index]
    hand = list(player.hand)
    if player.find_card(card.id) is None:
        hand.append(card)

    if player.has_laid_initial:
        if any(can_extend_meld(meld.kind, meld.cards, card) for meld in state.melds):
            return True
        return _forms_meld_with(hand, card)

    if any(
        meld.owner == player_index and can_extend_meld(meld.kind, meld.cards, card)
        for meld in state.melds
    ):
        return True
    combo = opening_combination(
        hand, state.config.first_meld_points, required=card, max_groups=None
    )
    return combo is not None


def is_stuck(state: RoundState, player_index: int) -> bool:
    """Return ``True`` if a pending discard-pile card cannot be used at all."""

    phase = state.phase
    if state.current_player_index != player_index:
        return False
    if not isinstance(phase, AwaitingMeldOrDiscard) or phase.forced_card is None:
        return False
    return not card_playable(state, player_index, phase.forced_card)


def forfeit_turn(state: RoundState, player_index: int) -> Card:
    """Give up a stuck turn: the forced card returns to the discard pile.

    Cards already laid this turn stay on the table. Play passes to the next
    player without a discard.
    """

    _require_drawn_phase(state, player_index)
    if not is_stuck(state, player_index):
        raise IllegalAction("a turn can only be forfeited when the discard-pile card cannot be used")
    forced = state.forced_card
    if forced is None:  # pragma: no cover - guarded by is_stuck
        raise InvariantViolation("stuck turn without a forced card")

    player = state.players[player_index]
    player.hand = [held for held in player.hand if held.id != forced.id]
    state.discard_pile.append(forced)
    logger.debug("%s forfeited the turn and returned %s", player.name, forced.label())
    _advance_turn(state)
    state.version += 1
    return forced


def round_scores(state: RoundState) -> list[PlayerRoundScore]:
    """Return the penalty each player takes for the finished round."""

    phase = state.phase
    if not isinstance(phase, RoundOver):
        raise ValueError("the round has not finished")
    outcome = phase.outcome
    multiplier = state.config.clean_win_multiplier if outcome.clean_win else 1

    scores: list[PlayerRoundScore] = []
    for idx, player in enumerate(state.players):
        points = hand_points(player.hand)
        won = idx == outcome.winner_index
        if won:
            penalty = 0
        elif outcome.winner_index is None:
            penalty = points
        else:
            penalty = points * multiplier
        scores.append(
            PlayerRoundScore(
                player_index=idx,
                hand_points=points,
                penalty=penalty,
                won_round=won,
                clean_win=won and outcome.clean_win,
            )
        )
    return scores


_FULL_DECK_IDS: Final[Counter[str]] = Counter(card.id for card in iter_full_deck())


def check_conservation(state: RoundState) -> None:
    """Raise ``InvariantViolation`` unless all 108 cards are each in one place
    and every table meld is legal."""

    seen = Counter(card.id for card in state.all_cards())
    if seen != _FULL_DECK_IDS:
        duplicated = sorted(card_id for card_id, count in seen.items() if count > 1)
        missing = sorted((_FULL_DECK_IDS - seen).keys())
        raise InvariantViolation(f"card conservation broken: duplicated={duplicated} missing={missing}")
    for meld in state.melds:
        if not is_valid(meld.kind, meld.cards):
            raise InvariantViolation(f"meld {meld.meld_id} is not a legal {meld.kind.value}")
