"""Shared builders for hand-crafted round states."""

from __future__ import annotations

from collections import Counter
from typing import Callable, Sequence

import pytest

from rami.cards import Card, iter_full_deck
from rami.melds import MeldKind, arrange_run, classify
from rami.state import DEFAULT_CONFIG, MeldOnTable, PlayerState, RamiConfig, RoundState


def _take(text: str, used: Counter[str]) -> list[Card]:
    cards: list[Card] = []
    for token in text.split():
        face = token.upper()
        cards.append(Card.from_code(f"{face}#{used[face]}"))
        used[face] += 1
    return cards


def build_round(
    hands: Sequence[str],
    *,
    discard: str = "",
    draw_top: str = "",
    melds: Sequence[tuple[str, int]] = (),
    opened: Sequence[int] = (),
    current: int = 0,
    leftover: str = "draw",
    config: RamiConfig = DEFAULT_CONFIG,
) -> RoundState:
    """Lay out a round card by card.

    Faces are given as text (``"7H 7D JK"``); repeated faces take the next
    copy. Cards not mentioned go under the deck (``leftover="draw"``), under
    the discard pile (``"discard"``) or nowhere (``"drop"``).
    """

    used: Counter[str] = Counter()
    players = [
        PlayerState(player_id=f"p{idx}", name=f"P{idx}", hand=_take(text, used), has_laid_initial=idx in opened)
        for idx, text in enumerate(hands)
    ]
    table: list[MeldOnTable] = []
    for serial, (text, owner) in enumerate(melds, start=1):
        cards = _take(text, used)
        kind = classify(cards)
        assert kind is not None, text
        if kind is MeldKind.RUN:
            cards = arrange_run(cards)
        table.append(MeldOnTable(meld_id=f"M{serial}", kind=kind, cards=cards, owner=owner))
    discard_cards = _take(discard, used)
    top_cards = list(reversed(_take(draw_top, used)))

    taken = {card.id for player in players for card in player.hand}
    taken |= {card.id for meld in table for card in meld.cards}
    taken |= {card.id for card in discard_cards + top_cards}
    rest = [card for card in iter_full_deck() if card.id not in taken]

    draw_pile = list(top_cards)
    discard_pile = list(discard_cards)
    if leftover == "draw":
        draw_pile = rest + draw_pile
    elif leftover == "discard":
        discard_pile = rest + discard_pile

    return RoundState(
        config=config,
        players=players,
        draw_pile=draw_pile,
        discard_pile=discard_pile,
        melds=table,
        current_player_index=current,
        next_meld_serial=len(table) + 1,
    )


@pytest.fixture
def make_round() -> Callable[..., RoundState]:
    return build_round
