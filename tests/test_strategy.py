"""Tests for the greedy computer player."""

from __future__ import annotations

import random
from typing import Callable

import pytest

from rami import rules
from rami.actions import DiscardAction, DrawAction, DrawSource, ExtendAction, ForfeitAction, MeldAction
from rami.cards import Card, parse_cards
from rami.state import RoundState
from rami.strategy import StrategyConfig, choose_discard, choose_draw, plan_table_play, take_turn
from rami.strategy.heuristics import fits_hand, is_dead_card

MakeRound = Callable[..., RoundState]

NEVER = StrategyConfig(discard_draw_probability=0.0)
ALWAYS = StrategyConfig(discard_draw_probability=1.0)


@pytest.mark.parametrize(
    ("hand", "card", "expected"),
    [
        ("7H 7D 2C", "7S#0", True),
        ("7H 2C", "7S#0", False),
        ("6S 2C", "7S#0", True),
        ("5S 9S", "7S#0", False),
        ("2C", "JK#0", True),
    ],
)
def test_fits_hand(hand: str, card: str, expected: bool) -> None:
    assert fits_hand(parse_cards(hand), Card.from_code(card)) is expected


def test_dead_cards_have_no_partners() -> None:
    hand = parse_cards("KH 2C 4C 9D 9S JK")
    by_face = {card.face: card for card in hand}
    assert is_dead_card(hand, by_face["KH"])
    assert not is_dead_card(hand, by_face["2C"])
    assert not is_dead_card(hand, by_face["9D"])
    assert not is_dead_card(hand, by_face["JK"])


def test_choose_draw_takes_useful_discard(make_round: MakeRound) -> None:
    state = make_round(["7H 7D 2C 9S", "3C 4H"], discard="7S", opened=[0])
    assert choose_draw(state, 0, random.Random(0), NEVER) == DrawAction(source=DrawSource.DISCARD)


def test_choose_draw_never_takes_unusable_discard(make_round: MakeRound) -> None:
    state = make_round(["7H 7D 2C 9S", "3C 4H"], discard="7S")
    assert choose_draw(state, 0, random.Random(0), ALWAYS) == DrawAction(source=DrawSource.DECK)


def test_choose_draw_sometimes_takes_usable_non_fitting_discard(make_round: MakeRound) -> None:
    state = make_round(["2C 4D", "3C 4H"], melds=[("5S 6S 7S", 1)], discard="8S", opened=[0])
    assert choose_draw(state, 0, random.Random(0), ALWAYS) == DrawAction(source=DrawSource.DISCARD)
    assert choose_draw(state, 0, random.Random(0), NEVER) == DrawAction(source=DrawSource.DECK)


def test_choose_draw_uses_deck_when_discard_pile_empty(make_round: MakeRound) -> None:
    state = make_round(["2C 9S", "3C 4H"])
    assert choose_draw(state, 0, random.Random(0), ALWAYS) == DrawAction(source=DrawSource.DECK)


def test_choose_discard_prefers_dead_high_card(make_round: MakeRound) -> None:
    state = make_round(["KH 2C 3C 4D JK", "3H 4H"])
    assert choose_discard(state, 0) == DiscardAction(card_id="KH#0")


def test_choose_discard_keeps_jokers(make_round: MakeRound) -> None:
    state = make_round(["7H 7D 8H JK", "3H 4H"])
    action = choose_discard(state, 0)
    assert action.card_id != "JK#0"
    assert choose_discard(make_round(["JK", "3H"]), 0) == DiscardAction(card_id="JK#0")


def test_plan_opens_with_enough_points(make_round: MakeRound) -> None:
    state = make_round(["KH KD KS QH QD QS 2C", "3H 4H"], discard="9S", draw_top="5C")
    rules.draw_from_deck(state, 0)
    play = plan_table_play(state, 0)
    assert isinstance(play, MeldAction)
    assert len(play.groups) == 2


def test_plan_holds_back_below_threshold(make_round: MakeRound) -> None:
    state = make_round(["7H 7D 7S 2C", "3H 4H"], discard="9S", draw_top="5C")
    rules.draw_from_deck(state, 0)
    assert plan_table_play(state, 0) is None


def test_plan_uses_forced_card_first(make_round: MakeRound) -> None:
    state = make_round(["2C 2D 2S 9H", "3H 4H"], melds=[("5S 6S 7S", 1)], discard="8S", opened=[0])
    rules.draw_from_discard(state, 0)
    assert plan_table_play(state, 0) == ExtendAction(meld_id="M1", card_id="8S#0")


def test_plan_extends_after_opening(make_round: MakeRound) -> None:
    state = make_round(["9H 2D", "3H 4H"], melds=[("KH KD KS", 1)], discard="4S", draw_top="KC", opened=[0])
    rules.draw_from_deck(state, 0)
    assert plan_table_play(state, 0) == ExtendAction(meld_id="M1", card_id="KC#0")


def test_take_turn_does_not_touch_state(make_round: MakeRound) -> None:
    state = make_round(["KH KD KS QH QD QS 2C 9D", "3H 4H"], discard="4S", draw_top="5C")
    version = state.version

    planned = take_turn(state, 0, random.Random(1), NEVER)

    assert state.version == version
    assert planned[0] == DrawAction(source=DrawSource.DECK)
    assert isinstance(planned[1], MeldAction)
    assert isinstance(planned[-1], DiscardAction)


def test_take_turn_forfeits_when_stuck(make_round: MakeRound) -> None:
    state = make_round(["2C 5H 9S", "3H 4H"], discard="KD")
    rules.draw_from_discard(state, 0)
    assert take_turn(state, 0, random.Random(1)) == [ForfeitAction()]


def test_take_turn_makes_one_table_play(make_round: MakeRound) -> None:
    state = make_round(["2H 2D 2S 6H 6D 6S 9C KD", "3H 4H"], discard="4S", draw_top="5C", opened=[0])

    planned = take_turn(state, 0, random.Random(1), NEVER)

    plays = [action for action in planned if isinstance(action, (MeldAction, ExtendAction))]
    assert planned[0] == DrawAction(source=DrawSource.DECK)
    assert len(plays) == 1
    assert isinstance(planned[-1], DiscardAction)


def test_take_turn_opens_with_three_melds_for_discard_card(make_round: MakeRound) -> None:
    state = make_round(["7H 7D 8H 8D 8S 9H 9D 9S 2C", "3H 4H"], discard="7S")
    rules.draw_from_discard(state, 0)

    planned = take_turn(state, 0, random.Random(1), NEVER)

    assert len(planned) == 2
    meld = planned[0]
    assert isinstance(meld, MeldAction)
    assert len(meld.groups) == 3
    assert any("7S#0" in group for group in meld.groups)
    assert planned[1] == DiscardAction(card_id="2C#0")
