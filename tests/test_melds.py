from __future__ import annotations

import pytest

from rami import melds
from rami.cards import Card, parse_cards
from rami.melds import MeldKind


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("7H 7D 7S", True),
        ("7H 7D 7S 7C", True),
        ("7H 7D JK", True),
        ("7H 7D", False),
        ("7H 7H 7S", False),
        ("7H 7D 7S 7C 7H", False),
        ("7H JK JK", False),
        ("7H 8H 9H", False),
    ],
)
def test_is_valid_set(text: str, expected: bool) -> None:
    assert melds.is_valid_set(parse_cards(text)) is expected


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("5S 6S 7S", True),
        ("AS 2S 3S", True),
        ("5S JK 7S", True),
        ("QS KS JK", True),
        ("5S 8S JK", False),
        ("QS KS AS", False),
        ("5S 6S 7H", False),
        ("5S JK JK", False),
        ("5S 6S 6S", False),
        ("AS 2S 3S 4S 5S 6S 7S 8S 9S 10S JS QS KS", True),
        ("AS 2S 3S 4S 5S 6S 7S 8S 9S 10S JS QS KS JK", False),
    ],
)
def test_is_valid_run(text: str, expected: bool) -> None:
    assert melds.is_valid_run(parse_cards(text)) is expected


def test_classify_distinguishes_sets_and_runs() -> None:
    assert melds.classify(parse_cards("9H 9C 9S")) is MeldKind.SET
    assert melds.classify(parse_cards("9H 10H JH")) is MeldKind.RUN
    assert melds.classify(parse_cards("9H 10C JH")) is None


def test_arrange_run_places_joker_in_gap() -> None:
    arranged = melds.arrange_run(parse_cards("7S JK 5S"))
    assert [card.face for card in arranged] == ["5S", "JK", "7S"]


def test_arrange_run_puts_joker_below_king() -> None:
    arranged = melds.arrange_run(parse_cards("KS JK QS"))
    assert [card.face for card in arranged] == ["JK", "QS", "KS"]


@pytest.mark.parametrize(
    ("text", "points"),
    [
        ("7H 7D 7S", 21),
        ("KH KD KS", 30),
        ("KH KD JK", 30),
        ("5S JK 7S", 18),
        ("AS 2S 3S", 6),
        ("10H JH QH KH", 40),
        ("QS KS JK", 30),
        ("8D 9D JK", 27),
    ],
)
def test_meld_points_counts_joker_as_replaced_card(text: str, points: int) -> None:
    assert melds.meld_points(parse_cards(text)) == points


def test_meld_points_rejects_illegal_meld() -> None:
    with pytest.raises(ValueError):
        melds.meld_points(parse_cards("5S 8S JK"))


@pytest.mark.parametrize(
    ("text", "points"),
    [
        ("", 0),
        ("5H 9S", 14),
        ("JK 5H", 10),
        ("KH JK", 20),
        ("JK", 1),
        ("JK JK", 2),
        ("AH KD", 11),
    ],
)
def test_hand_points(text: str, points: int) -> None:
    assert melds.hand_points(parse_cards(text)) == points


@pytest.mark.parametrize(
    ("meld", "card", "expected"),
    [
        ("7H 7D 7S", "7C#0", True),
        ("7H 7D 7S", "7H#1", False),
        ("7H 7D 7S", "8C#0", False),
        ("7H 7D 7S", "JK#0", True),
        ("7H 7D JK", "JK#1", False),
        ("5S 6S 7S", "8S#0", True),
        ("5S 6S 7S", "4S#0", True),
        ("5S 6S 7S", "9S#0", False),
        ("5S 6S 7S", "8H#0", False),
        ("5S JK 7S", "8S#0", True),
        ("5S JK 7S", "6S#0", False),
        ("JS QS KS", "AS#0", False),
    ],
)
def test_can_extend_meld(meld: str, card: str, expected: bool) -> None:
    cards = parse_cards(meld)
    kind = melds.classify(cards)
    assert kind is not None
    assert melds.can_extend_meld(kind, cards, Card.from_code(card)) is expected


def test_find_sets_uses_joker_for_pairs() -> None:
    found = melds.find_sets(parse_cards("KH KD 4C 4D 4S JK"))
    faces = [sorted(card.face for card in group) for group in found]
    assert ["JK", "KD", "KH"] in faces
    assert ["4C", "4D", "4S"] in faces
    assert faces.index(["JK", "KD", "KH"]) < faces.index(["4C", "4D", "4S"])


def test_find_runs_finds_natural_and_bridged_runs() -> None:
    found = melds.find_runs(parse_cards("3H 4H 5H 9C JC JK"))
    faces = [[card.face for card in group] for group in found]
    assert ["3H", "4H", "5H"] in faces
    assert ["9C", "JK", "JC"] in faces
    assert all(melds.is_valid_run(group) for group in found)


def test_opening_combination_needs_threshold() -> None:
    assert melds.opening_combination(parse_cards("7H 7D 7S 2C"), 51) is None


def test_opening_combination_pairs_two_melds() -> None:
    combo = melds.opening_combination(parse_cards("KH KD KS QH QD QS 2C"), 51)
    assert combo is not None
    assert len(combo) == 2
    assert sum(melds.meld_points(group) for group in combo) == 60


def test_opening_combination_honours_required_card() -> None:
    hand = parse_cards("KD KS KC QD QS QC 10H JH")
    required = Card.from_code("9H#0")
    combo = melds.opening_combination(hand, 51, required=required)
    assert combo is not None
    assert any(required in group for group in combo)

    stranger = Card.from_code("2C#0")
    assert melds.opening_combination(hand, 51, required=stranger) is None


def test_opening_combination_any_size_search() -> None:
    hand = parse_cards("7H 7D 8H 8D 8S 9H 9D 9S 2C")
    required = Card.from_code("7S#0")

    assert melds.opening_combination(hand, 51, required=required) is None

    combo = melds.opening_combination(hand, 51, required=required, max_groups=None)
    assert combo is not None
    assert len(combo) == 3
    assert any(required in group for group in combo)
    ids = [card.id for group in combo for card in group]
    assert len(ids) == len(set(ids))
    assert sum(melds.meld_points(group) for group in combo) >= 51
