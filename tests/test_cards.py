from __future__ import annotations

import random
from collections import Counter

import pytest

from rami.cards import (
    DECK_CARD_COUNT,
    Card,
    Rank,
    Suit,
    build_deck,
    iter_full_deck,
    parse_cards,
    sort_cards,
)


def test_full_deck_has_108_unique_cards() -> None:
    deck = list(iter_full_deck())
    assert len(deck) == DECK_CARD_COUNT == 108
    assert len({card.id for card in deck}) == 108
    assert sum(1 for card in deck if card.is_joker) == 4
    faces = Counter(card.face for card in deck if not card.is_joker)
    assert set(faces.values()) == {2}


def test_build_deck_is_seeded_shuffle() -> None:
    first = build_deck(random.Random(5))
    second = build_deck(random.Random(5))
    assert [card.id for card in first] == [card.id for card in second]
    assert sorted(card.id for card in first) == sorted(card.id for card in iter_full_deck())


@pytest.mark.parametrize(
    ("rank", "points"),
    [
        (Rank.ACE, 1),
        (Rank.TWO, 2),
        (Rank.TEN, 10),
        (Rank.JACK, 10),
        (Rank.QUEEN, 10),
        (Rank.KING, 10),
    ],
)
def test_rank_points(rank: Rank, points: int) -> None:
    assert rank.points == points


def test_rank_numbers_are_ace_low() -> None:
    assert Rank.ACE.number == 1
    assert Rank.KING.number == 13
    assert Rank.from_number(11) is Rank.JACK
    with pytest.raises(ValueError):
        Rank.from_number(14)


def test_joker_has_no_rank_or_suit() -> None:
    joker = Card.joker(2)
    assert joker.is_joker
    assert joker.rank is None and joker.suit is None
    assert joker.id == "JK#2"
    assert joker.points == 0


@pytest.mark.parametrize(
    ("code", "rank", "suit", "copy"),
    [
        ("10H#1", Rank.TEN, Suit.HEARTS, 1),
        ("as#0", Rank.ACE, Suit.SPADES, 0),
        ("KD#0", Rank.KING, Suit.DIAMONDS, 0),
    ],
)
def test_card_from_code(code: str, rank: Rank, suit: Suit, copy: int) -> None:
    card = Card.from_code(code)
    assert (card.rank, card.suit, card.copy) == (rank, suit, copy)


@pytest.mark.parametrize("code", ["7H", "1H#0", "7X#0", "7H#2", "JK#4"])
def test_card_from_code_rejects_garbage(code: str) -> None:
    with pytest.raises(ValueError):
        Card.from_code(code)


def test_parse_cards_assigns_distinct_copies() -> None:
    cards = parse_cards("7H 7H JK JK 9S#1")
    assert [card.id for card in cards] == ["7H#0", "7H#1", "JK#0", "JK#1", "9S#1"]


def test_sort_cards_orders_by_suit_then_rank_jokers_last() -> None:
    cards = parse_cards("JK KS 2H AH 5D")
    assert [card.face for card in sort_cards(cards)] == ["AH", "2H", "5D", "KS", "JK"]
