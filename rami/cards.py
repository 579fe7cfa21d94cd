"""Card abstractions and deck helpers for Tunisian Rami."""

from __future__ import annotations

import random
from dataclasses import dataclass
from enum import Enum
from typing import Final, Iterable, Iterator, Sequence

NUM_DECKS: Final[int] = 2
NUM_JOKERS: Final[int] = 4
DECK_CARD_COUNT: Final[int] = 52 * NUM_DECKS + NUM_JOKERS
JOKER_CODE: Final[str] = "JK"


class Suit(str, Enum):
    """Enumeration of the four suits."""

    HEARTS = "H"
    DIAMONDS = "D"
    CLUBS = "C"
    SPADES = "S"


class Rank(str, Enum):
    """Enumeration of ranks, ace low."""

    ACE = "A"
    TWO = "2"
    THREE = "3"
    FOUR = "4"
    FIVE = "5"
    SIX = "6"
    SEVEN = "7"
    EIGHT = "8"
    NINE = "9"
    TEN = "10"
    JACK = "J"
    QUEEN = "Q"
    KING = "K"

    @classmethod
    def ordered(cls) -> tuple["Rank", ...]:
        """Return ranks in run order (A, 2, ..., K)."""

        return tuple(cls)

    @classmethod
    def from_number(cls, number: int) -> "Rank":
        """Return the rank whose run position is ``number`` (1 for ace)."""

        if not 1 <= number <= 13:
            raise ValueError(f"rank number {number} out of range")
        return cls.ordered()[number - 1]

    @property
    def number(self) -> int:
        """Position used for run validation: A=1 ... K=13."""

        return _RANK_NUMBERS[self]

    @property
    def points(self) -> int:
        """Penalty/meld value of the rank: A=1, 2..10 face value, J/Q/K=10."""

        return min(self.number, 10)


_RANK_NUMBERS: Final[dict[Rank, int]] = {rank: idx + 1 for idx, rank in enumerate(Rank)}


def points_for_number(number: int) -> int:
    """Return the point value of the rank at run position ``number``."""

    return min(number, 10)


@dataclass(frozen=True, slots=True)
class Card:
    """Value object describing one physical card of the 108-card double deck."""

    rank: Rank | None
    suit: Suit | None
    copy: int

    @classmethod
    def joker(cls, copy: int) -> "Card":
        if not 0 <= copy < NUM_JOKERS:
            raise ValueError(f"joker copy {copy} out of range")
        return cls(rank=None, suit=None, copy=copy)

    @classmethod
    def from_code(cls, code: str) -> "Card":
        """Parse a code such as ``"10H#1"`` or ``"JK#3"``."""

        parts = code.strip().split("#")
        if len(parts) != 2 or not parts[1].isdigit():
            raise ValueError(f"invalid card code '{code}'")
        face, copy_str = parts
        copy = int(copy_str)
        if face.upper() == JOKER_CODE:
            return cls.joker(copy)
        return cls(rank=_parse_rank(face[:-1]), suit=_parse_suit(face[-1]), copy=_check_copy(copy))

    @property
    def is_joker(self) -> bool:
        """Return ``True`` when the card represents a joker."""

        return self.rank is None

    @property
    def points(self) -> int:
        """Nominal point value; jokers are worth 0 outside of a meld context."""

        if self.rank is None:
            return 0
        return self.rank.points

    @property
    def face(self) -> str:
        if self.rank is None or self.suit is None:
            return JOKER_CODE
        return f"{self.rank.value}{self.suit.value}"

    @property
    def id(self) -> str:
        """Stable identifier, unique within one deck instance."""

        return f"{self.face}#{self.copy}"

    code = id

    def label(self) -> str:
        """Create a short display label such as ``"7H"`` or ``"JK"``."""

        return self.face

    def __str__(self) -> str:
        return self.id


def _parse_rank(text: str) -> Rank:
    try:
        return Rank(text.upper())
    except ValueError:
        raise ValueError(f"unknown rank '{text}'") from None


def _parse_suit(text: str) -> Suit:
    try:
        return Suit(text.upper())
    except ValueError:
        raise ValueError(f"unknown suit '{text}'") from None


def _check_copy(copy: int) -> int:
    if not 0 <= copy < NUM_DECKS:
        raise ValueError(f"card copy {copy} out of range")
    return copy


def iter_full_deck() -> Iterator[Card]:
    """Yield all 108 physical cards in canonical (unshuffled) order."""

    for copy in range(NUM_DECKS):
        for suit in Suit:
            for rank in Rank.ordered():
                yield Card(rank=rank, suit=suit, copy=copy)
    for copy in range(NUM_JOKERS):
        yield Card.joker(copy)


def shuffle(cards: Sequence[Card], rng: random.Random | None = None) -> list[Card]:
    """Return a uniformly shuffled copy of ``cards`` (Fisher-Yates)."""

    shuffled = list(cards)
    (rng or random.Random()).shuffle(shuffled)
    return shuffled


def build_deck(rng: random.Random | None = None) -> list[Card]:
    """Return a freshly shuffled 108-card deck."""

    return shuffle(list(iter_full_deck()), rng)


def parse_cards(text: str | Iterable[str]) -> list[Card]:
    """Parse faces such as ``"7H 7D JK"`` into cards.

    Faces may carry an explicit ``#copy`` suffix; otherwise copies are handed
    out in order of appearance so that repeated faces stay distinct.
    """

    tokens = text.split() if isinstance(text, str) else list(text)
    seen: dict[str, int] = {}
    cards: list[Card] = []
    for token in tokens:
        if "#" in token:
            cards.append(Card.from_code(token))
            continue
        face = token.upper()
        copy = seen.get(face, 0)
        seen[face] = copy + 1
        cards.append(Card.from_code(f"{face}#{copy}"))
    return cards


def sort_cards(cards: Iterable[Card]) -> list[Card]:
    """Sort cards by suit then rank, jokers last."""

    suit_order = {suit: idx for idx, suit in enumerate(Suit)}

    def key(card: Card) -> tuple[int, int, int]:
        if card.rank is None or card.suit is None:
            return (len(suit_order), 0, card.copy)
        return (suit_order[card.suit], card.rank.number, card.copy)

    return sorted(cards, key=key)


def format_cards(cards: Sequence[Card]) -> str:
    return " ".join(card.label() for card in cards)
