"""Meld validation, valuation and candidate search."""

from __future__ import annotations

from enum import Enum
from itertools import combinations
from typing import Final, Iterable, Sequence

from .cards import Card, Suit, points_for_number

MIN_MELD_SIZE: Final[int] = 3
MAX_JOKERS_PER_MELD: Final[int] = 1
LOWEST_NUMBER: Final[int] = 1
HIGHEST_NUMBER: Final[int] = 13

__all__ = [
    "MeldKind",
    "MIN_MELD_SIZE",
    "MAX_JOKERS_PER_MELD",
    "is_valid_set",
    "is_valid_run",
    "is_valid",
    "classify",
    "arrange_run",
    "meld_points",
    "hand_points",
    "can_extend_meld",
    "find_sets",
    "find_runs",
    "find_candidates",
    "opening_combination",
]


class MeldKind(str, Enum):
    """Kinds of meld that may be laid on the table."""

    SET = "set"
    RUN = "run"


def _split_jokers(cards: Iterable[Card]) -> tuple[list[Card], list[Card]]:
    jokers: list[Card] = []
    naturals: list[Card] = []
    for card in cards:
        (jokers if card.is_joker else naturals).append(card)
    return jokers, naturals


def _basic_shape_ok(cards: Sequence[Card]) -> bool:
    if len(cards) < MIN_MELD_SIZE:
        return False
    if len({card.id for card in cards}) != len(cards):
        return False
    jokers, naturals = _split_jokers(cards)
    return len(jokers) <= MAX_JOKERS_PER_MELD and bool(naturals)


def is_valid_set(cards: Sequence[Card]) -> bool:
    """Return ``True`` when ``cards`` form a set: one rank, distinct suits."""

    if not _basic_shape_ok(cards):
        return False
    _, naturals = _split_jokers(cards)
    rank = naturals[0].rank
    suits: set[Suit | None] = set()
    for card in naturals:
        if card.rank != rank or card.suit in suits:
            return False
        suits.add(card.suit)
    return True


def _run_layout(cards: Sequence[Card]) -> list[tuple[int, Card]] | None:
    """Return ``(number, card)`` pairs in run order, or ``None`` if not a run.

    The joker, if any, is placed in the single two-wide gap, or otherwise on
    the high end of the sequence (the low end when the run already ends on a
    king).
    """

    if not _basic_shape_ok(cards):
        return None
    jokers, naturals = _split_jokers(cards)
    suit = naturals[0].suit
    if any(card.suit != suit for card in naturals):
        return None

    ordered = sorted(naturals, key=lambda card: card.rank.number)  # type: ignore[union-attr]
    numbers = [card.rank.number for card in ordered]  # type: ignore[union-attr]
    gap_number: int | None = None
    for previous, current in zip(numbers, numbers[1:]):
        diff = current - previous
        if diff == 1:
            continue
        if diff == 2 and jokers and gap_number is None:
            gap_number = previous + 1
            continue
        return None

    layout = [(number, card) for number, card in zip(numbers, ordered)]
    if not jokers:
        return layout

    joker = jokers[0]
    if gap_number is None:
        if numbers[-1] < HIGHEST_NUMBER:
            gap_number = numbers[-1] + 1
        elif numbers[0] > LOWEST_NUMBER:
            gap_number = numbers[0] - 1
        else:
            return None
    layout.append((gap_number, joker))
    layout.sort(key=lambda item: item[0])
    return layout


def is_valid_run(cards: Sequence[Card]) -> bool:
    """Return ``True`` when ``cards`` form a run of one suit."""

    return _run_layout(cards) is not None


def is_valid(kind: MeldKind, cards: Sequence[Card]) -> bool:
    if kind is MeldKind.SET:
        return is_valid_set(cards)
    return is_valid_run(cards)


def classify(cards: Sequence[Card]) -> MeldKind | None:
    """Return the kind of meld ``cards`` form, or ``None`` when illegal."""

    if is_valid_set(cards):
        return MeldKind.SET
    if is_valid_run(cards):
        return MeldKind.RUN
    return None


def arrange_run(cards: Sequence[Card]) -> list[Card]:
    """Return the run ordered by rank with the joker in the slot it fills."""

    layout = _run_layout(cards)
    if layout is None:
        raise ValueError("cards do not form a valid run")
    return [card for _, card in layout]


def meld_points(cards: Sequence[Card], kind: MeldKind | None = None) -> int:
    """Return the value of a legal meld, jokers counted as the rank they replace."""

    if kind is None:
        kind = classify(cards)
        if kind is None:
            raise ValueError("cards do not form a valid meld")
    if kind is MeldKind.SET:
        if not is_valid_set(cards):
            raise ValueError("cards do not form a valid set")
        _, naturals = _split_jokers(cards)
        return naturals[0].points * len(cards)
    layout = _run_layout(cards)
    if layout is None:
        raise ValueError("cards do not form a valid run")
    return sum(points_for_number(number) for number, _ in layout)


def hand_points(cards: Sequence[Card]) -> int:
    """Return the penalty value of cards left in a hand.

    A joker stranded in a hand is worth the value of the first natural card
    in the hand, or 1 when the hand holds nothing but jokers.
    """

    jokers, naturals = _split_jokers(cards)
    joker_value = naturals[0].points if naturals else 1
    return sum(card.points for card in naturals) + joker_value * len(jokers)


def can_extend_meld(kind: MeldKind, meld_cards: Sequence[Card], card: Card) -> bool:
    """Return ``True`` if ``card`` may be added to a table meld of ``kind``."""

    _, naturals = _split_jokers(meld_cards)
    if kind is MeldKind.SET:
        if not card.is_joker:
            if naturals and card.rank != naturals[0].rank:
                return False
            if any(existing.suit == card.suit for existing in naturals):
                return False
        return is_valid_set([*meld_cards, card])

    if not card.is_joker:
        if naturals and card.suit != naturals[0].suit:
            return False
        numbers = [existing.rank.number for existing in naturals]  # type: ignore[union-attr]
        number = card.rank.number  # type: ignore[union-attr]
        if number not in (min(numbers) - 1, max(numbers) + 1):
            return False
    return is_valid_run([*meld_cards, card])


def find_sets(cards: Sequence[Card]) -> list[list[Card]]:
    """Return the largest set available for each rank in ``cards``.

    Sets are returned highest rank first. A two-suit group is completed with
    a joker when the hand holds one.
    """

    jokers, naturals = _split_jokers(cards)
    by_rank: dict[int, dict[Suit | None, Card]] = {}
    for card in naturals:
        by_rank.setdefault(card.rank.number, {}).setdefault(card.suit, card)  # type: ignore[union-attr]

    candidates: list[list[Card]] = []
    for number in sorted(by_rank, reverse=True):
        group = list(by_rank[number].values())
        if len(group) >= MIN_MELD_SIZE:
            candidates.append(group)
        elif len(group) == MIN_MELD_SIZE - 1 and jokers:
            candidates.append([*group, jokers[0]])
    return candidates


def _first_per_number(cards: Iterable[Card], suit: Suit) -> dict[int, Card]:
    by_number: dict[int, Card] = {}
    for card in cards:
        if card.suit == suit and card.rank is not None:
            by_number.setdefault(card.rank.number, card)
    return by_number


def find_runs(cards: Sequence[Card]) -> list[list[Card]]:
    """Return maximal runs per suit, with and without the help of a joker."""

    jokers, naturals = _split_jokers(cards)
    candidates: list[list[Card]] = []
    seen: set[frozenset[str]] = set()

    def add(group: list[Card]) -> None:
        key = frozenset(card.id for card in group)
        if key in seen or not is_valid_run(group):
            return
        seen.add(key)
        candidates.append(arrange_run(group))

    for suit in Suit:
        by_number = _first_per_number(naturals, suit)
        numbers = sorted(by_number)
        for idx, start in enumerate(numbers):
            if idx > 0 and start - numbers[idx - 1] == 1:
                continue
            block = [start]
            for number in numbers[idx + 1:]:
                if number - block[-1] != 1:
                    break
                block.append(number)
            if len(block) >= MIN_MELD_SIZE:
                add([by_number[number] for number in block])

        if not jokers:
            continue
        joker = jokers[0]
        for idx, start in enumerate(numbers):
            bridged = [start]
            used_gap = False
            for number in numbers[idx + 1:]:
                diff = number - bridged[-1]
                if diff == 1:
                    bridged.append(number)
                elif diff == 2 and not used_gap:
                    used_gap = True
                    bridged.append(number)
                else:
                    break
            if len(bridged) >= MIN_MELD_SIZE - 1:
                add([*(by_number[number] for number in bridged), joker])

    candidates.sort(key=lambda group: meld_points(group, MeldKind.RUN), reverse=True)
    return candidates


def find_candidates(cards: Sequence[Card]) -> list[tuple[MeldKind, list[Card]]]:
    """Return every set and run candidate in ``cards``, sets first."""

    return [(MeldKind.SET, group) for group in find_sets(cards)] + [
        (MeldKind.RUN, group) for group in find_runs(cards)
    ]


def _contains(group: Sequence[Card], card: Card | None) -> bool:
    return card is None or any(member.id == card.id for member in group)


def _disjoint_search(
    scored: Sequence[tuple[int, list[Card]]],
    threshold: int,
    size: int,
    required: Card | None,
) -> list[list[Card]] | None:
    chosen: list[list[Card]] = []
    used: set[str] = set()

    def extend(start: int, points: int) -> bool:
        remaining = size - len(chosen)
        if remaining == 0:
            return points >= threshold and any(_contains(group, required) for group in chosen)
        for idx in range(start, len(scored) - remaining + 1):
            # scored is sorted by value, so nothing later can reach the threshold
            if points + sum(value for value, _ in scored[idx:idx + remaining]) < threshold:
                break
            value, group = scored[idx]
            ids = {card.id for card in group}
            if ids & used:
                continue
            chosen.append(group)
            used.update(ids)
            if extend(idx + 1, points + value):
                return True
            chosen.pop()
            used.difference_update(ids)
        return False

    return list(chosen) if extend(0, 0) else None


def opening_combination(
    cards: Sequence[Card],
    threshold: int,
    *,
    required: Card | None = None,
    max_groups: int | None = 2,
) -> list[list[Card]] | None:
    """Return disjoint candidates worth at least ``threshold`` together.

    Fewer groups win over more, and within a size the most valuable
    candidates are tried first. By default only a single candidate or a
    disjoint pair is considered, which is the greedy search computer players
    open with; ``max_groups=None`` allows combinations of any size. When
    ``required`` is given the result must use that card.
    """

    if required is not None:
        cards = [required, *(card for card in cards if card.id != required.id)]
    scored = [
        (meld_points(group, kind), group) for kind, group in find_candidates(cards)
    ]
    scored.sort(key=lambda item: item[0], reverse=True)

    limit = len(cards) // MIN_MELD_SIZE
    if max_groups is not None:
        limit = min(limit, max_groups)
    for size in range(1, limit + 1):
        combo = _disjoint_search(scored, threshold, size, required)
        if combo is not None:
            return combo
    return None
