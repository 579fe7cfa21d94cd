"""Core game state data structures for Tunisian Rami."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import ClassVar, List, Sequence, Union

from .cards import Card
from .melds import MeldKind, meld_points


class TurnPhase(str, Enum):
    """Phases of a single turn, plus the terminal round state."""

    AWAITING_DRAW = "awaiting_draw"
    AWAITING_MELD_OR_DISCARD = "awaiting_meld_or_discard"
    AWAITING_DISCARD = "awaiting_discard"
    ROUND_OVER = "round_over"


class EndReason(str, Enum):
    """Why a round finished."""

    HAND_EMPTY = "hand_empty"
    EXHAUSTED = "exhausted"
    TURN_LIMIT = "turn_limit"


@dataclass(frozen=True, slots=True)
class RamiConfig:
    """Table rules for a game of Tunisian Rami."""

    hand_size: int = 14
    first_meld_points: int = 51
    game_over_score: int = 100
    min_players: int = 2
    max_players: int = 4
    clean_win_multiplier: int = 2
    rotate_first_player: bool = True
    verify_invariants: bool = True

    def __post_init__(self) -> None:
        if self.hand_size <= 0:
            raise ValueError("hand_size must be positive")
        if not 2 <= self.min_players <= self.max_players:
            raise ValueError("player limits must satisfy 2 <= min_players <= max_players")
        if self.first_meld_points < 0 or self.game_over_score <= 0:
            raise ValueError("point thresholds must be positive")


DEFAULT_CONFIG = RamiConfig()


@dataclass(frozen=True, slots=True)
class RoundOutcome:
    """How a round ended."""

    reason: EndReason
    winner_index: int | None = None
    clean_win: bool = False


@dataclass(frozen=True, slots=True)
class AwaitingDraw:
    """The current player must draw from the deck or the discard pile."""

    kind: ClassVar[TurnPhase] = TurnPhase.AWAITING_DRAW


@dataclass(frozen=True, slots=True)
class AwaitingMeldOrDiscard:
    """The player has drawn and has not yet made a play that frees the discard.

    ``forced_card`` is set while a card taken from the discard pile still has
    to be used on the table.
    """

    kind: ClassVar[TurnPhase] = TurnPhase.AWAITING_MELD_OR_DISCARD

    drawn_card: Card
    from_discard: bool
    started_unopened: bool
    forced_card: Card | None = None
    table_plays: int = 0


@dataclass(frozen=True, slots=True)
class AwaitingDiscard:
    """The player has played to the table and is free to discard."""

    kind: ClassVar[TurnPhase] = TurnPhase.AWAITING_DISCARD

    drawn_card: Card
    from_discard: bool
    started_unopened: bool
    table_plays: int = 1


@dataclass(frozen=True, slots=True)
class RoundOver:
    kind: ClassVar[TurnPhase] = TurnPhase.ROUND_OVER

    outcome: RoundOutcome


Phase = Union[AwaitingDraw, AwaitingMeldOrDiscard, AwaitingDiscard, RoundOver]
DrawnPhase = Union[AwaitingMeldOrDiscard, AwaitingDiscard]


@dataclass(slots=True)
class PlayerState:
    """State tracked for each seated player."""

    player_id: str
    name: str
    is_computer: bool = False
    hand: List[Card] = field(default_factory=list)
    score: int = 0
    has_laid_initial: bool = False

    def copy(self) -> "PlayerState":
        return PlayerState(
            player_id=self.player_id,
            name=self.name,
            is_computer=self.is_computer,
            hand=list(self.hand),
            score=self.score,
            has_laid_initial=self.has_laid_initial,
        )

    def find_card(self, card_id: str) -> Card | None:
        for card in self.hand:
            if card.id == card_id:
                return card
        return None


@dataclass(slots=True)
class MeldOnTable:
    """A meld that is visible on the table."""

    meld_id: str
    kind: MeldKind
    cards: List[Card]
    owner: int

    @property
    def points(self) -> int:
        return meld_points(self.cards, self.kind)

    @property
    def has_joker(self) -> bool:
        return any(card.is_joker for card in self.cards)

    def copy(self) -> "MeldOnTable":
        return MeldOnTable(meld_id=self.meld_id, kind=self.kind, cards=list(self.cards), owner=self.owner)


@dataclass(slots=True)
class RoundState:
    """Mutable state of one round, owned by a single writer."""

    config: RamiConfig
    players: List[PlayerState]
    draw_pile: List[Card] = field(default_factory=list)
    discard_pile: List[Card] = field(default_factory=list)
    melds: List[MeldOnTable] = field(default_factory=list)
    current_player_index: int = 0
    round_number: int = 1
    turn_index: int = 0
    version: int = 0
    phase: Phase = field(default_factory=AwaitingDraw)
    next_meld_serial: int = 1

    def clone_shallow(self) -> "RoundState":
        """Create a copy safe to mutate without touching this state."""

        return RoundState(
            config=self.config,
            players=[player.copy() for player in self.players],
            draw_pile=list(self.draw_pile),
            discard_pile=list(self.discard_pile),
            melds=[meld.copy() for meld in self.melds],
            current_player_index=self.current_player_index,
            round_number=self.round_number,
            turn_index=self.turn_index,
            version=self.version,
            phase=self.phase,
            next_meld_serial=self.next_meld_serial,
        )

    @property
    def current_player(self) -> PlayerState:
        return self.players[self.current_player_index]

    @property
    def is_over(self) -> bool:
        return isinstance(self.phase, RoundOver)

    @property
    def forced_card(self) -> Card | None:
        if isinstance(self.phase, AwaitingMeldOrDiscard):
            return self.phase.forced_card
        return None

    def player_index(self, player_id: str) -> int:
        for idx, player in enumerate(self.players):
            if player.player_id == player_id:
                return idx
        raise KeyError(player_id)

    def find_meld(self, meld_id: str) -> MeldOnTable | None:
        for meld in self.melds:
            if meld.meld_id == meld_id:
                return meld
        return None

    def all_cards(self) -> list[Card]:
        """Return every card the round knows about, in no particular order."""

        cards = list(self.draw_pile) + list(self.discard_pile)
        for player in self.players:
            cards.extend(player.hand)
        for meld in self.melds:
            cards.extend(meld.cards)
        return cards


def first_player_for_round(config: RamiConfig, num_players: int, round_number: int) -> int:
    if not config.rotate_first_player or num_players == 0:
        return 0
    return (round_number - 1) % num_players


def deal_new_round(
    config: RamiConfig,
    players: Sequence[PlayerState],
    deck_cards: Sequence[Card],
    *,
    round_number: int = 1,
) -> RoundState:
    """Deal a fresh round returning an initialised ``RoundState``.

    ``deck_cards`` is consumed from the end (the top of the deck). Hands are
    dealt one card at a time in seating order, then one card seeds the
    discard pile. Cumulative scores carry over from ``players``.
    """

    num_players = len(players)
    if not config.min_players <= num_players <= config.max_players:
        raise ValueError(
            f"Tunisian Rami needs {config.min_players}-{config.max_players} players, got {num_players}"
        )
    draw_pile = list(deck_cards)
    if len(draw_pile) < config.hand_size * num_players + 1:
        raise ValueError("insufficient cards in deck for requested hand size")

    seated = [
        PlayerState(
            player_id=player.player_id,
            name=player.name,
            is_computer=player.is_computer,
            score=player.score,
        )
        for player in players
    ]
    for _ in range(config.hand_size):
        for player in seated:
            player.hand.append(draw_pile.pop())
    discard_pile = [draw_pile.pop()]

    return RoundState(
        config=config,
        players=seated,
        draw_pile=draw_pile,
        discard_pile=discard_pile,
        current_player_index=first_player_for_round(config, num_players, round_number),
        round_number=round_number,
    )
