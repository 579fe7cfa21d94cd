"""Immutable, per-viewer views of a game for front ends and agents."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from .cards import Card
from .state import AwaitingDiscard, AwaitingMeldOrDiscard, TurnPhase

if TYPE_CHECKING:
    from .game import RamiGame

__all__ = ["CardView", "PlayerView", "MeldView", "RoundResultView", "GameSnapshot", "snapshot"]


@dataclass(frozen=True, slots=True)
class CardView:
    id: str
    label: str
    rank: str | None
    suit: str | None
    is_joker: bool

    @classmethod
    def of(cls, card: Card) -> "CardView":
        return cls(
            id=card.id,
            label=card.label(),
            rank=card.rank.value if card.rank is not None else None,
            suit=card.suit.value if card.suit is not None else None,
            is_joker=card.is_joker,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "label": self.label,
            "rank": self.rank,
            "suit": self.suit,
            "is_joker": self.is_joker,
        }


@dataclass(frozen=True, slots=True)
class PlayerView:
    """Public information about a seat, plus the hand when it is the viewer's."""

    player_id: str
    name: str
    is_computer: bool
    score: int
    hand_count: int
    has_laid_initial: bool
    hand: tuple[CardView, ...] | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "player_id": self.player_id,
            "name": self.name,
            "is_computer": self.is_computer,
            "score": self.score,
            "hand_count": self.hand_count,
            "has_laid_initial": self.has_laid_initial,
            "hand": None if self.hand is None else [card.to_dict() for card in self.hand],
        }


@dataclass(frozen=True, slots=True)
class MeldView:
    meld_id: str
    kind: str
    owner_id: str
    cards: tuple[CardView, ...]
    points: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "meld_id": self.meld_id,
            "kind": self.kind,
            "owner_id": self.owner_id,
            "cards": [card.to_dict() for card in self.cards],
            "points": self.points,
        }


@dataclass(frozen=True, slots=True)
class RoundResultView:
    round_number: int
    reason: str
    winner_id: str | None
    clean_win: bool
    penalties: tuple[int, ...]

    def to_dict(self) -> dict[str, Any]:
        return {
            "round_number": self.round_number,
            "reason": self.reason,
            "winner_id": self.winner_id,
            "clean_win": self.clean_win,
            "penalties": list(self.penalties),
        }


@dataclass(frozen=True, slots=True)
class GameSnapshot:
    """Everything a single viewer is allowed to see at one instant."""

    viewer_id: str | None
    round_number: int
    turn_index: int
    version: int
    phase: TurnPhase
    current_player_id: str
    players: tuple[PlayerView, ...]
    deck_count: int
    discard_pile: tuple[CardView, ...]
    melds: tuple[MeldView, ...]
    forced_card: CardView | None
    drawn_card: CardView | None
    last_round: RoundResultView | None
    winner_id: str | None
    game_over: bool

    @property
    def discard_top(self) -> CardView | None:
        return self.discard_pile[-1] if self.discard_pile else None

    def player(self, player_id: str) -> PlayerView:
        for view in self.players:
            if view.player_id == player_id:
                return view
        raise KeyError(player_id)

    def to_dict(self) -> dict[str, Any]:
        """Return JSON-ready primitives."""

        return {
            "viewer_id": self.viewer_id,
            "round_number": self.round_number,
            "turn_index": self.turn_index,
            "version": self.version,
            "phase": self.phase.value,
            "current_player_id": self.current_player_id,
            "players": [player.to_dict() for player in self.players],
            "deck_count": self.deck_count,
            "discard_pile": [card.to_dict() for card in self.discard_pile],
            "melds": [meld.to_dict() for meld in self.melds],
            "forced_card": None if self.forced_card is None else self.forced_card.to_dict(),
            "drawn_card": None if self.drawn_card is None else self.drawn_card.to_dict(),
            "last_round": None if self.last_round is None else self.last_round.to_dict(),
            "winner_id": self.winner_id,
            "game_over": self.game_over,
        }


def snapshot(game: "RamiGame", viewer_id: str | None = None) -> GameSnapshot:
    """Build the view of ``game`` seen by ``viewer_id``; ``None`` hides every hand."""

    state = game.state
    ids = [player.player_id for player in state.players]

    players = tuple(
        PlayerView(
            player_id=player.player_id,
            name=player.name,
            is_computer=player.is_computer,
            score=player.score,
            hand_count=len(player.hand),
            has_laid_initial=player.has_laid_initial,
            hand=tuple(CardView.of(card) for card in player.hand) if player.player_id == viewer_id else None,
        )
        for player in state.players
    )

    drawn: CardView | None = None
    phase = state.phase
    if isinstance(phase, (AwaitingMeldOrDiscard, AwaitingDiscard)):
        if phase.from_discard or state.current_player.player_id == viewer_id:
            drawn = CardView.of(phase.drawn_card)

    last_round: RoundResultView | None = None
    if game.last_round is not None:
        summary = game.last_round
        last_round = RoundResultView(
            round_number=summary.round_number,
            reason=summary.reason.value,
            winner_id=None if summary.winner_index is None else ids[summary.winner_index],
            clean_win=summary.clean_win,
            penalties=tuple(score.penalty for score in summary.scores),
        )

    forced = state.forced_card
    return GameSnapshot(
        viewer_id=viewer_id,
        round_number=state.round_number,
        turn_index=state.turn_index,
        version=state.version,
        phase=phase.kind,
        current_player_id=state.current_player.player_id,
        players=players,
        deck_count=len(state.draw_pile),
        discard_pile=tuple(CardView.of(card) for card in state.discard_pile),
        melds=tuple(
            MeldView(
                meld_id=meld.meld_id,
                kind=meld.kind.value,
                owner_id=ids[meld.owner],
                cards=tuple(CardView.of(card) for card in meld.cards),
                points=meld.points,
            )
            for meld in state.melds
        ),
        forced_card=None if forced is None else CardView.of(forced),
        drawn_card=drawn,
        last_round=last_round,
        winner_id=game.winner_id,
        game_over=game.is_over,
    )
