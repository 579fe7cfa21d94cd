"""Helpers for tracking multi-round Tunisian Rami match results."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Sequence

from .rules import PlayerRoundScore
from .state import EndReason

__all__ = ["RoundSummary", "PlayerMatchTotal", "MatchHistory"]


@dataclass(frozen=True, slots=True)
class RoundSummary:
    """Summary captured after a single round."""

    round_number: int
    reason: EndReason
    winner_index: int | None
    clean_win: bool
    scores: Sequence[PlayerRoundScore]


@dataclass(frozen=True, slots=True)
class PlayerMatchTotal:
    """Aggregate totals accumulated across all recorded rounds."""

    player_index: int
    rounds_won: int
    clean_wins: int
    score: int


@dataclass(slots=True)
class MatchHistory:
    """Mutable tracker that accumulates round summaries for a game.

    Scores are penalties: they only ever grow, and the lowest total wins.
    """

    num_players: int
    rounds: list[RoundSummary] = field(default_factory=list)
    _wins: list[int] = field(init=False, repr=False)
    _clean: list[int] = field(init=False, repr=False)
    _scores: list[int] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        if self.num_players <= 0:
            raise ValueError("num_players must be positive")
        self._wins = [0 for _ in range(self.num_players)]
        self._clean = [0 for _ in range(self.num_players)]
        self._scores = [0 for _ in range(self.num_players)]

    def record(self, summary: RoundSummary) -> None:
        """Record ``summary`` and update cumulative totals."""

        if len(summary.scores) != self.num_players:
            raise ValueError("score count does not match number of players")
        for score in summary.scores:
            if score.player_index < 0 or score.player_index >= self.num_players:
                raise ValueError("player index out of range")
            if score.penalty < 0:
                raise ValueError("round penalties cannot be negative")
        self.rounds.append(summary)
        for score in summary.scores:
            idx = score.player_index
            self._scores[idx] += score.penalty
            if score.won_round:
                self._wins[idx] += 1
                if score.clean_win:
                    self._clean[idx] += 1

    @property
    def scores(self) -> list[int]:
        return list(self._scores)

    def totals(self) -> list[PlayerMatchTotal]:
        """Return the cumulative totals for each player in seating order."""

        return [
            PlayerMatchTotal(
                player_index=idx,
                rounds_won=self._wins[idx],
                clean_wins=self._clean[idx],
                score=self._scores[idx],
            )
            for idx in range(self.num_players)
        ]

    def decide(self, threshold: int) -> int | None:
        """Return the overall winner, or ``None`` while the game continues.

        The game ends once any score reaches ``threshold`` and exactly one
        player holds the lowest score.
        """

        if max(self._scores) < threshold:
            return None
        lowest = min(self._scores)
        leaders = [idx for idx, score in enumerate(self._scores) if score == lowest]
        if len(leaders) != 1:
            return None
        return leaders[0]
