"""Round and game controller: the single writer of a Tunisian Rami game."""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from typing import Callable, Sequence

from . import rules
from .actions import DrawSource
from .cards import build_deck
from .rules import IllegalAction, InvariantViolation
from .scoreboard import MatchHistory, RoundSummary
from .snapshot import GameSnapshot, snapshot as build_snapshot
from .state import DEFAULT_CONFIG, EndReason, PlayerState, RamiConfig, RoundOver, RoundState, deal_new_round

logger = logging.getLogger(__name__)

__all__ = ["Seat", "RamiGame", "deal_round"]


@dataclass(frozen=True, slots=True)
class Seat:
    """A participant as registered when the game is created."""

    player_id: str
    name: str
    is_computer: bool = False


def deal_round(
    config: RamiConfig,
    players: Sequence[PlayerState],
    rng: random.Random | None = None,
    round_number: int = 1,
) -> RoundState:
    """Shuffle a fresh 108-card deck and deal a round."""

    return deal_new_round(config, players, build_deck(rng), round_number=round_number)


class RamiGame:
    """Facade that owns the round state, the scores and the game lifecycle.

    Every intent is tried on a clone of the round and only committed when the
    rules accept it, so a rejected intent never leaves partial changes.
    """

    def __init__(
        self,
        roster: Sequence[Seat],
        config: RamiConfig | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self.config = config or DEFAULT_CONFIG
        if not self.config.min_players <= len(roster) <= self.config.max_players:
            raise ValueError(
                f"Tunisian Rami needs {self.config.min_players}-{self.config.max_players} players, "
                f"got {len(roster)}"
            )
        ids = [seat.player_id for seat in roster]
        if len(set(ids)) != len(ids):
            raise ValueError("player ids must be unique")
        self.seats: tuple[Seat, ...] = tuple(roster)
        self.rng = rng or random.Random()
        self.history = MatchHistory(num_players=len(roster))
        self.round: RoundState | None = None
        self.last_round: RoundSummary | None = None
        self.winner_index: int | None = None

    # Lifecycle ---------------------------------------------------------

    def start_round(self) -> GameSnapshot:
        """Deal the first round. Later rounds are dealt automatically."""

        if self.round is not None:
            raise IllegalAction("the game has already started")
        players = [
            PlayerState(player_id=seat.player_id, name=seat.name, is_computer=seat.is_computer)
            for seat in self.seats
        ]
        self.round = deal_round(self.config, players, self.rng, round_number=1)
        logger.info(
            "Round 1 dealt to %s; %s starts",
            ", ".join(seat.name for seat in self.seats),
            self.round.current_player.name,
        )
        return self.snapshot()

    @property
    def is_over(self) -> bool:
        return self.winner_index is not None

    @property
    def winner_id(self) -> str | None:
        if self.winner_index is None:
            return None
        return self.seats[self.winner_index].player_id

    @property
    def state(self) -> RoundState:
        return self._require_round()

    @property
    def version(self) -> int:
        return self._require_round().version

    @property
    def current_player_id(self) -> str:
        state = self._require_round()
        return state.current_player.player_id

    def computer_to_act(self) -> bool:
        """Return ``True`` when a computer player should take the next action."""

        if self.round is None or self.is_over:
            return False
        return self.round.current_player.is_computer

    def player_index(self, player_id: str) -> int:
        for idx, seat in enumerate(self.seats):
            if seat.player_id == player_id:
                return idx
        raise IllegalAction(f"unknown player {player_id}")

    # Intents -----------------------------------------------------------

    def draw(self, player_id: str, source: DrawSource | str, *, expected_version: int | None = None) -> GameSnapshot:
        try:
            source = DrawSource(source)
        except ValueError:
            raise IllegalAction(f"unknown draw source {source!r}") from None
        if source is DrawSource.DISCARD:
            return self._apply(player_id, expected_version, "draw_discard", rules.draw_from_discard)
        return self._apply(
            player_id,
            expected_version,
            "draw_deck",
            lambda state, idx: rules.draw_from_deck(state, idx, self.rng),
        )

    def propose_meld(
        self,
        player_id: str,
        card_ids: Sequence[str],
        *,
        expected_version: int | None = None,
    ) -> GameSnapshot:
        return self._apply(
            player_id,
            expected_version,
            "meld",
            lambda state, idx: rules.propose_meld(state, idx, card_ids),
        )

    def propose_melds(
        self,
        player_id: str,
        groups: Sequence[Sequence[str]],
        *,
        expected_version: int | None = None,
    ) -> GameSnapshot:
        return self._apply(
            player_id,
            expected_version,
            "melds",
            lambda state, idx: rules.propose_melds(state, idx, groups),
        )

    def extend_meld(
        self,
        player_id: str,
        meld_id: str,
        card_id: str,
        *,
        expected_version: int | None = None,
    ) -> GameSnapshot:
        return self._apply(
            player_id,
            expected_version,
            "extend",
            lambda state, idx: rules.extend_meld(state, idx, meld_id, card_id),
        )

    def discard(self, player_id: str, card_id: str, *, expected_version: int | None = None) -> GameSnapshot:
        return self._apply(
            player_id,
            expected_version,
            "discard",
            lambda state, idx: rules.discard_card(state, idx, card_id),
        )

    def forfeit_turn(self, player_id: str, *, expected_version: int | None = None) -> GameSnapshot:
        return self._apply(player_id, expected_version, "forfeit", rules.forfeit_turn)

    def is_stuck(self, player_id: str) -> bool:
        return rules.is_stuck(self._require_round(), self.player_index(player_id))

    def abandon_round(self, reason: EndReason = EndReason.TURN_LIMIT) -> GameSnapshot:
        """End the current round with no winner; every hand is scored."""

        self._require_playing()
        trial = self._require_round().clone_shallow()
        rules.end_round_without_winner(trial, reason)
        self._commit(trial)
        return self.snapshot()

    # Views -------------------------------------------------------------

    def snapshot(self, viewer_id: str | None = None) -> GameSnapshot:
        """Return an immutable view of the game, hiding other players' hands."""

        if viewer_id is not None:
            self.player_index(viewer_id)
        return build_snapshot(self, viewer_id)

    # Helpers -----------------------------------------------------------

    def _require_round(self) -> RoundState:
        if self.round is None:
            raise IllegalAction("the game has not started")
        return self.round

    def _require_playing(self) -> None:
        self._require_round()
        if self.is_over:
            raise IllegalAction("the game is over")

    def _apply(
        self,
        player_id: str,
        expected_version: int | None,
        intent: str,
        transition: Callable[[RoundState, int], object],
    ) -> GameSnapshot:
        self._require_playing()
        state = self._require_round()
        idx = self.player_index(player_id)
        if expected_version is not None and expected_version != state.version:
            raise IllegalAction(
                f"stale intent: expected version {expected_version}, game is at {state.version}"
            )

        trial = state.clone_shallow()
        transition(trial, idx)
        self._commit(trial)
        logger.debug("Accepted %s from %s (version %d)", intent, player_id, trial.version)
        return self.snapshot(player_id)

    def _commit(self, trial: RoundState) -> None:
        if self.config.verify_invariants:
            rules.check_conservation(trial)
        self.round = trial
        if trial.is_over:
            self._close_round(trial)

    def _close_round(self, state: RoundState) -> None:
        phase = state.phase
        if not isinstance(phase, RoundOver):
            raise InvariantViolation("closing a round that is still in play")
        outcome = phase.outcome
        scores = rules.round_scores(state)
        summary = RoundSummary(
            round_number=state.round_number,
            reason=outcome.reason,
            winner_index=outcome.winner_index,
            clean_win=outcome.clean_win,
            scores=tuple(scores),
        )
        self.history.record(summary)
        self.last_round = summary
        for player, total in zip(state.players, self.history.scores):
            player.score = total
        logger.info(
            "Round %d scored: %s",
            state.round_number,
            ", ".join(f"{player.name}={player.score}" for player in state.players),
        )

        winner = self.history.decide(self.config.game_over_score)
        if winner is not None:
            self.winner_index = winner
            logger.info("Game over after %d rounds; %s wins", state.round_number, self.seats[winner].name)
            return

        next_round = deal_round(self.config, state.players, self.rng, round_number=state.round_number + 1)
        next_round.version = state.version + 1
        self.round = next_round
        logger.info("Round %d dealt; %s starts", next_round.round_number, next_round.current_player.name)
