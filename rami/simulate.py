"""Computer-only game harness used for testing and balancing the strategy."""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from typing import Final

from . import rules
from .actions import Action, DiscardAction, DrawAction, ExtendAction, ForfeitAction, MeldAction
from .game import RamiGame, Seat
from .state import AwaitingDraw, EndReason, RamiConfig
from .strategy import DEFAULT_STRATEGY, StrategyConfig, choose_discard, choose_draw, plan_table_play

logger = logging.getLogger(__name__)

__all__ = [
    "DEFAULT_TURN_LIMIT",
    "DEFAULT_ROUND_LIMIT",
    "SeatBreakdown",
    "SimulationReport",
    "submit_action",
    "play_turn",
    "play_game",
    "run_simulation",
]

DEFAULT_TURN_LIMIT: Final[int] = 400
DEFAULT_ROUND_LIMIT: Final[int] = 100


@dataclass(frozen=True, slots=True)
class SeatBreakdown:
    """Aggregate statistics collected for one seat across a simulation."""

    games_won: int
    rounds_won: int
    clean_wins: int
    average_score: float


@dataclass(frozen=True, slots=True)
class SimulationReport:
    games: int
    unfinished: int
    rounds: int
    seats: tuple[SeatBreakdown, ...]


def submit_action(game: RamiGame, player_id: str, action: Action) -> None:
    """Feed one strategy intent through the public game interface."""

    if isinstance(action, DrawAction):
        game.draw(player_id, action.source)
    elif isinstance(action, MeldAction):
        game.propose_melds(player_id, action.groups)
    elif isinstance(action, ExtendAction):
        game.extend_meld(player_id, action.meld_id, action.card_id)
    elif isinstance(action, DiscardAction):
        game.discard(player_id, action.card_id)
    elif isinstance(action, ForfeitAction):
        game.forfeit_turn(player_id)
    else:  # pragma: no cover
        raise TypeError(f"Unknown action {action!r}")


def play_turn(
    game: RamiGame,
    rng: random.Random,
    config: StrategyConfig = DEFAULT_STRATEGY,
) -> list[Action]:
    """Play the current player's turn with the greedy strategy.

    Each intent is planned against the live state and submitted before the
    next one is planned. Like :func:`take_turn`, only one table play is
    made unless the discard-pile card still needs placing. Returns the
    intents that were accepted.
    """

    state = game.state
    player_id = state.current_player.player_id
    idx = state.current_player_index
    round_number = state.round_number
    taken: list[Action] = []

    def turn_continues() -> bool:
        return not game.is_over and game.state.round_number == round_number

    if isinstance(state.phase, AwaitingDraw):
        draw = choose_draw(state, idx, rng, config)
        submit_action(game, player_id, draw)
        taken.append(draw)
        if not turn_continues():
            return taken

    plays = 0
    while plays == 0 or game.state.forced_card is not None:
        play = plan_table_play(game.state, idx)
        if play is None:
            break
        submit_action(game, player_id, play)
        taken.append(play)
        plays += 1
        if not turn_continues():
            return taken

    final: Action
    if rules.is_stuck(game.state, idx):
        final = ForfeitAction()
    else:
        final = choose_discard(game.state, idx)
    submit_action(game, player_id, final)
    taken.append(final)
    return taken


def play_game(
    num_players: int = 4,
    *,
    seed: int | None = None,
    config: RamiConfig | None = None,
    strategy: StrategyConfig = DEFAULT_STRATEGY,
    turn_limit: int = DEFAULT_TURN_LIMIT,
    round_limit: int = DEFAULT_ROUND_LIMIT,
) -> RamiGame:
    """Play one computer-only game to completion (or to ``round_limit``)."""

    rng = random.Random(seed)
    roster = [Seat(player_id=f"cpu{idx + 1}", name=f"CPU {idx + 1}", is_computer=True) for idx in range(num_players)]
    game = RamiGame(roster, config=config, rng=random.Random(rng.getrandbits(64)))
    game.start_round()

    while not game.is_over:
        state = game.state
        if state.round_number > round_limit:
            logger.warning("Stopping game after %d rounds without a winner", round_limit)
            break
        if state.turn_index >= turn_limit and isinstance(state.phase, AwaitingDraw):
            logger.debug("Round %d hit the turn limit", state.round_number)
            game.abandon_round(EndReason.TURN_LIMIT)
            continue
        play_turn(game, rng, strategy)
    return game


def run_simulation(
    games: int,
    players: int = 4,
    *,
    seed: int = 123,
    strategy: StrategyConfig = DEFAULT_STRATEGY,
    turn_limit: int = DEFAULT_TURN_LIMIT,
) -> SimulationReport:
    """Run ``games`` computer-only games returning per-seat aggregates."""

    if games <= 0:
        raise ValueError("games must be positive")

    rng = random.Random(seed)
    games_won = [0] * players
    rounds_won = [0] * players
    clean_wins = [0] * players
    score_sums = [0] * players
    unfinished = 0
    rounds = 0

    for _ in range(games):
        game = play_game(players, seed=rng.getrandbits(64), strategy=strategy, turn_limit=turn_limit)
        if game.winner_index is None:
            unfinished += 1
        else:
            games_won[game.winner_index] += 1
        rounds += len(game.history.rounds)
        for total in game.history.totals():
            rounds_won[total.player_index] += total.rounds_won
            clean_wins[total.player_index] += total.clean_wins
            score_sums[total.player_index] += total.score

    seats = tuple(
        SeatBreakdown(
            games_won=games_won[idx],
            rounds_won=rounds_won[idx],
            clean_wins=clean_wins[idx],
            average_score=score_sums[idx] / games,
        )
        for idx in range(players)
    )
    return SimulationReport(games=games, unfinished=unfinished, rounds=rounds, seats=seats)
