"""Tests for the game controller lifecycle."""

from __future__ import annotations

import random
from typing import Callable

import pytest

from rami import rules
from rami.game import RamiGame, Seat
from rami.rules import IllegalAction, InvariantViolation
from rami.state import RamiConfig, RoundState, TurnPhase

MakeRound = Callable[..., RoundState]


def _game(num_players: int = 2, *, seed: int = 11, config: RamiConfig | None = None) -> RamiGame:
    roster = [Seat(player_id=f"p{idx}", name=f"P{idx}", is_computer=idx > 0) for idx in range(num_players)]
    return RamiGame(roster, config=config, rng=random.Random(seed))


def test_start_round_deals_fourteen_cards_each() -> None:
    game = _game(3)
    view = game.start_round()

    assert view.round_number == 1
    assert view.phase is TurnPhase.AWAITING_DRAW
    assert [player.hand_count for player in view.players] == [14, 14, 14]
    assert len(view.discard_pile) == 1
    assert view.deck_count == 108 - 3 * 14 - 1
    assert view.current_player_id == "p0"
    rules.check_conservation(game.state)


@pytest.mark.parametrize(
    "roster",
    [
        [Seat("a", "A")],
        [Seat("a", "A"), Seat("a", "B")],
        [Seat(str(idx), str(idx)) for idx in range(5)],
    ],
)
def test_roster_is_validated(roster: list[Seat]) -> None:
    with pytest.raises(ValueError):
        RamiGame(roster)


def test_intents_require_a_started_game() -> None:
    game = _game()
    with pytest.raises(IllegalAction):
        game.draw("p0", "deck")
    game.start_round()
    with pytest.raises(IllegalAction):
        game.start_round()


def test_rejected_intent_leaves_state_untouched() -> None:
    game = _game()
    game.start_round()
    before = game.state
    version = game.version

    with pytest.raises(IllegalAction):
        game.draw("p1", "deck")
    with pytest.raises(IllegalAction):
        game.draw("ghost", "deck")
    with pytest.raises(IllegalAction):
        game.draw("p0", "sideboard")
    with pytest.raises(IllegalAction):
        game.discard("p0", game.state.players[0].hand[0].id)

    assert game.state is before
    assert game.version == version


def test_stale_intents_are_rejected() -> None:
    game = _game()
    game.start_round()
    version = game.version
    game.draw("p0", "deck", expected_version=version)

    with pytest.raises(IllegalAction):
        game.discard("p0", game.state.players[0].hand[0].id, expected_version=version)
    game.discard("p0", game.state.players[0].hand[0].id, expected_version=version + 1)
    assert game.current_player_id == "p1"


def test_closing_a_live_round_is_an_invariant_violation() -> None:
    game = _game()
    game.start_round()
    with pytest.raises(InvariantViolation):
        game._close_round(game.state)
    assert game.history.rounds == []


def test_computer_to_act_follows_current_seat() -> None:
    game = _game()
    assert not game.computer_to_act()
    game.start_round()
    assert not game.computer_to_act()
    game.draw("p0", "deck")
    game.discard("p0", game.state.players[0].hand[0].id)
    assert game.computer_to_act()


def test_finished_round_is_scored_and_next_round_dealt(make_round: MakeRound) -> None:
    game = _game()
    game.start_round()
    game.round = make_round(["KH KD KS QH QD QS", "3C 4H 8S"], discard="2D", draw_top="5C")

    game.draw("p0", "deck")
    game.propose_melds("p0", [["KH#0", "KD#0", "KS#0"], ["QH#0", "QD#0", "QS#0"]])
    view = game.discard("p0", "5C#0")

    assert game.last_round is not None
    assert game.last_round.clean_win
    assert game.history.scores == [0, 30]
    assert view.round_number == 2
    assert view.current_player_id == "p1"
    assert view.last_round is not None and view.last_round.winner_id == "p0"
    assert [player.score for player in view.players] == [0, 30]
    assert [player.hand_count for player in view.players] == [14, 14]
    assert not game.is_over
    rules.check_conservation(game.state)


def test_game_ends_when_threshold_reached(make_round: MakeRound) -> None:
    game = _game(config=RamiConfig(game_over_score=20))
    game.start_round()
    game.round = make_round(["KH KD KS QH QD QS", "3C 4H 8S"], discard="2D", draw_top="5C")

    game.draw("p0", "deck")
    game.propose_melds("p0", [["KH#0", "KD#0", "KS#0"], ["QH#0", "QD#0", "QS#0"]])
    view = game.discard("p0", "5C#0")

    assert game.is_over
    assert game.winner_id == "p0"
    assert view.game_over and view.winner_id == "p0"
    assert not game.computer_to_act()
    with pytest.raises(IllegalAction):
        game.draw("p0", "deck")


def test_abandon_round_scores_every_hand(make_round: MakeRound) -> None:
    game = _game()
    game.start_round()
    game.round = make_round(["2C 3D", "KH"], discard="9S")

    game.abandon_round()

    assert game.last_round is not None
    assert game.last_round.winner_index is None
    assert game.history.scores == [5, 10]
    assert game.state.round_number == 2


def test_stuck_player_forfeits_through_game(make_round: MakeRound) -> None:
    game = _game()
    game.start_round()
    game.round = make_round(["2C 5H 9S", "3C 4H"], discard="8D KD")

    game.draw("p0", "discard")
    assert game.is_stuck("p0")
    with pytest.raises(rules.ForcedCardUnused):
        game.discard("p0", "2C#0")
    view = game.forfeit_turn("p0")

    assert view.current_player_id == "p1"
    assert view.discard_top is not None and view.discard_top.id == "KD#0"


def test_independent_games_share_nothing() -> None:
    first, second = _game(seed=1), _game(seed=1)
    first.start_round()
    second.start_round()
    first.draw("p0", "deck")
    assert second.state.players[0].hand == first.state.players[0].hand[:-1]
    assert second.version == 0
