"""Rendering helpers dedicated to the CLI experience."""

from __future__ import annotations

from typing import Sequence

from rich import box
from rich.console import RenderableType
from rich.panel import Panel
from rich.table import Table

from ..scoreboard import MatchHistory
from ..simulate import SimulationReport
from ..snapshot import CardView, GameSnapshot
from .views import SnapshotView

_SUIT_SYMBOLS = {
    "S": ("♠", "cyan"),
    "H": ("♥", "red"),
    "D": ("♦", "magenta"),
    "C": ("♣", "green"),
}

RULES_TEXT = """\
[bold]Objective[/bold]
  Be the first player to get rid of all your cards by forming valid combinations.

[bold]Players & Deck[/bold]
  2 to 4 players, 108 cards: two full 52-card decks and 4 jokers.

[bold]Card Values[/bold]
  Ace 1 point, 2-10 face value, J/Q/K 10 points.
  A joker is worth the card it replaces in a meld. Left in a hand it counts
  as the first other card in that hand (1 point if there is none).

[bold]Valid Combinations[/bold]
  Sets: 3 or 4 cards of the same rank in different suits (7♥ 7♠ 7♣).
  Runs: 3 or more consecutive cards of one suit (4♥ 5♥ 6♥). Aces are low.
  At most one joker per meld.

[bold]Gameplay[/bold]
  Each player is dealt 14 cards. On your turn:
  - draw from the deck or take the top of the discard pile;
  - a card taken from the discard pile must be used in a meld this turn;
  - optionally lay down melds, and add cards to melds on the table
    (other players' melds only after your own first meld);
  - discard one card to end your turn.
  If the card you took cannot be used at all you may forfeit the turn:
  the card goes back on the discard pile and play passes on.

[bold]First Meld Requirement[/bold]
  Your first meld(s) of a round must be worth at least 51 points together.

[bold]"Rami Ndhif" (Clean Win)[/bold]
  Lay down all your cards in a single turn with no earlier melds that round
  and your opponents' points are doubled.

[bold]Winning[/bold]
  Emptying your hand wins the round; everybody else adds the points left in
  their hand. When the deck runs out for good everybody adds their own hand.
  Once a player reaches 100 points the player with the lowest score wins.
"""


def format_card(card: CardView) -> str:
    """Return a Rich-rendered label for ``card``."""

    if card.is_joker:
        return "[bold magenta]🃏[/bold magenta]"
    symbol, color = _SUIT_SYMBOLS.get(card.suit or "", (card.suit or "?", "white"))
    return f"[{color}]{card.rank}{symbol}[/{color}]"


def render_snapshot(view: GameSnapshot, *, title: str = "Tunisian Rami") -> RenderableType:
    """Return a Rich panel describing the table as seen in ``view``."""

    summary = SnapshotView(snapshot=view, card_formatter=format_card)
    return Panel(summary.render(), title=title, padding=(0, 1), border_style="cyan")


def render_round_summary(view: GameSnapshot) -> Table | None:
    """Return a table describing the last finished round, if any."""

    result = view.last_round
    if result is None:
        return None
    table = Table(title=f"Round {result.round_number} Summary", box=box.SIMPLE_HEAVY)
    table.add_column("Player", justify="center")
    table.add_column("Result", justify="center")
    table.add_column("Penalty", justify="right")
    table.add_column("Total", justify="right")

    for player, penalty in zip(view.players, result.penalties):
        label = player.name
        outcome = "Loss"
        if player.player_id == result.winner_id:
            label = f"[bold green]{label}[/bold green]"
            outcome = "[bold green]Clean win[/bold green]" if result.clean_win else "[bold green]Win[/bold green]"
        elif result.winner_id is None:
            outcome = result.reason.replace("_", " ")
        table.add_row(label, outcome, str(penalty), str(player.score))
    return table


def render_match_summary(history: MatchHistory, names: Sequence[str]) -> Table:
    """Return the aggregated match summary table; lowest score is best."""

    totals = history.totals()
    table = Table(title="Match Summary", box=box.DOUBLE_EDGE)
    table.add_column("Player", justify="center")
    table.add_column("Rounds won", justify="right")
    table.add_column("Clean wins", justify="right")
    table.add_column("Score", justify="right")

    best = min((total.score for total in totals), default=0)
    for total in totals:
        label = names[total.player_index]
        score = str(total.score)
        if total.score == best and history.rounds:
            label = f"[bold blue]{label}[/bold blue]"
            score = f"[bold blue]{score}[/bold blue]"
        table.add_row(label, str(total.rounds_won), str(total.clean_wins), score)
    return table


def render_simulation(report: SimulationReport) -> Table:
    table = Table(title="Simulation", box=box.SIMPLE_HEAVY)
    table.add_column("Seat", justify="center")
    table.add_column("Games won", justify="right")
    table.add_column("Rounds won", justify="right")
    table.add_column("Clean wins", justify="right")
    table.add_column("Avg score", justify="right")
    for idx, seat in enumerate(report.seats):
        table.add_row(
            f"CPU {idx + 1}",
            str(seat.games_won),
            str(seat.rounds_won),
            str(seat.clean_wins),
            f"{seat.average_score:.1f}",
        )
    return table
