"""Typer entry-point wiring for the Tunisian Rami CLI."""

from __future__ import annotations

import logging
import random
from typing import Callable, Sequence

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.prompt import Prompt

from ..actions import Action, DiscardAction, DrawAction, DrawSource, ExtendAction, ForfeitAction, MeldAction
from ..game import RamiGame, Seat
from ..rules import RuleViolation
from ..simulate import DEFAULT_ROUND_LIMIT, DEFAULT_TURN_LIMIT, play_turn, run_simulation, submit_action
from ..snapshot import CardView
from ..state import AwaitingDraw, EndReason
from .render import RULES_TEXT, render_match_summary, render_round_summary, render_simulation, render_snapshot

app = typer.Typer(add_completion=False, rich_markup_mode="rich")
console = Console()

COMMAND_HELP = """\
[bold]d[/bold] draw from the deck      [bold]t[/bold] take the discard top
[bold]m 1 2 3[/bold] lay a meld (separate several melds with [bold]|[/bold])
[bold]e M1 4[/bold] add card 4 to meld M1   [bold]x 5[/bold] discard card 5
[bold]f[/bold] forfeit a stuck turn     [bold]q[/bold] quit
Cards are referred to by their number in your hand, their face (7H) or id (7H#1)."""


@app.callback()
def configure(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log engine decisions at DEBUG level."),
) -> None:
    """Tunisian Rami in the terminal."""

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def resolve_card(token: str, hand: Sequence[CardView]) -> str:
    """Return the id of the hand card named by ``token``."""

    if token.isdigit():
        position = int(token)
        if not 1 <= position <= len(hand):
            raise ValueError(f"there is no card number {position} in your hand")
        return hand[position - 1].id
    wanted = token.upper()
    for card in hand:
        if card.id.upper() == wanted:
            return card.id
    for card in hand:
        if card.label.upper() == wanted:
            return card.id
    raise ValueError(f"'{token}' is not in your hand")


def parse_command(text: str, hand: Sequence[CardView]) -> Action:
    """Translate a typed command into an intent."""

    tokens = text.replace("|", " | ").split()
    if not tokens:
        raise ValueError("type a command")
    verb, args = tokens[0].lower(), tokens[1:]

    if verb in ("d", "deck"):
        return DrawAction(source=DrawSource.DECK)
    if verb in ("t", "take"):
        return DrawAction(source=DrawSource.DISCARD)
    if verb in ("f", "forfeit"):
        return ForfeitAction()
    if verb in ("x", "discard"):
        if len(args) != 1:
            raise ValueError("discard exactly one card")
        return DiscardAction(card_id=resolve_card(args[0], hand))
    if verb in ("e", "extend"):
        if len(args) != 2:
            raise ValueError("extend needs a meld id and one card")
        return ExtendAction(meld_id=args[0].upper(), card_id=resolve_card(args[1], hand))
    if verb in ("m", "meld"):
        groups: list[list[str]] = [[]]
        for token in args:
            if token == "|":
                groups.append([])
            else:
                groups[-1].append(resolve_card(token, hand))
        if any(not group for group in groups):
            raise ValueError("every meld needs cards")
        return MeldAction(groups=tuple(tuple(group) for group in groups))
    raise ValueError(f"unknown command '{verb}'")


def describe_action(action: Action) -> str:
    if isinstance(action, DrawAction):
        return "drew from the deck" if action.source is DrawSource.DECK else "took the discard"
    if isinstance(action, MeldAction):
        return "laid " + " | ".join(" ".join(card_id.split("#")[0] for card_id in group) for group in action.groups)
    if isinstance(action, ExtendAction):
        return f"added {action.card_id.split('#')[0]} to {action.meld_id}"
    if isinstance(action, DiscardAction):
        return f"discarded {action.card_id.split('#')[0]}"
    return "forfeited the turn"


def run_game(game: RamiGame, rng: random.Random, ask: Callable[[], str]) -> None:
    """Drive ``game`` until it ends, prompting humans through ``ask``."""

    last_seen = None
    while not game.is_over:
        if game.last_round is not last_seen:
            last_seen = game.last_round
            summary = render_round_summary(game.snapshot())
            if summary is not None:
                console.print(summary)

        state = game.state
        if state.round_number > DEFAULT_ROUND_LIMIT:
            console.print("[yellow]Round limit reached, stopping the game.[/yellow]")
            return
        if state.turn_index >= DEFAULT_TURN_LIMIT and isinstance(state.phase, AwaitingDraw):
            game.abandon_round(EndReason.TURN_LIMIT)
            continue

        if game.computer_to_act():
            name = state.current_player.name
            taken = play_turn(game, rng)
            console.print(f"[cyan]{name}[/cyan] " + ", ".join(describe_action(action) for action in taken))
            continue

        player_id = game.current_player_id
        view = game.snapshot(player_id)
        console.print(render_snapshot(view))
        text = ask()
        if text.strip().lower() in ("q", "quit"):
            raise typer.Exit()
        try:
            action = parse_command(text, view.player(player_id).hand or ())
        except ValueError as exc:
            console.print(f"[red]{exc}[/red]")
            console.print(COMMAND_HELP)
            continue
        try:
            submit_action(game, player_id, action)
        except RuleViolation as exc:
            console.print(f"[red]{exc}[/red]")

    summary = render_round_summary(game.snapshot())
    if summary is not None:
        console.print(summary)


@app.command()
def play(
    players: int = typer.Option(2, min=2, max=4, help="Number of seated players."),
    humans: int = typer.Option(1, min=0, help="Human-controlled seats starting from the first."),
    seed: int | None = typer.Option(None, help="Random seed for reproducible games (omit for randomness)."),
) -> None:
    """Play an interactive game against computer players."""

    if humans > players:
        raise typer.BadParameter("Humans cannot exceed the total number of players.")

    rng = random.Random(seed)
    roster = [
        Seat(
            player_id=f"p{idx + 1}",
            name=f"Player {idx + 1}" if idx < humans else f"CPU {idx + 1}",
            is_computer=idx >= humans,
        )
        for idx in range(players)
    ]
    game = RamiGame(roster, rng=random.Random(rng.getrandbits(64)))
    game.start_round()
    if humans:
        console.print(COMMAND_HELP)

    run_game(game, rng, lambda: Prompt.ask("[bold]Your move[/bold]", console=console))

    console.print(render_match_summary(game.history, [seat.name for seat in game.seats]))
    if game.winner_index is not None:
        console.print(f"[bold green]{game.seats[game.winner_index].name} wins the game![/bold green]")


@app.command()
def simulate(
    games: int = typer.Option(10, min=1, help="Number of computer-only games."),
    players: int = typer.Option(4, min=2, max=4, help="Number of seated players."),
    seed: int = typer.Option(123, help="Random seed for the simulation."),
) -> None:
    """Run computer-only games and summarise the results."""

    report = run_simulation(games, players, seed=seed)
    console.print(render_simulation(report))
    console.print(f"[cyan]{report.rounds} round(s) simulated.[/cyan]")
    if report.unfinished:
        console.print(f"[yellow]{report.unfinished} game(s) stopped without a winner.[/yellow]")


@app.command()
def rules() -> None:
    """Print the rules of Tunisian Rami."""

    console.print(Panel(RULES_TEXT, title="Tunisian Rami Rules", border_style="cyan"))


def main() -> None:
    """Entry-point for ``python -m rami.cli``."""

    app()


if __name__ == "__main__":  # pragma: no cover - CLI invocation
    main()
