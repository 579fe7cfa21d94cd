"""Composable view primitives for the Tunisian Rami CLI."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Sequence

from rich import box
from rich.console import Group, RenderableType
from rich.panel import Panel
from rich.table import Table

from ..snapshot import CardView, GameSnapshot, PlayerView


@dataclass(slots=True)
class SnapshotView:
    """Renderable summarising one viewer's snapshot of the table."""

    snapshot: GameSnapshot
    card_formatter: Callable[[CardView], str]

    def _cards_markup(self, cards: Sequence[CardView], *, numbered: bool = False) -> str:
        if not cards:
            return "—"
        if numbered:
            return " ".join(f"[dim]{idx}:[/dim]{self.card_formatter(card)}" for idx, card in enumerate(cards, start=1))
        return " ".join(self.card_formatter(card) for card in cards)

    def _hand_markup(self, player: PlayerView) -> str:
        if player.hand is None:
            return f"{player.hand_count} cards"
        return self._cards_markup(player.hand, numbered=True)

    def _metadata_panel(self) -> Panel:
        view = self.snapshot
        grid = Table.grid(expand=True)
        grid.add_column(justify="left")
        grid.add_row(f"[cyan]Round[/cyan]: {view.round_number}  [cyan]Turn[/cyan]: {view.turn_index}")
        grid.add_row(f"[cyan]Deck[/cyan]: {view.deck_count} card(s)")
        top = view.discard_top
        if top is not None:
            grid.add_row(f"[cyan]Discard[/cyan]: {self.card_formatter(top)} ({len(view.discard_pile)} card(s))")
        else:
            grid.add_row("[cyan]Discard[/cyan]: —")
        if view.forced_card is not None:
            grid.add_row(f"[yellow]Must use[/yellow]: {self.card_formatter(view.forced_card)}")
        grid.add_row(f"[cyan]Phase[/cyan]: {view.phase.value.replace('_', ' ')}")
        return Panel(grid, title="Table State", box=box.SQUARE, border_style="blue")

    def render(self) -> RenderableType:
        view = self.snapshot
        table = Table(box=box.ROUNDED, expand=True)
        table.add_column("Player", justify="left", style="bold")
        table.add_column("Hand", justify="left")
        table.add_column("Status", justify="left")
        table.add_column("Score", justify="right")

        for player in view.players:
            name = player.name
            if player.player_id == view.current_player_id:
                name = f"[bold yellow]{name}[/bold yellow]"
            status = "Opened" if player.has_laid_initial else "—"
            if player.player_id == view.winner_id:
                status = "[bold green]Winner[/bold green]"
            table.add_row(name, self._hand_markup(player), status, str(player.score))

        components: list[RenderableType] = [table, self._metadata_panel()]

        if view.melds:
            names = {player.player_id: player.name for player in view.players}
            meld_table = Table(box=box.MINIMAL, expand=True)
            meld_table.add_column("Meld", justify="left", style="bold")
            meld_table.add_column("Owner", justify="left")
            meld_table.add_column("Kind", justify="left")
            meld_table.add_column("Cards", justify="left")
            meld_table.add_column("Points", justify="right")
            for meld in view.melds:
                meld_table.add_row(
                    meld.meld_id,
                    names.get(meld.owner_id, meld.owner_id),
                    meld.kind.title(),
                    self._cards_markup(meld.cards),
                    str(meld.points),
                )
            components.append(Panel(meld_table, title="Table Melds", box=box.SQUARE, border_style="green"))

        return Group(*components)
