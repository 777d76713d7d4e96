#!/usr/bin/env python
"""Simulate a complete Werewolf table locally.

A GameHost serves stub bots over the in-memory transport while a director
plays the host's role of advancing phases.

Usage:
    werewolf-table                         # 6 players, default roles
    werewolf-table --players 8 --seed 42   # 8-player preset, reproducible
    werewolf-table --config table.yaml     # roles from a YAML preset
    werewolf-table --fast                  # shorten every timer
"""

import argparse
import asyncio
import logging
import random
from typing import Optional

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from werewolf_table.ai.stub_ai import StubClient, StubPlayer
from werewolf_table.engine.game_state import GameState
from werewolf_table.engine.host import GameHost
from werewolf_table.models.config import (
    DEFAULT_6_PLAYER_CONFIG,
    DEFAULT_8_PLAYER_CONFIG,
    GameConfig,
    HostSettings,
    get_settings,
    load_config,
)
from werewolf_table.models.phase import NightStep, Phase
from werewolf_table.narrative.llm import LLMNarrator
from werewolf_table.narrative.narrator import FallbackNarrator, Narrator
from werewolf_table.protocol.session import HostSession
from werewolf_table.protocol.transport import LoopbackNetwork

ROOM_ID = "host-peer"
PLAYER_NAMES = [
    "Ada", "Bram", "Cleo", "Dmitri", "Esme",
    "Finn", "Greta", "Hugo", "Iris", "Jonas",
]

# Ticks to wait before the director confirms a night step itself.
CONFIRM_AFTER_TICKS = 3


class TableDirector:
    """Plays the host's part: advances phases once the table is ready."""

    def __init__(self, host: GameHost, console: Console):
        self.host = host
        self.console = console
        self.finished = asyncio.Event()
        self._last_story = ""
        self._issued: set[tuple] = set()

    def on_state(self, state: GameState) -> None:
        if state.current_story and state.current_story != self._last_story and not state.is_loading_story:
            self._last_story = state.current_story
            self.console.print(f"[bold magenta]{state.phase.value}[/] [dim]r{state.round}[/] {state.current_story}")
        self._advance(state)

    def _once(self, state: GameState, command) -> None:
        key = (state.round, state.phase, state.night_step, command.__name__)
        if key in self._issued:
            return
        self._issued.add(key)
        command()

    def _advance(self, state: GameState) -> None:
        host = self.host
        if state.phase == Phase.GAME_OVER:
            self.finished.set()
        elif state.phase == Phase.ROLE_REVEAL:
            self._once(state, host.begin_night)
        elif state.phase == Phase.NIGHT and state.night_step != NightStep.HUNTER_ACTION:
            elapsed = host.settings.action_seconds - state.countdown
            if state.night_step != NightStep.NONE and elapsed >= CONFIRM_AFTER_TICKS:
                self._once(state, host.confirm_step)
        elif state.phase == Phase.NIGHT and state.hunter_target_id is not None:
            self._once(state, host.confirm_step)
        elif state.phase == Phase.DAY_TRANSITION and not state.is_loading_story:
            self._once(state, host.begin_discussion)
        elif state.phase == Phase.DAY_DISCUSSION and not state.is_loading_story:
            self._once(state, host.begin_voting)
        elif state.phase == Phase.VOTING and not state.voting_closed:
            if set(state.current_votes) >= set(state.living_seats()):
                self._once(state, host.close_voting)
            else:
                self._once(state, self._close_voting_later)

    def _close_voting_later(self) -> None:
        """Close the ballot after a grace period even if someone abstains."""
        round_ = self.host.state.round

        def close() -> None:
            state = self.host.state
            if state.round == round_ and state.phase == Phase.VOTING:
                self.host.close_voting()

        grace = self.host.settings.tick_seconds * self.host.settings.action_seconds
        asyncio.get_running_loop().call_later(grace, close)


def print_summary(console: Console, state: GameState) -> None:
    """Print the final roster and story log."""
    table = Table(title=f"Winner: {state.winner.value if state.winner else 'none'}")
    table.add_column("Seat", justify="right")
    table.add_column("Name")
    table.add_column("Role")
    table.add_column("Alive")
    for p in state.players:
        table.add_row(
            str(p.seat),
            p.name,
            p.role.value if p.role else "?",
            "yes" if p.is_alive else "[red]no[/]",
        )
    console.print(table)
    console.print(Panel("\n".join(state.story_log), title="Story log"))


def build_narrator(settings: HostSettings) -> Narrator:
    if settings.llm_api_url:
        return LLMNarrator(settings.llm_api_url, settings.llm_api_key, settings.llm_model)
    return FallbackNarrator()


async def run_table(
    config: GameConfig,
    settings: HostSettings,
    seed: int,
    console: Optional[Console] = None,
) -> GameState:
    """Play one full game with bots and return the final snapshot."""
    console = console or Console()
    rng = random.Random(seed)
    network = LoopbackNetwork()
    host = GameHost(
        config,
        PLAYER_NAMES[0],
        room_id=ROOM_ID,
        settings=settings,
        narrator=build_narrator(settings),
        rng=rng,
    )
    session = HostSession(host)
    network.listen(ROOM_ID, session.accept)

    director = TableDirector(host, console)
    host_bot = StubPlayer(host.host_seat, seed=seed)

    def host_player(state: GameState) -> None:
        for action in host_bot.decide(state):
            host.submit(host.host_seat, action)

    host.subscribe(director.on_state)
    host.subscribe(host_player)

    clients: list[asyncio.Task] = []
    async with host:
        for seat in range(1, config.total_players):
            peer_id = f"peer-{seat}"
            connection = await network.connect(ROOM_ID, peer_id)
            bot = StubClient(connection, seed=seed + seat)
            clients.append(asyncio.create_task(bot.play(PLAYER_NAMES[seat], peer_id)))
        await director.finished.wait()
        await session.close()
        await asyncio.gather(*clients, return_exceptions=True)
        return host.state


def main() -> int:
    parser = argparse.ArgumentParser(description="Simulate a Werewolf table with stub bots")
    parser.add_argument(
        "--players",
        type=int,
        choices=[6, 8],
        default=6,
        help="Use the built-in 6 or 8 player preset (default: 6)"
    )
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="YAML file with total_players and role_counts (overrides --players)"
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Random seed for reproducible games"
    )
    parser.add_argument(
        "--fast",
        action="store_true",
        help="Shrink every timer so a game finishes in seconds"
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Show engine debug logging"
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.seed is None:
        args.seed = random.randint(1, 1000000)

    if args.config:
        config = load_config(args.config)
    elif args.players == 8:
        config = DEFAULT_8_PLAYER_CONFIG
    else:
        config = DEFAULT_6_PLAYER_CONFIG

    settings = get_settings()
    if args.fast:
        settings = settings.model_copy(update={
            "tick_seconds": 0.05,
            "resolution_delay_seconds": 0.1,
        })

    console = Console()
    console.print(f"[bold]Seed:[/] {args.seed}  [bold]Players:[/] {config.total_players}")
    final = asyncio.run(run_table(config, settings, args.seed, console))
    print_summary(console, final)
    return 0


if __name__ == "__main__":
    exit(main())
