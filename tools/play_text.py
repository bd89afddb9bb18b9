"""
Text Play Mode
==============

Play the block merge game in the terminal, or watch the AI play it.

Commands (one per line):
    0..N-1  Drop the current block into that column
    a       Toggle AI mode (the AI then plays every turn)
    p       Pause / resume
    r       Restart
    l       Show the leaderboard
    q       Quit

Usage:
    python -m tools.play_text [--seed SEED] [--watch] [--delay SECONDS]
"""

from __future__ import annotations

import argparse
import sys
import time
from typing import Optional

from blockmerge.core.board import format_board
from blockmerge.core.config_loader import GameConfig, load_config
from blockmerge.core.game import DropResult, GameSession
from blockmerge.core.merge_system import MergeStep
from blockmerge.core.persistence import (
    LeaderboardStore,
    PersistenceError,
    default_high_score_store,
    default_leaderboard_store,
)


class TextPlayer:
    """
    Terminal front end for a GameSession.

    Prints every merge step the session reports, then the resolved board.
    """

    def __init__(
        self,
        config: Optional[GameConfig] = None,
        seed: Optional[int] = None,
        player_name: Optional[str] = None,
        show_steps: bool = True,
        delay: float = 0.0,
        leaderboard: Optional[LeaderboardStore] = None
    ):
        if config is None:
            config = load_config()

        self._config = config
        self._player_name = player_name
        self._show_steps = show_steps
        self._delay = delay
        self._leaderboard = leaderboard if leaderboard is not None else default_leaderboard_store(
            config.persistence.leaderboard_path
        )

        self._game = GameSession(
            config=config,
            seed=seed,
            high_score_store=default_high_score_store(config.persistence.high_score_path),
            leaderboard=self._leaderboard,
            step_callback=self._on_step
        )
        self._running = True

    @property
    def game(self) -> GameSession:
        return self._game

    def _on_step(self, step: MergeStep) -> None:
        if not self._show_steps:
            return
        event = step.event
        print(f"  {event.kind.value}: {event.value} -> {event.new_value} at {event.target}")
        if self._delay > 0:
            time.sleep(self._delay)

    def _print_state(self) -> None:
        snap = self._game.snapshot()
        flags = []
        if snap.ai_enabled:
            flags.append("AI")
        if snap.paused:
            flags.append("PAUSED")
        if snap.is_over:
            flags.append("GAME OVER")
        print()
        print(f"Score: {snap.score}  High: {snap.high_score}  "
              f"Current: {snap.current_value}  Next: {snap.next_value}  "
              f"{' '.join(flags)}")
        print(format_board(snap.board))

    def _print_leaderboard(self) -> None:
        try:
            entries = self._leaderboard.top(self._config.persistence.leaderboard_size)
        except PersistenceError as e:
            print(f"[ERROR] Could not read leaderboard: {e}")
            return
        print("=== Leaderboard ===")
        for i, entry in enumerate(entries, 1):
            tag = " (AI)" if entry.is_ai else ""
            print(f"{i:>2}. {entry.name:<16} {entry.score:>8}{tag}")

    def _report(self, result: DropResult) -> None:
        if not result.accepted:
            print(f"Column {result.column} rejected: {result.status.value}")
            return
        if result.delta_score > 0:
            print(f"  +{result.delta_score} (Total: {self._game.score})")
        self._print_state()
        if result.terminated:
            print(f"\nGAME OVER - Score: {self._game.score}")
            if self._game.submit_score(self._player_name):
                print("Score saved to the leaderboard.")

    def _handle_command(self, line: str) -> None:
        cmd = line.strip().lower()
        if not cmd:
            return
        if cmd == "q":
            self._running = False
        elif cmd == "r":
            self._game.restart()
            print("\n=== Game Restarted ===")
            self._print_state()
        elif cmd == "p":
            print("Paused" if self._game.toggle_pause() else "Resumed")
        elif cmd == "a":
            print("AI on" if self._game.toggle_ai() else "AI off")
        elif cmd == "l":
            self._print_leaderboard()
        elif cmd.isdigit():
            col = int(cmd)
            if col >= self._config.cols:
                print(f"Column must be in 0..{self._config.cols - 1}")
                return
            self._report(self._game.drop_column(col))
        else:
            print(f"Unknown command: {cmd}")

    def run_ai(self) -> int:
        """Let the AI play until the game ends. Returns final score."""
        self._game.toggle_ai()
        self._print_state()
        while not self._game.is_over:
            result = self._game.ai_step()
            if result is None:
                break
            self._report(result)
            if self._delay > 0:
                time.sleep(self._delay)
        return self._game.score

    def run(self) -> int:
        """Run the input loop. Returns final score."""
        print("=== Block Merge ===")
        print(f"Type a column (0-{self._config.cols - 1}), a=AI, p=pause, r=restart, l=leaderboard, q=quit")
        self._print_state()

        while self._running:
            if self._game.ai_enabled and not self._game.paused and not self._game.is_over:
                result = self._game.ai_step()
                if result is not None:
                    self._report(result)
                    if self._delay > 0:
                        time.sleep(self._delay)
                    continue

            try:
                line = input("> ")
            except EOFError:
                break
            self._handle_command(line)

        return self._game.score


def main():
    parser = argparse.ArgumentParser(description="Play block merge in the terminal")
    parser.add_argument("--seed", type=int, default=None, help="Random seed")
    parser.add_argument("--name", type=str, default=None, help="Name for the leaderboard")
    parser.add_argument("--config", type=str, default=None, help="Path to game_config.yaml")
    parser.add_argument("--watch", action="store_true", help="Let the AI play a full game")
    parser.add_argument("--delay", type=float, default=0.0, help="Seconds to wait between steps")
    parser.add_argument("--quiet-steps", action="store_true", help="Do not print merge steps")

    args = parser.parse_args()

    player = TextPlayer(
        config=load_config(args.config),
        seed=args.seed,
        player_name=args.name,
        show_steps=not args.quiet_steps,
        delay=args.delay
    )
    score = player.run_ai() if args.watch else player.run()
    print(f"\nFinal Score: {score}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
