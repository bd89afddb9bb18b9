"""
Core Game
=========

Turn-level game session combining generation, landing, merging, scoring and
rules.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from blockmerge.core.board import Board, copy_board, create_empty_board, max_value
from blockmerge.core.config_loader import GameConfig, get_config
from blockmerge.core.merge_system import MergeEngine, MergeEvent, MergeStep, ResolveResult
from blockmerge.core.move_evaluator import MoveEvaluator
from blockmerge.core.persistence import (
    HighScoreStore,
    LeaderboardStore,
    MemoryHighScoreStore,
    PersistenceError,
)
from blockmerge.core.rng import BlockGenerator, PreviewQueue
from blockmerge.core.rules import GameRules, LandingResult
from blockmerge.core.scoring import ScoreTracker
from blockmerge.core.state_snapshot import GameSnapshot, SnapshotBuilder


class SessionState(Enum):
    """Where the session is in the drop cycle."""
    READY = "ready"
    DROPPING = "dropping"
    RESOLVING = "resolving"
    OVER = "over"


class DropStatus(Enum):
    """Outcome of a drop request."""
    ACCEPTED = "accepted"
    BLOCKED = "blocked"
    INVALID_STATE = "invalid_state"


@dataclass
class DropResult:
    """Result of a single drop request."""
    status: DropStatus
    column: int
    snapshot: GameSnapshot
    value: Optional[int] = None
    landing: Optional[LandingResult] = None
    resolve: Optional[ResolveResult] = None
    delta_score: int = 0
    terminated: bool = False
    termination_reason: str = ""

    @property
    def accepted(self) -> bool:
        return self.status is DropStatus.ACCEPTED

    @property
    def merges(self) -> List[MergeEvent]:
        return self.resolve.events if self.resolve is not None else []

    @property
    def steps(self) -> List[MergeStep]:
        return self.resolve.steps if self.resolve is not None else []


class GameSession:
    """
    Main game session.

    Orchestrates:
    - Block generation and the preview queue
    - Landing rules
    - Merge resolution
    - Scoring and high score persistence
    - Termination rules
    - State snapshots

    One step = one drop, resolved to a stable board. Drop requests are only
    accepted in the READY state while unpaused; DROPPING and RESOLVING are
    held for the duration of a drop so that a request arriving from the
    step callback is rejected.
    """

    def __init__(
        self,
        config: Optional[GameConfig] = None,
        seed: Optional[int] = None,
        rng=None,
        high_score_store: Optional[HighScoreStore] = None,
        leaderboard: Optional[LeaderboardStore] = None,
        step_callback: Optional[Callable[[MergeStep], None]] = None,
        debug: bool = False
    ):
        """
        Initialize session.

        Args:
            config: Game configuration. Uses default if None.
            seed: Random seed for reproducibility.
            rng: Injected random source (object with ``random()``).
            high_score_store: High score collaborator. In-memory if None.
            leaderboard: Leaderboard collaborator. Submissions are disabled if None.
            step_callback: Render sink called with each merge step, in order.
            debug: If True, print verbose drop information.
        """
        if config is None:
            config = get_config()

        self._config = config
        self._seed = seed
        self._step_callback = step_callback
        self._debug = debug

        # Initialize subsystems
        self._generator = BlockGenerator(config, seed=seed, rng=rng)
        self._preview = PreviewQueue(self._generator)
        self._rules = GameRules(config)
        self._merger = MergeEngine(config)
        self._evaluator = MoveEvaluator(config)
        self._snapshot_builder = SnapshotBuilder(config)

        self._high_score_store = high_score_store if high_score_store is not None else MemoryHighScoreStore()
        self._leaderboard = leaderboard
        self._scorer = ScoreTracker(config, high_score=self._load_high_score())

        # Game state
        self._board: Board = create_empty_board(config.rows, config.cols)
        self._state = SessionState.READY
        self._paused = False
        self._ai_enabled = False
        self._drops_used = 0
        self._score_submitted = False
        self._termination_reason = ""

        self._preview.reset(self._board)

    def _load_high_score(self) -> int:
        try:
            return int(self._high_score_store.load())
        except PersistenceError as e:
            print(f"[ERROR] Could not load high score: {e}")
            return 0

    @property
    def config(self) -> GameConfig:
        """Game configuration."""
        return self._config

    @property
    def board(self) -> Board:
        """Copy of the current board."""
        return copy_board(self._board)

    @property
    def score(self) -> int:
        """Current score."""
        return self._scorer.score

    @property
    def high_score(self) -> int:
        """Best score across sessions."""
        return self._scorer.high_score

    @property
    def current_value(self) -> int:
        """Value of the block that drops next."""
        return self._preview.current

    @property
    def next_value(self) -> int:
        """Value of the block after the current one."""
        return self._preview.next

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def is_over(self) -> bool:
        """True if game has ended."""
        return self._state is SessionState.OVER

    @property
    def paused(self) -> bool:
        return self._paused

    @property
    def ai_enabled(self) -> bool:
        return self._ai_enabled

    @property
    def drops_used(self) -> int:
        """Number of accepted drops."""
        return self._drops_used

    @property
    def score_submitted(self) -> bool:
        """True once this session's score went to the leaderboard."""
        return self._score_submitted

    @property
    def termination_reason(self) -> str:
        """Reason for game end, or empty string."""
        return self._termination_reason

    @property
    def evaluator(self) -> MoveEvaluator:
        return self._evaluator

    def restart(self, seed: Optional[int] = None, rng=None) -> GameSnapshot:
        """
        Start a fresh session.

        Args:
            seed: New random seed. Keeps the current random source if None.
            rng: Injected random source replacing the current one.

        Returns:
            Initial game snapshot.
        """
        if seed is not None or rng is not None:
            self._seed = seed
            self._generator.reseed(seed, rng=rng)

        self._board = create_empty_board(self._config.rows, self._config.cols)
        self._scorer.reset()
        self._preview.reset(self._board)

        self._state = SessionState.READY
        self._paused = False
        self._ai_enabled = False
        self._drops_used = 0
        self._score_submitted = False
        self._termination_reason = ""

        return self.snapshot()

    # Alias matching the Gymnasium vocabulary
    reset = restart

    def _reject(self, col: int, status: DropStatus, landing: Optional[LandingResult] = None) -> DropResult:
        if self._debug:
            print(f"[DEBUG] Drop col={col} rejected: {status.value} (state={self._state.value}, "
                  f"paused={self._paused})")
        return DropResult(status=status, column=col, snapshot=self.snapshot(), landing=landing)

    def drop_column(self, col: int) -> DropResult:
        """
        Drop the current block into ``col`` and resolve all merges.

        Args:
            col: Target column.

        Returns:
            DropResult. Rejected requests leave every piece of state untouched.

        Raises:
            ValueError: If ``col`` is off the board.
            Exception: Whatever ``step_callback`` raises, after the drop has
                been committed and the session is ready again.
        """
        if self._state is not SessionState.READY or self._paused:
            return self._reject(col, DropStatus.INVALID_STATE)

        landing = self._rules.landing.landing_row(self._board, col, self._preview.current)
        if landing.is_blocked:
            return self._reject(col, DropStatus.BLOCKED, landing)

        self._state = SessionState.DROPPING
        value = self._preview.advance(self._board)
        result = self._merger.drop(self._board, col, value, landing)

        # The drop is committed before the render sink sees any step
        self._board = result.board
        self._scorer.apply_merges(result.events)
        self._drops_used += 1

        if self._scorer.update_high_score():
            self._save_high_score()

        term = self._rules.termination.check_termination(self._board)

        self._state = SessionState.RESOLVING
        try:
            if self._step_callback is not None:
                for step in result.steps:
                    self._step_callback(step)
        finally:
            if term.terminated:
                self._state = SessionState.OVER
                self._termination_reason = term.reason
            else:
                self._state = SessionState.READY

        if self._debug:
            print(f"[DEBUG] Drop value={value} col={col} landing={landing.kind.value}:{landing.row} "
                  f"merges={result.merge_count} delta={result.score_gained} score={self.score}")
            if term.terminated:
                print(f"[DEBUG] GAME OVER: {term.reason}")

        return DropResult(
            status=DropStatus.ACCEPTED,
            column=col,
            snapshot=self.snapshot(),
            value=value,
            landing=landing,
            resolve=result,
            delta_score=result.score_gained,
            terminated=term.terminated,
            termination_reason=term.reason
        )

    def _save_high_score(self) -> None:
        try:
            self._high_score_store.save(self._scorer.high_score)
        except PersistenceError as e:
            print(f"[ERROR] Could not save high score: {e}")

    def toggle_pause(self) -> bool:
        """
        Flip the pause flag. Ignored once the game is over.

        Returns:
            The new pause flag.
        """
        if not self.is_over:
            self._paused = not self._paused
        return self._paused

    def toggle_ai(self) -> bool:
        """
        Flip AI mode. Turning it either way also unpauses.

        Returns:
            The new AI flag.
        """
        self._ai_enabled = not self._ai_enabled
        self._paused = False
        return self._ai_enabled

    def best_column(self) -> Optional[int]:
        """Column the move evaluator picks for the current block."""
        return self._evaluator.best_column(self._board, self._preview.current, self._preview.next)

    def ai_step(self) -> Optional[DropResult]:
        """
        Let the AI play one drop.

        Returns:
            DropResult, or None when AI mode is off, the session is not ready,
            it is paused, or no column is playable.
        """
        if not self._ai_enabled or self._paused or self._state is not SessionState.READY:
            return None
        col = self.best_column()
        if col is None:
            return None
        return self.drop_column(col)

    def submit_score(self, player_name: Optional[str] = None) -> bool:
        """
        Send this session's score to the leaderboard.

        At most one submission per session, and only for a positive score. A
        score that cannot enter a full top-N table counts as submitted without
        being written. Store failures are reported and leave the session
        untouched so the submission can be retried.

        Args:
            player_name: Display name. Replaced by the AI name in AI mode.

        Returns:
            True if the score was written.
        """
        score = self._scorer.score
        if self._leaderboard is None or score <= 0 or self._score_submitted:
            return False

        persist = self._config.persistence
        try:
            top = self._leaderboard.top(persist.leaderboard_size)
            if len(top) >= persist.leaderboard_size and score <= top[-1].score:
                self._score_submitted = True
                return False

            name = persist.ai_name if self._ai_enabled else (player_name or persist.default_name)
            ok = self._leaderboard.submit(name, score, self._ai_enabled)
        except PersistenceError as e:
            print(f"[ERROR] Could not submit score: {e}")
            return False

        if ok:
            self._score_submitted = True
        else:
            print(f"[ERROR] Leaderboard rejected score {score}")
        return bool(ok)

    def snapshot(self) -> GameSnapshot:
        """Build current game state snapshot."""
        return self._snapshot_builder.build(
            board=self._board,
            current_value=self._preview.current,
            next_value=self._preview.next,
            score=self._scorer.score,
            high_score=self._scorer.high_score,
            drops_used=self._drops_used,
            merges=self._scorer.merges,
            state=self._state.value,
            paused=self._paused,
            ai_enabled=self._ai_enabled
        )

    def get_info(self) -> Dict[str, Any]:
        """Get additional info dict for Gymnasium."""
        return {
            "score": self._scorer.score,
            "high_score": self._scorer.high_score,
            "drops_used": self._drops_used,
            "merges": self._scorer.merges,
            "current_value": self._preview.current,
            "next_value": self._preview.next,
            "terminated_reason": self._termination_reason,
            "max_value": max_value(self._board, floor=0),
        }
