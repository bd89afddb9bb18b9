"""
Tests for the game session state machine.
"""

import pytest

from blockmerge.core.config_loader import load_config
from blockmerge.core.game import DropStatus, GameSession, SessionState
from blockmerge.core.merge_system import MergeKind
from blockmerge.core.persistence import (
    LeaderboardEntry,
    MemoryHighScoreStore,
    MemoryLeaderboardStore,
    PersistenceError,
)


# Early-game draws: 0.0 -> 2, 0.35 -> 4
ALWAYS_2 = [0.0]
ALTERNATE_4_2 = [0.35, 0.0]


@pytest.fixture
def config():
    return load_config()


@pytest.fixture
def small_config(make_config):
    return make_config(board={"rows": 3, "cols": 3})


@pytest.fixture
def twos_game(config, sequence_rng):
    """Session where every block is a 2."""
    return GameSession(config=config, rng=sequence_rng(ALWAYS_2))


@pytest.fixture
def checker_game(small_config, sequence_rng):
    """3x3 session dropping 2, 4, 2, 4, ..."""
    return GameSession(config=small_config, rng=sequence_rng(ALTERNATE_4_2))


class BrokenHighScoreStore:
    def load(self):
        raise PersistenceError("disk gone")

    def save(self, score):
        raise PersistenceError("disk gone")


class BrokenLeaderboard:
    def submit(self, name, score, is_ai):
        raise PersistenceError("server down")

    def top(self, limit=10):
        return []


class TestDrops:
    """Test accepted drops."""

    def test_initial_state(self, twos_game, config):
        snap = twos_game.snapshot()
        assert twos_game.state is SessionState.READY
        assert snap.current_value == config.generation.first_block
        assert snap.score == 0
        assert snap.drops_used == 0
        assert snap.empty_cells == config.rows * config.cols
        assert snap.legal_columns == tuple(range(config.cols))

    def test_drop_consumes_current(self, twos_game):
        result = twos_game.drop_column(2)

        assert result.accepted
        assert result.value == 2
        assert result.landing.row == 7
        assert twos_game.board[7][2] == 2
        assert twos_game.drops_used == 1
        assert twos_game.state is SessionState.READY

    def test_merge_scores(self, twos_game):
        twos_game.drop_column(0)
        result = twos_game.drop_column(0)

        assert result.delta_score == 4
        assert twos_game.score == 4
        assert [e.kind for e in result.merges] == [MergeKind.VERTICAL]

    def test_preview_advances(self, checker_game):
        assert (checker_game.current_value, checker_game.next_value) == (2, 4)
        checker_game.drop_column(0)
        assert (checker_game.current_value, checker_game.next_value) == (4, 2)

    def test_invalid_column_raises(self, twos_game, config):
        with pytest.raises(ValueError):
            twos_game.drop_column(config.cols)

    def test_step_callback_gets_every_step(self, config, sequence_rng):
        steps = []
        game = GameSession(config=config, rng=sequence_rng(ALWAYS_2), step_callback=steps.append)

        game.drop_column(0)
        game.drop_column(0)
        game.drop_column(0)
        result = game.drop_column(0)

        # 2 on [4, 2] merges to 4, which then merges with the 4 below
        assert [s.event.new_value for s in steps] == [4, 4, 8]
        assert result.delta_score == 12

    def test_top_merge_through_session(self, checker_game):
        for col in (0, 0, 0):
            checker_game.drop_column(col)
        checker_game.drop_column(1)

        # Column 0 holds 2, 4, 2 bottom-up; the current block is a 2
        assert checker_game.current_value == 2
        result = checker_game.drop_column(0)

        assert result.landing.is_top_merge
        assert [e.kind for e in result.merges] == [MergeKind.TOP_MERGE, MergeKind.VERTICAL]
        assert result.delta_score == 4 + 8
        assert checker_game.board[1][0] == 8


class TestRejections:
    """Rejected drops change nothing."""

    def test_blocked_column(self, checker_game):
        for _ in range(3):
            checker_game.drop_column(0)
        before = checker_game.snapshot()
        assert before.current_value == 4

        result = checker_game.drop_column(0)

        assert result.status is DropStatus.BLOCKED
        assert result.landing.is_blocked
        assert checker_game.snapshot() == before

    def test_paused_rejects(self, twos_game):
        assert twos_game.toggle_pause()
        before = twos_game.snapshot()

        result = twos_game.drop_column(0)

        assert result.status is DropStatus.INVALID_STATE
        assert twos_game.snapshot() == before
        assert not twos_game.toggle_pause()
        assert twos_game.drop_column(0).accepted

    def test_reentrant_drop_rejected(self, config, sequence_rng):
        seen = []
        game = None

        def callback(step):
            seen.append((game.state, game.drop_column(4).status))

        game = GameSession(config=config, rng=sequence_rng(ALWAYS_2), step_callback=callback)
        game.drop_column(0)
        game.drop_column(0)

        assert seen == [(SessionState.RESOLVING, DropStatus.INVALID_STATE)]
        assert game.board[7][4] is None


class TestFailingRenderSink:
    """A render sink that raises does not wedge the session."""

    def test_drop_committed_and_session_ready(self, config, sequence_rng):
        def sink(step):
            raise RuntimeError("render failed")

        game = GameSession(config=config, rng=sequence_rng(ALWAYS_2), step_callback=sink)
        game.drop_column(0)

        with pytest.raises(RuntimeError):
            game.drop_column(0)

        assert game.state is SessionState.READY
        assert game.board[7][0] == 4
        assert game.score == 4
        assert game.drops_used == 2
        assert game.drop_column(1).accepted


class TestGameOver:
    """Test termination through the session."""

    def test_locked_board_ends_game(self, checker_game):
        results = [checker_game.drop_column(col) for col in (0, 1, 2) * 3]

        assert all(r.accepted for r in results)
        assert not any(r.terminated for r in results[:-1])
        assert results[-1].terminated
        assert results[-1].termination_reason == "board_locked"
        assert checker_game.is_over
        assert checker_game.score == 0
        assert checker_game.board == [[2, 4, 2], [4, 2, 4], [2, 4, 2]]

    def test_drops_rejected_after_game_over(self, checker_game):
        for col in (0, 1, 2) * 3:
            checker_game.drop_column(col)

        result = checker_game.drop_column(0)

        assert result.status is DropStatus.INVALID_STATE
        assert checker_game.drops_used == 9

    def test_pause_ignored_after_game_over(self, checker_game):
        for col in (0, 1, 2) * 3:
            checker_game.drop_column(col)

        assert not checker_game.toggle_pause()
        assert not checker_game.paused

    def test_restart(self, checker_game, small_config):
        for col in (0, 1, 2) * 3:
            checker_game.drop_column(col)
        checker_game.toggle_ai()

        snap = checker_game.restart(seed=5)

        assert checker_game.state is SessionState.READY
        assert snap.drops_used == 0
        assert snap.empty_cells == small_config.rows * small_config.cols
        assert snap.current_value == small_config.generation.first_block
        assert not checker_game.ai_enabled
        assert not checker_game.is_over


class TestAiMode:
    """Test the AI toggles."""

    def test_ai_step_requires_ai_mode(self, twos_game):
        assert twos_game.ai_step() is None
        twos_game.toggle_ai()
        result = twos_game.ai_step()
        assert result is not None and result.accepted

    def test_toggle_ai_clears_pause(self, twos_game):
        twos_game.toggle_pause()
        twos_game.toggle_ai()
        assert twos_game.ai_enabled
        assert not twos_game.paused

    def test_ai_step_paused(self, twos_game):
        twos_game.toggle_ai()
        twos_game.toggle_pause()
        assert twos_game.ai_step() is None

    def test_best_column_matches_evaluator(self, twos_game):
        board = twos_game.board
        expected = twos_game.evaluator.best_column(board, twos_game.current_value, twos_game.next_value)
        assert twos_game.best_column() == expected


class TestHighScore:
    """Test the high score collaborator."""

    def test_loaded_at_start(self, config):
        game = GameSession(config=config, high_score_store=MemoryHighScoreStore(100))
        assert game.high_score == 100

    def test_saved_when_beaten(self, config, sequence_rng):
        store = MemoryHighScoreStore()
        game = GameSession(config=config, rng=sequence_rng(ALWAYS_2), high_score_store=store)

        for _ in range(4):
            game.drop_column(0)

        assert store.saves == [4, 16]
        assert game.high_score == 16

    def test_not_saved_below_stored(self, config, sequence_rng):
        store = MemoryHighScoreStore(100)
        game = GameSession(config=config, rng=sequence_rng(ALWAYS_2), high_score_store=store)
        game.drop_column(0)
        game.drop_column(0)
        assert store.saves == []

    def test_survives_restart(self, config, sequence_rng):
        game = GameSession(config=config, rng=sequence_rng(ALWAYS_2))
        game.drop_column(0)
        game.drop_column(0)
        game.restart()
        assert game.score == 0
        assert game.high_score == 4

    def test_store_failures_do_not_break_game(self, config, sequence_rng, capsys):
        game = GameSession(config=config, rng=sequence_rng(ALWAYS_2),
                           high_score_store=BrokenHighScoreStore())
        assert game.high_score == 0

        game.drop_column(0)
        result = game.drop_column(0)

        assert result.accepted
        assert game.score == 4
        assert game.state is SessionState.READY
        assert "[ERROR]" in capsys.readouterr().out


class TestLeaderboard:
    """Test score submission."""

    def _scored_game(self, config, sequence_rng, board):
        game = GameSession(config=config, rng=sequence_rng(ALWAYS_2), leaderboard=board)
        game.drop_column(0)
        game.drop_column(0)
        return game

    def test_submit_once(self, config, sequence_rng):
        board = MemoryLeaderboardStore()
        game = self._scored_game(config, sequence_rng, board)

        assert game.submit_score("ada")
        assert not game.submit_score("ada")
        entries = board.top()
        assert len(entries) == 1
        assert (entries[0].name, entries[0].score, entries[0].is_ai) == ("ada", 4, False)

    def test_default_name(self, config, sequence_rng):
        board = MemoryLeaderboardStore()
        game = self._scored_game(config, sequence_rng, board)
        game.submit_score()
        assert board.top()[0].name == config.persistence.default_name

    def test_ai_name(self, config, sequence_rng):
        board = MemoryLeaderboardStore()
        game = self._scored_game(config, sequence_rng, board)
        game.toggle_ai()
        game.submit_score("ada")
        entry = board.top()[0]
        assert entry.name == config.persistence.ai_name
        assert entry.is_ai

    def test_zero_score_not_submitted(self, config):
        board = MemoryLeaderboardStore()
        game = GameSession(config=config, leaderboard=board)
        assert not game.submit_score("ada")
        assert board.top() == []
        assert not game.score_submitted

    def test_non_qualifying_score_marked_submitted(self, config, sequence_rng):
        board = MemoryLeaderboardStore()
        for i in range(config.persistence.leaderboard_size):
            board.submit(f"p{i}", 1000 + i, False)
        game = self._scored_game(config, sequence_rng, board)

        assert not game.submit_score("ada")
        assert game.score_submitted
        assert len(board.top(100)) == config.persistence.leaderboard_size

    def test_failure_keeps_submission_pending(self, config, sequence_rng, capsys):
        game = self._scored_game(config, sequence_rng, BrokenLeaderboard())

        assert not game.submit_score("ada")
        assert not game.score_submitted
        assert "[ERROR]" in capsys.readouterr().out

    def test_restart_allows_new_submission(self, config, sequence_rng):
        board = MemoryLeaderboardStore()
        game = self._scored_game(config, sequence_rng, board)
        game.submit_score("ada")
        game.restart()
        game.drop_column(0)
        game.drop_column(0)
        assert game.submit_score("ada")
        assert [e.score for e in board.top()] == [4, 4]

    def test_entry_round_trip(self):
        entry = LeaderboardEntry(name="ada", score=12, is_ai=False, date="2024-01-01")
        assert LeaderboardEntry.from_dict(entry.to_dict()) == entry


class TestDebugOutput:
    """Test debug logging."""

    def test_debug_prints_drops(self, config, sequence_rng, capsys):
        game = GameSession(config=config, rng=sequence_rng(ALWAYS_2), debug=True)
        game.drop_column(0)
        assert "[DEBUG] Drop" in capsys.readouterr().out

    def test_quiet_by_default(self, twos_game, capsys):
        twos_game.drop_column(0)
        assert capsys.readouterr().out == ""
