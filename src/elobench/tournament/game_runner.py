"""Game runner for engine-vs-engine matches.

Handles playing individual games between two UCI engines, including clock
keeping, move-limit adjudication and forfeits. A crashing, hanging or
illegal-moving engine loses the game; it never aborts the match.
"""

import time
from dataclasses import dataclass
from typing import Callable, Protocol

import chess
import pexpect
from loguru import logger

from elobench.engine.uci_engine import UCIEngine, UCIEngineError, UCIEngineTimeout
from elobench.tournament.game import Game, GameResult, GameTermination, Outcome, Side

_TERMINATIONS = {
    chess.Termination.CHECKMATE: GameTermination.CHECKMATE,
    chess.Termination.STALEMATE: GameTermination.STALEMATE,
    chess.Termination.INSUFFICIENT_MATERIAL: GameTermination.INSUFFICIENT,
    chess.Termination.SEVENTYFIVE_MOVES: GameTermination.FIFTY_MOVE,
    chess.Termination.FIFTY_MOVES: GameTermination.FIFTY_MOVE,
    chess.Termination.FIVEFOLD_REPETITION: GameTermination.THREEFOLD,
    chess.Termination.THREEFOLD_REPETITION: GameTermination.THREEFOLD,
}


class MoveSource(Protocol):
    """What the runner needs from a player."""

    def select_move(self, board: chess.Board, **clock) -> chess.Move | None: ...

    def new_game(self) -> None: ...


@dataclass
class GameConfig:
    """Configuration for game play and adjudication."""

    # Full moves before the game is adjudicated a draw
    max_moves: int = 200

    # Seconds an engine may overrun its clock before forfeiting
    time_margin: float = 0.05

    # Seconds allowed for engine start-up and handshakes
    startup_timeout: float = 10.0


class GameRunner:
    """Plays single games between two engines."""

    def __init__(self, config: GameConfig | None = None):
        """Initialize game runner.

        Args:
            config: Game play configuration.
        """
        self.config = config or GameConfig()

    def play_game(self, engine_a: MoveSource, engine_b: MoveSource, game: Game) -> GameResult:
        """Play a single game between two engines.

        Args:
            engine_a: Player for build A.
            engine_b: Player for build B.
            game: Colors, opening and time control.

        Returns:
            GameResult with the outcome.
        """
        board = chess.Board(game.opening)
        moves: list[str] = []
        tc = game.time_control

        players = {
            chess.WHITE: engine_a if game.a_plays_white else engine_b,
            chess.BLACK: engine_b if game.a_plays_white else engine_a,
        }
        clocks = {chess.WHITE: tc.base, chess.BLACK: tc.base}
        moves_made = {chess.WHITE: 0, chess.BLACK: 0}
        budget = tc.game_budget(self.config.max_moves)

        for color, player in players.items():
            try:
                player.new_game()
            except (UCIEngineError, pexpect.ExceptionPexpect, OSError) as e:
                logger.error(f"Game {game.index + 1}: {self._color_name(color)} engine error: {e}")
                return GameResult(
                    game=game,
                    outcome=self._loss_for(game, color),
                    termination=GameTermination.ENGINE_ERROR,
                )

        while True:
            outcome = board.outcome(claim_draw=True)
            if outcome is not None:
                termination = _TERMINATIONS.get(outcome.termination, GameTermination.UNKNOWN)
                result = self._winner_outcome(game, outcome.winner)
                break

            if len(moves) >= 2 * self.config.max_moves:
                termination = GameTermination.MAX_MOVES
                result = Outcome.DRAW
                break

            side = board.turn
            remaining = max(clocks[side], 0.0)
            movestogo = None
            if tc.moves is not None:
                movestogo = tc.moves - moves_made[side] % tc.moves

            start = time.monotonic()
            try:
                move = players[side].select_move(
                    board,
                    wtime=int(max(clocks[chess.WHITE], 0.0) * 1000),
                    btime=int(max(clocks[chess.BLACK], 0.0) * 1000),
                    winc=int(tc.increment * 1000),
                    binc=int(tc.increment * 1000),
                    movestogo=movestogo,
                    timeout=min(remaining, budget) + self.config.time_margin,
                )
            except UCIEngineTimeout:
                logger.warning(f"Game {game.index + 1}: {self._color_name(side)} lost on time")
                termination = GameTermination.TIME_FORFEIT
                result = self._loss_for(game, side)
                break
            except (UCIEngineError, pexpect.ExceptionPexpect, OSError) as e:
                logger.error(f"Game {game.index + 1}: {self._color_name(side)} engine error: {e}")
                termination = GameTermination.ENGINE_ERROR
                result = self._loss_for(game, side)
                break
            elapsed = time.monotonic() - start

            if elapsed > remaining + self.config.time_margin:
                logger.warning(
                    f"Game {game.index + 1}: {self._color_name(side)} lost on time "
                    f"({elapsed:.3f}s used, {remaining:.3f}s left)"
                )
                termination = GameTermination.TIME_FORFEIT
                result = self._loss_for(game, side)
                break

            if move is None or move not in board.legal_moves:
                logger.error(
                    f"Game {game.index + 1}: {self._color_name(side)} played illegal move "
                    f"{move.uci() if move else '(none)'} in {board.fen()}"
                )
                termination = GameTermination.ENGINE_ERROR
                result = self._loss_for(game, side)
                break

            board.push(move)
            moves.append(move.uci())

            moves_made[side] += 1
            clocks[side] += tc.increment - elapsed
            if tc.moves is not None and moves_made[side] % tc.moves == 0:
                clocks[side] += tc.base

        return GameResult(game=game, outcome=result, moves=moves, termination=termination)

    @staticmethod
    def _color_name(color: chess.Color) -> str:
        return "White" if color == chess.WHITE else "Black"

    @staticmethod
    def _winner_outcome(game: Game, winner: chess.Color | None) -> Outcome:
        if winner is None:
            return Outcome.DRAW
        return Outcome.win_for(game.side_of(winner))

    @staticmethod
    def _loss_for(game: Game, color: chess.Color) -> Outcome:
        """Outcome when the player of ``color`` forfeits."""
        return Outcome.win_for(game.side_of(color).other)


class UCIMatchEngine:
    """Plays one scheduled game with fresh engine processes.

    This is the scheduler's ``play`` callable. A side whose engine cannot be
    started loses the game; both engines are always shut down afterwards.
    """

    def __init__(
        self,
        config: GameConfig | None = None,
        engine_factory: Callable[..., MoveSource] = UCIEngine,
    ) -> None:
        self.runner = GameRunner(config)
        self.engine_factory = engine_factory

    @property
    def config(self) -> GameConfig:
        return self.runner.config

    def __call__(self, game: Game) -> GameResult:
        engines: dict[Side, MoveSource] = {}
        try:
            for side, executable in ((Side.A, game.engine_a), (Side.B, game.engine_b)):
                try:
                    engines[side] = self.engine_factory(
                        executable.path,
                        name=executable.name,
                        timeout=self.config.startup_timeout,
                    )
                except (UCIEngineError, pexpect.ExceptionPexpect, OSError) as e:
                    logger.error(f"Game {game.index + 1}: failed to start {executable.name}: {e}")
                    return GameResult(
                        game=game,
                        outcome=Outcome.win_for(side.other),
                        termination=GameTermination.ENGINE_ERROR,
                    )

            return self.runner.play_game(engines[Side.A], engines[Side.B], game)
        finally:
            for engine in engines.values():
                close = getattr(engine, "close", None)
                if close is not None:
                    close()
