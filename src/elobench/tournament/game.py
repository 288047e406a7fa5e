"""Units of work exchanged between the scheduler and the match engine."""

from __future__ import annotations

import math
import re
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING

import chess

if TYPE_CHECKING:
    from elobench.build import Executable


class Side(Enum):
    """One of the two builds in a match."""

    A = "A"
    B = "B"

    @property
    def other(self) -> Side:
        return Side.B if self is Side.A else Side.A


class Outcome(Enum):
    """Outcome of a game, by build rather than by color."""

    WIN_A = "win_a"
    WIN_B = "win_b"
    DRAW = "draw"

    @classmethod
    def win_for(cls, side: Side) -> Outcome:
        return cls.WIN_A if side is Side.A else cls.WIN_B


class GameTermination(Enum):
    """How a game ended."""

    CHECKMATE = "checkmate"
    STALEMATE = "stalemate"
    INSUFFICIENT = "insufficient_material"
    FIFTY_MOVE = "fifty_move_rule"
    THREEFOLD = "threefold_repetition"
    MAX_MOVES = "max_moves"
    TIME_FORFEIT = "time_forfeit"
    ENGINE_ERROR = "engine_error"
    UNKNOWN = "unknown"

    @property
    def pgn_tag(self) -> str:
        """Value for the PGN Termination tag, from the standard PGN set."""
        return _PGN_TERMINATIONS.get(self, "normal")


_PGN_TERMINATIONS = {
    GameTermination.MAX_MOVES: "adjudication",
    GameTermination.TIME_FORFEIT: "time forfeit",
    GameTermination.ENGINE_ERROR: "abandoned",
    GameTermination.UNKNOWN: "unterminated",
}


_TC_PATTERN = re.compile(
    r"^(?:(?P<moves>inf|\d+)/)?(?P<base>\d+(?:\.\d+)?|inf)(?:\+(?P<inc>\d+(?:\.\d+)?))?$"
)


@dataclass(frozen=True)
class TimeControl:
    """Per-side clock settings in seconds.

    Parsed from cutechess notation: ``"5+0.01"`` (5s + 10ms increment),
    ``"inf/10+0.1"`` (10s for the whole game + 100ms increment) or
    ``"40/60"`` (60s per 40 moves).
    """

    base: float
    increment: float = 0.0
    moves: int | None = None  # Moves per period; None = whole game

    @classmethod
    def parse(cls, text: str) -> TimeControl:
        match = _TC_PATTERN.match(text.strip())
        if match is None or match.group("base") == "inf":
            raise ValueError(f"Invalid time control: {text!r}")

        moves = match.group("moves")
        return cls(
            base=float(match.group("base")),
            increment=float(match.group("inc") or 0.0),
            moves=None if moves in (None, "inf") else int(moves),
        )

    def game_budget(self, max_moves: int) -> float:
        """Wall-clock budget for one side over a game of ``max_moves`` moves."""
        periods = 1 if self.moves is None else math.ceil(max_moves / self.moves)
        return self.base * periods + self.increment * max_moves

    def __str__(self) -> str:
        text = f"{self.base:g}"
        if self.increment:
            text += f"+{self.increment:g}"
        if self.moves is not None:
            text = f"{self.moves}/{text}"
        return text


@dataclass(frozen=True)
class Game:
    """A single game to be played between build A and build B."""

    index: int
    engine_a: Executable
    engine_b: Executable
    a_plays_white: bool
    opening: str  # FEN
    time_control: TimeControl

    @property
    def white(self) -> Executable:
        return self.engine_a if self.a_plays_white else self.engine_b

    @property
    def black(self) -> Executable:
        return self.engine_b if self.a_plays_white else self.engine_a

    def side_of(self, color: chess.Color) -> Side:
        """Build playing the given color."""
        return Side.A if (color == chess.WHITE) == self.a_plays_white else Side.B


@dataclass
class GameResult:
    """Result of a single game."""

    game: Game
    outcome: Outcome
    moves: list[str] = field(default_factory=list)
    termination: GameTermination = GameTermination.UNKNOWN

    timestamp: str = field(default_factory=lambda: datetime.now().isoformat())

    @property
    def move_count(self) -> int:
        return len(self.moves)

    @property
    def pgn_result(self) -> str:
        """Result string for PGN ("1-0", "0-1" or "1/2-1/2")."""
        if self.outcome is Outcome.DRAW:
            return "1/2-1/2"
        a_won = self.outcome is Outcome.WIN_A
        return "1-0" if a_won == self.game.a_plays_white else "0-1"

    def to_pgn(self, event: str = "elobench", round_num: int | None = None) -> str:
        """Generate PGN string for this game."""
        round_num = round_num if round_num is not None else self.game.index + 1
        lines = [
            f'[Event "{event}"]',
            '[Site "Local"]',
            f'[Date "{datetime.now().strftime("%Y.%m.%d")}"]',
            f'[Round "{round_num}"]',
            f'[White "{self.game.white.name}"]',
            f'[Black "{self.game.black.name}"]',
            f'[Result "{self.pgn_result}"]',
            '[SetUp "1"]',
            f'[FEN "{self.game.opening}"]',
            f'[TimeControl "{self.game.time_control}"]',
            f'[PlyCount "{self.move_count}"]',
            f'[Termination "{self.termination.pgn_tag}"]',
            "",
        ]

        board = chess.Board(self.game.opening)
        move_text_parts = []

        for i, uci in enumerate(self.moves):
            move = chess.Move.from_uci(uci)

            if board.turn == chess.WHITE:
                move_text_parts.append(f"{board.fullmove_number}.")
            elif i == 0:
                move_text_parts.append(f"{board.fullmove_number}...")

            move_text_parts.append(board.san(move))
            board.push(move)

        move_text = " ".join(move_text_parts)
        if move_text:
            move_text += " "
        move_text += self.pgn_result

        lines.append(move_text)
        lines.append("")

        return "\n".join(lines)
