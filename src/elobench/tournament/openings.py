"""Opening-position pool for engine matches.

A book is read into an ordered list of FEN strings. PGN books such as
``8moves_v3.pgn`` hold short opening lines and contribute the position at
the end of each line; EPD and FEN books list positions directly. Entries
that do not parse are skipped with a warning, but a book that yields no
position at all is an error.
"""

import random
from collections.abc import Callable, Iterator
from pathlib import Path

import chess
import chess.pgn
from loguru import logger


def _positions(path: Path) -> Iterator[tuple[int, str]]:
    """Non-blank, non-comment lines of a position file with line numbers."""
    with path.open(encoding="utf-8", errors="replace") as f:
        for number, raw in enumerate(f, 1):
            text = raw.strip()
            if text and not text.startswith("#"):
                yield number, text


def _read_epd(path: Path, plies: int | None) -> Iterator[str]:
    # hmvc / fmvn opcodes are applied by python-chess
    for number, text in _positions(path):
        try:
            board, _ = chess.Board.from_epd(text)
        except ValueError as e:
            logger.warning(f"{path.name}:{number}: skipping EPD entry ({e})")
            continue
        yield board.fen()


def _read_fen(path: Path, plies: int | None) -> Iterator[str]:
    for number, text in _positions(path):
        try:
            yield chess.Board(text).fen()
        except ValueError as e:
            logger.warning(f"{path.name}:{number}: skipping FEN entry ({e})")


def _read_pgn(path: Path, plies: int | None) -> Iterator[str]:
    """Position after each game's main line, or after its first ``plies`` half-moves."""
    with path.open(encoding="utf-8", errors="replace") as f:
        while True:
            game = chess.pgn.read_game(f)
            if game is None:
                break
            if game.errors:
                logger.warning(f"{path.name}: skipping opening line ({game.errors[0]})")
                continue
            board = game.board()
            for move in list(game.mainline_moves())[:plies]:
                board.push(move)
            yield board.fen()


_READERS: dict[str, Callable[[Path, int | None], Iterator[str]]] = {
    ".pgn": _read_pgn,
    ".epd": _read_epd,
    ".fen": _read_fen,
}


def load_openings(
    path: str | Path,
    *,
    shuffle: bool = False,
    seed: int | None = None,
    plies: int | None = None,
    max_openings: int | None = None,
) -> list[str]:
    """Load the opening pool from a book.

    Args:
        path: Book file (.pgn, .epd or .fen).
        shuffle: Randomize the order; by default the book order is kept.
        seed: Seed for the shuffle.
        plies: PGN only; play at most this many half-moves of each line.
        max_openings: Keep at most this many positions.

    Returns:
        Ordered list of FEN strings.

    Raises:
        FileNotFoundError: If the book does not exist.
        ValueError: If the format is unsupported or no position is usable.
    """
    book = Path(path)
    if not book.is_file():
        raise FileNotFoundError(f"Opening book not found: {book}")

    reader = _READERS.get(book.suffix.lower())
    if reader is None:
        supported = ", ".join(_READERS)
        raise ValueError(f"Unsupported opening book format {book.suffix!r} (expected {supported})")

    openings = list(reader(book, plies))
    if not openings:
        raise ValueError(f"No usable openings in {book}")

    if shuffle:
        random.Random(seed).shuffle(openings)
    if max_openings is not None:
        openings = openings[:max_openings]

    logger.info(
        f"Opening pool: {len(openings)} positions from {book.name}"
        + (f" (shuffled, seed={seed})" if shuffle else "")
    )
    return openings
