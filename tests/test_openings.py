"""Tests for opening book loading."""

from pathlib import Path

import chess
import pytest

from elobench.tournament.openings import load_openings

PGN_BOOK = """\
[Event "?"]
[Result "*"]

1. e4 e5 2. Nf3 Nc6 *

[Event "?"]
[Result "*"]

1. d4 d5 2. c4 *

[Event "?"]
[Result "*"]

1. c4 *
"""


@pytest.fixture
def pgn_book(tmp_path: Path) -> Path:
    path = tmp_path / "book.pgn"
    path.write_text(PGN_BOOK)
    return path


class TestLoadOpenings:
    """Tests for PGN, EPD and FEN books."""

    def test_pgn_plays_whole_line(self, pgn_book: Path) -> None:
        openings = load_openings(pgn_book)

        assert len(openings) == 3
        board = chess.Board()
        for san in ("e4", "e5", "Nf3", "Nc6"):
            board.push_san(san)
        assert openings[0] == board.fen()
        assert chess.Board(openings[1]).turn == chess.BLACK

    def test_pgn_plies_limit(self, pgn_book: Path) -> None:
        openings = load_openings(pgn_book, plies=1)

        board = chess.Board()
        board.push_san("e4")
        assert openings[0] == board.fen()

    def test_epd(self, tmp_path: Path) -> None:
        path = tmp_path / "book.epd"
        path.write_text(
            "# comment\n"
            "rnbqkbnr/pppppppp/8/8/4P3/8/PPPP1PPP/RNBQKBNR b KQkq - id \"e4\";\n"
            "\n"
            "not an epd\n"
        )

        openings = load_openings(path)

        assert openings == ["rnbqkbnr/pppppppp/8/8/4P3/8/PPPP1PPP/RNBQKBNR b KQkq - 0 1"]

    def test_fen(self, tmp_path: Path) -> None:
        path = tmp_path / "book.fen"
        path.write_text(f"{chess.STARTING_FEN}\ninvalid fen\n")

        assert load_openings(path) == [chess.STARTING_FEN]

    def test_shuffle_is_seeded(self, pgn_book: Path) -> None:
        first = load_openings(pgn_book, shuffle=True, seed=7)
        second = load_openings(pgn_book, shuffle=True, seed=7)
        assert first == second
        assert sorted(first) == sorted(load_openings(pgn_book))

    def test_max_openings(self, pgn_book: Path) -> None:
        assert len(load_openings(pgn_book, max_openings=2)) == 2

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_openings(tmp_path / "missing.pgn")

    def test_unsupported_format(self, tmp_path: Path) -> None:
        path = tmp_path / "book.txt"
        path.write_text(chess.STARTING_FEN)
        with pytest.raises(ValueError, match="Unsupported"):
            load_openings(path)

    def test_empty_book(self, tmp_path: Path) -> None:
        path = tmp_path / "book.fen"
        path.write_text("# nothing\n")
        with pytest.raises(ValueError, match="No usable openings"):
            load_openings(path)
