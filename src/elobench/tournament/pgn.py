"""Incremental PGN game record.

One file per run, overwritten on each invocation. Losing the record must not
lose the verdict, so every I/O failure is logged and disables further writes
instead of propagating.
"""

from pathlib import Path
from typing import TextIO

from loguru import logger

from elobench.tournament.game import GameResult


class PGNWriter:
    """PGN writer that flushes games as they complete."""

    def __init__(self, path: str | Path, event: str = "elobench"):
        self.path = Path(path)
        self.event = event
        self.game_count = 0
        self._file: TextIO | None = None
        self.failed = False

    def open(self) -> None:
        """Open (truncate) the PGN file for writing."""
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self._file = self.path.open("w")
        except OSError as e:
            self._fail(e)
            return
        logger.info(f"PGN output: {self.path}")

    def write_game(self, game: GameResult) -> None:
        """Write a single game to the PGN file and flush."""
        if self._file is None:
            return

        try:
            pgn = game.to_pgn(event=self.event, round_num=self.game_count + 1)
            self._file.write(pgn)
            self._file.write("\n")
            self._file.flush()
        except (OSError, ValueError) as e:
            self._fail(e)
            return
        self.game_count += 1

    def close(self) -> None:
        """Close the PGN file."""
        if self._file is not None:
            try:
                self._file.close()
            except OSError as e:
                logger.warning(f"Failed to close {self.path}: {e}")
            self._file = None
            logger.info(f"Saved {self.game_count} games to {self.path}")

    def _fail(self, error: Exception) -> None:
        logger.warning(f"Game record {self.path} disabled: {error}")
        self.failed = True
        if self._file is not None:
            try:
                self._file.close()
            except OSError:
                pass
            self._file = None
