"""Line-based UCI client for the engine builds under test.

Only the part of the protocol needed to play timed games is spoken:
``uci``/``uciok``, ``setoption``, ``isready``/``readyok``, ``ucinewgame``,
``position fen ... moves ...``, ``go`` with clock fields, ``bestmove`` and
``quit``. The engine runs under a pty via pexpect so that its output is line
buffered even when the binary never flushes stdout.
"""

import re
import threading
from pathlib import Path

import chess
import pexpect
from loguru import logger

_ID_NAME = re.compile(r"^id name (.+?)\s*$", re.MULTILINE)
_BESTMOVE = r"bestmove\s+(\S+)[^\r\n]*\r?\n"
_NULL_MOVES = ("(none)", "0000")


class UCIEngineError(Exception):
    """Raised when UCI communication fails."""

    pass


class UCIEngineTimeout(UCIEngineError):
    """Raised when the engine does not answer within its time budget."""

    pass


class UCIEngine:
    """One running engine process.

    Example:
        with UCIEngine("/tmp/elobench-candidate-dev/target/release/uci") as engine:
            engine.new_game()
            move = engine.select_move(board, wtime=10_000, btime=10_000, winc=100, binc=100)
    """

    def __init__(
        self,
        binary_path: str | Path,
        *,
        name: str | None = None,
        timeout: float = 10.0,
        options: dict[str, int | str] | None = None,
    ) -> None:
        """Start the engine and complete the UCI handshake.

        Args:
            binary_path: Engine executable.
            name: Display name. Defaults to the engine's ``id name``.
            timeout: Seconds allowed for each handshake reply.
            options: Sent as ``setoption`` before the engine is used.

        Raises:
            FileNotFoundError: If the executable does not exist.
            UCIEngineError: If the process cannot be started or handshaken.
        """
        self.binary_path = Path(binary_path)
        if not self.binary_path.exists():
            raise FileNotFoundError(f"Engine binary not found: {self.binary_path}")

        self.timeout = timeout
        self.options = dict(options or {})
        self._name = name
        self._id_name: str | None = None
        self._lock = threading.Lock()
        self._child: pexpect.spawn | None = None

        self._spawn()
        self._handshake()

    @property
    def name(self) -> str:
        return self._name or self._id_name or self.binary_path.name

    def _spawn(self) -> None:
        logger.debug(f"Starting {self.binary_path}")
        try:
            self._child = pexpect.spawn(
                str(self.binary_path),
                [],
                cwd=str(self.binary_path.parent),
                encoding="utf-8",
                codec_errors="replace",
                timeout=self.timeout,
                echo=False,
            )
        except pexpect.ExceptionPexpect as e:
            raise UCIEngineError(f"Failed to start {self.binary_path}: {e}") from e

    def _handshake(self) -> None:
        self._send("uci")
        banner = self._expect("uciok")
        match = _ID_NAME.search(banner.replace("\r", ""))
        if match:
            self._id_name = match.group(1)

        for key, value in self.options.items():
            self._send(f"setoption name {key} value {value}")
        self._sync()
        logger.debug(f"{self.name} ready (pid {self._child.pid})")

    def _send(self, line: str) -> None:
        if self._child is None:
            raise UCIEngineError("Engine not running")
        logger.trace(f"{self.name} < {line}")
        self._child.sendline(line)

    def _expect(self, pattern: str, timeout: float | None = None) -> str:
        """Wait for ``pattern`` and return everything the engine printed before it."""
        if self._child is None:
            raise UCIEngineError("Engine not running")
        try:
            self._child.expect(pattern, timeout=self.timeout if timeout is None else timeout)
        except pexpect.TIMEOUT:
            raise UCIEngineTimeout(f"{self.name}: no {pattern!r} in time") from None
        except pexpect.EOF:
            raise UCIEngineError(f"{self.name}: process terminated unexpectedly") from None
        except UnicodeDecodeError as e:
            raise UCIEngineError(f"{self.name}: undecodable output: {e}") from e
        return self._child.before or ""

    def _sync(self) -> None:
        self._send("isready")
        self._expect("readyok")

    @staticmethod
    def _position_command(board: chess.Board) -> str:
        """Root FEN plus the move list, so the engine sees the repetition history."""
        command = f"position fen {board.root().fen()}"
        if board.move_stack:
            command += " moves " + " ".join(move.uci() for move in board.move_stack)
        return command

    @staticmethod
    def _go_command(timeout: float | None = None, **clock: int | None) -> str:
        fields = [f"{key} {value}" for key, value in clock.items() if value is not None]
        if not fields:
            fields = ["infinite" if timeout is None else f"movetime {int(timeout * 1000)}"]
        return " ".join(["go", *fields])

    @staticmethod
    def _parse_bestmove(text: str) -> chess.Move | None:
        match = re.search(r"bestmove\s+(\S+)", text)
        if match is None or match.group(1) in _NULL_MOVES:
            return None
        try:
            return chess.Move.from_uci(match.group(1))
        except ValueError:
            return None

    def new_game(self) -> None:
        """Reset the engine between games."""
        with self._lock:
            self._send("ucinewgame")
            self._sync()

    def select_move(
        self,
        board: chess.Board,
        *,
        wtime: int | None = None,
        btime: int | None = None,
        winc: int | None = None,
        binc: int | None = None,
        movestogo: int | None = None,
        timeout: float | None = None,
    ) -> chess.Move | None:
        """Ask the engine for its move.

        Clock fields are in milliseconds. ``timeout`` bounds the wait for
        ``bestmove`` in seconds; exceeding it raises UCIEngineTimeout.

        Returns:
            The move, or None if the engine reports no move.
        """
        with self._lock:
            self._send(self._position_command(board))
            self._send(
                self._go_command(
                    timeout,
                    wtime=wtime,
                    btime=btime,
                    winc=winc,
                    binc=binc,
                    movestogo=movestogo,
                )
            )
            self._expect(_BESTMOVE, timeout=timeout)
            line = self._child.after
            logger.trace(f"{self.name} > {line.strip()}")
            return self._parse_bestmove(line)

    def close(self) -> None:
        """Ask the engine to quit, killing it if it does not."""
        child, self._child = self._child, None
        if child is None:
            return
        try:
            child.sendline("quit")
            child.expect(pexpect.EOF, timeout=1.0)
        except (pexpect.ExceptionPexpect, OSError):
            pass
        finally:
            if child.isalive():
                child.terminate(force=True)

    def __enter__(self) -> "UCIEngine":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def __del__(self) -> None:
        if getattr(self, "_child", None) is not None:
            self.close()
