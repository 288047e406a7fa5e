"""Pytest configuration and shared fixtures."""

import hashlib
import threading
import time
from collections.abc import Callable, Sequence
from pathlib import Path

import chess
import pytest

from elobench.build import Executable
from elobench.tournament.game import Game, GameResult, GameTermination, Outcome, TimeControl
from elobench.workspace import Revision, Workspace


class FakeVersionControl:
    """Materializes a tiny source tree per ref instead of cloning."""

    def __init__(self, unknown_refs: Sequence[str] = (), root: str = "/srv/engine.git") -> None:
        self.unknown_refs = set(unknown_refs)
        self.root = root
        self.checkouts: list[tuple[str, str, Path]] = []

    def repository_root(self, path: str | Path = ".") -> str:
        return self.root

    def checkout(self, repository: str, ref: str, destination: Path) -> str:
        from elobench.errors import ProvisionError

        if ref in self.unknown_refs:
            raise ProvisionError(f"unknown revision {ref}")
        destination.mkdir(parents=True)
        (destination / "src").mkdir()
        (destination / "src" / "main.rs").write_text(f"// {ref}\n")
        (destination / "etc").mkdir()
        (destination / "etc" / "book.fen").write_text(chess.STARTING_FEN + "\n")
        self.checkouts.append((repository, ref, destination))
        return hashlib.sha1(ref.encode()).hexdigest()


class FakeBuildTool:
    """Writes a placeholder binary into the workspace."""

    def __init__(self, fail_roles: Sequence[str] = ()) -> None:
        self.fail_roles = set(fail_roles)
        self.built: list[Path] = []
        self._lock = threading.Lock()

    def build(self, workspace: Workspace) -> Path:
        from elobench.errors import BuildError

        if workspace.role in self.fail_roles:
            raise BuildError(f"compile error in {workspace.role}")
        artifact = workspace.path / "target" / "release" / "uci"
        artifact.parent.mkdir(parents=True, exist_ok=True)
        artifact.write_text("#!/bin/sh\n")
        with self._lock:
            self.built.append(workspace.path)
        return artifact


class ScriptedPlay:
    """Play callable that returns predetermined outcomes by game index."""

    def __init__(
        self,
        outcomes: Sequence[Outcome] | Callable[[Game], Outcome],
        delay: float | Callable[[Game], float] = 0.0,
    ) -> None:
        self.outcomes = outcomes
        self.delay = delay
        self.played: list[Game] = []
        self.active = 0
        self.max_active = 0
        self._lock = threading.Lock()

    def __call__(self, game: Game) -> GameResult:
        with self._lock:
            self.played.append(game)
            self.active += 1
            self.max_active = max(self.max_active, self.active)
        try:
            delay = self.delay(game) if callable(self.delay) else self.delay
            if delay:
                time.sleep(delay)
            if callable(self.outcomes):
                outcome = self.outcomes(game)
            else:
                outcome = self.outcomes[game.index % len(self.outcomes)]
            return GameResult(game=game, outcome=outcome, termination=GameTermination.UNKNOWN)
        finally:
            with self._lock:
                self.active -= 1


def tree_hash(root: Path) -> str:
    """Digest of every file path and content under ``root``."""
    digest = hashlib.sha256()
    for path in sorted(p for p in root.rglob("*") if p.is_file()):
        digest.update(str(path.relative_to(root)).encode())
        digest.update(path.read_bytes())
    return digest.hexdigest()


@pytest.fixture
def executables(tmp_path: Path) -> tuple[Executable, Executable]:
    """Candidate (A) and baseline (B) executables."""
    a = tmp_path / "a" / "uci"
    b = tmp_path / "b" / "uci"
    for path in (a, b):
        path.parent.mkdir(parents=True)
        path.write_text("")
    return (
        Executable(path=a, revision=Revision("dev", "a" * 40), name="elobench-dev"),
        Executable(path=b, revision=Revision("master", "b" * 40), name="elobench-master"),
    )


@pytest.fixture
def time_control() -> TimeControl:
    return TimeControl(base=10.0, increment=0.1)


@pytest.fixture
def make_game(
    executables: tuple[Executable, Executable], time_control: TimeControl
) -> Callable[..., Game]:
    """Factory for single games between the fixture executables."""

    def factory(
        index: int = 0,
        a_plays_white: bool = True,
        opening: str = chess.STARTING_FEN,
        tc: TimeControl | None = None,
    ) -> Game:
        return Game(
            index=index,
            engine_a=executables[0],
            engine_b=executables[1],
            a_plays_white=a_plays_white,
            opening=opening,
            time_control=tc or time_control,
        )

    return factory


@pytest.fixture
def fake_vcs() -> FakeVersionControl:
    return FakeVersionControl()


@pytest.fixture
def fake_build_tool() -> FakeBuildTool:
    return FakeBuildTool()


@pytest.fixture
def openings() -> list[str]:
    return [
        chess.STARTING_FEN,
        "rnbqkbnr/pppppppp/8/8/4P3/8/PPPP1PPP/RNBQKBNR b KQkq - 0 1",
        "rnbqkbnr/pppp1ppp/8/4p3/4P3/8/PPPP1PPP/RNBQKBNR w KQkq - 0 2",
    ]


@pytest.fixture
def scripted_play() -> type[ScriptedPlay]:
    """The ScriptedPlay class, for tests that need several configurations."""
    return ScriptedPlay


@pytest.fixture
def vcs_factory() -> type[FakeVersionControl]:
    return FakeVersionControl


@pytest.fixture
def build_tool_factory() -> type[FakeBuildTool]:
    return FakeBuildTool


@pytest.fixture
def hash_tree() -> Callable[[Path], str]:
    return tree_hash
