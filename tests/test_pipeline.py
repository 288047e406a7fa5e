"""End-to-end tests of the benchmark pipeline with fake collaborators."""

import io
from pathlib import Path

import pytest
from loguru import logger
from rich.console import Console

from elobench.configs import RunConfig
from elobench.errors import BuildError, ProvisionError, StatError
from elobench.pipeline import resolve_openings_path, run_benchmark
from elobench.tournament.game import Outcome
from elobench.tournament.sprt import Verdict
from elobench.workspace import CANDIDATE


@pytest.fixture
def config(tmp_path: Path) -> RunConfig:
    config = RunConfig()
    config.workspace.repository = "repo"
    config.workspace.root = str(tmp_path / "work")
    config.openings.path = "etc/book.fen"
    config.output.pgn_path = str(tmp_path / "games.pgn")
    config.match.concurrency = 1
    config.match.games = 2
    config.match.rounds = 2
    return config


@pytest.fixture
def console() -> Console:
    return Console(file=io.StringIO(), width=120)


class TestRunBenchmark:
    """Tests for the full provision, build, play and decide flow."""

    def test_four_candidate_wins_accept_h1(
        self, config, fake_vcs, fake_build_tool, scripted_play, console, tmp_path
    ) -> None:
        play = scripted_play([Outcome.WIN_A])

        outcome = run_benchmark(
            config,
            "dev",
            vcs=fake_vcs,
            build_tool=fake_build_tool,
            play=play,
            console=console,
            progress=False,
        )

        assert outcome.verdict is Verdict.ACCEPT_H1
        assert outcome.decided_at <= 4
        assert outcome.stats.wins == outcome.stats.games
        # The candidate plays as build A
        assert play.played[0].engine_a.revision.ref == "dev"
        assert play.played[0].engine_b.revision.ref == "master"
        assert (tmp_path / "games.pgn").read_text().count("[Event ") == outcome.stats.games
        assert "H1 Accepted" in console.file.getvalue()

    def test_invalid_sprt_parameters_before_provisioning(
        self, config, fake_vcs, fake_build_tool, scripted_play
    ) -> None:
        """Test that StatError is raised before any workspace is created."""
        config.sprt.elo0 = 10.0
        config.sprt.elo1 = 0.0

        with pytest.raises(StatError):
            run_benchmark(
                config,
                "dev",
                vcs=fake_vcs,
                build_tool=fake_build_tool,
                play=scripted_play([Outcome.DRAW]),
                progress=False,
            )

        assert fake_vcs.checkouts == []
        assert not Path(config.workspace.root).exists()

    def test_invalid_time_control_before_provisioning(
        self, config, fake_vcs, fake_build_tool, scripted_play
    ) -> None:
        config.match.time_control = "fast"

        with pytest.raises(ValueError, match="time control"):
            run_benchmark(
                config,
                "dev",
                vcs=fake_vcs,
                build_tool=fake_build_tool,
                play=scripted_play([Outcome.DRAW]),
                progress=False,
            )
        assert fake_vcs.checkouts == []

    def test_fixed_games_mode(
        self, config, fake_vcs, fake_build_tool, scripted_play, console
    ) -> None:
        config.sprt.enabled = False
        config.match.games = 10
        config.match.rounds = 1
        config.match.concurrency = 3
        play = scripted_play([Outcome.WIN_A, Outcome.WIN_B, Outcome.DRAW, Outcome.DRAW])

        outcome = run_benchmark(
            config,
            "dev",
            vcs=fake_vcs,
            build_tool=fake_build_tool,
            play=play,
            console=console,
            progress=False,
        )

        assert outcome.verdict is None
        assert outcome.stats.games == 10
        assert (outcome.stats.wins, outcome.stats.losses, outcome.stats.draws) == (3, 3, 4)
        assert "Match Status" in console.file.getvalue()

    def test_cap_reached_is_inconclusive(
        self, config, fake_vcs, fake_build_tool, scripted_play, console
    ) -> None:
        play = scripted_play([Outcome.WIN_A, Outcome.WIN_B])

        outcome = run_benchmark(
            config,
            "dev",
            vcs=fake_vcs,
            build_tool=fake_build_tool,
            play=play,
            console=console,
            progress=False,
        )

        assert outcome.verdict is Verdict.INCONCLUSIVE
        assert outcome.stats.games == 4

    def test_unknown_candidate(self, config, vcs_factory, fake_build_tool, scripted_play) -> None:
        play = scripted_play([Outcome.DRAW])

        with pytest.raises(ProvisionError):
            run_benchmark(
                config,
                "nope",
                vcs=vcs_factory(unknown_refs=["nope"]),
                build_tool=fake_build_tool,
                play=play,
                progress=False,
            )
        assert play.played == []

    def test_build_failure_plays_no_games(
        self, config, fake_vcs, build_tool_factory, scripted_play
    ) -> None:
        play = scripted_play([Outcome.DRAW])

        with pytest.raises(BuildError):
            run_benchmark(
                config,
                "dev",
                vcs=fake_vcs,
                build_tool=build_tool_factory(fail_roles=[CANDIDATE]),
                play=play,
                progress=False,
            )
        assert play.played == []

    def test_cleanup_removes_workspaces(
        self, config, fake_vcs, fake_build_tool, scripted_play, console
    ) -> None:
        config.workspace.cleanup = True

        run_benchmark(
            config,
            "dev",
            vcs=fake_vcs,
            build_tool=fake_build_tool,
            play=scripted_play([Outcome.DRAW]),
            console=console,
            progress=False,
        )

        assert fake_vcs.checkouts
        for _, _, path in fake_vcs.checkouts:
            assert not path.exists()

    def test_workspaces_kept_by_default(
        self, config, fake_vcs, fake_build_tool, scripted_play, console
    ) -> None:
        run_benchmark(
            config,
            "dev",
            vcs=fake_vcs,
            build_tool=fake_build_tool,
            play=scripted_play([Outcome.DRAW]),
            console=console,
            progress=False,
        )

        for _, _, path in fake_vcs.checkouts:
            assert path.exists()

    def test_repository_defaults_to_vcs_root(
        self, config, fake_vcs, fake_build_tool, scripted_play, console
    ) -> None:
        config.workspace.repository = None

        run_benchmark(
            config,
            "dev",
            vcs=fake_vcs,
            build_tool=fake_build_tool,
            play=scripted_play([Outcome.DRAW]),
            console=console,
            progress=False,
        )

        assert fake_vcs.checkouts
        assert {repository for repository, _, _ in fake_vcs.checkouts} == {"/srv/engine.git"}

    def test_logs_games_estimate(
        self, config, fake_vcs, fake_build_tool, scripted_play, console
    ) -> None:
        messages: list[str] = []
        handler_id = logger.add(messages.append, level="INFO", format="{message}")
        try:
            run_benchmark(
                config,
                "dev",
                vcs=fake_vcs,
                build_tool=fake_build_tool,
                play=scripted_play([Outcome.DRAW]),
                console=console,
                progress=False,
            )
        finally:
            logger.remove(handler_id)

        assert any(message.startswith("Estimated games: ~") for message in messages)


class TestResolveOpeningsPath:
    """Tests for opening book lookup."""

    def test_absolute(self, tmp_path: Path) -> None:
        book = tmp_path / "book.pgn"
        assert resolve_openings_path(str(book), tmp_path / "ws") == book

    def test_in_baseline_workspace(self, tmp_path: Path) -> None:
        (tmp_path / "etc").mkdir()
        (tmp_path / "etc" / "book.pgn").write_text("")
        assert resolve_openings_path("etc/book.pgn", tmp_path) == tmp_path / "etc" / "book.pgn"

    def test_falls_back_to_cwd(self, tmp_path: Path, monkeypatch) -> None:
        monkeypatch.chdir(tmp_path)
        assert resolve_openings_path("book.pgn", tmp_path / "ws") == tmp_path / "book.pgn"
