"""End-to-end benchmark pipeline.

Provision → Build → Schedule → Decide → Report. Every collaborator that
touches the outside world (version control, build tool, game play) can be
injected, so the pipeline runs unchanged against fakes.
"""

from pathlib import Path

from loguru import logger
from rich.console import Console

from elobench.build import BuildCoordinator, BuildTool, CommandBuildTool
from elobench.configs import RunConfig, config_to_dict
from elobench.tournament.aggregator import OutcomeAggregator
from elobench.tournament.game import Side, TimeControl
from elobench.tournament.game_runner import GameConfig, UCIMatchEngine
from elobench.tournament.match import MatchOutcome, run_match
from elobench.tournament.openings import load_openings
from elobench.tournament.pgn import PGNWriter
from elobench.tournament.report import MatchReporter, init_wandb
from elobench.tournament.scheduler import MatchScheduler, PlayFn
from elobench.tournament.sprt import SPRTCalculator, SPRTParameters
from elobench.workspace import GitVersionControl, VersionControl, WorkspaceProvisioner


def resolve_openings_path(path: str, baseline_root: Path) -> Path:
    """Locate the opening book.

    Relative paths are looked up in the baseline workspace first, then in the
    current directory.
    """
    book = Path(path)
    if book.is_absolute():
        return book
    in_workspace = baseline_root / book
    if in_workspace.exists():
        return in_workspace
    return Path.cwd() / book


def run_benchmark(
    config: RunConfig,
    candidate: str,
    *,
    vcs: VersionControl | None = None,
    build_tool: BuildTool | None = None,
    play: PlayFn | None = None,
    console: Console | None = None,
    progress: bool = True,
) -> MatchOutcome:
    """Benchmark ``candidate`` against the configured baseline revision.

    Args:
        config: Run configuration.
        candidate: Revision to test.
        vcs: Version control; defaults to the git CLI.
        build_tool: Build tool; defaults to the configured build command.
        play: Plays one game; defaults to UCI engine processes.
        console: Rich console for the final report.
        progress: Show a progress bar.

    Returns:
        MatchOutcome with final statistics and, in SPRT mode, the verdict.

    Raises:
        StatError: Invalid SPRT parameters, before anything is provisioned.
        ProvisionError: A revision could not be checked out.
        BuildError: Either build failed.
        ScheduleError: The match could not be played to completion.
    """
    sprt = None
    if config.sprt.enabled:
        params = SPRTParameters(
            elo0=config.sprt.elo0,
            elo1=config.sprt.elo1,
            alpha=config.sprt.alpha,
            beta=config.sprt.beta,
        )
        sprt = SPRTCalculator(params, max_games=config.match.max_games)
        logger.info(
            f"SPRT elo0={params.elo0} elo1={params.elo1} alpha={params.alpha} "
            f"beta={params.beta}, bounds [{params.lower_bound:.3f}, {params.upper_bound:.3f}]"
        )
        logger.info(f"Estimated games: ~{sprt.games_estimate()}")
    time_control = TimeControl.parse(config.match.time_control)

    vcs = vcs or GitVersionControl()
    repository = config.workspace.repository
    if repository is None:
        repository = vcs.repository_root()
    logger.info(f"Repository: {repository}")

    provisioner = WorkspaceProvisioner(
        vcs, root=config.workspace.root, prefix=config.workspace.prefix
    )
    baseline_ws, candidate_ws = provisioner.provision_pair(
        repository, config.workspace.baseline, candidate
    )

    try:
        builder = BuildCoordinator(
            build_tool
            or CommandBuildTool(
                binary=config.build.binary,
                command=config.build.command,
                artifact=config.build.artifact,
            ),
            name_prefix=config.workspace.prefix,
        )
        baseline_exe, candidate_exe = builder.build_pair(baseline_ws, candidate_ws)

        openings_path = resolve_openings_path(config.openings.path, baseline_ws.path)
        openings = load_openings(
            openings_path,
            shuffle=config.openings.shuffle,
            seed=config.openings.seed,
            plies=config.openings.plies,
        )

        scheduler = MatchScheduler(
            play or UCIMatchEngine(GameConfig(max_moves=config.match.max_moves)),
            engine_a=candidate_exe,
            engine_b=baseline_exe,
            time_control=time_control,
        )

        pgn_writer = None
        if config.output.pgn_path:
            pgn_writer = PGNWriter(
                config.output.pgn_path,
                event=f"{candidate_exe.name} vs {baseline_exe.name}",
            )
        reporter = MatchReporter(
            candidate_exe.name,
            baseline_exe.name,
            rating_interval=config.match.rating_interval,
            pgn_writer=pgn_writer,
            console=console,
            progress=progress,
            wandb_run=init_wandb(
                config.output.wandb,
                f"{candidate_exe.name}-vs-{baseline_exe.name}",
                config_to_dict(config),
            ),
            elo1=config.sprt.elo1,
        )

        return run_match(
            scheduler,
            OutcomeAggregator(candidate=Side.A),
            reporter,
            openings,
            concurrency=config.match.concurrency,
            max_games=config.match.max_games,
            color_repeat=config.match.repeat,
            sprt=sprt,
        )
    finally:
        if config.workspace.cleanup:
            baseline_ws.teardown()
            candidate_ws.teardown()
