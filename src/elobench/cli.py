"""Command-line interface for elobench."""

from pathlib import Path
from typing import List, Optional

import typer
from hydra.errors import HydraException
from loguru import logger
from rich.console import Console

from elobench import __version__
from elobench.configs import RunConfig, compose_run_config
from elobench.errors import BuildError, ProvisionError, ScheduleError, StatError
from elobench.pipeline import run_benchmark
from elobench.utils import setup_logging

app = typer.Typer(
    name="elobench",
    help="elobench: regression benchmarking for UCI chess engines",
    add_completion=False,
)
console = Console()

EXIT_BUILD_FAILURE = 1
EXIT_INVALID_PARAMETERS = 2
EXIT_SCHEDULE_FAILURE = 3


def _quote(value: str) -> str:
    """Quote a string for the Hydra override grammar."""
    return "'" + value.replace("\\", "\\\\").replace("'", "\\'") + "'"


def _overrides(options: dict[str, object]) -> list[str]:
    """Turn the options that were given into Hydra overrides."""
    overrides = []
    for key, value in options.items():
        if value is None:
            continue
        if isinstance(value, bool):
            overrides.append(f"{key}={str(value).lower()}")
        elif isinstance(value, str):
            overrides.append(f"{key}={_quote(value)}")
        else:
            overrides.append(f"{key}={value}")
    return overrides


def _fail(code: int, error: Exception) -> typer.Exit:
    logger.error(f"{type(error).__name__}: {error}")
    console.print(f"[bold red]Error:[/bold red] {error}")
    return typer.Exit(code=code)


def _compose(mode: str, overrides: list[str], config_file: Optional[Path]) -> RunConfig:
    try:
        return compose_run_config(mode, overrides, config_file)
    except (HydraException, FileNotFoundError, ValueError) as e:
        raise _fail(EXIT_INVALID_PARAMETERS, e) from e


def _run(config: RunConfig, candidate: str) -> None:
    setup_logging("DEBUG" if config.verbose else "INFO", log_file=config.output.log_file)
    try:
        run_benchmark(config, candidate, console=console)
    except StatError as e:
        raise _fail(EXIT_INVALID_PARAMETERS, e) from e
    except (ProvisionError, BuildError) as e:
        raise _fail(EXIT_BUILD_FAILURE, e) from e
    except ScheduleError as e:
        raise _fail(EXIT_SCHEDULE_FAILURE, e) from e
    except (FileNotFoundError, ValueError) as e:
        raise _fail(EXIT_INVALID_PARAMETERS, e) from e


@app.command()
def version() -> None:
    """Print version information."""
    console.print(f"[bold blue]elobench[/bold blue] v{__version__}")


@app.command()
def sprt(
    candidate: str = typer.Argument(..., help="Candidate revision (branch, tag or commit)"),
    concurrency: int = typer.Argument(..., help="Games played in parallel"),
    elo0: Optional[float] = typer.Option(None, "--elo0", help="Elo difference under H0"),
    elo1: Optional[float] = typer.Option(None, "--elo1", help="Elo difference under H1"),
    alpha: Optional[float] = typer.Option(None, "--alpha", help="Type I error rate"),
    beta: Optional[float] = typer.Option(None, "--beta", help="Type II error rate"),
    games: Optional[int] = typer.Option(None, "--games", help="Games per round"),
    rounds: Optional[int] = typer.Option(None, "--rounds", help="Maximum number of rounds"),
    repeat: Optional[bool] = typer.Option(
        None, "--repeat/--no-repeat", help="Play each opening with colors swapped"
    ),
    max_moves: Optional[int] = typer.Option(
        None, "--max-moves", help="Full moves before a draw is adjudicated"
    ),
    tc: Optional[str] = typer.Option(None, "--tc", help="Time control, e.g. inf/10+0.1"),
    rating_interval: Optional[int] = typer.Option(
        None, "--rating-interval", help="Print the score every N games"
    ),
    baseline: Optional[str] = typer.Option(None, "--baseline", help="Baseline revision"),
    repo: Optional[str] = typer.Option(None, "--repo", help="Repository to clone"),
    workdir: Optional[str] = typer.Option(None, "--workdir", help="Directory for workspaces"),
    book: Optional[str] = typer.Option(None, "--book", help="Opening book (.pgn, .epd, .fen)"),
    pgn_out: Optional[str] = typer.Option(None, "--pgn-out", help="PGN game record"),
    config_file: Optional[Path] = typer.Option(None, "--config", "-c", help="YAML config file"),
    overrides: Optional[List[str]] = typer.Option(
        None, "--set", "-s", help="Config override, e.g. match.max_moves=150"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
) -> None:
    """Run an SPRT regression test of CANDIDATE against the baseline."""
    options = {
        "match.concurrency": concurrency,
        "sprt.elo0": elo0,
        "sprt.elo1": elo1,
        "sprt.alpha": alpha,
        "sprt.beta": beta,
        "match.games": games,
        "match.rounds": rounds,
        "match.repeat": repeat,
        "match.max_moves": max_moves,
        "match.time_control": tc,
        "match.rating_interval": rating_interval,
        "workspace.baseline": baseline,
        "workspace.repository": repo,
        "workspace.root": workdir,
        "openings.path": book,
        "output.pgn_path": pgn_out,
        "verbose": verbose or None,
    }
    setup_logging("DEBUG" if verbose else "INFO")
    config = _compose("sprt", _overrides(options) + list(overrides or []), config_file)
    _run(config, candidate)


@app.command()
def bench(
    candidate: str = typer.Argument(..., help="Candidate revision (branch, tag or commit)"),
    concurrency: Optional[int] = typer.Option(
        None, "--concurrency", "-j", help="Games played in parallel"
    ),
    games: Optional[int] = typer.Option(None, "--games", help="Number of games"),
    repeat: Optional[bool] = typer.Option(
        None, "--repeat/--no-repeat", help="Play each opening with colors swapped"
    ),
    max_moves: Optional[int] = typer.Option(
        None, "--max-moves", help="Full moves before a draw is adjudicated"
    ),
    tc: Optional[str] = typer.Option(None, "--tc", help="Time control, e.g. 5+0.01"),
    rating_interval: Optional[int] = typer.Option(
        None, "--rating-interval", help="Print the score every N games"
    ),
    baseline: Optional[str] = typer.Option(None, "--baseline", help="Baseline revision"),
    repo: Optional[str] = typer.Option(None, "--repo", help="Repository to clone"),
    workdir: Optional[str] = typer.Option(None, "--workdir", help="Directory for workspaces"),
    book: Optional[str] = typer.Option(None, "--book", help="Opening book (.pgn, .epd, .fen)"),
    pgn_out: Optional[str] = typer.Option(None, "--pgn-out", help="PGN game record"),
    config_file: Optional[Path] = typer.Option(None, "--config", "-c", help="YAML config file"),
    overrides: Optional[List[str]] = typer.Option(
        None, "--set", "-s", help="Config override, e.g. match.max_moves=150"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
) -> None:
    """Play a fixed number of games between CANDIDATE and the baseline."""
    options = {
        "match.concurrency": concurrency,
        "match.games": games,
        "match.repeat": repeat,
        "match.max_moves": max_moves,
        "match.time_control": tc,
        "match.rating_interval": rating_interval,
        "workspace.baseline": baseline,
        "workspace.repository": repo,
        "workspace.root": workdir,
        "openings.path": book,
        "output.pgn_path": pgn_out,
        "verbose": verbose or None,
    }
    setup_logging("DEBUG" if verbose else "INFO")
    config = _compose("bench", _overrides(options) + list(overrides or []), config_file)
    _run(config, candidate)


if __name__ == "__main__":
    app()
