"""Match progress and result reporting.

Running output goes through a tqdm progress bar with a cutechess-style score
line every ``rating_interval`` games. The final result is a rich table. Games
are recorded to PGN as they finish and, when enabled, metrics are streamed to
Weights & Biases.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from loguru import logger
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from tqdm import tqdm

from elobench.tournament.aggregator import MatchStatistics
from elobench.tournament.game import GameResult
from elobench.tournament.pgn import PGNWriter
from elobench.tournament.sprt import SPRTCalculator, SPRTResult, Verdict

if TYPE_CHECKING:
    from elobench.configs import WandbConfig
    from elobench.tournament.match import MatchOutcome

VERDICT_COLORS = {
    Verdict.CONTINUE: "yellow",
    Verdict.ACCEPT_H1: "green",
    Verdict.ACCEPT_H0: "red",
    Verdict.INCONCLUSIVE: "yellow",
}


def init_wandb(config: WandbConfig, run_name: str, run_config: dict[str, Any]) -> Any:
    """Start a W&B run, or return None when disabled or unavailable."""
    if not config.enabled:
        return None

    try:
        import wandb as wb

        run = wb.init(
            project=config.project,
            entity=config.entity,
            name=run_name,
            tags=list(config.tags),
            config=run_config,
        )
        logger.info(f"W&B initialized: {run.url}")
        return run
    except ImportError:
        logger.warning("wandb not installed, skipping W&B logging")
    except Exception as e:
        logger.warning(f"Failed to initialize W&B: {e}")
    return None


def score_line(name_a: str, name_b: str, stats: MatchStatistics) -> str:
    """``Score of A vs B: W - L - D  [score] N``, from A's point of view."""
    return (
        f"Score of {name_a} vs {name_b}: {stats.wins} - {stats.losses} - {stats.draws}"
        f"  [{stats.score:.3f}] {stats.games}"
    )


def elo_line(result: SPRTResult) -> str:
    return (
        f"Elo difference: {result.elo_estimate:+.1f} +/- {result.elo_error:.1f}, "
        f"LOS: {result.los:.1%}, DrawRatio: {result.draw_rate:.1%}"
    )


def sprt_line(result: SPRTResult) -> str:
    return (
        f"SPRT: llr {result.llr:.3f} "
        f"(lbound {result.lower_bound:.3f}, ubound {result.upper_bound:.3f})"
    )


def create_status_table(
    result: SPRTResult,
    candidate_name: str,
    baseline_name: str,
    verdict: Verdict | None = None,
) -> Table:
    """Create a rich table showing the match status.

    LLR and verdict rows are shown only when ``verdict`` is given.
    """
    title = "SPRT Status" if verdict is not None else "Match Status"
    table = Table(title=title, show_header=True)

    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("Games Played", str(result.games))
    table.add_row(f"{candidate_name} Wins", f"{result.wins} ({result.win_rate:.1%})")
    table.add_row(f"{baseline_name} Wins", f"{result.losses} ({result.loss_rate:.1%})")
    table.add_row("Draws", f"{result.draws} ({result.draw_rate:.1%})")
    table.add_row("", "")

    table.add_row("Score", f"{result.score:.3f}")
    table.add_row("Elo Estimate", f"{result.elo_estimate:+.1f} ± {result.elo_error:.1f}")
    table.add_row("LOS", f"{result.los:.1%}")

    if verdict is not None:
        table.add_row("", "")
        llr_color = "green" if result.llr > 0 else "red" if result.llr < 0 else "yellow"
        table.add_row(
            "LLR",
            f"[{llr_color}]{result.llr:.3f}[/{llr_color}] "
            f"([{result.lower_bound:.3f}, {result.upper_bound:.3f}])",
        )
        color = VERDICT_COLORS[verdict]
        table.add_row("Verdict", f"[{color}]{verdict.value}[/{color}]")

    return table


class MatchReporter:
    """Reports one match from the candidate's point of view.

    All methods are called from the match controller loop only.
    """

    def __init__(
        self,
        candidate_name: str,
        baseline_name: str,
        *,
        rating_interval: int = 10,
        pgn_writer: PGNWriter | None = None,
        console: Console | None = None,
        progress: bool = True,
        wandb_run: Any = None,
        elo1: float | None = None,
    ) -> None:
        """Initialize reporter.

        Args:
            candidate_name: Display name of build A.
            baseline_name: Display name of build B.
            rating_interval: Print a score line every N games; 0 disables.
            pgn_writer: Game record, or None to keep no record.
            console: Rich console for the final result.
            progress: Show a tqdm progress bar.
            wandb_run: Active W&B run, or None.
            elo1: H1 Elo, quoted in the verdict message.
        """
        self.candidate_name = candidate_name
        self.baseline_name = baseline_name
        self.rating_interval = rating_interval
        self.pgn_writer = pgn_writer
        self.console = console or Console()
        self.progress = progress
        self.wandb_run = wandb_run
        self.elo1 = elo1

        # Elo and LOS estimates for fixed-games matches
        self._estimator = SPRTCalculator()
        self._pbar: tqdm | None = None

    def start(self, max_games: int) -> None:
        self.console.print(
            f"\n[bold]Starting match: {self.candidate_name} vs {self.baseline_name}[/bold]\n"
        )
        if self.pgn_writer is not None:
            self.pgn_writer.open()
        self._pbar = tqdm(total=max_games, desc="Games", unit="game", disable=not self.progress)

    def game_finished(
        self,
        result: GameResult,
        stats: MatchStatistics,
        sprt_result: SPRTResult | None,
    ) -> None:
        """Record one finished game and refresh the running output."""
        if self.pgn_writer is not None:
            self.pgn_writer.write_game(result)

        logger.debug(
            f"Game {result.game.index + 1} finished: {result.pgn_result} "
            f"({result.termination.value}, {result.move_count} plies)"
        )

        estimate = sprt_result or self._estimator.update(stats)

        if self._pbar is not None:
            self._pbar.update(1)
            postfix = {
                "W": stats.wins,
                "L": stats.losses,
                "D": stats.draws,
                "elo": f"{estimate.elo_estimate:+.1f}",
            }
            if sprt_result is not None:
                postfix["llr"] = f"{sprt_result.llr:.2f}"
            self._pbar.set_postfix(postfix)

        if self.rating_interval > 0 and stats.games % self.rating_interval == 0:
            tqdm.write(score_line(self.candidate_name, self.baseline_name, stats))
            tqdm.write(elo_line(estimate))
            if sprt_result is not None:
                tqdm.write(sprt_line(sprt_result))

        if self.wandb_run is not None:
            metrics = {
                "games": stats.games,
                "wins": stats.wins,
                "losses": stats.losses,
                "draws": stats.draws,
                "score": stats.score,
                "elo_estimate": estimate.elo_estimate,
                "elo_error": estimate.elo_error,
                "los": estimate.los,
                "win_rate": estimate.win_rate,
                "draw_rate": estimate.draw_rate,
                "loss_rate": estimate.loss_rate,
            }
            if sprt_result is not None:
                metrics.update(
                    llr=sprt_result.llr,
                    llr_lower=sprt_result.lower_bound,
                    llr_upper=sprt_result.upper_bound,
                )
            self.wandb_run.log(metrics)

    def close(self) -> None:
        """Close the progress bar and the game record."""
        if self._pbar is not None:
            self._pbar.close()
            self._pbar = None
        if self.pgn_writer is not None:
            self.pgn_writer.close()

    def finish(self, outcome: MatchOutcome) -> None:
        """Print the final result."""
        final = outcome.sprt or self._estimator.update(outcome.stats)

        self.console.print("\n")
        self.console.print(
            Panel.fit(
                create_status_table(
                    final, self.candidate_name, self.baseline_name, outcome.verdict
                ),
                title="[bold]Final Results[/bold]",
            )
        )

        self.console.print(score_line(self.candidate_name, self.baseline_name, outcome.stats))
        self.console.print(elo_line(final))

        if outcome.verdict is Verdict.ACCEPT_H1:
            self.console.print(
                f"\n[bold green]✓ H1 Accepted:[/bold green] {self.candidate_name} is "
                f"{self.elo1}+ Elo stronger than {self.baseline_name}"
            )
        elif outcome.verdict is Verdict.ACCEPT_H0:
            self.console.print(
                f"\n[bold red]✗ H0 Accepted:[/bold red] {self.candidate_name} is NOT "
                f"significantly stronger than {self.baseline_name}"
            )
        elif outcome.verdict is Verdict.INCONCLUSIVE:
            self.console.print(
                "\n[bold yellow]? Inconclusive:[/bold yellow] "
                "Max games reached without conclusive result"
            )
        if outcome.decided_at is not None:
            self.console.print(f"Decided after {outcome.decided_at} games")

        if self.wandb_run is not None:
            summary = self.wandb_run.summary
            summary["final_verdict"] = outcome.verdict.value if outcome.verdict else "fixed"
            summary["final_elo"] = final.elo_estimate
            summary["final_elo_error"] = final.elo_error
            summary["final_games"] = outcome.stats.games
            summary["final_wins"] = outcome.stats.wins
            summary["final_losses"] = outcome.stats.losses
            summary["final_draws"] = outcome.stats.draws
            if self.pgn_writer is not None and self.pgn_writer.game_count:
                self.wandb_run.save(str(self.pgn_writer.path))
            self.wandb_run.finish()
