"""Match controller: the single loop that consumes game results.

Results flow scheduler → aggregator → SPRT decision → reporter. The first
decisive verdict is latched and turned into a stop signal for the scheduler;
games already in flight still complete and are counted.
"""

from collections.abc import Sequence
from dataclasses import dataclass

from loguru import logger

from elobench.errors import ScheduleError
from elobench.tournament.aggregator import MatchStatistics, OutcomeAggregator
from elobench.tournament.report import MatchReporter
from elobench.tournament.scheduler import MatchScheduler
from elobench.tournament.sprt import SPRTCalculator, SPRTResult, Verdict


@dataclass(frozen=True)
class MatchOutcome:
    """Final state of a match."""

    stats: MatchStatistics
    sprt: SPRTResult | None  # Final recompute; None in fixed-games mode
    verdict: Verdict | None  # Latched verdict; None in fixed-games mode
    decided_at: int | None = None  # Games completed when the verdict was reached


def run_match(
    scheduler: MatchScheduler,
    aggregator: OutcomeAggregator,
    reporter: MatchReporter | None,
    openings: Sequence[str],
    *,
    concurrency: int,
    max_games: int,
    color_repeat: bool = True,
    sprt: SPRTCalculator | None = None,
) -> MatchOutcome:
    """Play a match until the game cap or an SPRT verdict.

    Args:
        scheduler: Game scheduler for the two builds.
        aggregator: Sole owner of the running score.
        reporter: Progress and result output, or None for silent runs.
        openings: Ordered opening pool.
        concurrency: Games played at once.
        max_games: Game cap.
        color_repeat: Replay each opening with colors swapped.
        sprt: Decision engine; None plays exactly ``max_games`` games.

    Returns:
        MatchOutcome with the final statistics and verdict.

    Raises:
        ScheduleError: If the scheduler fails. When an SPRT verdict was
            already reached the outcome is reported first and attached to
            the error.
    """
    verdict = Verdict.CONTINUE if sprt is not None else None
    decided_at = None
    sprt_result = None
    failure: ScheduleError | None = None

    if reporter is not None:
        reporter.start(max_games)

    try:
        try:
            for result in scheduler.schedule(
                openings, concurrency=concurrency, max_games=max_games, color_repeat=color_repeat
            ):
                stats = aggregator.record(result)

                if sprt is not None:
                    sprt_result = sprt.update(stats)
                    if verdict is Verdict.CONTINUE and sprt_result.verdict in (
                        Verdict.ACCEPT_H0,
                        Verdict.ACCEPT_H1,
                    ):
                        verdict = sprt_result.verdict
                        decided_at = stats.games
                        logger.info(
                            f"SPRT {verdict.value} after {stats.games} games "
                            f"(LLR {sprt_result.llr:.3f})"
                        )
                        scheduler.stop()

                if reporter is not None:
                    reporter.game_finished(result, stats, sprt_result)
        finally:
            if reporter is not None:
                reporter.close()
    except ScheduleError as e:
        if decided_at is None:
            raise
        logger.error(f"Scheduler failed after the SPRT verdict was reached: {e}")
        failure = e

    stats = aggregator.snapshot()
    if sprt is not None:
        sprt_result = sprt.update(stats)
        if verdict is Verdict.CONTINUE:
            # The cap was reached without crossing a bound
            verdict = Verdict.INCONCLUSIVE
            decided_at = stats.games

    outcome = MatchOutcome(stats=stats, sprt=sprt_result, verdict=verdict, decided_at=decided_at)
    if reporter is not None:
        reporter.finish(outcome)
    if failure is not None:
        failure.outcome = outcome
        raise failure
    return outcome
