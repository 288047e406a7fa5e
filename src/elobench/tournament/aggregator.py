"""Running win/loss/draw tally from the candidate's perspective."""

import threading
from dataclasses import dataclass

from elobench.tournament.game import GameResult, Outcome, Side


@dataclass(frozen=True)
class MatchStatistics:
    """Immutable point-in-time snapshot of the match score."""

    wins: int = 0  # Candidate wins
    losses: int = 0  # Candidate losses
    draws: int = 0

    def __post_init__(self) -> None:
        if min(self.wins, self.losses, self.draws) < 0:
            raise ValueError(f"Negative game counts: {self}")

    @property
    def games(self) -> int:
        return self.wins + self.losses + self.draws

    @property
    def score(self) -> float:
        """Candidate score fraction, 0.5 before any game."""
        if self.games == 0:
            return 0.5
        return (self.wins + self.draws / 2.0) / self.games


class OutcomeAggregator:
    """Single-writer tally of completed games.

    All updates go through one lock, and readers only ever see immutable
    ``MatchStatistics`` snapshots, so a reader can never observe a partially
    applied update.

    Example:
        aggregator = OutcomeAggregator(candidate=Side.A)
        stats = aggregator.record(result)
        print(stats.wins, stats.losses, stats.draws)
    """

    def __init__(self, candidate: Side = Side.A) -> None:
        self.candidate = candidate
        self._lock = threading.Lock()
        self._stats = MatchStatistics()

    def record(self, result: GameResult) -> MatchStatistics:
        """Fold one game into the tally and return the new snapshot."""
        return self.record_outcome(result.outcome)

    def record_outcome(self, outcome: Outcome) -> MatchStatistics:
        with self._lock:
            wins, losses, draws = self._stats.wins, self._stats.losses, self._stats.draws
            if outcome is Outcome.DRAW:
                draws += 1
            elif outcome is Outcome.win_for(self.candidate):
                wins += 1
            else:
                losses += 1
            self._stats = MatchStatistics(wins=wins, losses=losses, draws=draws)
            return self._stats

    def snapshot(self) -> MatchStatistics:
        with self._lock:
            return self._stats
