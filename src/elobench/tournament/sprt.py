"""Sequential Probability Ratio Test (SPRT) for engine regression testing.

The test weighs two hypotheses about the candidate's Elo gain over the baseline,
H0: gain = elo0 (usually 0) against H1: gain = elo1 (a few Elo), with type I
and type II error rates alpha and beta.

After every game the Log Likelihood Ratio (LLR) is recomputed from the full
score; the test stops once it crosses the upper bound (accept H1) or the
lower bound (accept H0).

The likelihood is the draw-aware trinomial GSPRT used by fishtest: a game
scored x (1, 1/2 or 0) is modelled as normally distributed around the
hypothesis score s0 or s1, with the per-game variance estimated from the
observed win/draw/loss frequencies. The variance is the nuisance parameter
that carries the draw rate, and it is re-estimated on every update.

Drawn games still carry noise: the estimate gets an extra
``draw_variance * draw_rate**2`` term, so at the default hypotheses draws alone
take over a hundred games to accept H0. ``draw_variance`` is at least the
value that keeps the LLR non-decreasing in wins and non-increasing in losses
with draws held fixed.

References:
- https://www.chessprogramming.org/Sequential_Probability_Ratio_Test
- https://tests.stockfishchess.org/sprt_calc
"""

import math
from dataclasses import dataclass
from enum import Enum

from elobench.errors import StatError
from elobench.tournament.aggregator import MatchStatistics

# Added to each outcome count so that no frequency is ever 0 or 1
PSEUDO_COUNT = 0.01

# Score variance assigned to a sample made only of draws
DRAW_VARIANCE = 0.004

Z_95 = 1.959963984540054

# Elo reported for a perfect or zero score
ELO_CAP = 1000.0


class Verdict(Enum):
    """Decision of an SPRT test."""

    CONTINUE = "continue"  # Test not yet conclusive
    ACCEPT_H0 = "H0_accepted"  # No improvement
    ACCEPT_H1 = "H1_accepted"  # Improvement confirmed
    INCONCLUSIVE = "inconclusive"  # Game cap reached while still CONTINUE


@dataclass(frozen=True)
class SPRTParameters:
    """Fixed hypotheses and error bounds of one test."""

    elo0: float = 0.0
    elo1: float = 10.0
    alpha: float = 0.05  # Type I error rate (false positive)
    beta: float = 0.05  # Type II error rate (false negative)

    def __post_init__(self) -> None:
        if self.elo0 >= self.elo1:
            raise StatError(f"elo0 ({self.elo0}) must be less than elo1 ({self.elo1})")
        if not (0 < self.alpha < 1):
            raise StatError(f"alpha must be in (0, 1), got {self.alpha}")
        if not (0 < self.beta < 1):
            raise StatError(f"beta must be in (0, 1), got {self.beta}")

    @property
    def lower_bound(self) -> float:
        """Wald's lower bound: log(beta / (1 - alpha))."""
        return math.log(self.beta / (1 - self.alpha))

    @property
    def upper_bound(self) -> float:
        """Wald's upper bound: log((1 - beta) / alpha)."""
        return math.log((1 - self.beta) / self.alpha)


@dataclass(frozen=True)
class SPRTResult:
    """State of an SPRT test after a set of games."""

    # Current log-likelihood ratio
    llr: float

    # LLR bounds for decision making
    lower_bound: float  # Cross this → accept H0
    upper_bound: float  # Cross this → accept H1

    # Game statistics (candidate's perspective)
    games: int
    wins: int
    losses: int
    draws: int

    # Derived statistics
    score: float  # (wins + draws/2) / games
    elo_estimate: float  # Estimated Elo difference
    elo_error: float  # 95% confidence interval half-width
    los: float  # Likelihood of superiority

    verdict: Verdict

    @property
    def win_rate(self) -> float:
        return self.wins / self.games if self.games > 0 else 0.0

    @property
    def draw_rate(self) -> float:
        return self.draws / self.games if self.games > 0 else 0.0

    @property
    def loss_rate(self) -> float:
        return self.losses / self.games if self.games > 0 else 0.0

    @property
    def elo_bounds(self) -> tuple[float, float]:
        """95% confidence interval of the Elo difference."""
        return self.elo_estimate - self.elo_error, self.elo_estimate + self.elo_error

    @property
    def finished(self) -> bool:
        return self.verdict is not Verdict.CONTINUE


class SPRTCalculator:
    """SPRT decision engine using the logistic Elo model.

    ``update`` is a pure function of the statistics snapshot: calling it twice
    on the same snapshot yields the same LLR and verdict.

    Example:
        sprt = SPRTCalculator(SPRTParameters(elo0=0, elo1=10))

        result = sprt.update(MatchStatistics(wins=50, losses=45, draws=105))

        if result.verdict is Verdict.ACCEPT_H1:
            print("Candidate is stronger!")
        elif result.verdict is Verdict.ACCEPT_H0:
            print("No significant improvement")
    """

    def __init__(
        self,
        params: SPRTParameters | None = None,
        *,
        max_games: int | None = None,
    ) -> None:
        """Initialize SPRT calculator.

        Args:
            params: Hypotheses and error bounds. Defaults to elo0=0, elo1=10,
                alpha=beta=0.05.
            max_games: Game cap; reaching it while undecided yields INCONCLUSIVE.
        """
        self.params = params or SPRTParameters()
        self.max_games = max_games

        self.lower_bound = self.params.lower_bound
        self.upper_bound = self.params.upper_bound

        self._score0 = self.elo_to_score(self.params.elo0)
        self._score1 = self.elo_to_score(self.params.elo1)

        midpoint = (self._score0 + self._score1) / 2.0
        self.draw_variance = max(
            DRAW_VARIANCE,
            abs(2.0 * midpoint - 1.0) / (8.0 * max(midpoint, 1.0 - midpoint)),
        )

    @staticmethod
    def elo_to_score(elo: float) -> float:
        """Expected score of a side that is ``elo`` points stronger."""
        return 1.0 / (1.0 + 10.0 ** (-elo / 400.0))

    @staticmethod
    def score_to_elo(score: float) -> float:
        """Inverse of ``elo_to_score``, clamped to +/-1000 at perfect scores."""
        if not 0.0 < score < 1.0:
            return ELO_CAP if score >= 1.0 else -ELO_CAP
        return 400.0 * math.log10(score / (1.0 - score))

    def score_variance(self, stats: MatchStatistics) -> float:
        """Per-game score variance of the regularized outcome distribution.

        Each count gets PSEUDO_COUNT added, so the estimate is strictly
        positive even when only one kind of result has been seen. Draws add
        ``draw_variance`` times the squared draw rate.
        """
        wins = stats.wins + PSEUDO_COUNT
        losses = stats.losses + PSEUDO_COUNT
        draws = stats.draws + PSEUDO_COUNT
        total = wins + losses + draws

        p_win, p_loss, p_draw = wins / total, losses / total, draws / total
        mean = p_win + p_draw / 2.0
        return (
            p_win * (1.0 - mean) ** 2
            + p_draw * (0.5 - mean) ** 2
            + p_loss * mean**2
            + self.draw_variance * p_draw**2
        )

    def _log_ratio(self, x: float, variance: float) -> float:
        """ln(P1(x) / P0(x)) for one game scored x."""
        return ((x - self._score0) ** 2 - (x - self._score1) ** 2) / (2.0 * variance)

    def llr(self, stats: MatchStatistics) -> float:
        """Log Likelihood Ratio of H1 versus H0 for the given score."""
        if stats.games == 0:
            return 0.0

        variance = self.score_variance(stats)
        return (
            stats.wins * self._log_ratio(1.0, variance)
            + stats.draws * self._log_ratio(0.5, variance)
            + stats.losses * self._log_ratio(0.0, variance)
        )

    def _calculate_elo_error(self, stats: MatchStatistics) -> float:
        """Half-width of the 95% confidence interval for the Elo estimate.

        Uses the normal approximation on the trinomial score, mapped through
        the logistic curve.
        """
        total = stats.games
        if total < 2:
            return float("inf")

        score = stats.score
        variance = (stats.wins + stats.draws / 4.0) / total - score**2
        if variance <= 0.0 or not (0.0 < score < 1.0):
            return float("inf")

        margin = Z_95 * math.sqrt(variance / total)
        lower = self.score_to_elo(score - margin)
        upper = self.score_to_elo(score + margin)
        return (upper - lower) / 2.0

    @staticmethod
    def _calculate_los(stats: MatchStatistics) -> float:
        """Likelihood of superiority from decisive games."""
        decisive = stats.wins + stats.losses
        if decisive == 0:
            return 0.5
        return 0.5 * (1.0 + math.erf((stats.wins - stats.losses) / math.sqrt(2.0 * decisive)))

    def decide(self, llr: float, games: int) -> Verdict:
        if llr >= self.upper_bound:
            return Verdict.ACCEPT_H1
        if llr <= self.lower_bound:
            return Verdict.ACCEPT_H0
        if self.max_games is not None and games >= self.max_games:
            return Verdict.INCONCLUSIVE
        return Verdict.CONTINUE

    def update(self, stats: MatchStatistics) -> SPRTResult:
        """Recompute the test state for a statistics snapshot.

        Args:
            stats: Current candidate win/loss/draw counts.

        Returns:
            SPRTResult with current LLR, bounds, estimates and verdict.
        """
        llr = self.llr(stats)
        score = stats.score

        return SPRTResult(
            llr=llr,
            lower_bound=self.lower_bound,
            upper_bound=self.upper_bound,
            games=stats.games,
            wins=stats.wins,
            losses=stats.losses,
            draws=stats.draws,
            score=score,
            elo_estimate=self.score_to_elo(score) if stats.games > 0 else 0.0,
            elo_error=self._calculate_elo_error(stats),
            los=self._calculate_los(stats),
            verdict=self.decide(llr, stats.games),
        )

    def games_estimate(self, true_elo: float | None = None, draw_ratio: float = 0.0) -> int:
        """Estimate the number of games needed for the test to conclude.

        Args:
            true_elo: Assumed true Elo difference. If None, uses elo1.
            draw_ratio: Expected fraction of drawn games.

        Returns:
            Estimated number of games.
        """
        if true_elo is None:
            true_elo = self.params.elo1

        score = self.elo_to_score(true_elo)
        variance = max(score * (1.0 - score) - draw_ratio / 4.0, 1e-6)

        # Expected LLR contribution of one game under the true score
        midpoint = (self._score0 + self._score1) / 2.0
        drift = (self._score1 - self._score0) * (score - midpoint) / variance

        if abs(drift) < 1e-10:
            return 100000  # Very long test expected

        bound = self.upper_bound if drift > 0 else self.lower_bound
        return max(1, int(math.ceil(bound / drift)))
