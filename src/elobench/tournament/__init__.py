"""Match play and statistics: scheduling, game play, SPRT and reporting."""

from elobench.tournament.aggregator import MatchStatistics, OutcomeAggregator
from elobench.tournament.game import (
    Game,
    GameResult,
    GameTermination,
    Outcome,
    Side,
    TimeControl,
)
from elobench.tournament.game_runner import GameConfig, GameRunner, UCIMatchEngine
from elobench.tournament.match import MatchOutcome, run_match
from elobench.tournament.openings import load_openings
from elobench.tournament.pgn import PGNWriter
from elobench.tournament.report import MatchReporter, init_wandb
from elobench.tournament.scheduler import MatchScheduler
from elobench.tournament.sprt import SPRTCalculator, SPRTParameters, SPRTResult, Verdict

__all__ = [
    "Game",
    "GameConfig",
    "GameResult",
    "GameRunner",
    "GameTermination",
    "MatchOutcome",
    "MatchReporter",
    "MatchScheduler",
    "MatchStatistics",
    "Outcome",
    "OutcomeAggregator",
    "PGNWriter",
    "SPRTCalculator",
    "SPRTParameters",
    "SPRTResult",
    "Side",
    "TimeControl",
    "UCIMatchEngine",
    "Verdict",
    "init_wandb",
    "load_openings",
    "run_match",
]
