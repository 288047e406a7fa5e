"""elobench: regression benchmarking for UCI chess engines.

Plays a candidate build of an engine against a baseline build and decides,
with a sequential probability ratio test, whether the candidate is stronger.

- `from elobench import run_benchmark, compose_run_config`
- `from elobench.tournament import SPRTCalculator, MatchScheduler`
"""

__version__ = "0.1.0"

# Re-export common entry points for convenience
from elobench.configs import compose_run_config, load_config, save_config
from elobench.pipeline import run_benchmark
from elobench.utils import setup_logging

__all__ = [
    "__version__",
    "compose_run_config",
    "load_config",
    "run_benchmark",
    "save_config",
    "setup_logging",
]
