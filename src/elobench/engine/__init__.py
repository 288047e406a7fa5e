"""UCI engine wrappers for elobench."""

from elobench.engine.uci_engine import UCIEngine, UCIEngineError, UCIEngineTimeout

__all__ = [
    "UCIEngine",
    "UCIEngineError",
    "UCIEngineTimeout",
]
