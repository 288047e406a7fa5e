"""Configuration management utilities."""

from elobench.configs.loader import compose_run_config, load_config, save_config
from elobench.configs.schema import (
    BuildConfig,
    MatchConfig,
    OpeningsConfig,
    OutputConfig,
    RunConfig,
    SPRTConfig,
    WandbConfig,
    WorkspaceConfig,
    config_from_dict,
    config_to_dict,
)

__all__ = [
    "BuildConfig",
    "MatchConfig",
    "OpeningsConfig",
    "OutputConfig",
    "RunConfig",
    "SPRTConfig",
    "WandbConfig",
    "WorkspaceConfig",
    "compose_run_config",
    "config_from_dict",
    "config_to_dict",
    "load_config",
    "save_config",
]
