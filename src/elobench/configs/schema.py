"""Strongly-typed configuration schemas for elobench runs.

These dataclasses are the single source of truth for run options. Defaults
mirror the packaged YAML files under ``conf/``.
"""

from dataclasses import asdict, dataclass, field
from typing import Any


@dataclass
class SPRTConfig:
    """Configuration for the sequential probability ratio test."""

    enabled: bool = True
    elo0: float = 0.0
    elo1: float = 10.0
    alpha: float = 0.05
    beta: float = 0.05


@dataclass
class WorkspaceConfig:
    """Configuration for workspace provisioning."""

    repository: str | None = None  # None = enclosing git repository of the cwd
    baseline: str = "master"
    root: str = "/tmp"
    prefix: str = "elobench"
    cleanup: bool = False  # Remove both workspaces after the run


@dataclass
class BuildConfig:
    """Configuration for the build pipeline."""

    binary: str = "uci"
    command: list[str] = field(
        default_factory=lambda: ["cargo", "build", "--release", "--bin", "{binary}"]
    )
    artifact: str = "target/release/{binary}"


@dataclass
class MatchConfig:
    """Configuration for the match scheduler."""

    concurrency: int = 1
    games: int = 2  # Games per round
    rounds: int = 2500
    repeat: bool = True  # Play each opening twice with colors swapped
    max_moves: int = 200  # Full moves before a draw is adjudicated
    time_control: str = "inf/10+0.1"
    rating_interval: int = 10

    def __post_init__(self) -> None:
        """Validate."""
        if self.concurrency < 1:
            msg = f"concurrency must be >= 1, got {self.concurrency}"
            raise ValueError(msg)
        if self.games < 1 or self.rounds < 1:
            msg = f"games and rounds must be >= 1, got {self.games}x{self.rounds}"
            raise ValueError(msg)

    @property
    def max_games(self) -> int:
        """Total game cap."""
        return self.games * self.rounds


@dataclass
class OpeningsConfig:
    """Configuration for the opening book."""

    path: str = "etc/8moves_v3.pgn"  # Relative paths resolve against the baseline workspace
    shuffle: bool = False
    seed: int | None = None
    plies: int | None = None  # PGN plies to play per opening (None = whole game)


@dataclass
class WandbConfig:
    """Configuration for Weights & Biases logging."""

    enabled: bool = False
    project: str = "elobench"
    entity: str | None = None
    tags: list[str] = field(default_factory=list)


@dataclass
class OutputConfig:
    """Configuration for run output."""

    pgn_path: str | None = "games.pgn"
    log_file: str | None = None
    wandb: WandbConfig = field(default_factory=WandbConfig)


@dataclass
class RunConfig:
    """Top-level configuration combining all sub-configs."""

    sprt: SPRTConfig = field(default_factory=SPRTConfig)
    workspace: WorkspaceConfig = field(default_factory=WorkspaceConfig)
    build: BuildConfig = field(default_factory=BuildConfig)
    match: MatchConfig = field(default_factory=MatchConfig)
    openings: OpeningsConfig = field(default_factory=OpeningsConfig)
    output: OutputConfig = field(default_factory=OutputConfig)

    verbose: bool = False


def config_from_dict(data: dict[str, Any]) -> RunConfig:
    """Create RunConfig from a dictionary (e.g., from OmegaConf).

    Args:
        data: Dictionary with configuration values.

    Returns:
        RunConfig instance.
    """
    output = dict(data.get("output", {}))
    wandb = WandbConfig(**output.pop("wandb", {}))
    return RunConfig(
        sprt=SPRTConfig(**data.get("sprt", {})),
        workspace=WorkspaceConfig(**data.get("workspace", {})),
        build=BuildConfig(**data.get("build", {})),
        match=MatchConfig(**data.get("match", {})),
        openings=OpeningsConfig(**data.get("openings", {})),
        output=OutputConfig(wandb=wandb, **output),
        verbose=data.get("verbose", False),
    )


def config_to_dict(config: RunConfig) -> dict[str, Any]:
    """Convert RunConfig to a dictionary for serialization."""
    return asdict(config)
