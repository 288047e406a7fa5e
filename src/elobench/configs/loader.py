"""Configuration loading utilities.

Run defaults are packaged as YAML under ``conf/`` and composed with Hydra so
that command-line options can be expressed as ordinary Hydra overrides.
"""

from pathlib import Path
from typing import Any

from hydra import compose, initialize_config_dir
from loguru import logger
from omegaconf import DictConfig, OmegaConf

from elobench.configs.schema import RunConfig, config_from_dict, config_to_dict

CONF_DIR = Path(__file__).parent / "conf"


def load_config(config_path: str | Path, overrides: list[str] | None = None) -> DictConfig:
    """Load a configuration file with optional overrides.

    Args:
        config_path: Path to the YAML configuration file.
        overrides: Optional list of dotlist overrides (e.g., ["sprt.elo1=5"]).

    Returns:
        Merged configuration as a DictConfig.
    """
    config_path = Path(config_path)
    if not config_path.exists():
        msg = f"Config file not found: {config_path}"
        raise FileNotFoundError(msg)

    config = OmegaConf.load(config_path)

    if overrides:
        override_conf = OmegaConf.from_dotlist(overrides)
        config = OmegaConf.merge(config, override_conf)

    return config


def save_config(config: DictConfig | RunConfig | dict[str, Any], path: str | Path) -> None:
    """Save a configuration to a YAML file.

    Args:
        config: Configuration to save.
        path: Path to save the configuration to.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    if isinstance(config, RunConfig):
        config = config_to_dict(config)
    if not isinstance(config, DictConfig):
        config = OmegaConf.create(config)

    OmegaConf.save(config, path)


def compose_run_config(
    mode: str = "sprt",
    overrides: list[str] | None = None,
    user_config: str | Path | None = None,
) -> RunConfig:
    """Compose the run configuration for a command.

    Precedence, lowest first: packaged ``conf/<mode>.yaml``, an optional user
    YAML file, then Hydra overrides.

    Args:
        mode: Name of the packaged config ("sprt" or "bench").
        overrides: Hydra override strings (e.g., ["match.concurrency=4"]).
        user_config: Optional YAML file merged over the packaged defaults.

    Returns:
        Validated RunConfig.
    """
    with initialize_config_dir(config_dir=str(CONF_DIR), version_base=None):
        cfg = compose(config_name=mode)

    if user_config is not None:
        cfg = OmegaConf.merge(cfg, load_config(user_config))

    if overrides:
        # Re-compose so Hydra's override grammar applies on top of the merged file
        with initialize_config_dir(config_dir=str(CONF_DIR), version_base=None):
            override_cfg = compose(config_name=mode, overrides=list(overrides))
        cfg = OmegaConf.merge(cfg, _changed_keys(override_cfg, overrides))

    logger.debug(f"Configuration:\n{OmegaConf.to_yaml(cfg)}")
    return config_from_dict(OmegaConf.to_container(cfg, resolve=True))


def _changed_keys(cfg: DictConfig, overrides: list[str]) -> DictConfig:
    """Select only the keys named by overrides from a composed config."""
    selected = OmegaConf.create()
    for override in overrides:
        key = override.split("=", 1)[0].lstrip("+~")
        OmegaConf.update(selected, key, OmegaConf.select(cfg, key), force_add=True)
    return selected
