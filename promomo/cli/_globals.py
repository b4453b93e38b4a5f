"""Process-wide CLI configuration set by the root callback."""

from typing import Optional

from promomo.cli.config import CLIConfig, get_config

_global_config: Optional[CLIConfig] = None


def set_global_config(config: CLIConfig) -> None:
    global _global_config
    _global_config = config


def get_global_config() -> CLIConfig:
    """Return the configuration of this invocation, resolving it from env when unset."""
    global _global_config
    if _global_config is None:
        _global_config = get_config()
    return _global_config
