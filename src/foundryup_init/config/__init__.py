"""Run configuration for foundryup-init."""

from foundryup_init.config.loader import ConfigError, load_config
from foundryup_init.config.models import InstallerConfig

__all__ = [
    "ConfigError",
    "InstallerConfig",
    "load_config",
]
