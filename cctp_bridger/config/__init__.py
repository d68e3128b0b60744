"""Configuration utilities for the bridger."""

from .loader import (
    AttestationConfig,
    BridgerConfig,
    ChainConfig,
    ConfigError,
    DefaultsConfig,
    load_config,
)

__all__ = [
    "AttestationConfig",
    "BridgerConfig",
    "ChainConfig",
    "ConfigError",
    "DefaultsConfig",
    "load_config",
]
