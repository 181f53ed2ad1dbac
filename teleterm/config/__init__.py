"""Configuration loading for teleterm."""

from teleterm.config.loader import default_config_path, load_client_config, load_config
from teleterm.config.schema import ClientConfig, LogForwardingConfig, TerminalCardConfig

__all__ = [
    "ClientConfig",
    "LogForwardingConfig",
    "TerminalCardConfig",
    "default_config_path",
    "load_client_config",
    "load_config",
]
