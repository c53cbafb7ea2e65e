"""
PlugHost Core - configuration, logging and error types shared by the
plugin subsystem.
"""

from plughost.core.config import PlugHostConfig, load_config
from plughost.core.errors import ErrorKind, PluginError
from plughost.core.logging import get_logger, setup_logging
from plughost.core.result import Result

__all__ = [
    "PlugHostConfig",
    "load_config",
    "ErrorKind",
    "PluginError",
    "get_logger",
    "setup_logging",
    "Result",
]
