"""
PlugHost Command Line Interface.

Provides command-line access to plugin management.
"""

from plughost.cli.main import main, cli

__all__ = ["main", "cli"]
