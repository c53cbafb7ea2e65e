"""
PlugHost - plugin lifecycle management for desktop host applications.

Discovers extension packages on disk, installs and uninstalls them safely
while the host may still hold their files open, and loads plugin code
behind a capability-query surface.
"""

__version__ = "1.0.0"
__author__ = "PlugHost Team"

from plughost.core.config import PlugHostConfig
from plughost.plugins.manager import PluginManager

__all__ = ["PlugHostConfig", "PluginManager", "__version__"]
