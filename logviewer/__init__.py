"""
logviewer: Health/readiness probes and a browser for on-disk log files

Serves /health and /ready for container orchestrators, lists and renders the
files under <log_dir>/errors and <log_dir>/successes, and drains in-flight
requests on SIGTERM/SIGINT before exiting.
"""

from logviewer.api import create_app
from logviewer.config import ConfigError, ServerConfig, load_config
from logviewer.logs import LogCategory, LogDirectoryReader
from logviewer.readiness import ReadinessState
from logviewer.shutdown import ShutdownController, ShutdownState

__all__ = [
    'ConfigError',
    'LogCategory',
    'LogDirectoryReader',
    'ReadinessState',
    'ServerConfig',
    'ShutdownController',
    'ShutdownState',
    'create_app',
    'load_config',
]
__version__ = '1.0.0'
