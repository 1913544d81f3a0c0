"""
logcore: Standardized JSON logging library

Provides structured JSON logging for the server process and the category
file writer (errors/successes) whose output the log viewer serves.
"""

from logcore.logger import (
    CategoryFileHandler,
    JSONFormatter,
    attach_category_handlers,
    setup_logging,
)

__all__ = [
    'CategoryFileHandler',
    'JSONFormatter',
    'attach_category_handlers',
    'setup_logging',
]
__version__ = '1.0.0'
