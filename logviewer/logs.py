"""
Listing and reading log files under <log_dir>/<category>/.

The directory layout is written by an external logger (see
logcore.attach_category_handlers); this module only observes it.
"""

import logging
import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import List

logger = logging.getLogger(__name__)

LOG_EXTENSION = '.log'


class LogViewerError(Exception):
    """Base error for log retrieval"""
    pass


class UnknownCategory(LogViewerError):
    """URL segment does not name a log category"""
    pass


class InvalidLogName(LogViewerError):
    """Filename is empty or would escape the category directory"""
    pass


class LogNotFound(LogViewerError):
    """No such log file"""
    pass


class LogReadError(LogViewerError):
    """Log file exists but could not be read"""
    pass


class LogCategory(str, Enum):
    ERRORS = 'errors'
    SUCCESSES = 'successes'

    @property
    def label(self) -> str:
        return 'Error Logs' if self is LogCategory.ERRORS else 'Success Logs'

    @property
    def noun(self) -> str:
        return 'error' if self is LogCategory.ERRORS else 'success'


def parse_category(name: str) -> LogCategory:
    try:
        return LogCategory(name)
    except ValueError:
        raise UnknownCategory(f'Unknown log category: {name!r}')


@dataclass(frozen=True)
class LogFile:
    name: str
    category: LogCategory
    path: Path


def validate_log_name(filename: str) -> str:
    """
    Reject names that are not a single plain path component.

    Raises:
        InvalidLogName: For empty names, separators, NUL bytes, '.'/'..'
            and absolute paths
    """
    if not filename or not filename.strip():
        raise InvalidLogName('Log file name is required')
    if '\x00' in filename:
        raise InvalidLogName('Log file name contains a NUL byte')
    if '/' in filename or '\\' in filename or (os.altsep and os.altsep in filename):
        raise InvalidLogName('Log file name must not contain path separators')
    if filename in ('.', '..'):
        raise InvalidLogName('Log file name must not reference a parent directory')
    if os.path.isabs(filename):
        raise InvalidLogName('Log file name must not be an absolute path')
    return filename


class LogDirectoryReader:
    """Reads log files for each LogCategory below a fixed base directory"""

    def __init__(self, base_dir):
        self.base_dir = Path(base_dir)

    def category_dir(self, category: LogCategory) -> Path:
        return self.base_dir / LogCategory(category).value

    def list_logs(self, category: LogCategory) -> List[str]:
        """
        List log file names in a category, sorted lexicographically.

        Only names that read_log would accept are listed. Filesystem errors
        are logged and reported as an empty listing.
        """
        category = LogCategory(category)
        log_dir = self.category_dir(category)
        try:
            with os.scandir(log_dir) as entries:
                names = [
                    entry.name for entry in entries
                    if entry.name.endswith(LOG_EXTENSION) and entry.is_file()
                ]
        except OSError as e:
            logger.error(
                f'Failed to list {category.value} logs: {e}',
                extra={'context': {'category': category.value, 'directory': str(log_dir)}}
            )
            return []
        return sorted(name for name in names if self._is_servable(category, name))

    def _is_servable(self, category: LogCategory, filename: str) -> bool:
        try:
            self.resolve(category, filename)
        except InvalidLogName as e:
            logger.debug(f'Skipping {filename!r} in {category.value} listing: {e}')
            return False
        return True

    def resolve(self, category: LogCategory, filename: str) -> LogFile:
        """
        Map a requested file name to a path inside the category directory.

        Raises:
            InvalidLogName: If the name fails validation or resolves outside
                the category directory
        """
        validate_log_name(filename)
        category = LogCategory(category)
        log_dir = self.category_dir(category).resolve()
        path = (log_dir / filename).resolve()
        if path.parent != log_dir:
            raise InvalidLogName('Log file name resolves outside the log directory')
        return LogFile(name=filename, category=category, path=path)

    def read_log(self, category: LogCategory, filename: str) -> str:
        """
        Return the full text of a log file.

        Raises:
            InvalidLogName: Name failed validation
            LogNotFound: File does not exist or is not a log file
            LogReadError: File exists but could not be read
        """
        log_file = self.resolve(category, filename)
        if not log_file.name.endswith(LOG_EXTENSION):
            raise LogNotFound(f'The log file {filename} does not exist.')

        try:
            with open(log_file.path, 'r', encoding='utf-8') as f:
                return f.read()
        except FileNotFoundError:
            raise LogNotFound(f'The log file {filename} does not exist.')
        except (OSError, UnicodeDecodeError) as e:
            logger.error(
                f'Failed to read log file {filename}: {e}',
                extra={'context': {'category': log_file.category.value, 'file': filename}}
            )
            raise LogReadError('Failed to read log file.') from e
