"""
LogCore: structured JSON logging plus the category file writer that feeds
the log viewer.
"""

import json
import logging
import threading
from datetime import datetime, timezone
from pathlib import Path

PLAIN_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

# Directory names shared with logviewer.logs.LogCategory
ERROR_CATEGORY = 'errors'
SUCCESS_CATEGORY = 'successes'


class JSONFormatter(logging.Formatter):
    """
    Custom formatter that outputs structured JSON logs.

    Output format:
    {
        "timestamp": "2026-02-08T20:30:00.123Z",
        "level": "INFO",
        "logger": "logviewer.server",
        "message": "Server running at http://0.0.0.0:3000",
        "context": {...}  # Optional extra fields
    }
    """

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON"""
        log_data = {
            'timestamp': datetime.fromtimestamp(record.created, tz=timezone.utc)
            .isoformat(timespec='milliseconds')
            .replace('+00:00', 'Z'),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
        }

        # logger.info(..., extra={'context': {...}})
        if getattr(record, 'context', None):
            log_data['context'] = record.context

        if record.exc_info:
            log_data['exception'] = {
                'type': record.exc_info[0].__name__,
                'message': str(record.exc_info[1]),
                'traceback': self.formatException(record.exc_info)
            }

        if record.levelno <= logging.DEBUG:
            log_data['source'] = {
                'file': record.pathname,
                'line': record.lineno,
                'function': record.funcName
            }

        return json.dumps(log_data, default=str)


def _make_formatter(use_json: bool) -> logging.Formatter:
    if use_json:
        return JSONFormatter()
    return logging.Formatter(PLAIN_FORMAT)


def setup_logging(level=logging.INFO, use_json: bool = True) -> logging.Logger:
    """
    Configure the root logger with a single console handler.

    Library loggers (uvicorn, fastapi, logviewer.*) propagate here, so the
    whole process logs in one format. Calling it again replaces the handler
    installed by a previous call instead of stacking another one.
    """
    root = logging.getLogger()
    root.setLevel(level)

    for handler in list(root.handlers):
        if getattr(handler, '_logcore_console', False):
            root.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setFormatter(_make_formatter(use_json))
    handler._logcore_console = True
    root.addHandler(handler)
    return root


class CategoryFileHandler(logging.Handler):
    """
    Writes plain-text records to daily files under <log_dir>/<category>/.

    File names look like ``app-2026-02-08-error.log``; a new file is opened
    when the UTC date changes.
    """

    def __init__(self, log_dir, category: str, prefix: str = 'app', level=logging.NOTSET):
        super().__init__(level)
        self.directory = Path(log_dir) / category
        self.category = category
        self.prefix = prefix
        self.suffix = 'error' if category == ERROR_CATEGORY else 'success'
        self._stream = None
        self._stream_date = None
        self._file_lock = threading.Lock()
        self.setFormatter(logging.Formatter(PLAIN_FORMAT))

    def path_for(self, date_str: str) -> Path:
        """Get the file path for a given YYYY-MM-DD date"""
        return self.directory / f'{self.prefix}-{date_str}-{self.suffix}.log'

    def _open_for_today(self):
        date_str = datetime.now(timezone.utc).strftime('%Y-%m-%d')
        if self._stream is not None and self._stream_date == date_str:
            return self._stream

        if self._stream is not None:
            self._stream.close()
        self.directory.mkdir(parents=True, exist_ok=True)
        self._stream = open(self.path_for(date_str), 'a', encoding='utf-8')
        self._stream_date = date_str
        return self._stream

    def emit(self, record: logging.LogRecord) -> None:
        try:
            line = self.format(record)
            with self._file_lock:
                stream = self._open_for_today()
                stream.write(line + '\n')
                stream.flush()
        except Exception:
            self.handleError(record)

    def close(self) -> None:
        with self._file_lock:
            if self._stream is not None:
                self._stream.close()
                self._stream = None
        super().close()


class _BelowLevelFilter(logging.Filter):
    """Pass only records below a level"""

    def __init__(self, level: int):
        super().__init__()
        self.level = level

    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno < self.level


def attach_category_handlers(logger: logging.Logger, log_dir, prefix: str = 'app'):
    """
    Route a logger's records into the error and success log directories.

    ERROR and above land in ``errors/``, everything else in ``successes/``.
    Existing category handlers for the same directory are not duplicated.

    Returns:
        Tuple of (error_handler, success_handler)
    """
    error_dir = Path(log_dir) / ERROR_CATEGORY
    existing = {
        h.category: h for h in logger.handlers
        if isinstance(h, CategoryFileHandler) and h.directory.parent == Path(log_dir)
    }
    if ERROR_CATEGORY in existing and SUCCESS_CATEGORY in existing:
        return existing[ERROR_CATEGORY], existing[SUCCESS_CATEGORY]

    error_handler = CategoryFileHandler(log_dir, ERROR_CATEGORY, prefix, level=logging.ERROR)
    success_handler = CategoryFileHandler(log_dir, SUCCESS_CATEGORY, prefix)
    success_handler.addFilter(_BelowLevelFilter(logging.ERROR))

    logger.addHandler(error_handler)
    logger.addHandler(success_handler)
    logging.getLogger(__name__).debug(
        'Category file logging enabled', extra={'context': {'error_dir': str(error_dir)}}
    )
    return error_handler, success_handler
