"""
Log Viewer - FastAPI app with health probes and the log browsing pages
"""
import asyncio
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Optional

from fastapi import FastAPI, Request
from fastapi.exception_handlers import http_exception_handler
from fastapi.responses import HTMLResponse, JSONResponse
from fastapi.staticfiles import StaticFiles
from pydantic import BaseModel
from starlette.exceptions import HTTPException as StarletteHTTPException

from logviewer import views
from logviewer.logs import (
    InvalidLogName,
    LogCategory,
    LogDirectoryReader,
    LogNotFound,
    LogReadError,
    UnknownCategory,
    parse_category,
)
from logviewer.readiness import ReadinessState

logger = logging.getLogger(__name__)


class SimulatedError(Exception):
    """Deliberate fault raised by GET /error; handled, never escalated"""
    pass


# Models
class ProbeStatus(BaseModel):
    status: str
    timestamp: str


def utc_timestamp() -> str:
    """ISO-8601 UTC time with millisecond precision, e.g. 2026-02-08T20:30:00.123Z"""
    return datetime.now(timezone.utc).isoformat(timespec='milliseconds').replace('+00:00', 'Z')


def _category_or_404(name: str) -> LogCategory:
    try:
        return parse_category(name)
    except UnknownCategory:
        raise StarletteHTTPException(status_code=404)


def create_app(
    readiness: ReadinessState,
    reader: LogDirectoryReader,
    static_dir: Optional[Path] = None,
    on_fault: Optional[Callable[[Exception], None]] = None
) -> FastAPI:
    """
    Build the application.

    Args:
        readiness: State consulted by /ready
        reader: Log directory reader backing the /logs pages
        static_dir: Directory served under /static, or None to disable
        on_fault: Called with any exception no handler recovered from
    """
    app = FastAPI(title='Log Viewer', description='Health probes and log file browser')
    app.state.readiness = readiness
    app.state.reader = reader

    if static_dir is not None:
        if Path(static_dir).is_dir():
            app.mount('/static', StaticFiles(directory=str(static_dir)), name='static')
        else:
            logger.warning(f'Static directory not found, not serving assets: {static_dir}')

    # Endpoints
    @app.get('/health', response_model=ProbeStatus)
    async def health():
        """Liveness probe"""
        return ProbeStatus(status='OK', timestamp=utc_timestamp())

    @app.get('/ready', response_model=ProbeStatus, responses={503: {'model': ProbeStatus}})
    async def ready():
        """Readiness probe: 503 until the listener is bound and again once shutdown starts"""
        if readiness.is_ready:
            return ProbeStatus(status='Ready', timestamp=utc_timestamp())
        return JSONResponse(
            status_code=503,
            content=ProbeStatus(status='Not Ready', timestamp=utc_timestamp()).model_dump()
        )

    @app.get('/', response_class=HTMLResponse)
    async def index():
        return HTMLResponse(views.render_index())

    @app.get('/error')
    async def simulate_error():
        raise SimulatedError('Simulated error!')

    @app.get('/logs/{category}', response_class=HTMLResponse)
    async def list_logs(category: str):
        """List the .log files in a category"""
        log_category = _category_or_404(category)
        files = await asyncio.to_thread(reader.list_logs, log_category)
        return HTMLResponse(views.render_log_list(log_category, files))

    @app.get('/logs/{category}/', response_class=HTMLResponse)
    async def missing_log_name(category: str):
        log_category = _category_or_404(category)
        return HTMLResponse(
            views.render_bad_request(log_category, 'Log file name is required'),
            status_code=400
        )

    @app.get('/logs/{category}/{filename}', response_class=HTMLResponse)
    async def show_log(category: str, filename: str):
        """Render one log file"""
        log_category = _category_or_404(category)
        try:
            content = await asyncio.to_thread(reader.read_log, log_category, filename)
        except InvalidLogName as e:
            logger.warning(
                f'Rejected log file name: {e}',
                extra={'context': {'category': log_category.value, 'file': filename}}
            )
            return HTMLResponse(views.render_bad_request(log_category, str(e)), status_code=400)
        except LogNotFound:
            return HTMLResponse(views.render_log_not_found(log_category, filename), status_code=404)
        except LogReadError:
            return HTMLResponse(views.render_read_failure(log_category), status_code=500)

        return HTMLResponse(views.render_log_file(log_category, filename, content))

    # Error handlers
    @app.exception_handler(StarletteHTTPException)
    async def not_found_handler(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 404:
            return HTMLResponse(views.render_not_found(), status_code=404)
        return await http_exception_handler(request, exc)

    @app.exception_handler(SimulatedError)
    async def simulated_error_handler(request: Request, exc: SimulatedError):
        logger.error(
            f'Handled fault on {request.url.path}: {exc}',
            exc_info=exc,
            extra={'context': {'path': request.url.path}}
        )
        return HTMLResponse(views.render_error(str(exc)), status_code=500)

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.error(
            f'Unhandled error on {request.url.path}',
            exc_info=exc,
            extra={'context': {'path': request.url.path, 'method': request.method}}
        )
        if on_fault is not None:
            on_fault(exc)
        return HTMLResponse(views.render_error(), status_code=500)

    return app
