"""
Server bootstrap: uvicorn listener wired to readiness and the shutdown controller.
"""

import asyncio
import logging
import signal
import sys
import threading
from typing import Optional

import uvicorn

from logcore import attach_category_handlers, setup_logging
from logviewer.api import create_app
from logviewer.config import ServerConfig
from logviewer.logs import LogDirectoryReader
from logviewer.readiness import ReadinessState
from logviewer.shutdown import ShutdownController

logger = logging.getLogger(__name__)


class ServerListener:
    """Adapts a uvicorn server to the controller's close(on_closed) contract"""

    def __init__(self, server: uvicorn.Server):
        self.server = server
        self._on_closed = None

    def close(self, on_closed) -> None:
        # uvicorn stops accepting, drains open connections, then serve() returns
        self._on_closed = on_closed
        self.server.should_exit = True

    def closed(self) -> None:
        """Called once serve() has returned"""
        callback, self._on_closed = self._on_closed, None
        if callback is not None:
            callback()


class LogViewerServer(uvicorn.Server):
    """uvicorn server whose signals and readiness go through our lifecycle objects"""

    def __init__(self, config: uvicorn.Config, controller: ShutdownController):
        super().__init__(config)
        self.controller = controller
        self.listener = ServerListener(self)

    def handle_exit(self, sig, frame) -> None:
        self.controller.request_shutdown(signal.Signals(sig).name)

    async def startup(self, sockets=None) -> None:
        await super().startup(sockets=sockets)
        if self.should_exit:
            return

        asyncio.get_running_loop().set_exception_handler(self._handle_loop_exception)
        self.controller.attach_listener(self.listener)
        logger.info(f'Server running at http://{self.config.host}:{self.config.port}')
        self.controller.readiness.set_ready(True)

    def _handle_loop_exception(self, loop, context) -> None:
        exc = context.get('exception')
        logger.error(
            f"Unhandled rejection: {context.get('message')}",
            exc_info=exc,
            extra={'context': {'task': repr(context.get('task') or context.get('future'))}}
        )
        self.controller.request_shutdown('unhandledRejection')


def install_fault_hooks(controller: ShutdownController) -> None:
    """Escalate uncaught exceptions in the main thread and worker threads"""

    def handle_uncaught(exc_type, exc, tb):
        logger.critical('Uncaught exception', exc_info=(exc_type, exc, tb))
        controller.request_shutdown('uncaughtException')

    def handle_thread_exception(args):
        if args.exc_type is SystemExit:
            return
        logger.critical(
            f'Uncaught exception in thread {args.thread.name if args.thread else "?"}',
            exc_info=(args.exc_type, args.exc_value, args.exc_traceback)
        )
        controller.request_shutdown('uncaughtException')

    sys.excepthook = handle_uncaught
    threading.excepthook = handle_thread_exception


def build_server(config: ServerConfig, readiness: Optional[ReadinessState] = None,
                 controller: Optional[ShutdownController] = None) -> LogViewerServer:
    """Assemble app, readiness state, shutdown controller and uvicorn server"""
    readiness = readiness or ReadinessState()
    controller = controller or ShutdownController(readiness, timeout=config.shutdown_timeout)

    def escalate(exc: Exception) -> None:
        controller.request_shutdown('uncaughtException')

    app = create_app(
        readiness=readiness,
        reader=LogDirectoryReader(config.log_dir),
        static_dir=config.static_dir if config.serve_static else None,
        on_fault=escalate,
    )
    uvicorn_config = uvicorn.Config(
        app,
        host=config.host,
        port=config.port,
        log_config=None,
        log_level=config.log_level.lower(),
    )
    return LogViewerServer(uvicorn_config, controller)


def run_server(config: ServerConfig) -> None:
    """
    Run until shutdown.

    Exits the process: 0 after a graceful close, 1 when the forced-exit
    timer fires first or the listener cannot be bound.
    """
    setup_logging(level=config.log_level, use_json=config.json_logs)
    if config.file_logging:
        attach_category_handlers(logging.getLogger('logviewer'), config.log_dir)

    server = build_server(config)
    install_fault_hooks(server.controller)

    logger.info('Environment', extra={'context': config.summary()})

    try:
        server.run()
    except SystemExit:
        # uvicorn exits this way when the port cannot be bound
        if not server.started and server.controller.exit_code is None:
            logger.error(f'Failed to start server on {config.host}:{config.port}')
        raise

    server.listener.closed()
