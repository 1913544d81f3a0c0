"""
Unit tests for the server bootstrap wiring.
"""

import signal
import sys
import threading
from unittest.mock import Mock, patch

import pytest

from logviewer.config import ServerConfig
from logviewer.readiness import ReadinessState
from logviewer.server import (
    LogViewerServer,
    ServerListener,
    build_server,
    install_fault_hooks,
    run_server,
)
from logviewer.shutdown import ShutdownController, ShutdownState


@pytest.fixture
def exits():
    return []


@pytest.fixture
def config(tmp_path):
    return ServerConfig(port=3999, log_dir=tmp_path, file_logging=False, shutdown_timeout_ms=1000)


@pytest.fixture
def controller(exits):
    return ShutdownController(
        ReadinessState(),
        timeout=1.0,
        exit_func=exits.append,
        timer_factory=lambda delay, callback: Mock()
    )


@pytest.fixture
def server(config, controller):
    return build_server(config, readiness=controller.readiness, controller=controller)


class TestServerListener:
    """Test ServerListener"""

    def test_close_requests_exit(self):
        uvicorn_server = Mock(should_exit=False)
        listener = ServerListener(uvicorn_server)
        on_closed = Mock()

        listener.close(on_closed)

        assert uvicorn_server.should_exit is True
        on_closed.assert_not_called()

    def test_closed_runs_callback_once(self):
        listener = ServerListener(Mock())
        on_closed = Mock()
        listener.close(on_closed)

        listener.closed()
        listener.closed()

        on_closed.assert_called_once_with()

    def test_closed_without_close_is_noop(self):
        ServerListener(Mock()).closed()


class TestLogViewerServer:
    """Test LogViewerServer lifecycle hooks"""

    def test_build_server_uses_config(self, server, config):
        assert isinstance(server, LogViewerServer)
        assert server.config.host == config.host
        assert server.config.port == 3999
        assert server.controller.timeout == 1.0

    def test_default_controller_timeout(self, config):
        server = build_server(config)

        assert server.controller.timeout == 1.0
        assert server.controller.readiness.is_ready is False

    def test_signal_routes_to_controller(self, server, controller):
        """Should turn SIGTERM into a graceful shutdown request"""
        controller.attach_listener(server.listener)

        server.handle_exit(signal.SIGTERM, None)

        assert controller.state is ShutdownState.SHUTTING_DOWN
        assert controller.request.cause == 'SIGTERM'
        assert server.should_exit is True

    def test_second_signal_ignored(self, server, controller):
        controller.attach_listener(server.listener)

        server.handle_exit(signal.SIGTERM, None)
        server.handle_exit(signal.SIGINT, None)

        assert controller.request.cause == 'SIGTERM'

    def test_signal_before_bind_exits_immediately(self, server, controller, exits):
        """Should exit 0 when no listener has been attached yet"""
        server.handle_exit(signal.SIGINT, None)

        assert exits == [0]

    def test_loop_exception_triggers_shutdown(self, server, controller):
        controller.attach_listener(server.listener)

        server._handle_loop_exception(None, {'message': 'Task exception was never retrieved',
                                             'exception': RuntimeError('lost')})

        assert controller.request.cause == 'unhandledRejection'
        assert controller.readiness.is_ready is False

    def test_app_fault_hook_triggers_shutdown(self, server, controller):
        """Should escalate faults reported by the app"""
        from fastapi.testclient import TestClient

        controller.attach_listener(server.listener)
        controller.readiness.set_ready(True)
        app = server.config.app

        @app.get('/explode')
        async def explode():
            raise RuntimeError('boom')

        client = TestClient(app, raise_server_exceptions=False)
        assert client.get('/explode').status_code == 500

        assert controller.request.cause == 'uncaughtException'
        assert client.get('/ready').status_code == 503

    def test_startup_marks_ready_and_attaches_listener(self, server, controller):
        """Should become ready only after uvicorn's startup succeeds"""
        import asyncio

        async def fake_startup(self, sockets=None):
            pass

        with patch('uvicorn.Server.startup', fake_startup):
            asyncio.run(server.startup())

        assert controller.readiness.is_ready is True
        server.handle_exit(signal.SIGTERM, None)
        assert server.should_exit is True
        assert controller.state is ShutdownState.SHUTTING_DOWN

    def test_failed_startup_stays_not_ready(self, server, controller):
        import asyncio

        async def fake_startup(self, sockets=None):
            self.should_exit = True

        with patch('uvicorn.Server.startup', fake_startup):
            asyncio.run(server.startup())

        assert controller.readiness.is_ready is False


class TestFaultHooks:
    """Test install_fault_hooks"""

    @pytest.fixture(autouse=True)
    def restore_hooks(self):
        original_sys, original_thread = sys.excepthook, threading.excepthook
        yield
        sys.excepthook, threading.excepthook = original_sys, original_thread

    def test_thread_exception_triggers_shutdown(self, controller):
        controller.attach_listener(Mock())
        install_fault_hooks(controller)

        worker = threading.Thread(target=lambda: 1 / 0)
        worker.start()
        worker.join()

        assert controller.request.cause == 'uncaughtException'

    def test_uncaught_exception_triggers_shutdown(self, controller):
        controller.attach_listener(Mock())
        install_fault_hooks(controller)

        try:
            raise KeyError('missing')
        except KeyError:
            sys.excepthook(*sys.exc_info())

        assert controller.request.cause == 'uncaughtException'


class TestRunServer:
    """Test run_server orchestration"""

    def test_graceful_run_exits_zero(self, config):
        """Should exit 0 once serve() returns after a shutdown request"""
        def fake_run(self, sockets=None):
            self.controller.attach_listener(self.listener)
            self.handle_exit(signal.SIGTERM, None)

        with patch.object(LogViewerServer, 'run', fake_run), \
             patch('logviewer.server.install_fault_hooks'), \
             patch('logviewer.server.setup_logging'):
            with pytest.raises(SystemExit) as exc_info:
                run_server(config)

        assert exc_info.value.code == 0

    def test_bind_failure_propagates(self, config):
        def fake_run(self, sockets=None):
            sys.exit(1)

        with patch.object(LogViewerServer, 'run', fake_run), \
             patch('logviewer.server.install_fault_hooks'), \
             patch('logviewer.server.setup_logging'):
            with pytest.raises(SystemExit) as exc_info:
                run_server(config)

        assert exc_info.value.code == 1

    def test_file_logging_attaches_category_handlers(self, config):
        config = config.model_copy(update={'file_logging': True})

        with patch.object(LogViewerServer, 'run', lambda self, sockets=None: None), \
             patch('logviewer.server.install_fault_hooks'), \
             patch('logviewer.server.setup_logging'), \
             patch('logviewer.server.attach_category_handlers') as mock_attach:
            run_server(config)

        mock_attach.assert_called_once()
        assert mock_attach.call_args[0][1] == config.log_dir
