"""
Unit tests for ReadinessState.
"""

from logviewer.readiness import ReadinessState


class TestReadinessState:
    """Test ReadinessState"""

    def test_starts_not_ready(self):
        """Should be not ready before the listener binds"""
        state = ReadinessState()

        assert state.is_ready is False
        assert state.is_shutting_down is False

    def test_set_ready(self):
        """Should toggle readiness while running"""
        state = ReadinessState()

        state.set_ready(True)
        assert state.is_ready is True

        state.set_ready(False)
        assert state.is_ready is False

    def test_begin_shutdown_clears_ready(self):
        """Should drop readiness the moment shutdown begins"""
        state = ReadinessState()
        state.set_ready(True)

        state.begin_shutdown()

        assert state.is_ready is False
        assert state.is_shutting_down is True

    def test_never_ready_again_after_shutdown(self):
        """Should ignore set_ready(True) once shutdown began"""
        state = ReadinessState()
        state.set_ready(True)
        state.begin_shutdown()

        state.set_ready(True)

        assert state.is_ready is False

    def test_instances_are_independent(self):
        """Should not share state between instances"""
        first = ReadinessState()
        second = ReadinessState()

        first.set_ready(True)

        assert second.is_ready is False
