import logging
import threading
import time

import anyio
import pytest

from smartpantry.config import settings
from smartpantry.core.concurrency import run_store_call
from smartpantry.core.exception import StoreTimeoutException


class RecordingSession:
    """Stands in for a Session and records which threads touch it."""

    def __init__(self):
        self.opened_in = threading.get_ident()
        self.used_in = None
        self.closed_in = None
        self.closed = threading.Event()

    def close(self):
        self.closed_in = threading.get_ident()
        self.closed.set()


class RecordingFactory:
    def __init__(self):
        self.sessions = []

    def __call__(self):
        session = RecordingSession()
        self.sessions.append(session)
        return session


@pytest.mark.unit
class TestRunStoreCall:
    """Deadline around blocking store calls."""

    def test_returns_result(self):
        factory = RecordingFactory()

        async def main():
            return await run_store_call(factory, lambda db, a, b=0: a + b, 2, b=3)

        assert anyio.run(main) == 5
        (session,) = factory.sessions
        assert session.closed.is_set()

    def test_propagates_errors_and_closes_session(self):
        factory = RecordingFactory()

        def broken(db):
            raise ValueError("boom")

        async def main():
            return await run_store_call(factory, broken)

        with pytest.raises(ValueError):
            anyio.run(main)
        assert factory.sessions[0].closed.is_set()

    def test_slow_call_times_out(self, monkeypatch):
        monkeypatch.setattr(settings, "STORE_TIMEOUT_SECONDS", 0.05)

        async def main():
            return await run_store_call(RecordingFactory(), lambda db: time.sleep(0.5))

        with pytest.raises(StoreTimeoutException) as exc_info:
            anyio.run(main)

        assert exc_info.value.status_code == 500
        assert "did not respond in time" in str(exc_info.value)

    def test_abandoned_call_keeps_its_session_on_one_thread(self, monkeypatch, caplog):
        monkeypatch.setattr(settings, "STORE_TIMEOUT_SECONDS", 0.05)
        factory = RecordingFactory()

        def slow_work(db):
            time.sleep(0.3)
            db.used_in = threading.get_ident()
            return "done"

        async def main():
            return await run_store_call(factory, slow_work)

        with caplog.at_level(logging.WARNING, logger="smartpantry.core.concurrency"):
            with pytest.raises(StoreTimeoutException):
                anyio.run(main)

            (session,) = factory.sessions
            assert session.closed.wait(timeout=5)
            deadline = time.monotonic() + 5
            while "after its deadline" not in caplog.text and time.monotonic() < deadline:
                time.sleep(0.01)

        # Opened, used and closed by the worker; the caller never touched it
        assert session.opened_in == session.used_in == session.closed_in
        assert session.opened_in != threading.get_ident()
        assert "completed after its deadline" in caplog.text
