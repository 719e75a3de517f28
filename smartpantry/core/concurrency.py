import logging
import threading
from typing import Any, Callable, TypeVar

import anyio
from sqlalchemy.orm import Session

from smartpantry.config import settings
from smartpantry.core.exception import StoreTimeoutException

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def run_store_call(
    session_factory: Callable[[], Session],
    work: Callable[..., T],
    *args: Any,
    **kwargs: Any,
) -> T:
    """
    Run a blocking unit of work on a worker thread with a deadline.

    ``work`` is called as ``work(db, *args, **kwargs)`` with a session that
    is opened and closed on the worker thread, so nothing else ever touches
    it. ``work`` must return plain data (schemas, ids), not ORM objects bound
    to that session.

    After STORE_TIMEOUT_SECONDS the caller gets StoreTimeoutException and the
    worker is abandoned; it still finishes its own transaction, and how that
    ended is logged.
    """
    abandoned = threading.Event()
    name = getattr(work, "__qualname__", repr(work))

    def call() -> T:
        db = session_factory()
        outcome = "failed"
        try:
            result = work(db, *args, **kwargs)
            outcome = "completed"
            return result
        finally:
            db.close()
            if abandoned.is_set():
                logger.warning("Store call %s %s after its deadline", name, outcome)

    try:
        with anyio.fail_after(settings.STORE_TIMEOUT_SECONDS):
            return await anyio.to_thread.run_sync(call, abandon_on_cancel=True)
    except TimeoutError:
        abandoned.set()
        logger.error("Store call %s exceeded %ss", name, settings.STORE_TIMEOUT_SECONDS)
        raise StoreTimeoutException()
