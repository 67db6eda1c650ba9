"""
Best-effort side effects.

Work submitted here runs on a small thread pool, off the caller's result
path. Failures are handed to an observability hook and never re-raised; the
returned future always resolves to True (succeeded) or False (failed).
"""
from concurrent.futures import Future, ThreadPoolExecutor, wait
from threading import Lock
from typing import Callable, Optional, Set

from coffee_discovery.core.errors import LoggingFailure
from coffee_discovery.utils.logger import get_logger

logger = get_logger("core.best_effort")

FailureHook = Callable[[str, BaseException], None]


def log_failure(name: str, error: BaseException) -> None:
    """Default hook: record the failure for operators."""
    logger.warning(f"Best-effort task '{name}' failed: {error}")


class BestEffortDispatcher:

    def __init__(self, max_workers: int = 2, on_failure: Optional[FailureHook] = None):
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="best-effort")
        self._on_failure = on_failure or log_failure
        self._pending: Set[Future] = set()
        self._lock = Lock()

    def submit(self, name: str, fn: Callable, *args, **kwargs) -> Future:
        """
        Schedule fn(*args, **kwargs) without waiting for it.

        If the task cannot even be scheduled (e.g. after shutdown) the failure
        goes to the hook and an already resolved False future is returned.
        """
        try:
            future = self._executor.submit(self._run, name, fn, args, kwargs)
        except RuntimeError as e:
            self._report(name, e)
            rejected: Future = Future()
            rejected.set_result(False)
            return rejected
        with self._lock:
            self._pending.add(future)
        future.add_done_callback(self._forget)
        return future

    def drain(self, timeout: Optional[float] = None) -> None:
        """Block until every task submitted so far has been attempted."""
        with self._lock:
            pending = set(self._pending)
        if pending:
            wait(pending, timeout=timeout)

    def shutdown(self, wait_for_pending: bool = True) -> None:
        self._executor.shutdown(wait=wait_for_pending)

    def _run(self, name: str, fn: Callable, args, kwargs) -> bool:
        try:
            fn(*args, **kwargs)
            return True
        except Exception as e:
            self._report(name, e)
            return False

    def _report(self, name: str, error: Exception) -> None:
        failure = LoggingFailure(f"{name}: {error}")
        failure.__cause__ = error
        try:
            self._on_failure(name, failure)
        except Exception:
            logger.exception(f"Failure hook raised while handling '{name}'")

    def _forget(self, future: Future) -> None:
        with self._lock:
            self._pending.discard(future)
