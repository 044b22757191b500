"""Timeout guard for collaborator calls."""

import threading
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Any, Callable, Optional

from automation_kernel.errors import TransientError


class CollaboratorCaller:
    """
    Runs collaborator calls with a deadline. A call that does not return in
    time raises TransientError; its worker thread is abandoned, not killed,
    so gateways should also honour their own timeouts where they can.

    With no timeout the call runs inline on the caller's thread.
    """

    def __init__(self, timeout_seconds: Optional[float] = None, max_workers: int = 8):
        self.timeout_seconds = timeout_seconds
        self.max_workers = max_workers
        self._pool: Optional[ThreadPoolExecutor] = None
        self._lock = threading.Lock()

    def __call__(self, fn: Callable, *args: Any, **kwargs: Any) -> Any:
        return self.call_with_timeout(self.timeout_seconds, fn, *args, **kwargs)

    def call_with_timeout(
        self,
        timeout_seconds: Optional[float],
        fn: Callable,
        *args: Any,
        **kwargs: Any,
    ) -> Any:
        if timeout_seconds is None:
            return fn(*args, **kwargs)

        future = self._get_pool().submit(fn, *args, **kwargs)
        try:
            return future.result(timeout=timeout_seconds)
        except FutureTimeoutError:
            future.cancel()
            name = getattr(fn, "__qualname__", repr(fn))
            raise TransientError(
                f"{name} timed out after {timeout_seconds}s",
                {"timeout_seconds": timeout_seconds, "call": name},
            )

    def _get_pool(self) -> ThreadPoolExecutor:
        with self._lock:
            if self._pool is None:
                self._pool = ThreadPoolExecutor(
                    max_workers=self.max_workers,
                    thread_name_prefix="collaborator",
                )
            return self._pool

    def close(self) -> None:
        with self._lock:
            pool, self._pool = self._pool, None
        if pool is not None:
            pool.shutdown(wait=False)
