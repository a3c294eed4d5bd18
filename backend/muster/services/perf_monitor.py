"""Performance monitoring utilities for the Muster rating service."""
import time
import logging
import threading
import functools
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger("muster-api.perf")


def timed(func: Callable) -> Callable:
    """
    Decorator that measures and logs execution time for synchronous functions.

    Usage::

        @timed
        def my_function():
            ...
    """
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        start = time.perf_counter()
        try:
            return func(*args, **kwargs)
        finally:
            duration_ms = round((time.perf_counter() - start) * 1000, 2)
            logger.debug(
                "function timed",
                extra={
                    "function_name": func.__qualname__,
                    "duration_ms": duration_ms,
                },
            )
    return wrapper


class PerformanceTracker:
    """
    Thread-safe in-memory tracker for rating API metrics.

    Tracks:
    - Total requests handled
    - Average duration per path
    - Slowest path across all requests
    - Error responses (status >= 500) broken down by path
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._requests: int = 0
        # path -> [total_ms, count]; constant memory per path
        self._path_totals: Dict[str, List[float]] = {}
        self._error_counts: Dict[str, int] = {}      # path -> count
        self._slowest_path: Optional[str] = None
        self._slowest_path_ms: float = 0.0

    # ------------------------------------------------------------------
    # Public write API
    # ------------------------------------------------------------------

    def record_request(self, path: str, duration_ms: float, status_code: int = 200) -> None:
        """Record one handled request."""
        with self._lock:
            self._requests += 1
            totals = self._path_totals.setdefault(path, [0.0, 0])
            totals[0] += duration_ms
            totals[1] += 1

            if duration_ms > self._slowest_path_ms:
                self._slowest_path_ms = duration_ms
                self._slowest_path = path

            if status_code >= 500:
                self._error_counts[path] = self._error_counts.get(path, 0) + 1

    # ------------------------------------------------------------------
    # Public read API
    # ------------------------------------------------------------------

    def get_metrics(self) -> Dict[str, Any]:
        """
        Return a snapshot of all collected metrics.

        Returns
        -------
        dict with keys:
            requests_handled      : int
            slowest_path          : str | None
            slowest_path_ms       : float
            error_count           : int   (total across all paths)
            error_count_by_path   : dict  {path: count}
            path_avg_durations_ms : dict  {path: avg_ms}
        """
        with self._lock:
            path_avgs: Dict[str, float] = {}
            for path, (total_ms, count) in self._path_totals.items():
                path_avgs[path] = round(total_ms / count, 2) if count else 0.0

            return {
                "requests_handled": self._requests,
                "slowest_path": self._slowest_path,
                "slowest_path_ms": round(self._slowest_path_ms, 2),
                "error_count": sum(self._error_counts.values()),
                "error_count_by_path": dict(self._error_counts),
                "path_avg_durations_ms": path_avgs,
            }

    def reset(self) -> None:
        """Reset all counters (useful in tests)."""
        with self._lock:
            self._requests = 0
            self._path_totals.clear()
            self._error_counts.clear()
            self._slowest_path = None
            self._slowest_path_ms = 0.0


# Module-level singleton; import this instance everywhere else.
tracker = PerformanceTracker()
