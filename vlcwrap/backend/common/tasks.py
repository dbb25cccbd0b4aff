"""Single-purpose task execution for native work that must leave the callback thread."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor, Future
from dataclasses import dataclass
from typing import Callable, Any, Optional
import threading

from vlcwrap.backend.common.errors import TaskError
from vlcwrap.backend.common.logging import get_logger

log = get_logger(__name__)



@dataclass
class TaskSpec:
    fn: Callable[..., Any]
    args: tuple[Any, ...] = ()
    kwargs: dict[str, Any] = None
    name: str = "task"

    def __post_init__(self):
        if self.kwargs is None:
            self.kwargs = {}


class TaskRunner:
    """Tiny in-process task runner.

    With ``max_workers=1`` (the default) tasks run strictly in submission
    order, which the event managers rely on for deferred attach/detach.
    """
    def __init__(self, max_workers: int = 1, *, context: Optional[str] = None):
        self._context = context or "task_runner"
        self._executor = ThreadPoolExecutor(
            max_workers=max(1, max_workers),
            thread_name_prefix=f"vlcwrap-{self._context}",
        )
        self._closed = False
        self._lock = threading.Lock()

    @property
    def closed(self) -> bool:
        return self._closed

    def submit(self, spec: TaskSpec) -> Future:
        with self._lock:
            if self._closed:
                raise TaskError("TaskRunner is closed")

            def _wrapped():
                try:
                    log.debug("task_start", extra={"task": spec.name, "context": self._context})
                    result = spec.fn(*spec.args, **spec.kwargs)
                    log.debug("task_done", extra={"task": spec.name, "context": self._context})
                    return result
                except Exception as e:  # noqa: BLE001
                    log.error("task_fail", extra={"task": spec.name, "context": self._context, "error": str(e)})
                    raise

            return self._executor.submit(_wrapped)

    def close(self, wait: bool = True) -> None:
        with self._lock:
            if not self._closed:
                self._closed = True
                self._executor.shutdown(wait=wait, cancel_futures=not wait)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close(wait=True)


_DEFERRED_RUNNER: Optional[TaskRunner] = None
_DEFERRED_RUNNER_LOCK = threading.Lock()


def get_deferred_runner() -> TaskRunner:
    """Return the process-wide runner used for deferred native event work."""

    global _DEFERRED_RUNNER
    with _DEFERRED_RUNNER_LOCK:
        if _DEFERRED_RUNNER is None or _DEFERRED_RUNNER.closed:
            _DEFERRED_RUNNER = TaskRunner(max_workers=1, context="events")
        return _DEFERRED_RUNNER
