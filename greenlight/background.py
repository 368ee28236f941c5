"""Fire-and-forget execution for work a request does not depend on."""

from collections.abc import Callable
from typing import Any

from fastapi import BackgroundTasks

from .logging_config import get_logger

logger = get_logger(__name__)


def run_guarded(fn: Callable[..., Any], *args: Any, **kwargs: Any) -> None:
    """Call ``fn`` and log whatever it raises instead of propagating it."""
    task_name = getattr(fn, "__qualname__", repr(fn))
    try:
        fn(*args, **kwargs)
    except Exception:
        logger.error("Background task failed", task=task_name, exc_info=True)
    else:
        logger.debug("Background task finished", task=task_name)


class BackgroundTaskRunner:
    """Queues callables on the request's ``BackgroundTasks``.

    Tasks run after the response has been sent, on Starlette's thread pool,
    and the server waits for them on shutdown. The caller never sees a
    task's result or its exceptions. Tasks should be given immutable copies
    of the data they need, not live request state.
    """

    def __init__(self, tasks: BackgroundTasks):
        self.tasks = tasks

    def run(self, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> None:
        """Schedule ``fn(*args, **kwargs)`` and return immediately."""
        self.tasks.add_task(run_guarded, fn, *args, **kwargs)
