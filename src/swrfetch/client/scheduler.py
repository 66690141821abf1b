"""Detached background work: stale refreshes and store writes.

:class:`TaskScheduler` runs each unit of work as its own asyncio task that
the response path never awaits.  Failures are funnelled to the log and
never reach the caller.

Hosts that tear down a request context once the response is handed back
can pass a ``wait_until`` callable (the equivalent of an edge runtime's
``waitUntil``); every task is registered with it so the host keeps the
context alive until the work finishes.  Without one, work is best-effort:
the scheduler holds strong references so tasks are not garbage collected,
and :meth:`TaskScheduler.join` lets an owner wait for completion before
shutting down.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Coroutine, Optional

logger = logging.getLogger(__name__)

WaitUntil = Callable[[Awaitable[Any]], Any]


class TaskScheduler:
    """Spawns detached tasks and keeps them alive until they finish.

    Args:
        wait_until: Optional host hook that is handed every spawned task.
    """

    def __init__(self, wait_until: Optional[WaitUntil] = None) -> None:
        self._wait_until = wait_until
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def pending(self) -> int:
        """Number of tasks that have not finished yet."""
        return len(self._tasks)

    def schedule(self, work: Coroutine[Any, Any, Any], name: str = "swrfetch-task") -> asyncio.Task[None]:
        """Run *work* in the background without awaiting it.

        Must be called from a running event loop.

        Returns:
            The spawned task.  Callers on the response path should not
            await it.
        """
        task = asyncio.get_running_loop().create_task(self._run(work, name), name=name)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

        if self._wait_until is not None:
            try:
                self._wait_until(task)
            except Exception:
                logger.warning("wait_until rejected %s; continuing best-effort", name, exc_info=True)
        return task

    async def join(self) -> None:
        """Wait until every scheduled task, including ones spawned meanwhile, is done."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    @staticmethod
    async def _run(work: Coroutine[Any, Any, Any], name: str) -> None:
        try:
            await work
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.warning("Background task %s failed", name, exc_info=True)
