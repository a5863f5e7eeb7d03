"""
Detached background work with a mandatory error sink.

Processing runs after the request that triggered it has returned. Every
spawned coroutine must name the callback that receives its failure, so
no exception from detached work is lost.

Dependencies: asyncio
System role: Fire-and-forget scheduling for document processing
"""

import asyncio
import inspect
import logging
from typing import Any, Awaitable, Callable, Coroutine

logger = logging.getLogger(__name__)

ErrorSink = Callable[[Exception], Awaitable[None] | None]


class BackgroundTaskRunner:
    """Track detached asyncio tasks and route their failures to an error sink."""

    def __init__(self) -> None:
        self._tasks: set[asyncio.Task] = set()

    @property
    def pending_count(self) -> int:
        return len(self._tasks)

    def spawn(
        self,
        coro: Coroutine[Any, Any, Any],
        on_error: ErrorSink,
        name: str | None = None,
    ) -> asyncio.Task:
        """
        Schedule a coroutine without awaiting it.

        Args:
            coro: Work to run detached
            on_error: Called (and awaited, if it returns an awaitable) with
                any exception the work raises
            name: Task name for logs

        Returns:
            asyncio.Task: The scheduled task, kept referenced until done

        Raises:
            TypeError: When on_error is missing or not callable
        """
        if on_error is None or not callable(on_error):
            coro.close()
            raise TypeError("spawn() requires a callable on_error sink")

        task = asyncio.create_task(self._run(coro, on_error, name), name=name)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _run(
        self,
        coro: Coroutine[Any, Any, Any],
        on_error: ErrorSink,
        name: str | None,
    ) -> None:
        try:
            await coro
        except Exception as e:
            logger.warning(
                f"{__name__}:_run - Background task failed: {type(e).__name__}: {e}",
                extra={"task_name": name},
            )
            try:
                result = on_error(e)
                if inspect.isawaitable(result):
                    await result
            except Exception as sink_error:
                logger.exception(
                    f"{__name__}:_run - Error sink failed: {type(sink_error).__name__}: {sink_error}",
                    extra={"task_name": name},
                )

    async def drain(self, timeout: float | None = None) -> None:
        """
        Wait for in-flight tasks, e.g. on application shutdown.

        Args:
            timeout: Seconds to wait before cancelling what is left (None waits forever)
        """
        if not self._tasks:
            return
        pending = list(self._tasks)
        logger.info(
            f"{__name__}:drain - Waiting for background tasks",
            extra={"task_count": len(pending)},
        )
        done, not_done = await asyncio.wait(pending, timeout=timeout)
        for task in not_done:
            task.cancel()
        if not_done:
            await asyncio.gather(*not_done, return_exceptions=True)
