"""Bounded concurrent task set.

Submit named blocking callables, each with its own deadline, then await all
of them together. Every task settles as completed, failed or timed out;
settle() itself never raises.

A timed-out task is abandoned, not aborted: its worker thread keeps running
and its eventual result is discarded. Each task name runs on its own pool by
default, so abandoned tasks under one name never hold the workers another
name needs.
"""

from __future__ import annotations

import asyncio
import threading
from concurrent.futures import Executor, ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Callable, Literal, Mapping

from kostly.observability.correlation import bind_context

TaskStatus = Literal["completed", "failed", "timed_out"]

POOL_MAX_WORKERS = 8

_executors: dict[str, ThreadPoolExecutor] = {}
_executors_lock = threading.Lock()


def get_executor(name: str) -> ThreadPoolExecutor:
    """Process-wide pool for one task name (created on first use)."""
    with _executors_lock:
        pool = _executors.get(name)
        if pool is None:
            pool = ThreadPoolExecutor(max_workers=POOL_MAX_WORKERS, thread_name_prefix=f"notify-{name}")
            _executors[name] = pool
        return pool


@dataclass(frozen=True)
class TaskResult:
    name: str
    status: TaskStatus
    value: Any = None
    error: BaseException | None = None

    @property
    def ok(self) -> bool:
        return self.status == "completed"


@dataclass
class _Job:
    name: str
    fn: Callable[..., Any]
    args: tuple[Any, ...]
    kwargs: dict[str, Any] = field(default_factory=dict)
    timeout: float = 0.0


def _discard_result(future: asyncio.Future) -> None:
    # Retrieve late exceptions so abandoned tasks do not log "never retrieved".
    if not future.cancelled():
        future.exception()


class BoundedTaskSet:
    """Run named callables concurrently, each bounded by its own timeout.

    executor may be one pool shared by every task, or a mapping from task
    name to pool. Names without a pool run on get_executor(name).
    """

    def __init__(self, executor: Executor | Mapping[str, Executor] | None = None) -> None:
        self._executor = executor
        self._jobs: dict[str, _Job] = {}

    def _executor_for(self, name: str) -> Executor:
        if isinstance(self._executor, Mapping):
            return self._executor.get(name) or get_executor(name)
        return self._executor or get_executor(name)

    def __len__(self) -> int:
        return len(self._jobs)

    def submit(self, name: str, fn: Callable[..., Any], *args: Any, timeout: float, **kwargs: Any) -> None:
        """Register a task. Names must be unique within the set.

        Raises:
            ValueError: On duplicate name or non-positive timeout.
        """
        if name in self._jobs:
            raise ValueError(f"Duplicate task name: {name}")
        if timeout <= 0:
            raise ValueError(f"Timeout must be > 0 for task {name}")
        self._jobs[name] = _Job(name=name, fn=fn, args=args, kwargs=kwargs, timeout=timeout)

    async def _run(self, job: _Job) -> TaskResult:
        loop = asyncio.get_running_loop()
        executor = self._executor_for(job.name)
        future = loop.run_in_executor(executor, bind_context(lambda: job.fn(*job.args, **job.kwargs)))
        future.add_done_callback(_discard_result)

        try:
            # shield keeps the executor future alive when the deadline passes
            value = await asyncio.wait_for(asyncio.shield(future), timeout=job.timeout)
        except asyncio.TimeoutError:
            return TaskResult(name=job.name, status="timed_out")
        except Exception as exc:
            return TaskResult(name=job.name, status="failed", error=exc)
        return TaskResult(name=job.name, status="completed", value=value)

    async def settle(self) -> dict[str, TaskResult]:
        """Run all submitted tasks and wait until each one has settled."""
        jobs = list(self._jobs.values())
        self._jobs = {}
        if not jobs:
            return {}
        results = await asyncio.gather(*(self._run(job) for job in jobs))
        return {result.name: result for result in results}
