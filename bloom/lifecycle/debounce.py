import asyncio
from typing import Awaitable, Callable, Optional, Set

from bloom.config.logger import get_logger

log = get_logger(__name__)


def _log_task_failure(task: asyncio.Task) -> None:
    if task.cancelled():
        return
    e = task.exception()
    if e:
        log.error("Background task failed: %s: %s", type(e).__name__, e)


def run_in_background(coro: Awaitable[None], tasks: Set[asyncio.Task]) -> asyncio.Task:
    """
    Start a coroutine as a task without awaiting it. The task is held in `tasks` until
    it finishes, and failures are logged.
    """
    task = asyncio.ensure_future(coro)
    tasks.add(task)
    task.add_done_callback(tasks.discard)
    task.add_done_callback(_log_task_failure)
    return task


class Debouncer:
    """
    Coalesce a burst of `trigger()` calls into one call of an async function, made
    `delay` seconds after the most recent trigger. Every trigger resets the timer.

    The function takes no arguments, so it sees whatever state is current when it
    runs, not when it was scheduled. Must be triggered from within a running event loop.
    """

    def __init__(self, func: Callable[[], Awaitable[None]], delay: float):
        self.func = func
        self.delay = delay
        self._handle: Optional[asyncio.TimerHandle] = None
        self._tasks: Set[asyncio.Task] = set()

    @property
    def pending(self) -> bool:
        """True if a call is scheduled but hasn't started yet."""
        return self._handle is not None

    def trigger(self) -> None:
        self.cancel()
        loop = asyncio.get_running_loop()
        self._handle = loop.call_later(self.delay, self._fire)

    def cancel(self) -> bool:
        """
        Drop the scheduled call, if any. Returns True if one was pending. A call that
        has already started is not interrupted.
        """
        if self._handle is None:
            return False
        self._handle.cancel()
        self._handle = None
        return True

    def _fire(self) -> None:
        self._handle = None
        run_in_background(self.func(), self._tasks)

    async def flush(self) -> None:
        """
        Run a pending call now instead of waiting, then wait for any calls in flight.
        """
        if self.cancel():
            await self.func()
        if self._tasks:
            await asyncio.wait(list(self._tasks))


## Tests


def test_debounce_coalesces_and_resets():
    calls = []

    async def record():
        calls.append(asyncio.get_running_loop().time())

    async def run():
        debouncer = Debouncer(record, 0.2)
        debouncer.trigger()
        await asyncio.sleep(0.13)
        assert calls == []
        debouncer.trigger()
        await asyncio.sleep(0.13)
        # 0.26s after the first trigger, but only 0.13s after the last.
        assert calls == []
        assert debouncer.pending
        await asyncio.sleep(0.2)
        assert len(calls) == 1
        assert not debouncer.pending

    asyncio.run(run())


def test_debounce_flush_and_cancel():
    calls = []

    async def record():
        calls.append("called")

    async def run():
        debouncer = Debouncer(record, 10)
        await debouncer.flush()
        assert calls == []

        debouncer.trigger()
        await debouncer.flush()
        assert calls == ["called"]

        debouncer.trigger()
        assert debouncer.cancel()
        assert not debouncer.cancel()
        await asyncio.sleep(0.01)
        assert calls == ["called"]

    asyncio.run(run())


def test_run_in_background():
    tasks: Set[asyncio.Task] = set()
    done = []

    async def work():
        await asyncio.sleep(0.01)
        done.append(True)

    async def fail():
        raise OSError("disk gone")

    async def run():
        run_in_background(work(), tasks)
        failing = run_in_background(fail(), tasks)
        assert len(tasks) == 2
        await asyncio.wait(list(tasks))
        await asyncio.sleep(0)
        assert isinstance(failing.exception(), OSError)

    asyncio.run(run())
    assert done == [True]
    assert not tasks
