"""JobQueue — strictly ordered, one-at-a-time job execution.

Jobs run in enqueue order on a single asyncio event loop. A sync job runs to
completion inside the drain and unblocks the queue on a later loop turn. An
async job receives a ``done`` callback and keeps the queue blocked until that
callback (or its TimeoutGuard) fires. Completion tokens are single-fire, so a
late or repeated ``done`` never advances the queue twice.
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from collections.abc import Callable

from pagetap.core.models import Job, JobKind

logger = logging.getLogger(__name__)


class CompletionToken:
    """Callable that runs its callback on the first call only."""

    def __init__(self, callback: Callable[[], None]) -> None:
        self._callback = callback
        self._fired = False

    @property
    def fired(self) -> bool:
        return self._fired

    def __call__(self) -> None:
        if self._fired:
            return
        self._fired = True
        self._callback()


SyncAction = Callable[[], None]
AsyncAction = Callable[[CompletionToken], None]


class TimeoutGuard:
    """Watchdog that calls ``on_expire`` once unless cancelled first."""

    def __init__(
        self,
        loop: asyncio.AbstractEventLoop,
        timeout_ms: int,
        on_expire: Callable[[], None],
    ) -> None:
        self._loop = loop
        self._timeout_ms = timeout_ms
        self._on_expire = on_expire
        self._handle: asyncio.TimerHandle | None = None
        self._fired = False

    @property
    def active(self) -> bool:
        return self._handle is not None

    @property
    def fired(self) -> bool:
        return self._fired

    def start(self) -> None:
        if self._handle is not None or self._fired:
            return
        self._handle = self._loop.call_later(self._timeout_ms / 1000, self._fire)

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _fire(self) -> None:
        self._handle = None
        if self._fired:
            return
        self._fired = True
        self._on_expire()


class JobQueue:
    """FIFO, single-consumer job queue.

    Args:
        loop: Event loop used for deferred drains and timeouts.
        timeout_ms: Returns the timeout for the async job about to start.
            Read at job start so queued config changes apply in order.
        on_timeout: Called with the stalled job before it is forced done.
        on_fatal: Called when a job action raises. The queue halts first.
    """

    def __init__(
        self,
        loop: asyncio.AbstractEventLoop,
        *,
        timeout_ms: Callable[[], int],
        on_timeout: Callable[[Job], None],
        on_fatal: Callable[[Job | None, Exception], None],
    ) -> None:
        self._loop = loop
        self._timeout_ms = timeout_ms
        self._on_timeout = on_timeout
        self._on_fatal = on_fatal
        self._pending: deque[Job] = deque()
        self._running = False
        self._halted = False
        self._guard: TimeoutGuard | None = None

    @property
    def running(self) -> bool:
        """True while a job is executing or awaiting its completion."""
        return self._running

    @property
    def halted(self) -> bool:
        return self._halted

    def __len__(self) -> int:
        return len(self._pending)

    def enqueue_sync(self, label: str, action: SyncAction) -> None:
        """Queue a job that completes when ``action`` returns."""
        self._push(Job(kind=JobKind.SYNC, label=label, action=action))

    def enqueue_async(self, label: str, action: AsyncAction) -> None:
        """Queue a job that completes when ``action``'s done callback is called."""
        self._push(Job(kind=JobKind.ASYNC, label=label, action=action))

    def fail(self, exc: Exception, job: Job | None = None) -> None:
        """Abort the queue because of an unexpected error."""
        if self._halted:
            logger.debug("Ignoring error after halt: %r", exc)
            return
        self._halted = True
        self._pending.clear()
        if self._guard is not None:
            self._guard.cancel()
        self._on_fatal(job, exc)

    def _push(self, job: Job) -> None:
        if self._halted:
            logger.debug("Queue halted, dropping job: %s", job.label)
            return
        self._pending.append(job)
        self._drain()

    def _drain(self) -> None:
        if self._halted or self._running or not self._pending:
            return
        self._running = True
        job = self._pending.popleft()
        logger.debug("Job start: %s (%s)", job.label, job.kind)
        try:
            if job.kind is JobKind.ASYNC:
                self._start_async(job)
            else:
                job.action()
                self._loop.call_soon(CompletionToken(lambda: self._complete(job)))
        except Exception as exc:
            logger.exception("Job %s raised", job.label)
            self.fail(exc, job)

    def _start_async(self, job: Job) -> None:
        # One token for both paths: the action may check done.fired to learn
        # that its job already timed out.
        token = CompletionToken(lambda: self._complete(job))

        def expire() -> None:
            logger.warning("Job %s timed out", job.label)
            self._on_timeout(job)
            token()

        self._guard = TimeoutGuard(self._loop, self._timeout_ms(), expire)
        self._guard.start()
        job.action(token)

    def _complete(self, job: Job) -> None:
        logger.debug("Job done: %s", job.label)
        self._running = False
        if self._guard is not None:
            self._guard.cancel()
            self._guard = None
        if not self._halted:
            self._loop.call_soon(self._drain)
