"""Session — procedural test-script API over the job queue.

Each public method queues exactly one job (``click_and_wait`` queues two) and
returns immediately. Methods that read from the page return a DeferredValue
that later assertions read through, so a script reads top to bottom:

    t = Session("https://github.com")
    t.navigate("/")
    t.assert_equals(t.text("title"), "GitHub", "Homepage loaded")
    t.finish()
    raise SystemExit(t.run())
"""

from __future__ import annotations

import asyncio
import logging
import re
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Any

from pagetap.core.deferred import DeferredValue, read_through
from pagetap.core.exceptions import ConfigError, EngineError, SessionError
from pagetap.core.models import ElementOp, ElementQuery, Job, PageLoad, SessionConfig
from pagetap.core.queue import CompletionToken, JobQueue
from pagetap.engine.base import PageDriver
from pagetap.engine.bridge import QUERY_SET
from pagetap.engine.web import PlaywrightDriver
from pagetap.reporters.base import BaseReporter
from pagetap.reporters.tap import TapReporter

logger = logging.getLogger(__name__)

FATAL_EXIT_STATUS = 127
FINISH_LABEL = "done"

_NO_VALUE: Any = object()


class Session:
    """One browser page, one job queue, one TAP report.

    Args:
        base_url: Prefix for every path passed to navigate(). Overrides
            ``config.base_url`` when given.
        config: Initial session options.
        driver: Page driver. Defaults to a headless Playwright chromium page.
        reporter: Assertion reporter. Defaults to TAP on stdout.
        loop: Event loop to schedule on. A private loop is created otherwise.
        on_exit: Exit collaborator, called once with the final status.
    """

    def __init__(
        self,
        base_url: str | None = None,
        *,
        config: SessionConfig | None = None,
        driver: PageDriver | None = None,
        reporter: BaseReporter | None = None,
        loop: asyncio.AbstractEventLoop | None = None,
        on_exit: Callable[[int], None] | None = None,
    ) -> None:
        self._config = (config or SessionConfig()).model_copy()
        if base_url is not None:
            self._config.base_url = base_url
        self._driver = driver or PlaywrightDriver()
        self._reporter = reporter or TapReporter()
        self._owns_loop = loop is None
        self._loop = loop or asyncio.new_event_loop()
        self._on_exit = on_exit
        self._exit_status: int | None = None
        self._finish_queued = False
        self._release_attempted = False
        self._closed = False
        self._tasks: set[asyncio.Task[Any]] = set()
        self._queue = JobQueue(
            self._loop,
            timeout_ms=lambda: self._config.timeout,
            on_timeout=self._handle_timeout,
            on_fatal=self._handle_fatal,
        )
        self._driver.on_console(lambda text: self._reporter.diag(f"console> {text}", indent=1))

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def config(self) -> SessionConfig:
        """Snapshot of the options as applied so far."""
        return self._config.model_copy()

    @property
    def reporter(self) -> BaseReporter:
        return self._reporter

    @property
    def exit_status(self) -> int | None:
        """Final status once the session has ended, else None."""
        return self._exit_status

    @property
    def finish_queued(self) -> bool:
        return self._finish_queued

    # ------------------------------------------------------------------
    # Configuration and output
    # ------------------------------------------------------------------

    def set(self, key: str, value: Any) -> None:
        """Set one option (``timeout``, ``width``, ``height``, ``base_url``).

        The change applies when the queue reaches it, so it affects only the
        steps queued after it:

            t.set("timeout", 30000)
            t.navigate("/a_sloooooow_page")
            t.set("timeout", 10000)
        """
        self.configure(**{key: value})

    def configure(self, **options: Any) -> None:
        """Set several options in one queued step."""
        unknown = sorted(set(options) - set(SessionConfig.model_fields))
        if unknown:
            msg = f"Unknown session option(s): {', '.join(unknown)}"
            raise ConfigError(msg)

        def apply() -> None:
            for key, value in options.items():
                setattr(self._config, key, value)

        self._queue.enqueue_sync("set", apply)

    def diag(self, message: str) -> None:
        """Write a message into the report as TAP diagnostic lines."""
        self._queue.enqueue_sync("diag", lambda: self._reporter.diag(message))

    # ------------------------------------------------------------------
    # Page steps
    # ------------------------------------------------------------------

    def navigate(self, path: str) -> None:
        """Open ``base_url + path``. The first call launches the browser."""

        def action(done: CompletionToken) -> None:
            url = self._config.base_url + path
            self._spawn(self._open(url), done, self._loaded)

        self._queue.enqueue_async("open", action)

    def pause(self, ms: int) -> None:
        """Pause the script for ``ms`` milliseconds.

        Prefer a waiting step such as click_and_wait() where one fits; it
        returns as soon as the awaited event happens.
        """

        def action(done: CompletionToken) -> None:
            self._reporter.diag(f"sleeping for {ms}ms")
            self._spawn(
                asyncio.sleep(ms / 1000),
                done,
                lambda _: self._reporter.diag("finished sleeping"),
            )

        self._queue.enqueue_async("sleep", action)

    def screenshot(self, filename: str | Path) -> None:
        """Render the page to ``filename``. The extension picks png, jpeg or pdf."""
        path = Path(filename)
        self._queue.enqueue_async(
            "screenshot",
            lambda done: self._spawn(self._driver.render(path), done),
        )

    def text(self, selector: str) -> DeferredValue:
        """Text content of the element(s) matching ``selector``."""
        return self._element(ElementQuery(selector=selector, op=ElementOp.TEXT))

    def val(self, selector: str, value: Any = _NO_VALUE) -> DeferredValue:
        """Get, or set when ``value`` is given, the value of matching form elements.

            t.val('#myform input[name="firstname"]', "waawaamilk")
            t.assert_equals(t.val('#myform input[name="firstname"]'), "waawaamilk", "set")
        """
        args = () if value is _NO_VALUE else (value,)
        return self._element(ElementQuery(selector=selector, op=ElementOp.VAL, args=args))

    def click(self, selector: str) -> DeferredValue:
        """Click every element matching ``selector``.

        Links are followed and forms submitted, but nothing waits for the
        resulting page. Use click_and_wait() when a page load is expected.
        """
        return self._element(ElementQuery(selector=selector, op=ElementOp.CLICK))

    def click_and_wait(self, selector: str) -> None:
        """Click the element matching ``selector``, then wait for the next page load."""
        query = ElementQuery(selector=selector, op=ElementOp.CLICK)
        loads_before: list[int] = []

        def click(done: CompletionToken) -> None:
            loads_before.append(self._driver.load_count)
            self._spawn(self._driver.query(query), done)

        def wait(done: CompletionToken) -> None:
            after = loads_before[0] if loads_before else self._driver.load_count
            self._spawn(self._driver.wait_for_load(after), done, self._loaded)

        self._queue.enqueue_async(f"click {selector}", click)
        self._queue.enqueue_async("click_and_wait", wait)

    def evaluate(self, script: str) -> DeferredValue:
        """Result of a JavaScript expression evaluated in the page."""
        deferred = DeferredValue(label="evaluate")
        self._queue.enqueue_async(
            "evaluate",
            lambda done: self._spawn(self._driver.evaluate(script), done, deferred.resolve),
        )
        return deferred

    # ------------------------------------------------------------------
    # Assertions
    # ------------------------------------------------------------------

    def ok(self, condition: Any, description: str) -> None:
        """Pass when ``condition`` is truthy."""
        self._queue.enqueue_sync(
            "ok",
            lambda: self._reporter.record(bool(read_through(condition)), description),
        )

    def assert_equals(self, got: Any, expected: Any, description: str) -> None:
        """Pass when ``got == expected``. Either side may be a DeferredValue.

            t.assert_equals(t.text("title"), "My Title", "Page title is correct")
        """

        def check() -> None:
            got_value = read_through(got)
            expected_value = read_through(expected)
            success = got_value == expected_value
            self._reporter.record(success, description, got_value, expected_value)

        self._queue.enqueue_sync("is", check)

    def assert_matches(self, got: Any, pattern: str | re.Pattern[str], description: str) -> None:
        """Pass when ``pattern`` is found in ``got``.

            t.assert_matches(t.text("title"), r"Title", 'Page title contains "Title"')
        """
        regex = re.compile(pattern) if isinstance(pattern, str) else pattern

        def check() -> None:
            got_value = read_through(got)
            success = regex.search(str(got_value)) is not None
            self._reporter.record(success, description, got_value, regex)

        self._queue.enqueue_sync("like", check)

    # ------------------------------------------------------------------
    # End of script
    # ------------------------------------------------------------------

    def finish(self) -> None:
        """Close the page, print the TAP plan and end the session.

        The plan line tells TAP consumers the script finished instead of
        crashing, so every script must call this exactly once. The plan is
        printed even when closing the page times out.
        """
        if self._finish_queued:
            msg = "finish() was already called for this session"
            raise SessionError(msg)
        self._finish_queued = True
        self._queue.enqueue_async(
            FINISH_LABEL,
            lambda done: self._spawn(self._release(), done, self._summarize),
        )

    def run(self) -> int:
        """Run queued steps until the session ends and return the exit status."""
        if self._exit_status is None:
            self._loop.run_forever()
        self._shutdown()
        assert self._exit_status is not None
        return self._exit_status

    def close(self) -> None:
        """Cancel pending steps, release the page and close a private loop.

        run() does this on its own. Call it for a session that is dropped
        without being run.
        """
        self._shutdown()

    open = navigate
    sleep = pause
    is_ = assert_equals
    like = assert_matches
    done = finish

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _element(self, query: ElementQuery) -> DeferredValue:
        deferred = DeferredValue(label=f"{query.op}({query.selector})")

        def resolve(result: Any) -> None:
            deferred.resolve(None if result is QUERY_SET else result)

        self._queue.enqueue_async(
            f"{query.op} {query.selector}",
            lambda done: self._spawn(self._driver.query(query), done, resolve),
        )
        return deferred

    async def _open(self, url: str) -> PageLoad:
        if not self._driver.started:
            await self._driver.start(self._config.width, self._config.height)
        else:
            await self._driver.set_viewport(self._config.width, self._config.height)
        return await self._driver.open(url)

    def _loaded(self, load: PageLoad) -> None:
        self._reporter.diag(f"loaded: {load.url}")
        if not load.ok:
            self._reporter.diag(f"load failed: {load.error}")

    async def _release(self) -> None:
        if self._driver.started:
            self._release_attempted = True
            await self._driver.release()

    def _summarize(self, _: Any) -> None:
        self._end(self._reporter.finish())

    def _spawn(
        self,
        coro: Awaitable[Any],
        done: CompletionToken,
        on_result: Callable[[Any], None] | None = None,
    ) -> None:
        """Run a driver coroutine for an async job and complete the job with it."""
        task = self._loop.create_task(_await(coro))
        self._tasks.add(task)

        def settle(finished: asyncio.Task[Any]) -> None:
            self._tasks.discard(finished)
            if finished.cancelled():
                return
            exc = finished.exception()
            if done.fired or self._queue.halted:
                # Timed out or aborted: the queue has moved on.
                logger.debug("Late result ignored (error=%r)", exc)
                return
            if exc is not None:
                logger.error("Job task failed", exc_info=exc)
                self._queue.fail(exc if isinstance(exc, Exception) else SessionError(str(exc)))
                return
            try:
                if on_result is not None:
                    on_result(finished.result())
            except Exception as e:
                logger.exception("Job result handler failed")
                self._queue.fail(e)
                return
            done()

        task.add_done_callback(settle)

    def _handle_timeout(self, job: Job) -> None:
        self._reporter.record(False, f"{job.label} timed out")
        if job.label == FINISH_LABEL:
            # Nothing runs after the finish job, so its late result is dropped.
            self._summarize(None)

    def _handle_fatal(self, job: Job | None, exc: Exception) -> None:
        logger.error("Aborting session in %s: %s", job.label if job else "task", exc)
        self._reporter.write_line(f"Internal error: {exc}")
        self._end(FATAL_EXIT_STATUS)

    def _end(self, status: int) -> None:
        if self._exit_status is not None:
            return
        self._exit_status = status
        if self._on_exit is not None:
            self._on_exit(status)
        if self._loop.is_running():
            self._loop.stop()

    def _shutdown(self) -> None:
        if self._closed:
            return
        self._closed = True
        leftover = [task for task in self._tasks if not task.done()]
        for task in leftover:
            task.cancel()
        if leftover:
            self._loop.run_until_complete(asyncio.gather(*leftover, return_exceptions=True))
        if self._driver.started and not self._release_attempted:
            self._release_attempted = True
            release = asyncio.wait_for(self._driver.release(), self._config.timeout / 1000)
            try:
                self._loop.run_until_complete(release)
            except TimeoutError:
                logger.error("Driver release timed out")
            except EngineError:
                logger.exception("Driver release failed")
        if self._owns_loop:
            self._loop.close()


async def _await(awaitable: Awaitable[Any]) -> Any:
    return await awaitable
