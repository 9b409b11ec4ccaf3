# src/taskline/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds AppState, then runs everything on one event loop:
- console REPL (optional),
- Matrix connector (optional),
- digest scheduler (optional).
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import signal

from ..config import get_settings
from ..connectors.console_connector import run_console_loop
from ..connectors.matrix_connector import run_matrix_connector
from ..logging_setup import setup_logging
from ..tasks.task_scheduler import default_jobs, run_digest_scheduler
from .bootstrap import Runtime, create_initial_state, create_runtime
from .commands import ConsoleSession

logger = logging.getLogger(__name__)


async def _shutdown(runtime: Runtime) -> None:
    """Best-effort shutdown (no exceptions should escape)."""
    store = runtime.state.task_store
    try:
        aclose = getattr(store, "aclose", None)
        if aclose is not None:
            await aclose()
        close = getattr(store, "close", None)
        if close is not None:
            close()
    except Exception:
        logger.debug("Store close failed.", exc_info=True)


async def run(runtime: Runtime) -> None:
    settings = runtime.state.settings
    stop = asyncio.Event()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        # Not available on every platform (e.g. Windows).
        with contextlib.suppress(NotImplementedError, RuntimeError):
            loop.add_signal_handler(sig, stop.set)

    background: list[asyncio.Task[None]] = []

    if settings.matrix_enabled and runtime.messenger.matrix is not None:
        background.append(
            asyncio.create_task(
                run_matrix_connector(settings, runtime.dispatcher, runtime.messenger.matrix, stop),
                name="matrix",
            )
        )

    if settings.digests_enabled:
        jobs = default_jobs(settings.morning_digest_at, settings.evening_digest_at, settings.admin_digest_at)
        background.append(
            asyncio.create_task(
                run_digest_scheduler(
                    runtime.state.task_store,
                    runtime.state.directory,
                    runtime.messenger,
                    jobs=jobs,
                    clock=runtime.state.clock,
                ),
                name="digests",
            )
        )

    try:
        if settings.console_enabled:
            session = ConsoleSession(state=runtime.state, user_id=settings.console_user_id)
            console = asyncio.create_task(run_console_loop(runtime.dispatcher, session), name="console")
            waiter = asyncio.create_task(stop.wait())
            await asyncio.wait({console, waiter}, return_when=asyncio.FIRST_COMPLETED)
            waiter.cancel()
            # input() can't be interrupted; the console thread dies with the process.
            console.cancel()
        else:
            logger.info("Console disabled. Running background connectors only. Press Ctrl+C to stop.")
            await stop.wait()
    finally:
        stop.set()
        for task in background:
            task.cancel()
        for task in background:
            with contextlib.suppress(asyncio.CancelledError, Exception):
                await task
        await _shutdown(runtime)


def main() -> None:
    settings = get_settings()

    log_file = setup_logging(log_dir=settings.data_dir, console_level=settings.log_level)

    logger.info("Starting %s... (log file: %s)", settings.app_name, log_file)

    state = create_initial_state(settings=settings)
    runtime = create_runtime(state)

    try:
        asyncio.run(run(runtime))
    except KeyboardInterrupt:
        logger.info("Interrupted.")
    finally:
        logger.info("Bye.")


if __name__ == "__main__":
    main()
