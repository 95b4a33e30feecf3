# src/zentask/connectors/console_connector.py

from __future__ import annotations

import asyncio
import logging
import threading
from collections.abc import Callable
from datetime import datetime

from ..cli.commands import registry as command_registry
from ..core.state import AppState

logger = logging.getLogger(__name__)

PROMPT = "zen> "
STDIN_THREAD_NAME = "zentask-stdin"


def _ts_local() -> str:
    return datetime.now().astimezone().strftime("%Y-%m-%d %H:%M:%S")


def _print_ts(text: str) -> None:
    print(f"[{_ts_local()}] {text}", flush=True)


def console_alert(message: str) -> None:
    """AlertSink for the console: rollbacks must be visible, not only logged."""
    print(f"\n[{_ts_local()}] [ALERT] {message}", flush=True)


class _StdinReader:
    """
    Blocking line reader on a daemon thread we own.

    The thread reads one line per readline() request and hands it to the loop
    via call_soon_threadsafe; None means EOF. Being a daemon, a thread still
    blocked in input() never keeps the process alive after the loop is gone
    (asyncio.run only joins its default-executor threads).
    """

    def __init__(self, loop: asyncio.AbstractEventLoop, read_line: Callable[[str], str]) -> None:
        self._loop = loop
        self._read_line = read_line
        self._lines: asyncio.Queue[str | None] = asyncio.Queue()
        self._wanted = threading.Event()
        self._thread = threading.Thread(target=self._run, name=STDIN_THREAD_NAME, daemon=True)

    def start(self) -> None:
        self._thread.start()

    async def readline(self) -> str | None:
        # Only prompt once the previous reply is printed.
        self._wanted.set()
        return await self._lines.get()

    def _run(self) -> None:
        while True:
            self._wanted.wait()
            self._wanted.clear()
            try:
                line: str | None = self._read_line(PROMPT)
            except EOFError:
                line = None
            try:
                self._loop.call_soon_threadsafe(self._lines.put_nowait, line)
            except RuntimeError:
                # loop already closed: the app is shutting down
                return
            if line is None:
                return


async def run_console_loop(state: AppState, *, read_line: Callable[[str], str] = input) -> None:
    """
    Interactive REPL.

    stdin is read on a daemon thread so persistence callbacks (and their
    alerts) keep firing on the event loop while the prompt is waiting, and so
    Ctrl-C (which cancels this coroutine) is not held up by a pending input().
    """
    logger.info("Console connector started.")
    app_name = str(getattr(getattr(state, "settings", None), "app_name", "zentask"))
    _print_ts(f"[{app_name}] Use /help for commands, /exit to quit.")

    def emit(text: str) -> None:
        _print_ts(text)

    reader = _StdinReader(asyncio.get_running_loop(), read_line)
    reader.start()

    while True:
        raw = await reader.readline()
        if raw is None:
            logger.info("Console EOF received, exiting.")
            break

        line = raw.strip()
        if not line:
            continue

        if line.lower() in ("/exit", "/quit"):
            logger.info("Console exit command received.")
            break

        if not line.startswith("/"):
            # bare text is a quick add
            line = "/add " + line

        try:
            reply = await command_registry.handle(state, line, emit=emit)
        except Exception:
            logger.exception("Command handler crashed.")
            reply = "Internal error while handling a command."

        if reply is not None:
            _print_ts(reply)

    logger.info("Console connector finished.")
