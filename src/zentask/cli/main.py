# src/zentask/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds AppState, starts the initial task load in the
background and runs the console REPL. On exit it waits for in-flight writes
so no optimistic change is left unsettled.
"""

from __future__ import annotations

import asyncio
import logging

from ..cli.bootstrap import create_initial_state
from ..config import Settings, get_settings
from ..connectors.console_connector import console_alert, run_console_loop
from ..logging_setup import setup_logging

logger = logging.getLogger(__name__)


async def run_app(settings: Settings) -> None:
    state = create_initial_state(settings=settings, alert=console_alert)

    # Commands that mutate are refused until this finishes.
    loader = asyncio.create_task(state.engine.load())

    try:
        await run_console_loop(state)
    finally:
        await loader
        if state.engine.pending_writes:
            logger.info("Waiting for %d in-flight write(s)...", state.engine.pending_writes)
        await state.engine.wait_idle()


def main() -> None:
    settings = get_settings()

    log_file = setup_logging(log_dir=settings.data_dir, console_level=settings.log_level)

    logger.info("Starting %s (store=%s, log=%s)...", settings.app_name, settings.store_backend, log_file)

    try:
        asyncio.run(run_app(settings))
    except KeyboardInterrupt:
        logger.info("Interrupted.")
    logger.info("Bye.")


if __name__ == "__main__":
    main()
