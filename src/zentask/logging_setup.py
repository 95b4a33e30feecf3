# src/zentask/logging_setup.py

from __future__ import annotations

import logging
import sys
from pathlib import Path

LOG_FILE_NAME = "zentask.log"

# Console floor per logger prefix; first match wins. The file handler gets everything.
# - reconciler: persistence failures already reach the user through the alert sink
# - stores and the LLM client: model fallback / blob recovery chatter
_CONSOLE_FLOORS: tuple[tuple[str, int], ...] = (
    ("zentask.tasks.reconciler", logging.ERROR),
    ("zentask.tasks.", logging.WARNING),
    ("zentask.llm.", logging.WARNING),
    ("zentask.", logging.NOTSET),
)

_QUIET_LIBRARIES = ("httpx", "httpcore", "openai")

# Marks handlers installed here, so a second setup_logging() replaces only those.
_OWNED = "_zentask_handler"


class _ConsoleNoiseFilter(logging.Filter):
    """The console shares the terminal with the prompt; third-party logs only at ERROR+."""

    def filter(self, record: logging.LogRecord) -> bool:
        for prefix, floor in _CONSOLE_FLOORS:
            if record.name.startswith(prefix):
                return record.levelno >= floor
        return record.levelno >= logging.ERROR


def _level(value: int | str) -> int:
    if isinstance(value, int):
        return value
    level = logging.getLevelName(str(value).strip().upper())
    return level if isinstance(level, int) else logging.INFO


def setup_logging(
    *,
    log_dir: str | Path = ".local/zentask",
    console_level: int | str = logging.WARNING,
    file_level: int | str = logging.DEBUG,
) -> Path:
    """
    Console handler (filtered) + file handler (full). Returns the log file path.

    Level names such as "info" are accepted, so ZEN_LOG_LEVEL can be passed as-is;
    unknown names fall back to INFO.
    """
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / LOG_FILE_NAME

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    for h in list(root.handlers):
        if getattr(h, _OWNED, False):
            root.removeHandler(h)
            h.close()

    fmt = logging.Formatter(
        fmt="%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    ch = logging.StreamHandler(sys.stderr)
    ch.setLevel(_level(console_level))
    ch.addFilter(_ConsoleNoiseFilter())

    fh = logging.FileHandler(str(log_file), encoding="utf-8")
    fh.setLevel(_level(file_level))

    for h in (ch, fh):
        h.setFormatter(fmt)
        setattr(h, _OWNED, True)
        root.addHandler(h)

    logging.captureWarnings(True)

    for name in _QUIET_LIBRARIES:
        logging.getLogger(name).setLevel(logging.WARNING)

    return log_file
