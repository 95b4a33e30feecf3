# src/zentask/tasks/local_store.py

from __future__ import annotations

import contextlib
import json
import logging
import os
from collections.abc import Mapping, Sequence
from dataclasses import replace
from pathlib import Path
from typing import Any

from ..errors import WriteRejected
from .task_models import Task, normalize_changes

logger = logging.getLogger(__name__)


class LocalTaskStore:
    """
    Local-only task store: one JSON blob under a fixed storage key.

    The key-value area is a directory; the key names the file (<key>.json).
    The blob is a JSON array of camel-cased task records.

    Semantics:
    - absent or corrupt blob -> empty list (logged, never raised)
    - update/delete of an unknown id is a no-op
    - writes are atomic (tmp file + os.replace); OS errors become WriteRejected
    - all I/O happens on the event loop thread, so read-modify-write never interleaves
    """

    def __init__(self, data_dir: str | Path, storage_key: str) -> None:
        if not storage_key or not storage_key.strip():
            raise ValueError("storage_key is required")
        self._dir = Path(data_dir)
        self._key = storage_key.strip()
        self._path = self._dir / f"{self._key}.json"
        logger.info("LocalTaskStore ready path=%s", self._path)

    @property
    def path(self) -> Path:
        return self._path

    # ---- low-level helpers ----

    def _read(self) -> list[Task]:
        if not self._path.exists():
            return []
        try:
            data = json.loads(self._path.read_text("utf-8"))
        except (OSError, ValueError):
            logger.warning("Local blob %s is unreadable; treating as empty.", self._path, exc_info=True)
            return []

        if not isinstance(data, list):
            logger.warning("Local blob %s is not a list; treating as empty.", self._path)
            return []

        out: list[Task] = []
        for item in data:
            if not isinstance(item, dict):
                continue
            try:
                out.append(Task.from_record(item))
            except (KeyError, TypeError, ValueError):
                logger.warning("Skipping malformed task record in %s: %r", self._path, item)
        return out

    def _write(self, tasks: Sequence[Task]) -> None:
        payload = json.dumps([t.to_record() for t in tasks], ensure_ascii=False, indent=2)
        tmp = self._path.with_suffix(".tmp")
        try:
            self._dir.mkdir(parents=True, exist_ok=True)
            tmp.write_text(payload, "utf-8")
            os.replace(tmp, self._path)
        except OSError as e:
            with contextlib.suppress(OSError):
                tmp.unlink()
            raise WriteRejected(f"failed to write {self._path}: {e}") from e
        logger.debug("Saved %d tasks to %s", len(tasks), self._path)

    # ---- TaskStore ----

    async def load_all(self) -> list[Task]:
        tasks = self._read()
        logger.info("Loaded %d tasks from %s", len(tasks), self._path)
        return tasks

    async def create_one(self, task: Task) -> None:
        await self.create_many([task])

    async def create_many(self, tasks: Sequence[Task]) -> None:
        if not tasks:
            return
        current = self._read()
        new_ids = {t.id for t in tasks}
        # Newest first, like the in-memory collection; replace same-id records.
        kept = [t for t in current if t.id not in new_ids]
        self._write([*tasks, *kept])

    async def update_fields(self, task_id: str, fields: Mapping[str, Any]) -> None:
        changes = normalize_changes(dict(fields))
        if not changes:
            return
        current = self._read()
        updated = [replace(t, **changes) if t.id == task_id else t for t in current]
        if updated == current:
            return
        self._write(updated)

    async def delete_one(self, task_id: str) -> None:
        current = self._read()
        kept = [t for t in current if t.id != task_id]
        if len(kept) == len(current):
            return
        self._write(kept)
