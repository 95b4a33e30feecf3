# src/zentask/llm/advisor.py

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

from ..core.ports import LLMClient
from ..errors import AdvisoryUnavailable

logger = logging.getLogger(__name__)

FALLBACK_SUBTASKS = ("Identify the first step", "Gather necessary resources", "Execute the core action")

MOTIVATION_NOT_CONFIGURED = "Keep pushing forward! You've got this."
MOTIVATION_FAILED = "Focus on being productive instead of busy."
MOTIVATION_EMPTY = "Action is the foundational key to all success."

MAX_SUBTASKS = 5

# Structured outputs need an object root, so the array travels under "subtasks".
SUBTASKS_SCHEMA: dict[str, Any] = {
    "name": "subtasks",
    "strict": True,
    "schema": {
        "type": "object",
        "properties": {
            "subtasks": {
                "type": "array",
                "items": {"type": "string"},
            },
        },
        "required": ["subtasks"],
        "additionalProperties": False,
    },
}


def _subtasks_prompt(title: str) -> str:
    return (
        "Break down the following task into 3 to 5 smaller, actionable subtasks. "
        "Keep them concise. Reply with JSON only. "
        f'Task: "{title}"'
    )


def _motivation_prompt(pending_count: int) -> str:
    return (
        f"I have {pending_count} tasks left to do today. Give me a very short, punchy, "
        "and unique motivational tip or quote to get me moving. Maximum 20 words."
    )


def parse_subtasks(raw: str) -> list[str]:
    """
    Accept a JSON array of strings, or {"subtasks": [...]}.

    Raises AdvisoryUnavailable on anything else or when nothing usable remains.
    """
    try:
        data = json.loads(raw)
    except (TypeError, ValueError) as e:
        raise AdvisoryUnavailable(f"subtasks reply is not JSON: {raw[:80]!r}") from e

    if isinstance(data, dict):
        data = data.get("subtasks")
    if not isinstance(data, list):
        raise AdvisoryUnavailable("subtasks reply is not a list")

    items = [s.strip() for s in data if isinstance(s, str) and s.strip()]
    if not items:
        raise AdvisoryUnavailable("subtasks reply is empty")
    return items[:MAX_SUBTASKS]


class TaskAdvisor:
    """
    Optional AI helper. Never raises to the caller.

    llm=None means "not configured": no call is made and the not-configured
    values are returned. A configured client that fails yields fixed fallbacks.
    """

    def __init__(self, llm: LLMClient | None) -> None:
        self._llm = llm

    @property
    def configured(self) -> bool:
        return self._llm is not None

    async def suggest_subtasks(self, title: str) -> list[str]:
        if self._llm is None:
            return []
        title = (title or "").strip()
        if not title:
            return []

        try:
            raw = await asyncio.to_thread(self._llm.complete, _subtasks_prompt(title), json_schema=SUBTASKS_SCHEMA)
            return parse_subtasks(raw)
        except Exception as e:
            logger.warning("Subtask suggestion failed; using fallback: %s", e)
            return list(FALLBACK_SUBTASKS)

    async def motivational_message(self, pending_count: int) -> str:
        if self._llm is None:
            return MOTIVATION_NOT_CONFIGURED

        try:
            text = await asyncio.to_thread(self._llm.complete, _motivation_prompt(max(0, int(pending_count))))
        except Exception as e:
            logger.warning("Motivational message failed; using fallback: %s", e)
            return MOTIVATION_FAILED

        text = (text or "").strip()
        return text or MOTIVATION_EMPTY
