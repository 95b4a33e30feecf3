# src/zentask/cli/commands.py

from __future__ import annotations

import inspect
import logging
import shlex
from collections.abc import Awaitable, Callable, Sequence
from datetime import date

from ..core.state import AppState
from ..errors import TasksLoading
from ..tasks.task_models import Task, TaskDraft, ViewMode
from ..tasks.views import dashboard_stats, is_overdue, overdue_tasks, project

CommandEmitter = Callable[[str], None]
CommandHandler = Callable[
    [AppState, list[str], CommandEmitter | None], str | Awaitable[str]
]

logger = logging.getLogger(__name__)

SHORT_ID = 8

DRAFT_OPTIONS = {"due": "due_date", "priority": "priority", "category": "category", "desc": "description"}
EDIT_OPTIONS = {**DRAFT_OPTIONS, "title": "title"}

LOADING_REPLY = "Tasks are still loading, try again in a moment."


class CommandRegistry:
    """Slash-command registry used by the console connector (/help, /add, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    async def handle(
        self,
        state: AppState,
        line: str,
        emit: CommandEmitter | None = None,
    ) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.
        """
        if not line.startswith("/"):
            return None

        try:
            parts = shlex.split(line[1:])
        except ValueError as e:
            # Unbalanced quotes are usually apostrophes in a title ("don't ...").
            logger.debug("shlex failed (%s); splitting on whitespace: %r", e, line)
            parts = line[1:].split()
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        try:
            result = handler(state, args, emit)
            if inspect.isawaitable(result):
                result = await result
        except TasksLoading:
            return LOADING_REPLY
        except ValueError as e:
            return f"Invalid input: {e}"
        return result

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


# ---- helpers ----


def format_task(task: Task, today: date | None = None) -> str:
    mark = "x" if task.completed else " "
    flag = "  OVERDUE" if is_overdue(task, today) else ""
    line = (
        f"[{mark}] {task.id[:SHORT_ID]}  {task.title}  "
        f"(due {task.due_date.isoformat()}, {task.priority.value}, {task.category.value}){flag}"
    )
    if task.description:
        line += f"\n      {task.description}"
    return line


def format_task_list(title: str, tasks: Sequence[Task]) -> str:
    if not tasks:
        return f"{title}: nothing here. You're all caught up for this view."
    noun = "Task" if len(tasks) == 1 else "Tasks"
    lines = [f"{title} ({len(tasks)} {noun}):"]
    lines.extend(format_task(t) for t in tasks)
    return "\n".join(lines)


def split_options(args: list[str], allowed: dict[str, str]) -> tuple[str, dict[str, str]]:
    """
    Split "free words key=value ..." into (text, {field: value}).

    Only keys listed in `allowed` are treated as options; everything else is text.
    """
    words: list[str] = []
    options: dict[str, str] = {}
    for arg in args:
        key, sep, value = arg.partition("=")
        if sep and key.lower() in allowed:
            options[allowed[key.lower()]] = value
        else:
            words.append(arg)
    return " ".join(words).strip(), options


def resolve_task(state: AppState, ref: str) -> tuple[Task | None, str | None]:
    """Find a task by full id or unique id prefix. Returns (task, error_message)."""
    ref = (ref or "").strip()
    if not ref:
        return None, "Missing task id."
    matches = [t for t in state.engine.tasks if t.id.startswith(ref)]
    if not matches:
        return None, f"No task matches id '{ref}'."
    if len(matches) > 1:
        exact = [t for t in matches if t.id == ref]
        if len(exact) == 1:
            return exact[0], None
        return None, f"Id '{ref}' is ambiguous ({len(matches)} tasks); type more characters."
    return matches[0], None


# ---- handlers ----


def cmd_help(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    return registry.build_help()


def cmd_status(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    engine = state.engine
    backend = getattr(state.settings, "store_backend", "local")
    ai = "ON" if state.advisor.configured else "OFF (set ZEN_LLM_API_KEY)"
    loaded = "loading..." if engine.loading else f"{len(engine.tasks)} tasks"
    return (
        "Status:\n"
        f"  Storage: {backend}\n"
        f"  Tasks: {loaded}\n"
        f"  Writes in flight: {engine.pending_writes}\n"
        f"  AI assistant: {ai}"
    )


def cmd_add(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    """
    /add <title> [due=YYYY-MM-DD] [priority=Low|Medium|High] [category=...] [desc="..."]
    """
    title, options = split_options(args, DRAFT_OPTIONS)
    if not title:
        return 'Usage: /add <title> [due=YYYY-MM-DD] [priority=High] [category=Work] [desc="..."]'
    task = state.engine.add_task(TaskDraft(title=title, **options))
    return f"Added: {format_task(task)}"


def cmd_done(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    if state.engine.loading:
        return LOADING_REPLY
    task, err = resolve_task(state, args[0] if args else "")
    if task is None:
        return err or "Usage: /done <id>"
    updated = state.engine.toggle_completion(task.id)
    if updated is None:
        return f"Task {task.id[:SHORT_ID]} is gone."
    state_word = "completed" if updated.completed else "reopened"
    return f"Task {state_word}: {format_task(updated)}"


def cmd_edit(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    """/edit <id> [title="..."] [due=...] [priority=...] [category=...] [desc="..."]"""
    if state.engine.loading:
        return LOADING_REPLY
    if not args:
        return 'Usage: /edit <id> [title="..."] [due=YYYY-MM-DD] [priority=..] [category=..] [desc="..."]'
    task, err = resolve_task(state, args[0])
    if task is None:
        return err or "Usage: /edit <id> key=value..."
    _, changes = split_options(args[1:], EDIT_OPTIONS)
    if not changes:
        return "Nothing to change. Use key=value pairs (title, due, priority, category, desc)."
    updated = state.engine.edit_task(task.id, **changes)
    if updated is None:
        return f"Task {task.id[:SHORT_ID]} is gone."
    return f"Updated: {format_task(updated)}"


def cmd_rm(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    if state.engine.loading:
        return LOADING_REPLY
    task, err = resolve_task(state, args[0] if args else "")
    if task is None:
        return err or "Usage: /rm <id>"
    removed = state.engine.delete_task(task.id)
    if removed is None:
        return f"Task {task.id[:SHORT_ID]} is gone."
    return f"Deleted: {removed.title}"


def _view_handler(view: ViewMode, title: str) -> CommandHandler:
    def handler(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
        if state.engine.loading:
            return LOADING_REPLY
        return format_task_list(title, project(state.engine.tasks, view))

    return handler


def cmd_overdue(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    if state.engine.loading:
        return LOADING_REPLY
    return format_task_list("Overdue", overdue_tasks(state.engine.tasks))


def cmd_stats(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    if state.engine.loading:
        return LOADING_REPLY
    stats = dashboard_stats(state.engine.tasks)
    by_priority = ", ".join(f"{p.value}: {n}" for p, n in stats.pending_by_priority.items())
    return (
        "Dashboard:\n"
        f"  Total tasks: {stats.total}\n"
        f"  Completed: {stats.completed}\n"
        f"  Pending: {stats.pending}\n"
        f"  Pending by priority: {by_priority}\n"
        f"  Completion rate: {stats.completion_rate_label}"
    )


async def cmd_breakdown(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    """/breakdown <title> [due=..] [priority=..] [category=..] [desc="..."]

    The options become the shared fields of every subtask added by /accept.
    """
    title, options = split_options(args, DRAFT_OPTIONS)
    if not title:
        return 'Usage: /breakdown <title> [due=YYYY-MM-DD] [priority=..] [category=..] [desc="..."]'
    if not state.advisor.configured:
        return "AI assistant is not configured. Set ZEN_LLM_API_KEY to enable /breakdown."

    # Validate the shared fields before spending an AI call.
    template = TaskDraft(title=title, **options)

    if emit:
        emit("[AI] Thinking...")
    suggestions = await state.advisor.suggest_subtasks(title)
    if not suggestions:
        state.clear_suggestions()
        return "No suggestions."

    state.suggestions = suggestions
    state.suggestion_template = template
    lines = [f"Suggested subtasks for '{title}':"]
    lines.extend(f"  {i}. {s}" for i, s in enumerate(suggestions, start=1))
    lines.append(f"Use /accept to add these {len(suggestions)} subtasks, or /clear to drop them.")
    return "\n".join(lines)


def cmd_accept(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    if not state.suggestions or state.suggestion_template is None:
        return "No pending suggestions. Use /breakdown <title> first."
    tpl = state.suggestion_template
    drafts = [
        TaskDraft(
            title=s,
            due_date=tpl.due_date,
            priority=tpl.priority,
            category=tpl.category,
            description=tpl.description,
        )
        for s in state.suggestions
    ]
    added = state.engine.add_multiple_tasks(drafts)
    state.clear_suggestions()
    return format_task_list("Added subtasks", added)


def cmd_clear(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    state.clear_suggestions()
    return "Suggestions cleared."


async def cmd_inspire(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    if state.engine.loading:
        return LOADING_REPLY
    pending = dashboard_stats(state.engine.tasks).pending
    return await state.advisor.motivational_message(pending)


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("status", cmd_status, help_text="Show storage backend, task count and AI status.")
registry.register(
    "add",
    cmd_add,
    help_text='Add a task: /add <title> [due=YYYY-MM-DD] [priority=..] [category=..] [desc="..."].',
)
registry.register("done", cmd_done, help_text="Toggle completion: /done <id>.", aliases=["toggle"])
registry.register("edit", cmd_edit, help_text="Edit fields: /edit <id> key=value...")
registry.register("rm", cmd_rm, help_text="Delete a task: /rm <id>.", aliases=["delete", "del"])
registry.register("today", _view_handler(ViewMode.TODAY, "Today's Agenda"), help_text="Tasks due today.")
registry.register(
    "upcoming", _view_handler(ViewMode.UPCOMING, "Upcoming Tasks"), help_text="Tasks due after today."
)
registry.register(
    "completed", _view_handler(ViewMode.COMPLETED, "Completed History"), help_text="Completed tasks."
)
registry.register("all", _view_handler(ViewMode.ALL, "All Tasks"), help_text="Every task.", aliases=["ls"])
registry.register("overdue", cmd_overdue, help_text="Incomplete tasks past their due date.")
registry.register("stats", cmd_stats, help_text="Dashboard statistics.", aliases=["dashboard"])
registry.register(
    "breakdown",
    cmd_breakdown,
    help_text="AI subtasks: /breakdown <title> [due=..] [priority=..] [category=..] [desc=..].",
)
registry.register("accept", cmd_accept, help_text="Add the pending AI subtasks as one batch.")
registry.register("clear", cmd_clear, help_text="Drop the pending AI subtasks.")
registry.register("inspire", cmd_inspire, help_text="AI motivational message.", aliases=["motivate"])
