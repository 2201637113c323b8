"""CLI output formatting — JSON by default, human-readable on request."""
from __future__ import annotations

import json
import sys

import click

_MARKERS = {"open": "[ ]", "delivered": "[>]", "done": "[x]"}


def output(data: dict[str, object], human: bool = False) -> None:
    """Print result as JSON (default) or human-readable text.

    A payload with an ``error`` key goes to stderr and exits 1.
    """
    if "error" in data:
        click.echo(json.dumps(data, indent=2, default=str), err=True)
        sys.exit(1)
    if human:
        click.echo(format_human(data))
    else:
        click.echo(json.dumps(data, indent=2, default=str))


def task_line(task: dict) -> str:
    """One-line summary: ``[ ] task-3  Title (pain count: 2)``."""
    marker = _MARKERS.get(str(task.get("status")), "[?]")
    line = f"{marker} task-{task['id']}  {task['title']}"
    if task.get("pain_count"):
        line += f" (pain count: {task['pain_count']})"
    return line


def _task_detail(task: dict) -> list[str]:
    lines = [
        f"task-{task['id']}: {task['title']}",
        f"Status: {task['status']}",
    ]
    if task.get("pain_count"):
        lines.append(f"Pain count: {task['pain_count']}")
    if task.get("description"):
        lines.append("")
        lines.append(str(task["description"]))
    return lines


def format_human(data: dict[str, object]) -> str:
    lines: list[str] = []

    tasks = data.get("tasks")
    if isinstance(tasks, list):
        if not tasks:
            lines.append("No tasks.")
        lines.extend(task_line(t) for t in tasks)

    task = data.get("task")
    if isinstance(task, dict):
        status = data.get("status")
        if status:
            lines.append(f"{status}: task-{task['id']}")
            lines.append("")
        lines.extend(_task_detail(task))
    elif "task" in data:
        lines.append("No ready tasks.")

    blockers = data.get("blockers")
    if isinstance(blockers, list) and blockers:
        lines.append("")
        lines.append("Blocked by:")
        for b in blockers:
            title = f"  {b['title']}" if b.get("title") else ""
            lines.append(f"  - task-{b['id']} ({b['status']}){title}")

    blocks = data.get("blocks")
    if isinstance(blocks, list) and blocks:
        lines.append("")
        lines.append("Blocks:")
        lines.extend(f"  - {task_line(t)}" for t in blocks)

    skipped = data.get("skipped")
    if isinstance(skipped, dict):
        lines.append("")
        lines.append(f"Skipped task-{skipped['id']} (pain count: {skipped['pain_count']})")

    if not lines:
        for k, v in data.items():
            if isinstance(v, (list, dict)):
                lines.append(f"{k}: {json.dumps(v, indent=2, default=str)}")
            else:
                lines.append(f"{k}: {v}")

    return "\n".join(lines)
