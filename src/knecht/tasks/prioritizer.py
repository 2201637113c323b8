"""Next-task selection: highest pain first, oldest (lowest id) on ties."""

from __future__ import annotations

from knecht.tasks._schema import Task


def _priority_key(task: Task) -> tuple[int, int]:
    return (-task.pain_count, task.id)


def rank(ready: list[Task]) -> list[Task]:
    return sorted(ready, key=_priority_key)


def pick_next(ready: list[Task]) -> Task | None:
    if not ready:
        return None
    return min(ready, key=_priority_key)
