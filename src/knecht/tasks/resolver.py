"""Blocker resolution over a full task snapshot.

A blocker is resolved when its task is Done or no longer exists. Missing
blockers fail open: deleting a blocker task releases everything it blocked.
Nothing is cached; every call walks the snapshot it is given.
"""

from __future__ import annotations

from knecht.tasks._schema import BlockerInfo, Status, Task


def _index(tasks: list[Task]) -> dict[int, Task]:
    return {t.id: t for t in tasks}


def ready_set(tasks: list[Task]) -> list[Task]:
    """Open tasks with no unresolved blockers, in snapshot order."""
    by_id = _index(tasks)

    def is_resolved(blocker_id: int) -> bool:
        blocker = by_id.get(blocker_id)
        return blocker is None or blocker.status is Status.DONE

    return [
        t for t in tasks
        if t.status is Status.OPEN and all(is_resolved(b) for b in t.blocked_by)
    ]


def blocker_info(task: Task, tasks: list[Task]) -> list[BlockerInfo]:
    by_id = _index(tasks)
    infos = []
    for b in sorted(task.blocked_by):
        blocker = by_id.get(b)
        if blocker is None:
            infos.append(BlockerInfo(blocker_id=b, status=None))
        else:
            infos.append(BlockerInfo(blocker_id=b, status=blocker.status, title=blocker.title))
    return infos


def dependents(task_id: int, tasks: list[Task]) -> list[Task]:
    """Tasks that list ``task_id`` as a blocker."""
    return [t for t in tasks if task_id in t.blocked_by]
