"""Start / deliver / done — the work lifecycle on top of the store.

Finishing anything other than the suggested next task costs the suggested
task one pain point, with a note saying what was done instead.
"""

from __future__ import annotations

import logging

from knecht.errors import Blocked, InvalidTask
from knecht.tasks._schema import Status
from knecht.tasks.store import TaskStore

log = logging.getLogger(__name__)


def start_task(store: TaskStore, task_id: int) -> dict[str, object]:
    """Check a task can be worked on now and return its details.

    Refused while any blocker is still unresolved. Starting does not change
    the stored status.
    """
    task = store.get(task_id)
    if task.status is not Status.OPEN:
        raise InvalidTask(f"task-{task_id} is already {task.status.value}")
    blockers = store.blockers(task_id)
    pending = [b.blocker_id for b in blockers if not b.resolved]
    if pending:
        raise Blocked(task_id, pending)
    log.info("Starting task-%d", task_id)
    return {
        "status": "started",
        "task": task.to_dict(),
        "blockers": [b.to_dict() for b in blockers],
    }


def done_task(
    store: TaskStore,
    task_id: int,
    skip_penalty: bool = True,
    record_note: bool = True,
) -> dict[str, object]:
    """Mark a task Done; penalize the skipped suggestion if there was one."""
    done, skipped = store.complete(task_id, penalize_skip=skip_penalty, record_note=record_note)
    result: dict[str, object] = {"status": "done", "task": done.to_dict()}
    if skipped is not None:
        result["skipped"] = skipped.to_dict()
    return result


def deliver_task(store: TaskStore, task_id: int) -> dict[str, object]:
    """Mark a task Delivered (complete, pending verification)."""
    task = store.get(task_id)
    if task.status is not Status.OPEN:
        raise InvalidTask(f"task-{task_id} is already {task.status.value}")
    delivered = store.set_status(task_id, Status.DELIVERED)
    return {"status": "delivered", "task": delivered.to_dict()}
