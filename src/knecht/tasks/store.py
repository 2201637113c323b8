"""Task store — the single point of truth for the ledger.

Every operation is one load -> apply -> persist cycle over the whole
ledger. If the apply step raises, nothing is written; if a write fails,
the files on disk keep their previous content.

Files written by a save, in order:
  last-id    high-water mark of issued ids
  blockers   task-<blocked>|task-<blocker> edges (a task deleted in this
             save keeps its edges until the next one)
  tasks      one current-format row per task
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Protocol

from knecht.defaults import BLOCKERS_FILE, LAST_ID_FILE, LEGACY_BACKUP_FILE, TASKS_FILE, WRITE_ORDER
from knecht.errors import InvalidTask, NotFound
from knecht.tasks._schema import BlockerInfo, Status, Task, validate_title
from knecht.tasks.allocator import next_id
from knecht.tasks.codec import (
    Format,
    decode_blockers,
    decode_last_id,
    decode_tasks,
    encode_blockers,
    encode_last_id,
    encode_tasks,
)
from knecht.tasks.prioritizer import pick_next
from knecht.tasks.resolver import blocker_info, dependents, ready_set

log = logging.getLogger(__name__)


class LedgerFiles(Protocol):
    def exists(self) -> bool: ...
    def ensure(self) -> None: ...
    def read(self, name: str) -> str | None: ...
    def write(self, name: str, content: str) -> None: ...


@dataclass
class _Snapshot:
    format: Format
    tasks: list[Task]
    high_water: int
    raw: dict[str, str | None]
    # blocker edges as loaded, keyed by blocked id
    edges: dict[int, set[int]]
    deleted: set[int] = field(default_factory=set)


class TaskStore:
    """Task ledger over a ``LedgerFiles`` backend.

    Construction performs an initial load so a corrupt ledger is reported
    before any operation runs.
    """

    def __init__(self, files: LedgerFiles) -> None:
        self._files = files
        snap = self._load()
        log.debug("TaskStore ready files=%r total=%d format=%s", files, len(snap.tasks), snap.format.value)

    # ---- load / save ----

    def _load(self) -> _Snapshot:
        raw = {name: self._files.read(name) for name in WRITE_ORDER}
        fmt, tasks = decode_tasks(raw[TASKS_FILE])
        edges = decode_blockers(raw[BLOCKERS_FILE])
        for task in tasks:
            task.blocked_by = set(edges.get(task.id, ()))
        high_water = max([decode_last_id(raw[LAST_ID_FILE]), *(t.id for t in tasks)])
        return _Snapshot(format=fmt, tasks=tasks, high_water=high_water, raw=raw, edges=edges)

    @staticmethod
    def _edges_to_write(snap: _Snapshot) -> dict[int, set[int]]:
        """Live edges plus those of tasks deleted in this save.

        The blockers file is written before the tasks file. Keeping the edges
        of a just-deleted task means a failed tasks write cannot leave that
        task in the file without its blockers. The next save drops them.
        """
        edges = {t.id: t.blocked_by for t in snap.tasks if t.blocked_by}
        for task_id in snap.deleted:
            if task_id in snap.edges:
                edges[task_id] = snap.edges[task_id]
        return edges

    def _save(self, snap: _Snapshot) -> None:
        rendered = {
            LAST_ID_FILE: encode_last_id(snap.high_water) if snap.high_water else "",
            BLOCKERS_FILE: encode_blockers(self._edges_to_write(snap)),
            TASKS_FILE: encode_tasks(snap.tasks),
        }
        for name in WRITE_ORDER:
            content = rendered[name]
            previous = snap.raw[name]
            if content == (previous or "") and (previous is not None or name != TASKS_FILE):
                continue
            self._files.write(name, content)

    @contextmanager
    def _transaction(self) -> Iterator[_Snapshot]:
        snap = self._load()
        yield snap
        self._save(snap)

    @staticmethod
    def _find(snap: _Snapshot, task_id: int) -> Task:
        for task in snap.tasks:
            if task.id == task_id:
                return task
        raise NotFound(task_id)

    # ---- setup ----

    def init(self) -> bool:
        """Create the ledger directory and an empty tasks file.

        Returns False when a tasks file already existed.
        """
        self._files.ensure()
        if self._files.read(TASKS_FILE) is not None:
            return False
        self._files.write(TASKS_FILE, "")
        log.info("Initialized ledger %r", self._files)
        return True

    def migrate(self, backup: bool = True) -> Format:
        """Rewrite a legacy-format tasks file in the current format.

        Returns the format the file was in. Current files are left alone.
        """
        snap = self._load()
        if snap.format is Format.CURRENT:
            return Format.CURRENT
        if backup:
            self._files.write(LEGACY_BACKUP_FILE, snap.raw[TASKS_FILE] or "")
        self._save(snap)
        log.info("Migrated %d task(s) from legacy format", len(snap.tasks))
        return Format.LEGACY

    # ---- queries ----

    def get(self, task_id: int) -> Task:
        return self._find(self._load(), task_id)

    def list(self, status: Status | None = None) -> list[Task]:
        tasks = self._load().tasks
        if status is None:
            return tasks
        return [t for t in tasks if t.status is status]

    def ready(self) -> list[Task]:
        return ready_set(self._load().tasks)

    def next(self) -> Task | None:
        return pick_next(ready_set(self._load().tasks))

    def blockers(self, task_id: int) -> list[BlockerInfo]:
        snap = self._load()
        return blocker_info(self._find(snap, task_id), snap.tasks)

    def dependents(self, task_id: int) -> list[Task]:
        snap = self._load()
        self._find(snap, task_id)
        return dependents(task_id, snap.tasks)

    # ---- mutations ----

    def create(self, title: str, description: str = "", blocked_by: Iterable[int] = ()) -> Task:
        validate_title(title)
        with self._transaction() as snap:
            blockers = set(blocked_by)
            for blocker_id in sorted(blockers):
                self._find(snap, blocker_id)
            task = Task(
                id=next_id(snap.tasks, snap.high_water),
                status=Status.OPEN,
                title=title,
                description=description or "",
                blocked_by=blockers,
            )
            snap.tasks.append(task)
            snap.high_water = task.id
        log.info("Created task-%d %r blocked_by=%s", task.id, task.title, sorted(task.blocked_by))
        return task

    def set_status(self, task_id: int, status: Status) -> Task:
        with self._transaction() as snap:
            task = self._find(snap, task_id)
            previous = task.status
            task.status = status
        log.info("task-%d status %s -> %s", task_id, previous.value, status.value)
        return task

    def update_fields(self, task_id: int, title: str | None = None, description: str | None = None) -> Task:
        if title is not None:
            validate_title(title)
        with self._transaction() as snap:
            task = self._find(snap, task_id)
            if title is not None:
                task.title = title
            if description is not None:
                task.description = description
        log.info("Updated task-%d", task_id)
        return task

    @staticmethod
    def _add_pain(task: Task, note: str, record_note: bool) -> None:
        task.pain_count += 1
        if record_note and note.strip():
            task.description = f"{task.description}\n{note}" if task.description else note
        log.info("task-%d pain -> %d: %s", task.id, task.pain_count, note)

    def increment_pain(self, task_id: int, note: str, record_note: bool = False) -> Task:
        """Add one to the pain count.

        The note is always logged; with ``record_note`` it is also appended to
        the description as its own line, in the same write.
        """
        with self._transaction() as snap:
            task = self._find(snap, task_id)
            self._add_pain(task, note, record_note)
        return task

    def complete(
        self,
        task_id: int,
        penalize_skip: bool = True,
        record_note: bool = False,
    ) -> tuple[Task, Task | None]:
        """Mark a task Done in one write, charging the skipped suggestion.

        The suggestion is the next task as ranked before the change. When it
        is a different task it gets one pain point with a ``Skip:`` note.
        Returns the finished task and the penalized one, if any.
        """
        with self._transaction() as snap:
            task = self._find(snap, task_id)
            if task.status is Status.DONE:
                raise InvalidTask(f"task-{task_id} is already done")
            suggested = pick_next(ready_set(snap.tasks)) if penalize_skip else None
            task.status = Status.DONE
            skipped = suggested if suggested is not None and suggested.id != task_id else None
            if skipped is not None:
                self._add_pain(skipped, f"Skip: task-{task_id} completed instead", record_note)
        log.info("task-%d done%s", task_id, f", task-{skipped.id} skipped" if skipped else "")
        return task, skipped

    def add_blocker(self, task_id: int, blocker_id: int) -> Task:
        if task_id == blocker_id:
            raise InvalidTask(f"task-{task_id} cannot block itself")
        with self._transaction() as snap:
            task = self._find(snap, task_id)
            self._find(snap, blocker_id)
            task.blocked_by.add(blocker_id)
        log.info("task-%d blocked by task-%d", task_id, blocker_id)
        return task

    def remove_blocker(self, task_id: int, blocker_id: int) -> Task:
        with self._transaction() as snap:
            task = self._find(snap, task_id)
            task.blocked_by.discard(blocker_id)
        log.info("task-%d no longer blocked by task-%d", task_id, blocker_id)
        return task

    def delete(self, task_id: int) -> Task:
        with self._transaction() as snap:
            task = self._find(snap, task_id)
            snap.tasks.remove(task)
            snap.deleted.add(task_id)
        log.info("Deleted task-%d", task_id)
        return task
