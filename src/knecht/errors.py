"""Error taxonomy for the task ledger.

Every error has a stable ``kind`` string. The CLI reports it next to the
message so scripts can branch on it without parsing text.
"""

from __future__ import annotations


class KnechtError(Exception):
    """Base class for all ledger errors."""

    kind = "error"


class NotFound(KnechtError):
    kind = "not_found"

    def __init__(self, task_id: int) -> None:
        super().__init__(f"task-{task_id} not found")
        self.task_id = task_id


class InvalidTask(KnechtError):
    """Caller input rejected before anything was written."""

    kind = "invalid_task"


class WriteFailed(KnechtError):
    kind = "write_failed"

    def __init__(self, path: str, reason: object) -> None:
        super().__init__(f"Failed to write {path}: {reason}")
        self.path = path


class RecordError(KnechtError):
    """Corruption detected while loading a ledger file."""

    kind = "record_error"

    def __init__(self, message: str, line: int, source: str = "tasks") -> None:
        super().__init__(f"{source}:{line}: {message}")
        self.line = line
        self.source = source


class MalformedRecord(RecordError):
    kind = "malformed_record"


class UnknownStatus(RecordError):
    kind = "unknown_status"


class InvalidNumber(RecordError):
    kind = "invalid_number"


class Blocked(KnechtError):
    """Work refused because the task still has unresolved blockers."""

    kind = "blocked"

    def __init__(self, task_id: int, blocker_ids: list[int]) -> None:
        refs = ", ".join(f"task-{b}" for b in blocker_ids)
        super().__init__(f"Cannot start task-{task_id}: blocked by {refs}")
        self.task_id = task_id
        self.blocker_ids = blocker_ids
