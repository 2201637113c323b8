"""Task record, status vocabulary and input validation."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum

from knecht.errors import InvalidTask


class Status(str, Enum):
    """Task status. Values are the tokens stored in the tasks file."""

    OPEN = "open"
    DELIVERED = "delivered"
    DONE = "done"

    @classmethod
    def parse(cls, raw: str) -> Status:
        """Parse a user-supplied status name (case-insensitive)."""
        try:
            return cls(raw.strip().lower())
        except ValueError:
            valid = ", ".join(s.value for s in cls)
            raise InvalidTask(f"Invalid status '{raw}'. Valid: {valid}") from None


STATUS_TOKENS = {s.value: s for s in Status}

_DIGITS = re.compile(r"[0-9]+")


@dataclass
class Task:
    id: int
    status: Status
    title: str
    description: str = ""
    pain_count: int = 0
    blocked_by: set[int] = field(default_factory=set)

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "status": self.status.value,
            "title": self.title,
            "description": self.description,
            "pain_count": self.pain_count,
            "blocked_by": sorted(self.blocked_by),
        }


@dataclass(frozen=True)
class BlockerInfo:
    """One blocker edge as seen from the blocked task.

    ``status`` is None when the blocker task no longer exists.
    """

    blocker_id: int
    status: Status | None
    title: str | None = None

    @property
    def resolved(self) -> bool:
        return self.status is None or self.status is Status.DONE

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.blocker_id,
            "status": self.status.value if self.status else "missing",
            "title": self.title,
            "resolved": self.resolved,
        }


def validate_title(title: str) -> str:
    """Titles are non-empty single lines."""
    if not title or not title.strip():
        raise InvalidTask("Title must not be empty")
    if "\n" in title or "\r" in title:
        raise InvalidTask("Title must be a single line")
    return title


def parse_task_ref(raw: str | int) -> int:
    """Accept ``7``, ``"7"`` or ``"task-7"``."""
    text = str(raw).strip()
    if text.startswith("task-"):
        text = text[len("task-"):]
    if not _DIGITS.fullmatch(text) or int(text) < 1:
        raise InvalidTask(f"Invalid task id '{raw}'")
    return int(text)
