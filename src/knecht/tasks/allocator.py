"""Task id allocation."""

from __future__ import annotations

from collections.abc import Iterable

from knecht.tasks._schema import Task


def next_id(tasks: Iterable[Task], high_water: int = 0) -> int:
    """Return 1 + the largest id ever issued.

    ``high_water`` is the persisted mark of the last issued id. It keeps a
    deleted top id from being handed out again; ledgers that predate the
    mark fall back to the live maximum.
    """
    return max([high_water, *(t.id for t in tasks)]) + 1
