"""Row codec for the tasks file and its sidecar files.

Two row formats exist in the history of a ledger:

  legacy   1|open|Fix the \\| parser|Details|2
  current  1,open,"Fix the | parser","Details",2

The format is detected once per file from the first non-blank line and
every row of that file is decoded with it. Encoding always produces the
current format.
"""

from __future__ import annotations

import csv
import io
import logging
import re
from enum import Enum

from knecht.errors import InvalidNumber, MalformedRecord, UnknownStatus
from knecht.tasks._schema import STATUS_TOKENS, Task

log = logging.getLogger(__name__)

LEGACY_SEP = "|"
CURRENT_SEP = ","
ESCAPE = "\\"
QUOTE = '"'

MIN_FIELDS = 3  # id, status, title
MAX_FIELDS = 5  # + description, pain_count

_NUMBER = re.compile(r"[0-9]+")
_BLOCKER_REF = re.compile(r"(?:task-)?([0-9]+)")


class Format(str, Enum):
    LEGACY = "legacy"
    CURRENT = "current"


# ---------------------------------------------------------------------------
# Detection
# ---------------------------------------------------------------------------


def detect_format(text: str) -> Format:
    """Pick the format from whichever separator appears first on the first row."""
    for line in text.splitlines():
        if not line.strip():
            continue
        for ch in line:
            if ch == LEGACY_SEP:
                return Format.LEGACY
            if ch == CURRENT_SEP:
                return Format.CURRENT
        return Format.CURRENT
    return Format.CURRENT


# ---------------------------------------------------------------------------
# Field parsing shared by both formats
# ---------------------------------------------------------------------------


def _parse_number(raw: str, what: str, line: int, source: str = "tasks") -> int:
    text = raw.strip()
    if not _NUMBER.fullmatch(text):
        raise InvalidNumber(f"{what} is not a number: {raw!r}", line, source)
    return int(text)


def _fields_to_task(fields: list[str], line: int) -> Task:
    if len(fields) < MIN_FIELDS:
        raise MalformedRecord(
            f"expected at least {MIN_FIELDS} fields (id, status, title), got {len(fields)}", line,
        )
    if len(fields) > MAX_FIELDS:
        raise MalformedRecord(f"expected at most {MAX_FIELDS} fields, got {len(fields)}", line)

    task_id = _parse_number(fields[0], "id", line)
    if task_id < 1:
        raise InvalidNumber(f"id must be positive, got {task_id}", line)

    token = fields[1].strip()
    status = STATUS_TOKENS.get(token)
    if status is None:
        raise UnknownStatus(f"unknown status {token!r}", line)

    title = fields[2]
    if not title:
        raise MalformedRecord("empty title", line)

    description = fields[3] if len(fields) > 3 else ""
    raw_pain = fields[4] if len(fields) > 4 else ""
    pain = _parse_number(raw_pain, "pain_count", line) if raw_pain.strip() else 0

    return Task(id=task_id, status=status, title=title, description=description, pain_count=pain)


# ---------------------------------------------------------------------------
# Legacy escaped format
# ---------------------------------------------------------------------------


def split_legacy(line: str) -> list[str]:
    """Split on unescaped separators, resolving ``\\|`` and ``\\\\``.

    A backslash before any other character, or at the end of the line,
    is kept literally.
    """
    fields: list[str] = []
    buf: list[str] = []
    i = 0
    while i < len(line):
        ch = line[i]
        if ch == ESCAPE and i + 1 < len(line) and line[i + 1] in (ESCAPE, LEGACY_SEP):
            buf.append(line[i + 1])
            i += 2
            continue
        if ch == LEGACY_SEP:
            fields.append("".join(buf))
            buf = []
        else:
            buf.append(ch)
        i += 1
    fields.append("".join(buf))
    return fields


def _decode_legacy(text: str) -> list[tuple[int, Task]]:
    rows: list[tuple[int, Task]] = []
    for lineno, raw in enumerate(text.split("\n"), start=1):
        row = raw.rstrip("\r")
        if not row.strip():
            continue
        rows.append((lineno, _fields_to_task(split_legacy(row), lineno)))
    return rows


# ---------------------------------------------------------------------------
# Current quoted format
# ---------------------------------------------------------------------------


def quote_field(value: str) -> str:
    return QUOTE + value.replace(QUOTE, QUOTE * 2) + QUOTE


def _decode_current(text: str) -> list[tuple[int, Task]]:
    reader = csv.reader(io.StringIO(text, newline=""), strict=True)
    rows: list[tuple[int, Task]] = []
    while True:
        start = reader.line_num + 1
        try:
            fields = next(reader)
        except StopIteration:
            break
        except csv.Error as exc:
            raise MalformedRecord(f"unparseable row: {exc}", start) from exc
        if not fields or (len(fields) == 1 and not fields[0].strip()):
            continue
        rows.append((start, _fields_to_task(fields, start)))
    return rows


def encode_task(task: Task) -> str:
    """One current-format row, newline-terminated. Pain 0 is left empty."""
    pain = str(task.pain_count) if task.pain_count else ""
    return (
        f"{task.id}{CURRENT_SEP}{task.status.value}{CURRENT_SEP}"
        f"{quote_field(task.title)}{CURRENT_SEP}{quote_field(task.description)}{CURRENT_SEP}"
        f"{pain}\n"
    )


# ---------------------------------------------------------------------------
# Whole-file API
# ---------------------------------------------------------------------------


def decode_tasks(text: str | None) -> tuple[Format, list[Task]]:
    """Decode a whole tasks file. Returns the detected format and the tasks."""
    if not text:
        return Format.CURRENT, []
    fmt = detect_format(text)
    rows = _decode_legacy(text) if fmt is Format.LEGACY else _decode_current(text)

    seen: set[int] = set()
    for line, task in rows:
        if task.id in seen:
            raise MalformedRecord(f"duplicate id {task.id}", line)
        seen.add(task.id)

    log.debug("Decoded %d task(s) in %s format", len(rows), fmt.value)
    return fmt, [task for _, task in rows]


def encode_tasks(tasks: list[Task]) -> str:
    return "".join(encode_task(t) for t in tasks)


# ---------------------------------------------------------------------------
# Sidecar files
# ---------------------------------------------------------------------------


def decode_blockers(text: str | None) -> dict[int, set[int]]:
    """Parse ``task-<blocked>|task-<blocker>`` lines into blocked -> blockers.

    Malformed lines and self-edges are skipped with a warning; the valid
    edges around them still load.
    """
    edges: dict[int, set[int]] = {}
    if not text:
        return edges
    for lineno, raw in enumerate(text.split("\n"), start=1):
        row = raw.strip()
        if not row:
            continue
        parts = row.split(LEGACY_SEP)
        matches = [_BLOCKER_REF.fullmatch(part.strip()) for part in parts]
        if len(parts) != 2 or not all(matches):
            log.warning("blockers:%d: skipping malformed line %r", lineno, row)
            continue
        blocked, blocker = (int(m.group(1)) for m in matches)
        if blocked == blocker:
            log.warning("blockers:%d: skipping self-edge task-%d", lineno, blocked)
            continue
        edges.setdefault(blocked, set()).add(blocker)
    return edges


def encode_blockers(edges: dict[int, set[int]]) -> str:
    """One line per edge, sorted by blocked id then blocker id."""
    return "".join(
        f"task-{blocked}{LEGACY_SEP}task-{blocker}\n"
        for blocked in sorted(edges)
        for blocker in sorted(edges[blocked])
    )


def decode_last_id(text: str | None) -> int:
    if not text or not text.strip():
        return 0
    return _parse_number(text, "last id", 1, "last-id")


def encode_last_id(value: int) -> str:
    return f"{value}\n"
