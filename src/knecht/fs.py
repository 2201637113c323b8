"""Filesystem helpers — atomic writes and the ledger file backends.

The store only talks to a backend through ``read(name)`` / ``write(name,
content)``. ``LedgerDir`` maps names to files under ``.knecht/``;
``MemoryFiles`` keeps them in a dict so the store can be exercised
without touching disk.
"""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path

from knecht.errors import WriteFailed

log = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Atomic file write
# ---------------------------------------------------------------------------

def atomic_write_file(path: str, content: str) -> str:
    """Write content to path atomically (write-to-temp, then rename).

    The temp file lives in the target directory so the final replace never
    crosses a filesystem boundary. Returns the final path.
    """
    d = os.path.dirname(path) or "."
    os.makedirs(d, exist_ok=True)
    fd, tmp = tempfile.mkstemp(dir=d, prefix=f".{os.path.basename(path)}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as f:
            f.write(content)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp, path)
    except BaseException:
        try:
            os.unlink(tmp)
        except OSError:
            pass
        raise
    return path


def read_text_file(path: str | Path) -> str | None:
    """Read a UTF-8 file without newline translation, None if missing."""
    try:
        with open(path, encoding="utf-8", newline="") as f:
            return f.read()
    except FileNotFoundError:
        return None


# ---------------------------------------------------------------------------
# Backends
# ---------------------------------------------------------------------------

class LedgerDir:
    """Ledger files stored in a directory on disk."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def __repr__(self) -> str:
        return f"LedgerDir({str(self.path)!r})"

    def exists(self) -> bool:
        return self.path.is_dir()

    def ensure(self) -> None:
        try:
            self.path.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise WriteFailed(str(self.path), exc) from exc

    def read(self, name: str) -> str | None:
        return read_text_file(self.path / name)

    def write(self, name: str, content: str) -> None:
        target = str(self.path / name)
        try:
            atomic_write_file(target, content)
        except OSError as exc:
            log.error("Atomic write of %s failed: %s", target, exc)
            raise WriteFailed(target, exc) from exc
        log.debug("Wrote %s (%d bytes)", target, len(content))


class MemoryFiles:
    """Ledger files held in memory. ``files`` is exposed for inspection."""

    def __init__(self, files: dict[str, str] | None = None) -> None:
        self.files: dict[str, str] = dict(files or {})

    def __repr__(self) -> str:
        return f"MemoryFiles({sorted(self.files)!r})"

    def exists(self) -> bool:
        return True

    def ensure(self) -> None:
        return

    def read(self, name: str) -> str | None:
        return self.files.get(name)

    def write(self, name: str, content: str) -> None:
        self.files[name] = content
