"""Shared constants — env var names, ledger file names, path resolvers.

Single source of truth for where the ledger lives.
"""

from __future__ import annotations

import os
from pathlib import Path

# ---------------------------------------------------------------------------
# Env var names
# ---------------------------------------------------------------------------

ENV_LEDGER_DIR = "KNECHT_DIR"
ENV_LOG_LEVEL = "KNECHT_LOG_LEVEL"

# ---------------------------------------------------------------------------
# Ledger layout
# ---------------------------------------------------------------------------

LEDGER_DIR_NAME = ".knecht"

TASKS_FILE = "tasks"
BLOCKERS_FILE = "blockers"
LAST_ID_FILE = "last-id"
CONFIG_FILE = "config.yaml"
LEGACY_BACKUP_FILE = "tasks.pipe-backup"

# Persist order for one save: high-water mark first, tasks last
WRITE_ORDER = (LAST_ID_FILE, BLOCKERS_FILE, TASKS_FILE)


# ---------------------------------------------------------------------------
# Resolvers
# ---------------------------------------------------------------------------


def resolve_ledger_dir(project_dir: str | Path | None = None) -> Path:
    """Resolve the ledger directory: ENV_LEDGER_DIR > <project>/.knecht."""
    explicit = os.getenv(ENV_LEDGER_DIR)
    if explicit:
        return Path(explicit).expanduser()
    base = Path(project_dir) if project_dir else Path.cwd()
    return base / LEDGER_DIR_NAME


def resolve_log_level(default: str = "WARNING") -> str:
    """Resolve the log level name: ENV_LOG_LEVEL > default."""
    return os.getenv(ENV_LOG_LEVEL, default).upper()
