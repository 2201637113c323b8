"""Optional per-ledger settings read from ``.knecht/config.yaml``."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

import yaml

from knecht.defaults import CONFIG_FILE

log = logging.getLogger(__name__)

_VALID_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


@dataclass(frozen=True)
class LedgerConfig:
    skip_penalty: bool = True
    record_pain_notes: bool = True
    log_level: str = "WARNING"


def load_config(ledger_dir: str | Path) -> LedgerConfig:
    """Load config.yaml from the ledger directory, defaults when absent.

    Hard fail on a non-mapping document, unknown keys or wrong types.
    """
    cfg_path = Path(ledger_dir) / CONFIG_FILE
    if not cfg_path.exists():
        return LedgerConfig()

    raw = yaml.safe_load(cfg_path.read_text(encoding="utf-8")) or {}
    if not isinstance(raw, dict):
        raise ValueError(f"{cfg_path}: top-level config must be a YAML mapping")

    known = {"skip_penalty", "record_pain_notes", "log_level"}
    unknown = set(raw) - known
    if unknown:
        raise ValueError(f"{cfg_path}: unknown keys {sorted(unknown)}")

    for key in ("skip_penalty", "record_pain_notes"):
        if key in raw and not isinstance(raw[key], bool):
            raise ValueError(f"{cfg_path}: '{key}' must be true or false")

    level = str(raw.get("log_level", "WARNING")).upper()
    if level not in _VALID_LEVELS:
        raise ValueError(f"{cfg_path}: invalid log_level '{level}'")

    config = LedgerConfig(
        skip_penalty=raw.get("skip_penalty", True),
        record_pain_notes=raw.get("record_pain_notes", True),
        log_level=level,
    )
    log.debug("Loaded %s: %s", cfg_path, config)
    return config
