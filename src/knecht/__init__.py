"""knecht — git-friendly task ledger with blockers and pain-driven priorities."""

__version__ = "0.4.0"
