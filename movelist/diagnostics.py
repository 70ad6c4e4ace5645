"""
Decode diagnostics.

Every decoder writes to a DecodeLog: a bounded in-memory list of entries
that is handed back with the decode result, optionally mirrored to an
injected logger (anything with debug/info/warning/error methods).
"""

import time
from typing import Any, Dict, List, Optional

# Entry kinds, matching the error taxonomy in movelist.errors
KIND_INFO = "info"
KIND_FATAL = "fatal_format"
KIND_RECOVERABLE = "recoverable_field"
KIND_UNKNOWN_TAG = "unknown_tag"
KIND_SEMANTIC_GAP = "semantic_gap"


class DecodeLog:
    """Collects diagnostic lines for one decode call."""

    MAX_LOG_ENTRIES = 2000

    def __init__(self, logger=None, max_entries: Optional[int] = None, verbose: bool = False):
        self.logger = logger
        self.verbose = verbose
        self._max_entries = max_entries or self.MAX_LOG_ENTRIES
        self._entries: List[Dict[str, Any]] = []
        self._counts: Dict[str, int] = {}

    def log(self, message: str, level: str = "info", kind: str = KIND_INFO):
        """Record a diagnostic line."""
        self._counts[kind] = self._counts.get(kind, 0) + 1

        if level == "debug" and not self.verbose:
            return

        entry = {
            "time": time.time(),
            "text": message,
            "level": level,
            "kind": kind,
        }
        self._entries.append(entry)

        # Trim to max size
        if len(self._entries) > self._max_entries:
            self._entries = self._entries[-self._max_entries:]

        if self.logger:
            if level == "debug":
                self.logger.debug(message)
            elif level == "warn" or level == "warning":
                self.logger.warning(message)
            elif level == "error":
                self.logger.error(message)
            else:
                self.logger.info(message)

    def debug(self, message: str):
        self.log(message, "debug")

    def info(self, message: str):
        self.log(message, "info")

    def recoverable(self, message: str):
        """A field/record/array was skipped."""
        self.log(message, "warning", KIND_RECOVERABLE)

    def unknown_tag(self, message: str):
        """A nested block stopped on a tag it could not size."""
        self.log(message, "warning", KIND_UNKNOWN_TAG)

    def fatal(self, message: str):
        self.log(message, "error", KIND_FATAL)

    def semantic_gap(self, message: str):
        """A canonical field has no source and was defaulted."""
        self.log(message, "debug", KIND_SEMANTIC_GAP)

    def count(self, kind: str) -> int:
        """Number of events of a kind, including ones not kept in the buffer."""
        return self._counts.get(kind, 0)

    def get_logs(self, limit: int = 100, level: Optional[str] = None,
                 kind: Optional[str] = None) -> List[Dict[str, Any]]:
        """Get recent entries (newest first), optionally filtered."""
        logs = self._entries
        if level and level != 'all':
            logs = [e for e in logs if e['level'] == level]
        if kind:
            logs = [e for e in logs if e['kind'] == kind]
        return list(reversed(logs[-limit:]))

    @property
    def entries(self) -> List[Dict[str, Any]]:
        return list(self._entries)

    def __len__(self):
        return len(self._entries)


__all__ = [
    'DecodeLog',
    'KIND_INFO',
    'KIND_FATAL',
    'KIND_RECOVERABLE',
    'KIND_UNKNOWN_TAG',
    'KIND_SEMANTIC_GAP',
]
