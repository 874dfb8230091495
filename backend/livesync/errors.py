"""
Live-sync error taxonomy.
Only feed and persistence failures are exceptions; no-match, low-confidence rejection
and stale bindings are recorded outcomes in the pass report.
"""
from __future__ import annotations


class LiveSyncError(Exception):
    """Base for live-sync failures."""


class FeedUnavailable(LiveSyncError):
    """An external feed call failed; callers treat it as zero fixtures."""

    def __init__(self, call: str, cause: Exception | None = None) -> None:
        self.call = call
        self.cause = cause
        super().__init__(f"feed call {call} failed: {cause}")


class PersistenceFailure(LiveSyncError):
    """A store read/write for one game failed."""

    def __init__(self, game_id: str, cause: Exception | None = None) -> None:
        self.game_id = game_id
        self.cause = cause
        super().__init__(f"persisting game {game_id} failed: {cause}")
