from __future__ import annotations

from typing import Optional


class RavenError(Exception):
    """
    Base error. `stage` names the pipeline step that failed so callers can report it
    without re-running anything.
    """

    stage = "pipeline"

    def __init__(self, message: str, stage: Optional[str] = None, source_id: Optional[str] = None):
        super().__init__(message)
        self.message = message
        if stage:
            self.stage = stage
        self.source_id = source_id

    def to_dict(self) -> dict:
        out = {"success": False, "error": self.message, "stage": self.stage}
        if self.source_id:
            out["source"] = self.source_id
        return out


class FetchError(RavenError):
    """Source unreachable, timed out, or answered non-2xx."""

    stage = "fetch"


class ParseError(RavenError):
    """Source answered but the payload is not a usable feed / JSON document."""

    stage = "parse"


class StoreError(RavenError):
    """Store could not be constructed or opened."""

    stage = "store"


class StoreQueryError(StoreError):
    stage = "store_query"


class StoreWriteError(StoreError):
    stage = "store_write"


class UnknownSourceError(RavenError):
    stage = "config"
