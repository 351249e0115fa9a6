from __future__ import annotations

from raven_local.store.base import IncidentStore
from raven_local.store.jsonl import JsonlIncidentStore
from raven_local.store.memory import MemoryIncidentStore

__all__ = ["IncidentStore", "JsonlIncidentStore", "MemoryIncidentStore"]
