from __future__ import annotations

import uuid
from dataclasses import replace
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Set

from raven_local.errors import StoreWriteError
from raven_local.models import Incident
from raven_local.store.base import IncidentStore, matches, newest_first


class MemoryIncidentStore(IncidentStore):
    """Dict-backed store for tests and dry runs."""

    def __init__(self, rows: Optional[Iterable[Incident]] = None):
        self._rows: Dict[str, Incident] = {}
        for r in rows or []:
            self._rows[r.external_id] = r if r.id else replace(r, id=uuid.uuid4().hex)

    def __len__(self) -> int:
        return len(self._rows)

    def existing_external_ids(self, external_ids: Iterable[str]) -> Set[str]:
        return {x for x in external_ids if x in self._rows}

    def insert_many(self, incidents: List[Incident]) -> List[Incident]:
        seen: Set[str] = set()
        for inc in incidents:
            if inc.external_id in self._rows or inc.external_id in seen:
                raise StoreWriteError(f"duplicate key value violates unique constraint: external_id={inc.external_id}")
            seen.add(inc.external_id)

        stored = [replace(inc, id=uuid.uuid4().hex) for inc in incidents]
        for inc in stored:
            self._rows[inc.external_id] = inc
        return stored

    def query(
        self,
        since: Optional[datetime] = None,
        until: Optional[datetime] = None,
        municipality: Optional[str] = None,
        category: Optional[str] = None,
    ) -> List[Incident]:
        rows = [r for r in self._rows.values() if matches(r, since, until, municipality, category)]
        return newest_first(rows)
