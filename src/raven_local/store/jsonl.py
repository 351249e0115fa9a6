from __future__ import annotations

import json
import uuid
from dataclasses import replace
from datetime import datetime
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Set

from raven_local.errors import StoreError, StoreQueryError, StoreWriteError
from raven_local.models import Incident
from raven_local.store.base import IncidentStore, matches, newest_first


class JsonlIncidentStore(IncidentStore):
    """
    Append-only JSONL file, one incident row per line.

    A batch is serialized completely before the file is touched and then appended
    with a single write, so a failed batch leaves the file unchanged.
    """

    def __init__(self, path: Path):
        self.path = Path(path)
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StoreError(f"Cannot open incident store at {self.path}: {e}") from e

    def _load(self) -> List[Incident]:
        if not self.path.exists():
            return []
        rows: List[Incident] = []
        i = 0
        try:
            with self.path.open("r", encoding="utf-8", errors="strict") as f:
                for i, line in enumerate(f, start=1):
                    line = line.strip()
                    if not line:
                        continue
                    try:
                        row = json.loads(line)
                        if not isinstance(row, dict):
                            raise ValueError(f"expected an object, got {type(row).__name__}")
                        rows.append(Incident.from_dict(row))
                    except (ValueError, KeyError, TypeError) as e:
                        raise StoreQueryError(f"{self.path}:{i}: unreadable row ({e})") from e
        except UnicodeDecodeError as e:
            raise StoreQueryError(f"{self.path}:{i + 1}: not valid UTF-8 ({e})") from e
        return rows

    def _external_ids(self) -> Set[str]:
        return {r.external_id for r in self._load()}

    def existing_external_ids(self, external_ids: Iterable[str]) -> Set[str]:
        try:
            known = self._external_ids()
        except OSError as e:
            raise StoreQueryError(f"Cannot read {self.path}: {e}") from e
        return {x for x in external_ids if x in known}

    def insert_many(self, incidents: List[Incident]) -> List[Incident]:
        try:
            known = self._external_ids()
        except (OSError, StoreQueryError) as e:
            raise StoreWriteError(f"Cannot read {self.path} before insert: {e}") from e

        batch: Dict[str, Incident] = {}
        for inc in incidents:
            if inc.external_id in known or inc.external_id in batch:
                raise StoreWriteError(f"duplicate key value violates unique constraint: external_id={inc.external_id}")
            batch[inc.external_id] = replace(inc, id=uuid.uuid4().hex)

        stored = list(batch.values())
        try:
            payload = "".join(json.dumps(r.to_dict(), ensure_ascii=False) + "\n" for r in stored)
        except (TypeError, ValueError) as e:
            raise StoreWriteError(f"Cannot serialize batch: {e}") from e

        try:
            with self.path.open("a", encoding="utf-8") as f:
                f.write(payload)
        except OSError as e:
            raise StoreWriteError(f"Cannot write {self.path}: {e}") from e
        return stored

    def query(
        self,
        since: Optional[datetime] = None,
        until: Optional[datetime] = None,
        municipality: Optional[str] = None,
        category: Optional[str] = None,
    ) -> List[Incident]:
        try:
            rows = self._load()
        except OSError as e:
            raise StoreQueryError(f"Cannot read {self.path}: {e}") from e
        return newest_first([r for r in rows if matches(r, since, until, municipality, category)])
