from __future__ import annotations

import hashlib
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional, Tuple

from loguru import logger

from raven_local.models import Incident
from raven_local.store.base import IncidentStore

FINGERPRINT_LENGTH = 16


def _sha(text: str) -> str:
    return hashlib.sha256((text or "").encode("utf-8")).hexdigest()


def fingerprint(*parts: Optional[str]) -> str:
    """
    Short deterministic digest of the identifying fields, joined with ":".
    Truncated to FINGERPRINT_LENGTH hex chars: a per-source dedupe key, not a
    cryptographic identity.
    """
    return _sha(":".join(p or "" for p in parts))[:FINGERPRINT_LENGTH]


def external_id(prefix: str, digest: str) -> str:
    return f"{prefix}_{digest}"


def dedupe_batch(incidents: Iterable[Incident]) -> Tuple[List[Incident], Dict[int, str]]:
    """
    Input: candidate incidents in arrival order.
    Output:
      - unique incidents (first occurrence of each external_id wins)
      - map: dropped batch index -> external_id it collided on
    """
    uniques: List[Incident] = []
    dropped: Dict[int, str] = {}
    seen: Dict[str, int] = {}

    for i, inc in enumerate(incidents):
        if inc.external_id in seen:
            dropped[i] = inc.external_id
            continue
        seen[inc.external_id] = i
        uniques.append(inc)

    return uniques, dropped


@dataclass
class WriteResult:
    fetched: int
    inserted: int
    skipped: int
    rows: List[Incident] = field(default_factory=list)


class DedupWriter:
    """
    existence-check -> set difference -> one bulk insert.

    Not locked: two concurrent runs of the same source can both pass the existence check.
    Callers run one ingestion per source at a time.
    """

    def __init__(self, store: IncidentStore):
        self.store = store

    def write(self, incidents: List[Incident], now: Optional[datetime] = None) -> WriteResult:
        uniques, dropped = dedupe_batch(incidents)
        if dropped:
            logger.debug("Dropped {} in-batch duplicates", len(dropped))

        if not uniques:
            return WriteResult(fetched=len(incidents), inserted=0, skipped=len(incidents))

        existing = self.store.existing_external_ids([i.external_id for i in uniques])
        new = [i for i in uniques if i.external_id not in existing]
        logger.info("{} existing, {} new", len(existing), len(new))

        if not new:
            return WriteResult(fetched=len(incidents), inserted=0, skipped=len(incidents))

        reported_at = now or datetime.now(timezone.utc)
        stamped = [replace(i, reported_at=reported_at) for i in new]
        rows = self.store.insert_many(stamped)

        return WriteResult(
            fetched=len(incidents),
            inserted=len(rows),
            skipped=len(incidents) - len(rows),
            rows=rows,
        )
