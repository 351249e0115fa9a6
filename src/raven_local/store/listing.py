from __future__ import annotations

from collections import Counter
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from raven_local.store.base import IncidentStore

MAX_LIMIT = 500


def list_incidents(
    store: IncidentStore,
    limit: int = 100,
    offset: int = 0,
    category: Optional[str] = None,
    municipality: Optional[str] = None,
    days: int = 7,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """Newest-first page of incidents in the trailing window, plus per-category counts."""
    now = now or datetime.now(timezone.utc)
    limit = max(0, min(limit, MAX_LIMIT))
    offset = max(0, offset)
    since = now - timedelta(days=days)

    rows = store.query(since=since, category=category, municipality=municipality)
    window = store.query(since=since)
    counts = Counter(r.category for r in window)

    return {
        "items": [r.to_dict() for r in rows[offset : offset + limit]],
        "total": len(rows),
        "limit": limit,
        "offset": offset,
        "days": days,
        "categoryCounts": dict(counts),
    }
