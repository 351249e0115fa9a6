from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Iterable, List, Optional, Set

from raven_local.models import Incident


def matches(
    inc: Incident,
    since: Optional[datetime] = None,
    until: Optional[datetime] = None,
    municipality: Optional[str] = None,
    category: Optional[str] = None,
) -> bool:
    """Row filter shared by the store implementations. Time bounds are [since, until)."""
    if since is not None or until is not None:
        if inc.occurred_at is None:
            return False
        if since is not None and inc.occurred_at < since:
            return False
        if until is not None and inc.occurred_at >= until:
            return False
    if municipality is not None and inc.municipality != municipality:
        return False
    if category is not None and inc.category != category:
        return False
    return True


class IncidentStore(ABC):
    """
    Single logical table of incidents keyed by external_id.

    insert_many is all-or-nothing: either every row is stored or none is and the
    implementation raises StoreWriteError.
    """

    @abstractmethod
    def existing_external_ids(self, external_ids: Iterable[str]) -> Set[str]:
        ...

    @abstractmethod
    def insert_many(self, incidents: List[Incident]) -> List[Incident]:
        """Store rows, assigning ids. Returns the stored rows."""

    @abstractmethod
    def query(
        self,
        since: Optional[datetime] = None,
        until: Optional[datetime] = None,
        municipality: Optional[str] = None,
        category: Optional[str] = None,
    ) -> List[Incident]:
        """Rows matching all given filters, newest occurred_at first."""


def newest_first(rows: List[Incident]) -> List[Incident]:
    # Rows without occurred_at sort last.
    return sorted(
        rows,
        key=lambda r: (r.occurred_at is not None, r.occurred_at.timestamp() if r.occurred_at else 0.0),
        reverse=True,
    )
