from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional

SEVERITIES = ("critical", "high", "medium", "low")


def to_iso(dt: Optional[datetime]) -> Optional[str]:
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).isoformat()


def from_iso(value: Any) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        dt = value
    else:
        dt = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


@dataclass
class Incident:
    external_id: str
    category: str
    severity: str
    title: str
    description: str = ""
    location_text: Optional[str] = None
    municipality: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    occurred_at: Optional[datetime] = None
    reported_at: Optional[datetime] = None
    verification_status: str = "unverified"
    raw_data: Dict[str, Any] = field(default_factory=dict)
    id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "external_id": self.external_id,
            "category": self.category,
            "severity": self.severity,
            "title": self.title,
            "description": self.description,
            "location_text": self.location_text,
            "municipality": self.municipality,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "occurred_at": to_iso(self.occurred_at),
            "reported_at": to_iso(self.reported_at),
            "verification_status": self.verification_status,
            "raw_data": self.raw_data,
        }

    @staticmethod
    def from_dict(row: Dict[str, Any]) -> "Incident":
        return Incident(
            id=row.get("id"),
            external_id=row["external_id"],
            category=row.get("category") or "other",
            severity=row.get("severity") or "low",
            title=row.get("title") or "",
            description=row.get("description") or "",
            location_text=row.get("location_text"),
            municipality=row.get("municipality"),
            latitude=row.get("latitude"),
            longitude=row.get("longitude"),
            occurred_at=from_iso(row.get("occurred_at")),
            reported_at=from_iso(row.get("reported_at")),
            verification_status=row.get("verification_status") or "unverified",
            raw_data=dict(row.get("raw_data") or {}),
        )
