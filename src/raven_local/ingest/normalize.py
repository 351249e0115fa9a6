from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional, Sequence

import dateparser


_tag_re = re.compile(r"<[^>]+>")
_ws_re = re.compile(r"\s+")

# Only the entities the feeds actually emit. Anything else is left as-is.
_ENTITIES = (
    ("&amp;", "&"),
    ("&lt;", "<"),
    ("&gt;", ">"),
    ("&quot;", '"'),
    ("&#039;", "'"),
    ("&nbsp;", " "),
)


def clean_text(s: Optional[str]) -> str:
    s = s or ""
    return _ws_re.sub(" ", s).strip()


def clean_html(s: Optional[str]) -> str:
    """Strip tags, decode the common named entities, collapse whitespace, trim."""
    s = _tag_re.sub(" ", s or "")
    for entity, char in _ENTITIES:
        s = s.replace(entity, char)
    return clean_text(s)


def canonical_url(url: Optional[str]) -> str:
    """
    Basic canonicalization:
    - strip whitespace
    - remove obvious tracking query params (utm_*, fbclid, gclid)
    - keep scheme/host/path and remaining query
    """
    from urllib.parse import urlsplit, urlunsplit, parse_qsl, urlencode

    url = (url or "").strip()
    if not url:
        return ""
    parts = urlsplit(url)
    q = parse_qsl(parts.query, keep_blank_values=True)
    q2 = [(k, v) for (k, v) in q if not (k.lower().startswith("utm_") or k.lower() in {"fbclid", "gclid"})]
    query = urlencode(q2)
    return urlunsplit((parts.scheme, parts.netloc, parts.path, query, parts.fragment))


def parse_dt(value: Any) -> Optional[datetime]:
    """
    feedparser may produce:
      - published_parsed / updated_parsed (time.struct_time)
      - published / updated (string)
    APIs send ISO-8601 strings. We accept whatever and try to parse, always returning UTC.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        dt = value if value.tzinfo else value.replace(tzinfo=timezone.utc)
        return dt.astimezone(timezone.utc)
    if hasattr(value, "tm_year"):  # struct_time
        try:
            return datetime(*value[:6], tzinfo=timezone.utc)
        except (TypeError, ValueError):
            return None
    if isinstance(value, str):
        dt = dateparser.parse(value, settings={"RETURN_AS_TIMEZONE_AWARE": True})
        if dt is None:
            return None
        return dt.astimezone(timezone.utc)
    return None


def pick(record: Mapping[str, Any], aliases: Sequence[str], default: Any = None) -> Any:
    """First alias present with a non-empty value."""
    for key in aliases:
        value = record.get(key)
        if value is not None and value != "":
            return value
    return default


# The traffic events API has shipped both camelCase and PascalCase payloads.
TRAFFIC_EVENT_FIELDS: Dict[str, Sequence[str]] = {
    "id": ("id", "Id", "ID"),
    "event_type": ("eventType", "EventType"),
    "description": ("description", "Description"),
    "primary_road": ("primaryRoad", "PrimaryRoad"),
    "direction": ("direction", "Direction"),
    "start_location": ("startLocation", "StartLocation"),
    "end_location": ("endLocation", "EndLocation"),
    "latitude": ("latitude", "Latitude"),
    "longitude": ("longitude", "Longitude"),
    "start_time": ("startTime", "StartTime"),
    "end_time": ("endTime", "EndTime"),
    "last_updated": ("lastUpdated", "LastUpdated"),
}

WEATHER_ALERT_FIELDS: Dict[str, Sequence[str]] = {
    "id": ("id", "@id"),
    "event": ("event",),
    "headline": ("headline",),
    "description": ("description",),
    "severity": ("severity",),
    "certainty": ("certainty",),
    "urgency": ("urgency",),
    "effective": ("effective", "onset", "sent"),
    "expires": ("expires",),
    "sender": ("senderName", "sender"),
    "area": ("areaDesc",),
}


def canonical_fields(record: Mapping[str, Any], table: Mapping[str, Sequence[str]]) -> Dict[str, Any]:
    return {name: pick(record, aliases) for name, aliases in table.items()}


def to_float(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


@dataclass
class IncidentDraft:
    title: str
    description: str
    url: str
    published_at: Optional[datetime]
    fields: Dict[str, Any] = field(default_factory=dict)

    @property
    def text(self) -> str:
        return f"{self.title} {self.description}"


def _entry_content(entry: Mapping[str, Any]) -> str:
    content = entry.get("content")
    if isinstance(content, list) and content:
        first = content[0]
        if isinstance(first, Mapping):
            return first.get("value", "") or ""
    return content if isinstance(content, str) else ""


def normalize_rss_entry(entry: Mapping[str, Any]) -> IncidentDraft:
    url = entry.get("link") or ""
    title = clean_text(entry.get("title", ""))
    description = clean_html(entry.get("summary") or entry.get("description") or _entry_content(entry))

    # Try best-available timestamp fields
    dt = None
    for key in ("published_parsed", "updated_parsed", "published", "updated"):
        if key in entry:
            dt = parse_dt(entry.get(key))
            if dt is not None:
                break

    return IncidentDraft(
        title=title,
        description=description,
        url=url,
        published_at=dt,
    )


def normalize_traffic_event(record: Mapping[str, Any]) -> IncidentDraft:
    f = canonical_fields(record, TRAFFIC_EVENT_FIELDS)
    road = f["primary_road"] or "Unknown Road"
    event_type = f["event_type"] or "Traffic Event"
    f["primary_road"] = road
    f["event_type"] = event_type
    f["latitude"] = to_float(f["latitude"])
    f["longitude"] = to_float(f["longitude"])

    return IncidentDraft(
        title=f"{road}: {event_type}",
        description=clean_text(f["description"]),
        url="",
        published_at=parse_dt(f["start_time"]),
        fields=f,
    )


def normalize_weather_alert(properties: Mapping[str, Any]) -> IncidentDraft:
    f = canonical_fields(properties, WEATHER_ALERT_FIELDS)
    return IncidentDraft(
        title=clean_text(f["headline"] or f["event"]),
        description=(f["description"] or "").strip(),
        url="",
        published_at=parse_dt(f["effective"]),
        fields=f,
    )
