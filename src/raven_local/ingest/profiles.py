from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from functools import lru_cache
from typing import Any, Callable, Dict, Optional

from raven_local.config import Region, SourceConfig
from raven_local.errors import UnknownSourceError
from raven_local.ingest.adapters import SourceRecord
from raven_local.ingest.dedupe import external_id, fingerprint
from raven_local.ingest.normalize import (
    canonical_url,
    normalize_rss_entry,
    normalize_traffic_event,
    normalize_weather_alert,
)
from raven_local.models import Incident
from raven_local.nlp.location import MCHENRY_CITIES, NEWS_AREA, Gazetteer
from raven_local.nlp.rules import (
    COUNTY_NEWS_DEFAULT,
    COUNTY_NEWS_RULES,
    NEWS_DEFAULT,
    NEWS_RULES,
    SCANNER_DEFAULT,
    SCANNER_RULES,
    WEATHER_DEFAULT,
    WEATHER_EVENT_RULES,
    classify,
    map_county_category,
)
from raven_local.nlp.severity import (
    COUNTY_NEWS_SEVERITY,
    NEWS_SEVERITY,
    SCANNER_SEVERITY,
    traffic_event_severity,
    weather_severity,
)

# Description caps per source, in characters.
SCANNER_MAX_DESC = 1000
COUNTY_MAX_DESC = 1000
NEWS_MAX_DESC = 500
TRAFFIC_MAX_DESC = 1000
WEATHER_MAX_DESC = 2000


@lru_cache(maxsize=8)
def county_gazetteer(county_seat: str) -> Gazetteer:
    return Gazetteer(cities=MCHENRY_CITIES, county_seat=county_seat)


Builder = Callable[[SourceRecord, SourceConfig, Region, datetime], Optional[Incident]]


def build_scanner_incident(record: SourceRecord, config: SourceConfig, region: Region, now: datetime) -> Optional[Incident]:
    draft = normalize_rss_entry(record.fields)
    text = draft.text

    # Scanner covers neighbouring counties too; keep only items we can place.
    city = county_gazetteer(region.county_seat).resolve(text)
    if city is None:
        return None

    cls = classify(text, SCANNER_RULES, SCANNER_DEFAULT)
    digest = fingerprint("scanner", draft.title, draft.description[:100])
    return Incident(
        external_id=external_id(config.namespace, digest),
        category=cls.category,
        severity=SCANNER_SEVERITY.lookup(cls.category, cls.type),
        title=draft.title,
        description=draft.description[:SCANNER_MAX_DESC],
        location_text=city,
        municipality=city,
        occurred_at=draft.published_at,
        verification_status=config.verification_status,
        raw_data={
            "url": draft.url,
            "incident_type": cls.type,
            "content_hash": digest,
            "source": record.source,
        },
    )


def build_county_news_incident(record: SourceRecord, config: SourceConfig, region: Region, now: datetime) -> Optional[Incident]:
    draft = normalize_rss_entry(record.fields)
    text = draft.text

    # All county news is kept; unplaced items are county-wide.
    city = county_gazetteer(region.county_seat).resolve(text, county_fallback=True) or region.county
    cls = classify(text, COUNTY_NEWS_RULES, COUNTY_NEWS_DEFAULT)
    digest = fingerprint(record.source, draft.title)
    return Incident(
        external_id=external_id(config.namespace, digest),
        category=map_county_category(cls.category),
        severity=COUNTY_NEWS_SEVERITY.lookup(cls.category, cls.type),
        title=draft.title,
        description=draft.description[:COUNTY_MAX_DESC],
        location_text=city,
        municipality=city,
        occurred_at=draft.published_at,
        verification_status=config.verification_status,
        raw_data={
            "url": draft.url,
            "news_type": cls.type,
            "civic_category": cls.category,
            "source": record.source,
            "content_hash": digest,
        },
    )


def build_news_incident(record: SourceRecord, config: SourceConfig, region: Region, now: datetime) -> Optional[Incident]:
    draft = normalize_rss_entry(record.fields)
    text = draft.text

    city = NEWS_AREA.resolve(text)
    if city is None:
        return None

    cls = classify(text, NEWS_RULES, NEWS_DEFAULT)
    digest = fingerprint("nwherald", canonical_url(draft.url) or draft.title)
    return Incident(
        external_id=external_id(config.namespace, digest),
        category=cls.category,
        severity=NEWS_SEVERITY.lookup(cls.category, cls.type, priority=record.priority),
        title=draft.title,
        description=draft.description[:NEWS_MAX_DESC],
        location_text=city,
        municipality=city,
        occurred_at=draft.published_at,
        verification_status=config.verification_status,
        raw_data={
            "url": draft.url,
            "news_type": cls.type,
            "source": record.source,
            "content_hash": digest,
        },
    )


def build_traffic_incident(record: SourceRecord, config: SourceConfig, region: Region, now: datetime) -> Optional[Incident]:
    draft = normalize_traffic_event(record.fields)
    f = draft.fields
    event_id = str(f["id"] or "")
    digest = fingerprint("idot", event_id, draft.description[:50])

    road = f["primary_road"]
    start = f["start_location"] or ""
    location = f"{road} - {start}" if start else road

    return Incident(
        external_id=external_id(config.namespace, digest),
        category="traffic",
        severity=traffic_event_severity(f["event_type"]),
        title=draft.title,
        description=draft.description[:TRAFFIC_MAX_DESC],
        location_text=location,
        municipality=region.county,
        latitude=f["latitude"],
        longitude=f["longitude"],
        occurred_at=draft.published_at or now,
        verification_status=config.verification_status,
        raw_data={
            "source": "idot",
            "idot_id": event_id,
            "event_type": f["event_type"],
            "end_time": f["end_time"],
            "last_updated": f["last_updated"],
        },
    )


def build_weather_incident(record: SourceRecord, config: SourceConfig, region: Region, now: datetime) -> Optional[Incident]:
    draft = normalize_weather_alert(record.fields)
    f = draft.fields
    alert_id = str(f["id"] or draft.title)
    event = f["event"] or ""

    return Incident(
        external_id=external_id(config.namespace, fingerprint("nws", alert_id)),
        category=classify(event, WEATHER_EVENT_RULES, WEATHER_DEFAULT).category,
        severity=weather_severity(f["severity"]),
        title=draft.title,
        description=draft.description[:WEATHER_MAX_DESC],
        location_text=f["area"] or region.county,
        municipality=region.county,
        occurred_at=draft.published_at,
        verification_status=config.verification_status,
        raw_data={
            "source": "nws",
            "nws_id": alert_id,
            "event": event,
            "severity": f["severity"],
            "certainty": f["certainty"],
            "urgency": f["urgency"],
            "expires": f["expires"],
            "sender": f["sender"],
        },
    )


@dataclass(frozen=True)
class SourceProfile:
    build: Builder
    type_key: str

    def sample(self, inc: Incident) -> Dict[str, Any]:
        return {
            "title": inc.title[:60],
            "city": inc.municipality,
            "type": inc.raw_data.get(self.type_key),
            "category": inc.category,
        }


PROFILES: Dict[str, SourceProfile] = {
    "scanner": SourceProfile(build_scanner_incident, "incident_type"),
    "county_news": SourceProfile(build_county_news_incident, "news_type"),
    "nwherald": SourceProfile(build_news_incident, "news_type"),
    "idot": SourceProfile(build_traffic_incident, "event_type"),
    "nws": SourceProfile(build_weather_incident, "event"),
}


def get_profile(config: SourceConfig) -> SourceProfile:
    name = config.profile or config.id
    try:
        return PROFILES[name]
    except KeyError:
        raise UnknownSourceError(f"No profile '{name}' for source '{config.id}'", source_id=config.id) from None
