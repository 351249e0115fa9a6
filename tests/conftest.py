"""Shared fixtures: fixed clock, stores, source configs and canned feed payloads."""
from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Callable, Iterable, List, Optional, Tuple

import httpx
import pytest

from raven_local.config import Bounds, FeedConfig, Region, SourceConfig
from raven_local.ingest.fetch import build_client
from raven_local.models import Incident
from raven_local.store import MemoryIncidentStore

NOW = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)

SCANNER_FEED = "https://scanner.test/feed/"
COUNTY_FEED = "https://county.test/rss.aspx"
TRAFFIC_URL = "https://traffic.test/api/v1.0/events"
TRAFFIC_FALLBACK = "https://traffic.test/Events"
WEATHER_URL = "https://weather.test/alerts/active"


def rss_xml(items: Iterable[Tuple[str, str, str]], pub_date: str = "Tue, 10 Mar 2026 10:00:00 GMT") -> bytes:
    """Minimal RSS 2.0 document from (title, description, link) triples."""
    body = "".join(
        f"<item><title>{t}</title><description><![CDATA[{d}]]></description>"
        f"<link>{link}</link><pubDate>{pub_date}</pubDate></item>"
        for t, d, link in items
    )
    return (
        '<?xml version="1.0" encoding="UTF-8"?>'
        '<rss version="2.0"><channel><title>Test feed</title><link>https://feed.test/</link>'
        f"<description>test</description>{body}</channel></rss>"
    ).encode("utf-8")


def rss_response(items: Iterable[Tuple[str, str, str]]) -> httpx.Response:
    return httpx.Response(200, content=rss_xml(items), headers={"content-type": "application/rss+xml"})


def make_incident(
    external_id: str,
    category: str = "other",
    municipality: Optional[str] = "Crystal Lake",
    occurred_at: Optional[datetime] = None,
    **kw,
) -> Incident:
    return Incident(
        external_id=external_id,
        category=category,
        severity=kw.pop("severity", "low"),
        title=kw.pop("title", external_id),
        municipality=municipality,
        occurred_at=occurred_at,
        **kw,
    )


def fetch_records(adapter, handler: Callable[[httpx.Request], httpx.Response]) -> List:
    """Run adapter.fetch against a mocked transport and drain the records."""

    async def go():
        async with build_client("raven-tests", transport=httpx.MockTransport(handler)) as client:
            return list(await adapter.fetch(client))

    return asyncio.run(go())


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def region() -> Region:
    return Region(county="McHenry County", county_seat="Woodstock")


@pytest.fixture
def store() -> MemoryIncidentStore:
    return MemoryIncidentStore()


@pytest.fixture
def scanner_config() -> SourceConfig:
    return SourceConfig(
        id="scanner",
        kind="rss",
        name="Lake & McHenry County Scanner",
        profile="scanner",
        trust="community",
        prefix="scanner",
        feeds=[FeedConfig(url=SCANNER_FEED, source="lake_mchenry_scanner", name="Scanner")],
    )


@pytest.fixture
def county_config() -> SourceConfig:
    return SourceConfig(
        id="county_news",
        kind="rss",
        name="McHenry County Government",
        profile="county_news",
        trust="government",
        prefix="county",
        feeds=[FeedConfig(url=COUNTY_FEED, source="mchenry_county_government", name="County news")],
    )


@pytest.fixture
def news_config() -> SourceConfig:
    return SourceConfig(
        id="nwherald",
        kind="rss",
        name="Northwest Herald",
        profile="nwherald",
        trust="authoritative",
        prefix="nwherald",
        feeds=[
            FeedConfig(url="https://news.test/breaking", source="nwherald_breaking", name="Breaking", priority="high"),
            FeedConfig(url="https://news.test/local", source="nwherald_local", name="Local"),
        ],
    )


@pytest.fixture
def traffic_config() -> SourceConfig:
    return SourceConfig(
        id="idot",
        kind="traffic_events",
        name="IDOT traffic events",
        profile="idot",
        trust="government",
        prefix="idot",
        url=TRAFFIC_URL,
        fallback_urls=[TRAFFIC_FALLBACK],
        bounds=Bounds(min_lat=42.15, max_lat=42.50, min_lng=-88.70, max_lng=-88.10),
    )


@pytest.fixture
def weather_config() -> SourceConfig:
    return SourceConfig(
        id="nws",
        kind="weather_alerts",
        name="NWS alerts",
        profile="nws",
        trust="government",
        prefix="nws",
        url=WEATHER_URL,
        zones=["ILZ004"],
    )


@pytest.fixture
def crystal_lake_week() -> List[Incident]:
    """One violent crime and three traffic incidents in the last week."""
    return [
        make_incident("scanner_a", "violent_crime", occurred_at=NOW - timedelta(days=1)),
        make_incident("scanner_b", "traffic", occurred_at=NOW - timedelta(days=2)),
        make_incident("scanner_c", "traffic", occurred_at=NOW - timedelta(days=3)),
        make_incident("idot_d", "traffic", occurred_at=NOW - timedelta(days=6)),
    ]
