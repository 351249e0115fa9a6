from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Optional

import httpx
from loguru import logger

from raven_local.config import FeedConfig, SourceConfig
from raven_local.errors import FetchError, ParseError, RavenError
from raven_local.ingest.fetch import GEOJSON_ACCEPT, fetch_feed_entries, fetch_json
from raven_local.ingest.normalize import TRAFFIC_EVENT_FIELDS, pick, to_float


@dataclass
class SourceRecord:
    """One loosely-typed item as delivered by a source."""

    source: str
    fields: Dict[str, Any]
    priority: str = "medium"


@dataclass
class FeedError:
    feed: str
    stage: str
    error: str

    def to_dict(self) -> Dict[str, str]:
        return {"feed": self.feed, "stage": self.stage, "error": self.error}


class SourceAdapter:
    """
    fetch() does all network I/O and returns a lazy iterator of SourceRecords, or raises
    FetchError / ParseError. Adapters share no state, so several can run concurrently.
    """

    def __init__(self, config: SourceConfig):
        self.config = config
        self.errors: List[FeedError] = []

    async def fetch(self, client: httpx.AsyncClient) -> Iterator[SourceRecord]:
        raise NotImplementedError


class RssAdapter(SourceAdapter):
    async def _fetch_one(self, client: httpx.AsyncClient, feed: FeedConfig) -> List[Dict[str, Any]]:
        return await fetch_feed_entries(
            client, feed.url, timeout=self.config.timeout_seconds, max_items=self.config.max_items_per_pull
        )

    async def fetch(self, client: httpx.AsyncClient) -> Iterator[SourceRecord]:
        feeds = self.config.feeds
        gathered = await asyncio.gather(*[self._fetch_one(client, f) for f in feeds], return_exceptions=True)

        ok: List[tuple] = []
        last_exc: Optional[RavenError] = None
        for feed, r in zip(feeds, gathered):
            if isinstance(r, RavenError):
                logger.warning("[{}] Failed to fetch {}: {}", self.config.id, feed.name, r.message)
                self.errors.append(FeedError(feed=feed.source, stage=r.stage, error=r.message))
                last_exc = r
                continue
            if isinstance(r, BaseException):
                raise r
            logger.info("[{}] Fetched {} items from {}", self.config.id, len(r), feed.name)
            ok.append((feed, r))

        if not ok and last_exc is not None:
            raise type(last_exc)(last_exc.message, source_id=self.config.id) from last_exc

        return self._records(ok)

    @staticmethod
    def _records(ok: List[tuple]) -> Iterator[SourceRecord]:
        for feed, entries in ok:
            for e in entries:
                yield SourceRecord(source=feed.source, fields=e, priority=feed.priority)


class TrafficEventsAdapter(SourceAdapter):
    """
    Traffic events JSON API. The payload is a bare list or wraps it as `events`/`Events`;
    only events inside the configured bounding box are yielded.
    """

    async def _fetch_payload(self, client: httpx.AsyncClient) -> Any:
        urls = [self.config.url, *self.config.fallback_urls]
        last_exc: Optional[FetchError] = None
        for url in urls:
            try:
                return await fetch_json(client, url, timeout=self.config.timeout_seconds)
            except FetchError as e:
                logger.warning("[{}] {}", self.config.id, e.message)
                self.errors.append(FeedError(feed=url, stage=e.stage, error=e.message))
                last_exc = e
        raise FetchError(last_exc.message if last_exc else "No endpoint configured", source_id=self.config.id) from last_exc

    async def fetch(self, client: httpx.AsyncClient) -> Iterator[SourceRecord]:
        data = await self._fetch_payload(client)
        if isinstance(data, list):
            events = data
        elif isinstance(data, dict):
            events = data.get("events") or data.get("Events") or []
        else:
            raise ParseError(f"Unexpected traffic events payload: {type(data).__name__}", source_id=self.config.id)
        if not isinstance(events, list):
            raise ParseError("Traffic events payload has no event list", source_id=self.config.id)
        logger.info("[{}] Received {} traffic events", self.config.id, len(events))
        return self._records(events)

    def in_bounds(self, event: Dict[str, Any]) -> bool:
        lat = to_float(pick(event, TRAFFIC_EVENT_FIELDS["latitude"]))
        lng = to_float(pick(event, TRAFFIC_EVENT_FIELDS["longitude"]))
        if not lat or not lng:
            return False
        if self.config.bounds is None:
            return True
        return self.config.bounds.contains(lat, lng)

    def _records(self, events: List[Any]) -> Iterator[SourceRecord]:
        for e in events:
            if isinstance(e, dict) and self.in_bounds(e):
                yield SourceRecord(source=self.config.id, fields=e)


class WeatherAlertsAdapter(SourceAdapter):
    """NWS active alerts for the configured forecast zones (GeoJSON features[].properties)."""

    async def fetch(self, client: httpx.AsyncClient) -> Iterator[SourceRecord]:
        params = {"zone": ",".join(self.config.zones)} if self.config.zones else None
        data = await fetch_json(
            client, self.config.url, timeout=self.config.timeout_seconds, accept=GEOJSON_ACCEPT, params=params
        )
        if not isinstance(data, dict):
            raise ParseError("Weather alerts payload is not a GeoJSON object", source_id=self.config.id)
        features = data.get("features") or []
        if not isinstance(features, list):
            raise ParseError("Weather alerts payload has no feature list", source_id=self.config.id)
        logger.info("[{}] Received {} active alerts", self.config.id, len(features))
        return self._records(features)

    def _records(self, features: List[Any]) -> Iterator[SourceRecord]:
        for feat in features:
            props = feat.get("properties") if isinstance(feat, dict) else None
            if isinstance(props, dict):
                yield SourceRecord(source=self.config.id, fields=props)


ADAPTERS = {
    "rss": RssAdapter,
    "traffic_events": TrafficEventsAdapter,
    "weather_alerts": WeatherAlertsAdapter,
}


def make_adapter(config: SourceConfig) -> SourceAdapter:
    try:
        cls = ADAPTERS[config.kind]
    except KeyError:
        raise ValueError(f"Unknown source kind '{config.kind}' for source '{config.id}'") from None
    return cls(config)
