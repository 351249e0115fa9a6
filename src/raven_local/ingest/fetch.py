from __future__ import annotations

import json
from typing import Any, Dict, List, Optional, Tuple

import feedparser
import httpx
from loguru import logger

from raven_local.errors import FetchError, ParseError

RSS_ACCEPT = "application/rss+xml, application/atom+xml, application/xml;q=0.9, text/xml;q=0.8, */*;q=0.1"
JSON_ACCEPT = "application/json"
GEOJSON_ACCEPT = "application/geo+json"


def build_client(user_agent: str, transport: Optional[httpx.AsyncBaseTransport] = None) -> httpx.AsyncClient:
    headers = {
        "User-Agent": user_agent,
        "Accept-Language": "en-US,en;q=0.9",
        "Cache-Control": "no-cache",
    }
    limits = httpx.Limits(max_connections=20, max_keepalive_connections=10)
    return httpx.AsyncClient(headers=headers, limits=limits, follow_redirects=True, transport=transport)


def _looks_like_html(content: bytes, content_type: str) -> bool:
    ct = (content_type or "").lower()
    if "text/html" in ct:
        return True
    sniff = content[:400].lstrip().lower()
    return sniff.startswith(b"<!doctype html") or sniff.startswith(b"<html") or b"<head" in sniff


async def fetch_bytes(
    client: httpx.AsyncClient,
    url: str,
    timeout: float,
    accept: str = "*/*",
    params: Optional[Dict[str, str]] = None,
) -> Tuple[bytes, Dict[str, Any]]:
    """
    Single GET with a bounded timeout. Returns (content, meta). Any transport failure or
    non-2xx answer becomes FetchError; retrying is left to the next scheduled run.
    """
    try:
        r = await client.get(url, params=params, headers={"Accept": accept}, timeout=timeout)
    except httpx.TimeoutException as e:
        raise FetchError(f"Timed out after {timeout}s fetching {url}") from e
    except httpx.HTTPError as e:
        raise FetchError(f"Request to {url} failed: {e!r}") from e

    meta = {
        "status_code": r.status_code,
        "final_url": str(r.url),
        "content_type": r.headers.get("content-type", ""),
    }
    if not r.is_success:
        raise FetchError(f"{url} returned {r.status_code}")
    return r.content, meta


def parse_feed(xml_bytes: bytes) -> Dict[str, Any]:
    parsed = feedparser.parse(xml_bytes)
    return {
        "bozo": bool(getattr(parsed, "bozo", False)),
        "bozo_exception": str(getattr(parsed, "bozo_exception", "")) if getattr(parsed, "bozo", False) else "",
        "feed": dict(getattr(parsed, "feed", {})),
        "entries": [dict(e) for e in getattr(parsed, "entries", [])],
    }


async def fetch_feed_entries(client: httpx.AsyncClient, url: str, timeout: float, max_items: int) -> List[Dict[str, Any]]:
    content, meta = await fetch_bytes(client, url, timeout, accept=RSS_ACCEPT)

    # Blocked or redirected feeds come back as an HTML page with a 200.
    if _looks_like_html(content, meta["content_type"]):
        raise ParseError(f"{url} returned HTML instead of RSS/XML (likely blocked or redirected)")

    parsed = parse_feed(content)
    entries = parsed["entries"]
    # feedparser sets bozo for recoverable issues too; only a feed with nothing usable fails.
    if parsed["bozo"] and not entries and not parsed["feed"]:
        raise ParseError(f"{url} is not a parseable feed: {parsed['bozo_exception'][:200]}")
    if parsed["bozo"]:
        logger.debug("Feed {} parsed with warnings: {}", url, parsed["bozo_exception"][:200])

    if len(entries) > max_items:
        entries = entries[:max_items]
    return entries


async def fetch_json(
    client: httpx.AsyncClient,
    url: str,
    timeout: float,
    accept: str = JSON_ACCEPT,
    params: Optional[Dict[str, str]] = None,
) -> Any:
    content, _meta = await fetch_bytes(client, url, timeout, accept=accept, params=params)
    try:
        return json.loads(content)
    except ValueError as e:
        raise ParseError(f"{url} returned malformed JSON: {e}") from e
