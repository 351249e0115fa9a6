from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml

from raven_local.errors import UnknownSourceError

CONFIG_DEFAULT = Path("configs/sources.yaml")
STORE_PATH_DEFAULT = Path("data/processed/incidents.jsonl")

TRUST_VERIFICATION = {
    "government": "verified",
    "authoritative": "verified",
    "community": "unverified",
    "scanner": "unverified",
}


@dataclass
class Settings:
    environment: str = "development"
    cron_secret: Optional[str] = None
    config_path: Path = CONFIG_DEFAULT
    store_path: Path = STORE_PATH_DEFAULT
    user_agent: Optional[str] = None
    log_level: str = "INFO"

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            environment=os.getenv("RAVEN_ENV", "development"),
            cron_secret=os.getenv("RAVEN_CRON_SECRET") or None,
            config_path=Path(os.getenv("RAVEN_CONFIG", str(CONFIG_DEFAULT))),
            store_path=Path(os.getenv("RAVEN_STORE_PATH", str(STORE_PATH_DEFAULT))),
            user_agent=os.getenv("RAVEN_USER_AGENT") or None,
            log_level=os.getenv("RAVEN_LOG_LEVEL", "INFO"),
        )


@dataclass
class FeedConfig:
    url: str
    source: str
    name: str
    priority: str = "medium"


@dataclass
class Bounds:
    min_lat: float
    max_lat: float
    min_lng: float
    max_lng: float

    def contains(self, lat: float, lng: float) -> bool:
        return self.min_lat <= lat <= self.max_lat and self.min_lng <= lng <= self.max_lng


@dataclass
class SourceConfig:
    id: str
    kind: str  # rss | traffic_events | weather_alerts
    name: str
    profile: str = ""
    trust: str = "government"
    prefix: str = ""
    enabled: bool = True
    disabled_reason: str = ""
    feeds: List[FeedConfig] = field(default_factory=list)
    url: str = ""
    fallback_urls: List[str] = field(default_factory=list)
    zones: List[str] = field(default_factory=list)
    bounds: Optional[Bounds] = None
    timeout_seconds: int = 20
    max_items_per_pull: int = 100

    @property
    def verification_status(self) -> str:
        return TRUST_VERIFICATION.get(self.trust, "unverified")

    @property
    def namespace(self) -> str:
        return self.prefix or self.id


@dataclass
class Region:
    county: str = "McHenry County"
    county_seat: str = "Woodstock"


def _load_yaml(path: Path) -> Dict[str, Any]:
    with path.open("r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def _parse_source(s: Dict[str, Any], defaults: Dict[str, Any]) -> SourceConfig:
    feeds = [
        FeedConfig(
            url=str(f["url"]),
            source=str(f.get("source", s["id"])),
            name=str(f.get("name", s.get("name", s["id"]))),
            priority=str(f.get("priority", "medium")),
        )
        for f in s.get("feeds", []) or []
    ]
    b = s.get("bounds")
    bounds = None
    if b:
        bounds = Bounds(
            min_lat=float(b["min_lat"]),
            max_lat=float(b["max_lat"]),
            min_lng=float(b["min_lng"]),
            max_lng=float(b["max_lng"]),
        )

    return SourceConfig(
        id=str(s["id"]),
        kind=str(s["kind"]),
        name=str(s.get("name", s["id"])),
        profile=str(s.get("profile", s["id"])),
        trust=str(s.get("trust", "government")),
        prefix=str(s.get("prefix", s["id"])),
        enabled=bool(s.get("enabled", defaults.get("enabled", True))),
        disabled_reason=str(s.get("disabled_reason", "")),
        feeds=feeds,
        url=str(s.get("url", "")),
        fallback_urls=[str(u) for u in s.get("fallback_urls", []) or []],
        zones=[str(z) for z in s.get("zones", []) or []],
        bounds=bounds,
        timeout_seconds=int(s.get("timeout_seconds", defaults.get("timeout_seconds", 20))),
        max_items_per_pull=int(s.get("max_items_per_pull", defaults.get("max_items_per_pull", 100))),
    )


def load_sources(config_path: Path = CONFIG_DEFAULT) -> Tuple[Dict[str, Any], Region, List[SourceConfig]]:
    """
    Returns (raw config, region, sources). Disabled sources are included; callers decide
    whether to skip them so the API can still answer for them.
    """
    cfg = _load_yaml(config_path)
    defaults = cfg.get("defaults", {}) or {}
    r = cfg.get("region", {}) or {}
    region = Region(
        county=str(r.get("county", Region.county)),
        county_seat=str(r.get("county_seat", Region.county_seat)),
    )
    sources = [_parse_source(s, defaults) for s in cfg.get("sources", []) or []]
    return cfg, region, sources


def find_source(sources: List[SourceConfig], source_id: str) -> SourceConfig:
    for s in sources:
        if s.id == source_id:
            return s
    raise UnknownSourceError(f"Unknown source '{source_id}'", source_id=source_id)


def user_agent(cfg: Dict[str, Any], settings: Optional[Settings] = None) -> str:
    if settings is not None and settings.user_agent:
        return settings.user_agent
    defaults = cfg.get("defaults", {}) or {}
    ua_env = defaults.get("user_agent_env", "RAVEN_USER_AGENT")
    ua = os.getenv(ua_env)
    if ua:
        return ua
    # api.weather.gov rejects requests without a contact-style UA.
    return "(Raven Local Intelligence, contact@tryraven.io)"
