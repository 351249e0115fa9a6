from __future__ import annotations

import argparse
import asyncio
import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

import httpx
from loguru import logger

from raven_local.config import Region, Settings, SourceConfig, find_source, load_sources, user_agent
from raven_local.errors import FetchError, ParseError, RavenError, StoreError
from raven_local.ingest.adapters import make_adapter
from raven_local.ingest.dedupe import DedupWriter
from raven_local.ingest.fetch import build_client
from raven_local.ingest.profiles import get_profile
from raven_local.log import configure_logging
from raven_local.models import Incident
from raven_local.store import IncidentStore, JsonlIncidentStore

SAMPLE_SIZE = 3


@dataclass
class IngestResult:
    source_id: str
    success: bool = True
    fetched: int = 0
    inserted: int = 0
    skipped: int = 0
    message: str = ""
    sample: List[Dict[str, Any]] = field(default_factory=list)
    errors: List[Dict[str, str]] = field(default_factory=list)
    error: Optional[str] = None
    stage: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "success": self.success,
            "source": self.source_id,
            "fetched": self.fetched,
            "inserted": self.inserted,
            "skipped": self.skipped,
        }
        if self.message:
            out["message"] = self.message
        if self.sample:
            out["sample"] = self.sample
        if self.errors:
            out["errors"] = self.errors
        if self.error is not None:
            out["error"] = self.error
            out["stage"] = self.stage
        return out


def build_incidents(
    records,
    config: SourceConfig,
    region: Region,
    now: datetime,
) -> List[Incident]:
    profile = get_profile(config)
    out: List[Incident] = []
    for rec in records:
        inc = profile.build(rec, config, region, now)
        if inc is not None:
            out.append(inc)
    return out


async def ingest_source(
    config: SourceConfig,
    region: Region,
    store: IncidentStore,
    client: httpx.AsyncClient,
    now: Optional[datetime] = None,
) -> IngestResult:
    """
    fetch -> normalize/classify/locate -> fingerprint -> dedupe-write for one source.

    Never raises for pipeline failures: the failing stage is reported on the result so
    sibling sources keep going. Runs of the same source must not overlap.
    """
    now = now or datetime.now(timezone.utc)
    result = IngestResult(source_id=config.id)

    if not config.enabled:
        result.success = False
        result.message = config.disabled_reason or f"Source '{config.id}' is disabled"
        return result

    logger.info("[{}] Starting fetch...", config.id)
    adapter = make_adapter(config)
    try:
        records = await adapter.fetch(client)
        incidents = build_incidents(records, config, region, now)
    except (FetchError, ParseError) as e:
        logger.error("[{}] {} failed: {}", config.id, e.stage, e.message)
        result.success = False
        result.error = e.message
        result.stage = e.stage
        result.errors = [x.to_dict() for x in adapter.errors]
        return result

    result.errors = [x.to_dict() for x in adapter.errors]
    logger.info("[{}] Parsed {} incidents", config.id, len(incidents))

    if not incidents:
        result.message = "No items found"
        return result

    profile = get_profile(config)
    try:
        written = DedupWriter(store).write(incidents, now=datetime.now(timezone.utc))
    except StoreError as e:
        logger.error("[{}] {} failed: {}", config.id, e.stage, e.message)
        result.success = False
        result.fetched = len(incidents)
        result.error = e.message
        result.stage = e.stage
        return result

    result.fetched = written.fetched
    result.inserted = written.inserted
    result.skipped = written.skipped
    result.sample = [profile.sample(i) for i in written.rows[:SAMPLE_SIZE]]
    result.message = f"Ingested {written.inserted} new items" if written.inserted else "No new items to insert"
    logger.info("[{}] Inserted {} new items", config.id, written.inserted)
    return result


async def run_sources(
    sources: List[SourceConfig],
    region: Region,
    store: IncidentStore,
    ua: str,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> List[IngestResult]:
    """
    Fan out over sources concurrently. Adapters share nothing; the store is the only
    shared state and each source writes its own namespace.
    """
    results: List[IngestResult] = []
    async with build_client(ua, transport=transport) as client:
        tasks = [ingest_source(s, region, store, client) for s in sources]
        gathered = await asyncio.gather(*tasks, return_exceptions=True)

        for s, r in zip(sources, gathered):
            if isinstance(r, RavenError):
                results.append(IngestResult(source_id=s.id, success=False, error=r.message, stage=r.stage))
            elif isinstance(r, BaseException):
                logger.opt(exception=r).error("[{}] Unexpected failure: {!r}", s.id, r)
                results.append(IngestResult(source_id=s.id, success=False, error=repr(r), stage="pipeline"))
            else:
                results.append(r)
    return results


def main(argv: Optional[List[str]] = None) -> List[IngestResult]:
    settings = Settings.from_env()

    ap = argparse.ArgumentParser(description="Run feed ingestion for one or more sources.")
    ap.add_argument("--source", action="append", help="source id from sources.yaml (repeatable); default: all enabled")
    ap.add_argument("--config", default=str(settings.config_path))
    ap.add_argument("--store", default=str(settings.store_path))
    ap.add_argument("--log-level", default=settings.log_level)
    args = ap.parse_args(argv)

    configure_logging(args.log_level)
    cfg, region, sources = load_sources(Path(args.config))
    if args.source:
        selected = [find_source(sources, sid) for sid in args.source]
    else:
        selected = [s for s in sources if s.enabled]

    store = JsonlIncidentStore(Path(args.store))
    results = asyncio.run(run_sources(selected, region, store, user_agent(cfg, settings)))

    # Tiny health summary.
    ok = sum(1 for r in results if r.success)
    inserted = sum(r.inserted for r in results)
    print(json.dumps({"sources": len(results), "ok": ok, "inserted": inserted}, indent=2))
    print(json.dumps([r.to_dict() for r in results], indent=2))
    return results


if __name__ == "__main__":
    main()
