from __future__ import annotations

import hmac
from datetime import datetime, timezone
from functools import lru_cache
from typing import Any, Dict, List, Optional, Tuple

import httpx
from fastapi import Depends, FastAPI, HTTPException, Query, status
from fastapi.requests import Request
from fastapi.responses import JSONResponse
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from loguru import logger

from raven_local import __version__
from raven_local.config import Region, Settings, SourceConfig, find_source, load_sources, user_agent
from raven_local.errors import RavenError
from raven_local.ingest.fetch import build_client
from raven_local.jobs.run_pipeline import ingest_source
from raven_local.log import configure_logging
from raven_local.scoring.stability import compute_stability
from raven_local.store import IncidentStore, JsonlIncidentStore
from raven_local.store.listing import MAX_LIMIT, list_incidents

app = FastAPI(title="raven-local", version=__version__)

http_bearer = HTTPBearer(auto_error=False)

# RavenError.stage -> HTTP status
STAGE_STATUS = {
    "config": status.HTTP_404_NOT_FOUND,
    "fetch": status.HTTP_502_BAD_GATEWAY,
    "parse": status.HTTP_502_BAD_GATEWAY,
    "store": status.HTTP_500_INTERNAL_SERVER_ERROR,
    "store_query": status.HTTP_500_INTERNAL_SERVER_ERROR,
    "store_write": status.HTTP_500_INTERNAL_SERVER_ERROR,
}

_store: Optional[IncidentStore] = None


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    settings = Settings.from_env()
    configure_logging(settings.log_level)
    return settings


def get_sources(settings: Settings = Depends(get_settings)) -> Tuple[Dict[str, Any], Region, List[SourceConfig]]:
    return load_sources(settings.config_path)


def get_store(settings: Settings = Depends(get_settings)) -> IncidentStore:
    # Built on first use so a bad store path surfaces as a 500 on the request.
    global _store
    if _store is None:
        _store = JsonlIncidentStore(settings.store_path)
    return _store


def get_transport() -> Optional[httpx.AsyncBaseTransport]:
    """Outbound transport; None means the default network transport."""
    return None


def require_cron_secret(
    settings: Settings = Depends(get_settings),
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(http_bearer),
) -> None:
    if not settings.is_production:
        return
    token = credentials.credentials if credentials else ""
    if not settings.cron_secret or not hmac.compare_digest(token, settings.cron_secret):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")


@app.exception_handler(RavenError)
async def raven_error_handler(request: Request, exc: RavenError) -> JSONResponse:
    code = STAGE_STATUS.get(exc.stage, status.HTTP_500_INTERNAL_SERVER_ERROR)
    logger.error("{} {} failed at {}: {}", request.method, request.url.path, exc.stage, exc.message)
    return JSONResponse(status_code=code, content=exc.to_dict())


@app.get("/health")
def health(settings: Settings = Depends(get_settings)) -> Dict[str, Any]:
    return {
        "ok": True,
        "version": __version__,
        "environment": settings.environment,
        "store": settings.store_path.exists(),
    }


@app.api_route("/api/ingest/{source_id}", methods=["GET", "POST"], dependencies=[Depends(require_cron_secret)])
async def ingest(
    source_id: str,
    settings: Settings = Depends(get_settings),
    store: IncidentStore = Depends(get_store),
    sources: Tuple[Dict[str, Any], Region, List[SourceConfig]] = Depends(get_sources),
    transport: Optional[httpx.AsyncBaseTransport] = Depends(get_transport),
) -> JSONResponse:
    cfg, region, configs = sources
    config = find_source(configs, source_id)

    if not config.enabled:
        return JSONResponse(
            content={
                "success": False,
                "source": config.id,
                "message": config.disabled_reason or f"Source '{config.id}' is disabled",
            }
        )

    try:
        async with build_client(user_agent(cfg, settings), transport=transport) as client:
            result = await ingest_source(config, region, store, client)
    except RavenError:
        raise
    except Exception as e:
        logger.opt(exception=e).error("[{}] Unexpected failure: {!r}", config.id, e)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"success": False, "source": config.id, "error": repr(e), "stage": "pipeline"},
        )

    code = status.HTTP_200_OK if result.success else STAGE_STATUS.get(result.stage or "", 500)
    return JSONResponse(status_code=code, content=result.to_dict())


@app.get("/api/stability-score")
def stability_score(
    municipality: str = "Crystal Lake",
    days: int = Query(7, ge=1, le=365),
    store: IncidentStore = Depends(get_store),
) -> Dict[str, Any]:
    return compute_stability(store, municipality, days=days, now=datetime.now(timezone.utc)).to_dict()


@app.get("/api/incidents")
def incidents(
    limit: int = Query(100, ge=1),
    offset: int = Query(0, ge=0),
    category: Optional[str] = None,
    municipality: Optional[str] = None,
    days: int = Query(7, ge=1, le=365),
    store: IncidentStore = Depends(get_store),
) -> Dict[str, Any]:
    return list_incidents(
        store,
        limit=min(limit, MAX_LIMIT),
        offset=offset,
        category=category,
        municipality=municipality,
        days=days,
    )
