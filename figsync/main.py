"""FastAPI entry point for the FIG reference-data sync service.

Serves merged athlete/coach/judge rosters, registry images, registration
validation and cache administration on top of the sync core.
"""

from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from figsync.config import FigSyncSettings, get_settings
from figsync.errors import FigSyncError
from figsync.models import (
    AnyPerson,
    CacheStats,
    ClearCachesOutcome,
    LocalPersonCreate,
    LocalPersonUpdate,
    PersonKind,
    ValidateRegistrationBody,
    ValidationOutcome,
    WarmupOutcome,
    WarmupStatus,
)
from figsync.raw_records import get_ingest_counters
from figsync.services import Services, build_services

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
)
logger = logging.getLogger(__name__)


def get_services(request: Request) -> Services:
    """Dependency returning the service graph attached to the app."""
    return request.app.state.services


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """Startup and shutdown logic for the FastAPI app."""
    services: Services = app.state.services
    settings = services.settings

    logger.info("FIG sync service starting...")
    await services.store.create_schema()

    if settings.warmup_enabled:
        services.warmup.start()
    else:
        logger.info("Warmup disabled, rosters will be fetched on demand")

    logger.info("FIG sync service ready on %s:%d", settings.host, settings.port)
    yield

    logger.info("FIG sync service shutting down...")
    await services.aclose()


# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------

def create_app(
    settings: Optional[FigSyncSettings] = None,
    services: Optional[Services] = None,
) -> FastAPI:
    """Build the FastAPI app around a service graph.

    Args:
        settings: Settings used when ``services`` is not given.
        services: Prebuilt service graph (tests inject fakes here).
    """
    if services is None:
        services = build_services(settings or get_settings())

    app = FastAPI(
        title="FIG Reference Data Sync",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.services = services
    app.state.started_at = time.time()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(FigSyncError)
    async def _fig_sync_error(request: Request, exc: FigSyncError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("%s on %s: %s", type(exc).__name__, request.url.path, exc.message)
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.message, "kind": type(exc).__name__},
        )

    _register_routes(app)
    return app


def _register_routes(app: FastAPI) -> None:
    # -----------------------------------------------------------------------
    # Health
    # -----------------------------------------------------------------------

    @app.get("/api/health")
    async def health(request: Request, services: Services = Depends(get_services)) -> dict:
        """Service health, warmup state and ingestion counters."""
        return {
            "status": "healthy",
            "uptime_s": int(time.time() - request.app.state.started_at),
            "registry_requests": services.client.requests_made,
            "warmup": services.warmup.status().model_dump(mode="json"),
            "ingest_counters": get_ingest_counters(),
        }

    # -----------------------------------------------------------------------
    # People
    # -----------------------------------------------------------------------

    @app.get("/api/people/{kind}", response_model=None)
    async def list_people(
        kind: PersonKind,
        country: Optional[str] = None,
        services: Services = Depends(get_services),
    ) -> list[AnyPerson]:
        """Registry roster merged with local overrides."""
        return await services.merge.list_all(kind, country)

    @app.get("/api/people/{kind}/{external_id}", response_model=None)
    async def find_person(
        kind: PersonKind,
        external_id: str,
        services: Services = Depends(get_services),
    ) -> AnyPerson:
        return await services.merge.get_one(kind, external_id)

    @app.post("/api/people/{kind}/local", status_code=201, response_model=None)
    async def create_local_person(
        kind: PersonKind,
        body: LocalPersonCreate,
        services: Services = Depends(get_services),
    ) -> AnyPerson:
        return await services.merge.create_local(kind, body)

    @app.patch("/api/local-people/{local_id}", response_model=None)
    async def update_local_person(
        local_id: str,
        body: LocalPersonUpdate,
        services: Services = Depends(get_services),
    ) -> AnyPerson:
        return await services.merge.update_local(local_id, body)

    @app.delete("/api/local-people/{local_id}")
    async def delete_local_person(
        local_id: str, services: Services = Depends(get_services)
    ) -> dict:
        await services.merge.delete_local(local_id)
        return {"status": "deleted", "local_id": local_id}

    # -----------------------------------------------------------------------
    # Cache administration
    # -----------------------------------------------------------------------

    @app.delete("/api/cache")
    async def clear_cache(
        kind: Optional[PersonKind] = None,
        services: Services = Depends(get_services),
    ) -> dict:
        """Drop one cached roster, or all of them."""
        if kind is None:
            services.synchronizer.invalidate_all()
            return {"status": "cleared", "kinds": [k.value for k in PersonKind]}
        services.synchronizer.invalidate(kind)
        return {"status": "cleared", "kinds": [kind.value]}

    @app.get("/api/cache/stats")
    async def cache_stats(services: Services = Depends(get_services)) -> CacheStats:
        stats = services.synchronizer.cache_stats()
        stats.images_cached = services.images.cached_count
        stats.image_ttl_s = services.images.image_ttl_s
        return stats

    @app.delete("/api/caches")
    async def clear_all_caches(
        services: Services = Depends(get_services),
    ) -> ClearCachesOutcome:
        return services.warmup.clear_all_caches()

    # -----------------------------------------------------------------------
    # Images
    # -----------------------------------------------------------------------

    @app.get("/api/images/{external_id}", response_model=None)
    async def get_image(
        external_id: str, services: Services = Depends(get_services)
    ) -> Response:
        """Registry picture for a person, served from the image cache."""
        image = await services.images.get_image(external_id)
        headers = {
            "Cache-Control": f"public, max-age={int(services.images.image_ttl_s)}",
            "Content-Length": str(image.content_length),
        }
        if image.last_modified:
            headers["Last-Modified"] = image.last_modified
        if image.etag:
            headers["ETag"] = image.etag
        return Response(content=image.data, media_type=image.content_type, headers=headers)

    # -----------------------------------------------------------------------
    # Registration eligibility
    # -----------------------------------------------------------------------

    @app.post("/api/registrations/validate")
    async def validate_registration(
        body: ValidateRegistrationBody,
        services: Services = Depends(get_services),
    ) -> ValidationOutcome:
        return services.rules.validate(
            body.tournament_type, body.request, body.existing_count
        )

    @app.get("/api/tournament-rules")
    async def tournament_rules(services: Services = Depends(get_services)) -> dict:
        return {
            "rule_sets": [
                {
                    "tournament_type": rule_set.tournament_type.value,
                    "display_name": rule_set.display_name,
                    "max_per_country_per_category": rule_set.max_per_country_per_category,
                    "min_group_size": rule_set.min_group_size,
                    "eligible_countries": sorted(rule_set.eligible_countries),
                    "rules": list(rule_set.rules),
                }
                for rule_set in services.rules.all_rule_sets()
            ]
        }

    # -----------------------------------------------------------------------
    # Warmup
    # -----------------------------------------------------------------------

    @app.post("/api/warmup")
    async def trigger_warmup(services: Services = Depends(get_services)) -> WarmupOutcome:
        return await services.warmup.trigger()

    @app.get("/api/warmup")
    async def warmup_status(services: Services = Depends(get_services)) -> WarmupStatus:
        return services.warmup.status()


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    logging.getLogger().setLevel(settings.log_level.upper())
    uvicorn.run(
        "figsync.main:create_app",
        factory=True,
        host=settings.host,
        port=settings.port,
        reload=False,
        log_level=settings.log_level.lower(),
    )
