"""FastAPI management endpoint for the kiosk catalog."""

from __future__ import annotations

import io
from pathlib import Path
from typing import Optional

import structlog
from fastapi import FastAPI, HTTPException, Request, status
from fastapi.responses import HTMLResponse, RedirectResponse, Response
from fastapi.templating import Jinja2Templates

from pubkiosk.models import Publication
from pubkiosk.services import CatalogCache, FeedError, IngestError, LiveCatalogSource
from pubkiosk.settings import Settings, get_settings

TEMPLATE_DIR = Path(__file__).resolve().parent / "templates"
logger = structlog.get_logger(__name__)


def _summary(publication: Publication) -> dict:
    return {
        "catalog_id": publication.catalog_id,
        "title": publication.title,
        "authors": publication.authors,
        "isbns": publication.isbns,
        "description": publication.description,
        "has_cover": publication.cover_image is not None,
    }


def create_app(
    settings: Optional[Settings] = None, cache: Optional[CatalogCache] = None
) -> FastAPI:
    """Factory used by uvicorn."""
    settings = settings or get_settings()
    cache = cache or CatalogCache(settings, source=LiveCatalogSource(settings))
    app = FastAPI(title="Kiosk Catalog")
    templates = Jinja2Templates(directory=str(TEMPLATE_DIR))

    @app.get("/", response_class=HTMLResponse)
    async def home(request: Request) -> HTMLResponse:
        publications = await cache.read_all()
        return templates.TemplateResponse(
            request,
            "index.html",
            {
                "publications": publications,
                "total": len(publications),
                "feed_url": settings.feed_url,
                "refreshed": request.query_params.get("refreshed"),
            },
        )

    @app.get("/publications")
    async def list_publications() -> list[dict]:
        return [_summary(publication) for publication in await cache.read_all()]

    @app.get("/publications/{catalog_id}/cover")
    async def cover(catalog_id: str) -> Response:
        publication = await cache.find(catalog_id)
        if publication is None or publication.cover_image is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No cover")
        buffer = io.BytesIO()
        publication.cover_image.save(buffer, format="PNG")
        return Response(content=buffer.getvalue(), media_type="image/png")

    @app.post("/update")
    async def update() -> RedirectResponse:
        logger.info("web.refresh_requested")
        try:
            count = await cache.refresh_from_source()
        except (FeedError, IngestError) as exc:
            logger.error("web.refresh_failed", error=str(exc))
            raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)) from exc
        return RedirectResponse(f"/?refreshed={count}", status_code=status.HTTP_302_FOUND)

    return app
