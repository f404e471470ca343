"""Asynchronous ingestion pipeline that orchestrates metadata + cover resolution."""

from __future__ import annotations

import asyncio
import contextlib
from collections.abc import Iterable
from typing import Protocol

import httpx
import structlog
from lxml import etree

from pubkiosk.models import Publication
from pubkiosk.settings import Settings
from .covers import CoverResolver
from .editions import EditionLookup
from .feed import FeedReader
from .records import CatalogRecordResolver, RecordParseError
from .signing import PublicAddress, RequestSigner

logger = structlog.get_logger(__name__)


class IngestError(RuntimeError):
    """Raised when a refresh cannot produce a complete catalog."""


class IdentifierSource(Protocol):
    async def identifiers(self) -> Iterable[str]:
        ...


class IngestPipeline:
    """Resolves every feed identifier into a Publication with a cover.

    One task is started per identifier and all of them are joined; the
    result keeps feed order. A single failing identifier fails the whole
    collection. ``max_concurrency`` bounds simultaneous tasks; ``0`` leaves
    the fan-out unbounded.
    """

    def __init__(
        self,
        feed: IdentifierSource,
        records: CatalogRecordResolver,
        covers: CoverResolver,
        *,
        max_concurrency: int = 0,
    ) -> None:
        self._feed = feed
        self._records = records
        self._covers = covers
        self._semaphore = asyncio.Semaphore(max_concurrency) if max_concurrency > 0 else None

    async def collect(self) -> list[Publication]:
        identifiers = list(await self._feed.identifiers())
        logger.info("pipeline.start", items=len(identifiers))
        tasks = [asyncio.create_task(self._resolve(catalog_id)) for catalog_id in identifiers]
        try:
            publications = await asyncio.gather(*tasks)
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise
        logger.info("pipeline.done", items=len(publications))
        return list(publications)

    async def _resolve(self, catalog_id: str) -> Publication:
        guard = self._semaphore or contextlib.nullcontext()
        async with guard:
            try:
                publication = await self._records.resolve(catalog_id)
            except (httpx.HTTPError, RecordParseError, etree.LxmlError) as exc:
                logger.error("pipeline.record_failed", catalog_id=catalog_id, error=str(exc))
                raise IngestError(f"Could not resolve {catalog_id}: {exc}") from exc
            outcome = await self._covers.resolve(publication)
        return publication.model_copy(update={"cover_image": outcome.image})


def build_pipeline(
    client: httpx.AsyncClient, settings: Settings, address: PublicAddress | None = None
) -> IngestPipeline:
    """Wire the feed, record, edition and cover services around one client."""
    address = address or PublicAddress(settings.ip_echo_url)
    signer = RequestSigner(client, address, settings.xid_token, settings.xid_secret)
    return IngestPipeline(
        feed=FeedReader(client, settings),
        records=CatalogRecordResolver(client, settings),
        covers=CoverResolver(client, settings, EditionLookup(client, settings, signer)),
        max_concurrency=settings.max_concurrent_lookups,
    )


class LiveCatalogSource:
    """Runs the full pipeline against the configured upstream services.

    Each collection opens its own HTTP client; the public IP handle is kept
    across collections.
    """

    def __init__(self, settings: Settings) -> None:
        self._settings = settings
        self._address = PublicAddress(settings.ip_echo_url)

    async def collect(self) -> list[Publication]:
        async with httpx.AsyncClient(
            timeout=self._settings.request_timeout, follow_redirects=True
        ) as client:
            pipeline = build_pipeline(client, self._settings, self._address)
            return await pipeline.collect()
