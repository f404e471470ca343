"""Full-refresh publication cache backed by SQLite."""

from __future__ import annotations

import asyncio
import io
import json
from collections import defaultdict
from typing import Protocol

import structlog
from PIL import Image
from sqlalchemy import delete
from sqlmodel import Session, select

from pubkiosk.db import AuthorRecord, PublicationRecord, create_engine_for_path, init_db
from pubkiosk.models import Publication
from pubkiosk.settings import Settings

logger = structlog.get_logger(__name__)

PNG_MODES = {"1", "L", "LA", "P", "RGB", "RGBA", "I", "I;16"}


class CatalogSource(Protocol):
    """Anything able to produce a complete, freshly resolved catalog."""

    async def collect(self) -> list[Publication]:
        ...


def encode_cover(image: Image.Image | None) -> bytes | None:
    if image is None:
        return None
    if image.mode not in PNG_MODES:
        image = image.convert("RGB")
    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    return buffer.getvalue()


def decode_cover(blob: bytes | None) -> Image.Image | None:
    if not blob:
        return None
    try:
        image = Image.open(io.BytesIO(blob))
        image.load()
    except (OSError, ValueError) as exc:
        logger.warning("storage.cover_decode_failed", error=str(exc))
        return None
    return image


class CatalogCache:
    """Local cache of the kiosk catalog.

    The cache is never updated incrementally: :meth:`refresh` discards both
    relations and reinserts the given publications with ids ``0..n-1`` in
    input order. The first read of a missing store file creates the schema
    and populates it from ``source`` before returning.
    """

    def __init__(self, settings: Settings, source: CatalogSource | None = None) -> None:
        self._settings = settings
        self._source = source
        self._lock = asyncio.Lock()
        self._bootstrap_lock = asyncio.Lock()
        self._ready = False
        self._settings.ensure_directories()
        self._engine = create_engine_for_path(self._settings.db_path)

    @property
    def exists(self) -> bool:
        return self._settings.db_path.exists()

    async def read_all(self) -> list[Publication]:
        if not self._ready:
            # Early readers wait here until the first population has finished.
            async with self._bootstrap_lock:
                if not self.exists:
                    await self._bootstrap()
                self._ready = True
        async with self._lock:
            return await asyncio.to_thread(self._read_sync)

    async def find(self, catalog_id: str) -> Publication | None:
        for publication in await self.read_all():
            if publication.catalog_id == catalog_id:
                return publication
        return None

    async def refresh(self, publications: list[Publication]) -> int:
        async with self._lock:
            return await asyncio.to_thread(self._refresh_sync, list(publications))

    async def refresh_from_source(self) -> int:
        """Resolve a new catalog and replace the cache with it.

        The source runs to completion before anything is deleted, so a
        failed collection leaves the previous catalog in place.
        """
        if self._source is None:
            raise RuntimeError("No catalog source configured for this cache")
        publications = await self._source.collect()
        count = await self.refresh(publications)
        logger.info("storage.refreshed", items=count)
        return count

    async def _bootstrap(self) -> None:
        logger.info("storage.bootstrap", path=str(self._settings.db_path))
        async with self._lock:
            await asyncio.to_thread(init_db, self._engine)
        if self._source is None:
            logger.warning("storage.bootstrap_without_source")
            return
        try:
            await self.refresh_from_source()
        except Exception:
            # Drop the empty store so the next read retries the bootstrap.
            self._engine.dispose()
            self._settings.db_path.unlink(missing_ok=True)
            raise

    # Internal helpers -----------------------------------------------------

    def _refresh_sync(self, publications: list[Publication]) -> int:
        init_db(self._engine)
        with Session(self._engine) as session:
            connection = session.connection()
            connection.execute(delete(AuthorRecord))
            connection.execute(delete(PublicationRecord))
            for index, publication in enumerate(publications):
                session.add(
                    PublicationRecord(
                        id=index,
                        catalog_id=publication.catalog_id,
                        title=publication.title,
                        description=publication.description,
                        isbns_json=json.dumps(publication.isbns),
                        cover=encode_cover(publication.cover_image),
                    )
                )
                session.add_all(
                    AuthorRecord(publication_id=index, position=position, name=name)
                    for position, name in enumerate(publication.authors)
                )
            session.commit()
        return len(publications)

    def _read_sync(self) -> list[Publication]:
        with Session(self._engine) as session:
            records = session.exec(
                select(PublicationRecord).order_by(PublicationRecord.id)
            ).all()
            author_rows = session.exec(
                select(AuthorRecord).order_by(AuthorRecord.publication_id, AuthorRecord.position)
            ).all()
        authors: dict[int, list[str]] = defaultdict(list)
        for row in author_rows:
            authors[row.publication_id].append(row.name)
        return [self._record_to_publication(record, authors[record.id]) for record in records]

    def _record_to_publication(
        self, record: PublicationRecord, authors: list[str]
    ) -> Publication:
        return Publication(
            title=record.title,
            catalog_id=record.catalog_id,
            description=record.description,
            authors=authors,
            isbns=json.loads(record.isbns_json or "[]"),
            cover_image=decode_cover(record.cover),
        )
