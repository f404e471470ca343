"""Bibliographic record resolution from the catalog content API."""

from __future__ import annotations

from enum import Enum
from urllib.parse import quote

import httpx
import structlog
from lxml import etree

from pubkiosk.models import Publication
from pubkiosk.settings import Settings

logger = structlog.get_logger(__name__)

MARC_NS = "{http://www.loc.gov/MARC21/slim}"


class RecordParseError(ValueError):
    """Raised when a catalog response is not a usable MARC record."""


class MarcTag(str, Enum):
    """MARC data field tags read from catalog records."""

    ISBN = "020"
    MAIN_AUTHOR = "100"
    TITLE = "245"
    DESCRIPTION = "520"
    ADDED_AUTHOR = "700"


class MarcRecord:
    """Field values of a MARC21-slim record, keyed by :class:`MarcTag`.

    Each data field contributes the text of its first subfield. Only the tags
    in :class:`MarcTag` are kept; everything else in the record is ignored.
    """

    def __init__(self, fields: dict[MarcTag, list[str]]) -> None:
        self._fields = fields

    @classmethod
    def from_xml(cls, content: bytes) -> "MarcRecord":
        try:
            root = etree.fromstring(content)
        except etree.XMLSyntaxError as exc:
            raise RecordParseError(f"Record is not valid XML: {exc}") from exc
        datafields = list(root.iter(f"{MARC_NS}datafield"))
        if not datafields:
            raise RecordParseError("Record contains no MARC data fields")
        known = {tag.value: tag for tag in MarcTag}
        fields: dict[MarcTag, list[str]] = {tag: [] for tag in MarcTag}
        for datafield in datafields:
            tag = known.get(datafield.get("tag", ""))
            if tag is None:
                continue
            subfield = next(datafield.iterchildren(f"{MARC_NS}subfield"), None)
            if subfield is None:
                continue
            fields[tag].append(subfield.text or "")
        return cls(fields)

    def first(self, tag: MarcTag) -> str | None:
        values = self._fields.get(tag) or []
        return values[0] if values else None

    def all(self, tag: MarcTag) -> list[str]:
        return list(self._fields.get(tag) or [])

    def to_publication(self, catalog_id: str) -> Publication:
        authors = [self.first(MarcTag.MAIN_AUTHOR), *self.all(MarcTag.ADDED_AUTHOR)]
        return Publication(
            title=self.first(MarcTag.TITLE),
            catalog_id=catalog_id,
            description=self.first(MarcTag.DESCRIPTION),
            authors=authors,
            isbns=self.all(MarcTag.ISBN),
        )


class CatalogRecordResolver:
    """Fetches MARC records from the catalog content API."""

    name = "catalog"

    def __init__(self, client: httpx.AsyncClient, settings: Settings) -> None:
        self._client = client
        self._settings = settings

    async def resolve(self, catalog_id: str) -> Publication:
        logger.info("record.fetch", catalog_id=catalog_id)
        url = f"{self._settings.catalog_base_url.rstrip('/')}/{quote(catalog_id)}"
        params = {"wskey": self._settings.wskey} if self._settings.wskey else None
        response = await self._client.get(url, params=params)
        response.raise_for_status()
        record = MarcRecord.from_xml(response.content)
        publication = record.to_publication(catalog_id)
        logger.debug("record.parsed", catalog_id=catalog_id, title=publication.title)
        return publication
