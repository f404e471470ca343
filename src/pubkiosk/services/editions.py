"""Cross-reference lookup of alternate editions through the xID service."""

from __future__ import annotations

from urllib.parse import quote

import httpx
import structlog
from lxml import etree

from pubkiosk.settings import Settings
from .signing import RequestSigner

logger = structlog.get_logger(__name__)

XID_NS = "{http://worldcat.org/xid/oclcnum/}"


def parse_editions(content: bytes) -> list[str]:
    root = etree.fromstring(content)
    return [
        element.text.strip()
        for element in root.iter(f"{XID_NS}oclcnum")
        if element.text and element.text.strip()
    ]


class EditionLookup:
    """Lists catalog identifiers of other editions of the same work."""

    def __init__(
        self, client: httpx.AsyncClient, settings: Settings, signer: RequestSigner
    ) -> None:
        self._client = client
        self._settings = settings
        self._signer = signer

    def url_for(self, catalog_id: str) -> str:
        return f"{self._settings.xid_base_url.rstrip('/')}/{quote(catalog_id)}"

    async def alternate_ids(self, catalog_id: str) -> list[str]:
        """Return alternate identifiers; errors propagate to the caller."""
        url = self.url_for(catalog_id)
        params = {"method": "getEditions", "format": "xml", "fl": "oclcnum"}
        params.update(await self._signer.signed_params(url))
        response = await self._client.get(url, params=params)
        response.raise_for_status()
        editions = parse_editions(response.content)
        logger.info("editions.found", catalog_id=catalog_id, count=len(editions))
        return editions
