"""Syndication feed parsing into catalog identifiers."""

from __future__ import annotations

from collections.abc import Iterator

import httpx
import structlog
from lxml import etree

from pubkiosk.settings import Settings
from pubkiosk.utils import last_path_segment

logger = structlog.get_logger(__name__)

ATOM_NS = "{http://www.w3.org/2005/Atom}"


class FeedError(RuntimeError):
    """Raised when the feed cannot be fetched or parsed."""


def parse_feed(content: bytes) -> Iterator[str]:
    """Yield the trailing link segment of every feed entry, in feed order.

    RSS ``<item><link>`` text and Atom ``<entry><link href>`` are both
    understood. Entries without a usable link are skipped.
    """
    try:
        root = etree.fromstring(content)
    except etree.XMLSyntaxError as exc:
        raise FeedError(f"Malformed feed: {exc}") from exc
    return _identifiers(root)


def _identifiers(root: etree._Element) -> Iterator[str]:
    for entry in root.iter("item", f"{ATOM_NS}entry"):
        link = _entry_link(entry)
        if not link:
            logger.debug("feed.entry_without_link")
            continue
        identifier = last_path_segment(link)
        if identifier:
            yield identifier


def _entry_link(entry: etree._Element) -> str | None:
    rss_link = entry.find("link")
    if rss_link is not None and rss_link.text:
        return rss_link.text
    atom_link = entry.find(f"{ATOM_NS}link")
    if atom_link is not None:
        return atom_link.get("href")
    return None


class FeedReader:
    """Fetches the configured feed and exposes its catalog identifiers."""

    def __init__(self, client: httpx.AsyncClient, settings: Settings) -> None:
        self._client = client
        self._settings = settings

    async def identifiers(self) -> Iterator[str]:
        url = self._settings.feed_url
        logger.info("feed.fetch", url=url)
        try:
            response = await self._client.get(url)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise FeedError(f"Could not fetch feed {url}: {exc}") from exc
        return parse_feed(response.content)
