import httpx
import pytest
import respx

from conftest import FEED_URL
from pubkiosk.services.feed import FeedError, FeedReader, parse_feed

RSS = b"""<?xml version="1.0"?>
<rss version="2.0"><channel>
  <title>New eBooks</title>
  <link>http://www.worldcat.org/collections</link>
  <item><title>One</title><link>http://www.worldcat.org/oclc/111</link></item>
  <item><title>Two</title><link>http://www.worldcat.org/oclc/222</link></item>
  <item><title>No link</title></item>
  <item><title>Again</title><link>http://www.worldcat.org/oclc/111</link></item>
</channel></rss>
"""

ATOM = b"""<?xml version="1.0"?>
<feed xmlns="http://www.w3.org/2005/Atom">
  <entry><title>A</title><link href="http://www.worldcat.org/oclc/900"/></entry>
  <entry><title>B</title><link href="http://www.worldcat.org/oclc/901"/></entry>
</feed>
"""


def test_parse_rss_preserves_order_and_duplicates() -> None:
    assert list(parse_feed(RSS)) == ["111", "222", "111"]


def test_parse_atom_links() -> None:
    assert list(parse_feed(ATOM)) == ["900", "901"]


def test_malformed_feed_raises() -> None:
    with pytest.raises(FeedError):
        parse_feed(b"<rss><channel><item>")


@pytest.mark.asyncio
@respx.mock
async def test_reader_requests_configured_count(settings) -> None:
    route = respx.get(f"{FEED_URL}/rss").mock(return_value=httpx.Response(200, content=RSS))

    async with httpx.AsyncClient() as client:
        identifiers = list(await FeedReader(client, settings).identifiers())

    assert identifiers == ["111", "222", "111"]
    assert route.calls.last.request.url.params["count"] == "5"


@pytest.mark.asyncio
@respx.mock
async def test_unreachable_feed_raises_feed_error(settings) -> None:
    respx.get(f"{FEED_URL}/rss").mock(side_effect=httpx.ConnectError("down"))

    async with httpx.AsyncClient() as client:
        with pytest.raises(FeedError):
            await FeedReader(client, settings).identifiers()
