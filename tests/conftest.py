import io

import pytest
from PIL import Image

from pubkiosk.settings import Settings

CATALOG_URL = "http://catalog.test/content"
XID_URL = "http://xid.test/oclcnum"
DETAIL_URL = "https://library.test/oclc"
IP_ECHO_URL = "http://ip.test/ip"
FEED_URL = "http://feed.test/collections/new"


def png_bytes(value: int, size: tuple[int, int] = (8, 12)) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", size, (value, value, value)).save(buffer, format="PNG")
    return buffer.getvalue()


def marc_record(fields: list[tuple[str, str]]) -> bytes:
    datafields = "".join(
        f'<datafield tag="{tag}" ind1=" " ind2=" "><subfield code="a">{value}</subfield>'
        f'<subfield code="c">ignored</subfield></datafield>'
        for tag, value in fields
    )
    return (
        '<?xml version="1.0" encoding="UTF-8"?>'
        '<record xmlns="http://www.loc.gov/MARC21/slim">'
        "<leader>00000cam a2200000 a 4500</leader>"
        f"{datafields}</record>"
    ).encode("utf-8")


def detail_page(src: str | None) -> str:
    cover = f'<div id="cover"><img src="{src}" alt="cover"></div>' if src else ""
    return f"<html><body><h1>Detail</h1>{cover}</body></html>"


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        data_dir=tmp_path,
        feed_base_url=FEED_URL,
        feed_count=5,
        wskey="key",
        xid_token="token",
        xid_secret="secret",
        catalog_base_url=CATALOG_URL,
        xid_base_url=XID_URL,
        detail_base_url=DETAIL_URL,
        ip_echo_url=IP_ECHO_URL,
        max_concurrent_lookups=0,
    )
