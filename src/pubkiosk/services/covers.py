"""Cover image discovery, validation and placeholder rendering."""

from __future__ import annotations

import io
from dataclasses import dataclass
from functools import lru_cache
from urllib.parse import quote, urljoin

import httpx
import structlog
from lxml import etree, html
from PIL import Image, ImageDraw, ImageFont

from pubkiosk.models import Publication
from pubkiosk.settings import Settings
from .editions import EditionLookup
from .signing import SigningError

logger = structlog.get_logger(__name__)

MIN_MEAN_PIXEL = 20
MAX_MEAN_PIXEL = 230
DEFAULT_SUFFIX = "_140.jpg"
HIGH_RES_SUFFIX = "_400.jpg"
LOW_RES_SUFFIX = "_70.jpg"

PLACEHOLDER_SIZE = (800, 1200)
PLACEHOLDER_BACKGROUND = (255, 255, 255)
PLACEHOLDER_INK = (100, 149, 237)
TITLE_FONT_SIZE = 72
AUTHOR_FONT_SIZE = 48
TITLE_TOP = 100
AUTHOR_GAP = 20
FONT_NAME = "DejaVuSans.ttf"


@dataclass(slots=True)
class CoverOutcome:
    """Result of one step of the cover search."""

    image: Image.Image | None
    origin: str
    source_url: str | None = None
    reason: str | None = None

    @property
    def found(self) -> bool:
        return self.image is not None

    @classmethod
    def from_catalog(cls, image: Image.Image, url: str) -> "CoverOutcome":
        return cls(image=image, origin="catalog", source_url=url)

    @classmethod
    def try_next(cls, reason: str, url: str | None = None) -> "CoverOutcome":
        return cls(image=None, origin="none", source_url=url, reason=reason)

    @classmethod
    def placeholder(cls, image: Image.Image) -> "CoverOutcome":
        return cls(image=image, origin="placeholder")


def candidate_urls(src: str, page_url: str) -> list[str]:
    """High-resolution, default and low-resolution variants of a cover URL."""
    absolute = urljoin(page_url, src.strip())
    variants = [
        absolute.replace(DEFAULT_SUFFIX, HIGH_RES_SUFFIX),
        absolute,
        absolute.replace(DEFAULT_SUFFIX, LOW_RES_SUFFIX),
    ]
    return list(dict.fromkeys(variants))


def mean_pixel_value(image: Image.Image) -> float:
    """Arithmetic mean of every raw pixel byte of the decoded raster."""
    if image.mode not in ("L", "LA", "RGB", "RGBA"):
        image = image.convert("RGB")
    data = image.tobytes()
    if not data:
        return 0.0
    return sum(data) / len(data)


def is_acceptable_cover(image: Image.Image) -> bool:
    """Reject near-solid black or white rasters (blank placeholders)."""
    return _within_bounds(mean_pixel_value(image))


def _within_bounds(mean: float) -> bool:
    return MIN_MEAN_PIXEL <= mean <= MAX_MEAN_PIXEL


@lru_cache(maxsize=8)
def _load_font(size: int) -> ImageFont.FreeTypeFont | ImageFont.ImageFont:
    try:
        return ImageFont.truetype(FONT_NAME, size)
    except OSError:
        return ImageFont.load_default(size=size)


def wrap_text(
    draw: ImageDraw.ImageDraw,
    text: str,
    font: ImageFont.FreeTypeFont | ImageFont.ImageFont,
    max_width: int,
) -> list[str]:
    lines: list[str] = []
    current = ""
    for word in text.split():
        attempt = f"{current} {word}" if current else word
        if current and draw.textlength(attempt, font=font) > max_width:
            lines.append(current)
            current = word
        else:
            current = attempt
    if current:
        lines.append(current)
    return lines


def _draw_centered(
    draw: ImageDraw.ImageDraw,
    text: str,
    font: ImageFont.FreeTypeFont | ImageFont.ImageFont,
    top: int,
) -> int:
    width = PLACEHOLDER_SIZE[0]
    left, upper, right, lower = draw.textbbox((0, 0), "Ag", font=font)
    line_height = lower - upper
    y = top
    for line in wrap_text(draw, text, font, width):
        x = (width - draw.textlength(line, font=font)) / 2
        draw.text((x, y), line, font=font, fill=PLACEHOLDER_INK)
        y += line_height
    return y


def render_placeholder(title: str, author_line: str) -> Image.Image:
    """Render the text-only cover used when no catalog image qualifies."""
    image = Image.new("RGB", PLACEHOLDER_SIZE, PLACEHOLDER_BACKGROUND)
    draw = ImageDraw.Draw(image)
    bottom = _draw_centered(draw, title, _load_font(TITLE_FONT_SIZE), TITLE_TOP)
    _draw_centered(draw, author_line, _load_font(AUTHOR_FONT_SIZE), bottom + AUTHOR_GAP)
    return image


class CoverResolver:
    """Walks editions, detail pages and image candidates until one validates.

    Every step waits for the previous request, so the search stops issuing
    requests as soon as an acceptable image is found.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        settings: Settings,
        editions: EditionLookup | None = None,
    ) -> None:
        self._client = client
        self._settings = settings
        self._editions = editions

    async def resolve(self, publication: Publication) -> CoverOutcome:
        catalog_ids = [*await self._alternate_ids(publication.catalog_id), publication.catalog_id]
        for catalog_id in catalog_ids:
            outcome = await self._search_catalog_id(catalog_id)
            if outcome.found:
                logger.info(
                    "cover.found",
                    catalog_id=publication.catalog_id,
                    via=catalog_id,
                    url=outcome.source_url,
                )
                return outcome
            logger.debug("cover.miss", catalog_id=catalog_id, reason=outcome.reason)
        logger.info("cover.placeholder", catalog_id=publication.catalog_id)
        return CoverOutcome.placeholder(
            render_placeholder(publication.title, publication.author_line)
        )

    async def _alternate_ids(self, catalog_id: str) -> list[str]:
        if self._editions is None:
            return []
        try:
            return await self._editions.alternate_ids(catalog_id)
        except (httpx.HTTPError, etree.LxmlError, SigningError, ValueError) as exc:
            logger.warning("cover.editions_failed", catalog_id=catalog_id, error=str(exc))
            return []

    async def _search_catalog_id(self, catalog_id: str) -> CoverOutcome:
        located = await self._cover_source(catalog_id)
        if located is None:
            return CoverOutcome.try_next("cover element missing")
        page_url, src = located
        try:
            urls = candidate_urls(src, page_url)
        except ValueError as exc:
            logger.warning("cover.bad_source", catalog_id=catalog_id, src=src, error=str(exc))
            return CoverOutcome.try_next("malformed cover source")
        for url in urls:
            outcome = await self._try_candidate(url)
            if outcome.found:
                return outcome
        return CoverOutcome.try_next("no candidate passed validation")

    async def _cover_source(self, catalog_id: str) -> tuple[str, str] | None:
        page_url = f"{self._settings.detail_base_url.rstrip('/')}/{quote(catalog_id)}"
        try:
            response = await self._client.get(page_url)
            response.raise_for_status()
            document = html.fromstring(response.content)
        except (httpx.HTTPError, etree.LxmlError) as exc:
            logger.warning("cover.page_failed", catalog_id=catalog_id, error=str(exc))
            return None
        for img in document.xpath("//*[@id='cover']//img"):
            src = img.get("src")
            if src:
                return page_url, src
        return None

    async def _try_candidate(self, url: str) -> CoverOutcome:
        try:
            response = await self._client.get(url)
            response.raise_for_status()
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            logger.warning("cover.download_failed", url=url, error=str(exc))
            return CoverOutcome.try_next("download failed", url)
        try:
            image = Image.open(io.BytesIO(response.content))
            image.load()
        except (OSError, ValueError, Image.DecompressionBombError) as exc:
            logger.warning("cover.decode_failed", url=url, error=str(exc))
            return CoverOutcome.try_next("undecodable image", url)
        mean = mean_pixel_value(image)
        if not _within_bounds(mean):
            logger.info("cover.rejected", url=url, mean=round(mean, 2))
            return CoverOutcome.try_next("blank image", url)
        return CoverOutcome.from_catalog(image, url)
