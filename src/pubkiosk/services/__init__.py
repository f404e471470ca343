"""Service abstractions for the kiosk catalog."""

from .covers import CoverOutcome, CoverResolver, is_acceptable_cover, render_placeholder
from .editions import EditionLookup
from .feed import FeedError, FeedReader, parse_feed
from .pipeline import IngestError, IngestPipeline, LiveCatalogSource, build_pipeline
from .records import CatalogRecordResolver, MarcRecord, MarcTag, RecordParseError
from .signing import PublicAddress, RequestSigner, SigningError, sign_request
from .storage import CatalogCache, CatalogSource

__all__ = [
    "CatalogCache",
    "CatalogRecordResolver",
    "CatalogSource",
    "CoverOutcome",
    "CoverResolver",
    "EditionLookup",
    "FeedError",
    "FeedReader",
    "IngestError",
    "IngestPipeline",
    "LiveCatalogSource",
    "MarcRecord",
    "MarcTag",
    "PublicAddress",
    "RecordParseError",
    "RequestSigner",
    "SigningError",
    "build_pipeline",
    "is_acceptable_cover",
    "parse_feed",
    "render_placeholder",
    "sign_request",
]
