"""Configuration helpers for the kiosk catalog."""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, Field


def _default_data_dir() -> Path:
    base = os.environ.get("XDG_DATA_HOME")
    root = Path(base) if base else Path.home() / ".local" / "share"
    return root / "pubkiosk"


DEFAULT_DATA_DIR = _default_data_dir()
DEFAULT_FEED_URL = "https://bucknell.worldcat.org/webservices/root/collections/ebooks"
DEFAULT_CATALOG_URL = "http://www.worldcat.org/webservices/catalog/content"
DEFAULT_XID_URL = "http://xisbn.worldcat.org/webservices/xid/oclcnum"
DEFAULT_DETAIL_URL = "https://bucknell.worldcat.org/oclc"
DEFAULT_IP_ECHO_URL = "http://httpbin.org/ip"


class Settings(BaseModel):
    """Runtime configuration loaded from env vars with sensible defaults."""

    data_dir: Path = Field(default_factory=lambda: DEFAULT_DATA_DIR)
    db_filename: str = "publications.db"
    log_level: str = "INFO"
    feed_base_url: str = DEFAULT_FEED_URL
    feed_count: int = 20
    wskey: str | None = None
    xid_token: str | None = None
    xid_secret: str | None = None
    catalog_base_url: str = DEFAULT_CATALOG_URL
    xid_base_url: str = DEFAULT_XID_URL
    detail_base_url: str = DEFAULT_DETAIL_URL
    ip_echo_url: str = DEFAULT_IP_ECHO_URL
    request_timeout: float = 30.0
    max_concurrent_lookups: int = 16

    @property
    def db_path(self) -> Path:
        return self.data_dir / self.db_filename

    @property
    def feed_url(self) -> str:
        return f"{self.feed_base_url.rstrip('/')}/rss?count={self.feed_count}"

    def ensure_directories(self) -> None:
        """Create data directories if they are missing."""
        self.data_dir.mkdir(parents=True, exist_ok=True)

    @classmethod
    def load(cls) -> "Settings":
        load_dotenv()
        env = os.environ
        return cls(
            data_dir=Path(env.get("PUBKIOSK_DATA_DIR", DEFAULT_DATA_DIR)),
            db_filename=env.get("PUBKIOSK_DB_FILENAME", "publications.db"),
            log_level=env.get("PUBKIOSK_LOG_LEVEL", "INFO"),
            feed_base_url=env.get("PUBKIOSK_FEED_URL", DEFAULT_FEED_URL),
            feed_count=int(env.get("PUBKIOSK_FEED_COUNT", "20")),
            wskey=env.get("PUBKIOSK_WSKEY"),
            xid_token=env.get("PUBKIOSK_XID_TOKEN"),
            xid_secret=env.get("PUBKIOSK_XID_SECRET"),
            catalog_base_url=env.get("PUBKIOSK_CATALOG_URL", DEFAULT_CATALOG_URL),
            xid_base_url=env.get("PUBKIOSK_XID_URL", DEFAULT_XID_URL),
            detail_base_url=env.get("PUBKIOSK_DETAIL_URL", DEFAULT_DETAIL_URL),
            ip_echo_url=env.get("PUBKIOSK_IP_ECHO_URL", DEFAULT_IP_ECHO_URL),
            request_timeout=float(env.get("PUBKIOSK_REQUEST_TIMEOUT", "30")),
            max_concurrent_lookups=int(env.get("PUBKIOSK_MAX_CONCURRENT_LOOKUPS", "16")),
        )


def get_settings() -> Settings:
    """Convenience accessor for lazy modules."""
    settings = Settings.load()
    settings.ensure_directories()
    return settings
