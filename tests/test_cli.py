from __future__ import annotations

import asyncio
import json
from pathlib import Path

from PIL import Image
from typer.testing import CliRunner

from pubkiosk import cli
from pubkiosk.models import Publication
from pubkiosk.services.storage import CatalogCache
from pubkiosk.settings import Settings

runner = CliRunner()


def test_config_json_flag(tmp_path, monkeypatch):
    data_dir = tmp_path / "kiosk-data"
    monkeypatch.setenv("PUBKIOSK_DATA_DIR", str(data_dir))
    monkeypatch.setenv("PUBKIOSK_DB_FILENAME", "test.db")
    monkeypatch.setenv("PUBKIOSK_FEED_COUNT", "7")
    monkeypatch.setenv("PUBKIOSK_XID_SECRET", "do-not-print")

    result = runner.invoke(cli.app, ["config", "--json"])

    assert result.exit_code == 0
    payload = json.loads(result.stdout.strip())
    assert Path(payload["data_dir"]) == data_dir
    assert payload["db_filename"] == "test.db"
    assert payload["feed_count"] == 7
    assert "xid_secret" not in payload


def _seed(data_dir: Path) -> None:
    cache = CatalogCache(Settings(data_dir=data_dir))
    publication = Publication(
        title="seeded title",
        catalog_id="77",
        authors=["Writer, A."],
        cover_image=Image.new("RGB", (5, 5), (60, 60, 60)),
    )
    asyncio.run(cache.refresh([publication]))


def test_list_shows_cached_publications(tmp_path, monkeypatch):
    monkeypatch.setenv("PUBKIOSK_DATA_DIR", str(tmp_path))
    _seed(tmp_path)

    result = runner.invoke(cli.app, ["list"])

    assert result.exit_code == 0
    assert "Seeded" in result.stdout
    assert "77" in result.stdout


def test_cover_exports_png(tmp_path, monkeypatch):
    monkeypatch.setenv("PUBKIOSK_DATA_DIR", str(tmp_path))
    _seed(tmp_path)
    destination = tmp_path / "out" / "77.png"

    result = runner.invoke(cli.app, ["cover", "77", "--output", str(destination)])

    assert result.exit_code == 0
    assert Image.open(destination).size == (5, 5)


def test_cover_for_unknown_id_fails(tmp_path, monkeypatch):
    monkeypatch.setenv("PUBKIOSK_DATA_DIR", str(tmp_path))
    _seed(tmp_path)

    result = runner.invoke(cli.app, ["cover", "missing", "--output", str(tmp_path / "x.png")])

    assert result.exit_code == 1
