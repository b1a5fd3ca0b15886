from __future__ import annotations

from feed_ingest.infra import FileLogoCache, MemoryLogoCache, SQLiteManager, resolve_logo
from feed_ingest.infra.logo_cache import DEFAULT_LOGO_URL


def test_sqlite_manager_initialises_schema(tmp_path) -> None:
    manager = SQLiteManager()
    conn = manager.connect(tmp_path / "feeds.db")
    post_columns = {row["name"] for row in conn.execute("PRAGMA table_info(posts)").fetchall()}
    state_columns = {row["name"] for row in conn.execute("PRAGMA table_info(refresh_state)").fetchall()}
    assert {"id", "publisher_id", "publish_date", "subtitle", "cover_image", "logo_url"} <= post_columns
    assert {"publisher_id", "latest_seen"} <= state_columns
    assert manager.connect(tmp_path / "feeds.db") is conn
    manager.close_all()


def test_sqlite_manager_reset(tmp_path) -> None:
    manager = SQLiteManager()
    path = tmp_path / "feeds.db"
    conn = manager.connect(path)
    conn.execute(
        "INSERT INTO refresh_state(publisher_id, latest_seen) VALUES ('acme', '2024-01-01T00:00:00.000000+00:00')"
    )
    conn.commit()
    manager.reset(path)
    assert not path.exists()
    conn = manager.connect(path)
    assert conn.execute("SELECT count(*) FROM refresh_state").fetchone()[0] == 0
    manager.close_all()


def test_file_logo_cache_roundtrip(tmp_path) -> None:
    cache = FileLogoCache(tmp_path / "logos")
    assert cache.get("acme") is None
    assert cache.set("acme", "https://acme.example/logo.png")
    assert cache.get("acme") == "https://acme.example/logo.png"
    assert (tmp_path / "logos" / "acme.json").exists()


def test_file_logo_cache_write_failure_is_swallowed(tmp_path) -> None:
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory", encoding="utf-8")
    cache = FileLogoCache(blocker)
    assert cache.set("acme", "https://acme.example/logo.png") is False
    assert resolve_logo(cache, "acme") == DEFAULT_LOGO_URL


def test_resolve_logo_fallbacks() -> None:
    cache = MemoryLogoCache()
    cache.set("acme", "https://acme.example/logo.png")
    assert resolve_logo(cache, "acme") == "https://acme.example/logo.png"
    assert resolve_logo(cache, "unknown") == "/placeholder-image.jpg"
    assert resolve_logo(None, "acme", default="/fallback.png") == "/fallback.png"

    class BrokenCache(MemoryLogoCache):
        def get(self, publisher_id):
            raise OSError("read-only")

    assert resolve_logo(BrokenCache(), "acme") == DEFAULT_LOGO_URL
