from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from feed_ingest.config import GlobalConfig, Publisher, ScheduleConfig, ScheduleType, StoreConfig


def test_publisher_accepts_feed_aliases() -> None:
    publisher = Publisher.model_validate(
        {"id": "acme", "name": "Acme", "rssUrl": " https://acme.example/feed ", "publicationName": "Acme Weekly"}
    )
    assert publisher.feed_url == "https://acme.example/feed"
    assert publisher.publication_name == "Acme Weekly"

    other = Publisher.model_validate({"id": "b", "name": "B", "feedUrl": "https://b.example/rss", "logoUrl": "https://b.example/logo.png"})
    assert other.feed_url == "https://b.example/rss"
    assert other.publication_name is None
    assert other.logo_url == "https://b.example/logo.png"


def test_publisher_without_url_defaults_to_empty() -> None:
    assert Publisher(id="acme", name="Acme").feed_url == ""
    assert Publisher(id="acme", name="Acme", feed_url=None).feed_url == ""


def test_publisher_requires_id_and_name() -> None:
    with pytest.raises(ValidationError):
        Publisher(id="  ", name="Acme")
    with pytest.raises(ValidationError):
        Publisher.model_validate({"id": "acme"})


def test_publisher_is_immutable() -> None:
    publisher = Publisher(id="acme", name="Acme")
    with pytest.raises(ValidationError):
        publisher.name = "Changed"  # type: ignore[misc]


def test_schedule_defaults_to_thirty_minutes() -> None:
    schedule = ScheduleConfig()
    assert schedule.type is ScheduleType.INTERVAL
    assert schedule.value == {"minutes": 30}
    assert schedule.run_on_start


def test_schedule_value_validation() -> None:
    assert ScheduleConfig(type=ScheduleType.CRON, value="*/30 * * * *").value == "*/30 * * * *"
    with pytest.raises(ValueError):
        ScheduleConfig(type=ScheduleType.CRON, value=30)
    with pytest.raises(ValueError):
        ScheduleConfig(type=ScheduleType.INTERVAL, value="fast")


def test_mongodb_store_requires_uri(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("MONGODB_URI", raising=False)
    with pytest.raises(ValidationError):
        StoreConfig(backend="mongodb")

    monkeypatch.setenv("MONGODB_URI", "mongodb://db.example:27017")
    assert StoreConfig(backend="mongodb").uri == "mongodb://db.example:27017"
    assert StoreConfig(backend="mongodb", uri="mongodb://explicit").uri == "mongodb://explicit"


def test_global_config_validation_and_paths(tmp_path: Path) -> None:
    with pytest.raises(ValidationError):
        GlobalConfig(max_workers=0)
    config = GlobalConfig(publishers_file="registry/publishers.json")
    assert config.publishers_file == Path("registry/publishers.json")
    assert GlobalConfig.resolve_path(config.publishers_file, tmp_path) == (
        tmp_path / "registry" / "publishers.json"
    ).resolve()
    absolute = tmp_path / "elsewhere.yaml"
    assert GlobalConfig.resolve_path(absolute, Path("/unused")) == absolute
