from __future__ import annotations

from datetime import datetime, timedelta, timezone

from feed_ingest.engine import ChangeDetector, RefreshState, SQLiteRefreshState
from feed_ingest.engine.normalizer import MIN_TIMESTAMP
from feed_ingest.infra import SQLiteManager

BASE = datetime(2024, 1, 1, tzinfo=timezone.utc)


def test_first_refresh_everything_is_new(make_post) -> None:
    detector = ChangeDetector()
    posts = [make_post("b", BASE + timedelta(hours=1)), make_post("a", BASE)]

    result = detector.detect_new("example", posts)

    assert result.is_new_content
    assert [post.id for post in result.new_posts] == ["b", "a"]
    assert result.previous == MIN_TIMESTAMP
    assert detector.state.get("example") == BASE + timedelta(hours=1)


def test_equal_timestamp_is_not_new(make_post) -> None:
    detector = ChangeDetector()
    posts = [make_post("a", BASE)]
    detector.detect_new("example", posts)

    again = detector.detect_new("example", [make_post("a-edited", BASE)])

    assert not again.is_new_content
    assert again.new_posts == []


def test_only_later_posts_are_reported(make_post) -> None:
    detector = ChangeDetector()
    detector.detect_new("example", [make_post("a", BASE)])

    posts = [
        make_post("c", BASE + timedelta(hours=2)),
        make_post("b", BASE + timedelta(hours=1)),
        make_post("a", BASE),
    ]
    result = detector.detect_new("example", posts)

    assert [post.id for post in result.new_posts] == ["c", "b"]
    assert result.previous == BASE


def test_latest_seen_never_decreases(make_post) -> None:
    detector = ChangeDetector()
    detector.detect_new("example", [make_post("b", BASE + timedelta(days=1))])

    result = detector.detect_new("example", [make_post("a", BASE)])

    assert not result.is_new_content
    assert detector.state.get("example") == BASE + timedelta(days=1)


def test_evaluate_is_pure_until_commit(make_post) -> None:
    detector = ChangeDetector()
    result = detector.evaluate("example", [make_post("a", BASE)])
    assert result.is_new_content
    assert detector.state.get("example") == MIN_TIMESTAMP

    assert detector.commit("example", result)
    assert detector.state.get("example") == BASE


def test_empty_post_list_changes_nothing() -> None:
    detector = ChangeDetector()
    result = detector.detect_new("example", [])
    assert not result.is_new_content
    assert result.latest is None
    assert detector.state.snapshot() == {}


def test_publishers_are_tracked_independently(make_post) -> None:
    state = RefreshState()
    detector = ChangeDetector(state)
    detector.detect_new("alpha", [make_post("a", BASE, publisher_id="alpha")])

    result = detector.detect_new("beta", [make_post("b", BASE, publisher_id="beta")])

    assert result.is_new_content
    assert state.snapshot() == {"alpha": BASE, "beta": BASE}


def test_sqlite_state_survives_restart(tmp_path, make_post) -> None:
    path = tmp_path / "state.db"
    manager = SQLiteManager()
    detector = ChangeDetector(SQLiteRefreshState(manager, path))
    detector.detect_new("example", [make_post("a", BASE + timedelta(microseconds=5))])
    manager.close_all()

    reloaded = SQLiteRefreshState(SQLiteManager(), path)

    assert reloaded.get("example") == BASE + timedelta(microseconds=5)
    result = ChangeDetector(reloaded).detect_new("example", [make_post("a", BASE + timedelta(microseconds=5))])
    assert not result.is_new_content
