"""Tests for the SQLite settings store."""
from job_feed_notifier.constants import ALL_CATEGORIES_VALUE
from job_feed_notifier.db import SettingsStore, parse_categories


def _store(tmp_path):
    return SettingsStore(str(tmp_path / "data" / "settings.sqlite"))


def test_ensure_is_idempotent(tmp_path):
    """ensure creates one row with defaults and never overwrites it."""
    store = _store(tmp_path)

    store.ensure(42)
    store.set_watermark(42, "https://djinni.co/jobs/1")
    store.ensure(42)

    recipient = store.get(42)
    assert recipient.chat_id == "42"
    assert recipient.is_active is True
    assert recipient.categories == []
    assert recipient.exp_levels == []
    assert recipient.last_job_link == "https://djinni.co/jobs/1"
    assert recipient.created_at
    assert recipient.updated_at


def test_get_unknown_chat_returns_none(tmp_path):
    assert _store(tmp_path).get("missing") is None


def test_save_category_filters_normalizes(tmp_path):
    """Categories are trimmed, deduplicated and ordered by catalogue."""
    store = _store(tmp_path)

    store.save_category_filters("1", [" Python", "Java", "Python"])

    assert store.get("1").categories == ["Java", "Python"]


def test_all_sentinel_swallows_other_categories(tmp_path):
    store = _store(tmp_path)

    store.save_category_filters("1", ["Python", ALL_CATEGORIES_VALUE])

    assert store.get("1").categories == [ALL_CATEGORIES_VALUE]


def test_empty_category_selection_unconfigures(tmp_path):
    """Clearing categories removes the chat from scheduled polling."""
    store = _store(tmp_path)
    store.save_category_filters("1", ["Python"])

    store.save_category_filters("1", [])

    assert store.get("1").is_configured is False
    assert store.list_configured() == []


def test_list_configured_requires_active_and_categories(tmp_path):
    """Only active chats with a category are polled."""
    store = _store(tmp_path)
    store.ensure("unconfigured")
    store.save_category_filters("configured", ["Python"])
    store.save_category_filters("paused", ["Java"])
    store.set_active("paused", False)

    chat_ids = [recipient.chat_id for recipient in store.list_configured()]

    assert chat_ids == ["configured"]


def test_exp_filters_round_trip_in_provider_order(tmp_path):
    store = _store(tmp_path)

    store.save_exp_filters("1", ["5y", "no_exp"])

    assert store.get("1").exp_levels == ["no_exp", "5y"]


def test_set_watermark_can_clear(tmp_path):
    store = _store(tmp_path)
    store.ensure("1")
    store.set_watermark("1", "https://djinni.co/jobs/1")

    store.set_watermark("1", None)

    assert store.get("1").last_job_link is None


def test_legacy_category_values_are_read():
    """Older rows stored a single bare category or a JSON string."""
    assert parse_categories("Python") == ["Python"]
    assert parse_categories('"Java"') == ["Java"]
    assert parse_categories('["Python", "Java"]') == ["Java", "Python"]
    assert parse_categories(None) == []
