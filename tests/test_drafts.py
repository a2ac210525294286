"""Tests for in-memory filter drafts."""
from job_feed_notifier.drafts import DraftStore


def test_draft_is_seeded_once():
    """The seed is read on first touch only; later edits stick."""
    drafts = DraftStore()
    calls = []

    def seed():
        calls.append(1)
        return ["Python"]

    draft = drafts.get(1, seed)
    draft.add("Java")

    assert drafts.get("1", seed) == {"Python", "Java"}
    assert len(calls) == 1


def test_open_replaces_existing_draft():
    drafts = DraftStore()
    drafts.get("1", lambda: ["Python"]).add("Java")

    assert drafts.open("1", ["Ruby"]) == {"Ruby"}
    assert drafts.get("1", lambda: ["unused"]) == {"Ruby"}


def test_pop_removes_draft():
    drafts = DraftStore()
    drafts.open("1", ["Python"])

    assert drafts.pop("1") == {"Python"}
    assert "1" not in drafts
    assert drafts.pop("1") is None


def test_least_recently_touched_draft_is_evicted():
    """Touching a draft protects it from eviction."""
    drafts = DraftStore(max_drafts=2)
    drafts.open("a", [])
    drafts.open("b", [])
    drafts.get("a", lambda: [])

    drafts.open("c", [])

    assert len(drafts) == 2
    assert "a" in drafts
    assert "b" not in drafts
    assert "c" in drafts
