"""Tests for PreferenceStore."""

from tunewave.core.storage import MemoryStore
from tunewave.domain.playback.preferences import (
    LIKED_SONGS_KEY,
    RECENTLY_PLAYED_KEY,
    PreferenceStore,
)
from tunewave.domain.playback.session import RECENTLY_PLAYED_LIMIT


def test_liked_round_trip(store, make_track) -> None:
    prefs = PreferenceStore(store)
    liked = {"a": make_track("a"), "b": make_track("b")}

    assert prefs.save_liked(liked) is True
    assert prefs.load_liked() == liked


def test_missing_values_are_empty(store) -> None:
    prefs = PreferenceStore(store)
    assert prefs.load_liked() == {}
    assert prefs.load_recent() == []


def test_malformed_entries_skipped(store, make_track) -> None:
    store.save(LIKED_SONGS_KEY, [make_track("a").to_dict(), {"title": "no id"}, "junk"])
    store.save(RECENTLY_PLAYED_KEY, {"not": "a list"})
    prefs = PreferenceStore(store)

    assert list(prefs.load_liked()) == ["a"]
    assert prefs.load_recent() == []


def test_recent_deduplicated_and_bounded(store, make_track) -> None:
    tracks = [make_track("a"), make_track("a")] + [
        make_track(f"t{i}") for i in range(RECENTLY_PLAYED_LIMIT + 2)
    ]
    store.save(RECENTLY_PLAYED_KEY, [t.to_dict() for t in tracks])

    recent = PreferenceStore(store).load_recent()

    assert len(recent) == RECENTLY_PLAYED_LIMIT
    assert [t.id for t in recent[:2]] == ["a", "t0"]


def test_identity_scopes_data(make_track) -> None:
    prefs = PreferenceStore(MemoryStore())
    prefs.save_liked({"a": make_track("a")})

    prefs.set_identity("user-7")
    assert prefs.scope == "user:user-7"
    assert prefs.load_liked() == {}
    prefs.save_liked({"b": make_track("b")})

    prefs.set_identity(None)
    assert prefs.scope == "local"
    assert list(prefs.load_liked()) == ["a"]


def test_failed_save_reported(make_track) -> None:
    class BrokenStore(MemoryStore):
        def save(self, key, value):
            return False

    prefs = PreferenceStore(BrokenStore())
    assert prefs.save_recent([make_track("a")]) is False
