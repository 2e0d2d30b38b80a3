"""Tests for PlaybackSession state helpers."""

from tunewave.domain.playback.session import (
    RECENTLY_PLAYED_LIMIT,
    PlaybackSession,
    PlayState,
    push_recently_played,
)


def test_defaults() -> None:
    session = PlaybackSession()
    assert session.play_state == PlayState.IDLE
    assert session.volume == 70
    assert session.continuous_playback is True
    assert session.backing is None


def test_progress_clamped_to_duration() -> None:
    session = PlaybackSession()
    session.reset_position(200)
    session.set_progress(250)
    assert session.progress_seconds == 200
    session.set_progress(-3)
    assert session.progress_seconds == 0


def test_progress_unbounded_without_duration() -> None:
    session = PlaybackSession()
    session.set_progress(42)
    assert session.progress_seconds == 42


class TestRecentlyPlayed:
    """Tests for push_recently_played()."""

    def test_moves_replayed_track_to_front(self, make_track) -> None:
        recent = [make_track("a"), make_track("b"), make_track("c")]
        result = push_recently_played(recent, make_track("c"))
        assert [t.id for t in result] == ["c", "a", "b"]

    def test_bounded(self, make_track) -> None:
        recent = []
        for i in range(RECENTLY_PLAYED_LIMIT + 5):
            recent = push_recently_played(recent, make_track(f"t{i}"))
        assert len(recent) == RECENTLY_PLAYED_LIMIT
        assert recent[0].id == f"t{RECENTLY_PLAYED_LIMIT + 4}"


def test_snapshot_is_json_ready(make_track) -> None:
    track = make_track("a")
    session = PlaybackSession(current_track=track, queue=[make_track("b")])
    session.liked_songs[track.id] = track

    snapshot = session.snapshot()

    assert snapshot["current_track"]["id"] == "a"
    assert snapshot["play_state"] == "idle"
    assert [t["id"] for t in snapshot["queue"]] == ["b"]
    assert snapshot["liked_track_ids"] == ["a"]
    assert snapshot["current_video"] is None
