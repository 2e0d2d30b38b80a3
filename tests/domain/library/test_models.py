"""Tests for library models."""

from tunewave.domain.library.models import AlbumRef, Artist, Track, VideoRef

SPOTIFY_TRACK = {
    "id": "4uLU6hMCjMI75M1A2tKUQC",
    "name": " Never Gonna Give You Up ",
    "duration_ms": 213573,
    "uri": "spotify:track:4uLU6hMCjMI75M1A2tKUQC",
    "artists": [
        {"id": "0gxyHStUsqpMadRV0Di1Qt", "name": "Rick Astley"},
        {"id": "x", "name": "Guest"},
    ],
    "album": {
        "id": "6XhjNHCyCDyyGJRM5mg40G",
        "name": "Whenever You Need Somebody",
        "images": [{"url": "https://i.scdn.co/image/large"}, {"url": "small"}],
    },
}


class TestTrackFromSpotify:
    """Tests for Track.from_spotify()."""

    def test_normalizes_fields(self) -> None:
        track = Track.from_spotify(SPOTIFY_TRACK)

        assert track.id == "4uLU6hMCjMI75M1A2tKUQC"
        assert track.title == "Never Gonna Give You Up"
        assert track.primary_artist == Artist(id="0gxyHStUsqpMadRV0Di1Qt", name="Rick Astley")
        assert track.artist_names == "Rick Astley, Guest"
        assert track.album.image_url == "https://i.scdn.co/image/large"
        assert track.duration_seconds == 213.573

    def test_missing_album_and_duration(self) -> None:
        """Simplified track objects have no album and may lack duration."""
        track = Track.from_spotify({"id": "t1", "name": "Song", "artists": []})

        assert track.album is None
        assert track.duration_ms == 0
        assert track.primary_artist is None
        assert track.artist_names == ""


class TestTrackDict:
    """Tests for to_dict()/from_dict()."""

    def test_restores_equal_track(self) -> None:
        track = Track(
            id="t1",
            title="Song",
            artists=(Artist(id="a1", name="Band"),),
            album=AlbumRef(id="al1", name="Record", image_url="http://img"),
            duration_ms=1000,
            uri="spotify:track:t1",
        )
        assert Track.from_dict(track.to_dict()) == track

    def test_negative_duration_clamped(self) -> None:
        track = Track.from_dict({"id": "t1", "title": "Song", "duration_ms": -5})
        assert track.duration_ms == 0

    def test_numeric_id_coerced(self) -> None:
        assert Track.from_dict({"id": 42}).id == "42"


def test_video_watch_url() -> None:
    video = VideoRef(video_id="dQw4w9WgXcQ")
    assert video.watch_url == "https://www.youtube.com/watch?v=dQw4w9WgXcQ"
