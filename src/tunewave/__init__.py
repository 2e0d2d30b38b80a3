"""tunewave - playback session coordinator for Spotify catalog tracks played through YouTube."""

__version__ = "0.1.0"
