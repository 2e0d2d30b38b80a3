"""Domain layer - playback coordination and the music catalog."""
