"""HTTP control API for the playback session."""

from .app import build_coordinator, create_app

__all__ = ["create_app", "build_coordinator"]
