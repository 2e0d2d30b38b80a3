"""Exceptions shared across tunewave layers."""


class TunewaveError(Exception):
    """Base exception for tunewave errors."""

    pass


class CatalogError(TunewaveError):
    """Raised when the Spotify catalog cannot be queried."""

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)


class EngineUnavailableError(TunewaveError):
    """Raised when the remote player cannot be started or never becomes ready."""

    pass

