"""
Configuration management for tunewave
"""

import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional


@dataclass
class PlayerConfig:
    """Configuration for the playback coordinator and engines."""

    volume: int = 70
    continuous_playback: bool = True
    enable_remote: bool = True  # Use mpv for YouTube playback when available
    mpv_path: str = "mpv"
    mpv_socket_path: Optional[str] = None
    tick_interval: float = 1.0  # Seconds between progress ticks
    ready_timeout: float = 5.0  # Seconds to wait for the remote player
    max_auto_advance_failures: int = 10
    event_queue_size: int = 64

    def validate(self) -> None:
        """Validate player configuration values.

        Raises:
            ValueError: If configuration values are invalid
        """
        if not 0 <= self.volume <= 100:
            raise ValueError(f"Invalid volume {self.volume}: must be within 0-100")
        if self.tick_interval < 0:
            raise ValueError("tick_interval must not be negative")
        if self.max_auto_advance_failures < 1:
            raise ValueError("max_auto_advance_failures must be at least 1")
        if self.event_queue_size < 1:
            raise ValueError("event_queue_size must be at least 1")


@dataclass
class LookupConfig:
    """Configuration for catalog and video lookups."""

    timeout: float = 5.0  # Seconds before a lookup is treated as failed
    market: str = "US"
    max_video_results: int = 5


@dataclass
class SpotifyConfig:
    """Configuration for the Spotify catalog (client credentials flow)."""

    client_id: str = ""
    client_secret: str = ""


@dataclass
class YouTubeConfig:
    """Configuration for YouTube video search."""

    api_key: str = ""  # Empty: search through yt-dlp instead of the Data API


@dataclass
class StorageConfig:
    """Configuration for liked songs / recently played persistence."""

    database_path: Optional[str] = None  # Default: <data dir>/tunewave.db


@dataclass
class LoggingConfig:
    """Configuration for logging."""

    level: str = "INFO"  # DEBUG, INFO, WARNING, ERROR, CRITICAL
    log_file: Optional[str] = (
        None  # Custom log file path (default: ~/.local/share/tunewave/tunewave.log)
    )
    max_file_size_mb: int = 10  # Maximum log file size before rotation
    backup_count: int = 5  # Number of backup files to keep
    console_output: bool = False  # Also output to console (for debugging)


@dataclass
class WebConfig:
    """Configuration for the web control API."""

    host: str = "127.0.0.1"
    port: int = 8642
    allowed_origins: List[str] = field(
        default_factory=lambda: ["http://localhost:5173"]
    )


@dataclass
class Config:
    """Main configuration object."""

    player: PlayerConfig = field(default_factory=PlayerConfig)
    lookup: LookupConfig = field(default_factory=LookupConfig)
    spotify: SpotifyConfig = field(default_factory=SpotifyConfig)
    youtube: YouTubeConfig = field(default_factory=YouTubeConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    web: WebConfig = field(default_factory=WebConfig)


def get_config_dir() -> Path:
    """Get the configuration directory path."""
    config_home = os.environ.get("XDG_CONFIG_HOME")
    if config_home:
        return Path(config_home) / "tunewave"
    return Path.home() / ".config" / "tunewave"


def _find_project_config() -> Optional[Path]:
    """Find config.toml in project root by looking for pyproject.toml.

    Used during development so the project's config file is picked up
    regardless of the working directory.

    Returns:
        Path to config.toml in project root, or None if not found
    """
    current = Path(__file__).resolve().parent
    for parent in [current] + list(current.parents):
        if (parent / "pyproject.toml").exists():
            config_path = parent / "config.toml"
            if config_path.exists():
                return config_path
            return None
    return None


def get_config_path() -> Path:
    """Get the main configuration file path.

    Checks for config.toml in the following order:
    1. Project root (detected via pyproject.toml) - for development
    2. Current working directory
    3. XDG_CONFIG_HOME/tunewave (or ~/.config/tunewave)
    """
    project_config = _find_project_config()
    if project_config:
        return project_config

    local_config = Path.cwd() / "config.toml"
    if local_config.exists():
        return local_config

    return get_config_dir() / "config.toml"


def get_data_dir() -> Path:
    """Get the data directory path."""
    data_home = os.environ.get("XDG_DATA_HOME")
    if data_home:
        return Path(data_home) / "tunewave"
    return Path.home() / ".local" / "share" / "tunewave"


def get_database_path(config: Config) -> Path:
    """Resolve the preference database location."""
    if config.storage.database_path:
        return Path(config.storage.database_path).expanduser()
    return get_data_dir() / "tunewave.db"


def create_default_config() -> str:
    """Create a default configuration TOML content."""
    return """
# tunewave configuration

[player]
# Default volume (0-100)
volume = 70

# Play related tracks when the queue runs out
continuous_playback = true

# Play YouTube videos through mpv; false always simulates playback
enable_remote = true

# mpv executable and IPC socket (auto-generated if not specified)
mpv_path = "mpv"
# mpv_socket_path = "/tmp/tunewave-mpv.sock"

# Seconds between progress updates
tick_interval = 1.0

# Seconds to wait for mpv before falling back to simulated playback
ready_timeout = 5.0

# Consecutive failed tracks before giving up and going idle
max_auto_advance_failures = 10

# Capacity of the player event channel
event_queue_size = 64

[lookup]
# Seconds before a catalog/video lookup is treated as failed
timeout = 5.0

# Spotify market for top tracks and recommendations
market = "US"

# Number of YouTube results to request per search
max_video_results = 5

[spotify]
# Spotify app credentials (https://developer.spotify.com/dashboard)
# client_id = "your-client-id-here"
# client_secret = "your-client-secret-here"

[youtube]
# YouTube Data API key; leave unset to search through yt-dlp
# api_key = "your-api-key-here"

[storage]
# Liked songs and recently played database
# database_path = "~/.local/share/tunewave/tunewave.db"

[logging]
# Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
level = "INFO"

# Custom log file path (default: ~/.local/share/tunewave/tunewave.log)
# log_file = "/path/to/custom/tunewave.log"

# Maximum log file size in MB before rotation
max_file_size_mb = 10

# Number of backup log files to keep
backup_count = 5

# Also output logs to console (useful for debugging)
console_output = false

[web]
host = "127.0.0.1"
port = 8642
allowed_origins = ["http://localhost:5173"]
""".strip()


def parse_config(toml_data: dict) -> Config:
    """Build a Config from parsed TOML data, keeping defaults for missing keys."""
    config = Config()

    if "player" in toml_data:
        player_data = toml_data["player"]
        config.player = PlayerConfig(
            volume=player_data.get("volume", config.player.volume),
            continuous_playback=player_data.get(
                "continuous_playback", config.player.continuous_playback
            ),
            enable_remote=player_data.get(
                "enable_remote", config.player.enable_remote
            ),
            mpv_path=player_data.get("mpv_path", config.player.mpv_path),
            mpv_socket_path=player_data.get("mpv_socket_path"),
            tick_interval=float(
                player_data.get("tick_interval", config.player.tick_interval)
            ),
            ready_timeout=float(
                player_data.get("ready_timeout", config.player.ready_timeout)
            ),
            max_auto_advance_failures=player_data.get(
                "max_auto_advance_failures", config.player.max_auto_advance_failures
            ),
            event_queue_size=player_data.get(
                "event_queue_size", config.player.event_queue_size
            ),
        )
        try:
            config.player.validate()
        except ValueError as e:
            print(f"Warning: Invalid player configuration: {e}")
            print("Using default player configuration.")
            config.player = PlayerConfig()

    if "lookup" in toml_data:
        lookup_data = toml_data["lookup"]
        config.lookup = LookupConfig(
            timeout=float(lookup_data.get("timeout", config.lookup.timeout)),
            market=lookup_data.get("market", config.lookup.market),
            max_video_results=lookup_data.get(
                "max_video_results", config.lookup.max_video_results
            ),
        )

    if "spotify" in toml_data:
        spotify_data = toml_data["spotify"]
        config.spotify = SpotifyConfig(
            client_id=spotify_data.get("client_id", config.spotify.client_id),
            client_secret=spotify_data.get(
                "client_secret", config.spotify.client_secret
            ),
        )

    if "youtube" in toml_data:
        config.youtube = YouTubeConfig(
            api_key=toml_data["youtube"].get("api_key", config.youtube.api_key)
        )

    if "storage" in toml_data:
        database_path = toml_data["storage"].get("database_path")
        if database_path:
            database_path = str(Path(database_path).expanduser())
        config.storage = StorageConfig(database_path=database_path)

    if "logging" in toml_data:
        logging_data = toml_data["logging"]
        log_file = logging_data.get("log_file")
        if log_file:
            log_file = str(Path(log_file).expanduser())
        config.logging = LoggingConfig(
            level=logging_data.get("level", config.logging.level).upper(),
            log_file=log_file,
            max_file_size_mb=logging_data.get(
                "max_file_size_mb", config.logging.max_file_size_mb
            ),
            backup_count=logging_data.get(
                "backup_count", config.logging.backup_count
            ),
            console_output=logging_data.get(
                "console_output", config.logging.console_output
            ),
        )

    if "web" in toml_data:
        web_data = toml_data["web"]
        config.web = WebConfig(
            host=web_data.get("host", config.web.host),
            port=web_data.get("port", config.web.port),
            allowed_origins=web_data.get(
                "allowed_origins", config.web.allowed_origins
            ),
        )

    return config


def apply_env_overrides(config: Config) -> Config:
    """Override credentials with environment variables if present."""
    spotify_client_id = os.environ.get("SPOTIFY_CLIENT_ID")
    spotify_client_secret = os.environ.get("SPOTIFY_CLIENT_SECRET")
    youtube_api_key = os.environ.get("YOUTUBE_API_KEY")

    if spotify_client_id:
        config.spotify.client_id = spotify_client_id
    if spotify_client_secret:
        config.spotify.client_secret = spotify_client_secret
    if youtube_api_key:
        config.youtube.api_key = youtube_api_key

    return config


def load_config() -> Config:
    """Load configuration from file or create default.

    Environment variables override TOML values:
    - SPOTIFY_CLIENT_ID
    - SPOTIFY_CLIENT_SECRET
    - YOUTUBE_API_KEY
    """
    from dotenv import load_dotenv

    env_path = get_config_dir() / ".env"
    if env_path.exists():
        load_dotenv(env_path)

    config_path = get_config_path()

    if not config_path.exists():
        config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(config_path, "w", encoding="utf-8") as f:
            f.write(create_default_config())
        print(f"Created default configuration at: {config_path}")
        return apply_env_overrides(Config())

    try:
        with open(config_path, "rb") as f:
            toml_data = tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as e:
        print(f"Error loading configuration from {config_path}: {e}")
        print("Using default configuration.")
        return apply_env_overrides(Config())

    return apply_env_overrides(parse_config(toml_data))


def ensure_directories() -> None:
    """Ensure all necessary directories exist."""
    get_config_dir().mkdir(parents=True, exist_ok=True)
    get_data_dir().mkdir(parents=True, exist_ok=True)
