"""
Logging setup using Loguru.

Modules log through ``from loguru import logger``; this module only decides
where those records go.
"""

import sys
from pathlib import Path
from typing import Optional

from loguru import logger

from .config import LoggingConfig, get_data_dir


def get_log_file_path() -> Path:
    """Get the path to the default log file."""
    return get_data_dir() / "tunewave.log"


def setup_loguru(
    logging_config: Optional[LoggingConfig] = None,
    log_file: Optional[Path] = None,
) -> Path:
    """
    Configure loguru with a rotating file sink and optional console output.

    Args:
        logging_config: Logging section of the configuration (defaults apply if None)
        log_file: Explicit log file path, overriding the configured one

    Returns:
        Path of the log file in use
    """
    logging_config = logging_config or LoggingConfig()
    if log_file is None:
        log_file = (
            Path(logging_config.log_file)
            if logging_config.log_file
            else get_log_file_path()
        )
    log_file.parent.mkdir(parents=True, exist_ok=True)

    # Remove default handler
    logger.remove()

    logger.add(
        log_file,
        rotation=f"{logging_config.max_file_size_mb} MB",
        retention=logging_config.backup_count,
        level=logging_config.level,
        format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{line} | {message}",
        enqueue=False,  # Synchronous writes (thread-safe but blocking)
    )

    if logging_config.console_output:
        logger.add(
            sys.stderr,
            level=logging_config.level,
            format="{level}: {message}",
        )

    logger.info(f"Loguru initialized: {log_file} (level={logging_config.level})")
    return log_file
