"""
tunewave CLI - serve the playback API or write the default config.
"""

import argparse
import sys

from loguru import logger


def run_serve(host: str | None, port: int | None) -> int:
    """Run the web API with uvicorn until interrupted.

    Returns:
        Exit code (0 for success, 1 for failure)
    """
    import uvicorn

    from tunewave.core.config import ensure_directories, load_config
    from tunewave.core.output import setup_loguru
    from tunewave.web.app import create_app

    config = load_config()
    ensure_directories()
    log_file = setup_loguru(config.logging)
    print(f"Logging to {log_file}")

    host = host or config.web.host
    port = port or config.web.port
    logger.info(f"Serving tunewave API on {host}:{port}")

    try:
        uvicorn.run(create_app(config), host=host, port=port, log_config=None)
    except OSError as e:
        logger.error(f"Failed to start server: {e}")
        print(f"Failed to start server: {e}", file=sys.stderr)
        return 1
    return 0


def run_init_config(force: bool = False) -> int:
    """Write the default config file.

    Returns:
        Exit code (0 for success, 1 if the file exists and force is not set)
    """
    from tunewave.core.config import create_default_config, get_config_dir

    config_path = get_config_dir() / "config.toml"
    if config_path.exists() and not force:
        print(f"Config already exists: {config_path} (use --force to overwrite)", file=sys.stderr)
        return 1

    config_path.parent.mkdir(parents=True, exist_ok=True)
    config_path.write_text(create_default_config())
    print(f"Wrote default config to {config_path}")
    return 0


def main() -> None:
    """Main entry point for the tunewave command."""
    parser = argparse.ArgumentParser(
        description="tunewave - playback session coordinator",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    subparsers = parser.add_subparsers(dest="subcommand", help="Available commands")

    serve_parser = subparsers.add_parser("serve", help="Run the playback control API")
    serve_parser.add_argument("--host", help="Bind address (default from config)")
    serve_parser.add_argument("--port", type=int, help="Port (default from config)")

    init_parser = subparsers.add_parser("init-config", help="Write the default config file")
    init_parser.add_argument(
        "--force", action="store_true", help="Overwrite an existing config file"
    )

    args = parser.parse_args()

    if args.subcommand == "serve":
        sys.exit(run_serve(args.host, args.port))
    elif args.subcommand == "init-config":
        sys.exit(run_init_config(force=args.force))

    parser.print_help()
    sys.exit(1)


if __name__ == "__main__":
    main()
