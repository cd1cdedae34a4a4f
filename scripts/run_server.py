#!/usr/bin/env python
"""Run the Make It Heavy HTTP server.

Usage:
    python scripts/run_server.py [--mode dev|prod] [--host HOST] [--port PORT]
"""

import argparse
import os
from pathlib import Path

import uvicorn

from heavy.utils.config import init_config

project_root = Path(__file__).parent.parent


def main() -> None:
    """Run the server with the specified configuration."""
    parser = argparse.ArgumentParser(
        description="Run the Make It Heavy API server",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    python scripts/run_server.py                    # Development mode
    python scripts/run_server.py --mode prod        # Production mode
    python scripts/run_server.py --port 8080        # Custom port
        """,
    )
    parser.add_argument(
        "--mode",
        choices=["dev", "prod"],
        default="dev",
        help="Server mode: dev (with reload) or prod (with workers)",
    )
    parser.add_argument("--host", type=str, default=None, help="Host to bind to")
    parser.add_argument("--port", type=int, default=None, help="Port to bind to")
    parser.add_argument(
        "--workers",
        type=int,
        default=1,
        help="Worker processes (prod mode only). Runs are tracked in memory per worker.",
    )
    parser.add_argument(
        "--log-level",
        choices=["debug", "info", "warning", "error"],
        default=None,
        help="Log level (default: info for dev, warning for prod)",
    )
    parser.add_argument("--config", type=str, default=None, help="Path to YAML configuration file")
    parser.add_argument("--env-file", type=str, default=None, help="Path to .env file")

    args = parser.parse_args()

    config_path = args.config
    if config_path is None:
        default_config = project_root / "configs" / "app.yaml"
        if default_config.exists():
            config_path = str(default_config)

    config = init_config(yaml_path=config_path, env_file=args.env_file)

    host = args.host or config.app.host
    port = args.port or config.app.port

    # The app re-reads its configuration on import
    if args.host:
        os.environ["APP_HOST"] = args.host
    if args.port:
        os.environ["APP_PORT"] = str(args.port)

    dev = args.mode == "dev"
    log_level = args.log_level or ("info" if dev else "warning")

    print(f"\n{'=' * 60}")
    print(f"  {config.app.name} - {'Development' if dev else 'Production'} Server")
    print(f"{'=' * 60}")
    print(f"  Host:      {host}")
    print(f"  Port:      {port}")
    print(f"  Model:     {config.llm.resolved_model}")
    print(f"  Log Level: {log_level}")
    print(f"{'=' * 60}\n")

    if dev:
        uvicorn.run(
            "heavy.main:app",
            host=host,
            port=port,
            reload=True,
            reload_dirs=[str(project_root / "heavy")],
            log_level=log_level,
        )
    else:
        uvicorn.run(
            "heavy.main:app",
            host=host,
            port=port,
            reload=False,
            workers=args.workers,
            log_level=log_level,
            access_log=False,
        )


if __name__ == "__main__":
    main()
