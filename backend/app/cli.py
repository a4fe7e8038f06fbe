#!/usr/bin/env python3
"""
CodeSync - Server Launcher

Usage:
    codesync                        # Serve on SERVER_HOST:SERVER_PORT
    codesync --port 8080            # Override the port
    codesync --reload               # Auto-reload on code changes (development)
"""

import argparse
from typing import List, Optional

from app.core.config import settings


def create_parser() -> argparse.ArgumentParser:
    """Create argument parser for the launcher"""
    parser = argparse.ArgumentParser(
        prog="codesync",
        description="CodeSync - realtime backend for a collaborative code editor",
    )
    parser.add_argument(
        "--host",
        default=settings.SERVER_HOST,
        help=f"Interface to bind (default: {settings.SERVER_HOST})",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=settings.SERVER_PORT,
        help=f"Port to listen on (default: {settings.SERVER_PORT})",
    )
    parser.add_argument(
        "--reload",
        action="store_true",
        default=False,
        help="Restart the server when source files change",
    )
    parser.add_argument(
        "--log-level",
        default=settings.LOG_LEVEL.lower(),
        choices=["critical", "error", "warning", "info", "debug"],
        help="uvicorn log level",
    )
    return parser


def main(argv: Optional[List[str]] = None):
    """Main entry point"""
    args = create_parser().parse_args(argv)

    import uvicorn
    uvicorn.run(
        "app.main:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level=args.log_level,
    )


if __name__ == "__main__":
    main()
