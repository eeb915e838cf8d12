#!/usr/bin/env python
"""
Run the Tripsplit API server.

Usage:
    python run_api.py
    python run_api.py --reload  # Development mode
    python run_api.py --log-level debug
"""

import argparse
import logging

import uvicorn

from shared.config import get_settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def main():
    parser = argparse.ArgumentParser(description="Run Tripsplit API server")
    parser.add_argument("--reload", action="store_true", help="Enable auto-reload")
    parser.add_argument("--host", type=str, help="Host to bind to")
    parser.add_argument("--port", type=int, help="Port to bind to")
    parser.add_argument(
        "--log-level",
        choices=["debug", "info", "warning", "error"],
        help="Log level (defaults to debug when DEBUG=true, else info)",
    )
    args = parser.parse_args()

    settings = get_settings()
    log_level = args.log_level or ("debug" if settings.debug else "info")
    logging.basicConfig(level=log_level.upper(), format=LOG_FORMAT)

    uvicorn.run(
        "api:app",
        host=args.host or settings.host,
        port=args.port or settings.port,
        reload=args.reload or settings.reload,
        log_level=log_level,
    )


if __name__ == "__main__":
    main()
