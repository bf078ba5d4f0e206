#!/usr/bin/env python3
"""
Chanda Dashboard: launch the web UI.

Usage:
    python main.py                                  # http://localhost:8000
    python main.py --port 9000                      # http://localhost:9000
    python main.py --host 127.0.0.1                 # bind to localhost only
    python main.py --api-url https://chanda.example.org
    python main.py --reload                         # auto-reload on code changes
"""

from __future__ import annotations

import argparse
import os
import threading
import webbrowser

import uvicorn


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Launch the Chanda fundraising dashboard.",
    )
    parser.add_argument(
        "--host", default=os.getenv("APP_HOST", "127.0.0.1"),
        help="Bind address (default: 127.0.0.1 or APP_HOST env var)",
    )
    parser.add_argument(
        "--port", type=int, default=int(os.getenv("APP_PORT", "8000")),
        help="Port to listen on (default: 8000 or APP_PORT env var)",
    )
    parser.add_argument(
        "--api-url", default=None,
        help="Base URL of the Chanda REST backend (default: CHANDA_API_URL env var)",
    )
    parser.add_argument(
        "--reload", action="store_true",
        help="Enable auto-reload on file changes (development mode)",
    )
    parser.add_argument(
        "--no-browser", action="store_true",
        help="Don't open a browser window automatically",
    )
    args = parser.parse_args()

    # The app reads its settings from the environment at import time
    if args.api_url:
        os.environ["CHANDA_API_URL"] = args.api_url
    api_url = os.getenv("CHANDA_API_URL", "http://localhost:8080")

    url = f"http://{'localhost' if args.host == '0.0.0.0' else args.host}:{args.port}"
    print(f"Starting Chanda Dashboard at {url}")
    print(f"Backend: {api_url}")
    print()

    if not args.no_browser:
        # Open browser after a short delay to let the server start
        threading.Timer(1.5, webbrowser.open, args=(url,)).start()

    uvicorn.run(
        "chanda.app:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level="info",
    )


if __name__ == "__main__":
    main()
