#!/usr/bin/env python3
"""
Article board API server.
"""

import argparse
import logging
import sys


def main() -> None:
    parser = argparse.ArgumentParser(description="Run the article board API server")
    parser.add_argument("--host", default="0.0.0.0", help="Bind address (default: 0.0.0.0)")
    parser.add_argument("--port", type=int, default=8080, help="Port (default: 8080)")
    parser.add_argument("--log-level", default="info", choices=["debug", "info", "warning", "error"])
    args = parser.parse_args()

    # Configure logging
    logging.basicConfig(
        level=getattr(logging, args.log_level.upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )

    # Keep the app import lazy so --help works without the server deps.
    import uvicorn

    uvicorn.run("board.api.server:app", host=args.host, port=args.port, log_level=args.log_level)


if __name__ == "__main__":
    main()
