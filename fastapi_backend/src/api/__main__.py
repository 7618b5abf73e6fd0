"""Command-line entry point that serves the API with uvicorn."""
from __future__ import annotations

import argparse
import logging
import os
from typing import Sequence

logger = logging.getLogger("tierdemo.main")

DEFAULT_PORT = 3000


def _parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Multi-tier demo backend API")
    parser.add_argument("--host", default="0.0.0.0", help="Bind address for the API")
    parser.add_argument(
        "--port",
        type=int,
        default=DEFAULT_PORT,
        help=f"Port for the HTTP API (default: {DEFAULT_PORT})",
    )
    parser.add_argument(
        "--log-level",
        default=os.getenv("LOG_LEVEL", "INFO"),
        help="Logging level (default: LOG_LEVEL or INFO)",
    )
    parser.add_argument(
        "--skip-bootstrap",
        action="store_true",
        help="Do not create the schema or seed data on startup",
    )
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> None:
    args = _parse_args(argv)
    logging.basicConfig(level=args.log_level.upper(), format="%(asctime)s [%(levelname)s] %(message)s")

    import uvicorn

    from src.api.main import create_app

    app = create_app(run_bootstrap=not args.skip_bootstrap)
    logger.info("Backend API listening on %s:%d", args.host, args.port)
    # Startup failures (bootstrap or bind) make uvicorn exit non-zero.
    uvicorn.run(app, host=args.host, port=args.port, log_level=args.log_level.lower())


if __name__ == "__main__":  # pragma: no cover
    main()
