"""Text dashboard: poll the backend and print the database status and users."""
from __future__ import annotations

import argparse
import logging
import os
import sys
from typing import Optional, Sequence, TextIO

from src.dashboard.poller import MAX_RETRIES, RETRY_DELAY_SECONDS, HttpFetcher, PollSnapshot, PollState, StatusPoller

RETRY_PROMPT = "Press Enter to retry, Ctrl-C to quit: "


def _parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Multi-tier demo status dashboard")
    parser.add_argument(
        "--base-url",
        default=os.getenv("BACKEND_URL", "http://localhost:3000"),
        help="Backend base URL (default: BACKEND_URL or http://localhost:3000)",
    )
    parser.add_argument("--retries", type=int, default=MAX_RETRIES, help="Retries before giving up")
    parser.add_argument("--delay", type=float, default=RETRY_DELAY_SECONDS, help="Seconds between attempts")
    parser.add_argument("--timeout", type=float, default=5.0, help="Per-request timeout in seconds")
    parser.add_argument(
        "--no-prompt",
        action="store_true",
        help="Exit on error instead of offering a manual retry",
    )
    return parser.parse_args(argv)


def render(snapshot: PollSnapshot, max_retries: int, out: Optional[TextIO] = None) -> None:
    if out is None:
        out = sys.stdout
    if snapshot.state is PollState.LOADING:
        if snapshot.attempt > 0:
            print(f"Connecting... (Retry {snapshot.attempt}/{max_retries})", file=out)
        else:
            print("Connecting...", file=out)
    elif snapshot.state is PollState.ERROR:
        print(f"Error: {snapshot.error}", file=out)
    elif snapshot.state is PollState.SUCCESS:
        status = snapshot.db_status or {}
        print(f"{status.get('message', '')} ({status.get('timestamp', '')})", file=out)
        print(f"Users ({len(snapshot.users)}):", file=out)
        for user in snapshot.users:
            print(f"  #{user.get('id')} {user.get('name')}  created {user.get('created_at')}", file=out)


def main(argv: Sequence[str] | None = None) -> int:
    args = _parse_args(argv)
    logging.basicConfig(level=os.getenv("LOG_LEVEL", "WARNING"), format="%(asctime)s [%(levelname)s] %(message)s")

    fetcher = HttpFetcher(args.base_url, timeout=args.timeout)
    poller = StatusPoller(fetcher, max_retries=args.retries, retry_delay=args.delay)
    poller.subscribe(lambda snapshot: render(snapshot, args.retries))
    try:
        result = poller.run()
        while result.state is PollState.ERROR and not args.no_prompt:
            try:
                input(RETRY_PROMPT)
            except EOFError:
                break
            result = poller.retry()
    except KeyboardInterrupt:
        poller.cancel()
        return 130
    finally:
        fetcher.close()
    return 0 if result.state is PollState.SUCCESS else 1


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
