"""Bounded fetch-and-retry loop used by the dashboard to wait for the backend."""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

import httpx

logger = logging.getLogger("tierdemo.dashboard")

MAX_RETRIES = 5
RETRY_DELAY_SECONDS = 2.0


class FetchError(Exception):
    """Raised by a fetcher when the backend did not answer usefully."""


class PollState(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    SUCCESS = "success"
    ERROR = "error"


@dataclass(frozen=True)
class PollSnapshot:
    """What the dashboard renders at a given moment."""

    state: PollState = PollState.IDLE
    attempt: int = 0
    db_status: Optional[Dict[str, Any]] = None
    users: List[Dict[str, Any]] = field(default_factory=list)
    error: Optional[str] = None


class HttpFetcher:
    """Fetches the connectivity payload and the users list over HTTP."""

    def __init__(self, base_url: str, timeout: float = 5.0, client: Optional[httpx.Client] = None) -> None:
        self._client = client or httpx.Client(base_url=base_url, timeout=timeout)

    def _get_json(self, path: str) -> Any:
        try:
            response = self._client.get(path)
        except httpx.HTTPError as exc:
            raise FetchError(str(exc) or exc.__class__.__name__) from exc
        if not response.is_success:
            raise FetchError("Backend not ready")
        try:
            return response.json()
        except ValueError as exc:
            raise FetchError(f"Invalid JSON from {path}") from exc

    def fetch_db_status(self) -> Dict[str, Any]:
        return self._get_json("/api/test-db")

    def fetch_users(self) -> List[Dict[str, Any]]:
        return self._get_json("/api/users")

    def close(self) -> None:
        self._client.close()


class StatusPoller:
    """Explicit retry state machine: idle -> loading(attempt) -> success | error.

    The first try is attempt 0. After a failure the poller sleeps
    ``retry_delay`` and tries again until attempt ``max_retries`` has failed,
    then settles in ``error``. :meth:`retry` restarts from attempt 0 and
    :meth:`cancel` stops any further attempts from being scheduled.
    """

    def __init__(
        self,
        fetcher: Any,
        sleep: Callable[[float], None] = time.sleep,
        max_retries: int = MAX_RETRIES,
        retry_delay: float = RETRY_DELAY_SECONDS,
    ) -> None:
        self._fetcher = fetcher
        self._sleep = sleep
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self._snapshot = PollSnapshot()
        self._listeners: List[Callable[[PollSnapshot], None]] = []
        self._cancelled = False

    @property
    def snapshot(self) -> PollSnapshot:
        return self._snapshot

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def subscribe(self, listener: Callable[[PollSnapshot], None]) -> None:
        self._listeners.append(listener)

    def _transition(self, **changes: Any) -> None:
        self._snapshot = replace(self._snapshot, **changes)
        for listener in self._listeners:
            listener(self._snapshot)

    def cancel(self) -> None:
        """Stop scheduling attempts; the running sequence settles in idle."""
        self._cancelled = True

    def run(self) -> PollSnapshot:
        """Fetch until success or until the retry budget is spent."""
        if self._snapshot.state is PollState.LOADING and not self._cancelled:
            raise RuntimeError("a poll sequence is already running")
        self._cancelled = False
        attempt = 0
        while not self._cancelled:
            self._transition(state=PollState.LOADING, attempt=attempt, error=None)
            try:
                db_status = self._fetcher.fetch_db_status()
                users = self._fetcher.fetch_users()
            except FetchError as exc:
                if attempt >= self.max_retries:
                    logger.error("Giving up after %d retries: %s", self.max_retries, exc)
                    self._transition(state=PollState.ERROR, error=str(exc))
                    break
                logger.info("Retry %d/%d in %.1fs...", attempt + 1, self.max_retries, self.retry_delay)
                self._sleep(self.retry_delay)
                attempt += 1
                continue
            self._transition(state=PollState.SUCCESS, attempt=0, db_status=db_status, users=list(users))
            break
        if self._cancelled and self._snapshot.state is PollState.LOADING:
            self._transition(state=PollState.IDLE, attempt=0)
        return self._snapshot

    def retry(self) -> PollSnapshot:
        """Manual retry from attempt 0; refused while a sequence is still running."""
        if self._snapshot.state not in (PollState.ERROR, PollState.IDLE):
            raise RuntimeError(f"retry is only available while idle or after an error (state={self._snapshot.state.value})")
        return self.run()
