"""
Dashboard package: waits for the backend and shows the database status and users.

Modules:
- poller: retry state machine and the httpx fetcher
"""
from src.dashboard.poller import FetchError, HttpFetcher, PollSnapshot, PollState, StatusPoller

__all__ = ["FetchError", "HttpFetcher", "PollSnapshot", "PollState", "StatusPoller"]
