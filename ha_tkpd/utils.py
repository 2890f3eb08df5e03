"""Helper utilities.

This module centralises the error types shared by every stage of a sync
run, creating a configured HTTP session and the (opt-in) retry policy the
orchestrator applies around the product fetch.
"""

from __future__ import annotations

import logging
from typing import Optional

import requests
from tenacity import (Retrying, after_log, retry_if_exception,
                      stop_after_attempt, wait_exponential)


logger = logging.getLogger(__name__)

USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/134.0.0.0 Safari/537.36"
)


class SyncError(Exception):
    """Base class for failures that end a sync run."""

    exit_code = 1


class UsageError(SyncError):
    """Raised for bad command line input or configuration."""

    exit_code = 2


class InvalidURLError(UsageError):
    """Raised when a URL is not a Tokopedia product URL."""


class FetchError(SyncError):
    """Raised when product data cannot be fetched or understood."""

    exit_code = 3

    def __init__(self, message: str, *, status: Optional[int] = None, transient: bool = False) -> None:
        super().__init__(message)
        self.status = status
        self.transient = transient


class ConnectError(SyncError):
    """Raised when the MQTT broker is unreachable or refuses the session."""

    exit_code = 4


class PublishError(SyncError):
    """Raised when a publish is not acknowledged by the broker in time."""

    exit_code = 5


def get_http_session(verify_tls: bool = True) -> requests.Session:
    """Return a new HTTP session with sensible defaults.

    The session sets a realistic User-Agent header, since the product API
    rejects obvious bots. Caller is responsible for closing the session.
    """
    session = requests.Session()
    session.headers.update(
        {
            "User-Agent": USER_AGENT,
            "Accept": "*/*",
        }
    )
    session.verify = verify_tls
    return session


def _is_transient(exc: BaseException) -> bool:
    return isinstance(exc, FetchError) and exc.transient


def fetch_retrying(attempts: int) -> Retrying:
    """Build the retry policy for the product fetch.

    Only transient fetch failures (network errors, HTTP >= 500) are
    retried. ``attempts`` of 1 disables retrying; back-off is exponential
    between 1 and 10 seconds so cron invocations never hammer the site.
    """
    return Retrying(
        reraise=True,
        stop=stop_after_attempt(max(1, attempts)),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        retry=retry_if_exception(_is_transient),
        after=after_log(logger, logging.WARNING),
    )


__all__ = [
    "SyncError",
    "UsageError",
    "InvalidURLError",
    "FetchError",
    "ConnectError",
    "PublishError",
    "get_http_session",
    "fetch_retrying",
]
