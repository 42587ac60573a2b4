"""Shared HTTP plumbing for catalog adapters.

Every external call goes through HttpClient so that timeouts, retries and the
run-wide deadline are applied the same way for JSON APIs and scraped pages.
"""
from __future__ import annotations

import logging
import time
from typing import Any, Callable, Dict, Optional

import requests

from frame_orders.config import Settings
from frame_orders.errors import DeadlineExceeded, LookupTimeout, NetworkError

logger = logging.getLogger(__name__)

# Worth another attempt; anything else in 4xx is a bad request on our side
RETRY_STATUSES = {429, 500, 502, 503, 504}


class Deadline:
    """Wall-clock budget for one pipeline run."""

    def __init__(self, seconds: Optional[float], clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._expires = clock() + seconds if seconds is not None else None

    def remaining(self) -> Optional[float]:
        if self._expires is None:
            return None
        return max(0.0, self._expires - self._clock())

    @property
    def expired(self) -> bool:
        r = self.remaining()
        return r is not None and r <= 0

    def bound(self, timeout: float) -> float:
        """Per-request timeout clipped to what is left of the run."""
        r = self.remaining()
        if r is None:
            return timeout
        if r <= 0:
            raise DeadlineExceeded("pipeline deadline exceeded")
        return min(timeout, r)


class HttpClient:
    def __init__(
        self,
        settings: Settings,
        session: Optional[requests.Session] = None,
        deadline: Optional[Deadline] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.settings = settings
        self.session = session or requests.Session()
        self.session.headers.setdefault("User-Agent", settings.user_agent)
        self.deadline = deadline or Deadline(settings.deadline)
        self._sleep = sleep

    # -------- public calls --------
    def get_json(self, url: str, **kwargs: Any) -> Optional[Any]:
        r = self.request("GET", url, **kwargs)
        return None if r is None else _json(r, url)

    def post_json(self, url: str, payload: Dict[str, Any], **kwargs: Any) -> Optional[Any]:
        r = self.request("POST", url, json=payload, **kwargs)
        return None if r is None else _json(r, url)

    def get_text(self, url: str, **kwargs: Any) -> Optional[str]:
        r = self.request("GET", url, **kwargs)
        return None if r is None else r.text

    # -------- core --------
    def request(self, method: str, url: str, **kwargs: Any) -> Optional[requests.Response]:
        """Send with retries and linear backoff.

        Returns None on 404 (the source has no such record). Raises
        LookupTimeout / NetworkError once the retry budget is spent, and
        DeadlineExceeded as soon as the run's deadline has passed.
        """
        attempts = max(1, self.settings.retries)
        last_error: Exception

        # attempts >= 1, so the loop always returns or raises
        for attempt in range(1, attempts + 1):
            timeout = self.deadline.bound(self.settings.timeout)
            try:
                r = self.session.request(method, url, timeout=timeout, **kwargs)
            except requests.Timeout as exc:
                last_error = LookupTimeout(f"{method} {url} timed out after {timeout:.1f}s")
                last_error.__cause__ = exc
            except requests.RequestException as exc:
                last_error = NetworkError(f"{method} {url} failed: {exc}")
                last_error.__cause__ = exc
            else:
                if r.status_code == 404:
                    return None
                if r.status_code < 400:
                    return r
                if r.status_code not in RETRY_STATUSES:
                    raise NetworkError(f"{method} {url} returned HTTP {r.status_code}")
                last_error = NetworkError(f"{method} {url} returned HTTP {r.status_code}")

            if attempt == attempts:
                raise last_error
            logger.debug("retrying %s %s (%d/%d): %s", method, url, attempt, attempts, last_error)
            self._pause(self.settings.retry_delay * attempt)

    def _pause(self, seconds: float) -> None:
        r = self.deadline.remaining()
        if r is not None:
            if r <= 0:
                raise DeadlineExceeded("pipeline deadline exceeded")
            seconds = min(seconds, r)
        if seconds > 0:
            self._sleep(seconds)


def _json(r: requests.Response, url: str) -> Any:
    try:
        return r.json()
    except ValueError as exc:
        raise NetworkError(f"{url} did not return JSON") from exc
