"""
Rate limiting and retry helpers for outbound HTTP requests.

RateLimiter enforces a minimum spacing between requests; RateLimitedClient
wraps a requests.Session with that limiter, a per-request timeout, HTTP 429
handling and exponential backoff. Fetchers and the PDF validator compose a
client instead of inheriting the behaviour.

The limiter state belongs to one client instance. Two clients pointed at the
same source do not coordinate and may exceed its quota together.
"""

import logging
import time
from typing import Callable, Optional

import requests

from .config import FetcherConfig
from .exceptions import RateLimitExceededError


logger = logging.getLogger("fetcher")


class RateLimiter:
    """Minimum-interval limiter with per-instance state."""

    def __init__(
        self,
        min_interval_ms: int,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.min_interval_ms = min_interval_ms
        self.last_request_time: Optional[float] = None
        self.request_count = 0
        self._clock = clock
        self._sleep = sleep

    def wait(self) -> float:
        """Sleep until min_interval_ms has passed since the last request.

        Returns:
            float: Seconds slept (0.0 when no wait was needed).
        """
        if self.last_request_time is None:
            return 0.0
        elapsed_ms = (self._clock() - self.last_request_time) * 1000
        if elapsed_ms >= self.min_interval_ms:
            return 0.0
        delay_s = (self.min_interval_ms - elapsed_ms) / 1000
        logger.debug(f"Rate limiting: waiting {delay_s * 1000:.0f}ms")
        self._sleep(delay_s)
        return delay_s

    def mark(self) -> None:
        """Record that a request attempt just finished."""
        self.last_request_time = self._clock()
        self.request_count += 1

    def reset(self) -> None:
        self.last_request_time = None
        self.request_count = 0


def parse_retry_after(value: Optional[str]) -> Optional[float]:
    """Parse a Retry-After header given in seconds. Dates are not supported."""
    if value is None:
        return None
    try:
        seconds = float(value.strip())
    except ValueError:
        return None
    return seconds if seconds >= 0 else None


class RateLimitedClient:
    """requests.Session wrapper applying spacing, timeout and retries."""

    def __init__(
        self,
        config: Optional[FetcherConfig] = None,
        session: Optional[requests.Session] = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.config = config or FetcherConfig()
        self.session = session or requests.Session()
        self.session.headers.setdefault("User-Agent", self.config.user_agent)
        self.rate_limiter = RateLimiter(
            self.config.min_interval_ms, clock=clock, sleep=sleep
        )
        self._sleep = sleep

    def get(self, url: str, **kwargs) -> requests.Response:
        """
        GET a URL with rate limiting and the retry policy.

        Args:
            url: Target URL.
            **kwargs: Passed to requests.Session.get (params, headers, stream...).

        Returns:
            The first 2xx response.

        Raises:
            requests.RequestException: Last network, timeout or HTTP error
                once max_retries attempts are used up.
            RateLimitExceededError: If the last attempt was answered with 429.
        """
        max_retries = self.config.max_retries
        kwargs.setdefault("timeout", self.config.timeout_s)
        last_error: Optional[Exception] = None

        for attempt in range(1, max_retries + 1):
            self.rate_limiter.wait()
            try:
                response = self.session.get(url, **kwargs)
            except requests.RequestException as e:
                self.rate_limiter.mark()
                last_error = e
                logger.warning(
                    f"Request failed (attempt {attempt}/{max_retries}) for {url}: {e}"
                )
                self._backoff(attempt)
                continue
            self.rate_limiter.mark()

            if response.status_code == 429:
                retry_after = parse_retry_after(response.headers.get("Retry-After"))
                if retry_after is None:
                    retry_after = self.config.min_interval_ms * 2 / 1000
                logger.warning(
                    f"Rate limited (429) on attempt {attempt}/{max_retries}. "
                    f"Waiting {retry_after:.1f}s before retry"
                )
                response.close()
                last_error = RateLimitExceededError(url, retry_after)
                if attempt < max_retries:
                    self._sleep(retry_after)
                continue

            try:
                response.raise_for_status()
            except requests.HTTPError as e:
                response.close()
                last_error = e
                logger.warning(
                    f"HTTP {response.status_code} (attempt {attempt}/{max_retries}) for {url}"
                )
                self._backoff(attempt)
                continue

            return response

        logger.error(f"Giving up on {url} after {max_retries} attempts: {last_error}")
        raise last_error

    def get_json(self, url: str, **kwargs):
        headers = {"Accept": "application/json", **kwargs.pop("headers", {})}
        response = self.get(url, headers=headers, **kwargs)
        return response.json()

    def _backoff(self, attempt: int) -> None:
        if attempt >= self.config.max_retries:
            return
        delay_ms = self.config.retry_delay_ms * 2 ** (attempt - 1)
        logger.info(f"Waiting {delay_ms}ms before retry...")
        self._sleep(delay_ms / 1000)
