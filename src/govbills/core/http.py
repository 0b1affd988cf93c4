import logging
import os
from typing import Any, Dict, Optional, Type, Union

import requests
from diskcache import FanoutCache
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from govbills.core.exceptions import RateLimitException
from govbills.settings import (
    HTTP_CACHE_DIR,
    HTTP_CACHE_ENABLED,
    HTTP_MAX_RETRIES,
    HTTP_TIMEOUT_SECONDS,
)

logger = logging.getLogger(__name__)

DEFAULT_HEADERS = {
    "Accept": "application/json, application/xml;q=0.9, */*;q=0.8",
    "User-Agent": "govbills-ingest/0.1",
}


class HttpClient:
    """HTTP client with exponential backoff and an optional persistent cache for document bodies."""

    def __init__(
        self,
        max_retries: int = HTTP_MAX_RETRIES,
        initial_delay: float = 1.0,
        max_delay: float = 60.0,
        timeout: Optional[Union[float, tuple]] = HTTP_TIMEOUT_SECONDS,
        session: Optional[requests.Session] = None,
        retry_exceptions: Optional[tuple[Type[Exception], ...]] = None,
        enable_cache: bool = HTTP_CACHE_ENABLED,
        cache_dir: Optional[str] = HTTP_CACHE_DIR,
        cache_size_limit: int = 1_000_000_000,  # 1GB default
        cache_ttl: int = 7 * 24 * 3600,  # published bill XML never changes in place
    ):
        """
        Initialize the HTTP client.

        Args:
            max_retries: Maximum number of attempts per request
            initial_delay: Initial delay between retries in seconds
            max_delay: Maximum delay between retries in seconds
            timeout: Default timeout for requests
            session: Optional requests.Session to use
            retry_exceptions: Exceptions to retry on. Defaults to requests errors and rate limits
            enable_cache: Whether to cache document bodies fetched with get_content()
            cache_dir: Directory for cache storage. Defaults to ./data/cache/http
            cache_size_limit: Maximum cache size in bytes
            cache_ttl: Time to live for cached items in seconds
        """
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update(DEFAULT_HEADERS)
        self.max_retries = max_retries
        self.enable_cache = enable_cache
        self.cache_ttl = cache_ttl

        self.retry_exceptions = retry_exceptions or (
            requests.exceptions.RequestException,
            RateLimitException,
        )

        self._retry_decorator = retry(
            stop=stop_after_attempt(max(1, self.max_retries)),
            wait=wait_exponential(multiplier=initial_delay, min=initial_delay, max=max_delay),
            retry=retry_if_exception_type(self.retry_exceptions),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )

        self._cache = None
        if self.enable_cache:
            if cache_dir is None:
                cache_dir = os.path.join(os.getcwd(), "data", "cache", "http")
            os.makedirs(cache_dir, exist_ok=True)

            # FanoutCache shards across several SQLite files so concurrent batch workers don't block
            self._cache = FanoutCache(
                directory=cache_dir,
                size_limit=cache_size_limit,
                timeout=60,
                shards=8,
            )
            logger.debug(f"FanoutCache initialized at {cache_dir} with 8 shards")

    def _make_request(self, method: str, url: str, **kwargs: Any) -> requests.Response:
        """Send a single request, translating 429 into RateLimitException."""
        response = self.session.request(method=method, url=url, timeout=self.timeout, **kwargs)

        if response.status_code == 429:
            retry_after = response.headers.get("Retry-After")
            try:
                retry_after = int(retry_after) if retry_after else None
            except ValueError:
                retry_after = None

            logger.warning(
                f"Rate limited: {url}",
                extra={
                    "event_type": "rate_limit",
                    "url": url,
                    "retry_after": retry_after,
                    "status_code": 429,
                },
            )
            raise RateLimitException(f"Rate limited on {url}", retry_after)

        response.raise_for_status()
        return response

    def request(self, method: str, url: str, **kwargs: Any) -> requests.Response:
        """
        Make an HTTP request with retry logic.

        Raises:
            requests.exceptions.RequestException: If all retry attempts fail
            RateLimitException: If still rate limited after all attempts
        """
        return self._retry_decorator(self._make_request)(method, url, **kwargs)

    def get(self, url: str, **kwargs: Any) -> requests.Response:
        """Make an uncached GET request."""
        return self.request("GET", url, **kwargs)

    def get_json(self, url: str, **kwargs: Any) -> Any:
        """GET a JSON document. Never cached: listings change between runs."""
        return self.get(url, **kwargs).json()

    def get_content(self, url: str, **kwargs: Any) -> bytes:
        """GET a document body, served from the disk cache when enabled."""
        if self._cache is None:
            return self.get(url, **kwargs).content

        try:
            cached = self._cache.get(url)
            if cached is not None:
                logger.debug(f"Cache hit for {url}")
                return cached
        except Exception as e:
            logger.warning(f"Cache read error for {url}: {e}. Continuing without cache.")

        content = self.get(url, **kwargs).content

        try:
            self._cache.set(url, content, expire=self.cache_ttl)
        except Exception as e:
            logger.warning(f"Cache write error for {url}: {e}. Response returned without caching.")

        return content

    def clear_cache(self) -> None:
        """Clear the entire cache."""
        if self._cache is not None:
            self._cache.clear()
            logger.debug("Cache cleared")

    def get_cache_info(self) -> Dict[str, Any]:
        """Get information about the current cache state."""
        if self._cache is None:
            return {"enabled": False}

        return {
            "enabled": True,
            "size": self._cache.volume(),
            "directory": self._cache.directory,
            "ttl": self.cache_ttl,
        }
