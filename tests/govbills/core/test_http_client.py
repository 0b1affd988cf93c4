"""Tests for HttpClient retry and caching behaviour."""

from unittest.mock import MagicMock

import pytest
import requests

from govbills.core.exceptions import RateLimitException
from govbills.core.http import HttpClient


def _response(status_code: int, content: bytes = b"", json_data=None, headers=None):
    response = MagicMock(spec=requests.Response)
    response.status_code = status_code
    response.content = content
    response.headers = headers or {}
    response.json.return_value = json_data
    if status_code >= 400:
        response.raise_for_status.side_effect = requests.exceptions.HTTPError(f"{status_code} error")
    return response


def _client(responses, **kwargs):
    session = MagicMock(spec=requests.Session)
    session.headers = {}
    session.request.side_effect = responses
    kwargs.setdefault("enable_cache", False)
    return HttpClient(initial_delay=0, max_delay=0, session=session, **kwargs), session


class TestHttpClient:
    def test_get_json(self):
        """JSON bodies are decoded."""
        client, session = _client([_response(200, json_data={"files": []})])

        assert client.get_json("https://bulk.example/BILLS/119/1/hr/") == {"files": []}
        session.request.assert_called_once()

    def test_rate_limit_is_retried(self):
        """429 responses are retried until a request succeeds."""
        client, session = _client(
            [_response(429, headers={"Retry-After": "1"}), _response(200, content=b"<bill/>")],
            max_retries=3,
        )

        assert client.get_content("https://example.com/a.xml") == b"<bill/>"
        assert session.request.call_count == 2

    def test_rate_limit_exhausted(self):
        """Persistent rate limiting raises RateLimitException with Retry-After."""
        client, session = _client([_response(429, headers={"Retry-After": "7"})] * 2, max_retries=2)

        with pytest.raises(RateLimitException) as exc_info:
            client.get("https://example.com/a.xml")
        assert exc_info.value.retry_after == 7
        assert session.request.call_count == 2

    def test_http_errors_are_raised_after_retries(self):
        """Server errors are retried and then re-raised."""
        client, session = _client([_response(503)] * 3, max_retries=3)

        with pytest.raises(requests.exceptions.HTTPError):
            client.get("https://example.com/a.xml")
        assert session.request.call_count == 3

    def test_content_cache(self, tmp_path):
        """Document bodies are served from the disk cache on repeat fetches."""
        client, session = _client(
            [_response(200, content=b"<bill/>")],
            enable_cache=True,
            cache_dir=str(tmp_path / "http"),
        )

        first = client.get_content("https://example.com/a.xml")
        second = client.get_content("https://example.com/a.xml")

        assert first == second == b"<bill/>"
        assert session.request.call_count == 1
        assert client.get_cache_info()["enabled"] is True

        client.clear_cache()

    def test_cache_disabled_info(self):
        """Cache info reports when caching is off."""
        client, _ = _client([])

        assert client.get_cache_info() == {"enabled": False}
