"""Elasticsearch-compatible HTTP client.

Issues single requests and maps HTTP failures onto the LogLens error
taxonomy. Retrying and pacing live in `ratelimit.call_with_retry`, so every
method here makes exactly one network call.
"""

from __future__ import annotations

from typing import Any, Mapping
from urllib.parse import quote

import requests

from LogLens.core.errors import (
    DocumentNotFoundError,
    SearchDecodeError,
    SearchTimeoutError,
    SearchTransportError,
    ThrottledError,
)
from LogLens.utils.log import log

DEFAULT_TIMEOUT = 30.0
THROTTLED_STATUS = 429

HEADERS = {
    "User-Agent": "log-lens/0.1",
    "Accept": "application/json",
    "Content-Type": "application/json",
}


class ElasticApiClient:
    """Low-level HTTP client for the search backend.

    Responsible only for making requests and returning decoded JSON bodies.
    Mapping hits into `DocumentEntry` objects is handled by the parser.
    """

    def __init__(
        self,
        base_url: str,
        *,
        username: str | None = None,
        password: str | None = None,
        verify_tls: bool = True,
        timeout: float = DEFAULT_TIMEOUT,
        session: requests.Session | None = None,
    ) -> None:
        """Initialize the client with a reusable HTTP session.

        Args:
            base_url: Backend root URL, e.g. `http://localhost:9200`.
            username: Optional basic-auth user.
            password: Optional basic-auth password.
            verify_tls: Whether to verify server certificates.
            timeout: Default per-request timeout in seconds.
            session: Optional pre-built session (used by tests).
        """
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._session = session or requests.Session()
        self._session.headers.update(HEADERS)
        self._session.verify = verify_tls
        if username:
            self._session.auth = (username, password or "")

    def close(self) -> None:
        """Close the underlying HTTP session."""
        self._session.close()

    def __enter__(self) -> ElasticApiClient:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def search(
        self,
        index: str,
        body: Mapping[str, Any],
        *,
        scroll: str | None = None,
        timeout: float | None = None,
    ) -> dict[str, Any]:
        """Run one search request.

        Args:
            index: Index name or pattern.
            body: Request body (query, size, optional sort).
            scroll: Optional cursor TTL (e.g. `5m`) to open a scroll.
            timeout: Optional request timeout in seconds.

        Returns:
            Decoded response body.
        """
        params = {"scroll": scroll} if scroll else None
        return self._request(
            "POST",
            f"{_quote_index(index)}/_search",
            params=params,
            json_body=dict(body),
            timeout=timeout,
        )

    def scroll(self, scroll_id: str, *, scroll: str, timeout: float | None = None) -> dict[str, Any]:
        """Fetch the next batch of an open scroll."""
        return self._request(
            "POST",
            "_search/scroll",
            json_body={"scroll": scroll, "scroll_id": scroll_id},
            timeout=timeout,
        )

    def clear_scroll(self, scroll_id: str, *, timeout: float | None = None) -> None:
        """Release an open scroll on the backend."""
        self._request(
            "DELETE",
            "_search/scroll",
            json_body={"scroll_id": [scroll_id]},
            timeout=timeout,
        )

    def get_document(self, index: str, doc_id: str, *, timeout: float | None = None) -> dict[str, Any]:
        """Fetch one document by id.

        Raises:
            DocumentNotFoundError: If the backend reports the document missing.
        """
        try:
            payload = self._request(
                "GET",
                f"{_quote_index(index)}/_doc/{quote(doc_id, safe='')}",
                timeout=timeout,
            )
        except SearchTransportError as e:
            if e.status_code == 404:
                raise DocumentNotFoundError(f"document {doc_id} not found in {index}") from e
            raise
        if payload.get("found") is False:
            raise DocumentNotFoundError(f"document {doc_id} not found in {index}")
        return payload

    def list_indices(self, pattern: str = "*", *, timeout: float | None = None) -> list[str]:
        """List index names matching `pattern`, newest name first."""
        payload = self._request(
            "GET",
            f"_cat/indices/{_quote_index(pattern or '*')}",
            params={"format": "json", "h": "index", "s": "index:desc"},
            timeout=timeout,
        )
        if not isinstance(payload, list):
            raise SearchDecodeError("index listing is not a JSON array")
        return [str(row["index"]) for row in payload if isinstance(row, Mapping) and row.get("index")]

    def _request(
        self,
        method: str,
        path: str,
        *,
        params: Mapping[str, str] | None = None,
        json_body: Any = None,
        timeout: float | None = None,
    ) -> Any:
        """Send one request and decode the JSON response.

        Raises:
            ThrottledError: On HTTP 429.
            SearchTransportError: On other HTTP errors or connection failures.
            SearchTimeoutError: When the request timed out.
            SearchDecodeError: When the body is not valid JSON.
        """
        url = f"{self._base_url}/{path}"
        log.debug("Backend request: %s %s params=%s", method, url, params)
        try:
            response = self._session.request(
                method,
                url,
                params=params,
                json=json_body,
                timeout=timeout or self._timeout,
            )
        except requests.Timeout as e:
            raise SearchTimeoutError(f"{method} {path} timed out: {e}") from e
        except requests.RequestException as e:
            raise SearchTransportError(f"{method} {path} failed: {e}") from e

        if response.status_code == THROTTLED_STATUS:
            raise ThrottledError(
                f"HTTP 429 from {method} {path}",
                retry_after=_parse_retry_after(response.headers.get("Retry-After")),
            )
        if response.status_code >= 400:
            raise SearchTransportError(
                f"HTTP {response.status_code} from {method} {path}: {_error_reason(response)}",
                status_code=response.status_code,
            )

        try:
            return response.json()
        except ValueError as e:
            raise SearchDecodeError(f"invalid JSON from {method} {path}: {e}") from e


def _quote_index(index: str) -> str:
    return quote(index, safe="*,-_.")


def _parse_retry_after(value: str | None) -> float | None:
    if not value:
        return None
    try:
        seconds = float(value)
    except ValueError:
        return None
    return seconds if seconds >= 0 else None


def _error_reason(response: requests.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return response.text[:200]
    error = payload.get("error") if isinstance(payload, dict) else None
    if isinstance(error, Mapping):
        return str(error.get("reason") or error.get("type") or error)
    return str(error or payload)[:200]
