"""
Async HTTP transport for the remote Git host.

Handles authenticated JSON requests and error response parsing using httpx.
Requests are single-shot: nothing is retried here, the caller decides.
"""

import time
from typing import Any

import httpx

from gitzen.exceptions import RemoteApiError
from gitzen.logging import log_http_request, log_http_response, log_remote_error


class AsyncHTTPTransport:
    """
    Async HTTP transport layer bound to one access token.

    Handles:
    - Bearer authentication and API version headers
    - Request/response debug logging without credentials
    - Error response parsing into RemoteApiError
    """

    def __init__(
        self,
        base_url: str,
        token: str,
        timeout: float = 30.0,
        user_agent: str = "gitzen-cms",
        http_transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """
        Initialize async HTTP transport.

        Args:
            base_url: Base URL for API requests (e.g., "https://api.github.com")
            token: The caller's access token on the remote host
            timeout: Request timeout in seconds
            user_agent: User-Agent header (required by the remote host)
            http_transport: Optional httpx transport (e.g. httpx.MockTransport in tests)
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            transport=http_transport,
            headers={
                "Authorization": f"Bearer {token}",
                "Accept": "application/vnd.github+json",
                "User-Agent": user_agent,
            },
        )

    async def close(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()

    async def __aenter__(self) -> "AsyncHTTPTransport":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    async def request(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        body: dict[str, Any] | None = None,
    ) -> Any:
        """
        Make a request and return the parsed JSON body.

        Args:
            method: HTTP method
            path: API path (e.g., "/repos/owner/name/contents/posts/a.md")
            params: Query parameters
            body: JSON request body

        Returns:
            Parsed JSON response, or None for empty responses

        Raises:
            RemoteApiError: On any non-2xx response
        """
        log_http_request(method, path, body)
        started = time.monotonic()

        response = await self._client.request(method, path, params=params, json=body)

        log_http_response(
            response.status_code, path, elapsed_ms=(time.monotonic() - started) * 1000
        )

        if not response.is_success:
            raise self._parse_error_response(response, path)

        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    def _parse_error_response(self, response: httpx.Response, path: str) -> RemoteApiError:
        """
        Parse an error response into a typed exception.

        The raw body and path are kept on the error and logged; they never
        reach the error message.
        """
        body = response.text
        log_remote_error(response.status_code, path, body)
        return RemoteApiError(response.status_code, body, path)
