"""
Remote repository client.

Provides a typed async interface over the remote Git host's REST API,
bound to one caller's access token.
"""

from typing import Any

import httpx

from gitzen.clients import BranchesClient, ContentsClient, PullsClient, UsersClient
from gitzen.transport import AsyncHTTPTransport


class RemoteRepoClient:
    """
    Async client for the remote Git host.

    Aggregates all resource clients over one transport.

    Example:
        ```python
        from gitzen import RemoteRepoClient

        async with RemoteRepoClient(token=auth.github_token) as client:
            branch = await client.branches.get_default_branch("owner/site")
            file = await client.contents.get_file("owner/site", "cms.config.json", ref=branch)
        ```
    """

    DEFAULT_BASE_URL = "https://api.github.com"
    DEFAULT_TIMEOUT = 30.0

    def __init__(
        self,
        token: str,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = DEFAULT_TIMEOUT,
        user_agent: str = "gitzen-cms",
        http_transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """
        Initialize the client.

        Args:
            token: The caller's access token on the remote host
            base_url: Base URL for API requests (default: https://api.github.com)
            timeout: Request timeout in seconds (default: 30.0)
            user_agent: User-Agent header sent with every request
            http_transport: Optional httpx transport, used by tests to plug in
                an in-memory host
        """
        self.base_url = base_url
        self.timeout = timeout

        self._transport = AsyncHTTPTransport(
            base_url=base_url,
            token=token,
            timeout=timeout,
            user_agent=user_agent,
            http_transport=http_transport,
        )

        self.contents = ContentsClient(self._transport)
        self.branches = BranchesClient(self._transport)
        self.pulls = PullsClient(self._transport)
        self.users = UsersClient(self._transport)

    @property
    def transport(self) -> AsyncHTTPTransport:
        """Get the underlying HTTP transport (for advanced use cases)."""
        return self._transport

    async def close(self) -> None:
        """Close the client and release resources."""
        await self._transport.close()

    async def __aenter__(self) -> "RemoteRepoClient":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()
