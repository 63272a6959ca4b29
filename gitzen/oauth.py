"""
OAuth flows against the remote host.

Covers the browser web flow (authorize URL, code exchange), token refresh
for expiring user-to-server tokens, and the device flow used by native
clients.
"""

import time
from dataclasses import dataclass
from typing import Any
from urllib.parse import urlencode

import httpx

from gitzen.client import RemoteRepoClient
from gitzen.exceptions import AuthenticationError, RemoteApiError
from gitzen.logging import get_logger, log_http_request, log_http_response, log_remote_error
from gitzen.types.repos import RemoteUser

logger = get_logger("oauth")

DEVICE_GRANT_TYPE = "urn:ietf:params:oauth:grant-type:device_code"

# Device flow poll outcomes
PENDING = "pending"
SLOW_DOWN = "slow_down"
EXPIRED = "expired"
DENIED = "denied"
SUCCESS = "success"
ERROR = "error"

_DEVICE_ERRORS = {
    "authorization_pending": PENDING,
    "slow_down": SLOW_DOWN,
    "expired_token": EXPIRED,
    "access_denied": DENIED,
}


@dataclass
class OAuthTokens:
    """Tokens returned by a code, refresh or device exchange."""

    access_token: str
    refresh_token: str | None = None
    expires_in: int | None = None


@dataclass
class DeviceCode:
    """A started device flow. The user enters `user_code` at `verification_uri`."""

    device_code: str
    user_code: str
    verification_uri: str
    expires_in: int
    interval: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "deviceCode": self.device_code,
            "userCode": self.user_code,
            "verificationUri": self.verification_uri,
            "expiresIn": self.expires_in,
            "interval": self.interval,
        }


@dataclass
class DeviceFlowResult:
    """Outcome of one device flow poll."""

    status: str
    tokens: OAuthTokens | None = None
    interval: int | None = None
    error: str | None = None


class GitHubOAuth:
    """
    OAuth client for a GitHub App.

    App tokens carry no scopes; permissions are configured on the App itself.
    """

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        base_url: str = "https://github.com",
        api_base_url: str = "https://api.github.com",
        timeout: float = 30.0,
        http_transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """
        Initialize the OAuth client.

        Args:
            client_id: App client id
            client_secret: App client secret
            base_url: OAuth host (authorize and token endpoints)
            api_base_url: REST API host, used to identify the signed-in user
            timeout: Request timeout in seconds
            http_transport: Optional httpx transport (e.g. httpx.MockTransport in tests)
        """
        self.client_id = client_id
        self.client_secret = client_secret
        self.base_url = base_url.rstrip("/")
        self.api_base_url = api_base_url
        self.timeout = timeout
        self._http_transport = http_transport

    def authorize_url(self, state: str, redirect_uri: str) -> str:
        """Build the URL the browser is redirected to for sign-in."""
        params = {"client_id": self.client_id, "redirect_uri": redirect_uri, "state": state}
        return f"{self.base_url}/login/oauth/authorize?{urlencode(params)}"

    async def exchange_code(self, code: str) -> OAuthTokens:
        """
        Exchange an authorization code for tokens.

        Raises:
            AuthenticationError: If the host does not return an access token
        """
        data = await self._post(
            "/login/oauth/access_token",
            {"client_id": self.client_id, "client_secret": self.client_secret, "code": code},
        )
        if not data.get("access_token"):
            logger.warning("Code exchange failed: %s", data.get("error", "no_access_token"))
            raise AuthenticationError("OAUTH_EXCHANGE_FAILED", "Failed to get access token")
        return _tokens(data)

    async def refresh(self, refresh_token: str) -> OAuthTokens:
        """
        Trade a refresh token for a new access token.

        Raises:
            AuthenticationError: If the host does not return an access token
        """
        data = await self._post(
            "/login/oauth/access_token",
            {
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "grant_type": "refresh_token",
                "refresh_token": refresh_token,
            },
        )
        if not data.get("access_token"):
            raise AuthenticationError("OAUTH_REFRESH_FAILED", "Failed to refresh access token")
        return _tokens(data)

    async def start_device_flow(self) -> DeviceCode:
        """Request a device and user code pair."""
        data = await self._post("/login/device/code", {"client_id": self.client_id})
        return DeviceCode(
            device_code=data["device_code"],
            user_code=data["user_code"],
            verification_uri=data["verification_uri"],
            expires_in=int(data["expires_in"]),
            interval=int(data["interval"]),
        )

    async def poll_device_flow(self, device_code: str) -> DeviceFlowResult:
        """
        Poll once for the outcome of a device flow.

        The host reports the waiting states as OAuth errors; they are mapped to
        statuses here rather than raised.
        """
        data = await self._post(
            "/login/oauth/access_token",
            {
                "client_id": self.client_id,
                "device_code": device_code,
                "grant_type": DEVICE_GRANT_TYPE,
            },
            allow_error_status=True,
        )
        error = data.get("error")
        if error in _DEVICE_ERRORS:
            return DeviceFlowResult(status=_DEVICE_ERRORS[error], interval=data.get("interval"))
        if error or not data.get("access_token"):
            return DeviceFlowResult(
                status=ERROR,
                error=data.get("error_description") or error or "Unknown error",
            )
        return DeviceFlowResult(status=SUCCESS, tokens=_tokens(data))

    async def fetch_user(self, access_token: str) -> RemoteUser:
        """Identify the user an access token belongs to."""
        async with RemoteRepoClient(
            access_token,
            base_url=self.api_base_url,
            timeout=self.timeout,
            http_transport=self._http_transport,
        ) as client:
            return await client.users.get_authenticated_user()

    async def _post(
        self, path: str, body: dict[str, Any], allow_error_status: bool = False
    ) -> dict[str, Any]:
        log_http_request("POST", f"{self.base_url}{path}", body)
        started = time.monotonic()
        async with httpx.AsyncClient(
            base_url=self.base_url, timeout=self.timeout, transport=self._http_transport
        ) as client:
            response = await client.post(path, json=body, headers={"Accept": "application/json"})
        log_http_response(
            response.status_code, path, elapsed_ms=(time.monotonic() - started) * 1000
        )

        if not response.is_success and not allow_error_status:
            log_remote_error(response.status_code, path, response.text)
            raise RemoteApiError(response.status_code, response.text, path)
        try:
            data = response.json()
        except ValueError:
            log_remote_error(response.status_code, path, response.text)
            raise RemoteApiError(response.status_code, response.text, path) from None
        return data if isinstance(data, dict) else {}


def _tokens(data: dict[str, Any]) -> OAuthTokens:
    expires_in = data.get("expires_in")
    return OAuthTokens(
        access_token=data["access_token"],
        refresh_token=data.get("refresh_token") or None,
        expires_in=int(expires_in) if expires_in else None,
    )
