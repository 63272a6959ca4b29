"""
Request authentication.

A request authenticates either with a scoped API token
(``Authorization: Bearer cms_...``) or with the ``cms_session`` cookie set
at browser sign-in. A bearer header always takes precedence over the
cookie.
"""

import asyncio
from collections.abc import Coroutine, Mapping
from dataclasses import replace
from datetime import timedelta
from typing import Any

import httpx

from gitzen.config import AppConfig
from gitzen.exceptions import AuthenticationError, DecryptionError, GitzenError
from gitzen.identity import IdentityStore, is_past, isoformat, parse_timestamp, utcnow
from gitzen.logging import get_logger
from gitzen.oauth import GitHubOAuth
from gitzen.tokens import TOKEN_PREFIX, verify_token
from gitzen.types.records import API_TOKEN, SESSION, AuthContext, TokenScope, UserRecord

logger = get_logger("auth")

SESSION_COOKIE = "cms_session"
REFRESH_WINDOW = timedelta(minutes=5)

RAW_TOKEN_MESSAGE = (
    "Raw GitHub tokens are not accepted. Create a CMS API token at /settings/tokens."
)


def _unauthorized(message: str = "Unauthorized") -> AuthenticationError:
    return AuthenticationError("UNAUTHORIZED", message)


class AuthResolver:
    """
    Turns request credentials into an AuthContext.

    Example:
        ```python
        resolver = AuthResolver(identity, config, oauth)
        auth = await resolver.resolve(request.headers, request.cookies)
        ```
    """

    def __init__(
        self,
        identity: IdentityStore,
        config: AppConfig,
        oauth: GitHubOAuth | None = None,
    ) -> None:
        self.identity = identity
        self.config = config
        self.oauth = oauth
        self._pending: set[asyncio.Task[None]] = set()

    async def resolve(
        self, headers: Mapping[str, str], cookies: Mapping[str, str]
    ) -> AuthContext:
        """
        Authenticate one request.

        Args:
            headers: Request headers (a case-insensitive mapping or a plain dict)
            cookies: Request cookies

        Returns:
            The resolved AuthContext

        Raises:
            AuthenticationError: If no credential is present or it is invalid
        """
        header = headers.get("authorization") or headers.get("Authorization") or ""
        if header.startswith("Bearer "):
            credential = header[len("Bearer ") :].strip()
            if credential.startswith(TOKEN_PREFIX):
                return await self._resolve_api_token(credential)
            raise _unauthorized(RAW_TOKEN_MESSAGE)

        session_id = cookies.get(SESSION_COOKIE)
        if not session_id:
            raise _unauthorized()
        return await self._resolve_session(session_id)

    async def drain(self) -> None:
        """Wait for outstanding last-used updates."""
        while self._pending:
            await asyncio.gather(*list(self._pending))

    async def _resolve_api_token(self, credential: str) -> AuthContext:
        token_id = verify_token(credential, self.config.api_token_secret)
        if token_id is None:
            raise _unauthorized("Invalid or expired API token")

        record = await self.identity.get_token(token_id)
        if record is None:
            raise _unauthorized("Invalid or expired API token")

        if is_past(record.expires_at):
            await self._discard_expired_token(record.user_id, token_id)
            raise _unauthorized("Invalid or expired API token")

        user = await self.identity.get_user(record.user_id)
        if user is None:
            raise _unauthorized("Invalid or expired API token")

        github_token = self._decrypt_access_token(user)
        self._schedule(self._touch_token(token_id))

        return AuthContext(
            user_id=record.user_id,
            github_username=user.github_username,
            github_token=github_token,
            auth_method=API_TOKEN,
            token_scope=TokenScope(
                repos=tuple(record.repos), permissions=tuple(record.permissions)
            ),
        )

    async def _resolve_session(self, session_id: str) -> AuthContext:
        session = await self.identity.get_session(session_id)
        if session is None:
            raise _unauthorized()

        if is_past(session.expires_at):
            await self.identity.delete_session(session_id)
            raise _unauthorized()

        user = await self.identity.get_user(session.user_id)
        if user is None:
            raise _unauthorized()

        github_token = self._decrypt_access_token(user)
        github_token = await self._maybe_refresh(user, github_token)

        return AuthContext(
            user_id=user.github_user_id,
            github_username=user.github_username,
            github_token=github_token,
            auth_method=SESSION,
        )

    def _decrypt_access_token(self, user: UserRecord) -> str:
        try:
            return self.identity.decrypt_access_token(user)
        except DecryptionError:
            logger.error("Stored access token for user %s could not be decrypted", user.github_user_id)
            raise _unauthorized() from None

    async def _maybe_refresh(self, user: UserRecord, current: str) -> str:
        """Refresh the access token if it expires within REFRESH_WINDOW.

        Any failure keeps the current token.
        """
        if self.oauth is None or not user.encrypted_refresh_token or not user.token_expires_at:
            return current
        if parse_timestamp(user.token_expires_at) > utcnow() + REFRESH_WINDOW:
            return current

        try:
            refresh_token = self.identity.decrypt_refresh_token(user)
            if refresh_token is None:
                return current
            tokens = await self.oauth.refresh(refresh_token)
            await self.identity.store_refreshed_tokens(user, tokens)
        except (GitzenError, httpx.HTTPError) as e:
            logger.warning("Token refresh failed for user %s: %s", user.github_user_id, e)
            return current
        return tokens.access_token

    async def _discard_expired_token(self, user_id: str, token_id: str) -> None:
        try:
            await self.identity.delete_token(token_id)
            await self.identity.remove_from_index(user_id, token_id)
        except Exception as e:
            logger.warning("Failed to clean up expired token %s: %s", token_id, e)

    async def _touch_token(self, token_id: str) -> None:
        try:
            record = await self.identity.get_token(token_id)
            if record is None:
                return
            await self.identity.save_token(replace(record, last_used_at=isoformat(utcnow())))
        except Exception as e:
            logger.warning("Failed to update last use of token %s: %s", token_id, e)

    def _schedule(self, coro: Coroutine[Any, Any, None]) -> None:
        task = asyncio.get_running_loop().create_task(coro)
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
